"""
Render a chat's messages as a plain-text transcript for the classifier.

Messages are ordered by send time, low-value entries are dropped, and each
message is labelled with who sent it:

    enviado por: cliente
    mensagem: não funciona
    enviado por: atendente
    mensagem: resolvido?
"""

from datetime import datetime, timezone
from typing import Iterable, List, Tuple

from .models import Message

ROLE_CUSTOMER = "cliente"
ROLE_BOT = "bot"
ROLE_AGENT = "atendente"

SENDER_LABEL = "enviado por"
MESSAGE_LABEL = "mensagem"

_UNDATED = datetime.max.replace(tzinfo=timezone.utc)


def sort_messages(messages: Iterable[Message]) -> List[Message]:
    """Sort by send time; ties and undated messages keep arrival order."""
    return sorted(
        messages,
        key=lambda m: m.send_at if m.send_at is not None else _UNDATED,
    )


def should_keep(message: Message) -> bool:
    """Drop empty messages unless they come from the virtual agent."""
    return bool(message.body) or message.is_virtual_agent


def sender_role(message: Message) -> str:
    """Return "cliente", "bot" or "atendente" for a message."""
    sender_id = message.sender.id if message.sender else None
    customer_id = message.customer.id if message.customer else None
    if sender_id is not None and sender_id == customer_id:
        return ROLE_CUSTOMER
    if message.is_virtual_agent:
        return ROLE_BOT
    return ROLE_AGENT


def transcript_lines(messages: Iterable[Message]) -> List[Tuple[str, str]]:
    """Ordered (role, text) pairs for the messages worth classifying."""
    return [
        (sender_role(m), m.body or "")
        for m in sort_messages(messages)
        if should_keep(m)
    ]


def render_transcript(messages: Iterable[Message]) -> str:
    """
    Build the transcript text sent to the classifier.

    Args:
        messages: A chat's messages in any order

    Returns:
        Newline-joined transcript, or "" when nothing survives filtering
    """
    return "\n".join(
        f"{SENDER_LABEL}: {role}\n{MESSAGE_LABEL}: {text}"
        for role, text in transcript_lines(messages)
    )
