"""Resolve customer identity and the attending agent from a chat's messages."""

from typing import Iterable

from . import config
from .models import ChatEnrichment, Message


def enrich_chat(
    messages: Iterable[Message],
    bot_name_marker: str = config.BOT_NAME_MARKER,
    default_agent: str = config.UNIDENTIFIED_AGENT,
) -> ChatEnrichment:
    """
    Scan messages in arrival order for the customer record and agent name.

    Every message carrying a customer snapshot replaces the current customer
    (and its custom fields). The first sender that is neither that message's
    customer nor the platform bot is taken as the agent, and the scan stops
    there, so later agents in a transferred chat are not captured.

    Args:
        messages: The chat's messages as returned by the API
        bot_name_marker: Substring identifying the bot's display name
        default_agent: Agent name when no human agent is found

    Returns:
        ChatEnrichment with customer (or None), custom fields and agent name
    """
    customer = None
    custom_fields = {}
    agent_name = default_agent

    for message in messages:
        if message.customer is not None:
            customer = message.customer
            custom_fields = message.customer.custom_fields or {}

        sender = message.sender
        if sender is None:
            continue
        customer_id = message.customer.id if message.customer else None
        if sender.id != customer_id and bot_name_marker not in (sender.name or ""):
            agent_name = sender.name or default_agent
            break

    return ChatEnrichment(
        customer=customer,
        custom_fields=custom_fields,
        agent_name=agent_name,
    )
