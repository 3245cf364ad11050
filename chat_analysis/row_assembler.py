"""
Assemble report rows.

build_row() merges chat metadata, the enrichment result and a validated
classification into one OutputRow. Classification values are copied as
returned by the model; only keywords are reshaped into display text.
"""

from typing import Any, Iterator, List

from .models import Chat, ChatEnrichment, ClassificationResult, OutputRow

# Huggy custom field names for the report's certificate columns
CNPJ_FIELD = "cnpj_customer"
CERTIFICATE_FIELD = "certificado_customer"
ISSUER_FIELD = "emissor_customer"

KEYWORD_SEPARATOR = ", "


def normalize_keywords(value: Any) -> str:
    """Render keywords as one display string.

    A list is comma-joined; a string is kept as sent, so
    ["timeout", "nota fiscal"] and "timeout, nota fiscal" render the same.
    """
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return KEYWORD_SEPARATOR.join(str(item) for item in value if item is not None)
    return str(value)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def build_row(
    chat: Chat,
    enrichment: ChatEnrichment,
    classification: ClassificationResult,
) -> OutputRow:
    customer = enrichment.customer
    fields = enrichment.custom_fields or {}

    return OutputRow(
        chat_id=chat.id,
        created_at=_text(chat.created_at),
        attended_at=_text(chat.attended_at),
        closed_at=_text(chat.closed_at),
        client_id=_text(customer.id) if customer else "",
        client_name=_text(customer.name) if customer else "",
        email=_text(customer.email) if customer else "",
        phone_number=_text(customer.mobile or customer.phone) if customer else "",
        cnpj=_text(fields.get(CNPJ_FIELD)),
        certificate_type=_text(fields.get(CERTIFICATE_FIELD)),
        issuer=_text(fields.get(ISSUER_FIELD)),
        agent=enrichment.agent_name,
        keywords=normalize_keywords(classification.keywords),
        resolved=classification.resolved,
        sentiment=classification.sentiment,
        analysis=classification.analysis,
    )


class RowCollector:
    """Append-only, ordered collection of report rows for one run."""

    def __init__(self):
        self._rows: List[OutputRow] = []

    def append(self, row: OutputRow) -> None:
        self._rows.append(row)

    @property
    def rows(self) -> List[OutputRow]:
        """Snapshot copy; callers cannot mutate the collection."""
        return list(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[OutputRow]:
        return iter(list(self._rows))
