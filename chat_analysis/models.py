"""Pydantic models for Huggy entities, classification output and report rows."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# senderType value the Huggy API uses for automated (bot) agents
VIRTUAL_AGENT = "virtual_agent"


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


class Sender(BaseModel):
    """Author of a message (customer, human agent or bot)."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: Optional[str] = None

    @field_validator("id", "name", mode="before")
    @classmethod
    def coerce_text(cls, value):
        return _to_text(value)


class Customer(BaseModel):
    """Customer snapshot embedded in every Huggy message."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    mobile: Optional[str] = None
    custom_fields: Optional[Dict[str, Any]] = None

    @field_validator("id", "name", "email", "phone", "mobile", mode="before")
    @classmethod
    def coerce_text(cls, value):
        return _to_text(value)

    @field_validator("custom_fields", mode="before")
    @classmethod
    def empty_custom_fields(cls, value):
        # Huggy sends [] instead of {} for customers without custom fields
        if not isinstance(value, dict):
            return None
        return value


class Chat(BaseModel):
    """A support chat as listed by `GET chats`."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    attended_at: Optional[str] = Field(default=None, alias="attendedAt")
    closed_at: Optional[str] = Field(default=None, alias="closedAt")

    @field_validator("id", "created_at", "attended_at", "closed_at", mode="before")
    @classmethod
    def coerce_text(cls, value):
        return _to_text(value)


class Message(BaseModel):
    """One message of a chat as listed by `GET chats/{id}/messages`."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    send_at: Optional[datetime] = None
    body: Optional[str] = None
    sender: Optional[Sender] = None
    sender_type: Optional[str] = Field(default=None, alias="senderType")
    customer: Optional[Customer] = None

    @field_validator("send_at", mode="before")
    @classmethod
    def parse_timestamp(cls, value):
        # Unparseable timestamps sort last instead of rejecting the message
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
            try:
                return datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                return None
        if isinstance(value, (datetime, int, float)) and not isinstance(value, bool):
            return value
        return None

    @field_validator("body", "sender_type", mode="before")
    @classmethod
    def coerce_text(cls, value):
        return _to_text(value)

    @field_validator("sender", "customer", mode="before")
    @classmethod
    def drop_non_objects(cls, value):
        # Keep the message when a nested record arrives in an unexpected shape
        if value is None or isinstance(value, (dict, BaseModel)):
            return value
        return None

    @field_validator("send_at")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Naive and aware timestamps must stay comparable when sorting
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def is_virtual_agent(self) -> bool:
        return self.sender_type == VIRTUAL_AGENT


class ClassificationResult(BaseModel):
    """Validated classifier output for one chat.

    Values are not checked against the prompt's vocabularies; whatever the
    model returned is carried into the report.
    """

    model_config = ConfigDict(frozen=True)

    resolved: str
    sentiment: str
    analysis: str
    keywords: Union[str, List[str]]

    @field_validator("resolved", "sentiment", "analysis", mode="before")
    @classmethod
    def stringify(cls, value):
        if value is None:
            return ""
        if isinstance(value, (dict, list)):
            raise ValueError("expected a scalar value")
        return str(value)

    @field_validator("keywords", mode="before")
    @classmethod
    def keywords_shape(cls, value):
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return [str(item) for item in value if item is not None]
        if isinstance(value, dict):
            raise ValueError("keywords must be a string or a list")
        return str(value)


class ClassificationFailure(BaseModel):
    """Classifier response that could not be turned into a ClassificationResult."""

    model_config = ConfigDict(frozen=True)

    reason: str
    raw_content: Optional[str] = None


ClassificationOutcome = Union[ClassificationResult, ClassificationFailure]


class ChatEnrichment(BaseModel):
    """Customer and agent identity resolved from a chat's messages."""

    customer: Optional[Customer] = None
    custom_fields: Dict[str, Any] = Field(default_factory=dict)
    agent_name: str


class OutputRow(BaseModel):
    """One line of the analysis report, fields in report column order."""

    chat_id: str
    created_at: str = ""
    attended_at: str = ""
    closed_at: str = ""
    client_id: str = ""
    client_name: str = ""
    email: str = ""
    phone_number: str = ""
    cnpj: str = ""
    certificate_type: str = ""
    issuer: str = ""
    agent: str = ""
    keywords: str = ""
    resolved: str = ""
    sentiment: str = ""
    analysis: str = ""


class PipelineRun(BaseModel):
    """Summary of one pipeline execution."""

    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    chats_fetched: int = 0
    chats_processed: int = 0
    chats_skipped_empty: int = 0
    classification_failures: int = 0
    chat_errors: int = 0
    rows_written: int = 0

    report_path: Optional[str] = None
    status: str = "running"  # running, completed, aborted
    error_message: Optional[str] = None
