"""
Notification domain models.

NotificationEvent is the transient input of a dispatch; NotificationRecord is
the row the send-notification function writes to the notifications table.
DispatchOutcome is the result a dispatch hands back to its caller, who is
free to ignore it.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator


class NotificationKind(str, Enum):
    COMMENT = "comment"
    CLAIM = "claim"
    STATUS_CHANGE = "status_change"
    SYSTEM = "system"


class _ItemMetadata(BaseModel):
    """Metadata shared by every item-bound notification."""

    model_config = ConfigDict(extra="allow")

    item_id: str = Field(..., min_length=1)


class CommentMetadata(_ItemMetadata):
    comment_content: str | None = None


class ClaimMetadata(_ItemMetadata):
    claim_id: str | None = None


class StatusChangeMetadata(_ItemMetadata):
    status: str | None = None


# system notifications carry an opaque map
METADATA_SCHEMAS: dict[NotificationKind, type[BaseModel] | None] = {
    NotificationKind.COMMENT: CommentMetadata,
    NotificationKind.CLAIM: ClaimMetadata,
    NotificationKind.STATUS_CHANGE: StatusChangeMetadata,
    NotificationKind.SYSTEM: None,
}


class NotificationEvent(BaseModel):
    """A domain event addressed to one user."""

    model_config = ConfigDict(frozen=True)

    target_user_id: str = Field(..., min_length=1)
    kind: NotificationKind
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    link: str | None = None
    metadata: dict[str, Any] | None = None

    @field_validator("target_user_id", "title", "message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @model_validator(mode="after")
    def _check_metadata_shape(self) -> "NotificationEvent":
        schema = METADATA_SCHEMAS[self.kind]
        if schema is not None and self.metadata is not None:
            try:
                schema.model_validate(self.metadata)
            except ValidationError as e:
                raise ValueError(f"invalid metadata for {self.kind.value} notification: {e}") from e
        return self

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the send-notification wire format."""
        payload: dict[str, Any] = {
            "user_id": self.target_user_id,
            "type": self.kind.value,
            "title": self.title,
            "message": self.message,
        }
        if self.link is not None:
            payload["link"] = self.link
        if self.metadata is not None:
            payload["metadata"] = self.metadata
        return payload


class NotificationRecord(BaseModel):
    """Row in the notifications table."""

    model_config = ConfigDict(extra="allow")

    id: str
    user_id: str
    type: NotificationKind
    title: str
    message: str
    link: str | None = None
    metadata: dict[str, Any] | None = None
    is_read: bool = False
    created_at: datetime | None = None

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def _stringify_uuid(cls, value: Any) -> Any:
        # psycopg hands back uuid.UUID for uuid columns
        return str(value) if value is not None else value


class DispatchErrorKind(str, Enum):
    VALIDATION = "validation"
    TRANSPORT = "transport"
    REMOTE = "remote"
    INTERNAL = "internal"


@dataclass(frozen=True)
class DispatchError:
    kind: DispatchErrorKind
    message: str
    status_code: int | None = None


@dataclass(frozen=True)
class DispatchOutcome:
    """
    Result of one dispatch: either a delivered record or an error.

    Callers may discard it; dispatch never raises.
    """

    result: NotificationRecord | None = None
    error: DispatchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None

    @classmethod
    def success(cls, record: NotificationRecord) -> "DispatchOutcome":
        return cls(result=record)

    @classmethod
    def failure(
        cls, kind: DispatchErrorKind, message: str, status_code: int | None = None
    ) -> "DispatchOutcome":
        return cls(error=DispatchError(kind=kind, message=message, status_code=status_code))
