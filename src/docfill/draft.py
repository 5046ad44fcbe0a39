"""The Draft aggregate and the snapshot handed to persistence."""

import uuid
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

from docfill.conversation import ConversationLog, Turn
from docfill.schema.models import FieldSchema

DraftStatus = Literal["parsing", "collecting", "complete"]


def _now() -> str:
    return datetime.now(UTC).isoformat()


class DraftSnapshot(BaseModel):
    """State emitted after each accepted turn, persisted atomically by the caller."""

    collected_data: dict[str, str]
    completeness: int
    status: DraftStatus
    conversation: list[Turn]


class Draft(BaseModel):
    """One document being filled in.

    Owns the field schema, the collected values, the conversation and the
    immutable original text. ``rendered_text`` caches the finished document
    once rendering succeeds.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    field_schema: FieldSchema
    document_text: str
    collected_data: dict[str, str] = Field(default_factory=dict)
    conversation: ConversationLog = Field(default_factory=ConversationLog)
    status: DraftStatus = "collecting"
    completeness: int = Field(default=0, ge=0, le=100)
    rendered_text: str | None = None
    created_at: str = Field(default_factory=_now)
    updated_at: str = Field(default_factory=_now)

    @property
    def is_rendered(self) -> bool:
        return self.rendered_text is not None

    def snapshot(self) -> DraftSnapshot:
        return DraftSnapshot(
            collected_data=dict(self.collected_data),
            completeness=self.completeness,
            status=self.status,
            conversation=self.conversation.all(),
        )

    def touch(self) -> None:
        self.updated_at = _now()
