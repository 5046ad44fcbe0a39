"""Pydantic models for the extraction oracle boundary.

The oracle speaks camelCase JSON (``extractedData``, ``isComplete`` ...);
these models accept that wire shape and expose snake_case attributes.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from docfill.conversation import Turn
from docfill.schema.models import FieldSchema

MessageType = Literal["document_info", "general_chat", "greeting"]
ConfidenceLevel = Literal["high", "medium", "low"]


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Confidence(_WireModel):
    """Oracle's self-assessed confidence for a turn."""

    overall: ConfidenceLevel
    reasoning: str
    per_field: dict[str, ConfidenceLevel] = Field(default_factory=dict)


class ExtractionResult(_WireModel):
    """Validated oracle output for one user message.

    ``extracted_data`` only ever holds keys from the draft's schema once it
    has passed through the adapter.
    """

    message_type: MessageType
    extracted_data: dict[str, str]
    confidence: Confidence
    next_question: str | None
    missing_fields: list[str]
    is_complete: bool
    needs_clarification: bool
    clarification_question: str | None = None

    @property
    def confidence_level(self) -> ConfidenceLevel:
        return self.confidence.overall

    @property
    def confidence_reasoning(self) -> str:
        return self.confidence.reasoning


class OracleRequest(BaseModel):
    """Everything the oracle is allowed to see for one turn."""

    model_config = ConfigDict(frozen=True)

    field_schema: FieldSchema
    collected_data: dict[str, str]
    conversation_tail: list[Turn]
    user_message: str
