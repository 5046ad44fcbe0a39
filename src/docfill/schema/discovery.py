"""LLM-driven placeholder discovery.

Reads the document text, asks an LLM to list every placeholder that needs
filling, and turns the answer into a FieldSchema. Also writes the first
assistant turn that opens the collection conversation.
"""

import logging
from typing import Literal

import pydantic
from pydantic import BaseModel

from docfill.errors import SchemaError
from docfill.schema.loader import parse_schema
from docfill.schema.models import FieldSchema

logger = logging.getLogger(__name__)

# Only the head of the document is sent; templates put most blanks up front
_TEXT_MAX_CHARS = 8000


class DiscoveryConfidence(BaseModel):
    overall: Literal["high", "medium", "low"] = "medium"
    reasoning: str = ""


class DiscoveredSchema(BaseModel):
    """Schema discovery output: the fields plus the model's self-assessment."""

    field_schema: FieldSchema
    confidence: DiscoveryConfidence = pydantic.Field(default_factory=DiscoveryConfidence)


def build_discovery_prompt(text: str, document_kind: str = "legal agreement") -> str:
    """Build the prompt asking the LLM to enumerate placeholders.

    Args:
        text: Plain document text
        document_kind: Short description of the template (e.g. "SAFE agreement")
    """
    truncated = text[:_TEXT_MAX_CHARS]
    if len(text) > _TEXT_MAX_CHARS:
        truncated += " ...(truncated)"

    return f"""Analyze this {document_kind} and extract all placeholders that need to be filled.

DOCUMENT TEXT:
{truncated}

INSTRUCTIONS:
1. Identify ALL placeholders in brackets like [Company Name], [Investor Name], [Date], $[______], etc.
2. For each placeholder provide ALL of these fields:
   - key: a unique snake_case key (e.g. "company_name")
   - label: the display label exactly as written inside the brackets (e.g. "Company Name")
   - type: one of "text", "money", "date", "jurisdiction"
   - required: true if the field must be filled, false otherwise (most fields are required)
   - question: a natural question to ask the user (e.g. "What's the name of the company?")
   - example: an example value (e.g. "e.g., Acme Corp")
   - validationHint: optional extra validation guidance
3. Assess your overall confidence in the extraction.

Every field object MUST include "required" as a boolean.

Return ONLY valid JSON matching this schema:
{{
  "fields": [
    {{
      "key": "company_name",
      "label": "Company Name",
      "type": "text",
      "required": true,
      "question": "What's the name of the company?",
      "example": "e.g., Acme Corp"
    }}
  ],
  "confidence": {{"overall": "high|medium|low", "reasoning": "string"}}
}}

OUTPUT JSON:"""


async def discover_fields(
    text: str,
    llm: "LLMClient",  # noqa: F821
    document_kind: str = "legal agreement",
) -> DiscoveredSchema:
    """Run placeholder discovery via LLM.

    Raises:
        RuntimeError, ValueError: On LLM call or JSON parse failure
        SchemaError: If the LLM returned fields that don't form a valid schema
    """
    prompt = build_discovery_prompt(text, document_kind)
    data = await llm.acall_json(prompt)

    schema = parse_schema(data.get("fields", []))
    if not schema.fields:
        raise SchemaError("Discovery returned no fields")

    raw_conf = data.get("confidence") or {}
    try:
        confidence = DiscoveryConfidence.model_validate(raw_conf)
    except pydantic.ValidationError:
        logger.debug(f"Ignoring malformed discovery confidence: {raw_conf!r}")
        confidence = DiscoveryConfidence()

    logger.info(
        f"Discovered {len(schema)} fields ({len(schema.required_keys())} required), "
        f"confidence {confidence.overall}"
    )
    return DiscoveredSchema(field_schema=schema, confidence=confidence)


def build_initial_message(schema: FieldSchema, document_kind: str = "agreement") -> str:
    """First assistant turn, synthesized when the draft is created."""
    field_count = len(schema)
    required_count = len(schema.required_keys())
    required_note = f" ({required_count} required)" if required_count < field_count else ""
    first_question = schema.fields[0].question if schema.fields else ""
    default_question = "Let's get started!"

    return (
        f"Great! I've analyzed your {document_kind} and found {field_count} fields "
        f"that need to be filled{required_note}.\n\n"
        f"Let's collect the information together. {first_question or default_question}"
    )
