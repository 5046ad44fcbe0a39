"""Extraction oracle boundary.

The oracle itself (usually an LLM) is a black box. This module owns the
contract around it: what a request looks like, and how a raw response is
validated and filtered before the reconciler may trust it.
"""

import logging
from typing import Any, Protocol

import pydantic

from docfill.conversation import Turn
from docfill.errors import ValidationError
from docfill.oracle.models import ExtractionResult, OracleRequest
from docfill.schema.models import FieldSchema

logger = logging.getLogger(__name__)


class ExtractionOracle(Protocol):
    """Anything that can classify a user message and extract field values."""

    async def extract(self, request: OracleRequest) -> dict[str, Any]:
        """Return the raw (camelCase) result payload for one user message."""
        ...


def _drop_unknown_keys(raw: dict, known: set[str]) -> dict:
    """Strip entries for keys outside the schema before type checks run.

    Unknown keys are never errors, whatever their values look like.
    """
    raw = dict(raw)
    extracted = raw.get("extractedData", raw.get("extracted_data"))
    if isinstance(extracted, dict):
        unknown = [k for k in extracted if k not in known]
        if unknown:
            logger.debug(f"Dropping unknown extracted keys: {unknown}")
        filtered = {k: v for k, v in extracted.items() if k in known}
        raw.pop("extracted_data", None)
        raw["extractedData"] = filtered

    confidence = raw.get("confidence")
    if isinstance(confidence, dict):
        confidence = dict(confidence)
        per_field = confidence.get("perField", confidence.get("per_field"))
        if isinstance(per_field, dict):
            confidence.pop("per_field", None)
            confidence["perField"] = {k: v for k, v in per_field.items() if k in known}
        raw["confidence"] = confidence
    return raw


def validate_extraction(raw: Any, schema: FieldSchema) -> ExtractionResult:
    """Validate a raw oracle payload and drop keys outside the schema.

    Raises:
        ValidationError: If the payload does not match the result shape
    """
    if isinstance(raw, ExtractionResult):
        raw = raw.model_dump(by_alias=True)
    if not isinstance(raw, dict):
        raise ValidationError(f"Oracle returned {type(raw).__name__}, expected an object")

    raw = _drop_unknown_keys(raw, set(schema.keys()))
    try:
        return ExtractionResult.model_validate(raw)
    except pydantic.ValidationError as e:
        raise ValidationError(
            f"Oracle response failed validation ({e.error_count()} errors)",
            errors=e.errors(include_url=False),
        ) from e


class OracleAdapter:
    """Wraps an ExtractionOracle and validates everything it returns."""

    def __init__(self, oracle: ExtractionOracle):
        self.oracle = oracle

    async def classify(
        self,
        schema: FieldSchema,
        collected_data: dict[str, str],
        conversation_tail: list[Turn],
        user_message: str,
    ) -> ExtractionResult:
        """Ask the oracle about one user message and return a trusted result.

        Raises:
            ValidationError: If the oracle's payload is malformed
        """
        request = OracleRequest(
            field_schema=schema,
            collected_data=dict(collected_data),
            conversation_tail=list(conversation_tail),
            user_message=user_message,
        )
        try:
            raw = await self.oracle.extract(request)
        except ValueError as e:
            # Unparseable model output, e.g. prose instead of JSON
            raise ValidationError(f"Oracle response was not valid JSON: {e}") from e
        result = validate_extraction(raw, schema)
        logger.debug(
            f"Oracle classified message as {result.message_type} "
            f"({len(result.extracted_data)} fields, confidence {result.confidence_level})"
        )
        return result
