"""Completeness arithmetic shared by the reconciler, renderer and prompts."""

from collections.abc import Mapping

from docfill.schema.models import FieldSchema, FieldSpec


def is_filled(collected: Mapping[str, str], key: str) -> bool:
    """A field counts as filled only with a non-empty string value."""
    value = collected.get(key)
    return isinstance(value, str) and value != ""


def missing_required(schema: FieldSchema, collected: Mapping[str, str]) -> list[FieldSpec]:
    """Required fields without a filled value, in schema order."""
    return [f for f in schema.required_fields() if not is_filled(collected, f.key)]


def compute_completeness(schema: FieldSchema, collected: Mapping[str, str]) -> int:
    """Percentage (0-100) of required fields that are filled.

    Rounds half up. Never reports 100 while a required field is unfilled,
    and reports 100 for a schema with no required fields.
    """
    required = schema.required_fields()
    if not required:
        return 100
    filled = sum(1 for f in required if is_filled(collected, f.key))
    if filled == len(required):
        return 100
    percent = (200 * filled + len(required)) // (2 * len(required))
    return min(percent, 99)
