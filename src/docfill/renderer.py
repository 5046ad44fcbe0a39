"""Placeholder renderer.

Substitutes collected values into the original document text. Rendering is
all-or-nothing: if any required field is unfilled, nothing is substituted
and MissingFieldsError lists the labels still needed.

Placeholder notations, applied per field in schema order:

  - ``[Label]``       exact, case-sensitive label
  - ``[key]``         field key, case-insensitive
  - ``$[____]``       money fields only: dollar sign plus a bracketed blank

Patterns always include the brackets, so a label that is a substring of
another label can't match inside it.
"""

import logging
import re
from collections.abc import Mapping

from pydantic import BaseModel

from docfill.draft import Draft
from docfill.errors import MissingFieldsError
from docfill.progress import is_filled, missing_required
from docfill.schema.models import FieldSchema, FieldSpec

logger = logging.getLogger(__name__)

MONEY_BLANK_PATTERN = re.compile(r"\$\[\s*[_\s]+\s*\]")


class RenderResult(BaseModel):
    """Finished document text plus what was substituted."""

    text: str
    replacements: dict[str, int]


def field_patterns(field: FieldSpec) -> list[re.Pattern]:
    """Match patterns for one field, in application order."""
    patterns = [
        re.compile(r"\[" + re.escape(field.label) + r"\]"),
        re.compile(r"\[" + re.escape(field.key) + r"\]", re.IGNORECASE),
    ]
    if field.type == "money":
        patterns.append(MONEY_BLANK_PATTERN)
    return patterns


def render(
    schema: FieldSchema,
    collected: Mapping[str, str],
    text: str,
    missing_marker: str | None = None,
) -> RenderResult:
    """Substitute collected values into ``text``.

    Unfilled optional fields keep their placeholder literal unless a
    ``missing_marker`` is given, in which case the marker is substituted.

    Raises:
        MissingFieldsError: If any required field is unfilled
    """
    missing = missing_required(schema, collected)
    if missing:
        raise MissingFieldsError([f.label for f in missing])

    rendered = text
    replacements: dict[str, int] = {}
    for field in schema.fields:
        if is_filled(collected, field.key):
            value = collected[field.key]
        elif missing_marker is not None:
            value = missing_marker
        else:
            continue

        count = 0
        for pattern in field_patterns(field):
            # Callable replacement so backslashes in values stay literal
            rendered, n = pattern.subn(lambda _m, v=value: v, rendered)
            count += n
        replacements[field.key] = count
        if count == 0:
            logger.debug(f"No placeholder found for field {field.key!r}")

    return RenderResult(text=rendered, replacements=replacements)


def finalize_draft(draft: Draft, missing_marker: str | None = None) -> str:
    """Render a draft once and cache the result on it.

    Returns the cached text on repeat calls, even when ``missing_marker``
    differs from the first render; the cache is only dropped when a turn
    changes the collected data. Use render() directly for a one-off
    rendering with another marker. The caller persists the draft.

    Raises:
        MissingFieldsError: If any required field is unfilled
    """
    if draft.rendered_text is not None:
        return draft.rendered_text

    result = render(draft.field_schema, draft.collected_data, draft.document_text, missing_marker)
    draft.rendered_text = result.text
    draft.status = "complete"
    draft.touch()
    logger.info(
        f"Rendered draft {draft.id}: {sum(result.replacements.values())} placeholders replaced"
    )
    return result.text
