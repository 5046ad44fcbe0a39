"""Prompts for the LLM extraction oracle."""

from collections.abc import Mapping

from docfill.progress import compute_completeness, missing_required
from docfill.schema.models import FieldSchema

_TYPE_HINTS = {
    "money": 'preserve currency formatting, e.g. "250k" -> "$250,000"',
    "date": "use YYYY-MM-DD when the date is unambiguous",
    "jurisdiction": 'accept state names or "State of [Name]"',
}


def build_collection_instructions(
    schema: FieldSchema,
    collected: Mapping[str, str],
    document_kind: str = "legal agreement",
) -> str:
    """System instructions for one collection turn.

    Args:
        schema: Fields the draft needs
        collected: Values collected so far
        document_kind: Short description of the template
    """
    required = schema.required_fields()
    missing = missing_required(schema, collected)
    completeness = compute_completeness(schema, collected)
    filled_count = len(required) - len(missing)

    collected_lines = [
        f"- {schema.label_for(key)}: {value}" for key, value in collected.items() if value
    ]
    missing_lines = [f"- {f.label}: {f.example}" for f in missing]

    field_lines = []
    for f in schema.fields:
        line = f"- {f.key}: {f.label} ({f.type})"
        if f.required:
            line += " *required*"
        if f.example:
            line += f" - {f.example}"
        hint = f.validation_hint or _TYPE_HINTS.get(f.type)
        if hint:
            line += f" [{hint}]"
        field_lines.append(line)

    collected_section = "\n".join(collected_lines) or "None yet"
    missing_section = "\n".join(missing_lines) or "All required fields collected!"
    fields_section = "\n".join(field_lines)

    return f"""You are helping collect information for a {document_kind}.

CURRENT PROGRESS: {completeness}% complete ({filled_count}/{len(required)} required fields filled)

ALREADY COLLECTED:
{collected_section}

STILL NEEDED (REQUIRED):
{missing_section}

ALL FIELDS (key: label (type)):
{fields_section}

YOUR GOALS:
1. Classify the user's message:
   - "document_info": it provides or corrects values for the fields above
   - "greeting": hello/thanks/small talk with no field values
   - "general_chat": questions or remarks that are not field values
2. For document_info, extract ANY relevant values and map them to field keys (use ONLY the keys listed above)
3. Assess confidence overall and per extracted field (high/medium/low)
4. If information is ambiguous, set needsClarification=true and ask a clarifying question
5. When confident, ask for the NEXT missing field (one at a time)
6. Set isComplete=true only when ALL required fields are filled

Return ONLY valid JSON matching this schema:
{{
  "messageType": "document_info|general_chat|greeting",
  "extractedData": {{"field_key": "value"}},
  "confidence": {{"overall": "high|medium|low", "perField": {{"field_key": "high|medium|low"}}, "reasoning": "string"}},
  "nextQuestion": "string or null",
  "missingFields": ["field_key"],
  "isComplete": false,
  "needsClarification": false,
  "clarificationQuestion": "string or null"
}}"""
