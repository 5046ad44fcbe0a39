"""Field schema loader.

Loads and validates field schemas from YAML or JSON files, so a template
whose placeholders are already known can skip LLM discovery.
"""

import json
import logging
from pathlib import Path

import pydantic
import yaml

from docfill.errors import SchemaError
from docfill.schema.models import FieldSchema, FieldSpec

logger = logging.getLogger(__name__)


def load_schema(schema_path: Path) -> FieldSchema:
    """Load a field schema from a YAML or JSON file.

    Accepts either a top-level list of fields or a mapping with a
    ``fields`` key (the shape schema discovery writes).

    Raises:
        SchemaError: If the file is missing or its content is invalid
    """
    schema_path = Path(schema_path)
    if not schema_path.exists():
        raise SchemaError(f"Schema file not found: {schema_path}")

    logger.info(f"Loading field schema: {schema_path}")
    text = schema_path.read_text(encoding="utf-8")
    if schema_path.suffix.lower() == ".json":
        raw = json.loads(text)
    else:
        raw = yaml.safe_load(text)

    schema = parse_schema(raw)
    logger.info(
        f"Loaded {len(schema)} fields ({len(schema.required_keys())} required) from {schema_path.name}"
    )
    return schema


def parse_schema(raw: object) -> FieldSchema:
    """Parse a raw list/dict into a FieldSchema.

    Raises:
        SchemaError: If the structure or any field is invalid
    """
    if isinstance(raw, dict):
        raw = raw.get("fields", [])
    if not isinstance(raw, list):
        raise SchemaError("Schema must be a list of fields or a mapping with a 'fields' list")

    fields = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise SchemaError(f"Field #{i} is not a mapping")
        try:
            fields.append(FieldSpec.model_validate(item))
        except pydantic.ValidationError as e:
            raise SchemaError(f"Invalid field #{i} ({item.get('key', '?')}): {e}") from e

    return FieldSchema(fields=tuple(fields))


def save_schema(schema: FieldSchema, path: Path) -> None:
    """Write a schema to YAML."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {"fields": [f.model_dump(exclude_none=True) for f in schema.fields]}
    with open(path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
    logger.info(f"Wrote {len(schema)} fields to {path}")
