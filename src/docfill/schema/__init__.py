"""Field schema system for docfill."""

from docfill.schema.loader import load_schema, parse_schema, save_schema
from docfill.schema.models import FieldSchema, FieldSpec, FieldType

__all__ = ["FieldSchema", "FieldSpec", "FieldType", "load_schema", "parse_schema", "save_schema"]
