"""Pydantic models for the field schema.

A schema is the ordered list of placeholders discovered in a document.
Order is presentation order and also the order the renderer substitutes in.
"""

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from docfill.errors import SchemaError

FieldType = Literal["text", "money", "date", "jurisdiction"]


class FieldSpec(BaseModel):
    """One datum to collect from the user."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(min_length=1)
    label: str = Field(min_length=1)
    type: FieldType = "text"
    required: bool = True
    question: str = ""
    example: str = ""
    validation_hint: str | None = Field(
        default=None, validation_alias=AliasChoices("validation_hint", "validationHint")
    )


class FieldSchema(BaseModel):
    """Immutable, ordered collection of fields for one draft."""

    model_config = ConfigDict(frozen=True)

    fields: tuple[FieldSpec, ...] = ()

    @model_validator(mode="after")
    def _check_unique_keys(self) -> "FieldSchema":
        seen: set[str] = set()
        duplicates = []
        for f in self.fields:
            if f.key in seen:
                duplicates.append(f.key)
            seen.add(f.key)
        if duplicates:
            raise SchemaError(f"Duplicate field keys in schema: {', '.join(duplicates)}")
        return self

    def __len__(self) -> int:
        return len(self.fields)

    def keys(self) -> list[str]:
        """All field keys in schema order."""
        return [f.key for f in self.fields]

    def required_fields(self) -> list[FieldSpec]:
        return [f for f in self.fields if f.required]

    def required_keys(self) -> list[str]:
        """Keys of required fields, in schema order."""
        return [f.key for f in self.fields if f.required]

    def find_by_key(self, key: str) -> FieldSpec | None:
        for f in self.fields:
            if f.key == key:
                return f
        return None

    def find_by_label(self, label: str) -> FieldSpec | None:
        for f in self.fields:
            if f.label == label:
                return f
        return None

    def label_for(self, key: str) -> str:
        """Display label for a key, falling back to the key itself."""
        f = self.find_by_key(key)
        return f.label if f else key
