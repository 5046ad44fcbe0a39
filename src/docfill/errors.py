"""Error taxonomy for docfill.

Schema and oracle-validation errors are fatal to the operation that raised
them. MissingFieldsError is an expected "not ready yet" signal from the
renderer and carries the labels the user still has to provide.
"""


class DocfillError(Exception):
    """Base class for all docfill errors."""


class SchemaError(DocfillError):
    """A field schema violates its invariants (e.g. duplicate keys)."""


class ValidationError(DocfillError):
    """An oracle response failed shape validation.

    The whole turn is rejected; the draft is left untouched.
    """

    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message)
        self.errors = errors or []


class MissingFieldsError(DocfillError):
    """Rendering was attempted while required fields are still unfilled."""

    def __init__(self, missing_labels: list[str]):
        self.missing_labels = list(missing_labels)
        super().__init__(
            "Some required fields are still missing: " + ", ".join(self.missing_labels)
        )


class DraftNotFoundError(DocfillError, LookupError):
    """No stored draft exists for the requested id."""
