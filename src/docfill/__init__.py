"""docfill: conversational field collection for legal document templates.

Discovers the placeholders in a template, collects their values through a
multi-turn conversation with an LLM, tracks completeness, and substitutes
the collected values back into the document.
"""

__version__ = "0.1.0"

from docfill.conversation import ConversationLog, Turn
from docfill.draft import Draft, DraftSnapshot
from docfill.errors import (
    DocfillError,
    DraftNotFoundError,
    MissingFieldsError,
    SchemaError,
    ValidationError,
)
from docfill.oracle import ExtractionResult, LLMClient, LLMExtractionOracle, OracleAdapter
from docfill.pipeline import create_draft, create_draft_from_schema, run_render, run_turn
from docfill.reconciler import CollectionReconciler, TurnOutcome
from docfill.renderer import RenderResult, finalize_draft, render
from docfill.schema import FieldSchema, FieldSpec, load_schema

__all__ = [
    "__version__",
    "CollectionReconciler",
    "ConversationLog",
    "DocfillError",
    "Draft",
    "DraftNotFoundError",
    "DraftSnapshot",
    "ExtractionResult",
    "FieldSchema",
    "FieldSpec",
    "LLMClient",
    "LLMExtractionOracle",
    "MissingFieldsError",
    "OracleAdapter",
    "RenderResult",
    "SchemaError",
    "Turn",
    "TurnOutcome",
    "ValidationError",
    "create_draft",
    "create_draft_from_schema",
    "finalize_draft",
    "load_schema",
    "render",
    "run_render",
    "run_turn",
]
