"""Library-usable pipeline functions.

Each function corresponds to one step of the draft lifecycle (create,
converse, render) and takes explicit parameters instead of reading config.
Use these from web handlers, notebooks, or the CLI.
"""

import asyncio
import logging
import weakref

from docfill.conversation import Turn
from docfill.draft import Draft
from docfill.oracle.llm_client import LLMClient
from docfill.reconciler import CollectionReconciler, TurnOutcome
from docfill.renderer import finalize_draft
from docfill.schema.discovery import build_initial_message, discover_fields
from docfill.schema.models import FieldSchema
from docfill.store import DraftStore

logger = logging.getLogger(__name__)


class DraftLocks:
    """One asyncio.Lock per draft id, so turns on a draft never interleave.

    Turns on different drafts don't contend. Entries are weak: a lock is
    dropped once no running or waiting turn references it.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def __len__(self) -> int:
        return len(self._locks)

    def for_draft(self, draft_id: str) -> asyncio.Lock:
        lock = self._locks.get(draft_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[draft_id] = lock
        return lock


def create_draft_from_schema(
    document_text: str,
    schema: FieldSchema,
    document_kind: str = "agreement",
) -> Draft:
    """Create a draft for a template whose fields are already known."""
    draft = Draft(field_schema=schema, document_text=document_text)
    if not schema.required_keys():
        draft.completeness = 100
    draft.conversation.append(
        Turn(role="assistant", content=build_initial_message(schema, document_kind))
    )
    logger.info(f"Created draft {draft.id} with {len(schema)} fields")
    return draft


async def create_draft(
    document_text: str,
    llm: LLMClient,
    document_kind: str = "legal agreement",
) -> Draft:
    """Discover fields in the document via LLM and create a draft.

    Raises:
        RuntimeError, ValueError: On LLM failure
        SchemaError: If discovery produced no usable schema
    """
    discovered = await discover_fields(document_text, llm, document_kind)
    return create_draft_from_schema(document_text, discovered.field_schema, document_kind)


async def run_turn(
    store: DraftStore,
    draft_id: str,
    message: str,
    reconciler: CollectionReconciler,
    locks: DraftLocks,
) -> TurnOutcome:
    """Load a draft, apply one user message, and persist the result.

    Nothing is saved if the oracle call fails or is cancelled.

    Raises:
        DraftNotFoundError: Unknown draft id
        ValidationError: Oracle response was malformed
    """
    lock = locks.for_draft(draft_id)
    async with lock:
        draft = store.load(draft_id)
        outcome = await reconciler.accept_turn(draft, message)
        store.save(draft)
    return outcome


def run_render(
    store: DraftStore,
    draft_id: str,
    missing_marker: str | None = None,
) -> str:
    """Render a stored draft, cache the text on it, and persist.

    Raises:
        DraftNotFoundError: Unknown draft id
        MissingFieldsError: Required fields still unfilled
    """
    draft = store.load(draft_id)
    was_rendered = draft.is_rendered
    text = finalize_draft(draft, missing_marker)
    if not was_rendered:
        store.save(draft)
    return text
