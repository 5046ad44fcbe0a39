"""Collection reconciler: the per-turn state machine.

Each user message goes through the oracle adapter, and the validated result
is folded into the draft:

  - only ``document_info`` messages may change collected data
  - merges overwrite per key, no history is kept
  - completeness is recomputed from the actual fill state
  - ``complete`` requires both the oracle's claim and 100% completeness

The oracle call is the only await. Everything after it is computed on copies
and committed in one synchronous block, so a failed, timed-out or cancelled
oracle call leaves the draft exactly as it was.
"""

import asyncio
import logging

from pydantic import BaseModel

from docfill.conversation import Turn
from docfill.draft import Draft, DraftStatus
from docfill.oracle.adapter import OracleAdapter
from docfill.oracle.models import ExtractionResult, MessageType
from docfill.progress import compute_completeness, missing_required
from docfill.schema.models import FieldSchema

logger = logging.getLogger(__name__)

# Turns of prior conversation passed to the oracle
DEFAULT_HISTORY_TURNS = 10

FALLBACK_MESSAGE = "I didn't catch that. Could you please provide the information again?"
COMPLETION_MESSAGE = (
    "That's everything! Your document is ready. "
    "You can review it and render the final version when ready."
)


class TurnOutcome(BaseModel):
    """Decision record for one accepted turn."""

    assistant_message: str
    updated_collected_data: dict[str, str]
    completeness: int
    status: DraftStatus
    missing_field_keys: list[str]
    extracted_keys: list[str]
    message_type: MessageType


def merge_extracted(
    collected: dict[str, str],
    result: ExtractionResult,
) -> tuple[dict[str, str], list[str]]:
    """Fold a validated result into a copy of the collected data.

    Returns the new mapping and the keys that were written. Off-topic
    messages leave the data untouched even if the oracle extracted values.
    """
    updated = dict(collected)
    if result.message_type != "document_info":
        if result.extracted_data:
            logger.debug(
                f"Ignoring {len(result.extracted_data)} extracted values from "
                f"{result.message_type} message"
            )
        return updated, []

    written = []
    for key, value in result.extracted_data.items():
        updated[key] = value
        written.append(key)
    return updated, written


def decide_status(result: ExtractionResult, completeness: int) -> DraftStatus:
    """The oracle's completion claim only counts when the data agrees."""
    if result.is_complete and completeness == 100:
        return "complete"
    if result.is_complete:
        logger.info(f"Oracle claimed completion at {completeness}%, staying in collecting")
    return "collecting"


def build_assistant_message(
    result: ExtractionResult,
    schema: FieldSchema,
    written_keys: list[str],
    status: DraftStatus,
    collected: dict[str, str],
) -> str:
    """Compose the assistant's reply for this turn.

    A clarification always wins: ``next_question`` is discarded for the turn.
    """
    if result.needs_clarification:
        return result.clarification_question or FALLBACK_MESSAGE

    parts = []
    if written_keys:
        labels = ", ".join(schema.label_for(k) for k in written_keys)
        parts.append(f"Got it! I've recorded: {labels}.")

    if result.next_question:
        parts.append(result.next_question)
    elif status == "complete":
        parts.append(COMPLETION_MESSAGE)
    elif result.is_complete:
        missing = missing_required(schema, collected)
        if missing:
            first = missing[0]
            parts.append(
                f"I still need a few details. {first.question or f'What is the {first.label}?'}"
            )

    if not parts:
        return FALLBACK_MESSAGE
    return "\n\n".join(parts)


class CollectionReconciler:
    """Advances drafts one user message at a time."""

    def __init__(self, adapter: OracleAdapter, history_turns: int = DEFAULT_HISTORY_TURNS):
        self.adapter = adapter
        self.history_turns = history_turns

    async def accept_turn(self, draft: Draft, user_message: str) -> TurnOutcome:
        """Process one user message against a draft.

        The caller must not run two turns for the same draft concurrently.

        Raises:
            ValidationError: Oracle response was malformed (draft unchanged)
        """
        schema = draft.field_schema
        result = await self.adapter.classify(
            schema,
            draft.collected_data,
            draft.conversation.tail(self.history_turns),
            user_message,
        )

        updated, written = merge_extracted(draft.collected_data, result)
        completeness = compute_completeness(schema, updated)
        status = decide_status(result, completeness)
        missing_keys = [f.key for f in missing_required(schema, updated)]
        message = build_assistant_message(result, schema, written, status, updated)

        # Commit: no awaits past this point
        if updated != draft.collected_data:
            draft.rendered_text = None
        draft.collected_data = updated
        draft.completeness = completeness
        draft.status = status
        draft.conversation.append(Turn(role="user", content=user_message))
        draft.conversation.append(Turn(role="assistant", content=message))
        draft.touch()

        logger.info(
            f"Draft {draft.id}: {result.message_type}, "
            f"{len(written)} fields recorded, {completeness}% complete ({status})"
        )
        return TurnOutcome(
            assistant_message=message,
            updated_collected_data=dict(updated),
            completeness=completeness,
            status=status,
            missing_field_keys=missing_keys,
            extracted_keys=written,
            message_type=result.message_type,
        )

    def accept_turn_sync(self, draft: Draft, user_message: str) -> TurnOutcome:
        """Blocking wrapper around accept_turn() for scripts and the CLI."""
        return asyncio.run(self.accept_turn(draft, user_message))
