"""Tests for docfill.pipeline."""

import asyncio
import gc

import pytest

from docfill.errors import MissingFieldsError, ValidationError
from docfill.pipeline import (
    DraftLocks,
    create_draft,
    create_draft_from_schema,
    run_render,
    run_turn,
)
from docfill.schema.models import FieldSchema, FieldSpec
from docfill.store import DraftStore


@pytest.fixture
def store(tmp_dir) -> DraftStore:
    return DraftStore(tmp_dir)


class TestCreateDraft:
    """Draft creation."""

    def test_from_schema_opens_conversation(self, two_field_schema):
        draft = create_draft_from_schema("[Field A] [Field B]", two_field_schema, "NDA")
        turns = draft.conversation.all()
        assert len(turns) == 1
        assert turns[0].role == "assistant"
        assert "NDA" in turns[0].content
        assert draft.status == "collecting"
        assert draft.completeness == 0

    def test_no_required_fields_starts_complete(self):
        schema = FieldSchema(fields=(FieldSpec(key="x", label="X", required=False),))
        assert create_draft_from_schema("[X]", schema).completeness == 100

    def test_discovery(self, mock_llm):
        mock_llm.acall_json.return_value = {
            "fields": [{"key": "company_name", "label": "Company Name", "question": "Company?"}],
        }
        draft = asyncio.run(create_draft("Between [Company Name].", mock_llm))
        assert draft.field_schema.keys() == ["company_name"]
        assert draft.document_text == "Between [Company Name]."
        assert draft.conversation.all()[0].content.endswith("Company?")


class TestRunTurn:
    """Load, apply, persist."""

    def test_persists_successful_turn(self, store, reconciler, oracle, two_field_draft, make_payload):
        store.save(two_field_draft)
        oracle.queue(make_payload(extracted={"a": "X"}, next_question="What is B?"))

        outcome = asyncio.run(
            run_turn(store, two_field_draft.id, "A is X", reconciler, DraftLocks())
        )

        assert outcome.completeness == 50
        reloaded = store.load(two_field_draft.id)
        assert reloaded.collected_data == {"a": "X"}
        assert len(reloaded.conversation) == 2

    def test_failed_turn_not_persisted(self, store, reconciler, oracle, two_field_draft):
        store.save(two_field_draft)
        oracle.queue({"messageType": "document_info"})

        with pytest.raises(ValidationError):
            asyncio.run(run_turn(store, two_field_draft.id, "A is X", reconciler, DraftLocks()))

        reloaded = store.load(two_field_draft.id)
        assert reloaded.collected_data == {}
        assert len(reloaded.conversation) == 0

    def test_concurrent_turns_serialized(
        self, store, reconciler, oracle, two_field_draft, make_payload
    ):
        """Two turns on one draft both land; neither overwrites the other."""
        store.save(two_field_draft)
        oracle.queue(make_payload(extracted={"a": "X"}), make_payload(extracted={"b": "Y"}))
        locks = DraftLocks()

        async def both():
            await asyncio.gather(
                run_turn(store, two_field_draft.id, "A is X", reconciler, locks),
                run_turn(store, two_field_draft.id, "B is Y", reconciler, locks),
            )

        asyncio.run(both())
        reloaded = store.load(two_field_draft.id)
        assert reloaded.collected_data == {"a": "X", "b": "Y"}
        assert len(reloaded.conversation) == 4

    def test_locks_are_per_draft(self):
        locks = DraftLocks()
        assert locks.for_draft("one") is locks.for_draft("one")
        assert locks.for_draft("one") is not locks.for_draft("two")

    def test_idle_locks_are_released(self, store, reconciler, oracle, two_field_draft, make_payload):
        """The registry does not keep a lock for every draft ever seen."""
        store.save(two_field_draft)
        oracle.queue(make_payload(extracted={"a": "X"}))
        locks = DraftLocks()

        asyncio.run(run_turn(store, two_field_draft.id, "A is X", reconciler, locks))
        gc.collect()

        assert len(locks) == 0
        held = locks.for_draft(two_field_draft.id)
        assert len(locks) == 1
        assert locks.for_draft(two_field_draft.id) is held


class TestRunRender:
    """Rendering a stored draft."""

    def test_render_caches_and_persists(self, store, two_field_draft):
        two_field_draft.collected_data = {"a": "X", "b": "Y"}
        two_field_draft.completeness = 100
        store.save(two_field_draft)

        assert run_render(store, two_field_draft.id) == "A=X, B=Y."
        reloaded = store.load(two_field_draft.id)
        assert reloaded.rendered_text == "A=X, B=Y."
        assert reloaded.status == "complete"

    def test_incomplete_refused(self, store, two_field_draft):
        two_field_draft.collected_data = {"a": "X"}
        store.save(two_field_draft)
        with pytest.raises(MissingFieldsError) as exc_info:
            run_render(store, two_field_draft.id)
        assert exc_info.value.missing_labels == ["Field B"]
        assert store.load(two_field_draft.id).rendered_text is None
