"""Tests for docfill.store."""

import os

import pytest

from docfill.conversation import Turn
from docfill.draft import Draft
from docfill.errors import DraftNotFoundError
from docfill.store import DraftStore


class TestDraftStore:
    """JSON persistence of drafts."""

    def test_save_then_load(self, tmp_dir, two_field_draft):
        store = DraftStore(tmp_dir)
        two_field_draft.collected_data["a"] = "X"
        two_field_draft.completeness = 50
        two_field_draft.conversation.append(Turn(role="user", content="A is X"))

        path = store.save(two_field_draft)
        assert path == tmp_dir / "drafts" / f"{two_field_draft.id}.json"

        loaded = store.load(two_field_draft.id)
        assert loaded == two_field_draft
        assert loaded.conversation.all() == [Turn(role="user", content="A is X")]

    def test_no_temp_files_left(self, tmp_dir, two_field_draft):
        store = DraftStore(tmp_dir)
        store.save(two_field_draft)
        store.save(two_field_draft)
        assert [p.name for p in store.drafts_dir.iterdir()] == [f"{two_field_draft.id}.json"]

    def test_missing_draft(self, tmp_dir):
        with pytest.raises(DraftNotFoundError):
            DraftStore(tmp_dir).load("nope")

    def test_exists(self, tmp_dir, two_field_draft):
        store = DraftStore(tmp_dir)
        assert not store.exists(two_field_draft.id)
        store.save(two_field_draft)
        assert store.exists(two_field_draft.id)

    def test_list_ids_newest_first(self, tmp_dir, two_field_schema):
        store = DraftStore(tmp_dir)
        older = Draft(field_schema=two_field_schema, document_text="old")
        newer = Draft(field_schema=two_field_schema, document_text="new")
        os.utime(store.save(older), (1_000_000, 1_000_000))
        store.save(newer)
        assert store.list_ids() == [newer.id, older.id]

    def test_list_ids_empty(self, tmp_dir):
        assert DraftStore(tmp_dir / "missing").list_ids() == []
