"""Shared test fixtures for docfill."""

import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from docfill.draft import Draft
from docfill.oracle.adapter import OracleAdapter
from docfill.reconciler import CollectionReconciler
from docfill.schema.models import FieldSchema, FieldSpec


class ScriptedOracle:
    """Oracle double that replays queued payloads (or raises queued exceptions)."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    async def extract(self, request):
        self.requests.append(request)
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture
def two_field_schema() -> FieldSchema:
    """Two required fields, keys a and b."""
    return FieldSchema(fields=(
        FieldSpec(key="a", label="Field A", question="What is A?"),
        FieldSpec(key="b", label="Field B", question="What is B?"),
    ))


@pytest.fixture
def safe_schema() -> FieldSchema:
    """A small SAFE-agreement style schema with one optional field."""
    return FieldSchema(fields=(
        FieldSpec(
            key="company_name", label="Company Name", type="text",
            question="What's the name of the company?", example="e.g., Acme Corp",
        ),
        FieldSpec(
            key="purchase_amount", label="Purchase Amount", type="money",
            question="How much is the investor putting in?", example="e.g., $250,000",
        ),
        FieldSpec(
            key="date_of_safe", label="Date of Safe", type="date",
            question="What's the date of the SAFE?", example="e.g., 2025-01-15",
        ),
        FieldSpec(
            key="investor_name", label="Investor Name", type="text", required=False,
            question="Who is the investor?", example="e.g., Jane Doe",
        ),
    ))


@pytest.fixture
def make_payload():
    """Factory for raw (camelCase) oracle payloads."""

    def _make(
        message_type: str = "document_info",
        extracted: dict | None = None,
        next_question: str | None = None,
        is_complete: bool = False,
        needs_clarification: bool = False,
        clarification_question: str | None = None,
        missing: list | None = None,
    ) -> dict:
        return {
            "messageType": message_type,
            "extractedData": extracted or {},
            "confidence": {"overall": "high", "perField": {}, "reasoning": "test"},
            "nextQuestion": next_question,
            "missingFields": missing or [],
            "isComplete": is_complete,
            "needsClarification": needs_clarification,
            "clarificationQuestion": clarification_question,
        }

    return _make


@pytest.fixture
def oracle() -> ScriptedOracle:
    return ScriptedOracle()


@pytest.fixture
def reconciler(oracle) -> CollectionReconciler:
    return CollectionReconciler(OracleAdapter(oracle), history_turns=4)


@pytest.fixture
def two_field_draft(two_field_schema) -> Draft:
    return Draft(field_schema=two_field_schema, document_text="A=[Field A], B=[b].")


@pytest.fixture
def tmp_dir():
    """Temporary directory that cleans up after test."""
    with tempfile.TemporaryDirectory() as d:
        yield Path(d)


@pytest.fixture
def mock_llm():
    """Mock LLMClient with async methods returning configurable responses."""
    llm = MagicMock()
    llm.model = "test-model"
    llm.total_cost_usd = 0.0
    llm.acall_json = AsyncMock()
    llm.acall = AsyncMock()
    return llm
