"""Default extraction oracle backed by an LLM."""

import logging
from typing import Any

from docfill.oracle.llm_client import LLMClient
from docfill.oracle.models import OracleRequest
from docfill.oracle.prompts import build_collection_instructions

logger = logging.getLogger(__name__)


class LLMExtractionOracle:
    """Sends the schema, collected data and conversation tail to an LLM.

    Returns the parsed JSON untouched; validation is the adapter's job.
    """

    def __init__(self, llm: LLMClient, document_kind: str = "legal agreement"):
        self.llm = llm
        self.document_kind = document_kind

    async def extract(self, request: OracleRequest) -> dict[str, Any]:
        instructions = build_collection_instructions(
            request.field_schema, request.collected_data, self.document_kind
        )
        return await self.llm.acall_json(
            request.user_message,
            system_message=instructions,
            history=request.conversation_tail,
        )
