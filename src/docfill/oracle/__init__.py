"""Extraction oracle boundary: contract, validation and the LLM-backed default."""

from docfill.oracle.adapter import ExtractionOracle, OracleAdapter, validate_extraction
from docfill.oracle.llm_client import LLMClient
from docfill.oracle.llm_oracle import LLMExtractionOracle
from docfill.oracle.models import Confidence, ExtractionResult, MessageType, OracleRequest

__all__ = [
    "Confidence",
    "ExtractionOracle",
    "ExtractionResult",
    "LLMClient",
    "LLMExtractionOracle",
    "MessageType",
    "OracleAdapter",
    "OracleRequest",
    "validate_extraction",
]
