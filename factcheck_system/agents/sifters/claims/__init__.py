"""Claim extraction: sentence splitting, oracle judgments, final-claim selection."""

from factcheck_system.agents.sifters.claims.claim_extraction_agent import ClaimExtractionAgent
from factcheck_system.agents.sifters.claims.final_claim import select_final_claim
from factcheck_system.agents.sifters.claims.oracle_client import ClassificationOracleClient
from factcheck_system.agents.sifters.claims.sentence_splitter import (
    is_hindi_text,
    split_into_sentences,
)

__all__ = [
    "ClaimExtractionAgent",
    "ClassificationOracleClient",
    "select_final_claim",
    "is_hindi_text",
    "split_into_sentences",
]
