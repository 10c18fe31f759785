"""Data models shared by the claim extraction and verification stages."""

from factcheck_system.data_management.schemas import (
    AggregateReport,
    ClaimExtractionResult,
    ClaimVerificationResult,
    EvidenceChunk,
    Sentence,
    SentenceCategory,
    SourceDocument,
    Verdict,
)

__all__ = [
    "AggregateReport",
    "ClaimExtractionResult",
    "ClaimVerificationResult",
    "EvidenceChunk",
    "Sentence",
    "SentenceCategory",
    "SourceDocument",
    "Verdict",
]
