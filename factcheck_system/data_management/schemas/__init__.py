"""Schemas for claim extraction and verification.

Exports:
    claim_schema: Sentence state-machine records
    opinion_schema: Opinion-polarity labels and summary
    verdict_schema: Evidence, verdicts and aggregate reports
"""

from factcheck_system.data_management.schemas.claim_schema import (
    AmbiguityType,
    ClaimExtractionResult,
    ClassifiedSentence,
    DisambiguationResult,
    FinalClaimRule,
    ImplicitClaimSet,
    ProcessedSentence,
    RewrittenSentence,
    Sentence,
    SentenceCategory,
)
from factcheck_system.data_management.schemas.opinion_schema import (
    OpinionLabel,
    OpinionResult,
    OpinionSummary,
    rounded_percentage,
)
from factcheck_system.data_management.schemas.verdict_schema import (
    MAX_REFERENCES,
    VERDICT_TRUST_SCORES,
    AggregateReport,
    ClaimVerificationResult,
    EvidenceChunk,
    SourceDocument,
    Verdict,
    VerificationRequest,
    trust_score_matches,
)

__all__ = [
    "AmbiguityType",
    "ClaimExtractionResult",
    "ClassifiedSentence",
    "DisambiguationResult",
    "FinalClaimRule",
    "ImplicitClaimSet",
    "ProcessedSentence",
    "RewrittenSentence",
    "Sentence",
    "SentenceCategory",
    "OpinionLabel",
    "OpinionResult",
    "OpinionSummary",
    "rounded_percentage",
    "MAX_REFERENCES",
    "VERDICT_TRUST_SCORES",
    "AggregateReport",
    "ClaimVerificationResult",
    "EvidenceChunk",
    "SourceDocument",
    "Verdict",
    "VerificationRequest",
    "trust_score_matches",
]
