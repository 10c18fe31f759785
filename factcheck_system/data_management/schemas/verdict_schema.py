"""Verification schemas: evidence, verdicts and aggregate reports.

Trust score convention: Support=100, Partially Support=50, and Unclear,
Contradict and Refute carry 0 or None. Unclear results always carry None so
they never contribute to the aggregate average.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class Verdict(str, Enum):
    """Verification verdict for one claim."""

    SUPPORT = "Support"
    PARTIALLY_SUPPORT = "Partially Support"
    UNCLEAR = "Unclear"
    CONTRADICT = "Contradict"
    REFUTE = "Refute"


VERDICT_TRUST_SCORES: dict[Verdict, frozenset] = {
    Verdict.SUPPORT: frozenset({100}),
    Verdict.PARTIALLY_SUPPORT: frozenset({50}),
    Verdict.UNCLEAR: frozenset({0, None}),
    Verdict.CONTRADICT: frozenset({0, None}),
    Verdict.REFUTE: frozenset({0, None}),
}

MAX_REFERENCES = 3


def trust_score_matches(verdict: Verdict, trust_score: Optional[int]) -> bool:
    """Check a trust score against the fixed verdict mapping."""
    return trust_score in VERDICT_TRUST_SCORES[verdict]


class SourceDocument(BaseModel):
    """Text of one evidence source fetched for a claim."""

    source_id: str = Field(..., description="URL or label identifying the source")
    content: str = Field(default="", description="Extracted source text")
    title: Optional[str] = None


class EvidenceChunk(BaseModel):
    """Relevance-ranked excerpt from one source, scoped to one verification."""

    source_id: str
    text: str
    relevance_score: Optional[float] = Field(
        default=None,
        description="Mean cosine similarity of the chosen sentences; None when ranking was skipped",
    )

    def format_block(self) -> str:
        """Render as a source-tagged block for the verification prompt."""
        return f"[{self.source_id}] {self.text}"


class VerificationRequest(BaseModel):
    """One claim plus the source documents gathered for it."""

    claim: str = Field(..., min_length=1)
    sources: list[SourceDocument] = Field(default_factory=list)


class ClaimVerificationResult(BaseModel):
    """Validated verdict for one claim."""

    claim: str
    verdict: Verdict
    reason: str
    references: list[str] = Field(default_factory=list, max_length=MAX_REFERENCES)
    trust_score: Optional[int] = None
    evidence: list[EvidenceChunk] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_trust_score(self) -> "ClaimVerificationResult":
        """trust_score must agree with the verdict mapping."""
        if not trust_score_matches(self.verdict, self.trust_score):
            raise ValueError(
                f"trust_score {self.trust_score!r} is inconsistent with verdict {self.verdict.value}"
            )
        return self

    @classmethod
    def placeholder(
        cls,
        claim: str,
        reason: str,
        evidence: Optional[list[EvidenceChunk]] = None,
    ) -> "ClaimVerificationResult":
        """Unclear result used when a claim could not be verified."""
        return cls(
            claim=claim,
            verdict=Verdict.UNCLEAR,
            reason=reason,
            references=[],
            trust_score=None,
            evidence=evidence or [],
        )


class AggregateReport(BaseModel):
    """Per-claim results plus the aggregate trust score."""

    results: list[ClaimVerificationResult] = Field(default_factory=list)
    average_trust_score: int = 0
    request_id: Optional[str] = None
    duration_ms: Optional[int] = None

    def verdict_counts(self) -> dict[str, int]:
        counts = {verdict.value: 0 for verdict in Verdict}
        for result in self.results:
            counts[result.verdict.value] += 1
        return counts
