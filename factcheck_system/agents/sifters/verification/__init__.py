"""Claim verification: evidence relevance selection and verdict aggregation.

Components:
- EvidenceRelevanceSelector: Ranks source sentences against a claim
- VerdictAggregator: Verifies claims through the scheduler and scores the run
"""

from factcheck_system.agents.sifters.verification.evidence_selector import (
    EvidenceRelevanceSelector,
    cosine_similarity,
    split_evidence_sentences,
)
from factcheck_system.agents.sifters.verification.verdict_aggregator import (
    VerdictAggregator,
    compute_average_trust_score,
)

__all__ = [
    "EvidenceRelevanceSelector",
    "VerdictAggregator",
    "compute_average_trust_score",
    "cosine_similarity",
    "split_evidence_sentences",
]
