"""Opinion-polarity schemas.

Not Verifiable sentences carry no claim to check, but their stance still
says something about the content. Each one gets a polarity label; the
summary tallies labels and rounds each share to a whole percentage.
"""

from enum import Enum
from typing import Sequence

from pydantic import BaseModel, Field


class OpinionLabel(str, Enum):
    """Polarity of one opinion sentence."""

    POSITIVE = "Positive"
    NEGATIVE = "Negative"
    OTHER = "Other"


class OpinionResult(BaseModel):
    """Polarity label for one sentence."""

    index: int = Field(..., description="Index of the labelled sentence")
    text: str
    label: OpinionLabel = OpinionLabel.OTHER
    rationale: str = ""


def rounded_percentage(count: int, total: int) -> int:
    """Share of ``count`` in ``total`` as a half-up rounded whole percentage."""
    if total <= 0:
        return 0
    return (200 * count + total) // (2 * total)


def _zero_counts() -> dict[str, int]:
    return {label.value: 0 for label in OpinionLabel}


class OpinionSummary(BaseModel):
    """Label counts and percentages over all labelled sentences.

    Percentages are rounded independently and need not sum to 100.
    """

    results: list[OpinionResult] = Field(default_factory=list)
    counts: dict[str, int] = Field(default_factory=_zero_counts)
    percentages: dict[str, int] = Field(default_factory=_zero_counts)

    @classmethod
    def from_results(cls, results: Sequence[OpinionResult]) -> "OpinionSummary":
        counts = _zero_counts()
        for result in results:
            counts[result.label.value] += 1

        total = len(results)
        return cls(
            results=list(results),
            counts=counts,
            percentages={
                label: rounded_percentage(count, total) for label, count in counts.items()
            },
        )

    @property
    def total(self) -> int:
        return len(self.results)
