"""Claim extraction schemas.

Sentences move through a fixed state machine:

    Sentence -> ClassifiedSentence -> (RewrittenSentence) -> (DisambiguationResult)
             -> ProcessedSentence.final_claim

Sentences are immutable once created. Each stage produces a separate record
keyed by the sentence index rather than mutating earlier records, so the final
claim selection can be recomputed from the stage outputs at any time.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class SentenceCategory(str, Enum):
    """Verifiability category assigned by the classification oracle.

    VERIFIABLE: Specific, objective, falsifiable statement.
    PARTIALLY_VERIFIABLE: Verifiable core wrapped in subjective or hedging language.
    NOT_VERIFIABLE: Opinion, prediction, question or too vague to check.
    """

    VERIFIABLE = "Verifiable"
    PARTIALLY_VERIFIABLE = "Partially Verifiable"
    NOT_VERIFIABLE = "Not Verifiable"


class AmbiguityType(str, Enum):
    """Kind of ambiguity blocking verification.

    REFERENTIAL: Unclear pronouns, vague references, relative dates.
    STRUCTURAL: Sentence structure admits several readings.
    """

    REFERENTIAL = "referential"
    STRUCTURAL = "structural"


class FinalClaimRule(str, Enum):
    """Selection rule that produced (or withheld) a final claim."""

    VERIFIABLE_ORIGINAL = "verifiable_original"
    VERIFIABLE_DISAMBIGUATED = "verifiable_disambiguated"
    PARTIAL_REWRITTEN = "partial_rewritten"
    PARTIAL_DISAMBIGUATED = "partial_disambiguated"
    NONE = "none"


class Sentence(BaseModel):
    """A single sentence of one content item.

    Derived sentences (implicit claims surfaced from another sentence) carry
    the index of the sentence they came from in ``parent_index``.
    """

    text: str = Field(..., description="Sentence text")
    index: int = Field(..., ge=0, description="Position within the content item")
    parent_index: Optional[int] = Field(
        default=None,
        description="Index of the sentence an implicit claim was extracted from",
    )

    model_config = {"frozen": True}

    @property
    def is_derived(self) -> bool:
        return self.parent_index is not None


class ClassifiedSentence(BaseModel):
    """Sentence with exactly one verifiability category."""

    sentence: Sentence
    category: SentenceCategory
    reasoning: str = Field(default="", description="Why the category was chosen")


class RewrittenSentence(BaseModel):
    """Rewrite of a partially verifiable sentence.

    ``rewritten_text`` semantics:
    - non-empty string: the verifiable residue
    - empty string: nothing verifiable survives
    - None: rewrite unavailable (oracle failure)
    """

    index: int
    rewritten_text: Optional[str] = None
    reasoning: str = ""

    @property
    def has_residue(self) -> bool:
        return bool(self.rewritten_text and self.rewritten_text.strip())


class DisambiguationResult(BaseModel):
    """Ambiguity assessment for a claim candidate.

    ``disambiguated_text`` is None when the oracle lacked the context to
    resolve the ambiguity; it must never be guessed.
    """

    index: int
    is_ambiguous: bool = False
    ambiguity_type: Optional[AmbiguityType] = None
    disambiguated_text: Optional[str] = None
    reasoning: str = ""

    @model_validator(mode="after")
    def check_ambiguity_type(self) -> "DisambiguationResult":
        """ambiguity_type is present iff the sentence is ambiguous."""
        if self.is_ambiguous and self.ambiguity_type is None:
            raise ValueError("ambiguity_type is required when is_ambiguous is true")
        if not self.is_ambiguous and self.ambiguity_type is not None:
            raise ValueError("ambiguity_type must be empty when is_ambiguous is false")
        return self

    @property
    def is_resolved(self) -> bool:
        return bool(self.disambiguated_text and self.disambiguated_text.strip())


class ImplicitClaimSet(BaseModel):
    """Independently verifiable statements hidden in one sentence."""

    index: int
    claims: list[str] = Field(default_factory=list)
    reasoning: str = ""


class ProcessedSentence(BaseModel):
    """Complete state-machine record for one sentence."""

    sentence: Sentence
    category: SentenceCategory
    category_reasoning: str = ""
    rewritten_text: Optional[str] = None
    rewrite_reasoning: Optional[str] = None
    is_ambiguous: bool = False
    ambiguity_type: Optional[AmbiguityType] = None
    ambiguity_reasoning: Optional[str] = None
    disambiguated_text: Optional[str] = None
    final_claim: Optional[str] = None
    rule: FinalClaimRule = FinalClaimRule.NONE


class ClaimExtractionResult(BaseModel):
    """Output of the claim extraction pipeline for one content item.

    Attributes:
        sentences: Original sentences in input order.
        processed: One record per original sentence (same order), followed by
            derived implicit-claim sentences.
        claims: Flattened, de-duplicated non-null final claims in input order.
    """

    sentences: list[Sentence] = Field(default_factory=list)
    processed: list[ProcessedSentence] = Field(default_factory=list)
    claims: list[str] = Field(default_factory=list)

    @property
    def final_claims(self) -> list[Optional[str]]:
        """Final claims aligned to ``processed`` (None where withheld)."""
        return [p.final_claim for p in self.processed]
