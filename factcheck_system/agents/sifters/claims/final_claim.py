"""Deterministic final-claim selection.

A pure function of the classification, rewrite and disambiguation state; no
oracle call. Each non-null claim is produced by exactly one rule:

| Category             | Candidate text       | Ambiguous | Resolved | Claim             |
|----------------------|----------------------|-----------|----------|-------------------|
| Verifiable           | original             | no        | -        | original          |
| Verifiable           | original             | yes       | yes      | disambiguated     |
| Verifiable           | original             | yes       | no       | None              |
| Partially Verifiable | non-empty rewrite    | no        | -        | rewrite           |
| Partially Verifiable | non-empty rewrite    | yes       | yes      | disambiguated     |
| anything else        |                      |           |          | None              |
"""

from typing import Optional

from factcheck_system.data_management.schemas import (
    DisambiguationResult,
    FinalClaimRule,
    RewrittenSentence,
    Sentence,
    SentenceCategory,
)


def select_final_claim(
    sentence: Sentence,
    category: SentenceCategory,
    rewrite: Optional[RewrittenSentence] = None,
    disambiguation: Optional[DisambiguationResult] = None,
) -> tuple[Optional[str], FinalClaimRule]:
    """
    Select the final claim for one sentence.

    A missing disambiguation result means no ambiguity was flagged.

    Args:
        sentence: The sentence being processed
        category: Its verifiability category
        rewrite: Rewrite result (partially verifiable sentences only)
        disambiguation: Ambiguity assessment of the candidate text

    Returns:
        Tuple of (final claim or None, rule that produced it)
    """
    ambiguous = disambiguation is not None and disambiguation.is_ambiguous
    resolved = ambiguous and disambiguation.is_resolved

    if category == SentenceCategory.VERIFIABLE:
        if not ambiguous:
            return sentence.text, FinalClaimRule.VERIFIABLE_ORIGINAL
        if resolved:
            return disambiguation.disambiguated_text.strip(), FinalClaimRule.VERIFIABLE_DISAMBIGUATED
        return None, FinalClaimRule.NONE

    if category == SentenceCategory.PARTIALLY_VERIFIABLE and rewrite is not None and rewrite.has_residue:
        if not ambiguous:
            return rewrite.rewritten_text.strip(), FinalClaimRule.PARTIAL_REWRITTEN
        if resolved:
            return disambiguation.disambiguated_text.strip(), FinalClaimRule.PARTIAL_DISAMBIGUATED

    return None, FinalClaimRule.NONE
