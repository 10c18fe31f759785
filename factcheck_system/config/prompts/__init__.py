"""Prompt templates for LLM-backed components.

Modules:
    claim_extraction_prompts: categorize, implicit-claim, rewrite and disambiguation prompts
    opinion_prompts: opinion-polarity labelling of Not Verifiable sentences
    verification_prompts: claim-against-evidence verification prompt
"""

from factcheck_system.config.prompts.claim_extraction_prompts import (
    CLAIM_EXTRACTION_SYSTEM_PROMPT,
    CATEGORIZE_PROMPT,
    IMPLICIT_CLAIMS_PROMPT,
    REWRITE_PROMPT,
    DISAMBIGUATE_PROMPT,
    HINDI_LANGUAGE_NOTE,
)
from factcheck_system.config.prompts.opinion_prompts import (
    OPINION_SYSTEM_PROMPT,
    OPINION_PROMPT,
)
from factcheck_system.config.prompts.verification_prompts import (
    VERIFICATION_PROMPT,
)

__all__ = [
    "CLAIM_EXTRACTION_SYSTEM_PROMPT",
    "CATEGORIZE_PROMPT",
    "IMPLICIT_CLAIMS_PROMPT",
    "REWRITE_PROMPT",
    "DISAMBIGUATE_PROMPT",
    "HINDI_LANGUAGE_NOTE",
    "OPINION_SYSTEM_PROMPT",
    "OPINION_PROMPT",
    "VERIFICATION_PROMPT",
]
