"""Classification oracle client for the claim extraction pipeline.

Wraps the narrowly scoped judgment calls (categorize, implicit claims,
rewrite, disambiguate, opinion polarity). Each call is batched over all
sentences of one content item and returns parsed, canonical records or a
safe fallback:

| Call             | Fallback on failure                                  |
|------------------|------------------------------------------------------|
| categorize       | Not Verifiable, reasoning "Failed to process"        |
| implicit claims  | no claims                                            |
| rewrite          | rewritten_text None (rewrite unavailable)            |
| disambiguate     | ambiguous (referential), no replacement text         |
| opinions         | label Other                                          |

Fallbacks are applied per sentence, so an oracle that drops or garbles one id
degrades only that sentence. Nothing here ever raises to the caller.
"""

import json
from typing import Any, Optional, Sequence

from loguru import logger

from factcheck_system.agents.sifters.claims.sentence_splitter import contains_devanagari
from factcheck_system.config.prompts import (
    CATEGORIZE_PROMPT,
    CLAIM_EXTRACTION_SYSTEM_PROMPT,
    DISAMBIGUATE_PROMPT,
    HINDI_LANGUAGE_NOTE,
    IMPLICIT_CLAIMS_PROMPT,
    OPINION_PROMPT,
    OPINION_SYSTEM_PROMPT,
    REWRITE_PROMPT,
)
from factcheck_system.config.settings import settings
from factcheck_system.data_management.schemas import (
    AmbiguityType,
    ClassifiedSentence,
    DisambiguationResult,
    ImplicitClaimSet,
    OpinionLabel,
    OpinionResult,
    RewrittenSentence,
    Sentence,
    SentenceCategory,
)
from factcheck_system.utils.json_parsing import (
    canonical_key,
    coerce_bool,
    coerce_index,
    extract_json_records,
    normalize_record,
)


FAILED_REASONING = "Failed to process"
MISSING_REASONING = "Error during processing"

# Canonicalized oracle key -> field name
_FIELD_ALIASES = {
    "id": "id",
    "index": "id",
    "sentenceid": "id",
    "sentenceindex": "id",
    "category": "category",
    "classification": "category",
    "label": "category",
    "polarity": "category",
    "sentiment": "category",
    "reasoning": "reasoning",
    "reason": "reasoning",
    "explanation": "reasoning",
    "rationale": "reasoning",
    "categoryreasoning": "reasoning",
    "rewritten": "rewritten",
    "rewrittentext": "rewritten",
    "rewrittensentence": "rewritten",
    "rewrite": "rewritten",
    "isambiguous": "is_ambiguous",
    "ambiguous": "is_ambiguous",
    "ambiguitytype": "ambiguity_type",
    "type": "ambiguity_type",
    "disambiguated": "disambiguated",
    "disambiguatedtext": "disambiguated",
    "disambiguatedsentence": "disambiguated",
    "claims": "claims",
    "implicitclaims": "claims",
    "extractedclaims": "claims",
}

# Canonicalized category string -> category
_CATEGORY_ALIASES = {
    "verifiable": SentenceCategory.VERIFIABLE,
    "partiallyverifiable": SentenceCategory.PARTIALLY_VERIFIABLE,
    "partlyverifiable": SentenceCategory.PARTIALLY_VERIFIABLE,
    "notverifiable": SentenceCategory.NOT_VERIFIABLE,
    "unverifiable": SentenceCategory.NOT_VERIFIABLE,
    "nonverifiable": SentenceCategory.NOT_VERIFIABLE,
}

_OPINION_ALIASES = {
    "positive": OpinionLabel.POSITIVE,
    "negative": OpinionLabel.NEGATIVE,
    "other": OpinionLabel.OTHER,
    "neutral": OpinionLabel.OTHER,
    "neither": OpinionLabel.OTHER,
    "mixed": OpinionLabel.OTHER,
}

_AMBIGUITY_ALIASES = {
    "referential": AmbiguityType.REFERENTIAL,
    "reference": AmbiguityType.REFERENTIAL,
    "structural": AmbiguityType.STRUCTURAL,
    "structure": AmbiguityType.STRUCTURAL,
    "syntactic": AmbiguityType.STRUCTURAL,
}


def parse_category(value: Any) -> Optional[SentenceCategory]:
    """Map any oracle spelling of a category onto SentenceCategory."""
    if value is None:
        return None
    return _CATEGORY_ALIASES.get(canonical_key(value))


def parse_ambiguity_type(value: Any) -> Optional[AmbiguityType]:
    """Map any oracle spelling of an ambiguity type onto AmbiguityType."""
    if value is None:
        return None
    return _AMBIGUITY_ALIASES.get(canonical_key(value))


def parse_opinion_label(value: Any) -> Optional[OpinionLabel]:
    """Map any oracle spelling of an opinion label onto OpinionLabel."""
    if value is None:
        return None
    return _OPINION_ALIASES.get(canonical_key(value))


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip()


class ClassificationOracleClient:
    """
    Batched judgment calls against a JSON-answering language model.

    The generator must expose ``async generate_json(prompt, system_instruction=...,
    model_name=..., temperature=..., timeout=...) -> str``, as GeminiClient does.

    Attributes:
        model_name: Model used for every judgment call
        temperature: Sampling temperature (low for deterministic labels)
        timeout: Per-call timeout in seconds
    """

    def __init__(
        self,
        generator: Optional[Any] = None,
        model_name: Optional[str] = None,
        temperature: float = 0.1,
        timeout: Optional[float] = None,
    ):
        self._generator = generator
        self.model_name = model_name or settings.classification_model
        self.temperature = temperature
        self.timeout = timeout or settings.oracle_timeout_seconds
        self.logger = logger.bind(component="ClassificationOracleClient")

    @property
    def generator(self):
        """Lazy-load the Gemini client on first access."""
        if self._generator is None:
            from factcheck_system.llm.gemini_client import get_client

            self._generator = get_client()
        return self._generator

    async def _call(
        self,
        prompt: str,
        sentences: Sequence[str],
        system_instruction: str = CLAIM_EXTRACTION_SYSTEM_PROMPT,
    ) -> dict[int, dict]:
        """
        Run one judgment call and index the normalized records by id.

        Raises:
            Exception: Any generator or parsing failure; callers apply fallbacks.
        """
        if any(contains_devanagari(text) for text in sentences):
            system_instruction += HINDI_LANGUAGE_NOTE

        raw = await self.generator.generate_json(
            prompt,
            system_instruction=system_instruction,
            model_name=self.model_name,
            temperature=self.temperature,
            timeout=self.timeout,
        )

        indexed: dict[int, dict] = {}
        for record in extract_json_records(raw):
            normalized = normalize_record(record, _FIELD_ALIASES)
            index = coerce_index(normalized.get("id"))
            if index is None:
                self.logger.debug("Dropping oracle record without a usable id", record=record)
                continue
            indexed.setdefault(index, normalized)
        return indexed

    @staticmethod
    def _payload(sentences: Sequence[Sentence], texts: Optional[Sequence[str]] = None) -> str:
        items = [
            {"id": s.index, "sentence": texts[i] if texts is not None else s.text}
            for i, s in enumerate(sentences)
        ]
        return json.dumps(items, ensure_ascii=False, indent=2)

    async def categorize(self, sentences: Sequence[Sentence]) -> list[ClassifiedSentence]:
        """
        Assign exactly one category to every sentence.

        Args:
            sentences: Sentences of one content item

        Returns:
            ClassifiedSentence list aligned with the input order
        """
        if not sentences:
            return []

        prompt = CATEGORIZE_PROMPT.format(payload=self._payload(sentences))
        try:
            records = await self._call(prompt, [s.text for s in sentences])
        except Exception as e:
            self.logger.warning(f"Categorization failed, defaulting to Not Verifiable: {e}")
            return [
                ClassifiedSentence(
                    sentence=s,
                    category=SentenceCategory.NOT_VERIFIABLE,
                    reasoning=FAILED_REASONING,
                )
                for s in sentences
            ]

        classified = []
        missing = 0
        for sentence in sentences:
            record = records.get(sentence.index, {})
            category = parse_category(record.get("category"))
            if category is None:
                missing += 1
                classified.append(
                    ClassifiedSentence(
                        sentence=sentence,
                        category=SentenceCategory.NOT_VERIFIABLE,
                        reasoning=FAILED_REASONING,
                    )
                )
                continue
            classified.append(
                ClassifiedSentence(
                    sentence=sentence,
                    category=category,
                    reasoning=_clean_text(record.get("reasoning")) or "",
                )
            )

        if missing:
            self.logger.warning(f"{missing}/{len(sentences)} sentences missing from categorization")
        return classified

    async def extract_implicit_claims(
        self, sentences: Sequence[Sentence]
    ) -> dict[int, ImplicitClaimSet]:
        """
        Surface verifiable statements hidden in rhetorical or opinion phrasing.

        Args:
            sentences: Not or partially verifiable sentences

        Returns:
            Mapping of sentence index to claim set; empty on failure
        """
        if not sentences:
            return {}

        prompt = IMPLICIT_CLAIMS_PROMPT.format(payload=self._payload(sentences))
        try:
            records = await self._call(prompt, [s.text for s in sentences])
        except Exception as e:
            self.logger.warning(f"Implicit claim extraction failed: {e}")
            return {}

        wanted = {s.index for s in sentences}
        results: dict[int, ImplicitClaimSet] = {}
        for index, record in records.items():
            if index not in wanted:
                continue
            raw_claims = record.get("claims") or []
            if isinstance(raw_claims, str):
                raw_claims = [raw_claims]
            if not isinstance(raw_claims, list):
                continue
            claims = [str(c).strip() for c in raw_claims if isinstance(c, str) and c.strip()]
            results[index] = ImplicitClaimSet(
                index=index,
                claims=claims,
                reasoning=_clean_text(record.get("reasoning")) or "",
            )
        return results

    async def rewrite(self, sentences: Sequence[Sentence]) -> dict[int, RewrittenSentence]:
        """
        Strip subjective language from partially verifiable sentences.

        Args:
            sentences: Partially verifiable sentences

        Returns:
            Mapping of sentence index to rewrite. Every input index is present;
            rewritten_text is None where the rewrite is unavailable.
        """
        if not sentences:
            return {}

        prompt = REWRITE_PROMPT.format(payload=self._payload(sentences))
        try:
            records = await self._call(prompt, [s.text for s in sentences])
        except Exception as e:
            self.logger.warning(f"Rewrite failed: {e}")
            records = {}

        results = {}
        for sentence in sentences:
            record = records.get(sentence.index)
            if record is None or "rewritten" not in record:
                results[sentence.index] = RewrittenSentence(
                    index=sentence.index, rewritten_text=None, reasoning=FAILED_REASONING
                )
                continue
            results[sentence.index] = RewrittenSentence(
                index=sentence.index,
                rewritten_text=_clean_text(record.get("rewritten")) or "",
                reasoning=_clean_text(record.get("reasoning")) or "",
            )
        return results

    async def disambiguate(
        self,
        candidates: Sequence[tuple[Sentence, str]],
        context: Sequence[str],
    ) -> dict[int, DisambiguationResult]:
        """
        Flag ambiguity and, only when the context allows, resolve it.

        Args:
            candidates: (sentence, candidate text) pairs; the text is the
                original for verifiable sentences and the rewrite otherwise
            context: All sentences of the content item, in order

        Returns:
            Mapping of sentence index to result. Every candidate is present;
            failures are reported as ambiguous with no replacement.
        """
        if not candidates:
            return {}

        sentences = [sentence for sentence, _ in candidates]
        texts = [text for _, text in candidates]
        prompt = DISAMBIGUATE_PROMPT.format(
            context="\n".join(f"{i + 1}. {line}" for i, line in enumerate(context)),
            payload=self._payload(sentences, texts),
        )
        try:
            records = await self._call(prompt, texts)
        except Exception as e:
            self.logger.warning(f"Disambiguation failed, withholding candidates: {e}")
            records = {}

        results = {}
        for sentence in sentences:
            record = records.get(sentence.index)
            if record is None or "is_ambiguous" not in record:
                results[sentence.index] = self._unresolved(sentence.index, MISSING_REASONING)
                continue
            results[sentence.index] = self._to_disambiguation(sentence.index, record)
        return results

    async def classify_opinions(self, sentences: Sequence[Sentence]) -> dict[int, OpinionResult]:
        """
        Label each sentence Positive, Negative or Other.

        Args:
            sentences: Not verifiable sentences

        Returns:
            Mapping of sentence index to result. Every input index is present;
            missing, unknown or failed labels are reported as Other.
        """
        if not sentences:
            return {}

        prompt = OPINION_PROMPT.format(payload=self._payload(sentences))
        try:
            records = await self._call(
                prompt,
                [s.text for s in sentences],
                system_instruction=OPINION_SYSTEM_PROMPT,
            )
        except Exception as e:
            self.logger.warning(f"Opinion labelling failed, defaulting to Other: {e}")
            records = {}

        results = {}
        for sentence in sentences:
            record = records.get(sentence.index, {})
            # label, polarity and sentiment all normalize to "category"
            label = parse_opinion_label(record.get("category"))
            if label is None:
                results[sentence.index] = OpinionResult(
                    index=sentence.index, text=sentence.text, rationale=FAILED_REASONING
                )
                continue
            results[sentence.index] = OpinionResult(
                index=sentence.index,
                text=sentence.text,
                label=label,
                rationale=_clean_text(record.get("reasoning")) or "",
            )
        return results

    @staticmethod
    def _unresolved(index: int, reasoning: str) -> DisambiguationResult:
        return DisambiguationResult(
            index=index,
            is_ambiguous=True,
            ambiguity_type=AmbiguityType.REFERENTIAL,
            disambiguated_text=None,
            reasoning=reasoning,
        )

    @staticmethod
    def _to_disambiguation(index: int, record: dict) -> DisambiguationResult:
        reasoning = _clean_text(record.get("reasoning")) or ""
        if not coerce_bool(record.get("is_ambiguous")):
            return DisambiguationResult(index=index, is_ambiguous=False, reasoning=reasoning)

        # An ambiguous verdict without a usable type is treated as referential
        ambiguity_type = parse_ambiguity_type(record.get("ambiguity_type")) or AmbiguityType.REFERENTIAL
        return DisambiguationResult(
            index=index,
            is_ambiguous=True,
            ambiguity_type=ambiguity_type,
            disambiguated_text=_clean_text(record.get("disambiguated")) or None,
            reasoning=reasoning,
        )
