"""Claim extraction agent driving sentences through the classification pipeline.

Stages, each one batched oracle call per content item:

1. Categorize every sentence (Verifiable / Partially Verifiable / Not Verifiable)
2. Mine Not and Partially Verifiable sentences for implicit claims; mined
   claims become derived sentences and are categorized once more
3. Rewrite Partially Verifiable sentences without subjective language
4. Disambiguate every candidate claim against the whole content item
5. Select the final claim deterministically (see final_claim.py)

analyze_opinions() is a separate, optional stage over the result: original
Not Verifiable sentences are labelled by opinion polarity and tallied.

Any stage failing degrades only the affected sentences to a null claim; the
run itself never aborts.
"""

from typing import Optional

from factcheck_system.agents.sifters.base_sifter import BaseSifter
from factcheck_system.agents.sifters.claims.final_claim import select_final_claim
from factcheck_system.agents.sifters.claims.oracle_client import ClassificationOracleClient
from factcheck_system.agents.sifters.claims.sentence_splitter import (
    split_into_sentences,
    to_sentences,
)
from factcheck_system.config.settings import settings
from factcheck_system.data_management.schemas import (
    ClaimExtractionResult,
    ClassifiedSentence,
    OpinionSummary,
    ProcessedSentence,
    Sentence,
    SentenceCategory,
)


class ClaimExtractionAgent(BaseSifter):
    """
    Extracts final, self-contained claims from raw text.

    Attributes:
        oracle: Classification oracle client used for every judgment call
        implicit_claim_depth: Rounds of implicit-claim mining (0 disables it).
            Sentences derived in the last round are never mined again.
    """

    def __init__(
        self,
        oracle: Optional[ClassificationOracleClient] = None,
        implicit_claim_depth: Optional[int] = None,
    ):
        """
        Initialize ClaimExtractionAgent.

        Args:
            oracle: Optional pre-configured oracle client.
                If None, one backed by the shared Gemini client is created.
            implicit_claim_depth: Override of settings.implicit_claim_depth.
        """
        super().__init__(
            name="ClaimExtractionAgent",
            description="Extracts verifiable claims from text using LLM judgments",
        )
        self.oracle = oracle or ClassificationOracleClient()
        self.implicit_claim_depth = (
            settings.implicit_claim_depth if implicit_claim_depth is None else implicit_claim_depth
        )

    def get_capabilities(self) -> list[str]:
        return [
            "claim_extraction",
            "sentence_classification",
            "disambiguation",
            "opinion_analysis",
        ]

    async def sift(self, content: dict) -> list[dict]:
        """
        Extract claims from content.

        Args:
            content: Dict with either:
                - text (str): Raw text, split into sentences here
                - sentences (list[str]): Pre-split sentences

        Returns:
            ProcessedSentence records as dicts, originals first.
        """
        if content.get("sentences"):
            result = await self.extract_from_sentences(list(content["sentences"]))
        else:
            result = await self.extract_claims(content.get("text", ""))
        return [p.model_dump(mode="json") for p in result.processed]

    async def extract_claims(self, text: str) -> ClaimExtractionResult:
        """Split text into sentences and extract their claims."""
        return await self.extract_from_sentences(split_into_sentences(text))

    async def extract_from_sentences(self, texts: list[str]) -> ClaimExtractionResult:
        """
        Run the full pipeline over pre-split sentences.

        Args:
            texts: Sentences of one content item, in order

        Returns:
            ClaimExtractionResult with processed records aligned to input order
            (derived sentences appended) and the flattened claim list
        """
        originals = to_sentences([t.strip() for t in texts if t and t.strip()])
        if not originals:
            self.logger.warning("No sentences to process")
            return ClaimExtractionResult()

        classified = await self.oracle.categorize(originals)
        derived_by_parent = await self._mine_implicit_claims(classified)
        classified.extend(sorted(
            (c for group in derived_by_parent.values() for c in group),
            key=lambda c: c.sentence.index,
        ))

        partial = [
            c.sentence for c in classified
            if c.category == SentenceCategory.PARTIALLY_VERIFIABLE
        ]
        rewrites = await self.oracle.rewrite(partial)

        candidates: list[tuple[Sentence, str]] = []
        for c in classified:
            if c.category == SentenceCategory.VERIFIABLE:
                candidates.append((c.sentence, c.sentence.text))
            elif c.category == SentenceCategory.PARTIALLY_VERIFIABLE:
                rewrite = rewrites.get(c.sentence.index)
                if rewrite is not None and rewrite.has_residue:
                    candidates.append((c.sentence, rewrite.rewritten_text.strip()))

        disambiguations = await self.oracle.disambiguate(
            candidates, context=[s.text for s in originals]
        )

        processed = []
        for c in classified:
            rewrite = rewrites.get(c.sentence.index)
            disambiguation = disambiguations.get(c.sentence.index)
            final_claim, rule = select_final_claim(c.sentence, c.category, rewrite, disambiguation)
            processed.append(
                ProcessedSentence(
                    sentence=c.sentence,
                    category=c.category,
                    category_reasoning=c.reasoning,
                    rewritten_text=rewrite.rewritten_text if rewrite else None,
                    rewrite_reasoning=rewrite.reasoning if rewrite else None,
                    is_ambiguous=disambiguation.is_ambiguous if disambiguation else False,
                    ambiguity_type=disambiguation.ambiguity_type if disambiguation else None,
                    ambiguity_reasoning=disambiguation.reasoning if disambiguation else None,
                    disambiguated_text=disambiguation.disambiguated_text if disambiguation else None,
                    final_claim=final_claim,
                    rule=rule,
                )
            )

        claims = self._flatten(originals, processed, derived_by_parent)

        self.logger.info(
            f"Extracted {len(claims)} claims from {len(originals)} sentences",
            derived=len(processed) - len(originals),
            verifiable=sum(1 for p in processed if p.category == SentenceCategory.VERIFIABLE),
            partial=len(partial),
        )

        return ClaimExtractionResult(sentences=originals, processed=processed, claims=claims)

    async def analyze_opinions(self, result: ClaimExtractionResult) -> OpinionSummary:
        """
        Label the original Not Verifiable sentences by opinion polarity.

        Derived sentences are excluded; they restate facts, not stances.

        Args:
            result: Output of extract_claims / extract_from_sentences

        Returns:
            OpinionSummary with per-sentence labels, counts and percentages
        """
        sentences = [
            p.sentence for p in result.processed
            if p.category == SentenceCategory.NOT_VERIFIABLE
            and not p.sentence.is_derived
            and p.sentence.text.strip()
        ]
        if not sentences:
            return OpinionSummary()

        labels = await self.oracle.classify_opinions(sentences)
        summary = OpinionSummary.from_results([labels[s.index] for s in sentences])

        self.logger.info(
            f"Labelled {summary.total} opinion sentences",
            **{label.lower(): count for label, count in summary.counts.items()},
        )
        return summary

    async def _mine_implicit_claims(
        self, classified: list[ClassifiedSentence]
    ) -> dict[int, list[ClassifiedSentence]]:
        """
        Surface implicit claims as derived, classified sentences.

        Returns:
            Mapping of parent sentence index to its classified derived sentences,
            in creation order
        """
        derived_by_parent: dict[int, list[ClassifiedSentence]] = {}
        next_index = max(c.sentence.index for c in classified) + 1
        frontier = classified

        for _ in range(self.implicit_claim_depth):
            mineable = [
                c.sentence for c in frontier
                if c.category != SentenceCategory.VERIFIABLE
            ]
            if not mineable:
                break

            implicit = await self.oracle.extract_implicit_claims(mineable)
            new_sentences: list[Sentence] = []
            for sentence in mineable:
                claim_set = implicit.get(sentence.index)
                if claim_set is None:
                    continue
                for claim in claim_set.claims:
                    new_sentences.append(
                        Sentence(text=claim, index=next_index, parent_index=sentence.index)
                    )
                    next_index += 1

            if not new_sentences:
                break

            self.logger.debug(f"Surfaced {len(new_sentences)} implicit claims")
            frontier = await self.oracle.categorize(new_sentences)
            for c in frontier:
                derived_by_parent.setdefault(c.sentence.parent_index, []).append(c)

        return derived_by_parent

    @staticmethod
    def _flatten(
        originals: list[Sentence],
        processed: list[ProcessedSentence],
        derived_by_parent: dict[int, list[ClassifiedSentence]],
    ) -> list[str]:
        """Flatten non-null claims in input order, derived claims after their parent."""
        by_index = {p.sentence.index: p for p in processed}
        claims: list[str] = []
        seen: set[str] = set()

        def visit(index: int) -> None:
            claim = by_index[index].final_claim
            if claim and claim not in seen:
                seen.add(claim)
                claims.append(claim)
            for child in derived_by_parent.get(index, []):
                visit(child.sentence.index)

        for sentence in originals:
            visit(sentence.index)
        return claims
