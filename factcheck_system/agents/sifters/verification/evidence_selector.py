"""Evidence relevance selection by embedding similarity.

For each source document the selector picks the K sentences most relevant to a
claim (K = 3 by default):

- Sources with at most 2K sentences skip scoring and return their first K
  sentences verbatim.
- Longer sources are ranked by cosine similarity between the claim embedding
  and each sentence embedding; the top K are re-sorted into document order so
  the evidence reads coherently.
- An embedding failure (including quota exhaustion) falls back to the first K
  sentences and starts a cooldown during which embedding is skipped entirely.

Usage:
    from factcheck_system.agents.sifters.verification.evidence_selector import (
        EvidenceRelevanceSelector,
    )

    selector = EvidenceRelevanceSelector(embedder=gemini_client)
    chunks = await selector.gather_evidence(claim, sources)
"""

import asyncio
import math
import re
import time
from typing import Any, Callable, Optional, Sequence

from factcheck_system.config.settings import settings
from factcheck_system.data_management.schemas import EvidenceChunk, SourceDocument
from factcheck_system.errors import EmbeddingUnavailable
from factcheck_system.utils.logging import get_structured_logger


_EVIDENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Returns 0.0 for empty vectors, vectors of different length, and vectors
    with zero magnitude.
    """
    if not a or not b or len(a) != len(b):
        return 0.0

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def split_evidence_sentences(text: str) -> list[str]:
    """Split source text on terminal punctuation followed by whitespace."""
    if not text:
        return []
    return [part.strip() for part in _EVIDENCE_BOUNDARY.split(text) if part.strip()]


class EvidenceRelevanceSelector:
    """Rank source sentences against a claim and keep the top K per source.

    The embedder must expose ``async embed(text) -> list[float]`` and raise
    EmbeddingUnavailable on failure, as GeminiClient does.
    """

    def __init__(
        self,
        embedder: Optional[Any] = None,
        sentences_per_source: Optional[int] = None,
        max_sources: Optional[int] = None,
        cooldown_seconds: Optional[float] = None,
        concurrency: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize EvidenceRelevanceSelector.

        Args:
            embedder: Embedding client. Defaults to the shared Gemini client.
            sentences_per_source: K, sentences kept per source.
            max_sources: Sources used per claim.
            cooldown_seconds: How long embedding is skipped after a failure.
            concurrency: Cap on concurrent embedding calls.
            clock: Monotonic clock, injectable for tests.
        """
        self._embedder = embedder
        self.sentences_per_source = sentences_per_source or settings.evidence_sentences_per_source
        self.max_sources = max_sources or settings.max_sources_per_claim
        self.cooldown_seconds = (
            settings.embedding_cooldown_seconds if cooldown_seconds is None else cooldown_seconds
        )
        self._semaphore = asyncio.Semaphore(concurrency or settings.fanout_concurrency)
        self._clock = clock
        self._cooldown_until = 0.0
        self._logger = get_structured_logger("EvidenceRelevanceSelector")

    @property
    def embedder(self) -> Any:
        """Lazy-load the Gemini client on first access."""
        if self._embedder is None:
            from factcheck_system.llm.gemini_client import get_client

            self._embedder = get_client()
        return self._embedder

    @property
    def embedding_available(self) -> bool:
        """False while the post-failure cooldown is running."""
        return self._clock() >= self._cooldown_until

    def _start_cooldown(self, reason: str) -> None:
        self._cooldown_until = self._clock() + self.cooldown_seconds
        self._logger.warning(
            "embedding_cooldown_started",
            reason=reason,
            cooldown_seconds=self.cooldown_seconds,
        )

    async def _embed(self, text: str) -> list[float]:
        async with self._semaphore:
            return await self.embedder.embed(text)

    async def select_sentences(self, claim: str, text: str) -> list[str]:
        """Select the K sentences of one source most relevant to a claim.

        Args:
            claim: Claim being verified.
            text: Source document text.

        Returns:
            Up to K sentences in document order.
        """
        sentences, _ = await self._select(claim, text)
        return sentences

    async def _select(self, claim: str, text: str) -> tuple[list[str], Optional[float]]:
        """Select sentences and report the mean similarity (None when unranked)."""
        k = self.sentences_per_source
        sentences = split_evidence_sentences(text)

        if len(sentences) <= 2 * k:
            return sentences[:k], None

        if not self.embedding_available:
            self._logger.debug("embedding_skipped_cooldown", sentence_count=len(sentences))
            return sentences[:k], None

        try:
            claim_vector = await self._embed(claim)
            if not claim_vector:
                self._start_cooldown("empty claim embedding")
                return sentences[:k], None
            sentence_vectors = await asyncio.gather(*(self._embed(s) for s in sentences))
        except EmbeddingUnavailable as e:
            reason = "quota exhausted" if e.quota_exhausted else str(e)
            self._start_cooldown(reason)
            return sentences[:k], None

        scores = [cosine_similarity(claim_vector, vector) for vector in sentence_vectors]
        ranked = sorted(range(len(sentences)), key=lambda i: scores[i], reverse=True)[:k]
        chosen = sorted(ranked)

        mean_score = sum(scores[i] for i in chosen) / len(chosen)
        return [sentences[i] for i in chosen], mean_score

    async def gather_evidence(
        self,
        claim: str,
        sources: Sequence[SourceDocument],
    ) -> list[EvidenceChunk]:
        """Build one evidence chunk per usable source.

        Sources are processed concurrently. A source that yields no sentences,
        or fails outright, is dropped.

        Args:
            claim: Claim being verified.
            sources: Candidate source documents, in preference order.

        Returns:
            At most max_sources chunks, in source order.
        """
        usable = [s for s in sources if s.content and s.content.strip()][: self.max_sources]
        if not usable:
            return []

        outcomes = await asyncio.gather(
            *(self._select(claim, source.content) for source in usable),
            return_exceptions=True,
        )

        chunks: list[EvidenceChunk] = []
        for source, outcome in zip(usable, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                self._logger.warning(
                    "evidence_source_failed",
                    source_id=source.source_id,
                    error=str(outcome),
                )
                continue

            sentences, score = outcome
            if not sentences:
                continue
            chunks.append(
                EvidenceChunk(
                    source_id=source.source_id,
                    text=" ".join(sentences),
                    relevance_score=score,
                )
            )

        self._logger.debug(
            "evidence_gathered",
            claim=claim[:80],
            sources=len(usable),
            chunks=len(chunks),
        )
        return chunks
