"""End-to-end fact-check pipeline: content -> claims -> sources -> verdicts.

Content extraction and web search are external collaborators; the pipeline
only depends on their contracts (ContentExtractor, SearchProvider). The same
extractor fetches the text of every candidate source URL.

Search and source fetching fan out per claim, capped by a shared semaphore
(settings.fanout_concurrency). Verification calls are throttled separately
by the aggregator's RateLimitedScheduler.

Not Verifiable sentences are additionally labelled by opinion polarity
(settings.analyze_opinions); the summary travels with the report.

Usage:
    from factcheck_system.pipeline import FactCheckPipeline

    pipeline = FactCheckPipeline(extractor=my_extractor, search=my_search)
    report = await pipeline.run("https://example.com/article")
"""

import asyncio
from typing import Awaitable, Callable, Optional, Protocol

from pydantic import BaseModel, Field

from factcheck_system.agents.sifters.claims.claim_extraction_agent import ClaimExtractionAgent
from factcheck_system.agents.sifters.verification.verdict_aggregator import VerdictAggregator
from factcheck_system.config.settings import settings
from factcheck_system.data_management.schemas import (
    AggregateReport,
    ClaimExtractionResult,
    OpinionSummary,
    SourceDocument,
    VerificationRequest,
)
from factcheck_system.errors import ContentUnavailableError
from factcheck_system.utils.logging import get_structured_logger


class ExtractedContent(BaseModel):
    """Text pulled from a URL or passed through from raw input."""

    content: str = ""
    title: Optional[str] = None
    excerpt: Optional[str] = None


class ContentExtractor(Protocol):
    """Turns a URL (or raw text) into readable content."""

    async def extract(self, url_or_text: str) -> ExtractedContent: ...


class SearchProvider(Protocol):
    """Finds candidate source URLs for a claim. No ordering guarantee."""

    async def search(self, claim: str) -> list[str]: ...


class FactCheckReport(BaseModel):
    """Full result of one fact-check run."""

    source: str
    title: Optional[str] = None
    extraction: ClaimExtractionResult = Field(default_factory=ClaimExtractionResult)
    report: AggregateReport = Field(default_factory=AggregateReport)
    opinions: OpinionSummary = Field(default_factory=OpinionSummary)

    @property
    def claims(self) -> list[str]:
        return self.extraction.claims


ProgressCallback = Callable[[str, dict], Awaitable[None]]


class FactCheckPipeline:
    """Orchestrates claim extraction, source collection and verification."""

    def __init__(
        self,
        extractor: ContentExtractor,
        search: SearchProvider,
        claim_agent: Optional[ClaimExtractionAgent] = None,
        aggregator: Optional[VerdictAggregator] = None,
        concurrency: Optional[int] = None,
        candidates_per_claim: Optional[int] = None,
        analyze_opinions: Optional[bool] = None,
    ) -> None:
        """Initialize FactCheckPipeline.

        Args:
            extractor: Content extractor, used for the input and every source URL.
            search: Search provider returning candidate URLs per claim.
            claim_agent: Pre-configured claim extraction agent. Created if None.
            aggregator: Pre-configured verdict aggregator. Created if None.
            concurrency: Cap on concurrent search and fetch calls.
            candidates_per_claim: URLs fetched per claim. Defaults to twice
                max_sources_per_claim so failed fetches can be replaced.
            analyze_opinions: Override of settings.analyze_opinions.
        """
        self.extractor = extractor
        self.search = search
        self._claim_agent = claim_agent
        self._aggregator = aggregator
        self._semaphore = asyncio.Semaphore(concurrency or settings.fanout_concurrency)
        self.max_sources = settings.max_sources_per_claim
        self.candidates_per_claim = candidates_per_claim or self.max_sources * 2
        self.analyze_opinions = (
            settings.analyze_opinions if analyze_opinions is None else analyze_opinions
        )
        self._logger = get_structured_logger("FactCheckPipeline")

    @property
    def claim_agent(self) -> ClaimExtractionAgent:
        if self._claim_agent is None:
            self._claim_agent = ClaimExtractionAgent()
        return self._claim_agent

    @property
    def aggregator(self) -> VerdictAggregator:
        if self._aggregator is None:
            self._aggregator = VerdictAggregator()
        return self._aggregator

    async def run(
        self,
        url_or_text: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> FactCheckReport:
        """Fact-check one URL or block of text.

        Args:
            url_or_text: Input handed to the content extractor.
            progress_callback: Optional async callback receiving (stage, details).

        Returns:
            FactCheckReport with extracted claims and the aggregate report.

        Raises:
            ContentUnavailableError: If the extractor returned no content.
        """
        extracted = await self.extractor.extract(url_or_text)
        if not extracted.content or not extracted.content.strip():
            raise ContentUnavailableError(f"No content extracted from {url_or_text[:80]!r}")

        self._logger.info(
            "content_extracted",
            title=extracted.title,
            length=len(extracted.content),
        )
        await self._notify(progress_callback, "content_extracted", {"title": extracted.title})

        extraction = await self.claim_agent.extract_claims(extracted.content)
        await self._notify(progress_callback, "claims_extracted", {"count": len(extraction.claims)})

        opinions = OpinionSummary()
        if self.analyze_opinions:
            opinions = await self.claim_agent.analyze_opinions(extraction)
            await self._notify(
                progress_callback,
                "opinions_analyzed",
                {"sentences": opinions.total, "percentages": opinions.percentages},
            )

        if not extraction.claims:
            self._logger.info("no_claims_found")
            return FactCheckReport(
                source=url_or_text,
                title=extracted.title,
                extraction=extraction,
                opinions=opinions,
            )

        requests = await asyncio.gather(
            *(self._collect_sources(claim) for claim in extraction.claims)
        )
        await self._notify(
            progress_callback,
            "sources_collected",
            {"sources": sum(len(r.sources) for r in requests)},
        )

        report = await self.aggregator.verify_claims(requests)
        await self._notify(
            progress_callback,
            "verification_complete",
            {"average_trust_score": report.average_trust_score},
        )

        return FactCheckReport(
            source=url_or_text,
            title=extracted.title,
            extraction=extraction,
            report=report,
            opinions=opinions,
        )

    async def _collect_sources(self, claim: str) -> VerificationRequest:
        """Search for a claim and fetch its candidate sources."""
        try:
            async with self._semaphore:
                urls = await self.search.search(claim)
        except Exception as e:
            self._logger.warning("search_failed", claim=claim[:80], error=str(e))
            urls = []

        candidates = list(dict.fromkeys(u for u in urls if u))[: self.candidates_per_claim]
        fetched = await asyncio.gather(*(self._fetch_source(url) for url in candidates))
        sources = [s for s in fetched if s is not None][: self.max_sources]

        self._logger.debug(
            "sources_collected",
            claim=claim[:80],
            candidates=len(candidates),
            sources=len(sources),
        )
        return VerificationRequest(claim=claim, sources=sources)

    async def _fetch_source(self, url: str) -> Optional[SourceDocument]:
        try:
            async with self._semaphore:
                extracted = await self.extractor.extract(url)
        except Exception as e:
            self._logger.warning("source_fetch_failed", url=url, error=str(e))
            return None

        if not extracted.content or not extracted.content.strip():
            return None
        return SourceDocument(source_id=url, content=extracted.content, title=extracted.title)

    async def _notify(
        self,
        callback: Optional[ProgressCallback],
        stage: str,
        details: dict,
    ) -> None:
        if callback is not None:
            await callback(stage, details)
