"""Tests for the end-to-end fact-check pipeline.

Claim extraction and verification are mocked; the tests cover orchestration:
content handling, source collection and progress reporting.
"""

from typing import Optional

import pytest
from unittest.mock import AsyncMock, MagicMock

from factcheck_system.data_management.schemas import (
    AggregateReport,
    ClaimExtractionResult,
    ClaimVerificationResult,
    OpinionLabel,
    OpinionResult,
    OpinionSummary,
    Verdict,
)
from factcheck_system.errors import ContentUnavailableError
from factcheck_system.pipeline import ExtractedContent, FactCheckPipeline


ARTICLE_URL = "https://news.example.com/article"


# ── Fixtures ──────────────────────────────────────────────────────────────


class FakeExtractor:
    """Serves canned content per URL; unknown URLs raise."""

    def __init__(self, pages: dict):
        self.pages = pages
        self.calls: list[str] = []

    async def extract(self, url_or_text: str) -> ExtractedContent:
        self.calls.append(url_or_text)
        page = self.pages[url_or_text]
        if isinstance(page, Exception):
            raise page
        return page


def make_agent(claims: list[str], opinions: Optional[OpinionSummary] = None) -> MagicMock:
    agent = MagicMock()
    agent.extract_claims = AsyncMock(return_value=ClaimExtractionResult(claims=claims))
    agent.analyze_opinions = AsyncMock(return_value=opinions or OpinionSummary())
    return agent


def make_aggregator() -> MagicMock:
    async def verify(requests):
        return AggregateReport(
            results=[
                ClaimVerificationResult(
                    claim=r.claim, verdict=Verdict.SUPPORT, reason="ok", trust_score=100
                )
                for r in requests
            ],
            average_trust_score=100 if requests else 0,
        )

    aggregator = MagicMock()
    aggregator.verify_claims = AsyncMock(side_effect=verify)
    return aggregator


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor({
        ARTICLE_URL: ExtractedContent(content="The dam was finished in 1936.", title="Dams"),
        "https://a.example": ExtractedContent(content="Hoover Dam was completed in 1936."),
        "https://b.example": ExtractedContent(content="Construction ended in 1936."),
        "https://c.example": ExtractedContent(content="   "),
        "https://d.example": RuntimeError("403 Forbidden"),
        "https://e.example": ExtractedContent(content="It opened in 1936."),
        "https://f.example": ExtractedContent(content="Completed 1936."),
    })


# ── Tests ─────────────────────────────────────────────────────────────────


class TestRun:
    @pytest.mark.asyncio
    async def test_empty_content_raises(self):
        extractor = FakeExtractor({ARTICLE_URL: ExtractedContent(content="  ")})
        pipeline = FactCheckPipeline(
            extractor=extractor,
            search=MagicMock(),
            claim_agent=make_agent([]),
            aggregator=make_aggregator(),
        )

        with pytest.raises(ContentUnavailableError):
            await pipeline.run(ARTICLE_URL)

    @pytest.mark.asyncio
    async def test_no_claims_skips_verification(self, extractor):
        aggregator = make_aggregator()
        search = MagicMock()
        search.search = AsyncMock(return_value=[])
        pipeline = FactCheckPipeline(
            extractor=extractor,
            search=search,
            claim_agent=make_agent([]),
            aggregator=aggregator,
        )

        report = await pipeline.run(ARTICLE_URL)

        assert report.title == "Dams"
        assert report.claims == []
        assert report.report.average_trust_score == 0
        search.search.assert_not_awaited()
        aggregator.verify_claims.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_full_run(self, extractor):
        search = MagicMock()
        search.search = AsyncMock(return_value=["https://a.example", "https://b.example"])
        aggregator = make_aggregator()
        pipeline = FactCheckPipeline(
            extractor=extractor,
            search=search,
            claim_agent=make_agent(["Hoover Dam was completed in 1936."]),
            aggregator=aggregator,
        )

        report = await pipeline.run(ARTICLE_URL)

        assert report.source == ARTICLE_URL
        assert report.claims == ["Hoover Dam was completed in 1936."]
        assert report.report.average_trust_score == 100

        requests = aggregator.verify_claims.await_args.args[0]
        assert len(requests) == 1
        assert [s.source_id for s in requests[0].sources] == [
            "https://a.example",
            "https://b.example",
        ]

    @pytest.mark.asyncio
    async def test_progress_stages(self, extractor):
        search = MagicMock()
        search.search = AsyncMock(return_value=["https://a.example"])
        stages = []

        async def progress(stage, details):
            stages.append(stage)

        pipeline = FactCheckPipeline(
            extractor=extractor,
            search=search,
            claim_agent=make_agent(["Hoover Dam was completed in 1936."]),
            aggregator=make_aggregator(),
        )

        await pipeline.run(ARTICLE_URL, progress_callback=progress)

        assert stages == [
            "content_extracted",
            "claims_extracted",
            "opinions_analyzed",
            "sources_collected",
            "verification_complete",
        ]


    @pytest.mark.asyncio
    async def test_opinions_travel_with_the_report(self, extractor):
        opinions = OpinionSummary.from_results([
            OpinionResult(index=1, text="Dams are ugly.", label=OpinionLabel.NEGATIVE),
        ])
        agent = make_agent([], opinions=opinions)
        pipeline = FactCheckPipeline(
            extractor=extractor,
            search=MagicMock(),
            claim_agent=agent,
            aggregator=make_aggregator(),
        )

        report = await pipeline.run(ARTICLE_URL)

        assert report.opinions.percentages["Negative"] == 100
        agent.analyze_opinions.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_opinion_analysis_can_be_disabled(self, extractor):
        agent = make_agent([])
        pipeline = FactCheckPipeline(
            extractor=extractor,
            search=MagicMock(),
            claim_agent=agent,
            aggregator=make_aggregator(),
            analyze_opinions=False,
        )

        report = await pipeline.run(ARTICLE_URL)

        assert report.opinions.total == 0
        agent.analyze_opinions.assert_not_awaited()

class TestSourceCollection:
    @pytest.mark.asyncio
    async def test_search_failure_yields_no_sources(self, extractor):
        search = MagicMock()
        search.search = AsyncMock(side_effect=RuntimeError("search quota exceeded"))
        aggregator = make_aggregator()
        pipeline = FactCheckPipeline(
            extractor=extractor,
            search=search,
            claim_agent=make_agent(["Hoover Dam was completed in 1936."]),
            aggregator=aggregator,
        )

        await pipeline.run(ARTICLE_URL)

        requests = aggregator.verify_claims.await_args.args[0]
        assert requests[0].sources == []

    @pytest.mark.asyncio
    async def test_failed_and_empty_fetches_are_replaced(self, extractor):
        pipeline = FactCheckPipeline(
            extractor=extractor,
            search=MagicMock(),
            claim_agent=make_agent([]),
            aggregator=make_aggregator(),
        )
        pipeline.search.search = AsyncMock(return_value=[
            "https://c.example",
            "https://d.example",
            "https://a.example",
            "https://a.example",
            "https://b.example",
            "https://e.example",
            "https://f.example",
        ])

        request = await pipeline._collect_sources("Hoover Dam was completed in 1936.")

        assert [s.source_id for s in request.sources] == [
            "https://a.example",
            "https://b.example",
            "https://e.example",
        ]
        # duplicates are fetched once
        assert extractor.calls.count("https://a.example") == 1

    @pytest.mark.asyncio
    async def test_candidates_are_capped(self, extractor):
        pipeline = FactCheckPipeline(
            extractor=extractor,
            search=MagicMock(),
            claim_agent=make_agent([]),
            aggregator=make_aggregator(),
            candidates_per_claim=2,
        )
        pipeline.search.search = AsyncMock(return_value=[
            "https://d.example",
            "https://a.example",
            "https://b.example",
        ])

        request = await pipeline._collect_sources("claim")

        assert [s.source_id for s in request.sources] == ["https://a.example"]
        assert "https://b.example" not in extractor.calls
