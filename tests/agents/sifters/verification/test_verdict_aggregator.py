"""Tests for VerdictAggregator and aggregate scoring.

Tests cover:
- Average trust score: Unclear exclusion, half-up rounding, empty case
- Strict record validation against the verdict -> score mapping
- Response normalization (key casing, missing ids, markdown, garbage)
- Placeholders for absent evidence and failed calls
- Batching and token cost estimation
- The three-source Support scenario end to end

All tests use a mocked generator - no actual API calls.
"""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from factcheck_system.agents.sifters.verification.evidence_selector import (
    EvidenceRelevanceSelector,
)
from factcheck_system.agents.sifters.verification.verdict_aggregator import (
    CALL_FAILED_REASON,
    INVALID_RESPONSE_REASON,
    NO_EVIDENCE_REASON,
    VerdictAggregator,
    compute_average_trust_score,
    parse_verdict,
)
from factcheck_system.data_management.schemas import (
    ClaimVerificationResult,
    EvidenceChunk,
    SourceDocument,
    Verdict,
    VerificationRequest,
)
from factcheck_system.errors import EvidenceAbsent, OracleInvalidResponse
from factcheck_system.llm.gemini_client import GeminiClient
from factcheck_system.llm.rate_limiter import RateLimitedScheduler, RetryPolicy


CLAIM = "Apple released the iPhone 15 on September 22, 2023."


# ── Fixtures ──────────────────────────────────────────────────────────────


def make_aggregator(response=None, side_effect=None, **kwargs) -> tuple[VerdictAggregator, MagicMock]:
    generator = MagicMock()
    generator.generate_json = AsyncMock(return_value=response, side_effect=side_effect)
    embedder = MagicMock()
    embedder.embed = AsyncMock(return_value=[1.0, 0.0])
    scheduler = RateLimitedScheduler(
        max_rpm=60,
        max_tpm=10_000,
        retry_policy=RetryPolicy(max_retries=0),
    )
    aggregator = VerdictAggregator(
        generator=generator,
        scheduler=scheduler,
        selector=EvidenceRelevanceSelector(embedder=embedder),
        **kwargs,
    )
    return aggregator, generator


def result(verdict: Verdict, score) -> ClaimVerificationResult:
    return ClaimVerificationResult(claim="c", verdict=verdict, reason="r", trust_score=score)


@pytest.fixture
def supporting_sources() -> list[SourceDocument]:
    return [
        SourceDocument(
            source_id="apple.com",
            content="Apple announced the iPhone 15. It went on sale September 22, 2023.",
        ),
        SourceDocument(
            source_id="reuters.com",
            content="The iPhone 15 launched on September 22, 2023. Queues formed early.",
        ),
        SourceDocument(
            source_id="theverge.com",
            content="iPhone 15 sales began on Friday, September 22, 2023.",
        ),
    ]


def support_response(claim_id=0) -> str:
    return json.dumps([{
        "id": claim_id,
        "claim": CLAIM,
        "verdict": "Support",
        "reason": "All three sources state the iPhone 15 went on sale on September 22, 2023.",
        "references": [
            "[apple.com] It went on sale September 22, 2023.",
            "[reuters.com] The iPhone 15 launched on September 22, 2023.",
        ],
        "trust_score": 100,
    }])


# ── compute_average_trust_score ───────────────────────────────────────────


class TestAverageTrustScore:
    def test_unclear_is_excluded(self):
        results = [
            result(Verdict.SUPPORT, 100),
            result(Verdict.UNCLEAR, None),
            result(Verdict.REFUTE, 0),
        ]
        assert compute_average_trust_score(results) == 50

    def test_no_qualifying_results_is_zero(self):
        assert compute_average_trust_score([]) == 0
        assert compute_average_trust_score([result(Verdict.UNCLEAR, None)]) == 0
        assert compute_average_trust_score([result(Verdict.CONTRADICT, None)]) == 0

    def test_rounds_half_up(self):
        results = [
            result(Verdict.SUPPORT, 100),
            result(Verdict.PARTIALLY_SUPPORT, 50),
            result(Verdict.PARTIALLY_SUPPORT, 50),
            result(Verdict.PARTIALLY_SUPPORT, 50),
        ]
        assert compute_average_trust_score(results) == 63

    def test_null_scores_are_excluded(self):
        results = [result(Verdict.SUPPORT, 100), result(Verdict.CONTRADICT, None)]
        assert compute_average_trust_score(results) == 100


# ── Validation ────────────────────────────────────────────────────────────


class TestValidateRecord:
    @pytest.fixture
    def aggregator(self) -> VerdictAggregator:
        return make_aggregator("[]")[0]

    @pytest.mark.parametrize(
        "verdict,score",
        [
            ("Support", 100),
            ("Partially Support", 50),
            ("Contradict", 0),
            ("Contradict", None),
            ("Refute", 0),
            ("Refute", None),
        ],
    )
    def test_valid_mappings(self, aggregator, verdict, score):
        record = {"verdict": verdict, "reason": "Because.", "references": [], "trust_score": score}
        validated = aggregator.validate_record(record, CLAIM)
        assert validated.verdict.value == verdict
        assert validated.trust_score == score
        assert validated.claim == CLAIM

    @pytest.mark.parametrize(
        "verdict,score",
        [
            ("Support", 50),
            ("Support", None),
            ("Partially Support", 100),
            ("Refute", 100),
            ("Contradict", 50),
            ("Unclear", 75),
            ("Unclear", 100),
        ],
    )
    def test_mapping_violations_rejected(self, aggregator, verdict, score):
        record = {"verdict": verdict, "reason": "Because.", "trust_score": score}
        with pytest.raises(OracleInvalidResponse):
            aggregator.validate_record(record, CLAIM)

    def test_unclear_never_carries_a_number(self, aggregator):
        record = {"verdict": "Unclear", "reason": "Not enough evidence.", "trust_score": 0}
        assert aggregator.validate_record(record, CLAIM).trust_score is None

    @pytest.mark.parametrize(
        "record",
        [
            {"verdict": "Probably", "reason": "x", "trust_score": 0},
            {"verdict": "Support", "reason": "", "trust_score": 100},
            {"verdict": "Support", "trust_score": 100},
            {"verdict": "Support", "reason": "x" * 601, "trust_score": 100},
            {"verdict": "Support", "reason": "x", "trust_score": "100"},
            {"verdict": "Support", "reason": "x", "trust_score": True},
            {"verdict": "Support", "reason": "x", "trust_score": 100, "references": "a quote"},
            {"verdict": "Support", "reason": "x", "trust_score": 100, "references": ["a", "b", "c", "d"]},
            {"verdict": "Support", "reason": "x", "trust_score": 100, "references": [1]},
        ],
    )
    def test_schema_violations_rejected(self, aggregator, record):
        with pytest.raises(OracleInvalidResponse):
            aggregator.validate_record(record, CLAIM)

    def test_verdict_spellings(self):
        assert parse_verdict("PartiallySupport") == Verdict.PARTIALLY_SUPPORT
        assert parse_verdict("partially_supported") == Verdict.PARTIALLY_SUPPORT
        assert parse_verdict("REFUTED") == Verdict.REFUTE
        assert parse_verdict(100) is None


# ── Response parsing ──────────────────────────────────────────────────────


class TestParseResponse:
    @pytest.fixture
    def aggregator(self) -> VerdictAggregator:
        return make_aggregator("[]")[0]

    @pytest.fixture
    def evidence(self) -> list[EvidenceChunk]:
        return [EvidenceChunk(source_id="apple.com", text="It went on sale September 22, 2023.")]

    def test_duck_typed_keys_without_id(self, aggregator, evidence):
        raw = json.dumps({
            "Verdict": "Support",
            "Reason": "The source gives the date.",
            "Reference": ["[apple.com] It went on sale September 22, 2023."],
            "Trust_Score": 100,
        })

        results = aggregator.parse_response(raw, [(0, CLAIM, evidence)])

        assert results[0].verdict == Verdict.SUPPORT
        assert results[0].trust_score == 100
        assert results[0].evidence == evidence

    def test_camel_case_keys(self, aggregator, evidence):
        raw = '```json\n[{"id": 0, "verdict": "Refute", "reason": "Wrong date.", "trustScore": 0}]\n```'

        results = aggregator.parse_response(raw, [(0, CLAIM, evidence)])

        assert results[0].verdict == Verdict.REFUTE
        assert results[0].trust_score == 0

    def test_garbage_becomes_placeholder(self, aggregator, evidence):
        results = aggregator.parse_response("The claim is true!", [(0, CLAIM, evidence)])

        assert results[0].verdict == Verdict.UNCLEAR
        assert results[0].trust_score is None
        assert results[0].reason == INVALID_RESPONSE_REASON

    def test_unclear_with_out_of_range_score_becomes_placeholder(self, aggregator, evidence):
        raw = json.dumps([{
            "id": 0,
            "verdict": "Unclear",
            "reason": "Model reasoning",
            "references": ["q"],
            "trust_score": 75,
        }])

        results = aggregator.parse_response(raw, [(0, CLAIM, evidence)])

        assert results[0].verdict == Verdict.UNCLEAR
        assert results[0].trust_score is None
        assert results[0].reason == INVALID_RESPONSE_REASON
        assert results[0].references == []

    def test_unclear_with_zero_keeps_oracle_reason(self, aggregator, evidence):
        raw = json.dumps([{"id": 0, "verdict": "Unclear", "reason": "Sources disagree.", "trust_score": 0}])

        results = aggregator.parse_response(raw, [(0, CLAIM, evidence)])

        assert results[0].reason == "Sources disagree."
        assert results[0].trust_score is None

    def test_missing_claim_in_batch_becomes_placeholder(self, aggregator, evidence):
        raw = json.dumps([{"id": 4, "verdict": "Support", "reason": "Yes.", "trust_score": 100}])

        results = aggregator.parse_response(raw, [(3, "other claim", evidence), (4, CLAIM, evidence)])

        assert results[3].verdict == Verdict.UNCLEAR
        assert results[4].verdict == Verdict.SUPPORT


# ── Preparation and cost ──────────────────────────────────────────────────


class TestPreparation:
    @pytest.mark.asyncio
    async def test_prepare_claim_formats_source_tagged_blocks(self, supporting_sources):
        aggregator, _ = make_aggregator("[]")

        chunks = await aggregator.prepare_claim(CLAIM, supporting_sources)
        prompt = aggregator.build_prompt([(0, CLAIM, chunks)])

        assert len(chunks) == 3
        assert "[apple.com] Apple announced the iPhone 15. It went on sale September 22, 2023." in prompt
        assert "[reuters.com]" in prompt

    @pytest.mark.asyncio
    async def test_prepare_claim_without_evidence_raises(self):
        aggregator, _ = make_aggregator("[]")
        with pytest.raises(EvidenceAbsent):
            await aggregator.prepare_claim(CLAIM, [SourceDocument(source_id="x", content="")])

    def test_estimate_cost_is_capped(self):
        aggregator, _ = make_aggregator("[]", max_tokens=1200)
        assert aggregator.estimate_cost("x" * 400) == 100
        assert aggregator.estimate_cost("x" * 401) == 101
        assert aggregator.estimate_cost("x" * 100_000) == 1200

    def test_estimate_cost_uses_client_token_estimate(self):
        aggregator, _ = make_aggregator("[]", max_tokens=1200)
        prompt = aggregator.build_prompt([(0, CLAIM, [])])
        assert aggregator.estimate_cost(prompt) == GeminiClient.estimate_tokens(prompt)


# ── verify_claims ─────────────────────────────────────────────────────────


class TestVerifyClaims:
    @pytest.mark.asyncio
    async def test_three_supporting_sources(self, supporting_sources):
        aggregator, generator = make_aggregator(support_response())

        report = await aggregator.verify_claims(
            [VerificationRequest(claim=CLAIM, sources=supporting_sources)]
        )

        assert len(report.results) == 1
        verdict = report.results[0]
        assert verdict.verdict == Verdict.SUPPORT
        assert verdict.trust_score == 100
        assert len(verdict.references) == 2
        assert len(verdict.evidence) == 3
        assert report.average_trust_score == 100
        assert report.request_id
        generator.generate_json.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_claim_without_evidence_is_never_sent(self):
        aggregator, generator = make_aggregator(support_response())

        report = await aggregator.verify_claims([VerificationRequest(claim=CLAIM, sources=[])])

        assert report.results[0].verdict == Verdict.UNCLEAR
        assert report.results[0].reason == NO_EVIDENCE_REASON
        assert report.average_trust_score == 0
        generator.generate_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_call_yields_placeholder(self, supporting_sources):
        aggregator, _ = make_aggregator(side_effect=RuntimeError("service down"))

        result = await aggregator.verify_claim(CLAIM, supporting_sources)

        assert result.verdict == Verdict.UNCLEAR
        assert result.trust_score is None
        assert result.reason == CALL_FAILED_REASON
        assert len(result.evidence) == 3

    @pytest.mark.asyncio
    async def test_one_call_per_claim_by_default(self, supporting_sources):
        async def respond(prompt, **kwargs):
            claim_id = 1 if '"id": 1' in prompt else 0
            return support_response(claim_id)

        aggregator, generator = make_aggregator(side_effect=respond, claims_per_call=1)

        report = await aggregator.verify_claims([
            VerificationRequest(claim=CLAIM, sources=supporting_sources),
            VerificationRequest(claim="Second claim.", sources=supporting_sources),
        ])

        assert generator.generate_json.await_count == 2
        assert [r.claim for r in report.results] == [CLAIM, "Second claim."]
        assert all(r.verdict == Verdict.SUPPORT for r in report.results)

    @pytest.mark.asyncio
    async def test_batched_calls_map_results_by_id(self, supporting_sources):
        response = json.dumps([
            {"id": 1, "verdict": "Refute", "reason": "Wrong.", "trust_score": 0},
            {"id": 0, "verdict": "Support", "reason": "Right.", "trust_score": 100},
        ])
        aggregator, generator = make_aggregator(response, claims_per_call=2)

        report = await aggregator.verify_claims([
            VerificationRequest(claim=CLAIM, sources=supporting_sources),
            VerificationRequest(claim="The iPhone 15 launched in 2019.", sources=supporting_sources),
        ])

        assert generator.generate_json.await_count == 1
        assert [r.verdict for r in report.results] == [Verdict.SUPPORT, Verdict.REFUTE]
        assert report.average_trust_score == 50

    @pytest.mark.asyncio
    async def test_empty_request_list(self):
        aggregator, generator = make_aggregator("[]")

        report = await aggregator.verify_claims([])

        assert report.results == []
        assert report.average_trust_score == 0
        generator.generate_json.assert_not_awaited()
