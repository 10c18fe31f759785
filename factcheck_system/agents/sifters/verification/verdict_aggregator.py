"""Verdict aggregation: verify claims against evidence and score the run.

For each claim the aggregator:

1. Gathers up to 3 evidence chunks (one per source, each up to 3 ranked
   sentences) and formats them as ``[source] sentence sentence sentence`` blocks.
2. Skips the oracle entirely when no evidence survives; the claim gets an
   Unclear placeholder instead of a fabricated verdict.
3. Submits one verification call per batch of claims (one claim per call by
   default) to the rate-limited scheduler with a heuristic token cost.
4. Normalizes the response keys and validates it strictly. Anything invalid is
   replaced by an Unclear placeholder with a null score; nothing is raised.

The aggregate trust score is the half-up rounded mean of every numeric score
whose verdict is not Unclear, or 0 when none qualify.

Usage:
    from factcheck_system.agents.sifters.verification.verdict_aggregator import (
        VerdictAggregator,
    )

    aggregator = VerdictAggregator(scheduler=scheduler)
    report = await aggregator.verify_claims(requests)
"""

import asyncio
import json
import math
import time
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from factcheck_system.agents.sifters.verification.evidence_selector import (
    EvidenceRelevanceSelector,
)
from factcheck_system.config.prompts import VERIFICATION_PROMPT
from factcheck_system.config.settings import settings
from factcheck_system.data_management.schemas import (
    MAX_REFERENCES,
    AggregateReport,
    ClaimVerificationResult,
    EvidenceChunk,
    SourceDocument,
    Verdict,
    VerificationRequest,
    trust_score_matches,
)
from factcheck_system.errors import EvidenceAbsent, OracleInvalidResponse
from factcheck_system.llm.gemini_client import GeminiClient, get_client
from factcheck_system.llm.rate_limiter import RateLimitedScheduler
from factcheck_system.utils.json_parsing import (
    canonical_key,
    coerce_index,
    extract_json_records,
    normalize_record,
)
from factcheck_system.utils.logging import get_request_id, get_structured_logger


NO_EVIDENCE_REASON = "No usable evidence found"
CALL_FAILED_REASON = "Error during verification"
INVALID_RESPONSE_REASON = "Invalid verification response"

# Canonicalized oracle key -> field name
_FIELD_ALIASES = {
    "id": "id",
    "claimid": "id",
    "index": "id",
    "claim": "claim",
    "verdict": "verdict",
    "reason": "reason",
    "reasoning": "reason",
    "explanation": "reason",
    "reference": "references",
    "references": "references",
    "quotes": "references",
    "trustscore": "trust_score",
    "score": "trust_score",
}

_VERDICT_ALIASES = {
    "support": Verdict.SUPPORT,
    "supported": Verdict.SUPPORT,
    "supports": Verdict.SUPPORT,
    "partiallysupport": Verdict.PARTIALLY_SUPPORT,
    "partiallysupported": Verdict.PARTIALLY_SUPPORT,
    "partialsupport": Verdict.PARTIALLY_SUPPORT,
    "unclear": Verdict.UNCLEAR,
    "contradict": Verdict.CONTRADICT,
    "contradicted": Verdict.CONTRADICT,
    "contradicts": Verdict.CONTRADICT,
    "refute": Verdict.REFUTE,
    "refuted": Verdict.REFUTE,
    "refutes": Verdict.REFUTE,
}


def compute_average_trust_score(results: Sequence[ClaimVerificationResult]) -> int:
    """Half-up rounded mean of numeric scores, excluding Unclear verdicts.

    Returns 0 when no result qualifies.
    """
    scores = [
        r.trust_score
        for r in results
        if r.verdict != Verdict.UNCLEAR and r.trust_score is not None
    ]
    if not scores:
        return 0
    return math.floor(sum(scores) / len(scores) + 0.5)


def parse_verdict(value: Any) -> Optional[Verdict]:
    """Map any oracle spelling of a verdict onto Verdict."""
    if not isinstance(value, str):
        return None
    return _VERDICT_ALIASES.get(canonical_key(value))


def _parse_trust_score(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise OracleInvalidResponse(f"trust_score must be numeric, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise OracleInvalidResponse(f"trust_score must be an integer or null, got {value!r}")


def _parse_references(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise OracleInvalidResponse("references must be a list of strings")
    references = [item.strip() for item in value if item.strip()]
    if len(references) > MAX_REFERENCES:
        raise OracleInvalidResponse(
            f"references holds {len(references)} items, at most {MAX_REFERENCES} allowed"
        )
    return references


class VerdictAggregator:
    """Verify claims through the scheduler and compute the aggregate report.

    The generator must expose ``async generate_json(prompt, model_name=...,
    temperature=..., timeout=...) -> str``, as GeminiClient does.
    """

    def __init__(
        self,
        generator: Optional[Any] = None,
        scheduler: Optional[RateLimitedScheduler] = None,
        selector: Optional[EvidenceRelevanceSelector] = None,
        model_name: Optional[str] = None,
        claims_per_call: Optional[int] = None,
        max_tokens: Optional[int] = None,
        max_reason_length: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """Initialize VerdictAggregator.

        Args:
            generator: Verification oracle client. Defaults to the shared Gemini client.
            scheduler: Shared RPM/TPM scheduler. One is created if not supplied.
            selector: Evidence selector. One sharing the generator is created if not supplied.
            model_name: Verification model.
            claims_per_call: Claims per verification call.
            max_tokens: Ceiling on the estimated cost of one call.
            max_reason_length: Maximum accepted reason length.
            timeout: Per-call timeout in seconds.
        """
        self._generator = generator
        self.timeout = timeout or settings.verification_timeout_seconds
        self.scheduler = scheduler or RateLimitedScheduler(call_timeout=self.timeout)
        self._selector = selector
        self.model_name = model_name or settings.verification_model
        self.claims_per_call = max(1, claims_per_call or settings.claims_per_verification_call)
        self.max_tokens = max_tokens or settings.max_verification_tokens
        self.max_reason_length = max_reason_length or settings.max_reason_length
        self._logger = get_structured_logger("VerdictAggregator")

    @property
    def generator(self) -> Any:
        """Lazy-load the Gemini client on first access."""
        if self._generator is None:
            self._generator = get_client()
        return self._generator

    @property
    def selector(self) -> EvidenceRelevanceSelector:
        if self._selector is None:
            self._selector = EvidenceRelevanceSelector(embedder=self._generator)
        return self._selector

    async def prepare_claim(
        self,
        claim: str,
        sources: Sequence[SourceDocument],
    ) -> list[EvidenceChunk]:
        """Gather the evidence chunks for one claim.

        Raises:
            EvidenceAbsent: If no source produced usable evidence.
        """
        chunks = await self.selector.gather_evidence(claim, sources)
        if not chunks:
            raise EvidenceAbsent(claim)
        return chunks

    def build_prompt(self, batch: Sequence[tuple[int, str, list[EvidenceChunk]]]) -> str:
        """Render the verification prompt for a batch of (id, claim, evidence)."""
        payload = [
            {
                "id": claim_id,
                "claim": claim,
                "evidence": [chunk.format_block() for chunk in evidence],
            }
            for claim_id, claim, evidence in batch
        ]
        return VERIFICATION_PROMPT.format(
            max_reason_length=self.max_reason_length,
            payload=json.dumps(payload, ensure_ascii=False, indent=2),
        )

    def estimate_cost(self, prompt: str) -> int:
        """Heuristic token cost of a prompt, capped at max_tokens."""
        return min(self.max_tokens, GeminiClient.estimate_tokens(prompt))

    def validate_record(
        self,
        record: dict,
        claim: str,
        evidence: Optional[list[EvidenceChunk]] = None,
    ) -> ClaimVerificationResult:
        """Validate one normalized oracle record.

        Args:
            record: Oracle record with canonical keys.
            claim: The claim text that was sent (the oracle's echo is ignored).
            evidence: Evidence the verdict was based on.

        Returns:
            Validated ClaimVerificationResult.

        Raises:
            OracleInvalidResponse: If any field violates the schema.
        """
        verdict = parse_verdict(record.get("verdict"))
        if verdict is None:
            raise OracleInvalidResponse(f"Unknown verdict {record.get('verdict')!r}")

        reason = record.get("reason")
        if not isinstance(reason, str) or not reason.strip():
            raise OracleInvalidResponse("reason must be a non-empty string")
        reason = reason.strip()
        if len(reason) > self.max_reason_length:
            raise OracleInvalidResponse(
                f"reason is {len(reason)} characters, at most {self.max_reason_length} allowed"
            )

        trust_score = _parse_trust_score(record.get("trust_score"))
        references = _parse_references(record.get("references"))

        if not trust_score_matches(verdict, trust_score):
            raise OracleInvalidResponse(
                f"trust_score {trust_score!r} is inconsistent with verdict {verdict.value}"
            )
        if verdict == Verdict.UNCLEAR:
            # A valid Unclear 0 is stored as None so it never enters the average
            trust_score = None

        try:
            return ClaimVerificationResult(
                claim=claim,
                verdict=verdict,
                reason=reason,
                references=references,
                trust_score=trust_score,
                evidence=evidence or [],
            )
        except ValidationError as e:
            raise OracleInvalidResponse(str(e)) from e

    def parse_response(
        self,
        raw: str,
        batch: Sequence[tuple[int, str, list[EvidenceChunk]]],
    ) -> dict[int, ClaimVerificationResult]:
        """Map an oracle response onto the claims of a batch.

        Every claim of the batch is present in the result; invalid or missing
        records become Unclear placeholders.
        """
        try:
            records = [normalize_record(r, _FIELD_ALIASES) for r in extract_json_records(raw)]
        except OracleInvalidResponse as e:
            self._logger.warning("verification_response_unparseable", error=str(e))
            records = []

        by_id: dict[int, dict] = {}
        for record in records:
            claim_id = coerce_index(record.get("id"))
            if claim_id is not None:
                by_id.setdefault(claim_id, record)

        # A single-claim call may omit the id
        if len(batch) == 1 and not by_id and len(records) == 1:
            by_id[batch[0][0]] = records[0]

        results = {}
        for claim_id, claim, evidence in batch:
            record = by_id.get(claim_id)
            if record is None:
                results[claim_id] = ClaimVerificationResult.placeholder(
                    claim, INVALID_RESPONSE_REASON, evidence
                )
                continue
            try:
                results[claim_id] = self.validate_record(record, claim, evidence)
            except OracleInvalidResponse as e:
                self._logger.warning(
                    "verification_record_invalid",
                    claim=claim[:80],
                    error=str(e),
                )
                results[claim_id] = ClaimVerificationResult.placeholder(
                    claim, INVALID_RESPONSE_REASON, evidence
                )
        return results

    async def _verify_batch(
        self,
        batch: Sequence[tuple[int, str, list[EvidenceChunk]]],
    ) -> dict[int, ClaimVerificationResult]:
        prompt = self.build_prompt(batch)
        cost = self.estimate_cost(prompt)

        async def run() -> str:
            return await self.generator.generate_json(
                prompt,
                model_name=self.model_name,
                temperature=0.1,
                timeout=self.timeout,
            )

        try:
            raw = await self.scheduler.submit(run, cost)
        except Exception as e:
            self._logger.error(
                "verification_call_failed",
                claims=len(batch),
                error=str(e),
            )
            return {
                claim_id: ClaimVerificationResult.placeholder(claim, CALL_FAILED_REASON, evidence)
                for claim_id, claim, evidence in batch
            }

        return self.parse_response(raw, batch)

    async def _prepare(
        self, request: VerificationRequest
    ) -> tuple[Optional[list[EvidenceChunk]], Optional[ClaimVerificationResult]]:
        try:
            return await self.prepare_claim(request.claim, request.sources), None
        except EvidenceAbsent:
            self._logger.info("evidence_absent", claim=request.claim[:80])
            return None, ClaimVerificationResult.placeholder(request.claim, NO_EVIDENCE_REASON)

    async def verify_claim(
        self,
        claim: str,
        sources: Sequence[SourceDocument],
    ) -> ClaimVerificationResult:
        """Verify a single claim against its sources."""
        report = await self.verify_claims(
            [VerificationRequest(claim=claim, sources=list(sources))]
        )
        return report.results[0]

    async def verify_claims(self, requests: Sequence[VerificationRequest]) -> AggregateReport:
        """Verify every claim and aggregate the results.

        Args:
            requests: Claims with their source documents.

        Returns:
            AggregateReport with one result per request, in request order.
        """
        request_id = get_request_id()
        log = self._logger.bind(request_id=request_id)
        started = time.perf_counter()

        if not requests:
            return AggregateReport(request_id=request_id, duration_ms=0)

        prepared = await asyncio.gather(*(self._prepare(r) for r in requests))

        results: dict[int, ClaimVerificationResult] = {}
        pending: list[tuple[int, str, list[EvidenceChunk]]] = []
        for claim_id, (request, (evidence, placeholder)) in enumerate(zip(requests, prepared)):
            if placeholder is not None:
                results[claim_id] = placeholder
            else:
                pending.append((claim_id, request.claim, evidence))

        batches = [
            pending[i:i + self.claims_per_call]
            for i in range(0, len(pending), self.claims_per_call)
        ]
        for batch_results in await asyncio.gather(*(self._verify_batch(b) for b in batches)):
            results.update(batch_results)

        ordered = [results[i] for i in range(len(requests))]
        for result in ordered:
            log.info(
                "claim_verified",
                claim=result.claim[:80],
                verdict=result.verdict.value,
                trust_score=result.trust_score,
            )

        report = AggregateReport(
            results=ordered,
            average_trust_score=compute_average_trust_score(ordered),
            request_id=request_id,
            duration_ms=int((time.perf_counter() - started) * 1000),
        )
        log.info(
            "verification_complete",
            claims=len(ordered),
            sent_to_oracle=len(pending),
            calls=len(batches),
            average_trust_score=report.average_trust_score,
            duration_ms=report.duration_ms,
        )
        return report
