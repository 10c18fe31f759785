"""Rolling-window scheduler for the rate-limited verification oracle.

The verification provider enforces both requests-per-minute (RPM) and
tokens-per-minute (TPM) limits. Every call is submitted to a
RateLimitedScheduler with a caller-estimated token cost; one scheduling loop
owns the rolling accounting windows and decides what to dispatch:

1. Prune accounting events older than the window (60s).
2. Compute the remaining RPM/TPM budget.
3. If either budget is exhausted, cool down for a fixed duration.
4. Otherwise dispatch pending tasks smallest-cost-first while both budgets fit.
5. If nothing fit, sleep briefly and retry.

The window state is only touched by the loop task, so no lock is needed.
Dispatched calls run as their own asyncio tasks wrapped in a RetryPolicy;
their outcome resolves or rejects the submitting caller's future only.
"""

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from loguru import logger
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from factcheck_system.config.settings import settings
from factcheck_system.errors import is_rate_limit_error, retry_after_hint


SleepFn = Callable[[float], Awaitable[None]]


def _is_retryable(exc: BaseException) -> bool:
    # CancelledError is a BaseException and must propagate untouched
    return isinstance(exc, Exception)


class RetryPolicy:
    """
    Retry wrapper for a single dispatched call.

    Rate-limit errors wait the provider's hint when one is supplied, capped at
    max_delay; otherwise (and for all other errors) the wait is exponential
    backoff starting at initial_delay, capped at max_delay. After max_retries
    retries the last error is re-raised to the caller.

    Attributes:
        max_retries: Retries after the first attempt
        initial_delay: First backoff delay in seconds
        max_delay: Backoff ceiling in seconds
    """

    def __init__(
        self,
        max_retries: Optional[int] = None,
        initial_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.max_retries = settings.max_retries if max_retries is None else max_retries
        self.initial_delay = settings.initial_retry_delay if initial_delay is None else initial_delay
        self.max_delay = settings.max_retry_delay if max_delay is None else max_delay
        self._sleep = sleep
        self.logger = logger.bind(component="RetryPolicy")

    def compute_wait(self, retry_state: RetryCallState) -> float:
        """
        Compute the wait before the next attempt.

        Args:
            retry_state: Tenacity state after a failed attempt

        Returns:
            Delay in seconds
        """
        backoff = min(self.initial_delay * (2 ** (retry_state.attempt_number - 1)), self.max_delay)

        outcome = retry_state.outcome
        exc = outcome.exception() if outcome is not None else None
        if exc is not None and is_rate_limit_error(exc):
            hint = retry_after_hint(exc)
            if hint is not None:
                return min(hint, self.max_delay)
        return backoff

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        kind = "Rate limited" if exc is not None and is_rate_limit_error(exc) else "Call failed"
        self.logger.warning(
            f"{kind}, retrying in {delay:.2f}s "
            f"({self.max_retries - retry_state.attempt_number + 1} retries left): {exc}"
        )

    async def call(self, fn: Callable[[], Awaitable[Any]]) -> Any:
        """
        Run fn with retries.

        Args:
            fn: Zero-argument coroutine factory, invoked once per attempt

        Returns:
            Result of the first successful attempt

        Raises:
            Exception: The last error once the retry budget is exhausted
        """
        retrying = AsyncRetrying(
            sleep=self._sleep,
            stop=stop_after_attempt(self.max_retries + 1),
            wait=self.compute_wait,
            retry=retry_if_exception(_is_retryable),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await fn()


@dataclass
class ScheduledTask:
    """A call waiting for (or holding) rate budget.

    Owned exclusively by the scheduler loop; discarded once resolved.
    """

    run: Callable[[], Awaitable[Any]]
    estimated_cost: int
    future: asyncio.Future
    enqueued_at: float = 0.0

    def resolve(self, result: Any) -> None:
        if not self.future.done():
            self.future.set_result(result)

    def reject(self, exc: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(exc)


@dataclass
class _TokenEvent:
    ts: float
    tokens: int


class RateLimitedScheduler:
    """
    RPM/TPM-budgeted scheduler with a single non-reentrant loop.

    One instance is owned per process or per session and shared by every
    caller of the verification oracle. Callers await submit(); the loop decides
    when each call may start.

    Attributes:
        max_rpm: Requests allowed per window
        max_tpm: Estimated tokens allowed per window
        window_seconds: Rolling window length
        cooldown_seconds: Pause when a budget is exhausted
        idle_seconds: Pause when no pending task fits
        call_timeout: Per-attempt timeout for dispatched calls (None = no limit)
        retry_policy: Retry wrapper applied to every dispatched call
    """

    def __init__(
        self,
        max_rpm: Optional[int] = None,
        max_tpm: Optional[int] = None,
        window_seconds: Optional[float] = None,
        cooldown_seconds: Optional[float] = None,
        idle_seconds: Optional[float] = None,
        call_timeout: Optional[float] = None,
        retry_policy: Optional[RetryPolicy] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.max_rpm = max_rpm or settings.max_rpm
        self.max_tpm = max_tpm or settings.max_tpm
        self.window_seconds = window_seconds or settings.scheduler_window_seconds
        self.cooldown_seconds = (
            settings.scheduler_cooldown_seconds if cooldown_seconds is None else cooldown_seconds
        )
        self.idle_seconds = settings.scheduler_idle_seconds if idle_seconds is None else idle_seconds
        self.call_timeout = call_timeout
        self.retry_policy = retry_policy or RetryPolicy(sleep=sleep)
        self._clock = clock
        self._sleep = sleep

        self._pending: list[ScheduledTask] = []
        self._request_times: deque[float] = deque()
        self._token_events: deque[_TokenEvent] = deque()
        self._loop_task: Optional[asyncio.Task] = None
        self._inflight: set[asyncio.Task] = set()

        self.dispatched_count = 0
        self.completed_count = 0
        self.failed_count = 0
        self.cooldown_count = 0
        self.logger = logger.bind(component="RateLimitedScheduler")

        self.logger.info(
            f"RateLimitedScheduler initialized: {self.max_rpm} RPM, {self.max_tpm:,} TPM"
        )

    async def submit(self, run: Callable[[], Awaitable[Any]], estimated_cost: int) -> Any:
        """
        Queue a call and wait for its result.

        Args:
            run: Zero-argument coroutine factory performing the call
            estimated_cost: Heuristic token cost of the call

        Returns:
            The call's result

        Raises:
            ValueError: If estimated_cost is negative
            Exception: The call's error after retries are exhausted
        """
        if estimated_cost < 0:
            raise ValueError("estimated_cost must be non-negative")

        cost = int(estimated_cost)
        if cost > self.max_tpm:
            self.logger.warning(
                f"Estimated cost {cost} exceeds TPM budget, clamping to {self.max_tpm}"
            )
            cost = self.max_tpm

        future = asyncio.get_running_loop().create_future()
        self._pending.append(
            ScheduledTask(run=run, estimated_cost=cost, future=future, enqueued_at=self._clock())
        )
        self._ensure_loop()
        return await future

    def _ensure_loop(self) -> None:
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.create_task(self._schedule_loop())

    def _prune(self, now: float) -> None:
        while self._request_times and now - self._request_times[0] >= self.window_seconds:
            self._request_times.popleft()
        while self._token_events and now - self._token_events[0].ts >= self.window_seconds:
            self._token_events.popleft()

    def _tokens_used(self) -> int:
        return sum(event.tokens for event in self._token_events)

    async def _schedule_loop(self) -> None:
        while self._pending:
            now = self._clock()
            self._prune(now)

            # Callers that gave up before dispatch no longer need budget
            self._pending = [task for task in self._pending if not task.future.done()]
            if not self._pending:
                break

            remaining_requests = self.max_rpm - len(self._request_times)
            remaining_tokens = self.max_tpm - self._tokens_used()

            if remaining_requests <= 0 or remaining_tokens <= 0:
                self.cooldown_count += 1
                self.logger.debug(
                    f"Budget exhausted, cooling down {self.cooldown_seconds}s",
                    window_requests=len(self._request_times),
                    window_tokens=self._tokens_used(),
                    pending=len(self._pending),
                )
                await self._sleep(self.cooldown_seconds)
                continue

            # Stable sort keeps FIFO order among equal costs
            self._pending.sort(key=lambda task: task.estimated_cost)

            launched = 0
            while (
                self._pending
                and remaining_requests > 0
                and self._pending[0].estimated_cost <= remaining_tokens
            ):
                task = self._pending.pop(0)
                remaining_requests -= 1
                remaining_tokens -= task.estimated_cost
                self._request_times.append(now)
                self._token_events.append(_TokenEvent(ts=now, tokens=task.estimated_cost))
                self._dispatch(task)
                launched += 1

            if launched == 0:
                await self._sleep(self.idle_seconds)
            else:
                self.logger.debug(
                    f"Dispatched {launched} calls",
                    remaining_requests=remaining_requests,
                    remaining_tokens=remaining_tokens,
                    pending=len(self._pending),
                )
                await self._sleep(0)

    def _dispatch(self, task: ScheduledTask) -> None:
        self.dispatched_count += 1
        runner = asyncio.create_task(self._run_task(task))
        self._inflight.add(runner)
        runner.add_done_callback(self._inflight.discard)

    async def _run_task(self, task: ScheduledTask) -> None:
        try:
            result = await self.retry_policy.call(
                lambda: asyncio.wait_for(task.run(), timeout=self.call_timeout)
            )
        except Exception as e:
            self.failed_count += 1
            self.logger.error(f"Scheduled call failed after retries: {e}")
            task.reject(e)
        else:
            self.completed_count += 1
            task.resolve(result)

    async def wait_idle(self) -> None:
        """Wait until the queue is empty and every dispatched call finished."""
        while self._pending or self._inflight or (
            self._loop_task is not None and not self._loop_task.done()
        ):
            if self._loop_task is not None and not self._loop_task.done():
                await asyncio.wait({self._loop_task})
            if self._inflight:
                await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def stats(self) -> dict[str, Any]:
        """
        Return scheduler statistics for the current window.

        Returns:
            Dict with window usage, queue depth and lifetime counters
        """
        # Read-only view; only the loop prunes the windows
        now = self._clock()
        window_requests = sum(1 for ts in self._request_times if now - ts < self.window_seconds)
        window_tokens = sum(
            event.tokens for event in self._token_events if now - event.ts < self.window_seconds
        )
        return {
            "max_rpm": self.max_rpm,
            "max_tpm": self.max_tpm,
            "window_requests": window_requests,
            "window_tokens": window_tokens,
            "pending": len(self._pending),
            "inflight": len(self._inflight),
            "dispatched": self.dispatched_count,
            "completed": self.completed_count,
            "failed": self.failed_count,
            "cooldowns": self.cooldown_count,
        }
