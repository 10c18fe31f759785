"""LLM access: Gemini client and the rate-limited verification scheduler."""

from factcheck_system.llm.rate_limiter import RateLimitedScheduler, RetryPolicy

__all__ = ["RateLimitedScheduler", "RetryPolicy"]
