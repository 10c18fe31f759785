"""Application settings using Pydantic BaseSettings for environment variable management."""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """
    Global application settings loaded from environment variables.

    Attributes:
        gemini_api_key: Google Gemini API key
        classification_model: Model used for categorize/rewrite/disambiguate calls
        verification_model: Model used for claim verification calls
        embedding_model: Model used for evidence relevance embeddings
        max_rpm: Verification oracle requests per minute
        max_tpm: Verification oracle tokens per minute
        scheduler_window_seconds: Rolling accounting window for RPM/TPM
        scheduler_cooldown_seconds: Pause applied when a budget is exhausted
        scheduler_idle_seconds: Pause when nothing fits the remaining budget
        max_retries: Retry budget for a dispatched verification call
        initial_retry_delay: First backoff delay in seconds
        max_retry_delay: Backoff ceiling in seconds
        oracle_timeout_seconds: Timeout for one classification oracle call
        verification_timeout_seconds: Timeout for one verification call
        embedding_timeout_seconds: Timeout for one embedding call
        evidence_sentences_per_source: Sentences kept per source (K)
        max_sources_per_claim: Sources consulted per claim
        embedding_cooldown_seconds: How long embedding stays off after a failure
        fanout_concurrency: Cap on concurrent search/fetch/embedding calls
        implicit_claim_depth: Extra categorization passes for implicit claims
        analyze_opinions: Label Not Verifiable sentences by opinion polarity
        claims_per_verification_call: Claims sent in one verification call
        max_verification_tokens: Ceiling on a verification call's token estimate
        max_reason_length: Maximum verdict reason length in characters
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log output format (json for production, console for dev)
    """

    gemini_api_key: str = Field(default="", description="Google Gemini API key")
    classification_model: str = Field(
        default="gemini-2.0-flash",
        description="Model for sentence classification and rewriting"
    )
    verification_model: str = Field(
        default="gemini-2.0-flash",
        description="Model for claim verification"
    )
    embedding_model: str = Field(
        default="models/text-embedding-004",
        description="Model for sentence embeddings"
    )
    max_rpm: int = Field(
        default=60,
        description="Maximum verification requests per minute"
    )
    max_tpm: int = Field(
        default=10_000,
        description="Maximum verification tokens per minute"
    )
    scheduler_window_seconds: float = Field(
        default=60.0,
        description="Rolling window length for rate accounting"
    )
    scheduler_cooldown_seconds: float = Field(
        default=5.0,
        description="Cooldown when the RPM or TPM budget is exhausted"
    )
    scheduler_idle_seconds: float = Field(
        default=0.01,
        description="Sleep when no pending task fits the remaining budget"
    )
    max_retries: int = Field(
        default=3,
        description="Retries for a failed verification call"
    )
    initial_retry_delay: float = Field(
        default=1.0,
        description="Initial backoff delay in seconds"
    )
    max_retry_delay: float = Field(
        default=60.0,
        description="Maximum backoff delay in seconds"
    )
    oracle_timeout_seconds: float = Field(
        default=60.0,
        description="Timeout for classification oracle calls"
    )
    verification_timeout_seconds: float = Field(
        default=60.0,
        description="Timeout for verification oracle calls"
    )
    embedding_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for embedding calls"
    )
    evidence_sentences_per_source: int = Field(
        default=3,
        description="Relevant sentences kept per source"
    )
    max_sources_per_claim: int = Field(
        default=3,
        description="Evidence sources consulted per claim"
    )
    embedding_cooldown_seconds: float = Field(
        default=300.0,
        description="Seconds embedding is skipped after a failure"
    )
    fanout_concurrency: int = Field(
        default=8,
        description="Concurrent search, fetch and embedding calls"
    )
    implicit_claim_depth: int = Field(
        default=1,
        description="Implicit-claim extraction passes (0 disables)"
    )
    analyze_opinions: bool = Field(
        default=True,
        description="Run opinion-polarity labelling on Not Verifiable sentences"
    )
    claims_per_verification_call: int = Field(
        default=1,
        description="Claims verified per oracle call"
    )
    max_verification_tokens: int = Field(
        default=1200,
        description="Upper bound on a verification call's token estimate"
    )
    max_reason_length: int = Field(
        default=600,
        description="Maximum verdict reason length"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: json or console"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Singleton instance - import this throughout the application
settings = Settings()
