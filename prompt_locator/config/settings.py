"""Configuration settings for the Prompt Locator engine using Pydantic Settings.

All values are loaded from environment variables (or a local ``.env``) with
type conversion and range validation. Engine components never read these
directly; the factory passes them in through constructors.
"""

import logging
from enum import Enum
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from prompt_locator.core import constants

logger = logging.getLogger(__name__)


class DedupPolicy(str, Enum):
    """Which candidate wins when several strategies hit the same file."""

    FIRST_FOUND = "first_found"
    HIGHEST_CONFIDENCE = "highest_confidence"


class Settings(BaseSettings):
    """Central configuration management with Pydantic validation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    # ========================================
    # Debug Settings
    # ========================================
    debug: bool = Field(
        default=False,
        alias="MCP_DEBUG",
        description="Enable debug mode with verbose logging",
    )

    # ========================================
    # Server Settings
    # ========================================
    host: str = Field(
        default="0.0.0.0",
        description="Server host address",
    )

    port: int = Field(
        default=8052,
        ge=1024,
        le=65535,
        description="Server port number",
    )

    transport: str = Field(
        default="stdio",
        description="Transport mode (http, sse or stdio)",
    )

    mcp_api_key: str | None = Field(
        default=None,
        description="MCP API key for authentication",
    )

    # ========================================
    # Hosted Platform Settings
    # ========================================
    github_token: str | None = Field(
        default=None,
        description="Installation or personal access token for the hosted code platform",
    )

    github_api_url: str = Field(
        default=constants.GITHUB_API_URL_DEFAULT,
        description="Base URL of the hosted platform REST API",
    )

    github_host: str = Field(
        default=constants.GITHUB_HOST_DEFAULT,
        description="Git host used for credentialed shallow clones",
    )

    github_timeout: int = Field(
        default=constants.HTTP_REQUEST_TIMEOUT_DEFAULT,
        ge=5,
        le=300,
        description="Timeout in seconds for REST calls",
    )

    # ========================================
    # LLM Settings
    # ========================================
    openai_api_key: str | None = Field(
        default=None,
        description="OpenAI API key for validation and replacement calls",
    )

    model_choice: str = Field(
        default=constants.REPLACEMENT_MODEL_DEFAULT,
        description="LLM model used to rewrite files and detect prompts",
    )

    validation_model: str = Field(
        default=constants.VALIDATION_MODEL_DEFAULT,
        description="LLM model used to classify candidate locations",
    )

    llm_temperature: float = Field(
        default=constants.LLM_TEMPERATURE_DETERMINISTIC,
        ge=0.0,
        le=2.0,
        description="LLM temperature for all engine calls",
    )

    llm_timeout: int = Field(
        default=constants.LLM_API_TIMEOUT_DEFAULT,
        ge=5,
        le=600,
        description="Timeout in seconds for a single LLM call",
    )

    llm_output_retries: int = Field(
        default=constants.MAX_RETRIES_DEFAULT,
        ge=0,
        le=10,
        description="Structured-output retries before an LLM call is considered failed",
    )

    # ========================================
    # Strategy Settings
    # ========================================
    max_strategies: int = Field(
        default=constants.MAX_STRATEGIES_DEFAULT,
        ge=constants.MAX_STRATEGIES_MIN,
        le=constants.MAX_STRATEGIES_DEFAULT,
        description="Maximum number of search strategies generated per run",
    )

    strategy_prefix_length: int = Field(
        default=constants.PREFIX_LENGTH_DEFAULT,
        ge=10,
        le=256,
        description="Length in characters of the prefix strategy",
    )

    max_query_length: int = Field(
        default=constants.MAX_QUERY_LENGTH_DEFAULT,
        ge=32,
        le=1024,
        description="Maximum query length accepted by the indexed search tier",
    )

    # ========================================
    # Search Settings
    # ========================================
    search_request_delay: float = Field(
        default=constants.SEARCH_REQUEST_DELAY_DEFAULT,
        ge=0.0,
        le=30.0,
        description="Seconds separating consecutive indexed-search calls",
    )

    rate_limit_backoff: float = Field(
        default=constants.RATE_LIMIT_BACKOFF_DEFAULT,
        ge=0.0,
        le=300.0,
        description="Seconds to back off after a rate-limit response",
    )

    fallback_scan_max_depth: int = Field(
        default=constants.FALLBACK_SCAN_MAX_DEPTH_DEFAULT,
        ge=1,
        le=20,
        description="Directory depth limit for the remote fallback scan",
    )

    local_scan_max_depth: int = Field(
        default=constants.LOCAL_SCAN_MAX_DEPTH_DEFAULT,
        ge=1,
        le=50,
        description="Directory depth limit for the local clone scan",
    )

    max_file_size_bytes: int = Field(
        default=constants.MAX_FILE_SIZE_BYTES_DEFAULT,
        ge=1024,
        description="Files larger than this are skipped by the scan tiers",
    )

    early_exit_confidence: float = Field(
        default=constants.EARLY_EXIT_CONFIDENCE,
        ge=0.0,
        le=1.0,
        description="Phase 1 stops once a strategy at or above this confidence has hits",
    )

    fallback_confidence_factor: float = Field(
        default=constants.FALLBACK_CONFIDENCE_FACTOR,
        ge=0.0,
        le=1.0,
        description="Multiplier applied to confidences of fallback-scan candidates",
    )

    local_clone_on_empty: bool = Field(
        default=True,
        description="Run the local clone tier automatically when Phase 1 finds nothing",
    )

    candidate_dedup_policy: DedupPolicy = Field(
        default=DedupPolicy.FIRST_FOUND,
        description="Candidate kept when several strategies hit the same file",
    )

    clone_timeout: int = Field(
        default=constants.CLONE_TIMEOUT_DEFAULT,
        ge=10,
        le=3600,
        description="Timeout in seconds for the shallow clone subprocess",
    )

    # ========================================
    # Validation Settings
    # ========================================
    validation_confidence_threshold: float = Field(
        default=constants.VALIDATION_CONFIDENCE_THRESHOLD,
        ge=0.0,
        le=1.0,
        description="Classifier confidence needed to keep a candidate",
    )

    validation_failure_confidence: float = Field(
        default=constants.VALIDATION_FAILURE_CONFIDENCE,
        ge=0.0,
        le=1.0,
        description="Confidence assigned to candidates kept after a classifier failure",
    )

    validation_context_lines: int = Field(
        default=constants.VALIDATION_CONTEXT_LINES,
        ge=0,
        le=100,
        description="Lines of code shown on each side of a match to the classifier",
    )

    # ========================================
    # Publication Settings
    # ========================================
    branch_prefix: str = Field(
        default=constants.BRANCH_PREFIX_DEFAULT,
        min_length=1,
        description="Prefix of the branches created for each change set",
    )

    post_metrics_comment: bool = Field(
        default=True,
        description="Add a detailed metrics comment to the created pull request",
    )

    # ========================================
    # Detection Settings
    # ========================================
    max_detected_prompts: int = Field(
        default=constants.MAX_DETECTED_PROMPTS_DEFAULT,
        ge=1,
        le=20,
        description="Maximum prompts extracted by the detection pass",
    )

    detection_content_limit: int = Field(
        default=constants.DETECTION_CONTENT_LIMIT,
        ge=500,
        le=200000,
        description="Characters of each file sent to the detection pass",
    )

    discovery_max_files: int = Field(
        default=constants.DISCOVERY_MAX_FILES_DEFAULT,
        ge=1,
        le=100,
        description="Top-ranked discovered files sent to the detection pass",
    )

    # ========================================
    # Validators
    # ========================================
    @field_validator("branch_prefix")
    @classmethod
    def validate_branch_prefix(cls, v: str) -> str:
        """Branch prefixes must be usable inside a git ref name."""
        prefix = v.strip().strip("/")
        if not prefix or any(ch in prefix for ch in " ~^:?*[\\"):
            msg = f"Invalid branch prefix: {v!r}"
            raise ValueError(msg)
        return prefix

    @field_validator("github_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # ========================================
    # Helper Methods
    # ========================================
    def has_github_config(self) -> bool:
        """Check if a platform token is configured."""
        return bool(self.github_token)

    def to_dict(self) -> dict[str, Any]:
        """Export settings as a dictionary (safe version without secrets)."""
        return {
            "debug": self.debug,
            "host": self.host,
            "port": self.port,
            "transport": self.transport,
            "github_api_url": self.github_api_url,
            "has_github_token": self.has_github_config(),
            "has_openai": bool(self.openai_api_key),
            "model_choice": self.model_choice,
            "validation_model": self.validation_model,
            "max_strategies": self.max_strategies,
            "search_request_delay": self.search_request_delay,
            "early_exit_confidence": self.early_exit_confidence,
            "local_clone_on_empty": self.local_clone_on_empty,
            "candidate_dedup_policy": self.candidate_dedup_policy.value,
            "validation_confidence_threshold": self.validation_confidence_threshold,
            "branch_prefix": self.branch_prefix,
        }


_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
        logger.info("Settings initialized from environment")
        if not _settings_instance.github_token:
            logger.warning(
                "GITHUB_TOKEN is missing. Repository operations need an explicit token.",
            )
        if not _settings_instance.openai_api_key:
            logger.warning(
                "OPENAI_API_KEY is missing. AI validation and replacement will use fallbacks.",
            )
    return _settings_instance


def reset_settings() -> None:
    """Reset settings instance (useful for testing)."""
    global _settings_instance
    _settings_instance = None
