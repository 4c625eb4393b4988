"""Pydantic models for the prompt location and replacement pipeline.

This module contains the type-safe data structures passed between the
strategy generator, the search tiers, the validator, the replacement
generator and the publisher.
"""

import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from prompt_locator.core.exceptions import ErrorCode


def _finite(v: float) -> float:
    """Field constraints (ge/le) don't catch NaN/infinity."""
    if math.isnan(v):
        msg = "Confidence cannot be NaN (Not a Number)"
        raise ValueError(msg)
    if math.isinf(v):
        msg = "Confidence cannot be infinity"
        raise ValueError(msg)
    return v


class SearchTier(str, Enum):
    """Search backend kinds."""

    INDEXED = "indexed"
    FALLBACK_SCAN = "fallback_scan"
    LOCAL_CLONE = "local_clone"


class RepoRef(BaseModel):
    """A repository on the hosted platform, optionally pinned to a branch."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    branch: str | None = Field(
        default=None,
        description="Branch to search and publish against (default branch when unset)",
    )

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


class SearchStrategy(BaseModel):
    """A single scored query derived from the target text."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    query: str = Field(min_length=1)
    confidence: float = Field(ge=0.0, le=1.0)

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        return _finite(v)


class FileHit(BaseModel):
    """A file returned by a search tier for one query."""

    path: str
    content: str
    content_hash: str | None = None


class CandidateLocation(BaseModel):
    """A file believed to contain the target text, with provenance."""

    file_path: str
    content: str
    content_hash: str | None = Field(
        default=None,
        description="Platform blob SHA of the content as read",
    )
    matched_query: str
    strategy_name: str
    confidence: float = Field(ge=0.0, le=1.0)
    tier: SearchTier = SearchTier.INDEXED
    from_marker: bool = Field(
        default=False,
        description="Found by a generic prompt marker rather than a fragment of the target text",
    )

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        return _finite(v)


class ValidationVerdict(BaseModel):
    """Structured output of the candidate classifier."""

    is_real_match: bool = Field(
        description="True when the code holds a real prompt definition matching the original prompt",
    )
    confidence: float = Field(
        ge=0.0,
        le=1.0,
        description="Confidence in the verdict from 0.0 to 1.0",
    )
    reasoning: str = Field(
        default="",
        description="Short explanation of the verdict",
    )

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        return _finite(v)


class ValidatedLocation(CandidateLocation):
    """A candidate location after classification."""

    is_real_match: bool
    validation_confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = ""
    degraded: bool = Field(
        default=False,
        description="Kept because the classifier call failed",
    )

    @classmethod
    def from_candidate(
        cls,
        candidate: CandidateLocation,
        *,
        is_real_match: bool,
        validation_confidence: float,
        reasoning: str = "",
        degraded: bool = False,
    ) -> "ValidatedLocation":
        return cls(
            **candidate.model_dump(),
            is_real_match=is_real_match,
            validation_confidence=validation_confidence,
            reasoning=reasoning,
            degraded=degraded,
        )


class ReplacementEdit(BaseModel):
    """Structured output of the AI code editor."""

    new_code: str = Field(
        description="Complete new file content with only the prompt span replaced",
    )
    explanation: str = Field(
        default="",
        description="What was changed and why it is safe",
    )
    changes_description: str = Field(
        default="",
        description="One-line summary of the change",
    )


class Replacement(BaseModel):
    """New content for one validated file, consumed once by the publisher."""

    file_path: str
    original_content: str
    new_content: str
    content_hash: str | None = None
    explanation: str
    used_fallback: bool = False
    strategy_name: str = ""
    validation_confidence: float | None = None
    reasoning: str = ""

    @property
    def is_noop(self) -> bool:
        return self.new_content == self.original_content


class PublicationMetadata(BaseModel):
    """Caller-supplied description of the change set."""

    original_text: str
    new_text: str
    metrics: dict[str, Any] = Field(default_factory=dict)
    title: str | None = None
    locations_found: int | None = None


class FileCommitResult(BaseModel):
    """Outcome of committing one replacement."""

    file_path: str
    committed: bool
    commit_sha: str | None = None
    error: str | None = None
    error_code: ErrorCode | None = None


class PublicationResult(BaseModel):
    """Result record returned to the caller for persistence."""

    success: bool
    pr_number: int | None = None
    pr_url: str | None = None
    branch_name: str | None = None
    files_changed: int = 0
    locations_found: int = 0
    conflicts: list[str] = Field(default_factory=list)
    file_results: list[FileCommitResult] = Field(default_factory=list)
    error: str | None = None
    error_code: ErrorCode | None = None

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: ErrorCode,
        **extra: Any,
    ) -> "PublicationResult":
        return cls(success=False, error=error, error_code=error_code, **extra)


class DetectedPrompt(BaseModel):
    """A prompt extracted from a file by the detection pass."""

    role: str | None = Field(
        default=None,
        description="system, user or assistant; null when unclear",
    )
    text: str = Field(description="Prompt wording with code artifacts removed")
    variables: list[str] = Field(
        default_factory=list,
        description="Template placeholders used inside the prompt",
    )
    model: str | None = Field(
        default=None,
        description="Model name passed alongside the prompt, when visible",
    )
    file_path: str | None = None


class PromptDetection(BaseModel):
    """Structured output of the prompt detection pass."""

    prompts: list[DetectedPrompt] = Field(default_factory=list)


class DiscoveryQuery(BaseModel):
    """A high-signal query hinting that a file talks to an LLM."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    query: str = Field(min_length=1)
    match_hint: str | None = Field(
        default=None,
        description="Text the file must contain for a hit to count (the query when unset)",
    )
    provider: str | None = None
    framework: str | None = None

    @property
    def hint(self) -> str:
        return self.match_hint or self.query


class PromptFileCandidate(BaseModel):
    """A file likely to define prompts, ranked by its discovery score."""

    file_path: str
    content: str
    content_hash: str | None = None
    indicators: list[str] = Field(default_factory=list)
    provider: str | None = None
    framework: str | None = None
    snippet: str = ""
    score: float = Field(default=0.0, ge=0.0)


class RepositoryDiscovery(BaseModel):
    """Outcome of a discovery pass over one repository."""

    repository: str
    candidates: list[PromptFileCandidate] = Field(default_factory=list)
    providers_detected: list[str] = Field(default_factory=list)
    frameworks_detected: list[str] = Field(default_factory=list)
    strategies_used: list[str] = Field(default_factory=list)
    used_local_clone: bool = False
    prompts: list[DetectedPrompt] = Field(default_factory=list)
