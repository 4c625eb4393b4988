"""Prompt location engine facade.

Chains the pipeline stages:

1. StrategyGenerator turns the literal prompt into scored queries
2. SearchOrchestrator runs them across the search tiers
3. CandidateValidator filters ambiguous candidate sets
4. ReplacementGenerator computes the new content of each file
5. MutationApplier publishes a branch and a pull request

``locate_prompt``, ``validate_and_replace`` and ``publish`` expose the
stages separately; ``optimize_prompt`` runs them end to end and reports
every failure as a result record instead of raising. ``discover_prompts``
ranks likely prompt files when no prompt text is known yet.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from prompt_locator.clients.github import GitHubClient
from prompt_locator.core.constants import (
    DISCOVERY_MAX_FILES_DEFAULT,
    MAX_DETECTED_PROMPTS_DEFAULT,
)
from prompt_locator.core.exceptions import (
    ConfigurationError,
    ErrorCode,
    GitHubAPIError,
    NoValidMatchError,
    PromptLocatorError,
    PromptNotFoundError,
)
from prompt_locator.core.logging import get_component_logger
from prompt_locator.services.models import (
    CandidateLocation,
    DetectedPrompt,
    FileHit,
    PublicationMetadata,
    PublicationResult,
    Replacement,
    RepoRef,
    RepositoryDiscovery,
    ValidatedLocation,
)
from prompt_locator.utils.validation import parse_repository_url, validate_prompt_text

from .detector import PromptDetector
from .discovery import PromptFileDiscovery
from .orchestrator import SearchOrchestrator
from .publisher import MutationApplier
from .replacement import ReplacementGenerator
from .strategies import StrategyGenerator
from .validator import CandidateValidator

SINGLE_CANDIDATE_REASONING = "Single candidate, validation skipped"


class PromptLocationEngine:
    """Locates a literal prompt in a repository and publishes its replacement."""

    def __init__(
        self,
        github: GitHubClient,
        strategy_generator: StrategyGenerator,
        orchestrator_factory: Callable[[], SearchOrchestrator],
        validator: CandidateValidator,
        replacer: ReplacementGenerator,
        publisher: MutationApplier,
        detector: PromptDetector,
        max_detected_prompts: int = MAX_DETECTED_PROMPTS_DEFAULT,
        discovery_factory: Callable[[], PromptFileDiscovery] | None = None,
        discovery_max_files: int = DISCOVERY_MAX_FILES_DEFAULT,
        logger: logging.Logger | None = None,
    ) -> None:
        self.github = github
        self.strategy_generator = strategy_generator
        self.orchestrator_factory = orchestrator_factory
        self.validator = validator
        self.replacer = replacer
        self.publisher = publisher
        self.detector = detector
        self.max_detected_prompts = max_detected_prompts
        self.discovery_factory = discovery_factory
        self.discovery_max_files = discovery_max_files
        self.logger = get_component_logger(__name__, logger)

    async def __aenter__(self) -> "PromptLocationEngine":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.github.aclose()

    async def locate_prompt(
        self,
        repo_ref: RepoRef,
        target_text: str,
        prefer_local_clone: bool = False,
    ) -> list[CandidateLocation]:
        """
        Find the files most likely to hold ``target_text``.

        Args:
            repo_ref: Repository and optional branch
            target_text: Literal prompt text
            prefer_local_clone: Also scan a shallow clone when remote tiers found matches

        Returns:
            One candidate per file path; empty when the prompt was not found
        """
        if not target_text or not target_text.strip():
            self.logger.info("Empty target text, nothing to locate in %s", repo_ref.full_name)
            return []

        strategies = self.strategy_generator.generate(target_text)
        self.logger.info(
            "Locating prompt in %s with %d strategies", repo_ref.full_name, len(strategies),
        )
        # Fresh tiers per run so no cache outlives it
        orchestrator = self.orchestrator_factory()
        return await orchestrator.locate(repo_ref, strategies, prefer_local_clone)

    async def validate_and_replace(
        self,
        candidates: list[CandidateLocation],
        target_text: str,
        new_text: str,
    ) -> list[Replacement]:
        """
        Validate candidates when ambiguous and compute replacements.

        A single candidate skips the validator, unless it was found by a
        generic marker. Replacements that leave the file unchanged are dropped.

        Raises:
            PromptNotFoundError: When there are no candidates
            NoValidMatchError: When the validator rejects every candidate
        """
        if not candidates:
            msg = "Prompt not found in any search tier"
            raise PromptNotFoundError(msg)

        if len(candidates) == 1 and not candidates[0].from_marker:
            candidate = candidates[0]
            locations = [
                ValidatedLocation.from_candidate(
                    candidate,
                    is_real_match=True,
                    validation_confidence=candidate.confidence,
                    reasoning=SINGLE_CANDIDATE_REASONING,
                ),
            ]
        else:
            locations = await self.validator.validate(candidates, target_text)
            if not locations:
                msg = f"None of {len(candidates)} candidates is a real prompt definition"
                raise NoValidMatchError(msg)

        replacements = await asyncio.gather(
            *(self.replacer.replace(loc, target_text, new_text) for loc in locations),
        )
        changed = []
        for replacement in replacements:
            if replacement.is_noop:
                self.logger.warning(
                    "Replacement for %s changes nothing, dropping it", replacement.file_path,
                )
                continue
            changed.append(replacement)
        return changed

    async def publish(
        self,
        replacements: list[Replacement],
        base_ref: RepoRef,
        metadata: PublicationMetadata,
    ) -> PublicationResult:
        return await self.publisher.publish(replacements, base_ref, metadata)

    async def optimize_prompt(
        self,
        repository_url: str,
        original_text: str,
        optimized_text: str,
        metrics: dict[str, Any] | None = None,
        branch: str | None = None,
        prefer_local_clone: bool = False,
        title: str | None = None,
    ) -> PublicationResult:
        """
        Locate, replace and publish in one run.

        Every failure, expected or not, is returned as a failed result.
        """
        try:
            owner, repo = parse_repository_url(repository_url)
            validate_prompt_text(original_text, "original_text")
            validate_prompt_text(optimized_text, "optimized_text")
            if original_text == optimized_text:
                return PublicationResult.failure(
                    "Optimized prompt is identical to the original",
                    ErrorCode.INVALID_INPUT,
                )
            repo_ref = RepoRef(owner=owner, repo=repo, branch=branch)

            auth = await self.github.verify_token_permissions()
            if not auth.get("authenticated"):
                return PublicationResult.failure(
                    "GitHub token authentication failed",
                    ErrorCode.AUTHENTICATION_FAILED,
                )

            candidates = await self.locate_prompt(repo_ref, original_text, prefer_local_clone)
            replacements = await self.validate_and_replace(
                candidates, original_text, optimized_text,
            )
            if not replacements:
                return PublicationResult.failure(
                    "No replacement changes any file content",
                    ErrorCode.NO_CHANGES,
                    locations_found=len(candidates),
                )

            metadata = PublicationMetadata(
                original_text=original_text,
                new_text=optimized_text,
                metrics=metrics or {},
                title=title,
                locations_found=len(candidates),
            )
            return await self.publish(replacements, repo_ref, metadata)
        except PromptLocatorError as e:
            self.logger.warning("Prompt optimization failed: %s", e)
            return PublicationResult.failure(str(e), e.code)
        except Exception as e:
            self.logger.exception("Unexpected error during prompt optimization")
            return PublicationResult.failure(
                f"Unexpected error: {e}", ErrorCode.UNEXPECTED_ERROR,
            )

    async def detect_prompts(
        self,
        repo_ref: RepoRef,
        file_paths: list[str],
        max_prompts: int | None = None,
    ) -> list[DetectedPrompt]:
        """Read the given files concurrently and extract the prompts they define."""
        reads = await asyncio.gather(
            *(self._read_file(repo_ref, path) for path in dict.fromkeys(file_paths)),
        )
        files = [hit for hit in reads if hit is not None]
        return await self.detector.detect(files, max_prompts or self.max_detected_prompts)

    async def _read_file(self, repo_ref: RepoRef, path: str) -> FileHit | None:
        try:
            return await self.github.get_file(
                repo_ref.owner, repo_ref.repo, path, repo_ref.branch,
            )
        except GitHubAPIError as e:
            self.logger.warning("Could not read %s: %s", path, e)
            return None

    async def discover_prompts(
        self,
        repo_ref: RepoRef,
        prefer_local_clone: bool = False,
        max_files: int | None = None,
        max_prompts: int | None = None,
    ) -> RepositoryDiscovery:
        """
        Rank the likely prompt files of a repository and extract their prompts.

        Args:
            repo_ref: Repository and optional branch
            prefer_local_clone: Scan a shallow clone instead of the remote tiers
            max_files: Top-ranked files sent to detection
            max_prompts: Prompts extracted per file

        Raises:
            ConfigurationError: If the engine was built without discovery
        """
        if self.discovery_factory is None:
            msg = "Prompt discovery is not configured"
            raise ConfigurationError(msg)

        discovery = await self.discovery_factory().discover(repo_ref, prefer_local_clone)
        top = discovery.candidates[: max_files or self.discovery_max_files]
        files = [
            FileHit(path=c.file_path, content=c.content, content_hash=c.content_hash)
            for c in top
        ]
        prompts = await self.detector.detect(files, max_prompts or self.max_detected_prompts)
        self.logger.info(
            "Detected %d prompts in %d of %d discovered files",
            len(prompts),
            len(files),
            len(discovery.candidates),
        )
        return discovery.model_copy(update={"prompts": prompts})
