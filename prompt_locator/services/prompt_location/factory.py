"""Factory wiring the engine components from settings."""

import logging

from prompt_locator.clients.ai import AICompletionClient
from prompt_locator.clients.git_manager import GitRepositoryManager
from prompt_locator.clients.github import GitHubClient
from prompt_locator.config import Settings, get_settings
from prompt_locator.core.exceptions import ConfigurationError

from .backends import FallbackFileScan, LocalCloneScan, RemoteIndexSearch
from .cloning import GitHubCloneProvider
from .detector import PromptDetector
from .discovery import PromptFileDiscovery
from .engine import PromptLocationEngine
from .orchestrator import SearchOrchestrator
from .publisher import MutationApplier
from .replacement import ReplacementGenerator
from .strategies import StrategyGenerator
from .validator import CandidateValidator


def create_engine(
    settings: Settings | None = None,
    github_token: str | None = None,
    logger: logging.Logger | None = None,
) -> PromptLocationEngine:
    """Build a :class:`PromptLocationEngine`.

    Args:
        settings: Settings to read, the process settings when omitted
        github_token: Scoped token overriding ``GITHUB_TOKEN``
        logger: Logger shared by every component

    Raises:
        ConfigurationError: If no platform token is available
    """
    settings = settings or get_settings()
    token = github_token or settings.github_token
    if not token:
        msg = "A GitHub token is required (set GITHUB_TOKEN)"
        raise ConfigurationError(msg)

    github = GitHubClient(
        token,
        base_url=settings.github_api_url,
        timeout=settings.github_timeout,
        logger=logger,
    )
    ai_client = AICompletionClient(
        model_name=settings.model_choice,
        temperature=settings.llm_temperature,
        timeout=settings.llm_timeout,
        output_retries=settings.llm_output_retries,
        api_key=settings.openai_api_key,
        logger=logger,
    )
    clone_provider = GitHubCloneProvider(
        github,
        GitRepositoryManager(timeout=settings.clone_timeout, logger=logger),
        token=token,
        host=settings.github_host,
        logger=logger,
    )

    def tiers() -> tuple[RemoteIndexSearch, FallbackFileScan, LocalCloneScan]:
        return (
            RemoteIndexSearch(
                github,
                request_delay=settings.search_request_delay,
                rate_limit_backoff=settings.rate_limit_backoff,
                max_query_length=settings.max_query_length,
                logger=logger,
            ),
            FallbackFileScan(
                github,
                max_depth=settings.fallback_scan_max_depth,
                max_file_size=settings.max_file_size_bytes,
                logger=logger,
            ),
            LocalCloneScan(
                max_depth=settings.local_scan_max_depth,
                max_file_size=settings.max_file_size_bytes,
                logger=logger,
            ),
        )

    def orchestrator_factory() -> SearchOrchestrator:
        return SearchOrchestrator(
            *tiers(),
            clone_provider,
            early_exit_confidence=settings.early_exit_confidence,
            fallback_confidence_factor=settings.fallback_confidence_factor,
            dedup_policy=settings.candidate_dedup_policy,
            local_clone_on_empty=settings.local_clone_on_empty,
            logger=logger,
        )

    def discovery_factory() -> PromptFileDiscovery:
        return PromptFileDiscovery(*tiers(), clone_provider, logger=logger)

    return PromptLocationEngine(
        github=github,
        strategy_generator=StrategyGenerator(
            max_strategies=settings.max_strategies,
            prefix_length=settings.strategy_prefix_length,
        ),
        orchestrator_factory=orchestrator_factory,
        validator=CandidateValidator(
            ai_client,
            model_name=settings.validation_model,
            confidence_threshold=settings.validation_confidence_threshold,
            failure_confidence=settings.validation_failure_confidence,
            context_lines=settings.validation_context_lines,
            logger=logger,
        ),
        replacer=ReplacementGenerator(ai_client, model_name=settings.model_choice, logger=logger),
        publisher=MutationApplier(
            github,
            branch_prefix=settings.branch_prefix,
            post_metrics_comment=settings.post_metrics_comment,
            logger=logger,
        ),
        detector=PromptDetector(
            ai_client,
            model_name=settings.model_choice,
            content_limit=settings.detection_content_limit,
            logger=logger,
        ),
        max_detected_prompts=settings.max_detected_prompts,
        discovery_factory=discovery_factory,
        discovery_max_files=settings.discovery_max_files,
        logger=logger,
    )
