"""Two-phase cascade over the search tiers.

Phase 1 runs strategies one at a time, in descending confidence order,
against the indexed tier, dropping to the fallback scan with the same query
whenever the index has nothing usable. A strong strategy with hits ends
the phase. Phase 2 shallow-clones the target ref and scans it locally; the
clone directory is removed however the phase ends.
"""

import logging
from pathlib import Path
from typing import Protocol

from prompt_locator.config.settings import DedupPolicy
from prompt_locator.core.constants import (
    EARLY_EXIT_CONFIDENCE,
    FALLBACK_CONFIDENCE_FACTOR,
    FALLBACK_MARKERS,
    LOCAL_MARKER_CONFIDENCE,
)
from prompt_locator.core.exceptions import BackendUnavailableError
from prompt_locator.core.logging import get_component_logger
from prompt_locator.services.models import (
    CandidateLocation,
    FileHit,
    RepoRef,
    SearchStrategy,
)

from .backends import SearchBackend
from .strategies import clamp_confidence


class CloneProvider(Protocol):
    async def resolve_ref(self, repo_ref: RepoRef) -> str: ...

    async def clone(self, repo_ref: RepoRef, ref: str) -> Path: ...

    async def remove(self, path: Path) -> None: ...


class SearchOrchestrator:
    """Runs strategies across the tiers and merges hits into candidates."""

    def __init__(
        self,
        indexed: SearchBackend,
        fallback: SearchBackend,
        local: SearchBackend | None = None,
        clone_provider: CloneProvider | None = None,
        *,
        early_exit_confidence: float = EARLY_EXIT_CONFIDENCE,
        fallback_confidence_factor: float = FALLBACK_CONFIDENCE_FACTOR,
        dedup_policy: DedupPolicy = DedupPolicy.FIRST_FOUND,
        local_clone_on_empty: bool = True,
        logger: logging.Logger | None = None,
    ) -> None:
        self.indexed = indexed
        self.fallback = fallback
        self.local = local
        self.clone_provider = clone_provider
        self.early_exit_confidence = early_exit_confidence
        self.fallback_confidence_factor = fallback_confidence_factor
        self.dedup_policy = dedup_policy
        self.local_clone_on_empty = local_clone_on_empty
        self.logger = get_component_logger(__name__, logger)

    async def locate(
        self,
        repo_ref: RepoRef,
        strategies: list[SearchStrategy],
        prefer_local_clone: bool = False,
    ) -> list[CandidateLocation]:
        """
        Find candidate files for the given strategies.

        Args:
            repo_ref: Repository (and optional branch) to search
            strategies: Scored queries, any order
            prefer_local_clone: Run the local clone phase even when Phase 1 found candidates

        Returns:
            At most one candidate per file path, in discovery order
        """
        if not strategies:
            return []

        ordered = sorted(strategies, key=lambda s: s.confidence, reverse=True)
        found: dict[str, CandidateLocation] = {}

        await self._remote_phase(repo_ref, ordered, found)
        self.logger.info(
            "Remote search of %s produced %d candidates", repo_ref.full_name, len(found),
        )

        run_local = prefer_local_clone or (not found and self.local_clone_on_empty)
        if run_local:
            # Generic markers only on an explicit request, so an absent prompt stays absent
            await self._local_phase(
                repo_ref, ordered, found, include_markers=prefer_local_clone,
            )

        return list(found.values())

    async def _remote_phase(
        self,
        repo_ref: RepoRef,
        strategies: list[SearchStrategy],
        found: dict[str, CandidateLocation],
    ) -> None:
        for strategy in strategies:
            hits = await self._search(self.indexed, repo_ref, strategy.query)
            if hits:
                self._merge(
                    found, hits, self.indexed, strategy, strategy.name, strategy.confidence,
                )
            else:
                hits = await self._search(self.fallback, repo_ref, strategy.query)
                self._merge(
                    found,
                    hits,
                    self.fallback,
                    strategy,
                    f"{strategy.name}_fallback",
                    strategy.confidence * self.fallback_confidence_factor,
                )

            if found and strategy.confidence >= self.early_exit_confidence:
                self.logger.info(
                    "Strategy %s (confidence %.2f) found matches, stopping early",
                    strategy.name,
                    strategy.confidence,
                )
                return

    async def _local_phase(
        self,
        repo_ref: RepoRef,
        strategies: list[SearchStrategy],
        found: dict[str, CandidateLocation],
        include_markers: bool = False,
    ) -> None:
        if self.local is None or self.clone_provider is None:
            self.logger.info("Local clone tier not configured, skipping")
            return

        try:
            ref = await self.clone_provider.resolve_ref(repo_ref)
            workdir = await self.clone_provider.clone(repo_ref, ref)
        except Exception as e:
            self.logger.warning(
                "Local clone of %s failed, keeping remote results: %s",
                repo_ref.full_name,
                e,
            )
            return

        try:
            matched = False
            for strategy in strategies:
                hits = await self._search(self.local, workdir, strategy.query)
                if hits:
                    matched = True
                    self._merge(
                        found, hits, self.local, strategy, strategy.name, strategy.confidence,
                    )

            if not matched and include_markers:
                for name, marker in FALLBACK_MARKERS:
                    hits = await self._search(self.local, workdir, marker)
                    marker_strategy = SearchStrategy(
                        name=name, query=marker, confidence=LOCAL_MARKER_CONFIDENCE,
                    )
                    self._merge(
                        found,
                        hits,
                        self.local,
                        marker_strategy,
                        name,
                        LOCAL_MARKER_CONFIDENCE,
                        from_marker=True,
                    )
        finally:
            await self.clone_provider.remove(workdir)

    async def _search(
        self, backend: SearchBackend, root: RepoRef | Path, query: str,
    ) -> list[FileHit]:
        try:
            return await backend.search(root, query)
        except BackendUnavailableError as e:
            self.logger.warning("%s tier unavailable: %s", backend.tier.value, e)
        except Exception:
            self.logger.exception("%s tier failed unexpectedly", backend.tier.value)
        return []

    def _merge(
        self,
        found: dict[str, CandidateLocation],
        hits: list[FileHit],
        backend: SearchBackend,
        strategy: SearchStrategy,
        strategy_name: str,
        confidence: float,
        from_marker: bool = False,
    ) -> None:
        for hit in hits:
            candidate = CandidateLocation(
                file_path=hit.path,
                content=hit.content,
                content_hash=hit.content_hash,
                matched_query=strategy.query,
                strategy_name=strategy_name,
                confidence=clamp_confidence(confidence),
                tier=backend.tier,
                from_marker=from_marker,
            )
            existing = found.get(hit.path)
            if existing is None:
                found[hit.path] = candidate
            elif (
                self.dedup_policy == DedupPolicy.HIGHEST_CONFIDENCE
                and candidate.confidence > existing.confidence
            ):
                found[hit.path] = candidate
