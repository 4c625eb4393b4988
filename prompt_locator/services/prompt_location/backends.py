"""Search tiers behind one interface.

Each backend answers ``search(root, query)`` with the files whose content
holds the query. ``root`` is a :class:`RepoRef` for the remote tiers and a
local working tree path for the clone tier. A query with no matches returns
an empty list. The indexed tier also degrades to an empty list when the
platform refuses or fails a call; the fallback scan raises
:class:`BackendUnavailableError` once when the tree root cannot be listed.

Backend instances keep per-run caches and must not be shared across runs.
"""

import asyncio
import logging
import os
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from prompt_locator.clients.github import GitHubClient
from prompt_locator.core.constants import (
    FALLBACK_SCAN_CONCURRENCY,
    FALLBACK_SCAN_MAX_DEPTH_DEFAULT,
    LOCAL_SCAN_MAX_DEPTH_DEFAULT,
    MAX_FILE_SIZE_BYTES_DEFAULT,
    MAX_QUERY_LENGTH_DEFAULT,
    RATE_LIMIT_BACKOFF_DEFAULT,
    SEARCH_REQUEST_DELAY_DEFAULT,
    SEARCHABLE_EXTENSIONS,
    SKIP_DIRECTORIES,
)
from prompt_locator.core.exceptions import BackendUnavailableError, GitHubAPIError
from prompt_locator.core.logging import get_component_logger
from prompt_locator.services.models import FileHit, RepoRef, SearchTier
from prompt_locator.utils.text import escape_for_search, git_blob_sha, text_contains


def is_searchable_file(path: str) -> bool:
    """Whether a file name has one of the scanned text extensions."""
    return Path(path).suffix.lower() in SEARCHABLE_EXTENSIONS


def is_skipped_directory(name: str) -> bool:
    """Whether a directory is a build, dependency or hidden directory."""
    return name in SKIP_DIRECTORIES or name.startswith(".")


class SearchBackend(ABC):
    """Abstract base class for search tiers."""

    tier: SearchTier

    @abstractmethod
    async def search(self, root: Any, query: str) -> list[FileHit]:
        """
        Find files whose content holds ``query``.

        Args:
            root: Repository reference or local working tree, depending on the tier
            query: Literal text to look for

        Returns:
            Matching files, empty when nothing matches
        """


class RemoteIndexSearch(SearchBackend):
    """Hosted platform code search, verified against the real file content."""

    tier = SearchTier.INDEXED

    def __init__(
        self,
        client: GitHubClient,
        request_delay: float = SEARCH_REQUEST_DELAY_DEFAULT,
        rate_limit_backoff: float = RATE_LIMIT_BACKOFF_DEFAULT,
        max_query_length: int = MAX_QUERY_LENGTH_DEFAULT,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.request_delay = request_delay
        self.rate_limit_backoff = rate_limit_backoff
        self.max_query_length = max_query_length
        self.logger = get_component_logger(__name__, logger)
        self._sleep = sleep
        self._clock = clock
        self._last_request: float | None = None
        self._access: dict[RepoRef, bool] = {}

    async def search(self, root: RepoRef, query: str) -> list[FileHit]:
        if not await self._has_access(root):
            return []

        search_query = escape_for_search(query, self.max_query_length)
        if not search_query:
            return []

        await self._throttle()
        try:
            response = await self.client.search_code(root.owner, root.repo, search_query)
        except GitHubAPIError as e:
            if e.is_rate_limited:
                self.logger.warning(
                    "Code search rate limited, backing off %.1fs", self.rate_limit_backoff,
                )
                await self._sleep(self.rate_limit_backoff)
            else:
                self.logger.warning("Code search unavailable: %s", e)
            return []

        if not isinstance(response, dict):
            return []
        paths = list(
            dict.fromkeys(
                item["path"]
                for item in response.get("items", [])
                if isinstance(item, dict) and item.get("path")
            ),
        )
        if not paths:
            return []

        files = await asyncio.gather(
            *(self._read(root, path) for path in paths),
        )
        return [hit for hit in files if hit and text_contains(hit.content, query)]

    async def _has_access(self, root: RepoRef) -> bool:
        if root not in self._access:
            try:
                await self.client.get_repository(root.owner, root.repo)
                self._access[root] = True
            except GitHubAPIError as e:
                self.logger.warning(
                    "No read access to %s, skipping indexed search: %s", root.full_name, e,
                )
                self._access[root] = False
        return self._access[root]

    async def _throttle(self) -> None:
        now = self._clock()
        if self._last_request is not None:
            remaining = self.request_delay - (now - self._last_request)
            if remaining > 0:
                await self._sleep(remaining)
        self._last_request = self._clock()

    async def _read(self, root: RepoRef, path: str) -> FileHit | None:
        try:
            return await self.client.get_file(root.owner, root.repo, path, root.branch)
        except GitHubAPIError as e:
            self.logger.debug("Could not read %s: %s", path, e)
            return None


class FallbackFileScan(SearchBackend):
    """Walks the remote tree through the directory listing API.

    The tree is walked once per repository with an explicit stack bounded by
    ``max_depth``; file bodies are read once and reused for later queries.
    """

    tier = SearchTier.FALLBACK_SCAN

    def __init__(
        self,
        client: GitHubClient,
        max_depth: int = FALLBACK_SCAN_MAX_DEPTH_DEFAULT,
        max_file_size: int = MAX_FILE_SIZE_BYTES_DEFAULT,
        concurrency: int = FALLBACK_SCAN_CONCURRENCY,
        logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.max_depth = max_depth
        self.max_file_size = max_file_size
        self.concurrency = concurrency
        self.logger = get_component_logger(__name__, logger)
        self._files: dict[RepoRef, list[FileHit]] = {}

    async def search(self, root: RepoRef, query: str) -> list[FileHit]:
        if not query.strip():
            return []
        files = await self._load(root)
        return [hit for hit in files if text_contains(hit.content, query)]

    async def _load(self, root: RepoRef) -> list[FileHit]:
        if root not in self._files:
            # An unreadable root is cached as empty so later queries skip it
            self._files[root] = []
            paths = await self._walk(root)
            self.logger.info(
                "Fallback scan reading %d files from %s", len(paths), root.full_name,
            )
            semaphore = asyncio.Semaphore(self.concurrency)

            async def read(path: str) -> FileHit | None:
                async with semaphore:
                    try:
                        return await self.client.get_file(
                            root.owner, root.repo, path, root.branch,
                        )
                    except GitHubAPIError as e:
                        self.logger.debug("Could not read %s: %s", path, e)
                        return None

            hits = await asyncio.gather(*(read(path) for path in paths))
            self._files[root] = [hit for hit in hits if hit is not None]
        return self._files[root]

    async def _walk(self, root: RepoRef) -> list[str]:
        paths: list[str] = []
        stack: list[tuple[str, int]] = [("", 0)]
        while stack:
            directory, depth = stack.pop()
            try:
                entries = await self.client.list_directory(
                    root.owner, root.repo, directory, root.branch,
                )
            except GitHubAPIError as e:
                if not directory:
                    msg = f"Cannot list {root.full_name}: {e.message}"
                    raise BackendUnavailableError(msg) from e
                self.logger.warning("Could not list %s/%s: %s", root.full_name, directory, e)
                continue

            for entry in entries:
                name = entry.get("name", "")
                path = entry.get("path", name)
                kind = entry.get("type")
                if kind == "dir":
                    if depth + 1 < self.max_depth and not is_skipped_directory(name):
                        stack.append((path, depth + 1))
                elif kind == "file":
                    size = entry.get("size") or 0
                    if is_searchable_file(name) and size <= self.max_file_size:
                        paths.append(path)
        return sorted(paths)


class LocalCloneScan(SearchBackend):
    """In-memory substring scan over the files of a local working tree."""

    tier = SearchTier.LOCAL_CLONE

    def __init__(
        self,
        max_depth: int = LOCAL_SCAN_MAX_DEPTH_DEFAULT,
        max_file_size: int = MAX_FILE_SIZE_BYTES_DEFAULT,
        logger: logging.Logger | None = None,
    ) -> None:
        self.max_depth = max_depth
        self.max_file_size = max_file_size
        self.logger = get_component_logger(__name__, logger)
        self._files: dict[Path, list[FileHit]] = {}

    async def search(self, root: str | Path, query: str) -> list[FileHit]:
        if not query.strip():
            return []
        root = Path(root)
        if root not in self._files:
            self._files[root] = await asyncio.get_running_loop().run_in_executor(
                None, self._read_tree, root,
            )
            self.logger.info("Loaded %d text files from %s", len(self._files[root]), root)
        return [hit for hit in self._files[root] if text_contains(hit.content, query)]

    def _read_tree(self, root: Path) -> list[FileHit]:
        hits: list[FileHit] = []
        stack: list[tuple[Path, int]] = [(root, 0)]
        while stack:
            directory, depth = stack.pop()
            try:
                entries = sorted(os.scandir(directory), key=lambda e: e.name)
            except OSError as e:
                self.logger.debug("Could not list %s: %s", directory, e)
                continue

            for entry in entries:
                if entry.is_dir(follow_symlinks=False):
                    if depth + 1 < self.max_depth and not is_skipped_directory(entry.name):
                        stack.append((Path(entry.path), depth + 1))
                    continue
                if not entry.is_file(follow_symlinks=False):
                    continue
                if not is_searchable_file(entry.name):
                    continue
                hit = self._read_file(root, Path(entry.path))
                if hit is not None:
                    hits.append(hit)
        return hits

    def _read_file(self, root: Path, path: Path) -> FileHit | None:
        try:
            if path.stat().st_size > self.max_file_size:
                return None
            content = path.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError):
            return None
        return FileHit(
            path=path.relative_to(root).as_posix(),
            content=content,
            content_hash=git_blob_sha(content),
        )
