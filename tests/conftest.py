"""
Shared pytest fixtures and configuration for all tests.

No test talks to the network, git or an AI provider: the platform client
runs on an httpx MockTransport, git subprocesses are patched and the AI
client is an AsyncMock.
"""

import base64
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from prompt_locator.clients.github import GitHubClient
from prompt_locator.config import reset_settings
from prompt_locator.services.models import (
    CandidateLocation,
    FileHit,
    RepoRef,
    SearchTier,
    ValidatedLocation,
)
from prompt_locator.services.prompt_location.backends import SearchBackend

SYSTEM_PROMPT = (
    "You are a helpful support assistant for Acme Corp. "
    "Answer questions about orders politely and concisely. "
    "Never reveal internal pricing rules or discount codes to customers."
)


class FakeBackend(SearchBackend):
    """In-memory search tier recording every query it receives."""

    def __init__(
        self,
        tier: SearchTier,
        files: dict[str, str] | None = None,
        fail_with: Exception | None = None,
    ) -> None:
        self.tier = tier
        self.files = files or {}
        self.fail_with = fail_with
        self.calls: list[tuple[Any, str]] = []

    async def search(self, root: Any, query: str) -> list[FileHit]:
        self.calls.append((root, query))
        if self.fail_with is not None:
            raise self.fail_with
        return [
            FileHit(path=path, content=content, content_hash=f"sha-{path}")
            for path, content in self.files.items()
            if query in content
        ]

    @property
    def queries(self) -> list[str]:
        return [query for _, query in self.calls]


class FakeCloneProvider:
    """Clone provider that materialises files into a real temporary directory."""

    def __init__(
        self,
        base_dir: Path,
        files: dict[str, str] | None = None,
        fail_with: Exception | None = None,
    ) -> None:
        self.base_dir = base_dir
        self.files = files or {}
        self.fail_with = fail_with
        self.cloned: list[Path] = []
        self.removed: list[Path] = []

    async def resolve_ref(self, repo_ref: RepoRef) -> str:
        return repo_ref.branch or "main"

    async def clone(self, repo_ref: RepoRef, ref: str) -> Path:
        if self.fail_with is not None:
            raise self.fail_with
        workdir = self.base_dir / f"clone-{len(self.cloned)}"
        for path, content in self.files.items():
            target = workdir / path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        workdir.mkdir(parents=True, exist_ok=True)
        self.cloned.append(workdir)
        return workdir

    async def remove(self, path: Path) -> None:
        shutil.rmtree(path, ignore_errors=True)
        self.removed.append(path)


@pytest.fixture(autouse=True)
def clean_settings():
    """Reset the settings singleton around each test."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def system_prompt() -> str:
    return SYSTEM_PROMPT


@pytest.fixture
def repo_ref() -> RepoRef:
    return RepoRef(owner="acme", repo="agents")


@pytest.fixture
def candidate_factory() -> Callable[..., CandidateLocation]:
    """Factory for candidate locations with sensible defaults."""

    def _factory(
        file_path: str = "src/prompts.py",
        content: str | None = None,
        confidence: float = 1.0,
        strategy_name: str = "full_prompt",
        matched_query: str = SYSTEM_PROMPT,
        content_hash: str | None = "abc123",
    ) -> CandidateLocation:
        return CandidateLocation(
            file_path=file_path,
            content=content if content is not None else f'PROMPT = """{SYSTEM_PROMPT}"""\n',
            content_hash=content_hash,
            matched_query=matched_query,
            strategy_name=strategy_name,
            confidence=confidence,
            tier=SearchTier.INDEXED,
        )

    return _factory


@pytest.fixture
def validated_factory(candidate_factory) -> Callable[..., ValidatedLocation]:
    def _factory(**kwargs: Any) -> ValidatedLocation:
        return ValidatedLocation.from_candidate(
            candidate_factory(**kwargs),
            is_real_match=True,
            validation_confidence=0.9,
            reasoning="Prompt assigned to a constant passed to the chat API",
        )

    return _factory


@pytest.fixture
def mock_ai_client():
    """AI completion client whose ``complete`` is an AsyncMock."""
    client = MagicMock()
    client.complete = AsyncMock()
    return client


@pytest.fixture
def fake_backend():
    """Factory for in-memory search tiers."""
    return FakeBackend


@pytest.fixture
def fake_clone_provider(tmp_path):
    """Factory for clone providers writing into ``tmp_path``."""

    def _factory(files: dict[str, str] | None = None, fail_with: Exception | None = None):
        return FakeCloneProvider(tmp_path, files, fail_with)

    return _factory


@pytest.fixture
def b64():
    """Base64-encode text the way the contents API returns it."""

    def _encode(text: str) -> str:
        return base64.b64encode(text.encode("utf-8")).decode("ascii")

    return _encode


@pytest.fixture
def github_factory():
    """Build a GitHubClient whose requests are answered by ``handler``."""

    def _factory(handler: Callable[[httpx.Request], httpx.Response]) -> GitHubClient:
        return GitHubClient(
            "ghs_test_token_1234",
            base_url="https://api.github.test",
            transport=httpx.MockTransport(handler),
        )

    return _factory
