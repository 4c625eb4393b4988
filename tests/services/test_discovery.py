"""
Tests for PromptFileDiscovery: high-signal ranking, marker fallback and the clone tier.
"""

import pytest

from prompt_locator.core.constants import FALLBACK_MARKERS
from prompt_locator.core.exceptions import BackendUnavailableError, GitError
from prompt_locator.services.models import DiscoveryQuery, SearchTier
from prompt_locator.services.prompt_location.backends import LocalCloneScan
from prompt_locator.services.prompt_location.discovery import (
    HIGH_SIGNAL_QUERIES,
    PromptFileDiscovery,
    build_snippet,
    score_candidate,
)

CHAT_MODULE = (
    "from openai import OpenAI\n"
    "client = OpenAI()\n"
    "SYSTEM = 'You are a helpful bot'\n"
    "messages = [{'role': 'system', 'content': SYSTEM}]\n"
)
CHAIN_MODULE = "from langchain.prompts import ChatPromptTemplate\n"


class TestScoring:
    """Test the weighted evidence score."""

    def test_weights_add_up(self):
        score = score_candidate("SYSTEM = 'You are terse'", ["a", "b"], "openai", None)

        assert score == pytest.approx(5.25)

    def test_framework_without_prompt_phrase(self):
        assert score_candidate("x = 1", ["a"], None, "langchain") == pytest.approx(2.5)

    def test_no_evidence(self):
        assert score_candidate("", [], None, None) == 0.0


class TestSnippet:
    """Test the context window around the first hint."""

    def test_window_around_hint(self):
        lines = [f"line {i}" for i in range(12)]
        lines[6] = "client = OpenAI()"

        snippet = build_snippet("\n".join(lines), ["openai"])

        assert snippet == "\n".join(lines[1:11])

    def test_prompt_phrase_when_no_hint_matches(self):
        content = "\n".join(["a", "b", "c", "d", "e", "f", "g", "Your task is to rank", "h"])

        snippet = build_snippet(content, ["missing"])

        assert snippet.splitlines()[0] == "c"
        assert "Your task is to rank" in snippet

    def test_top_of_file_otherwise(self):
        content = "\n".join(str(i) for i in range(20))

        assert build_snippet(content, []) == "\n".join(str(i) for i in range(5))

    def test_empty_content(self):
        assert build_snippet("", ["x"]) == ""


class TestRemoteDiscovery:
    """Test ranking from the indexed and fallback tiers."""

    @pytest.mark.asyncio
    async def test_ranks_files_by_evidence(self, fake_backend, repo_ref):
        indexed = fake_backend(
            SearchTier.INDEXED,
            {"app/chat.py": CHAT_MODULE, "lib/chain.py": CHAIN_MODULE, "README.md": "Docs"},
        )
        fallback = fake_backend(SearchTier.FALLBACK_SCAN)
        discovery = PromptFileDiscovery(indexed, fallback)

        result = await discovery.discover(repo_ref)

        assert [c.file_path for c in result.candidates] == ["app/chat.py", "lib/chain.py"]
        chat = result.candidates[0]
        assert chat.indicators == ["py_openai_from", "py_messages_list", "py_role_system_single"]
        assert chat.provider == "openai"
        assert chat.score == pytest.approx(6.25)
        assert "from openai import OpenAI" in chat.snippet
        assert result.candidates[1].framework == "langchain"
        assert result.providers_detected == ["openai"]
        assert result.frameworks_detected == ["langchain"]
        assert result.repository == "acme/agents"
        assert len(indexed.calls) == len(HIGH_SIGNAL_QUERIES)
        assert fallback.calls == []
        assert not result.used_local_clone

    @pytest.mark.asyncio
    async def test_hit_without_match_hint_is_ignored(self, fake_backend, repo_ref):
        """A search hit only counts when the file holds the query's match hint."""
        indexed = fake_backend(SearchTier.INDEXED, {"a.py": "alpha only"})
        fallback = fake_backend(SearchTier.FALLBACK_SCAN)
        queries = (DiscoveryQuery(name="q", query="alpha", match_hint="beta"),)
        discovery = PromptFileDiscovery(indexed, fallback, queries=queries)

        result = await discovery.discover(repo_ref)

        assert result.candidates == []
        assert indexed.queries == ["alpha"]

    @pytest.mark.asyncio
    async def test_markers_on_fallback_tier_when_index_is_empty(self, fake_backend, repo_ref):
        indexed = fake_backend(SearchTier.INDEXED)
        fallback = fake_backend(SearchTier.FALLBACK_SCAN, {"bot.js": "const p = 'You are a bot'"})
        discovery = PromptFileDiscovery(indexed, fallback)

        result = await discovery.discover(repo_ref)

        assert fallback.queries == [marker for _, marker in FALLBACK_MARKERS]
        assert [c.file_path for c in result.candidates] == ["bot.js"]
        assert result.candidates[0].indicators == ["fallback_you_are"]
        assert "fallback:fallback_you_are" in result.strategies_used

    @pytest.mark.asyncio
    async def test_unavailable_tier_is_skipped(self, fake_backend, repo_ref):
        indexed = fake_backend(SearchTier.INDEXED, fail_with=BackendUnavailableError("down"))
        fallback = fake_backend(SearchTier.FALLBACK_SCAN, {"bot.py": "messages = []"})
        discovery = PromptFileDiscovery(indexed, fallback)

        result = await discovery.discover(repo_ref)

        assert [c.file_path for c in result.candidates] == ["bot.py"]


class TestCloneDiscovery:
    """Test the clone tier and its cleanup."""

    @pytest.mark.asyncio
    async def test_clone_scanned_when_remote_is_empty(
        self, fake_backend, fake_clone_provider, repo_ref,
    ):
        provider = fake_clone_provider(
            {
                "src/agent.py": "import anthropic\nSYSTEM = 'You are terse'\n",
                "docs/persona.md": "You are a pirate",
            },
        )
        discovery = PromptFileDiscovery(
            fake_backend(SearchTier.INDEXED),
            fake_backend(SearchTier.FALLBACK_SCAN),
            LocalCloneScan(),
            provider,
        )

        result = await discovery.discover(repo_ref)

        by_path = {c.file_path: c for c in result.candidates}
        assert set(by_path) == {"src/agent.py", "docs/persona.md"}
        # Markers only count for files without high-signal evidence
        assert by_path["src/agent.py"].indicators == ["py_anthropic_import"]
        assert by_path["src/agent.py"].provider == "anthropic"
        assert by_path["docs/persona.md"].indicators == ["fallback_you_are"]
        assert result.candidates[0].file_path == "src/agent.py"
        assert result.used_local_clone
        assert result.strategies_used[-1] == "local-clone:main"
        assert provider.removed == provider.cloned
        assert not provider.cloned[0].exists()

    @pytest.mark.asyncio
    async def test_prefer_local_clone_skips_remote_tiers(
        self, fake_backend, fake_clone_provider, repo_ref,
    ):
        indexed = fake_backend(SearchTier.INDEXED, {"remote.py": CHAT_MODULE})
        fallback = fake_backend(SearchTier.FALLBACK_SCAN)
        provider = fake_clone_provider({"local.py": CHAT_MODULE})
        discovery = PromptFileDiscovery(indexed, fallback, LocalCloneScan(), provider)

        result = await discovery.discover(repo_ref, prefer_local_clone=True)

        assert indexed.calls == []
        assert fallback.calls == []
        assert [c.file_path for c in result.candidates] == ["local.py"]
        assert result.strategies_used == ["local-clone:main"]

    @pytest.mark.asyncio
    async def test_clone_failure_returns_empty_discovery(
        self, fake_backend, fake_clone_provider, repo_ref,
    ):
        provider = fake_clone_provider(fail_with=GitError("clone failed"))
        discovery = PromptFileDiscovery(
            fake_backend(SearchTier.INDEXED),
            fake_backend(SearchTier.FALLBACK_SCAN),
            LocalCloneScan(),
            provider,
        )

        result = await discovery.discover(repo_ref)

        assert result.candidates == []
        assert not result.used_local_clone
        assert provider.removed == []

    @pytest.mark.asyncio
    async def test_remote_hits_skip_the_clone(self, fake_backend, fake_clone_provider, repo_ref):
        provider = fake_clone_provider({"local.py": CHAT_MODULE})
        discovery = PromptFileDiscovery(
            fake_backend(SearchTier.INDEXED, {"remote.py": CHAT_MODULE}),
            fake_backend(SearchTier.FALLBACK_SCAN),
            LocalCloneScan(),
            provider,
        )

        result = await discovery.discover(repo_ref)

        assert [c.file_path for c in result.candidates] == ["remote.py"]
        assert provider.cloned == []
