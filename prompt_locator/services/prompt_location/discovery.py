"""Discovery of prompt-bearing files when no prompt text is known.

High-signal queries (provider SDK imports, framework classes, chat message
shapes) run against the same tiers as prompt location. Each file collects the
indicators that matched it, plus the provider and framework they imply, and
is ranked by a weighted score. The top files feed prompt detection.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from prompt_locator.core.constants import (
    DISCOVERY_FRAMEWORK_WEIGHT,
    DISCOVERY_INDICATOR_WEIGHT,
    DISCOVERY_PROMPT_PHRASE_WEIGHT,
    DISCOVERY_PROVIDER_WEIGHT,
    FALLBACK_MARKERS,
    SNIPPET_CONTEXT_LINES,
)
from prompt_locator.core.exceptions import BackendUnavailableError
from prompt_locator.core.logging import get_component_logger
from prompt_locator.services.models import (
    DiscoveryQuery,
    FileHit,
    PromptFileCandidate,
    RepoRef,
    RepositoryDiscovery,
)

from .backends import SearchBackend
from .orchestrator import CloneProvider


def _q(name: str, query: str, hint: str | None = None, **kind: str) -> DiscoveryQuery:
    return DiscoveryQuery(name=name, query=query, match_hint=hint, **kind)


HIGH_SIGNAL_QUERIES: tuple[DiscoveryQuery, ...] = (
    # Providers
    _q("openai_import", "import OpenAI from 'openai'", provider="openai"),
    _q("openai_chat_create", "chat.completions.create(", provider="openai"),
    _q("py_openai_import", "import openai", provider="openai"),
    _q("py_openai_from", "from openai import", provider="openai"),
    _q("py_openai_chat_create", "openai.ChatCompletion.create(", "ChatCompletion.create(", provider="openai"),
    _q("anthropic_import", "@anthropic-ai/sdk", provider="anthropic"),
    _q("anthropic_messages", "messages.create(", provider="anthropic"),
    _q("py_anthropic_import", "import anthropic", provider="anthropic"),
    _q("py_anthropic_from", "from anthropic import", provider="anthropic"),
    _q("google_gemini_import", "@google/generative-ai", provider="google"),
    _q("py_google_gemini_import", "import google.generativeai", "google.generativeai", provider="google"),
    _q("py_vertex_generative_model", "from vertexai.generative_models import", "vertexai", provider="google"),
    _q("azure_openai", "@azure/openai", provider="azure-openai"),
    _q("py_azure_openai_client", "AzureOpenAI(", provider="azure-openai"),
    _q("aws_bedrock", "@aws-sdk/client-bedrock-runtime", provider="bedrock"),
    _q("py_bedrock_boto3", "bedrock-runtime", provider="bedrock"),
    _q("py_cohere_import", "import cohere", provider="cohere"),
    _q("py_groq_import", "from groq import Groq", provider="groq"),
    _q("py_mistral_import", "from mistralai", provider="mistral"),
    _q("py_ollama_import", "import ollama", provider="ollama"),
    # Frameworks
    _q("langchain_import", 'from "langchain', "langchain", framework="langchain"),
    _q("py_langchain_import", "from langchain", framework="langchain"),
    _q("py_langchain_chatprompt", "ChatPromptTemplate", framework="langchain"),
    _q("vercel_generate_text", "generateText(", framework="ai-sdk"),
    _q("llamaindex_import", 'from "llamaindex"', "llamaindex", framework="llamaindex"),
    _q("py_llamaindex_import", "from llama_index", framework="llamaindex"),
    _q("py_pydantic_ai_agent", "from pydantic_ai import", framework="pydantic-ai"),
    # Prompt shapes
    _q("messages_array", "messages: [", "messages"),
    _q("role_system_single", "role: 'system'", "role"),
    _q("role_system_double", 'role: "system"', "role"),
    _q("systemPrompt_var", "systemPrompt"),
    _q("promptTemplate_var", "promptTemplate"),
    _q("py_messages_list", "messages = [", "messages"),
    _q("py_role_system_single", "'role': 'system'", "role"),
    _q("py_role_system_double", '"role": "system"', "role"),
    _q("py_system_prompt_var", "system_prompt"),
    _q("py_prompt_template_var", "prompt_template"),
)

_PROMPT_PHRASE_RE = re.compile(
    r"\byou are\b|\byour task is\b|messages\s*:\s*\[|role\s*:\s*['\"]system['\"]",
    re.IGNORECASE,
)


@dataclass
class _FileRecord:
    """Indicators collected for one file across every query."""

    path: str
    content: str
    content_hash: str | None
    indicators: list[str] = field(default_factory=list)
    hints: list[str] = field(default_factory=list)
    providers: list[str] = field(default_factory=list)
    frameworks: list[str] = field(default_factory=list)

    def add(self, query: DiscoveryQuery) -> None:
        if query.name not in self.indicators:
            self.indicators.append(query.name)
            self.hints.append(query.hint)
        if query.provider and query.provider not in self.providers:
            self.providers.append(query.provider)
        if query.framework and query.framework not in self.frameworks:
            self.frameworks.append(query.framework)


def score_candidate(
    content: str,
    indicators: list[str],
    provider: str | None,
    framework: str | None,
) -> float:
    """Weighted evidence that a file defines prompts."""
    score = len(indicators) * DISCOVERY_INDICATOR_WEIGHT
    if provider:
        score += DISCOVERY_PROVIDER_WEIGHT
    if framework:
        score += DISCOVERY_FRAMEWORK_WEIGHT
    if _PROMPT_PHRASE_RE.search(content or ""):
        score += DISCOVERY_PROMPT_PHRASE_WEIGHT
    return round(score, 2)


def build_snippet(
    content: str,
    hints: list[str],
    context_lines: int = SNIPPET_CONTEXT_LINES,
) -> str:
    """Lines around the first line holding a hint, else a prompt phrase, else the top."""
    if not content:
        return ""
    lines = content.split("\n")
    index = -1
    for hint in hints:
        needle = hint.lower()
        index = next((i for i, line in enumerate(lines) if needle in line.lower()), -1)
        if index != -1:
            break
    if index == -1:
        index = next(
            (i for i, line in enumerate(lines) if _PROMPT_PHRASE_RE.search(line)), 0,
        )
    start = max(0, index - context_lines)
    return "\n".join(lines[start : index + context_lines])


class PromptFileDiscovery:
    """Finds and ranks the files of a repository most likely to define prompts."""

    def __init__(
        self,
        indexed: SearchBackend,
        fallback: SearchBackend,
        local: SearchBackend | None = None,
        clone_provider: CloneProvider | None = None,
        queries: tuple[DiscoveryQuery, ...] = HIGH_SIGNAL_QUERIES,
        logger: logging.Logger | None = None,
    ) -> None:
        self.indexed = indexed
        self.fallback = fallback
        self.local = local
        self.clone_provider = clone_provider
        self.queries = queries
        self.logger = get_component_logger(__name__, logger)

    async def discover(
        self,
        repo_ref: RepoRef,
        prefer_local_clone: bool = False,
    ) -> RepositoryDiscovery:
        """
        Rank the files of ``repo_ref`` by prompt-related evidence.

        The indexed tier runs every high-signal query. When it finds nothing,
        the tree scan looks for generic prompt markers. A shallow clone is
        scanned when both come back empty, or on request.

        Args:
            repo_ref: Repository and optional branch
            prefer_local_clone: Scan a clone instead of the remote tiers

        Returns:
            Candidates sorted by descending score, with detected providers and frameworks
        """
        records: dict[str, _FileRecord] = {}
        used: list[str] = []

        if not prefer_local_clone:
            for query in self.queries:
                used.append(f"search:{query.name}")
                hits = await self._search(self.indexed, repo_ref, query.query)
                self._record(records, hits, query)

            if not records:
                for name, marker in FALLBACK_MARKERS:
                    used.append(f"fallback:{name}")
                    hits = await self._search(self.fallback, repo_ref, marker)
                    self._record(records, hits, DiscoveryQuery(name=name, query=marker))

        used_local_clone = False
        if not records or prefer_local_clone:
            used_local_clone = await self._scan_clone(repo_ref, records, used)

        candidates = sorted(
            (self._to_candidate(record) for record in records.values()),
            key=lambda c: c.score,
            reverse=True,
        )
        providers = dict.fromkeys(p for r in records.values() for p in r.providers)
        frameworks = dict.fromkeys(f for r in records.values() for f in r.frameworks)
        self.logger.info(
            "Discovery in %s ranked %d files (providers: %s)",
            repo_ref.full_name,
            len(candidates),
            ", ".join(providers) or "none",
        )
        return RepositoryDiscovery(
            repository=repo_ref.full_name,
            candidates=candidates,
            providers_detected=list(providers),
            frameworks_detected=list(frameworks),
            strategies_used=used,
            used_local_clone=used_local_clone,
        )

    async def _scan_clone(
        self,
        repo_ref: RepoRef,
        records: dict[str, _FileRecord],
        used: list[str],
    ) -> bool:
        if self.local is None or self.clone_provider is None:
            self.logger.info("Local clone tier not configured, skipping")
            return False

        try:
            ref = await self.clone_provider.resolve_ref(repo_ref)
            workdir = await self.clone_provider.clone(repo_ref, ref)
        except Exception as e:
            self.logger.warning("Local clone of %s failed: %s", repo_ref.full_name, e)
            return False

        used.append(f"local-clone:{ref}")
        try:
            signalled: set[str] = set()
            for query in self.queries:
                hits = await self._search(self.local, workdir, query.query)
                self._record(records, hits, query)
                signalled.update(hit.path for hit in hits if query.hint in hit.content)

            # Markers only count for files no high-signal query matched
            for name, marker in FALLBACK_MARKERS:
                hits = await self._search(self.local, workdir, marker)
                self._record(
                    records,
                    [hit for hit in hits if hit.path not in signalled],
                    DiscoveryQuery(name=name, query=marker),
                )
        finally:
            await self.clone_provider.remove(workdir)
        return True

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

    @staticmethod
    def _record(
        records: dict[str, _FileRecord],
        hits: list[FileHit],
        query: DiscoveryQuery,
    ) -> None:
        for hit in hits:
            if query.hint not in hit.content:
                continue
            record = records.get(hit.path)
            if record is None:
                record = records[hit.path] = _FileRecord(
                    path=hit.path, content=hit.content, content_hash=hit.content_hash,
                )
            record.add(query)

    @staticmethod
    def _to_candidate(record: _FileRecord) -> PromptFileCandidate:
        provider = record.providers[0] if record.providers else None
        framework = record.frameworks[0] if record.frameworks else None
        return PromptFileCandidate(
            file_path=record.path,
            content=record.content,
            content_hash=record.content_hash,
            indicators=list(record.indicators),
            provider=provider,
            framework=framework,
            snippet=build_snippet(record.content, record.hints),
            score=score_candidate(record.content, record.indicators, provider, framework),
        )
