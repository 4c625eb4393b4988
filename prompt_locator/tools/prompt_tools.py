"""
Prompt tools for MCP server.

This module contains the MCP tools exposing the prompt location engine:
- locate_prompt: Find the files holding a literal prompt
- optimize_prompt: Replace a prompt and open a pull request
- detect_prompts: Extract the prompts defined in given files
- discover_prompts: Rank likely prompt files and extract their prompts
"""

import json
import logging
from typing import TYPE_CHECKING, Any

from fastmcp import Context

if TYPE_CHECKING:
    from fastmcp import FastMCP

from prompt_locator.core import MCPToolError, track_request
from prompt_locator.core.exceptions import PromptLocatorError
from prompt_locator.services.models import RepoRef
from prompt_locator.services.prompt_location import create_engine
from prompt_locator.utils.validation import parse_repository_url, validate_prompt_text

logger = logging.getLogger(__name__)


def register_prompt_tools(mcp: "FastMCP") -> None:
    """
    Register prompt-related MCP tools.

    Args:
        mcp: FastMCP instance to register tools with
    """

    @mcp.tool()
    @track_request("locate_prompt")
    async def locate_prompt(
        ctx: Context,
        repo_url: str,
        prompt_text: str,
        *,
        branch: str | None = None,
        prefer_local_clone: bool = False,
    ) -> str:
        """
        Locate the files of a repository that hold a literal LLM prompt.

        Runs scored search strategies against the indexed code search, then a
        directory scan, and finally a shallow clone when nothing was found.

        Args:
            ctx: The MCP context for execution
            repo_url: Repository URL or owner/repo
            prompt_text: The prompt exactly as seen in production logs
            branch: Branch to search (default branch when omitted)
            prefer_local_clone: Also scan a shallow clone of the branch

        Returns:
            JSON with one entry per candidate file.
        """
        try:
            owner, repo = parse_repository_url(repo_url)
            validate_prompt_text(prompt_text, "prompt_text")
            repo_ref = RepoRef(owner=owner, repo=repo, branch=branch)
            async with create_engine() as engine:
                candidates = await engine.locate_prompt(
                    repo_ref, prompt_text, prefer_local_clone,
                )
        except PromptLocatorError as e:
            logger.exception("Prompt location failed")
            msg = f"Prompt location failed: {e!s}"
            raise MCPToolError(msg) from e
        except Exception as e:
            logger.exception("Unexpected error in locate_prompt tool")
            msg = f"Prompt location failed: {e!s}"
            raise MCPToolError(msg) from e

        return json.dumps(
            {
                "success": True,
                "repository": repo_ref.full_name,
                "count": len(candidates),
                "candidates": [
                    candidate.model_dump(mode="json", exclude={"content"})
                    for candidate in candidates
                ],
            },
            indent=2,
        )

    @mcp.tool()
    @track_request("optimize_prompt")
    async def optimize_prompt(
        ctx: Context,
        repo_url: str,
        original_prompt: str,
        optimized_prompt: str,
        *,
        metrics: dict[str, Any] | None = None,
        branch: str | None = None,
        prefer_local_clone: bool = False,
        title: str | None = None,
    ) -> str:
        """
        Replace a prompt in a repository and open a pull request.

        The prompt is located, ambiguous matches are checked by an AI
        classifier, each file is rewritten keeping its structure, and the
        changes are committed to a new branch. Files modified remotely in the
        meantime are skipped and reported.

        Args:
            ctx: The MCP context for execution
            repo_url: Repository URL or owner/repo
            original_prompt: The prompt currently in the code
            optimized_prompt: The prompt to put in its place
            metrics: Before/after metrics shown in the pull request
            branch: Base branch (default branch when omitted)
            prefer_local_clone: Also scan a shallow clone of the branch
            title: Pull request title override

        Returns:
            JSON publication result; failures have success=false and an error_code.
        """
        try:
            async with create_engine() as engine:
                result = await engine.optimize_prompt(
                    repo_url,
                    original_prompt,
                    optimized_prompt,
                    metrics=metrics,
                    branch=branch,
                    prefer_local_clone=prefer_local_clone,
                    title=title,
                )
        except PromptLocatorError as e:
            logger.exception("Prompt optimization could not start")
            msg = f"Prompt optimization failed: {e!s}"
            raise MCPToolError(msg) from e

        return result.model_dump_json(indent=2)

    @mcp.tool()
    @track_request("detect_prompts")
    async def detect_prompts(
        ctx: Context,
        repo_url: str,
        file_paths: list[str],
        *,
        branch: str | None = None,
        max_prompts: int | None = None,
    ) -> str:
        """
        Extract the LLM prompts defined in the given repository files.

        Args:
            ctx: The MCP context for execution
            repo_url: Repository URL or owner/repo
            file_paths: Paths of the files to inspect
            branch: Branch to read (default branch when omitted)
            max_prompts: Maximum prompts per file

        Returns:
            JSON with the detected prompts.
        """
        if not file_paths:
            msg = "file_paths must not be empty"
            raise MCPToolError(msg)

        try:
            owner, repo = parse_repository_url(repo_url)
            repo_ref = RepoRef(owner=owner, repo=repo, branch=branch)
            async with create_engine() as engine:
                prompts = await engine.detect_prompts(repo_ref, file_paths, max_prompts)
        except PromptLocatorError as e:
            logger.exception("Prompt detection failed")
            msg = f"Prompt detection failed: {e!s}"
            raise MCPToolError(msg) from e
        except Exception as e:
            logger.exception("Unexpected error in detect_prompts tool")
            msg = f"Prompt detection failed: {e!s}"
            raise MCPToolError(msg) from e

        return json.dumps(
            {
                "success": True,
                "repository": repo_ref.full_name,
                "count": len(prompts),
                "prompts": [prompt.model_dump(mode="json") for prompt in prompts],
            },
            indent=2,
        )

    @mcp.tool()
    @track_request("discover_prompts")
    async def discover_prompts(
        ctx: Context,
        repo_url: str,
        *,
        branch: str | None = None,
        prefer_local_clone: bool = False,
        max_files: int | None = None,
        max_prompts: int | None = None,
    ) -> str:
        """
        Find the files of a repository most likely to define LLM prompts.

        High-signal queries for provider SDKs, frameworks and chat message
        shapes rank the files, and the top-ranked ones go through prompt
        detection.

        Args:
            ctx: The MCP context for execution
            repo_url: Repository URL or owner/repo
            branch: Branch to search (default branch when omitted)
            prefer_local_clone: Scan a shallow clone instead of the remote tiers
            max_files: Top-ranked files sent to detection
            max_prompts: Maximum prompts per file

        Returns:
            JSON with ranked candidate files, detected providers and frameworks, and prompts.
        """
        try:
            owner, repo = parse_repository_url(repo_url)
            repo_ref = RepoRef(owner=owner, repo=repo, branch=branch)
            async with create_engine() as engine:
                discovery = await engine.discover_prompts(
                    repo_ref,
                    prefer_local_clone=prefer_local_clone,
                    max_files=max_files,
                    max_prompts=max_prompts,
                )
        except PromptLocatorError as e:
            logger.exception("Prompt discovery failed")
            msg = f"Prompt discovery failed: {e!s}"
            raise MCPToolError(msg) from e
        except Exception as e:
            logger.exception("Unexpected error in discover_prompts tool")
            msg = f"Prompt discovery failed: {e!s}"
            raise MCPToolError(msg) from e

        payload = discovery.model_dump(mode="json", exclude={"candidates": {"__all__": {"content"}}})
        payload["success"] = True
        payload["count"] = len(discovery.candidates)
        return json.dumps(payload, indent=2)
