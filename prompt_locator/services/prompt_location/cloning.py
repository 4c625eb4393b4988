"""Ephemeral local clones of the target repository."""

import logging
from pathlib import Path

from prompt_locator.clients.git_manager import GitRepositoryManager, build_clone_url
from prompt_locator.clients.github import GitHubClient
from prompt_locator.core.constants import GITHUB_HOST_DEFAULT
from prompt_locator.core.logging import get_component_logger
from prompt_locator.services.models import RepoRef


class GitHubCloneProvider:
    """Resolves the ref to scan and shallow-clones it with the scoped token."""

    def __init__(
        self,
        client: GitHubClient,
        git_manager: GitRepositoryManager,
        token: str | None,
        host: str = GITHUB_HOST_DEFAULT,
        logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.git_manager = git_manager
        self.token = token
        self.host = host
        self.logger = get_component_logger(__name__, logger)

    async def resolve_ref(self, repo_ref: RepoRef) -> str:
        """The caller's branch, or the repository's default branch."""
        if repo_ref.branch:
            return repo_ref.branch
        return await self.client.get_default_branch(repo_ref.owner, repo_ref.repo)

    async def clone(self, repo_ref: RepoRef, ref: str) -> Path:
        url = build_clone_url(repo_ref.owner, repo_ref.repo, self.token, self.host)
        return await self.git_manager.clone(url, ref)

    async def remove(self, path: Path) -> None:
        await self.git_manager.remove_directory(path)
        self.logger.debug("Removed clone directory %s", path)
