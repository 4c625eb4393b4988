"""Publication of replacements as a branch and a pull request.

Every file is committed against the blob SHA it was read at. A file whose
remote content moved on is reported as a conflict and left untouched while
the remaining files continue; any other failure aborts the publication and
removes the branch.
"""

import logging
import time
from collections.abc import Callable

from prompt_locator.clients.github import GitHubClient
from prompt_locator.core.constants import BRANCH_PREFIX_DEFAULT
from prompt_locator.core.exceptions import (
    ErrorCode,
    GitHubAPIError,
    PublicationError,
    StaleContentConflictError,
)
from prompt_locator.core.logging import get_component_logger
from prompt_locator.services.models import (
    FileCommitResult,
    PublicationMetadata,
    PublicationResult,
    Replacement,
    RepoRef,
)

from .pr_content import (
    numeric_metrics,
    render_description,
    render_metrics_comment,
    render_title,
)


class MutationApplier:
    """Creates the branch, commits each file and opens the pull request."""

    def __init__(
        self,
        client: GitHubClient,
        branch_prefix: str = BRANCH_PREFIX_DEFAULT,
        post_metrics_comment: bool = True,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.client = client
        self.branch_prefix = branch_prefix
        self.post_metrics_comment = post_metrics_comment
        self.logger = get_component_logger(__name__, logger)
        self._clock = clock

    def branch_name(self) -> str:
        return f"{self.branch_prefix}-{int(self._clock() * 1000)}"

    async def publish(
        self,
        replacements: list[Replacement],
        base_ref: RepoRef,
        metadata: PublicationMetadata,
    ) -> PublicationResult:
        """
        Publish replacements for review.

        Args:
            replacements: New file contents, each with the hash it was read at
            base_ref: Repository and base branch (default branch when unset)
            metadata: Prompt texts and metrics for the pull request

        Returns:
            Result record; ``success`` is False for every expected failure
        """
        locations_found = metadata.locations_found or len(replacements)
        changes = [r for r in replacements if not r.is_noop]
        if not changes:
            return PublicationResult.failure(
                "No replacement changes any file content",
                ErrorCode.NO_CHANGES,
                locations_found=locations_found,
            )

        owner, repo = base_ref.owner, base_ref.repo
        try:
            base_branch, base_sha = await self._resolve_base(base_ref)
            branch = self.branch_name()
            await self.client.create_ref(owner, repo, f"refs/heads/{branch}", base_sha)
        except (GitHubAPIError, PublicationError) as e:
            self.logger.error("Could not create branch on %s: %s", base_ref.full_name, e)
            return PublicationResult.failure(
                f"Branch creation failed: {e}",
                ErrorCode.PUBLICATION_FAILURE,
                locations_found=locations_found,
            )
        self.logger.info("Created branch %s from %s@%s", branch, base_branch, base_sha[:7])

        file_results: list[FileCommitResult] = []
        committed: list[Replacement] = []
        conflicts: list[str] = []
        for replacement in changes:
            try:
                commit_sha = await self._commit(base_ref, branch, replacement)
            except StaleContentConflictError as e:
                self.logger.warning("Skipping %s: %s", replacement.file_path, e)
                conflicts.append(replacement.file_path)
                file_results.append(
                    FileCommitResult(
                        file_path=replacement.file_path,
                        committed=False,
                        error=str(e),
                        error_code=e.code,
                    ),
                )
                continue
            except GitHubAPIError as e:
                await self._delete_branch(base_ref, branch)
                file_results.append(
                    FileCommitResult(
                        file_path=replacement.file_path,
                        committed=False,
                        error=e.message,
                        error_code=ErrorCode.PUBLICATION_FAILURE,
                    ),
                )
                return PublicationResult.failure(
                    f"Commit of {replacement.file_path} failed: {e}",
                    ErrorCode.PUBLICATION_FAILURE,
                    locations_found=locations_found,
                    conflicts=conflicts,
                    file_results=file_results,
                )

            committed.append(replacement)
            file_results.append(
                FileCommitResult(
                    file_path=replacement.file_path,
                    committed=True,
                    commit_sha=commit_sha,
                ),
            )

        if not committed:
            await self._delete_branch(base_ref, branch)
            return PublicationResult.failure(
                "Every file changed remotely since it was read",
                ErrorCode.STALE_CONTENT_CONFLICT,
                locations_found=locations_found,
                conflicts=conflicts,
                file_results=file_results,
            )

        title = metadata.title or render_title(metadata.metrics, metadata.new_text)
        body = render_description(
            metadata.original_text,
            metadata.new_text,
            metadata.metrics,
            committed,
            conflicts,
        )
        try:
            pull = await self.client.create_pull_request(
                owner, repo, title=title, head=branch, base=base_branch, body=body,
            )
        except GitHubAPIError as e:
            self.logger.error("Pull request creation failed: %s", e)
            await self._delete_branch(base_ref, branch)
            return PublicationResult.failure(
                f"Pull request creation failed: {e}",
                ErrorCode.PUBLICATION_FAILURE,
                locations_found=locations_found,
                conflicts=conflicts,
                file_results=file_results,
            )

        pr_number = pull.get("number")
        self.logger.info("Opened pull request #%s on %s", pr_number, base_ref.full_name)

        if self.post_metrics_comment and pr_number and numeric_metrics(metadata.metrics):
            try:
                await self.client.create_comment(
                    owner,
                    repo,
                    pr_number,
                    render_metrics_comment(metadata.metrics, committed),
                )
            except GitHubAPIError as e:
                self.logger.warning("Could not post metrics comment: %s", e)

        return PublicationResult(
            success=True,
            pr_number=pr_number,
            pr_url=pull.get("html_url"),
            branch_name=branch,
            files_changed=len(committed),
            locations_found=locations_found,
            conflicts=conflicts,
            file_results=file_results,
        )

    async def _resolve_base(self, base_ref: RepoRef) -> tuple[str, str]:
        """Return (branch, head SHA), retrying once on the default branch."""
        owner, repo = base_ref.owner, base_ref.repo
        default_branch = await self.client.get_default_branch(owner, repo)
        branch = base_ref.branch or default_branch
        try:
            ref = await self.client.get_ref(owner, repo, f"heads/{branch}")
        except GitHubAPIError as e:
            if branch == default_branch:
                msg = f"Cannot resolve {branch}: {e.message}"
                raise PublicationError(msg) from e
            self.logger.warning(
                "Cannot resolve %s, falling back to %s: %s", branch, default_branch, e,
            )
            branch = default_branch
            ref = await self.client.get_ref(owner, repo, f"heads/{branch}")

        sha = (ref.get("object") or {}).get("sha")
        if not sha:
            msg = f"Ref heads/{branch} has no commit SHA"
            raise PublicationError(msg)
        return branch, sha

    async def _commit(
        self,
        base_ref: RepoRef,
        branch: str,
        replacement: Replacement,
    ) -> str | None:
        owner, repo = base_ref.owner, base_ref.repo
        expected_hash = replacement.content_hash
        if expected_hash is None:
            try:
                current = await self.client.get_file(
                    owner, repo, replacement.file_path, branch,
                )
            except GitHubAPIError as e:
                if not e.is_not_found:
                    raise
                current = None
            if current is None or current.content != replacement.original_content:
                raise StaleContentConflictError(replacement.file_path)
            expected_hash = current.content_hash

        try:
            response = await self.client.create_or_update_file(
                owner,
                repo,
                replacement.file_path,
                message=f"Optimize AI prompt in {replacement.file_path}",
                content=replacement.new_content,
                sha=expected_hash,
                branch=branch,
            )
        except GitHubAPIError as e:
            if e.is_conflict:
                raise StaleContentConflictError(replacement.file_path, e.message) from e
            raise

        self.logger.info("Committed %s", replacement.file_path)
        return ((response or {}).get("commit") or {}).get("sha")

    async def _delete_branch(self, base_ref: RepoRef, branch: str) -> None:
        try:
            await self.client.delete_ref(base_ref.owner, base_ref.repo, f"heads/{branch}")
        except GitHubAPIError as e:
            self.logger.warning("Could not delete branch %s: %s", branch, e)
