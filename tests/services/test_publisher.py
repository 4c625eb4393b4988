"""
Tests for MutationApplier: branch, per-file commits and the pull request.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from prompt_locator.core.exceptions import ErrorCode, GitHubAPIError
from prompt_locator.services.models import (
    FileHit,
    PublicationMetadata,
    Replacement,
    RepoRef,
)
from prompt_locator.services.prompt_location.publisher import MutationApplier

BRANCH = "prompt-optimization-1700000000000"


@pytest.fixture
def github():
    """Platform client whose every call succeeds."""
    client = MagicMock()
    client.get_default_branch = AsyncMock(return_value="main")
    client.get_ref = AsyncMock(return_value={"object": {"sha": "base1234567"}})
    client.create_ref = AsyncMock(return_value={})
    client.create_or_update_file = AsyncMock(return_value={"commit": {"sha": "commit1"}})
    client.create_pull_request = AsyncMock(
        return_value={"number": 7, "html_url": "https://github.com/acme/agents/pull/7"},
    )
    client.create_comment = AsyncMock(return_value={})
    client.delete_ref = AsyncMock(return_value=None)
    client.get_file = AsyncMock(return_value=None)
    return client


@pytest.fixture
def applier(github):
    return MutationApplier(github, clock=lambda: 1_700_000_000.0)


@pytest.fixture
def metadata(system_prompt):
    return PublicationMetadata(
        original_text=system_prompt,
        new_text="Be brief and polite.",
        metrics={"improvement": 0.15, "totalEvaluations": 40},
    )


def replacement(path: str, content_hash: str | None = "sha-old", **kwargs) -> Replacement:
    values = {
        "file_path": path,
        "original_content": "PROMPT = 'old'\n",
        "new_content": "PROMPT = 'new'\n",
        "content_hash": content_hash,
        "explanation": "Prompt replaced",
        "strategy_name": "full_prompt",
        "validation_confidence": 0.9,
    }
    values.update(kwargs)
    return Replacement(**values)


class TestPublishSuccess:
    """Test the happy path."""

    @pytest.mark.asyncio
    async def test_single_file(self, applier, github, repo_ref, metadata):
        result = await applier.publish([replacement("src/a.py")], repo_ref, metadata)

        assert result.success is True
        assert result.pr_number == 7
        assert result.pr_url == "https://github.com/acme/agents/pull/7"
        assert result.branch_name == BRANCH
        assert result.files_changed == 1
        assert result.conflicts == []
        assert result.file_results[0].commit_sha == "commit1"

        github.create_ref.assert_awaited_once_with(
            "acme", "agents", f"refs/heads/{BRANCH}", "base1234567",
        )
        commit = github.create_or_update_file.await_args
        assert commit.args[:3] == ("acme", "agents", "src/a.py")
        assert commit.kwargs["sha"] == "sha-old"
        assert commit.kwargs["branch"] == BRANCH
        assert commit.kwargs["content"] == "PROMPT = 'new'\n"
        assert commit.kwargs["message"] == "Optimize AI prompt in src/a.py"

        pull = github.create_pull_request.await_args.kwargs
        assert pull["head"] == BRANCH
        assert pull["base"] == "main"
        assert pull["title"] == "Optimize AI prompt: 15% improvement"
        github.create_comment.assert_awaited_once()
        github.delete_ref.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_explicit_title_and_no_comment_without_metrics(
        self, applier, github, repo_ref, system_prompt,
    ):
        metadata = PublicationMetadata(
            original_text=system_prompt, new_text="Be brief.", title="Tune support prompt",
        )

        result = await applier.publish([replacement("src/a.py")], repo_ref, metadata)

        assert result.success is True
        assert github.create_pull_request.await_args.kwargs["title"] == "Tune support prompt"
        github.create_comment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_comment_failure_does_not_fail_publication(
        self, applier, github, repo_ref, metadata,
    ):
        github.create_comment.side_effect = GitHubAPIError(403, "Forbidden")

        result = await applier.publish([replacement("src/a.py")], repo_ref, metadata)

        assert result.success is True

    @pytest.mark.asyncio
    async def test_unknown_hash_reads_current_content(self, applier, github, repo_ref, metadata):
        github.get_file.return_value = FileHit(
            path="src/a.py", content="PROMPT = 'old'\n", content_hash="sha-remote",
        )

        result = await applier.publish(
            [replacement("src/a.py", content_hash=None)], repo_ref, metadata,
        )

        assert result.success is True
        assert github.create_or_update_file.await_args.kwargs["sha"] == "sha-remote"

    def test_branch_name_uses_clock(self, github):
        assert MutationApplier(github, "tune", clock=lambda: 12.3456).branch_name() == "tune-12345"


class TestConflicts:
    """Test per-file optimistic concurrency."""

    @pytest.mark.asyncio
    async def test_stale_file_skipped_others_committed(
        self, applier, github, repo_ref, metadata,
    ):
        """A 409 on one file leaves it untouched while the rest are committed."""
        github.create_or_update_file.side_effect = [
            GitHubAPIError(409, "src/a.py does not match sha-old"),
            {"commit": {"sha": "commit2"}},
        ]

        result = await applier.publish(
            [replacement("src/a.py"), replacement("src/b.py")], repo_ref, metadata,
        )

        assert result.success is True
        assert result.conflicts == ["src/a.py"]
        assert result.files_changed == 1
        first, second = result.file_results
        assert first.committed is False
        assert first.error_code == ErrorCode.STALE_CONTENT_CONFLICT
        assert second.committed is True
        body = github.create_pull_request.await_args.kwargs["body"]
        assert "### Skipped Files" in body
        assert "`src/b.py`" in body

    @pytest.mark.asyncio
    async def test_every_file_stale(self, applier, github, repo_ref, metadata):
        github.create_or_update_file.side_effect = GitHubAPIError(409, "conflict")

        result = await applier.publish([replacement("src/a.py")], repo_ref, metadata)

        assert result.success is False
        assert result.error_code == ErrorCode.STALE_CONTENT_CONFLICT
        assert result.conflicts == ["src/a.py"]
        github.delete_ref.assert_awaited_once_with("acme", "agents", f"heads/{BRANCH}")
        github.create_pull_request.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "current",
        [
            None,
            FileHit(path="src/a.py", content="PROMPT = 'edited'\n", content_hash="sha-x"),
        ],
    )
    async def test_unknown_hash_with_changed_content_is_conflict(
        self, applier, github, repo_ref, metadata, current,
    ):
        github.get_file.return_value = current

        result = await applier.publish(
            [replacement("src/a.py", content_hash=None)], repo_ref, metadata,
        )

        assert result.error_code == ErrorCode.STALE_CONTENT_CONFLICT
        github.create_or_update_file.assert_not_awaited()


class TestFailures:
    """Test aborted publications."""

    @pytest.mark.asyncio
    async def test_no_changes(self, applier, github, repo_ref, metadata):
        noop = replacement("src/a.py", new_content="PROMPT = 'old'\n")

        result = await applier.publish([noop], repo_ref, metadata)

        assert result.success is False
        assert result.error_code == ErrorCode.NO_CHANGES
        github.create_ref.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_commit_error_aborts_and_deletes_branch(
        self, applier, github, repo_ref, metadata,
    ):
        github.create_or_update_file.side_effect = GitHubAPIError(500, "Server Error")

        result = await applier.publish(
            [replacement("src/a.py"), replacement("src/b.py")], repo_ref, metadata,
        )

        assert result.success is False
        assert result.error_code == ErrorCode.PUBLICATION_FAILURE
        assert len(result.file_results) == 1
        github.delete_ref.assert_awaited_once()
        github.create_pull_request.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_pull_request_error_deletes_branch(self, applier, github, repo_ref, metadata):
        github.create_pull_request.side_effect = GitHubAPIError(422, "Validation Failed")

        result = await applier.publish([replacement("src/a.py")], repo_ref, metadata)

        assert result.success is False
        assert result.error_code == ErrorCode.PUBLICATION_FAILURE
        assert "Pull request creation failed" in result.error
        github.delete_ref.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_branch_creation_error(self, applier, github, repo_ref, metadata):
        github.create_ref.side_effect = GitHubAPIError(422, "Reference already exists")

        result = await applier.publish([replacement("src/a.py")], repo_ref, metadata)

        assert result.success is False
        assert result.error_code == ErrorCode.PUBLICATION_FAILURE
        github.create_or_update_file.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_base_branch_falls_back_to_default(
        self, applier, github, metadata,
    ):
        github.get_ref.side_effect = [
            GitHubAPIError(404, "Not Found"),
            {"object": {"sha": "main1234567"}},
        ]

        result = await applier.publish(
            [replacement("src/a.py")],
            RepoRef(owner="acme", repo="agents", branch="gone"),
            metadata,
        )

        assert result.success is True
        assert [c.args[2] for c in github.get_ref.await_args_list] == ["heads/gone", "heads/main"]
        assert github.create_pull_request.await_args.kwargs["base"] == "main"

    @pytest.mark.asyncio
    async def test_unresolvable_default_branch(self, applier, github, repo_ref, metadata):
        github.get_ref.side_effect = GitHubAPIError(404, "Not Found")

        result = await applier.publish([replacement("src/a.py")], repo_ref, metadata)

        assert result.success is False
        assert result.error_code == ErrorCode.PUBLICATION_FAILURE
        assert github.get_ref.await_count == 1
