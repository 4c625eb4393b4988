"""
Git repository manager for ephemeral shallow clones.

This module provides the credentialed depth-1 clone primitive used by the
local clone search tier, plus the unconditional directory removal that
keeps repeated runs from accumulating working trees on disk.
"""

import asyncio
import logging
import os
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any
from urllib.parse import quote

from prompt_locator.core.constants import (
    CLONE_DIR_PREFIX,
    CLONE_TIMEOUT_DEFAULT,
    GITHUB_HOST_DEFAULT,
)
from prompt_locator.core.exceptions import GitError
from prompt_locator.core.logging import get_component_logger, mask_token


def build_clone_url(
    owner: str,
    repo: str,
    token: str | None = None,
    host: str = GITHUB_HOST_DEFAULT,
) -> str:
    """HTTPS clone URL, with a scoped installation token embedded when given."""
    if token:
        return f"https://x-access-token:{quote(token, safe='')}@{host}/{owner}/{repo}.git"
    return f"https://{host}/{owner}/{repo}.git"


class GitRepositoryManager:
    """Manages shallow clone operations with async subprocess calls."""

    def __init__(
        self,
        timeout: float = CLONE_TIMEOUT_DEFAULT,
        logger: logging.Logger | None = None,
    ) -> None:
        self.timeout = timeout
        self.logger = get_component_logger(__name__, logger)

    async def clone(self, url: str, ref: str) -> Path:
        """
        Clone exactly one ref at depth 1 into a fresh temporary directory.

        Args:
            url: Clone URL (may embed a credential)
            ref: Branch or tag to clone

        Returns:
            Path to the working tree

        Raises:
            GitError: If cloning fails; the temporary directory is already removed
        """
        target_dir = Path(tempfile.mkdtemp(prefix=CLONE_DIR_PREFIX))
        cmd = [
            "git",
            "clone",
            "--depth",
            "1",
            "--single-branch",
            "--branch",
            ref,
            url,
            str(target_dir),
        ]

        self.logger.info("Shallow cloning %s@%s into %s", _redact(url), ref, target_dir)
        try:
            await self._run_git_command(cmd, secrets=_secrets_in(url))
        except BaseException:
            await self.remove_directory(target_dir)
            raise

        self.logger.info("Repository cloned successfully to %s", target_dir)
        return target_dir

    async def _run_git_command(
        self,
        cmd: list[str],
        cwd: str | None = None,
        secrets: tuple[str, ...] = (),
    ) -> str:
        """
        Run a git command asynchronously.

        Args:
            cmd: Command arguments
            cwd: Working directory
            secrets: Strings scrubbed from any error message

        Returns:
            Command output

        Raises:
            GitError: If the command fails or times out
        """
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
            )
            try:
                stdout, stderr = await asyncio.wait_for(
                    process.communicate(), timeout=self.timeout,
                )
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
                msg = f"Git command timed out after {self.timeout}s"
                raise GitError(msg) from None

            if process.returncode != 0:
                error_msg = stderr.decode("utf-8", "replace") if stderr else "Unknown error"
                msg = f"Git command failed: {_scrub(error_msg, secrets)}"
                raise GitError(msg)

            return stdout.decode("utf-8", "replace")
        except GitError:
            raise
        except Exception as e:
            self.logger.exception("Unexpected error running git command")
            msg = f"Git command execution failed: {_scrub(str(e), secrets)}"
            raise GitError(msg) from e

    async def remove_directory(self, path: str | Path) -> None:
        """
        Remove a directory tree, tolerating read-only entries.

        Args:
            path: Directory path to remove
        """

        def handle_remove_readonly(
            func: Callable[[str], None], failed_path: str, exc: Any,
        ) -> None:
            try:
                if Path(failed_path).exists():
                    Path(failed_path).chmod(0o777)
                    func(failed_path)
            except PermissionError:
                self.logger.warning("Could not remove %s - file in use", failed_path)

        try:
            await asyncio.get_running_loop().run_in_executor(
                None,
                lambda: shutil.rmtree(path, onerror=handle_remove_readonly),
            )
        except FileNotFoundError:
            return
        except Exception as e:
            self.logger.warning("Could not fully remove %s: %s", path, e)


def _secrets_in(url: str) -> tuple[str, ...]:
    if "@" not in url or "://" not in url:
        return ()
    credentials = url.split("://", 1)[1].split("@", 1)[0]
    return tuple(part for part in credentials.split(":") if part)


def _scrub(text: str, secrets: tuple[str, ...]) -> str:
    for secret in secrets:
        text = text.replace(secret, mask_token(secret))
    return text


def _redact(url: str) -> str:
    return _scrub(url, _secrets_in(url))
