"""Async REST client for the hosted code platform.

Every failing call raises :class:`GitHubAPIError` carrying the HTTP status and
the platform's message, so callers can branch on structured errors (rate
limit, conflict, not found) instead of opaque transport exceptions.
"""

import base64
import logging
from typing import Any
from urllib.parse import quote

import httpx

from prompt_locator.core.constants import (
    DEFAULT_BRANCH_FALLBACK,
    GITHUB_API_URL_DEFAULT,
    HTTP_REQUEST_TIMEOUT_DEFAULT,
)
from prompt_locator.core.exceptions import GitHubAPIError
from prompt_locator.core.logging import get_component_logger, mask_token
from prompt_locator.services.models import FileHit

# Status reported for transport failures (no HTTP response at all)
TRANSPORT_ERROR_STATUS = 0


class GitHubClient:
    """Thin async wrapper over the platform's REST endpoints."""

    def __init__(
        self,
        token: str,
        base_url: str = GITHUB_API_URL_DEFAULT,
        timeout: float = HTTP_REQUEST_TIMEOUT_DEFAULT,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.logger = get_component_logger(__name__, logger)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Perform a REST call and return the decoded JSON body.

        Raises:
            GitHubAPIError: On any non-2xx status or transport failure
        """
        try:
            response = await self._client.request(
                method, endpoint, params=params, json=json,
            )
        except httpx.HTTPError as e:
            self.logger.warning(
                "Transport error on %s %s (token %s): %s",
                method,
                endpoint,
                mask_token(self.token),
                e,
            )
            raise GitHubAPIError(TRANSPORT_ERROR_STATUS, str(e)) from e

        if response.is_error:
            payload = _safe_json(response)
            message = (
                payload.get("message", response.reason_phrase)
                if isinstance(payload, dict)
                else response.text or response.reason_phrase
            )
            self.logger.debug(
                "HTTP %s on %s %s: %s", response.status_code, method, endpoint, message,
            )
            raise GitHubAPIError(response.status_code, message, payload)

        if not response.content:
            return None
        return _safe_json(response)

    # ========================================
    # User & repository operations
    # ========================================

    async def get_authenticated_user(self) -> dict[str, Any]:
        return await self.request("GET", "/user")

    async def verify_token_permissions(self) -> dict[str, Any]:
        """Check that the token authenticates; never raises."""
        try:
            user = await self.get_authenticated_user()
        except GitHubAPIError as e:
            self.logger.error("Token verification failed: %s", e)
            return {"authenticated": False, "error": e.message}
        return {
            "authenticated": True,
            "user": user.get("login"),
            "user_type": user.get("type"),
        }

    async def get_repository(self, owner: str, repo: str) -> dict[str, Any]:
        return await self.request("GET", f"/repos/{owner}/{repo}")

    async def get_default_branch(self, owner: str, repo: str) -> str:
        """Return the repository's default branch, ``main`` when unreadable."""
        try:
            repository = await self.get_repository(owner, repo)
        except GitHubAPIError as e:
            self.logger.warning(
                "Could not read default branch of %s/%s: %s", owner, repo, e,
            )
            return DEFAULT_BRANCH_FALLBACK
        return repository.get("default_branch") or DEFAULT_BRANCH_FALLBACK

    # ========================================
    # Search & content operations
    # ========================================

    async def search_code(self, owner: str, repo: str, query: str) -> dict[str, Any]:
        """Query the indexed code search endpoint, scoped to one repository."""
        return await self.request(
            "GET",
            "/search/code",
            params={"q": f"repo:{owner}/{repo} {query}"},
        )

    async def get_content(
        self,
        owner: str,
        repo: str,
        path: str = "",
        ref: str | None = None,
    ) -> Any:
        """Return a file object or a directory listing."""
        params = {"ref": ref} if ref else None
        endpoint = f"/repos/{owner}/{repo}/contents/{quote(path)}"
        return await self.request("GET", endpoint, params=params)

    async def list_directory(
        self,
        owner: str,
        repo: str,
        path: str = "",
        ref: str | None = None,
    ) -> list[dict[str, Any]]:
        """List a directory with one contents call.

        The contents endpoint is not paginated; it returns the whole listing
        (capped by the platform at 1,000 entries). A path naming a file
        lists nothing.
        """
        payload = await self.get_content(owner, repo, path, ref)
        if not isinstance(payload, list):
            return []
        return payload

    async def get_file(
        self,
        owner: str,
        repo: str,
        path: str,
        ref: str | None = None,
    ) -> FileHit | None:
        """Read and decode a text file; ``None`` for directories or binary blobs."""
        payload = await self.get_content(owner, repo, path, ref)
        if not isinstance(payload, dict) or payload.get("type", "file") != "file":
            return None
        encoded = payload.get("content")
        if not encoded:
            return None
        try:
            content = base64.b64decode(encoded).decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            self.logger.debug("Skipping non-text file %s", path)
            return None
        return FileHit(
            path=payload.get("path", path),
            content=content,
            content_hash=payload.get("sha"),
        )

    async def create_or_update_file(
        self,
        owner: str,
        repo: str,
        path: str,
        message: str,
        content: str,
        sha: str | None = None,
        branch: str | None = None,
    ) -> dict[str, Any]:
        """Commit a file; the platform rejects the call with 409 when ``sha`` is stale."""
        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if sha:
            body["sha"] = sha
        if branch:
            body["branch"] = branch
        return await self.request(
            "PUT", f"/repos/{owner}/{repo}/contents/{quote(path)}", json=body,
        )

    # ========================================
    # Git ref operations
    # ========================================

    async def get_ref(self, owner: str, repo: str, ref: str) -> dict[str, Any]:
        return await self.request("GET", f"/repos/{owner}/{repo}/git/ref/{ref}")

    async def create_ref(
        self, owner: str, repo: str, ref: str, sha: str,
    ) -> dict[str, Any]:
        if not ref or not sha:
            msg = f"Invalid ref or sha: ref={ref}, sha={sha}"
            raise ValueError(msg)
        if not ref.startswith("refs/"):
            msg = f"Ref must start with 'refs/': {ref}"
            raise ValueError(msg)
        return await self.request(
            "POST", f"/repos/{owner}/{repo}/git/refs", json={"ref": ref, "sha": sha},
        )

    async def delete_ref(self, owner: str, repo: str, ref: str) -> None:
        await self.request("DELETE", f"/repos/{owner}/{repo}/git/refs/{ref}")

    # ========================================
    # Pull request operations
    # ========================================

    async def create_pull_request(
        self,
        owner: str,
        repo: str,
        title: str,
        head: str,
        base: str,
        body: str,
    ) -> dict[str, Any]:
        return await self.request(
            "POST",
            f"/repos/{owner}/{repo}/pulls",
            json={"title": title, "head": head, "base": base, "body": body},
        )

    async def create_comment(
        self, owner: str, repo: str, issue_number: int, body: str,
    ) -> dict[str, Any]:
        return await self.request(
            "POST",
            f"/repos/{owner}/{repo}/issues/{issue_number}/comments",
            json={"body": body},
        )


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
