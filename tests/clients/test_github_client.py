"""
Tests for the hosted platform REST client.
"""

import base64
import json

import httpx
import pytest

from prompt_locator.clients.github import TRANSPORT_ERROR_STATUS
from prompt_locator.core.exceptions import GitHubAPIError


class TestRequest:
    """Test error mapping and request headers."""

    @pytest.mark.asyncio
    async def test_auth_headers(self, github_factory):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"login": "bot"})

        async with github_factory(handler) as client:
            await client.get_authenticated_user()

        assert seen[0].headers["Authorization"] == "Bearer ghs_test_token_1234"
        assert seen[0].headers["Accept"] == "application/vnd.github+json"

    @pytest.mark.asyncio
    async def test_http_error_carries_status_and_message(self, github_factory):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(409, json={"message": "sha does not match"})

        client = github_factory(handler)

        with pytest.raises(GitHubAPIError) as exc_info:
            await client.get_repository("acme", "agents")

        assert exc_info.value.status_code == 409
        assert exc_info.value.message == "sha does not match"
        assert exc_info.value.is_conflict

    @pytest.mark.asyncio
    async def test_transport_error(self, github_factory):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = github_factory(handler)

        with pytest.raises(GitHubAPIError) as exc_info:
            await client.get_repository("acme", "agents")

        assert exc_info.value.status_code == TRANSPORT_ERROR_STATUS

    @pytest.mark.asyncio
    async def test_empty_body(self, github_factory):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(204)

        client = github_factory(handler)

        assert await client.delete_ref("acme", "agents", "heads/tmp") is None

    @pytest.mark.parametrize(
        ("status", "message", "expected"),
        [
            (429, "Too Many Requests", True),
            (403, "API rate limit exceeded for installation", True),
            (403, "Resource not accessible by integration", False),
            (500, "rate limit", False),
        ],
    )
    def test_is_rate_limited(self, status, message, expected):
        assert GitHubAPIError(status, message).is_rate_limited is expected


class TestRepositoryOperations:
    """Test repository metadata helpers."""

    @pytest.mark.asyncio
    async def test_verify_token(self, github_factory):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"login": "bot", "type": "Bot"})

        result = await github_factory(handler).verify_token_permissions()

        assert result == {"authenticated": True, "user": "bot", "user_type": "Bot"}

    @pytest.mark.asyncio
    async def test_verify_token_failure_does_not_raise(self, github_factory):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"message": "Bad credentials"})

        result = await github_factory(handler).verify_token_permissions()

        assert result == {"authenticated": False, "error": "Bad credentials"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("response", "expected"),
        [
            (httpx.Response(200, json={"default_branch": "develop"}), "develop"),
            (httpx.Response(200, json={}), "main"),
            (httpx.Response(404, json={"message": "Not Found"}), "main"),
        ],
    )
    async def test_default_branch(self, github_factory, response, expected):
        client = github_factory(lambda request: response)

        assert await client.get_default_branch("acme", "agents") == expected


class TestContentOperations:
    """Test file reads, listings and commits."""

    @pytest.mark.asyncio
    async def test_get_file_decodes_content(self, github_factory, b64):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/repos/acme/agents/contents/src/my prompt.py"
            assert request.url.params["ref"] == "main"
            return httpx.Response(
                200,
                json={
                    "type": "file",
                    "path": "src/my prompt.py",
                    "content": b64("PROMPT = 'héllo'\n"),
                    "sha": "blob1",
                },
            )

        hit = await github_factory(handler).get_file("acme", "agents", "src/my prompt.py", "main")

        assert hit is not None
        assert hit.content == "PROMPT = 'héllo'\n"
        assert hit.content_hash == "blob1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            [{"name": "a.py", "type": "file"}],
            {"type": "dir", "path": "src"},
            {"type": "file", "path": "img.png", "content": base64.b64encode(b"\xff\xd8").decode()},
        ],
    )
    async def test_get_file_non_text(self, github_factory, payload):
        client = github_factory(lambda request: httpx.Response(200, json=payload))

        assert await client.get_file("acme", "agents", "x") is None

    @pytest.mark.asyncio
    async def test_large_directory_listed_in_one_call(self, github_factory):
        """The contents endpoint returns the whole listing whatever the query says."""
        requests: list[httpx.Request] = []
        listing = [
            {"name": f"f{i}.py", "path": f"src/f{i}.py", "type": "file"} for i in range(150)
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=listing)

        entries = await github_factory(handler).list_directory(
            "acme", "agents", "src", ref="dev",
        )

        assert len(entries) == 150
        assert len(requests) == 1
        assert dict(requests[0].url.params) == {"ref": "dev"}

    @pytest.mark.asyncio
    async def test_list_directory_on_file_path(self, github_factory):
        client = github_factory(
            lambda request: httpx.Response(200, json={"type": "file", "path": "a.py"}),
        )

        assert await client.list_directory("acme", "agents", "a.py") == []

    @pytest.mark.asyncio
    async def test_create_or_update_file_body(self, github_factory):
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"commit": {"sha": "c1"}})

        result = await github_factory(handler).create_or_update_file(
            "acme", "agents", "src/a.py", "Update", "new text", sha="old", branch="feature",
        )

        assert result == {"commit": {"sha": "c1"}}
        assert bodies[0]["sha"] == "old"
        assert bodies[0]["branch"] == "feature"
        assert base64.b64decode(bodies[0]["content"]).decode() == "new text"

    @pytest.mark.asyncio
    async def test_create_ref_requires_full_ref(self, github_factory):
        client = github_factory(lambda request: httpx.Response(201, json={}))

        with pytest.raises(ValueError, match="refs/"):
            await client.create_ref("acme", "agents", "heads/feature", "abc")
        with pytest.raises(ValueError):
            await client.create_ref("acme", "agents", "refs/heads/feature", "")

    @pytest.mark.asyncio
    async def test_search_code_scopes_query(self, github_factory):
        queries: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            queries.append(request.url.params["q"])
            return httpx.Response(200, json={"items": []})

        await github_factory(handler).search_code("acme", "agents", "You are helpful")

        assert queries == ["repo:acme/agents You are helpful"]
