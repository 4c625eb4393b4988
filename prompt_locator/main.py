"""
Entry point for the Prompt Locator MCP server.

Run with ``prompt-locator-mcp`` (or ``python -m prompt_locator.main``). The
transport, bind address and optional API key come from the environment.
"""

import asyncio
import logging
import sys

from fastmcp import FastMCP
from fastmcp.server.auth import StaticTokenVerifier

from prompt_locator.config import Settings, get_settings
from prompt_locator.core import configure_logging, logger
from prompt_locator.tools import register_tools

SERVER_NAME = "Prompt Locator MCP Server"

TRANSPORT_MAP = {
    "http": "streamable-http",
    "streamable-http": "streamable-http",
    "sse": "sse",
    "stdio": "stdio",
}


def build_auth(settings: Settings) -> StaticTokenVerifier | None:
    """Static API key auth when MCP_API_KEY is set, otherwise none."""
    if not settings.mcp_api_key:
        logger.warning("MCP_API_KEY not set; the server accepts unauthenticated clients")
        return None

    logger.info("API key authentication enabled")
    return StaticTokenVerifier(
        tokens={
            settings.mcp_api_key: {
                "client_id": "mcp-client",
                "scopes": ["read", "write"],
                "expires_at": None,
            },
        },
    )


def create_mcp_server(settings: Settings | None = None) -> FastMCP:
    """Create the server and register the prompt tools on it."""
    settings = settings or get_settings()
    if settings.debug:
        configure_logging(logging.DEBUG)

    server = FastMCP(SERVER_NAME, auth=build_auth(settings))
    register_tools(server)
    logger.debug("Settings: %s", settings.to_dict())
    return server


mcp = create_mcp_server()


async def main() -> None:
    """Serve over the configured transport until cancelled."""
    settings = get_settings()
    transport = TRANSPORT_MAP.get(settings.transport.lower(), "stdio")

    # stdio clients read frames from stdout
    sys.stdout.flush()
    sys.stderr.flush()

    if transport == "stdio":
        logger.info("Serving %s over stdio", SERVER_NAME)
        await mcp.run_async(transport="stdio")
        return

    logger.info("Serving %s over %s on %s:%s", SERVER_NAME, transport, settings.host, settings.port)
    await mcp.run_async(
        transport=transport,  # type: ignore[arg-type]
        host=settings.host,
        port=int(settings.port),
    )


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    run()
