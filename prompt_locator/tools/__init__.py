"""
MCP tools exposed by the Prompt Locator server.

Tool modules provide a ``register_*_tools(mcp)`` function; ``register_tools``
wires all of them onto a server instance.
"""

from typing import TYPE_CHECKING

from prompt_locator.tools.prompt_tools import register_prompt_tools

if TYPE_CHECKING:
    from fastmcp import FastMCP


def register_tools(mcp: "FastMCP") -> None:
    """Register every tool module on ``mcp``."""
    register_prompt_tools(mcp)


__all__ = [
    "register_prompt_tools",
    "register_tools",
]
