"""Prompt Locator: find a literal LLM prompt in a repository and publish its replacement."""

__version__ = "0.1.0"
