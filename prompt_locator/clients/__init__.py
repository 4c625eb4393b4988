"""Collaborator clients: hosted platform REST, git, and AI completions."""

from .ai import AICompletionClient, ChatMessage
from .git_manager import GitRepositoryManager, build_clone_url
from .github import GitHubClient

__all__ = [
    "AICompletionClient",
    "ChatMessage",
    "GitHubClient",
    "GitRepositoryManager",
    "build_clone_url",
]
