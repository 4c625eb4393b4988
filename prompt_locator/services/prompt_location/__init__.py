"""Prompt location and safe replacement engine.

This package implements the pipeline in stages:
- strategies: Scored queries derived from the literal prompt
- backends: Indexed search, fallback tree scan and local clone scan tiers
- cloning: Ephemeral shallow clones for the local tier
- orchestrator: Two-phase cascade with early exit and dedup
- validator: AI classification of ambiguous candidates (fail-open)
- replacement: AI replacement with a deterministic fallback
- publisher: Branch, conflict-aware commits and pull request
- detector: AI prompt extraction from files
- discovery: High-signal ranking of likely prompt files
- engine: Facade over the whole pipeline
"""

from .backends import FallbackFileScan, LocalCloneScan, RemoteIndexSearch, SearchBackend
from .cloning import GitHubCloneProvider
from .detector import PromptDetector
from .discovery import HIGH_SIGNAL_QUERIES, PromptFileDiscovery
from .engine import PromptLocationEngine
from .factory import create_engine
from .orchestrator import SearchOrchestrator
from .publisher import MutationApplier
from .replacement import ReplacementGenerator, deterministic_replace
from .strategies import StrategyGenerator
from .validator import CandidateValidator

__all__ = [
    "CandidateValidator",
    "FallbackFileScan",
    "GitHubCloneProvider",
    "HIGH_SIGNAL_QUERIES",
    "LocalCloneScan",
    "MutationApplier",
    "PromptDetector",
    "PromptFileDiscovery",
    "PromptLocationEngine",
    "RemoteIndexSearch",
    "ReplacementGenerator",
    "SearchBackend",
    "SearchOrchestrator",
    "StrategyGenerator",
    "create_engine",
    "deterministic_replace",
]
