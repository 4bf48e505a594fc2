"""Core primitives for artifact discovery."""

from .pattern_matcher import DEFAULT_EXCLUDES, DiscoveryError, PatternMatcher

__all__ = [
    "DEFAULT_EXCLUDES",
    "DiscoveryError",
    "PatternMatcher",
]
