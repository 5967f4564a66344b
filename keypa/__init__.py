"""Keypa - environment scoped configuration and secrets.

Aggregate values from the process environment, .env files and remote
secret stores into one immutable snapshot, with provenance and duplicate
tracking.
"""

from .core.config import ValueCache
from .core.context import ExecutionContext, current_execution_context
from .core.environment import ConfigBuilder, Environment
from .core.errors import (
    KeypaError,
    NotInitializedError,
    ProviderFetchError,
    UnknownEnvironmentError,
    UnknownProviderError,
    ValueNotFoundError,
)
from .core.lifecycle import Keypa, KeypaState
from .core.provider import ProviderRegistry, default_registry
from .core.types import HydrateEvent, ProviderType, Value


def configure(*environments: str) -> ConfigBuilder:
    """Start a builder for ``environments`` (development/staging/production by default)."""
    return ConfigBuilder.configure(*environments)


__all__ = [
    "ConfigBuilder",
    "Environment",
    "ExecutionContext",
    "HydrateEvent",
    "Keypa",
    "KeypaError",
    "KeypaState",
    "NotInitializedError",
    "ProviderFetchError",
    "ProviderRegistry",
    "ProviderType",
    "UnknownEnvironmentError",
    "UnknownProviderError",
    "Value",
    "ValueCache",
    "ValueNotFoundError",
    "configure",
    "current_execution_context",
    "default_registry",
]
