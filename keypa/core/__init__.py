from .config import ValueCache
from .context import ExecutionContext, current_execution_context
from .environment import ConfigBuilder, Environment, ProviderCollection, RegisteredProvider
from .errors import (
    KeypaError,
    NotInitializedError,
    ProviderFetchError,
    UnknownEnvironmentError,
    UnknownProviderError,
    ValueNotFoundError,
)
from .lifecycle import Keypa, KeypaState
from .merge import Aggregator
from .provider import ProviderDescriptor, ProviderRegistry, default_registry
from .types import HydrateEvent, Listener, ProviderType, Value

__all__ = [
    "Aggregator",
    "ConfigBuilder",
    "Environment",
    "ExecutionContext",
    "HydrateEvent",
    "Keypa",
    "KeypaError",
    "KeypaState",
    "Listener",
    "NotInitializedError",
    "ProviderCollection",
    "ProviderDescriptor",
    "ProviderFetchError",
    "ProviderRegistry",
    "ProviderType",
    "RegisteredProvider",
    "UnknownEnvironmentError",
    "UnknownProviderError",
    "Value",
    "ValueCache",
    "ValueNotFoundError",
    "current_execution_context",
    "default_registry",
]
