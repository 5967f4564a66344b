"""Per-environment provider configuration and the builder that owns it."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Iterator,
    List,
    Optional,
    Union,
)

import structlog

from .context import ExecutionContext
from .errors import UnknownEnvironmentError
from .types import Listener, ProviderType, provider_key

if TYPE_CHECKING:
    from .lifecycle import Keypa

logger = structlog.get_logger(__name__)

STANDARD_ENVIRONMENTS = ("development", "staging", "production")

Initializable = Callable[[ExecutionContext], bool]


def always(_context: ExecutionContext) -> bool:
    return True


@dataclass(frozen=True)
class RegisteredProvider:
    """A provider registered with an Environment.

    Attributes:
        provider: Identifier of the provider.
        options: Provider specific options, passed to its fetch unchanged.
        is_initializable: Predicate deciding, for the current execution
            context, whether the provider runs at all.
    """

    provider: str
    options: Any = None
    is_initializable: Initializable = field(default=always, compare=False)


class ProviderCollection:
    """Ordered provider registrations of one Environment.

    Insertion order is both merge precedence and listener order. The same
    provider type may be registered more than once.
    """

    def __init__(self, environment: "Environment"):
        self._environment = environment
        self._items: List[RegisteredProvider] = []

    def set(
        self,
        provider: Union[ProviderType, str],
        options: Any = None,
        is_initializable: Optional[Initializable] = None,
    ) -> "ProviderCollection":
        """Append a provider registration.

        Ignored once the owning builder is read-only.

        Returns:
            This collection, for chaining.
        """
        key = provider_key(provider)
        if self._environment.is_read_only:
            logger.debug(
                "provider_registration_ignored",
                environment=self._environment.name,
                provider=key,
            )
            return self
        self._items.append(
            RegisteredProvider(
                provider=key,
                options=options,
                is_initializable=is_initializable or always,
            )
        )
        return self

    def get(self, provider: Union[ProviderType, str]) -> Any:
        """Options of the first registration of ``provider``, or None."""
        key = provider_key(provider)
        for item in self._items:
            if item.provider == key:
                return item.options
        return None

    def get_all(self, provider: Union[ProviderType, str]) -> List[Any]:
        key = provider_key(provider)
        return [item.options for item in self._items if item.provider == key]

    @property
    def provider_types(self) -> List[str]:
        return [item.provider for item in self._items]

    @property
    def items(self) -> List[RegisteredProvider]:
        return list(self._items)

    @property
    def environment(self) -> "Environment":
        return self._environment

    def __iter__(self) -> Iterator[RegisteredProvider]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)


class Environment:
    """Ordered provider configuration for one named environment."""

    def __init__(self, builder: "ConfigBuilder", name: str):
        self.name = name
        self._builder = builder
        self._providers = ProviderCollection(self)

    @property
    def providers(self) -> ProviderCollection:
        return self._providers

    @property
    def registered(self) -> List[RegisteredProvider]:
        return self._providers.items

    @property
    def is_read_only(self) -> bool:
        return self._builder.is_read_only

    @property
    def builder(self) -> "ConfigBuilder":
        return self._builder

    def register_provider(
        self,
        provider: Union[ProviderType, str],
        options: Any = None,
        *,
        when: Optional[Initializable] = None,
    ) -> "Environment":
        self._providers.set(provider, options, when)
        return self


class ConfigBuilder:
    """Collects provider configuration for a set of environments.

    The builder becomes read-only after its first successful
    initialization; later registrations are silently ignored.
    """

    def __init__(self, environments: List[str]):
        self._environments: List[Environment] = [
            Environment(self, name) for name in environments
        ]
        self._is_read_only = False

    @classmethod
    def standard(cls) -> "ConfigBuilder":
        return cls(list(STANDARD_ENVIRONMENTS))

    @classmethod
    def configure(cls, *environments: str) -> "ConfigBuilder":
        """Create a builder for the given environment names.

        Args:
            *environments: Environment names. When none are given the
                standard development/staging/production set is used.
        """
        if not environments:
            return cls.standard()
        unique = list(dict.fromkeys(environments))
        return cls(unique)

    @classmethod
    def from_file(cls, path: Optional[Union[str, Path]] = None) -> "ConfigBuilder":
        """Build from a keypa.yaml file.

        Args:
            path: Explicit file, or None to search the cwd and its parents.
        """
        from .config_loader import ConfigLoader

        return ConfigLoader(path).build()

    @property
    def is_read_only(self) -> bool:
        return self._is_read_only

    def set_read_only(self) -> "ConfigBuilder":
        self._is_read_only = True
        return self

    @property
    def environments(self) -> List[str]:
        return [env.name for env in self._environments]

    def get(self, environment: str) -> Environment:
        """Get the configuration of one environment.

        Raises:
            UnknownEnvironmentError: If the environment was never configured.
        """
        for env in self._environments:
            if env.name == environment:
                return env
        raise UnknownEnvironmentError(environment)

    async def initialize(
        self,
        environment: str,
        listener: Optional[Listener] = None,
        keypa: Optional["Keypa"] = None,
    ) -> "Keypa":
        """Initialize ``keypa`` (a fresh handle by default) from this builder."""
        from .lifecycle import Keypa

        handle = keypa if keypa is not None else Keypa()
        return await handle.initialize(self, environment, listener)
