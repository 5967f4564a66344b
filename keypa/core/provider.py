"""Provider descriptors and the registry that resolves them."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Type, Union

from .errors import UnknownProviderError
from .types import ProviderType, Value, provider_key

FetchResult = Mapping[str, Value]
FetchFn = Callable[[Any], Union[FetchResult, Awaitable[FetchResult]]]


@dataclass(frozen=True)
class ProviderDescriptor:
    """A registered provider.

    Attributes:
        identifier: Registry key, e.g. ``dotenv``.
        fetch: Callable returning every value the provider contributes.
        is_async: True when ``fetch`` is a coroutine function. Fixed at
            registration so scheduling never has to call the provider.
        options_type: Optional dataclass used to build options from plain
            mappings (``keypa.yaml``).
    """

    identifier: str
    fetch: FetchFn
    is_async: bool
    options_type: Optional[Type[Any]] = None

    def build_options(self, raw: Optional[Mapping[str, Any]]) -> Any:
        return coerce_options(raw, self.options_type)


def coerce_options(options: Any, options_type: Optional[Type[Any]]) -> Any:
    """Turn None or a plain mapping into ``options_type``.

    Instances of ``options_type`` and anything else are returned unchanged.
    """
    if options_type is None or isinstance(options, options_type):
        return options
    if options is None:
        return options_type()
    if isinstance(options, Mapping):
        return options_type(**dict(options))
    return options


class ProviderRegistry:
    """Maps provider identifiers to their descriptors.

    The ``process-env`` provider resolves even when it was never
    registered explicitly.
    """

    def __init__(self) -> None:
        self._providers: Dict[str, ProviderDescriptor] = {}

    def register(
        self,
        provider: Union[ProviderType, str],
        fetch: FetchFn,
        *,
        is_async: Optional[bool] = None,
        options_type: Optional[Type[Any]] = None,
    ) -> ProviderDescriptor:
        """Register (or replace) a provider.

        Args:
            provider: Identifier of the provider.
            fetch: Plain function for providers that never block on I/O,
                coroutine function otherwise.
            is_async: Override the classification read from ``fetch``.
            options_type: Dataclass describing the provider's options.

        Returns:
            The stored descriptor.
        """
        key = provider_key(provider)
        if is_async is None:
            is_async = inspect.iscoroutinefunction(fetch)
        descriptor = ProviderDescriptor(
            identifier=key,
            fetch=fetch,
            is_async=is_async,
            options_type=options_type,
        )
        self._providers[key] = descriptor
        return descriptor

    def resolve(self, provider: Union[ProviderType, str]) -> ProviderDescriptor:
        """Look up a provider.

        Raises:
            UnknownProviderError: If nothing is registered under ``provider``.
        """
        key = provider_key(provider)
        descriptor = self._providers.get(key)
        if descriptor is not None:
            return descriptor
        if key == ProviderType.PROCESS_ENV.value:
            from ..providers import process_env

            return self.register(ProviderType.PROCESS_ENV, process_env.fetch)
        raise UnknownProviderError(key)

    def is_async(self, provider: Union[ProviderType, str]) -> bool:
        return self.resolve(provider).is_async

    def __contains__(self, provider: object) -> bool:
        key = provider_key(provider)
        return key in self._providers or key == ProviderType.PROCESS_ENV.value

    def identifiers(self) -> List[str]:
        return list(self._providers)


def default_registry() -> ProviderRegistry:
    """Build a registry holding every built-in provider.

    Provider modules import their SDKs lazily, so registering them does not
    require the optional cloud dependencies to be importable.
    """
    from ..providers import (
        aws_secrets_manager,
        azure_keyvault,
        env_file,
        github_env,
        process_env,
        redis_kv,
    )

    registry = ProviderRegistry()
    registry.register(ProviderType.PROCESS_ENV, process_env.fetch)
    registry.register(
        ProviderType.DOTENV, env_file.fetch, options_type=env_file.DotenvOptions
    )
    registry.register(
        ProviderType.AZURE_KEYVAULT,
        azure_keyvault.fetch,
        options_type=azure_keyvault.AzureKeyVaultOptions,
    )
    registry.register(
        ProviderType.AWS_SECRETS_MANAGER,
        aws_secrets_manager.fetch,
        options_type=aws_secrets_manager.AwsSecretsManagerOptions,
    )
    registry.register(
        ProviderType.REDIS, redis_kv.fetch, options_type=redis_kv.RedisOptions
    )
    registry.register(
        ProviderType.GITHUB_ENV,
        github_env.fetch,
        options_type=github_env.GitHubEnvOptions,
    )
    return registry
