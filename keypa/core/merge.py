"""Merging logic for the providers of one environment.

Values are merged first-writer-wins: ``process-env`` always runs first,
then the configured providers in order. The leading run of synchronous
providers is fetched and hydrated without ever suspending; the first
asynchronous provider and everything configured after it are awaited one
by one, in order.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

import structlog

from .config import ValueCache
from .context import ExecutionContext
from .environment import Environment, RegisteredProvider
from .errors import ProviderFetchError
from .provider import ProviderDescriptor, ProviderRegistry
from .types import HydrateEvent, Listener, ProviderType, Value

logger = structlog.get_logger(__name__)

PROCESS_ENV = RegisteredProvider(provider=ProviderType.PROCESS_ENV.value)


@dataclass(frozen=True)
class ScheduledProvider:
    """A registration paired with the descriptor that will serve it."""

    registration: RegisteredProvider
    descriptor: ProviderDescriptor

    @property
    def identifier(self) -> str:
        return self.descriptor.identifier


def _checked(item: ScheduledProvider, values: Mapping[str, Value]) -> Mapping[str, Value]:
    """Reject results whose keys disagree with the values' names."""
    for name, value in values.items():
        if name != value.name:
            raise ProviderFetchError(
                item.identifier,
                ValueError(f"value '{value.name}' returned under key '{name}'"),
            )
    return values


class Aggregator:
    """Runs the providers of one environment into a single ValueCache.

    An Aggregator is single use: create one per initialization.
    """

    def __init__(
        self,
        environment: Environment,
        registry: ProviderRegistry,
        execution_context: ExecutionContext = ExecutionContext.UNKNOWN,
        listener: Optional[Listener] = None,
    ):
        self.environment = environment.name
        self.execution_context = execution_context
        self._registry = registry
        self._registrations = environment.registered
        self._listener = listener
        self._accumulator: Dict[str, Value] = {}
        self._view: Mapping[str, Value] = MappingProxyType(self._accumulator)
        self._log = logger.bind(
            component="aggregator",
            environment=self.environment,
            execution_context=execution_context.value,
        )

    @property
    def accumulator(self) -> Mapping[str, Value]:
        return self._view

    def partition(self) -> Tuple[List[ScheduledProvider], List[ScheduledProvider]]:
        """Split configured providers into a synchronous prefix and the rest.

        The prefix stops at the first asynchronous provider; synchronous
        providers configured after it stay in the remainder. The split only
        depends on the static classification, never on ``is_initializable``.

        Returns:
            Tuple of (synchronous_prefix, asynchronous_remainder).

        Raises:
            UnknownProviderError: If a registration names an unknown provider.
        """
        scheduled: List[ScheduledProvider] = []
        for registration in self._registrations:
            if registration.provider == ProviderType.PROCESS_ENV.value:
                # process-env already ran first
                self._log.debug("provider_ignored", provider=registration.provider)
                continue
            descriptor = self._registry.resolve(registration.provider)
            scheduled.append(ScheduledProvider(registration, descriptor))

        boundary = len(scheduled)
        for index, item in enumerate(scheduled):
            if item.descriptor.is_async:
                boundary = index
                break
        prefix, remainder = scheduled[:boundary], scheduled[boundary:]
        self._log.info(
            "keypa_aggregating",
            sync_providers=[item.identifier for item in prefix],
            async_providers=[item.identifier for item in remainder],
        )
        return prefix, remainder

    def hydrate(self, name: str, value: Value) -> None:
        """Merge one value into the accumulator.

        The first value seen for a name wins and is reported to the
        listener. Later ones are recorded as its duplicates.
        """
        existing = self._accumulator.get(name)
        if existing is None:
            self._accumulator[name] = value
            if self._listener is not None:
                self._listener(
                    HydrateEvent(
                        current=value,
                        environment=self.environment,
                        accumulator=self._view,
                        execution_context=self.execution_context,
                    )
                )
            return

        existing.add_duplicate(value)
        self._log.warning(
            "duplicate_value",
            name=name,
            kept_source=existing.source,
            duplicate_source=value.source,
        )

    def hydrate_all(self, values: Mapping[str, Value]) -> None:
        for name, value in values.items():
            self.hydrate(name, value)

    def _should_run(self, item: ScheduledProvider) -> bool:
        if item.registration.is_initializable(self.execution_context):
            return True
        self._log.info("provider_skipped", provider=item.identifier)
        return False

    def _fetch_sync(self, item: ScheduledProvider) -> Mapping[str, Value]:
        try:
            result = item.descriptor.fetch(item.registration.options)
        except Exception as exc:
            raise ProviderFetchError(item.identifier, exc) from exc
        if inspect.isawaitable(result):
            close = getattr(result, "close", None)
            if close is not None:
                close()
            raise ProviderFetchError(
                item.identifier,
                TypeError("synchronous provider returned an awaitable"),
            )
        return _checked(item, result)

    async def _fetch_async(self, item: ScheduledProvider) -> Mapping[str, Value]:
        try:
            result = item.descriptor.fetch(item.registration.options)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            raise ProviderFetchError(item.identifier, exc) from exc
        return _checked(item, result)

    def run_sync_phase(self, prefix: List[ScheduledProvider]) -> None:
        """Fetch process-env and the synchronous prefix. Never suspends."""
        process_env = ScheduledProvider(
            PROCESS_ENV, self._registry.resolve(ProviderType.PROCESS_ENV)
        )
        for item in [process_env, *prefix]:
            if item is not process_env and not self._should_run(item):
                continue
            values = self._fetch_sync(item)
            self._log.debug("provider_fetched", provider=item.identifier, count=len(values))
            self.hydrate_all(values)

    async def run_async_phase(self, remainder: List[ScheduledProvider]) -> None:
        """Await the remaining providers strictly in configured order."""
        for item in remainder:
            if not self._should_run(item):
                continue
            if item.descriptor.is_async:
                values = await self._fetch_async(item)
            else:
                values = self._fetch_sync(item)
            self._log.debug("provider_fetched", provider=item.identifier, count=len(values))
            self.hydrate_all(values)

    async def aggregate(self) -> ValueCache:
        """Run every provider and build the snapshot.

        Everything up to the first asynchronous provider completes before
        this coroutine first yields control.

        Raises:
            UnknownProviderError: Before any provider runs.
            ProviderFetchError: If any fetch fails. No snapshot is built.
        """
        prefix, remainder = self.partition()
        self.run_sync_phase(prefix)
        await self.run_async_phase(remainder)
        return self.snapshot()

    def snapshot(self) -> ValueCache:
        return ValueCache(self.environment, self._accumulator)
