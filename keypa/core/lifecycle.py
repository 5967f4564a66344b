"""Lifecycle of a Keypa handle: initialize once, query, dispose."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, Iterable, List, Optional

import structlog

from .config import ValueCache
from .context import ContextClassifier, current_execution_context
from .environment import ConfigBuilder
from .errors import NotInitializedError
from .merge import Aggregator, ScheduledProvider
from .provider import ProviderRegistry, default_registry
from .types import Listener, Value

logger = structlog.get_logger(__name__)


class KeypaState(Enum):
    """Lifecycle states.

    State transitions:
        UNINITIALIZED -> INITIALIZING: initialize() starts the aggregation
        INITIALIZING -> READY: aggregation succeeded, snapshot published
        INITIALIZING -> UNINITIALIZED: aggregation failed
        Any -> UNINITIALIZED: dispose()
    """

    UNINITIALIZED = auto()
    INITIALIZING = auto()
    READY = auto()


@dataclass(frozen=True)
class _InitParams:
    builder: ConfigBuilder
    environment: str
    listener: Optional[Listener]


def _retrieve_exception(task: "asyncio.Task[ValueCache]") -> None:
    # every caller may have been cancelled before the run failed
    if not task.cancelled():
        task.exception()


class Keypa:
    """Caller-owned holder of one environment snapshot.

    At most one aggregation runs per handle. The synchronous providers run
    inline in the first caller; the asynchronous remainder runs in a task
    that every caller, the first included, waits on through
    ``asyncio.shield``. Callers therefore share the same outcome, and a
    cancelled caller only stops waiting. The in-flight slot is claimed
    without any await between check and set, which makes it race free on a
    single event loop.
    """

    def __init__(
        self,
        registry: Optional[ProviderRegistry] = None,
        context_classifier: Optional[ContextClassifier] = None,
    ):
        self._registry = registry if registry is not None else default_registry()
        self._context_classifier = context_classifier or current_execution_context
        self._state = KeypaState.UNINITIALIZED
        self._cache: Optional[ValueCache] = None
        self._pending: Optional["asyncio.Task[ValueCache]"] = None
        self._params: Optional[_InitParams] = None
        self._generation = 0

    @classmethod
    def configure(cls, *environments: str) -> ConfigBuilder:
        return ConfigBuilder.configure(*environments)

    @property
    def state(self) -> KeypaState:
        return self._state

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def environment(self) -> str:
        return self.current().environment

    async def initialize(
        self,
        builder: ConfigBuilder,
        environment: str,
        listener: Optional[Listener] = None,
    ) -> "Keypa":
        """Aggregate ``environment`` of ``builder`` into this handle.

        Calling it again once ready is a no-op, whatever the arguments.
        Concurrent calls share the single in-flight aggregation.

        Args:
            builder: Provider configuration.
            environment: Environment to load.
            listener: Called once per first-seen value while merging.

        Returns:
            This handle.

        Raises:
            UnknownEnvironmentError: If ``environment`` is not configured.
            UnknownProviderError: If a configured provider is unknown.
            ProviderFetchError: If a provider fails.
        """
        if self._state is KeypaState.READY:
            logger.debug("keypa_already_initialized", environment=self.environment)
            return self
        if self._state is KeypaState.INITIALIZING and self._pending is not None:
            await asyncio.shield(self._pending)
            return self

        self._state = KeypaState.INITIALIZING
        generation = self._generation
        params = _InitParams(builder, environment, listener)
        log = logger.bind(component="lifecycle", environment=environment)
        log.info("keypa_initializing")

        try:
            aggregator = Aggregator(
                builder.get(environment),
                self._registry,
                self._context_classifier(),
                listener,
            )
            prefix, remainder = aggregator.partition()
            aggregator.run_sync_phase(prefix)
        except Exception as exc:
            log.error("keypa_initialize_failed", error=str(exc))
            self._abandon(generation)
            raise

        if not remainder:
            self._publish(params, generation, aggregator.snapshot(), log)
            return self

        # owned by no caller, so cancelling one caller leaves the others waiting
        task = asyncio.ensure_future(
            self._complete(aggregator, remainder, params, generation, log)
        )
        task.add_done_callback(_retrieve_exception)
        self._pending = task
        await asyncio.shield(task)
        return self

    async def _complete(
        self,
        aggregator: Aggregator,
        remainder: List[ScheduledProvider],
        params: _InitParams,
        generation: int,
        log: Any,
    ) -> ValueCache:
        try:
            await aggregator.run_async_phase(remainder)
        except asyncio.CancelledError:
            self._abandon(generation)
            raise
        except Exception as exc:
            log.error("keypa_initialize_failed", error=str(exc))
            self._abandon(generation)
            raise
        cache = aggregator.snapshot()
        self._publish(params, generation, cache, log)
        return cache

    def _publish(
        self, params: _InitParams, generation: int, cache: ValueCache, log: Any
    ) -> None:
        params.builder.set_read_only()
        if generation != self._generation:
            log.info("keypa_result_discarded")
            return
        self._cache = cache
        self._state = KeypaState.READY
        self._pending = None
        self._params = params
        log.info("keypa_ready", values=len(cache))

    def _abandon(self, generation: int) -> None:
        if generation == self._generation:
            self._state = KeypaState.UNINITIALIZED
            self._pending = None

    def current(self) -> ValueCache:
        """The published snapshot.

        Raises:
            NotInitializedError: Unless the handle is ready.
        """
        if self._state is not KeypaState.READY or self._cache is None:
            raise NotInitializedError()
        return self._cache

    def dispose(self) -> None:
        """Drop the snapshot. The builder is left untouched."""
        self._generation += 1
        self._cache = None
        self._pending = None
        self._state = KeypaState.UNINITIALIZED
        logger.info("keypa_disposed")

    async def reinitialize(self) -> "Keypa":
        """Dispose and initialize again with the last successful arguments.

        Raises:
            NotInitializedError: If the handle was never initialized.
        """
        params = self._params
        if params is None:
            raise NotInitializedError("Keypa was never initialized, nothing to reinitialize")
        self.dispose()
        return await self.initialize(params.builder, params.environment, params.listener)

    def get(self, name: str) -> Value:
        return self.current().get(name)

    def try_get(self, name: str) -> Optional[Value]:
        return self.current().try_get(name)

    def get_many(self, names: Iterable[str]) -> Dict[str, Value]:
        return self.current().get_many(names)

    def try_get_many(self, names: Iterable[str]) -> Dict[str, Optional[Value]]:
        return self.current().try_get_many(names)

    def to_list(self) -> List[Dict[str, Any]]:
        return self.current().to_list()
