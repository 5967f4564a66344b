"""Unit tests for the Aggregator merge and scheduling logic."""

from __future__ import annotations

import asyncio
import os

import pytest
from structlog.testing import capture_logs

from keypa.core.context import ExecutionContext
from keypa.core.environment import ConfigBuilder
from keypa.core.errors import ProviderFetchError, UnknownProviderError
from keypa.core.merge import Aggregator
from keypa.core.provider import ProviderRegistry
from keypa.core.types import Value

from .helpers import FailingProvider, StaticProvider, make_registry


def _env(*providers, name="development"):
    builder = ConfigBuilder.configure(name)
    env = builder.get(name)
    for item in providers:
        if isinstance(item, tuple):
            env.providers.set(*item)
        else:
            env.providers.set(item)
    return env


class TestPartition:
    """The synchronous prefix stops at the first asynchronous provider."""

    def test_all_sync(self):
        reg = make_registry(sync={"a": StaticProvider("a", {}), "b": StaticProvider("b", {})})
        prefix, rest = Aggregator(_env("a", "b"), reg).partition()
        assert [p.identifier for p in prefix] == ["a", "b"]
        assert rest == []

    def test_sync_after_async_is_not_promoted(self):
        reg = make_registry(
            sync={"a": StaticProvider("a", {}), "c": StaticProvider("c", {})},
            async_={"b": StaticProvider("b", {})},
        )
        prefix, rest = Aggregator(_env("a", "b", "c"), reg).partition()
        assert [p.identifier for p in prefix] == ["a"]
        assert [p.identifier for p in rest] == ["b", "c"]

    def test_async_first(self):
        reg = make_registry(
            sync={"a": StaticProvider("a", {})}, async_={"b": StaticProvider("b", {})}
        )
        prefix, rest = Aggregator(_env("b", "a"), reg).partition()
        assert prefix == []
        assert [p.identifier for p in rest] == ["b", "a"]

    def test_skipped_provider_still_bounds_the_prefix(self):
        reg = make_registry(
            sync={"a": StaticProvider("a", {}), "c": StaticProvider("c", {})},
            async_={"b": StaticProvider("b", {})},
        )
        env = _env("a", ("b", None, lambda ctx: False), "c")
        prefix, rest = Aggregator(env, reg).partition()
        assert [p.identifier for p in prefix] == ["a"]
        assert [p.identifier for p in rest] == ["b", "c"]

    def test_explicit_process_env_is_not_scheduled_twice(self):
        reg = make_registry(sync={"a": StaticProvider("a", {})})
        prefix, rest = Aggregator(_env("process-env", "a"), reg).partition()
        assert [p.identifier for p in prefix] == ["a"]

    def test_unknown_provider(self):
        with pytest.raises(UnknownProviderError, match="nope"):
            Aggregator(_env("nope"), ProviderRegistry()).partition()


class TestHydrate:
    """First writer wins; later values become duplicates."""

    @pytest.mark.asyncio
    async def test_first_writer_wins(self):
        a = StaticProvider("a", {"X": "from-a"})
        b = StaticProvider("b", {"X": "from-b"})
        reg = make_registry(sync={"a": a, "b": b})

        cache = await Aggregator(_env("a", "b"), reg).aggregate()

        x = cache.get("X")
        assert x.value == "from-a"
        assert [d.value for d in x.duplicates] == ["from-b"]

    @pytest.mark.asyncio
    async def test_process_env_wins_over_providers(self, monkeypatch):
        monkeypatch.setenv("KEYPA_TEST_SHARED", "from-env")
        a = StaticProvider("a", {"KEYPA_TEST_SHARED": "from-a"})
        cache = await Aggregator(_env("a"), make_registry(sync={"a": a})).aggregate()

        value = cache.get("KEYPA_TEST_SHARED")
        assert value.value == "from-env"
        assert value.source == "process-env"
        assert value.duplicates[0].source == "a"

    @pytest.mark.asyncio
    async def test_sync_prefix_wins_over_async_remainder(self):
        slow = StaticProvider("slow", {"X": "slow"})
        fast = StaticProvider("fast", {"X": "fast"})
        reg = make_registry(sync={"fast": fast}, async_={"slow": slow})

        cache = await Aggregator(_env("fast", "slow"), reg).aggregate()
        assert cache.get("X").value == "fast"

    @pytest.mark.asyncio
    async def test_remainder_keeps_configured_order(self):
        first = StaticProvider("first", {"X": "1"})
        second = StaticProvider("second", {"X": "2"})
        third = StaticProvider("third", {"X": "3"})
        reg = make_registry(sync={"third": third}, async_={"first": first, "second": second})

        cache = await Aggregator(_env("first", "second", "third"), reg).aggregate()
        x = cache.get("X")
        assert x.value == "1"
        assert [d.value for d in x.duplicates] == ["2", "3"]

    @pytest.mark.asyncio
    async def test_duplicate_is_logged_as_warning(self):
        reg = make_registry(
            sync={"a": StaticProvider("a", {"X": "1"}), "b": StaticProvider("b", {"X": "2"})}
        )
        with capture_logs() as logs:
            await Aggregator(_env("a", "b"), reg).aggregate()

        warnings = [e for e in logs if e["event"] == "duplicate_value"]
        assert len(warnings) == 1
        assert warnings[0]["log_level"] == "warning"
        assert warnings[0]["name"] == "X"
        assert warnings[0]["kept_source"] == "a"

    def test_hydrate_notifies_listener_once_per_name(self):
        events = []
        agg = Aggregator(_env(), ProviderRegistry(), listener=events.append)
        agg.hydrate("X", Value("X", "1", "a"))
        agg.hydrate("X", Value("X", "2", "b"))

        assert [e.current.value for e in events] == ["1"]
        assert events[0].environment == "development"
        assert events[0].accumulator["X"].value == "1"


class TestAggregate:
    """End to end runs of the aggregator."""

    @pytest.mark.asyncio
    async def test_empty_configuration_yields_process_env(self, monkeypatch):
        monkeypatch.setenv("KEYPA_TEST_ONLY", "yes")
        cache = await Aggregator(_env(), ProviderRegistry()).aggregate()

        assert set(cache) == set(os.environ)
        value = cache.get("KEYPA_TEST_ONLY")
        assert value.source == "process-env"
        assert value.is_secret is False

    @pytest.mark.asyncio
    async def test_predicate_gating(self):
        gated = StaticProvider("gated", {"GATED": "1"})
        seen = []

        def only_on_lambda(ctx):
            seen.append(ctx)
            return ctx is ExecutionContext.AWS_LAMBDA

        reg = make_registry(async_={"gated": gated})
        env = _env(("gated", None, only_on_lambda))

        cache = await Aggregator(env, reg, ExecutionContext.GITHUB_ACTIONS).aggregate()

        assert "GATED" not in cache
        assert gated.calls == []
        assert seen == [ExecutionContext.GITHUB_ACTIONS]

    @pytest.mark.asyncio
    async def test_options_are_passed_to_fetch(self):
        a = StaticProvider("a", {"X": "1"})
        reg = make_registry(sync={"a": a})
        await Aggregator(_env(("a", {"path": "x.env"})), reg).aggregate()
        assert a.calls == [{"path": "x.env"}]

    @pytest.mark.asyncio
    async def test_fetch_failure_is_fatal(self):
        boom = RuntimeError("boom")
        failing = FailingProvider(boom)
        after = StaticProvider("after", {"Y": "1"})
        reg = ProviderRegistry()
        reg.register("failing", failing.fetch)
        reg.register("after", after.fetch_async)

        with pytest.raises(ProviderFetchError) as exc:
            await Aggregator(_env("failing", "after"), reg).aggregate()

        assert exc.value.provider == "failing"
        assert exc.value.cause is boom
        assert exc.value.__cause__ is boom
        assert after.calls == []

    @pytest.mark.asyncio
    async def test_sync_fetch_failure_is_wrapped(self):
        def broken(options=None):
            raise FileNotFoundError("missing.env")

        reg = ProviderRegistry()
        reg.register("broken", broken)
        with pytest.raises(ProviderFetchError, match="missing.env"):
            await Aggregator(_env("broken"), reg).aggregate()

    @pytest.mark.asyncio
    async def test_sync_provider_returning_awaitable_is_rejected(self):
        async def inner(options=None):
            return {}

        reg = ProviderRegistry()
        reg.register("sneaky", lambda options=None: inner(options), is_async=False)
        with pytest.raises(ProviderFetchError, match="awaitable"):
            await Aggregator(_env("sneaky"), reg).aggregate()

    @pytest.mark.asyncio
    async def test_key_disagreeing_with_value_name_is_rejected(self):
        def mislabelled(options=None):
            return {"ALIAS": Value(name="REAL", value="1", source="mislabelled")}

        async def mislabelled_async(options=None):
            return mislabelled(options)

        for fetch in (mislabelled, mislabelled_async):
            reg = ProviderRegistry()
            reg.register("mislabelled", fetch)
            with pytest.raises(ProviderFetchError, match="ALIAS") as exc:
                await Aggregator(_env("mislabelled"), reg).aggregate()
            assert exc.value.provider == "mislabelled"
            assert isinstance(exc.value.cause, ValueError)

    @pytest.mark.asyncio
    async def test_unknown_provider_fails_before_any_fetch(self):
        a = StaticProvider("a", {"X": "1"})
        reg = make_registry(sync={"a": a})
        with pytest.raises(UnknownProviderError):
            await Aggregator(_env("a", "missing"), reg).aggregate()
        assert a.calls == []

    @pytest.mark.asyncio
    async def test_sync_prefix_is_hydrated_before_first_suspension(self):
        names_seen = []
        fast = StaticProvider("fast", {"FAST": "1"})
        slow = StaticProvider("slow", {"SLOW": "1"})
        reg = make_registry(sync={"fast": fast}, async_={"slow": slow})
        agg = Aggregator(
            _env("fast", "slow"), reg, listener=lambda e: names_seen.append(e.current.name)
        )

        coro = agg.aggregate()
        coro.send(None)  # runs until the slow provider yields
        assert "FAST" in names_seen
        assert "SLOW" not in names_seen
        assert slow.calls == [None]

        with pytest.raises(StopIteration) as stop:
            coro.send(None)
        assert "SLOW" in stop.value.value
        assert names_seen[-1] == "SLOW"
