"""Test doubles for providers."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

from keypa.core.provider import ProviderRegistry
from keypa.core.types import Value


class StaticProvider:
    """Provider returning fixed values, recording every call."""

    def __init__(self, name: str, values: Dict[str, str], is_secret: bool = False):
        self.name = name
        self.values = values
        self.is_secret = is_secret
        self.calls: List[object] = []

    def _build(self, options) -> Dict[str, Value]:
        label = f"{self.name} ({options})" if options is not None else self.name
        return {
            k: Value(name=k, value=v, source=label, is_secret=self.is_secret)
            for k, v in self.values.items()
        }

    def fetch(self, options=None) -> Dict[str, Value]:
        self.calls.append(options)
        return self._build(options)

    async def fetch_async(self, options=None) -> Dict[str, Value]:
        self.calls.append(options)
        await asyncio.sleep(0)
        return self._build(options)


class FailingProvider:
    def __init__(self, error: Exception):
        self.error = error
        self.calls = 0

    async def fetch(self, options=None):
        self.calls += 1
        await asyncio.sleep(0)
        raise self.error


def make_registry(
    sync: Optional[Dict[str, StaticProvider]] = None,
    async_: Optional[Dict[str, StaticProvider]] = None,
) -> ProviderRegistry:
    reg = ProviderRegistry()
    for key, provider in (sync or {}).items():
        reg.register(key, provider.fetch)
    for key, provider in (async_ or {}).items():
        reg.register(key, provider.fetch_async)
    return reg
