from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List
from urllib.parse import urlsplit, urlunsplit

import redis.asyncio as redis
import structlog

from ..core.provider import coerce_options
from ..core.types import ProviderType, Value

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RedisOptions:
    url: str = "redis://localhost:6379/0"
    prefix: str = ""
    is_secret: bool = False


def _redacted(url: str) -> str:
    parts = urlsplit(url)
    if parts.password is None and parts.username is None:
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, host, parts.path, parts.query, parts.fragment))


def _unprefixed(key: str, prefix: str) -> str:
    if prefix and key.startswith(prefix):
        return key[len(prefix) :]
    return key


async def fetch(options: Any = None) -> Dict[str, Value]:
    """Read every string key under the configured prefix."""
    opts: RedisOptions = coerce_options(options, RedisOptions)
    client = redis.Redis.from_url(opts.url, decode_responses=True)
    try:
        keys: List[str] = [k async for k in client.scan_iter(match=f"{opts.prefix}*")]
        values = await client.mget(keys) if keys else []
    finally:
        await client.aclose()

    source = f"{ProviderType.REDIS.value} ({_redacted(opts.url)})"
    result: Dict[str, Value] = {}
    for key, value in zip(keys, values):
        if value is None:
            # expired between SCAN and MGET, or not a string
            continue
        name = _unprefixed(key, opts.prefix)
        result[name] = Value(name=name, value=value, source=source, is_secret=opts.is_secret)
    logger.debug("redis_loaded", source=source, count=len(result))
    return result
