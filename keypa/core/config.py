"""The immutable snapshot produced by one initialization."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from .errors import ValueNotFoundError
from .types import Value


class ValueCache:
    """Environment-tagged mapping of name to Value.

    Built once from a completed accumulator and never mutated afterwards,
    so it can be shared between readers without locking.
    """

    __slots__ = ("_environment", "_entries")

    def __init__(self, environment: str, values: Mapping[str, Value]):
        self._environment = environment
        self._entries: Mapping[str, Value] = MappingProxyType(dict(values))

    @property
    def environment(self) -> str:
        return self._environment

    @property
    def entries(self) -> Mapping[str, Value]:
        return self._entries

    def try_get(self, name: str) -> Optional[Value]:
        return self._entries.get(name)

    def get(self, name: str) -> Value:
        """Get a value by name.

        Raises:
            ValueNotFoundError: If ``name`` is not part of the snapshot.
        """
        value = self._entries.get(name)
        if value is None:
            raise ValueNotFoundError([name], self._environment)
        return value

    def try_get_many(self, names: Iterable[str]) -> Dict[str, Optional[Value]]:
        return {name: self._entries.get(name) for name in names}

    def get_many(self, names: Iterable[str]) -> Dict[str, Value]:
        """Get several values at once.

        Raises:
            ValueNotFoundError: Listing every requested name that is absent.
        """
        found = self.try_get_many(names)
        missing = [name for name, value in found.items() if value is None]
        if missing:
            raise ValueNotFoundError(missing, self._environment)
        return {name: value for name, value in found.items() if value is not None}

    def to_list(self) -> List[Dict[str, Any]]:
        return [
            {"environment": self._environment, **value.to_dict()}
            for value in self._entries.values()
        ]

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ValueCache(environment={self._environment!r}, size={len(self._entries)})"
