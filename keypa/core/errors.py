"""Exceptions raised by Keypa."""

from __future__ import annotations

from typing import Any, Iterable, Optional


class KeypaError(Exception):
    """Base class for every Keypa error."""


class UnknownProviderError(KeypaError, LookupError):
    """A configuration references a provider that is not registered."""

    def __init__(self, provider: Any) -> None:
        self.provider = provider
        super().__init__(f"No provider registered for '{provider}'")


class ProviderFetchError(KeypaError):
    """A provider failed to fetch its values.

    The underlying exception is available as ``cause`` and ``__cause__``.
    """

    def __init__(self, provider: str, cause: BaseException) -> None:
        self.provider = provider
        self.cause = cause
        super().__init__(f"Provider '{provider}' failed to fetch values: {cause}")


class UnknownEnvironmentError(KeypaError, LookupError):
    def __init__(self, environment: str) -> None:
        self.environment = environment
        super().__init__(f"No Keypa configuration found for environment '{environment}'")


class NotInitializedError(KeypaError):
    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or "Keypa is not initialized")


class ValueNotFoundError(KeypaError, LookupError):
    """One or more names are absent from the current snapshot."""

    def __init__(self, names: Iterable[str], environment: str) -> None:
        self.names = list(names)
        self.environment = environment
        joined = ", ".join(f"'{n}'" for n in self.names)
        super().__init__(
            f"No value for {joined}. It is not initialized for the "
            f"environment '{environment}'"
        )
