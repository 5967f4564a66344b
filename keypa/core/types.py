"""Type definitions for the Keypa value model."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Tuple

if TYPE_CHECKING:
    from .context import ExecutionContext

MAX_DISPLAY_LENGTH = 30
MASK = "*" * (MAX_DISPLAY_LENGTH - 3)


class ProviderType(str, Enum):
    """Identifiers of the built-in providers.

    Registries also accept plain strings, so the set can be extended
    without touching this enum.
    """

    PROCESS_ENV = "process-env"
    DOTENV = "dotenv"
    AZURE_KEYVAULT = "azure-keyvault"
    AWS_SECRETS_MANAGER = "aws-secrets-manager"
    REDIS = "redis"
    GITHUB_ENV = "github-env"


def provider_key(provider: Any) -> str:
    """Normalize a ProviderType or plain string to its registry key."""
    if isinstance(provider, Enum):
        return str(provider.value)
    return str(provider)


@dataclass(frozen=True)
class Value:
    """A named configuration value and where it came from.

    Attributes:
        name: Configuration key.
        value: Raw value, may be None.
        source: Human readable provenance, e.g. ``dotenv (/app/.env)``.
        is_secret: Whether the value must never be shown unmasked.
    """

    name: str
    value: Optional[str]
    source: str
    is_secret: bool = False
    _duplicates: List["Value"] = field(
        default_factory=list, init=False, compare=False, repr=False
    )

    def add_duplicate(self, other: "Value") -> "Value":
        """Record a later occurrence of the same name.

        Args:
            other: The value that lost the merge.

        Returns:
            This value, for chaining.

        Raises:
            ValueError: If ``other`` carries a different name.
        """
        if other is self:
            return self
        if other.name != self.name:
            raise ValueError(
                f"Cannot record '{other.name}' as a duplicate of '{self.name}'"
            )
        self._duplicates.append(other)
        return self

    @property
    def duplicates(self) -> Tuple["Value", ...]:
        return tuple(self._duplicates)

    @property
    def has_duplicates(self) -> bool:
        return bool(self._duplicates)

    @property
    def display_value(self) -> str:
        """Value as it may be logged: secrets masked, long values truncated."""
        if self.is_secret:
            return MASK
        text = "" if self.value is None else str(self.value)
        if len(text) >= MAX_DISPLAY_LENGTH:
            return f"{text[: MAX_DISPLAY_LENGTH - 3]}..."
        return text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "source": self.source,
            "is_secret": self.is_secret,
            "duplicates": len(self._duplicates),
            "value": self.display_value,
        }

    def __str__(self) -> str:
        return (
            f"name:={self.name},source:={self.source},value:={self.display_value},"
            f"is_secret:={self.is_secret},duplicates:={len(self._duplicates)}"
        )


@dataclass(frozen=True)
class HydrateEvent:
    """Passed to a listener each time a name is seen for the first time.

    Attributes:
        current: The value just added to the accumulator.
        environment: Environment being initialized.
        accumulator: Read-only view of every value collected so far.
        execution_context: Where the process is running.
    """

    current: Value
    environment: str
    accumulator: Mapping[str, Value]
    execution_context: "ExecutionContext"

    def is_running_in(self, *contexts: "ExecutionContext") -> bool:
        return self.execution_context in contexts

    def is_ci(self) -> bool:
        return self.execution_context.is_ci

    def is_cloud(self) -> bool:
        return self.execution_context.is_cloud


Listener = Callable[[HydrateEvent], None]
