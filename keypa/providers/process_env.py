"""The process environment as a provider."""

from __future__ import annotations

import os
from typing import Any, Dict

from ..core.types import ProviderType, Value

SOURCE = ProviderType.PROCESS_ENV.value


def fetch(options: Any = None) -> Dict[str, Value]:
    """Snapshot every variable of ``os.environ`` at call time."""
    return {
        name: Value(name=name, value=value, source=SOURCE, is_secret=False)
        for name, value in os.environ.items()
    }
