"""Environment file (.env) provider."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import structlog

from ..core.provider import coerce_options
from ..core.types import ProviderType, Value
from ..dotenv import DotEnv, find_dotenv

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DotenvOptions:
    """Options of the dotenv provider.

    Attributes:
        path: File to read. None searches for ``.env`` from the cwd upwards.
        encoding: File encoding.
        export: Also copy the values into ``os.environ``, never overriding
            variables that are already set.
    """

    path: Optional[Union[str, Path]] = None
    encoding: str = "utf-8"
    export: bool = False


def source_label(path: Optional[Path]) -> str:
    name = ProviderType.DOTENV.value
    return f"{name} ({path})" if path is not None else name


def fetch(options: Any = None) -> Dict[str, Value]:
    """Read one .env file.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
    """
    opts: DotenvOptions = coerce_options(options, DotenvOptions)
    if opts.path is not None:
        path: Optional[Path] = Path(opts.path)
        if not path.is_file():
            raise FileNotFoundError(f"Environment file not found: {path}")
    else:
        path = find_dotenv()
        if path is None:
            logger.info("dotenv_not_found", cwd=str(Path.cwd()))
            return {}

    parsed = DotEnv(path, encoding=opts.encoding).read()
    if opts.export:
        for key, value in parsed.items():
            os.environ.setdefault(key, value)

    source = source_label(path)
    logger.debug("dotenv_loaded", path=str(path), names=sorted(parsed))
    return {
        key: Value(name=key, value=value, source=source, is_secret=False)
        for key, value in parsed.items()
    }
