"""Read values from .env files"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple, Union

import structlog

logger = structlog.get_logger(__name__)

_LINE = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_.]*)\s*=\s*(.*)$")
_BRACED = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_SIMPLE = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)")
# closing quote, then optionally a comment; anything else makes the line invalid
_DOUBLE_QUOTED = re.compile(r'"((?:[^"\\]|\\.)*)"\s*(?:#.*)?$')
_SINGLE_QUOTED = re.compile(r"'([^']*)'\s*(?:#.*)?$")
_ESCAPE = re.compile(r"\\(.)")
_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", '"': '"', "\\": "\\"}


class DotEnv:
    """Parser for a single .env file.

    Values are only read; nothing is written back to the file.
    """

    def __init__(
        self,
        dotenv_path: Union[str, Path],
        encoding: str = "utf-8",
        environ: Optional[Mapping[str, str]] = None,
    ):
        """Initialize DotEnv instance.

        Args:
            dotenv_path: Path to the .env file.
            encoding: File encoding.
            environ: Variables used for ``$VAR`` expansion. Defaults to
                ``os.environ``.
        """
        self.dotenv_path = Path(dotenv_path)
        self.encoding = encoding
        self._environ = os.environ if environ is None else environ
        self._values: Dict[str, str] = {}

    def _parse_line(self, line: str) -> Optional[Tuple[str, str]]:
        """Parse a single line from .env file.

        Args:
            line: Line to parse

        Returns:
            Tuple of (key, value) or None if line should be ignored
        """
        line = line.strip()

        # Skip empty lines and comments
        if not line or line.startswith("#"):
            return None

        match = _LINE.match(line)
        if not match:
            return None

        key, value = match.groups()

        if value[:1] == '"':
            quoted = _DOUBLE_QUOTED.match(value)
            if quoted is None:
                return None
            value = _ESCAPE.sub(
                lambda m: _ESCAPES.get(m.group(1), m.group(0)), quoted.group(1)
            )
            return key, self._expand_variables(value)
        if value[:1] == "'":
            # single quotes are literal
            quoted = _SINGLE_QUOTED.match(value)
            if quoted is None:
                return None
            return key, quoted.group(1)

        # unquoted: drop trailing inline comment
        if " #" in value:
            value = value.split(" #", 1)[0].rstrip()
        return key, self._expand_variables(value)

    def _expand_variables(self, value: str) -> str:
        """Expand variables in the format ${VAR} or $VAR."""

        def replace(match: "re.Match[str]") -> str:
            var_name = match.group(1)
            return self._environ.get(var_name, self._values.get(var_name, ""))

        value = _BRACED.sub(replace, value)
        return _SIMPLE.sub(replace, value)

    def read(self) -> Dict[str, str]:
        """Parse the whole file.

        Returns:
            Parsed values in file order. Later assignments of a key win.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        self._values = {}
        with open(self.dotenv_path, "r", encoding=self.encoding) as f:
            for line_num, line in enumerate(f, 1):
                parsed = self._parse_line(line)
                if parsed is None:
                    if line.strip() and not line.strip().startswith("#"):
                        logger.debug(
                            "dotenv_line_ignored",
                            path=str(self.dotenv_path),
                            line=line_num,
                        )
                    continue
                key, value = parsed
                self._values[key] = value
        return dict(self._values)

    def values(self) -> Dict[str, str]:
        return dict(self._values)


def find_dotenv(filename: str = ".env", start: Optional[Path] = None) -> Optional[Path]:
    """Find a .env file by walking up directories.

    Args:
        filename: Name of the .env file to find
        start: Directory to start from. Defaults to the cwd.

    Returns:
        Path to the file, or None when no directory up to the root has one.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / filename
        if candidate.is_file():
            return candidate
        if current == current.parent:
            return None
        current = current.parent
