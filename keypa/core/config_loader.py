"""Configuration loader for keypa.yaml files."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import structlog
import yaml

from .context import ExecutionContext
from .environment import ConfigBuilder, Initializable
from .provider import ProviderRegistry, default_registry

logger = structlog.get_logger(__name__)

CONFIG_FILENAME = "keypa.yaml"
_RESERVED = {"type", "when", "unless"}


class ConfigLoader:
    """Handles loading and parsing of keypa.yaml configuration files."""

    def __init__(
        self,
        config_path: Optional[Union[str, Path]] = None,
        registry: Optional[ProviderRegistry] = None,
    ):
        """Initialize config loader.

        Args:
            config_path: Path to keypa.yaml file. If None, looks in current
                directory and parent directories.
            registry: Registry used to build provider options.
        """
        self.config_path = self._find_config_file(config_path)
        self._registry = registry
        self._config: Optional[Dict[str, Any]] = None

    def _find_config_file(
        self, config_path: Optional[Union[str, Path]] = None
    ) -> Optional[Path]:
        if config_path is not None:
            path = Path(config_path)
            if not path.is_file():
                raise FileNotFoundError(f"Keypa configuration not found: {path}")
            return path

        current = Path.cwd().resolve()
        while True:
            candidate = current / CONFIG_FILENAME
            if candidate.is_file():
                return candidate
            if current == current.parent:
                return None
            current = current.parent

    @property
    def registry(self) -> ProviderRegistry:
        if self._registry is None:
            self._registry = default_registry()
        return self._registry

    def load(self) -> Dict[str, Any]:
        """Load the configuration file.

        Returns:
            Parsed configuration dictionary, or empty dict if no config file.

        Raises:
            ValueError: If the config file is invalid YAML or not a mapping.
        """
        if self.config_path is None:
            return {}

        if self._config is not None:
            return self._config

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid keypa.yaml at {self.config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid keypa.yaml at {self.config_path}: expected a mapping")
        self._config = data
        return self._config

    def environment_names(self) -> List[str]:
        environments = self.load().get("environments") or {}
        return list(environments)

    def get_providers(self, environment_name: str) -> List[Dict[str, Any]]:
        environments = self.load().get("environments") or {}
        env_config = environments.get(environment_name) or {}
        return list(env_config.get("providers") or [])

    def parse_provider(self, provider_config: Dict[str, Any]) -> Dict[str, Any]:
        """Parse a provider entry into components.

        Args:
            provider_config: Raw provider entry from YAML.

        Returns:
            Dictionary with ``provider``, ``options`` and ``is_initializable``.

        Raises:
            ValueError: If the entry has no ``type``.
            UnknownProviderError: If the type is not registered.
        """
        if "type" not in provider_config:
            raise ValueError("Provider entry must have a 'type'")
        descriptor = self.registry.resolve(provider_config["type"])
        raw_options = {k: v for k, v in provider_config.items() if k not in _RESERVED}
        return {
            "provider": descriptor.identifier,
            "options": descriptor.build_options(raw_options or None),
            "is_initializable": self._parse_condition(
                provider_config.get("when"), provider_config.get("unless")
            ),
        }

    def _parse_condition(
        self, when: Optional[Iterable[str]], unless: Optional[Iterable[str]]
    ) -> Optional[Initializable]:
        if not when and not unless:
            return None
        allowed = _contexts(when) if when else None
        denied = _contexts(unless) if unless else frozenset()

        def is_initializable(context: ExecutionContext) -> bool:
            if context in denied:
                return False
            return allowed is None or context in allowed

        return is_initializable

    def build(self) -> ConfigBuilder:
        """Create a ConfigBuilder populated from the file."""
        builder = ConfigBuilder.configure(*self.environment_names())
        for name in builder.environments:
            providers = builder.get(name).providers
            for entry in self.get_providers(name):
                parsed = self.parse_provider(entry)
                providers.set(
                    parsed["provider"], parsed["options"], parsed["is_initializable"]
                )
        if self.config_path is not None:
            logger.debug("keypa_config_loaded", path=str(self.config_path))
        return builder


def _contexts(labels: Union[str, Iterable[str]]) -> frozenset:
    if isinstance(labels, str):
        labels = [labels]
    return frozenset(ExecutionContext(label) for label in labels)
