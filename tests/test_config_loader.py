"""Tests for keypa.yaml configuration loading."""

from pathlib import Path

import pytest
import yaml

from keypa.core.config_loader import ConfigLoader
from keypa.core.context import ExecutionContext
from keypa.core.environment import ConfigBuilder
from keypa.core.errors import UnknownProviderError
from keypa.providers.azure_keyvault import AzureKeyVaultOptions
from keypa.providers.env_file import DotenvOptions


def _write(tmp_path: Path, data) -> Path:
    path = tmp_path / "keypa.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestConfigLoader:
    """Test ConfigLoader functionality."""

    def test_init_with_explicit_path(self, tmp_path):
        path = _write(tmp_path, {"environments": {}})
        assert ConfigLoader(path).config_path == path

    def test_init_with_nonexistent_explicit_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigLoader(tmp_path / "nonexistent.yaml")

    def test_find_config_in_parent_dir(self, tmp_path, monkeypatch):
        path = _write(tmp_path, {"environments": {}})
        subdir = tmp_path / "subdir"
        subdir.mkdir()
        monkeypatch.chdir(subdir)
        assert ConfigLoader().config_path == path.resolve()

    def test_load_invalid_yaml(self, tmp_path):
        path = tmp_path / "keypa.yaml"
        path.write_text("environments: [unclosed")
        with pytest.raises(ValueError, match="Invalid keypa.yaml"):
            ConfigLoader(path).load()

    def test_load_non_mapping(self, tmp_path):
        path = tmp_path / "keypa.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="expected a mapping"):
            ConfigLoader(path).load()

    def test_load_empty_file(self, tmp_path):
        path = tmp_path / "keypa.yaml"
        path.write_text("")
        assert ConfigLoader(path).load() == {}

    def test_parse_provider(self, tmp_path):
        loader = ConfigLoader(_write(tmp_path, {}))
        parsed = loader.parse_provider({"type": "dotenv", "path": ".env.local"})
        assert parsed["provider"] == "dotenv"
        assert parsed["options"] == DotenvOptions(path=".env.local")
        assert parsed["is_initializable"] is None

    def test_parse_provider_without_type(self, tmp_path):
        loader = ConfigLoader(_write(tmp_path, {}))
        with pytest.raises(ValueError, match="type"):
            loader.parse_provider({"path": ".env"})

    def test_parse_provider_unknown_type(self, tmp_path):
        loader = ConfigLoader(_write(tmp_path, {}))
        with pytest.raises(UnknownProviderError):
            loader.parse_provider({"type": "consul"})

    def test_parse_provider_bad_option(self, tmp_path):
        loader = ConfigLoader(_write(tmp_path, {}))
        with pytest.raises(TypeError):
            loader.parse_provider({"type": "dotenv", "paht": ".env"})

    def test_when_and_unless(self, tmp_path):
        loader = ConfigLoader(_write(tmp_path, {}))
        parsed = loader.parse_provider(
            {
                "type": "azure-keyvault",
                "key_vault_name": "kv",
                "when": ["azure-app-service", "github-actions"],
                "unless": "github-actions",
            }
        )
        predicate = parsed["is_initializable"]
        assert parsed["options"] == AzureKeyVaultOptions(key_vault_name="kv")
        assert predicate(ExecutionContext.AZURE_APP_SERVICE) is True
        assert predicate(ExecutionContext.GITHUB_ACTIONS) is False
        assert predicate(ExecutionContext.UNKNOWN) is False

    def test_unknown_context_label(self, tmp_path):
        loader = ConfigLoader(_write(tmp_path, {}))
        with pytest.raises(ValueError):
            loader.parse_provider({"type": "dotenv", "when": ["mainframe"]})


class TestBuilderFromFile:
    """ConfigBuilder.from_file integration."""

    def test_builds_environments_in_order(self, tmp_path):
        path = _write(
            tmp_path,
            {
                "environments": {
                    "development": {
                        "providers": [
                            {"type": "dotenv", "path": ".env"},
                            {"type": "redis", "url": "redis://localhost:6379/0"},
                        ]
                    },
                    "production": {"providers": [{"type": "azure-keyvault", "key_vault_name": "kv"}]},
                }
            },
        )

        builder = ConfigBuilder.from_file(path)

        assert builder.environments == ["development", "production"]
        assert builder.get("development").providers.provider_types == ["dotenv", "redis"]
        assert builder.get("production").providers.get("azure-keyvault").key_vault_name == "kv"

    def test_no_file_gives_standard_environments(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(ConfigLoader, "_find_config_file", lambda self, path=None: None)
        builder = ConfigBuilder.from_file()
        assert builder.environments == ["development", "staging", "production"]
        assert builder.get("development").providers.provider_types == []

    def test_environment_without_providers(self, tmp_path):
        builder = ConfigBuilder.from_file(_write(tmp_path, {"environments": {"qa": None}}))
        assert builder.environments == ["qa"]
        assert len(builder.get("qa").providers) == 0
