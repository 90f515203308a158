"""
Tests for configuration loading.

Covers:
- Required environment variables and root existence
- ~/.swrc.json defaults and validation
- Internal scope matching
"""

import json

import pytest

from swkit.config import Config, load_config
from swkit.errors import ConfigError


@pytest.fixture
def roots(tmp_path):
    templates = tmp_path / "sw-templates"
    packages = tmp_path / "sw-packages"
    templates.mkdir()
    packages.mkdir()
    return templates, packages


@pytest.fixture
def env(roots):
    templates, packages = roots
    return {"SW_TEMPLATES_ROOT": str(templates), "SW_PACKAGES_ROOT": str(packages)}


class TestLoadConfig:
    """Test load_config()."""

    def test_defaults_without_user_file(self, env, tmp_path):
        config = load_config(env=env, config_path=tmp_path / "missing.json")
        assert config.templates_root == env["SW_TEMPLATES_ROOT"]
        assert config.packages_root == env["SW_PACKAGES_ROOT"]
        assert config.internal_scopes == ["@repo"]
        assert config.default_package_manager == "pnpm"
        assert config.preview_lines == 80

    def test_custom_user_file(self, env, tmp_path):
        path = tmp_path / ".swrc.json"
        path.write_text(json.dumps({
            "internalScopes": ["@company", "@internal"],
            "defaultPackageManager": "bun",
            "preview": {"defaultLines": 100},
        }))

        config = load_config(env=env, config_path=path)

        assert config.internal_scopes == ["@company", "@internal"]
        assert config.default_package_manager == "bun"
        assert config.preview_lines == 100

    def test_missing_env_vars(self, tmp_path):
        with pytest.raises(ConfigError, match="SW_TEMPLATES_ROOT, SW_PACKAGES_ROOT"):
            load_config(env={}, config_path=tmp_path / "none.json")

    def test_empty_env_var(self, env, tmp_path):
        env["SW_PACKAGES_ROOT"] = ""
        with pytest.raises(ConfigError, match="SW_PACKAGES_ROOT"):
            load_config(env=env, config_path=tmp_path / "none.json")

    def test_nonexistent_root(self, env, tmp_path):
        env["SW_TEMPLATES_ROOT"] = str(tmp_path / "nowhere")
        with pytest.raises(ConfigError, match="does not exist"):
            load_config(env=env, config_path=tmp_path / "none.json")

    def test_invalid_package_manager(self, env, tmp_path):
        path = tmp_path / ".swrc.json"
        path.write_text(json.dumps({"defaultPackageManager": "invalid-pm"}))
        with pytest.raises(ConfigError, match="defaultPackageManager"):
            load_config(env=env, config_path=path)

    def test_negative_preview_lines(self, env, tmp_path):
        path = tmp_path / ".swrc.json"
        path.write_text(json.dumps({"preview": {"defaultLines": -10}}))
        with pytest.raises(ConfigError, match="defaultLines"):
            load_config(env=env, config_path=path)

    def test_broken_json(self, env, tmp_path):
        path = tmp_path / ".swrc.json"
        path.write_text("{")
        with pytest.raises(ConfigError, match="Failed to load"):
            load_config(env=env, config_path=path)

    def test_reads_os_environ(self, env, tmp_path, monkeypatch):
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        config = load_config(config_path=tmp_path / "none.json")
        assert config.packages_root == env["SW_PACKAGES_ROOT"]


class TestConfig:
    """Test Config helpers."""

    def test_is_internal_name(self):
        config = Config(templates_root="/t", packages_root="/p", internal_scopes=["@repo", "@acme"])
        assert config.is_internal_name("@repo/utils")
        assert config.is_internal_name("@acme/ui")
        assert not config.is_internal_name("react")

    def test_roots_deduplicated(self):
        assert Config(templates_root="/x", packages_root="/x").roots() == ["/x"]
        assert Config(templates_root="/t", packages_root="/p").roots() == ["/t", "/p"]

    def test_dict_roundtrip(self):
        config = Config(templates_root="/t", packages_root="/p", internal_scopes=["@acme"],
                        default_package_manager="yarn", preview_lines=40)
        assert Config.from_dict(config.to_dict()) == config

    def test_from_dict_requires_roots(self):
        with pytest.raises(ConfigError, match="templatesRoot"):
            Config.from_dict({"packagesRoot": "/p"})
