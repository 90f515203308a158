"""
swkit configuration.

Two sources:
- Environment: SW_TEMPLATES_ROOT and SW_PACKAGES_ROOT point at the catalog
  monorepos (templates are read from <root>/apps, packages from <root>/packages)
- User file: ~/.swrc.json with internal scopes and tool preferences

Example ~/.swrc.json:
    {
      "internalScopes": ["@repo"],
      "defaultPackageManager": "pnpm",
      "preview": {"defaultLines": 80}
    }
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Literal, Mapping, Optional

from swkit.errors import ConfigError


PackageManager = Literal["pnpm", "npm", "yarn", "bun"]
PACKAGE_MANAGERS = ("pnpm", "npm", "yarn", "bun")

TEMPLATES_ROOT_ENV = "SW_TEMPLATES_ROOT"
PACKAGES_ROOT_ENV = "SW_PACKAGES_ROOT"
USER_CONFIG_FILE = ".swrc.json"

DEFAULT_INTERNAL_SCOPES = ["@repo"]
DEFAULT_PREVIEW_LINES = 80


def user_config_path() -> Path:
    """Location of the user config file."""
    return Path.home() / USER_CONFIG_FILE


@dataclass
class Config:
    """Resolved configuration for one invocation."""
    templates_root: str
    packages_root: str
    internal_scopes: List[str] = field(default_factory=lambda: list(DEFAULT_INTERNAL_SCOPES))
    default_package_manager: PackageManager = "pnpm"
    preview_lines: int = DEFAULT_PREVIEW_LINES

    def roots(self) -> List[str]:
        """Distinct catalog roots, templates root first."""
        result = [self.templates_root]
        if os.path.abspath(self.packages_root) != os.path.abspath(self.templates_root):
            result.append(self.packages_root)
        return result

    def is_internal_name(self, package_name: str) -> bool:
        """Check a package name against the configured internal scopes."""
        return any(package_name.startswith(scope) for scope in self.internal_scopes)

    def to_dict(self) -> dict:
        return {
            "templatesRoot": self.templates_root,
            "packagesRoot": self.packages_root,
            "internalScopes": list(self.internal_scopes),
            "defaultPackageManager": self.default_package_manager,
            "preview": {"defaultLines": self.preview_lines},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Build a Config from roots plus user-file fields.

        Raises:
            ConfigError: If any field has the wrong type or value
        """
        templates_root = data.get("templatesRoot")
        packages_root = data.get("packagesRoot")
        if not isinstance(templates_root, str) or not templates_root:
            raise ConfigError("templatesRoot must be a non-empty string")
        if not isinstance(packages_root, str) or not packages_root:
            raise ConfigError("packagesRoot must be a non-empty string")

        user = _validate_user_config(data)
        return cls(templates_root=templates_root, packages_root=packages_root, **user)


def _validate_user_config(data: dict) -> dict:
    """Validate the ~/.swrc.json fields, filling in defaults."""
    scopes = data.get("internalScopes", list(DEFAULT_INTERNAL_SCOPES))
    if not isinstance(scopes, list) or not all(isinstance(s, str) for s in scopes):
        raise ConfigError("internalScopes must be a list of strings")

    pm = data.get("defaultPackageManager", "pnpm")
    if pm not in PACKAGE_MANAGERS:
        raise ConfigError(
            f"defaultPackageManager must be one of {', '.join(PACKAGE_MANAGERS)}, got {pm!r}"
        )

    preview = data.get("preview", {})
    if not isinstance(preview, dict):
        raise ConfigError("preview must be an object")
    lines = preview.get("defaultLines", DEFAULT_PREVIEW_LINES)
    if isinstance(lines, bool) or not isinstance(lines, int) or lines <= 0:
        raise ConfigError("preview.defaultLines must be a positive integer")

    return {
        "internal_scopes": list(scopes),
        "default_package_manager": pm,
        "preview_lines": lines,
    }


def load_user_config(path: Optional[Path] = None) -> Dict:
    """Load the user config file, or an empty dict if it does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object
    """
    path = path or user_config_path()
    if not path.exists():
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to load configuration from {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Invalid configuration in {path}: expected a JSON object")
    return data


def load_config(
    env: Optional[Mapping[str, str]] = None,
    config_path: Optional[Path] = None,
) -> Config:
    """Load configuration from the environment and the user config file.

    Args:
        env: Environment mapping (defaults to os.environ)
        config_path: User config file (defaults to ~/.swrc.json)

    Returns:
        Validated Config

    Raises:
        ConfigError: If a root variable is missing, a root does not exist,
            or the user file is invalid
    """
    env = os.environ if env is None else env

    missing = [k for k in (TEMPLATES_ROOT_ENV, PACKAGES_ROOT_ENV) if not env.get(k)]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

    templates_root = os.path.abspath(os.path.expanduser(env[TEMPLATES_ROOT_ENV]))
    packages_root = os.path.abspath(os.path.expanduser(env[PACKAGES_ROOT_ENV]))
    for label, root in (("Templates", templates_root), ("Packages", packages_root)):
        if not os.path.isdir(root):
            raise ConfigError(f"{label} root does not exist: {root}")

    user = load_user_config(config_path)
    try:
        return Config.from_dict({
            **user,
            "templatesRoot": templates_root,
            "packagesRoot": packages_root,
        })
    except ConfigError as e:
        path = config_path or user_config_path()
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e
