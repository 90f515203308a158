"""
Helpers for the destination workspace (the monorepo artifacts are copied into).
"""

import glob
import json
import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml


DEFAULT_PACKAGE_GLOBS = ["apps/*", "packages/*"]


def _read_json(path: str) -> Optional[dict]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return None
    return data if isinstance(data, dict) else None


def find_workspace_root(start: Optional[str] = None) -> str:
    """Walk up from start to the nearest monorepo root.

    A root holds turbo.json, pnpm-workspace.yaml, or a package.json with a
    "workspaces" field. Falls back to start when nothing matches.
    """
    start = os.path.abspath(start or os.getcwd())
    current = Path(start)

    for candidate in [current, *current.parents]:
        if (candidate / "turbo.json").exists():
            return str(candidate)
        if (candidate / "pnpm-workspace.yaml").exists():
            return str(candidate)
        package_json = candidate / "package.json"
        if package_json.exists():
            data = _read_json(str(package_json))
            if data and data.get("workspaces"):
                return str(candidate)

    return start


def workspace_package_globs(root: str) -> List[str]:
    """Directory globs holding workspace packages.

    Read from pnpm-workspace.yaml when present, otherwise apps/* and packages/*.
    """
    pnpm_file = os.path.join(root, "pnpm-workspace.yaml")
    if not os.path.isfile(pnpm_file):
        return list(DEFAULT_PACKAGE_GLOBS)

    try:
        with open(pnpm_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        return list(DEFAULT_PACKAGE_GLOBS)

    packages = data.get("packages") if isinstance(data, dict) else None
    if not isinstance(packages, list):
        return list(DEFAULT_PACKAGE_GLOBS)
    globs = [p for p in packages if isinstance(p, str) and not p.startswith("!")]
    return globs or list(DEFAULT_PACKAGE_GLOBS)


def find_all_package_names(root: str) -> Dict[str, str]:
    """Map package name -> package.json path for every package in the workspace."""
    names: Dict[str, str] = {}
    patterns = [f"{g.rstrip('/')}/package.json" for g in workspace_package_globs(root)]
    patterns.append("package.json")

    for pattern in patterns:
        for path in sorted(glob.glob(os.path.join(root, pattern))):
            data = _read_json(path)
            if data and isinstance(data.get("name"), str):
                names[data["name"]] = path
    return names


def check_package_name_conflict(
    package_name: str,
    root: str,
    exclude_path: Optional[str] = None,
) -> Tuple[bool, Optional[str]]:
    """Check whether package_name is already used in the workspace.

    Args:
        package_name: Name to look for
        root: Workspace root
        exclude_path: package.json path that does not count as a conflict

    Returns:
        (exists, conflicting package.json path)
    """
    existing = find_all_package_names(root).get(package_name)
    if existing is None:
        return False, None
    if exclude_path and os.path.abspath(existing) == os.path.abspath(exclude_path):
        return False, None
    return True, existing
