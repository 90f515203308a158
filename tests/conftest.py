"""Shared fixtures: throwaway catalog monorepos built under tmp_path."""

import json
from pathlib import Path

import pytest

from swkit.config import Config


@pytest.fixture
def catalog(tmp_path):
    """Empty catalog root with apps/ and packages/."""
    root = tmp_path / "catalog"
    (root / "apps").mkdir(parents=True)
    (root / "packages").mkdir()
    return root


@pytest.fixture
def config(catalog):
    """Config with both roots pointing at the same catalog."""
    return Config(templates_root=str(catalog), packages_root=str(catalog))


@pytest.fixture
def make_artifact(catalog):
    """Factory writing sw.json (and package.json) for one artifact.

    make_artifact("ui", type="package", package={"name": "@repo/ui"})
    """
    def _make(dir_name, type="template", slug=None, name=None, package=None,
              base=None, files=None, **manifest_fields):
        if base is None:
            base = catalog / ("apps" if type == "template" else "packages")
        path = Path(base) / dir_name
        path.mkdir(parents=True, exist_ok=True)

        manifest = {
            "type": type,
            "slug": slug or dir_name,
            "name": name or dir_name.replace("-", " ").title(),
        }
        manifest.update(manifest_fields)
        (path / "sw.json").write_text(json.dumps(manifest, indent=2))

        if package is not None:
            (path / "package.json").write_text(json.dumps(package, indent=2))

        for rel, content in (files or {}).items():
            target = path / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        return path

    return _make
