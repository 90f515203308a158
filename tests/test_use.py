"""
Tests for the use workflow (plan, copy, install).
"""

import os

import pytest

from swkit import use as use_module
from swkit.errors import ArtifactNotFoundError, InvalidSlugError
from swkit.index import ArtifactIndex
from swkit.manifest import ArtifactType
from swkit.materialize import CopyAction
from swkit.resolver import DependencyResolver
from swkit.use import UseOptions, execute_use, parse_slug, plan_use


@pytest.fixture
def workspace(tmp_path):
    ws = tmp_path / "ws"
    ws.mkdir()
    (ws / "turbo.json").write_text("{}")
    return ws


@pytest.fixture
def index(config):
    return ArtifactIndex(config)


@pytest.fixture
def resolver(config, index):
    return DependencyResolver(config, index)


@pytest.fixture
def saas(make_artifact):
    """Template -> ui -> utils, plus one external dependency."""
    make_artifact(
        "saas",
        package={
            "name": "@repo/saas",
            "scripts": {"dev": "next dev"},
            "dependencies": {"@repo/ui": "workspace:*", "react": "^18.0.0"},
        },
        requiredEnv=[{"name": "DATABASE_URL", "description": "Postgres URL"}],
        files={"src/page.tsx": "export default () => null\n"},
    )
    make_artifact(
        "ui",
        type="package",
        package={"name": "@repo/ui", "dependencies": {"@repo/utils": "workspace:*"}},
        files={"src/button.tsx": "export const Button = 1\n"},
    )
    make_artifact("utils", type="package", package={"name": "@repo/utils"})


@pytest.fixture
def installs(monkeypatch):
    """Record run_install calls instead of spawning a package manager."""
    calls = []

    def fake_install(path, pm, verbose=False):
        calls.append((path, pm))
        return True

    monkeypatch.setattr(use_module, "run_install", fake_install)
    return calls


class TestParseSlug:

    def test_valid(self):
        assert parse_slug("templates/saas") is ArtifactType.TEMPLATE
        assert parse_slug("packages/ui") is ArtifactType.PACKAGE

    @pytest.mark.parametrize("slug", ["saas", "widgets/saas", "templates/", "/saas", ""])
    def test_invalid(self, slug):
        with pytest.raises(InvalidSlugError, match="Expected format"):
            parse_slug(slug)


class TestPlanUse:

    def test_steps_follow_install_order(self, index, resolver, saas, workspace):
        plan = plan_use(index, resolver, "templates/saas", str(workspace))

        assert [s.artifact.slug for s in plan.steps] == ["templates/saas", "packages/ui", "packages/utils"]
        assert [s.destination for s in plan.steps] == [
            str(workspace / "apps" / "saas"),
            str(workspace / "packages" / "ui"),
            str(workspace / "packages" / "utils"),
        ]
        assert [s.is_root for s in plan.steps] == [True, False, False]
        assert {a.slug for a in plan.internal} == {"packages/ui", "packages/utils"}
        assert plan.external == ["react@^18.0.0"]
        assert plan.missing == []

    def test_into_and_as_apply_to_root_only(self, index, resolver, saas, workspace):
        options = UseOptions(into="packages", as_name="billing")

        plan = plan_use(index, resolver, "templates/saas", str(workspace), options)

        assert plan.root_destination == str(workspace / "packages" / "billing")
        assert plan.steps[1].destination == str(workspace / "packages" / "ui")

    def test_package_root_goes_to_packages(self, index, resolver, saas, workspace):
        plan = plan_use(index, resolver, "packages/ui", str(workspace))
        assert plan.root_destination == str(workspace / "packages" / "ui")
        assert [s.artifact.slug for s in plan.steps] == ["packages/ui", "packages/utils"]

    def test_scans_before_lookup(self, index, resolver, saas, workspace):
        assert len(index.cache) == 0
        plan = plan_use(index, resolver, "templates/saas", str(workspace))
        assert plan.root.slug == "templates/saas"

    def test_not_found(self, index, resolver, saas, workspace):
        with pytest.raises(ArtifactNotFoundError, match="templates/nope"):
            plan_use(index, resolver, "templates/nope", str(workspace))

    def test_invalid_slug(self, index, resolver, workspace):
        with pytest.raises(InvalidSlugError):
            plan_use(index, resolver, "nope", str(workspace))

    def test_missing_internal_dependency(self, index, resolver, make_artifact, workspace):
        make_artifact("app", package={"dependencies": {"@repo/ghost": "workspace:*"}})

        plan = plan_use(index, resolver, "templates/app", str(workspace))

        assert plan.missing == ["@repo/ghost"]
        assert len(plan.steps) == 1

    def test_package_name_conflict_warning(self, index, resolver, saas, workspace):
        existing = workspace / "packages" / "old-ui"
        existing.mkdir(parents=True)
        (existing / "package.json").write_text('{"name": "@repo/ui"}')

        plan = plan_use(index, resolver, "templates/saas", str(workspace))

        assert len(plan.warnings) == 1
        assert "@repo/ui" in plan.warnings[0]
        assert str(existing / "package.json") in plan.warnings[0]


class TestExecuteUse:

    def test_copies_everything_then_installs(self, index, resolver, config, saas, workspace, installs):
        options = UseOptions()
        plan = plan_use(index, resolver, "templates/saas", str(workspace), options)

        result = execute_use(plan, options, config)

        assert result.ok
        assert [c.action for c in result.copies] == [CopyAction.COPIED] * 3
        assert (workspace / "apps" / "saas" / "src" / "page.tsx").exists()
        assert (workspace / "packages" / "ui" / "src" / "button.tsx").exists()
        assert (workspace / "packages" / "utils" / "sw.json").exists()
        assert installs == [(str(workspace), "pnpm")]
        assert result.installed

    def test_package_manager_detected_from_lockfile(self, index, resolver, config, saas, workspace, installs):
        (workspace / "yarn.lock").write_text("")
        options = UseOptions()
        plan = plan_use(index, resolver, "templates/saas", str(workspace), options)

        result = execute_use(plan, options, config)

        assert result.package_manager == "yarn"
        assert installs[0][1] == "yarn"

    def test_explicit_package_manager_wins(self, index, resolver, config, saas, workspace, installs):
        (workspace / "yarn.lock").write_text("")
        options = UseOptions(package_manager="bun")
        plan = plan_use(index, resolver, "templates/saas", str(workspace), options)

        assert execute_use(plan, options, config).package_manager == "bun"

    def test_no_install(self, index, resolver, config, saas, workspace, installs):
        options = UseOptions(no_install=True)
        plan = plan_use(index, resolver, "templates/saas", str(workspace), options)

        result = execute_use(plan, options, config)

        assert result.ok
        assert installs == []
        assert not result.installed

    def test_dry_run_writes_nothing(self, index, resolver, config, saas, workspace, installs):
        options = UseOptions(dry_run=True)
        plan = plan_use(index, resolver, "templates/saas", str(workspace), options)

        result = execute_use(plan, options, config)

        assert [c.action for c in result.copies] == [CopyAction.WOULD_COPY] * 3
        assert sorted(os.listdir(workspace)) == ["turbo.json"]
        assert installs == []

    def test_rerun_is_identical_and_skips_install(self, index, resolver, config, saas, workspace, installs):
        options = UseOptions()
        execute_use(plan_use(index, resolver, "templates/saas", str(workspace), options), options, config)
        installs.clear()

        result = execute_use(plan_use(index, resolver, "templates/saas", str(workspace), options), options, config)

        assert result.ok
        assert [c.action for c in result.copies] == [CopyAction.IDENTICAL] * 3
        assert installs == []

    def test_conflict_blocks_install_but_not_other_copies(self, index, resolver, config, saas, workspace, installs):
        ui = workspace / "packages" / "ui"
        ui.mkdir(parents=True)
        (ui / "local.txt").write_text("mine")
        options = UseOptions()
        plan = plan_use(index, resolver, "templates/saas", str(workspace), options)

        result = execute_use(plan, options, config)

        assert not result.ok
        assert [c.action for c in result.copies] == [CopyAction.COPIED, CopyAction.SKIPPED, CopyAction.COPIED]
        assert result.copies[1].is_conflict
        assert len(result.errors) == 1
        assert installs == []
        assert (ui / "local.txt").read_text() == "mine"

    def test_overwrite_resolves_conflict(self, index, resolver, config, saas, workspace, installs):
        ui = workspace / "packages" / "ui"
        ui.mkdir(parents=True)
        (ui / "local.txt").write_text("mine")
        options = UseOptions(overwrite=True)
        plan = plan_use(index, resolver, "templates/saas", str(workspace), options)

        result = execute_use(plan, options, config)

        assert result.ok
        assert result.copies[1].action is CopyAction.OVERWRITTEN
        assert (ui / "src" / "button.tsx").exists()

    def test_next_steps_for_template(self, index, resolver, config, saas, workspace, installs):
        options = UseOptions(no_install=True)
        plan = plan_use(index, resolver, "templates/saas", str(workspace), options)

        result = execute_use(plan, options, config)

        assert result.next_steps[0] == f"cd {os.path.join('apps', 'saas')} && pnpm run dev"
        assert "environment variables" in result.next_steps[1]

    def test_no_next_steps_for_package(self, index, resolver, config, saas, workspace, installs):
        options = UseOptions(no_install=True)
        plan = plan_use(index, resolver, "packages/ui", str(workspace), options)
        assert execute_use(plan, options, config).next_steps == []

    def test_to_dict(self, index, resolver, config, saas, workspace, installs):
        options = UseOptions(no_install=True)
        plan = plan_use(index, resolver, "templates/saas", str(workspace), options)

        data = execute_use(plan, options, config).to_dict()

        assert data["artifact"] == {"slug": "templates/saas", "id": "saas", "type": "template"}
        assert data["destination"] == {"path": str(workspace / "apps" / "saas"), "action": "copied"}
        assert data["order"] == ["templates/saas", "packages/ui", "packages/utils"]
        assert {d["name"] for d in data["internalDeps"]} == {"@repo/ui", "@repo/utils"}
        assert data["externalDeps"] == ["react@^18.0.0"]
        assert data["errors"] == []
        assert data["installed"] is False
        assert data["packageManager"] == "pnpm"
