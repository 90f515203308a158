"""
The `use` workflow: copy an artifact and its internal dependencies into a
workspace, then run the package manager install.

Usage:
    plan = plan_use(index, resolver, "templates/saas-starter", workspace, options)
    result = execute_use(plan, options, config)
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from swkit.config import Config
from swkit.errors import ArtifactNotFoundError, InvalidSlugError
from swkit.index import ArtifactIndex
from swkit.manifest import PACKAGE_FILE, Artifact, ArtifactType
from swkit.materialize import CopyAction, CopyOptions, CopyResult, copy_artifacts
from swkit.package_manager import detect_package_manager, run_install
from swkit.resolver import DependencyGraph, DependencyResolver
from swkit.workspace import check_package_name_conflict


@dataclass
class UseOptions:
    into: Optional[str] = None  # "apps" | "packages", root artifact only
    as_name: Optional[str] = None  # Destination folder name for the root artifact
    overwrite: bool = False
    dry_run: bool = False
    no_install: bool = False
    package_manager: Optional[str] = None
    verbose: bool = False

    def copy_options(self) -> CopyOptions:
        return CopyOptions(overwrite=self.overwrite, dry_run=self.dry_run)


@dataclass
class CopyStep:
    """One artifact to materialize."""
    artifact: Artifact
    destination: str
    is_root: bool = False


@dataclass
class UsePlan:
    """Everything `use` will do, in order."""
    root: Artifact
    workspace: str
    graph: DependencyGraph
    steps: List[CopyStep] = field(default_factory=list)
    internal: List[Artifact] = field(default_factory=list)
    external: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def root_destination(self) -> str:
        return next(s.destination for s in self.steps if s.is_root)


@dataclass
class UseResult:
    plan: UsePlan
    copies: List[CopyResult] = field(default_factory=list)
    installed: bool = False
    package_manager: Optional[str] = None
    next_steps: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.copies)

    @property
    def errors(self) -> List[str]:
        return [r.error for r in self.copies if r.error]

    def to_dict(self) -> dict:
        root = self.plan.root
        by_slug = {s.artifact.slug: r for s, r in zip(self.plan.steps, self.copies)}
        root_result = by_slug.get(root.slug)
        return {
            "artifact": {"slug": root.slug, "id": root.id, "type": root.type.value},
            "destination": {
                "path": self.plan.root_destination,
                "action": root_result.action.value if root_result else "",
            },
            "order": [s.artifact.slug for s in self.plan.steps],
            "internalDeps": [
                {
                    "name": a.package.name or a.id,
                    "id": a.id,
                    "source": a.abs_path,
                    "dest": by_slug[a.slug].destination if a.slug in by_slug else "",
                    "action": by_slug[a.slug].action.value if a.slug in by_slug else "",
                }
                for a in self.plan.internal
            ],
            "externalDeps": list(self.plan.external),
            "missingDeps": list(self.plan.missing),
            "cycles": [list(c) for c in self.plan.graph.cycles],
            "warnings": list(self.plan.warnings),
            "errors": self.errors,
            "installed": self.installed,
            "packageManager": self.package_manager,
            "nextSteps": list(self.next_steps),
        }


def parse_slug(slug: str) -> ArtifactType:
    """Validate `<templates|packages>/<id>` and return the type it names."""
    prefix, sep, artifact_id = slug.partition("/")
    if not sep or not artifact_id:
        raise InvalidSlugError(slug)
    try:
        return ArtifactType.from_prefix(prefix)
    except ValueError:
        raise InvalidSlugError(slug) from None


def plan_use(
    index: ArtifactIndex,
    resolver: DependencyResolver,
    slug: str,
    workspace: str,
    options: Optional[UseOptions] = None,
) -> UsePlan:
    """Look up slug, resolve its dependencies and lay out the copy steps.

    Raises:
        InvalidSlugError: If slug is malformed
        ArtifactNotFoundError: If no scanned artifact has that slug
    """
    options = options or UseOptions()
    parse_slug(slug)

    index.scan()
    artifact = index.lookup(slug)
    if artifact is None:
        raise ArtifactNotFoundError(slug)

    graph = resolver.resolve(artifact)
    plan = UsePlan(
        root=artifact,
        workspace=workspace,
        graph=graph,
        internal=[a for a in resolver.internal_dependencies(graph) if a.slug != artifact.slug],
        external=resolver.external_dependencies(graph),
        missing=resolver.missing_dependencies(graph),
    )

    # Copies follow the resolver's order so dependencies land together with
    # their dependents before install runs.
    for member in graph.order:
        if member.slug == artifact.slug:
            dest_dir = options.into or artifact.type.default_dir
            dest_name = options.as_name or artifact.id
            plan.steps.append(CopyStep(member, os.path.join(workspace, dest_dir, dest_name), is_root=True))
        else:
            plan.steps.append(CopyStep(member, os.path.join(workspace, member.type.default_dir, member.id)))

    for step in plan.steps:
        name = step.artifact.package.name
        if not name or os.path.exists(step.destination):
            continue
        exists, where = check_package_name_conflict(
            name, workspace, exclude_path=os.path.join(step.destination, PACKAGE_FILE)
        )
        if exists:
            plan.warnings.append(f"Package name {name} is already used by {where}")

    return plan


def _next_steps(plan: UsePlan, package_manager: Optional[str]) -> List[str]:
    root = plan.root
    if root.type is not ArtifactType.TEMPLATE:
        return []
    steps = []
    if "dev" in root.package.scripts:
        rel = os.path.relpath(plan.root_destination, plan.workspace)
        steps.append(f"cd {rel} && {package_manager or 'npm'} run dev")
    if root.manifest.required_env:
        steps.append("Set up required environment variables (see .env.example)")
    return steps


def execute_use(plan: UsePlan, options: UseOptions, config: Config) -> UseResult:
    """Materialize every step in order, then install.

    Install runs only when every copy succeeded and this is not a dry run.
    """
    pairs = [(s.artifact.abs_path, s.destination) for s in plan.steps]
    result = UseResult(plan=plan, copies=copy_artifacts(pairs, options.copy_options()))

    pm = (
        options.package_manager
        or detect_package_manager(plan.workspace)
        or config.default_package_manager
    )
    result.package_manager = pm

    wrote_files = any(r.action in (CopyAction.COPIED, CopyAction.OVERWRITTEN) for r in result.copies)
    if result.ok and wrote_files and not options.dry_run and not options.no_install:
        result.installed = run_install(plan.workspace, pm, verbose=options.verbose)

    result.next_steps = _next_steps(plan, pm)
    return result
