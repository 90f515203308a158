"""
sw CLI - copy templates and packages out of the catalog.

Commands:
- list: Show catalog artifacts
- deps: Show how an artifact's dependencies resolve
- use: Copy an artifact and its internal dependencies into this workspace
"""

import json
import logging
import os
import sys

import click

from swkit import __version__
from swkit.config import PACKAGE_MANAGERS, load_config
from swkit.errors import SwError
from swkit.index import SCOPES, ArtifactIndex, filter_artifacts
from swkit.materialize import CopyAction
from swkit.resolver import DependencyResolver
from swkit.use import UseOptions, execute_use, parse_slug, plan_use
from swkit.workspace import find_workspace_root


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _load():
    """Config plus a fresh index, exiting on configuration errors."""
    try:
        config = load_config()
    except SwError as e:
        _fail(str(e))
    return config, ArtifactIndex(config)


@click.group()
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, help="Log skipped artifacts and other diagnostics")
def cli(debug: bool):
    """sw - Manage and reuse code templates and packages.

    Catalog roots come from SW_TEMPLATES_ROOT and SW_PACKAGES_ROOT,
    preferences from ~/.swrc.json.
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )


# ============================================================================
# Discovery
# ============================================================================

@cli.command("list")
@click.argument("scope", default="all", type=click.Choice(SCOPES))
@click.option("--tag", "tags", multiple=True, help="Only artifacts with this tag (repeatable)")
@click.option("--text", default=None, help="Case-insensitive text filter")
@click.option("--limit", type=int, default=None, help="Maximum number of results")
@click.option("--offset", type=int, default=0, help="Skip this many results")
@click.option("--json", "as_json", is_flag=True, help="Structured output")
@click.option("--long", "long_", is_flag=True, help="Include version and required env")
@click.option("--paths", is_flag=True, help="Include filesystem paths")
@click.option("-q", "--quiet", is_flag=True, help="Only print slugs")
def list_artifacts(scope, tags, text, limit, offset, as_json, long_, paths, quiet):
    """List templates and packages in the catalog."""
    _, index = _load()
    artifacts = filter_artifacts(index.scan(scope), tags=list(tags), text=text, offset=offset, limit=limit)

    if quiet:
        for a in artifacts:
            click.echo(a.slug)
        return

    if as_json:
        click.echo(json.dumps([a.to_dict(paths=paths, long=long_) for a in artifacts], indent=2))
        return

    if not artifacts:
        click.echo("No artifacts found")
        return

    click.echo(f"\nFound {len(artifacts)} artifact{'' if len(artifacts) == 1 else 's'}:\n")
    for a in artifacts:
        click.echo(a.slug)
        click.echo(f"  {a.manifest.name}")
        if a.manifest.description:
            click.echo(f"  {a.manifest.description}")
        if a.manifest.tags:
            click.echo(f"  Tags: {', '.join(a.manifest.tags)}")
        if long_:
            if a.package.version:
                click.echo(f"  Version: {a.package.version}")
            if a.manifest.required_env:
                click.echo(f"  Required env: {', '.join(e.name for e in a.manifest.required_env)}")
        if paths:
            click.echo(f"  Path: {a.abs_path}")
        click.echo()


@cli.command()
@click.argument("slug")
@click.option("--json", "as_json", is_flag=True, help="Structured output")
def deps(slug, as_json):
    """Show internal and external dependencies of SLUG."""
    config, index = _load()
    try:
        parse_slug(slug)
    except SwError as e:
        _fail(str(e))

    index.scan()
    artifact = index.lookup(slug)
    if artifact is None:
        _fail(f"Artifact not found: {slug}")

    resolver = DependencyResolver(config, index)
    graph = resolver.resolve(artifact)

    if as_json:
        data = graph.to_dict()
        data["internal"] = [a.slug for a in resolver.internal_dependencies(graph)]
        data["external"] = resolver.external_dependencies(graph)
        data["missing"] = resolver.missing_dependencies(graph)
        click.echo(json.dumps(data, indent=2))
        return

    click.echo(f"{artifact.slug} ({artifact.manifest.name})")
    internal = resolver.internal_dependencies(graph)
    if internal:
        click.echo("\nInternal dependencies:")
        for a in internal:
            click.echo(f"  - {a.manifest.name} ({a.slug})")
    external = resolver.external_dependencies(graph)
    if external:
        click.echo("\nExternal dependencies:")
        for dep in external:
            click.echo(f"  - {dep}")
    missing = resolver.missing_dependencies(graph)
    if missing:
        click.echo("\nNot found in catalog:")
        for name in missing:
            click.echo(f"  - {name}")
    if graph.cycles:
        click.echo("\nCycles:")
        for cycle in graph.cycles:
            click.echo(f"  - {' -> '.join(cycle)}")
    click.echo("\nInstall order:")
    for i, a in enumerate(graph.order, 1):
        click.echo(f"  {i}. {a.slug}")


# ============================================================================
# Materialization
# ============================================================================

@cli.command()
@click.argument("slug")
@click.option("--into", type=click.Choice(["apps", "packages"]), default=None,
              help="Destination directory for the artifact")
@click.option("--as", "as_name", default=None, help="Rename the destination folder")
@click.option("--overwrite", is_flag=True, help="Replace existing destinations")
@click.option("--dry-run", is_flag=True, help="Show the plan without copying")
@click.option("--no-install", is_flag=True, help="Skip package manager install")
@click.option("--pm", type=click.Choice(PACKAGE_MANAGERS), default=None, help="Package manager to use")
@click.option("--print-next", is_flag=True, help="Show suggested next steps")
@click.option("--json", "as_json", is_flag=True, help="Structured output")
def use(slug, into, as_name, overwrite, dry_run, no_install, pm, print_next, as_json):
    """Copy SLUG and its internal dependencies into the current workspace.

    SLUG: templates/<id> or packages/<id>
    """
    config, index = _load()
    options = UseOptions(
        into=into,
        as_name=as_name,
        overwrite=overwrite,
        dry_run=dry_run,
        no_install=no_install,
        package_manager=pm,
        verbose=not as_json,
    )
    workspace = find_workspace_root(os.getcwd())
    resolver = DependencyResolver(config, index)

    try:
        plan = plan_use(index, resolver, slug, workspace, options)
    except SwError as e:
        _fail(str(e))

    if dry_run and not as_json:
        click.echo("\nDry run - would perform the following operations:\n")
        click.echo("Copy artifacts:")
        for step in plan.steps:
            click.echo(f"  {step.artifact.abs_path}\n  -> {step.destination}")

    if not as_json and not dry_run:
        click.echo("Copying artifacts...")

    result = execute_use(plan, options, config)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if not result.ok:
            sys.exit(1)
        return

    for warning in plan.warnings:
        click.echo(f"Warning: {warning}", err=True)

    for step, copy in zip(plan.steps, result.copies):
        if copy.ok:
            if not dry_run:
                click.echo(f"  [{copy.action.value}] {step.artifact.manifest.name} -> {copy.destination}")
        else:
            click.echo(f"Error: {copy.error}", err=True)

    if plan.internal:
        click.echo("\nInternal dependencies:")
        for a in plan.internal:
            click.echo(f"  - {a.manifest.name} ({a.slug})")
    if plan.external:
        click.echo("\nExternal dependencies:")
        for dep in plan.external:
            click.echo(f"  - {dep}")
    if plan.missing:
        click.echo("\nWarning: internal dependencies not found in catalog:", err=True)
        for name in plan.missing:
            click.echo(f"  - {name}", err=True)

    if not result.ok:
        sys.exit(1)
    if dry_run:
        return

    if not no_install and result.package_manager:
        if result.installed:
            click.echo(f"\nInstalled dependencies with {result.package_manager}")
        elif any(c.action in (CopyAction.COPIED, CopyAction.OVERWRITTEN) for c in result.copies):
            click.echo("Warning: Package installation failed", err=True)

    click.echo("\nSuccess!")

    env_vars = plan.root.manifest.required_env
    if env_vars:
        click.echo("\nRequired environment variables:")
        for env in env_vars:
            click.echo(f"  - {env.name}: {env.description}")
            if env.example:
                click.echo(f"    Example: {env.example}")

    if print_next and result.next_steps:
        click.echo("\nNext steps:")
        for i, step in enumerate(result.next_steps, 1):
            click.echo(f"  {i}. {step}")


def main():
    cli()


if __name__ == "__main__":
    main()
