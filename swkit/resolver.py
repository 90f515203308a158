"""
Dependency resolution between catalog artifacts.

Reads each artifact's package.json, decides which declared dependencies
are internal (another artifact in the catalog) and which are external
(installed from a registry), and computes the order artifacts should be
materialized in.

Traversal uses explicit stacks with a three-state node machine, so deep
or cyclic graphs never hit the recursion limit.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple
import logging

from swkit.config import Config
from swkit.index import ArtifactIndex
from swkit.manifest import Artifact

logger = logging.getLogger(__name__)


class DependencyKind(Enum):
    INTERNAL = "internal"
    EXTERNAL = "external"


class NodeState(Enum):
    UNVISITED = 0
    VISITING = 1
    VISITED = 2


@dataclass
class Dependency:
    """One distinct dependency name found anywhere in the graph.

    An INTERNAL dependency normally carries the catalog artifact behind it.
    A name matching an internal scope with no such artifact stays INTERNAL
    with artifact=None, so it is reported as missing rather than installed
    from a registry. Use is_resolved to tell the two apart.
    """
    name: str
    version: str  # As declared, never parsed
    kind: DependencyKind
    artifact: Optional[Artifact] = None

    def __post_init__(self):
        if self.kind is DependencyKind.EXTERNAL and self.artifact is not None:
            raise ValueError(f"External dependency '{self.name}' cannot reference an artifact")

    @property
    def is_internal(self) -> bool:
        return self.kind is DependencyKind.INTERNAL

    @property
    def is_resolved(self) -> bool:
        """Internal and backed by a catalog artifact."""
        return self.artifact is not None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "kind": self.kind.value,
            "artifact": self.artifact.slug if self.artifact else None,
        }


@dataclass
class DependencyGraph:
    """Result of resolving one root artifact."""
    root: Artifact
    dependencies: Dict[str, Dependency] = field(default_factory=dict)
    order: List[Artifact] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)  # Slug chains, first == last

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycles)

    def to_dict(self) -> dict:
        return {
            "root": self.root.slug,
            "dependencies": [d.to_dict() for d in self.dependencies.values()],
            "order": [a.slug for a in self.order],
            "cycles": [list(c) for c in self.cycles],
        }


class DependencyResolver:
    """Builds DependencyGraphs from an ArtifactIndex.

    The index is only read. Each resolve() rescans the package pool so the
    name map reflects what is currently on disk.
    """

    def __init__(self, config: Config, index: ArtifactIndex):
        self.config = config
        self.index = index
        self._by_package_name: Dict[str, Artifact] = {}

    def resolve(self, artifact: Artifact) -> DependencyGraph:
        """Resolve every dependency reachable from artifact.

        Never raises for cycles or broken package.json files; cycles are
        logged and listed in graph.cycles.
        """
        self._build_package_index()

        graph = DependencyGraph(root=artifact)
        self._collect_dependencies(graph)
        graph.order = self._install_order(graph)
        return graph

    def classify(self, name: str, version: str) -> Dependency:
        """Classify a dependency name as internal or external."""
        artifact = self._by_package_name.get(name)
        if artifact is not None or self.config.is_internal_name(name):
            return Dependency(name=name, version=version, kind=DependencyKind.INTERNAL, artifact=artifact)
        return Dependency(name=name, version=version, kind=DependencyKind.EXTERNAL)

    def internal_dependencies(self, graph: DependencyGraph) -> List[Artifact]:
        """Artifacts behind every resolved internal dependency."""
        return [d.artifact for d in graph.dependencies.values() if d.is_internal and d.artifact is not None]

    def external_dependencies(self, graph: DependencyGraph) -> List[str]:
        """External dependencies as 'name@version'."""
        return [
            f"{d.name}@{d.version}"
            for d in graph.dependencies.values()
            if d.kind is DependencyKind.EXTERNAL
        ]

    def missing_dependencies(self, graph: DependencyGraph) -> List[str]:
        """Internal-scope names with no matching artifact in the catalog."""
        return [d.name for d in graph.dependencies.values() if d.is_internal and d.artifact is None]

    def _build_package_index(self) -> None:
        """Map package.json name -> artifact over every catalog package."""
        self._by_package_name = {}
        for artifact in self.index.scan_all_packages():
            if artifact.package.name:
                self._by_package_name[artifact.package.name] = artifact

    def _collect_dependencies(self, graph: DependencyGraph) -> None:
        """Depth-first walk from graph.root recording each new dependency name."""
        states: Dict[str, NodeState] = {graph.root.slug: NodeState.VISITING}
        stack: List[Tuple[Artifact, Iterator[Tuple[str, str]]]] = [
            (graph.root, iter(graph.root.package.declared_dependencies().items()))
        ]

        while stack:
            current, pending = stack[-1]
            step = next(pending, None)
            if step is None:
                stack.pop()
                states[current.slug] = NodeState.VISITED
                continue

            name, version = step
            dep = graph.dependencies.get(name)
            first_seen = dep is None
            if first_seen:
                dep = self.classify(name, version)
                graph.dependencies[name] = dep
            target = dep.artifact
            if target is None:
                continue

            state = states.get(target.slug, NodeState.UNVISITED)
            if state is NodeState.VISITING:
                chain = [a.slug for a, _ in stack]
                cycle = chain[chain.index(target.slug):] + [target.slug]
                logger.warning(f"Circular dependency detected: {' -> '.join(cycle)}")
                graph.cycles.append(cycle)
                continue
            # A name seen before keeps its first classification and is not re-walked
            if state is NodeState.VISITED or not first_seen:
                continue

            states[target.slug] = NodeState.VISITING
            stack.append((target, iter(target.package.declared_dependencies().items())))

    def _install_order(self, graph: DependencyGraph) -> List[Artifact]:
        """Order the root and its internal dependencies.

        Every artifact comes before the artifacts it depends on, root first.
        Dependencies not reachable from the root are appended afterwards.
        """
        members: Dict[str, Artifact] = {graph.root.slug: graph.root}
        internal = [d for d in graph.dependencies.values() if d.artifact is not None]
        for dep in internal:
            members.setdefault(dep.artifact.slug, dep.artifact)

        # Any artifact declaring a dependency gets an edge to it, not just
        # the ones reached during collection.
        declarers: Dict[str, Artifact] = dict(members)
        for artifact in self._by_package_name.values():
            declarers.setdefault(artifact.slug, artifact)
        declared = {slug: a.package.declared_dependencies() for slug, a in declarers.items()}

        adjacency: Dict[str, List[str]] = {slug: [] for slug in members}
        for dep in internal:
            target = dep.artifact.slug
            for slug in declarers:
                if slug == target or dep.name not in declared[slug]:
                    continue
                edges = adjacency.setdefault(slug, [])
                if target not in edges:
                    edges.append(target)

        states: Dict[str, NodeState] = {}

        def walk(start: str) -> List[Artifact]:
            finished: List[str] = []
            states[start] = NodeState.VISITING
            stack = [(start, iter(adjacency.get(start, [])))]
            while stack:
                slug, targets = stack[-1]
                nxt = next(targets, None)
                if nxt is None:
                    stack.pop()
                    states[slug] = NodeState.VISITED
                    finished.append(slug)
                    continue
                # VISITING here is a cycle already reported during collection
                if states.get(nxt, NodeState.UNVISITED) is NodeState.UNVISITED:
                    states[nxt] = NodeState.VISITING
                    stack.append((nxt, iter(adjacency.get(nxt, []))))
            return [members[s] for s in reversed(finished) if s in members]

        order = walk(graph.root.slug)
        for dep in internal:
            if dep.artifact.slug not in states:
                order.extend(walk(dep.artifact.slug))
        return order
