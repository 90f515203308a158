"""
swkit - Reuse templates and packages from a catalog of monorepos.

Discovers artifacts by their sw.json manifests, resolves the internal
artifacts each one depends on, and copies the whole set into a workspace
without clobbering local edits.
"""

__version__ = "1.0.0"

from swkit.config import Config, load_config
from swkit.hashing import compute_directory_hash, directories_identical
from swkit.index import ArtifactCache, ArtifactIndex, filter_artifacts
from swkit.manifest import Artifact, ArtifactType, EnvVar, Manifest, PackageDescriptor
from swkit.materialize import CopyAction, CopyOptions, CopyResult, copy_artifacts, copy_directory
from swkit.resolver import Dependency, DependencyGraph, DependencyKind, DependencyResolver

__all__ = [
    "Artifact",
    "ArtifactCache",
    "ArtifactIndex",
    "ArtifactType",
    "Config",
    "CopyAction",
    "CopyOptions",
    "CopyResult",
    "Dependency",
    "DependencyGraph",
    "DependencyKind",
    "DependencyResolver",
    "EnvVar",
    "Manifest",
    "PackageDescriptor",
    "compute_directory_hash",
    "copy_artifacts",
    "copy_directory",
    "directories_identical",
    "filter_artifacts",
    "load_config",
]
