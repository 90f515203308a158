"""
Artifact index.

Discovers artifacts by walking the configured catalog roots and keeps
them in an explicit slug-keyed cache.

Usage:
    index = ArtifactIndex(config)
    index.scan()                      # populate the cache
    artifact = index.lookup("templates/saas-starter")
"""

import logging
import os
from typing import Dict, Iterator, List, Literal, Optional

from swkit.config import Config
from swkit.errors import ManifestError
from swkit.manifest import MANIFEST_FILE, Artifact, ArtifactType

logger = logging.getLogger(__name__)

Scope = Literal["templates", "packages", "all"]
SCOPES = ("templates", "packages", "all")


class ArtifactCache:
    """Slug-keyed store of scanned artifacts, owned by one ArtifactIndex."""

    def __init__(self):
        self._entries: Dict[str, Artifact] = {}

    def get(self, slug: str) -> Optional[Artifact]:
        return self._entries.get(slug)

    def put(self, artifact: Artifact) -> None:
        """Insert or replace the entry for artifact.slug."""
        self._entries[artifact.slug] = artifact

    def replace(self, artifacts: List[Artifact]) -> None:
        """Drop every entry and load the given artifacts."""
        self._entries = {a.slug: a for a in artifacts}

    def clear(self) -> None:
        self._entries.clear()

    def values(self) -> List[Artifact]:
        return list(self._entries.values())

    def __contains__(self, slug: str) -> bool:
        return slug in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Artifact]:
        return iter(list(self._entries.values()))


class ArtifactIndex:
    """Scans catalog roots for sw.json manifests."""

    def __init__(self, config: Config, cache: Optional[ArtifactCache] = None):
        self.config = config
        self.cache = cache if cache is not None else ArtifactCache()

    def scan(self, scope: Optional[Scope] = None) -> List[Artifact]:
        """Discover artifacts for a scope and record them in the cache.

        A full scan replaces the whole cache; a scoped scan only replaces
        the entries it finds.

        Args:
            scope: "templates", "packages", "all" or None (same as "all")

        Returns:
            Artifacts found, templates first, each root in directory-name order
        """
        if scope is not None and scope not in SCOPES:
            raise ValueError(f"Invalid scope: {scope}. Must be one of: {', '.join(SCOPES)}")

        artifacts: List[Artifact] = []
        if scope in (None, "all", "templates"):
            apps_dir = os.path.join(self.config.templates_root, ArtifactType.TEMPLATE.default_dir)
            artifacts.extend(self._scan_directory(apps_dir, self.config.templates_root))
        if scope in (None, "all", "packages"):
            packages_dir = os.path.join(self.config.packages_root, ArtifactType.PACKAGE.default_dir)
            artifacts.extend(self._scan_directory(packages_dir, self.config.packages_root))

        if scope in (None, "all"):
            self.cache.replace(artifacts)
        else:
            for artifact in artifacts:
                self.cache.put(artifact)
        return artifacts

    def scan_all_packages(self) -> List[Artifact]:
        """Every package-type artifact under any configured root.

        Unlike scan(), this looks in both the apps and packages directory of
        every root, so a package kept next to templates is still found.
        The cache is left untouched.
        """
        seen_dirs = set()
        packages: List[Artifact] = []
        for root in self.config.roots():
            for sub in (ArtifactType.TEMPLATE.default_dir, ArtifactType.PACKAGE.default_dir):
                directory = os.path.abspath(os.path.join(root, sub))
                if directory in seen_dirs:
                    continue
                seen_dirs.add(directory)
                packages.extend(
                    a for a in self._scan_directory(directory, root)
                    if a.type is ArtifactType.PACKAGE
                )
        return packages

    def lookup(self, slug: str) -> Optional[Artifact]:
        """Get a scanned artifact by slug. Never triggers a scan."""
        return self.cache.get(slug)

    def clear(self) -> None:
        """Forget every scanned artifact."""
        self.cache.clear()

    def _scan_directory(self, directory: str, root: str) -> List[Artifact]:
        """Load each child directory of `directory` that holds sw.json."""
        try:
            entries = sorted(os.scandir(directory), key=lambda e: e.name)
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.debug(f"Failed to scan directory {directory}: {e}")
            return []

        artifacts = []
        for entry in entries:
            try:
                if not entry.is_dir():
                    continue
            except OSError:
                continue
            if not os.path.isfile(os.path.join(entry.path, MANIFEST_FILE)):
                continue

            try:
                artifact = Artifact.from_directory(entry.path, root)
            except ManifestError as e:
                logger.debug(f"Failed to parse artifact at {entry.path}: {e}")
                continue

            artifacts.append(artifact)
        return artifacts


def filter_artifacts(
    artifacts: List[Artifact],
    tags: Optional[List[str]] = None,
    text: Optional[str] = None,
    offset: int = 0,
    limit: Optional[int] = None,
) -> List[Artifact]:
    """Narrow a scan result for listing.

    Args:
        artifacts: Scan result
        tags: Keep artifacts carrying any of these tags
        text: Case-insensitive substring of slug, name, description or tags
        offset: Number of matches to skip
        limit: Maximum matches to return

    Returns:
        Matching artifacts in their original order
    """
    result = list(artifacts)

    if tags:
        wanted = set(tags)
        result = [a for a in result if wanted.intersection(a.manifest.tags)]

    if text:
        needle = text.lower()
        result = [
            a for a in result
            if needle in " ".join(
                [a.slug, a.manifest.name, a.manifest.description or ""] + a.manifest.tags
            ).lower()
        ]

    if offset:
        result = result[offset:]
    if limit is not None:
        result = result[:limit]
    return result
