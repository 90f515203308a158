"""
Manifest model for catalog artifacts.

Each artifact directory carries an sw.json manifest describing what it is,
and optionally a package.json package descriptor listing its dependencies.

    <root>/apps/saas-starter/sw.json
    <root>/apps/saas-starter/package.json
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import json
import os

from swkit.errors import ManifestError


MANIFEST_FILE = "sw.json"
PACKAGE_FILE = "package.json"

# Sections of package.json that declare dependencies, in merge order
DEPENDENCY_SECTIONS = ("dependencies", "devDependencies", "peerDependencies")


class ArtifactType(Enum):
    """Kind of artifact, with the prefix and directories tied to it."""
    TEMPLATE = "template"
    PACKAGE = "package"

    @property
    def prefix(self) -> str:
        """Slug prefix and scan scope name: 'templates' or 'packages'."""
        return "templates" if self is ArtifactType.TEMPLATE else "packages"

    @property
    def default_dir(self) -> str:
        """Workspace directory this type lives in: 'apps' or 'packages'."""
        return "apps" if self is ArtifactType.TEMPLATE else "packages"

    @classmethod
    def from_prefix(cls, prefix: str) -> "ArtifactType":
        for member in cls:
            if member.prefix == prefix:
                return member
        raise ValueError(f"Unknown artifact prefix: {prefix}")


@dataclass
class EnvVar:
    """An environment variable an artifact needs at runtime."""
    name: str
    description: str
    example: Optional[str] = None

    def to_dict(self) -> dict:
        d = {"name": self.name, "description": self.description}
        if self.example is not None:
            d["example"] = self.example
        return d

    @classmethod
    def from_dict(cls, d: Any) -> "EnvVar":
        if not isinstance(d, dict):
            raise ManifestError("requiredEnv entries must be objects")
        name = d.get("name")
        description = d.get("description")
        example = d.get("example")
        if not isinstance(name, str):
            raise ManifestError("requiredEnv entry is missing 'name'")
        if not isinstance(description, str):
            raise ManifestError(f"requiredEnv '{name}' is missing 'description'")
        if example is not None and not isinstance(example, str):
            raise ManifestError(f"requiredEnv '{name}' has a non-string 'example'")
        return cls(name=name, description=description, example=example)


@dataclass
class Manifest:
    """Parsed and validated contents of sw.json."""
    type: ArtifactType
    slug: str
    name: str
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    required_env: List[EnvVar] = field(default_factory=list)
    view: Optional[List[Any]] = None  # Preview directives, passed through untouched

    def to_dict(self) -> dict:
        d = {
            "type": self.type.value,
            "slug": self.slug,
            "name": self.name,
            "tags": list(self.tags),
            "requiredEnv": [e.to_dict() for e in self.required_env],
        }
        if self.description is not None:
            d["description"] = self.description
        if self.view is not None:
            d["view"] = self.view
        return d

    @classmethod
    def from_dict(cls, d: Any) -> "Manifest":
        """Validate a decoded sw.json object.

        Raises:
            ManifestError: If a required field is missing or has the wrong shape
        """
        if not isinstance(d, dict):
            raise ManifestError("manifest must be a JSON object")

        raw_type = d.get("type")
        try:
            artifact_type = ArtifactType(raw_type)
        except ValueError:
            raise ManifestError(
                f"'type' must be 'template' or 'package', got {raw_type!r}"
            ) from None

        slug = d.get("slug")
        if not isinstance(slug, str) or not slug:
            raise ManifestError("'slug' must be a non-empty string")

        name = d.get("name")
        if not isinstance(name, str) or not name:
            raise ManifestError("'name' must be a non-empty string")

        description = d.get("description")
        if description is not None and not isinstance(description, str):
            raise ManifestError("'description' must be a string")

        tags = d.get("tags", [])
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise ManifestError("'tags' must be a list of strings")

        required_env = d.get("requiredEnv", [])
        if not isinstance(required_env, list):
            raise ManifestError("'requiredEnv' must be a list")

        view = d.get("view")
        if view is not None and not isinstance(view, list):
            raise ManifestError("'view' must be a list")

        return cls(
            type=artifact_type,
            slug=slug,
            name=name,
            description=description,
            tags=list(tags),
            required_env=[EnvVar.from_dict(e) for e in required_env],
            view=view,
        )

    @classmethod
    def load(cls, path: str) -> "Manifest":
        """Read and validate a manifest file.

        Raises:
            ManifestError: On unreadable, non-JSON or invalid content
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError) as e:
            raise ManifestError(f"cannot read manifest: {e}", path) from e
        except json.JSONDecodeError as e:
            raise ManifestError(f"invalid JSON: {e}", path) from e

        try:
            return cls.from_dict(data)
        except ManifestError as e:
            raise ManifestError(str(e), path) from e


def _string_map(value: Any) -> Dict[str, str]:
    """Keep only the str -> str entries of a dependency section."""
    if not isinstance(value, dict):
        return {}
    return {k: v for k, v in value.items() if isinstance(k, str) and isinstance(v, str)}


@dataclass
class PackageDescriptor:
    """Typed view of the package.json fields this tool reads.

    Anything else in the file is kept in `raw` untouched.
    """
    name: Optional[str] = None
    version: Optional[str] = None
    dependencies: Dict[str, str] = field(default_factory=dict)
    dev_dependencies: Dict[str, str] = field(default_factory=dict)
    peer_dependencies: Dict[str, str] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: Any) -> "PackageDescriptor":
        if not isinstance(d, dict):
            return cls()
        name = d.get("name")
        version = d.get("version")
        return cls(
            name=name if isinstance(name, str) and name else None,
            version=version if isinstance(version, str) else None,
            dependencies=_string_map(d.get("dependencies")),
            dev_dependencies=_string_map(d.get("devDependencies")),
            peer_dependencies=_string_map(d.get("peerDependencies")),
            raw=dict(d),
        )

    @classmethod
    def load(cls, path: str) -> "PackageDescriptor":
        """Read package.json, treating a missing or broken file as empty."""
        if not os.path.isfile(path):
            return cls()
        try:
            with open(path, "r", encoding="utf-8") as f:
                return cls.from_dict(json.load(f))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            return cls()

    def declared_dependencies(self) -> Dict[str, str]:
        """All declared dependencies; an earlier section wins on duplicate names."""
        merged: Dict[str, str] = {}
        for section in (self.dependencies, self.dev_dependencies, self.peer_dependencies):
            for dep_name, version in section.items():
                merged.setdefault(dep_name, version)
        return merged

    @property
    def scripts(self) -> Dict[str, str]:
        return _string_map(self.raw.get("scripts"))


@dataclass(frozen=True)
class Artifact:
    """A discovered template or package.

    The slug (`templates/<id>` or `packages/<id>`) is the global lookup key.
    """
    slug: str
    id: str
    type: ArtifactType
    rel_path: str
    abs_path: str
    manifest: Manifest = field(compare=False)
    package: PackageDescriptor = field(default_factory=PackageDescriptor, compare=False)

    @classmethod
    def from_directory(cls, path: str, root: str) -> "Artifact":
        """Build an artifact from a directory holding sw.json.

        Raises:
            ManifestError: If sw.json is missing or invalid
        """
        abs_path = os.path.abspath(path)
        manifest = Manifest.load(os.path.join(abs_path, MANIFEST_FILE))
        package = PackageDescriptor.load(os.path.join(abs_path, PACKAGE_FILE))
        return cls(
            slug=f"{manifest.type.prefix}/{manifest.slug}",
            id=manifest.slug,
            type=manifest.type,
            rel_path=os.path.relpath(abs_path, os.path.abspath(root)),
            abs_path=abs_path,
            manifest=manifest,
            package=package,
        )

    @property
    def name(self) -> str:
        """Human-readable name from the manifest."""
        return self.manifest.name

    @property
    def package_name(self) -> Optional[str]:
        return self.package.name

    def to_dict(self, paths: bool = False, long: bool = False) -> dict:
        d = {
            "slug": self.slug,
            "id": self.id,
            "type": self.type.value,
            "name": self.manifest.name,
            "description": self.manifest.description,
            "tags": list(self.manifest.tags),
        }
        if paths:
            d["relPath"] = self.rel_path
            d["absPath"] = self.abs_path
        if long:
            d["requiredEnv"] = [e.to_dict() for e in self.manifest.required_env]
            d["packageName"] = self.package.name
            d["version"] = self.package.version
        return d
