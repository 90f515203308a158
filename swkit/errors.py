"""
Exception types for swkit.

Only conditions the caller cannot treat as a normal outcome are raised.
Not-found lookups, copy conflicts and dependency cycles are returned as
values (None, CopyResult, DependencyGraph.cycles) instead.
"""


class SwError(Exception):
    """Base class for all swkit errors."""


class ConfigError(SwError):
    """Configuration is missing or invalid."""


class ManifestError(SwError, ValueError):
    """An sw.json manifest failed to parse or validate."""

    def __init__(self, message: str, path: str = ""):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class InvalidSlugError(SwError):
    """A slug is not in `<templates|packages>/<id>` form."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(
            f"Invalid slug format: {slug}. "
            "Expected format: templates/<id> or packages/<id>"
        )


class ArtifactNotFoundError(SwError):
    """No scanned artifact has the requested slug."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Artifact not found: {slug}")
