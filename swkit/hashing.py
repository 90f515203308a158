"""
Content hashing for directory trees.

Two trees hash the same when they hold the same relative paths with the
same bytes, sizes and permission modes. Directory listing order on disk
does not matter.
"""

import hashlib
import logging
import os
from typing import List

logger = logging.getLogger(__name__)

# Directory names never included in a hash
EXCLUDED_DIRS = frozenset({".git", "node_modules"})

_CHUNK_SIZE = 1024 * 1024


def _raise(error: OSError) -> None:
    raise error


def list_files(root: str) -> List[str]:
    """All files under root as sorted relative POSIX paths.

    Skips EXCLUDED_DIRS at any depth. Symlinks are followed the same way
    the materializer copies them; a link back into its own ancestry is not
    descended.

    Raises:
        OSError: If root or any directory below it cannot be listed
    """
    if not os.path.isdir(root):
        raise NotADirectoryError(f"Not a directory: {root}")

    files = []
    ancestry = {root: ()}
    for current, dirs, names in os.walk(root, onerror=_raise, followlinks=True):
        real = os.path.realpath(current)
        parents = ancestry.pop(current, ())
        if real in parents:  # Symlink loop
            dirs[:] = []
            continue

        dirs[:] = [d for d in dirs if d not in EXCLUDED_DIRS]
        for d in dirs:
            ancestry[os.path.join(current, d)] = parents + (real,)

        rel_dir = os.path.relpath(current, root)
        for name in names:
            rel = name if rel_dir == "." else os.path.join(rel_dir, name)
            files.append(rel.replace(os.sep, "/"))
    files.sort()
    return files


def compute_directory_hash(root: str) -> str:
    """sha256 over each file's relative path, contents and size/mode.

    Raises:
        OSError: If root is not a directory, or a directory or file
            below it cannot be read
    """
    digest = hashlib.sha256()
    for rel in list_files(root):
        full = os.path.join(root, *rel.split("/"))
        digest.update(rel.encode("utf-8"))

        with open(full, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                digest.update(chunk)

        st = os.stat(full)
        digest.update(f"{st.st_size}-{st.st_mode}".encode("ascii"))

    return digest.hexdigest()


def directories_identical(first: str, second: str) -> bool:
    """True if both trees hash the same. Unhashable trees count as different."""
    try:
        return compute_directory_hash(first) == compute_directory_hash(second)
    except OSError as e:
        logger.debug(f"Could not hash {first} / {second}: {e}")
        return False
