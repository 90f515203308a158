"""
Package manager detection and the install step run after copying.
"""

import logging
import os
import subprocess
from typing import List, Optional

from swkit.config import PACKAGE_MANAGERS

logger = logging.getLogger(__name__)

# Lockfile -> package manager, checked in this order
LOCKFILES = [
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("bun.lockb", "bun"),
    ("package-lock.json", "npm"),
]


def detect_package_manager(project_path: str) -> Optional[str]:
    """Guess the package manager from lockfiles, or None."""
    for lockfile, pm in LOCKFILES:
        if os.path.exists(os.path.join(project_path, lockfile)):
            return pm
    return None


def get_install_command(pm: str) -> List[str]:
    """argv for `<pm> install`. Unknown managers fall back to npm."""
    if pm not in PACKAGE_MANAGERS:
        pm = "npm"
    return [pm, "install"]


def run_install(project_path: str, pm: str, verbose: bool = False) -> bool:
    """Run the package manager's install in project_path.

    Returns:
        True if the command exited 0. A missing executable is a failure,
        not an exception.
    """
    cmd = get_install_command(pm)
    try:
        result = subprocess.run(
            cmd,
            cwd=project_path,
            capture_output=not verbose,
            text=True,
        )
    except OSError as e:
        logger.warning(f"Could not run {' '.join(cmd)}: {e}")
        return False

    if result.returncode != 0:
        logger.debug(f"{' '.join(cmd)} exited {result.returncode}: {result.stderr or ''}")
    return result.returncode == 0
