"""
Materializer: copies artifact trees into a workspace.

An existing destination is never overwritten unless asked. If it already
matches the source byte for byte the copy is a no-op, so re-running `use`
succeeds. If it differs, the result carries a conflict error telling the
user how to proceed.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple
import logging
import os
import shutil

from swkit.hashing import directories_identical

logger = logging.getLogger(__name__)


class CopyAction(Enum):
    COPIED = "copied"
    OVERWRITTEN = "overwritten"
    IDENTICAL = "identical"
    WOULD_COPY = "would-copy"
    SKIPPED = "skipped"


# Machine-readable reasons attached to SKIPPED results
REASON_SOURCE_MISSING = "source-missing"
REASON_CONFLICT = "conflict"
REASON_IO_ERROR = "io-error"


@dataclass
class CopyOptions:
    overwrite: bool = False
    dry_run: bool = False


@dataclass
class CopyResult:
    """Outcome of copying one source tree to one destination."""
    source: str
    destination: str
    action: CopyAction
    error: Optional[str] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def is_conflict(self) -> bool:
        return self.reason == REASON_CONFLICT

    def to_dict(self) -> dict:
        d = {
            "source": self.source,
            "destination": self.destination,
            "action": self.action.value,
        }
        if self.error is not None:
            d["error"] = self.error
            d["reason"] = self.reason
        return d


def conflict_message(destination: str) -> str:
    """Error text for a destination that exists with different contents."""
    return (
        f"Destination already exists and differs from the source: {destination}\n"
        "Rename the existing directory (and update any references to it), "
        "or rerun with --overwrite to replace it."
    )


def copy_directory(source: str, destination: str, options: Optional[CopyOptions] = None) -> CopyResult:
    """Copy the tree at source to destination.

    Args:
        source: Directory to copy
        destination: Target directory path
        options: Overwrite and dry-run flags

    Returns:
        CopyResult; failures are reported in it, never raised
    """
    options = options or CopyOptions()

    if not os.path.exists(source):
        return CopyResult(
            source=source,
            destination=destination,
            action=CopyAction.SKIPPED,
            error=f"Source does not exist: {source}",
            reason=REASON_SOURCE_MISSING,
        )

    dest_exists = os.path.exists(destination)

    if dest_exists and not options.overwrite:
        if directories_identical(source, destination):
            return CopyResult(source=source, destination=destination, action=CopyAction.IDENTICAL)
        return CopyResult(
            source=source,
            destination=destination,
            action=CopyAction.SKIPPED,
            error=conflict_message(destination),
            reason=REASON_CONFLICT,
        )

    if options.dry_run:
        return CopyResult(source=source, destination=destination, action=CopyAction.WOULD_COPY)

    try:
        parent = os.path.dirname(os.path.abspath(destination))
        os.makedirs(parent, exist_ok=True)
        # copy2 keeps timestamps and permission bits
        shutil.copytree(source, destination, copy_function=shutil.copy2, dirs_exist_ok=dest_exists)
    except OSError as e:
        logger.debug(f"Copy {source} -> {destination} failed: {e}")
        return CopyResult(
            source=source,
            destination=destination,
            action=CopyAction.SKIPPED,
            error=str(e),
            reason=REASON_IO_ERROR,
        )

    action = CopyAction.OVERWRITTEN if dest_exists else CopyAction.COPIED
    logger.debug(f"{action.value}: {source} -> {destination}")
    return CopyResult(source=source, destination=destination, action=action)


def copy_artifacts(
    pairs: Sequence[Tuple[str, str]],
    options: Optional[CopyOptions] = None,
) -> List[CopyResult]:
    """Copy each (source, destination) pair in order.

    A failed pair does not stop the rest; there is one result per pair.
    """
    return [copy_directory(source, destination, options) for source, destination in pairs]
