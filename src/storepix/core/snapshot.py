"""Directory snapshots: relative path -> content fingerprint."""

import logging
from pathlib import Path
from typing import Dict, List

from storepix.core.hashing import hash_file

logger = logging.getLogger(__name__)

Snapshot = Dict[str, str]


def list_files(root: Path) -> List[str]:
    """List every regular file under ``root`` as sorted posix relative paths.

    A missing directory has no files.
    """
    root = Path(root)
    if not root.is_dir():
        return []
    return sorted(
        path.relative_to(root).as_posix()
        for path in root.rglob("*")
        if path.is_file()
    )


def snapshot_directory(root: Path) -> Snapshot:
    """Fingerprint every regular file beneath ``root``.

    Keys always use forward slashes so snapshots taken on different
    platforms compare equal. A nonexistent root yields an empty snapshot.
    """
    root = Path(root)
    snapshot = {rel: hash_file(root / rel) for rel in list_files(root)}
    logger.debug("Snapshot of %s: %d file(s)", root, len(snapshot))
    return snapshot
