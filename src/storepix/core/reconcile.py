"""Three-way comparison of user, upstream and baseline template files."""

import logging
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional

from pydantic import BaseModel

from storepix.core.snapshot import Snapshot, snapshot_directory
from storepix.models.change import ChangeKind, ChangeRecord

logger = logging.getLogger(__name__)


def reconcile(
    user_snapshot: Mapping[str, str],
    upstream_snapshot: Mapping[str, str],
    baseline: Optional[Mapping[str, str]] = None,
) -> List[ChangeRecord]:
    """Classify every path that differs between the user and upstream.

    ``user_modified`` is set when the user's copy no longer matches the
    baseline fingerprint. Paths without a baseline fingerprint are never
    flagged, since there is no history to compare against.
    """
    baseline = baseline or {}
    changes = []

    # User paths first, then upstream-only paths, for stable display order
    all_files = dict.fromkeys([*user_snapshot, *upstream_snapshot])

    for file in all_files:
        user_hash = user_snapshot.get(file)
        upstream_hash = upstream_snapshot.get(file)

        if user_hash is None:
            changes.append(ChangeRecord(file=file, kind=ChangeKind.ADDED))
        elif upstream_hash is None:
            changes.append(ChangeRecord(file=file, kind=ChangeKind.REMOVED))
        elif user_hash != upstream_hash:
            original_hash = baseline.get(file)
            user_modified = original_hash is not None and user_hash != original_hash
            changes.append(
                ChangeRecord(
                    file=file,
                    kind=ChangeKind.MODIFIED,
                    user_modified=user_modified,
                )
            )

    return changes


class PlannedChange(BaseModel):
    """A change record with the concrete files it applies to."""

    record: ChangeRecord
    user_path: Path
    upstream_path: Path

    @property
    def file(self) -> str:
        return self.record.file


class ChangeSet:
    """Changes across the primary template and shared components.

    Each component is reconciled separately; records from components added
    with a prefix are qualified as ``prefix/path`` so they stay distinct in
    display and when applied.
    """

    def __init__(self) -> None:
        self._changes: List[PlannedChange] = []

    def add_component(
        self,
        user_dir: Path,
        upstream_dir: Path,
        baseline: Optional[Dict[str, str]] = None,
        prefix: str = "",
    ) -> List[ChangeRecord]:
        """Reconcile one component directory and append its changes."""
        user_snapshot: Snapshot = snapshot_directory(user_dir)
        upstream_snapshot: Snapshot = snapshot_directory(upstream_dir)
        records = reconcile(user_snapshot, upstream_snapshot, baseline)

        for record in records:
            self._changes.append(
                PlannedChange(
                    record=record.with_prefix(prefix),
                    user_path=Path(user_dir) / record.file,
                    upstream_path=Path(upstream_dir) / record.file,
                )
            )

        logger.debug(
            "Reconciled %s against %s: %d change(s)",
            user_dir,
            upstream_dir,
            len(records),
        )
        return records

    @property
    def records(self) -> List[ChangeRecord]:
        return [change.record for change in self._changes]

    @property
    def modified(self) -> List[PlannedChange]:
        return [c for c in self._changes if c.record.kind == ChangeKind.MODIFIED]

    @property
    def conflicts(self) -> List[ChangeRecord]:
        """Modified records where the user also edited the file."""
        return [c.record for c in self._changes if c.record.is_conflict]

    @property
    def has_conflicts(self) -> bool:
        return any(c.record.is_conflict for c in self._changes)

    def __iter__(self) -> Iterator[PlannedChange]:
        return iter(self._changes)

    def __len__(self) -> int:
        return len(self._changes)
