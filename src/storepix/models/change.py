"""Change model for template reconciliation."""

from enum import Enum

from pydantic import BaseModel


class ChangeKind(str, Enum):
    """How the upstream copy of a file relates to the user's copy."""

    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


class ChangeRecord(BaseModel):
    """A single file that differs between the user's project and upstream."""

    file: str
    kind: ChangeKind
    user_modified: bool = False  # Only meaningful for MODIFIED

    model_config = {"frozen": True}

    @property
    def is_conflict(self) -> bool:
        """Upstream changed a file the user has also edited."""
        return self.kind == ChangeKind.MODIFIED and self.user_modified

    def with_prefix(self, prefix: str) -> "ChangeRecord":
        """Return a copy whose path is qualified with ``prefix/``."""
        if not prefix:
            return self
        return self.model_copy(update={"file": f"{prefix}/{self.file}"})
