"""Baseline model persisted in a project's version file."""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field


class BaselineRecord(BaseModel):
    """Fingerprints of the project's template files at a known version.

    Serialized with camelCase keys (``createdAt``, ``statusBarFiles``) so the
    file stays readable by earlier tool versions.
    """

    version: str
    template: str
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")
    files: Dict[str, str] = {}
    status_bar_files: Optional[Dict[str, str]] = Field(
        default=None, alias="statusBarFiles"
    )
    # Set when the record was inferred from the project, not read from disk
    detected: bool = Field(default=False, exclude=True)

    model_config = {"populate_by_name": True}

    def to_json_dict(self) -> dict:
        """Dump with the on-disk key names, omitting unset timestamps."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
