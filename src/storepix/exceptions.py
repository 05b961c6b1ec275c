"""Errors raised by storepix operations."""

from pathlib import Path
from typing import List, Optional


class StorepixError(Exception):
    """Base class for all storepix errors."""


class ProjectNotFoundError(StorepixError, ValueError):
    """The project directory does not exist."""

    def __init__(self, project_root: Path):
        self.project_root = project_root
        super().__init__(
            f"Directory not found: {project_root}. "
            "Run 'storepix init' first to create a project."
        )


class ProjectExistsError(StorepixError, ValueError):
    """Refusing to scaffold over an existing directory."""

    def __init__(self, project_root: Path):
        self.project_root = project_root
        super().__init__(
            f"Directory {project_root} already exists. "
            "Use a different directory or remove the existing one."
        )


class TemplateNotFoundError(StorepixError, ValueError):
    """A template identifier is not among the shipped templates."""

    def __init__(self, name: str, available: List[str]):
        self.name = name
        self.available = available
        super().__init__(
            f'Template "{name}" not found. '
            f"Available templates: {', '.join(available) or '(none)'}"
        )


class TemplateDetectionError(StorepixError, ValueError):
    """No baseline file and no recognizable template in the project."""


class BackupError(StorepixError, RuntimeError):
    """Creating or verifying the pre-upgrade backup failed."""


class ApplyError(StorepixError, RuntimeError):
    """Writing an upgraded file failed; later files were not touched."""

    def __init__(
        self,
        path: str,
        applied: int,
        backup_dir: Optional[Path],
        reason: str,
    ):
        self.path = path
        self.applied = applied
        self.backup_dir = backup_dir
        super().__init__(
            f"Failed to update {path}: {reason}. "
            f"{applied} file(s) were updated before the failure; "
            f"restore from {backup_dir} if needed."
        )


class ScaffoldError(StorepixError, RuntimeError):
    """Creating a new project failed; the partial directory was removed."""


class VersionFileError(StorepixError, RuntimeError):
    """The version file could not be written."""
