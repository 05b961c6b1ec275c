"""storepix project directory management."""

import json
import logging
import shutil
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from storepix.config import (
    BACKUP_PREFIX,
    GITIGNORE_CONTENT,
    STATUS_BAR_DIR,
    TEMPLATE_ENTRY,
    TEMPLATES_DIR,
    VERSION_FILE,
    __version__,
)
from storepix.core.snapshot import snapshot_directory
from storepix.core.templates import TemplateProvider
from storepix.exceptions import (
    BackupError,
    ProjectExistsError,
    ProjectNotFoundError,
    ScaffoldError,
    VersionFileError,
)
from storepix.models.baseline import BaselineRecord

logger = logging.getLogger(__name__)


class StorepixProject:
    """A user's screenshot project: templates, outputs and version tracking."""

    def __init__(self, project_root: Path):
        self.project_root = Path(project_root)
        self.templates_dir = self.project_root / TEMPLATES_DIR
        self.version_file = self.project_root / VERSION_FILE

    @property
    def status_bar_dir(self) -> Path:
        return self.templates_dir / STATUS_BAR_DIR

    def template_dir(self, name: str) -> Path:
        return self.templates_dir / name

    def exists(self) -> bool:
        """Check if the project directory exists."""
        return self.project_root.is_dir()

    def require_exists(self) -> None:
        if not self.exists():
            raise ProjectNotFoundError(self.project_root)

    def init(
        self,
        template: str,
        provider: TemplateProvider,
        version: str = __version__,
    ) -> BaselineRecord:
        """Scaffold a new project from a shipped template.

        Copies the template and the shared status bar component, then records
        their fingerprints as the baseline for future upgrades.
        """
        if self.project_root.exists():
            raise ProjectExistsError(self.project_root)

        source_dir = provider.template_dir(template)

        try:
            for subdir in ("screenshots", "output", TEMPLATES_DIR):
                (self.project_root / subdir).mkdir(parents=True, exist_ok=True)

            shutil.copytree(source_dir, self.template_dir(template))
            if provider.has_status_bar():
                shutil.copytree(provider.status_bar_dir, self.status_bar_dir)

            (self.project_root / ".gitignore").write_text(GITIGNORE_CONTENT)

            baseline = self.build_baseline(template, version)
            baseline = baseline.model_copy(
                update={"created_at": baseline.updated_at, "updated_at": None}
            )
            if baseline.status_bar_files is None:
                baseline = baseline.model_copy(update={"status_bar_files": {}})
            self.save_baseline(baseline)
        except (OSError, VersionFileError) as e:
            # The directory did not exist before, so remove what was created
            shutil.rmtree(self.project_root, ignore_errors=True)
            raise ScaffoldError(
                f"Could not create project in {self.project_root}: {e}"
            ) from e

        logger.debug("Initialized project %s from %s", self.project_root, template)
        return baseline

    def add_template(self, name: str, provider: TemplateProvider) -> bool:
        """Copy another shipped template into the project.

        Returns False if the project already has a template by that name.
        """
        if not self.templates_dir.is_dir():
            raise ProjectNotFoundError(self.project_root)

        source_dir = provider.template_dir(name)
        target_dir = self.template_dir(name)
        if target_dir.exists():
            return False

        shutil.copytree(source_dir, target_dir)
        return True

    def installed_templates(self) -> List[str]:
        """Templates present in the project, sorted by name."""
        if not self.templates_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.templates_dir.iterdir()
            if entry.name != STATUS_BAR_DIR and (entry / TEMPLATE_ENTRY).exists()
        )

    def detect_template(self) -> Optional[str]:
        """Guess the template a project was created from."""
        templates = self.installed_templates()
        return templates[0] if templates else None

    def load_baseline(self) -> Optional[BaselineRecord]:
        """Load the version file, or None if it is missing or unreadable."""
        if not self.version_file.exists():
            return None

        try:
            data = json.loads(self.version_file.read_text(encoding="utf-8"))
            return BaselineRecord.model_validate(data)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
            logger.debug("Ignoring unreadable %s: %s", self.version_file, e)
            return None

    def save_baseline(self, baseline: BaselineRecord) -> None:
        try:
            self.version_file.write_text(
                json.dumps(baseline.to_json_dict(), indent=2) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            raise VersionFileError(f"Could not write {self.version_file}: {e}") from e

    def build_baseline(
        self,
        template: str,
        version: str,
        created_at: Optional[datetime] = None,
    ) -> BaselineRecord:
        """Fingerprint the project's current template files."""
        status_bar_files = None
        if self.status_bar_dir.is_dir():
            status_bar_files = snapshot_directory(self.status_bar_dir)

        return BaselineRecord(
            version=version,
            template=template,
            created_at=created_at,
            updated_at=datetime.now(timezone.utc),
            files=snapshot_directory(self.template_dir(template)),
            status_bar_files=status_bar_files,
        )

    def create_backup(self, template: str) -> Path:
        """Copy the template and status bar into a timestamped backup dir.

        The copy is verified against the source fingerprints before
        returning, since it is the only way back after an upgrade.
        """
        timestamp = int(time.time() * 1000)
        backup_dir = self.project_root / f"{BACKUP_PREFIX}{timestamp}"
        counter = 0
        while backup_dir.exists():
            counter += 1
            backup_dir = self.project_root / f"{BACKUP_PREFIX}{timestamp}-{counter}"

        sources = [
            (self.template_dir(template), backup_dir / template),
            (self.status_bar_dir, backup_dir / STATUS_BAR_DIR),
        ]

        try:
            backup_dir.mkdir(parents=True)
            for source, target in sources:
                if source.is_dir():
                    shutil.copytree(source, target)
        except OSError as e:
            raise BackupError(f"Could not create backup {backup_dir}: {e}") from e

        for source, target in sources:
            if source.is_dir() and snapshot_directory(source) != snapshot_directory(
                target
            ):
                raise BackupError(f"Backup of {source} in {backup_dir} is incomplete")

        logger.debug("Backup written to %s", backup_dir)
        return backup_dir
