"""Access to the templates shipped with the package."""

from pathlib import Path
from typing import List, Optional

from storepix.config import STATUS_BAR_DIR, TEMPLATE_ENTRY, get_settings
from storepix.exceptions import TemplateNotFoundError

PACKAGE_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


class TemplateProvider:
    """Read-only view of the canonical template directories."""

    def __init__(self, templates_dir: Optional[Path] = None):
        if templates_dir is None:
            templates_dir = get_settings().templates_dir or PACKAGE_TEMPLATES_DIR
        self.templates_dir = Path(templates_dir)

    @property
    def status_bar_dir(self) -> Path:
        """Shared status bar component used by every template."""
        return self.templates_dir / STATUS_BAR_DIR

    def has_status_bar(self) -> bool:
        return self.status_bar_dir.is_dir()

    def available_templates(self) -> List[str]:
        """Template identifiers, sorted; components are not templates."""
        if not self.templates_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.templates_dir.iterdir()
            if not entry.name.startswith(".")
            and entry.name != STATUS_BAR_DIR
            and (entry / TEMPLATE_ENTRY).exists()
        )

    def exists(self, name: str) -> bool:
        return name in self.available_templates()

    def template_dir(self, name: str) -> Path:
        """Directory holding the canonical files of template ``name``."""
        if not self.exists(name):
            raise TemplateNotFoundError(name, self.available_templates())
        return self.templates_dir / name
