"""Configuration and project layout constants for storepix."""

import os
from functools import lru_cache
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

try:
    __version__ = version("storepix")
except PackageNotFoundError:
    __version__ = "0.0.0"

# Project layout
VERSION_FILE = ".storepix-version.json"
BACKUP_PREFIX = ".storepix-backup-"
TEMPLATES_DIR = "templates"
STATUS_BAR_DIR = "status-bar"
TEMPLATE_ENTRY = "index.html"
SIDECAR_SUFFIX = ".orig"

DEFAULT_TEMPLATE = "default"
UNKNOWN_VERSION = "0.0.0"

GITIGNORE_CONTENT = """# Generated screenshots
output/

# Upgrade backups
.storepix-backup-*
"""


class Settings(BaseModel):
    """Runtime settings resolved from the environment."""

    templates_dir: Optional[Path] = None
    project_dir: Path = Path("./storepix")
    log_level: str = "WARNING"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from ``STOREPIX_*`` environment variables.

    The result is cached; call ``get_settings.cache_clear()`` after changing
    the environment to pick up new values.
    """
    values = {}
    if os.getenv("STOREPIX_TEMPLATES_DIR"):
        values["templates_dir"] = Path(os.environ["STOREPIX_TEMPLATES_DIR"])
    if os.getenv("STOREPIX_DIR"):
        values["project_dir"] = Path(os.environ["STOREPIX_DIR"])
    if os.getenv("STOREPIX_LOG_LEVEL"):
        values["log_level"] = os.environ["STOREPIX_LOG_LEVEL"].upper()
    return Settings(**values)
