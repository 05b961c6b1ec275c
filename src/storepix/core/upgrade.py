"""Upgrade a project's templates to the versions shipped with the tool.

One run goes through these steps, stopping early where noted:

1. Load the baseline file, or detect the template if there is none.
2. Stop if the recorded version matches the tool version (unless forced).
   A detected baseline has no recorded version and always goes on.
3. Reconcile the template and the shared status bar against upstream.
   With no changes, only the baseline is refreshed.
4. Show the changes (and line diffs on request). Dry runs stop here.
5. Ask for confirmation (skipped when forced).
6. Back up the user's templates, apply the changes, rewrite the baseline.

Files the user edited are never merged: their copy is kept as a ``.orig``
sidecar and the upstream version becomes the live file.
"""

import logging
import shutil
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

import click
from pydantic import BaseModel
from rich.console import Console
from rich.markup import escape

from storepix.config import SIDECAR_SUFFIX, STATUS_BAR_DIR, UNKNOWN_VERSION, __version__
from storepix.core.diff import count_changes, diff, format_diff, has_differences
from storepix.core.project import StorepixProject
from storepix.core.reconcile import ChangeSet
from storepix.core.templates import TemplateProvider
from storepix.exceptions import ApplyError, TemplateDetectionError
from storepix.models.baseline import BaselineRecord
from storepix.models.change import ChangeKind, ChangeRecord

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[str], bool]

CHANGE_MARKERS = {
    ChangeKind.ADDED: ("+", "green"),
    ChangeKind.REMOVED: ("-", "red"),
    ChangeKind.MODIFIED: ("~", "yellow"),
}


class UpgradeOutcome(str, Enum):
    """How an upgrade run ended."""

    UP_TO_DATE = "up_to_date"
    NO_CHANGES = "no_changes"
    DRY_RUN = "dry_run"
    DECLINED = "declined"
    COMPLETED = "completed"


class UpgradeResult(BaseModel):
    """Summary of one upgrade run."""

    outcome: UpgradeOutcome
    template: str
    from_version: str
    to_version: str
    changes: List[ChangeRecord] = []
    applied: int = 0
    backup_dir: Optional[Path] = None
    conflicts: List[str] = []


def _click_confirm(message: str) -> bool:
    return click.confirm(message, default=False)


class TemplateUpgrader:
    """Runs the upgrade sequence for one project."""

    def __init__(
        self,
        project: StorepixProject,
        provider: Optional[TemplateProvider] = None,
        console: Optional[Console] = None,
        confirm: Optional[ConfirmFn] = None,
        tool_version: str = __version__,
    ):
        self.project = project
        self.provider = provider or TemplateProvider()
        self.console = console or Console()
        self.confirm = confirm or _click_confirm
        self.tool_version = tool_version

    def run(
        self,
        dry_run: bool = False,
        force: bool = False,
        show_diff: bool = False,
    ) -> UpgradeResult:
        """Run the upgrade; see the module docstring for the sequence."""
        self.project.require_exists()

        baseline = self.load_baseline()
        result = UpgradeResult(
            outcome=UpgradeOutcome.UP_TO_DATE,
            template=baseline.template,
            from_version=baseline.version,
            to_version=self.tool_version,
        )

        self.console.print(f"[bold]Current version:[/bold] {baseline.version}")
        self.console.print(f"[bold]Package version:[/bold] {self.tool_version}")
        self.console.print(f"[bold]Template:[/bold] {baseline.template}\n")

        up_to_date = not baseline.detected and baseline.version == self.tool_version
        if up_to_date and not force:
            self.console.print("[green]Already up to date![/green]")
            return result

        change_set = self.compute_changes(baseline)
        result.changes = change_set.records
        result.conflicts = [record.file for record in change_set.conflicts]

        if not change_set:
            self.console.print("No template changes detected.")
            if not dry_run:
                self.persist_baseline(baseline)
                self.console.print("Version file updated.")
            result.outcome = UpgradeOutcome.NO_CHANGES
            return result

        self.display(change_set, show_diff=show_diff)

        if dry_run:
            self.console.print("[cyan]Dry run - no changes made.[/cyan]")
            self.console.print("Run without --dry-run to apply these changes.")
            result.outcome = UpgradeOutcome.DRY_RUN
            return result

        if change_set.has_conflicts:
            self.console.print(
                "[yellow]Warning: Some files have local modifications.[/yellow]"
            )
            self.console.print(
                f"Your versions will be saved as {SIDECAR_SUFFIX} files next to "
                "the updated ones. Changes are not merged automatically.\n"
            )

        if not force and not self.confirm("Proceed with upgrade?"):
            self.console.print("[yellow]Upgrade cancelled.[/yellow]")
            result.outcome = UpgradeOutcome.DECLINED
            return result

        backup_dir = self.project.create_backup(baseline.template)
        result.backup_dir = backup_dir
        self.console.print(f"Backup created: {backup_dir}")

        result.applied = self.apply(change_set, backup_dir)
        self.persist_baseline(baseline)
        result.outcome = UpgradeOutcome.COMPLETED

        self.console.print(
            f"\n[green]Upgrade complete! {result.applied} file(s) updated.[/green]"
        )
        if result.conflicts:
            self.console.print("\n[yellow]Action required:[/yellow]")
            self.console.print(
                f"Review {SIDECAR_SUFFIX} files for your local changes and merge "
                f"as needed. Delete the {SIDECAR_SUFFIX} files when done."
            )
        return result

    def load_baseline(self) -> BaselineRecord:
        """Read the baseline, falling back to a detected template."""
        baseline = self.project.load_baseline()
        if baseline is not None:
            return baseline

        self.console.print("[yellow]Note: No version tracking file found.[/yellow]")
        self.console.print(
            "This project may have been created with an older version of storepix.\n"
        )

        template = self.project.detect_template()
        if template is None:
            raise TemplateDetectionError(
                f"Could not detect project template in {self.project.templates_dir}"
            )

        self.console.print(f"Detected template: {template}\n")
        # No fingerprints: nothing can be reported as locally modified
        return BaselineRecord(
            version=UNKNOWN_VERSION, template=template, files={}, detected=True
        )

    def compute_changes(self, baseline: BaselineRecord) -> ChangeSet:
        """Reconcile the template and the shared status bar with upstream."""
        upstream_dir = self.provider.template_dir(baseline.template)

        change_set = ChangeSet()
        change_set.add_component(
            self.project.template_dir(baseline.template),
            upstream_dir,
            baseline.files,
        )
        if self.provider.has_status_bar():
            change_set.add_component(
                self.project.status_bar_dir,
                self.provider.status_bar_dir,
                baseline.status_bar_files or {},
                prefix=STATUS_BAR_DIR,
            )

        logger.debug(
            "%d change(s), %d conflict(s)",
            len(change_set),
            len(change_set.conflicts),
        )
        return change_set

    def display(self, change_set: ChangeSet, show_diff: bool = False) -> None:
        self.console.print("[bold]Changes detected:[/bold]\n")

        for record in change_set.records:
            marker, color = CHANGE_MARKERS[record.kind]
            self.console.print(f"  [{color}]{marker}[/{color}] {escape(record.file)}")
            if record.is_conflict:
                self.console.print("    [yellow](you have local modifications)[/yellow]")
        self.console.print()

        if not show_diff:
            return

        for change in change_set.modified:
            if not (change.user_path.exists() and change.upstream_path.exists()):
                continue
            user_text = change.user_path.read_text(encoding="utf-8", errors="replace")
            upstream_text = change.upstream_path.read_text(
                encoding="utf-8", errors="replace"
            )
            if not has_differences(user_text, upstream_text):
                continue

            ops = diff(user_text, upstream_text)
            counts = count_changes(ops)
            self.console.print(f"[bold]=== {escape(change.file)} ===[/bold]\n")
            self.console.print(
                f"[green]+{counts.additions}[/green] "
                f"[red]-{counts.removals}[/red] lines changed\n"
            )
            self.console.print(format_diff(ops), highlight=False)
            self.console.print()

    def apply(self, change_set: ChangeSet, backup_dir: Optional[Path] = None) -> int:
        """Write upstream files into the project.

        Stops at the first file that cannot be written; files after it are
        left untouched and the backup is the recovery path.
        """
        applied = 0

        for change in change_set:
            record = change.record
            try:
                if record.kind == ChangeKind.ADDED:
                    change.user_path.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(change.upstream_path, change.user_path)
                    self.console.print(f"  Added: {escape(record.file)}")
                    applied += 1
                elif record.kind == ChangeKind.REMOVED:
                    self.console.print(
                        f"  Kept: {escape(record.file)} (removed in package version)"
                    )
                elif record.user_modified:
                    sidecar = change.user_path.with_name(
                        change.user_path.name + SIDECAR_SUFFIX
                    )
                    shutil.copy2(change.user_path, sidecar)
                    shutil.copy2(change.upstream_path, change.user_path)
                    self.console.print(
                        f"  Updated: {escape(record.file)} "
                        f"(your version saved as {SIDECAR_SUFFIX})"
                    )
                    applied += 1
                else:
                    shutil.copy2(change.upstream_path, change.user_path)
                    self.console.print(f"  Updated: {escape(record.file)}")
                    applied += 1
            except OSError as e:
                raise ApplyError(record.file, applied, backup_dir, str(e)) from e

            logger.debug("Applied %s (%s)", record.file, record.kind.value)

        return applied

    def persist_baseline(self, baseline: BaselineRecord) -> BaselineRecord:
        """Fingerprint the project as it is now and save it as the baseline."""
        refreshed = self.project.build_baseline(
            baseline.template,
            self.tool_version,
            created_at=baseline.created_at,
        )
        self.project.save_baseline(refreshed)
        return refreshed
