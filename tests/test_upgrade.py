"""End-to-end tests for the template upgrade sequence."""

import io
import json
import shutil
import tempfile
from pathlib import Path

import pytest
from rich.console import Console

from storepix.core.hashing import hash_bytes, hash_file
from storepix.core.project import StorepixProject
from storepix.core.templates import TemplateProvider
from storepix.core.upgrade import TemplateUpgrader, UpgradeOutcome
from storepix.exceptions import (
    ApplyError,
    BackupError,
    ProjectNotFoundError,
    TemplateDetectionError,
    TemplateNotFoundError,
)
from storepix.models.change import ChangeKind, ChangeRecord

INDEX_HTML = "<h1>{{headline}}</h1>\n"
STYLES_CSS = ".headline {\n  font-size: 7vw;\n  color: black;\n}\n"
IOS_HTML = "<div class=\"status-bar\">9:41</div>\n"


@pytest.fixture
def workspace():
    """Shipped templates under upstream/ and a project created at 1.0.0."""
    with tempfile.TemporaryDirectory() as temp_dir:
        root = Path(temp_dir)
        upstream = root / "upstream"
        (upstream / "default").mkdir(parents=True)
        (upstream / "default" / "index.html").write_text(INDEX_HTML)
        (upstream / "default" / "styles.css").write_text(STYLES_CSS)
        (upstream / "status-bar").mkdir()
        (upstream / "status-bar" / "ios.html").write_text(IOS_HTML)

        project = StorepixProject(root / "storepix")
        project.init("default", TemplateProvider(upstream), version="1.0.0")
        yield root


@pytest.fixture
def upstream(workspace):
    return workspace / "upstream"


@pytest.fixture
def project(workspace):
    return StorepixProject(workspace / "storepix")


def make_upgrader(project, upstream, version="1.1.0", confirm=None):
    """Build an upgrader that prints into a buffer and auto-confirms."""
    output = io.StringIO()
    upgrader = TemplateUpgrader(
        project,
        TemplateProvider(upstream),
        console=Console(file=output, width=200),
        confirm=confirm or (lambda message: True),
        tool_version=version,
    )
    return upgrader, output


def backups(project):
    return sorted(project.project_root.glob(".storepix-backup-*"))


def recorded_version(project):
    return json.loads(project.version_file.read_text())["version"]


class TestShortCircuits:
    def test_already_up_to_date(self, project, upstream):
        upgrader, output = make_upgrader(project, upstream, version="1.0.0")
        upgrader.compute_changes = lambda baseline: pytest.fail("compared files")

        result = upgrader.run()

        assert result.outcome == UpgradeOutcome.UP_TO_DATE
        assert result.changes == []
        assert "Already up to date!" in output.getvalue()

    def test_fresh_project_has_no_changes(self, project, upstream):
        created_at = project.load_baseline().created_at
        upgrader, output = make_upgrader(project, upstream)

        result = upgrader.run()

        assert result.outcome == UpgradeOutcome.NO_CHANGES
        assert "No template changes detected." in output.getvalue()
        baseline = project.load_baseline()
        assert baseline.version == "1.1.0"
        assert baseline.updated_at is not None
        assert baseline.created_at == created_at
        assert backups(project) == []

    def test_force_compares_when_up_to_date(self, project, upstream):
        upgrader, _ = make_upgrader(project, upstream, version="1.0.0")

        result = upgrader.run(force=True)

        assert result.outcome == UpgradeOutcome.NO_CHANGES

    def test_no_changes_dry_run_keeps_baseline(self, project, upstream):
        before = project.version_file.read_text()
        upgrader, _ = make_upgrader(project, upstream)

        result = upgrader.run(dry_run=True)

        assert result.outcome == UpgradeOutcome.NO_CHANGES
        assert project.version_file.read_text() == before


class TestUserModifications:
    @pytest.fixture
    def user_css(self, project):
        path = project.template_dir("default") / "styles.css"
        path.write_text(STYLES_CSS + "\n/* User modification */\n")
        return path

    def test_dry_run_reports_conflict(self, project, upstream, user_css):
        upgrader, output = make_upgrader(project, upstream)

        result = upgrader.run(dry_run=True)

        assert result.outcome == UpgradeOutcome.DRY_RUN
        assert result.changes == [
            ChangeRecord(file="styles.css", kind=ChangeKind.MODIFIED, user_modified=True)
        ]
        assert result.conflicts == ["styles.css"]
        text = output.getvalue()
        assert "~ styles.css" in text
        assert "(you have local modifications)" in text
        assert "Dry run - no changes made." in text
        assert recorded_version(project) == "1.0.0"
        assert not user_css.with_name("styles.css.orig").exists()
        assert backups(project) == []

    def test_apply_saves_sidecar(self, project, upstream, user_css):
        user_content = user_css.read_text()
        upgrader, output = make_upgrader(project, upstream)

        result = upgrader.run()

        assert result.outcome == UpgradeOutcome.COMPLETED
        assert result.applied == 1
        assert user_css.with_name("styles.css.orig").read_text() == user_content
        assert user_css.read_text() == STYLES_CSS
        assert "Warning: Some files have local modifications." in output.getvalue()
        assert "your version saved as .orig" in output.getvalue()

        baseline = project.load_baseline()
        assert baseline.version == "1.1.0"
        assert baseline.files["styles.css"] == hash_bytes(STYLES_CSS.encode())
        assert "styles.css.orig" in baseline.files

        (backup_dir,) = backups(project)
        assert result.backup_dir == backup_dir
        assert (backup_dir / "default" / "styles.css").read_text() == user_content

    def test_without_baseline_edits_are_not_conflicts(self, project, upstream, user_css):
        project.version_file.unlink()
        upgrader, output = make_upgrader(project, upstream)

        result = upgrader.run(dry_run=True)

        assert result.from_version == "0.0.0"
        assert result.template == "default"
        assert result.changes == [
            ChangeRecord(file="styles.css", kind=ChangeKind.MODIFIED, user_modified=False)
        ]
        assert "Detected template: default" in output.getvalue()

    def test_detected_baseline_is_never_up_to_date(self, project, upstream):
        project.version_file.unlink()
        (upstream / "default" / "index.html").write_text("<h2>{{headline}}</h2>\n")
        upgrader, output = make_upgrader(project, upstream, version="0.0.0")

        result = upgrader.run(dry_run=True)

        assert result.outcome == UpgradeOutcome.DRY_RUN
        assert result.changes == [
            ChangeRecord(file="index.html", kind=ChangeKind.MODIFIED, user_modified=False)
        ]
        assert "Already up to date!" not in output.getvalue()

    def test_show_diff(self, project, upstream, user_css):
        upgrader, output = make_upgrader(project, upstream)

        upgrader.run(dry_run=True, show_diff=True)

        text = output.getvalue()
        assert "=== styles.css ===" in text
        assert "+0 -2 lines changed" in text
        assert "- /* User modification */" in text


class TestUpstreamChanges:
    def test_added_file_is_copied(self, project, upstream):
        (upstream / "default" / "partials").mkdir()
        (upstream / "default" / "partials" / "footer.html").write_text("<footer/>\n")
        upgrader, output = make_upgrader(project, upstream)

        result = upgrader.run()

        assert result.changes == [
            ChangeRecord(file="partials/footer.html", kind=ChangeKind.ADDED)
        ]
        assert result.applied == 1
        added = project.template_dir("default") / "partials" / "footer.html"
        assert added.read_text() == "<footer/>\n"
        assert "Added: partials/footer.html" in output.getvalue()

        (backup_dir,) = backups(project)
        assert (backup_dir / "default" / "styles.css").exists()
        assert not (backup_dir / "default" / "partials").exists()
        assert "partials/footer.html" in project.load_baseline().files

    def test_clean_file_is_overwritten(self, project, upstream):
        new_css = STYLES_CSS.replace("black", "navy")
        (upstream / "default" / "styles.css").write_text(new_css)
        upgrader, _ = make_upgrader(project, upstream)

        result = upgrader.run()

        assert result.changes == [
            ChangeRecord(file="styles.css", kind=ChangeKind.MODIFIED, user_modified=False)
        ]
        css = project.template_dir("default") / "styles.css"
        assert css.read_text() == new_css
        assert not css.with_name("styles.css.orig").exists()

        # The baseline now matches upstream, so a second run is a no-op
        again, _ = make_upgrader(project, upstream)
        assert again.run(force=True).outcome == UpgradeOutcome.NO_CHANGES

    def test_removed_file_is_kept(self, project, upstream):
        (upstream / "default" / "styles.css").unlink()
        upgrader, output = make_upgrader(project, upstream)

        result = upgrader.run()

        assert result.changes == [
            ChangeRecord(file="styles.css", kind=ChangeKind.REMOVED)
        ]
        assert result.applied == 0
        assert (project.template_dir("default") / "styles.css").read_text() == STYLES_CSS
        assert "Kept: styles.css" in output.getvalue()

    def test_status_bar_changes_are_prefixed(self, project, upstream):
        new_ios = IOS_HTML.replace("9:41", "10:09")
        (upstream / "status-bar" / "ios.html").write_text(new_ios)
        upgrader, _ = make_upgrader(project, upstream)

        result = upgrader.run()

        assert [c.file for c in result.changes] == ["status-bar/ios.html"]
        assert (project.status_bar_dir / "ios.html").read_text() == new_ios
        assert project.load_baseline().status_bar_files == {
            "ios.html": hash_bytes(new_ios.encode())
        }
        (backup_dir,) = backups(project)
        assert (backup_dir / "status-bar" / "ios.html").read_text() == IOS_HTML


class TestConfirmation:
    def test_declined(self, project, upstream):
        (upstream / "default" / "styles.css").write_text("body {}\n")
        upgrader, output = make_upgrader(project, upstream, confirm=lambda message: False)

        result = upgrader.run()

        assert result.outcome == UpgradeOutcome.DECLINED
        assert "Upgrade cancelled." in output.getvalue()
        assert (project.template_dir("default") / "styles.css").read_text() == STYLES_CSS
        assert recorded_version(project) == "1.0.0"
        assert backups(project) == []

    def test_force_skips_prompt(self, project, upstream):
        (upstream / "default" / "styles.css").write_text("body {}\n")

        def never(message):
            raise AssertionError("prompted despite --force")

        upgrader, _ = make_upgrader(project, upstream, confirm=never)

        result = upgrader.run(force=True)

        assert result.outcome == UpgradeOutcome.COMPLETED
        assert (project.template_dir("default") / "styles.css").read_text() == "body {}\n"


class TestFailures:
    def test_missing_project(self, workspace, upstream):
        upgrader, _ = make_upgrader(StorepixProject(workspace / "nope"), upstream)

        with pytest.raises(ProjectNotFoundError, match="Directory not found"):
            upgrader.run()

    def test_undetectable_template(self, project, upstream):
        project.version_file.unlink()
        shutil.rmtree(project.template_dir("default"))
        upgrader, _ = make_upgrader(project, upstream)

        with pytest.raises(TemplateDetectionError):
            upgrader.run()

    def test_unknown_upstream_template(self, project, upstream):
        data = json.loads(project.version_file.read_text())
        data["template"] = "fancy"
        project.version_file.write_text(json.dumps(data))
        upgrader, _ = make_upgrader(project, upstream)

        with pytest.raises(TemplateNotFoundError) as exc_info:
            upgrader.run()

        assert exc_info.value.available == ["default"]
        assert backups(project) == []

    def test_apply_halts_on_first_failure(self, project, upstream, monkeypatch):
        (upstream / "default" / "index.html").write_text("<h2>{{headline}}</h2>\n")
        (upstream / "default" / "styles.css").write_text("body {}\n")
        css = project.template_dir("default") / "styles.css"
        css_hash = hash_file(css)

        real_copy2 = shutil.copy2
        calls = []

        def flaky_copy2(src, dst, *args, **kwargs):
            calls.append(dst)
            if len(calls) > 1:
                raise OSError("permission denied")
            return real_copy2(src, dst, *args, **kwargs)

        monkeypatch.setattr("storepix.core.upgrade.shutil.copy2", flaky_copy2)
        upgrader, _ = make_upgrader(project, upstream)

        with pytest.raises(ApplyError) as exc_info:
            upgrader.run()

        error = exc_info.value
        assert error.path == "styles.css"
        assert error.applied == 1
        assert error.backup_dir == backups(project)[0]
        assert "permission denied" in str(error)
        assert hash_file(css) == css_hash
        assert recorded_version(project) == "1.0.0"

    def test_unverified_backup_stops_before_apply(self, project, upstream, monkeypatch):
        (upstream / "default" / "styles.css").write_text("body {}\n")
        real_copytree = shutil.copytree

        def lossy_copytree(src, dst, *args, **kwargs):
            real_copytree(src, dst, *args, **kwargs)
            if Path(dst).name == "default":
                (Path(dst) / "index.html").unlink()

        monkeypatch.setattr("storepix.core.project.shutil.copytree", lossy_copytree)
        upgrader, _ = make_upgrader(project, upstream)

        with pytest.raises(BackupError, match="incomplete"):
            upgrader.run()

        assert (project.template_dir("default") / "styles.css").read_text() == STYLES_CSS
        assert recorded_version(project) == "1.0.0"
