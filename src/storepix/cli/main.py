"""Main CLI interface for storepix."""

from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from storepix.config import DEFAULT_TEMPLATE, get_settings
from storepix.core.project import StorepixProject
from storepix.core.templates import TemplateProvider
from storepix.core.upgrade import TemplateUpgrader
from storepix.exceptions import StorepixError
from storepix.logging_config import setup_logging

console = Console()

DIR_HELP = "Project directory (default: ./storepix or $STOREPIX_DIR)"


def _project_dir(project_dir: Optional[str]) -> Path:
    if project_dir:
        return Path(project_dir)
    return get_settings().project_dir


def _fail(error: Exception) -> None:
    """Print an error and exit with a non-zero status."""
    console.print(f"[red]Error: {escape(str(error))}[/red]")
    raise click.Abort() from error


@click.group()
@click.version_option(package_name="storepix")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def main(verbose: bool):
    """storepix - App Store screenshots from HTML/CSS templates you own."""
    setup_logging("DEBUG" if verbose else None)


@main.command()
@click.option(
    "--template", "-t", default=DEFAULT_TEMPLATE, help="Template to start from"
)
@click.option("--dir", "-d", "project_dir", help=DIR_HELP)
def init(template: str, project_dir: Optional[str]):
    """Create a new storepix project."""
    project = StorepixProject(_project_dir(project_dir))
    console.print(f"Initializing storepix in {project.project_root}...\n")

    try:
        project.init(template, TemplateProvider())
    except StorepixError as e:
        _fail(e)

    console.print("[green]✅ Created directory structure:[/green]")
    console.print(f"  {project.project_root}/")
    console.print("  ├── screenshots/   # Put your app screenshots here")
    console.print("  ├── output/        # Generated images appear here")
    console.print("  └── templates/")
    console.print(f"      └── {template}/   # Customize freely!\n")
    console.print(
        "Run 'storepix upgrade' after updating storepix to pull in template fixes."
    )


@main.command("add-template")
@click.argument("name")
@click.option("--dir", "-d", "project_dir", help=DIR_HELP)
def add_template(name: str, project_dir: Optional[str]):
    """Copy another shipped template into an existing project."""
    project = StorepixProject(_project_dir(project_dir))

    try:
        added = project.add_template(name, TemplateProvider())
    except StorepixError as e:
        _fail(e)

    location = project.template_dir(name)
    if not added:
        console.print(f'[yellow]Template "{name}" already exists in your project.[/yellow]')
        console.print(f"Location: {location}")
        return

    console.print(f'[green]✅ Added template "{name}" to your project.[/green]')
    console.print(f"Location: {location}")


@main.command()
def templates():
    """List the templates shipped with storepix."""
    provider = TemplateProvider()
    available = provider.available_templates()
    if not available:
        console.print(f"[yellow]No templates found in {provider.templates_dir}[/yellow]")
        return

    console.print("[bold]Available templates:[/bold]")
    for name in available:
        console.print(f"  • {name}")


@main.command()
@click.option("--dir", "-d", "project_dir", help=DIR_HELP)
@click.option(
    "--dry-run", is_flag=True, help="Show what would change without writing files"
)
@click.option(
    "--force",
    is_flag=True,
    help="Compare even if already up to date and skip the confirmation prompt",
)
@click.option("--show-diff", is_flag=True, help="Show line diffs of modified files")
def upgrade(project_dir: Optional[str], dry_run: bool, force: bool, show_diff: bool):
    """Upgrade project templates to the versions shipped with storepix.

    Files you have not touched are replaced. Files you edited are replaced
    too, but your copy is first saved next to them with a .orig suffix;
    changes are never merged automatically. A full backup of your templates
    is written to .storepix-backup-<timestamp>/ before anything changes.
    """
    project = StorepixProject(_project_dir(project_dir))
    console.print("[bold]storepix upgrade[/bold]\n")

    upgrader = TemplateUpgrader(project, TemplateProvider(), console=console)
    try:
        upgrader.run(dry_run=dry_run, force=force, show_diff=show_diff)
    except StorepixError as e:
        _fail(e)


if __name__ == "__main__":
    main()
