"""CLI interface for Externalizer.

Provides ``scan`` to list hardcoded text and ``commit`` to move it into the
strings table and rewrite the sources.
"""

import json
import sys

import click
from dotenv import load_dotenv

# Load .env before importing other externalizer modules
# This ensures env vars are set before module-level code reads them
load_dotenv()

from externalizer import __version__  # noqa: E402
from externalizer.errors import ResourceTableError  # noqa: E402
from externalizer.logging import ProgressBar  # noqa: E402
from externalizer.models.records import GroupSummary  # noqa: E402

_PROJECT_OPTION = click.option(
    "--project",
    "project_dir",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    default=".",
    help="Project root (default: current directory)",
)


@click.group()
@click.version_option(version=__version__, prog_name="externalizer")
def cli() -> None:
    """Externalizer - move hardcoded UI text into strings.xml."""
    pass


@cli.command()
@click.argument("paths", nargs=-1, type=click.Path(exists=True, resolve_path=True))
@_PROJECT_OPTION
@click.option("--json", "as_json", is_flag=True, help="Print groups as JSON")
def scan(paths: tuple[str, ...], project_dir: str, as_json: bool) -> None:
    """List hardcoded text grouped by value.

    PATHS: Files or directories to scan (default: the whole project).
    """
    from externalizer.session import ExtractionSession

    with ExtractionSession(project_dir) as session:
        groups = session.scan(list(paths) or None)
        if as_json:
            payload = {
                "groups": [GroupSummary.from_group(g).model_dump(mode="json") for g in groups],
                "errors": session.scan_errors,
            }
            click.echo(json.dumps(payload, indent=2, ensure_ascii=False))
            return

        for group in groups:
            key = group.new_key if group.use_new_key else f"{group.old_key} (existing)"
            click.echo(f"{key}  {group.text!r}  x{len(group.occurrences)}")
            for occurrence in group.occurrences:
                location = session.workspace.relative(occurrence.path)
                click.echo(f"    {location}:{occurrence.line}")
        for error in session.scan_errors:
            click.echo(f"Skipped {error['file']}: {error['error']}", err=True)
        click.echo(f"{len(groups)} group(s)", err=True)


@cli.command()
@click.argument("paths", nargs=-1, type=click.Path(exists=True, resolve_path=True))
@_PROJECT_OPTION
@click.option(
    "--rename-old-keys",
    is_flag=True,
    help="Rename keys already in the strings table to the generated keys",
)
@click.option(
    "--skip",
    "skip_texts",
    multiple=True,
    help="Text to leave inline (repeatable)",
)
def commit(
    paths: tuple[str, ...],
    project_dir: str,
    rename_old_keys: bool,
    skip_texts: tuple[str, ...],
) -> None:
    """Externalize every group found in PATHS and print the report.

    PATHS: Files or directories to process (default: the whole project).
    """
    from externalizer.session import ExtractionSession

    skipped = set(skip_texts)
    with ExtractionSession(project_dir) as session:
        groups = session.scan(list(paths) or None)
        for group in groups:
            group.selected = group.text not in skipped
            if rename_old_keys and group.old_key:
                group.use_new_key = True

        total = sum(len(g.occurrences) for g in groups if g.selected)
        try:
            with ProgressBar(total=total, desc="Externalizing", unit="sites") as pbar:
                report = session.commit(groups, progress=pbar)
        except ResourceTableError as e:
            click.echo(f"String table update failed: {e}", err=True)
            sys.exit(1)

    click.echo(report.model_dump_json(by_alias=True, indent=2))


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
