"""spaingest CLI entrypoint.

This module provides the `spaingest` click group with three commands:

- `validate ARCHIVE`: check that an archive contains static files.
- `extract ARCHIVE -o DIR`: stream-extract an archive into a directory.
- `ingest SOURCE -o DIR [--spa-config FILE]`: run the full upload pipeline (save, validate,
  extract) on a local file or an http(s) URL.

Usage example (from shell):
    spaingest ingest https://example.com/build.zip -o site/ --cleanup-on-failure

Archive handling is delegated to the library modules; this module only deals
with user interaction, progress reporting and exit codes.
"""

import os
import sys
from contextlib import ExitStack
from pathlib import Path
from typing import List, Optional

import click
from rich.progress import BarColumn, DownloadColumn, Progress, SpinnerColumn, TextColumn, TransferSpeedColumn
from rich.table import Table

from .ArchiveEngine import ingest_archive_file, ingest_deploy_upload
from .Console import console
from .Errors import ArchiveError
from .FileIO import cleanup_temp_file, download_to_temp
from .FileProcessor import ARCHIVE_FIELD, CONFIG_FIELD, FilePart
from .SpaArchive import validate_spa_archive
from .ZipArchive import CleanupPolicy, extract_zip

output_option = click.option(
    "--output", "-o",
    type=click.Path(file_okay=False, dir_okay=True, writable=True, path_type=Path),
    default=Path("extracted"),
    help="Output directory for extracted files")
cleanup_option = click.option(
    "--cleanup-on-failure", is_flag=True, default=False,
    help="Remove files already written if extraction fails")


def _cleanup_policy(cleanup_on_failure: bool) -> CleanupPolicy:
    return CleanupPolicy.REMOVE_WRITTEN if cleanup_on_failure else CleanupPolicy.KEEP


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/red] {message}")
    sys.exit(1)


def _print_files(files: List[Path], output: Path) -> None:
    table = Table(title="Extracted Files")
    table.add_column("File Path", justify="left")
    for f in files:
        table.add_row(os.path.relpath(f, output))
    console.print(table)


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option("--quiet", "-q", is_flag=True, default=False, help="Suppress all console output")
def cli(quiet: bool):
    """Validate and extract single-page-application archives."""
    console.quiet = quiet


@cli.command()
@click.argument("archive", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def validate(archive: Path):
    """Check that ARCHIVE contains at least one file. Exits with 1 if not."""
    with console.status("Validating archive..."):
        result = validate_spa_archive(archive)

    if not result.data:
        _fail(result.error)
    console.print(f"[green]Valid:[/green] {archive} contains static files.")


@cli.command()
@click.argument("archive", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@output_option
@cleanup_option
def extract(archive: Path, output: Path, cleanup_on_failure: bool):
    """Extract ARCHIVE into the output directory."""
    # Uncompressed size is only known as entries are parsed, so the bar
    # shows throughput rather than a percentage.
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        console=console
    ) as progress:
        task = progress.add_task("Extracting files...", total=None)

        def progress_callback(bytes_written):
            progress.update(task, advance=bytes_written)

        try:
            files = extract_zip(archive, output, cleanup=_cleanup_policy(cleanup_on_failure),
                                progress_callback=progress_callback)
        except (ArchiveError, OSError) as e:
            files = None
            error = e

    if files is None:
        _fail(str(error))
    _print_files(files, output)
    console.print("Extraction complete.")


@cli.command()
@click.argument("source", type=str)
@output_option
@cleanup_option
@click.option("--spa-config", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None,
              help="spa-config.json deployed with a local archive")
def ingest(source: str, output: Path, cleanup_on_failure: bool, spa_config: Optional[Path]):
    """Save, validate and extract SOURCE (a path or an http(s) URL)."""
    cleanup = _cleanup_policy(cleanup_on_failure)
    config = None

    if source.startswith(("http://", "https://")):
        with console.status("Downloading archive..."):
            saved = download_to_temp(source, "archive.zip")
        if not saved.ok:
            _fail(saved.error)
        try:
            result = ingest_archive_file(saved.data, output, cleanup=cleanup)
        finally:
            cleanup_temp_file(saved.data)
        if not result.ok:
            _fail(result.error)
        destination = result.data
    else:
        if not Path(source).is_file():
            _fail(f"No such file: {source}")
        # Local files go through the same part routing as a deploy upload
        with ExitStack() as stack:
            parts = [FilePart(ARCHIVE_FIELD, Path(source).name, stack.enter_context(open(source, "rb")))]
            if spa_config:
                parts.append(FilePart(CONFIG_FIELD, spa_config.name, stack.enter_context(open(spa_config, "rb"))))
            uploaded = ingest_deploy_upload(parts, output, cleanup=cleanup)
        if not uploaded.ok:
            _fail(uploaded.error)
        destination = uploaded.data.destination
        config = uploaded.data.spa_config

    files = sorted(p for p in destination.rglob("*") if p.is_file())
    _print_files(files, output)
    if config is not None:
        console.print_json(data=config)
    console.print(f"Ingested into {destination}")
