"""End-to-end ingestion of an uploaded SPA archive.

Ties the pieces together in the order an upload goes through them:

    upload stream -> save_stream_to_temp -> validate_spa_archive -> extract_zip

`ingest_deploy_upload` does the same starting from the parts of a multipart
deploy upload, which may also carry a `spa-config.json`. The temp copies are
removed whatever the outcome; the destination directory is handed back for
deployment.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Optional, Union

from .Errors import ArchiveError
from .FileIO import cleanup_temp_file, read_json_file, save_stream_to_temp
from .FileProcessor import FileProcessor
from .Protocols import ReadableStream, UploadPart
from .Results import Result
from .SpaArchive import validate_spa_archive
from .ZipArchive import CleanupPolicy, extract_zip


@dataclass
class DeployUpload:
    """What a successful deploy upload produced.

    Attributes:
        destination (Path): Directory the SPA files were extracted into.
        spa_config (Any): Parsed `spa-config.json`, or None when not uploaded.
    """
    destination: Path
    spa_config: Any = None


def _extract(archive_path: Union[str, os.PathLike], destination: Union[str, os.PathLike],
             cleanup: CleanupPolicy, progress_callback: Optional[Callable[[int], None]]) -> Result[Path]:
    try:
        extract_zip(archive_path, destination, cleanup=cleanup, progress_callback=progress_callback)
    except (ArchiveError, OSError) as e:
        return Result.failure(f"Failed to extract archive: {e}")
    return Result.success(Path(destination).resolve())


def ingest_archive_file(archive_path: Union[str, os.PathLike], destination: Union[str, os.PathLike],
                        cleanup: CleanupPolicy = CleanupPolicy.KEEP,
                        progress_callback: Optional[Callable[[int], None]] = None) -> Result[Path]:
    """Validate an archive already on disk and extract it into `destination`.

    Returns:
        Result[Path]: The destination directory, or the first error met.
    """
    validation = validate_spa_archive(archive_path)
    if not validation.data:
        return Result.failure(validation.error)
    return _extract(archive_path, destination, cleanup, progress_callback)


def ingest_spa_archive(stream: Union[ReadableStream, Iterator[bytes]], destination: Union[str, os.PathLike],
                       filename: str = "archive.zip",
                       cleanup: CleanupPolicy = CleanupPolicy.KEEP,
                       progress_callback: Optional[Callable[[int], None]] = None) -> Result[Path]:
    """Save an upload stream, validate it and extract it into `destination`.

    Args:
        stream: The upload body (file-like object or iterable of bytes).
        destination: Directory the SPA files are extracted into.
        filename (str): Name used for the temp copy of the archive.
        cleanup (CleanupPolicy): Passed to `extract_zip`.
        progress_callback (callable|None): Passed to `extract_zip`.

    Returns:
        Result[Path]: The destination directory, or an error message from
        whichever step failed.
    """
    saved = save_stream_to_temp(stream, filename)
    if not saved.ok:
        return Result.failure(saved.error)

    try:
        return ingest_archive_file(saved.data, destination, cleanup, progress_callback)
    finally:
        cleanup_temp_file(saved.data)


def ingest_deploy_upload(parts: Iterable[UploadPart], destination: Union[str, os.PathLike],
                         cleanup: CleanupPolicy = CleanupPolicy.KEEP,
                         progress_callback: Optional[Callable[[int], None]] = None) -> Result[DeployUpload]:
    """Save the parts of a deploy upload, then validate and extract its archive.

    Args:
        parts: Multipart upload parts, see `FileProcessor.process_deploy_files`.
        destination: Directory the SPA files are extracted into.
        cleanup (CleanupPolicy): Passed to `extract_zip`.
        progress_callback (callable|None): Passed to `extract_zip`.

    Returns:
        Result[DeployUpload]: The destination and the parsed SPA config, or
        the first error met. The config is only read once extraction worked.
    """
    processor = FileProcessor()
    processed = processor.process_deploy_files(parts)
    try:
        if processed.error:
            return Result.failure(processed.error)
        if not processed.archive_path:
            return Result.failure("No archive file found")

        validation = processor.validate_archive(processed.archive_path)
        if not validation.data:
            return Result.failure(validation.error)

        extracted = _extract(processed.archive_path, destination, cleanup, progress_callback)
        if not extracted.ok:
            return Result.failure(extracted.error)

        spa_config = None
        if processed.config_path:
            try:
                spa_config = read_json_file(processed.config_path)
            except ValueError as e:
                return Result.failure(f"Invalid SPA config: {e}")
        return Result.success(DeployUpload(extracted.data, spa_config))
    finally:
        for temp_path in (processed.archive_path, processed.config_path):
            if temp_path:
                cleanup_temp_file(temp_path)
