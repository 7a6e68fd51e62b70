"""Routing of uploaded multipart parts to temp files."""

from dataclasses import dataclass
from typing import Iterable, Optional

from .Console import console
from .FileIO import save_stream_to_temp
from .Protocols import ReadableStream, UploadPart
from .Results import Result
from .SpaArchive import validate_spa_archive

ARCHIVE_FIELD = "archive"
CONFIG_FIELD = "spa_config"
ARCHIVE_FILENAME = "archive.zip"
CONFIG_FILENAME = "spa-config.json"


@dataclass
class FilePart:
    """A file part built outside an HTTP request, e.g. from a file on disk."""
    fieldname: str
    filename: str
    stream: ReadableStream
    type: str = "file"


@dataclass
class ProcessedFiles:
    archive_path: Optional[str] = None
    config_path: Optional[str] = None
    error: Optional[str] = None


class FileProcessor:
    """Saves the archive and SPA config parts of a deploy upload.

    The archive is the part named `archive`, or any file part whose filename
    contains `.zip`; the config is the part named `spa_config`. Other parts
    are ignored.
    """

    def process_deploy_files(self, parts: Iterable[UploadPart]) -> ProcessedFiles:
        """Save the relevant upload parts to temp files.

        Args:
            parts: Upload parts in the order the client sent them.

        Returns:
            ProcessedFiles: Paths of the saved archive and config (None when
            absent). On the first failure, processing stops and `error` is
            set; the path that failed is None, the other is kept.
        """
        archive_path = None
        config_path = None

        for part in parts:
            if part.type != "file":
                continue

            if part.fieldname == ARCHIVE_FIELD or ".zip" in (part.filename or ""):
                result = save_stream_to_temp(part.stream, ARCHIVE_FILENAME)
                if not result.ok:
                    return ProcessedFiles(None, config_path, result.error)
                archive_path = result.data
                console.print(f"Archive saved to {archive_path}")
            elif part.fieldname == CONFIG_FIELD:
                result = save_stream_to_temp(part.stream, CONFIG_FILENAME)
                if not result.ok:
                    return ProcessedFiles(archive_path, None, result.error)
                config_path = result.data
                console.print(f"SPA config saved to {config_path}")

        return ProcessedFiles(archive_path, config_path, None)

    def validate_archive(self, archive_path: Optional[str]) -> Result[bool]:
        if not archive_path:
            return Result(data=False, error="Archive file is required")
        return validate_spa_archive(archive_path)
