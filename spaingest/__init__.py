"""spaingest package initializer.

Streaming validation and extraction of uploaded single-page-application
archives. The package exports:

- __version__: Package version string.
- save_stream_to_temp: Copy an upload stream into a fresh temp file.
- validate_spa_archive: Check that an archive contains at least one file.
- extract_zip: Stream-extract an archive with zip slip protection.
- ingest_spa_archive: The three steps above, in order.
- ingest_deploy_upload: The same, starting from the parts of a deploy upload.
- FileProcessor: Routes deploy upload parts to temp files.
- cli: The click command group.

Example:
    from spaingest import validate_spa_archive, extract_zip
    if validate_spa_archive("build.zip").data:
        extract_zip("build.zip", "site/")
"""

# Public version string
__version__ = "0.1.0"

from .ArchiveEngine import DeployUpload, ingest_deploy_upload, ingest_spa_archive
from .Errors import ArchiveError, CorruptArchiveError, InvalidEntryNameError, ZipSlipError
from .FileIO import save_stream_to_temp
from .FileProcessor import FilePart, FileProcessor
from .Results import Result
from .SpaArchive import validate_spa_archive
from .ZipArchive import CleanupPolicy, extract_zip

from .CLI import cli

__all__ = [
    "__version__",
    "save_stream_to_temp",
    "validate_spa_archive",
    "extract_zip",
    "ingest_spa_archive",
    "ingest_deploy_upload",
    "DeployUpload",
    "FileProcessor",
    "FilePart",
    "CleanupPolicy",
    "Result",
    "ArchiveError",
    "CorruptArchiveError",
    "InvalidEntryNameError",
    "ZipSlipError",
    "cli",
]
