"""SPA archive validation.

An uploaded single-page-application bundle is accepted only if it contains at
least one real file. The check streams the archive through `stream_unzip` and
stops at the first file entry, so a large archive is answered after reading
its first header instead of after decompressing it.
"""

import os
from typing import Union

from .Console import console
from .Errors import CorruptArchiveError
from .FileIO import CHUNK_SIZE, ChunkReader
from .Results import Result, Settlement
from .ZipArchive import iter_zip_entries

EMPTY_ARCHIVE_MESSAGE = "Archive is empty. Please ensure your static files are included."
CORRUPT_ARCHIVE_MESSAGE = "Invalid or corrupt archive file"


def validate_spa_archive(archive_path: Union[str, os.PathLike]) -> Result[bool]:
    """Check that a SPA archive contains static files.

    Args:
        archive_path: Path to the ZIP archive on local disk.

    Returns:
        Result[bool]:
            - `Result(True, None)` when at least one non-directory entry exists.
            - `Result(False, EMPTY_ARCHIVE_MESSAGE)` when there is none. Check
              the boolean, not just the error.
            - `Result(None, CORRUPT_ARCHIVE_MESSAGE)` when the archive data is rejected.
            - `Result(None, <reason>)` when the file cannot be read.

    Notes:
        A file that is not a ZIP at all yields no entries and therefore the
        empty-archive result, the same as a valid archive with nothing in it.
    """
    try:
        reader = ChunkReader(archive_path, CHUNK_SIZE)
    except OSError as e:
        return Result.failure(str(e))

    # Deciding the result ends the pass: the reader stops yielding chunks
    settlement: Settlement[Result[bool]] = Settlement(on_settle=lambda _: reader.destroy())

    try:
        for name, _, chunks in iter_zip_entries(reader):
            if not name.endswith("/"):
                # Only the header is inspected, the payload is never decompressed
                settlement.settle(Result.success(True))
                break
            for _ in chunks:
                pass
        settlement.settle(Result(data=False, error=EMPTY_ARCHIVE_MESSAGE))
    except CorruptArchiveError as e:
        if settlement.settle(Result.failure(CORRUPT_ARCHIVE_MESSAGE)):
            console.print(f"Failed: {e}")
    except OSError as e:
        settlement.settle(Result.failure(str(e)))
    finally:
        reader.destroy()

    return settlement.outcome
