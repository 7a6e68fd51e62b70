"""Streaming ZIP extraction.

`extract_zip` reads an archive in fixed-size chunks, feeds it through
`stream_unzip` and writes every file entry under a destination directory. It
refuses entries whose path escapes that directory (zip slip) and treats any
failure as fatal for the whole archive.

The bookkeeping lives on `ExtractionSession`: how many entries are still
being written, whether the input has been fully read, and the settle-once
outcome of the pass.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, Iterable, Iterator, List, Optional, Tuple, Union

from stream_unzip import UnsupportedCompressionTypeError, UnzipError, stream_unzip

from .Console import console
from .Errors import CorruptArchiveError, InvalidEntryNameError, UnsupportedCompressionError, ZipSlipError
from .FileIO import CHUNK_SIZE, ChunkReader
from .Results import Settlement

UNZIP_CHUNK_SIZE = 64 * 1024  # largest decompressed chunk handed out
LOCAL_HEADER_SIGNATURE = b"PK\x03\x04"


def _corrupt(error: UnzipError) -> CorruptArchiveError:
    if isinstance(error, UnsupportedCompressionTypeError):
        return UnsupportedCompressionError(f"Unsupported compression method: {error}")
    return CorruptArchiveError(str(error) or type(error).__name__)


def _decode_name(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("cp437")


def _entry_chunks(chunks: Iterator[bytes]) -> Iterator[bytes]:
    try:
        yield from chunks
    except UnzipError as e:
        raise _corrupt(e) from e


def iter_zip_entries(zip_chunks: Iterable[bytes]) -> Iterator[Tuple[str, Optional[int], Iterator[bytes]]]:
    """Yield `(name, size, chunks)` for every entry of a streamed ZIP archive.

    Each entry's `chunks` must be consumed (or the iteration abandoned)
    before asking for the next entry. `size` is None for entries whose size
    is only stored after their data.

    Input that does not start with a local file header yields no entries, so
    zero-byte and non-ZIP input look like an empty archive. Leading junk in
    front of a real archive is not skipped over.

    Raises:
        UnsupportedCompressionError: If an entry uses a method other than stored or deflated.
        CorruptArchiveError: If the data is truncated, fails its CRC or is otherwise invalid.
    """
    head = b""
    entries = 0

    def recorded() -> Iterator[bytes]:
        nonlocal head
        for chunk in zip_chunks:
            if len(head) < len(LOCAL_HEADER_SIGNATURE):
                head = (head + chunk)[:len(LOCAL_HEADER_SIGNATURE)]
            yield chunk

    try:
        for name, size, chunks in stream_unzip(recorded(), chunk_size=UNZIP_CHUNK_SIZE):
            entries += 1
            yield _decode_name(name), size, _entry_chunks(chunks)
    except UnzipError as e:
        if entries or (head and LOCAL_HEADER_SIGNATURE.startswith(head)):
            raise _corrupt(e) from e


class CleanupPolicy(str, Enum):
    """What to do with already written files when extraction fails.

    KEEP leaves them in place; removing a partially extracted directory is
    then up to the caller. REMOVE_WRITTEN deletes every file this run wrote
    and the directories it created, if they end up empty.
    """
    KEEP = "keep"
    REMOVE_WRITTEN = "remove-written"


@dataclass
class PendingWrite:
    """An output file being filled with one entry's decompressed data."""
    path: Path
    handle: BinaryIO
    written: int = 0

    def write(self, data: bytes) -> int:
        count = self.handle.write(data)
        self.written += count
        return count

    def close(self) -> None:
        self.handle.close()


@dataclass
class ExtractionSession:
    """State of one extraction pass.

    Attributes:
        destination (str): Absolute, normalised destination directory.
        pending (int): Entries whose output file is open.
        stream_ended (bool): True once the whole archive has been read.
        settlement (Settlement): First outcome of the pass; None for success,
            the exception for failure.
        written (List[Path]): Files created or truncated by this pass, in order.
        created_dirs (List[Path]): Directories created by this pass.
    """
    destination: str
    cleanup: CleanupPolicy = CleanupPolicy.KEEP
    progress_callback: Optional[Callable[[int], None]] = None
    pending: int = 0
    stream_ended: bool = False
    settlement: Settlement = field(default_factory=Settlement)
    written: List[Path] = field(default_factory=list)
    created_dirs: List[Path] = field(default_factory=list)
    open_writes: List[PendingWrite] = field(default_factory=list)

    def check_completion(self) -> bool:
        """Settle successfully once input has ended and no entry is being written.

        Returns:
            bool: True if this call settled the session.
        """
        if self.stream_ended and self.pending == 0:
            return self.settlement.settle(None)
        return False

    def fail(self, error: BaseException) -> bool:
        """Settle with `error` and release everything the pass still holds.

        Only the first failure is kept; later ones are ignored.
        """
        if not self.settlement.settle(error):
            return False
        for pending_write in self.open_writes:
            pending_write.close()
        self.open_writes.clear()
        if self.cleanup is CleanupPolicy.REMOVE_WRITTEN:
            self._remove_written()
        return True

    def resolve_target(self, name: str) -> str:
        """Return the output path for entry `name`.

        Raises:
            InvalidEntryNameError: If the name cannot be used as a file path.
            ZipSlipError: If the path is neither the destination itself nor inside it.
        """
        if "\x00" in name:
            raise InvalidEntryNameError(f"Invalid entry name: {name!r}")
        target = os.path.abspath(os.path.join(self.destination, name))
        if target != self.destination and not target.startswith(self.destination + os.sep):
            raise ZipSlipError(f"Zip slip detected: {name}")
        return target

    def extract_entry(self, name: str, chunks: Iterable[bytes]) -> None:
        """Write one entry's chunks to its output file, or drain them for a directory marker."""
        # Directories are created from file paths, markers are not needed
        if name.endswith("/"):
            for _ in chunks:
                pass
            return

        target = Path(self.resolve_target(name))
        self._make_parent(target.parent)
        pending_write = PendingWrite(target, open(target, "wb"))
        self.pending += 1
        self.open_writes.append(pending_write)
        self.written.append(target)

        for chunk in chunks:
            count = pending_write.write(chunk)
            if self.progress_callback:
                self.progress_callback(count)

        pending_write.close()
        self.open_writes.remove(pending_write)
        self.pending -= 1
        self.check_completion()

    def end_of_input(self) -> None:
        self.stream_ended = True
        self.check_completion()

    def _make_parent(self, directory: Path) -> None:
        missing = []
        current = directory
        while not current.exists():
            missing.append(current)
            current = current.parent
        directory.mkdir(parents=True, exist_ok=True)
        self.created_dirs.extend(reversed(missing))

    def _remove_written(self) -> None:
        for path in self.written:
            try:
                path.unlink()
            except FileNotFoundError:
                pass
        # Deepest first, so parents are empty by the time we get to them
        for directory in reversed(self.created_dirs):
            try:
                directory.rmdir()
            except OSError:
                # Not empty: something else lives there
                continue


def extract_zip(zip_path: Union[str, os.PathLike], destination_dir: Union[str, os.PathLike],
                cleanup: CleanupPolicy = CleanupPolicy.KEEP,
                progress_callback: Optional[Callable[[int], None]] = None) -> List[Path]:
    """Extract every file of a ZIP archive under `destination_dir`.

    Args:
        zip_path: Path of the archive on local disk.
        destination_dir: Directory to extract into; created when missing.
        cleanup (CleanupPolicy): What to do with already written files on failure.
        progress_callback (callable|None): Called with the number of bytes
            written on each write.

    Returns:
        List[Path]: The files written, in archive order. Returned only once
        every entry has been written and closed.

    Raises:
        ZipSlipError: If an entry would be written outside `destination_dir`.
        InvalidEntryNameError: If an entry name cannot be used as a file path.
        CorruptArchiveError: If the archive data is invalid or truncated.
        OSError: If the archive cannot be read or an output cannot be written.

    Notes:
        Existing files at the same paths are overwritten.
    """
    session = ExtractionSession(os.path.abspath(destination_dir), cleanup, progress_callback)

    try:
        with ChunkReader(zip_path, CHUNK_SIZE) as reader:
            for name, _, chunks in iter_zip_entries(reader):
                session.extract_entry(name, chunks)
        session.end_of_input()
    except Exception as e:
        session.fail(e)

    if isinstance(session.settlement.outcome, BaseException):
        error = session.settlement.outcome
        console.print(f"Failed: {error}")
        raise error
    return list(session.written)
