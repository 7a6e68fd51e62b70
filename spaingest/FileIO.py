"""File and stream helpers for the ingestion pipeline.

Provides the chunked reader the archive passes are driven by, the temp stream
saver that turns an upload stream into a stable file path, and a few small
helpers around temp files. `download_to_temp` fetches a remote archive with
httpx so the same pipeline can be run against a URL.

Classes:
    ChunkReader: Reads a file in fixed-size chunks and can be destroyed mid-read.

Functions:
    save_stream_to_temp: Copy a readable stream into a fresh temp directory.
    download_to_temp: Stream a remote file into a fresh temp directory.
    cleanup_temp_file: Best-effort removal of a temp file and its directory.
    read_json_file: Parse a JSON file.
"""

import json
import os
import shutil
import tempfile
import time
from pathlib import Path
from typing import Iterator, Optional, Union

import httpx

from .Console import console
from .Protocols import ReadableStream
from .Results import Result

CHUNK_SIZE = 64 * 1024  # 64 KiB
TEMP_PREFIX = "spaingest-"
DOWNLOAD_ATTEMPTS = 5


class ChunkReader:
    """Reads a file from disk in chunks of at most `chunk_size` bytes.

    Iteration stops as soon as `destroy()` has been called, even in the middle
    of the file. The archive passes destroy the reader when their result is
    decided so no further input is processed.

    Attributes:
        path (Path): File being read.
        chunk_size (int): Maximum number of bytes per chunk.
        destroyed (bool): True once `destroy()` was called.
    """

    def __init__(self, path: Union[str, os.PathLike], chunk_size: int = CHUNK_SIZE) -> None:
        """Open `path` for reading.

        Raises:
            OSError: If the file cannot be opened.
        """
        self.path = Path(path)
        self.chunk_size = chunk_size
        self.destroyed = False
        self._file = open(self.path, "rb")

    def __iter__(self) -> Iterator[bytes]:
        while not self.destroyed:
            chunk = self._file.read(self.chunk_size)
            if not chunk:
                return
            yield chunk

    def destroy(self) -> None:
        """Stop reading and release the file handle. Safe to call twice."""
        self.destroyed = True
        self._file.close()

    def __enter__(self) -> "ChunkReader":
        return self

    def __exit__(self, *exc) -> None:
        self.destroy()


def _is_plain_filename(filename: str) -> bool:
    return (bool(filename)
            and filename not in (".", "..")
            and os.path.basename(filename) == filename
            and "/" not in filename
            and "\\" not in filename)


def save_stream_to_temp(stream: Union[ReadableStream, Iterator[bytes]], filename: str) -> Result[str]:
    """Save a readable stream to a file inside a new temp directory.

    Args:
        stream: A binary file-like object with `read()`, or any iterable of
            bytes chunks (e.g. `httpx.Response.iter_bytes()`).
        filename (str): Name of the file inside the temp directory. Only a
            bare name is accepted; the caller does not choose the directory.

    Returns:
        Result[str]: The absolute path of the written file, or an error
        message. Nothing is raised for I/O or stream failures.

    Notes:
        Every call creates a new directory. Removing it is the caller's job,
        except on failure where the directory is removed here so no partial
        file is left looking usable.
    """
    if not _is_plain_filename(filename):
        return Result.failure(f"Invalid filename: {filename!r}")

    try:
        temp_dir = tempfile.mkdtemp(prefix=TEMP_PREFIX)
    except OSError as e:
        return Result.failure(f"Failed to create temp directory: {e}")

    file_path = os.path.join(os.path.abspath(temp_dir), filename)
    try:
        with open(file_path, "wb") as target_file:
            if hasattr(stream, "read"):
                shutil.copyfileobj(stream, target_file, CHUNK_SIZE)
            else:
                for chunk in stream:
                    target_file.write(chunk)
    except Exception as e:
        # Source stream failures are reported here too
        shutil.rmtree(temp_dir, ignore_errors=True)
        return Result.failure(f"Failed to write stream: {str(e) or type(e).__name__}")

    return Result.success(file_path)


def download_to_temp(url: str, filename: str, client: Optional[httpx.Client] = None) -> Result[str]:
    """Stream a remote file into a new temp directory.

    Args:
        url (str): HTTP(S) URL of the archive.
        filename (str): Name of the file inside the temp directory.
        client (httpx.Client|None): Client to use; one is created (and closed)
            when not given. Tests pass a client with a mock transport.

    Returns:
        Result[str]: Path of the downloaded file, or an error message.

    Notes:
        Up to DOWNLOAD_ATTEMPTS requests are made. A 429 response is retried
        after its Retry-After delay, transport errors after a linear backoff.
    """
    own_client = client is None
    last_error = None
    if own_client:
        client = httpx.Client(follow_redirects=True, timeout=httpx.Timeout(10.0, read=300.0))

    try:
        for attempt in range(DOWNLOAD_ATTEMPTS):
            try:
                with client.stream("GET", url) as response:
                    if response.status_code == 429 and attempt < DOWNLOAD_ATTEMPTS - 1:
                        wait_time = max(int(response.headers.get("Retry-After", 3)), 1)
                        console.print(f"Received 429 Too Many Requests, retrying after {wait_time} seconds.")
                        time.sleep(wait_time)
                        continue
                    response.raise_for_status()
                    result = save_stream_to_temp(response.iter_bytes(CHUNK_SIZE), filename)
                    if result.ok:
                        return result
                    # Source failed mid-body: treat it as a transport error and retry
                    last_error = result.error
            except httpx.HTTPStatusError as e:
                return Result.failure(f"Failed to download archive: {e}")
            except httpx.HTTPError as e:
                last_error = str(e)

            if attempt < DOWNLOAD_ATTEMPTS - 1:
                wait_time = (attempt + 1) * 2
                console.print(f"HTTP error on attempt {attempt + 1}: {last_error}. Retrying after {wait_time} seconds.")
                time.sleep(wait_time)
        return Result.failure(f"Failed to download archive: {last_error}")
    finally:
        if own_client:
            client.close()


def cleanup_temp_file(file_path: Union[str, os.PathLike]) -> None:
    """Remove a temp file, and its temp directory once that is empty.

    Cleanup is best effort: failures are reported on the console, not raised.
    """
    try:
        os.unlink(file_path)
        dir_path = os.path.dirname(os.path.abspath(file_path))
        if os.path.basename(dir_path).startswith(TEMP_PREFIX) and not os.listdir(dir_path):
            os.rmdir(dir_path)
    except OSError as e:
        console.print(f"Error during cleanup: {e}")


def read_json_file(file_path: Union[str, os.PathLike]):
    with open(file_path, "r", encoding="utf-8") as f:
        return json.load(f)
