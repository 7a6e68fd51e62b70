import io
import struct
import zipfile
import zlib

import pytest

from spaingest.Console import console

SPA_FILES = {
    "index.html": b"<!doctype html><html><body>hello</body></html>",
    "assets/app.js": b'console.log("ok")',
}


class _UnseekableWriter:
    """Write-only sink: makes zipfile emit data descriptors like a streaming zipper."""

    def __init__(self):
        self.buffer = io.BytesIO()

    def write(self, data):
        return self.buffer.write(data)

    def flush(self):
        pass


def build_zip(files, compression=zipfile.ZIP_DEFLATED, streamed=False):
    """Return the bytes of a ZIP archive holding `files` (name -> bytes)."""
    if streamed:
        sink = _UnseekableWriter()
        with zipfile.ZipFile(sink, "w", compression=compression) as zf:
            for name, data in files.items():
                zf.writestr(name, data)
        return sink.buffer.getvalue()

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=compression) as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buffer.getvalue()


def craft_zip(entries, central_directory=True):
    """Build an archive from (name, data[, method]) tuples, bypassing zipfile's name handling.

    `data` is written as-is, so with a method other than stored it must
    already be in that method's format. `str` names are stored as UTF-8
    (flag bit 11), `bytes` names raw with no flag.
    """
    out = io.BytesIO()
    central = io.BytesIO()
    for name, data, *rest in entries:
        method = rest[0] if rest else zipfile.ZIP_STORED
        raw, flags = (name, 0) if isinstance(name, bytes) else (name.encode("utf-8"), 0x800)
        offset = out.tell()
        crc = zlib.crc32(data)
        out.write(struct.pack("<4sHHHHHIIIHH", b"PK\x03\x04", 20, flags, method, 0, 0x21,
                              crc, len(data), len(data), len(raw), 0))
        out.write(raw)
        out.write(data)
        central.write(struct.pack("<4sHHHHHHIIIHHHHHII", b"PK\x01\x02", 20, 20, flags, method, 0, 0x21,
                                  crc, len(data), len(data), len(raw), 0, 0, 0, 0, 0, offset))
        central.write(raw)
    if central_directory:
        directory = central.getvalue()
        directory_offset = out.tell()
        out.write(directory)
        out.write(struct.pack("<4sHHHHIIH", b"PK\x05\x06", 0, 0, len(entries), len(entries),
                              len(directory), directory_offset, 0))
    return out.getvalue()


@pytest.fixture(autouse=True)
def quiet_console():
    console.quiet = True
    yield
    console.quiet = False


@pytest.fixture
def write_zip(tmp_path):
    def _write(files, name="archive.zip", **kwargs):
        path = tmp_path / name
        path.write_bytes(build_zip(files, **kwargs))
        return path
    return _write
