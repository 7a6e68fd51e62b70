"""
Tests for reading archive entries through stream_unzip.
"""
import zipfile

import pytest

from spaingest.Errors import CorruptArchiveError, UnsupportedCompressionError
from spaingest.ZipArchive import UNZIP_CHUNK_SIZE, iter_zip_entries

from .conftest import SPA_FILES, build_zip, craft_zip


def chunked(data, size):
    return [data[offset:offset + size] for offset in range(0, len(data), size)]


def read_all(archive, chunk_size=None):
    """Return {name: contents} for every entry, consuming each entry in turn."""
    contents = {}
    for name, _, chunks in iter_zip_entries(chunked(archive, chunk_size or len(archive) or 1)):
        contents[name] = b"".join(chunks)
    return contents


class TestIterZipEntries:
    """Tests for iter_zip_entries."""

    @pytest.mark.parametrize("compression", [zipfile.ZIP_STORED, zipfile.ZIP_DEFLATED])
    def test_entries_and_contents(self, compression):
        assert read_all(build_zip(SPA_FILES, compression=compression)) == SPA_FILES

    def test_entries_come_in_archive_order(self):
        names = []
        for name, _, chunks in iter_zip_entries([build_zip(SPA_FILES)]):
            names.append(name)
            for _ in chunks:
                pass
        assert names == ["index.html", "assets/app.js"]

    def test_one_byte_chunks(self):
        """Chunk boundaries can fall anywhere, even inside a signature."""
        assert read_all(build_zip(SPA_FILES), chunk_size=1) == SPA_FILES

    def test_sizes_reported_from_local_header(self):
        sizes = {}
        for name, size, chunks in iter_zip_entries([build_zip(SPA_FILES, compression=zipfile.ZIP_STORED)]):
            sizes[name] = size
            for _ in chunks:
                pass
        assert sizes == {name: len(data) for name, data in SPA_FILES.items()}

    def test_data_descriptor_entries(self):
        files = dict(SPA_FILES, **{"empty.txt": b"", "big.bin": bytes(range(256)) * 1024})
        assert read_all(build_zip(files, streamed=True), chunk_size=1000) == files

    def test_output_chunks_are_bounded(self):
        archive = build_zip({"big.txt": b"a" * (5 * UNZIP_CHUNK_SIZE)})
        for _, _, chunks in iter_zip_entries([archive]):
            sizes = [len(chunk) for chunk in chunks]
        assert max(sizes) <= UNZIP_CHUNK_SIZE
        assert sum(sizes) == 5 * UNZIP_CHUNK_SIZE

    def test_directory_markers_are_entries(self):
        contents = read_all(build_zip({"assets/": b"", "assets/app.js": b"x"}))
        assert list(contents) == ["assets/", "assets/app.js"]

    def test_utf8_names(self):
        assert read_all(craft_zip([("café/menü.html", b"x")])) == {"café/menü.html": b"x"}

    def test_cp437_names(self):
        assert read_all(craft_zip([(b"men\x81.html", b"x")])) == {"menü.html": b"x"}

    @pytest.mark.parametrize("data", [b"", b"not a zip file", b"\x00" * 4096])
    def test_non_zip_input_has_no_entries(self, data):
        assert read_all(data) == {}

    def test_empty_zip_has_no_entries(self):
        assert read_all(build_zip({})) == {}

    def test_leading_junk_is_not_skipped(self):
        assert read_all(b"junk" + build_zip(SPA_FILES)) == {}

    def test_truncated_entry(self):
        archive = build_zip({"index.html": b"x" * 5000}, compression=zipfile.ZIP_STORED)
        with pytest.raises(CorruptArchiveError) as excinfo:
            read_all(archive[:1000])
        assert excinfo.value.__cause__ is not None

    def test_truncated_signature(self):
        with pytest.raises(CorruptArchiveError):
            read_all(b"PK\x03")

    def test_garbage_after_an_entry(self):
        archive = craft_zip([("index.html", b"ok")], central_directory=False)
        with pytest.raises(CorruptArchiveError):
            read_all(archive + b"JUNKJUNK")

    def test_crc_mismatch(self):
        archive = bytearray(build_zip({"index.html": b"hello world"}, compression=zipfile.ZIP_STORED))
        archive[archive.index(b"hello world")] = ord("J")
        with pytest.raises(CorruptArchiveError):
            read_all(bytes(archive))

    def test_invalid_deflate_data(self):
        with pytest.raises(CorruptArchiveError):
            read_all(craft_zip([("index.html", b"\xff" * 64, zipfile.ZIP_DEFLATED)]))

    def test_unsupported_compression(self):
        with pytest.raises(UnsupportedCompressionError):
            read_all(craft_zip([("index.html", b"data", zipfile.ZIP_LZMA)]))
