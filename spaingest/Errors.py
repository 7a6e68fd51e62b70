"""Exception types raised while reading or extracting archives."""


class ArchiveError(Exception):
    """Base class for every archive related failure."""


class CorruptArchiveError(ArchiveError):
    """The archive bytes are structurally invalid (truncated, bad deflate data, CRC mismatch)."""


class UnsupportedCompressionError(CorruptArchiveError):
    """An entry uses a compression method other than stored or deflated."""


class ZipSlipError(ArchiveError):
    """An entry name resolves outside the extraction directory."""


class InvalidEntryNameError(ArchiveError):
    """An entry name cannot be used as a file path (e.g. it holds a NUL byte)."""
