"""Structural types used at the pipeline's boundaries.

`ReadableStream` is what the temp stream saver accepts (any binary file-like
object) and `UploadPart` is what `FileProcessor` expects from the HTTP
layer's multipart parser. Keeping them as protocols means the web framework
never has to import anything from this package to hand data over.
"""

from typing import Protocol


class ReadableStream(Protocol):
    """A binary stream with a file-like `read`."""

    def read(self, size: int = -1) -> bytes:
        ...


class UploadPart(Protocol):
    """One part of a multipart upload.

    Attributes:
        type (str): "file" for file parts, "field" for plain form fields.
        fieldname (str): Name of the form field.
        filename (str): Client supplied filename ("" for plain fields).
        stream (ReadableStream): The part's body.
    """
    type: str
    fieldname: str
    filename: str
    stream: ReadableStream
