"""
Custom Pydantic field types for the docstore domain.

This module contains custom field types that provide proper Pydantic
validation for the byte streams that travel between handles and document
services.
"""

import io
from typing import Optional

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema


class ContentStream:
    """Wrapper for binary IO streams that provides proper Pydantic validation.

    Document services hand content to handles as a ContentStream, and
    handles hand content back to services the same way. Both small content
    (BytesIO) and service responses (such as a MinIO HTTP response, which is
    an io.IOBase) are accepted.
    """

    def __init__(self, stream: io.IOBase):
        if not isinstance(stream, io.IOBase):
            raise ValueError("ContentStream requires an io.IOBase instance")
        self._stream = stream

    @classmethod
    def from_bytes(cls, data: bytes) -> "ContentStream":
        return cls(io.BytesIO(data))

    def read(self, size: int = -1) -> bytes:
        """Read from the underlying stream."""
        data = self._stream.read(size)
        if isinstance(data, str):
            return data.encode("utf-8")
        return data

    def read_all(self) -> bytes:
        """Read everything left in the stream."""
        return self.read()

    def seek(self, offset: int, whence: int = 0) -> int:
        """Seek in the underlying stream."""
        return self._stream.seek(offset, whence)

    def tell(self) -> int:
        """Get current position in stream."""
        return self._stream.tell()

    def close(self) -> None:
        """Close the stream and release any pooled connection."""
        self._stream.close()
        release_conn = getattr(self._stream, "release_conn", None)
        if callable(release_conn):
            release_conn()

    @property
    def stream(self) -> io.IOBase:
        """Access the underlying stream."""
        return self._stream

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        """Define how Pydantic should validate this type."""
        return core_schema.no_info_plain_validator_function(cls._validate)

    @classmethod
    def _validate(cls, v):
        """Validate input and convert to ContentStream."""
        if isinstance(v, cls):
            return v
        if isinstance(v, io.IOBase):
            return cls(v)
        if isinstance(v, (bytes, bytearray)):
            return cls.from_bytes(bytes(v))
        raise ValueError(f"ContentStream expects io.IOBase, got {type(v)}")


def read_stream(stream: Optional[ContentStream]) -> Optional[bytes]:
    """Drain and close a stream, returning None for an absent stream."""
    if stream is None:
        return None
    try:
        return stream.read_all()
    finally:
        stream.close()
