"""
Document-level value objects shared by managers and document services.
"""

import hashlib
from typing import Optional, Tuple

import multihash  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .custom_fields import ContentStream
from .formats import Format


def validate_uri(uri: str) -> str:
    """Check a document URI is usable as a key."""
    if not isinstance(uri, str) or not uri.strip():
        raise ValueError("Document URI cannot be empty")
    if any(ch in uri for ch in "\r\n\t"):
        raise ValueError(f"Document URI contains control characters: {uri!r}")
    return uri


def content_multihash(content: bytes) -> str:
    """Hex-encoded SHA-256 multihash of document content."""
    sha256_hash = hashlib.sha256(content).digest()
    return str(multihash.encode(sha256_hash, "sha2-256").hex())


class ByteRange(BaseModel):
    """Byte sub-range of a stored document.

    ``start`` is a 0-based offset. ``length`` 0 means "to the end"; a
    range of (0, 0) is the whole document.
    """

    model_config = ConfigDict(frozen=True)

    start: int = Field(default=0, ge=0)
    length: int = Field(default=0, ge=0)

    @property
    def is_whole_document(self) -> bool:
        return self.start == 0 and self.length == 0

    def resolve(self, size: int) -> Optional[Tuple[int, int]]:
        """Return (offset, length) against a document of ``size`` bytes.

        Returns None when the range cannot be satisfied.
        """
        if self.is_whole_document:
            return 0, size
        if self.start >= size:
            return None
        if self.length == 0:
            return self.start, size - self.start
        if self.start + self.length > size:
            return None
        return self.start, self.length


class DocumentDescriptor(BaseModel):
    """What the store knows about a document without reading it."""

    uri: str
    format: Format = Format.UNKNOWN
    mime_type: str = Format.UNKNOWN.default_mime_type
    byte_length: int = Field(default=0, ge=0)
    version: Optional[str] = None

    @field_validator("uri")
    @classmethod
    def uri_must_be_valid(cls, v: str) -> str:
        return validate_uri(v)


class FetchResult(BaseModel):
    """Streams returned by a document service read."""

    uri: str
    content: Optional[ContentStream] = None
    metadata: Optional[ContentStream] = None
    format: Format = Format.UNKNOWN
    mime_type: str = Format.UNKNOWN.default_mime_type
