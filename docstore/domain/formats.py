"""
Content formats and handle capability tags.
"""

from enum import Enum
from typing import FrozenSet


class Format(str, Enum):
    """Format of stored document content."""

    XML = "xml"
    JSON = "json"
    BINARY = "binary"
    TEXT = "text"
    UNKNOWN = "unknown"

    @property
    def default_mime_type(self) -> str:
        return _DEFAULT_MIME_TYPES[self]

    @classmethod
    def from_mime_type(cls, mime_type: str) -> "Format":
        """Best-effort guess of the format for a mime type."""
        base = mime_type.split(";", 1)[0].strip().lower()
        if base.endswith("/xml") or base.endswith("+xml"):
            return cls.XML
        if base.endswith("/json") or base.endswith("+json"):
            return cls.JSON
        if base.startswith("text/"):
            return cls.TEXT
        if base:
            return cls.BINARY
        return cls.UNKNOWN


_DEFAULT_MIME_TYPES = {
    Format.XML: "application/xml",
    Format.JSON: "application/json",
    Format.BINARY: "application/octet-stream",
    Format.TEXT: "text/plain",
    Format.UNKNOWN: "application/x-unknown-content-type",
}


class Capability(str, Enum):
    """Tags a handle carries so operations can check what it supports.

    READ and WRITE give the directions. BINARY, TEXT, XML and JSON say
    which kinds of stored content the handle can carry. STRUCTURE marks a
    handle that holds a parsed tree rather than raw characters or bytes.
    METADATA and SEARCH mark the special purpose handles.
    """

    READ = "read"
    WRITE = "write"
    BINARY = "binary"
    TEXT = "text"
    XML = "xml"
    JSON = "json"
    STRUCTURE = "structure"
    METADATA = "metadata"
    SEARCH = "search"


CONTENT_CAPABILITY = {
    Format.XML: Capability.XML,
    Format.JSON: Capability.JSON,
    Format.BINARY: Capability.BINARY,
    Format.TEXT: Capability.TEXT,
}


def capabilities(*tags: Capability) -> FrozenSet[Capability]:
    return frozenset(tags)
