"""
String handle: content held as a decoded ``str``.
"""

import codecs
from typing import BinaryIO, Optional

from docstore.domain import Capability, Format, capabilities

from .base import BaseHandle


class StringHandle(BaseHandle[str]):
    """Represents text, XML or JSON content as a string.

    The string is not parsed, so the content is carried as characters only.
    Use XMLHandle or JSONHandle for a parsed structure.
    """

    capabilities = capabilities(
        Capability.READ,
        Capability.WRITE,
        Capability.TEXT,
        Capability.XML,
        Capability.JSON,
    )
    supported_formats = frozenset({Format.TEXT, Format.XML, Format.JSON})
    default_format = Format.TEXT
    parse_errors = (UnicodeDecodeError,)

    def __init__(
        self,
        content: Optional[str] = None,
        format: Optional[Format] = None,
        mime_type: Optional[str] = None,
        encoding: str = "utf-8",
    ) -> None:
        if not getattr(codecs.lookup(encoding), "_is_text_encoding", True):
            raise ValueError(f"{encoding} is not a text encoding")
        self.encoding = encoding
        super().__init__(content=content, format=format, mime_type=mime_type)

    def _parse(self, data: bytes) -> str:
        return data.decode(self.encoding)

    def _serialize(self, content: str, out: BinaryIO) -> None:
        out.write(content.encode(self.encoding))
