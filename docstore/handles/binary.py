"""
Bytes handle: content held as raw bytes.
"""

from typing import BinaryIO, Dict, Optional

from docstore.domain import Capability, Format, capabilities

from .base import BaseHandle


class BytesHandle(BaseHandle[bytes]):
    """Represents content of any format as a byte array.

    This is the handle for binary documents. ``properties`` receives the
    intrinsic properties a BinaryDocumentManager extracts when its
    metadata extraction policy is PROPERTIES.
    """

    capabilities = capabilities(
        Capability.READ,
        Capability.WRITE,
        Capability.BINARY,
        Capability.TEXT,
        Capability.XML,
        Capability.JSON,
    )
    supported_formats = frozenset(
        {Format.BINARY, Format.TEXT, Format.XML, Format.JSON}
    )
    default_format = Format.BINARY
    parse_errors = ()

    def __init__(
        self,
        content: Optional[bytes] = None,
        format: Optional[Format] = None,
        mime_type: Optional[str] = None,
    ) -> None:
        self.properties: Dict[str, str] = {}
        super().__init__(content=content, format=format, mime_type=mime_type)

    def _parse(self, data: bytes) -> bytes:
        return data

    def _serialize(self, content: bytes, out: BinaryIO) -> None:
        out.write(content)

    def __len__(self) -> int:
        return len(self._content) if self._content is not None else 0
