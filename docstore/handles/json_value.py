"""
JSON handle: content held as decoded Python values.
"""

import json
from typing import Any, BinaryIO

from docstore.domain import Capability, Format, capabilities

from .base import StructuredHandle


class JSONHandle(StructuredHandle[Any, json.JSONDecoder, json.JSONEncoder]):
    """Represents JSON content as dicts, lists and scalars.

    A document whose JSON text is ``null`` reads back as no content and leaves
    the held value unchanged.
    """

    capabilities = capabilities(
        Capability.READ,
        Capability.WRITE,
        Capability.JSON,
        Capability.STRUCTURE,
    )
    supported_formats = frozenset({Format.JSON})
    default_format = Format.JSON
    parse_errors = (ValueError,)

    def make_parser(self) -> json.JSONDecoder:
        return json.JSONDecoder()

    def make_serializer(self) -> json.JSONEncoder:
        return json.JSONEncoder(ensure_ascii=False, sort_keys=False)

    def _parse(self, data: bytes) -> Any:
        return self.get_parser().decode(data.decode("utf-8"))

    def _serialize(self, content: Any, out: BinaryIO) -> None:
        for chunk in self.get_serializer().iterencode(content):
            out.write(chunk.encode("utf-8"))
