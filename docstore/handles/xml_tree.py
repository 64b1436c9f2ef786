"""
XML handle backed by ElementTree.
"""

import copy
import xml.etree.ElementTree as ET
from typing import BinaryIO, Optional, Union

from docstore.domain import Capability, Format, capabilities

from .base import StructuredHandle


class XMLSerializer:
    """Writes an ElementTree document to a binary stream."""

    def __init__(
        self,
        encoding: str = "utf-8",
        xml_declaration: bool = True,
        indent: Optional[str] = None,
    ) -> None:
        self.encoding = encoding
        self.xml_declaration = xml_declaration
        self.indent = indent

    def output(self, document: ET.ElementTree, out: BinaryIO) -> None:
        if self.indent is not None:
            document = copy.deepcopy(document)
            ET.indent(document, space=self.indent)
        document.write(
            out,
            encoding=self.encoding,
            xml_declaration=self.xml_declaration,
        )


class XMLHandle(StructuredHandle[ET.ElementTree, ET.XMLParser, XMLSerializer]):
    """Represents XML content as an ElementTree document.

    ElementTree parsers are single use, so a parser supplied with
    ``set_parser`` applies to the next ``receive`` only; later receives
    build a fresh default parser.
    """

    capabilities = capabilities(
        Capability.READ,
        Capability.WRITE,
        Capability.XML,
        Capability.STRUCTURE,
    )
    supported_formats = frozenset({Format.XML})
    default_format = Format.XML
    parse_errors = (ET.ParseError, LookupError)

    def set(self, content: Optional[Union[ET.ElementTree, ET.Element]]) -> None:
        if isinstance(content, ET.Element):
            content = ET.ElementTree(content)
        super().set(content)

    @property
    def root(self) -> Optional[ET.Element]:
        return self._content.getroot() if self._content is not None else None

    def make_parser(self) -> ET.XMLParser:
        return ET.XMLParser()

    def make_serializer(self) -> XMLSerializer:
        return XMLSerializer()

    def to_string(self) -> str:
        """Serialized document as text, without the XML declaration."""
        if self._content is None:
            return ""
        return ET.tostring(self._content.getroot(), encoding="unicode")

    def _parse(self, data: bytes) -> ET.ElementTree:
        parser = self.get_parser()
        self._parser = None
        parser.feed(data)
        return ET.ElementTree(parser.close())

    def _serialize(self, content: ET.ElementTree, out: BinaryIO) -> None:
        self.get_serializer().output(content, out)
