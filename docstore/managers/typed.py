"""
Document managers for structured and textual content.

These differ from each other only in the content capability a handle must
carry and the format stored for handles that leave it unknown.
"""

from docstore.domain import Capability, Format

from .document import AbstractDocumentManager


class XMLDocumentManager(AbstractDocumentManager):
    content_capability = Capability.XML
    default_format = Format.XML


class JSONDocumentManager(AbstractDocumentManager):
    content_capability = Capability.JSON
    default_format = Format.JSON


class TextDocumentManager(AbstractDocumentManager):
    content_capability = Capability.TEXT
    default_format = Format.TEXT


class GenericDocumentManager(AbstractDocumentManager):
    """Accepts any readable / writable handle and stores its own format."""

    content_capability = None
    default_format = Format.UNKNOWN
