"""
Content handles.

Each handle adapts one in-memory representation to the byte streams that
document services move:

- BytesHandle: raw bytes, for binary documents or any format
- StringHandle: decoded text, XML or JSON characters
- XMLHandle: an ElementTree document
- JSONHandle: decoded JSON values
- ModelHandle: a Pydantic model as JSON
- MetadataHandle: document metadata
- SearchHandle: a page of search results
"""

from .base import BaseHandle, ContentSender, StructuredHandle
from .binary import BytesHandle
from .json_value import JSONHandle
from .model import MetadataHandle, ModelHandle, SearchHandle
from .text import StringHandle
from .xml_tree import XMLHandle, XMLSerializer

__all__ = [
    "BaseHandle",
    "BytesHandle",
    "ContentSender",
    "JSONHandle",
    "MetadataHandle",
    "ModelHandle",
    "SearchHandle",
    "StringHandle",
    "StructuredHandle",
    "XMLHandle",
    "XMLSerializer",
]
