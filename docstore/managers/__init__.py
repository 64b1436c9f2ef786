"""
Document and query managers: the facades callers use.
"""

from .binary import BinaryDocumentManager
from .document import AbstractDocumentManager
from .query import QueryManager
from .request_logger import RequestLogger
from .typed import (
    GenericDocumentManager,
    JSONDocumentManager,
    TextDocumentManager,
    XMLDocumentManager,
)

__all__ = [
    "AbstractDocumentManager",
    "BinaryDocumentManager",
    "GenericDocumentManager",
    "JSONDocumentManager",
    "QueryManager",
    "RequestLogger",
    "TextDocumentManager",
    "XMLDocumentManager",
]
