"""
docstore: handle-based client for a document database.

Callers create a DatabaseClient over a document service, obtain document
and query managers from it, and move content in and out through handles.

Example:
    >>> from docstore import DatabaseClient, MemoryDocumentService
    >>> from docstore.handles import StringHandle
    >>> client = DatabaseClient(MemoryDocumentService())
    >>> manager = client.new_text_document_manager()
    >>> descriptor = manager.write("/notes/a.txt", StringHandle("hello"))
    >>> manager.read("/notes/a.txt", StringHandle()).get()
    'hello'
"""

from .client import DatabaseClient, create_database_client
from .config import ClientConfig
from .services import DocumentService, MemoryDocumentService, S3DocumentService
from .transaction import Transaction

__all__ = [
    "ClientConfig",
    "DatabaseClient",
    "DocumentService",
    "MemoryDocumentService",
    "S3DocumentService",
    "Transaction",
    "create_database_client",
]
