"""
Document services: the transport behind document and query managers.
"""

from .document_service import DocumentService
from .memory import MemoryDocumentService
from .s3 import S3DocumentService

__all__ = ["DocumentService", "MemoryDocumentService", "S3DocumentService"]
