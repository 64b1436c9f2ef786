"""
S3 document service.

Content and metadata live in two buckets of an S3-compatible object store
(normally MinIO). The service talks to the store through the S3Client
protocol so tests can substitute a fake client.
"""

from .client import S3Client, create_s3_client
from .document_service import S3DocumentService

__all__ = ["S3Client", "S3DocumentService", "create_s3_client"]
