"""
S3Client protocol definition and client factory.

This module defines the protocol interface that both the real boto3 S3
client and our fake test client must implement. The document service
depends on this abstraction rather than on boto3 directly, so tests run
without an object store.

The real client is normally pointed at a MinIO server, so it is created
with path-style addressing and an explicit endpoint URL.
"""

import logging
from typing import Any, Dict, Optional, Protocol, runtime_checkable

import boto3
from botocore.config import Config as BotocoreConfig
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = frozenset({"NoSuchKey", "NoSuchBucket", "404", "NotFound"})
INVALID_RANGE_CODES = frozenset({"InvalidRange", "416"})


@runtime_checkable
class S3Client(Protocol):
    """
    Protocol defining the S3 client interface used by the document service.

    This protocol captures only the methods we actually use, making our
    dependency explicit and testable. Both the boto3 S3 client and our
    FakeS3Client implement this protocol. Keyword arguments follow the
    boto3 naming.
    """

    def head_bucket(self, *, Bucket: str) -> Dict[str, Any]:
        """Check a bucket exists.

        Raises:
            ClientError: With code 404 / NoSuchBucket if it does not
        """
        ...

    def create_bucket(self, *, Bucket: str) -> Dict[str, Any]:
        """Create a bucket."""
        ...

    def put_object(self, **kwargs: Any) -> Dict[str, Any]:
        """Store an object.

        Keyword Args:
            Bucket, Key, Body, ContentType, Metadata
        """
        ...

    def get_object(self, **kwargs: Any) -> Dict[str, Any]:
        """Retrieve an object, optionally a ``Range="bytes=a-b"`` of it.

        Returns:
            Response dict whose ``Body`` is a readable stream

        Raises:
            ClientError: NoSuchKey if missing, InvalidRange for a bad range
        """
        ...

    def head_object(self, *, Bucket: str, Key: str) -> Dict[str, Any]:
        """Object size, content type, ETag and user metadata.

        Raises:
            ClientError: With code 404 if the object does not exist
        """
        ...

    def copy_object(self, **kwargs: Any) -> Dict[str, Any]:
        """Copy an object within the store.

        Keyword Args:
            Bucket, Key, CopySource ({"Bucket": ..., "Key": ...})
        """
        ...

    def delete_object(self, *, Bucket: str, Key: str) -> Dict[str, Any]:
        """Delete an object. Deleting a missing key is not an error."""
        ...

    def list_objects_v2(self, **kwargs: Any) -> Dict[str, Any]:
        """List objects under ``Prefix``, paged by ``ContinuationToken``."""
        ...


def error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def is_not_found(error: ClientError) -> bool:
    return error_code(error) in NOT_FOUND_CODES


def create_s3_client(
    endpoint_url: Optional[str],
    access_key: Optional[str],
    secret_key: Optional[str],
    region: Optional[str] = None,
) -> S3Client:
    """Create a boto3 S3 client for a MinIO (or other S3) endpoint."""
    logger.debug(
        "Creating S3 client",
        extra={"endpoint_url": endpoint_url, "region": region},
    )
    session = boto3.session.Session(
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        region_name=region,
    )
    return session.client(
        "s3",
        endpoint_url=endpoint_url,
        config=BotocoreConfig(s3={"addressing_style": "path"}),
    )
