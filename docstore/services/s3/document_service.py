"""
S3 implementation of DocumentService.

This module provides an object-store implementation of the DocumentService
protocol, intended for a MinIO server reached through boto3. Document
content and document metadata are stored separately:

- Content: objects in the content bucket under ``documents/<quoted-uri>``,
  with the document format recorded as user metadata
- Metadata: DocumentMetadata JSON objects in the metadata bucket under the
  same key

URIs are percent-encoded into a single key segment so every URI maps to
exactly one key.

Transactions are staged beside the committed objects:

- ``transactions/<id>/transaction.json`` in the metadata bucket marks an
  open transaction
- ``transactions/<id>/documents/<quoted-uri>`` holds staged content and
  staged metadata
- ``transactions/<id>/deleted/<quoted-uri>`` in the metadata bucket is a
  tombstone for a document deleted within the transaction

Commit copies staged objects over the committed ones, applies tombstones
and removes the staging area. Rollback only removes the staging area.
"""

import io
import json
import logging
import uuid
from typing import Any, Dict, Iterator, List, Optional, Sequence
from urllib.parse import quote, unquote

from botocore.exceptions import BotoCoreError, ClientError

from docstore.domain import (
    ByteRange,
    ContentStream,
    DocumentDescriptor,
    DocumentMetadata,
    FetchResult,
    Format,
    MetadataCategory,
    content_multihash,
    read_stream,
    validate_uri,
)
from docstore.errors import (
    DocumentNotFoundError,
    RangeNotSatisfiableError,
    TransactionStateError,
    TransportError,
)
from docstore.services.search import ScanningSearchMixin, SearchableDocument

from .client import INVALID_RANGE_CODES, S3Client, error_code, is_not_found

logger = logging.getLogger(__name__)

DOCUMENTS_PREFIX = "documents/"
TRANSACTIONS_PREFIX = "transactions/"
FORMAT_METADATA_KEY = "docstore-format"
MULTIHASH_METADATA_KEY = "docstore-multihash"


class S3DocumentService(ScanningSearchMixin):
    """
    S3 implementation of DocumentService using an S3Client for persistence.

    The client may be a boto3 client pointed at MinIO or a fake client in
    tests. Storage errors are mapped onto the service error family:
    missing keys become DocumentNotFoundError, rejected ranges become
    RangeNotSatisfiableError, and everything else becomes TransportError
    chained to the original exception.
    """

    def __init__(
        self,
        client: S3Client,
        content_bucket: str = "documents",
        metadata_bucket: str = "documents-metadata",
    ) -> None:
        """Initialize service with an S3 client.

        Args:
            client: S3Client protocol implementation (real or fake)
            content_bucket: Bucket holding document content
            metadata_bucket: Bucket holding metadata and transaction markers
        """
        self.client = client
        self.content_bucket = content_bucket
        self.metadata_bucket = metadata_bucket
        logger.debug(
            "Initializing S3DocumentService",
            extra={
                "content_bucket": content_bucket,
                "metadata_bucket": metadata_bucket,
            },
        )
        self.ensure_buckets_exist([content_bucket, metadata_bucket])

    def ensure_buckets_exist(self, bucket_names: List[str]) -> None:
        """Create any bucket that does not exist yet."""
        for bucket_name in bucket_names:
            try:
                self.client.head_bucket(Bucket=bucket_name)
                logger.debug(
                    "S3DocumentService: Bucket already exists",
                    extra={"bucket_name": bucket_name},
                )
            except ClientError as e:
                if not is_not_found(e):
                    logger.error(
                        "S3DocumentService: Failed to check bucket",
                        extra={"bucket_name": bucket_name, "error": str(e)},
                    )
                    raise TransportError(
                        f"Cannot access bucket {bucket_name}: {e}"
                    ) from e
                logger.info(
                    "S3DocumentService: Creating bucket",
                    extra={"bucket_name": bucket_name},
                )
                try:
                    self.client.create_bucket(Bucket=bucket_name)
                except ClientError as create_error:
                    raise TransportError(
                        f"Cannot create bucket {bucket_name}: {create_error}"
                    ) from create_error
            except BotoCoreError as e:
                raise TransportError(
                    f"Cannot reach object store for bucket {bucket_name}: {e}"
                ) from e

    # Keys

    @staticmethod
    def _document_key(uri: str, transaction_id: Optional[str] = None) -> str:
        key = f"{DOCUMENTS_PREFIX}{quote(uri, safe='')}"
        if transaction_id is None:
            return key
        return f"{TRANSACTIONS_PREFIX}{transaction_id}/{key}"

    @staticmethod
    def _tombstone_key(uri: str, transaction_id: str) -> str:
        return f"{TRANSACTIONS_PREFIX}{transaction_id}/deleted/{quote(uri, safe='')}"

    @staticmethod
    def _marker_key(transaction_id: str) -> str:
        return f"{TRANSACTIONS_PREFIX}{transaction_id}/transaction.json"

    # Low-level object access

    def _head(self, bucket: str, key: str) -> Optional[Dict[str, Any]]:
        try:
            return self.client.head_object(Bucket=bucket, Key=key)
        except ClientError as e:
            if is_not_found(e):
                return None
            raise self._transport_error("head", bucket, key, e)
        except BotoCoreError as e:
            raise self._transport_error("head", bucket, key, e)

    def _get(
        self, bucket: str, key: str, byte_range: Optional[str] = None
    ) -> ContentStream:
        kwargs: Dict[str, Any] = {"Bucket": bucket, "Key": key}
        if byte_range is not None:
            kwargs["Range"] = byte_range
        try:
            response = self.client.get_object(**kwargs)
        except ClientError as e:
            if is_not_found(e):
                raise DocumentNotFoundError(unquote(key.rsplit("/", 1)[-1])) from e
            raise self._transport_error("get", bucket, key, e)
        except BotoCoreError as e:
            raise self._transport_error("get", bucket, key, e)
        body = response["Body"]
        if isinstance(body, io.IOBase):
            return ContentStream(body)
        return ContentStream.from_bytes(body.read())

    def _put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        try:
            return self.client.put_object(
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                Metadata=metadata or {},
            )
        except (ClientError, BotoCoreError) as e:
            raise self._transport_error("put", bucket, key, e)

    def _delete(self, bucket: str, key: str) -> None:
        try:
            self.client.delete_object(Bucket=bucket, Key=key)
        except ClientError as e:
            if not is_not_found(e):
                raise self._transport_error("delete", bucket, key, e)
        except BotoCoreError as e:
            raise self._transport_error("delete", bucket, key, e)

    def _copy(self, bucket: str, source_key: str, target_key: str) -> None:
        try:
            self.client.copy_object(
                Bucket=bucket,
                Key=target_key,
                CopySource={"Bucket": bucket, "Key": source_key},
            )
        except (ClientError, BotoCoreError) as e:
            raise self._transport_error("copy", bucket, source_key, e)

    def _list_keys(self, bucket: str, prefix: str) -> List[str]:
        keys: List[str] = []
        kwargs: Dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
        try:
            while True:
                response = self.client.list_objects_v2(**kwargs)
                keys.extend(obj["Key"] for obj in response.get("Contents", []))
                if not response.get("IsTruncated"):
                    break
                kwargs["ContinuationToken"] = response["NextContinuationToken"]
        except (ClientError, BotoCoreError) as e:
            raise self._transport_error("list", bucket, prefix, e)
        return keys

    def _transport_error(
        self, operation: str, bucket: str, key: str, error: Exception
    ) -> TransportError:
        logger.error(
            "S3DocumentService: Object store request failed",
            extra={
                "operation": operation,
                "bucket": bucket,
                "key": key,
                "error": str(error),
                "error_type": type(error).__name__,
            },
            exc_info=True,
        )
        transport_error = TransportError(
            f"S3 {operation} failed for {bucket}/{key}: {error}"
        )
        transport_error.__cause__ = error
        return transport_error

    # Transaction views

    def _require_transaction(self, transaction_id: Optional[str]) -> None:
        if transaction_id is None:
            return
        if self._head(self.metadata_bucket, self._marker_key(transaction_id)) is None:
            raise TransactionStateError(
                f"Transaction is not open: {transaction_id}"
            )

    def _is_tombstoned(self, uri: str, transaction_id: Optional[str]) -> bool:
        if transaction_id is None:
            return False
        return (
            self._head(self.metadata_bucket, self._tombstone_key(uri, transaction_id))
            is not None
        )

    def _visible_content(
        self, uri: str, transaction_id: Optional[str]
    ) -> Optional[tuple]:
        """(key, head) of the content visible to the transaction."""
        if transaction_id is not None:
            if self._is_tombstoned(uri, transaction_id):
                return None
            staged_key = self._document_key(uri, transaction_id)
            staged = self._head(self.content_bucket, staged_key)
            if staged is not None:
                return staged_key, staged
        key = self._document_key(uri)
        head = self._head(self.content_bucket, key)
        return (key, head) if head is not None else None

    def _visible_metadata_key(self, uri: str, transaction_id: Optional[str]) -> str:
        if transaction_id is not None:
            staged_key = self._document_key(uri, transaction_id)
            if self._head(self.metadata_bucket, staged_key) is not None:
                return staged_key
        return self._document_key(uri)

    def _read_metadata(
        self, uri: str, transaction_id: Optional[str]
    ) -> DocumentMetadata:
        key = self._visible_metadata_key(uri, transaction_id)
        try:
            data = read_stream(self._get(self.metadata_bucket, key))
        except DocumentNotFoundError:
            logger.warning(
                "S3DocumentService: Document content found but metadata missing",
                extra={"uri": uri, "key": key},
            )
            return DocumentMetadata()
        return DocumentMetadata.model_validate_json(data or b"{}")

    @staticmethod
    def _describe(uri: str, head: Dict[str, Any]) -> DocumentDescriptor:
        user_metadata = head.get("Metadata") or {}
        mime_type = head.get("ContentType") or Format.UNKNOWN.default_mime_type
        format_value = user_metadata.get(FORMAT_METADATA_KEY)
        return DocumentDescriptor(
            uri=uri,
            format=Format(format_value) if format_value else Format.from_mime_type(mime_type),
            mime_type=mime_type,
            byte_length=int(head.get("ContentLength", 0)),
            version=str(head.get("ETag", "")).strip('"') or None,
        )

    # DocumentService

    def fetch(
        self,
        uri: str,
        *,
        byte_range: Optional[ByteRange] = None,
        include_content: bool = True,
        metadata_categories: Optional[Sequence[MetadataCategory]] = None,
        transaction_id: Optional[str] = None,
    ) -> FetchResult:
        validate_uri(uri)
        self._require_transaction(transaction_id)
        located = self._visible_content(uri, transaction_id)
        if located is None:
            logger.debug(
                "S3DocumentService: Document not found",
                extra={"uri": uri, "transaction_id": transaction_id},
            )
            raise DocumentNotFoundError(uri)
        key, head = located
        descriptor = self._describe(uri, head)

        content_stream = None
        if include_content:
            range_header = None
            if byte_range is not None and not byte_range.is_whole_document:
                resolved = byte_range.resolve(descriptor.byte_length)
                if resolved is None:
                    raise RangeNotSatisfiableError(
                        uri,
                        byte_range.start,
                        byte_range.length,
                        descriptor.byte_length,
                    )
                offset, length = resolved
                range_header = f"bytes={offset}-{offset + length - 1}"
            try:
                content_stream = self._get(self.content_bucket, key, range_header)
            except TransportError as e:
                cause = e.__cause__
                if (
                    byte_range is not None
                    and isinstance(cause, ClientError)
                    and error_code(cause) in INVALID_RANGE_CODES
                ):
                    raise RangeNotSatisfiableError(
                        uri,
                        byte_range.start,
                        byte_range.length,
                        descriptor.byte_length,
                    ) from cause
                raise

        metadata_stream = None
        if metadata_categories is not None:
            metadata = self._read_metadata(uri, transaction_id).restricted_to(
                metadata_categories
            )
            metadata_stream = ContentStream.from_bytes(
                metadata.model_dump_json().encode("utf-8")
            )

        logger.info(
            "S3DocumentService: Document fetched",
            extra={
                "uri": uri,
                "key": key,
                "transaction_id": transaction_id,
                "range": byte_range.model_dump() if byte_range else None,
                "with_metadata": metadata_stream is not None,
            },
        )

        return FetchResult(
            uri=uri,
            content=content_stream,
            metadata=metadata_stream,
            format=descriptor.format,
            mime_type=descriptor.mime_type,
        )

    def store(
        self,
        uri: str,
        content: Optional[ContentStream],
        *,
        format: Format,
        mime_type: str,
        metadata: Optional[ContentStream] = None,
        transaction_id: Optional[str] = None,
    ) -> DocumentDescriptor:
        validate_uri(uri)
        self._require_transaction(transaction_id)
        data = read_stream(content)
        metadata_json = read_stream(metadata)
        new_metadata = (
            DocumentMetadata.model_validate_json(metadata_json)
            if metadata_json
            else None
        )
        located = self._visible_content(uri, transaction_id)
        target_key = self._document_key(uri, transaction_id)

        if data is None:
            if located is None:
                raise DocumentNotFoundError(
                    uri, f"Cannot update metadata of missing document: {uri}"
                )
            descriptor = self._describe(uri, located[1])
        else:
            if new_metadata is None:
                new_metadata = (
                    self._read_metadata(uri, transaction_id)
                    if located is not None
                    else DocumentMetadata()
                )
            self._put(
                self.content_bucket,
                target_key,
                data,
                mime_type,
                {
                    FORMAT_METADATA_KEY: format.value,
                    MULTIHASH_METADATA_KEY: content_multihash(data),
                },
            )
            descriptor = DocumentDescriptor(
                uri=uri,
                format=format,
                mime_type=mime_type,
                byte_length=len(data),
            )
            if transaction_id is not None:
                self._delete(
                    self.metadata_bucket, self._tombstone_key(uri, transaction_id)
                )

        if new_metadata is not None:
            metadata_bytes = new_metadata.model_dump_json().encode("utf-8")
            self._put(
                self.metadata_bucket,
                target_key,
                metadata_bytes,
                "application/json",
            )

        logger.info(
            "S3DocumentService: Document stored",
            extra={
                "uri": uri,
                "key": target_key,
                "transaction_id": transaction_id,
                "format": descriptor.format.value,
                "content_length": descriptor.byte_length,
                "metadata_only": data is None,
            },
        )
        return descriptor

    def delete(self, uri: str, *, transaction_id: Optional[str] = None) -> None:
        validate_uri(uri)
        self._require_transaction(transaction_id)
        if self._visible_content(uri, transaction_id) is None:
            raise DocumentNotFoundError(uri)

        if transaction_id is not None:
            staged_key = self._document_key(uri, transaction_id)
            self._delete(self.content_bucket, staged_key)
            self._delete(self.metadata_bucket, staged_key)
            self._put(
                self.metadata_bucket,
                self._tombstone_key(uri, transaction_id),
                b"",
                "application/octet-stream",
            )
        else:
            key = self._document_key(uri)
            self._delete(self.content_bucket, key)
            self._delete(self.metadata_bucket, key)

        logger.info(
            "S3DocumentService: Document deleted",
            extra={"uri": uri, "transaction_id": transaction_id},
        )

    def describe(
        self, uri: str, *, transaction_id: Optional[str] = None
    ) -> Optional[DocumentDescriptor]:
        validate_uri(uri)
        self._require_transaction(transaction_id)
        located = self._visible_content(uri, transaction_id)
        return self._describe(uri, located[1]) if located is not None else None

    def _uris_under(self, bucket: str, prefix: str) -> List[str]:
        return [
            unquote(key[len(prefix) :])
            for key in self._list_keys(bucket, prefix)
        ]

    def list_uris(self, *, transaction_id: Optional[str] = None) -> List[str]:
        self._require_transaction(transaction_id)
        uris = set(self._uris_under(self.content_bucket, DOCUMENTS_PREFIX))
        if transaction_id is not None:
            staged_prefix = f"{TRANSACTIONS_PREFIX}{transaction_id}/{DOCUMENTS_PREFIX}"
            deleted_prefix = f"{TRANSACTIONS_PREFIX}{transaction_id}/deleted/"
            uris |= set(self._uris_under(self.content_bucket, staged_prefix))
            uris -= set(self._uris_under(self.metadata_bucket, deleted_prefix))
        return sorted(uris)

    def iter_searchable(
        self, transaction_id: Optional[str] = None
    ) -> Iterator[SearchableDocument]:
        for uri in self.list_uris(transaction_id=transaction_id):
            located = self._visible_content(uri, transaction_id)
            if located is None:
                continue
            key, head = located
            descriptor = self._describe(uri, head)
            content = b""
            if descriptor.format is not Format.BINARY:
                content = read_stream(self._get(self.content_bucket, key)) or b""
            yield SearchableDocument(
                uri=uri,
                format=descriptor.format,
                mime_type=descriptor.mime_type,
                content=content,
                collections=self._read_metadata(uri, transaction_id).collections,
            )

    def open_transaction(self, name: Optional[str] = None) -> str:
        transaction_id = str(uuid.uuid4())
        marker = json.dumps(
            {"transaction_id": transaction_id, "name": name}
        ).encode("utf-8")
        self._put(
            self.metadata_bucket,
            self._marker_key(transaction_id),
            marker,
            "application/json",
        )
        logger.info(
            "S3DocumentService: Transaction opened",
            extra={"transaction_id": transaction_id, "name": name},
        )
        return transaction_id

    def commit(self, transaction_id: str) -> None:
        self._require_transaction(transaction_id)
        staged_prefix = f"{TRANSACTIONS_PREFIX}{transaction_id}/{DOCUMENTS_PREFIX}"
        deleted_prefix = f"{TRANSACTIONS_PREFIX}{transaction_id}/deleted/"

        deleted = self._uris_under(self.metadata_bucket, deleted_prefix)
        for uri in deleted:
            key = self._document_key(uri)
            self._delete(self.content_bucket, key)
            self._delete(self.metadata_bucket, key)

        written = 0
        for bucket in (self.content_bucket, self.metadata_bucket):
            for staged_key in self._list_keys(bucket, staged_prefix):
                committed_key = staged_key[len(f"{TRANSACTIONS_PREFIX}{transaction_id}/") :]
                self._copy(bucket, staged_key, committed_key)
                if bucket == self.content_bucket:
                    written += 1

        self._discard_staging(transaction_id)
        logger.info(
            "S3DocumentService: Transaction committed",
            extra={
                "transaction_id": transaction_id,
                "writes": written,
                "deletes": len(deleted),
            },
        )

    def rollback(self, transaction_id: str) -> None:
        self._require_transaction(transaction_id)
        self._discard_staging(transaction_id)
        logger.info(
            "S3DocumentService: Transaction rolled back",
            extra={"transaction_id": transaction_id},
        )

    def _discard_staging(self, transaction_id: str) -> None:
        prefix = f"{TRANSACTIONS_PREFIX}{transaction_id}/"
        for bucket in (self.content_bucket, self.metadata_bucket):
            for key in self._list_keys(bucket, prefix):
                if key != self._marker_key(transaction_id):
                    self._delete(bucket, key)
        self._delete(self.metadata_bucket, self._marker_key(transaction_id))
