"""
Memory implementation of DocumentService.

This module provides an in-memory implementation of the DocumentService
protocol. Committed documents live in a dictionary keyed by URI. Each open
transaction keeps an overlay of staged writes and tombstones that only
reads made within that transaction can see; commit applies the overlay and
rollback discards it.

The implementation is lightweight and dependency-free, making it ideal for
tests and for embedding. A re-entrant lock serializes access so one
service can be shared by many managers.
"""

import itertools
import logging
import threading
import uuid
from typing import Dict, Iterator, List, Optional, Sequence, Set

from pydantic import BaseModel, Field

from docstore.domain import (
    ByteRange,
    ContentStream,
    DocumentDescriptor,
    DocumentMetadata,
    FetchResult,
    Format,
    MetadataCategory,
    read_stream,
    validate_uri,
)
from docstore.errors import (
    DocumentNotFoundError,
    RangeNotSatisfiableError,
    TransactionStateError,
)

from .search import ScanningSearchMixin, SearchableDocument

logger = logging.getLogger(__name__)


class StoredDocument(BaseModel):
    uri: str
    content: bytes
    format: Format
    mime_type: str
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    version: int

    def describe(self) -> DocumentDescriptor:
        return DocumentDescriptor(
            uri=self.uri,
            format=self.format,
            mime_type=self.mime_type,
            byte_length=len(self.content),
            version=str(self.version),
        )


class TransactionOverlay(BaseModel):
    transaction_id: str
    name: Optional[str] = None
    writes: Dict[str, StoredDocument] = Field(default_factory=dict)
    deletes: Set[str] = Field(default_factory=set)


class MemoryDocumentService(ScanningSearchMixin):
    """
    Memory implementation of DocumentService using Python dictionaries.

    Storage:
    - Documents: dictionary keyed by URI holding StoredDocument records
    - Transactions: dictionary keyed by transaction id holding overlays
    """

    def __init__(self) -> None:
        """Initialize service with empty in-memory storage."""
        logger.debug("Initializing MemoryDocumentService")

        self._documents: Dict[str, StoredDocument] = {}
        self._transactions: Dict[str, TransactionOverlay] = {}
        self._versions = itertools.count(1)
        self._lock = threading.RLock()

    def _overlay(self, transaction_id: Optional[str]) -> Optional[TransactionOverlay]:
        if transaction_id is None:
            return None
        overlay = self._transactions.get(transaction_id)
        if overlay is None:
            raise TransactionStateError(
                f"Transaction is not open: {transaction_id}"
            )
        return overlay

    def _visible(
        self, uri: str, transaction_id: Optional[str]
    ) -> Optional[StoredDocument]:
        overlay = self._overlay(transaction_id)
        if overlay is not None:
            if uri in overlay.deletes:
                return None
            if uri in overlay.writes:
                return overlay.writes[uri]
        return self._documents.get(uri)

    def _require(self, uri: str, transaction_id: Optional[str]) -> StoredDocument:
        document = self._visible(uri, transaction_id)
        if document is None:
            logger.debug(
                "MemoryDocumentService: Document not found",
                extra={"uri": uri, "transaction_id": transaction_id},
            )
            raise DocumentNotFoundError(uri)
        return document

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
        with self._lock:
            document = self._require(uri, transaction_id)

            content_stream = None
            if include_content:
                data = document.content
                if byte_range is not None and not byte_range.is_whole_document:
                    resolved = byte_range.resolve(len(data))
                    if resolved is None:
                        raise RangeNotSatisfiableError(
                            uri, byte_range.start, byte_range.length, len(data)
                        )
                    offset, length = resolved
                    data = data[offset : offset + length]
                content_stream = ContentStream.from_bytes(data)

            metadata_stream = None
            if metadata_categories is not None:
                metadata = document.metadata.restricted_to(metadata_categories)
                metadata_stream = ContentStream.from_bytes(
                    metadata.model_dump_json().encode("utf-8")
                )

        logger.info(
            "MemoryDocumentService: Document fetched",
            extra={
                "uri": uri,
                "transaction_id": transaction_id,
                "byte_range": byte_range.model_dump() if byte_range else None,
                "include_content": include_content,
                "with_metadata": metadata_stream is not None,
            },
        )

        return FetchResult(
            uri=uri,
            content=content_stream,
            metadata=metadata_stream,
            format=document.format,
            mime_type=document.mime_type,
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
        data = read_stream(content)
        metadata_json = read_stream(metadata)
        new_metadata = (
            DocumentMetadata.model_validate_json(metadata_json)
            if metadata_json
            else None
        )

        with self._lock:
            overlay = self._overlay(transaction_id)
            existing = self._visible(uri, transaction_id)

            if data is None:
                if existing is None:
                    raise DocumentNotFoundError(
                        uri, f"Cannot update metadata of missing document: {uri}"
                    )
                record = existing.model_copy(
                    update={
                        "metadata": new_metadata or existing.metadata,
                        "version": next(self._versions),
                    }
                )
            else:
                if new_metadata is None:
                    new_metadata = (
                        existing.metadata.model_copy(deep=True)
                        if existing is not None
                        else DocumentMetadata()
                    )
                record = StoredDocument(
                    uri=uri,
                    content=data,
                    format=format,
                    mime_type=mime_type,
                    metadata=new_metadata,
                    version=next(self._versions),
                )

            if overlay is not None:
                overlay.writes[uri] = record
                overlay.deletes.discard(uri)
            else:
                self._documents[uri] = record

        logger.info(
            "MemoryDocumentService: Document stored",
            extra={
                "uri": uri,
                "transaction_id": transaction_id,
                "format": record.format.value,
                "content_length": len(record.content),
                "metadata_only": data is None,
                "version": record.version,
            },
        )
        return record.describe()

    def delete(self, uri: str, *, transaction_id: Optional[str] = None) -> None:
        validate_uri(uri)
        with self._lock:
            self._require(uri, transaction_id)
            overlay = self._overlay(transaction_id)
            if overlay is not None:
                overlay.writes.pop(uri, None)
                overlay.deletes.add(uri)
            else:
                del self._documents[uri]

        logger.info(
            "MemoryDocumentService: Document deleted",
            extra={"uri": uri, "transaction_id": transaction_id},
        )

    def describe(
        self, uri: str, *, transaction_id: Optional[str] = None
    ) -> Optional[DocumentDescriptor]:
        validate_uri(uri)
        with self._lock:
            document = self._visible(uri, transaction_id)
            return document.describe() if document is not None else None

    def list_uris(self, *, transaction_id: Optional[str] = None) -> List[str]:
        with self._lock:
            uris = set(self._documents)
            overlay = self._overlay(transaction_id)
            if overlay is not None:
                uris |= set(overlay.writes)
                uris -= overlay.deletes
            return sorted(uris)

    def iter_searchable(
        self, transaction_id: Optional[str] = None
    ) -> Iterator[SearchableDocument]:
        with self._lock:
            documents = [
                self._require(uri, transaction_id)
                for uri in self.list_uris(transaction_id=transaction_id)
            ]
        for document in documents:
            yield SearchableDocument(
                uri=document.uri,
                format=document.format,
                mime_type=document.mime_type,
                content=document.content,
                collections=document.metadata.collections,
            )

    def open_transaction(self, name: Optional[str] = None) -> str:
        transaction_id = str(uuid.uuid4())
        with self._lock:
            self._transactions[transaction_id] = TransactionOverlay(
                transaction_id=transaction_id, name=name
            )
        logger.info(
            "MemoryDocumentService: Transaction opened",
            extra={"transaction_id": transaction_id, "name": name},
        )
        return transaction_id

    def commit(self, transaction_id: str) -> None:
        with self._lock:
            overlay = self._overlay(transaction_id)
            assert overlay is not None  # For MyPy
            for uri in overlay.deletes:
                self._documents.pop(uri, None)
            self._documents.update(overlay.writes)
            del self._transactions[transaction_id]

        logger.info(
            "MemoryDocumentService: Transaction committed",
            extra={
                "transaction_id": transaction_id,
                "writes": len(overlay.writes),
                "deletes": len(overlay.deletes),
            },
        )

    def rollback(self, transaction_id: str) -> None:
        with self._lock:
            overlay = self._overlay(transaction_id)
            assert overlay is not None  # For MyPy
            del self._transactions[transaction_id]

        logger.info(
            "MemoryDocumentService: Transaction rolled back",
            extra={
                "transaction_id": transaction_id,
                "discarded_writes": len(overlay.writes),
                "discarded_deletes": len(overlay.deletes),
            },
        )
