"""
Document service interface defined as a Protocol.

The document service is the transport collaborator behind every manager:
it moves bytes to and from the store, scopes work to transactions and runs
searches. Managers and handles never see storage specifics; services never
see handles.

All service operations follow these principles:

- **Streams in, streams out**: content and metadata cross the boundary as
  ContentStream objects (or raw bytes for search responses). Metadata
  streams carry the JSON form of DocumentMetadata.

- **Distinct failures**: a missing document raises DocumentNotFoundError,
  an unsatisfiable byte range raises RangeNotSatisfiableError, and any
  other storage failure raises TransportError chained to its cause. None
  of these are retried here.

- **Transaction scoping**: when a transaction id is supplied, reads see the
  transaction's uncommitted writes and do not see documents it deleted.
  Without one, operations run against the latest committed state.
"""

from typing import List, Optional, Protocol, Sequence, runtime_checkable

from docstore.domain import (
    ByteRange,
    ContentStream,
    DocumentDescriptor,
    FetchResult,
    Format,
    MetadataCategory,
    QueryDefinition,
    QueryView,
)


@runtime_checkable
class DocumentService(Protocol):
    """Transport for document reads, writes, searches and transactions."""

    def fetch(
        self,
        uri: str,
        *,
        byte_range: Optional[ByteRange] = None,
        include_content: bool = True,
        metadata_categories: Optional[Sequence[MetadataCategory]] = None,
        transaction_id: Optional[str] = None,
    ) -> FetchResult:
        """Read content and/or metadata of a document.

        Args:
            uri: Document URI
            byte_range: Sub-range of the content to return; None for all
            include_content: False to read metadata only
            metadata_categories: Metadata parts to return; None for no
                metadata stream
            transaction_id: Transaction whose view to read

        Returns:
            FetchResult with the requested streams

        Raises:
            DocumentNotFoundError: If the document does not exist in the
                requested view
            RangeNotSatisfiableError: If the byte range falls outside the
                content
            TransportError: For any other storage failure
        """
        ...

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
        """Create or replace a document.

        When ``metadata`` is None the document keeps its existing metadata
        (or gets empty metadata if it is new). When ``content`` is None only
        the metadata of an existing document is replaced.

        Raises:
            DocumentNotFoundError: For a metadata-only update of a missing
                document
            TransportError: For any other storage failure
        """
        ...

    def delete(self, uri: str, *, transaction_id: Optional[str] = None) -> None:
        """Remove a document.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        ...

    def describe(
        self, uri: str, *, transaction_id: Optional[str] = None
    ) -> Optional[DocumentDescriptor]:
        """Describe a document, or return None if it does not exist."""
        ...

    def list_uris(self, *, transaction_id: Optional[str] = None) -> List[str]:
        """Sorted URIs of every visible document."""
        ...

    def search(
        self,
        query: QueryDefinition,
        *,
        start: int,
        page_length: int,
        view: QueryView,
        transaction_id: Optional[str] = None,
    ) -> bytes:
        """Run a query and return one page of SearchResults as JSON."""
        ...

    def delete_by_query(
        self, query: QueryDefinition, *, transaction_id: Optional[str] = None
    ) -> List[str]:
        """Delete every document the query matches and return their URIs."""
        ...

    def open_transaction(self, name: Optional[str] = None) -> str:
        """Open a transaction and return its id."""
        ...

    def commit(self, transaction_id: str) -> None:
        """Publish the transaction's writes and deletes.

        Raises:
            TransactionStateError: If the transaction is not open
        """
        ...

    def rollback(self, transaction_id: str) -> None:
        """Discard the transaction's writes and deletes.

        Raises:
            TransactionStateError: If the transaction is not open
        """
        ...
