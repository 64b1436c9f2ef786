"""
Document manager base class.

A document manager is the facade callers use to read and write documents
of one content type. It never touches storage itself: it checks that the
supplied handles carry the capabilities the operation needs, delegates
the transfer to its document service, and moves bytes between the service
and the handles.

All manager operations follow these principles:

- **Same handle back**: ``read`` returns the content handle it was given,
  now populated, so calls can be chained.

- **Fail before transport**: capability checks, URI validation and the
  content handle's ``send()`` all run before the service is called, so a
  HandleCapabilityError or ContentStateError means nothing was sent.

- **No masking**: DocumentNotFoundError, RangeNotSatisfiableError and
  TransportError from the service propagate untouched.

- **No implicit transactions**: a transaction is only used when the
  caller passes one.
"""

import io
import logging
from typing import List, Optional, Sequence

from docstore.domain import (
    ByteRange,
    Capability,
    ContentStream,
    DocumentDescriptor,
    Format,
    MetadataCategory,
    read_stream,
    validate_uri,
)
from docstore.handles import BaseHandle, MetadataHandle
from docstore.services import DocumentService
from docstore.transaction import Transaction, transaction_id_of
from docstore.validation import ensure_service_protocol

from .request_logger import RequestLoggingMixin

logger = logging.getLogger(__name__)


class AbstractDocumentManager(RequestLoggingMixin):
    """Read, write and delete documents through a DocumentService.

    Subclasses set ``content_capability`` to the capability tag a content
    handle must carry (None accepts any readable / writable handle) and
    ``default_format`` to the format stored for handles that do not say.
    """

    content_capability: Optional[Capability] = None
    default_format: Format = Format.UNKNOWN

    def __init__(self, service: DocumentService) -> None:
        self.service = ensure_service_protocol(service, DocumentService)
        self._metadata_categories: List[MetadataCategory] = [
            MetadataCategory.ALL
        ]
        logger.debug(
            "Document manager created",
            extra={
                "manager": type(self).__name__,
                "service": type(self.service).__name__,
            },
        )

    @property
    def metadata_categories(self) -> List[MetadataCategory]:
        return list(self._metadata_categories)

    @metadata_categories.setter
    def metadata_categories(self, categories: Sequence[MetadataCategory]) -> None:
        if not categories:
            raise ValueError("At least one metadata category is required")
        self._metadata_categories = [MetadataCategory(c) for c in categories]

    def set_metadata_categories(self, *categories: MetadataCategory) -> None:
        self.metadata_categories = list(categories)

    # Capability checks

    def _require_content_handle(
        self, handle: BaseHandle, direction: Capability
    ) -> None:
        required = [direction]
        if self.content_capability is not None:
            required.append(self.content_capability)
        handle.require_capabilities(*required)

    @staticmethod
    def _require_metadata_handle(
        handle: BaseHandle, direction: Capability
    ) -> None:
        handle.require_capabilities(direction, Capability.METADATA)

    # Reads

    def read(
        self,
        uri: str,
        content_handle: BaseHandle,
        metadata_handle: Optional[MetadataHandle] = None,
        transaction: Optional[Transaction] = None,
    ) -> BaseHandle:
        """Read a document into ``content_handle`` and return that handle.

        Args:
            uri: Document URI
            content_handle: Handle receiving the content
            metadata_handle: Optional handle receiving the metadata
                categories selected by ``metadata_categories``
            transaction: Optional open transaction to read within

        Raises:
            HandleCapabilityError: If a handle cannot be used for reading
            DocumentNotFoundError: If the document does not exist
            TransportError: For storage failures
        """
        return self._read(uri, content_handle, metadata_handle, transaction)

    def _read(
        self,
        uri: str,
        content_handle: BaseHandle,
        metadata_handle: Optional[MetadataHandle],
        transaction: Optional[Transaction],
        byte_range: Optional[ByteRange] = None,
    ) -> BaseHandle:
        validate_uri(uri)
        self._require_content_handle(content_handle, Capability.READ)
        if metadata_handle is not None:
            self._require_metadata_handle(metadata_handle, Capability.READ)
        transaction_id = transaction_id_of(transaction)
        categories = self._read_categories(metadata_handle)

        self._log_request(
            "read",
            uri=uri,
            transaction=transaction_id,
            range=(
                f"{byte_range.start}+{byte_range.length}" if byte_range else None
            ),
        )
        result = self.service.fetch(
            uri,
            byte_range=byte_range,
            metadata_categories=categories,
            transaction_id=transaction_id,
        )
        content = read_stream(result.content)
        metadata = read_stream(result.metadata)
        self._log_content(content)

        # Parse both parts before touching either handle.
        received_metadata = MetadataHandle()
        received_metadata.receive(metadata)
        content_handle.receive(content)
        if result.format in content_handle.supported_formats:
            content_handle.set_format(result.format)
            content_handle.mime_type = result.mime_type
        if metadata_handle is not None and received_metadata.get() is not None:
            metadata_handle.set(received_metadata.get())
        self._after_read(content_handle, metadata_handle, metadata)

        logger.debug(
            "Document read",
            extra={
                "manager": type(self).__name__,
                "uri": uri,
                "transaction_id": transaction_id,
                "content_length": len(content) if content is not None else 0,
                "with_metadata": metadata is not None,
            },
        )
        return content_handle

    def _read_categories(
        self, metadata_handle: Optional[MetadataHandle]
    ) -> Optional[List[MetadataCategory]]:
        """Metadata categories to fetch alongside content, if any."""
        if metadata_handle is None:
            return None
        return self.metadata_categories

    def _after_read(
        self,
        content_handle: BaseHandle,
        metadata_handle: Optional[MetadataHandle],
        metadata: Optional[bytes],
    ) -> None:
        pass

    def read_metadata(
        self,
        uri: str,
        metadata_handle: MetadataHandle,
        transaction: Optional[Transaction] = None,
    ) -> MetadataHandle:
        """Read only the metadata of a document."""
        validate_uri(uri)
        self._require_metadata_handle(metadata_handle, Capability.READ)
        transaction_id = transaction_id_of(transaction)
        self._log_request("read-metadata", uri=uri, transaction=transaction_id)
        result = self.service.fetch(
            uri,
            include_content=False,
            metadata_categories=self.metadata_categories,
            transaction_id=transaction_id,
        )
        metadata = read_stream(result.metadata)
        self._log_content(metadata)
        metadata_handle.receive(metadata)
        return metadata_handle

    # Writes

    def write(
        self,
        uri: str,
        content_handle: BaseHandle,
        metadata_handle: Optional[MetadataHandle] = None,
        transaction: Optional[Transaction] = None,
    ) -> DocumentDescriptor:
        """Create or replace a document from ``content_handle``.

        Without a metadata handle an existing document keeps its metadata.

        Raises:
            HandleCapabilityError: If a handle cannot be used for writing
            ContentStateError: If a handle holds no content; nothing is
                sent to the service
            TransportError: For storage failures
        """
        validate_uri(uri)
        self._require_content_handle(content_handle, Capability.WRITE)
        if metadata_handle is not None:
            self._require_metadata_handle(metadata_handle, Capability.WRITE)
        transaction_id = transaction_id_of(transaction)

        buffer = io.BytesIO()
        content_handle.send().write(buffer)
        content = buffer.getvalue()
        metadata = self._metadata_to_store(
            uri, content_handle, content, metadata_handle, transaction_id
        )

        self._log_request(
            "write",
            uri=uri,
            transaction=transaction_id,
            format=content_handle.format.value,
            mime_type=content_handle.mime_type,
        )
        self._log_content(content)
        descriptor = self.service.store(
            uri,
            ContentStream.from_bytes(content),
            format=self._format_of(content_handle),
            mime_type=self._mime_type_of(content_handle),
            metadata=(
                ContentStream.from_bytes(metadata) if metadata is not None else None
            ),
            transaction_id=transaction_id,
        )
        logger.debug(
            "Document written",
            extra={
                "manager": type(self).__name__,
                "uri": uri,
                "transaction_id": transaction_id,
                "content_length": len(content),
            },
        )
        return descriptor

    def _mime_type_of(self, content_handle: BaseHandle) -> str:
        return content_handle.mime_type

    def _format_of(self, content_handle: BaseHandle) -> Format:
        if content_handle.format is Format.UNKNOWN:
            return self.default_format
        return content_handle.format

    def _metadata_to_store(
        self,
        uri: str,
        content_handle: BaseHandle,
        content: bytes,
        metadata_handle: Optional[MetadataHandle],
        transaction_id: Optional[str],
    ) -> Optional[bytes]:
        """Serialized metadata to store with the content, if any."""
        if metadata_handle is None:
            return None
        return metadata_handle.to_bytes()

    def write_metadata(
        self,
        uri: str,
        metadata_handle: MetadataHandle,
        transaction: Optional[Transaction] = None,
    ) -> DocumentDescriptor:
        """Replace the metadata of an existing document."""
        validate_uri(uri)
        self._require_metadata_handle(metadata_handle, Capability.WRITE)
        transaction_id = transaction_id_of(transaction)
        metadata = metadata_handle.to_bytes()
        self._log_request("write-metadata", uri=uri, transaction=transaction_id)
        self._log_content(metadata)
        return self.service.store(
            uri,
            None,
            format=self.default_format,
            mime_type=self.default_format.default_mime_type,
            metadata=ContentStream.from_bytes(metadata),
            transaction_id=transaction_id,
        )

    # Other operations

    def delete(self, uri: str, transaction: Optional[Transaction] = None) -> None:
        validate_uri(uri)
        transaction_id = transaction_id_of(transaction)
        self._log_request("delete", uri=uri, transaction=transaction_id)
        self.service.delete(uri, transaction_id=transaction_id)

    def exists(
        self, uri: str, transaction: Optional[Transaction] = None
    ) -> Optional[DocumentDescriptor]:
        """Descriptor of the document, or None when it does not exist."""
        validate_uri(uri)
        transaction_id = transaction_id_of(transaction)
        self._log_request("exists", uri=uri, transaction=transaction_id)
        return self.service.describe(uri, transaction_id=transaction_id)
