"""
Binary document manager.

Adds byte-range reads and the metadata extraction policy to the common
document operations. With ``MetadataExtraction.PROPERTIES`` the manager
records intrinsic properties of the content when writing and copies the
stored properties into the BytesHandle when reading, whether or not a
metadata handle was supplied.
"""

import logging
from typing import Dict, List, Optional

from docstore.domain import (
    ByteRange,
    Capability,
    DocumentMetadata,
    Format,
    MetadataCategory,
    MetadataExtraction,
    content_multihash,
    read_stream,
)
from docstore.handles import BaseHandle, BytesHandle, MetadataHandle
from docstore.services import DocumentService
from docstore.transaction import Transaction

from .document import AbstractDocumentManager

logger = logging.getLogger(__name__)

UNKNOWN_CONTENT_TYPE = "application/x-unknown-content-type"

CONTENT_LENGTH_PROPERTY = "content-length"
CONTENT_TYPE_PROPERTY = "content-type"
CONTENT_MULTIHASH_PROPERTY = "content-multihash"


def extract_properties(content: bytes, mime_type: str) -> Dict[str, str]:
    """Intrinsic properties of binary content."""
    return {
        CONTENT_LENGTH_PROPERTY: str(len(content)),
        CONTENT_TYPE_PROPERTY: mime_type,
        CONTENT_MULTIHASH_PROPERTY: content_multihash(content),
    }


class BinaryDocumentManager(AbstractDocumentManager):
    content_capability = Capability.BINARY
    default_format = Format.BINARY

    def __init__(self, service: DocumentService) -> None:
        super().__init__(service)
        self._metadata_extraction = MetadataExtraction.NONE

    @property
    def metadata_extraction(self) -> MetadataExtraction:
        return self._metadata_extraction

    @metadata_extraction.setter
    def metadata_extraction(self, policy: MetadataExtraction) -> None:
        self._metadata_extraction = MetadataExtraction(policy)
        logger.debug(
            "Metadata extraction policy changed",
            extra={"policy": self._metadata_extraction.value},
        )

    def read(  # type: ignore[override]
        self,
        uri: str,
        content_handle: BaseHandle,
        start: int = 0,
        length: int = 0,
        metadata_handle: Optional[MetadataHandle] = None,
        transaction: Optional[Transaction] = None,
    ) -> BaseHandle:
        """Read a document, or a byte range of it, into ``content_handle``.

        ``start`` is a 0-based byte offset and ``length`` a byte count,
        where 0 means "to the end". The defaults read the whole document.

        Raises:
            ValueError: If start or length is negative
            RangeNotSatisfiableError: If the range falls outside the
                document
            DocumentNotFoundError: If the document does not exist
        """
        if start < 0 or length < 0:
            raise ValueError(
                f"Byte range start and length cannot be negative "
                f"(start={start}, length={length})"
            )
        byte_range = ByteRange(start=start, length=length)
        if byte_range.is_whole_document:
            byte_range = None
        else:
            logger.info(
                "Reading range of binary content",
                extra={"uri": uri, "start": start, "length": length},
            )
        return self._read(
            uri, content_handle, metadata_handle, transaction, byte_range
        )

    def _read_categories(
        self, metadata_handle: Optional[MetadataHandle]
    ) -> Optional[List[MetadataCategory]]:
        categories = super()._read_categories(metadata_handle)
        if self._metadata_extraction is not MetadataExtraction.PROPERTIES:
            return categories
        if categories is None:
            return [MetadataCategory.PROPERTIES]
        if MetadataCategory.ALL in categories:
            return categories
        return [*categories, MetadataCategory.PROPERTIES]

    def _after_read(
        self,
        content_handle: BaseHandle,
        metadata_handle: Optional[MetadataHandle],
        metadata: Optional[bytes],
    ) -> None:
        if self._metadata_extraction is not MetadataExtraction.PROPERTIES:
            return
        if not isinstance(content_handle, BytesHandle) or not metadata:
            return
        properties = DocumentMetadata.model_validate_json(metadata).properties
        content_handle.properties = dict(properties)

    def _mime_type_of(self, content_handle: BaseHandle) -> str:
        if (
            content_handle.declared_mime_type is None
            and content_handle.format is Format.BINARY
        ):
            return UNKNOWN_CONTENT_TYPE
        return content_handle.mime_type

    def _metadata_to_store(
        self,
        uri: str,
        content_handle: BaseHandle,
        content: bytes,
        metadata_handle: Optional[MetadataHandle],
        transaction_id: Optional[str],
    ) -> Optional[bytes]:
        if self._metadata_extraction is not MetadataExtraction.PROPERTIES:
            return super()._metadata_to_store(
                uri, content_handle, content, metadata_handle, transaction_id
            )

        if metadata_handle is not None:
            metadata_handle.send()
            metadata = metadata_handle.get_or_create().model_copy(deep=True)
        else:
            metadata = self._stored_metadata(uri, transaction_id)
        metadata.properties.update(
            extract_properties(content, self._mime_type_of(content_handle))
        )
        logger.debug(
            "Extracted binary properties",
            extra={"uri": uri, "properties": metadata.properties},
        )
        return metadata.model_dump_json().encode("utf-8")

    def _stored_metadata(
        self, uri: str, transaction_id: Optional[str]
    ) -> DocumentMetadata:
        """Metadata the document already has, empty for a new document."""
        if self.service.describe(uri, transaction_id=transaction_id) is None:
            return DocumentMetadata()
        handle = MetadataHandle()
        result = self.service.fetch(
            uri,
            include_content=False,
            metadata_categories=[MetadataCategory.ALL],
            transaction_id=transaction_id,
        )
        handle.receive(read_stream(result.metadata))
        return handle.get_or_create()
