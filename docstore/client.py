"""
Database client.

The DatabaseClient is the session object callers start from: it owns one
document service, hands out document and query managers bound to it and
opens transactions on it. ``create_database_client`` builds the service
named by a ClientConfig.
"""

import logging
from typing import Optional

from docstore.config import Backend, ClientConfig
from docstore.domain import DEFAULT_PAGE_LENGTH
from docstore.errors import ConfigurationError
from docstore.managers import (
    BinaryDocumentManager,
    GenericDocumentManager,
    JSONDocumentManager,
    QueryManager,
    TextDocumentManager,
    XMLDocumentManager,
)
from docstore.services import (
    DocumentService,
    MemoryDocumentService,
    S3DocumentService,
)
from docstore.services.s3 import create_s3_client
from docstore.transaction import Transaction
from docstore.validation import ensure_service_protocol

logger = logging.getLogger(__name__)


class DatabaseClient:
    def __init__(
        self,
        service: DocumentService,
        page_length: int = DEFAULT_PAGE_LENGTH,
    ) -> None:
        self.service = ensure_service_protocol(service, DocumentService)
        self.page_length = page_length
        self._released = False

    def _require_active(self) -> None:
        if self._released:
            raise ConfigurationError("Database client has been released")

    def new_binary_document_manager(self) -> BinaryDocumentManager:
        self._require_active()
        return BinaryDocumentManager(self.service)

    def new_xml_document_manager(self) -> XMLDocumentManager:
        self._require_active()
        return XMLDocumentManager(self.service)

    def new_json_document_manager(self) -> JSONDocumentManager:
        self._require_active()
        return JSONDocumentManager(self.service)

    def new_text_document_manager(self) -> TextDocumentManager:
        self._require_active()
        return TextDocumentManager(self.service)

    def new_document_manager(self) -> GenericDocumentManager:
        self._require_active()
        return GenericDocumentManager(self.service)

    def new_query_manager(self) -> QueryManager:
        self._require_active()
        return QueryManager(self.service, page_length=self.page_length)

    def open_transaction(self, name: Optional[str] = None) -> Transaction:
        self._require_active()
        transaction_id = self.service.open_transaction(name)
        logger.debug(
            "Transaction opened",
            extra={"transaction_id": transaction_id, "name": name},
        )
        return Transaction(self.service, transaction_id, name)

    def release(self) -> None:
        """Stop handing out managers and transactions."""
        self._released = True
        logger.debug(
            "Database client released",
            extra={"service": type(self.service).__name__},
        )

    def __enter__(self) -> "DatabaseClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


def create_database_client(config: ClientConfig) -> DatabaseClient:
    """Create a DatabaseClient for the configured backend.

    Raises:
        ConfigurationError: If the backend cannot be built from the
            configuration
    """
    logger.debug(
        "Creating database client",
        extra={"backend": config.backend.value},
    )

    service: DocumentService
    if config.backend is Backend.MEMORY:
        service = MemoryDocumentService()
    elif config.backend is Backend.S3:
        if not config.s3_endpoint_url:
            raise ConfigurationError(
                "The s3 backend needs s3_endpoint_url (or MINIO_ENDPOINT)"
            )
        client = create_s3_client(
            config.s3_endpoint_url,
            config.s3_access_key,
            config.s3_secret_key,
            config.s3_region,
        )
        service = S3DocumentService(
            client,
            content_bucket=config.content_bucket,
            metadata_bucket=config.metadata_bucket,
        )
    else:
        raise ConfigurationError(f"Unsupported backend: {config.backend}")

    logger.info(
        "Database client created",
        extra={
            "backend": config.backend.value,
            "service": type(service).__name__,
        },
    )
    return DatabaseClient(service, page_length=config.page_length)
