import pytest

from docstore.domain import ContentStream, DocumentMetadata, Format
from docstore.services import MemoryDocumentService


@pytest.fixture
def service() -> MemoryDocumentService:
    return MemoryDocumentService()


@pytest.fixture
def stored_document(service: MemoryDocumentService) -> str:
    """A 26 byte binary document in the "letters" collection."""
    uri = "/binary/letters.bin"
    service.store(
        uri,
        ContentStream.from_bytes(b"abcdefghijklmnopqrstuvwxyz"),
        format=Format.BINARY,
        mime_type="application/octet-stream",
        metadata=ContentStream.from_bytes(
            DocumentMetadata(collections=["letters"])
            .model_dump_json()
            .encode("utf-8")
        ),
    )
    return uri
