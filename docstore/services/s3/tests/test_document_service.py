"""
Tests for S3DocumentService.

The service runs against FakeS3Client, which raises the same botocore
ClientError codes as a real MinIO server.
"""

from typing import Optional

import pytest

from docstore.domain import (
    ByteRange,
    ContentStream,
    DeleteQueryDefinition,
    DocumentMetadata,
    Format,
    MetadataCategory,
    QueryView,
    SearchResults,
    StringQueryDefinition,
    content_multihash,
    read_stream,
)
from docstore.errors import (
    DocumentNotFoundError,
    RangeNotSatisfiableError,
    TransactionStateError,
    TransportError,
)
from docstore.services import DocumentService
from docstore.services.s3 import S3Client, S3DocumentService

from .fake_client import FakeS3Client

CONTENT = "documents"
METADATA = "documents-metadata"


@pytest.fixture
def fake_client() -> FakeS3Client:
    """Create a fresh fake S3 client for each test."""
    return FakeS3Client(page_size=2)


@pytest.fixture
def service(fake_client: FakeS3Client) -> S3DocumentService:
    return S3DocumentService(fake_client)


def _store(
    service: S3DocumentService,
    uri: str,
    content: Optional[bytes],
    metadata: Optional[DocumentMetadata] = None,
    transaction_id: Optional[str] = None,
    format: Format = Format.BINARY,
) -> None:
    service.store(
        uri,
        ContentStream.from_bytes(content) if content is not None else None,
        format=format,
        mime_type=format.default_mime_type,
        metadata=(
            ContentStream.from_bytes(metadata.model_dump_json().encode())
            if metadata is not None
            else None
        ),
        transaction_id=transaction_id,
    )


def _content(service: S3DocumentService, uri: str, **kwargs) -> bytes:
    return read_stream(service.fetch(uri, **kwargs).content) or b""


def _metadata(service: S3DocumentService, uri: str, **kwargs) -> DocumentMetadata:
    result = service.fetch(
        uri,
        include_content=False,
        metadata_categories=[MetadataCategory.ALL],
        **kwargs,
    )
    return DocumentMetadata.model_validate_json(read_stream(result.metadata) or b"")


class TestS3DocumentServiceSetup:
    def test_fake_satisfies_client_protocol(self, fake_client: FakeS3Client) -> None:
        assert isinstance(fake_client, S3Client)

    def test_satisfies_protocol(self, service: S3DocumentService) -> None:
        assert isinstance(service, DocumentService)

    def test_creates_missing_buckets(
        self, service: S3DocumentService, fake_client: FakeS3Client
    ) -> None:
        created = [kw["Bucket"] for op, kw in fake_client.calls if op == "CreateBucket"]
        assert created == [CONTENT, METADATA]

    def test_existing_buckets_left_alone(self, fake_client: FakeS3Client) -> None:
        S3DocumentService(fake_client)
        fake_client.calls.clear()
        S3DocumentService(fake_client)
        assert not [op for op, _ in fake_client.calls if op == "CreateBucket"]

    def test_bucket_access_denied(self, fake_client: FakeS3Client) -> None:
        fake_client.fail("HeadBucket", "AccessDenied")
        with pytest.raises(TransportError):
            S3DocumentService(fake_client)


class TestS3DocumentServiceObjects:
    def test_store_and_fetch(
        self, service: S3DocumentService, fake_client: FakeS3Client
    ) -> None:
        _store(service, "/dir/a b.xml", b"<a/>", format=Format.XML)
        result = service.fetch("/dir/a b.xml")
        assert read_stream(result.content) == b"<a/>"
        assert result.format == Format.XML
        assert result.mime_type == "application/xml"
        assert fake_client.keys(CONTENT) == ["documents/%2Fdir%2Fa%20b.xml"]

    def test_content_object_carries_format_and_multihash(
        self, service: S3DocumentService, fake_client: FakeS3Client
    ) -> None:
        _store(service, "/a.bin", b"abc")
        put = [kw for op, kw in fake_client.calls if op == "PutObject"][0]
        assert put["Metadata"] == {
            "docstore-format": "binary",
            "docstore-multihash": content_multihash(b"abc"),
        }

    def test_fetch_missing(self, service: S3DocumentService) -> None:
        with pytest.raises(DocumentNotFoundError):
            service.fetch("/missing")

    def test_byte_range_sends_range_header(
        self, service: S3DocumentService, fake_client: FakeS3Client
    ) -> None:
        _store(service, "/a.bin", bytes(range(20)))
        content = _content(service, "/a.bin", byte_range=ByteRange(start=10, length=5))
        assert content == bytes(range(10, 15))
        get = [kw for op, kw in fake_client.calls if op == "GetObject"][-1]
        assert get["Range"] == "bytes=10-14"

    def test_open_ended_range(self, service: S3DocumentService) -> None:
        _store(service, "/a.bin", b"0123456789")
        assert _content(service, "/a.bin", byte_range=ByteRange(start=7)) == b"789"

    def test_whole_document_of_empty_content(
        self, service: S3DocumentService, fake_client: FakeS3Client
    ) -> None:
        _store(service, "/empty", b"")
        assert _content(service, "/empty", byte_range=ByteRange()) == b""
        get = [kw for op, kw in fake_client.calls if op == "GetObject"][-1]
        assert "Range" not in get

    def test_range_past_end_checked_before_request(
        self, service: S3DocumentService, fake_client: FakeS3Client
    ) -> None:
        _store(service, "/a.bin", b"short")
        fake_client.calls.clear()
        with pytest.raises(RangeNotSatisfiableError):
            service.fetch("/a.bin", byte_range=ByteRange(start=5, length=1))
        assert not [op for op, _ in fake_client.calls if op == "GetObject"]

    def test_server_invalid_range_mapped(
        self, service: S3DocumentService, fake_client: FakeS3Client
    ) -> None:
        _store(service, "/a.bin", b"0123456789")
        fake_client.fail("GetObject", "InvalidRange")
        with pytest.raises(RangeNotSatisfiableError) as excinfo:
            service.fetch("/a.bin", byte_range=ByteRange(start=2, length=2))
        assert excinfo.value.__cause__ is not None

    def test_other_errors_are_transport_errors(
        self, service: S3DocumentService, fake_client: FakeS3Client
    ) -> None:
        _store(service, "/a.bin", b"data")
        fake_client.fail("GetObject", "InternalError")
        with pytest.raises(TransportError) as excinfo:
            service.fetch("/a.bin")
        assert "InternalError" in str(excinfo.value.__cause__)

    def test_describe(self, service: S3DocumentService) -> None:
        _store(service, "/a.json", b"{}", format=Format.JSON)
        descriptor = service.describe("/a.json")
        assert descriptor is not None
        assert descriptor.format == Format.JSON
        assert descriptor.byte_length == 2
        assert descriptor.version
        assert service.describe("/other") is None

    def test_delete(self, service: S3DocumentService, fake_client: FakeS3Client) -> None:
        _store(service, "/a", b"1", DocumentMetadata(collections=["c"]))
        service.delete("/a")
        assert fake_client.keys(CONTENT) == []
        assert fake_client.keys(METADATA) == []
        with pytest.raises(DocumentNotFoundError):
            service.delete("/a")

    def test_list_uris_paginates(self, service: S3DocumentService) -> None:
        for uri in ["/c", "/a", "/b", "/d", "/e"]:
            _store(service, uri, b"x")
        assert service.list_uris() == ["/a", "/b", "/c", "/d", "/e"]


class TestS3DocumentServiceMetadata:
    def test_metadata_stored_separately(
        self, service: S3DocumentService, fake_client: FakeS3Client
    ) -> None:
        _store(service, "/a", b"1", DocumentMetadata(collections=["c"]))
        assert fake_client.keys(METADATA) == ["documents/%2Fa"]
        assert _metadata(service, "/a").collections == ["c"]

    def test_rewrite_without_metadata_keeps_it(self, service: S3DocumentService) -> None:
        _store(service, "/a", b"1", DocumentMetadata(quality=2))
        _store(service, "/a", b"2")
        assert _metadata(service, "/a").quality == 2

    def test_metadata_only_update(self, service: S3DocumentService) -> None:
        _store(service, "/a", b"content")
        _store(service, "/a", None, DocumentMetadata(properties={"k": "v"}))
        assert _content(service, "/a") == b"content"
        assert _metadata(service, "/a").properties == {"k": "v"}

    def test_metadata_only_update_of_missing(self, service: S3DocumentService) -> None:
        with pytest.raises(DocumentNotFoundError):
            _store(service, "/missing", None, DocumentMetadata())

    def test_restricted_categories(self, service: S3DocumentService) -> None:
        _store(service, "/a", b"1", DocumentMetadata(collections=["c"], quality=3))
        result = service.fetch("/a", metadata_categories=[MetadataCategory.QUALITY])
        metadata = DocumentMetadata.model_validate_json(read_stream(result.metadata) or b"")
        assert metadata == DocumentMetadata(quality=3)


class TestS3DocumentServiceTransactions:
    def test_staged_write_visible_only_in_transaction(
        self, service: S3DocumentService
    ) -> None:
        tx = service.open_transaction("load")
        _store(service, "/a", b"staged", transaction_id=tx)
        assert _content(service, "/a", transaction_id=tx) == b"staged"
        with pytest.raises(DocumentNotFoundError):
            service.fetch("/a")
        assert service.list_uris(transaction_id=tx) == ["/a"]
        assert service.list_uris() == []

    def test_commit_publishes_and_cleans_up(
        self, service: S3DocumentService, fake_client: FakeS3Client
    ) -> None:
        tx = service.open_transaction()
        _store(service, "/a", b"staged", DocumentMetadata(quality=1), transaction_id=tx)
        service.commit(tx)
        assert _content(service, "/a") == b"staged"
        assert _metadata(service, "/a").quality == 1
        assert fake_client.keys(CONTENT) == ["documents/%2Fa"]
        assert fake_client.keys(METADATA) == ["documents/%2Fa"]

    def test_rollback_discards(
        self, service: S3DocumentService, fake_client: FakeS3Client
    ) -> None:
        _store(service, "/a", b"committed")
        tx = service.open_transaction()
        _store(service, "/a", b"staged", transaction_id=tx)
        service.rollback(tx)
        assert _content(service, "/a") == b"committed"
        assert fake_client.keys(CONTENT) == ["documents/%2Fa"]

    def test_delete_hidden_in_transaction_until_commit(
        self, service: S3DocumentService
    ) -> None:
        _store(service, "/a", b"committed")
        tx = service.open_transaction()
        service.delete("/a", transaction_id=tx)
        with pytest.raises(DocumentNotFoundError):
            service.fetch("/a", transaction_id=tx)
        assert service.describe("/a", transaction_id=tx) is None
        assert _content(service, "/a") == b"committed"
        service.commit(tx)
        assert service.describe("/a") is None

    def test_write_after_delete_in_transaction(self, service: S3DocumentService) -> None:
        _store(service, "/a", b"old")
        tx = service.open_transaction()
        service.delete("/a", transaction_id=tx)
        _store(service, "/a", b"new", transaction_id=tx)
        service.commit(tx)
        assert _content(service, "/a") == b"new"

    def test_transaction_reads_committed_metadata(
        self, service: S3DocumentService
    ) -> None:
        _store(service, "/a", b"1", DocumentMetadata(collections=["c"]))
        tx = service.open_transaction()
        assert _metadata(service, "/a", transaction_id=tx).collections == ["c"]

    def test_finished_transaction_rejected(self, service: S3DocumentService) -> None:
        tx = service.open_transaction()
        service.rollback(tx)
        with pytest.raises(TransactionStateError):
            service.commit(tx)
        with pytest.raises(TransactionStateError):
            _store(service, "/a", b"x", transaction_id=tx)


class TestS3DocumentServiceSearch:
    def test_search_and_delete_by_query(self, service: S3DocumentService) -> None:
        _store(service, "/a.txt", b"green leaf", DocumentMetadata(collections=["plants"]), format=Format.TEXT)
        _store(service, "/b.txt", b"red leaf leaf", format=Format.TEXT)
        _store(service, "/c.bin", b"leaf")

        results = SearchResults.model_validate_json(
            service.search(
                StringQueryDefinition(criteria="leaf"),
                start=1,
                page_length=10,
                view=QueryView.RESULTS,
            )
        )
        assert [m.uri for m in results.results] == ["/b.txt", "/a.txt"]

        deleted = service.delete_by_query(DeleteQueryDefinition(collections=["plants"]))
        assert deleted == ["/a.txt"]
        assert service.list_uris() == ["/b.txt", "/c.bin"]
