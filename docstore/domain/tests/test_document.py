"""
Tests for document-level value objects.
"""

import pytest
from pydantic import ValidationError

from docstore.domain import (
    ByteRange,
    ContentStream,
    DocumentDescriptor,
    Format,
    content_multihash,
    read_stream,
    validate_uri,
)

from .factories import ContentStreamFactory, DocumentDescriptorFactory


class TestValidateUri:
    @pytest.mark.parametrize("uri", ["/a.xml", "doc1", "/dir/sub/x y.json"])
    def test_accepts_usable_uris(self, uri: str) -> None:
        assert validate_uri(uri) == uri

    @pytest.mark.parametrize("uri", ["", "   ", "/a\nb", "/a\tb", "/a\rb"])
    def test_rejects_empty_or_control_characters(self, uri: str) -> None:
        with pytest.raises(ValueError):
            validate_uri(uri)


class TestByteRange:
    def test_default_is_whole_document(self) -> None:
        byte_range = ByteRange()
        assert byte_range.is_whole_document
        assert byte_range.resolve(10) == (0, 10)

    def test_whole_document_of_empty_content(self) -> None:
        assert ByteRange().resolve(0) == (0, 0)

    def test_start_and_length(self) -> None:
        assert ByteRange(start=10, length=5).resolve(20) == (10, 5)

    def test_zero_length_reads_to_end(self) -> None:
        assert ByteRange(start=4, length=0).resolve(10) == (4, 6)

    def test_zero_start_with_length(self) -> None:
        assert ByteRange(start=0, length=3).resolve(10) == (0, 3)

    def test_range_ending_exactly_at_end(self) -> None:
        assert ByteRange(start=5, length=5).resolve(10) == (5, 5)

    @pytest.mark.parametrize(
        "start,length", [(10, 0), (11, 1), (8, 3), (0, 11)]
    )
    def test_unsatisfiable_ranges(self, start: int, length: int) -> None:
        assert ByteRange(start=start, length=length).resolve(10) is None

    @pytest.mark.parametrize("start,length", [(-1, 0), (0, -1)])
    def test_negative_values_rejected(self, start: int, length: int) -> None:
        with pytest.raises(ValidationError):
            ByteRange(start=start, length=length)

    def test_is_frozen(self) -> None:
        byte_range = ByteRange(start=1, length=2)
        with pytest.raises(ValidationError):
            byte_range.start = 5  # type: ignore[misc]


class TestDocumentDescriptor:
    def test_factory_defaults(self) -> None:
        descriptor = DocumentDescriptorFactory.build()
        assert descriptor.format == Format.BINARY
        assert descriptor.mime_type == "application/octet-stream"

    def test_invalid_uri_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DocumentDescriptor(uri="")


class TestContentStream:
    def test_read_stream_drains_and_closes(self) -> None:
        stream = ContentStreamFactory.build(content=b"payload")
        assert read_stream(stream) == b"payload"
        assert stream.stream.closed

    def test_read_stream_of_none(self) -> None:
        assert read_stream(None) is None

    def test_rejects_non_stream(self) -> None:
        with pytest.raises(ValueError):
            ContentStream(b"bytes")  # type: ignore[arg-type]


class TestContentMultihash:
    def test_is_sha256_multihash_hex(self) -> None:
        digest = content_multihash(b"hello")
        # 0x12 = sha2-256, 0x20 = 32 byte digest
        assert digest.startswith("1220")
        assert len(digest) == 68

    def test_differs_for_different_content(self) -> None:
        assert content_multihash(b"a") != content_multihash(b"b")
