"""
Tests for RequestLogger and request logging on managers.
"""

import io

import pytest

from docstore.handles import BytesHandle, SearchHandle
from docstore.managers import BinaryDocumentManager, QueryManager, RequestLogger
from docstore.managers.request_logger import ALL_CONTENT, NO_CONTENT
from docstore.domain import StringQueryDefinition
from docstore.services import MemoryDocumentService


class TestRequestLogger:
    def test_request_line_skips_unset_details(self) -> None:
        out = io.StringIO()
        RequestLogger(out).log_request("read", uri="/a", transaction=None)
        assert out.getvalue() == "read uri=/a\n"

    def test_no_content_by_default(self) -> None:
        out = io.StringIO()
        RequestLogger(out).copy_content(b"secret")
        assert out.getvalue() == ""

    def test_all_content(self) -> None:
        out = io.StringIO()
        RequestLogger(out, content_max=ALL_CONTENT).copy_content(b"whole body")
        assert out.getvalue() == "whole body\n"

    def test_bounded_preview(self) -> None:
        out = io.StringIO()
        RequestLogger(out, content_max=4).copy_content(b"abcdefgh")
        assert out.getvalue() == "abcd... (8 bytes)\n"

    def test_invalid_content_max(self) -> None:
        with pytest.raises(ValueError):
            RequestLogger(io.StringIO(), content_max=-2)


class TestManagerRequestLogging:
    def test_manager_requests_logged(self) -> None:
        out = io.StringIO()
        manager = BinaryDocumentManager(MemoryDocumentService())
        manager.start_logging(RequestLogger(out, content_max=3))

        manager.write("/a.bin", BytesHandle(b"abcdef"))
        manager.read("/a.bin", BytesHandle(), start=1, length=2)

        lines = out.getvalue().splitlines()
        assert lines[0].startswith("write uri=/a.bin")
        assert lines[1] == "abc... (6 bytes)"
        assert lines[2] == "read uri=/a.bin range=1+2"
        assert lines[3] == "bc"

    def test_stop_logging(self) -> None:
        out = io.StringIO()
        manager = QueryManager(MemoryDocumentService())
        manager.start_logging(RequestLogger(out, content_max=NO_CONTENT))
        manager.search(StringQueryDefinition(criteria="x"), SearchHandle())
        manager.stop_logging()
        manager.search(StringQueryDefinition(criteria="y"), SearchHandle())

        lines = out.getvalue().splitlines()
        assert len(lines) == 1
        assert lines[0].startswith("search query=StringQueryDefinition")
