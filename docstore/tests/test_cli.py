"""
Tests for the docstore CLI.

The CLI runs against a memory-backed client injected through the click
context object, so no configuration or object store is needed.
"""

from pathlib import Path
from typing import Any, Dict, List

import pytest
from click.testing import CliRunner, Result

from docstore import DatabaseClient, MemoryDocumentService
from docstore.cli.main import cli
from docstore.handles import MetadataHandle


@pytest.fixture
def client() -> DatabaseClient:
    return DatabaseClient(MemoryDocumentService())


def _invoke(client: DatabaseClient, args: List[str]) -> Result:
    obj: Dict[str, Any] = {"client": client}
    return CliRunner().invoke(cli, args, obj=obj)


class TestPutAndGet:
    def test_put_binary(self, client: DatabaseClient, tmp_path: Path) -> None:
        source = tmp_path / "logo.png"
        source.write_bytes(b"\x89PNG\r\n")

        result = _invoke(
            client,
            ["put", "/img/logo.png", str(source), "--mime-type", "image/png"],
        )

        assert result.exit_code == 0
        assert "Stored /img/logo.png (6 bytes, image/png)" in result.output

    def test_put_with_format_and_collections(
        self, client: DatabaseClient, tmp_path: Path
    ) -> None:
        source = tmp_path / "fern.json"
        source.write_text('{"name": "fern"}')

        result = _invoke(
            client,
            [
                "put", "/plants/fern.json", str(source),
                "--format", "json",
                "--collection", "plants",
                "--collection", "green",
            ],
        )

        assert result.exit_code == 0
        metadata = client.new_json_document_manager().read_metadata(
            "/plants/fern.json", MetadataHandle()
        )
        assert metadata.get_or_create().collections == ["plants", "green"]

    def test_get_to_stdout(self, client: DatabaseClient, tmp_path: Path) -> None:
        source = tmp_path / "a.txt"
        source.write_text("hello world")
        _invoke(client, ["put", "/a.txt", str(source), "--format", "text"])

        result = _invoke(client, ["get", "/a.txt"])

        assert result.exit_code == 0
        assert result.output == "hello world"

    def test_get_range_to_file(self, client: DatabaseClient, tmp_path: Path) -> None:
        source = tmp_path / "letters.bin"
        source.write_bytes(b"abcdefghijklmnopqrstuvwxyz")
        _invoke(client, ["put", "/letters.bin", str(source)])
        target = tmp_path / "out.bin"

        result = _invoke(
            client,
            ["get", "/letters.bin", "--start", "10", "--length", "5",
             "--output", str(target)],
        )

        assert result.exit_code == 0
        assert "Wrote 5 bytes" in result.output
        assert target.read_bytes() == b"klmno"

    def test_get_missing_document(self, client: DatabaseClient) -> None:
        result = _invoke(client, ["get", "/missing"])
        assert result.exit_code == 1
        assert "Fetch failed" in result.output

    def test_get_range_not_satisfiable(
        self, client: DatabaseClient, tmp_path: Path
    ) -> None:
        source = tmp_path / "a.bin"
        source.write_bytes(b"abc")
        _invoke(client, ["put", "/a.bin", str(source)])

        result = _invoke(client, ["get", "/a.bin", "--start", "5"])

        assert result.exit_code == 1

    def test_put_missing_file(self, client: DatabaseClient, tmp_path: Path) -> None:
        result = _invoke(client, ["put", "/a", str(tmp_path / "absent")])
        assert result.exit_code == 2


class TestDeleteAndSearch:
    def test_delete(self, client: DatabaseClient, tmp_path: Path) -> None:
        source = tmp_path / "a.bin"
        source.write_bytes(b"abc")
        _invoke(client, ["put", "/a.bin", str(source)])

        result = _invoke(client, ["delete", "/a.bin"])

        assert result.exit_code == 0
        assert "Deleted /a.bin" in result.output
        assert _invoke(client, ["delete", "/a.bin"]).exit_code == 1

    def test_search(self, client: DatabaseClient, tmp_path: Path) -> None:
        for name, text in [("one", "moss"), ("two", "moss moss"), ("three", "rock")]:
            source = tmp_path / f"{name}.txt"
            source.write_text(text)
            _invoke(
                client,
                ["put", f"/notes/{name}.txt", str(source), "--format", "text"],
            )

        result = _invoke(client, ["search", "moss", "--directory", "/notes"])

        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0] == "2 match(es)"
        assert lines[1] == "2\t/notes/two.txt"
        assert "/notes/one.txt" in lines[3]

    def test_search_invalid_page_length(self, client: DatabaseClient) -> None:
        result = _invoke(client, ["search", "moss", "--page-length", "0"])
        assert result.exit_code == 1
        assert "Search failed" in result.output


def test_configuration_error(tmp_path: Path) -> None:
    config = tmp_path / "config.yaml"
    config.write_text("backend: s3\n")

    result = CliRunner().invoke(
        cli, ["--config", str(config), "delete", "/a"], obj={}, env={"MINIO_ENDPOINT": ""}
    )

    assert result.exit_code == 1
    assert "Configuration error" in result.output
