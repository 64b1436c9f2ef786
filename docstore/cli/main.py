"""
CLI for storing, fetching, deleting and searching documents.

The backend is chosen by configuration: a YAML file given with --config,
otherwise DOCSTORE_* / MINIO_* environment variables.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from docstore.client import DatabaseClient, create_database_client
from docstore.config import ClientConfig
from docstore.domain import DocumentMetadata, Format
from docstore.errors import DocstoreError
from docstore.handles import BytesHandle, MetadataHandle, SearchHandle

logger = logging.getLogger(__name__)

FORMAT_CHOICES = [f.value for f in Format if f is not Format.UNKNOWN]


def _fail(message: str) -> None:
    click.echo(message, err=True)
    sys.exit(1)


def _client(ctx: click.Context) -> DatabaseClient:
    if ctx.obj is None:
        ctx.obj = {}
    client = ctx.obj.get("client")
    if client is None:
        config_path: Optional[str] = ctx.obj.get("config_path")
        try:
            config = (
                ClientConfig.from_yaml(config_path)
                if config_path
                else ClientConfig.from_env()
            )
            config.configure_logging()
            client = create_database_client(config)
        except DocstoreError as e:
            logger.error(f"Cannot create client: {e}", exc_info=True)
            _fail(f"Configuration error: {e}")
        ctx.obj["client"] = client
    return client


@click.group()
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="YAML configuration file (defaults to environment variables)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str]) -> None:
    """Store and query documents."""
    ctx.ensure_object(dict)
    ctx.obj.setdefault("config_path", config_path)


@cli.command()
@click.argument("uri")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format",
    "format_name",
    type=click.Choice(FORMAT_CHOICES),
    default=Format.BINARY.value,
    show_default=True,
    help="Format to store the document as",
)
@click.option("--mime-type", default=None, help="Explicit mime type")
@click.option(
    "--collection",
    "collections",
    multiple=True,
    help="Collection to add the document to (repeatable)",
)
@click.pass_context
def put(
    ctx: click.Context,
    uri: str,
    file: str,
    format_name: str,
    mime_type: Optional[str],
    collections: Tuple[str, ...],
) -> None:
    """Store FILE as document URI."""
    client = _client(ctx)
    handle = BytesHandle(
        Path(file).read_bytes(), format=Format(format_name), mime_type=mime_type
    )
    metadata_handle = None
    if collections:
        metadata_handle = MetadataHandle(
            DocumentMetadata(collections=list(collections))
        )
    manager = (
        client.new_binary_document_manager()
        if handle.format is Format.BINARY
        else client.new_document_manager()
    )
    try:
        descriptor = manager.write(uri, handle, metadata_handle)
    except DocstoreError as e:
        logger.error(f"Store failed: {e}", exc_info=True)
        _fail(f"Store failed: {e}")
        return
    click.echo(
        f"Stored {descriptor.uri} ({descriptor.byte_length} bytes, "
        f"{descriptor.mime_type})"
    )


@cli.command()
@click.argument("uri")
@click.option("--start", default=0, show_default=True, help="Byte offset")
@click.option(
    "--length", default=0, show_default=True, help="Byte count, 0 for all"
)
@click.option(
    "--output",
    default=None,
    type=click.Path(dir_okay=False, writable=True),
    help="File to write to (defaults to stdout)",
)
@click.pass_context
def get(
    ctx: click.Context,
    uri: str,
    start: int,
    length: int,
    output: Optional[str],
) -> None:
    """Fetch document URI, or a byte range of it."""
    client = _client(ctx)
    manager = client.new_binary_document_manager()
    try:
        handle = manager.read(uri, BytesHandle(), start=start, length=length)
    except (DocstoreError, ValueError) as e:
        _fail(f"Fetch failed: {e}")
        return
    content = handle.get() or b""
    if output:
        Path(output).write_bytes(content)
        click.echo(f"Wrote {len(content)} bytes to {output}")
    else:
        click.echo(content, nl=False)


@cli.command()
@click.argument("uri")
@click.pass_context
def delete(ctx: click.Context, uri: str) -> None:
    """Delete document URI."""
    client = _client(ctx)
    try:
        client.new_document_manager().delete(uri)
    except DocstoreError as e:
        _fail(f"Delete failed: {e}")
        return
    click.echo(f"Deleted {uri}")


@cli.command()
@click.argument("criteria")
@click.option("--start", default=1, show_default=True, help="1-based start")
@click.option("--page-length", default=None, type=int, help="Matches per page")
@click.option("--collection", "collections", multiple=True)
@click.option("--directory", default=None)
@click.pass_context
def search(
    ctx: click.Context,
    criteria: str,
    start: int,
    page_length: Optional[int],
    collections: Tuple[str, ...],
    directory: Optional[str],
) -> None:
    """Run a string query and list matching URIs."""
    client = _client(ctx)
    query_manager = client.new_query_manager()
    try:
        if page_length is not None:
            query_manager.page_length = page_length
        definition = query_manager.new_string_definition().with_criteria(criteria)
        if collections:
            definition.with_collections(*collections)
        if directory:
            definition.with_directory(directory)
        handle = query_manager.search(definition, SearchHandle(), start=start)
    except (DocstoreError, ValueError) as e:
        _fail(f"Search failed: {e}")
        return

    results = handle.get()
    click.echo(f"{handle.total} match(es)")
    if results is None:
        return
    for match in results.results:
        click.echo(f"{match.score:g}\t{match.uri}")
        for snippet in match.snippets:
            click.echo(f"\t{snippet}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
