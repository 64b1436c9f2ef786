"""
Test factories for creating domain objects using factory_boy.

Design decisions documented:
- ContentStream wraps io.BytesIO for small test content
- Document URIs are absolute paths under /test/
- Metadata starts with one collection and no permissions
- Searchable documents default to JSON so they index by key
"""

import io
import json
from typing import Any

from factory.base import Factory
from factory.declarations import LazyAttribute, LazyFunction, Sequence
from factory.faker import Faker

from docstore.domain import (
    ContentStream,
    DocumentDescriptor,
    DocumentMetadata,
    Format,
    Permission,
)
from docstore.services.search import SearchableDocument


class ContentStreamFactory(Factory):
    class Meta:
        model = ContentStream

    @classmethod
    def _create(
        cls, model_class: type[ContentStream], **kwargs: Any
    ) -> ContentStream:
        content = kwargs.get("content", b"Test stream content")
        return model_class(io.BytesIO(content))

    @classmethod
    def _build(
        cls, model_class: type[ContentStream], **kwargs: Any
    ) -> ContentStream:
        content = kwargs.get("content", b"Test stream content")
        return model_class(io.BytesIO(content))


class PermissionFactory(Factory):
    class Meta:
        model = Permission

    role = Faker("word")
    capabilities = LazyFunction(lambda: {"read"})


class DocumentMetadataFactory(Factory):
    """Factory for DocumentMetadata with sensible test defaults."""

    class Meta:
        model = DocumentMetadata

    collections = LazyFunction(lambda: ["test-collection"])
    permissions: list[Permission] = []
    properties = LazyFunction(dict)
    quality = 0


class DocumentDescriptorFactory(Factory):
    class Meta:
        model = DocumentDescriptor

    uri = Sequence(lambda n: f"/test/doc-{n}.bin")
    format = Format.BINARY
    mime_type = LazyAttribute(lambda o: o.format.default_mime_type)
    byte_length = 42
    version = "1"


class SearchableDocumentFactory(Factory):
    class Meta:
        model = SearchableDocument

    uri = Sequence(lambda n: f"/test/doc-{n}.json")
    format = Format.JSON
    mime_type = LazyAttribute(lambda o: o.format.default_mime_type)
    content = LazyAttribute(
        lambda o: json.dumps({"title": o.title}).encode("utf-8")
    )
    collections = LazyFunction(list)

    class Params:
        title = Faker("sentence", nb_words=4)
