"""
Domain layer for docstore.

This package contains the value objects that flow between handles,
document managers and document services: formats and capability tags,
content streams, document metadata, byte ranges and descriptors, and query
definitions with their search results.
"""

from .custom_fields import ContentStream, read_stream
from .document import (
    ByteRange,
    DocumentDescriptor,
    FetchResult,
    content_multihash,
    validate_uri,
)
from .formats import CONTENT_CAPABILITY, Capability, Format, capabilities
from .metadata import (
    DocumentMetadata,
    MetadataCategory,
    MetadataExtraction,
    Permission,
)
from .query import (
    DEFAULT_PAGE_LENGTH,
    START,
    AndQuery,
    CollectionQuery,
    DeleteQueryDefinition,
    DirectoryQuery,
    ElementLocator,
    KeyLocator,
    KeyValueQueryDefinition,
    MatchDocumentSummary,
    NotQuery,
    OrQuery,
    QueryDefinition,
    QueryView,
    SearchResults,
    StringQueryDefinition,
    StructuredQuery,
    StructuredQueryBuilder,
    StructuredQueryDefinition,
    TermQuery,
    ValueLocator,
    ValueQuery,
)

__all__ = [
    "AndQuery",
    "ByteRange",
    "CONTENT_CAPABILITY",
    "Capability",
    "CollectionQuery",
    "ContentStream",
    "DEFAULT_PAGE_LENGTH",
    "DeleteQueryDefinition",
    "DirectoryQuery",
    "DocumentDescriptor",
    "DocumentMetadata",
    "ElementLocator",
    "FetchResult",
    "Format",
    "KeyLocator",
    "KeyValueQueryDefinition",
    "MatchDocumentSummary",
    "MetadataCategory",
    "MetadataExtraction",
    "NotQuery",
    "OrQuery",
    "Permission",
    "QueryDefinition",
    "QueryView",
    "START",
    "SearchResults",
    "StringQueryDefinition",
    "StructuredQuery",
    "StructuredQueryBuilder",
    "StructuredQueryDefinition",
    "TermQuery",
    "ValueLocator",
    "ValueQuery",
    "capabilities",
    "content_multihash",
    "read_stream",
    "validate_uri",
]
