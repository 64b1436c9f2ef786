"""
Handles whose content is a Pydantic model serialized as JSON.

ModelHandle is the general form: any BaseModel subclass travels as its
JSON document. MetadataHandle and SearchHandle fix the model to document
metadata and search results and carry the capability tags the managers
look for.
"""

from typing import BinaryIO, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from docstore.domain import (
    Capability,
    DocumentMetadata,
    Format,
    SearchResults,
    capabilities,
)

from .base import StructuredHandle

M = TypeVar("M", bound=BaseModel)


class ModelHandle(StructuredHandle[M, TypeAdapter, TypeAdapter], Generic[M]):
    """Represents JSON content as an instance of a Pydantic model.

    Both the parser and the serializer are TypeAdapters for the model
    class. Bytes that are valid JSON but do not validate against the model
    are reported as a parse failure.
    """

    capabilities = capabilities(
        Capability.READ,
        Capability.WRITE,
        Capability.JSON,
        Capability.STRUCTURE,
    )
    supported_formats = frozenset({Format.JSON})
    default_format = Format.JSON
    parse_errors = (ValidationError, ValueError)

    def __init__(
        self,
        model_class: Type[M],
        content: Optional[M] = None,
        mime_type: Optional[str] = None,
    ) -> None:
        self.model_class = model_class
        super().__init__(content=content, mime_type=mime_type)

    def make_parser(self) -> TypeAdapter:
        return TypeAdapter(self.model_class)

    def make_serializer(self) -> TypeAdapter:
        return TypeAdapter(self.model_class)

    def _parse(self, data: bytes) -> M:
        return self.get_parser().validate_json(data)

    def _serialize(self, content: M, out: BinaryIO) -> None:
        out.write(self.get_serializer().dump_json(content))


class MetadataHandle(ModelHandle[DocumentMetadata]):
    """Carries document collections, permissions, properties and quality."""

    capabilities = capabilities(
        Capability.READ,
        Capability.WRITE,
        Capability.METADATA,
    )

    def __init__(self, content: Optional[DocumentMetadata] = None) -> None:
        super().__init__(DocumentMetadata, content=content)

    def get_or_create(self) -> DocumentMetadata:
        """Held metadata, starting an empty one if nothing is held."""
        if self._content is None:
            self._content = DocumentMetadata()
        return self._content


class SearchHandle(ModelHandle[SearchResults]):
    """Receives a page of search results."""

    capabilities = capabilities(Capability.READ, Capability.SEARCH)

    def __init__(self) -> None:
        super().__init__(SearchResults)

    @property
    def total(self) -> int:
        return self._content.total if self._content is not None else 0

    def match_uris(self) -> List[str]:
        if self._content is None:
            return []
        return [match.uri for match in self._content.results]
