"""
Query definitions and search result models.

Query definitions are plain Pydantic models built by the QueryManager and
evaluated by the document service. Three families exist:

- StringQueryDefinition: free text with ``-term`` exclusions and
  ``"quoted phrases"``
- KeyValueQueryDefinition: every locator must hold its value
- StructuredQueryDefinition: a tree of term, value, and, or, not,
  collection and directory queries

All of them can be narrowed to collections and a directory. Deletes use
DeleteQueryDefinition, which only has those two constraints.
"""

from enum import Enum
from typing import List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .formats import Format

DEFAULT_PAGE_LENGTH = 10
START = 1


class QueryView(str, Enum):
    """How much of each match a search response carries."""

    DEFAULT = "default"
    RESULTS = "results"
    FACETS = "facets"
    METADATA = "metadata"
    ALL = "all"

    @property
    def includes_results(self) -> bool:
        return self is not QueryView.FACETS

    @property
    def includes_snippets(self) -> bool:
        return self in (QueryView.DEFAULT, QueryView.RESULTS, QueryView.ALL)


class ElementLocator(BaseModel):
    """Locates an XML element (or one of its attributes) by local name.

    Applied to JSON documents the element name is matched against
    property keys.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["element"] = "element"
    element: str
    attribute: Optional[str] = None


class KeyLocator(BaseModel):
    """Locates a JSON property (or an XML element) by key."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["key"] = "key"
    key: str


ValueLocator = Union[ElementLocator, KeyLocator]


def _normalize_directory(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    if not v.strip():
        raise ValueError("Directory cannot be empty")
    return v if v.endswith("/") else f"{v}/"


class QueryDefinition(BaseModel):
    """Constraints shared by every query."""

    options_name: Optional[str] = None
    collections: List[str] = Field(default_factory=list)
    directory: Optional[str] = None

    @field_validator("directory")
    @classmethod
    def directory_ends_with_slash(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_directory(v)

    def with_collections(self, *names: str) -> "QueryDefinition":
        self.collections = [*self.collections, *names]
        return self

    def with_directory(self, directory: str) -> "QueryDefinition":
        self.directory = _normalize_directory(directory)
        return self


class StringQueryDefinition(QueryDefinition):
    criteria: str = ""

    def with_criteria(self, criteria: str) -> "StringQueryDefinition":
        self.criteria = criteria
        return self


class KeyValueQueryDefinition(QueryDefinition):
    entries: List[Tuple[ValueLocator, str]] = Field(default_factory=list)

    def put(
        self, locator: ValueLocator, value: str
    ) -> "KeyValueQueryDefinition":
        self.entries = [
            (existing, v) for existing, v in self.entries if existing != locator
        ]
        self.entries.append((locator, str(value)))
        return self


class TermQuery(BaseModel):
    kind: Literal["term"] = "term"
    terms: List[str]


class ValueQuery(BaseModel):
    kind: Literal["value"] = "value"
    locator: ValueLocator = Field(discriminator="kind")
    values: List[str]


class AndQuery(BaseModel):
    kind: Literal["and"] = "and"
    queries: List["StructuredQuery"]


class OrQuery(BaseModel):
    kind: Literal["or"] = "or"
    queries: List["StructuredQuery"]


class NotQuery(BaseModel):
    kind: Literal["not"] = "not"
    query: "StructuredQuery"


class CollectionQuery(BaseModel):
    kind: Literal["collection"] = "collection"
    uris: List[str]


class DirectoryQuery(BaseModel):
    kind: Literal["directory"] = "directory"
    uris: List[str]
    infinite: bool = True

    @field_validator("uris")
    @classmethod
    def directories_end_with_slash(cls, v: List[str]) -> List[str]:
        return [_normalize_directory(u) or "" for u in v]


StructuredQuery = Union[
    TermQuery,
    ValueQuery,
    AndQuery,
    OrQuery,
    NotQuery,
    CollectionQuery,
    DirectoryQuery,
]

AndQuery.model_rebuild()
OrQuery.model_rebuild()
NotQuery.model_rebuild()


class StructuredQueryDefinition(QueryDefinition):
    query: StructuredQuery = Field(discriminator="kind")


class StructuredQueryBuilder:
    """Builds StructuredQueryDefinition trees.

    Example:
        >>> qb = StructuredQueryBuilder()
        >>> definition = qb.build(
        ...     qb.and_query(
        ...         qb.term("leaf"),
        ...         qb.value(KeyLocator(key="color"), "green"),
        ...     )
        ... )
    """

    def __init__(self, options_name: Optional[str] = None) -> None:
        self.options_name = options_name

    def term(self, *terms: str) -> TermQuery:
        return TermQuery(terms=list(terms))

    def value(self, locator: ValueLocator, *values: str) -> ValueQuery:
        return ValueQuery(locator=locator, values=[str(v) for v in values])

    def and_query(self, *queries: StructuredQuery) -> AndQuery:
        return AndQuery(queries=list(queries))

    def or_query(self, *queries: StructuredQuery) -> OrQuery:
        return OrQuery(queries=list(queries))

    def not_query(self, query: StructuredQuery) -> NotQuery:
        return NotQuery(query=query)

    def collection(self, *uris: str) -> CollectionQuery:
        return CollectionQuery(uris=list(uris))

    def directory(self, *uris: str, infinite: bool = True) -> DirectoryQuery:
        return DirectoryQuery(uris=list(uris), infinite=infinite)

    def build(self, query: StructuredQuery) -> StructuredQueryDefinition:
        return StructuredQueryDefinition(
            options_name=self.options_name, query=query
        )


class DeleteQueryDefinition(QueryDefinition):
    """Selects documents to delete by collection and/or directory.

    At least one constraint must be set before the delete runs, so an
    empty definition can never wipe the database.
    """

    @property
    def is_constrained(self) -> bool:
        return bool(self.collections) or self.directory is not None


class MatchDocumentSummary(BaseModel):
    uri: str
    score: float = 0.0
    confidence: float = 0.0
    format: Format = Format.UNKNOWN
    mime_type: str = Format.UNKNOWN.default_mime_type
    snippets: List[str] = Field(default_factory=list)


class SearchResults(BaseModel):
    total: int = Field(default=0, ge=0)
    start: int = Field(default=START, ge=1)
    page_length: int = Field(default=DEFAULT_PAGE_LENGTH, ge=1)
    view: QueryView = QueryView.DEFAULT
    results: List[MatchDocumentSummary] = Field(default_factory=list)

    @property
    def page_count(self) -> int:
        return -(-self.total // self.page_length)

    def first(self) -> Optional[MatchDocumentSummary]:
        return self.results[0] if self.results else None
