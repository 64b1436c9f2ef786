"""
Query evaluation shared by document services.

Services that cannot push a query down to their storage scan every visible
document instead: ScanningSearchMixin asks the service for searchable
documents, indexes each one (words, element / property values, attribute
values), scores it against the query definition and pages the sorted
matches.

Scoring is the number of term and value hits. Constraint-only queries
(collections, directories, negations) match with a score of zero. Matches
sort by descending score, then ascending URI.
"""

import json
import logging
import re
import xml.etree.ElementTree as ET
from collections import defaultdict
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, Field

from docstore.domain import (
    AndQuery,
    CollectionQuery,
    DirectoryQuery,
    ElementLocator,
    Format,
    KeyValueQueryDefinition,
    MatchDocumentSummary,
    NotQuery,
    OrQuery,
    QueryDefinition,
    QueryView,
    SearchResults,
    StringQueryDefinition,
    StructuredQuery,
    StructuredQueryDefinition,
    TermQuery,
    ValueLocator,
    ValueQuery,
)

logger = logging.getLogger(__name__)

_WORD = re.compile(r"\w+", re.UNICODE)
_CRITERIA_TOKEN = re.compile(r'(-)?(?:"([^"]*)"|(\S+))')
_SNIPPET_CONTEXT = 5


class SearchableDocument(BaseModel):
    """Everything a scan needs to know about one stored document."""

    uri: str
    format: Format = Format.UNKNOWN
    mime_type: str = Format.UNKNOWN.default_mime_type
    content: bytes = b""
    collections: List[str] = Field(default_factory=list)


def tokenize(text: str) -> List[str]:
    return [word.casefold() for word in _WORD.findall(text)]


def parse_criteria(criteria: str) -> Tuple[List[str], List[str]]:
    """Split string query criteria into included and excluded phrases."""
    included: List[str] = []
    excluded: List[str] = []
    for match in _CRITERIA_TOKEN.finditer(criteria):
        negated, quoted, bare = match.groups()
        phrase = quoted if quoted is not None else bare
        if not phrase or not tokenize(phrase):
            continue
        (excluded if negated else included).append(phrase)
    return included, excluded


class IndexedDocument:
    """Words and located values of one document."""

    def __init__(self, document: SearchableDocument) -> None:
        self.uri = document.uri
        self.format = document.format
        self.mime_type = document.mime_type
        self.collections = set(document.collections)
        self.text = ""
        self.values: Dict[str, List[str]] = defaultdict(list)
        self.attributes: Dict[Tuple[str, str], List[str]] = defaultdict(list)
        self._index(document)
        self.words = tokenize(self.text)

    def _index(self, document: SearchableDocument) -> None:
        if document.format is Format.BINARY or not document.content:
            return
        text = document.content.decode("utf-8", errors="replace")
        if document.format is Format.XML:
            try:
                self._index_xml(ET.fromstring(document.content))
                return
            except ET.ParseError:
                logger.warning(
                    "Stored XML document is not well formed, "
                    "indexing as text",
                    extra={"uri": document.uri},
                )
        elif document.format is Format.JSON:
            try:
                self._index_json(json.loads(text))
                return
            except ValueError:
                logger.warning(
                    "Stored JSON document is not valid, indexing as text",
                    extra={"uri": document.uri},
                )
        self.text = text

    def _index_xml(self, root: ET.Element) -> None:
        self.text = " ".join(root.itertext())
        for element in root.iter():
            if not isinstance(element.tag, str):
                continue
            name = _local_name(element.tag)
            self.values[name].append("".join(element.itertext()).strip())
            for attribute, value in element.attrib.items():
                self.attributes[(name, _local_name(attribute))].append(value)

    def _index_json(self, value: Any) -> None:
        scalars: List[str] = []

        def walk(node: Any, key: Optional[str]) -> None:
            if isinstance(node, dict):
                for child_key, child in node.items():
                    walk(child, child_key)
            elif isinstance(node, list):
                for child in node:
                    walk(child, key)
            elif node is not None:
                scalar = _json_scalar(node)
                scalars.append(scalar)
                if key is not None:
                    self.values[key].append(scalar)

        walk(value, None)
        self.text = " ".join(scalars)

    def phrase_hits(self, phrase: str) -> int:
        wanted = tokenize(phrase)
        if not wanted:
            return 0
        width = len(wanted)
        return sum(
            1
            for i in range(len(self.words) - width + 1)
            if self.words[i : i + width] == wanted
        )

    def first_phrase_position(self, phrase: str) -> Optional[int]:
        wanted = tokenize(phrase)
        width = len(wanted)
        for i in range(len(self.words) - width + 1):
            if wanted and self.words[i : i + width] == wanted:
                return i
        return None

    def located_values(self, locator: ValueLocator) -> List[str]:
        if isinstance(locator, ElementLocator):
            if locator.attribute is not None:
                return self.attributes.get(
                    (locator.element, locator.attribute), []
                )
            return self.values.get(locator.element, [])
        return self.values.get(locator.key, [])

    def value_hits(self, locator: ValueLocator, value: str) -> int:
        wanted = value.strip().casefold()
        return sum(
            1
            for candidate in self.located_values(locator)
            if candidate.strip().casefold() == wanted
        )

    def in_directory(self, directory: str, infinite: bool = True) -> bool:
        if not self.uri.startswith(directory):
            return False
        return infinite or "/" not in self.uri[len(directory) :]

    def snippet(self, phrases: List[str]) -> Optional[str]:
        if not self.words:
            return None
        for phrase in phrases:
            position = self.first_phrase_position(phrase)
            if position is not None:
                width = len(tokenize(phrase))
                begin = max(0, position - _SNIPPET_CONTEXT)
                end = min(len(self.words), position + width + _SNIPPET_CONTEXT)
                break
        else:
            begin, end = 0, min(len(self.words), 2 * _SNIPPET_CONTEXT)
        text = " ".join(self.words[begin:end])
        prefix = "..." if begin > 0 else ""
        suffix = "..." if end < len(self.words) else ""
        return f"{prefix}{text}{suffix}"


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _json_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def evaluate(definition: QueryDefinition, doc: IndexedDocument) -> Optional[float]:
    """Score a document against a definition; None means no match."""
    if definition.collections and not doc.collections.intersection(
        definition.collections
    ):
        return None
    if definition.directory is not None and not doc.in_directory(
        definition.directory
    ):
        return None

    if isinstance(definition, StringQueryDefinition):
        included, excluded = parse_criteria(definition.criteria)
        if any(doc.phrase_hits(phrase) for phrase in excluded):
            return None
        score = 0
        for phrase in included:
            hits = doc.phrase_hits(phrase)
            if not hits:
                return None
            score += hits
        return float(score)

    if isinstance(definition, KeyValueQueryDefinition):
        score = 0
        for locator, value in definition.entries:
            hits = doc.value_hits(locator, value)
            if not hits:
                return None
            score += hits
        return float(score)

    if isinstance(definition, StructuredQueryDefinition):
        return evaluate_structured(definition.query, doc)

    return 0.0


def evaluate_structured(
    query: StructuredQuery, doc: IndexedDocument
) -> Optional[float]:
    if isinstance(query, TermQuery):
        hits = sum(doc.phrase_hits(term) for term in query.terms)
        return float(hits) if hits else None
    if isinstance(query, ValueQuery):
        hits = sum(doc.value_hits(query.locator, v) for v in query.values)
        return float(hits) if hits else None
    if isinstance(query, AndQuery):
        total = 0.0
        for child in query.queries:
            score = evaluate_structured(child, doc)
            if score is None:
                return None
            total += score
        return total
    if isinstance(query, OrQuery):
        scores = [evaluate_structured(child, doc) for child in query.queries]
        matched = [score for score in scores if score is not None]
        return sum(matched) if matched else None
    if isinstance(query, NotQuery):
        return 0.0 if evaluate_structured(query.query, doc) is None else None
    if isinstance(query, CollectionQuery):
        return 0.0 if doc.collections.intersection(query.uris) else None
    if isinstance(query, DirectoryQuery):
        if any(doc.in_directory(d, query.infinite) for d in query.uris):
            return 0.0
        return None
    raise TypeError(f"Unsupported structured query: {type(query).__name__}")


def highlight_phrases(definition: QueryDefinition) -> List[str]:
    """Phrases worth centring a snippet on."""
    if isinstance(definition, StringQueryDefinition):
        return parse_criteria(definition.criteria)[0]
    if isinstance(definition, StructuredQueryDefinition):
        return _structured_terms(definition.query)
    return []


def _structured_terms(query: StructuredQuery) -> List[str]:
    if isinstance(query, TermQuery):
        return list(query.terms)
    if isinstance(query, (AndQuery, OrQuery)):
        return [t for child in query.queries for t in _structured_terms(child)]
    return []


class ScanningSearchMixin:
    """Search and delete-by-query for services that scan their documents.

    Classes using this mixin must provide ``iter_searchable`` yielding a
    SearchableDocument for every document visible to the transaction.
    """

    def iter_searchable(
        self, transaction_id: Optional[str] = None
    ) -> Iterator[SearchableDocument]:
        raise NotImplementedError

    def _scored_matches(
        self, query: QueryDefinition, transaction_id: Optional[str]
    ) -> List[Tuple[float, IndexedDocument]]:
        matches: List[Tuple[float, IndexedDocument]] = []
        for document in self.iter_searchable(transaction_id):
            indexed = IndexedDocument(document)
            score = evaluate(query, indexed)
            if score is not None:
                matches.append((score, indexed))
        matches.sort(key=lambda match: (-match[0], match[1].uri))
        return matches

    def matching_uris(
        self, query: QueryDefinition, transaction_id: Optional[str] = None
    ) -> List[str]:
        return [doc.uri for _, doc in self._scored_matches(query, transaction_id)]

    def delete_by_query(
        self, query: QueryDefinition, *, transaction_id: Optional[str] = None
    ) -> List[str]:
        uris = sorted(self.matching_uris(query, transaction_id))
        for uri in uris:
            self.delete(uri, transaction_id=transaction_id)  # type: ignore[attr-defined]
        logger.info(
            "Deleted documents matching query",
            extra={
                "query_type": type(query).__name__,
                "deleted": len(uris),
                "transaction_id": transaction_id,
            },
        )
        return uris

    def search(
        self,
        query: QueryDefinition,
        *,
        start: int,
        page_length: int,
        view: QueryView,
        transaction_id: Optional[str] = None,
    ) -> bytes:
        if start < 1:
            raise ValueError(f"Search start is 1-based, got {start}")
        if page_length < 1:
            raise ValueError(f"Page length must be positive, got {page_length}")

        matches = self._scored_matches(query, transaction_id)
        top_score = matches[0][0] if matches else 0.0
        phrases = highlight_phrases(query)

        results: List[MatchDocumentSummary] = []
        if view.includes_results:
            for score, doc in matches[start - 1 : start - 1 + page_length]:
                snippet = doc.snippet(phrases) if view.includes_snippets else None
                results.append(
                    MatchDocumentSummary(
                        uri=doc.uri,
                        score=score,
                        confidence=score / top_score if top_score else 1.0,
                        format=doc.format,
                        mime_type=doc.mime_type,
                        snippets=[snippet] if snippet else [],
                    )
                )

        logger.debug(
            "Search evaluated",
            extra={
                "query_type": type(query).__name__,
                "total": len(matches),
                "start": start,
                "page_length": page_length,
                "returned": len(results),
            },
        )

        return (
            SearchResults(
                total=len(matches),
                start=start,
                page_length=page_length,
                view=view,
                results=results,
            )
            .model_dump_json()
            .encode("utf-8")
        )
