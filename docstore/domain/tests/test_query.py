"""
Tests for query definitions and search result models.
"""

import pytest
from pydantic import ValidationError

from docstore.domain import (
    AndQuery,
    DeleteQueryDefinition,
    ElementLocator,
    KeyLocator,
    KeyValueQueryDefinition,
    MatchDocumentSummary,
    QueryView,
    SearchResults,
    StringQueryDefinition,
    StructuredQueryBuilder,
    StructuredQueryDefinition,
    TermQuery,
    ValueQuery,
)


class TestQueryDefinition:
    def test_directory_gets_trailing_slash(self) -> None:
        definition = StringQueryDefinition(directory="/reports")
        assert definition.directory == "/reports/"

    def test_with_directory_normalizes(self) -> None:
        definition = StringQueryDefinition().with_directory("/a")
        assert definition.directory == "/a/"

    def test_empty_directory_rejected(self) -> None:
        with pytest.raises(ValidationError):
            StringQueryDefinition(directory=" ")

    def test_fluent_criteria_and_collections(self) -> None:
        definition = StringQueryDefinition().with_criteria("leaf")
        definition.with_collections("plants", "trees")
        assert definition.criteria == "leaf"
        assert definition.collections == ["plants", "trees"]


class TestKeyValueQueryDefinition:
    def test_put_replaces_same_locator(self) -> None:
        definition = KeyValueQueryDefinition()
        definition.put(KeyLocator(key="color"), "red")
        definition.put(KeyLocator(key="color"), "green")
        definition.put(ElementLocator(element="size"), 3)  # type: ignore[arg-type]
        assert definition.entries == [
            (KeyLocator(key="color"), "green"),
            (ElementLocator(element="size"), "3"),
        ]


class TestStructuredQueryBuilder:
    def test_builds_nested_tree(self) -> None:
        qb = StructuredQueryBuilder("opts")
        definition = qb.build(
            qb.and_query(
                qb.term("leaf"),
                qb.or_query(
                    qb.value(KeyLocator(key="color"), "green"),
                    qb.not_query(qb.collection("archive")),
                ),
            )
        )
        assert definition.options_name == "opts"
        assert isinstance(definition.query, AndQuery)
        assert isinstance(definition.query.queries[0], TermQuery)

    def test_round_trips_through_json(self) -> None:
        qb = StructuredQueryBuilder()
        definition = qb.build(
            qb.and_query(
                qb.value(ElementLocator(element="p", attribute="lang"), "en"),
                qb.directory("/docs", infinite=False),
            )
        )
        restored = StructuredQueryDefinition.model_validate_json(
            definition.model_dump_json()
        )
        assert restored == definition
        value_query = restored.query.queries[0]  # type: ignore[union-attr]
        assert isinstance(value_query, ValueQuery)
        assert isinstance(value_query.locator, ElementLocator)

    def test_directory_query_normalizes(self) -> None:
        query = StructuredQueryBuilder().directory("/a", "/b/")
        assert query.uris == ["/a/", "/b/"]


class TestDeleteQueryDefinition:
    def test_unconstrained_by_default(self) -> None:
        assert not DeleteQueryDefinition().is_constrained

    def test_constrained_by_collection_or_directory(self) -> None:
        assert DeleteQueryDefinition(collections=["c"]).is_constrained
        assert DeleteQueryDefinition(directory="/d").is_constrained


class TestSearchResults:
    def test_page_count(self) -> None:
        assert SearchResults(total=21, page_length=10).page_count == 3
        assert SearchResults(total=0).page_count == 0

    def test_first(self) -> None:
        results = SearchResults(
            total=2,
            results=[
                MatchDocumentSummary(uri="/a"),
                MatchDocumentSummary(uri="/b"),
            ],
        )
        first = results.first()
        assert first is not None
        assert first.uri == "/a"
        assert SearchResults().first() is None

    def test_start_is_one_based(self) -> None:
        with pytest.raises(ValidationError):
            SearchResults(start=0)


class TestQueryView:
    def test_facets_view_has_no_results(self) -> None:
        assert not QueryView.FACETS.includes_results
        assert QueryView.METADATA.includes_results
        assert not QueryView.METADATA.includes_snippets
        assert QueryView.DEFAULT.includes_snippets
