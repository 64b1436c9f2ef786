"""
Query manager.

Builds query definitions, runs paged searches into a SearchHandle, deletes
the documents a query selects and finds the single best match. Searches
run through the same DocumentService as document managers and honour the
same transaction scoping.
"""

import logging
from typing import Optional

from docstore.domain import (
    DEFAULT_PAGE_LENGTH,
    START,
    Capability,
    DeleteQueryDefinition,
    ElementLocator,
    KeyLocator,
    KeyValueQueryDefinition,
    MatchDocumentSummary,
    QueryDefinition,
    QueryView,
    SearchResults,
    StringQueryDefinition,
    StructuredQueryBuilder,
)
from docstore.handles import BaseHandle, SearchHandle
from docstore.services import DocumentService
from docstore.transaction import Transaction, transaction_id_of
from docstore.validation import ensure_service_protocol

from .request_logger import RequestLoggingMixin

logger = logging.getLogger(__name__)


class QueryManager(RequestLoggingMixin):
    def __init__(
        self,
        service: DocumentService,
        page_length: int = DEFAULT_PAGE_LENGTH,
        view: QueryView = QueryView.DEFAULT,
    ) -> None:
        self.service = ensure_service_protocol(service, DocumentService)
        self._page_length = DEFAULT_PAGE_LENGTH
        self.page_length = page_length
        self.view = QueryView(view)

    @property
    def page_length(self) -> int:
        return self._page_length

    @page_length.setter
    def page_length(self, length: int) -> None:
        if length < 1:
            raise ValueError(f"Page length must be positive, got {length}")
        self._page_length = length

    # Definition factories

    def new_string_definition(
        self, options_name: Optional[str] = None
    ) -> StringQueryDefinition:
        return StringQueryDefinition(options_name=options_name)

    def new_key_value_definition(
        self, options_name: Optional[str] = None
    ) -> KeyValueQueryDefinition:
        return KeyValueQueryDefinition(options_name=options_name)

    def new_structured_query_builder(
        self, options_name: Optional[str] = None
    ) -> StructuredQueryBuilder:
        return StructuredQueryBuilder(options_name)

    def new_delete_definition(self) -> DeleteQueryDefinition:
        return DeleteQueryDefinition()

    def new_element_locator(
        self, element: str, attribute: Optional[str] = None
    ) -> ElementLocator:
        return ElementLocator(element=element, attribute=attribute)

    def new_key_locator(self, key: str) -> KeyLocator:
        return KeyLocator(key=key)

    # Operations

    def search(
        self,
        query: QueryDefinition,
        search_handle: BaseHandle,
        start: int = START,
        transaction: Optional[Transaction] = None,
    ) -> BaseHandle:
        """Fill ``search_handle`` with one page of matches.

        Args:
            query: Query definition to evaluate
            search_handle: Handle with READ and SEARCH capabilities
            start: 1-based position of the first match on the page
            transaction: Optional open transaction to search within

        Returns:
            The same search handle, now holding SearchResults
        """
        search_handle.require_capabilities(Capability.READ, Capability.SEARCH)
        if start < 1:
            raise ValueError(f"Search start is 1-based, got {start}")
        transaction_id = transaction_id_of(transaction)

        self._log_request(
            "search",
            query=type(query).__name__,
            start=start,
            page_length=self._page_length,
            view=self.view.value,
            transaction=transaction_id,
        )
        response = self.service.search(
            query,
            start=start,
            page_length=self._page_length,
            view=self.view,
            transaction_id=transaction_id,
        )
        self._log_content(response)
        search_handle.receive(response)
        logger.debug(
            "Search completed",
            extra={
                "query_type": type(query).__name__,
                "start": start,
                "transaction_id": transaction_id,
            },
        )
        return search_handle

    def delete(
        self,
        delete_query: DeleteQueryDefinition,
        transaction: Optional[Transaction] = None,
    ) -> int:
        """Delete every document the definition selects.

        Raises:
            ValueError: If the definition has neither a collection nor a
                directory constraint

        Returns:
            Number of documents deleted
        """
        if not delete_query.is_constrained:
            raise ValueError(
                "Delete query needs a collection or directory constraint"
            )
        transaction_id = transaction_id_of(transaction)
        self._log_request(
            "delete-query",
            collections=",".join(delete_query.collections) or None,
            directory=delete_query.directory,
            transaction=transaction_id,
        )
        deleted = self.service.delete_by_query(
            delete_query, transaction_id=transaction_id
        )
        logger.info(
            "Documents deleted by query",
            extra={"deleted": len(deleted), "transaction_id": transaction_id},
        )
        return len(deleted)

    def find_one(
        self,
        query: QueryDefinition,
        transaction: Optional[Transaction] = None,
    ) -> Optional[MatchDocumentSummary]:
        """Best match for the query, or None when nothing matches."""
        transaction_id = transaction_id_of(transaction)
        self._log_request(
            "find-one", query=type(query).__name__, transaction=transaction_id
        )
        response = self.service.search(
            query,
            start=START,
            page_length=1,
            view=QueryView.RESULTS,
            transaction_id=transaction_id,
        )
        handle = SearchHandle()
        handle.receive(response)
        results: Optional[SearchResults] = handle.get()
        return results.first() if results is not None else None
