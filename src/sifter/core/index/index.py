"""Index - factory for relations and bulk loaders bound to one index.

Subclass Index to customize how documents are serialized for bulk loading
or how hits are turned into results:

    >>> class ProductIndex(Index):
    ...     def serialize(self, product):
    ...         return {"id": product.id, "title": product.title, "price": product.price}
    ...
    ...     def build_result(self, hit):
    ...         return ProductHit.model_validate(hit)
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from sifter.core.bulk.bulk import BulkLoader, BulkOperation
from sifter.core.dto.bulk_dto import BulkResult
from sifter.core.query.compiler import NegationStrategy, resolve_negation
from sifter.core.relation.relation import Relation
from sifter.core.response.result import Hit
from sifter.core.transport.connection import Connection

logger = logging.getLogger(__name__)

#: Relation methods reachable directly on the index, e.g. ``index.where(...)``.
RELATION_METHODS: frozenset[str] = frozenset(
    {
        "where", "where_not", "filter", "filter_not", "should", "range", "exists",
        "exists_not", "search", "post_where", "post_where_not", "post_filter",
        "post_filter_not", "post_range", "post_exists", "post_exists_not", "aggregate",
        "sort", "offset", "limit", "paginate", "page", "per_page", "source", "highlight",
        "explain", "track_total_hits", "preference", "routing", "search_type", "scroll",
        "find_in_batches", "find_each", "execute", "first",
    }
)


class Index:
    """One backend index.

    Attributes:
        name: Index name.
        connection: Backend connection.
        negation: Strategy rendering must-not buckets.
        batch_size: Default bulk batch size.
        scroll_timeout: Default scroll keep-alive.
    """

    def __init__(
        self,
        name: str,
        connection: Connection,
        *,
        negation: str | NegationStrategy | None = "auto",
        batch_size: int = 1000,
        scroll_timeout: str = "1m",
    ):
        self.name = name
        self.connection = connection
        self.negation = resolve_negation(negation, connection.version_info)
        self.batch_size = batch_size
        self.scroll_timeout = scroll_timeout
        logger.debug("Index %s created (negation=%s)", name, self.negation.name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    def relation(self) -> Relation:
        """Return a new, empty Relation on this index."""
        return Relation(index=self, negation=self.negation)

    def __getattr__(self, name: str) -> Any:
        if name in RELATION_METHODS:
            return getattr(self.relation(), name)
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    @property
    def total_count(self) -> int:
        return self.relation().total_count

    # =========================================================================
    # HOOKS
    # =========================================================================

    def serialize(self, document: Any) -> Mapping[str, Any]:
        """Turn an application object into the document sent to the backend."""
        return document

    def id_of(self, document: Any) -> Any:
        """Read the document id; scalars are taken as ids themselves."""
        if isinstance(document, Mapping):
            return document.get("id", document.get("_id"))
        return getattr(document, "id", document)

    def build_result(self, hit: Mapping[str, Any]) -> Any:
        """Convert one raw hit into a result; called lazily, once per hit."""
        return Hit.model_validate(hit)

    # =========================================================================
    # BULK
    # =========================================================================

    def bulk(self, *, batch_size: int | None = None, **options: Any) -> BulkLoader:
        """Return a BulkLoader for this index (usable as a context manager)."""
        return BulkLoader(
            self.connection,
            self.name,
            batch_size=batch_size or self.batch_size,
            id_of=self.id_of,
            **options,
        )

    def import_(self, operations: Iterable[Any], **options: Any) -> BulkResult:
        """Load (action, document) pairs or BulkOperations in batches."""
        return self.bulk(**options).load(operations)

    def _load(self, action: str, documents: Iterable[Any], **options: Any) -> BulkResult:
        operations = (
            BulkOperation(action, self.serialize(document), self.id_of(document))
            for document in documents
        )
        return self.import_(operations, **options)

    def index_documents(self, documents: Iterable[Any], **options: Any) -> BulkResult:
        return self._load("index", documents, **options)

    def create_documents(self, documents: Iterable[Any], **options: Any) -> BulkResult:
        return self._load("create", documents, **options)

    def update_documents(self, documents: Iterable[Any], **options: Any) -> BulkResult:
        return self._load("update", documents, **options)

    def delete_documents(self, documents: Iterable[Any], **options: Any) -> BulkResult:
        operations = (BulkOperation("delete", None, self.id_of(doc)) for doc in documents)
        return self.import_(operations, **options)

    # =========================================================================
    # DOCUMENTS
    # =========================================================================

    def get(self, id: Any) -> Any:
        """Fetch one document by id and convert it like a search hit."""
        return self.build_result(self.connection.get(self.name, id))

    def count(self, relation: Relation | None = None) -> int:
        """Count the documents ``relation`` returns, without fetching hits.

        Pre- and post-filters both apply, and so do routing and the other
        query-string parameters of the relation.
        """
        if relation is None:
            return self.connection.count(self.name)
        return self.connection.count(
            self.name, {"query": relation.matching_query}, params=relation.params or None
        )

    def refresh(self) -> None:
        self.connection.refresh(self.name)


__all__ = ["Index", "RELATION_METHODS"]
