"""Relation - immutable accumulated search request.

A Relation collects pre-filters, post-filters, aggregations, sort and
pagination state. Every chainable method returns a new Relation that shares
the unchanged fields with its receiver; nothing is ever mutated.

Terminal operations (execute, iteration, total_count, scroll) compile the
state into one request body:

    {
      "query":        {"bool": {"must": [...], "must_not": [...]}},
      "post_filter":  {"bool": {"must": [...], "must_not": [...]}},
      "aggregations": {...},
      "sort": [...], "from": offset, "size": limit
    }

Aggregations only see the query; returned hits see the query AND the
post filter.

The response of ``execute()`` is memoized on the Relation value that ran it.
Deriving a new Relation never carries the cached response forward: the
derivative starts unexecuted.
"""

import logging
from collections.abc import Iterator, Mapping, Sequence
from copy import deepcopy
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Self

from sifter.core.exceptions import MalformedQuery
from sifter.core.query.clauses import Clause
from sifter.core.query.compiler import MustNotNegation, NegationStrategy
from sifter.core.relation.aggregatable import AggregatableMixin, deep_merge
from sifter.core.relation.filterable import FilterableMixin
from sifter.core.relation.post_filterable import PostFilterableMixin
from sifter.core.response.response import Response

if TYPE_CHECKING:
    from sifter.core.index.index import Index

logger = logging.getLogger(__name__)

DEFAULT_PER_PAGE = 30

#: Axes unscope() can reset, mapped to the fields holding them.
SCOPES: dict[str, tuple[str, ...]] = {
    "where": ("must_values", "must_not_values", "should_values"),
    "post_where": ("post_must_values", "post_must_not_values"),
    "aggregate": ("aggregation_values",),
    "sort": ("sort_values",),
    "offset": ("offset_value",),
    "limit": ("limit_value",),
    "source": ("source_value",),
    "highlight": ("highlight_value",),
}

#: Relation fields sent as query-string parameters instead of body keys.
PARAMS: dict[str, str] = {
    "preference_value": "preference",
    "routing_value": "routing",
    "search_type_value": "search_type",
}


def _empty_mapping() -> MappingProxyType:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class Relation(FilterableMixin, PostFilterableMixin, AggregatableMixin):
    """Immutable, chainable search request bound to an Index.

    Relations are created by an Index, e.g. ``index.where(...)`` or
    ``index.relation()``.

    Example:
        >>> relation = (
        ...     products.where(category="books")
        ...     .where_not(price=0)
        ...     .post_where(category=["new-arrivals"])
        ...     .aggregate("by_price", {"terms": {"field": "price"}})
        ...     .sort({"price": "asc"})
        ...     .paginate(page=2, per_page=20)
        ... )
        >>> for result in relation:
        ...     print(result.id, result["title"])
        >>> relation.total_count
    """

    index: "Index"
    negation: NegationStrategy = field(default_factory=MustNotNegation)
    must_values: tuple[Clause, ...] = ()
    must_not_values: tuple[Clause, ...] = ()
    should_values: tuple[Clause, ...] = ()
    post_must_values: tuple[Clause, ...] = ()
    post_must_not_values: tuple[Clause, ...] = ()
    aggregation_values: MappingProxyType = field(default_factory=_empty_mapping)
    sort_values: tuple[Any, ...] = ()
    offset_value: int | None = None
    limit_value: int | None = None
    source_value: Any = None
    highlight_value: MappingProxyType | None = None
    explain_value: bool | None = None
    track_total_hits_value: bool | int | None = None
    preference_value: str | None = None
    routing_value: str | None = None
    search_type_value: str | None = None
    _response: Response | None = field(default=None, init=False, repr=False, compare=False)

    def _derive(self, **changes: Any) -> Self:
        return replace(self, **changes)

    # =========================================================================
    # SORT / PAGINATION / OPTIONS (last writer wins)
    # =========================================================================

    def sort(self, *specs: str | Mapping[str, Any] | Sequence[Any]) -> Self:
        """Replace the sort specification.

        Each spec is a field name, a ``{field: order}`` mapping or a list of
        these, e.g. ``sort({"price": "asc"}, "_score")``.
        """
        values: list[Any] = []
        for spec in specs:
            if isinstance(spec, list | tuple):
                values.extend(_sort_entry(entry) for entry in spec)
            else:
                values.append(_sort_entry(spec))
        return self._derive(sort_values=tuple(values))

    resort = sort

    def unsort(self) -> Self:
        return self._derive(sort_values=())

    def offset(self, value: int) -> Self:
        return self._derive(offset_value=_non_negative("offset", value))

    def limit(self, value: int) -> Self:
        return self._derive(limit_value=_non_negative("limit", value))

    def paginate(self, page: int = 1, per_page: int | None = None) -> Self:
        """Set offset and limit from a 1-based page number."""
        per_page = _non_negative("per_page", per_page or self.limit_value or DEFAULT_PER_PAGE)
        page = max(int(page), 1)
        return self._derive(offset_value=(page - 1) * per_page, limit_value=per_page)

    def page(self, value: int) -> Self:
        return self.paginate(page=value, per_page=self.limit_value)

    def per_page(self, value: int) -> Self:
        return self.limit(value)

    def source(self, value: bool | str | Sequence[str] | Mapping[str, Any]) -> Self:
        """Restrict the returned ``_source`` fields."""
        if isinstance(value, Mapping):
            value = MappingProxyType(dict(value))
        elif isinstance(value, list | tuple):
            value = tuple(value)
        return self._derive(source_value=value)

    def highlight(self, fields: str | Sequence[str] | Mapping[str, Any], **options: Any) -> Self:
        """Request highlighting; repeated calls deep-merge."""
        if isinstance(fields, str):
            fields = [fields]
        if isinstance(fields, Mapping):
            fields_spec = dict(fields)
        else:
            fields_spec = {name: {} for name in fields}
        merged = deep_merge(self.highlight_value or {}, {"fields": fields_spec, **options})
        return self._derive(highlight_value=MappingProxyType(merged))

    def explain(self, value: bool = True) -> Self:
        return self._derive(explain_value=value)

    def track_total_hits(self, value: bool | int = True) -> Self:
        return self._derive(track_total_hits_value=value)

    def preference(self, value: str) -> Self:
        return self._derive(preference_value=value)

    def routing(self, value: str) -> Self:
        return self._derive(routing_value=value)

    def search_type(self, value: str) -> Self:
        return self._derive(search_type_value=value)

    # =========================================================================
    # COMPOSITION
    # =========================================================================

    def unscope(self, *scopes: str) -> Self:
        """Drop the named axes, e.g. ``unscope("sort", "post_where")``."""
        changes: dict[str, Any] = {}
        for scope in scopes:
            if scope not in SCOPES:
                raise MalformedQuery(
                    f"Unknown scope '{scope}'. Known scopes: {', '.join(SCOPES)}"
                )
            for name in SCOPES[scope]:
                changes[name] = Relation.__dataclass_fields__[name].default
        if "aggregation_values" in changes:
            changes["aggregation_values"] = _empty_mapping()
        return self._derive(**changes)

    def merge(self, other: "Relation") -> Self:
        """Combine with another relation on the same index.

        Filter buckets concatenate, aggregations deep-merge and every other
        axis takes ``other``'s value when it has one.
        """
        if other.index is not self.index:
            raise MalformedQuery("Cannot merge relations of different indices")

        aggregations = dict(self.aggregation_values)
        for name, spec in other.aggregation_values.items():
            aggregations[name] = deep_merge(aggregations.get(name, {}), spec)

        changes: dict[str, Any] = {
            "must_values": self.must_values + other.must_values,
            "must_not_values": self.must_not_values + other.must_not_values,
            "should_values": self.should_values + other.should_values,
            "post_must_values": self.post_must_values + other.post_must_values,
            "post_must_not_values": self.post_must_not_values + other.post_must_not_values,
            "aggregation_values": MappingProxyType(aggregations),
        }
        if other.sort_values:
            changes["sort_values"] = other.sort_values
        for name in (
            "offset_value",
            "limit_value",
            "source_value",
            "highlight_value",
            "explain_value",
            "track_total_hits_value",
            *PARAMS,
        ):
            if getattr(other, name) is not None:
                changes[name] = getattr(other, name)
        return self._derive(**changes)

    # =========================================================================
    # COMPILATION
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Compile the accumulated state into a search request body."""
        body: dict[str, Any] = {
            "query": self.negation.query(self.must_values, self.must_not_values, self.should_values)
        }

        post_filter = self.negation.render(self.post_must_values, self.post_must_not_values)
        if post_filter is not None:
            body["post_filter"] = post_filter

        if self.aggregation_values:
            body["aggregations"] = deep_merge({}, self.aggregation_values)
        if self.sort_values:
            body["sort"] = deepcopy(list(self.sort_values))
        if self.offset_value is not None:
            body["from"] = self.offset_value
        if self.limit_value is not None:
            body["size"] = self.limit_value
        if self.source_value is not None:
            source = self.source_value
            body["_source"] = (
                dict(source) if isinstance(source, Mapping)
                else list(source) if isinstance(source, tuple)
                else source
            )
        if self.highlight_value is not None:
            body["highlight"] = deep_merge({}, self.highlight_value)
        if self.explain_value is not None:
            body["explain"] = self.explain_value
        if self.track_total_hits_value is not None:
            body["track_total_hits"] = self.track_total_hits_value
        return body

    request = property(to_dict)

    @property
    def params(self) -> dict[str, Any]:
        """Query-string parameters sent along with the body."""
        return {
            param: getattr(self, name)
            for name, param in PARAMS.items()
            if getattr(self, name) is not None
        }

    @property
    def matching_query(self) -> dict[str, Any]:
        """Query matching exactly the returned hits: pre- and post-filters combined."""
        return self.negation.query(
            self.must_values + self.post_must_values,
            self.must_not_values + self.post_must_not_values,
            self.should_values,
        )

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def execute(self, *, timeout: float | None = None) -> Response:
        """Run the request once and memoize the response on this value.

        Args:
            timeout: Per-call timeout in seconds; on expiry RequestTimeout is
                raised and nothing is memoized.

        Returns:
            The memoized Response.
        """
        if self._response is None:
            body = self.to_dict()
            logger.debug("Executing search on %s: %s", self.index.name, body)
            raw = self.index.connection.search(
                self.index.name, body, params=self.params or None, timeout=timeout
            )
            object.__setattr__(self, "_response", Response(self, raw))
        return self._response

    @property
    def executed(self) -> bool:
        return self._response is not None

    @property
    def response(self) -> Response:
        return self.execute()

    @property
    def results(self):
        return self.execute().results

    @property
    def hits(self) -> list[dict[str, Any]]:
        return self.execute().hits

    @property
    def ids(self) -> list[Any]:
        return self.execute().ids

    @property
    def took(self) -> int | None:
        return self.execute().took

    @property
    def total_count(self) -> int:
        return self.execute().total_count

    @property
    def total_entries(self) -> int:
        return self.execute().total_entries

    @property
    def size(self) -> int:
        """Number of results on the current page."""
        return len(self.execute().results)

    def aggregations(self, name: str | None = None) -> Any:
        """All aggregation results, or the one called ``name``."""
        response = self.execute()
        return response.aggregations if name is None else response.aggregation(name)

    aggregation = aggregations

    def first(self) -> Any:
        """First result of this relation limited to one hit, or None."""
        results = self.limit(1).results
        return results[0] if results else None

    def __iter__(self) -> Iterator[Any]:
        return iter(self.execute().results)

    def __getitem__(self, key: int | slice) -> Any:
        return self.execute().results[key]

    # =========================================================================
    # SCROLLING
    # =========================================================================

    def scroll(
        self,
        batch_size: int = 1000,
        *,
        scroll_timeout: str | None = None,
        timeout: float | None = None,
        release: bool = False,
    ) -> Iterator[Response]:
        """Yield successive pages through a backend cursor.

        Stops after a page with fewer than ``batch_size`` hits, or when the
        backend returns no cursor. Offset and limit of the relation are
        ignored; pages are ``batch_size`` hits each.

        Args:
            batch_size: Hits per page.
            scroll_timeout: How long the backend keeps the cursor alive between
                pages (e.g. "1m"). Defaults to the index setting.
            timeout: Per-call timeout in seconds.
            release: Clear the cursor on the backend once done.

        Raises:
            ScrollExpired: If the cursor expires mid-iteration. Pages already
                yielded stay valid; restart scrolling from the beginning.
        """
        if not isinstance(batch_size, int) or batch_size <= 0:
            raise MalformedQuery("Scroll batch size must be a positive integer", value=batch_size)

        keep_alive = scroll_timeout or self.index.scroll_timeout
        relation = self._derive(offset_value=None, limit_value=batch_size)
        if not relation.sort_values:
            relation = relation._derive(sort_values=("_doc",))

        connection = self.index.connection
        raw = connection.search(
            self.index.name,
            relation.to_dict(),
            params={**relation.params, "scroll": keep_alive},
            timeout=timeout,
        )
        scroll_id = None
        try:
            while True:
                page = Response(relation, raw)
                scroll_id = page.scroll_id or scroll_id
                if page.hits:
                    yield page
                if len(page.hits) < batch_size or not page.scroll_id:
                    break
                logger.debug("Fetching next scroll page of %s", self.index.name)
                raw = connection.scroll(page.scroll_id, scroll=keep_alive, timeout=timeout)
        finally:
            if release and scroll_id:
                connection.clear_scroll(scroll_id)

    def find_in_batches(self, batch_size: int = 1000, **options: Any) -> Iterator[list[Any]]:
        """Yield the results of every scroll page as a list."""
        for page in self.scroll(batch_size, **options):
            yield list(page.results)

    def find_each(self, batch_size: int = 1000, **options: Any) -> Iterator[Any]:
        """Yield every result across all scroll pages."""
        for page in self.scroll(batch_size, **options):
            yield from page.results

    # =========================================================================
    # MUTATION
    # =========================================================================

    def delete(self, *, timeout: float | None = None) -> dict[str, Any]:
        """Delete every document matched by the pre- and post-filters."""
        query = self.matching_query
        logger.debug("Deleting by query on %s: %s", self.index.name, query)
        return self.index.connection.delete_by_query(
            self.index.name,
            {"query": query},
            params=self.params or None,
            timeout=timeout,
        )


def _sort_entry(spec: Any) -> Any:
    if isinstance(spec, str):
        return spec
    if isinstance(spec, Mapping):
        return deepcopy(dict(spec))
    raise MalformedQuery(f"Unsupported sort spec {spec!r}")


def _non_negative(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise MalformedQuery(f"{name} must be a non-negative integer", value=value)
    return value


__all__ = ["DEFAULT_PER_PAGE", "Relation"]
