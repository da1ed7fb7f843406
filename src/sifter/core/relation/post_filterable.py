"""PostFilterable - post-filter capability.

Post-filters are applied after aggregations have been computed: they narrow
the returned hits but never the aggregation scope.

    >>> relation = index.aggregate("by_price", {"range": {"field": "price", "ranges": [...]}})
    >>> relation = relation.post_where(price=Bounds(20, 50))

Classes using this mixin provide ``post_must_values``,
``post_must_not_values`` and ``_derive(**changes)``.
"""

from collections.abc import Mapping
from typing import Any, Self

from sifter.core.query.clauses import Clause
from sifter.core.query.compiler import compile_mapping, compile_raw


class PostFilterableMixin:
    """Chainable post-filter methods, mirroring FilterableMixin."""

    __slots__ = ()

    def post_where(self, mapping: Mapping[str, Any] | None = None, /, **fields: Any) -> Self:
        clauses = compile_mapping({**(mapping or {}), **fields})
        return self._derive(post_must_values=self.post_must_values + clauses)

    def post_where_not(self, mapping: Mapping[str, Any] | None = None, /, **fields: Any) -> Self:
        clauses = compile_mapping({**(mapping or {}), **fields})
        return self._derive(post_must_not_values=self.post_must_not_values + clauses)

    def post_filter(self, *clauses: Mapping[str, Any] | Clause) -> Self:
        return self._derive(post_must_values=self.post_must_values + compile_raw(clauses))

    def post_filter_not(self, *clauses: Mapping[str, Any] | Clause) -> Self:
        return self._derive(
            post_must_not_values=self.post_must_not_values + compile_raw(clauses)
        )

    def post_range(self, field: str, **options: Any) -> Self:
        return self._derive(
            post_must_values=self.post_must_values + (Clause.range(field, **options),)
        )

    def post_exists(self, field: str) -> Self:
        return self._derive(post_must_values=self.post_must_values + (Clause.exists(field),))

    def post_exists_not(self, field: str) -> Self:
        return self._derive(
            post_must_not_values=self.post_must_not_values + (Clause.exists(field),)
        )
