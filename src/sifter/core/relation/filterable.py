"""Filterable - pre-filter capability.

Pre-filters scope both the returned hits and the documents aggregations are
computed over. Every method returns a new value; the receiver is untouched.

Classes using this mixin provide ``must_values``, ``must_not_values``,
``should_values`` and ``_derive(**changes)``.
"""

from collections.abc import Mapping
from typing import Any, Self

from sifter.core.query.clauses import Clause
from sifter.core.query.compiler import compile_mapping, compile_raw


class FilterableMixin:
    """Chainable pre-filter methods.

    Example:
        >>> relation = index.where(category="books", price=Bounds(10, 20))
        >>> relation = relation.where_not(state=["draft", "deleted"])
        >>> relation = relation.range("published_at", gte="now-1y")
    """

    __slots__ = ()

    def where(self, mapping: Mapping[str, Any] | None = None, /, **fields: Any) -> Self:
        """Require every field/value pair.

        Lists, tuples and sets become terms clauses, ``range``/``Bounds``
        values become inclusive range clauses, anything else a term clause.
        """
        clauses = compile_mapping({**(mapping or {}), **fields})
        return self._derive(must_values=self.must_values + clauses)

    def where_not(self, mapping: Mapping[str, Any] | None = None, /, **fields: Any) -> Self:
        """Exclude documents matching any field/value pair. See where()."""
        clauses = compile_mapping({**(mapping or {}), **fields})
        return self._derive(must_not_values=self.must_not_values + clauses)

    def filter(self, *clauses: Mapping[str, Any] | Clause) -> Self:
        """Append raw clauses to the must bucket, verbatim."""
        return self._derive(must_values=self.must_values + compile_raw(clauses))

    def filter_not(self, *clauses: Mapping[str, Any] | Clause) -> Self:
        """Append raw clauses to the must-not bucket, verbatim."""
        return self._derive(must_not_values=self.must_not_values + compile_raw(clauses))

    def should(self, *clauses: Mapping[str, Any] | Clause) -> Self:
        """Append raw clauses of which at least one has to match."""
        return self._derive(should_values=self.should_values + compile_raw(clauses))

    def range(self, field: str, **options: Any) -> Self:
        """Add a partial range, e.g. ``range("likes", gt=10)``."""
        return self._derive(must_values=self.must_values + (Clause.range(field, **options),))

    def exists(self, field: str) -> Self:
        return self._derive(must_values=self.must_values + (Clause.exists(field),))

    def exists_not(self, field: str) -> Self:
        return self._derive(must_not_values=self.must_not_values + (Clause.exists(field),))

    def search(self, query: str | None, **options: Any) -> Self:
        """Add a full-text query_string clause; a blank query adds nothing."""
        if query is None or not str(query).strip():
            return self._derive()
        clause = Clause.raw(
            {"query_string": {"query": query, "default_operator": "AND", **options}}
        )
        return self._derive(must_values=self.must_values + (clause,))
