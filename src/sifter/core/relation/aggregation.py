"""Aggregation - immutable builder for a nested aggregation request.

An Aggregation carries its own filters and sub-aggregations and renders to
a fragment merged onto the aggregation body it is attached to:

    {"filter": {"bool": {...}}, "aggregations": {...}}
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Self

from sifter.core.query.clauses import Clause
from sifter.core.query.compiler import MustNotNegation, NegationStrategy
from sifter.core.relation.aggregatable import AggregatableMixin
from sifter.core.relation.filterable import FilterableMixin


@dataclass(frozen=True, slots=True)
class Aggregation(FilterableMixin, AggregatableMixin):
    """Filters and sub-aggregations of one named aggregation."""

    negation: NegationStrategy = field(default_factory=MustNotNegation)
    must_values: tuple[Clause, ...] = ()
    must_not_values: tuple[Clause, ...] = ()
    should_values: tuple[Clause, ...] = ()
    aggregation_values: MappingProxyType = field(
        default_factory=lambda: MappingProxyType({})
    )

    def _derive(self, **changes: Any) -> Self:
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        rendered_filter = self.negation.render(
            self.must_values, self.must_not_values, self.should_values
        )
        if rendered_filter is not None:
            body["filter"] = rendered_filter
        if self.aggregation_values:
            body["aggregations"] = {
                name: dict(spec) for name, spec in self.aggregation_values.items()
            }
        return body
