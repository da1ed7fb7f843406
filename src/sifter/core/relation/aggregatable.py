"""Aggregatable - named, possibly nested aggregations.

Aggregation specs are stored as plain JSON-like dicts keyed by name.
Registering the same name twice deep-merges the specs.

Classes using this mixin provide ``aggregation_values``, ``negation`` and
``_derive(**changes)``.
"""

from collections.abc import Callable, Mapping
from copy import deepcopy
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Self

from sifter.core.exceptions import MalformedQuery

if TYPE_CHECKING:
    from sifter.core.relation.aggregation import Aggregation


def deep_merge(base: Mapping[str, Any], other: Mapping[str, Any]) -> dict[str, Any]:
    """Return a new dict with ``other`` merged into ``base``; nested dicts merge."""
    merged = deepcopy(dict(base))
    for key, value in other.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


class AggregatableMixin:
    """Chainable aggregation registration."""

    __slots__ = ()

    def aggregate(
        self,
        name: str,
        spec: Mapping[str, Any] | None = None,
        *,
        using: Callable[["Aggregation"], "Aggregation"] | None = None,
    ) -> Self:
        """Register the aggregation ``name``.

        Args:
            name: Aggregation name, also the key results are read back with.
            spec: Aggregation body, e.g. ``{"terms": {"field": "category"}}``.
                Defaults to a terms aggregation on the field called ``name``.
            using: Callable receiving an empty Aggregation builder and
                returning it extended with filters and sub-aggregations.

        Example:
            >>> index.aggregate(
            ...     "by_category",
            ...     {"terms": {"field": "category"}},
            ...     using=lambda agg: agg.aggregate("avg_price", {"avg": {"field": "price"}}),
            ... )
        """
        if not isinstance(name, str) or not name:
            raise MalformedQuery(f"Aggregation name must be a non-empty string, got {name!r}")
        if spec is None:
            spec = {"terms": {"field": name}}
        if not isinstance(spec, Mapping):
            raise MalformedQuery(
                f"Aggregation spec must be a mapping, got {type(spec).__name__}",
                field=name,
                value=spec,
            )

        rendered = deepcopy(dict(spec))
        if using is not None:
            from sifter.core.relation.aggregation import Aggregation

            builder = using(Aggregation(negation=self.negation))
            rendered = deep_merge(rendered, builder.to_dict())

        aggregations = dict(self.aggregation_values)
        if name in aggregations:
            rendered = deep_merge(aggregations[name], rendered)
        aggregations[name] = rendered
        return self._derive(aggregation_values=MappingProxyType(aggregations))
