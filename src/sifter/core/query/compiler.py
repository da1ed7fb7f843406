"""Filter compiler.

Turns loosely typed field/value mappings into Clauses, and renders
must / must-not / should buckets into a boolean filter. The same rules apply
to pre-filters, post-filters and aggregation filters:

- a sequence or set value          → terms clause matching any listed value
- a ``range`` or ``Bounds`` value  → range clause, gte=min / lte=max
- anything else                    → term clause (exact match)

How the must-not bucket is rendered depends on the backend protocol version
and is chosen through a NegationStrategy.
"""

import logging
from collections.abc import Mapping, Sequence, Set
from typing import Any, Protocol

from sifter.core.exceptions import MalformedQuery, NotSupported
from sifter.core.query.clauses import Bounds, Clause

logger = logging.getLogger(__name__)

#: Backends older than this only understand the prefixed ``not`` filter.
MUST_NOT_MIN_VERSION: tuple[int, ...] = (2,)

#: Full-text clauses legacy backends only accept in query context.
QUERY_CONTEXT_KINDS: frozenset[str] = frozenset(
    {"query_string", "simple_query_string", "match", "match_phrase", "multi_match"}
)


def range_bounds(field: str, value: range | Bounds) -> tuple[Any, Any]:
    """Return the inclusive (min, max) of a bounded range value.

    Raises:
        MalformedQuery: If the range is empty or its bounds are not comparable.
    """
    if isinstance(value, range):
        if len(value) == 0:
            raise MalformedQuery("Range is empty", field=field, value=value)
        if abs(value.step) != 1:
            raise MalformedQuery(
                "Range step must be 1 or -1; list the values instead", field=field, value=value
            )
        low, high = value[0], value[-1]
        return (low, high) if low <= high else (high, low)

    try:
        inverted = value.min > value.max
    except TypeError as e:
        raise MalformedQuery("Range bounds are not comparable", field=field, value=value) from e
    if inverted:
        raise MalformedQuery("Range minimum is greater than its maximum", field=field, value=value)
    return value.min, value.max


def compile_value(field: str, value: Any) -> Clause:
    """Infer the clause for one field/value pair."""
    if isinstance(value, range | Bounds):
        low, high = range_bounds(field, value)
        return Clause.range(field, gte=low, lte=high)
    if isinstance(value, Set) or (
        isinstance(value, Sequence) and not isinstance(value, str | bytes | bytearray)
    ):
        return Clause.terms(field, value)
    return Clause.term(field, value)


def compile_mapping(mapping: Mapping[str, Any]) -> tuple[Clause, ...]:
    """Compile every entry of ``mapping``, in iteration order."""
    if not isinstance(mapping, Mapping):
        raise MalformedQuery(
            f"Expected a field-to-value mapping, got {type(mapping).__name__}", value=mapping
        )
    return tuple(compile_value(field, value) for field, value in mapping.items())


def compile_raw(clauses: Sequence[Mapping[str, Any] | Clause]) -> tuple[Clause, ...]:
    return tuple(Clause.raw(clause) for clause in clauses)


# =============================================================================
# NEGATION RENDERING
# =============================================================================


class NegationStrategy(Protocol):
    """Renders must / must-not / should buckets into one boolean filter."""

    name: str

    def render(
        self,
        must: Sequence[Clause],
        must_not: Sequence[Clause],
        should: Sequence[Clause] = (),
    ) -> dict[str, Any] | None:
        """Return the rendered filter, or None when every bucket is empty."""
        ...

    def query(
        self,
        must: Sequence[Clause],
        must_not: Sequence[Clause],
        should: Sequence[Clause] = (),
    ) -> dict[str, Any]:
        """Return the buckets as a top-level query; match_all when all are empty."""
        ...


class MustNotNegation:
    """Native boolean ``must_not`` bucket."""

    name = "must_not"

    def render(self, must, must_not, should=()):
        if not (must or must_not or should):
            return None
        body: dict[str, Any] = {"must": [clause.to_dict() for clause in must]}
        if must_not:
            body["must_not"] = [clause.to_dict() for clause in must_not]
        if should:
            body["should"] = [clause.to_dict() for clause in should]
            body["minimum_should_match"] = 1
        return {"bool": body}

    def query(self, must, must_not, should=()):
        return self.render(must, must_not, should) or {"match_all": {}}

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class NotFilterNegation:
    """Legacy form: each negated clause becomes a prefixed ``not`` filter in must.

    The ``not`` filter only exists in filter context, so as a top-level query
    the buckets are wrapped in a ``filtered`` query. Full-text clauses, which
    are queries only, stay in its query part.
    """

    name = "not_filter"

    def render(self, must, must_not, should=()):
        if not (must or must_not or should):
            return None
        body: dict[str, Any] = {
            "must": [clause.to_dict() for clause in must]
            + [{"not": clause.to_dict()} for clause in must_not]
        }
        if should:
            body["should"] = [clause.to_dict() for clause in should]
            body["minimum_should_match"] = 1
        return {"bool": body}

    def query(self, must, must_not, should=()):
        full_text = [clause for clause in must if _is_query_context(clause)]
        filters = [clause for clause in must if not _is_query_context(clause)]
        rendered_filter = self.render(filters, must_not, should)
        if full_text:
            inner = {"bool": {"must": [clause.to_dict() for clause in full_text]}}
        else:
            inner = {"match_all": {}}
        if rendered_filter is None:
            return inner
        return {"filtered": {"query": inner, "filter": rendered_filter}}

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def _is_query_context(clause: Clause) -> bool:
    return next(iter(clause.to_dict())) in QUERY_CONTEXT_KINDS

NEGATION_STRATEGIES: dict[str, type] = {
    MustNotNegation.name: MustNotNegation,
    NotFilterNegation.name: NotFilterNegation,
}


def resolve_negation(
    name: str | NegationStrategy | None = "auto", version: tuple[int, ...] = (7,)
) -> NegationStrategy:
    """Pick a negation strategy by name, or by backend version for "auto".

    Raises:
        NotSupported: For an unknown strategy name.
    """
    if name is not None and not isinstance(name, str):
        return name
    if name in (None, "auto"):
        name = (
            MustNotNegation.name if version >= MUST_NOT_MIN_VERSION else NotFilterNegation.name
        )
        logger.debug("Negation strategy resolved to %s for version %s", name, version)
    try:
        return NEGATION_STRATEGIES[name]()
    except KeyError:
        raise NotSupported(
            f"negation strategy '{name}'",
            details=f"Known strategies: {', '.join(NEGATION_STRATEGIES)}, auto",
        ) from None


__all__ = [
    "MUST_NOT_MIN_VERSION",
    "QUERY_CONTEXT_KINDS",
    "MustNotNegation",
    "NEGATION_STRATEGIES",
    "NegationStrategy",
    "NotFilterNegation",
    "compile_mapping",
    "compile_raw",
    "compile_value",
    "range_bounds",
    "resolve_negation",
]
