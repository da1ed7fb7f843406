"""Clauses - structural filter units.

A Clause is one of term, terms, range, exists or raw. Clauses are immutable
and render to the backend's JSON shape with ``to_dict()``:

    {"term": {field: value}}
    {"terms": {field: [values]}}
    {"range": {field: {"gte": a, "lte": b}}}
    {"exists": {"field": field}}

Raw clauses carry a fully formed single-key mapping and render it verbatim.
"""

from collections.abc import Mapping
from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Literal

from sifter.core.exceptions import MalformedQuery

type ClauseKind = Literal["term", "terms", "range", "exists", "raw"]

RANGE_BOUNDS: frozenset[str] = frozenset({"gt", "gte", "lt", "lte"})
RANGE_OPTIONS: frozenset[str] = RANGE_BOUNDS | {"format", "time_zone", "boost", "relation"}


@dataclass(frozen=True, slots=True)
class Bounds:
    """Inclusive range value for where()/post_where().

    Use for ranges Python's ``range`` cannot express (floats, dates,
    datetimes, strings). ``Bounds(a, b)`` compiles to ``gte=a, lte=b``.
    """

    min: Any
    max: Any


@dataclass(frozen=True, slots=True)
class Clause:
    """One structural filter unit.

    Attributes:
        kind: Clause variant.
        field: Target field (None for raw clauses).
        value: Variant payload: the exact value (term), a tuple of values
            (terms), a mapping of range options (range), nothing (exists) or
            the full clause mapping (raw).
    """

    kind: ClauseKind
    field: str | None = None
    value: Any = None

    @classmethod
    def term(cls, field: str, value: Any) -> "Clause":
        return cls("term", _field_name(field), value)

    @classmethod
    def terms(cls, field: str, values: Any) -> "Clause":
        return cls("terms", _field_name(field), tuple(values))

    @classmethod
    def range(cls, field: str, **options: Any) -> "Clause":
        """Create a range clause; every bound is optional but one is required.

        Raises:
            MalformedQuery: For unknown options, no bound, or bounds that
                cannot be compared with each other.
        """
        name = _field_name(field)
        unknown = set(options) - RANGE_OPTIONS
        if unknown:
            raise MalformedQuery(
                f"Unknown range option(s): {', '.join(sorted(unknown))}", field=name
            )
        if not RANGE_BOUNDS & set(options):
            raise MalformedQuery("Range needs at least one of gt, gte, lt, lte", field=name)

        lower = options.get("gte", options.get("gt"))
        upper = options.get("lte", options.get("lt"))
        if lower is not None and upper is not None:
            try:
                lower <= upper  # noqa: B015
            except TypeError as e:
                raise MalformedQuery(
                    "Range bounds are not comparable", field=name, value=(lower, upper)
                ) from e

        return cls("range", name, dict(options))

    @classmethod
    def exists(cls, field: str) -> "Clause":
        return cls("exists", _field_name(field))

    @classmethod
    def raw(cls, clause: Mapping[str, Any]) -> "Clause":
        """Wrap a fully formed clause mapping, e.g. ``{"match": {"title": "x"}}``.

        Raises:
            MalformedQuery: If ``clause`` is not a mapping with exactly one
                string key.
        """
        if isinstance(clause, Clause):
            return clause
        if not isinstance(clause, Mapping):
            raise MalformedQuery(
                f"Raw clause must be a mapping, got {type(clause).__name__}", value=clause
            )
        if len(clause) != 1 or not isinstance(next(iter(clause)), str):
            raise MalformedQuery("Raw clause must have exactly one string key", value=clause)
        return cls("raw", None, deepcopy(dict(clause)))

    def to_dict(self) -> dict[str, Any]:
        match self.kind:
            case "term":
                return {"term": {self.field: self.value}}
            case "terms":
                return {"terms": {self.field: list(self.value)}}
            case "range":
                return {"range": {self.field: dict(self.value)}}
            case "exists":
                return {"exists": {"field": self.field}}
            case _:
                return deepcopy(self.value)


def _field_name(field: Any) -> str:
    if isinstance(field, str) and field:
        return field
    raise MalformedQuery(f"Field name must be a non-empty string, got {field!r}")


__all__ = ["Bounds", "Clause", "ClauseKind", "RANGE_BOUNDS", "RANGE_OPTIONS"]
