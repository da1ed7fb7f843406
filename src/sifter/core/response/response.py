"""Response - lazy, cached view over a decoded search payload.

Optional payload sections may be absent (no "aggregations" key when none
were requested, no "_scroll_id" outside scrolls); accessors fall back to
empty values instead of failing.
"""

import math
from collections.abc import Mapping
from functools import cached_property
from typing import TYPE_CHECKING, Any

from sifter.core.response.result import AggregationResult, Hit, ResultSequence

if TYPE_CHECKING:
    from sifter.core.relation.relation import Relation

#: Backend page size when a request sets none.
DEFAULT_SIZE = 10


class Response:
    """Parsed search response bound to the Relation that produced it."""

    def __init__(self, relation: "Relation", raw: Mapping[str, Any] | None):
        self.relation = relation
        self.raw: Mapping[str, Any] = raw or {}

    def __repr__(self) -> str:
        return f"<Response index={self.relation.index.name!r} total={self.total_entries}>"

    @property
    def hits(self) -> list[dict[str, Any]]:
        return (self.raw.get("hits") or {}).get("hits") or []

    @cached_property
    def results(self) -> ResultSequence:
        convert = getattr(self.relation.index, "build_result", Hit.model_validate)
        return ResultSequence(self.hits, convert)

    @property
    def ids(self) -> list[Any]:
        return [hit.get("_id") for hit in self.hits]

    @property
    def total_entries(self) -> int:
        total = (self.raw.get("hits") or {}).get("total", 0)
        if isinstance(total, Mapping):
            return total.get("value", 0)
        return total or 0

    total_count = total_entries

    @property
    def took(self) -> int | None:
        return self.raw.get("took")

    @property
    def timed_out(self) -> bool:
        return bool(self.raw.get("timed_out", False))

    @property
    def scroll_id(self) -> str | None:
        return self.raw.get("_scroll_id")

    # =========================================================================
    # AGGREGATIONS
    # =========================================================================

    @cached_property
    def aggregations(self) -> AggregationResult:
        return AggregationResult(self.raw.get("aggregations") or {})

    def aggregation(self, name: str) -> Any:
        """Result of aggregation ``name``; list buckets come back keyed by bucket key.

        Raises:
            KeyError: If no aggregation called ``name`` is in the response.
        """
        result = self.aggregations[name]
        buckets = result.get("buckets") if isinstance(result, Mapping) else None
        if isinstance(buckets, list):
            return {bucket.get("key_as_string", bucket.get("key")): bucket for bucket in buckets}
        return result

    # =========================================================================
    # PAGINATION
    # =========================================================================

    @property
    def per_page(self) -> int:
        limit = self.relation.limit_value
        return limit if limit is not None else DEFAULT_SIZE

    @property
    def current_page(self) -> int:
        if self.per_page == 0:
            return 1
        return 1 + math.ceil((self.relation.offset_value or 0) / self.per_page)

    @property
    def total_pages(self) -> int:
        if self.per_page == 0:
            return 1
        return max(math.ceil(self.total_entries / self.per_page), 1)

    @property
    def previous_page(self) -> int | None:
        if self.current_page <= 1:
            return None
        return min(self.current_page - 1, self.total_pages)

    @property
    def next_page(self) -> int | None:
        if self.current_page >= self.total_pages:
            return None
        return self.current_page + 1

    @property
    def first_page(self) -> bool:
        return self.current_page == 1

    @property
    def last_page(self) -> bool:
        return self.current_page == self.total_pages

    @property
    def out_of_range(self) -> bool:
        return self.current_page > self.total_pages
