"""Typed hits and aggregation results."""

from collections.abc import Callable, Iterator, Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

_MISSING = object()


class Hit(BaseModel):
    """One search hit.

    Source fields are reachable by key: ``hit["title"]``, ``hit.get("price")``.
    """

    id: Any = Field(default=None, alias="_id", description="Document id")
    index: str | None = Field(default=None, alias="_index", description="Index name")
    score: float | None = Field(default=None, alias="_score", description="Relevance score")
    source: dict[str, Any] = Field(default_factory=dict, alias="_source")
    highlight: dict[str, list[str]] | None = Field(default=None)
    sort: list[Any] | None = Field(default=None)
    stored_fields: dict[str, Any] | None = Field(default=None, alias="fields")

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    def __getitem__(self, key: str) -> Any:
        return self.source[key]

    def __contains__(self, key: object) -> bool:
        return key in self.source

    def get(self, key: str, default: Any = None) -> Any:
        return self.source.get(key, default)


class ResultSequence(Sequence):
    """Ordered results converted lazily from raw hits.

    Each hit is converted on first access and cached, so scanning the
    sequence again never re-parses.
    """

    __slots__ = ("_hits", "_convert", "_results")

    def __init__(self, hits: Sequence[Mapping[str, Any]], convert: Callable[[Mapping], Any]):
        self._hits = hits
        self._convert = convert
        self._results: list[Any] = [_MISSING] * len(hits)

    def __len__(self) -> int:
        return len(self._hits)

    def __getitem__(self, key):
        if isinstance(key, slice):
            return [self[i] for i in range(*key.indices(len(self)))]
        if key < 0:
            key += len(self)
        if not 0 <= key < len(self):
            raise IndexError("result index out of range")
        result = self._results[key]
        if result is _MISSING:
            result = self._results[key] = self._convert(self._hits[key])
        return result

    def __iter__(self) -> Iterator[Any]:
        for position in range(len(self)):
            yield self[position]

    def __repr__(self) -> str:
        return f"<ResultSequence size={len(self)}>"


class AggregationResult(Mapping[str, Any]):
    """Read-only view over an aggregation result tree.

    Nested mappings are wrapped recursively and reachable both by key and by
    attribute: ``result.buckets[0].doc_count``, ``result["avg_price"].value``.
    """

    __slots__ = ("_raw", "_cache")

    def __init__(self, raw: Mapping[str, Any] | None = None):
        self._raw = raw or {}
        self._cache: dict[str, Any] = {}

    def __getitem__(self, key: str) -> Any:
        if key not in self._cache:
            self._cache[key] = _wrap(self._raw[key])
        return self._cache[key]

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._raw)

    def __len__(self) -> int:
        return len(self._raw)

    def __repr__(self) -> str:
        return f"AggregationResult({self._raw!r})"

    def to_dict(self) -> dict[str, Any]:
        return dict(self._raw)


def _wrap(value: Any) -> Any:
    if isinstance(value, Mapping):
        return AggregationResult(value)
    if isinstance(value, list):
        return [_wrap(item) for item in value]
    return value


__all__ = ["AggregationResult", "Hit", "ResultSequence"]
