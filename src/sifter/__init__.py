"""Sifter - fluent query building and execution for search-engine REST backends."""

from sifter.core.exceptions import (
    ConnectionFailure,
    MalformedQuery,
    NotSupported,
    RequestTimeout,
    ResponseError,
    ScrollExpired,
    SifterError,
)
from sifter.core.index.index import Index
from sifter.core.query.clauses import Bounds, Clause
from sifter.core.relation.aggregation import Aggregation
from sifter.core.relation.relation import Relation
from sifter.core.sifter import Sifter

__all__ = [
    "Sifter",
    "Index",
    "Relation",
    "Aggregation",
    "Clause",
    "Bounds",
    "SifterError",
    "ConnectionFailure",
    "RequestTimeout",
    "ResponseError",
    "ScrollExpired",
    "MalformedQuery",
    "NotSupported",
]
