"""Clauses and the filter compiler."""

from sifter.core.query.clauses import Bounds, Clause
from sifter.core.query.compiler import (
    MustNotNegation,
    NegationStrategy,
    NotFilterNegation,
    compile_mapping,
    compile_value,
    resolve_negation,
)

__all__ = [
    "Bounds",
    "Clause",
    "MustNotNegation",
    "NegationStrategy",
    "NotFilterNegation",
    "compile_mapping",
    "compile_value",
    "resolve_negation",
]
