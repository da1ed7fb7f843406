"""Relation, its capability mixins and the nested Aggregation builder."""

from sifter.core.relation.aggregation import Aggregation
from sifter.core.relation.relation import Relation

__all__ = ["Aggregation", "Relation"]
