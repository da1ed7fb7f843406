"""Response materializer: lazy hits, aggregations and totals."""

from sifter.core.response.response import Response
from sifter.core.response.result import AggregationResult, Hit, ResultSequence

__all__ = ["AggregationResult", "Hit", "Response", "ResultSequence"]
