"""Bulk loader."""

from sifter.core.bulk.bulk import BulkBatch, BulkLoader, BulkOperation

__all__ = ["BulkBatch", "BulkLoader", "BulkOperation"]
