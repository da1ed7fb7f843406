"""DTO package for sifter core.

Provides the BaseResult pattern for consistent result handling.
"""

from .bulk_dto import BulkItemFailure, BulkResult
from .result_dto import BaseResult, StatusCode, StatusDetail

__all__ = [
    "BaseResult",
    "StatusDetail",
    "StatusCode",
    "BulkItemFailure",
    "BulkResult",
]
