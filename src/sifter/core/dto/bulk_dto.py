"""Bulk loader result DTOs."""

from typing import Any

from pydantic import BaseModel, Field

from sifter.core.dto.result_dto import BaseResult


class BulkItemFailure(BaseModel):
    """A single bulk item rejected by the backend.

    Carries enough to let the caller retry: the action and document that
    were submitted, plus the backend-reported reason.
    """

    batch: int = Field(description="Zero-based index of the batch the item was sent in")
    position: int = Field(description="Zero-based position of the item within its batch")
    action: str = Field(description="Bulk action: index, create, update or delete")
    id: Any = Field(default=None, description="Document id, if any")
    status: int = Field(description="Per-item status code returned by the backend")
    reason: Any = Field(default=None, description="Backend-reported error")
    document: Any = Field(default=None, description="Submitted document (None for delete)")

    model_config = {"extra": "forbid"}


class BulkResult(BaseResult):
    """Result of a bulk load.

    [Result Pattern] A result with failed items is still status="success"
    with detail(PARTIAL): item failures never abort processing.

    Attributes:
        batches: Number of bulk requests submitted.
        succeeded: Number of items applied.
        failures: Failed items, in submission order.
    """

    batches: int = Field(default=0, description="Number of bulk requests submitted")
    succeeded: int = Field(default=0, description="Number of items applied")
    failures: list[BulkItemFailure] = Field(default_factory=list, description="Failed items")

    @property
    def failed(self) -> int:
        """Number of failed items."""
        return len(self.failures)


__all__ = ["BulkItemFailure", "BulkResult"]
