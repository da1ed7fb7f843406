"""Base result types for sifter operations.

Expected outcomes that are not programming or transport errors (a bulk item
rejected by the backend, a partially applied batch) are returned as a Result
carrying a StatusDetail. System errors (unreachable backend, non-success
status for a whole request) raise exceptions from sifter.core.exceptions.
"""

from typing import Any, Final, Literal, Self

from pydantic import BaseModel, Field


class StatusDetail(BaseModel):
    """Structured status information for operation results.

    Attributes:
        code: Machine-readable status code (see StatusCode).
        message: Human-readable status description.
        context: Additional diagnostic data (safe to log/serialize).
    """

    code: str = Field(description="Status code: 'partial', 'empty', etc.")
    message: str = Field(description="Human-readable status description")
    context: dict[str, Any] = Field(default_factory=dict, description="Diagnostic context")


class BaseResult(BaseModel):
    """Base class for sifter operation results.

    Pattern:
    - status="success" → operation completed, specific fields populated
    - status="success" + detail → completed with an informational status
    - status="error" → expected failure, detail describes it
    """

    status: Literal["success", "error"] = Field(default="success", description="Operation status")
    detail: StatusDetail | None = Field(
        default=None, description="Status details (present for error or partial success)"
    )

    model_config = {"extra": "forbid"}

    def is_ok(self) -> bool:
        """Check if operation succeeded."""
        return self.status == "success"

    def is_error(self) -> bool:
        """Check if operation failed with expected error."""
        return self.status == "error"

    @classmethod
    def success(cls, *, detail: StatusDetail | None = None, **kwargs: Any) -> Self:
        """Factory method for successful result.

        Args:
            detail: Optional status details for partial success.
            **kwargs: Subclass-specific fields.

        Returns:
            Result instance with status="success".
        """
        return cls(status="success", detail=detail, **kwargs)

    @classmethod
    def fail(cls, detail: StatusDetail, **kwargs: Any) -> Self:
        """Factory method for expected failure result.

        Args:
            detail: Required status details describing the failure.
            **kwargs: Subclass-specific fields.

        Returns:
            Result instance with status="error".
        """
        return cls(status="error", detail=detail, **kwargs)


class StatusCode:
    """Centralized registry of status codes used across sifter."""

    EMPTY: Final = "empty"
    """Input sequence was empty; nothing was sent."""

    PARTIAL: Final = "partial"
    """Some items of a bulk operation failed, the rest were applied."""

    ALL_FAILED: Final = "all_failed"
    """Every item of a bulk operation failed."""


__all__ = ["BaseResult", "StatusDetail", "StatusCode"]
