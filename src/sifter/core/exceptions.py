"""Sifter - Exception hierarchy.

Errors that can be detected while a relation is being built are raised
before any I/O (MalformedQuery). Transport and backend failures propagate
with their diagnostic context. Bulk item failures are never raised; they are
reported through BulkResult (see dto/bulk_dto.py).
"""

from typing import Any


class SifterError(Exception):
    """Base exception for all sifter errors."""

    def __init__(self, message: str, *, context: dict[str, Any] | None = None):
        """Initialize the exception.

        Args:
            message: Error description.
            context: Optional diagnostic context for tracing.
        """
        super().__init__(message)
        self.context = context or {}


class ConnectionFailure(SifterError):
    """Raised when the backend cannot be reached.

    Fatal to the current call. Never retried by sifter itself.
    """

    retryable = False

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        context: dict[str, Any] | None = None,
    ):
        """Initialize ConnectionFailure.

        Args:
            message: Error description.
            cause: Optional original transport exception.
            context: Optional diagnostic context (method, url).
        """
        cause_info = f" (caused by: {type(cause).__name__}: {cause})" if cause else ""
        super().__init__(f"{message}{cause_info}", context=context)
        self.cause = cause
        if cause:
            self.__cause__ = cause


class RequestTimeout(ConnectionFailure):
    """Raised when a terminal call is aborted by its timeout.

    Pages already fetched by a scroll before the timeout stay valid.
    """

    retryable = True


class ResponseError(SifterError):
    """Raised when the backend answers with a non-success status.

    Attributes:
        code: HTTP status code.
        body: Raw response body, unmodified.
    """

    retryable = False

    def __init__(self, code: int, body: Any, *, context: dict[str, Any] | None = None):
        """Initialize ResponseError.

        Args:
            code: HTTP status code returned by the backend.
            body: Raw response body.
            context: Optional diagnostic context (method, url).
        """
        self.code = code
        self.body = body
        super().__init__(f"{type(self).__name__} ({code}): {body}", context=context)


class ScrollExpired(ResponseError):
    """Raised when a scroll cursor expired or vanished mid-iteration.

    The cursor cannot be resumed: restart scrolling from the beginning.
    """

    retryable = True

    def __init__(
        self,
        code: int,
        body: Any,
        *,
        scroll_id: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        """Initialize ScrollExpired.

        Args:
            code: HTTP status code returned by the backend.
            body: Raw response body.
            scroll_id: The cursor that was rejected.
            context: Optional diagnostic context.
        """
        super().__init__(code, body, context=context)
        self.scroll_id = scroll_id


class MalformedQuery(SifterError):
    """Raised when a caller-built clause is structurally invalid.

    Attributes:
        details: Description of what is wrong.
        field: Optional field the clause targets.
        value: Optional offending value.
    """

    def __init__(self, details: str, field: str | None = None, value: Any = None):
        """Initialize MalformedQuery.

        Args:
            details: Human-readable description of the problem.
            field: Optional field name associated with the error.
            value: Optional invalid value.
        """
        self.details = details
        self.field = field
        self.value = value

        field_info = f" (field={field!r})" if field else ""
        value_info = f" [value={value!r}]" if value is not None else ""
        super().__init__(f"Malformed query{field_info}: {details}{value_info}")


class NotSupported(SifterError):
    """Raised when a requested feature or strategy is not available."""

    def __init__(self, feature: str, details: str | None = None):
        """Initialize NotSupported.

        Args:
            feature: The unsupported feature.
            details: Optional extra details.
        """
        self.feature = feature
        self.details = details
        detail_info = f": {details}" if details else ""
        super().__init__(f"Feature '{feature}' is not supported{detail_info}.")


__all__ = [
    "SifterError",
    "ConnectionFailure",
    "RequestTimeout",
    "ResponseError",
    "ScrollExpired",
    "MalformedQuery",
    "NotSupported",
]
