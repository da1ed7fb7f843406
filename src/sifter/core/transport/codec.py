"""JSON codec for request and response bodies.

Bulk payloads use the line-delimited form: one JSON document per line,
newline terminated.
"""

import json
from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal
from typing import Any


def _default(value: Any) -> Any:
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, set | frozenset | tuple):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JsonCodec:
    """Encode structured values to bytes and back."""

    content_type = "application/json"
    lines_content_type = "application/x-ndjson"

    def encode(self, value: Any) -> bytes:
        return json.dumps(value, default=_default, separators=(",", ":")).encode("utf-8")

    def decode(self, data: bytes | str | None) -> Any:
        """Decode a body; an empty body decodes to None."""
        if not data:
            return None
        return json.loads(data)

    def encode_lines(self, values: Iterable[Any]) -> bytes:
        """Encode ``values`` as newline-delimited JSON."""
        return b"".join(self.encode(value) + b"\n" for value in values)


__all__ = ["JsonCodec"]
