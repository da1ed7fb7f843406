"""Test helpers and shared constants."""

import json
from typing import Any

import httpx

BASE_URL = "http://search.test:9200"


def make_hits(count: int, start: int = 0) -> list[dict[str, Any]]:
    """Return ``count`` raw hits with consecutive ids."""
    return [
        {
            "_index": "products",
            "_id": str(i),
            "_score": 1.0,
            "_source": {"id": i, "title": f"Product {i}", "price": i * 10},
        }
        for i in range(start, start + count)
    ]


def search_payload(
    hits: list[dict[str, Any]] | None = None,
    *,
    total: int | dict[str, Any] | None = None,
    aggregations: dict[str, Any] | None = None,
    scroll_id: str | None = None,
) -> dict[str, Any]:
    """Build a search response payload."""
    hits = hits or []
    payload: dict[str, Any] = {
        "took": 3,
        "timed_out": False,
        "hits": {
            "total": {"value": len(hits), "relation": "eq"} if total is None else total,
            "hits": hits,
        },
    }
    if aggregations is not None:
        payload["aggregations"] = aggregations
    if scroll_id is not None:
        payload["_scroll_id"] = scroll_id
    return payload


def bulk_payload(*statuses: int, action: str = "index") -> dict[str, Any]:
    """Build a bulk response with one item per status code."""
    items = []
    for position, status in enumerate(statuses):
        outcome: dict[str, Any] = {"_id": str(position), "status": status}
        if status >= 300:
            outcome["error"] = {"type": "version_conflict_engine_exception", "reason": "conflict"}
        items.append({action: outcome})
    return {"took": 1, "errors": any(s >= 300 for s in statuses), "items": items}


class StubBackend:
    """Call-recording backend for httpx.MockTransport.

    Queued responses are returned in order; once the queue is empty an
    empty search payload is returned. Queue an exception to have it raised
    from the transport.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._queue: list[tuple[int, Any]] = []

    def queue(self, payload: Any, status: int = 200) -> "StubBackend":
        self._queue.append((status, payload))
        return self

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, payload = self._queue.pop(0) if self._queue else (200, search_payload())
        if isinstance(payload, Exception):
            raise payload
        return httpx.Response(status, json=payload)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def body(self, position: int = -1) -> Any:
        content = self.requests[position].content
        return json.loads(content) if content else None

    def lines(self, position: int = -1) -> list[Any]:
        """Decode a newline-delimited request body."""
        content = self.requests[position].content.decode("utf-8")
        return [json.loads(line) for line in content.splitlines() if line]

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]
