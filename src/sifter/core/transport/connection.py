"""Connection to a search backend.

A Connection binds a base URL to an HttpClient (the shared connection pool)
and a codec, and exposes the handful of endpoints relations, indices and the
bulk loader need. Non-success statuses raise ResponseError with the raw body.
"""

import logging
from collections.abc import Mapping
from typing import Any

from sifter.core.exceptions import ResponseError, ScrollExpired
from sifter.core.transport.codec import JsonCodec
from sifter.core.transport.http_client import HttpClient, HttpResponse

logger = logging.getLogger(__name__)

SCROLL_MISSING_ERRORS = ("search_context_missing_exception", "SearchContextMissingException")


def parse_version(version: str) -> tuple[int, ...]:
    """Parse "7.10.2" (or "7.10.2-SNAPSHOT") into a comparable tuple."""
    parts = []
    for piece in str(version).split("-", 1)[0].split("."):
        if not piece.isdigit():
            break
        parts.append(int(piece))
    return tuple(parts) or (0,)


class Connection:
    """Backend endpoints over an immutable HttpClient.

    Attributes:
        base_url: Backend base URL without trailing slash.
        http_client: Immutable client every request is sent through.
        codec: Body codec.
        version: Backend protocol version string.
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:9200",
        *,
        http_client: HttpClient | None = None,
        codec: JsonCodec | None = None,
        version: str = "7.0.0",
    ):
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client or HttpClient()
        self.codec = codec or JsonCodec()
        self.version = version
        logger.debug("Connection created for %s (version %s)", self.base_url, version)

    @property
    def version_info(self) -> tuple[int, ...]:
        return parse_version(self.version)

    def url(self, *segments: str) -> str:
        path = "/".join(str(segment).strip("/") for segment in segments if segment)
        return f"{self.base_url}/{path}" if path else self.base_url

    def request(
        self,
        method: str,
        path: str | tuple[str, ...],
        *,
        body: Any = None,
        params: Mapping[str, Any] | None = None,
        timeout: float | None = None,
        raw_body: bytes | None = None,
        content_type: str | None = None,
    ) -> Any:
        """Send one request and return the decoded body.

        Args:
            method: HTTP verb name (get, put, post, delete, head).
            path: Path segments below the base URL.
            body: Structured body, encoded with the codec.
            params: Query-string parameters.
            timeout: Per-call timeout in seconds.
            raw_body: Pre-encoded body (takes precedence over ``body``).
            content_type: Content type for ``raw_body``.

        Raises:
            ResponseError: If the backend answers with a non-success status.
            ConnectionFailure: If the backend cannot be reached.
        """
        segments = (path,) if isinstance(path, str) else path
        url = self.url(*segments)

        headers = {"Accept": self.codec.content_type}
        payload: bytes | None = raw_body
        if payload is not None:
            headers["Content-Type"] = content_type or self.codec.content_type
        elif body is not None:
            payload = self.codec.encode(body)
            headers["Content-Type"] = self.codec.content_type

        response = getattr(self.http_client, method)(
            url, body=payload, params=dict(params) if params else None, headers=headers,
            timeout=timeout,
        )
        return self._handle(method, url, response)

    def _handle(self, method: str, url: str, response: HttpResponse) -> Any:
        decoded = self._decode(response)
        if not response.ok:
            raise ResponseError(
                response.status,
                decoded if decoded is not None else response.text,
                context={"method": method.upper(), "url": url},
            )
        return decoded

    def _decode(self, response: HttpResponse) -> Any:
        try:
            return self.codec.decode(response.body)
        except ValueError:
            return response.text or None

    # =========================================================================
    # ENDPOINTS
    # =========================================================================

    def search(
        self,
        index: str,
        body: Mapping[str, Any],
        *,
        params: Mapping[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        return self.request("post", (index, "_search"), body=body, params=params, timeout=timeout)

    def scroll(self, scroll_id: str, *, scroll: str, timeout: float | None = None) -> dict[str, Any]:
        """Fetch the next page of a scroll.

        Raises:
            ScrollExpired: If the cursor is no longer known to the backend.
        """
        try:
            return self.request(
                "post",
                ("_search", "scroll"),
                body={"scroll": scroll, "scroll_id": scroll_id},
                timeout=timeout,
            )
        except ResponseError as e:
            if e.code == 404 or _is_scroll_missing(e.body):
                logger.warning("Scroll context %s expired", scroll_id)
                raise ScrollExpired(
                    e.code, e.body, scroll_id=scroll_id, context=e.context
                ) from e
            raise

    def clear_scroll(self, scroll_id: str) -> None:
        """Release a scroll context; an already released one is ignored."""
        try:
            self.request("delete", ("_search", "scroll"), body={"scroll_id": [scroll_id]})
        except ResponseError as e:
            if e.code != 404:
                raise

    def count(
        self,
        index: str,
        body: Mapping[str, Any] | None = None,
        *,
        params: Mapping[str, Any] | None = None,
    ) -> int:
        response = self.request("post", (index, "_count"), body=body or {}, params=params)
        return response["count"]

    def delete_by_query(
        self,
        index: str,
        body: Mapping[str, Any],
        *,
        params: Mapping[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        return self.request(
            "post", (index, "_delete_by_query"), body=body, params=params, timeout=timeout
        )

    def bulk(
        self, index: str, payload: bytes, *, params: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        return self.request(
            "post",
            (index, "_bulk"),
            raw_body=payload,
            content_type=self.codec.lines_content_type,
            params=params,
        )

    def refresh(self, index: str) -> None:
        self.request("post", (index, "_refresh"))

    def get(self, index: str, id: Any) -> dict[str, Any]:
        return self.request("get", (index, "_doc", str(id)))

    def cluster_version(self) -> str:
        """Ask the backend for its version number."""
        return self.request("get", ())["version"]["number"]


def _is_scroll_missing(body: Any) -> bool:
    if isinstance(body, dict):
        text = str(body.get("error", ""))
    else:
        text = str(body)
    return any(marker in text for marker in SCROLL_MISSING_ERRORS)


__all__ = ["Connection", "parse_version"]
