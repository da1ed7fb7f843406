"""Immutable HTTP request builder.

HttpClient records modifier calls (headers, via, basic_auth, auth, timeout)
instead of applying them. Each modifier returns a new HttpClient whose call
log is the parent's log plus the new entry, so siblings derived from one
parent never see each other's modifiers. A verb call (get, put, post,
delete, head) replays the log in call order against a fresh request object
and only then sends anything.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Self

import httpx

from sifter.core.exceptions import ConnectionFailure, RequestTimeout

logger = logging.getLogger(__name__)

#: One recorded modifier call: (name, positional args, keyword args)
type Call = tuple[str, tuple[Any, ...], dict[str, Any]]

MODIFIERS: tuple[str, ...] = ("headers", "via", "basic_auth", "auth", "timeout")
VERBS: tuple[str, ...] = ("get", "put", "post", "delete", "head")


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """Response value returned by a verb call."""

    status: int
    body: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class HttpRequest:
    """Fresh, single-use request the call log is replayed onto.

    Modifiers mutate this object in place and return it. A new HttpRequest
    is built for every verb call, so the mutation never leaks.
    """

    def __init__(self, client: httpx.Client, proxies: dict[str, httpx.Client] | None = None):
        """Create a request bound to a shared httpx client.

        Args:
            client: Pooled httpx client owned by the connection.
            proxies: Shared cache of proxied clients keyed by proxy URL.
        """
        self._client = client
        self._proxies = proxies if proxies is not None else {}
        self._headers: dict[str, str] = {}
        self._auth: Any = httpx.USE_CLIENT_DEFAULT
        self._proxy: str | None = None
        self._timeout: Any = httpx.USE_CLIENT_DEFAULT

    def headers(self, headers: Mapping[str, str] | None = None, **kwargs: str) -> Self:
        self._headers.update(headers or {})
        self._headers.update(kwargs)
        return self

    def via(self, proxy: str) -> Self:
        self._proxy = proxy
        return self

    def basic_auth(self, user: str, password: str) -> Self:
        self._auth = httpx.BasicAuth(user, password)
        return self

    def auth(self, value: str | httpx.Auth) -> Self:
        """Set a raw Authorization header value or an httpx.Auth flow."""
        if isinstance(value, httpx.Auth):
            self._auth = value
        else:
            self._headers["Authorization"] = value
        return self

    def timeout(self, seconds: float | None) -> Self:
        self._timeout = seconds
        return self

    @property
    def client(self) -> httpx.Client:
        """The pooled client, or the proxied client for the ``via`` proxy.

        A proxied client is created once per proxy URL and reused by every
        later request through the same proxy. It copies the pooled client's
        default timeout and headers but keeps a pool of its own.
        """
        if not self._proxy:
            return self._client
        if self._proxy not in self._proxies:
            logger.debug("Opening proxied client via %s", self._proxy)
            self._proxies[self._proxy] = httpx.Client(
                proxy=self._proxy,
                timeout=self._client.timeout,
                headers=self._client.headers,
            )
        return self._proxies[self._proxy]

    def perform(
        self,
        method: str,
        url: str,
        *,
        body: bytes | str | None = None,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResponse:
        """Send the request and wrap the httpx response.

        Raises:
            RequestTimeout: If the call is aborted by its timeout.
            ConnectionFailure: If the backend cannot be reached.
        """
        merged_headers = {**self._headers, **(headers or {})}
        effective_timeout = self._timeout if timeout is None else timeout
        context = {"method": method.upper(), "url": url}

        try:
            response = self._send(self.client, method, url, body, params, merged_headers,
                                  effective_timeout)
        except httpx.TimeoutException as e:
            raise RequestTimeout("Request timed out", cause=e, context=context) from e
        except httpx.TransportError as e:
            raise ConnectionFailure("Backend unreachable", cause=e, context=context) from e

        return HttpResponse(
            status=response.status_code,
            body=response.content,
            headers=dict(response.headers),
        )

    def _send(self, client, method, url, body, params, headers, timeout) -> httpx.Response:
        return client.request(
            method.upper(),
            url,
            content=body,
            params=params,
            headers=headers,
            auth=self._auth,
            timeout=timeout,
        )


class HttpClient:
    """Immutable, chainable HTTP client.

    Example:
        >>> client = HttpClient().basic_auth("elastic", "secret")
        >>> tenant_a = client.headers({"X-Tenant": "a"})
        >>> tenant_b = client.headers({"X-Tenant": "b"})  # never sees X-Tenant: a
        >>> response = tenant_a.get("http://127.0.0.1:9200/_cluster/health")
    """

    def __init__(
        self,
        *,
        client: httpx.Client | None = None,
        request_factory: Callable[[httpx.Client], Any] | None = None,
        calls: tuple[Call, ...] = (),
        proxies: dict[str, httpx.Client] | None = None,
    ):
        """Create an HttpClient.

        Args:
            client: Shared httpx client (connection pool). A new one is created if None.
            request_factory: Builds the fresh request object a verb call replays
                onto. Defaults to HttpRequest.
            calls: Recorded modifier log.
            proxies: Proxied clients keyed by proxy URL, shared by every client
                chained from this one.
        """
        self._client = client if client is not None else httpx.Client()
        self._proxies = proxies if proxies is not None else {}
        self._request_factory = request_factory or partial(HttpRequest, proxies=self._proxies)
        self._calls = calls

    @property
    def calls(self) -> tuple[Call, ...]:
        """Recorded modifier calls, in call order."""
        return self._calls

    @property
    def client(self) -> httpx.Client:
        return self._client

    def _chain(self, name: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> "HttpClient":
        return HttpClient(
            client=self._client,
            request_factory=self._request_factory,
            calls=self._calls + ((name, args, kwargs),),
            proxies=self._proxies,
        )

    def headers(self, *args: Any, **kwargs: Any) -> "HttpClient":
        return self._chain("headers", args, kwargs)

    def via(self, *args: Any, **kwargs: Any) -> "HttpClient":
        return self._chain("via", args, kwargs)

    def basic_auth(self, *args: Any, **kwargs: Any) -> "HttpClient":
        return self._chain("basic_auth", args, kwargs)

    def auth(self, *args: Any, **kwargs: Any) -> "HttpClient":
        return self._chain("auth", args, kwargs)

    def timeout(self, *args: Any, **kwargs: Any) -> "HttpClient":
        return self._chain("timeout", args, kwargs)

    def replay(self, request: Any) -> Any:
        """Apply the recorded modifiers, in call order, to ``request``."""
        for name, args, kwargs in self._calls:
            request = getattr(request, name)(*args, **kwargs)
        return request

    def request(
        self,
        method: str,
        url: str,
        *,
        body: bytes | str | None = None,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResponse:
        """Replay the modifiers onto a fresh request and perform ``method``."""
        request = self.replay(self._request_factory(self.client))
        logger.debug("HTTP %s %s params=%s", method.upper(), url, params)
        return request.perform(
            method, url, body=body, params=params, headers=headers, timeout=timeout
        )

    def get(self, url: str, **kwargs: Any) -> HttpResponse:
        return self.request("get", url, **kwargs)

    def put(self, url: str, **kwargs: Any) -> HttpResponse:
        return self.request("put", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> HttpResponse:
        return self.request("post", url, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> HttpResponse:
        return self.request("delete", url, **kwargs)

    def head(self, url: str, **kwargs: Any) -> HttpResponse:
        return self.request("head", url, **kwargs)

    def close(self) -> None:
        """Close the underlying connection pool and any proxied clients."""
        self._client.close()
        for proxied in self._proxies.values():
            proxied.close()
        self._proxies.clear()


__all__ = ["HttpClient", "HttpRequest", "HttpResponse", "MODIFIERS", "VERBS"]
