"""Transport collaborators: immutable HTTP client, codec and connection."""

from sifter.core.transport.codec import JsonCodec
from sifter.core.transport.connection import Connection, parse_version
from sifter.core.transport.http_client import HttpClient, HttpRequest, HttpResponse

__all__ = [
    "Connection",
    "HttpClient",
    "HttpRequest",
    "HttpResponse",
    "JsonCodec",
    "parse_version",
]
