"""Pytest fixtures.

This file adjusts sys.path for src-layout imports and provides a recording
backend built on httpx.MockTransport, so no test touches the network.
"""

# ruff: noqa: E402

import os
import sys

# Ensure `src` is on sys.path so imports like `from sifter.core...` resolve during tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if os.path.isdir(SRC):
    sys.path.insert(0, SRC)
sys.path.insert(0, ROOT)

import httpx
import pytest
from rich.traceback import install

from sifter.core.index.index import Index
from sifter.core.transport.connection import Connection
from sifter.core.transport.http_client import HttpClient
from tests.utils import BASE_URL, StubBackend

# Enable readable tracebacks in development / test environments.
# Can be disabled with PYTEST_RICH=0
if os.getenv("PYTEST_RICH", "1") == "1":
    install(
        show_locals=True,  # show local variables for each frame
        width=None,  # use terminal width
        word_wrap=True,  # wrap long lines
        extra_lines=1,  # some context around lines
        suppress=["/usr/lib/python3", "site-packages"],  # hide "noisy" third-party frames
    )


@pytest.fixture
def backend() -> StubBackend:
    """Provide a fresh call-recording backend stub."""
    return StubBackend()


@pytest.fixture
def http_client(backend: StubBackend) -> HttpClient:
    """HttpClient whose pool sends every request to the stub backend."""
    return HttpClient(client=httpx.Client(transport=httpx.MockTransport(backend.handle)))


@pytest.fixture
def connection(http_client: HttpClient) -> Connection:
    """Connection to a modern backend (native must_not negation)."""
    return Connection(BASE_URL, http_client=http_client, version="7.10.2")


@pytest.fixture
def legacy_connection(http_client: HttpClient) -> Connection:
    """Connection to a pre-2.0 backend (prefixed not filters)."""
    return Connection(BASE_URL, http_client=http_client, version="1.7.5")


@pytest.fixture
def products(connection: Connection) -> Index:
    """The products index on the stub backend."""
    return Index("products", connection)
