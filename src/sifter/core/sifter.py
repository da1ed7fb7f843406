"""Core sifter facade.

Wires configuration, the backend connection and indices together.
"""

import logging
from typing import Any

import httpx
from dotenv import load_dotenv

from sifter.core.index.index import Index
from sifter.core.spock.spock import Spock
from sifter.core.transport.connection import Connection
from sifter.core.transport.http_client import HttpClient

logger = logging.getLogger(__name__)
load_dotenv()


class Sifter:
    """Entry point for applications.

    Example:
        >>> sifter = Sifter(config={"sifter": {"base_url": "http://search:9200"}})
        >>> products = sifter.index("products")
        >>> products.where(category="books").total_count
    """

    def __init__(
        self,
        *,
        config_path: str | None = None,
        config: dict[str, Any] | None = None,
        http_client: HttpClient | None = None,
    ):
        """Load configuration and open the connection.

        Args:
            config_path: Path to JSON configuration file.
            config: Optional configuration dictionary.
            http_client: Optional preconfigured client; configured auth and
                headers are layered on top of it.
        """
        self.spock = Spock(config_path=config_path)
        self.spock.load(config=config)
        self.config_manager = self.spock

        settings = self.spock.get_sifter_config()
        if http_client is None:
            http_client = HttpClient(client=httpx.Client(timeout=settings["request_timeout"]))
        if settings.get("username"):
            http_client = http_client.basic_auth(settings["username"], settings.get("password") or "")
        if settings.get("headers"):
            http_client = http_client.headers(settings["headers"])

        self.connection = Connection(
            settings["base_url"], http_client=http_client, version=str(settings["version"])
        )
        self._indices: dict[str, Index] = {}
        logger.debug("Sifter instance created for %s", settings["base_url"])

    def index(self, name: str, index_class: type[Index] = Index, **options: Any) -> Index:
        """Return the Index called ``name``, created once per facade and class.

        Args:
            name: Index name.
            index_class: Index subclass to instantiate.
            **options: Overrides for negation, batch_size and scroll_timeout.
        """
        key = f"{index_class.__module__}.{index_class.__qualname__}:{name}"
        if key not in self._indices:
            settings = {
                "negation": self.spock.get_index_config(name, "negation", "auto"),
                "batch_size": self.spock.get_index_config(name, "bulk_batch_size", 1000),
                "scroll_timeout": self.spock.get_index_config(name, "scroll_timeout", "1m"),
            }
            settings.update(options)
            self._indices[key] = index_class(name, self.connection, **settings)
        return self._indices[key]

    def close(self) -> None:
        """Close the underlying connection pool."""
        self.connection.http_client.close()

    def __enter__(self) -> "Sifter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
