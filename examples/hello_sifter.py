"""Minimal hello-world demo for sifter against an in-memory backend."""

from __future__ import annotations

import json
import sys
from pathlib import Path

# Allow running directly from the repo without installing the package.
REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = REPO_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

import httpx

from sifter import Bounds, Sifter
from sifter.core.transport.http_client import HttpClient

PRODUCTS = [
    {"id": 1, "title": "Dune", "category": "books", "price": 9.5},
    {"id": 2, "title": "Emma", "category": "books", "price": 5.0},
    {"id": 3, "title": "Tetris", "category": "games", "price": 19.0},
]


class FakeBackend:
    """Tiny backend answering _bulk and _search from a dict of documents."""

    def __init__(self) -> None:
        self.documents: dict[str, dict] = {}

    def handle(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/_bulk"):
            return httpx.Response(200, json=self._bulk(request.content))
        if request.url.path.endswith("/_search"):
            print(f"[backend] search body: {request.content.decode()}")
            return httpx.Response(200, json=self._search())
        return httpx.Response(404, json={"error": "not found"})

    def _bulk(self, content: bytes) -> dict:
        lines = [json.loads(line) for line in content.splitlines() if line]
        items = []
        for meta, document in zip(lines[::2], lines[1::2]):
            doc_id = str(meta["index"]["_id"])
            self.documents[doc_id] = document
            items.append({"index": {"_id": doc_id, "status": 201}})
        return {"took": 1, "errors": False, "items": items}

    def _search(self) -> dict:
        # Filtering is left to a real backend; every document is returned.
        hits = [
            {"_id": doc_id, "_index": "products", "_source": doc}
            for doc_id, doc in self.documents.items()
        ]
        categories: dict[str, int] = {}
        for doc in self.documents.values():
            categories[doc["category"]] = categories.get(doc["category"], 0) + 1
        buckets = [{"key": key, "doc_count": count} for key, count in categories.items()]
        return {
            "took": 1,
            "hits": {"total": {"value": len(hits), "relation": "eq"}, "hits": hits},
            "aggregations": {"category": {"buckets": buckets}},
        }


def main() -> int:
    backend = FakeBackend()
    client = HttpClient(client=httpx.Client(transport=httpx.MockTransport(backend.handle)))

    with Sifter(http_client=client, config={"sifter": {"base_url": "http://search.local"}}) as sifter:
        products = sifter.index("products")

        result = products.index_documents(PRODUCTS)
        print(f"[bulk] loaded {result.succeeded} documents in {result.batches} batch(es)")

        relation = (
            products.where(price=Bounds(1, 20))
            .where_not(category="archived")
            .post_where(category="books")
            .aggregate("category")
        )
        print(f"[hello] total = {relation.total_count}")
        for hit in relation:
            print(f"[hello] {hit.id}: {hit['title']}")
        for key, bucket in relation.aggregation("category").items():
            print(f"[hello] bucket {key} = {bucket.doc_count}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
