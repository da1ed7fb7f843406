"""Tests for running relations and memoizing their responses."""

import httpx
import pytest

from sifter.core.exceptions import RequestTimeout, ResponseError
from sifter.core.index.index import Index
from sifter.core.response.result import Hit
from tests.utils import make_hits, search_payload


class TestMemoization:
    """A relation value runs its request at most once."""

    def test_two_enumerations_make_one_call(self, products: Index, backend):
        backend.queue(search_payload(make_hits(3)))
        relation = products.where(category="books")

        first = [hit["id"] for hit in relation]
        second = [hit["id"] for hit in relation]

        assert first == second == [0, 1, 2]
        assert backend.calls == 1

    def test_accessors_share_the_response(self, products: Index, backend):
        backend.queue(search_payload(make_hits(2), total=40))
        relation = products.where(category="books")

        assert relation.total_count == 40
        assert relation.ids == ["0", "1"]
        assert relation.size == 2
        assert relation.took == 3
        assert relation[1]["title"] == "Product 1"
        assert backend.calls == 1

    def test_derived_relation_starts_unexecuted(self, products: Index, backend):
        backend.queue(search_payload(make_hits(3))).queue(search_payload(make_hits(1)))
        base = products.where(category="books")
        base.execute()

        derived = base.limit(1)

        assert base.executed
        assert not derived.executed
        assert len(derived.results) == 1
        assert len(base.results) == 3
        assert backend.calls == 2

    def test_request_body_and_params(self, products: Index, backend):
        products.where(category="books").routing("user-1").limit(5).execute()

        request = backend.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/products/_search"
        assert request.url.params["routing"] == "user-1"
        assert backend.body() == {
            "query": {"bool": {"must": [{"term": {"category": "books"}}]}},
            "size": 5,
        }

    def test_errors_are_not_memoized(self, products: Index, backend):
        backend.queue({"error": "boom"}, status=500).queue(search_payload(make_hits(1)))
        relation = products.where(category="books")

        with pytest.raises(ResponseError) as exc_info:
            relation.execute()

        assert exc_info.value.code == 500
        assert not relation.executed
        assert relation.ids == ["0"]
        assert backend.calls == 2

    def test_timeouts_are_not_memoized(self, products: Index, backend):
        backend.queue(httpx.ReadTimeout("slow"))
        relation = products.where(category="books")

        with pytest.raises(RequestTimeout):
            relation.execute(timeout=0.5)

        assert not relation.executed


class TestResults:
    """Reading results back."""

    def test_results_are_hits_by_default(self, products: Index, backend):
        backend.queue(search_payload(make_hits(1)))

        hit = products.relation().first()

        assert isinstance(hit, Hit)
        assert hit.id == "0"
        assert hit.source == {"id": 0, "title": "Product 0", "price": 0}
        assert backend.body()["size"] == 1

    def test_first_on_empty_result(self, products: Index):
        assert products.where(category="nothing").first() is None

    def test_missing_aggregations_are_tolerated(self, products: Index, backend):
        backend.queue(search_payload(make_hits(1)))

        assert dict(products.relation().aggregations()) == {}

    def test_named_aggregation(self, products: Index, backend):
        buckets = [{"key": "books", "doc_count": 4}, {"key": "games", "doc_count": 1}]
        backend.queue(search_payload(aggregations={"category": {"buckets": buckets}}))

        categories = products.aggregate("category").aggregation("category")

        assert categories["books"]["doc_count"] == 4
        assert list(categories) == ["books", "games"]

    def test_unknown_aggregation_name(self, products: Index, backend):
        backend.queue(search_payload(aggregations={}))

        with pytest.raises(KeyError):
            products.relation().aggregations("missing")


class TestDelete:
    """Delete-by-query with the relation's filters."""

    def test_delete_combines_pre_and_post_filters(self, products: Index, backend):
        backend.queue({"deleted": 2, "failures": []})

        result = products.where(category="books").post_where_not(state="live").delete()

        assert result["deleted"] == 2
        assert backend.paths() == ["/products/_delete_by_query"]
        assert backend.body() == {
            "query": {
                "bool": {
                    "must": [{"term": {"category": "books"}}],
                    "must_not": [{"term": {"state": "live"}}],
                }
            }
        }

    def test_delete_everything(self, products: Index, backend):
        backend.queue({"deleted": 0})

        products.relation().delete()

        assert backend.body() == {"query": {"match_all": {}}}
