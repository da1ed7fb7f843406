"""Tests for compiling relations into request bodies."""

import pytest

from sifter.core.exceptions import MalformedQuery
from sifter.core.index.index import Index
from sifter.core.query.clauses import Bounds


class TestFilterOrdering:
    """Pre-filters go to query, post-filters to post_filter, never mixed."""

    def test_end_to_end_shape(self, products: Index):
        spec = {"range": {"field": "price", "ranges": [{"to": 20}, {"from": 20}]}}

        body = (
            products.where(category="books")
            .where_not(price=0)
            .post_where(category=["new-arrivals"])
            .aggregate("by_price", spec)
            .to_dict()
        )

        assert body["query"]["bool"]["must"] == [{"term": {"category": "books"}}]
        assert body["query"]["bool"]["must_not"] == [{"term": {"price": 0}}]
        assert body["post_filter"]["bool"]["must"] == [{"terms": {"category": ["new-arrivals"]}}]
        assert body["aggregations"] == {"by_price": spec}

    def test_post_filters_never_under_query(self, products: Index):
        body = (
            products.post_where(state="new")
            .post_where_not(id=[1, 2])
            .post_range("likes", gte=3)
            .post_exists("notified_at")
            .post_exists_not("deleted_at")
            .post_filter({"match": {"title": "x"}})
            .to_dict()
        )

        assert body["query"] == {"match_all": {}}
        assert body["post_filter"]["bool"] == {
            "must": [
                {"term": {"state": "new"}},
                {"range": {"likes": {"gte": 3}}},
                {"exists": {"field": "notified_at"}},
                {"match": {"title": "x"}},
            ],
            "must_not": [
                {"terms": {"id": [1, 2]}},
                {"exists": {"field": "deleted_at"}},
            ],
        }

    def test_pre_filters_never_under_post_filter(self, products: Index):
        body = (
            products.where(state="new")
            .where_not(id=[1, 2])
            .range("likes", gte=3)
            .exists("notified_at")
            .exists_not("deleted_at")
            .filter({"match": {"title": "x"}})
            .filter_not({"term": {"hidden": True}})
            .to_dict()
        )

        assert "post_filter" not in body
        assert body["query"]["bool"]["must"] == [
            {"term": {"state": "new"}},
            {"range": {"likes": {"gte": 3}}},
            {"exists": {"field": "notified_at"}},
            {"match": {"title": "x"}},
        ]
        assert body["query"]["bool"]["must_not"] == [
            {"terms": {"id": [1, 2]}},
            {"exists": {"field": "deleted_at"}},
            {"term": {"hidden": True}},
        ]

    def test_bounded_range_in_where(self, products: Index):
        body = products.where(price=Bounds(20, 50)).post_where(likes=range(1, 11)).to_dict()

        assert body["query"]["bool"]["must"] == [{"range": {"price": {"gte": 20, "lte": 50}}}]
        assert body["post_filter"]["bool"]["must"] == [
            {"range": {"likes": {"gte": 1, "lte": 10}}}
        ]

    def test_dotted_fields_through_mapping(self, products: Index):
        body = products.where({"user.name": "alice"}, state="new").to_dict()

        assert body["query"]["bool"]["must"] == [
            {"term": {"user.name": "alice"}},
            {"term": {"state": "new"}},
        ]

    def test_malformed_filters_fail_before_io(self, products: Index, backend):
        with pytest.raises(MalformedQuery):
            products.where(price=Bounds("a", 1))
        with pytest.raises(MalformedQuery):
            products.post_filter({"a": 1, "b": 2})

        assert backend.calls == 0

    def test_legacy_negation(self, legacy_connection):
        legacy = Index("products", legacy_connection)

        body = (
            legacy.where(category="books")
            .where_not(price=0)
            .exists_not("deleted_at")
            .post_where_not(id=1)
            .to_dict()
        )

        assert body["query"] == {
            "filtered": {
                "query": {"match_all": {}},
                "filter": {
                    "bool": {
                        "must": [
                            {"term": {"category": "books"}},
                            {"not": {"term": {"price": 0}}},
                            {"not": {"exists": {"field": "deleted_at"}}},
                        ]
                    }
                },
            }
        }
        assert body["post_filter"] == {"bool": {"must": [{"not": {"term": {"id": 1}}}]}}

    def test_legacy_full_text_stays_in_query_context(self, legacy_connection):
        legacy = Index("products", legacy_connection)

        body = legacy.search("dune").where_not(price=0).to_dict()

        assert body["query"] == {
            "filtered": {
                "query": {
                    "bool": {
                        "must": [
                            {"query_string": {"query": "dune", "default_operator": "AND"}}
                        ]
                    }
                },
                "filter": {"bool": {"must": [{"not": {"term": {"price": 0}}}]}},
            }
        }

    def test_legacy_empty_query(self, legacy_connection):
        assert Index("products", legacy_connection).relation().to_dict() == {
            "query": {"match_all": {}}
        }


class TestSearchAndOptions:
    """Full-text search and request options."""

    def test_search_adds_query_string(self, products: Index):
        body = products.search("harry potter", fields=["title"]).to_dict()

        assert body["query"]["bool"]["must"] == [
            {
                "query_string": {
                    "query": "harry potter",
                    "default_operator": "AND",
                    "fields": ["title"],
                }
            }
        ]

    @pytest.mark.parametrize("query", [None, "", "   "])
    def test_blank_search_adds_nothing(self, products: Index, query):
        assert products.search(query).to_dict() == {"query": {"match_all": {}}}

    def test_should(self, products: Index):
        body = products.should({"term": {"a": 1}}, {"term": {"b": 2}}).to_dict()

        assert body["query"]["bool"]["should"] == [{"term": {"a": 1}}, {"term": {"b": 2}}]

    def test_body_options(self, products: Index):
        body = (
            products.source(["id", "title"])
            .highlight(["title"], pre_tags=["<em>"])
            .highlight("description")
            .explain()
            .track_total_hits()
            .to_dict()
        )

        assert body["_source"] == ["id", "title"]
        assert body["highlight"] == {
            "fields": {"title": {}, "description": {}},
            "pre_tags": ["<em>"],
        }
        assert body["explain"] is True
        assert body["track_total_hits"] is True

    def test_params(self, products: Index):
        relation = products.preference("_local").routing("user-1").search_type("dfs_query_then_fetch")

        assert relation.params == {
            "preference": "_local",
            "routing": "user-1",
            "search_type": "dfs_query_then_fetch",
        }
        assert "preference" not in relation.to_dict()

    def test_compiled_body_is_a_copy(self, products: Index):
        relation = products.where(x=1).aggregate("tags").sort({"price": "asc"})

        body = relation.to_dict()
        body["query"]["bool"]["must"].append({"term": {"y": 2}})
        body["aggregations"]["tags"]["terms"]["field"] = "other"
        body["sort"][0]["price"] = "desc"

        fresh = relation.to_dict()
        assert fresh["query"]["bool"]["must"] == [{"term": {"x": 1}}]
        assert fresh["aggregations"]["tags"] == {"terms": {"field": "tags"}}
        assert fresh["sort"] == [{"price": "asc"}]

    def test_sort_spec_is_copied(self, products: Index):
        spec = {"price": {"order": "asc"}}
        relation = products.sort(spec)

        spec["price"]["order"] = "desc"

        assert relation.to_dict()["sort"] == [{"price": {"order": "asc"}}]
