"""
Tests for table routing and field placement.
"""

from docbridge.compat import collection_ref, doc_ref
from docbridge.compat.routing import (
    TableRoute,
    is_declared,
    partition_fields,
    resolve_route,
)
from docbridge.config import settings


class TestResolveRoute:

    def test_allow_listed_root_collection_gets_its_table(self):
        route = resolve_route(doc_ref(None, "users", "u1"))
        assert route.table == "users"
        assert not route.is_generic
        assert "email" in route.declared_columns
        assert route.key_filter("u1") == {"id": "u1"}

    def test_other_collections_use_generic_table(self):
        route = resolve_route(collection_ref(None, "activities"))
        assert route.table == settings.DOCUMENTS_TABLE
        assert route.is_generic
        assert route.collection_path == "activities"
        assert route.key_columns == ("collection_path", "doc_id")

    def test_subcollection_of_dedicated_root_is_generic(self):
        route = resolve_route(doc_ref(None, "tenants", "acme", "cities", "mumbai"))
        assert route.is_generic
        assert route.collection_path == "tenants/acme/cities"
        assert route.key_filter("mumbai") == {
            "collection_path": "tenants/acme/cities",
            "doc_id": "mumbai",
        }

    def test_document_and_collection_route_alike(self):
        assert resolve_route(doc_ref(None, "tenants", "acme")) == resolve_route(
            collection_ref(None, "tenants")
        )


class TestPartitionFields:

    def test_dedicated_table_splits_declared_and_payload(self):
        route = resolve_route(collection_ref(None, "users"))
        declared, payload = partition_fields(
            route, {"email": "a@x.io", "role": "admin", "theme": "dark"}
        )
        assert declared == {"email": "a@x.io", "role": "admin"}
        assert payload == {"theme": "dark"}

    def test_id_field_never_written_on_dedicated_table(self):
        route = resolve_route(collection_ref(None, "tenants"))
        declared, payload = partition_fields(route, {"id": "other", "name": "Acme"})
        assert declared == {"name": "Acme"}
        assert payload == {}

    def test_generic_table_puts_everything_in_payload(self):
        route = resolve_route(collection_ref(None, "activities"))
        declared, payload = partition_fields(route, {"email": "a@x.io", "id": "x"})
        assert declared == {}
        assert payload == {"email": "a@x.io", "id": "x"}

    def test_placement_is_deterministic(self):
        route = TableRoute("users", False, "users", frozenset({"email"}))
        fields = {"email": "a@x.io", "theme": "dark"}
        assert partition_fields(route, fields) == partition_fields(route, dict(fields))
        assert is_declared(route, "email")
        assert not is_declared(route, "theme")
