"""
Schema catalog alias resolution and detection
"""

import httpx
import pytest

from agent_contract.catalog import registry
from agent_contract.catalog.base import SchemaCatalog, assert_safe_identifier, camel_to_snake, to_singular

from conftest import json_response


class TestAliases:

    @pytest.mark.parametrize("alias,expected", [
        ("customers", "customers"),
        ("Customer", "customers"),
        ("service products", "service_products"),
        ("service product", "service_products"),
        ("serviceproducts", "service_products"),
        ("Service-Products", "service_products"),
        ("category", "categories"),
        ("  BOOKINGS  ", "bookings"),
    ])
    def test_resolve_table_name(self, catalog, alias, expected):
        assert catalog.resolve_table_name(alias) == expected

    @pytest.mark.parametrize("alias", ["widgets", "", "   "])
    def test_unknown_table_is_none(self, catalog, alias):
        assert catalog.resolve_table_name(alias) is None

    def test_singular_forms(self):
        assert to_singular("categories") == "category"
        assert to_singular("bookings") == "booking"
        assert to_singular("s") == "s"
        assert to_singular("staff") == "staff"

    def test_first_alias_wins(self):
        catalog = SchemaCatalog.from_columns({"booking": ["id"], "bookings": ["id"]})
        assert catalog.resolve_table_name("booking") == "booking"
        assert catalog.resolve_table_name("bookings") == "bookings"


class TestColumns:

    @pytest.mark.parametrize("raw,expected", [
        ("status", "status"),
        ("Created At", "created_at"),
        ("createdAt", "created_at"),
        ("biz-id", "biz_id"),
        ("bizId", "biz_id"),
    ])
    def test_resolve_column_name(self, catalog, raw, expected):
        assert catalog.resolve_column_name("customers", raw) == expected

    def test_unknown_column_or_table(self, catalog):
        assert catalog.resolve_column_name("customers", "price_minor") is None
        assert catalog.resolve_column_name("widgets", "id") is None

    def test_camel_to_snake(self):
        assert camel_to_snake("actorUserId") == "actor_user_id"
        assert camel_to_snake("Status") == "status"


class TestDetection:

    def test_detects_whole_words_only(self, catalog):
        assert catalog.detect_tables_in_text("show all customers please") == ["customers"]
        assert catalog.detect_tables_in_text("customersx and xbookings") == []

    def test_longer_alias_ranks_first(self, catalog):
        ranked = catalog.detect_tables_in_text("service product bookings")
        assert ranked == ["service_products", "bookings"]

    def test_limit(self, catalog):
        assert len(catalog.detect_tables_in_text("customers bookings categories", limit=2)) == 2


class TestSerialization:

    def test_serialize_summary(self, catalog):
        snapshot = catalog.serialize()

        assert snapshot["summary"] == {"tableCount": 4, "columnCount": 18}
        assert [table["name"] for table in snapshot["tables"]] == sorted(catalog.table_names)
        customers = next(t for t in snapshot["tables"] if t["name"] == "customers")
        assert customers["hasBizId"] is True
        assert customers["primaryKeys"] == ["id"]

    def test_from_serialized_route_payload(self, catalog):
        rebuilt = SchemaCatalog.from_serialized({"success": True, "catalog": catalog.serialize()})

        assert sorted(rebuilt.table_names) == sorted(catalog.table_names)
        assert rebuilt.resolve_column_name("bookings", "customerId") == "customer_id"


class TestSafeIdentifiers:

    @pytest.mark.parametrize("identifier", ["customers", "biz_id", "t2"])
    def test_safe(self, identifier):
        assert_safe_identifier(identifier)

    @pytest.mark.parametrize("identifier", ["Customers", "1abc", "drop table;", "a-b", ""])
    def test_unsafe(self, identifier):
        with pytest.raises(ValueError, match="Unsafe SQL identifier"):
            assert_safe_identifier(identifier)


class TestRegistry:

    @pytest.fixture(autouse=True)
    def reset_registry(self):
        registry.set_schema_catalog(None)
        yield
        registry.set_schema_catalog(None)

    def test_get_before_load_raises(self):
        with pytest.raises(RuntimeError):
            registry.get_schema_catalog()

    @pytest.mark.asyncio
    async def test_load_fetches_once(self, catalog, make_rest_client):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            return json_response(200, {"success": True, "catalog": catalog.serialize()})

        client = make_rest_client(handler)
        first = await registry.load_schema_catalog(client)
        second = await registry.load_schema_catalog(client)

        assert first is second
        assert calls == ["/api/v1/agent/schema"]
        assert registry.get_schema_catalog() is first

    @pytest.mark.asyncio
    async def test_unavailable_schema_falls_back_to_empty(self, make_rest_client):
        client = make_rest_client(lambda request: json_response(503, {"success": False}))

        fallback = await registry.load_schema_catalog_or_empty(client)

        assert fallback.table_names == []
        with pytest.raises(RuntimeError):
            registry.get_schema_catalog()
