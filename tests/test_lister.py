"""Tests for ObjectLister."""

import pytest

from mocks import MIXED_CATALOG, MockCatalogExecutor

from pg_transfer.discovery.filters import build_filter
from pg_transfer.discovery.lister import ListedObject, ListingKind, ObjectLister
from pg_transfer.protocol.errors import QueryError
from pg_transfer.protocol.schema import ObjectKind


class TestListObjects:

    def test_lists_base_tables_in_order(self, mixed_executor):
        lister = ObjectLister(mixed_executor)
        objects = lister.list_objects(ListingKind.BASE_TABLE, build_filter())

        assert [(o.schema, o.name) for o in objects] == [
            ("public", "customers"),
            ("public", "orders"),
            ("sales", "invoices"),
        ]
        assert objects[0].comment == "Registered customers"

    def test_relation_query_binds_kind_then_filter(self, mixed_executor):
        lister = ObjectLister(mixed_executor)
        lister.list_objects(ListingKind.VIEW, build_filter(schemas=["public"]))

        call = mixed_executor.calls_for("relations")[0]
        assert call.params[0] == "VIEW"
        assert call.params[1:] == [
            ("information_schema", "pg_catalog", "pg_toast"),
            ("public",),
        ]
        assert "t.table_schema NOT IN %s" in call.query
        assert call.query.rstrip().endswith("ORDER BY t.table_schema, t.table_name")

    def test_materialized_views_use_matview_columns(self, mixed_executor):
        lister = ObjectLister(mixed_executor)
        objects = lister.list_objects(
            ListingKind.MATERIALIZED_VIEW,
            build_filter(tables=["monthly_totals"]),
        )

        assert objects == [ListedObject("sales", "monthly_totals", None)]
        call = mixed_executor.calls_for("matviews")[0]
        assert "schemaname NOT IN %s" in call.query
        assert "matviewname IN %s" in call.query
        assert call.query.rstrip().endswith("ORDER BY schemaname, matviewname")

    def test_materialized_view_comment_always_absent(self):
        catalog = dict(MIXED_CATALOG)
        catalog["relations"] = {"MATERIALIZED VIEW": [("sales", "monthly_totals", "ignored")]}
        objects = ObjectLister(MockCatalogExecutor(catalog)).list_objects(
            ListingKind.MATERIALIZED_VIEW, build_filter()
        )
        assert objects[0].comment is None

    def test_no_filter_renders_no_predicates(self, mixed_executor):
        ObjectLister(mixed_executor).list_objects(
            ListingKind.MATERIALIZED_VIEW, build_filter(include_system_schemas=True)
        )
        call = mixed_executor.calls_for("matviews")[0]
        assert call.params is None
        assert "IN %s" not in call.query

    def test_system_schemas_excluded_by_default(self, mixed_executor):
        objects = ObjectLister(mixed_executor).list_objects(ListingKind.BASE_TABLE, build_filter())
        assert "information_schema" not in {o.schema for o in objects}

    def test_include_system_schemas_lists_them(self, mixed_executor):
        objects = ObjectLister(mixed_executor).list_objects(
            ListingKind.BASE_TABLE, build_filter(include_system_schemas=True)
        )
        assert ListedObject("information_schema", "sql_features", None) in objects
        assert len(objects) == 4

    def test_schema_allow_list_narrows_listing(self, mixed_executor):
        objects = ObjectLister(mixed_executor).list_objects(
            ListingKind.BASE_TABLE, build_filter(schemas=["sales"])
        )
        assert objects == [ListedObject("sales", "invoices", None)]

    def test_table_allow_list_narrows_listing(self, mixed_executor):
        lister = ObjectLister(mixed_executor)
        clause = build_filter(tables=["orders", "sales.invoices"])

        tables = lister.list_objects(ListingKind.BASE_TABLE, clause)
        matviews = lister.list_objects(ListingKind.MATERIALIZED_VIEW, clause)

        assert [(o.schema, o.name) for o in tables] == [("public", "orders"), ("sales", "invoices")]
        assert matviews == []

    def test_listing_is_deterministic(self, mixed_executor):
        lister = ObjectLister(mixed_executor)
        clause = build_filter()
        first = lister.list_objects(ListingKind.BASE_TABLE, clause)
        second = lister.list_objects(ListingKind.BASE_TABLE, clause)
        assert first == second

    def test_accepts_kind_value(self, mixed_executor):
        objects = ObjectLister(mixed_executor).list_objects("VIEW", build_filter())
        assert [o.name for o in objects] == ["recent_orders"]

    def test_rejects_unknown_kind(self, mixed_executor):
        with pytest.raises(ValueError):
            ObjectLister(mixed_executor).list_objects("FOREIGN TABLE", build_filter())

    def test_query_failure_propagates(self, mixed_executor):
        mixed_executor.fail("relations", QueryError("relation does not exist"))
        with pytest.raises(QueryError):
            ObjectLister(mixed_executor).list_objects(ListingKind.BASE_TABLE, build_filter())


class TestListingKind:

    @pytest.mark.parametrize("kind,expected", [
        (ListingKind.BASE_TABLE, ObjectKind.TABLE),
        (ListingKind.VIEW, ObjectKind.VIEW),
        (ListingKind.MATERIALIZED_VIEW, ObjectKind.MATERIALIZED_VIEW),
    ])
    def test_object_kind(self, kind, expected):
        assert kind.object_kind is expected
