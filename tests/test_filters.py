"""Tests for the schema filter builder."""

import pytest

from pg_transfer.discovery.filters import SYSTEM_SCHEMAS, FilterClause, build_filter


class TestBuildFilter:

    def test_default_excludes_system_schemas(self):
        clause = build_filter()
        assert clause.excluded_schemas == SYSTEM_SCHEMAS
        assert clause.included_schemas == ()

        sql, params = clause.render("t.table_schema")
        assert sql == "AND t.table_schema NOT IN %s"
        assert params == [("information_schema", "pg_catalog", "pg_toast")]

    def test_include_system_schemas_without_allow_list_is_empty(self):
        clause = build_filter(include_system_schemas=True)
        assert clause.is_empty
        assert clause.render("t.table_schema") == ("", [])

    def test_allow_list_is_conjunctive_with_exclusion(self):
        clause = build_filter(schemas=["public"], include_system_schemas=False)
        sql, params = clause.render("t.table_schema")

        assert sql == "AND t.table_schema NOT IN %s AND t.table_schema IN %s"
        assert params == [SYSTEM_SCHEMAS, ("public",)]
        assert not clause.matches("information_schema")
        assert clause.matches("public")
        assert not clause.matches("sales")

    def test_system_schema_in_allow_list_still_excluded(self):
        clause = build_filter(schemas=["pg_catalog", "public"])
        assert not clause.matches("pg_catalog")

    def test_system_schema_allowed_when_included(self):
        clause = build_filter(schemas=["pg_catalog"], include_system_schemas=True)
        sql, params = clause.render("schemaname")
        assert sql == "AND schemaname IN %s"
        assert params == [("pg_catalog",)]
        assert clause.matches("pg_catalog")

    def test_schema_names_are_trimmed_and_deduplicated(self):
        clause = build_filter(schemas=[" public", "sales ", "public", ""])
        assert clause.included_schemas == ("public", "sales")

    def test_names_never_appear_in_sql(self):
        hostile = "public') OR 1=1 --"
        sql, params = build_filter(schemas=[hostile], tables=[hostile]).render("s", "n")
        assert hostile not in sql
        assert "%s" in sql
        assert (hostile,) in params


class TestTableFilter:

    def test_plain_and_qualified_names(self):
        clause = build_filter(tables=["users", "sales.invoices"])
        assert clause.table_names == ("users",)
        assert clause.qualified_tables == (("sales", "invoices"),)

        sql, params = clause.render("t.table_schema", "t.table_name")
        assert sql == (
            "AND t.table_schema NOT IN %s "
            "AND (t.table_name IN %s OR (t.table_schema, t.table_name) IN %s)"
        )
        assert params == [SYSTEM_SCHEMAS, ("users",), (("sales", "invoices"),)]

    def test_table_filter_needs_name_column(self):
        clause = build_filter(tables=["users"], include_system_schemas=True)
        assert clause.has_table_filter
        assert clause.render("t.table_schema") == ("", [])

    def test_matches_with_tables(self):
        clause = build_filter(schemas=["public", "sales"], tables=["users", "sales.invoices"])
        assert clause.matches("public", "users")
        assert clause.matches("sales", "invoices")
        assert not clause.matches("public", "invoices")
        assert not clause.matches("audit", "users")

    def test_blank_table_entries_ignored(self):
        clause = build_filter(tables=["", "  "])
        assert not clause.has_table_filter

    @pytest.mark.parametrize("entry", ["public.", ".users", "."])
    def test_rejects_entries_with_empty_parts(self, entry):
        with pytest.raises(ValueError, match="Invalid table entry"):
            build_filter(tables=[entry])


class TestSingleNames:

    def test_single_schema_string_is_one_name(self):
        clause = build_filter(schemas="public")
        assert clause.included_schemas == ("public",)
        assert clause.matches("public")
        assert not clause.matches("p")

    def test_single_table_string_is_one_name(self):
        clause = build_filter(tables="users")
        assert clause.table_names == ("users",)
        assert clause.qualified_tables == ()

    def test_single_qualified_table_string(self):
        clause = build_filter(tables="sales.invoices")
        assert clause.qualified_tables == (("sales", "invoices"),)
        assert clause.matches("sales", "invoices")


class TestRenderValidation:

    @pytest.mark.parametrize("column", ["", "t.", "1abc", "t.table_schema; DROP", "a.b.c"])
    def test_rejects_malformed_column_references(self, column):
        with pytest.raises(ValueError):
            FilterClause(excluded_schemas=("pg_catalog",)).render(column)

    def test_clause_is_immutable(self):
        clause = build_filter()
        with pytest.raises(AttributeError):
            clause.included_schemas = ("public",)
