"""Tests for SQL specifications, property filters, patch specifications and the query builder."""

import pytest
from pydantic import ValidationError

from cosmos_ops.cosmos_ops_exceptions import QueryError
from cosmos_ops.query_operations.filters import PropertyComparison, PropertyFilter, build_filter_conditions
from cosmos_ops.query_operations.patch import PatchSpecification
from cosmos_ops.query_operations.query_builder import DocumentQueryBuilder
from cosmos_ops.query_operations.soft_delete import apply_soft_delete_filter, where_clause
from cosmos_ops.query_operations.specification import SqlSpecification


@pytest.fixture
def builder():
    return DocumentQueryBuilder("category")


class TestSqlSpecification:
    def test_count_query_replaces_projection_and_drops_order(self):
        spec = SqlSpecification(
            query_text="SELECT * FROM c WHERE c.price > @min ORDER BY c.price DESC",
            parameters={"@min": 5},
        )

        count = spec.to_count_query()

        assert count.query_text == "SELECT VALUE COUNT(1) FROM c WHERE c.price > @min"
        assert count.parameters == {"@min": 5}

    def test_projection_queries_cannot_be_counted(self):
        spec = SqlSpecification(query_text="SELECT c.id FROM c")
        with pytest.raises(QueryError):
            spec.to_count_query()

    def test_parameter_names_need_at_sign(self):
        with pytest.raises(ValidationError):
            SqlSpecification(query_text="SELECT * FROM c", parameters={"min": 1})

    def test_blank_query_is_rejected(self):
        with pytest.raises(ValidationError):
            SqlSpecification(query_text="  ")


class TestPropertyFilters:
    def test_values_are_always_parameters(self):
        filters = [
            PropertyFilter(property_name="price", comparison=PropertyComparison.LESS_THAN, value=20),
            PropertyFilter(property_name="color", comparison=PropertyComparison.IN, value=["red", "blue"]),
        ]

        conditions, parameters = build_filter_conditions(filters)

        assert conditions == ["c.price < @p0", "c.color IN (@p1_0, @p1_1)"]
        assert parameters == {"@p0": 20, "@p1_0": "red", "@p1_1": "blue"}

    def test_nested_paths_are_allowed(self):
        conditions, _ = build_filter_conditions([PropertyFilter(property_name="address.city", value="Oslo")])
        assert conditions == ["c.address.city = @p0"]

    @pytest.mark.parametrize("name", ["", "price; DROP", "1abc", "a..b", "c['x']"])
    def test_invalid_property_names(self, name):
        with pytest.raises(ValidationError):
            PropertyFilter(property_name=name, value=1)

    def test_in_requires_non_empty_list(self):
        with pytest.raises(ValidationError):
            PropertyFilter(property_name="color", comparison=PropertyComparison.IN, value=[])
        with pytest.raises(ValidationError):
            PropertyFilter(property_name="color", comparison=PropertyComparison.IN, value="red")


class TestSoftDeleteHelpers:
    def test_predicate_is_appended_unless_included(self):
        assert apply_soft_delete_filter(["c.a = @a"], include_deleted=False) == ["c.a = @a", "c.deleted = false"]
        assert apply_soft_delete_filter(["c.a = @a"], include_deleted=True) == ["c.a = @a"]

    def test_where_clause(self):
        assert where_clause([]) == ""
        assert where_clause(["x", "y"]) == " WHERE x AND y"


class TestDocumentQueryBuilder:
    def test_select_all_in_partition(self, builder):
        query = builder.select_all("lighting")

        assert query.query_text == "SELECT * FROM c WHERE c.category = @pk AND c.deleted = false"
        assert query.parameters == {"@pk": "lighting"}

    def test_select_all_across_partitions(self, builder):
        assert builder.select_all().query_text == "SELECT * FROM c WHERE c.deleted = false"

    def test_offset_limit(self, builder):
        query = builder.select_offset_limit(20, 10)

        assert query.query_text == "SELECT * FROM c WHERE c.deleted = false OFFSET @offset LIMIT @limit"
        assert query.parameters == {"@offset": 20, "@limit": 10}

    def test_counts(self, builder):
        assert builder.count_active("x").query_text == (
            "SELECT VALUE COUNT(1) FROM c WHERE c.category = @pk AND c.deleted = false"
        )
        assert builder.count_total("x").query_text == "SELECT VALUE COUNT(1) FROM c WHERE c.category = @pk"

    def test_array_contains_matches_partially(self, builder):
        query = builder.array_contains("tags", "name", "sale")

        assert query.query_text == (
            'SELECT * FROM c WHERE ARRAY_CONTAINS(c.tags, {"name": @value}, true) AND c.deleted = false'
        )
        assert query.parameters == {"@value": "sale"}

    def test_array_element_property_must_be_simple(self, builder):
        with pytest.raises(QueryError):
            builder.array_contains("tags", "meta.name", "x")

    def test_property_comparison_including_deleted(self, builder):
        query = builder.property_comparison([PropertyFilter(property_name="sku", value="A1")], include_deleted=True)
        assert query.query_text == "SELECT * FROM c WHERE c.sku = @p0"

    def test_invalid_partition_key_field(self):
        with pytest.raises(QueryError):
            DocumentQueryBuilder("category OR 1=1")


class TestPatchSpecification:
    def test_fluent_operations(self):
        spec = PatchSpecification().set("/price", 9.5).increment("/stock", -1).remove("/promo")

        assert spec.to_store_operations() == [
            {"op": "set", "path": "/price", "value": 9.5},
            {"op": "incr", "path": "/stock", "value": -1},
            {"op": "remove", "path": "/promo"},
        ]
        assert spec.touched_paths() == ["/price", "/stock", "/promo"]

    def test_paths_must_be_absolute(self):
        with pytest.raises(ValidationError):
            PatchSpecification().set("price", 1)
