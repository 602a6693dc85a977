"""Tests for native type mapping."""

import pytest

from modelgen_cli.database.type_mappers import (
    BINARY,
    BOOLEAN,
    DATE,
    DECIMAL,
    FLOAT,
    INTEGER,
    JSON_MANUAL,
    JSONB_MANUAL,
    NAIVE_DATETIME,
    OPAQUE_STRING,
    STRING,
    TIME,
    UUID,
    ZONED_DATETIME,
    ArrayType,
    EnumType,
    GeometryType,
    PostgresTypeMapper,
    is_timestamp_type,
    map_type,
    normalize_native_type,
    requires_special_import,
)


@pytest.fixture
def mapper():
    return PostgresTypeMapper()


class TestNormalization:
    """Test native type normalization."""

    def test_strips_length_modifier(self):
        assert normalize_native_type("character varying(255)") == "character varying"

    def test_strips_precision_inside_type_name(self):
        """Modifiers in the middle of a name are removed too."""
        assert normalize_native_type("timestamp(6) with time zone") == "timestamp with time zone"

    def test_strips_modifier_before_array_suffix(self):
        assert normalize_native_type("numeric(10,2)[]") == "numeric[]"

    def test_lowercases_and_collapses_whitespace(self):
        assert normalize_native_type("  DOUBLE   PRECISION ") == "double precision"


class TestScalarMapping:
    """Test the fixed scalar lookup table."""

    @pytest.mark.parametrize("native_type,expected", [
        ("integer", INTEGER),
        ("bigint", INTEGER),
        ("bigserial", INTEGER),
        ("numeric(10,2)", DECIMAL),
        ("money", DECIMAL),
        ("double precision", FLOAT),
        ("real", FLOAT),
        ("character varying(255)", STRING),
        ("text", STRING),
        ("citext", STRING),
        ("uuid", UUID),
        ("boolean", BOOLEAN),
        ("date", DATE),
        ("time without time zone", TIME),
        ("timestamp without time zone", NAIVE_DATETIME),
        ("timestamp", NAIVE_DATETIME),
        ("timestamp with time zone", ZONED_DATETIME),
        ("timestamptz", ZONED_DATETIME),
        ("timestamp(6) with time zone", ZONED_DATETIME),
        ("bytea", BINARY),
    ])
    def test_scalar_types(self, mapper, native_type, expected):
        assert mapper.map(native_type) == expected

    @pytest.mark.parametrize("native_type", [
        "interval", "inet", "cidr", "macaddr", "tsvector", "int4range", "tstzrange", "xml",
    ])
    def test_opaque_string_types(self, mapper, native_type):
        assert mapper.map(native_type) == OPAQUE_STRING

    def test_unknown_type_falls_back_to_opaque_string(self, mapper):
        """Unknown types never raise."""
        assert mapper.map("some_extension_type") == OPAQUE_STRING

    def test_user_defined_without_labels_is_opaque(self, mapper):
        assert mapper.map("USER-DEFINED") == OPAQUE_STRING
        assert mapper.map("USER-DEFINED", enum_labels=()) == OPAQUE_STRING

    def test_module_level_map_type(self):
        assert map_type("int4") == INTEGER


class TestJsonMapping:
    """JSON columns always need a manual decision."""

    def test_json_maps_to_manual_marker(self, mapper):
        assert mapper.map("json") == JSON_MANUAL

    @pytest.mark.parametrize("labels,default", [
        (None, None),
        (("a", "b"), None),
        (None, "'{}'::jsonb"),
        (("x",), "'[]'::jsonb"),
    ])
    def test_jsonb_ignores_labels_and_default(self, mapper, labels, default):
        """No default expression or label set changes the jsonb result."""
        assert mapper.map("jsonb", labels, default) == JSONB_MANUAL


class TestArrayMapping:
    """Test array types."""

    @pytest.mark.parametrize("inner", ["integer", "text", "uuid", "numeric(10,2)", "timestamp with time zone"])
    def test_array_suffix_maps_inner_type(self, mapper, inner):
        assert mapper.map(f"{inner}[]") == ArrayType(mapper.map(inner))

    @pytest.mark.parametrize("inner", ["int4", "text", "uuid", "bool"])
    def test_underscore_prefix_maps_inner_type(self, mapper, inner):
        assert mapper.map(f"_{inner}") == ArrayType(mapper.map(inner))

    def test_nested_array(self, mapper):
        assert mapper.map("integer[][]") == ArrayType(ArrayType(INTEGER))

    def test_array_of_jsonb_keeps_manual_marker(self, mapper):
        assert mapper.map("jsonb[]") == ArrayType(JSONB_MANUAL)


class TestEnumMapping:
    """Test enumeration types."""

    def test_labels_preserved_in_order(self, mapper):
        result = mapper.map("USER-DEFINED", enum_labels=["pending", "active", "archived"])
        assert result == EnumType(("pending", "active", "archived"))

    def test_labels_not_sorted(self, mapper):
        result = mapper.map("USER-DEFINED", enum_labels=["z", "a", "m"])
        assert result.labels == ("z", "a", "m")


class TestGeometryMapping:
    """Test PostGIS types."""

    def test_plain_geometry(self, mapper):
        assert mapper.map("geometry") == GeometryType(subtype="Geometry")

    def test_named_subtype(self, mapper):
        assert mapper.map("point") == GeometryType(subtype="Point")
        assert mapper.map("multipolygon") == GeometryType(subtype="MultiPolygon")

    def test_modifier_supplies_subtype_and_srid(self, mapper):
        result = mapper.map("geometry(MultiPolygon,4326)")
        assert result == GeometryType(subtype="MultiPolygon", srid=4326)

    def test_geography(self, mapper):
        result = mapper.map("geography(Point,4326)")
        assert result.geography is True
        assert result.subtype == "Point"
        assert result.srid == 4326

    def test_requires_special_import(self, mapper):
        assert requires_special_import(mapper.map("geometry(Point)"))
        assert requires_special_import(mapper.map("geometry[]"))
        assert not requires_special_import(mapper.map("text"))


class TestTimestampTypes:
    """Test timestamp family detection."""

    def test_timestamp_family(self, conventions):
        assert is_timestamp_type("timestamp without time zone", conventions.timestamp_types)
        assert is_timestamp_type("timestamptz", conventions.timestamp_types)
        assert is_timestamp_type("timestamp(6) with time zone", conventions.timestamp_types)

    def test_date_is_not_a_timestamp(self, conventions):
        assert not is_timestamp_type("date", conventions.timestamp_types)
