"""Mapping of native column types to portable type tags."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple


class ScalarKind(str, Enum):
    """Scalar portable type tags."""

    INTEGER = "integer"
    DECIMAL = "decimal"
    FLOAT = "float"
    STRING = "string"
    UUID = "uuid"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    NAIVE_DATETIME = "naive_datetime"
    ZONED_DATETIME = "zoned_datetime"
    BINARY = "binary"
    OPAQUE_STRING = "opaque_string"


class PortableType:
    """Base class of the closed set of portable type variants.

    Variants: ScalarType, ArrayType, EnumType, GeometryType and
    ManualResolutionType. Consumers match on them exhaustively.
    """

    __slots__ = ()


@dataclass(frozen=True)
class ScalarType(PortableType):
    kind: ScalarKind

    def __str__(self) -> str:
        return self.kind.value


@dataclass(frozen=True)
class ArrayType(PortableType):
    inner: PortableType

    def __str__(self) -> str:
        return f"array<{self.inner}>"


@dataclass(frozen=True)
class EnumType(PortableType):
    """Enumeration with its labels in catalog sort order."""
    labels: Tuple[str, ...]

    def __str__(self) -> str:
        return f"enum({', '.join(self.labels)})"


@dataclass(frozen=True)
class GeometryType(PortableType):
    """PostGIS value; ``geography`` selects the geography wrapper."""
    subtype: str
    geography: bool = False
    srid: Optional[int] = None

    def __str__(self) -> str:
        family = "geography" if self.geography else "geometry"
        return f"{family}({self.subtype})"


@dataclass(frozen=True)
class ManualResolutionType(PortableType):
    """JSON payload whose shape must be chosen by a human."""
    native_type: str

    def __str__(self) -> str:
        return f"{self.native_type} (manual)"


INTEGER = ScalarType(ScalarKind.INTEGER)
DECIMAL = ScalarType(ScalarKind.DECIMAL)
FLOAT = ScalarType(ScalarKind.FLOAT)
STRING = ScalarType(ScalarKind.STRING)
UUID = ScalarType(ScalarKind.UUID)
BOOLEAN = ScalarType(ScalarKind.BOOLEAN)
DATE = ScalarType(ScalarKind.DATE)
TIME = ScalarType(ScalarKind.TIME)
NAIVE_DATETIME = ScalarType(ScalarKind.NAIVE_DATETIME)
ZONED_DATETIME = ScalarType(ScalarKind.ZONED_DATETIME)
BINARY = ScalarType(ScalarKind.BINARY)
OPAQUE_STRING = ScalarType(ScalarKind.OPAQUE_STRING)

JSON_MANUAL = ManualResolutionType("json")
JSONB_MANUAL = ManualResolutionType("jsonb")


_PARENTHETICAL = re.compile(r"\s*\([^)]*\)")
_WHITESPACE = re.compile(r"\s+")
_MODIFIER = re.compile(r"\(([^)]*)\)")


def normalize_native_type(native_type: str) -> str:
    """Lower-case a native type and drop size/precision modifiers.

    ``character varying(255)`` becomes ``character varying`` and
    ``timestamp(6) with time zone`` becomes ``timestamp with time zone``.
    """
    base = _PARENTHETICAL.sub("", native_type.lower())
    return _WHITESPACE.sub(" ", base).strip()


class TypeMapper(ABC):
    """Abstract base class for database type mapping."""

    @abstractmethod
    def map(
        self,
        native_type: str,
        enum_labels: Optional[Sequence[str]] = None,
        default: Optional[str] = None,
    ) -> PortableType:
        """Convert a native column type to a portable type."""
        pass


class PostgresTypeMapper(TypeMapper):
    """Type mapper for PostgreSQL (and PostGIS) column types.

    The mapper never fails: unknown types fall back to OPAQUE_STRING, which
    is lossy for truly exotic types. Callers needing stricter behaviour can
    post-validate the results.
    """

    SCALAR_TYPES: Dict[str, ScalarType] = {
        # Integer types
        "smallint": INTEGER,
        "integer": INTEGER,
        "int": INTEGER,
        "int2": INTEGER,
        "int4": INTEGER,
        "int8": INTEGER,
        "bigint": INTEGER,
        "serial": INTEGER,
        "bigserial": INTEGER,
        "smallserial": INTEGER,
        "oid": INTEGER,

        # Decimal/Float types
        "decimal": DECIMAL,
        "numeric": DECIMAL,
        "money": DECIMAL,
        "real": FLOAT,
        "float": FLOAT,
        "float4": FLOAT,
        "float8": FLOAT,
        "double precision": FLOAT,

        # String types
        "character varying": STRING,
        "varchar": STRING,
        "character": STRING,
        "char": STRING,
        "bpchar": STRING,
        "text": STRING,
        "citext": STRING,
        "name": STRING,

        "uuid": UUID,
        "boolean": BOOLEAN,
        "bool": BOOLEAN,

        # Date/Time types
        "timestamp": NAIVE_DATETIME,
        "timestamp without time zone": NAIVE_DATETIME,
        "timestamptz": ZONED_DATETIME,
        "timestamp with time zone": ZONED_DATETIME,
        "date": DATE,
        "time": TIME,
        "time without time zone": TIME,
        "time with time zone": TIME,
        "timetz": TIME,

        "bytea": BINARY,

        # Types carried as plain strings
        "interval": OPAQUE_STRING,
        "bit": OPAQUE_STRING,
        "bit varying": OPAQUE_STRING,
        "varbit": OPAQUE_STRING,
        "inet": OPAQUE_STRING,
        "cidr": OPAQUE_STRING,
        "macaddr": OPAQUE_STRING,
        "macaddr8": OPAQUE_STRING,
        "tsvector": OPAQUE_STRING,
        "tsquery": OPAQUE_STRING,
        "int4range": OPAQUE_STRING,
        "int8range": OPAQUE_STRING,
        "numrange": OPAQUE_STRING,
        "tsrange": OPAQUE_STRING,
        "tstzrange": OPAQUE_STRING,
        "daterange": OPAQUE_STRING,
        "xml": OPAQUE_STRING,
        "regclass": OPAQUE_STRING,
        "regproc": OPAQUE_STRING,
        "regtype": OPAQUE_STRING,
    }

    # PostGIS type name -> geometry subtype
    GEOMETRY_TYPES: Dict[str, str] = {
        "geometry": "Geometry",
        "point": "Point",
        "linestring": "LineString",
        "polygon": "Polygon",
        "multipoint": "MultiPoint",
        "multilinestring": "MultiLineString",
        "multipolygon": "MultiPolygon",
        "geometrycollection": "GeometryCollection",
    }

    JSON_TYPES: Dict[str, ManualResolutionType] = {
        "json": JSON_MANUAL,
        "jsonb": JSONB_MANUAL,
    }

    def map(
        self,
        native_type: str,
        enum_labels: Optional[Sequence[str]] = None,
        default: Optional[str] = None,
    ) -> PortableType:
        """Map a native type to its portable type.

        Args:
            native_type: Type as reported by the catalog, e.g. ``varchar(255)``
            enum_labels: Ordered labels when the type is an enumeration
            default: Raw default expression; accepted for completeness but
                     never changes the result (JSON stays manual)

        Returns:
            The portable type tag
        """
        base_type = normalize_native_type(native_type)

        if base_type in self.JSON_TYPES:
            return self.JSON_TYPES[base_type]

        if base_type in self.SCALAR_TYPES:
            return self.SCALAR_TYPES[base_type]

        if base_type.endswith("[]"):
            return ArrayType(self.map(base_type[:-2]))

        if base_type.startswith("_"):
            # Catalog array type names: _int4, _text, ...
            return ArrayType(self.map(base_type[1:]))

        if base_type in self.GEOMETRY_TYPES or base_type == "geography":
            return self._map_geometry(base_type, native_type)

        if base_type == "user-defined" and enum_labels:
            return EnumType(tuple(enum_labels))

        return OPAQUE_STRING

    def _map_geometry(self, base_type: str, native_type: str) -> GeometryType:
        geography = base_type == "geography"
        subtype = "Geography" if geography else self.GEOMETRY_TYPES[base_type]
        srid = None

        # PostGIS typmods: geometry(MultiPolygon,4326), geography(Point)
        match = _MODIFIER.search(native_type)
        if match:
            parts = [p.strip() for p in match.group(1).split(",") if p.strip()]
            if parts and parts[0].lower() in self.GEOMETRY_TYPES:
                subtype = self.GEOMETRY_TYPES[parts[0].lower()]
            if len(parts) > 1 and parts[1].isdigit():
                srid = int(parts[1])

        return GeometryType(subtype=subtype, geography=geography, srid=srid)


_default_mapper = PostgresTypeMapper()


def map_type(
    native_type: str,
    enum_labels: Optional[Sequence[str]] = None,
    default: Optional[str] = None,
) -> PortableType:
    """Map a native PostgreSQL type using the default mapper."""
    return _default_mapper.map(native_type, enum_labels, default)


def is_timestamp_type(native_type: str, timestamp_types: Sequence[str]) -> bool:
    """Check whether a native type belongs to the given timestamp family."""
    return normalize_native_type(native_type) in timestamp_types


def requires_special_import(portable_type: PortableType) -> bool:
    """Check if a type needs an import beyond the core ORM (PostGIS)."""
    if isinstance(portable_type, ArrayType):
        return requires_special_import(portable_type.inner)
    return isinstance(portable_type, GeometryType)
