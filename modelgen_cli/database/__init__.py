"""Database catalog access for modelgen.

This module provides the catalog reader contract and its PostgreSQL
implementation, the relation metadata models and the native type mapping.
"""

from .models import (
    CheckConstraint,
    Column,
    ForeignKey,
    ForeignKeyAction,
    Index,
    Relation,
    RelationKind,
    UniqueConstraint,
)
from .base import CatalogReader
from .cache import CachingCatalogReader
from .postgresql import PostgresCatalogReader, create_reader
from .type_mappers import PortableType, PostgresTypeMapper, TypeMapper, map_type

__all__ = [
    # Data models
    "CheckConstraint",
    "Column",
    "ForeignKey",
    "ForeignKeyAction",
    "Index",
    "Relation",
    "RelationKind",
    "UniqueConstraint",
    # Readers
    "CatalogReader",
    "CachingCatalogReader",
    "PostgresCatalogReader",
    "create_reader",
    # Type mappers
    "PortableType",
    "TypeMapper",
    "PostgresTypeMapper",
    "map_type",
]
