"""Primary key and timestamp convention classification."""

from typing import Optional, Sequence

from ..database.models import Column
from ..database.type_mappers import UUID, is_timestamp_type, map_type
from .conventions import Conventions
from .models import KeyShape, PrimaryKeyInfo


def classify_primary_key(
    columns: Sequence[Column],
    pk_column_names: Sequence[str],
    conventions: Optional[Conventions] = None,
) -> PrimaryKeyInfo:
    """Derive the structural facts of a relation's primary key.

    Rules, in priority order:
    1. no key columns: key-less (views usually are)
    2. one key column named like the conventional identifier: surrogate
    3. one key column with any other name: named, reporting the name
    4. several key columns: composite; no single-column generation applies

    For single keys the UUID-ness comes from the column's native type, and a
    default expression mentioning a UUID generator means the database, not
    the client, produces the value.
    """
    conventions = conventions or Conventions()
    pk_columns = tuple(pk_column_names)

    if not pk_columns:
        return PrimaryKeyInfo(columns=(), shape=KeyShape.NONE)

    if len(pk_columns) > 1:
        return PrimaryKeyInfo(columns=pk_columns, shape=KeyShape.COMPOSITE)

    pk_name = pk_columns[0]
    shape = KeyShape.SURROGATE if pk_name == conventions.identifier_column else KeyShape.NAMED

    pk_column = next((c for c in columns if c.name == pk_name), None)
    if pk_column is None:
        return PrimaryKeyInfo(columns=pk_columns, shape=shape, name=pk_name)

    is_uuid = map_type(pk_column.native_type) == UUID
    has_db_default = bool(pk_column.default) and conventions.uuid_default_marker in pk_column.default

    return PrimaryKeyInfo(
        columns=pk_columns,
        shape=shape,
        name=pk_name,
        is_uuid=is_uuid,
        has_db_default=has_db_default,
    )


def is_timestamp_field(name: str, conventions: Optional[Conventions] = None) -> bool:
    """Check if a column name is one of the canonical timestamp columns."""
    conventions = conventions or Conventions()
    return name in conventions.timestamp_columns


def timestamps_eligible(columns: Sequence[Column], conventions: Optional[Conventions] = None) -> bool:
    """Check whether the timestamp convention can replace two columns.

    True only when both canonical columns exist and both use a timestamp
    type. A single column, a differently named pair or a non-timestamp type
    all make the relation ineligible.
    """
    conventions = conventions or Conventions()
    by_name = {c.name: c for c in columns if is_timestamp_field(c.name, conventions)}

    inserted = by_name.get(conventions.inserted_at_column)
    updated = by_name.get(conventions.updated_at_column)
    if inserted is None or updated is None:
        return False

    return (
        is_timestamp_type(inserted.native_type, conventions.timestamp_types)
        and is_timestamp_type(updated.native_type, conventions.timestamp_types)
    )
