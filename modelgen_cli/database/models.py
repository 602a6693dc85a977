"""Catalog data models for schema introspection."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class RelationKind(str, Enum):
    """Kind of catalog relation."""

    TABLE = "table"
    VIEW = "view"
    MATERIALIZED_VIEW = "materialized_view"


class ForeignKeyAction(str, Enum):
    """Referential action of a foreign key on update/delete."""

    NO_ACTION = "no_action"
    RESTRICT = "restrict"
    CASCADE = "cascade"
    SET_NULL = "set_null"
    SET_DEFAULT = "set_default"


_ACTION_CODES = {
    "a": ForeignKeyAction.NO_ACTION,
    "r": ForeignKeyAction.RESTRICT,
    "c": ForeignKeyAction.CASCADE,
    "n": ForeignKeyAction.SET_NULL,
    "d": ForeignKeyAction.SET_DEFAULT,
}

_CAST_LITERAL = re.compile(r"^'(.*)'::[\w ]+$", re.DOTALL)


def decode_action(code: Optional[str]) -> ForeignKeyAction:
    """Decode a pg_constraint confupdtype/confdeltype code.

    Unknown or missing codes decode to NO_ACTION.
    """
    return _ACTION_CODES.get(code or "", ForeignKeyAction.NO_ACTION)


def parse_default(default: Optional[str]) -> Optional[str]:
    """Clean up a raw column default expression.

    Sequence defaults (``nextval(...)``) and empty values become None,
    ``'value'::type`` casts are reduced to the literal value, and anything
    else (function calls such as ``gen_random_uuid()``) is returned verbatim.
    """
    if default is None or default == "":
        return None

    if "nextval(" in default:
        return None

    match = _CAST_LITERAL.match(default)
    if match:
        return match.group(1) or None

    return default


@dataclass(frozen=True)
class Relation:
    """A table, view or materialized view in the catalog."""
    name: str
    kind: RelationKind = RelationKind.TABLE
    comment: Optional[str] = None
    schema: str = "public"

    @property
    def is_table(self) -> bool:
        return self.kind == RelationKind.TABLE

    @property
    def is_view(self) -> bool:
        return self.kind in (RelationKind.VIEW, RelationKind.MATERIALIZED_VIEW)


@dataclass(frozen=True)
class Column:
    """A column of a relation, as reported by the catalog."""
    name: str
    native_type: str
    not_null: bool = False
    default: Optional[str] = None
    comment: Optional[str] = None
    position: int = 0
    enum_labels: Optional[Tuple[str, ...]] = None
    udt_name: Optional[str] = field(default=None, compare=False)

    @property
    def is_nullable(self) -> bool:
        return not self.not_null


@dataclass(frozen=True)
class ForeignKey:
    """A single-column foreign key constraint."""
    constraint_name: str
    local_column: str
    ref_schema: str
    ref_relation: str
    ref_column: str
    on_update: ForeignKeyAction = ForeignKeyAction.NO_ACTION
    on_delete: ForeignKeyAction = ForeignKeyAction.NO_ACTION


@dataclass(frozen=True)
class UniqueConstraint:
    """A unique constraint over one or more columns."""
    name: str
    columns: Tuple[str, ...]


@dataclass(frozen=True)
class CheckConstraint:
    """A check constraint with its raw definition text."""
    name: str
    definition: str


@dataclass(frozen=True)
class Index:
    """A non-primary index."""
    name: str
    columns: Tuple[str, ...]
    unique: bool = False
    definition: Optional[str] = None
