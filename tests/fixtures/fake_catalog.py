"""In-memory catalog reader for testing."""

from typing import Dict, List, Optional, Sequence, Tuple

from modelgen_cli.database.base import CatalogReader
from modelgen_cli.database.models import (
    CheckConstraint,
    Column,
    ForeignKey,
    ForeignKeyAction,
    Index,
    Relation,
    RelationKind,
    UniqueConstraint,
)
from modelgen_cli.errors import CatalogQueryError


def col(name: str, native_type: str, not_null: bool = False, default: Optional[str] = None, **kwargs) -> Column:
    """Shorthand for building a Column."""
    return Column(name=name, native_type=native_type, not_null=not_null, default=default, **kwargs)


def fk(
    local_column: str,
    ref_relation: str,
    ref_column: str = "id",
    ref_schema: str = "public",
    on_delete: ForeignKeyAction = ForeignKeyAction.NO_ACTION,
    on_update: ForeignKeyAction = ForeignKeyAction.NO_ACTION,
    constraint_name: Optional[str] = None,
) -> ForeignKey:
    """Shorthand for building a ForeignKey."""
    return ForeignKey(
        constraint_name=constraint_name or f"{local_column}_fkey",
        local_column=local_column,
        ref_schema=ref_schema,
        ref_relation=ref_relation,
        ref_column=ref_column,
        on_update=on_update,
        on_delete=on_delete,
    )


class FakeCatalogReader(CatalogReader):
    """CatalogReader answering from dictionaries.

    Records every call so tests can check how often the catalog was asked,
    and can be told to fail on a given method to simulate catalog errors.
    """

    def __init__(self):
        self.relations: List[Relation] = []
        self.columns: Dict[Tuple[str, str], List[Column]] = {}
        self.primary_keys: Dict[Tuple[str, str], List[str]] = {}
        self.foreign_keys: Dict[Tuple[str, str], List[ForeignKey]] = {}
        self.unique_constraints: Dict[Tuple[str, str], List[UniqueConstraint]] = {}
        self.check_constraints: Dict[Tuple[str, str], List[CheckConstraint]] = {}
        self.indexes: Dict[Tuple[str, str], List[Index]] = {}
        self.calls: List[Tuple[str, tuple]] = []
        self.fail_on: Optional[str] = None
        self.closed = False

    def add_relation(
        self,
        name: str,
        columns: Sequence[Column],
        primary_key: Sequence[str] = (),
        foreign_keys: Sequence[ForeignKey] = (),
        kind: RelationKind = RelationKind.TABLE,
        schema: str = "public",
        unique_constraints: Sequence[UniqueConstraint] = (),
        check_constraints: Sequence[CheckConstraint] = (),
        indexes: Sequence[Index] = (),
        comment: Optional[str] = None,
    ) -> "FakeCatalogReader":
        key = (schema, name)
        self.relations.append(Relation(name=name, kind=kind, comment=comment, schema=schema))
        self.columns[key] = [
            Column(
                name=c.name,
                native_type=c.native_type,
                not_null=c.not_null,
                default=c.default,
                comment=c.comment,
                position=i + 1,
                enum_labels=c.enum_labels,
                udt_name=c.udt_name,
            )
            for i, c in enumerate(columns)
        ]
        self.primary_keys[key] = list(primary_key)
        self.foreign_keys[key] = list(foreign_keys)
        self.unique_constraints[key] = list(unique_constraints)
        self.check_constraints[key] = list(check_constraints)
        self.indexes[key] = list(indexes)
        return self

    def _record(self, method: str, *args):
        self.calls.append((method, args))
        if self.fail_on == method:
            raise CatalogQueryError(f"{method} failed", details={"args": list(args)})

    def call_count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    def list_relations(self, schema: str, include_views: bool = True) -> List[Relation]:
        self._record("list_relations", schema, include_views)
        relations = [r for r in self.relations if r.schema == schema]
        if not include_views:
            relations = [r for r in relations if r.is_table]
        return relations

    def get_columns(self, relation: str, schema: str) -> List[Column]:
        self._record("get_columns", relation, schema)
        return list(self.columns.get((schema, relation), []))

    def get_primary_key_columns(self, relation: str, schema: str) -> List[str]:
        self._record("get_primary_key_columns", relation, schema)
        return list(self.primary_keys.get((schema, relation), []))

    def get_foreign_keys(self, relation: str, schema: str) -> List[ForeignKey]:
        self._record("get_foreign_keys", relation, schema)
        return list(self.foreign_keys.get((schema, relation), []))

    def get_unique_constraints(self, relation: str, schema: str) -> List[UniqueConstraint]:
        self._record("get_unique_constraints", relation, schema)
        return list(self.unique_constraints.get((schema, relation), []))

    def get_check_constraints(self, relation: str, schema: str) -> List[CheckConstraint]:
        self._record("get_check_constraints", relation, schema)
        return list(self.check_constraints.get((schema, relation), []))

    def get_indexes(self, relation: str, schema: str) -> List[Index]:
        self._record("get_indexes", relation, schema)
        return list(self.indexes.get((schema, relation), []))

    def close(self):
        self.closed = True


def build_blog_catalog() -> FakeCatalogReader:
    """users (uuid key generated by the database) and posts referencing them."""
    reader = FakeCatalogReader()
    reader.add_relation(
        "posts",
        columns=[
            col("id", "uuid", not_null=True),
            col("user_id", "uuid"),
            col("title", "character varying(255)", not_null=True),
        ],
        primary_key=["id"],
        foreign_keys=[fk("user_id", "users", on_delete=ForeignKeyAction.CASCADE)],
    )
    reader.add_relation(
        "users",
        columns=[
            col("id", "uuid", not_null=True, default="gen_random_uuid()"),
            col("email", "character varying(255)", not_null=True),
            col("inserted_at", "timestamp without time zone", not_null=True),
            col("updated_at", "timestamp without time zone", not_null=True),
        ],
        primary_key=["id"],
        unique_constraints=[UniqueConstraint(name="users_email_key", columns=("email",))],
        indexes=[Index(name="users_email_key", columns=("email",), unique=True)],
    )
    return reader


def build_teams_catalog() -> FakeCatalogReader:
    """users and teams joined through the users_teams junction table."""
    reader = FakeCatalogReader()
    reader.add_relation(
        "teams",
        columns=[
            col("id", "uuid", not_null=True, default="gen_random_uuid()"),
            col("name", "text", not_null=True),
        ],
        primary_key=["id"],
    )
    reader.add_relation(
        "users",
        columns=[
            col("id", "uuid", not_null=True, default="gen_random_uuid()"),
            col("email", "character varying(255)", not_null=True),
        ],
        primary_key=["id"],
    )
    reader.add_relation(
        "users_teams",
        columns=[
            col("user_id", "uuid", not_null=True),
            col("team_id", "uuid", not_null=True),
        ],
        foreign_keys=[fk("user_id", "users"), fk("team_id", "teams")],
    )
    return reader


def build_owned_teams_catalog() -> FakeCatalogReader:
    """The teams catalog where every team also has an owning user."""
    reader = FakeCatalogReader()
    reader.add_relation(
        "teams",
        columns=[
            col("id", "uuid", not_null=True, default="gen_random_uuid()"),
            col("name", "text", not_null=True),
            col("owner_id", "uuid"),
        ],
        primary_key=["id"],
        foreign_keys=[fk("owner_id", "users")],
    )
    reader.add_relation(
        "users",
        columns=[
            col("id", "uuid", not_null=True, default="gen_random_uuid()"),
            col("email", "character varying(255)", not_null=True),
        ],
        primary_key=["id"],
    )
    reader.add_relation(
        "users_teams",
        columns=[
            col("user_id", "uuid", not_null=True),
            col("team_id", "uuid", not_null=True),
        ],
        foreign_keys=[fk("user_id", "users"), fk("team_id", "teams")],
    )
    return reader
