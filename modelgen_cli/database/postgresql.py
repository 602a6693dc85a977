"""PostgreSQL catalog reader."""

import logging
import threading
from typing import Any, List, Optional, Sequence, Tuple

import psycopg2

from ..errors import CatalogConnectionError, CatalogQueryError, ConfigurationError
from .base import CatalogReader
from .models import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Relation,
    RelationKind,
    UniqueConstraint,
    decode_action,
    parse_default,
)

logger = logging.getLogger(__name__)


LIST_RELATIONS_SQL = """
    SELECT
      c.relname AS relation_name,
      CASE c.relkind
        WHEN 'r' THEN 'table'
        WHEN 'p' THEN 'table'
        WHEN 'v' THEN 'view'
        WHEN 'm' THEN 'materialized_view'
      END AS relation_kind,
      obj_description(c.oid, 'pg_class') AS comment
    FROM pg_catalog.pg_class c
    INNER JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    WHERE n.nspname = %s
      AND c.relkind IN ({kinds})
      AND NOT c.relispartition
    ORDER BY c.relname
"""

COLUMNS_SQL = """
    SELECT
      a.attname AS column_name,
      CASE
        WHEN t.typtype = 'e' THEN 'USER-DEFINED'
        ELSE pg_catalog.format_type(a.atttypid, a.atttypmod)
      END AS data_type,
      a.attnotnull AS not_null,
      pg_get_expr(d.adbin, d.adrelid) AS default_value,
      col_description(c.oid, a.attnum) AS comment,
      a.attnum AS ordinal_position,
      CASE
        WHEN t.typtype = 'e' THEN
          ARRAY(
            SELECT e.enumlabel
            FROM pg_catalog.pg_enum e
            WHERE e.enumtypid = a.atttypid
            ORDER BY e.enumsortorder
          )
        ELSE NULL
      END AS enum_labels,
      t.typname AS udt_name
    FROM pg_catalog.pg_attribute a
    INNER JOIN pg_catalog.pg_class c ON c.oid = a.attrelid
    INNER JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    INNER JOIN pg_catalog.pg_type t ON t.oid = a.atttypid
    LEFT JOIN pg_catalog.pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
    WHERE n.nspname = %s
      AND c.relname = %s
      AND a.attnum > 0
      AND NOT a.attisdropped
    ORDER BY a.attnum
"""

PRIMARY_KEY_SQL = """
    SELECT a.attname AS column_name
    FROM pg_catalog.pg_constraint con
    INNER JOIN pg_catalog.pg_class c ON c.oid = con.conrelid
    INNER JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    INNER JOIN pg_catalog.pg_attribute a ON a.attrelid = c.oid AND a.attnum = ANY(con.conkey)
    WHERE n.nspname = %s
      AND c.relname = %s
      AND con.contype = 'p'
    ORDER BY array_position(con.conkey, a.attnum)
"""

FOREIGN_KEYS_SQL = """
    SELECT
      con.conname AS constraint_name,
      a.attname AS column_name,
      fn.nspname AS foreign_schema,
      fc.relname AS foreign_table,
      fa.attname AS foreign_column,
      con.confupdtype AS on_update,
      con.confdeltype AS on_delete
    FROM pg_catalog.pg_constraint con
    INNER JOIN pg_catalog.pg_class c ON c.oid = con.conrelid
    INNER JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    CROSS JOIN LATERAL unnest(con.conkey, con.confkey) WITH ORDINALITY AS k(attnum, fattnum, ord)
    INNER JOIN pg_catalog.pg_attribute a ON a.attrelid = c.oid AND a.attnum = k.attnum
    INNER JOIN pg_catalog.pg_class fc ON fc.oid = con.confrelid
    INNER JOIN pg_catalog.pg_namespace fn ON fn.oid = fc.relnamespace
    INNER JOIN pg_catalog.pg_attribute fa ON fa.attrelid = fc.oid AND fa.attnum = k.fattnum
    WHERE n.nspname = %s
      AND c.relname = %s
      AND con.contype = 'f'
    ORDER BY con.conname, k.ord
"""

UNIQUE_CONSTRAINTS_SQL = """
    SELECT
      con.conname AS constraint_name,
      ARRAY_AGG(a.attname ORDER BY array_position(con.conkey, a.attnum)) AS columns
    FROM pg_catalog.pg_constraint con
    INNER JOIN pg_catalog.pg_class c ON c.oid = con.conrelid
    INNER JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    INNER JOIN pg_catalog.pg_attribute a ON a.attrelid = c.oid AND a.attnum = ANY(con.conkey)
    WHERE n.nspname = %s
      AND c.relname = %s
      AND con.contype = 'u'
    GROUP BY con.conname
    ORDER BY con.conname
"""

CHECK_CONSTRAINTS_SQL = """
    SELECT
      con.conname AS constraint_name,
      pg_get_constraintdef(con.oid) AS definition
    FROM pg_catalog.pg_constraint con
    INNER JOIN pg_catalog.pg_class c ON c.oid = con.conrelid
    INNER JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    WHERE n.nspname = %s
      AND c.relname = %s
      AND con.contype = 'c'
    ORDER BY con.conname
"""

INDEXES_SQL = """
    SELECT
      i.relname AS index_name,
      ARRAY_AGG(a.attname ORDER BY array_position(ix.indkey::int[], a.attnum::int)) AS columns,
      ix.indisunique AS is_unique,
      pg_get_indexdef(i.oid) AS definition
    FROM pg_catalog.pg_index ix
    INNER JOIN pg_catalog.pg_class c ON c.oid = ix.indrelid
    INNER JOIN pg_catalog.pg_class i ON i.oid = ix.indexrelid
    INNER JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    INNER JOIN pg_catalog.pg_attribute a ON a.attrelid = c.oid AND a.attnum = ANY(ix.indkey::int[])
    WHERE n.nspname = %s
      AND c.relname = %s
      AND NOT ix.indisprimary
    GROUP BY i.relname, i.oid, ix.indisunique
    ORDER BY i.relname
"""


class PostgresCatalogReader(CatalogReader):
    """Reads relation metadata from PostgreSQL's pg_catalog.

    A single connection is opened lazily and used for the whole run inside
    one read-only REPEATABLE READ transaction, so every lookup sees the same
    snapshot. Queries are serialized with a lock, which makes one reader safe
    to share between analysis threads.
    """

    def __init__(
        self,
        dsn: str,
        connect_timeout: int = 10,
        statement_timeout_ms: int = 30000,
    ):
        """Initialize the reader.

        Args:
            dsn: libpq connection string or postgresql:// URL
            connect_timeout: Seconds to wait when connecting
            statement_timeout_ms: Server-side limit for each catalog query
        """
        self.dsn = dsn
        self.connect_timeout = connect_timeout
        self.statement_timeout_ms = statement_timeout_ms
        self._connection = None
        self._lock = threading.Lock()

    def connect(self):
        """Open the connection if it is not open yet."""
        if self._connection is not None:
            return self._connection

        try:
            self._connection = psycopg2.connect(
                self.dsn,
                connect_timeout=self.connect_timeout,
                options=f"-c statement_timeout={self.statement_timeout_ms}",
                application_name="modelgen",
            )
            self._connection.set_session(isolation_level="REPEATABLE READ", readonly=True)
        except psycopg2.Error as e:
            self._connection = None
            raise CatalogConnectionError(
                f"Could not connect to PostgreSQL: {e}",
                details={"connect_timeout": self.connect_timeout},
            ) from e

        logger.info("Connected to PostgreSQL (statement timeout %d ms)", self.statement_timeout_ms)
        return self._connection

    def close(self):
        """Close the connection."""
        if self._connection is not None:
            try:
                self._connection.rollback()
            finally:
                self._connection.close()
                self._connection = None

    def _execute_query(self, sql: str, params: Sequence[Any]) -> List[Tuple]:
        """Execute a catalog query and return all rows."""
        with self._lock:
            conn = self.connect()
            try:
                with conn.cursor() as cursor:
                    cursor.execute(sql, params)
                    return cursor.fetchall()
            except psycopg2.Error as e:
                raise CatalogQueryError(
                    f"Catalog query failed: {e}",
                    details={"params": list(params)},
                ) from e

    def list_relations(self, schema: str, include_views: bool = True) -> List[Relation]:
        kinds = ["'r'", "'p'"]
        if include_views:
            kinds.extend(["'v'", "'m'"])

        rows = self._execute_query(LIST_RELATIONS_SQL.format(kinds=", ".join(kinds)), (schema,))
        relations = [
            Relation(name=name, kind=RelationKind(kind), comment=comment, schema=schema)
            for name, kind, comment in rows
        ]
        logger.debug("Schema %s has %d relation(s)", schema, len(relations))
        return relations

    def get_columns(self, relation: str, schema: str) -> List[Column]:
        rows = self._execute_query(COLUMNS_SQL, (schema, relation))

        columns = []
        for name, data_type, not_null, default, comment, position, enum_labels, udt_name in rows:
            columns.append(Column(
                name=name,
                native_type=data_type,
                not_null=bool(not_null),
                default=parse_default(default),
                comment=comment,
                position=position,
                enum_labels=tuple(enum_labels) if enum_labels is not None else None,
                udt_name=udt_name,
            ))
        return columns

    def get_primary_key_columns(self, relation: str, schema: str) -> List[str]:
        rows = self._execute_query(PRIMARY_KEY_SQL, (schema, relation))
        return [row[0] for row in rows]

    def get_foreign_keys(self, relation: str, schema: str) -> List[ForeignKey]:
        rows = self._execute_query(FOREIGN_KEYS_SQL, (schema, relation))

        # Multi-column constraints are represented by their first column
        first_rows = {}
        for row in rows:
            first_rows.setdefault(row[0], row)

        return [
            ForeignKey(
                constraint_name=constraint_name,
                local_column=column_name,
                ref_schema=foreign_schema,
                ref_relation=foreign_table,
                ref_column=foreign_column,
                on_update=decode_action(on_update),
                on_delete=decode_action(on_delete),
            )
            for constraint_name, column_name, foreign_schema, foreign_table, foreign_column, on_update, on_delete
            in first_rows.values()
        ]

    def get_unique_constraints(self, relation: str, schema: str) -> List[UniqueConstraint]:
        rows = self._execute_query(UNIQUE_CONSTRAINTS_SQL, (schema, relation))
        return [UniqueConstraint(name=name, columns=tuple(columns)) for name, columns in rows]

    def get_check_constraints(self, relation: str, schema: str) -> List[CheckConstraint]:
        rows = self._execute_query(CHECK_CONSTRAINTS_SQL, (schema, relation))
        return [CheckConstraint(name=name, definition=definition) for name, definition in rows]

    def get_indexes(self, relation: str, schema: str) -> List[Index]:
        rows = self._execute_query(INDEXES_SQL, (schema, relation))
        return [
            Index(name=name, columns=tuple(columns), unique=bool(is_unique), definition=definition)
            for name, columns, is_unique, definition in rows
        ]


def create_reader(
    dsn: Optional[str],
    connect_timeout: int = 10,
    statement_timeout_ms: int = 30000,
) -> PostgresCatalogReader:
    """Build a PostgreSQL reader, failing early when no DSN is configured."""
    if not dsn:
        raise ConfigurationError(
            "No database URL configured. Pass --dsn or set MODELGEN_DATABASE_URL."
        )
    return PostgresCatalogReader(
        dsn,
        connect_timeout=connect_timeout,
        statement_timeout_ms=statement_timeout_ms,
    )
