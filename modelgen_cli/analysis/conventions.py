"""Naming and typing conventions used by the inference engine."""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Conventions:
    """Convention values consulted by the classifier, analyzer and assembler.

    Passed explicitly so callers (and tests) can vary the convention set
    without touching module state.
    """

    identifier_column: str = "id"
    inserted_at_column: str = "inserted_at"
    updated_at_column: str = "updated_at"

    # Columns a junction table may carry beyond its two foreign keys
    junction_meta_columns: Tuple[str, ...] = ("id", "inserted_at", "updated_at", "created_at")
    max_junction_extra_columns: int = 2

    timestamp_types: Tuple[str, ...] = (
        "timestamp",
        "timestamptz",
        "timestamp without time zone",
        "timestamp with time zone",
    )

    # Substring of a key default that means the database generates UUIDs
    uuid_default_marker: str = "uuid"

    integer_key_types: Tuple[str, ...] = ("integer", "bigint", "int4", "int8", "smallint", "int2")

    @property
    def timestamp_columns(self) -> Tuple[str, str]:
        return (self.inserted_at_column, self.updated_at_column)

    @classmethod
    def from_settings(cls, settings) -> "Conventions":
        """Build conventions from application settings.

        The junction meta columns follow the configured names so that a
        renamed identifier or timestamp column is still treated as metadata.
        """
        meta = (
            settings.identifier_column,
            settings.inserted_at_column,
            settings.updated_at_column,
            "created_at",
        )
        return cls(
            identifier_column=settings.identifier_column,
            inserted_at_column=settings.inserted_at_column,
            updated_at_column=settings.updated_at_column,
            junction_meta_columns=tuple(dict.fromkeys(meta)),
        )
