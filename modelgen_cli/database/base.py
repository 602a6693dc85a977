"""Abstract base class for catalog readers."""

from abc import ABC, abstractmethod
from typing import List

from .models import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Relation,
    UniqueConstraint,
)


class CatalogReader(ABC):
    """Abstract base class for reading a relational catalog.

    Implementations are thin I/O wrappers: they issue catalog lookups and
    return descriptors without interpreting them. Any connectivity or query
    failure must be raised as a CatalogAccessError.
    """

    @abstractmethod
    def list_relations(self, schema: str, include_views: bool = True) -> List[Relation]:
        """List tables (and optionally views) in a schema.

        Args:
            schema: Schema name
            include_views: Whether to include views and materialized views

        Returns:
            Relations in a stable catalog order
        """
        pass

    @abstractmethod
    def get_columns(self, relation: str, schema: str) -> List[Column]:
        """Get all columns of a relation, ordered by position."""
        pass

    @abstractmethod
    def get_primary_key_columns(self, relation: str, schema: str) -> List[str]:
        """Get the primary key column names of a relation, in key order."""
        pass

    @abstractmethod
    def get_foreign_keys(self, relation: str, schema: str) -> List[ForeignKey]:
        """Get foreign key constraints defined on a relation."""
        pass

    @abstractmethod
    def get_unique_constraints(self, relation: str, schema: str) -> List[UniqueConstraint]:
        """Get unique constraints (excluding the primary key)."""
        pass

    @abstractmethod
    def get_check_constraints(self, relation: str, schema: str) -> List[CheckConstraint]:
        """Get check constraints of a relation."""
        pass

    @abstractmethod
    def get_indexes(self, relation: str, schema: str) -> List[Index]:
        """Get non-primary indexes of a relation."""
        pass

    def close(self):
        """Release any resources held by the reader."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
