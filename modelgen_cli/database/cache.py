"""Memoizing catalog reader wrapper."""

import logging
import threading
from typing import Any, Callable, Dict, List, Tuple

from .base import CatalogReader
from .models import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Relation,
    UniqueConstraint,
)

logger = logging.getLogger(__name__)


class CachingCatalogReader(CatalogReader):
    """Wraps a reader and answers each distinct lookup only once.

    Relationship analysis fetches the foreign keys of every table once per
    analyzed relation. The model is a one-shot snapshot, so repeating those
    lookups within a run cannot yield different answers.

    Errors are not cached: a failed lookup propagates and is retried only if
    the caller asks again.
    """

    def __init__(self, reader: CatalogReader):
        self.reader = reader
        self._cache: Dict[Tuple[str, Tuple[Any, ...]], Any] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _cached(self, method: str, loader: Callable[..., Any], *args: Any) -> Any:
        key = (method, args)
        with self._lock:
            if key in self._cache:
                self.hits += 1
                return self._cache[key]

        value = loader(*args)

        with self._lock:
            self.misses += 1
            self._cache.setdefault(key, value)
            return self._cache[key]

    def list_relations(self, schema: str, include_views: bool = True) -> List[Relation]:
        return self._cached("list_relations", self.reader.list_relations, schema, include_views)

    def get_columns(self, relation: str, schema: str) -> List[Column]:
        return self._cached("get_columns", self.reader.get_columns, relation, schema)

    def get_primary_key_columns(self, relation: str, schema: str) -> List[str]:
        return self._cached("get_primary_key_columns", self.reader.get_primary_key_columns, relation, schema)

    def get_foreign_keys(self, relation: str, schema: str) -> List[ForeignKey]:
        return self._cached("get_foreign_keys", self.reader.get_foreign_keys, relation, schema)

    def get_unique_constraints(self, relation: str, schema: str) -> List[UniqueConstraint]:
        return self._cached("get_unique_constraints", self.reader.get_unique_constraints, relation, schema)

    def get_check_constraints(self, relation: str, schema: str) -> List[CheckConstraint]:
        return self._cached("get_check_constraints", self.reader.get_check_constraints, relation, schema)

    def get_indexes(self, relation: str, schema: str) -> List[Index]:
        return self._cached("get_indexes", self.reader.get_indexes, relation, schema)

    def close(self):
        logger.debug("Catalog cache: %d hit(s), %d miss(es)", self.hits, self.misses)
        self.reader.close()
