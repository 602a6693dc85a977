"""Foreign key topology analysis.

Turns the foreign keys of a schema into directed associations:

- owner references: this relation holds the foreign key
- inverse collections: another table's foreign key points here
- many-to-many: two owner references meeting in a junction table

Associations that cannot be resolved (a foreign key into a relation outside
the known set, for instance) are left out of the model. Each omission is
logged and recorded as a Diagnostic, but never raised.
"""

import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..database.base import CatalogReader
from ..database.models import ForeignKey, Relation
from .conventions import Conventions
from .inflection import pluralize, singularize
from .models import (
    Diagnostic,
    InverseCollection,
    ManyToMany,
    OwnerReference,
    RelationshipSet,
)

logger = logging.getLogger(__name__)


DANGLING_FOREIGN_KEY = "dangling_foreign_key"
JUNCTION_NEAR_MISS = "junction_near_miss"


class RelationshipAnalyzer:
    """Derives associations for a relation from catalog foreign keys.

    Output order follows the catalog's enumeration order of relations and
    constraints; callers needing strict reproducibility should pass the
    relations sorted by name.
    """

    def __init__(
        self,
        reader: CatalogReader,
        schema: str = "public",
        conventions: Optional[Conventions] = None,
    ):
        """Initialize the analyzer.

        Args:
            reader: Catalog reader used for foreign key and column lookups
            schema: Schema the analyzed relations live in
            conventions: Naming conventions (defaults to Conventions())
        """
        self.reader = reader
        self.schema = schema
        self.conventions = conventions or Conventions()

    def analyze(self, relation_name: str, all_relations: Sequence[Relation]) -> RelationshipSet:
        """Analyze all associations of a relation.

        Args:
            relation_name: Relation to analyze
            all_relations: Every relation with a model in this run

        Returns:
            RelationshipSet with owner references, inverse collections and
            many-to-many edges; inverse singulars are never populated
        """
        diagnostics: List[Diagnostic] = []
        foreign_keys = self.reader.get_foreign_keys(relation_name, self.schema)

        # One namespace per relation: columns first, then owner references,
        # many-to-many edges and inverse collections in that order
        taken = self._column_names(relation_name)
        owner_references = self.analyze_owner_references(
            relation_name, foreign_keys, all_relations, diagnostics, taken
        )
        many_to_many = self.analyze_many_to_many(relation_name, all_relations, diagnostics, taken)
        inverse_collections = self.analyze_inverse_collections(relation_name, all_relations, taken)

        logger.debug(
            "%s: %d owner reference(s), %d inverse collection(s), %d many-to-many",
            relation_name, len(owner_references), len(inverse_collections), len(many_to_many),
        )

        return RelationshipSet(
            owner_references=tuple(owner_references),
            inverse_collections=tuple(inverse_collections),
            inverse_singulars=(),
            many_to_many=tuple(many_to_many),
            diagnostics=tuple(diagnostics),
        )

    def analyze_owner_references(
        self,
        relation_name: str,
        foreign_keys: Sequence[ForeignKey],
        all_relations: Sequence[Relation],
        diagnostics: Optional[List[Diagnostic]] = None,
        taken: Optional[Set[str]] = None,
    ) -> List[OwnerReference]:
        """One owner reference per foreign key into a known relation.

        The field is the singular of the referenced relation. When that name
        is already a column or an earlier reference, the field is named after
        the foreign key column instead (``author_id`` gives ``author``, a
        bare ``category`` gives ``category_ref``).
        """
        known = self._known(all_relations)
        references = []
        used_fields = self._column_names(relation_name) if taken is None else taken

        for fk in foreign_keys:
            if (fk.ref_schema, fk.ref_relation) not in known:
                self._note(
                    diagnostics,
                    relation_name,
                    DANGLING_FOREIGN_KEY,
                    f"{fk.constraint_name}: {fk.local_column} references "
                    f"{fk.ref_schema}.{fk.ref_relation}, which has no model",
                )
                continue

            field_name = singularize(fk.ref_relation)
            if field_name in used_fields:
                field_name = self._field_from_column(fk.local_column)
            if field_name in used_fields:
                field_name = f"{fk.local_column}_ref"

            used_fields.add(field_name)
            references.append(OwnerReference(
                field=field_name,
                target=fk.ref_relation,
                foreign_key=fk.local_column,
                references=fk.ref_column,
                on_update=fk.on_update,
                on_delete=fk.on_delete,
            ))

        return references

    def analyze_inverse_collections(
        self,
        relation_name: str,
        all_relations: Sequence[Relation],
        taken: Optional[Set[str]] = None,
    ) -> List[InverseCollection]:
        """Collections of other tables whose foreign keys point here.

        References held by junction tables are left to the many-to-many
        analysis. Multiple foreign keys from the same table produce a single
        collection. A field name already in use becomes
        ``<table>_by_<fk column>``.
        """
        collections = []
        seen_targets: Set[str] = set()
        used_fields = self._column_names(relation_name) if taken is None else taken

        for other in self._tables(all_relations):
            if other.name == relation_name:
                continue

            referencing = [
                fk for fk in self.reader.get_foreign_keys(other.name, self.schema)
                if self._points_at(fk, relation_name)
            ]
            if not referencing or self.is_junction(other.name):
                continue

            for fk in referencing:
                if other.name in seen_targets:
                    continue
                seen_targets.add(other.name)
                field_name = pluralize(other.name)
                if field_name in used_fields:
                    field_name = f"{field_name}_by_{fk.local_column}"
                used_fields.add(field_name)
                collections.append(InverseCollection(
                    field=field_name,
                    target=other.name,
                    foreign_key=fk.local_column,
                ))

        return collections

    def analyze_many_to_many(
        self,
        relation_name: str,
        all_relations: Sequence[Relation],
        diagnostics: Optional[List[Diagnostic]] = None,
        taken: Optional[Set[str]] = None,
    ) -> List[ManyToMany]:
        """Many-to-many edges through junction tables referencing this relation.

        A field name already in use becomes ``<far table>_via_<junction>``.
        """
        known = self._known(all_relations)
        identifier = self.conventions.identifier_column
        edges = []
        seen_targets: Set[str] = set()
        used_fields = self._column_names(relation_name) if taken is None else taken

        for junction in self._tables(all_relations):
            foreign_keys = self.reader.get_foreign_keys(junction.name, self.schema)
            our_fks = [fk for fk in foreign_keys if self._points_at(fk, relation_name)]
            if not our_fks:
                continue

            if not self.is_junction(junction.name):
                self._note_near_miss(junction.name, relation_name, foreign_keys, diagnostics)
                continue

            for other_fk in foreign_keys:
                if self._points_at(other_fk, relation_name):
                    continue
                if (other_fk.ref_schema, other_fk.ref_relation) not in known:
                    self._note(
                        diagnostics,
                        relation_name,
                        DANGLING_FOREIGN_KEY,
                        f"junction {junction.name} references {other_fk.ref_schema}."
                        f"{other_fk.ref_relation}, which has no model",
                    )
                    continue
                if other_fk.ref_relation in seen_targets:
                    continue

                seen_targets.add(other_fk.ref_relation)
                field_name = pluralize(other_fk.ref_relation)
                if field_name in used_fields:
                    field_name = f"{field_name}_via_{junction.name}"
                used_fields.add(field_name)
                edges.append(ManyToMany(
                    field=field_name,
                    target=other_fk.ref_relation,
                    join_through=junction.name,
                    join_keys=(
                        (our_fks[0].local_column, identifier),
                        (identifier, other_fk.local_column),
                    ),
                ))

        return edges

    def is_junction(self, relation_name: str) -> bool:
        """Decide whether a table is a pure association (junction) table.

        It must have exactly two foreign keys and at most
        ``max_junction_extra_columns`` columns that are neither metadata
        (identifier, timestamps) nor part of those foreign keys. Tables
        carrying more business data are treated as entities of their own.
        """
        foreign_keys = self.reader.get_foreign_keys(relation_name, self.schema)
        if len(foreign_keys) != 2:
            return False

        return len(self._extra_columns(relation_name, foreign_keys)) <= self.conventions.max_junction_extra_columns

    def _extra_columns(self, relation_name: str, foreign_keys: Sequence[ForeignKey]) -> List[str]:
        fk_columns = {fk.local_column for fk in foreign_keys}
        meta = set(self.conventions.junction_meta_columns)
        return [
            col.name for col in self.reader.get_columns(relation_name, self.schema)
            if col.name not in meta and col.name not in fk_columns
        ]

    def _note_near_miss(
        self,
        junction_name: str,
        relation_name: str,
        foreign_keys: Sequence[ForeignKey],
        diagnostics: Optional[List[Diagnostic]],
    ):
        # Only two-FK tables can be near misses; others are plain entities
        if len(foreign_keys) != 2:
            return
        extra = self._extra_columns(junction_name, foreign_keys)
        self._note(
            diagnostics,
            relation_name,
            JUNCTION_NEAR_MISS,
            f"{junction_name} has two foreign keys but {len(extra)} extra column(s) "
            f"({', '.join(extra)}); treated as an entity, not a junction table",
        )

    def _column_names(self, relation_name: str) -> Set[str]:
        return {col.name for col in self.reader.get_columns(relation_name, self.schema)}

    def _points_at(self, fk: ForeignKey, relation_name: str) -> bool:
        return fk.ref_relation == relation_name and fk.ref_schema == self.schema

    def _known(self, all_relations: Sequence[Relation]) -> Set[Tuple[str, str]]:
        return {(r.schema, r.name) for r in all_relations}

    def _tables(self, all_relations: Sequence[Relation]) -> List[Relation]:
        return [r for r in all_relations if r.is_table and r.schema == self.schema]

    def _field_from_column(self, column_name: str) -> str:
        suffix = f"_{self.conventions.identifier_column}"
        if column_name.endswith(suffix) and len(column_name) > len(suffix):
            return column_name[: -len(suffix)]
        return f"{column_name}_ref"

    def _note(
        self,
        diagnostics: Optional[List[Diagnostic]],
        relation_name: str,
        code: str,
        message: str,
    ):
        logger.debug("%s: %s", relation_name, message)
        if diagnostics is not None:
            diagnostics.append(Diagnostic(relation=relation_name, code=code, message=message))


def junction_tables(
    reader: CatalogReader,
    relations: Sequence[Relation],
    schema: str = "public",
    conventions: Optional[Conventions] = None,
) -> Dict[str, bool]:
    """Classify every table of a schema as junction or not."""
    analyzer = RelationshipAnalyzer(reader, schema, conventions)
    return {r.name: analyzer.is_junction(r.name) for r in relations if r.is_table}
