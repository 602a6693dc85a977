"""Assembles per-relation entity models from catalog metadata."""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import List, Optional, Sequence

from ..database.base import CatalogReader
from ..database.models import Relation
from ..database.type_mappers import INTEGER, PostgresTypeMapper, TypeMapper, normalize_native_type
from .key_classifier import classify_primary_key, is_timestamp_field, timestamps_eligible
from .models import (
    ClassifiedColumn,
    EntityModel,
    KeyShape,
    RelationshipSet,
    RunOptions,
    SchemaModel,
)
from .relationship_analyzer import RelationshipAnalyzer

logger = logging.getLogger(__name__)


class SchemaModelBuilder:
    """Builds EntityModels for the relations of one schema.

    Combines the type mapper, key classifier and relationship analyzer. The
    builder never mutates the reader's data and holds no per-relation state,
    so entities can be built concurrently against a thread-safe reader.
    """

    def __init__(
        self,
        reader: CatalogReader,
        schema: str = "public",
        options: Optional[RunOptions] = None,
        type_mapper: Optional[TypeMapper] = None,
    ):
        """Initialize the builder.

        Args:
            reader: Catalog reader for the target database
            schema: Schema to introspect
            options: Run-level options (defaults to RunOptions())
            type_mapper: Native type mapper (defaults to PostgresTypeMapper)
        """
        self.reader = reader
        self.schema = schema
        self.options = options or RunOptions()
        self.conventions = self.options.conventions
        self.type_mapper = type_mapper or PostgresTypeMapper()
        self.analyzer = RelationshipAnalyzer(reader, schema, self.conventions)

    def list_relations(self, table: Optional[str] = None) -> List[Relation]:
        """List in-scope relations, optionally narrowed to a single name."""
        relations = self.reader.list_relations(self.schema, include_views=self.options.include_views)
        if table:
            relations = [r for r in relations if r.name == table]
        return list(relations)

    def build(
        self,
        table: Optional[str] = None,
        relations: Optional[Sequence[Relation]] = None,
        workers: int = 1,
    ) -> SchemaModel:
        """Build the model of every in-scope relation.

        Associations are resolved against the full relation list, even when
        ``table`` narrows the output to one relation.

        Args:
            table: Only build this relation
            relations: Pre-fetched relation list (skips list_relations)
            workers: Number of threads; entities keep catalog order either way

        Returns:
            SchemaModel with one EntityModel per relation

        Raises:
            CatalogAccessError: If any catalog call fails; no partial result
        """
        all_relations = list(relations) if relations is not None else self.list_relations()
        targets = [r for r in all_relations if not table or r.name == table]

        logger.info(
            "Building %d entit%s in schema %s",
            len(targets), "y" if len(targets) == 1 else "ies", self.schema,
        )

        if workers > 1 and len(targets) > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                # map() yields results in submission order
                entities = list(executor.map(
                    lambda relation: self.build_entity(relation, all_relations), targets
                ))
        else:
            entities = [self.build_entity(relation, all_relations) for relation in targets]

        return SchemaModel(schema=self.schema, entities=tuple(entities), options=self.options)

    def build_entity(self, relation: Relation, all_relations: Sequence[Relation]) -> EntityModel:
        """Build the model of a single relation.

        Args:
            relation: Relation to model
            all_relations: Every relation known to this run

        Returns:
            EntityModel ready for the code emitter
        """
        logger.debug("Building entity for %s.%s", self.schema, relation.name)

        columns = self.reader.get_columns(relation.name, self.schema)
        pk_columns = self.reader.get_primary_key_columns(relation.name, self.schema)

        classified = tuple(
            ClassifiedColumn(
                column=col,
                portable_type=self.type_mapper.map(col.native_type, col.enum_labels, col.default),
            )
            for col in columns
        )

        primary_key = classify_primary_key(columns, pk_columns, self.conventions)
        uses_uuid_keys = self.options.binary_id or primary_key.is_uuid
        timestamps = timestamps_eligible(columns, self.conventions) and not self.options.skip_timestamps

        if relation.is_table and not self.options.skip_associations:
            associations = self.analyzer.analyze(relation.name, all_relations)
            if uses_uuid_keys:
                associations = self._annotate_key_types(associations, columns)
        else:
            associations = RelationshipSet()

        if relation.is_table:
            unique_constraints = tuple(self.reader.get_unique_constraints(relation.name, self.schema))
            check_constraints = tuple(self.reader.get_check_constraints(relation.name, self.schema))
            indexes = tuple(self.reader.get_indexes(relation.name, self.schema))
        else:
            unique_constraints, check_constraints, indexes = (), (), ()

        fk_columns = {ref.foreign_key for ref in associations.owner_references}
        fields = tuple(
            col for col in classified
            if not self._is_structural(col.name, primary_key.shape, fk_columns, timestamps)
        )

        writable, required = (), ()
        if relation.is_table:
            writable, required = self._writable_fields(classified, primary_key, timestamps)

        return EntityModel(
            relation=relation,
            columns=classified,
            fields=fields,
            primary_key=primary_key,
            uses_uuid_keys=uses_uuid_keys,
            timestamps=timestamps,
            associations=associations,
            unique_constraints=unique_constraints,
            check_constraints=check_constraints,
            indexes=indexes,
            writable_fields=writable,
            required_fields=required,
        )

    def _is_structural(self, name: str, shape: KeyShape, fk_columns, timestamps: bool) -> bool:
        """Whether a column is rendered by something other than a plain field."""
        if name == self.conventions.identifier_column and shape == KeyShape.SURROGATE:
            return True
        if name in fk_columns:
            return True
        return timestamps and is_timestamp_field(name, self.conventions)

    def _annotate_key_types(self, associations: RelationshipSet, columns) -> RelationshipSet:
        """Mark owner references whose FK column is integer-typed under UUID keys."""
        native_types = {c.name: normalize_native_type(c.native_type) for c in columns}
        integer_types = set(self.conventions.integer_key_types)

        owner_references = []
        for ref in associations.owner_references:
            if native_types.get(ref.foreign_key) in integer_types:
                ref = replace(ref, key_type_override=INTEGER)
            owner_references.append(ref)

        return replace(associations, owner_references=tuple(owner_references))

    def _writable_fields(self, classified, primary_key, timestamps: bool):
        identifier = self.conventions.identifier_column
        single_key = primary_key.name if primary_key.is_single else None

        writable = [
            col for col in classified
            if col.name != identifier
            and not (timestamps and is_timestamp_field(col.name, self.conventions))
        ]
        required = [
            col.name for col in writable
            if col.column.not_null and col.column.default is None and col.name != single_key
        ]
        return tuple(col.name for col in writable), tuple(required)
