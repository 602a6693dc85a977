"""Data models produced by the inference engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from ..database.models import (
    CheckConstraint,
    Column,
    ForeignKeyAction,
    Index,
    Relation,
    UniqueConstraint,
)
from ..database.type_mappers import PortableType
from .conventions import Conventions


class KeyShape(str, Enum):
    """Structural shape of a relation's primary key."""

    NONE = "none"  # key-less, typical for views
    SURROGATE = "surrogate"  # single column named by convention
    NAMED = "named"  # single column with another name
    COMPOSITE = "composite"


@dataclass(frozen=True)
class PrimaryKeyInfo:
    """Primary key facts the emitter needs.

    ``has_db_default`` means the database generates the key value (its
    default expression calls a UUID generator).
    """

    columns: Tuple[str, ...]
    shape: KeyShape
    name: Optional[str] = None
    is_uuid: bool = False
    has_db_default: bool = False

    @property
    def is_single(self) -> bool:
        return self.shape in (KeyShape.SURROGATE, KeyShape.NAMED)

    @property
    def is_single_surrogate(self) -> bool:
        """Single key column named by the identifier convention, of any type."""
        return self.shape == KeyShape.SURROGATE

    @property
    def client_autogenerate(self) -> bool:
        """Whether the client must generate UUID key values itself."""
        return self.is_single and self.is_uuid and not self.has_db_default

    @property
    def database_generated(self) -> bool:
        """Whether the database supplies key values (sequence or UUID default)."""
        return self.is_single and not self.client_autogenerate


class AssociationKind(str, Enum):
    """Kind of association between two relations."""

    OWNER_REFERENCE = "owner_reference"
    INVERSE_COLLECTION = "inverse_collection"
    INVERSE_SINGULAR = "inverse_singular"
    MANY_TO_MANY = "many_to_many"


@dataclass(frozen=True)
class AssociationDescriptor:
    """Common part of all association variants."""

    field: str
    target: str

    kind = None  # overridden by each variant


@dataclass(frozen=True)
class OwnerReference(AssociationDescriptor):
    """This relation holds the foreign key."""

    foreign_key: str = ""
    references: str = "id"
    on_update: ForeignKeyAction = ForeignKeyAction.NO_ACTION
    on_delete: ForeignKeyAction = ForeignKeyAction.NO_ACTION
    # Set when the FK column type differs from the run's key strategy
    key_type_override: Optional[PortableType] = None

    kind = AssociationKind.OWNER_REFERENCE


@dataclass(frozen=True)
class InverseCollection(AssociationDescriptor):
    """Another relation's foreign key points here."""

    foreign_key: str = ""

    kind = AssociationKind.INVERSE_COLLECTION


@dataclass(frozen=True)
class InverseSingular(AssociationDescriptor):
    """One-to-one inverse side.

    Reserved: telling one-to-one from one-to-many needs a uniqueness check on
    the foreign key column, which the analyzer does not perform, so this
    variant is never populated.
    """

    foreign_key: str = ""

    kind = AssociationKind.INVERSE_SINGULAR


@dataclass(frozen=True)
class ManyToMany(AssociationDescriptor):
    """Two owner references meeting in a junction relation."""

    join_through: str = ""
    join_keys: Tuple[Tuple[str, str], Tuple[str, str]] = (("", ""), ("", ""))

    kind = AssociationKind.MANY_TO_MANY


@dataclass(frozen=True)
class Diagnostic:
    """Note about an association the analyzer could not resolve."""

    relation: str
    code: str
    message: str


@dataclass(frozen=True)
class RelationshipSet:
    """All associations of one relation."""

    owner_references: Tuple[OwnerReference, ...] = ()
    inverse_collections: Tuple[InverseCollection, ...] = ()
    inverse_singulars: Tuple[InverseSingular, ...] = ()
    many_to_many: Tuple[ManyToMany, ...] = ()
    diagnostics: Tuple[Diagnostic, ...] = ()

    @property
    def all(self) -> Tuple[AssociationDescriptor, ...]:
        return (
            self.owner_references
            + self.inverse_collections
            + self.inverse_singulars
            + self.many_to_many
        )

    def __len__(self) -> int:
        return len(self.all)


@dataclass(frozen=True)
class ClassifiedColumn:
    """A column together with its portable type."""

    column: Column
    portable_type: PortableType

    @property
    def name(self) -> str:
        return self.column.name

    @property
    def nullable(self) -> bool:
        return self.column.is_nullable


@dataclass(frozen=True)
class RunOptions:
    """Run-level choices that influence classification and emission."""

    binary_id: bool = False  # caller requests UUID-based identifiers
    skip_timestamps: bool = False
    skip_associations: bool = False
    include_views: bool = True
    conventions: Conventions = field(default_factory=Conventions)


@dataclass(frozen=True)
class EntityModel:
    """Inferred model of a single relation, ready for code emission."""

    relation: Relation
    columns: Tuple[ClassifiedColumn, ...]
    fields: Tuple[ClassifiedColumn, ...]
    primary_key: PrimaryKeyInfo
    uses_uuid_keys: bool = False
    timestamps: bool = False
    associations: RelationshipSet = field(default_factory=RelationshipSet)
    unique_constraints: Tuple[UniqueConstraint, ...] = ()
    check_constraints: Tuple[CheckConstraint, ...] = ()
    indexes: Tuple[Index, ...] = ()
    writable_fields: Tuple[str, ...] = ()
    required_fields: Tuple[str, ...] = ()

    @property
    def name(self) -> str:
        return self.relation.name

    def column(self, name: str) -> Optional[ClassifiedColumn]:
        for col in self.columns:
            if col.name == name:
                return col
        return None


@dataclass(frozen=True)
class SchemaModel:
    """Output of one introspection run."""

    schema: str
    entities: Tuple[EntityModel, ...]
    options: RunOptions = field(default_factory=RunOptions)

    @property
    def diagnostics(self) -> Tuple[Diagnostic, ...]:
        result: Tuple[Diagnostic, ...] = ()
        for entity in self.entities:
            result += entity.associations.diagnostics
        return result

    def get_entity(self, name: str) -> Optional[EntityModel]:
        for entity in self.entities:
            if entity.name == name:
                return entity
        return None
