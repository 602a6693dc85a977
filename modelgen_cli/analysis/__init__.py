"""Schema inference for modelgen.

Turns raw catalog metadata into entity models:
- primary key and timestamp convention classification
- association analysis from foreign key topology
- per-relation model assembly
"""

from modelgen_cli.analysis.conventions import Conventions
from modelgen_cli.analysis.models import (
    AssociationKind,
    ClassifiedColumn,
    Diagnostic,
    EntityModel,
    InverseCollection,
    InverseSingular,
    KeyShape,
    ManyToMany,
    OwnerReference,
    PrimaryKeyInfo,
    RelationshipSet,
    RunOptions,
    SchemaModel,
)
from modelgen_cli.analysis.key_classifier import (
    classify_primary_key,
    timestamps_eligible,
)
from modelgen_cli.analysis.relationship_analyzer import RelationshipAnalyzer
from modelgen_cli.analysis.schema_builder import SchemaModelBuilder

__all__ = [
    "Conventions",
    "AssociationKind",
    "ClassifiedColumn",
    "Diagnostic",
    "EntityModel",
    "InverseCollection",
    "InverseSingular",
    "KeyShape",
    "ManyToMany",
    "OwnerReference",
    "PrimaryKeyInfo",
    "RelationshipSet",
    "RunOptions",
    "SchemaModel",
    "classify_primary_key",
    "timestamps_eligible",
    "RelationshipAnalyzer",
    "SchemaModelBuilder",
]
