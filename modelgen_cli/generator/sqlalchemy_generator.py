"""SQLAlchemy declarative model generator."""

import keyword
import logging
import re
from typing import Dict, List, Optional, Set

from ..analysis.inflection import camelize, class_name_for
from ..analysis.models import (
    ClassifiedColumn,
    EntityModel,
    InverseCollection,
    KeyShape,
    ManyToMany,
    OwnerReference,
    SchemaModel,
)
from ..database.models import ForeignKeyAction, RelationKind
from ..database.type_mappers import (
    ArrayType,
    EnumType,
    GeometryType,
    ManualResolutionType,
    PortableType,
    ScalarKind,
    ScalarType,
    ZONED_DATETIME,
    normalize_native_type,
)
from ..errors import GenerationError

logger = logging.getLogger(__name__)


# SQLAlchemy type expression and Python annotation per scalar kind
SCALAR_RENDERING = {
    ScalarKind.INTEGER: ("Integer", "int"),
    ScalarKind.DECIMAL: ("Numeric", "decimal.Decimal"),
    ScalarKind.FLOAT: ("Float", "float"),
    ScalarKind.STRING: ("String", "str"),
    ScalarKind.UUID: ("Uuid", "uuid.UUID"),
    ScalarKind.BOOLEAN: ("Boolean", "bool"),
    ScalarKind.DATE: ("Date", "datetime.date"),
    ScalarKind.TIME: ("Time", "datetime.time"),
    ScalarKind.NAIVE_DATETIME: ("DateTime", "datetime.datetime"),
    ScalarKind.ZONED_DATETIME: ("DateTime(timezone=True)", "datetime.datetime"),
    ScalarKind.BINARY: ("LargeBinary", "bytes"),
    ScalarKind.OPAQUE_STRING: ("String", "str"),
}

# Narrower SQLAlchemy types for specific native integer/string types
NATIVE_OVERRIDES = {
    "bigint": "BigInteger",
    "int8": "BigInteger",
    "bigserial": "BigInteger",
    "smallint": "SmallInteger",
    "int2": "SmallInteger",
    "smallserial": "SmallInteger",
    "text": "Text",
    "citext": "Text",
}

# Candidate mappings listed for JSON columns that need a human decision
MANUAL_CANDIDATES = {
    "json": [
        ("Dict[str, Any]", "JSON", "JSON objects"),
        ("List[Any]", "JSON", "JSON arrays"),
    ],
    "jsonb": [
        ("Dict[str, Any]", "JSONB", "objects: {\"key\": \"value\"}"),
        ("List[str]", "JSONB", "string arrays: [\"a\", \"b\"]"),
        ("List[int]", "JSONB", "integer arrays: [1, 2, 3]"),
        ("List[Dict[str, Any]]", "JSONB", "object arrays: [{\"id\": 1}]"),
    ],
}

RESERVED_ATTRIBUTES = {"metadata", "registry"}

# Names imported from base.py into every model module
RESERVED_CLASS_NAMES = {"Base", "TimestampMixin", "ZonedTimestampMixin"}

ACTION_SQL = {
    ForeignKeyAction.RESTRICT: "RESTRICT",
    ForeignKeyAction.CASCADE: "CASCADE",
    ForeignKeyAction.SET_NULL: "SET NULL",
    ForeignKeyAction.SET_DEFAULT: "SET DEFAULT",
}


class _Imports:
    """Collects the imports a generated module needs."""

    def __init__(self):
        self.modules: Set[str] = set()
        self.typing: Set[str] = set()
        self.sqlalchemy: Set[str] = set()
        self.postgresql: Set[str] = set()
        self.orm: Set[str] = set()
        self.geoalchemy: Set[str] = set()
        self.base: Set[str] = set()

    def add_annotation(self, annotation: str):
        for module in ("datetime", "decimal", "uuid"):
            if f"{module}." in annotation:
                self.modules.add(module)
        for name in ("Any", "Dict", "List", "Optional"):
            if re.search(rf"\b{name}\b", annotation):
                self.typing.add(name)

    def add_sqlalchemy(self, expression: str):
        """Register the SQLAlchemy name an expression starts with."""
        self.sqlalchemy.add(expression.split("(", 1)[0])

    def render(self) -> str:
        lines = []
        for module in sorted(self.modules):
            lines.append(f"import {module}")
        if self.typing:
            lines.append(f"from typing import {', '.join(sorted(self.typing))}")
        if lines:
            lines.append("")

        third_party = []
        if self.geoalchemy:
            third_party.append(f"from geoalchemy2 import {', '.join(sorted(self.geoalchemy))}")
        if self.sqlalchemy:
            third_party.append(f"from sqlalchemy import {', '.join(sorted(self.sqlalchemy))}")
        if self.postgresql:
            third_party.append(
                f"from sqlalchemy.dialects.postgresql import {', '.join(sorted(self.postgresql))}"
            )
        if self.orm:
            third_party.append(f"from sqlalchemy.orm import {', '.join(sorted(self.orm))}")
        if third_party:
            lines.extend(third_party)
            lines.append("")

        if self.base:
            lines.append(f"from .base import {', '.join(sorted(self.base))}")
        return "\n".join(lines).rstrip()


class SQLAlchemyModelGenerator:
    """Generates SQLAlchemy 2.x declarative models from a SchemaModel.

    One module is produced per relation, plus ``base.py`` with the declarative
    base and timestamp mixins and an ``__init__.py`` importing every model so
    that string references between classes resolve.
    """

    def __init__(self, schema_model: SchemaModel, package: str = "models"):
        self.schema_model = schema_model
        self.package = package
        self.conventions = schema_model.options.conventions
        self.entities: Dict[str, EntityModel] = {e.name: e for e in schema_model.entities}

        # Relation name -> class name; "user" and "users" must not collide
        self.class_names: Dict[str, str] = {}
        used: Set[str] = set()
        for entity in schema_model.entities:
            class_name = class_name_for(entity.name)
            if class_name in RESERVED_CLASS_NAMES:
                class_name = f"{class_name}Model"
            if class_name in used:
                class_name = camelize(entity.name)
            used.add(class_name)
            self.class_names[entity.name] = class_name

    def generate_package(self) -> Dict[str, str]:
        """Generate all modules of the model package.

        Returns:
            Mapping of file name to source code
        """
        files = {"base.py": self.generate_base()}
        files.update(self.generate_modules())
        files["__init__.py"] = self.generate_init()
        return files

    def generate_modules(self) -> Dict[str, str]:
        """Generate only the per-relation modules."""
        files = {}
        for entity in self.schema_model.entities:
            files[f"{self.module_name(entity)}.py"] = self.generate_entity(entity)
        logger.info("Generated %d model module(s)", len(self.schema_model.entities))
        return files

    def module_name(self, entity: EntityModel) -> str:
        name = entity.name.lower().replace("-", "_")
        if keyword.iskeyword(name) or name in ("base", "__init__"):
            name = f"{name}_model"
        return name

    def generate_base(self) -> str:
        """Generate the declarative base and timestamp mixins."""
        inserted = self.conventions.inserted_at_column
        updated = self.conventions.updated_at_column

        lines = [
            '"""Declarative base for generated models."""',
            "",
            "import datetime",
            "",
            "from sqlalchemy import DateTime, func",
            "from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column",
            "",
            "",
            "class Base(DeclarativeBase):",
            "    pass",
            "",
            "",
            "class TimestampMixin:",
            f'    """Adds the {inserted} and {updated} columns."""',
            "",
            f"    {inserted}: Mapped[datetime.datetime] = mapped_column(DateTime, server_default=func.now())",
            f"    {updated}: Mapped[datetime.datetime] = mapped_column(",
            "        DateTime, server_default=func.now(), onupdate=func.now()",
            "    )",
            "",
            "",
            "class ZonedTimestampMixin:",
            f'    """Adds timezone-aware {inserted} and {updated} columns."""',
            "",
            f"    {inserted}: Mapped[datetime.datetime] = mapped_column(",
            "        DateTime(timezone=True), server_default=func.now()",
            "    )",
            f"    {updated}: Mapped[datetime.datetime] = mapped_column(",
            "        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()",
            "    )",
            "",
        ]
        return "\n".join(lines)

    def generate_init(self) -> str:
        """Generate ``__init__.py`` re-exporting every model."""
        lines = [f'"""Generated models for schema {self.schema_model.schema}."""', ""]
        lines.append("from .base import Base, TimestampMixin, ZonedTimestampMixin")

        exports = ["Base", "TimestampMixin", "ZonedTimestampMixin"]
        for entity in self.schema_model.entities:
            symbol = self.symbol_name(entity)
            lines.append(f"from .{self.module_name(entity)} import {symbol}")
            exports.append(symbol)

        lines.append("")
        lines.append("__all__ = [")
        for symbol in exports:
            lines.append(f'    "{symbol}",')
        lines.append("]")
        lines.append("")
        return "\n".join(lines)

    def merge_init(self, existing: str) -> str:
        """Add this model's imports and exports to an existing ``__init__.py``.

        Used when only some relations are regenerated: models of the other
        relations stay exported. Imports go after the last ``from .`` line,
        exports at the end of ``__all__``; lines already present are kept.
        """
        lines = existing.rstrip("\n").split("\n")

        for entity in self.schema_model.entities:
            symbol = self.symbol_name(entity)
            import_line = f"from .{self.module_name(entity)} import {symbol}"
            if import_line not in lines:
                relative = [i for i, line in enumerate(lines) if line.startswith("from .")]
                lines.insert(relative[-1] + 1 if relative else len(lines), import_line)

            export_line = f'    "{symbol}",'
            if "__all__ = [" in lines and export_line not in lines:
                start = lines.index("__all__ = [")
                if "]" in lines[start:]:
                    lines.insert(lines.index("]", start), export_line)

        lines.append("")
        return "\n".join(lines)

    def symbol_name(self, entity: EntityModel) -> str:
        """Name of the class, or of the Table object for key-less relations."""
        if self._is_mapped(entity):
            return self.class_names[entity.name]
        return f"{entity.name}_table"

    def generate_entity(self, entity: EntityModel) -> str:
        """Generate the module for a single relation.

        Raises:
            GenerationError: If a column carries an unknown portable type
        """
        imports = _Imports()
        if self._is_mapped(entity):
            body = self._render_class(entity, imports)
        else:
            body = self._render_table(entity, imports)

        header = [f'"""{self._module_doc(entity)}"""', ""]
        import_block = imports.render()
        if import_block:
            header.extend([import_block, ""])
        header.append("")
        return "\n".join(header) + body + "\n"

    # Class rendering

    def _render_class(self, entity: EntityModel, imports: _Imports) -> str:
        class_name = self.class_names[entity.name]
        imports.orm.update({"Mapped", "mapped_column"})
        imports.base.add("Base")

        bases = "Base"
        if entity.timestamps:
            mixin = self._timestamp_mixin(entity)
            imports.base.add(mixin)
            bases = f"{mixin}, Base"

        lines = [f"class {class_name}({bases}):"]
        if entity.relation.comment:
            lines.append(f'    """{self._escape_doc(entity.relation.comment)}"""')
            lines.append("")
        if not entity.relation.is_table:
            lines.append(
                f"    # This is a {self._kind_label(entity)}: queries work, "
                "inserts, updates and deletes are not supported"
            )

        lines.append(f'    __tablename__ = "{entity.name}"')
        table_args = self._table_args(entity, imports)
        if table_args:
            lines.extend(table_args)
        lines.append("")

        owner_by_column = {ref.foreign_key: ref for ref in entity.associations.owner_references}
        key_columns = set(entity.primary_key.columns)
        field_names = {f.name for f in entity.fields}

        for cc in entity.columns:
            if cc.name in key_columns:
                lines.extend(self._render_key_column(entity, cc, owner_by_column.get(cc.name), imports))
            elif cc.name in owner_by_column:
                lines.extend(self._render_foreign_key_column(entity, cc, owner_by_column[cc.name], imports))
            elif cc.name in field_names:
                lines.extend(self._render_field(entity, cc, imports))

        relationship_lines = self._render_relationships(entity, imports)
        if relationship_lines:
            imports.orm.add("relationship")
            lines.append("")
            lines.extend(relationship_lines)

        return "\n".join(lines)

    def _render_key_column(
        self,
        entity: EntityModel,
        cc: ClassifiedColumn,
        owner: Optional[OwnerReference],
        imports: _Imports,
    ) -> List[str]:
        pk = entity.primary_key
        if owner is not None:
            sa_type, annotation = self._foreign_key_type(entity, cc, owner, imports)
        else:
            sa_type, annotation = self._render_type(cc, imports)

        args = [sa_type]
        if owner is not None:
            args.append(self._foreign_key_expr(owner, imports))
        args.append("primary_key=True")

        if pk.shape == KeyShape.COMPOSITE:
            args.append("autoincrement=False")
        elif pk.is_uuid and pk.has_db_default:
            imports.sqlalchemy.add("text")
            args.append(f'server_default=text("{self._escape(cc.column.default)}")')
        elif pk.client_autogenerate:
            imports.modules.add("uuid")
            args.append("default=uuid.uuid4")

        imports.add_annotation(annotation)
        return [self._mapped_line(cc, annotation, args)]

    def _render_foreign_key_column(
        self,
        entity: EntityModel,
        cc: ClassifiedColumn,
        owner: OwnerReference,
        imports: _Imports,
    ) -> List[str]:
        sa_type, annotation = self._foreign_key_type(entity, cc, owner, imports)
        if cc.nullable:
            annotation = f"Optional[{annotation}]"
        imports.add_annotation(annotation)

        args = [sa_type, self._foreign_key_expr(owner, imports)]
        args.extend(self._column_options(cc))
        return [self._mapped_line(cc, annotation, args)]

    def _render_field(self, entity: EntityModel, cc: ClassifiedColumn, imports: _Imports) -> List[str]:
        if isinstance(cc.portable_type, ManualResolutionType):
            return self._render_manual(cc)

        sa_type, annotation = self._render_type(cc, imports)
        if cc.nullable:
            annotation = f"Optional[{annotation}]"
        imports.add_annotation(annotation)

        args = [sa_type]
        args.extend(self._column_options(cc))
        return [self._mapped_line(cc, annotation, args)]

    def _render_manual(self, cc: ClassifiedColumn) -> List[str]:
        native = cc.portable_type.native_type
        lines = [f"    # {cc.name}: {native} column, pick a mapping that matches the stored data"]
        for annotation, sa_type, description in MANUAL_CANDIDATES.get(native, MANUAL_CANDIDATES["json"]):
            lines.append(f"    # {cc.name}: Mapped[{annotation}] = mapped_column({sa_type})  # {description}")
        return lines

    def _foreign_key_type(self, entity, cc, owner, imports):
        """Type of an owner reference column under the run's key strategy."""
        if owner.key_type_override is not None:
            return self._render_portable(owner.key_type_override, cc, imports)
        if entity.uses_uuid_keys:
            imports.sqlalchemy.add("Uuid")
            return "Uuid", "uuid.UUID"
        return self._render_type(cc, imports)

    def _foreign_key_expr(self, owner: OwnerReference, imports: _Imports) -> str:
        imports.sqlalchemy.add("ForeignKey")
        target = self.entities.get(owner.target)
        schema = target.relation.schema if target else self.schema_model.schema

        reference = f"{owner.target}.{owner.references}"
        if schema != "public":
            reference = f"{schema}.{reference}"

        args = [f'"{reference}"']
        if owner.on_delete in ACTION_SQL:
            args.append(f'ondelete="{ACTION_SQL[owner.on_delete]}"')
        if owner.on_update in ACTION_SQL:
            args.append(f'onupdate="{ACTION_SQL[owner.on_update]}"')
        return f"ForeignKey({', '.join(args)})"

    def _column_options(self, cc: ClassifiedColumn) -> List[str]:
        options = []
        if cc.column.comment:
            options.append(f'comment="{self._escape(cc.column.comment)}"')
        return options

    def _mapped_line(self, cc: ClassifiedColumn, annotation: str, args: List[str]) -> str:
        attribute = self.attribute_name(cc.name)
        if attribute != cc.name:
            args = [f'"{cc.name}"'] + args
        return f"    {attribute}: Mapped[{annotation}] = mapped_column({', '.join(args)})"

    # Relationships

    def _render_relationships(self, entity: EntityModel, imports: _Imports) -> List[str]:
        # Views never get associations
        if not entity.relation.is_table:
            return []

        lines = []
        associations = entity.associations
        owner_targets = [ref.target for ref in associations.owner_references]

        for ref in associations.owner_references:
            if not self._can_relate(ref.target):
                continue
            target_class = self.class_names.get(ref.target, class_name_for(ref.target))
            options = []
            if owner_targets.count(ref.target) > 1 or ref.target == entity.name:
                options.append(f"foreign_keys=[{self.attribute_name(ref.foreign_key)}]")
            if ref.target == entity.name:
                options.append(f"remote_side=\"{target_class}.{self.conventions.identifier_column}\"")
            back = self._inverse_of_owner(entity, ref, owner_targets)
            if back:
                options.append(f'back_populates="{back}"')

            column = entity.column(ref.foreign_key)
            annotation = f'"{target_class}"'
            if column is not None and column.nullable:
                annotation = f'Optional["{target_class}"]'
                imports.typing.add("Optional")
            lines.append(
                f"    {ref.field}: Mapped[{annotation}] = relationship({', '.join(options)})"
            )

        for inverse in associations.inverse_collections:
            if not self._can_relate(inverse.target):
                continue
            target_class = self.class_names.get(inverse.target, class_name_for(inverse.target))
            options = []
            back = self._owner_of_inverse(entity, inverse)
            if back is None:
                options.append(
                    f'foreign_keys="{target_class}.{self.attribute_name(inverse.foreign_key)}"'
                )
            else:
                options.append(f'back_populates="{back}"')
            imports.typing.add("List")
            lines.append(
                f'    {inverse.field}: Mapped[List["{target_class}"]] = relationship({", ".join(options)})'
            )

        for edge in associations.many_to_many:
            if not self._can_relate(edge.target):
                continue
            target_class = self.class_names.get(edge.target, class_name_for(edge.target))
            secondary = edge.join_through
            if self.schema_model.schema != "public":
                secondary = f"{self.schema_model.schema}.{secondary}"
            options = [f'secondary="{secondary}"']
            back = self._many_to_many_inverse(entity, edge)
            if back:
                options.append(f'back_populates="{back}"')
            imports.typing.add("List")
            lines.append(
                f'    {edge.field}: Mapped[List["{target_class}"]] = relationship({", ".join(options)})'
            )

        return lines

    def _can_relate(self, target: str) -> bool:
        """Relationships need a mapped class on the other side."""
        other = self.entities.get(target)
        if other is None:
            return True
        if not self._is_mapped(other):
            logger.debug("Skipping relationship to key-less relation %s", target)
            return False
        return True

    def _inverse_of_owner(self, entity, ref: OwnerReference, owner_targets) -> Optional[str]:
        if owner_targets.count(ref.target) != 1:
            return None
        target = self.entities.get(ref.target)
        if target is None or ref.target == entity.name:
            return None
        matches = [
            inv.field for inv in target.associations.inverse_collections
            if inv.target == entity.name and inv.foreign_key == ref.foreign_key
        ]
        return matches[0] if len(matches) == 1 else None

    def _owner_of_inverse(self, entity, inverse: InverseCollection) -> Optional[str]:
        other = self.entities.get(inverse.target)
        if other is None:
            return None
        refs = [ref for ref in other.associations.owner_references if ref.target == entity.name]
        if len(refs) != 1 or refs[0].foreign_key != inverse.foreign_key:
            return None
        return refs[0].field

    def _many_to_many_inverse(self, entity, edge: ManyToMany) -> Optional[str]:
        other = self.entities.get(edge.target)
        if other is None:
            return None
        matches = [
            m.field for m in other.associations.many_to_many
            if m.target == entity.name and m.join_through == edge.join_through
        ]
        return matches[0] if len(matches) == 1 else None

    # Table rendering for key-less relations

    def _render_table(self, entity: EntityModel, imports: _Imports) -> str:
        imports.sqlalchemy.update({"Column", "Table"})
        imports.base.add("Base")

        lines = []
        if not entity.relation.is_table:
            lines.append(
                f"# This is a {self._kind_label(entity)}: queries work, "
                "inserts, updates and deletes are not supported"
            )
        else:
            lines.append("# No primary key: mapped as a Core table, not an ORM class")

        lines.append(f"{entity.name}_table = Table(")
        lines.append(f'    "{entity.name}",')
        lines.append("    Base.metadata,")

        owner_by_column = {ref.foreign_key: ref for ref in entity.associations.owner_references}
        for cc in entity.columns:
            if isinstance(cc.portable_type, ManualResolutionType):
                imports.postgresql.add(cc.portable_type.native_type.upper())
                lines.append(f"    # {cc.name}: {cc.portable_type.native_type} payload, shape not inferred")
                sa_type = cc.portable_type.native_type.upper()
            else:
                sa_type, _ = self._render_type(cc, imports)

            args = [f'"{cc.name}"', sa_type]
            owner = owner_by_column.get(cc.name)
            if owner is not None:
                args.append(self._foreign_key_expr(owner, imports))
            if cc.column.not_null:
                args.append("nullable=False")
            args.extend(self._column_options(cc))
            lines.append(f"    Column({', '.join(args)}),")

        if entity.relation.schema != "public":
            lines.append(f'    schema="{entity.relation.schema}",')
        if entity.relation.comment:
            lines.append(f'    comment="{self._escape(entity.relation.comment)}",')
        lines.append(")")
        return "\n".join(lines)

    # Types

    def _render_type(self, cc: ClassifiedColumn, imports: _Imports):
        return self._render_portable(cc.portable_type, cc, imports)

    def _render_portable(self, portable_type: PortableType, cc: ClassifiedColumn, imports: _Imports):
        """SQLAlchemy type expression and Python annotation for a portable type."""
        if isinstance(portable_type, ScalarType):
            sa_type, annotation = SCALAR_RENDERING[portable_type.kind]
            native = normalize_native_type(cc.column.native_type)
            if portable_type.kind in (ScalarKind.INTEGER, ScalarKind.STRING) and native in NATIVE_OVERRIDES:
                sa_type = NATIVE_OVERRIDES[native]
            imports.add_sqlalchemy(sa_type)
            return sa_type, annotation

        if isinstance(portable_type, ArrayType):
            inner_type, inner_annotation = self._render_portable(portable_type.inner, cc, imports)
            imports.sqlalchemy.add("ARRAY")
            return f"ARRAY({inner_type})", f"List[{inner_annotation}]"

        if isinstance(portable_type, EnumType):
            imports.sqlalchemy.add("Enum")
            labels = ", ".join(f'"{self._escape(label)}"' for label in portable_type.labels)
            enum_name = cc.column.udt_name or f"{cc.name}_enum"
            return f'Enum({labels}, name="{enum_name}")', "str"

        if isinstance(portable_type, GeometryType):
            family = "Geography" if portable_type.geography else "Geometry"
            imports.geoalchemy.add(family)
            args = []
            if portable_type.subtype not in ("Geometry", "Geography"):
                args.append(f'geometry_type="{portable_type.subtype.upper()}"')
            if portable_type.srid is not None:
                args.append(f"srid={portable_type.srid}")
            return f"{family}({', '.join(args)})", "Any"

        if isinstance(portable_type, ManualResolutionType):
            imports.postgresql.add(portable_type.native_type.upper())
            return portable_type.native_type.upper(), "Any"

        raise GenerationError(
            f"Unsupported portable type {portable_type!r} for column {cc.name}",
            details={"column": cc.name, "native_type": cc.column.native_type},
        )

    # Helpers

    def _table_args(self, entity: EntityModel, imports: _Imports) -> List[str]:
        items = []
        unique_names = set()
        for uc in entity.unique_constraints:
            imports.sqlalchemy.add("UniqueConstraint")
            unique_names.add(uc.name)
            columns = ", ".join(f'"{c}"' for c in uc.columns)
            items.append(f'UniqueConstraint({columns}, name="{uc.name}")')
        for cc in entity.check_constraints:
            imports.sqlalchemy.add("CheckConstraint")
            items.append(
                f'CheckConstraint("{self._escape(self._check_expression(cc.definition))}", name="{cc.name}")'
            )
        for index in entity.indexes:
            # Unique constraints already create their own index
            if index.name in unique_names:
                continue
            imports.sqlalchemy.add("Index")
            columns = ", ".join(f'"{c}"' for c in index.columns)
            unique = ", unique=True" if index.unique else ""
            items.append(f'Index("{index.name}", {columns}{unique})')

        table_kwargs = []
        if entity.relation.schema != "public":
            table_kwargs.append(f'"schema": "{entity.relation.schema}"')
        if entity.relation.comment:
            table_kwargs.append(f'"comment": "{self._escape(entity.relation.comment)}"')

        if not items and not table_kwargs:
            return []
        if not items:
            return [f"    __table_args__ = {{{', '.join(table_kwargs)}}}"]

        lines = ["    __table_args__ = ("]
        for item in items:
            lines.append(f"        {item},")
        if table_kwargs:
            lines.append(f"        {{{', '.join(table_kwargs)}}},")
        lines.append("    )")
        return lines

    def _timestamp_mixin(self, entity: EntityModel) -> str:
        inserted = entity.column(self.conventions.inserted_at_column)
        if inserted is not None and inserted.portable_type == ZONED_DATETIME:
            return "ZonedTimestampMixin"
        return "TimestampMixin"

    def _is_mapped(self, entity: EntityModel) -> bool:
        """ORM classes need a primary key; key-less relations become Tables."""
        return entity.primary_key.shape != KeyShape.NONE

    def _module_doc(self, entity: EntityModel) -> str:
        label = self._kind_label(entity)
        if entity.relation.schema != "public":
            return f"{self.symbol_name(entity)} for the {label} {entity.relation.schema}.{entity.name}."
        return f"{self.symbol_name(entity)} for the {label} {entity.name}."

    def _kind_label(self, entity: EntityModel) -> str:
        if entity.relation.kind == RelationKind.MATERIALIZED_VIEW:
            return "materialized view"
        return entity.relation.kind.value

    def attribute_name(self, column_name: str) -> str:
        if (
            not column_name.isidentifier()
            or keyword.iskeyword(column_name)
            or column_name in RESERVED_ATTRIBUTES
        ):
            cleaned = "".join(ch if ch.isalnum() else "_" for ch in column_name)
            if cleaned[:1].isdigit():
                cleaned = f"_{cleaned}"
            return f"{cleaned}_"
        return column_name

    def _check_expression(self, definition: str) -> str:
        expression = definition.strip()
        if expression.upper().startswith("CHECK"):
            expression = expression[5:].strip()
        # Drop a NOT VALID suffix and one pair of wrapping parentheses
        if expression.upper().endswith("NOT VALID"):
            expression = expression[: -len("NOT VALID")].strip()
        if expression.startswith("(") and expression.endswith(")"):
            expression = expression[1:-1]
        return expression

    def _escape(self, value: str) -> str:
        return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", " ")

    def _escape_doc(self, value: str) -> str:
        return value.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
