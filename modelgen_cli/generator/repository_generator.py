"""Repository (CRUD) module generator."""

import logging
from typing import Dict, List, Sequence

from ..analysis.inflection import pluralize, singularize
from ..analysis.models import EntityModel
from ..database.type_mappers import ManualResolutionType
from .sqlalchemy_generator import SQLAlchemyModelGenerator

logger = logging.getLogger(__name__)

# Names the generated functions already bind
LOCAL_NAMES = {"session", "attrs", "key", "value", "pk", "select", "NoResultFound"}


class RepositoryGenerator:
    """Generates a repository module with CRUD functions over generated models.

    The module lives inside the model package and takes a SQLAlchemy
    ``Session`` as first argument of every function. Views and key-less
    relations only get read functions.
    """

    def __init__(self, model_generator: SQLAlchemyModelGenerator):
        self.model_generator = model_generator

    @staticmethod
    def module_name(context_name: str) -> str:
        return f"{context_name.lower()}_repository"

    def generate(self, context_name: str, entities: Sequence[EntityModel]) -> Dict[str, str]:
        """Generate the repository module for a group of entities.

        Args:
            context_name: Name of the context (e.g. "Accounts")
            entities: Entities the repository covers

        Returns:
            Mapping of file name to source code
        """
        functions: List[str] = []
        constants: List[str] = []
        imports: Dict[str, List[str]] = {}
        used_names = set()

        for entity in entities:
            singular = singularize(entity.name)
            # Same function names would shadow each other
            if singular in used_names:
                logger.debug("Skipping %s: functions for %s already generated", entity.name, singular)
                continue
            used_names.add(singular)

            symbol = self.model_generator.symbol_name(entity)
            imports.setdefault(self.model_generator.module_name(entity), []).append(symbol)

            functions.append(self._list_function(entity, symbol))
            if entity.primary_key.columns:
                functions.append(self._get_function(entity, symbol, singular))
                if entity.relation.is_table:
                    constants.extend(self._field_constants(entity, singular))
                    functions.append(self._create_function(symbol, singular))
                    functions.append(self._update_function(symbol, singular))
                    functions.append(self._delete_function(symbol, singular))

        names = ", ".join(e.name for e in entities)
        lines = [
            f'"""The {context_name} repository: data access for {names}."""',
            "",
            "from typing import Any, Dict, List",
            "",
            "from sqlalchemy import select",
            "from sqlalchemy.exc import NoResultFound",
            "from sqlalchemy.orm import Session",
            "",
        ]
        for module, symbols in imports.items():
            lines.append(f"from .{module} import {', '.join(symbols)}")
        lines.extend(["", ""])
        if constants:
            lines.extend(constants)
            lines.extend(["", ""])

        lines.extend([
            "class ValidationError(ValueError):",
            '    """Raised when required attributes are missing."""',
            "",
            "",
            "def _require(attrs: Dict[str, Any], required) -> None:",
            "    missing = [name for name in required if attrs.get(name) is None]",
            "    if missing:",
            '        raise ValidationError(f"Missing required attributes: {\', \'.join(missing)}")',
            "",
            "",
            "def _writable(attrs: Dict[str, Any], fields) -> Dict[str, Any]:",
            "    return {key: value for key, value in attrs.items() if key in fields}",
        ])

        source = "\n".join(lines) + "\n\n\n" + "\n\n\n".join(functions) + "\n"
        logger.info("Generated %s repository for %d relation(s)", context_name, len(used_names))
        return {f"{self.module_name(context_name)}.py": source}

    def _field_constants(self, entity: EntityModel, singular: str) -> List[str]:
        prefix = singular.upper()
        writable = [
            self.model_generator.attribute_name(name)
            for name in entity.writable_fields
            if not self._is_manual(entity, name)
        ]
        required = [
            self.model_generator.attribute_name(name)
            for name in entity.required_fields
            if not self._is_manual(entity, name)
        ]
        return [
            f"{prefix}_FIELDS = {self._tuple_literal(writable)}",
            f"{prefix}_REQUIRED = {self._tuple_literal(required)}",
        ]

    def _is_manual(self, entity: EntityModel, name: str) -> bool:
        column = entity.column(name)
        return column is not None and isinstance(column.portable_type, ManualResolutionType)

    def _tuple_literal(self, names: List[str]) -> str:
        if not names:
            return "()"
        if len(names) == 1:
            return f'("{names[0]}",)'
        return "(" + ", ".join(f'"{n}"' for n in names) + ")"

    def _list_function(self, entity: EntityModel, symbol: str) -> str:
        plural = pluralize(entity.name)
        if entity.primary_key.columns:
            return "\n".join([
                f"def list_{plural}(session: Session) -> List[{symbol}]:",
                f'    """Return all {plural.replace("_", " ")}."""',
                f"    return list(session.scalars(select({symbol})))",
            ])
        return "\n".join([
            f"def list_{plural}(session: Session) -> List[Any]:",
            f'    """Return all rows of {entity.name}."""',
            f"    return list(session.execute(select({symbol})).all())",
        ])

    def _get_function(self, entity: EntityModel, symbol: str, singular: str) -> str:
        key = "key" if len(entity.primary_key.columns) > 1 else "pk"
        variable = self._local_name(singular)
        return "\n".join([
            f"def get_{singular}(session: Session, {key}) -> {symbol}:",
            f'    """Get a single {singular.replace("_", " ")}.',
            "",
            f"    Raises NoResultFound if the {singular.replace('_', ' ')} does not exist.",
            '    """',
            f"    {variable} = session.get({symbol}, {key})",
            f"    if {variable} is None:",
            f'        raise NoResultFound(f"{symbol} {{{key}!r}} not found")',
            f"    return {variable}",
        ])

    def _create_function(self, symbol: str, singular: str) -> str:
        prefix = singular.upper()
        variable = self._local_name(singular)
        return "\n".join([
            f"def create_{singular}(session: Session, attrs: Dict[str, Any]) -> {symbol}:",
            f'    """Create a {singular.replace("_", " ")}."""',
            f"    _require(attrs, {prefix}_REQUIRED)",
            f"    {variable} = {symbol}(**_writable(attrs, {prefix}_FIELDS))",
            f"    session.add({variable})",
            "    session.flush()",
            f"    return {variable}",
        ])

    def _update_function(self, symbol: str, singular: str) -> str:
        prefix = singular.upper()
        variable = self._local_name(singular)
        return "\n".join([
            f"def update_{singular}(session: Session, {variable}: {symbol}, attrs: Dict[str, Any]) -> {symbol}:",
            f'    """Update a {singular.replace("_", " ")}."""',
            f"    for key, value in _writable(attrs, {prefix}_FIELDS).items():",
            f"        setattr({variable}, key, value)",
            "    session.flush()",
            f"    return {variable}",
        ])

    def _delete_function(self, symbol: str, singular: str) -> str:
        variable = self._local_name(singular)
        return "\n".join([
            f"def delete_{singular}(session: Session, {variable}: {symbol}) -> None:",
            f'    """Delete a {singular.replace("_", " ")}."""',
            f"    session.delete({variable})",
            "    session.flush()",
        ])

    def _local_name(self, singular: str) -> str:
        """Variable name for a row; keywords and the functions' own names get a trailing underscore."""
        name = self.model_generator.attribute_name(singular)
        if name in LOCAL_NAMES:
            name = f"{name}_"
        return name
