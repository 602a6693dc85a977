"""Code generation from inferred schema models."""

from .sqlalchemy_generator import SQLAlchemyModelGenerator
from .repository_generator import RepositoryGenerator
from .writer import write_files

__all__ = [
    "SQLAlchemyModelGenerator",
    "RepositoryGenerator",
    "write_files",
]
