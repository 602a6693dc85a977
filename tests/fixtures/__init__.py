"""Test fixtures package."""

from .fake_catalog import (
    FakeCatalogReader,
    build_blog_catalog,
    build_owned_teams_catalog,
    build_teams_catalog,
    col,
    fk,
)

__all__ = [
    "FakeCatalogReader",
    "build_blog_catalog",
    "build_owned_teams_catalog",
    "build_teams_catalog",
    "col",
    "fk",
]
