"""Shared pytest fixtures for modelgen tests."""

import pytest

from modelgen_cli.analysis import Conventions, RunOptions, SchemaModelBuilder

from .fixtures import build_blog_catalog, build_teams_catalog


@pytest.fixture
def conventions():
    """Default naming conventions."""
    return Conventions()


@pytest.fixture
def blog_reader():
    """Fake catalog with users and posts."""
    return build_blog_catalog()


@pytest.fixture
def teams_reader():
    """Fake catalog with users, teams and the users_teams junction."""
    return build_teams_catalog()


@pytest.fixture
def blog_model(blog_reader):
    """Schema model built from the blog catalog."""
    return SchemaModelBuilder(blog_reader, "public", RunOptions()).build()


@pytest.fixture
def teams_model(teams_reader):
    """Schema model built from the teams catalog."""
    return SchemaModelBuilder(teams_reader, "public", RunOptions()).build()
