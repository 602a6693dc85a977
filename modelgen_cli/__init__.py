"""modelgen - generate SQLAlchemy models from a PostgreSQL catalog."""

__version__ = "0.1.0"
