"""CLI commands for modelgen."""
