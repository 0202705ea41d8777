"""Infrastructure services used by the API."""

from .postgres import PostgresDatabase

__all__ = ["PostgresDatabase"]
