"""Storage boundary — row sources and relationship loaders."""

from rowauthz.storage._memory import InMemoryRowSource
from rowauthz.storage._sqlalchemy import SQLAlchemyRowSource, authorized_rows, load_relationships

__all__ = [
    "InMemoryRowSource",
    "SQLAlchemyRowSource",
    "authorized_rows",
    "load_relationships",
]
