"""Relationship index — symmetric edge lookups for cross-table predicates."""

from rowauthz._types import RelationshipEdge
from rowauthz.relationships._index import RelationshipIndex, RelationshipSnapshot

__all__ = ["RelationshipEdge", "RelationshipIndex", "RelationshipSnapshot"]
