"""Import fixtures from rowauthz.testing for test discovery."""

from rowauthz.testing._fixtures import (
    authz_config,
    authz_registry,
    relationship_index,
    row_source,
)

__all__ = ["authz_config", "authz_registry", "relationship_index", "row_source"]
