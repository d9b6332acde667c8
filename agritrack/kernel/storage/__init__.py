"""
Object storage for product images.
"""

from agritrack.kernel.storage.artifact_store import (
    ArtifactStore,
    StoredArtifact,
    get_artifact_store,
    init_artifact_store,
)

__all__ = [
    "ArtifactStore",
    "StoredArtifact",
    "get_artifact_store",
    "init_artifact_store",
]
