from .store import GraphStore
from .engine import SQLAlchemyStore
from .mirror import MirrorStore, NullMirrorStore, Neo4jConfig, Neo4jMirrorStore, build_mirror

__all__ = [
    "GraphStore",
    "SQLAlchemyStore",
    "MirrorStore",
    "NullMirrorStore",
    "Neo4jConfig",
    "Neo4jMirrorStore",
    "build_mirror",
]
