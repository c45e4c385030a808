"""
relgraph - relationship graph consolidation and introduction path finding.

Provides:
- SQLAlchemy primary store and Neo4j mirror store
- Consolidation engine (garbage removal, duplicate merging, edge migration)
- Path finder for warm-introduction routes and path insights
- CLI and Flask API surfaces
"""

__version__ = "0.1.0"
