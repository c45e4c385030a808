from .analysis import is_substantive_analysis
from .graph import EntityType, GraphEntity, GraphEdge, parse_datetime

__all__ = [
    "EntityType",
    "GraphEntity",
    "GraphEdge",
    "parse_datetime",
    "is_substantive_analysis",
]
