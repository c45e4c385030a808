from .strength import edge_strength
from .insights import PathInsights, get_path_insights
from .path_finder import IntroPath, PathFinder, PathFindingOptions
from .snapshot import GraphSnapshot, load_snapshot

__all__ = [
    "edge_strength",
    "PathInsights",
    "get_path_insights",
    "IntroPath",
    "PathFinder",
    "PathFindingOptions",
    "GraphSnapshot",
    "load_snapshot",
]
