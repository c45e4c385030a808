from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

TOP_CONNECTION_TYPES = 5


@dataclass
class PathInsights:
    total_paths: int = 0
    average_strength: float = 0.0
    shortest_path: int = 0
    longest_path: int = 0
    linkedin_paths: int = 0
    internal_owner_paths: int = 0
    top_connection_types: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalPaths": self.total_paths,
            "averageStrength": self.average_strength,
            "shortestPath": self.shortest_path,
            "longestPath": self.longest_path,
            "linkedinPaths": self.linkedin_paths,
            "internalOwnerPaths": self.internal_owner_paths,
            "topConnectionTypes": [dict(t) for t in self.top_connection_types],
        }


def get_path_insights(paths: Sequence) -> PathInsights:
    """Summarize a path set; an empty input yields an all-zero summary."""
    if not paths:
        return PathInsights()

    hops = [p.total_hops for p in paths]
    kinds = Counter(kind for p in paths for kind in p.connection_types)
    # most_common keeps first-seen order among equal counts
    top = [{"type": kind, "count": count} for kind, count in kinds.most_common(TOP_CONNECTION_TYPES)]

    return PathInsights(
        total_paths=len(paths),
        average_strength=sum(p.strength for p in paths) / len(paths),
        shortest_path=min(hops),
        longest_path=max(hops),
        linkedin_paths=sum(1 for p in paths if p.linkedin_connections),
        internal_owner_paths=sum(1 for p in paths if p.internal_owners),
        top_connection_types=top,
    )
