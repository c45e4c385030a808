from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

from ..types.graph import DEFAULT_STRENGTH, GraphEdge, parse_datetime

# Interaction boost: 0.05 per recorded interaction, capped
INTERACTION_STEP = 0.05
INTERACTION_CAP = 0.3

# Recency boost windows in days
RECENT_DAYS = 30
RECENT_BOOST = 0.2
WARM_DAYS = 90
WARM_BOOST = 0.1


def edge_strength(
    edge: Union[GraphEdge, Mapping[str, Any]], now: Optional[datetime] = None
) -> float:
    """Confidence weight of one edge, bounded to [0, 1].

    Starts from the stored ``strength_score`` (0.5 when absent), adds an
    interaction-count boost and a recency boost relative to ``now``.
    """
    if isinstance(edge, Mapping):
        base = edge.get("strength_score")
        count = edge.get("interaction_count") or 0
        last = parse_datetime(edge.get("last_interaction_date"))
    else:
        base = edge.strength_score
        count = edge.interaction_count or 0
        last = edge.last_interaction_date

    strength = DEFAULT_STRENGTH if base is None else float(base)

    if count:
        strength += min(INTERACTION_CAP, count * INTERACTION_STEP)

    if last is not None:
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        days = (now - last).total_seconds() / 86400
        if days < RECENT_DAYS:
            strength += RECENT_BOOST
        elif days < WARM_DAYS:
            strength += WARM_BOOST

    return max(0.0, min(1.0, strength))
