from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

from .analysis import is_substantive_analysis

DEFAULT_STRENGTH = 0.5


class EntityType(str, Enum):
    PERSON = "person"
    ORGANIZATION = "organization"


def parse_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO timestamp (or pass a datetime through) as an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(frozen=True)
class GraphEntity:
    """A person or organization node as seen by the in-memory graph."""

    id: str
    name: str
    type: str = EntityType.PERSON.value
    domain: Optional[str] = None
    is_internal_owner: bool = False
    is_portfolio: bool = False
    is_pipeline: bool = False
    linkedin_first_degree: bool = False
    has_substantive_analysis: bool = False
    enriched: bool = False
    enrichment_source: Optional[str] = None
    business_analysis: Any = field(default=None, compare=False, repr=False)

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "GraphEntity":
        analysis = row.get("business_analysis")
        substantive = row.get("has_substantive_analysis")
        if substantive is None:
            substantive = is_substantive_analysis(analysis)
        entity_type = row.get("type") or row.get("entity_type")
        if not entity_type:
            raise ValueError(f"Entity {row.get('id')!r} has no type")
        if isinstance(entity_type, EntityType):
            entity_type = entity_type.value
        return cls(
            id=str(row["id"]),
            name=row.get("name") or "",
            type=entity_type,
            domain=row.get("domain") or None,
            is_internal_owner=bool(row.get("is_internal_owner", row.get("internal_owner", False))),
            is_portfolio=bool(row.get("is_portfolio", False)),
            is_pipeline=bool(row.get("is_pipeline", False)),
            linkedin_first_degree=bool(row.get("linkedin_first_degree", False)),
            has_substantive_analysis=bool(substantive),
            enriched=bool(row.get("enriched", False)),
            enrichment_source=row.get("enrichment_source"),
            business_analysis=analysis,
        )


@dataclass(frozen=True)
class GraphEdge:
    """A stored, directed relationship between two entities."""

    id: str
    source: str
    target: str
    kind: str
    strength_score: Optional[float] = DEFAULT_STRENGTH
    interaction_count: int = 0
    last_interaction_date: Optional[datetime] = None
    source_type: Optional[str] = None

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "GraphEdge":
        source = row.get("source", row.get("source_id"))
        target = row.get("target", row.get("target_id"))
        return cls(
            id=str(row.get("id") or f"{source}:{target}:{row.get('kind', '')}"),
            source=str(source),
            target=str(target),
            kind=row.get("kind") or "",
            strength_score=row.get("strength_score", DEFAULT_STRENGTH),
            interaction_count=int(row.get("interaction_count") or 0),
            last_interaction_date=parse_datetime(row.get("last_interaction_date")),
            source_type=row.get("source_type"),
        )

    @property
    def logical_key(self):
        return (self.source, self.target, self.kind)
