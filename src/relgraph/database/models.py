from __future__ import annotations

from datetime import datetime
from typing import Optional, Any

from sqlalchemy import (
    DateTime,
    Float,
    Integer,
    String,
    ForeignKey,
    JSON,
    Boolean,
    Index,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

from .helpers import uuid4 as _new_id


Base = declarative_base()


class Entity(Base):
    __tablename__ = "entities"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    domain: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    is_internal_owner: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    is_portfolio: Mapped[bool] = mapped_column(Boolean, default=False)
    is_pipeline: Mapped[bool] = mapped_column(Boolean, default=False)
    linkedin_first_degree: Mapped[bool] = mapped_column(Boolean, default=False)

    # Enrichment payload plus the flag derived from it at write time
    business_analysis: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    has_substantive_analysis: Mapped[bool] = mapped_column(Boolean, default=False)
    enriched: Mapped[bool] = mapped_column(Boolean, default=False)
    enrichment_source: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        Index("ix_entity_type_name", "type", "name"),
    )


class Edge(Base):
    __tablename__ = "edges"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    source: Mapped[str] = mapped_column(
        String(64), ForeignKey("entities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    target: Mapped[str] = mapped_column(
        String(64), ForeignKey("entities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    kind: Mapped[str] = mapped_column(String, nullable=False, index=True)
    strength_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True, default=0.5)
    interaction_count: Mapped[int] = mapped_column(Integer, default=0)
    last_interaction_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    # Provenance tag of the ingestion collaborator that created the edge
    source_type: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Logical key, not unique: duplicates may exist until consolidation removes them
    __table_args__ = (
        Index("ix_edge_logical_key", "source", "target", "kind"),
    )
