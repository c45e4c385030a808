import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import create_engine, select, func, or_, delete
from sqlalchemy.exc import (
    DisconnectionError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .store import GraphStore
from .models import Base, Entity, Edge
from .helpers import uuid4 as _uuid4, to_naive_utc, isoformat_utc
from ..exceptions import StoreError, TransientStoreError
from ..types.analysis import is_substantive_analysis
from ..types.graph import EntityType, parse_datetime

ENTITY_TYPES = {t.value for t in EntityType}

_ENTITY_FIELDS = (
    "name",
    "type",
    "domain",
    "is_internal_owner",
    "is_portfolio",
    "is_pipeline",
    "linkedin_first_degree",
    "business_analysis",
    "enriched",
    "enrichment_source",
)
_EDGE_FIELDS = (
    "source",
    "target",
    "kind",
    "strength_score",
    "interaction_count",
    "last_interaction_date",
    "source_type",
)


class SQLAlchemyStore(GraphStore):
    """SQLAlchemy implementation of the primary graph store."""

    DEFAULT_PAGE_SIZE = 1000

    def __init__(self, url: str = "sqlite:///relgraph.db", page_size: int = DEFAULT_PAGE_SIZE):
        if url.startswith("sqlite") and ":memory:" in url:
            # One shared connection so every session sees the same in-memory database
            self.engine = create_engine(
                url,
                future=True,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(url, future=True)
        self.logger = logging.getLogger(__name__)
        self.page_size = page_size
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(self.engine, expire_on_commit=False, future=True)

    @contextmanager
    def _session(self, write: bool = False):
        """Session scope that commits on success and maps driver errors."""
        session = self.Session()
        try:
            yield session
            if write:
                session.commit()
        except (OperationalError, DisconnectionError, PoolTimeoutError) as e:
            session.rollback()
            raise TransientStoreError(str(e)) from e
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError(str(e)) from e
        finally:
            session.close()

    # -------- Entities --------
    def save_entities(self, entities: List[Dict[str, Any]]) -> List[str]:
        """Insert or update entities, deriving ``has_substantive_analysis``."""
        ids: List[str] = []
        with self._session(write=True) as s:
            for row in entities:
                entity_type = row.get("type")
                if isinstance(entity_type, EntityType):
                    entity_type = entity_type.value
                if entity_type not in ENTITY_TYPES:
                    raise ValueError(f"Unsupported entity type: {entity_type!r}")

                entity_id = str(row.get("id") or _uuid4())
                existing = s.get(Entity, entity_id)
                if existing is not None and existing.type != entity_type:
                    raise ValueError(
                        f"Entity {entity_id} is a {existing.type}; its type cannot change"
                    )

                values = {k: row[k] for k in _ENTITY_FIELDS if k in row}
                values["type"] = entity_type
                if "business_analysis" in row or existing is None:
                    values["has_substantive_analysis"] = is_substantive_analysis(
                        row.get("business_analysis")
                    )
                if existing is None:
                    s.add(Entity(id=entity_id, **values))
                else:
                    for key, value in values.items():
                        setattr(existing, key, value)
                ids.append(entity_id)
        return ids

    def get_entity(self, entity_id: str) -> Optional[Dict[str, Any]]:
        with self._session() as s:
            entity = s.get(Entity, entity_id)
            return self._entity_to_dict(entity) if entity else None

    def iter_entities(
        self, entity_type: Optional[str] = None, page_size: Optional[int] = None
    ) -> Iterator[Dict[str, Any]]:
        size = page_size or self.page_size
        offset = 0
        while True:
            with self._session() as s:
                stmt = select(Entity)
                if entity_type:
                    stmt = stmt.where(Entity.type == entity_type)
                stmt = stmt.order_by(Entity.id).offset(offset).limit(size)
                page = [self._entity_to_dict(e) for e in s.execute(stmt).scalars().all()]
            if not page:
                return
            yield from page
            if len(page) < size:
                return
            offset += size

    def search_entities(
        self,
        name: str,
        mode: str = "exact",
        entity_type: Optional[str] = None,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """Case-insensitive name search; ``mode`` is exact, prefix or substring."""
        needle = (name or "").strip().lower()
        if not needle:
            return []
        lowered = func.lower(Entity.name)
        if mode == "exact":
            condition = lowered == needle
        elif mode == "prefix":
            condition = lowered.like(f"{needle}%")
        elif mode == "substring":
            condition = lowered.like(f"%{needle}%")
        else:
            raise ValueError(f"Unknown search mode: {mode}")

        with self._session() as s:
            stmt = select(Entity).where(condition)
            if entity_type:
                stmt = stmt.where(Entity.type == entity_type)
            stmt = stmt.order_by(Entity.name, Entity.id).limit(limit)
            return [self._entity_to_dict(e) for e in s.execute(stmt).scalars().all()]

    def update_entity(self, entity_id: str, **fields: Any) -> bool:
        with self._session(write=True) as s:
            entity = s.get(Entity, entity_id)
            if entity is None:
                return False
            if "type" in fields and fields["type"] != entity.type:
                raise ValueError(f"Entity {entity_id} is a {entity.type}; its type cannot change")
            for key, value in fields.items():
                if key not in _ENTITY_FIELDS:
                    raise ValueError(f"Unknown entity field: {key}")
                setattr(entity, key, value)
            if "business_analysis" in fields:
                entity.has_substantive_analysis = is_substantive_analysis(
                    fields["business_analysis"]
                )
            return True

    def delete_entity(self, entity_id: str) -> int:
        # Incident edges go first; SQLite does not enforce ON DELETE CASCADE by default
        with self._session(write=True) as s:
            result = s.execute(
                delete(Edge).where(or_(Edge.source == entity_id, Edge.target == entity_id))
            )
            removed = result.rowcount or 0
            entity = s.get(Entity, entity_id)
            if entity is not None:
                s.delete(entity)
            return removed

    # -------- Edges --------
    def save_edges(self, edges: List[Dict[str, Any]]) -> List[str]:
        ids: List[str] = []
        with self._session(write=True) as s:
            for row in edges:
                values = {k: row[k] for k in _EDGE_FIELDS if k in row}
                for endpoint in ("source", "target"):
                    if not values.get(endpoint) or s.get(Entity, values[endpoint]) is None:
                        raise ValueError(
                            f"Edge {endpoint} {values.get(endpoint)!r} does not reference an entity"
                        )
                if not values.get("kind"):
                    raise ValueError("Edge kind is required")
                if "last_interaction_date" in values:
                    values["last_interaction_date"] = to_naive_utc(
                        parse_datetime(values["last_interaction_date"])
                    )

                edge_id = str(row.get("id") or _uuid4())
                existing = s.get(Edge, edge_id)
                if existing is None:
                    s.add(Edge(id=edge_id, **values))
                else:
                    for key, value in values.items():
                        setattr(existing, key, value)
                ids.append(edge_id)
        return ids

    def iter_edges(self, page_size: Optional[int] = None) -> Iterator[Dict[str, Any]]:
        size = page_size or self.page_size
        offset = 0
        while True:
            with self._session() as s:
                stmt = select(Edge).order_by(Edge.id).offset(offset).limit(size)
                page = [self._edge_to_dict(e) for e in s.execute(stmt).scalars().all()]
            if not page:
                return
            yield from page
            if len(page) < size:
                return
            offset += size

    def get_edges(
        self, source_id: Optional[str] = None, target_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        with self._session() as s:
            stmt = select(Edge)
            if source_id is not None:
                stmt = stmt.where(Edge.source == source_id)
            if target_id is not None:
                stmt = stmt.where(Edge.target == target_id)
            stmt = stmt.order_by(Edge.id)
            return [self._edge_to_dict(e) for e in s.execute(stmt).scalars().all()]

    def find_edges(self, source_id: str, target_id: str, kind: str) -> List[Dict[str, Any]]:
        with self._session() as s:
            stmt = (
                select(Edge)
                .where(Edge.source == source_id, Edge.target == target_id, Edge.kind == kind)
                .order_by(Edge.id)
            )
            return [self._edge_to_dict(e) for e in s.execute(stmt).scalars().all()]

    def count_edges(self, entity_id: str) -> int:
        with self._session() as s:
            stmt = select(func.count(Edge.id)).where(
                or_(Edge.source == entity_id, Edge.target == entity_id)
            )
            return int(s.execute(stmt).scalar_one() or 0)

    def update_edge(self, edge_id: str, **fields: Any) -> bool:
        with self._session(write=True) as s:
            edge = s.get(Edge, edge_id)
            if edge is None:
                return False
            for key, value in fields.items():
                if key not in _EDGE_FIELDS:
                    raise ValueError(f"Unknown edge field: {key}")
                if key == "last_interaction_date":
                    value = to_naive_utc(parse_datetime(value))
                setattr(edge, key, value)
            return True

    def delete_edge(self, edge_id: str) -> bool:
        with self._session(write=True) as s:
            result = s.execute(delete(Edge).where(Edge.id == edge_id))
            return bool(result.rowcount)

    def stats(self) -> Dict[str, Any]:
        with self._session() as s:
            by_type = dict(
                s.execute(select(Entity.type, func.count(Entity.id)).group_by(Entity.type)).all()
            )
            edge_count = s.execute(select(func.count(Edge.id))).scalar_one()
            duplicate_keys = s.execute(
                select(func.count()).select_from(
                    select(Edge.source, Edge.target, Edge.kind)
                    .group_by(Edge.source, Edge.target, Edge.kind)
                    .having(func.count(Edge.id) > 1)
                    .subquery()
                )
            ).scalar_one()
            internal_owners = s.execute(
                select(func.count(Entity.id)).where(Entity.is_internal_owner.is_(True))
            ).scalar_one()
        return {
            "entities": sum(by_type.values()),
            "entities_by_type": by_type,
            "edges": int(edge_count or 0),
            "duplicate_edge_keys": int(duplicate_keys or 0),
            "internal_owners": int(internal_owners or 0),
        }

    # -------- Internal helpers --------
    @staticmethod
    def _entity_to_dict(entity: Entity) -> Dict[str, Any]:
        return {
            "id": entity.id,
            "name": entity.name,
            "type": entity.type,
            "domain": entity.domain,
            "is_internal_owner": bool(entity.is_internal_owner),
            "is_portfolio": bool(entity.is_portfolio),
            "is_pipeline": bool(entity.is_pipeline),
            "linkedin_first_degree": bool(entity.linkedin_first_degree),
            "business_analysis": entity.business_analysis,
            "has_substantive_analysis": bool(entity.has_substantive_analysis),
            "enriched": bool(entity.enriched),
            "enrichment_source": entity.enrichment_source,
            "created_at": isoformat_utc(entity.created_at),
            "updated_at": isoformat_utc(entity.updated_at),
        }

    @staticmethod
    def _edge_to_dict(edge: Edge) -> Dict[str, Any]:
        last: Optional[datetime] = edge.last_interaction_date
        return {
            "id": edge.id,
            "source": edge.source,
            "target": edge.target,
            "kind": edge.kind,
            "strength_score": edge.strength_score,
            "interaction_count": edge.interaction_count or 0,
            "last_interaction_date": isoformat_utc(last),
            "source_type": edge.source_type,
        }
