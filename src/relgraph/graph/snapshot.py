import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..database.store import GraphStore
from ..exceptions import SnapshotLoadError, StoreError
from ..types.graph import GraphEdge, GraphEntity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphSnapshot:
    """Immutable copy of the entity and edge collections taken at query time."""

    entities: List[GraphEntity] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)

    def entity_map(self) -> Dict[str, GraphEntity]:
        return {e.id: e for e in self.entities}


def load_snapshot(store: GraphStore, page_size: Optional[int] = None) -> GraphSnapshot:
    """Read every entity and edge from ``store`` into a GraphSnapshot.

    Store failures are wrapped in SnapshotLoadError; they are the only fatal
    error for a path query.
    """
    try:
        entities = [GraphEntity.from_dict(row) for row in store.iter_entities(page_size=page_size)]
        edges = [GraphEdge.from_dict(row) for row in store.iter_edges(page_size=page_size)]
    except StoreError as e:
        logger.error(f"Snapshot load failed: {e}")
        raise SnapshotLoadError(str(e)) from e
    except (KeyError, TypeError, ValueError) as e:
        logger.error(f"Snapshot load failed on malformed row: {e}")
        raise SnapshotLoadError(f"Malformed row: {e}") from e

    logger.info(f"Loaded snapshot: {len(entities)} entities, {len(edges)} edges")
    return GraphSnapshot(entities=entities, edges=edges)
