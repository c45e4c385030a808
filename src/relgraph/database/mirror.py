"""Secondary graph mirror kept in step with entity deletions.

The mirror is best-effort: the primary store stays authoritative, so callers
log and count mirror failures rather than aborting their own work.
"""

import abc
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from neo4j import GraphDatabase
from neo4j.exceptions import Neo4jError, ServiceUnavailable, SessionExpired, TransientError

from ..exceptions import StoreError, TransientStoreError


class MirrorStore(abc.ABC):
    @abc.abstractmethod
    def delete_node(self, entity_id: str) -> None:
        """Detach-delete the mirror node whose ``id`` property equals ``entity_id``."""

    def delete_nodes(self, entity_ids: Iterable[str]) -> None:
        for entity_id in entity_ids:
            self.delete_node(entity_id)

    def close(self) -> None:
        pass


class NullMirrorStore(MirrorStore):
    """Used when no mirror is configured."""

    def delete_node(self, entity_id: str) -> None:
        return None

    def delete_nodes(self, entity_ids: Iterable[str]) -> None:
        return None


@dataclass
class Neo4jConfig:
    uri: str
    user: str
    password: str
    database: str = "neo4j"
    batch_size: int = 500


class Neo4jMirrorStore(MirrorStore):
    """Neo4j-backed mirror. Nodes are matched on their ``id`` property regardless of label."""

    def __init__(self, cfg: Neo4jConfig, driver=None):
        self.cfg = cfg
        self.logger = logging.getLogger(__name__)
        # Driver is thread-safe; sessions are lightweight.
        self._driver = driver or GraphDatabase.driver(cfg.uri, auth=(cfg.user, cfg.password))

    def close(self) -> None:
        self._driver.close()

    def delete_node(self, entity_id: str) -> None:
        self.delete_nodes([entity_id])

    def delete_nodes(self, entity_ids: Iterable[str]) -> None:
        ids: List[str] = [str(i) for i in entity_ids]
        if not ids:
            return
        try:
            with self._driver.session(database=self.cfg.database) as s:
                for start in range(0, len(ids), self.cfg.batch_size):
                    s.execute_write(self._delete_nodes_tx, ids[start:start + self.cfg.batch_size])
        except (ServiceUnavailable, SessionExpired, TransientError) as e:
            raise TransientStoreError(f"Neo4j unavailable: {e}") from e
        except Neo4jError as e:
            raise StoreError(f"Neo4j delete failed: {e}") from e
        self.logger.debug(f"Mirror removed {len(ids)} node(s)")

    @staticmethod
    def _delete_nodes_tx(tx, ids: List[str]):
        q = """
        UNWIND $ids AS id
        MATCH (n {id: id})
        DETACH DELETE n
        """
        tx.run(q, ids=ids)


def build_mirror(settings) -> MirrorStore:
    """Return a Neo4j mirror when configured, else a no-op mirror."""
    if not settings.mirror_enabled:
        return NullMirrorStore()
    cfg = Neo4jConfig(
        uri=settings.neo4j_uri,
        user=settings.neo4j_user or "neo4j",
        password=settings.neo4j_password or "",
        database=settings.neo4j_database,
    )
    return Neo4jMirrorStore(cfg)


def close_quietly(mirror: Optional[MirrorStore]) -> None:
    if mirror is None:
        return
    try:
        mirror.close()
    except Exception as e:
        logging.getLogger(__name__).warning(f"Failed to close mirror store: {e}")
