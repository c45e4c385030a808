import abc
from typing import Any, Dict, Iterator, List, Optional


class GraphStore(abc.ABC):
    """Primary store holding the canonical entity and edge collections.

    Rows cross this boundary as plain dicts using the entity/edge attribute
    names (``id``, ``name``, ``type``, ``source``, ``target``, ``kind`` ...).
    """

    # -------- Entities --------
    @abc.abstractmethod
    def save_entities(self, entities: List[Dict[str, Any]]) -> List[str]: ...

    @abc.abstractmethod
    def get_entity(self, entity_id: str) -> Optional[Dict[str, Any]]: ...

    @abc.abstractmethod
    def iter_entities(
        self, entity_type: Optional[str] = None, page_size: Optional[int] = None
    ) -> Iterator[Dict[str, Any]]: ...

    @abc.abstractmethod
    def search_entities(
        self,
        name: str,
        mode: str = "exact",
        entity_type: Optional[str] = None,
        limit: int = 100,
    ) -> List[Dict[str, Any]]: ...

    @abc.abstractmethod
    def update_entity(self, entity_id: str, **fields: Any) -> bool: ...

    @abc.abstractmethod
    def delete_entity(self, entity_id: str) -> int:
        """Delete an entity and its incident edges; return the edge count removed."""

    # -------- Edges --------
    @abc.abstractmethod
    def save_edges(self, edges: List[Dict[str, Any]]) -> List[str]: ...

    @abc.abstractmethod
    def iter_edges(self, page_size: Optional[int] = None) -> Iterator[Dict[str, Any]]: ...

    @abc.abstractmethod
    def get_edges(
        self, source_id: Optional[str] = None, target_id: Optional[str] = None
    ) -> List[Dict[str, Any]]: ...

    @abc.abstractmethod
    def find_edges(self, source_id: str, target_id: str, kind: str) -> List[Dict[str, Any]]: ...

    @abc.abstractmethod
    def count_edges(self, entity_id: str) -> int: ...

    @abc.abstractmethod
    def update_edge(self, edge_id: str, **fields: Any) -> bool: ...

    @abc.abstractmethod
    def delete_edge(self, edge_id: str) -> bool: ...

    def stats(self) -> Dict[str, Any]:
        """Collection counts; stores without cheap counting return an empty dict."""
        return {}
