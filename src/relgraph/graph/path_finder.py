"""Warm-introduction path search over an in-memory graph snapshot.

The graph is held as two structures that are never mixed up:

* a directed ``(source, target) -> edge`` lookup used only for edge
  attributes (kind, strength), and
* a symmetric ``node -> neighbors`` adjacency used only for traversal.

Every hop is scored with :func:`edge_strength`; a path scores the mean of its
hop strengths.
"""

import heapq
import itertools
import logging
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..types.graph import GraphEdge, GraphEntity
from .insights import PathInsights, get_path_insights
from .strength import edge_strength

EntityLike = Union[GraphEntity, Mapping[str, Any]]
EdgeLike = Union[GraphEdge, Mapping[str, Any]]


@dataclass(frozen=True)
class PathFindingOptions:
    max_hops: int = 4
    max_paths: int = 10
    min_strength: float = 0.3
    prefer_linkedin: bool = True
    prefer_internal: bool = True
    # Thread pool size for per-seed searches; 1 runs them inline
    workers: int = 1

    def merged(self, options=None, **overrides) -> "PathFindingOptions":
        """Return a copy with ``options`` (dataclass or mapping) and ``overrides`` applied."""
        result = self
        if isinstance(options, PathFindingOptions):
            result = options
        elif options:
            given = {k: v for k, v in options.items() if v is not None}
            result = replace(result, **_known_fields(given))
        clean = {k: v for k, v in overrides.items() if v is not None}
        return replace(result, **_known_fields(clean)) if clean else result


INTRO_DEFAULTS = PathFindingOptions()
BETWEEN_DEFAULTS = PathFindingOptions(
    max_hops=6,
    max_paths=5,
    min_strength=0.2,
    prefer_linkedin=False,
    prefer_internal=False,
)


def _known_fields(values: Mapping[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(PathFindingOptions)}
    unknown = set(values) - names
    if unknown:
        raise TypeError(f"Unknown path finding option(s): {', '.join(sorted(unknown))}")
    return dict(values)


@dataclass
class IntroPath:
    path: List[str]
    path_names: List[str]
    strength: float
    connection_types: List[str]
    total_hops: int
    internal_owners: List[str] = field(default_factory=list)
    linkedin_connections: List[str] = field(default_factory=list)
    explanation: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": list(self.path),
            "pathNames": list(self.path_names),
            "strength": self.strength,
            "connection_types": list(self.connection_types),
            "total_hops": self.total_hops,
            "internal_owners": list(self.internal_owners),
            "linkedin_connections": list(self.linkedin_connections),
            "explanation": self.explanation,
        }


class PathFinder:
    """Finds, scores and ranks connection routes between entities.

    The finder never mutates its inputs; one instance can serve any number of
    queries, including concurrent ones.
    """

    def __init__(
        self,
        entities: Iterable[EntityLike],
        edges: Iterable[EdgeLike],
        now: Optional[datetime] = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.now = now or datetime.now(timezone.utc)

        self._entities: Dict[str, GraphEntity] = {}
        self._edge_lookup: Dict[Tuple[str, str], GraphEdge] = {}
        self._hop_strength: Dict[Tuple[str, str], float] = {}
        self._adjacency: Dict[str, List[str]] = {}
        self._build_graph(entities, edges)

    def _build_graph(self, entities: Iterable[EntityLike], edges: Iterable[EdgeLike]) -> None:
        for entity in entities:
            if not isinstance(entity, GraphEntity):
                entity = GraphEntity.from_dict(entity)
            self._entities[entity.id] = entity

        seen_neighbors: Dict[str, set] = {}
        dangling = 0
        for edge in edges:
            if not isinstance(edge, GraphEdge):
                edge = GraphEdge.from_dict(edge)
            if edge.source not in self._entities or edge.target not in self._entities:
                dangling += 1
                continue

            # First stored edge per orientation wins attribute lookup
            key = (edge.source, edge.target)
            if key not in self._edge_lookup:
                self._edge_lookup[key] = edge
                self._hop_strength[key] = edge_strength(edge, now=self.now)

            if edge.source == edge.target:
                continue
            for a, b in ((edge.source, edge.target), (edge.target, edge.source)):
                neighbors = seen_neighbors.setdefault(a, set())
                if b not in neighbors:
                    neighbors.add(b)
                    self._adjacency.setdefault(a, []).append(b)

        if dangling:
            self.logger.debug(f"Ignored {dangling} edge(s) referencing unknown entities")

    # -------- Lookups --------
    def _edge_between(self, a: str, b: str) -> Optional[GraphEdge]:
        edge = self._edge_lookup.get((a, b))
        if edge is None:
            edge = self._edge_lookup.get((b, a))
        return edge

    def _strength_between(self, a: str, b: str) -> float:
        value = self._hop_strength.get((a, b))
        if value is None:
            value = self._hop_strength.get((b, a), 0.0)
        return value

    def internal_owner_ids(self) -> List[str]:
        return [e.id for e in self._entities.values() if e.is_internal_owner]

    def linkedin_ids(self) -> List[str]:
        return [e.id for e in self._entities.values() if e.linkedin_first_degree]

    # -------- Path construction --------
    def _path_strength(self, path: Sequence[str]) -> float:
        if len(path) < 2:
            return 0.0
        hops = [self._strength_between(a, b) for a, b in zip(path, path[1:])]
        return sum(hops) / len(hops)

    def _build_path(self, path: Sequence[str]) -> IntroPath:
        names = [self._entities[node].name or node for node in path]
        kinds: List[str] = []
        steps: List[str] = []
        for i, (a, b) in enumerate(zip(path, path[1:])):
            edge = self._edge_between(a, b)
            kind = edge.kind if edge else ""
            kinds.append(kind)
            steps.append(f"{names[i]} → {names[i + 1]} ({kind})")

        return IntroPath(
            path=list(path),
            path_names=names,
            strength=self._path_strength(path),
            connection_types=kinds,
            total_hops=len(path) - 1,
            internal_owners=[n for n in path if self._entities[n].is_internal_owner],
            linkedin_connections=[n for n in path if self._entities[n].linkedin_first_degree],
            explanation=" → ".join(steps),
        )

    # -------- Search strategies --------
    def _enumerate_paths(self, start: str, target: str, opts: PathFindingOptions) -> List[IntroPath]:
        """All simple paths from ``start`` to ``target`` within ``max_hops``, breadth first."""
        found: List[IntroPath] = []
        if start == target:
            return found

        queue = deque([((start,), frozenset((start,)))])
        while queue:
            path, visited = queue.popleft()
            current = path[-1]

            if current == target:
                candidate = self._build_path(path)
                if candidate.strength >= opts.min_strength:
                    found.append(candidate)
                continue

            if len(path) - 1 >= opts.max_hops:
                continue

            for neighbor in self._adjacency.get(current, ()):
                if neighbor not in visited:
                    queue.append((path + (neighbor,), visited | {neighbor}))

        return found

    def _weighted_path(self, start: str, target: str, opts: PathFindingOptions) -> List[IntroPath]:
        """Lowest-cost path where traversing an edge costs ``1 - strength``."""
        if start == target:
            return []

        distances: Dict[str, float] = {start: 0.0}
        previous: Dict[str, Optional[str]] = {start: None}
        settled = set()
        tie = itertools.count()
        heap = [(0.0, next(tie), start)]

        while heap:
            distance, _, node = heapq.heappop(heap)
            if node in settled:
                continue
            settled.add(node)

            if node == target:
                path = [target]
                while previous[path[-1]] is not None:
                    path.append(previous[path[-1]])
                path.reverse()
                if len(path) - 1 > opts.max_hops:
                    return []
                candidate = self._build_path(path)
                return [candidate] if candidate.strength >= opts.min_strength else []

            for neighbor in self._adjacency.get(node, ()):
                if neighbor in settled:
                    continue
                new_distance = distance + (1.0 - self._strength_between(node, neighbor))
                if new_distance < distances.get(neighbor, float("inf")):
                    distances[neighbor] = new_distance
                    previous[neighbor] = node
                    heapq.heappush(heap, (new_distance, next(tie), neighbor))

        return []

    def _search_from_seed(self, seed: str, target: str, opts: PathFindingOptions) -> List[IntroPath]:
        return self._enumerate_paths(seed, target, opts) + self._weighted_path(seed, target, opts)

    # -------- Ranking --------
    @staticmethod
    def _dedupe(paths: Iterable[IntroPath]) -> List[IntroPath]:
        seen = set()
        unique: List[IntroPath] = []
        for p in paths:
            key = tuple(p.path)
            if key not in seen:
                seen.add(key)
                unique.append(p)
        return unique

    @staticmethod
    def _rank(paths: List[IntroPath], prefer_linkedin: bool, prefer_internal: bool = False) -> List[IntroPath]:
        def key(p: IntroPath):
            parts = []
            if prefer_linkedin:
                parts.append(-len(p.linkedin_connections))
            if prefer_internal:
                parts.append(-len(p.internal_owners))
            parts.append(-p.strength)
            return tuple(parts)

        # sorted() is stable, so equal keys keep discovery order
        return sorted(paths, key=key)

    # -------- Public API --------
    def find_intro_paths(
        self, target_id: str, options: Union[PathFindingOptions, Mapping[str, Any], None] = None, **overrides
    ) -> List[IntroPath]:
        """Ranked routes from every internal owner to ``target_id``.

        Each seed is searched with bounded-hop enumeration and a weighted
        shortest-path pass; results are pooled, de-duplicated by node sequence,
        ranked (LinkedIn first-degree count, then strength) and truncated.
        """
        opts = INTRO_DEFAULTS.merged(options, **overrides)

        if target_id not in self._entities:
            self.logger.info(f"Target {target_id} is not in the graph")
            return []

        owners = self.internal_owner_ids()
        if not owners:
            self.logger.warning("No internal owners found in the graph")
            return []
        seeds = [s for s in owners if s != target_id]

        if opts.workers > 1 and len(seeds) > 1:
            with ThreadPoolExecutor(max_workers=min(opts.workers, len(seeds))) as pool:
                # map() yields in seed order, so merging stays deterministic
                per_seed = list(pool.map(lambda s: self._search_from_seed(s, target_id, opts), seeds))
        else:
            per_seed = [self._search_from_seed(s, target_id, opts) for s in seeds]

        pooled = [p for results in per_seed for p in results]
        ranked = self._rank(self._dedupe(pooled), opts.prefer_linkedin)
        result = ranked[: max(opts.max_paths, 0)]
        self.logger.debug(
            f"Intro paths to {target_id}: {len(pooled)} found, {len(ranked)} unique, {len(result)} returned"
        )
        return result

    def find_paths_between(
        self,
        source_id: str,
        target_id: str,
        options: Union[PathFindingOptions, Mapping[str, Any], None] = None,
        **overrides,
    ) -> List[IntroPath]:
        """Routes between two arbitrary entities using bounded-hop enumeration only."""
        opts = BETWEEN_DEFAULTS.merged(options, **overrides)
        if source_id not in self._entities or target_id not in self._entities:
            return []
        paths = self._enumerate_paths(source_id, target_id, opts)
        ranked = self._rank(self._dedupe(paths), opts.prefer_linkedin, opts.prefer_internal)
        return ranked[: max(opts.max_paths, 0)]

    def get_path_insights(self, paths: Sequence[IntroPath]) -> PathInsights:
        return get_path_insights(paths)
