import logging
import threading
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from ..database.mirror import MirrorStore, NullMirrorStore
from ..database.store import GraphStore
from ..exceptions import StoreError
from ..types.graph import EntityType
from .garbage import classify_garbage

# Candidate scoring weights
SCORE_ANALYSIS = 10
SCORE_DOMAIN = 5
SCORE_ENRICHED = 2

ENTITY_TYPE_ORDER = (EntityType.PERSON.value, EntityType.ORGANIZATION.value)

STATUS_MERGED = "merged"
STATUS_PLANNED = "planned"
STATUS_FAILED = "failed"


def normalize_name(name: Optional[str]) -> str:
    return (name or "").strip().lower()


@dataclass
class GroupResult:
    entity_type: str
    name: str
    winner_id: str
    loser_ids: List[str]
    scores: Dict[str, int]
    status: str = STATUS_MERGED
    edges_repointed: int = 0
    edges_removed: int = 0
    self_loops_removed: int = 0
    mirror_failures: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ConsolidationReport:
    dry_run: bool = False
    garbage_deleted: int = 0
    garbage_edges_deleted: int = 0
    merged_groups: int = 0
    entities_merged: int = 0
    edges_repointed: int = 0
    edges_removed: int = 0
    self_loops_removed: int = 0
    failed_groups: int = 0
    mirror_failures: int = 0
    garbage: List[Dict[str, Any]] = field(default_factory=list)
    groups: List[GroupResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def summary(self) -> Dict[str, int]:
        return {
            "garbageDeleted": self.garbage_deleted,
            "mergedGroups": self.merged_groups,
            "edgesRemoved": self.edges_removed,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["groups"] = [g.to_dict() for g in self.groups]
        return data


class ConsolidationEngine:
    """
    Removes garbage entities and merges same-name duplicates in the primary store.

    For every entity type (people first, then organizations) entities are
    grouped by case-insensitive name. Each group elects the highest-scoring
    member as survivor; the other members' edges are re-pointed onto the
    survivor (or dropped when the survivor already has the same edge), then
    the losers are deleted from the primary store and the mirror.

    A failure inside one group is logged and recorded; the run continues with
    the next group.
    """

    def __init__(
        self,
        store: GraphStore,
        mirror: Optional[MirrorStore] = None,
        page_size: Optional[int] = None,
    ):
        self.store = store
        self.mirror = mirror or NullMirrorStore()
        self.page_size = page_size
        self.logger = logging.getLogger(__name__)
        # Groups must never be merged concurrently
        self._lock = threading.Lock()

    def run(self, dry_run: bool = False) -> ConsolidationReport:
        """
        Run one full consolidation pass.

        Args:
            dry_run: If True, report garbage and duplicate groups without
                touching either store.

        Returns:
            ConsolidationReport with counters and per-group detail
        """
        with self._lock:
            report = ConsolidationReport(dry_run=dry_run)
            self.logger.info(f"Starting consolidation{' (dry run)' if dry_run else ''}")

            garbage_ids = self._remove_garbage(report, dry_run)

            for entity_type in ENTITY_TYPE_ORDER:
                groups = self._find_groups(entity_type, exclude=garbage_ids)
                self.logger.info(f"Found {len(groups)} duplicate {entity_type} group(s)")
                for members in groups:
                    self._process_group(entity_type, members, report, dry_run)

            if not dry_run:
                self._sweep_duplicate_edges(report)

            self.logger.info(
                f"Consolidation finished: {report.garbage_deleted} garbage deleted, "
                f"{report.merged_groups} groups merged ({report.entities_merged} entities), "
                f"{report.edges_repointed} edges re-pointed, {report.edges_removed} edges removed, "
                f"{report.failed_groups} failed groups, {report.mirror_failures} mirror failures"
            )
            return report

    # -------- Step 1: garbage --------
    def _remove_garbage(self, report: ConsolidationReport, dry_run: bool) -> set:
        # Collect first; deleting while paging would shift the offsets
        candidates = []
        for row in self.store.iter_entities(page_size=self.page_size):
            reason = classify_garbage(row.get("name"))
            if reason:
                candidates.append((row, reason))

        garbage_ids = set()
        for row, reason in candidates:
            entity_id = row["id"]
            garbage_ids.add(entity_id)
            report.garbage.append(
                {"id": entity_id, "name": row.get("name"), "type": row.get("type"), "reason": reason}
            )
            if dry_run:
                continue
            try:
                removed_edges = self.store.delete_entity(entity_id)
            except StoreError as e:
                self.logger.warning(f"Failed to delete garbage entity {entity_id}: {e}")
                report.errors.append(f"garbage {entity_id}: {e}")
                continue
            report.garbage_deleted += 1
            report.garbage_edges_deleted += removed_edges
            self.logger.debug(f"Deleted garbage entity {row.get('name')!r} ({reason}), {removed_edges} edge(s)")
            if not self._mirror_delete(entity_id):
                report.mirror_failures += 1

        if candidates:
            self.logger.info(f"Garbage entities: {len(candidates)} found, {report.garbage_deleted} deleted")
        return garbage_ids

    # -------- Step 2: grouping --------
    def _find_groups(self, entity_type: str, exclude: set = frozenset()) -> List[List[Dict[str, Any]]]:
        by_name: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        for row in self.store.iter_entities(entity_type=entity_type, page_size=self.page_size):
            if row["id"] in exclude:
                continue
            key = normalize_name(row.get("name"))
            if not key:
                continue
            by_name[key].append(row)
        return [members for members in by_name.values() if len(members) > 1]

    # -------- Steps 3-4: scoring and election --------
    def score_candidate(self, entity: Dict[str, Any]) -> int:
        score = 0
        if entity.get("has_substantive_analysis"):
            score += SCORE_ANALYSIS
        if (entity.get("domain") or "").strip():
            score += SCORE_DOMAIN
        if entity.get("enriched"):
            score += SCORE_ENRICHED
        return score + self.store.count_edges(entity["id"])

    @staticmethod
    def elect_winner(scores: Dict[str, int]) -> str:
        """Highest score wins; equal scores go to the smallest id."""
        return min(scores, key=lambda entity_id: (-scores[entity_id], entity_id))

    # -------- Steps 5-6: migration and deletion --------
    def _process_group(
        self,
        entity_type: str,
        members: List[Dict[str, Any]],
        report: ConsolidationReport,
        dry_run: bool,
    ) -> None:
        name = members[0].get("name") or ""
        result = GroupResult(entity_type=entity_type, name=name, winner_id="", loser_ids=[], scores={})
        report.groups.append(result)
        try:
            result.scores = {m["id"]: self.score_candidate(m) for m in members}
            result.winner_id = self.elect_winner(result.scores)
            result.loser_ids = sorted(i for i in result.scores if i != result.winner_id)
            self.logger.info(
                f"Group {entity_type} {name!r}: keeping {result.winner_id} "
                f"(score {result.scores[result.winner_id]}), merging {len(result.loser_ids)}"
            )
            if dry_run:
                result.status = STATUS_PLANNED
                return

            for loser_id in result.loser_ids:
                self._migrate_edges(loser_id, result)
                self.store.delete_entity(loser_id)
                if not self._mirror_delete(loser_id):
                    result.mirror_failures += 1
        except Exception as e:
            result.status = STATUS_FAILED
            result.error = str(e)
            report.failed_groups += 1
            report.errors.append(f"{entity_type} {name!r}: {e}")
            self.logger.error(f"Failed to consolidate {entity_type} group {name!r}: {e}")
        else:
            report.merged_groups += 1
            report.entities_merged += len(result.loser_ids)
        finally:
            report.edges_repointed += result.edges_repointed
            report.edges_removed += result.edges_removed
            report.self_loops_removed += result.self_loops_removed
            report.mirror_failures += result.mirror_failures

    def _migrate_edges(self, loser_id: str, result: GroupResult) -> None:
        winner_id = result.winner_id
        # Outgoing first; incoming is re-read so edges touched above are seen in their new form
        for edge in self.store.get_edges(source_id=loser_id):
            self._migrate_edge(edge, winner_id, edge["target"], result, field_name="source")
        for edge in self.store.get_edges(target_id=loser_id):
            self._migrate_edge(edge, edge["source"], winner_id, result, field_name="target")

    def _migrate_edge(
        self,
        edge: Dict[str, Any],
        new_source: str,
        new_target: str,
        result: GroupResult,
        field_name: str,
    ) -> None:
        edge_id = edge["id"]
        if new_source == new_target:
            self.store.delete_edge(edge_id)
            result.self_loops_removed += 1
            self.logger.debug(f"Removed self-loop {edge_id} ({edge['kind']})")
            return

        existing = [
            e for e in self.store.find_edges(new_source, new_target, edge["kind"]) if e["id"] != edge_id
        ]
        if existing:
            self.store.delete_edge(edge_id)
            result.edges_removed += 1
            self.logger.debug(f"Removed redundant edge {edge_id} ({edge['kind']})")
        else:
            self.store.update_edge(edge_id, **{field_name: result.winner_id})
            result.edges_repointed += 1
            self.logger.debug(f"Re-pointed edge {edge_id} {field_name} to {result.winner_id}")

    def _mirror_delete(self, entity_id: str) -> bool:
        try:
            self.mirror.delete_node(entity_id)
            return True
        except Exception as e:
            self.logger.warning(f"Mirror delete failed for {entity_id}: {e}")
            return False

    # -------- Final edge sweep --------
    def _sweep_duplicate_edges(self, report: ConsolidationReport) -> None:
        try:
            by_key: Dict[tuple, List[str]] = defaultdict(list)
            for edge in self.store.iter_edges(page_size=self.page_size):
                by_key[(edge["source"], edge["target"], edge["kind"])].append(edge["id"])

            removed = 0
            for key, ids in by_key.items():
                if len(ids) <= 1:
                    continue
                for edge_id in sorted(ids)[1:]:
                    if self.store.delete_edge(edge_id):
                        removed += 1
            report.edges_removed += removed
            if removed:
                self.logger.info(f"Removed {removed} duplicate edge(s)")
        except StoreError as e:
            report.errors.append(f"edge sweep: {e}")
            self.logger.error(f"Duplicate edge sweep failed: {e}")
