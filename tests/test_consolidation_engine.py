"""
Tests for the consolidation engine.

Tests:
- Garbage removal with cascading edges and mirror deletes
- Winner scoring and tie-break
- Edge migration (re-point, redundant delete, self-loop removal)
- Idempotence, edge uniqueness and edge conservation
- Per-group failure isolation and mirror failures
- Dry run
"""

from collections import Counter
from unittest.mock import MagicMock, patch

import pytest

from relgraph.consolidation.engine import ConsolidationEngine
from relgraph.exceptions import TransientStoreError

from conftest import edge, org, person


def _edge_keys(store):
    return [(e["source"], e["target"], e["kind"]) for e in store.iter_edges()]


def _attached_pairs(store, member_ids):
    """Distinct (counterpart, kind) pairs attached to a set of entities, ignoring edges inside the set."""
    pairs = set()
    for e in store.iter_edges():
        if e["source"] in member_ids and e["target"] not in member_ids:
            pairs.add((e["target"], e["kind"]))
        elif e["target"] in member_ids and e["source"] not in member_ids:
            pairs.add((e["source"], e["kind"]))
    return pairs


@pytest.fixture
def merge_graph(store):
    store.save_entities([
        org("w", "Acme", domain="acme.com"),
        org("l", "acme"),
        person("x", "Xena"),
        person("y", "Yuri"),
    ])
    store.save_edges([
        edge("e-wx", "w", "x", "invests_in"),
        edge("e-wl", "w", "l", "subsidiary"),
        edge("e-lx", "l", "x", "invests_in"),
        edge("e-ly", "l", "y", "invests_in"),
        edge("e-xl", "x", "l", "advises"),
    ])
    return store


class TestGarbage:
    def test_garbage_entities_and_edges_are_deleted(self, store):
        store.save_entities([
            person("g1", "CEO"),
            person("g2", "Alice; Bob"),
            person("g3", "Jane Doe (CEO)"),
            person("x", "Xena"),
        ])
        store.save_edges([edge("e1", "g1", "x", "works_at"), edge("e2", "x", "g3", "knows")])
        mirror = MagicMock()

        report = ConsolidationEngine(store, mirror=mirror).run()

        assert report.garbage_deleted == 3
        assert report.garbage_edges_deleted == 2
        assert [e["id"] for e in store.iter_entities()] == ["x"]
        assert list(store.iter_edges()) == []
        assert sorted(c.args[0] for c in mirror.delete_node.call_args_list) == ["g1", "g2", "g3"]
        assert {g["reason"] for g in report.garbage} == {"generic_label", "separator", "role_suffix"}


class TestMerge:
    def test_edge_migration(self, merge_graph):
        mirror = MagicMock()

        report = ConsolidationEngine(merge_graph, mirror=mirror).run()

        assert report.merged_groups == 1
        assert report.entities_merged == 1
        assert report.edges_repointed == 2
        assert report.edges_removed == 1
        assert report.self_loops_removed == 1
        assert merge_graph.get_entity("l") is None
        assert sorted(_edge_keys(merge_graph)) == [
            ("w", "x", "invests_in"),
            ("w", "y", "invests_in"),
            ("x", "w", "advises"),
        ]
        mirror.delete_node.assert_called_once_with("l")

        group = report.groups[0]
        assert group.winner_id == "w"
        assert group.loser_ids == ["l"]
        assert group.scores == {"w": 7, "l": 4}

    def test_edge_conservation(self, merge_graph):
        before = _attached_pairs(merge_graph, {"w", "l"})

        ConsolidationEngine(merge_graph).run()

        assert _attached_pairs(merge_graph, {"w"}) == before

    def test_scoring_prefers_analysis_domain_and_enrichment(self, store):
        store.save_entities([
            person("a", "Jane Doe"),
            person("b", "jane doe", business_analysis={"summary": "Partner at a seed fund"}),
            person("c", "JANE DOE ", domain="janedoe.com", enriched=True),
            person("z", "Zed"),
        ])
        # c: 5 + 2 + 3 edges = 10; b: 10 + 0 edges = 10; tie broken by id
        store.save_edges([edge(f"e{i}", "c", "z", f"k{i}") for i in range(3)])

        report = ConsolidationEngine(store).run()

        group = report.groups[0]
        assert group.scores == {"a": 0, "b": 10, "c": 10}
        assert group.winner_id == "b"
        assert [e["id"] for e in store.iter_entities(entity_type="person")] == ["b", "z"]
        assert sorted(e["kind"] for e in store.get_edges(source_id="b")) == ["k0", "k1", "k2"]

    def test_partial_upsert_does_not_cost_the_winner_its_analysis(self, store):
        store.save_entities([
            org("o0", "Acme", enriched=True),
            org("o1", "acme", business_analysis={"summary": "Real profile"}),
        ])
        store.save_entities([{"id": "o1", "name": "acme", "type": "organization"}])

        report = ConsolidationEngine(store).run()

        group = report.groups[0]
        assert group.scores == {"o0": 2, "o1": 10}
        assert group.winner_id == "o1"
        assert [e["id"] for e in store.iter_entities()] == ["o1"]

    def test_tie_break_is_smallest_id(self, store):
        store.save_entities([org("o2", "Acme"), org("o1", "ACME"), org("o3", "acme")])

        report = ConsolidationEngine(store).run()

        assert report.groups[0].winner_id == "o1"
        assert [e["id"] for e in store.iter_entities()] == ["o1"]

    def test_types_are_grouped_separately(self, store):
        store.save_entities([person("p", "Jordan"), org("o", "Jordan"), person("blank1", " "), person("blank2", "")])

        report = ConsolidationEngine(store).run()

        assert report.merged_groups == 0
        assert len(list(store.iter_entities())) == 4

    def test_people_are_processed_before_organizations(self, store):
        store.save_entities([org("o1", "Acme"), org("o2", "acme"), person("p1", "Ann"), person("p2", "ann")])

        report = ConsolidationEngine(store).run()

        assert [g.entity_type for g in report.groups] == ["person", "organization"]


class TestInvariants:
    @pytest.fixture
    def messy(self, store):
        store.save_entities([
            person("p1", "Ann Lee"), person("p2", "ann lee"), person("p3", "ANN LEE"),
            person("q1", "Bo Chen"), person("q2", "bo chen"),
            org("o1", "Acme"), org("o2", "ACME"),
            person("g1", "Investor"),
        ])
        store.save_edges([
            edge("d1", "p1", "o1", "works_at"),
            edge("d2", "p2", "o2", "works_at"),
            edge("d3", "p3", "o1", "works_at"),
            edge("d4", "q1", "p2", "knows"),
            edge("d5", "q2", "p3", "knows"),
            edge("d6", "p1", "q1", "knows"),
            edge("d7", "q2", "o2", "advises"),
            edge("d8", "q2", "o2", "advises"),
            edge("d9", "g1", "o1", "invests_in"),
        ])
        return store

    def test_no_duplicate_names_or_edges_after_run(self, messy):
        report = ConsolidationEngine(messy).run()

        assert report.failed_groups == 0
        names = Counter((e["type"], e["name"].strip().lower()) for e in messy.iter_entities())
        assert all(count == 1 for count in names.values())
        keys = _edge_keys(messy)
        assert len(keys) == len(set(keys))

    def test_second_run_changes_nothing(self, messy):
        engine = ConsolidationEngine(messy)
        engine.run()
        entities_after_first = list(messy.iter_entities())
        edges_after_first = list(messy.iter_edges())

        second = engine.run()

        assert second.garbage_deleted == 0
        assert second.merged_groups == 0
        assert second.edges_removed == 0
        assert second.edges_repointed == 0
        assert [e["id"] for e in messy.iter_entities()] == [e["id"] for e in entities_after_first]
        assert list(messy.iter_edges()) == edges_after_first

    def test_summary_shape(self, messy):
        summary = ConsolidationEngine(messy).run().summary()
        assert set(summary) == {"garbageDeleted", "mergedGroups", "edgesRemoved"}
        assert summary["garbageDeleted"] == 1
        assert summary["mergedGroups"] == 3


class TestFailures:
    def test_failed_group_does_not_abort_run(self, store):
        # Domains make p1 and o1 the survivors, so p2 and o2 edges get migrated
        store.save_entities([
            person("p1", "Bob", domain="bob.dev"), person("p2", "bob"), person("x", "Xena"),
            org("o1", "Acme", domain="acme.com"), org("o2", "acme"),
        ])
        store.save_edges([edge("bad", "p2", "x", "knows"), edge("ok", "o2", "x", "employs")])
        real_update = store.update_edge

        def flaky(edge_id, **fields):
            if edge_id == "bad":
                raise TransientStoreError("timeout")
            return real_update(edge_id, **fields)

        with patch.object(store, "update_edge", side_effect=flaky):
            report = ConsolidationEngine(store).run()

        assert report.failed_groups == 1
        assert report.merged_groups == 1
        assert len(report.errors) == 1
        statuses = {g.name: g.status for g in report.groups}
        assert statuses == {"Bob": "failed", "Acme": "merged"}
        assert store.get_entity("p1") is not None
        assert store.get_entity("p2") is not None
        assert store.get_entity("o2") is None

    def test_rerun_after_partial_migration_converges(self, store):
        store.save_entities([person("p1", "Bob", domain="bob.dev"), person("p2", "bob"), person("x", "Xena"), person("y", "Yuri")])
        store.save_edges([
            edge("a", "p2", "x", "knows"),
            edge("b", "p2", "y", "knows"),
            edge("c", "p1", "x", "knows"),
        ])
        real_update = store.update_edge

        def flaky(edge_id, **fields):
            if edge_id == "b":
                raise TransientStoreError("timeout")
            return real_update(edge_id, **fields)

        engine = ConsolidationEngine(store)
        with patch.object(store, "update_edge", side_effect=flaky):
            first = engine.run()

        assert first.failed_groups == 1
        assert store.get_entity("p2") is not None

        second = engine.run()

        assert second.failed_groups == 0
        assert second.merged_groups == 1
        assert store.get_entity("p2") is None
        assert sorted(_edge_keys(store)) == [("p1", "x", "knows"), ("p1", "y", "knows")]

    def test_mirror_failure_is_counted_not_fatal(self, store):
        store.save_entities([org("o1", "Acme"), org("o2", "acme")])
        mirror = MagicMock()
        mirror.delete_node.side_effect = TransientStoreError("neo4j down")

        report = ConsolidationEngine(store, mirror=mirror).run()

        assert report.merged_groups == 1
        assert report.mirror_failures == 1
        assert store.get_entity("o2") is None


class TestDryRun:
    def test_dry_run_reports_without_mutating(self, merge_graph):
        merge_graph.save_entities([person("g", "Founder")])
        mirror = MagicMock()
        edges_before = list(merge_graph.iter_edges())

        report = ConsolidationEngine(merge_graph, mirror=mirror).run(dry_run=True)

        assert report.dry_run is True
        assert report.garbage_deleted == 0
        assert report.merged_groups == 0
        assert [g["id"] for g in report.garbage] == ["g"]
        assert report.groups[0].status == "planned"
        assert report.groups[0].winner_id == "w"
        assert merge_graph.get_entity("g") is not None
        assert merge_graph.get_entity("l") is not None
        assert list(merge_graph.iter_edges()) == edges_before
        mirror.delete_node.assert_not_called()
        assert report.to_dict()["groups"][0]["winner_id"] == "w"
