"""Tests for path insights aggregation."""

import pytest

from relgraph.graph.insights import PathInsights, get_path_insights
from relgraph.graph.path_finder import IntroPath, PathFinder

from conftest import NOW, edge, person


def _path(nodes, strength, kinds, owners=(), linkedin=()):
    return IntroPath(
        path=list(nodes),
        path_names=list(nodes),
        strength=strength,
        connection_types=list(kinds),
        total_hops=len(nodes) - 1,
        internal_owners=list(owners),
        linkedin_connections=list(linkedin),
    )


def test_empty_input_returns_zero_summary():
    assert get_path_insights([]).to_dict() == {
        "totalPaths": 0,
        "averageStrength": 0,
        "shortestPath": 0,
        "longestPath": 0,
        "linkedinPaths": 0,
        "internalOwnerPaths": 0,
        "topConnectionTypes": [],
    }


def test_aggregates_paths():
    paths = [
        _path(["S", "A", "T"], 0.7, ["colleague", "investor"], owners=["S"]),
        _path(["S", "T"], 0.5, ["investor"], owners=["S"], linkedin=["T"]),
        _path(["X", "A", "B", "T"], 0.6, ["friend", "colleague", "investor"]),
    ]

    insights = get_path_insights(paths)

    assert insights.total_paths == 3
    assert insights.average_strength == pytest.approx(0.6)
    assert insights.shortest_path == 1
    assert insights.longest_path == 3
    assert insights.linkedin_paths == 1
    assert insights.internal_owner_paths == 2
    assert insights.top_connection_types == [
        {"type": "investor", "count": 3},
        {"type": "colleague", "count": 2},
        {"type": "friend", "count": 1},
    ]


def test_top_connection_types_limited_to_five():
    kinds = ["a", "b", "c", "d", "e", "f", "g"]
    paths = [_path(["S", "T"], 0.5, [k]) for k in kinds] + [_path(["S", "T"], 0.5, ["g"])]

    top = get_path_insights(paths).top_connection_types

    assert len(top) == 5
    assert top[0] == {"type": "g", "count": 2}


def test_path_finder_delegates():
    entities = [person("S", "Sam", is_internal_owner=True), person("T", "Tess")]
    finder = PathFinder(entities, [edge("e", "S", "T", "advisor", strength_score=0.8)], now=NOW)

    insights = finder.get_path_insights(finder.find_intro_paths("T"))

    assert isinstance(insights, PathInsights)
    assert insights.total_paths == 1
    assert insights.top_connection_types == [{"type": "advisor", "count": 1}]
