"""Shared fixtures for relgraph tests."""

from datetime import datetime, timezone

import pytest

from relgraph.database.engine import SQLAlchemyStore

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def store():
    """Create an in-memory store for testing."""
    s = SQLAlchemyStore("sqlite:///:memory:")
    yield s
    s.engine.dispose()


def person(entity_id, name, **extra):
    return {"id": entity_id, "name": name, "type": "person", **extra}


def org(entity_id, name, **extra):
    return {"id": entity_id, "name": name, "type": "organization", **extra}


def edge(edge_id, source, target, kind="knows", **extra):
    return {"id": edge_id, "source": source, "target": target, "kind": kind, **extra}
