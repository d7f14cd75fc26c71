"""Common test fixtures for Draftsmith."""

import pytest

from draftsmith.config import config
from draftsmith.models.db_models import create_db_engine, init_db
from draftsmith.models.schema import Partition
from draftsmith.observability import metrics
from draftsmith.services.hierarchy_mutator import HierarchyMutator
from draftsmith.services.hierarchy_service import HierarchyService
from draftsmith.storage.graph_store import SqlGraphStore
from tests.fakes import FakeGraphStore


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Point config at a temporary database (auto-restored after the test)."""
    monkeypatch.setattr(config, "base_dir", tmp_path)
    monkeypatch.setattr(config, "database_path", tmp_path / "db" / "test_draftsmith.db")
    monkeypatch.setattr(config, "database_url", None)
    monkeypatch.setattr(config, "in_memory_db", False)
    monkeypatch.setattr(config, "sibling_order", "insertion")
    monkeypatch.setattr(config, "log_level", "INFO")
    yield config


@pytest.fixture
def db_engine(test_config):
    """File-backed SQLite engine with all tables created."""
    engine = init_db(create_db_engine())
    yield engine
    engine.dispose()


@pytest.fixture
def sql_store(db_engine):
    """SqlGraphStore over the temporary database."""
    return SqlGraphStore(engine=db_engine)


@pytest.fixture
def fake_store():
    """Empty in-memory Graph Store."""
    return FakeGraphStore()


@pytest.fixture
def mutator(fake_store):
    return HierarchyMutator(fake_store)


@pytest.fixture
def sql_service(sql_store):
    """HierarchyService backed by the temporary SQLite database."""
    return HierarchyService(store=sql_store, sibling_order="insertion")


@pytest.fixture
def note_chain(fake_store):
    """Notes 1..4 with edges 1 -> 2 -> 3 and an isolated note 4."""
    for node_id, title in [(1, "Root"), (2, "Chapter"), (3, "Section"), (4, "Loose")]:
        fake_store.add_node(Partition.NOTES, node_id, title)
    fake_store.seed_edge(Partition.NOTES, 1, 2)
    fake_store.seed_edge(Partition.NOTES, 2, 3)
    return fake_store


@pytest.fixture(autouse=True)
def _reset_metrics():
    """Start every test with empty operation metrics."""
    metrics.reset()
    yield
    metrics.reset()
