import pytest

from mnemo.application.config import AppConfig
from mnemo.application.factory import build_engine, build_store
from mnemo.domain.errors import PersistenceError
from mnemo.infrastructure.adapters import InMemoryStore, YamlFileStore


def test_build_memory_store(mock_home):
    assert isinstance(build_store(AppConfig(store="memory")), InMemoryStore)


def test_build_yaml_store(tmp_path, mock_home):
    store = build_store(AppConfig(store="yaml", store_path=tmp_path / "s.yaml"))

    assert isinstance(store, YamlFileStore)
    assert store.path == (tmp_path / "s.yaml").resolve()


def test_unreadable_store_file(tmp_path, mock_home):
    path = tmp_path / "s.yaml"
    path.write_text("[not, a, mapping]")

    with pytest.raises(PersistenceError):
        build_store(AppConfig(store="yaml", store_path=path))


@pytest.mark.asyncio
async def test_engine_services_share_store(mock_home, clock, item_factory):
    store = InMemoryStore([item_factory()])
    engine = build_engine(AppConfig(store="memory", analysis_history_limit=50), clock, store)

    start = await engine.sessions.start_session("user-1")
    await engine.sessions.submit_review(start.session_id, 5)

    assert engine.store is store
    assert (await engine.stats.get_review_stats("user-1")).total == 1
    assert (await engine.analyzer.analyze("user-1")).review_count == 1
    assert (await engine.parameters.load("user-1")).interval_modifier == pytest.approx(105.0)
