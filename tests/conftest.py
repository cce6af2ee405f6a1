"""Common test fixtures for vocab-sync."""

import io
from unittest.mock import MagicMock

import pytest

from vocab_sync.config import config
from vocab_sync.models.db_models import init_db
from vocab_sync.services.sync_service import SyncService
from vocab_sync.storage.dictionary_repository import DictionaryRepository
from vocab_sync.storage.learning_repository import LearningRepository
from vocab_sync.storage.note_repository import NoteRepository


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Configure with test paths (auto-restored even on crash)."""
    monkeypatch.setattr(config, "base_dir", tmp_path)
    monkeypatch.setattr(config, "database_path", tmp_path / "db" / "test_vocab.db")
    monkeypatch.setattr(config, "export_dir", tmp_path / "export")
    monkeypatch.setattr(config, "log_dir", tmp_path / "logs")
    yield config


@pytest.fixture
def engine():
    """Real in-memory SQLite shared by every repository of a test."""
    engine = init_db("sqlite://")
    yield engine
    engine.dispose()


@pytest.fixture
def note_repository(engine):
    return NoteRepository(engine=engine)


@pytest.fixture
def learning_repository(engine):
    return LearningRepository(engine=engine)


@pytest.fixture
def dictionary_repository(engine):
    return DictionaryRepository(engine=engine)


@pytest.fixture
def out():
    """Captures the per-record report."""
    return io.StringIO()


@pytest.fixture
def sync_service(note_repository, learning_repository, dictionary_repository, out):
    return SyncService(note_repository, learning_repository, dictionary_repository, out=out)


@pytest.fixture
def spy():
    """Wrap a real store so calls are recorded but still executed."""

    def _spy(store):
        return MagicMock(wraps=store)

    return _spy
