"""Storage layer for vocab-sync."""

from vocab_sync.storage.base import DictionaryStore, LearningStore, NoteStore
from vocab_sync.storage.dictionary_repository import DictionaryRepository
from vocab_sync.storage.learning_repository import LearningRepository
from vocab_sync.storage.note_repository import NoteRepository

__all__ = [
    "NoteStore",
    "LearningStore",
    "DictionaryStore",
    "NoteRepository",
    "LearningRepository",
    "DictionaryRepository",
]
