"""Repository interfaces consumed by the reconcilers and the exporter."""
import datetime
from typing import List, Optional, Protocol, runtime_checkable

from vocab_sync.models.schema import (
    DictionaryEntry,
    LearningEvent,
    Note,
    NotebookKind,
    NotebookLink,
    QuizType,
)


@runtime_checkable
class NoteStore(Protocol):
    """Storage for notes and their owned rows."""

    def find_all(self) -> List[Note]:
        """Return every note, ordered by id, with images, references and links."""
        ...

    def find_by_usage_and_entry(self, usage: str, entry: str) -> Optional[Note]:
        ...

    def find_notebook_link(
        self, note_id: int, kind: NotebookKind, notebook_id: str, group: str
    ) -> Optional[NotebookLink]:
        ...

    def create(self, note: Note) -> Note:
        """Persist a note with its images, references and links in one transaction."""
        ...

    def create_notebook_link(self, link: NotebookLink) -> NotebookLink:
        ...

    def update(self, note: Note) -> Note:
        """Overwrite meaning, level and dictionary number of an existing note."""
        ...


@runtime_checkable
class LearningStore(Protocol):
    """Append-only storage for learning events."""

    def find_all(self) -> List[LearningEvent]:
        ...

    def find_by_note_quiz_type_and_date(
        self, note_id: int, quiz_type: QuizType, occurred_at: datetime.date
    ) -> Optional[LearningEvent]:
        ...

    def create(self, event: LearningEvent) -> LearningEvent:
        ...


@runtime_checkable
class DictionaryStore(Protocol):
    """Storage for cached dictionary lookups, keyed by word."""

    def find_all(self) -> List[DictionaryEntry]:
        ...

    def find_by_word(self, word: str) -> Optional[DictionaryEntry]:
        ...

    def upsert(self, entry: DictionaryEntry) -> DictionaryEntry:
        ...
