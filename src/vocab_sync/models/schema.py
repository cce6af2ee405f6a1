"""Data models for vocab-sync."""

import datetime
from dataclasses import asdict, dataclass, field, fields
from datetime import timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

DEFAULT_EASINESS_FACTOR = 2.5

# Source type recorded for dictionary entries imported from the lookup cache
CACHED_LOOKUP_SOURCE = "cached-lookup"


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.datetime.now(timezone.utc)


class NotebookKind(str, Enum):
    """Kinds of notebooks a note can be found in."""

    STORY = "story"
    BOOK = "book"
    FLASHCARD = "flashcard"


class LearnedStatus(str, Enum):
    """Outcome of a single review."""

    UNDERSTOOD = "understood"
    MISUNDERSTOOD = "misunderstood"
    USABLE = "usable"


class QuizType(str, Enum):
    """Mode a learning event was recorded under."""

    NOTEBOOK = "notebook"  # recognition
    FREEFORM = "freeform"  # recall
    REVERSE = "reverse"  # production


class NoteImage(BaseModel):
    """An image attached to a note."""

    id: Optional[int] = None
    note_id: Optional[int] = None
    url: str
    sort_order: int = 0


class NoteReference(BaseModel):
    """An external reference attached to a note."""

    id: Optional[int] = None
    note_id: Optional[int] = None
    link: str
    description: str = ""
    sort_order: int = 0


class NotebookLink(BaseModel):
    """Where a note was observed: one notebook, one group within it."""

    id: Optional[int] = None
    note_id: Optional[int] = None
    notebook_kind: NotebookKind
    notebook_id: str
    group: str = ""
    subgroup: str = ""

    model_config = {"validate_assignment": True}


class Note(BaseModel):
    """A vocabulary note, unique by (usage, entry)."""

    id: Optional[int] = Field(default=None, description="Database identity")
    usage: str = Field(..., description="Surface form as it appeared in the source")
    entry: str = Field(..., description="Canonical headword used for deduplication")
    meaning: str = ""
    level: str = ""
    dictionary_number: int = 0
    images: List[NoteImage] = Field(default_factory=list)
    references: List[NoteReference] = Field(default_factory=list)
    notebook_links: List[NotebookLink] = Field(default_factory=list)
    created_at: datetime.datetime = Field(default_factory=utc_now)
    updated_at: datetime.datetime = Field(default_factory=utc_now)

    model_config = {"validate_assignment": True}

    @property
    def key(self) -> Tuple[str, str]:
        return (self.usage, self.entry)


class LearningEvent(BaseModel):
    """One recorded review outcome for a note."""

    id: Optional[int] = None
    note_id: int
    status: LearnedStatus
    occurred_at: datetime.date
    quality: int = Field(default=0, ge=0, le=5)
    response_time_ms: int = Field(default=0, ge=0)
    quiz_type: QuizType = QuizType.NOTEBOOK
    interval_days: int = 0
    easiness_factor: float = DEFAULT_EASINESS_FACTOR


class DictionaryEntry(BaseModel):
    """A cached dictionary lookup, unique by word."""

    word: str
    source_type: str = CACHED_LOOKUP_SOURCE
    source_url: str = ""
    response: str = Field(..., description="Serialized JSON payload")
    created_at: datetime.datetime = Field(default_factory=utc_now)
    updated_at: datetime.datetime = Field(default_factory=utc_now)


@dataclass(frozen=True)
class ImportOptions:
    """Options shared by every reconciler.

    Attributes:
        dry_run: Perform lookups and counting but no writes.
        refresh_existing: Overwrite mutable fields of records that already exist.
    """

    dry_run: bool = False
    refresh_existing: bool = False


@dataclass
class ImportResult:
    """Per-category counters produced by the reconcilers.

    Each reconciler only touches its own counters; results of the three
    phases are summed by the driver.
    """

    notes_new: int = 0
    notes_skipped: int = 0
    notes_updated: int = 0
    links_new: int = 0
    links_skipped: int = 0
    events_new: int = 0
    events_skipped: int = 0
    events_warnings: int = 0
    dictionary_new: int = 0
    dictionary_skipped: int = 0
    dictionary_updated: int = 0

    def __add__(self, other: "ImportResult") -> "ImportResult":
        if not isinstance(other, ImportResult):
            return NotImplemented
        return ImportResult(
            **{f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)}
        )

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class ExportBundle:
    """Everything read back out of the store for a backup."""

    notes: List[Note] = field(default_factory=list)
    learning_events: List[LearningEvent] = field(default_factory=list)
    dictionary_entries: List[DictionaryEntry] = field(default_factory=list)

    def counts(self) -> Dict[str, Any]:
        return {
            "notes": len(self.notes),
            "notebook_links": sum(len(n.notebook_links) for n in self.notes),
            "learning_events": len(self.learning_events),
            "dictionary_entries": len(self.dictionary_entries),
        }
