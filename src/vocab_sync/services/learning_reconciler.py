"""Reconciliation of learning histories into the learning log table."""
import datetime
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Set, TextIO, Tuple

from vocab_sync.models.schema import (
    ImportOptions,
    ImportResult,
    LearningEvent,
    Note,
    QuizType,
)
from vocab_sync.models.sources import (
    LearningExpression,
    LearningHistory,
    LearningRecord,
)
from vocab_sync.services.base_reconciler import (
    TAG_NEW,
    TAG_SKIP,
    TAG_WARN,
    BaseReconciler,
)
from vocab_sync.storage.base import LearningStore, NoteStore

logger = logging.getLogger(__name__)

EventKey = Tuple[int, QuizType, datetime.date]


@dataclass(frozen=True)
class FlatEvent:
    """A forward or reverse record paired with the values of its group."""

    expression: str
    record: LearningRecord
    quiz_type: QuizType
    easiness_factor: float


def effective_quiz_type(record: LearningRecord, reverse: bool) -> QuizType:
    """Reverse records are always "reverse"; an empty type means "notebook"."""
    if reverse:
        return QuizType.REVERSE
    return record.quiz_type or QuizType.NOTEBOOK


def flatten_expression(expr: LearningExpression) -> Iterator[FlatEvent]:
    """Forward events first, then reverse events, each in source order."""
    for record in expr.learned_logs:
        yield FlatEvent(
            expr.expression, record, effective_quiz_type(record, False), expr.easiness_factor
        )
    for record in expr.reverse_logs:
        yield FlatEvent(
            expr.expression, record, effective_quiz_type(record, True), expr.reverse_easiness_factor
        )


class EntryIndex:
    """Resolves a history expression to a note through its Entry.

    When several notes share one Entry, the note whose Usage equals the
    expression wins, otherwise the one with the lowest id.
    """

    def __init__(self, notes: List[Note]):
        self._by_entry: Dict[str, List[Note]] = defaultdict(list)
        for note in notes:
            self._by_entry[note.entry].append(note)
        self._warned: Set[str] = set()

    def __len__(self) -> int:
        return len(self._by_entry)

    def resolve(self, expression: str) -> Optional[Note]:
        candidates = self._by_entry.get(expression)
        if not candidates:
            return None
        if len(candidates) == 1:
            return candidates[0]

        exact = [n for n in candidates if n.usage == expression]
        chosen = min(exact or candidates, key=lambda n: n.id)
        if expression not in self._warned:
            self._warned.add(expression)
            logger.warning(
                f"Entry {expression!r} is shared by {len(candidates)} notes "
                f"(ids {sorted(n.id for n in candidates)}); attaching events to "
                f"note {chosen.id} ({chosen.usage!r})"
            )
        return chosen


class LearningLogReconciler(BaseReconciler):
    """Merges per-expression learning events into the learning log.

    Existing notes are loaded once and indexed by Entry. Events whose
    expression has no note are counted as warnings and skipped.
    """

    def __init__(
        self,
        note_store: NoteStore,
        learning_store: LearningStore,
        out: Optional[TextIO] = None,
        cancel: Optional[threading.Event] = None,
    ):
        super().__init__(out=out, cancel=cancel)
        self.note_store = note_store
        self.learning_store = learning_store

    def reconcile(
        self,
        histories: Mapping[str, List[LearningHistory]],
        options: ImportOptions,
    ) -> ImportResult:
        """Import learning events from histories keyed by notebook id.

        Notebook ids are processed in sorted order.

        Raises:
            StorageError: If any repository call fails.
            ImportCancelledError: If cancellation is requested.
        """
        result = ImportResult()
        notes = self._call("load_notes", self.note_store.find_all)
        index = EntryIndex(notes)
        logger.debug(f"Indexed {len(notes)} notes under {len(index)} entries")

        planned: Set[EventKey] = set()
        for notebook_id in sorted(histories):
            for history in histories[notebook_id]:
                for expr in history.iter_expressions():
                    for event in flatten_expression(expr):
                        self._reconcile_event(event, index, options, result, planned)

        logger.info(
            f"Learning events: {result.events_new} new, {result.events_skipped} "
            f"skipped, {result.events_warnings} unresolved"
        )
        return result

    def _reconcile_event(
        self,
        event: FlatEvent,
        index: EntryIndex,
        options: ImportOptions,
        result: ImportResult,
        planned: Set[EventKey],
    ) -> None:
        note = index.resolve(event.expression)
        if note is None:
            result.events_warnings += 1
            self._emit(TAG_WARN, event.expression, "no matching note")
            return

        occurred_at = event.record.learned_at
        key: EventKey = (note.id, event.quiz_type, occurred_at)
        detail = f" {event.quiz_type.value} {occurred_at.isoformat()}"

        if key in planned:
            result.events_skipped += 1
            self._emit(TAG_SKIP, note.usage, note.entry, detail)
            return

        existing = self._call(
            "find_learning_event",
            self.learning_store.find_by_note_quiz_type_and_date,
            note.id,
            event.quiz_type,
            occurred_at,
            key=key,
        )
        planned.add(key)
        if existing is not None:
            result.events_skipped += 1
            self._emit(TAG_SKIP, note.usage, note.entry, detail)
            return

        if not options.dry_run:
            self._call(
                "create_learning_event",
                self.learning_store.create,
                LearningEvent(
                    note_id=note.id,
                    status=event.record.status,
                    occurred_at=occurred_at,
                    quality=event.record.quality,
                    response_time_ms=event.record.response_time_ms,
                    quiz_type=event.quiz_type,
                    interval_days=event.record.interval_days,
                    easiness_factor=event.easiness_factor,
                ),
                key=key,
            )
        result.events_new += 1
        self._emit(TAG_NEW, note.usage, note.entry, detail)
