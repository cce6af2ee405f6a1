"""Import/export driver.

Runs the reconcilers in the fixed order notes, learning logs, dictionary,
and writes the export bundle to disk.
"""
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, TextIO

from sqlalchemy.engine import Engine

from vocab_sync.config import VocabSyncConfig
from vocab_sync.exceptions import ImportPhaseError
from vocab_sync.models.schema import ImportOptions, ImportResult
from vocab_sync.models.sources import (
    DictionaryResponse,
    FlashcardIndex,
    LearningHistory,
    StoryIndex,
)
from vocab_sync.observability import timed_operation
from vocab_sync.services.dictionary_reconciler import DictionaryReconciler
from vocab_sync.services.export_service import ExportService
from vocab_sync.services.learning_reconciler import LearningLogReconciler
from vocab_sync.services.note_reconciler import NoteReconciler
from vocab_sync.storage.base import DictionaryStore, LearningStore, NoteStore
from vocab_sync.storage.dictionary_repository import DictionaryRepository
from vocab_sync.storage.learning_repository import LearningRepository
from vocab_sync.storage.note_repository import NoteRepository
from vocab_sync.storage.yaml_export import write_export
from vocab_sync.storage.yaml_sources import (
    load_dictionary_responses,
    load_flashcard_indexes,
    load_learning_histories,
    load_story_indexes,
)

logger = logging.getLogger(__name__)

PHASE_NOTES = "notes"
PHASE_LEARNING = "learning_logs"
PHASE_DICTIONARY = "dictionary"


@dataclass
class ImportSources:
    """All source collections, already loaded into memory."""

    story_indexes: List[StoryIndex] = field(default_factory=list)
    flashcard_indexes: List[FlashcardIndex] = field(default_factory=list)
    learning_histories: Dict[str, List[LearningHistory]] = field(default_factory=dict)
    dictionary_responses: List[DictionaryResponse] = field(default_factory=list)


def load_sources(cfg: VocabSyncConfig) -> ImportSources:
    """Load every configured source directory.

    Raises:
        SourceLoadError: If any file cannot be read or validated.
    """
    with timed_operation("load_sources") as op:
        sources = ImportSources(
            story_indexes=load_story_indexes(
                cfg.get_absolute_path(d) for d in cfg.story_dirs
            ),
            flashcard_indexes=load_flashcard_indexes(
                cfg.get_absolute_path(d) for d in cfg.flashcard_dirs
            ),
            learning_histories=load_learning_histories(
                cfg.get_absolute_path(cfg.learning_dir) if cfg.learning_dir else None
            ),
            dictionary_responses=load_dictionary_responses(
                cfg.get_absolute_path(cfg.dictionary_cache_dir)
                if cfg.dictionary_cache_dir
                else None
            ),
        )
        op["notebooks"] = len(sources.story_indexes) + len(sources.flashcard_indexes)
        op["histories"] = len(sources.learning_histories)
        op["dictionary"] = len(sources.dictionary_responses)
    return sources


def format_summary(result: ImportResult, dry_run: bool = False) -> str:
    """Render the per-category totals printed after an import."""
    lines = []
    if dry_run:
        lines.append("Dry run: no changes were written.")
    lines.extend(
        [
            f"Notes: {result.notes_new} new, {result.notes_skipped} skipped, "
            f"{result.notes_updated} updated",
            f"Notebook links: {result.links_new} new, {result.links_skipped} skipped",
            f"Learning events: {result.events_new} new, {result.events_skipped} "
            f"skipped, {result.events_warnings} warnings",
            f"Dictionary: {result.dictionary_new} new, {result.dictionary_skipped} "
            f"skipped, {result.dictionary_updated} updated",
        ]
    )
    return "\n".join(lines)


class SyncService:
    """Drives the import phases and the export."""

    def __init__(
        self,
        note_store: NoteStore,
        learning_store: LearningStore,
        dictionary_store: DictionaryStore,
        out: Optional[TextIO] = None,
        cancel: Optional[threading.Event] = None,
    ):
        self.note_store = note_store
        self.learning_store = learning_store
        self.dictionary_store = dictionary_store
        self.out = out
        self.cancel = cancel

    @classmethod
    def from_engine(
        cls,
        engine: Optional[Engine] = None,
        out: Optional[TextIO] = None,
        cancel: Optional[threading.Event] = None,
    ) -> "SyncService":
        """Build the service on SQLAlchemy repositories sharing one engine."""
        note_repo = NoteRepository(engine=engine)
        return cls(
            note_repo,
            LearningRepository(engine=note_repo.engine),
            DictionaryRepository(engine=note_repo.engine),
            out=out,
            cancel=cancel,
        )

    def import_all(self, sources: ImportSources, options: ImportOptions) -> ImportResult:
        """Run notes, learning logs and dictionary phases in that order.

        Returns:
            The sum of the three phase results.

        Raises:
            ImportPhaseError: When a phase fails. Later phases do not run;
                ``partial_result`` holds the totals of completed phases.
        """
        total = ImportResult()
        phases = [
            (
                PHASE_NOTES,
                lambda: NoteReconciler(
                    self.note_store, out=self.out, cancel=self.cancel
                ).reconcile(sources.story_indexes, sources.flashcard_indexes, options),
            ),
            (
                PHASE_LEARNING,
                lambda: LearningLogReconciler(
                    self.note_store, self.learning_store, out=self.out, cancel=self.cancel
                ).reconcile(sources.learning_histories, options),
            ),
            (
                PHASE_DICTIONARY,
                lambda: DictionaryReconciler(
                    self.dictionary_store, out=self.out, cancel=self.cancel
                ).reconcile(sources.dictionary_responses, options),
            ),
        ]

        for phase, run in phases:
            try:
                with timed_operation(
                    f"import_{phase}",
                    dry_run=options.dry_run,
                    refresh_existing=options.refresh_existing,
                ) as op:
                    result = run()
                    op.update({k: v for k, v in result.to_dict().items() if v})
            except Exception as e:
                logger.error(f"Import phase '{phase}' failed: {e}")
                raise ImportPhaseError(phase, total, original_error=e) from e
            total = total + result

        return total

    def export_all(self, output_dir: Path) -> List[Path]:
        """Read the whole store and write it as YAML under ``output_dir``."""
        with timed_operation("export", output_dir=str(output_dir)) as op:
            bundle = ExportService(
                self.note_store, self.learning_store, self.dictionary_store
            ).export()
            paths = write_export(bundle, output_dir)
            op.update(bundle.counts())
        return paths
