"""Reconciliation of notebook vocabulary into the notes table."""
import logging
import threading
from typing import Iterable, Optional, Set, TextIO, Tuple

from vocab_sync.models.schema import ImportOptions, ImportResult
from vocab_sync.models.sources import FlashcardIndex, StoryIndex
from vocab_sync.services.base_reconciler import (
    TAG_NEW,
    TAG_SKIP,
    TAG_UPDATE,
    BaseReconciler,
)
from vocab_sync.services.sources import VocabularyOccurrence, collect_occurrences
from vocab_sync.storage.base import NoteStore

logger = logging.getLogger(__name__)


class NoteReconciler(BaseReconciler):
    """Merges vocabulary occurrences into notes and notebook links.

    Every occurrence is resolved by its (usage, entry) key:

    - unknown key: the note, its images, its references and its first
      notebook link are created in one atomic call;
    - known key: the note is skipped, or refreshed when
      ``refresh_existing`` is set, and the occurrence's notebook link is
      created unless it already exists.

    Keys created earlier in the same call are remembered so a dry run
    classifies repeated keys exactly like a real run would.
    """

    def __init__(
        self,
        note_store: NoteStore,
        out: Optional[TextIO] = None,
        cancel: Optional[threading.Event] = None,
    ):
        super().__init__(out=out, cancel=cancel)
        self.note_store = note_store

    def reconcile(
        self,
        story_indexes: Iterable[StoryIndex],
        flashcard_indexes: Iterable[FlashcardIndex],
        options: ImportOptions,
    ) -> ImportResult:
        """Import every occurrence found in the given notebooks.

        Args:
            story_indexes: Story and book notebooks.
            flashcard_indexes: Flashcard notebooks.
            options: Dry-run and refresh switches.

        Returns:
            Note and link counters.

        Raises:
            StorageError: If any repository call fails; the whole call aborts.
            ImportCancelledError: If cancellation is requested.
        """
        result = ImportResult()
        planned_notes: Set[Tuple[str, str]] = set()
        planned_links: Set[Tuple[str, str, str, str, str]] = set()

        for occurrence in collect_occurrences(story_indexes, flashcard_indexes):
            self._reconcile_occurrence(
                occurrence, options, result, planned_notes, planned_links
            )

        logger.info(
            f"Notes: {result.notes_new} new, {result.notes_skipped} skipped, "
            f"{result.notes_updated} updated; links: {result.links_new} new, "
            f"{result.links_skipped} skipped"
        )
        return result

    def _reconcile_occurrence(
        self,
        occ: VocabularyOccurrence,
        options: ImportOptions,
        result: ImportResult,
        planned_notes: Set[Tuple[str, str]],
        planned_links: Set[Tuple[str, str, str, str, str]],
    ) -> None:
        existing = self._call(
            "find_note",
            self.note_store.find_by_usage_and_entry,
            occ.usage,
            occ.entry,
            key=occ.key,
        )

        if existing is None and occ.key not in planned_notes:
            if not options.dry_run:
                self._call("create_note", self.note_store.create, occ.to_note(), key=occ.key)
            planned_notes.add(occ.key)
            planned_links.add(occ.link_key)
            result.notes_new += 1
            result.links_new += 1
            self._emit(TAG_NEW, occ.usage, occ.entry)
            return

        # Only a dry run can get here without a stored note
        if options.refresh_existing:
            if existing is not None and not options.dry_run:
                refreshed = existing.model_copy(
                    update={
                        "meaning": occ.meaning,
                        "level": occ.level,
                        "dictionary_number": occ.dictionary_number,
                    }
                )
                self._call("update_note", self.note_store.update, refreshed, key=occ.key)
            result.notes_updated += 1
            self._emit(TAG_UPDATE, occ.usage, occ.entry)
        else:
            result.notes_skipped += 1
            self._emit(TAG_SKIP, occ.usage, occ.entry)

        self._reconcile_link(occ, existing, options, result, planned_links)

    def _reconcile_link(self, occ, existing, options, result, planned_links) -> None:
        if occ.link_key in planned_links:
            result.links_skipped += 1
            return

        if existing is not None:
            link = self._call(
                "find_notebook_link",
                self.note_store.find_notebook_link,
                existing.id,
                occ.notebook_kind,
                occ.notebook_id,
                occ.group,
                key=occ.key,
            )
            if link is not None:
                result.links_skipped += 1
                return
            if not options.dry_run:
                self._call(
                    "create_notebook_link",
                    self.note_store.create_notebook_link,
                    occ.to_link(existing.id),
                    key=occ.key,
                )

        planned_links.add(occ.link_key)
        result.links_new += 1
        logger.debug(
            f"New link for {occ.key}: {occ.notebook_kind.value}/{occ.notebook_id} "
            f"group={occ.group!r}"
        )
