"""Read-back of every stored entity family for backup."""
import logging

from vocab_sync.exceptions import ErrorCode, StorageError
from vocab_sync.models.schema import ExportBundle
from vocab_sync.storage.base import DictionaryStore, LearningStore, NoteStore

logger = logging.getLogger(__name__)


class ExportService:
    """Reads notes, learning events and dictionary entries in sequence.

    A failed read aborts the export before anything is returned.
    """

    def __init__(
        self,
        note_store: NoteStore,
        learning_store: LearningStore,
        dictionary_store: DictionaryStore,
    ):
        self.note_store = note_store
        self.learning_store = learning_store
        self.dictionary_store = dictionary_store

    def export(self) -> ExportBundle:
        """Return everything in the store.

        Raises:
            StorageError: If any of the three reads fails.
        """
        reads = [
            ("load_notes", self.note_store.find_all),
            ("load_learning_events", self.learning_store.find_all),
            ("load_dictionary_entries", self.dictionary_store.find_all),
        ]
        loaded = []
        for step, read in reads:
            try:
                loaded.append(read())
            except Exception as e:
                logger.error(f"Export aborted at {step}: {e}")
                raise StorageError(
                    f"{step} failed",
                    operation=step,
                    code=ErrorCode.STORAGE_READ_FAILED,
                    original_error=e,
                ) from e

        notes, events, entries = loaded
        bundle = ExportBundle(
            notes=notes, learning_events=events, dictionary_entries=entries
        )
        logger.info(f"Export read {bundle.counts()}")
        return bundle
