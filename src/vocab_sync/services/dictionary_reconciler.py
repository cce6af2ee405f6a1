"""Reconciliation of cached dictionary lookups."""
import json
import logging
import threading
from typing import Iterable, Optional, Set, TextIO

from vocab_sync.exceptions import SerializationError
from vocab_sync.models.schema import (
    CACHED_LOOKUP_SOURCE,
    DictionaryEntry,
    ImportOptions,
    ImportResult,
)
from vocab_sync.models.sources import DictionaryResponse
from vocab_sync.services.base_reconciler import (
    TAG_NEW,
    TAG_SKIP,
    TAG_UPDATE,
    BaseReconciler,
)
from vocab_sync.storage.base import DictionaryStore

logger = logging.getLogger(__name__)


def serialize_payload(response: DictionaryResponse) -> str:
    """Encode a lookup payload as stable JSON.

    Raises:
        SerializationError: If the payload holds values JSON cannot encode.
    """
    try:
        return json.dumps(response.payload, ensure_ascii=False, sort_keys=True)
    except (TypeError, ValueError) as e:
        raise SerializationError(
            f"Cannot serialize dictionary payload for '{response.word}'",
            word=response.word,
            original_error=e,
        ) from e


class DictionaryReconciler(BaseReconciler):
    """Merges cached lookup responses into dictionary entries by word."""

    def __init__(
        self,
        dictionary_store: DictionaryStore,
        out: Optional[TextIO] = None,
        cancel: Optional[threading.Event] = None,
    ):
        super().__init__(out=out, cancel=cancel)
        self.dictionary_store = dictionary_store

    def reconcile(
        self, responses: Iterable[DictionaryResponse], options: ImportOptions
    ) -> ImportResult:
        """Import lookup responses.

        Raises:
            SerializationError: If a payload cannot be encoded.
            StorageError: If any repository call fails.
        """
        result = ImportResult()
        planned: Set[str] = set()

        for response in responses:
            data = serialize_payload(response)
            word = response.word
            existing = self._call(
                "find_dictionary_entry", self.dictionary_store.find_by_word, word, key=word
            )

            if existing is None and word not in planned:
                if not options.dry_run:
                    entry = DictionaryEntry(
                        word=word,
                        source_type=CACHED_LOOKUP_SOURCE,
                        source_url=response.source_url or "",
                        response=data,
                    )
                    self._call(
                        "upsert_dictionary_entry", self.dictionary_store.upsert, entry, key=word
                    )
                planned.add(word)
                result.dictionary_new += 1
                self._emit(TAG_NEW, word, CACHED_LOOKUP_SOURCE)
                continue

            if not options.refresh_existing:
                result.dictionary_skipped += 1
                self._emit(TAG_SKIP, word, CACHED_LOOKUP_SOURCE)
                continue

            if existing is not None and not options.dry_run:
                self._call(
                    "upsert_dictionary_entry",
                    self.dictionary_store.upsert,
                    existing.model_copy(update={"response": data}),
                    key=word,
                )
            result.dictionary_updated += 1
            self._emit(TAG_UPDATE, word, CACHED_LOOKUP_SOURCE)

        logger.info(
            f"Dictionary: {result.dictionary_new} new, {result.dictionary_skipped} "
            f"skipped, {result.dictionary_updated} updated"
        )
        return result
