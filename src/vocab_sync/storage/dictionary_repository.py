"""Repository for cached dictionary lookups."""
import datetime
import logging
from typing import List, Optional

from sqlalchemy import select

from vocab_sync.exceptions import StorageError
from vocab_sync.models.db_models import DBDictionaryEntry, get_session_factory, init_db
from vocab_sync.models.schema import DictionaryEntry, utc_now

logger = logging.getLogger(__name__)


class DictionaryRepository:
    """Dictionary entries keyed by word."""

    def __init__(self, engine=None):
        self.engine = engine or init_db()
        self.session_factory = get_session_factory(self.engine)
        logger.debug("DictionaryRepository initialized")

    def find_all(self) -> List[DictionaryEntry]:
        """Get all entries ordered by word."""
        with self.session_factory() as session:
            result = session.execute(
                select(DBDictionaryEntry).order_by(DBDictionaryEntry.word)
            )
            return [self._db_to_model(db) for db in result.scalars().all()]

    def find_by_word(self, word: str) -> Optional[DictionaryEntry]:
        with self.session_factory() as session:
            db_entry = session.get(DBDictionaryEntry, word)
            return self._db_to_model(db_entry) if db_entry else None

    def upsert(self, entry: DictionaryEntry) -> DictionaryEntry:
        """Insert the entry, or replace the payload of the existing one.

        ``created_at`` of an existing row is kept.
        """
        now = utc_now().replace(tzinfo=None)
        with self.session_factory() as session:
            try:
                db_entry = session.get(DBDictionaryEntry, entry.word)
                if db_entry is None:
                    db_entry = DBDictionaryEntry(
                        word=entry.word,
                        created_at=entry.created_at.replace(tzinfo=None),
                    )
                    session.add(db_entry)
                db_entry.source_type = entry.source_type
                db_entry.source_url = entry.source_url or None
                db_entry.response = entry.response
                db_entry.updated_at = now
                session.commit()
            except Exception as e:
                session.rollback()
                raise StorageError(
                    f"Failed to upsert dictionary entry '{entry.word}'",
                    operation="upsert_dictionary_entry",
                    key=entry.word,
                    original_error=e,
                ) from e
            return self._db_to_model(db_entry)

    @staticmethod
    def _db_to_model(db_entry: DBDictionaryEntry) -> DictionaryEntry:
        return DictionaryEntry(
            word=db_entry.word,
            source_type=db_entry.source_type,
            source_url=db_entry.source_url or "",
            response=db_entry.response or "",
            created_at=db_entry.created_at.replace(tzinfo=datetime.timezone.utc),
            updated_at=db_entry.updated_at.replace(tzinfo=datetime.timezone.utc),
        )
