"""Repository for vocabulary notes and their notebook links."""
import datetime
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from vocab_sync.exceptions import ErrorCode, StorageError
from vocab_sync.models.db_models import (
    DBNote,
    DBNotebookNote,
    DBNoteImage,
    DBNoteReference,
    get_session_factory,
    init_db,
)
from vocab_sync.models.schema import (
    Note,
    NotebookKind,
    NotebookLink,
    NoteImage,
    NoteReference,
    utc_now,
)

logger = logging.getLogger(__name__)


def _to_naive(value: datetime.datetime) -> datetime.datetime:
    # SQLite DateTime columns store naive values
    return value.replace(tzinfo=None) if value.tzinfo else value


class NoteRepository:
    """SQLite-backed note storage.

    A note owns its image and reference rows; notebook links reference it by
    id. ``create`` writes all of them in a single transaction.
    """

    def __init__(self, engine=None):
        """Initialize the repository.

        Args:
            engine: SQLAlchemy engine. If None, uses default from config.
        """
        self.engine = engine or init_db()
        self.session_factory = get_session_factory(self.engine)
        logger.debug("NoteRepository initialized")

    def find_all(self) -> List[Note]:
        """Get all notes ordered by id."""
        with self.session_factory() as session:
            result = session.execute(
                select(DBNote)
                .options(
                    selectinload(DBNote.images),
                    selectinload(DBNote.references),
                    selectinload(DBNote.notebook_notes),
                )
                .order_by(DBNote.id)
            )
            return [self._db_note_to_model(db) for db in result.scalars().all()]

    def find_by_usage_and_entry(self, usage: str, entry: str) -> Optional[Note]:
        with self.session_factory() as session:
            db_note = session.scalar(
                select(DBNote)
                .options(
                    selectinload(DBNote.images),
                    selectinload(DBNote.references),
                    selectinload(DBNote.notebook_notes),
                )
                .where(DBNote.usage == usage, DBNote.entry == entry)
            )
            if db_note is None:
                return None
            return self._db_note_to_model(db_note)

    def find_notebook_link(
        self, note_id: int, kind: NotebookKind, notebook_id: str, group: str
    ) -> Optional[NotebookLink]:
        with self.session_factory() as session:
            db_link = session.scalar(
                select(DBNotebookNote).where(
                    DBNotebookNote.note_id == note_id,
                    DBNotebookNote.notebook_type == NotebookKind(kind).value,
                    DBNotebookNote.notebook_id == notebook_id,
                    DBNotebookNote.group == group,
                )
            )
            if db_link is None:
                return None
            return self._db_link_to_model(db_link)

    def create(self, note: Note) -> Note:
        """Create a note together with its images, references and links.

        Either every row is committed or none is.

        Args:
            note: Note to create. Its ``id`` is ignored.

        Returns:
            The note with database ids filled in.

        Raises:
            StorageError: If any row fails to insert.
        """
        with self.session_factory() as session:
            try:
                db_note = DBNote(
                    usage=note.usage,
                    entry=note.entry,
                    meaning=note.meaning,
                    level=note.level,
                    dictionary_number=note.dictionary_number,
                    created_at=_to_naive(note.created_at),
                    updated_at=_to_naive(note.updated_at),
                )
                session.add(db_note)
                session.flush()

                for i, image in enumerate(note.images):
                    session.add(
                        DBNoteImage(note_id=db_note.id, url=image.url, sort_order=i)
                    )
                for i, ref in enumerate(note.references):
                    session.add(
                        DBNoteReference(
                            note_id=db_note.id,
                            link=ref.link,
                            description=ref.description,
                            sort_order=i,
                        )
                    )
                for link in note.notebook_links:
                    session.add(self._link_row(db_note.id, link))

                session.commit()
            except Exception as e:
                session.rollback()
                logger.error(f"Failed to create note {note.key}: {e}")
                raise StorageError(
                    f"Failed to create note '{note.usage}'",
                    operation="create_note",
                    key=note.key,
                    original_error=e,
                ) from e

            created = self._load(session, db_note.id)
            logger.debug(f"Created note {created.id}: {note.key}")
            return created

    def create_notebook_link(self, link: NotebookLink) -> NotebookLink:
        if link.note_id is None:
            raise StorageError(
                "Notebook link has no note id",
                operation="create_notebook_link",
                code=ErrorCode.STORAGE_CONSTRAINT_VIOLATED,
            )
        with self.session_factory() as session:
            try:
                db_link = self._link_row(link.note_id, link)
                session.add(db_link)
                session.commit()
            except Exception as e:
                session.rollback()
                raise StorageError(
                    "Failed to create notebook link",
                    operation="create_notebook_link",
                    key=(link.note_id, link.notebook_kind.value, link.notebook_id, link.group),
                    original_error=e,
                ) from e
            return self._db_link_to_model(db_link)

    def update(self, note: Note) -> Note:
        """Overwrite the refreshable fields of an existing note.

        Usage and entry are never touched.

        Raises:
            StorageError: If the note does not exist.
        """
        with self.session_factory() as session:
            db_note = session.get(DBNote, note.id) if note.id is not None else None
            if db_note is None:
                raise StorageError(
                    f"Note {note.id} not found",
                    operation="update_note",
                    key=note.key,
                    code=ErrorCode.STORAGE_READ_FAILED,
                )
            db_note.meaning = note.meaning
            db_note.level = note.level
            db_note.dictionary_number = note.dictionary_number
            db_note.updated_at = _to_naive(utc_now())
            session.commit()
            return self._load(session, db_note.id)

    def _load(self, session: Session, note_id: int) -> Note:
        db_note = session.scalar(
            select(DBNote)
            .options(
                selectinload(DBNote.images),
                selectinload(DBNote.references),
                selectinload(DBNote.notebook_notes),
            )
            .where(DBNote.id == note_id)
            .execution_options(populate_existing=True)
        )
        return self._db_note_to_model(db_note)

    @staticmethod
    def _link_row(note_id: int, link: NotebookLink) -> DBNotebookNote:
        return DBNotebookNote(
            note_id=note_id,
            notebook_type=link.notebook_kind.value,
            notebook_id=link.notebook_id,
            group=link.group,
            subgroup=link.subgroup,
        )

    @staticmethod
    def _db_link_to_model(db_link: DBNotebookNote) -> NotebookLink:
        return NotebookLink(
            id=db_link.id,
            note_id=db_link.note_id,
            notebook_kind=NotebookKind(db_link.notebook_type),
            notebook_id=db_link.notebook_id,
            group=db_link.group or "",
            subgroup=db_link.subgroup or "",
        )

    @classmethod
    def _db_note_to_model(cls, db_note: DBNote) -> Note:
        """Convert a SQLAlchemy DBNote to a domain Note."""
        return Note(
            id=db_note.id,
            usage=db_note.usage,
            entry=db_note.entry,
            meaning=db_note.meaning or "",
            level=db_note.level or "",
            dictionary_number=db_note.dictionary_number or 0,
            images=[
                NoteImage(
                    id=img.id, note_id=img.note_id, url=img.url, sort_order=img.sort_order
                )
                for img in db_note.images
            ],
            references=[
                NoteReference(
                    id=ref.id,
                    note_id=ref.note_id,
                    link=ref.link,
                    description=ref.description or "",
                    sort_order=ref.sort_order,
                )
                for ref in db_note.references
            ],
            notebook_links=[cls._db_link_to_model(lnk) for lnk in db_note.notebook_notes],
            created_at=db_note.created_at.replace(tzinfo=datetime.timezone.utc),
            updated_at=db_note.updated_at.replace(tzinfo=datetime.timezone.utc),
        )
