"""SQLAlchemy database models for vocab-sync."""
import datetime
from typing import Optional

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from vocab_sync.config import config

# Create base class for SQLAlchemy models
Base = declarative_base()


class DBNote(Base):
    """Database model for a vocabulary note."""
    __tablename__ = "notes"
    id = Column(Integer, primary_key=True, autoincrement=True)
    usage = Column(String(255), nullable=False, index=True)
    entry = Column(String(255), nullable=False, index=True)
    meaning = Column(Text, nullable=True)
    level = Column(String(50), nullable=True)
    dictionary_number = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.datetime.now, nullable=False)

    # Relationships
    images = relationship(
        "DBNoteImage",
        back_populates="note",
        order_by="DBNoteImage.sort_order",
        cascade="all, delete-orphan",
    )
    references = relationship(
        "DBNoteReference",
        back_populates="note",
        order_by="DBNoteReference.sort_order",
        cascade="all, delete-orphan",
    )
    notebook_notes = relationship(
        "DBNotebookNote",
        back_populates="note",
        order_by="DBNotebookNote.id",
        cascade="all, delete-orphan",
    )

    # Safety net for the look-up-then-create dedup done by the importer
    __table_args__ = (
        UniqueConstraint("usage", "entry", name="unique_note_usage_entry"),
    )

    def __repr__(self) -> str:
        """Return string representation of note."""
        return f"<Note(id={self.id}, usage='{self.usage}', entry='{self.entry}')>"


class DBNoteImage(Base):
    """Database model for an image attached to a note."""
    __tablename__ = "note_images"
    id = Column(Integer, primary_key=True, autoincrement=True)
    note_id = Column(Integer, ForeignKey("notes.id"), nullable=False, index=True)
    url = Column(Text, nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.datetime.now, nullable=False)

    note = relationship("DBNote", back_populates="images")


class DBNoteReference(Base):
    """Database model for an external reference attached to a note."""
    __tablename__ = "note_references"
    id = Column(Integer, primary_key=True, autoincrement=True)
    note_id = Column(Integer, ForeignKey("notes.id"), nullable=False, index=True)
    link = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.datetime.now, nullable=False)

    note = relationship("DBNote", back_populates="references")


class DBNotebookNote(Base):
    """Database model for the link between a note and a notebook."""
    __tablename__ = "notebook_notes"
    id = Column(Integer, primary_key=True, autoincrement=True)
    note_id = Column(Integer, ForeignKey("notes.id"), nullable=False, index=True)
    notebook_type = Column(String(50), nullable=False)
    notebook_id = Column(String(255), nullable=False)
    group = Column(String(255), nullable=False, default="")
    subgroup = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime, default=datetime.datetime.now, nullable=False)

    note = relationship("DBNote", back_populates="notebook_notes")

    __table_args__ = (
        UniqueConstraint(
            "note_id", "notebook_type", "notebook_id", "group",
            name="unique_notebook_note",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<NotebookNote(note_id={self.note_id}, type='{self.notebook_type}', "
            f"notebook='{self.notebook_id}', group='{self.group}')>"
        )


class DBLearningLog(Base):
    """Database model for a learning event."""
    __tablename__ = "learning_logs"
    id = Column(Integer, primary_key=True, autoincrement=True)
    note_id = Column(Integer, ForeignKey("notes.id"), nullable=False, index=True)
    status = Column(String(50), nullable=False)
    learned_at = Column(Date, nullable=False, index=True)
    quality = Column(Integer, nullable=True)
    response_time_ms = Column(Integer, nullable=True)
    quiz_type = Column(String(50), nullable=False)
    interval_days = Column(Integer, nullable=True)
    easiness_factor = Column(Float, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.now, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "note_id", "quiz_type", "learned_at", name="unique_learning_log"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<LearningLog(note_id={self.note_id}, quiz_type='{self.quiz_type}', "
            f"learned_at={self.learned_at})>"
        )


class DBDictionaryEntry(Base):
    """Database model for a cached dictionary lookup."""
    __tablename__ = "dictionary_entries"
    word = Column(String(255), primary_key=True)
    source_type = Column(String(50), nullable=False)
    source_url = Column(Text, nullable=True)
    response = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.datetime.now, nullable=False)

    def __repr__(self) -> str:
        return f"<DictionaryEntry(word='{self.word}', source='{self.source_type}')>"


def _is_memory_url(db_url: str) -> bool:
    return db_url in ("sqlite://", "sqlite:///:memory:")


def init_db(db_url: Optional[str] = None) -> Engine:
    """Create the engine and the schema.

    File databases get WAL journaling and a small connection pool; an
    in-memory database shares a single connection so every session sees
    the same data. Foreign keys are enforced on every connection.
    """
    db_url = db_url or config.get_db_url()

    if _is_memory_url(db_url):
        engine = create_engine(
            db_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        # SQLite is single-writer, so a small pool is enough
        engine = create_engine(
            db_url,
            poolclass=QueuePool,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_pre_ping=True,
        )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if not _is_memory_url(db_url):
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Optional[Engine] = None):
    """Get a session factory for the database."""
    if engine is None:
        engine = init_db()
    return sessionmaker(bind=engine, expire_on_commit=False)
