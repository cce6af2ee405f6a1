"""Repository for learning events."""
import datetime
import logging
from typing import List, Optional

from sqlalchemy import select

from vocab_sync.exceptions import StorageError
from vocab_sync.models.db_models import DBLearningLog, get_session_factory, init_db
from vocab_sync.models.schema import (
    DEFAULT_EASINESS_FACTOR,
    LearnedStatus,
    LearningEvent,
    QuizType,
)

logger = logging.getLogger(__name__)


class LearningRepository:
    """Append-only storage of learning events.

    Events are never updated; the (note, quiz type, date) unique constraint
    backs the importer's look-up-then-create dedup.
    """

    def __init__(self, engine=None):
        self.engine = engine or init_db()
        self.session_factory = get_session_factory(self.engine)
        logger.debug("LearningRepository initialized")

    def find_all(self) -> List[LearningEvent]:
        """Get all learning events ordered by id."""
        with self.session_factory() as session:
            result = session.execute(select(DBLearningLog).order_by(DBLearningLog.id))
            return [self._db_to_model(db) for db in result.scalars().all()]

    def find_by_note_quiz_type_and_date(
        self, note_id: int, quiz_type: QuizType, occurred_at: datetime.date
    ) -> Optional[LearningEvent]:
        with self.session_factory() as session:
            db_log = session.scalar(
                select(DBLearningLog).where(
                    DBLearningLog.note_id == note_id,
                    DBLearningLog.quiz_type == QuizType(quiz_type).value,
                    DBLearningLog.learned_at == occurred_at,
                )
            )
            return self._db_to_model(db_log) if db_log else None

    def create(self, event: LearningEvent) -> LearningEvent:
        """Insert a learning event.

        Raises:
            StorageError: If the insert violates a constraint or fails.
        """
        with self.session_factory() as session:
            db_log = DBLearningLog(
                note_id=event.note_id,
                status=event.status.value,
                learned_at=event.occurred_at,
                quality=event.quality,
                response_time_ms=event.response_time_ms,
                quiz_type=event.quiz_type.value,
                interval_days=event.interval_days,
                easiness_factor=event.easiness_factor,
            )
            try:
                session.add(db_log)
                session.commit()
            except Exception as e:
                session.rollback()
                raise StorageError(
                    "Failed to create learning event",
                    operation="create_learning_event",
                    key=(event.note_id, event.quiz_type.value, event.occurred_at.isoformat()),
                    original_error=e,
                ) from e
            return self._db_to_model(db_log)

    @staticmethod
    def _db_to_model(db_log: DBLearningLog) -> LearningEvent:
        return LearningEvent(
            id=db_log.id,
            note_id=db_log.note_id,
            status=LearnedStatus(db_log.status),
            occurred_at=db_log.learned_at,
            quality=db_log.quality or 0,
            response_time_ms=db_log.response_time_ms or 0,
            quiz_type=QuizType(db_log.quiz_type),
            interval_days=db_log.interval_days or 0,
            easiness_factor=(
                db_log.easiness_factor
                if db_log.easiness_factor is not None
                else DEFAULT_EASINESS_FACTOR
            ),
        )
