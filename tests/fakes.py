"""Source builders and failing stores for testing.

Design principles:
- Never mock sqlite, always use real in-memory SQLite
- Builders return real pydantic source models
- Failing stores wrap a real repository and break one chosen method
"""
import datetime
from typing import Any, Dict, List, Optional

from vocab_sync.models.sources import (
    CardSet,
    DictionaryResponse,
    FlashcardIndex,
    LearningExpression,
    LearningHistory,
    LearningRecord,
    Scene,
    SourceDefinition,
    StoryEpisode,
    StoryIndex,
)


def definition(expression: str, definition: str = "", **kwargs: Any) -> SourceDefinition:
    return SourceDefinition(expression=expression, definition=definition, **kwargs)


def story(
    notebook_id: str,
    definitions: List[SourceDefinition],
    kind: str = "story",
    episode: str = "Episode 1",
    scene: str = "Scene 1",
) -> StoryIndex:
    """A story notebook with one episode holding one scene."""
    return StoryIndex(
        id=notebook_id,
        kind=kind,
        episodes=[
            StoryEpisode(title=episode, scenes=[Scene(title=scene, definitions=definitions)])
        ],
    )


def flashcards(
    notebook_id: str, cards: List[SourceDefinition], title: str = "Set 1"
) -> FlashcardIndex:
    return FlashcardIndex(id=notebook_id, card_sets=[CardSet(title=title, cards=cards)])


def record(
    learned_at: str,
    status: str = "understood",
    quiz_type: str = "",
    quality: int = 4,
) -> Dict[str, Any]:
    return {
        "status": status,
        "learned_at": learned_at,
        "quality": quality,
        "response_time_ms": 1200,
        "quiz_type": quiz_type,
        "interval_days": 1,
    }


def expression(
    text: str,
    learned: Optional[List[Dict[str, Any]]] = None,
    reverse: Optional[List[Dict[str, Any]]] = None,
    easiness_factor: float = 2.5,
    reverse_easiness_factor: float = 2.5,
) -> LearningExpression:
    return LearningExpression(
        expression=text,
        easiness_factor=easiness_factor,
        learned_logs=[LearningRecord.model_validate(r) for r in learned or []],
        reverse_easiness_factor=reverse_easiness_factor,
        reverse_logs=[LearningRecord.model_validate(r) for r in reverse or []],
    )


def flashcard_history(notebook_id: str, expressions: List[LearningExpression]) -> LearningHistory:
    return LearningHistory.model_validate(
        {
            "metadata": {"id": notebook_id, "title": notebook_id, "type": "flashcard"},
            "expressions": [e.model_dump() for e in expressions],
        }
    )


def story_history(
    notebook_id: str, expressions: List[LearningExpression], scene: str = "Scene 1"
) -> LearningHistory:
    return LearningHistory.model_validate(
        {
            "metadata": {"id": notebook_id, "title": notebook_id, "type": "story"},
            "scenes": [
                {
                    "metadata": {"title": scene},
                    "expressions": [e.model_dump() for e in expressions],
                }
            ],
        }
    )


def response(word: str, **payload: Any) -> DictionaryResponse:
    return DictionaryResponse(word=word, payload={"word": word, **payload})


def day(value: str) -> datetime.date:
    return datetime.date.fromisoformat(value)


class FailingStore:
    """Delegates to a real store but raises from one method."""

    def __init__(self, store: Any, method: str, error: Optional[Exception] = None):
        self._store = store
        self._method = method
        self._error = error or RuntimeError("database is locked")

    def __getattr__(self, name: str) -> Any:
        if name == self._method:
            def fail(*args: Any, **kwargs: Any) -> Any:
                raise self._error
            return fail
        return getattr(self._store, name)
