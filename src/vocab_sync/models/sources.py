"""Models of the already-parsed source collections.

These mirror the notebook, learning-history and dictionary-cache files as
they look once read into memory. They are consumed by the adapters in
``vocab_sync.services.sources`` and by the reconcilers.
"""

import datetime
import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from vocab_sync.models.schema import DEFAULT_EASINESS_FACTOR, LearnedStatus, QuizType

_FRACTION = re.compile(r"\.(\d+)")


class ReferenceLink(BaseModel):
    """An external reference on a vocabulary definition."""

    url: str
    description: str = ""


class SourceDefinition(BaseModel):
    """A vocabulary entry as written in a story scene or flashcard set."""

    expression: str
    definition: str = ""
    meaning: str = ""
    level: str = ""
    dictionary_number: int = 0
    images: List[str] = Field(default_factory=list)
    references: List[ReferenceLink] = Field(default_factory=list)

    @field_validator("expression")
    @classmethod
    def validate_expression(cls, v: str) -> str:
        """Validate that the expression is not empty."""
        if not v.strip():
            raise ValueError("Expression cannot be empty")
        return v


class Scene(BaseModel):
    title: str = ""
    definitions: List[SourceDefinition] = Field(default_factory=list)


class StoryEpisode(BaseModel):
    """A chapter or episode; its title becomes the link group."""

    title: str = ""
    scenes: List[Scene] = Field(default_factory=list)


class StoryIndex(BaseModel):
    """A story or book notebook."""

    id: str
    kind: Literal["story", "book"] = "story"
    title: str = ""
    episodes: List[StoryEpisode] = Field(default_factory=list)


class CardSet(BaseModel):
    title: str = ""
    cards: List[SourceDefinition] = Field(default_factory=list)


class FlashcardIndex(BaseModel):
    """A flashcard notebook made of titled card sets."""

    id: str
    title: str = ""
    card_sets: List[CardSet] = Field(default_factory=list)


def _parse_timestamp(value: str) -> datetime.datetime:
    """Parse an RFC 3339 timestamp, including "Z" and nanosecond forms."""
    # Python 3.10 fromisoformat takes neither a "Z" suffix nor 9-digit fractions
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    value = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value)
    return datetime.datetime.fromisoformat(value)


class LearningRecord(BaseModel):
    """A single review outcome as stored in a learning history file."""

    status: LearnedStatus
    learned_at: datetime.date
    quality: int = Field(default=0, ge=0, le=5)
    response_time_ms: int = Field(default=0, ge=0)
    quiz_type: Optional[QuizType] = None
    interval_days: int = 0

    @field_validator("quiz_type", mode="before")
    @classmethod
    def validate_quiz_type(cls, v: Any) -> Any:
        return v or None

    @field_validator("learned_at", mode="before")
    @classmethod
    def validate_learned_at(cls, v: Any) -> Any:
        """Accept full timestamps and keep only their date."""
        if isinstance(v, datetime.datetime):
            return v.date()
        if isinstance(v, str) and "T" in v:
            return _parse_timestamp(v).date()
        return v


class LearningExpression(BaseModel):
    """Review history of one expression, forward and reverse."""

    expression: str
    easiness_factor: float = DEFAULT_EASINESS_FACTOR
    learned_logs: List[LearningRecord] = Field(default_factory=list)
    reverse_easiness_factor: float = DEFAULT_EASINESS_FACTOR
    reverse_logs: List[LearningRecord] = Field(default_factory=list)

    @field_validator("learned_logs", "reverse_logs", mode="before")
    @classmethod
    def validate_logs(cls, v: Any) -> Any:
        # An empty YAML key loads as None
        return v if v is not None else []


class LearningHistoryMetadata(BaseModel):
    id: str
    title: str = ""
    type: str = ""


class LearningSceneMetadata(BaseModel):
    title: str = ""


class LearningScene(BaseModel):
    metadata: LearningSceneMetadata = Field(default_factory=LearningSceneMetadata)
    expressions: List[LearningExpression] = Field(default_factory=list)


class LearningHistory(BaseModel):
    """Learning history of one notebook.

    Flashcard notebooks keep a flat ``expressions`` list; story and book
    notebooks nest expressions inside ``scenes``.
    """

    metadata: LearningHistoryMetadata
    scenes: List[LearningScene] = Field(default_factory=list)
    expressions: List[LearningExpression] = Field(default_factory=list)

    @property
    def is_flashcard(self) -> bool:
        return self.metadata.type == "flashcard"

    def iter_expressions(self) -> List[LearningExpression]:
        """Return the expression groups in source order for either shape."""
        if self.is_flashcard:
            return list(self.expressions)
        return [expr for scene in self.scenes for expr in scene.expressions]


class DictionaryResponse(BaseModel):
    """A cached lookup response: the word plus an opaque payload."""

    word: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    source_url: Optional[str] = None
