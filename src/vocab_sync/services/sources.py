"""Adapters that flatten notebook sources into vocabulary occurrences.

Story, book and flashcard notebooks carry the same vocabulary entry shape
at different depths. Each adapter walks one notebook kind in source order
and yields a single ``VocabularyOccurrence`` type the note reconciler
consumes.
"""
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Tuple, Union

from vocab_sync.models.schema import (
    Note,
    NotebookKind,
    NotebookLink,
    NoteImage,
    NoteReference,
)
from vocab_sync.models.sources import FlashcardIndex, SourceDefinition, StoryIndex

NotebookIndex = Union[StoryIndex, FlashcardIndex]


@dataclass(frozen=True)
class VocabularyOccurrence:
    """One sighting of a vocabulary entry inside a notebook."""

    usage: str
    entry: str
    notebook_kind: NotebookKind
    notebook_id: str
    group: str = ""
    subgroup: str = ""
    meaning: str = ""
    level: str = ""
    dictionary_number: int = 0
    images: Tuple[NoteImage, ...] = field(default_factory=tuple)
    references: Tuple[NoteReference, ...] = field(default_factory=tuple)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.usage, self.entry)

    @property
    def link_key(self) -> Tuple[str, str, str, str, str]:
        return (self.usage, self.entry, self.notebook_kind.value, self.notebook_id, self.group)

    def to_link(self, note_id=None) -> NotebookLink:
        return NotebookLink(
            note_id=note_id,
            notebook_kind=self.notebook_kind,
            notebook_id=self.notebook_id,
            group=self.group,
            subgroup=self.subgroup,
        )

    def to_note(self) -> Note:
        """Build a new note whose only link is this occurrence."""
        return Note(
            usage=self.usage,
            entry=self.entry,
            meaning=self.meaning,
            level=self.level,
            dictionary_number=self.dictionary_number,
            images=list(self.images),
            references=list(self.references),
            notebook_links=[self.to_link()],
        )


def to_occurrence(
    definition: SourceDefinition,
    kind: NotebookKind,
    notebook_id: str,
    group: str = "",
    subgroup: str = "",
) -> VocabularyOccurrence:
    """Convert a source definition; the entry falls back to the expression."""
    return VocabularyOccurrence(
        usage=definition.expression,
        entry=definition.definition or definition.expression,
        notebook_kind=kind,
        notebook_id=notebook_id,
        group=group,
        subgroup=subgroup,
        meaning=definition.meaning,
        level=definition.level,
        dictionary_number=definition.dictionary_number,
        images=tuple(
            NoteImage(url=url, sort_order=i) for i, url in enumerate(definition.images)
        ),
        references=tuple(
            NoteReference(link=ref.url, description=ref.description, sort_order=i)
            for i, ref in enumerate(definition.references)
        ),
    )


def occurrences_from_story(index: StoryIndex) -> Iterator[VocabularyOccurrence]:
    kind = NotebookKind(index.kind)
    for episode in index.episodes:
        for scene in episode.scenes:
            for definition in scene.definitions:
                yield to_occurrence(definition, kind, index.id, episode.title, scene.title)


def occurrences_from_flashcards(index: FlashcardIndex) -> Iterator[VocabularyOccurrence]:
    for card_set in index.card_sets:
        for card in card_set.cards:
            yield to_occurrence(card, NotebookKind.FLASHCARD, index.id, card_set.title)


def iter_occurrences(indexes: Iterable[NotebookIndex]) -> Iterator[VocabularyOccurrence]:
    """Yield the occurrences of every notebook, dispatching on its kind."""
    for index in indexes:
        if isinstance(index, StoryIndex):
            yield from occurrences_from_story(index)
        elif isinstance(index, FlashcardIndex):
            yield from occurrences_from_flashcards(index)
        else:
            raise TypeError(f"Unsupported notebook index: {type(index).__name__}")


def collect_occurrences(
    story_indexes: Iterable[StoryIndex], flashcard_indexes: Iterable[FlashcardIndex]
) -> List[VocabularyOccurrence]:
    """Story and book notebooks first, then flashcards."""
    return [*iter_occurrences(story_indexes), *iter_occurrences(flashcard_indexes)]
