"""Tests for domain models, source models and source adapters."""
import datetime

import pytest
from pydantic import ValidationError

from tests.fakes import definition, flashcards, story
from vocab_sync.models.schema import (
    ExportBundle,
    ImportResult,
    LearningEvent,
    Note,
    NotebookKind,
    NotebookLink,
    QuizType,
)
from vocab_sync.models.sources import LearningHistory, LearningRecord
from vocab_sync.services.sources import (
    iter_occurrences,
    occurrences_from_flashcards,
    occurrences_from_story,
    to_occurrence,
)


class TestImportResult:
    def test_addition_sums_every_counter(self):
        a = ImportResult(notes_new=1, links_new=2, dictionary_updated=1)
        b = ImportResult(notes_new=2, events_warnings=3)

        total = a + b

        assert total.notes_new == 3
        assert total.links_new == 2
        assert total.events_warnings == 3
        assert total.dictionary_updated == 1

    def test_to_dict_has_eleven_snake_case_counters(self):
        keys = ImportResult().to_dict().keys()

        assert len(keys) == 11
        assert "events_warnings" in keys


class TestDomainModels:
    def test_note_key(self):
        assert Note(usage="ran", entry="run").key == ("ran", "run")

    def test_quality_range(self):
        with pytest.raises(ValidationError):
            LearningEvent(note_id=1, status="understood", occurred_at=datetime.date.today(), quality=6)

    def test_quiz_type_defaults_to_notebook(self):
        event = LearningEvent(note_id=1, status="usable", occurred_at=datetime.date.today())
        assert event.quiz_type == QuizType.NOTEBOOK

    def test_export_bundle_counts_links(self):
        link = NotebookLink(notebook_kind=NotebookKind.STORY, notebook_id="s")
        bundle = ExportBundle(notes=[Note(usage="a", entry="a", notebook_links=[link, link])])

        assert bundle.counts()["notebook_links"] == 2


class TestSourceModels:
    def test_blank_expression_is_rejected(self):
        with pytest.raises(ValidationError):
            definition("   ")

    def test_unknown_quiz_type_is_rejected(self):
        with pytest.raises(ValidationError):
            LearningRecord(status="understood", learned_at="2024-01-01", quiz_type="oral")

    def test_timestamp_is_truncated_to_date(self):
        rec = LearningRecord(status="understood", learned_at="2024-01-01T23:10:00")
        assert rec.learned_at == datetime.date(2024, 1, 1)

    @pytest.mark.parametrize(
        "value",
        [
            "2024-01-01T10:00:00Z",
            "2024-01-01T10:00:00.123456789Z",
            "2024-01-01T10:00:00.5+09:00",
            "2024-01-01T10:00:00-05:00",
        ],
    )
    def test_rfc3339_timestamps(self, value):
        rec = LearningRecord(status="understood", learned_at=value)
        assert rec.learned_at == datetime.date(2024, 1, 1)

    def test_flashcard_history_uses_flat_expressions(self):
        history = LearningHistory.model_validate(
            {
                "metadata": {"id": "v", "type": "flashcard"},
                "expressions": [{"expression": "a"}],
                "scenes": [{"expressions": [{"expression": "ignored"}]}],
            }
        )
        assert [e.expression for e in history.iter_expressions()] == ["a"]

    def test_story_history_uses_scenes(self):
        history = LearningHistory.model_validate(
            {
                "metadata": {"id": "s", "type": "story"},
                "scenes": [
                    {"expressions": [{"expression": "a"}]},
                    {"expressions": [{"expression": "b", "reverse_logs": None}]},
                ],
            }
        )
        assert [e.expression for e in history.iter_expressions()] == ["a", "b"]


class TestSourceAdapters:
    def test_entry_falls_back_to_expression(self):
        occ = to_occurrence(definition("resilient"), NotebookKind.STORY, "s")
        assert occ.key == ("resilient", "resilient")

    def test_story_occurrence_carries_group_and_subgroup(self):
        occ = next(occurrences_from_story(story("s", [definition("ran", "run")], episode="E", scene="S")))

        assert (occ.notebook_kind, occ.notebook_id, occ.group, occ.subgroup) == (
            NotebookKind.STORY,
            "s",
            "E",
            "S",
        )

    def test_flashcard_occurrence_has_no_subgroup(self):
        occ = next(occurrences_from_flashcards(flashcards("f", [definition("ran")], title="Week 1")))

        assert occ.notebook_kind == NotebookKind.FLASHCARD
        assert (occ.group, occ.subgroup) == ("Week 1", "")

    def test_sort_order_follows_position(self):
        occ = to_occurrence(
            definition("x", images=["a", "b"], references=[{"url": "r1"}, {"url": "r2"}]),
            NotebookKind.BOOK,
            "b",
        )

        assert [i.sort_order for i in occ.images] == [0, 1]
        assert [r.sort_order for r in occ.references] == [0, 1]

    def test_iter_occurrences_preserves_source_order(self):
        indexes = [
            story("s", [definition("one"), definition("two")]),
            flashcards("f", [definition("three")]),
        ]

        assert [o.usage for o in iter_occurrences(indexes)] == ["one", "two", "three"]

    def test_unknown_index_type(self):
        with pytest.raises(TypeError):
            list(iter_occurrences([object()]))

    def test_new_note_has_single_link(self):
        note = to_occurrence(definition("ran", "run"), NotebookKind.STORY, "s", "E").to_note()

        assert note.key == ("ran", "run")
        assert len(note.notebook_links) == 1
        assert note.notebook_links[0].group == "E"
