"""Tests for loading notebooks, histories and the dictionary cache from disk."""
import json
import textwrap

import pytest

from vocab_sync.exceptions import ErrorCode, SourceLoadError
from vocab_sync.models.schema import QuizType
from vocab_sync.storage.yaml_sources import (
    load_dictionary_responses,
    load_flashcard_indexes,
    load_learning_histories,
    load_story_indexes,
)


def write(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


STORY = """\
    kind: book
    title: Frankenstein
    episodes:
      - title: Letter 1
        scenes:
          - title: Arrival
            definitions:
              - expression: break the ice
                definition: start a conversation
                meaning: to initiate social interaction
                images: [https://img/1.png]
                references:
                  - url: https://ref
                    description: idiom
"""

FLASHCARDS = """\
    card_sets:
      - title: Week 1
        cards:
          - expression: resilient
            meaning: able to recover quickly
            level: B2
"""

HISTORY = """\
    - metadata:
        id: frankenstein
        title: Frankenstein
        type: story
      scenes:
        - metadata:
            title: Arrival
          expressions:
            - expression: start a conversation
              easiness_factor: 2.6
              learned_logs:
                - status: understood
                  learned_at: 2024-01-01
                  quality: 4
              reverse_logs:
    - metadata:
        id: vocab
        type: flashcard
      expressions:
        - expression: resilient
          learned_logs:
            - status: usable
              learned_at: "2024-01-02T10:00:00"
              quiz_type: freeform
"""


class TestNotebooks:
    def test_story_index_id_defaults_to_file_stem(self, tmp_path):
        write(tmp_path / "stories" / "frankenstein.yml", STORY)

        indexes = load_story_indexes([tmp_path / "stories"])

        assert len(indexes) == 1
        index = indexes[0]
        assert index.id == "frankenstein"
        assert index.kind == "book"
        definition = index.episodes[0].scenes[0].definitions[0]
        assert definition.definition == "start a conversation"
        assert definition.references[0].url == "https://ref"

    def test_flashcards_from_several_dirs_in_sorted_order(self, tmp_path):
        write(tmp_path / "a" / "2.yml", FLASHCARDS)
        write(tmp_path / "a" / "1.yaml", FLASHCARDS)
        write(tmp_path / "b" / "3.yml", FLASHCARDS)

        indexes = load_flashcard_indexes([tmp_path / "a", tmp_path / "b"])

        assert [i.id for i in indexes] == ["1", "2", "3"]
        assert indexes[0].card_sets[0].cards[0].level == "B2"

    def test_missing_directory_is_empty(self, tmp_path):
        assert load_story_indexes([tmp_path / "nope"]) == []

    def test_invalid_notebook_names_the_file(self, tmp_path):
        path = write(tmp_path / "stories" / "broken.yml", "episodes: [{scenes: [{definitions: [{meaning: x}]}]}]\n")

        with pytest.raises(SourceLoadError) as exc_info:
            load_story_indexes([tmp_path / "stories"])

        assert exc_info.value.code == ErrorCode.SOURCE_INVALID
        assert exc_info.value.path == str(path)

    def test_unparsable_yaml(self, tmp_path):
        write(tmp_path / "stories" / "bad.yml", "episodes: [unclosed\n")

        with pytest.raises(SourceLoadError) as exc_info:
            load_story_indexes([tmp_path / "stories"])

        assert exc_info.value.code == ErrorCode.SOURCE_READ_FAILED


class TestLearningHistories:
    def test_histories_grouped_by_notebook_id(self, tmp_path):
        write(tmp_path / "learning" / "history.yml", HISTORY)

        histories = load_learning_histories(tmp_path / "learning")

        assert sorted(histories) == ["frankenstein", "vocab"]
        story_expr = histories["frankenstein"][0].iter_expressions()[0]
        assert story_expr.easiness_factor == 2.6
        assert story_expr.reverse_logs == []
        card_record = histories["vocab"][0].iter_expressions()[0].learned_logs[0]
        assert card_record.learned_at.isoformat() == "2024-01-02"
        assert card_record.quiz_type == QuizType.FREEFORM

    def test_no_directory_means_no_histories(self):
        assert load_learning_histories(None) == {}

    def test_history_file_must_be_a_list(self, tmp_path):
        write(tmp_path / "learning" / "history.yml", "metadata: {id: x}\n")

        with pytest.raises(SourceLoadError):
            load_learning_histories(tmp_path / "learning")


class TestDictionaryCache:
    def test_word_defaults_to_file_stem(self, tmp_path):
        (tmp_path / "resilient.json").write_text(json.dumps({"results": [1]}), encoding="utf-8")
        (tmp_path / "apt.json").write_text(json.dumps({"word": "Apt", "results": []}), encoding="utf-8")

        responses = load_dictionary_responses(tmp_path)

        assert [r.word for r in responses] == ["Apt", "resilient"]
        assert responses[1].payload == {"results": [1]}

    def test_invalid_json(self, tmp_path):
        (tmp_path / "bad.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(SourceLoadError) as exc_info:
            load_dictionary_responses(tmp_path)

        assert "bad.json" in str(exc_info.value)
