"""Loaders for the on-disk source collections.

Every notebook directory holds ``.yml``/``.yaml`` files, one notebook index
per file; the index id defaults to the file stem. Learning history files
each hold a list of histories. The dictionary cache is one ``<word>.json``
file per lookup. Files are visited in sorted path order.
"""
import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from vocab_sync.exceptions import ErrorCode, SourceLoadError
from vocab_sync.models.sources import (
    DictionaryResponse,
    FlashcardIndex,
    LearningHistory,
    StoryIndex,
)

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yml", ".yaml")

M = TypeVar("M", bound=BaseModel)


def _yaml_files(directory: Path) -> List[Path]:
    if not directory.exists():
        logger.warning(f"Source directory does not exist: {directory}")
        return []
    return sorted(p for p in directory.rglob("*") if p.suffix in YAML_SUFFIXES and p.is_file())


def _read_yaml(path: Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise SourceLoadError(
            f"Failed to read {path.name}", path=str(path), original_error=e
        ) from e


def _validate(model: Type[M], data: Any, path: Path) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise SourceLoadError(
            f"Invalid {model.__name__} in {path.name}",
            path=str(path),
            code=ErrorCode.SOURCE_INVALID,
            original_error=e,
        ) from e


def _load_indexes(dirs: Iterable[Path], model: Type[M]) -> List[M]:
    indexes: List[M] = []
    for directory in dirs:
        for path in _yaml_files(Path(directory)):
            data = _read_yaml(path)
            if data is None:
                logger.debug(f"Skipping empty file {path}")
                continue
            if not isinstance(data, dict):
                raise SourceLoadError(
                    f"Expected a mapping in {path.name}",
                    path=str(path),
                    code=ErrorCode.SOURCE_INVALID,
                )
            data.setdefault("id", path.stem)
            indexes.append(_validate(model, data, path))
    return indexes


def load_story_indexes(dirs: Iterable[Path]) -> List[StoryIndex]:
    """Load every story or book notebook under the given directories."""
    indexes = _load_indexes(dirs, StoryIndex)
    logger.info(f"Loaded {len(indexes)} story notebooks")
    return indexes


def load_flashcard_indexes(dirs: Iterable[Path]) -> List[FlashcardIndex]:
    """Load every flashcard notebook under the given directories."""
    indexes = _load_indexes(dirs, FlashcardIndex)
    logger.info(f"Loaded {len(indexes)} flashcard notebooks")
    return indexes


def load_learning_histories(directory: Optional[Path]) -> Dict[str, List[LearningHistory]]:
    """Load learning histories grouped by notebook id.

    Args:
        directory: Directory of history files, or None for no histories.

    Returns:
        Mapping of ``metadata.id`` to the histories carrying that id, in
        file order.
    """
    histories: Dict[str, List[LearningHistory]] = defaultdict(list)
    if directory is None:
        return {}

    for path in _yaml_files(Path(directory)):
        data = _read_yaml(path)
        if data is None:
            continue
        if not isinstance(data, list):
            raise SourceLoadError(
                f"Expected a list of learning histories in {path.name}",
                path=str(path),
                code=ErrorCode.SOURCE_INVALID,
            )
        for item in data:
            history = _validate(LearningHistory, item, path)
            histories[history.metadata.id].append(history)

    logger.info(f"Loaded learning histories for {len(histories)} notebooks")
    return dict(histories)


def load_dictionary_responses(directory: Optional[Path]) -> List[DictionaryResponse]:
    """Load cached dictionary lookups, one JSON file per word."""
    if directory is None:
        return []
    directory = Path(directory)
    if not directory.exists():
        logger.warning(f"Dictionary cache directory does not exist: {directory}")
        return []

    responses = []
    for path in sorted(directory.glob("*.json")):
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise SourceLoadError(
                f"Failed to read {path.name}", path=str(path), original_error=e
            ) from e
        if not isinstance(payload, dict):
            raise SourceLoadError(
                f"Expected a JSON object in {path.name}",
                path=str(path),
                code=ErrorCode.SOURCE_INVALID,
            )
        word = payload.get("word") or path.stem
        responses.append(
            _validate(DictionaryResponse, {"word": word, "payload": payload}, path)
        )

    logger.info(f"Loaded {len(responses)} cached dictionary responses")
    return responses
