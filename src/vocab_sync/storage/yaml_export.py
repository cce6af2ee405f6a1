"""YAML writer for the export aggregate."""
import logging
from pathlib import Path
from typing import Any, Dict, List

import yaml

from vocab_sync.models.schema import DictionaryEntry, ExportBundle, LearningEvent, Note

logger = logging.getLogger(__name__)

NOTES_FILE = "notes.yml"
NOTEBOOK_NOTES_FILE = "notebook_notes.yml"
LEARNING_LOGS_FILE = "learning_logs.yml"
DICTIONARY_FILE = "dictionary_entries.yml"


def note_to_record(note: Note) -> Dict[str, Any]:
    return {
        "id": note.id,
        "usage": note.usage,
        "entry": note.entry,
        "meaning": note.meaning,
        "level": note.level,
        "dictionary_number": note.dictionary_number,
        "images": [{"url": i.url, "sort_order": i.sort_order} for i in note.images],
        "references": [
            {"link": r.link, "description": r.description, "sort_order": r.sort_order}
            for r in note.references
        ],
        "notebook_notes": [
            {
                "notebook_type": link.notebook_kind.value,
                "notebook_id": link.notebook_id,
                "group": link.group,
                "subgroup": link.subgroup,
            }
            for link in note.notebook_links
        ],
    }


def notebook_note_records(notes: List[Note]) -> List[Dict[str, Any]]:
    """Flatten every note's links into one list."""
    return [
        {
            "note_id": link.note_id,
            "notebook_type": link.notebook_kind.value,
            "notebook_id": link.notebook_id,
            "group": link.group,
            "subgroup": link.subgroup,
        }
        for note in notes
        for link in note.notebook_links
    ]


def event_to_record(event: LearningEvent) -> Dict[str, Any]:
    return {
        "id": event.id,
        "note_id": event.note_id,
        "status": event.status.value,
        "occurred_at": event.occurred_at.isoformat(),
        "quality": event.quality,
        "response_time_ms": event.response_time_ms,
        "quiz_type": event.quiz_type.value,
        "interval_days": event.interval_days,
        "easiness_factor": event.easiness_factor,
    }


def dictionary_entry_to_record(entry: DictionaryEntry) -> Dict[str, Any]:
    record = {
        "word": entry.word,
        "source_type": entry.source_type,
        "response": entry.response,
    }
    if entry.source_url:
        record["source_url"] = entry.source_url
    return record


def _write_yaml(path: Path, data: Any) -> None:
    with open(path, "w", encoding="utf-8") as fh:
        yaml.safe_dump(data, fh, default_flow_style=False, sort_keys=False, allow_unicode=True)


def write_export(bundle: ExportBundle, output_dir: Path) -> List[Path]:
    """Write the bundle as YAML files under ``output_dir``.

    Returns:
        Paths of the written files.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    files = [
        (NOTES_FILE, [note_to_record(n) for n in bundle.notes]),
        (NOTEBOOK_NOTES_FILE, notebook_note_records(bundle.notes)),
        (LEARNING_LOGS_FILE, [event_to_record(e) for e in bundle.learning_events]),
        (DICTIONARY_FILE, [dictionary_entry_to_record(d) for d in bundle.dictionary_entries]),
    ]
    written = []
    for name, records in files:
        path = output_dir / name
        _write_yaml(path, records)
        logger.debug(f"Wrote {len(records)} records to {path}")
        written.append(path)

    logger.info(f"Exported {bundle.counts()} to {output_dir}")
    return written
