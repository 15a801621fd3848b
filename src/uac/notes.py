# Free-form notes per server id, stored beside the unified config
import json
import logging
from pathlib import Path

from uac.paths import get_notes_path
from uac.utils.fs import read_text_if_exists, write_text_atomic

logger = logging.getLogger(__name__)


def load_notes(path: Path | None = None) -> dict[str, str]:
    """Load notes; best-effort.

    ABOUTME: Missing, unreadable or non-object files yield {} (logged at WARNING
    ABOUTME: except for a missing file); non-string values are dropped
    """
    notes_path = path or get_notes_path()
    try:
        raw = read_text_if_exists(notes_path)
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read notes file {notes_path}: {e}")
        return {}
    if raw is None:
        return {}

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Ignoring invalid notes file {notes_path}: {e}")
        return {}
    if not isinstance(parsed, dict):
        logger.warning(f"Ignoring notes file {notes_path}: expected a JSON object")
        return {}

    return {key: value for key, value in parsed.items() if isinstance(value, str)}


def save_notes(notes: dict[str, str], path: Path | None = None) -> None:
    notes_path = path or get_notes_path()
    write_text_atomic(notes_path, json.dumps(notes, indent=2, ensure_ascii=False) + "\n")


def get_note(server_id: str, path: Path | None = None) -> str:
    """Return the note for an id, or "" if there is none."""
    return load_notes(path).get(server_id, "")


def set_note(server_id: str, note: str, path: Path | None = None) -> None:
    """Store a note; a blank note deletes the entry."""
    notes = load_notes(path)
    if note.strip():
        notes[server_id] = note
    else:
        notes.pop(server_id, None)
    save_notes(notes, path)
