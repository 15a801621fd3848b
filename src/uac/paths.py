# Filesystem locations for uac state
import os
from pathlib import Path

# ABOUTME: Environment variable that relocates the whole state directory
STATE_DIR_ENV = "UAC_HOME"

CONFIG_FILENAME = "unified.config.yaml"
NOTES_FILENAME = "notes.json"

# ABOUTME: Reserved name inside every managed skills dir
SKILLS_MANIFEST_FILENAME = ".uac-skills-manifest.json"


def get_state_dir() -> Path:
    """Return the uac state directory (~/.uac unless UAC_HOME is set).

    ABOUTME: Does not create the directory
    """
    override = os.environ.get(STATE_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".uac"


def get_default_config_path() -> Path:
    return get_state_dir() / CONFIG_FILENAME


def get_snapshot_root() -> Path:
    return get_state_dir() / "snapshots"


def get_notes_path() -> Path:
    return get_state_dir() / NOTES_FILENAME


def expand_user_path(value: str) -> Path:
    """Expand ~ in a user-supplied path string."""
    return Path(value).expanduser()
