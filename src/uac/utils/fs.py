# ABOUTME: File helpers shared by adapters, skills and the snapshot engine.
# ABOUTME: All writes to user-visible files go through write_text_atomic.
import logging
import os
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def read_text_if_exists(path: Path) -> str | None:
    """Return file content, or None if the file doesn't exist.

    ABOUTME: Decoded from raw bytes, so CRLF line endings survive a read/write cycle
    ABOUTME: Raises UnicodeDecodeError for content that isn't UTF-8
    """
    if not path.is_file():
        return None
    return path.read_bytes().decode("utf-8")


def write_text_atomic(path: Path, content: str) -> None:
    """Write UTF-8 text atomically (see write_bytes_atomic)."""
    write_bytes_atomic(path, content.encode("utf-8"))


def write_bytes_atomic(path: Path, content: bytes) -> None:
    """Write bytes so readers see either the old or the complete new file.

    ABOUTME: Writes to a temp file in the target directory, then os.replace()
    ABOUTME: The rename is the only operation that touches the final path
    ABOUTME: The temp file is removed if anything fails before the rename

    Args:
        path: Target file (parent directories are created)
        content: Full file content

    Raises:
        OSError: If the temp file cannot be written or renamed
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)


def copy_if_exists(source: Path, destination: Path) -> bool:
    """Copy source to destination preserving metadata.

    Returns:
        True if a copy was made, False if source doesn't exist
    """
    if not source.is_file():
        return False
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, destination)
    return True


def remove_if_exists(path: Path) -> bool:
    """Delete a file if present. Returns True if something was removed."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    logger.debug(f"Removed {path}")
    return True
