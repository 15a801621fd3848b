# ABOUTME: Snapshot store helpers: ids, directories, meta.json lookup and listing.
# ABOUTME: A snapshot counts as committed only once its meta.json exists and parses.
import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from uac.errors import SnapshotNotFoundError
from uac.paths import get_snapshot_root

logger = logging.getLogger(__name__)

META_FILENAME = "meta.json"

# ABOUTME: Ids look like 2026-10-16T09-30-12-123456Z, optionally suffixed -002, -003 ...
# ABOUTME: The zero-padded suffix keeps string order equal to creation order
SNAPSHOT_ID_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{6}Z(-\d{3,})?$")


def make_snapshot_id(now: datetime | None = None) -> str:
    """Build a sortable snapshot id from a UTC timestamp.

    ABOUTME: ISO-8601 with ':' and '.' replaced by '-' so it is a safe dir name
    ABOUTME: Fixed-width fields keep string order equal to creation order

    Examples:
        >>> make_snapshot_id(datetime(2026, 10, 16, 9, 30, 12, 5, tzinfo=timezone.utc))
        '2026-10-16T09-30-12-000005Z'
    """
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H-%M-%S-%fZ")


def allocate_snapshot_dir(snapshot_root: Path | None = None, now: datetime | None = None) -> tuple[str, Path]:
    """Create a fresh, empty snapshot directory.

    ABOUTME: On an id collision a numeric suffix is appended instead of reusing the dir

    Returns:
        (snapshot_id, snapshot_dir)
    """
    root = snapshot_root or get_snapshot_root()
    root.mkdir(parents=True, exist_ok=True)
    base_id = make_snapshot_id(now)
    snapshot_id = base_id
    counter = 2
    while True:
        snapshot_dir = root / snapshot_id
        try:
            snapshot_dir.mkdir()
        except FileExistsError:
            snapshot_id = f"{base_id}-{counter:03d}"
            counter += 1
            continue
        logger.debug(f"Allocated snapshot {snapshot_dir}")
        return snapshot_id, snapshot_dir


def _snapshot_dir(snapshot_id: str, snapshot_root: Path | None) -> Path:
    # Only well-formed ids; this also keeps lookups inside the snapshot root
    if not SNAPSHOT_ID_PATTERN.fullmatch(snapshot_id):
        raise SnapshotNotFoundError(snapshot_id)
    return (snapshot_root or get_snapshot_root()) / snapshot_id


def read_snapshot_meta(snapshot_id: str, snapshot_root: Path | None = None) -> dict[str, Any]:
    """Load a committed snapshot's meta.json.

    Raises:
        SnapshotNotFoundError: If the snapshot is unknown, incomplete or unreadable
    """
    meta_path = _snapshot_dir(snapshot_id, snapshot_root) / META_FILENAME
    if not meta_path.is_file():
        raise SnapshotNotFoundError(snapshot_id)
    try:
        meta = json.loads(meta_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SnapshotNotFoundError(snapshot_id) from e
    if not isinstance(meta, dict) or not isinstance(meta.get("applied"), list):
        raise SnapshotNotFoundError(snapshot_id)
    return meta


def list_snapshots(limit: int | None = 20, snapshot_root: Path | None = None) -> list[str]:
    """List committed snapshot ids, newest first.

    ABOUTME: Directories without meta.json (interrupted syncs) are skipped

    Args:
        limit: Maximum ids to return (None for all)
        snapshot_root: Override of ~/.uac/snapshots

    Returns:
        Snapshot ids sorted descending
    """
    root = snapshot_root or get_snapshot_root()
    if not root.is_dir():
        return []

    ids = [
        entry.name
        for entry in root.iterdir()
        if entry.is_dir()
        and SNAPSHOT_ID_PATTERN.fullmatch(entry.name)
        and (entry / META_FILENAME).is_file()
    ]
    ids.sort(reverse=True)
    return ids if limit is None else ids[:limit]
