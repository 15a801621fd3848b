# ABOUTME: Utility modules for uac
# ABOUTME: Exports secret resolution, diffing, atomic file IO, snapshots and validation

from uac.utils.backup import (
    allocate_snapshot_dir,
    list_snapshots,
    make_snapshot_id,
    read_snapshot_meta,
)
from uac.utils.diff import canonicalize, diff_maps, has_diff, stable_dumps
from uac.utils.env import (
    ENV_REF_PREFIX,
    find_secret_references,
    resolve_server_secrets,
)
from uac.utils.fs import (
    copy_if_exists,
    read_text_if_exists,
    remove_if_exists,
    write_bytes_atomic,
    write_text_atomic,
)
from uac.utils.validation import validate_config_shape

__all__ = [
    "ENV_REF_PREFIX",
    "resolve_server_secrets",
    "find_secret_references",
    "canonicalize",
    "stable_dumps",
    "diff_maps",
    "has_diff",
    "read_text_if_exists",
    "write_text_atomic",
    "write_bytes_atomic",
    "copy_if_exists",
    "remove_if_exists",
    "allocate_snapshot_dir",
    "make_snapshot_id",
    "list_snapshots",
    "read_snapshot_meta",
    "validate_config_shape",
]
