# Order-independent structural diff of id-keyed maps
import dataclasses
import json
from collections.abc import Mapping
from typing import Any

from uac.models import ServerDiff


def canonicalize(value: Any) -> Any:
    """Return value with every mapping's keys sorted, recursively.

    ABOUTME: List order is significant and preserved (args order matters)
    ABOUTME: Dataclass instances are compared through their field dicts
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)
    if isinstance(value, Mapping):
        return {str(key): canonicalize(value[key]) for key in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        return [canonicalize(item) for item in value]
    return value


def stable_dumps(value: Any) -> str:
    """Serialize value deterministically for equality checks."""
    return json.dumps(canonicalize(value), ensure_ascii=False, default=str)


def diff_maps(current: Mapping[str, Any], desired: Mapping[str, Any]) -> ServerDiff:
    """Compute added/removed/changed ids between two id-keyed maps.

    ABOUTME: Membership by key presence, change by canonical deep inequality
    ABOUTME: Used unchanged for native server maps and materialized skill maps

    Args:
        current: State currently on disk
        desired: State computed from the unified config

    Returns:
        ServerDiff with sorted id lists and the unchanged count

    Examples:
        >>> diff_maps({"a": {"x": 1, "y": 2}}, {"a": {"y": 2, "x": 1}, "b": {}})
        ServerDiff(added=['b'], removed=[], changed=[], unchanged=1)
    """
    added: list[str] = []
    changed: list[str] = []
    unchanged = 0

    for key in desired:
        if key not in current:
            added.append(key)
        elif stable_dumps(current[key]) != stable_dumps(desired[key]):
            changed.append(key)
        else:
            unchanged += 1

    removed = [key for key in current if key not in desired]

    return ServerDiff(
        added=sorted(added),
        removed=sorted(removed),
        changed=sorted(changed),
        unchanged=unchanged,
    )


def has_diff(diff: ServerDiff) -> bool:
    return diff.has_changes
