# Secret indirection (env://KEY) resolution
import os
from typing import Any

from uac.errors import InvalidSecretReferenceError, MissingSecretError
from uac.models import McpServerSpec

# ABOUTME: A string is a reference only if it starts with this prefix; no inline expansion
ENV_REF_PREFIX = "env://"


def is_env_reference(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(ENV_REF_PREFIX)


def make_env_reference(key: str) -> str:
    return f"{ENV_REF_PREFIX}{key}"


def _reference_key(value: str, field_path: str) -> str:
    key = value[len(ENV_REF_PREFIX):].strip()
    if not key:
        raise InvalidSecretReferenceError(field_path)
    return key


def _resolve_string(value: str, field_path: str, strict: bool) -> str:
    if not is_env_reference(value):
        return value

    key = _reference_key(value, field_path)
    resolved = os.environ.get(key)
    if resolved is None:
        if strict:
            raise MissingSecretError(key, field_path)
        # Previews keep the literal reference
        return value
    return resolved


def resolve_value(value: Any, field_path: str, strict: bool) -> Any:
    """Recursively resolve env:// references in strings, lists and mappings.

    ABOUTME: Returns a new structure; the input is never mutated
    ABOUTME: field_path grows as a.b.c for mappings and a[0] for lists
    """
    if isinstance(value, str):
        return _resolve_string(value, field_path, strict)
    if isinstance(value, list):
        return [resolve_value(item, f"{field_path}[{index}]", strict) for index, item in enumerate(value)]
    if isinstance(value, dict):
        return {key: resolve_value(item, f"{field_path}.{key}", strict) for key, item in value.items()}
    return value


def resolve_server_secrets(server_id: str, server: McpServerSpec, strict: bool = False) -> McpServerSpec:
    """Resolve env://KEY references in a server definition.

    ABOUTME: strict=True is used for real syncs: an unset variable aborts resolution
    ABOUTME: strict=False is used for previews: unresolved references stay as-is
    ABOUTME: An empty key (bare "env://") is rejected in both modes

    Args:
        server_id: Id used to build field paths (mcp.servers.<id>...)
        server: Unified server definition
        strict: Whether a missing variable is an error

    Returns:
        New McpServerSpec with references substituted

    Raises:
        MissingSecretError: strict mode and the variable is unset
        InvalidSecretReferenceError: reference with an empty key

    Examples:
        >>> os.environ["API_TOKEN"] = "t0k"
        >>> spec = McpServerSpec(transport="http", url="https://x", headers={"Authorization": "env://API_TOKEN"})
        >>> resolve_server_secrets("api", spec, strict=True).headers
        {'Authorization': 't0k'}
    """
    resolved = resolve_value(server.to_dict(), f"mcp.servers.{server_id}", strict)
    return McpServerSpec.from_dict(resolved)


def find_secret_references(server_id: str, server: McpServerSpec) -> list[tuple[str, str]]:
    """List (field_path, key) for every env:// reference in a server.

    ABOUTME: Empty-key references are reported with key "" rather than raising
    """
    found: list[tuple[str, str]] = []

    def walk(value: Any, field_path: str) -> None:
        if is_env_reference(value):
            found.append((field_path, value[len(ENV_REF_PREFIX):].strip()))
        elif isinstance(value, list):
            for index, item in enumerate(value):
                walk(item, f"{field_path}[{index}]")
        elif isinstance(value, dict):
            for key, item in value.items():
                walk(item, f"{field_path}.{key}")

    walk(server.to_dict(), f"mcp.servers.{server_id}")
    return found
