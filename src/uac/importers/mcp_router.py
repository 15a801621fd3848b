# Import an mcp-router JSON export into a fresh unified config
from dataclasses import dataclass, field
from typing import Any

from uac.errors import UacError
from uac.models import AGENTS, McpServerSpec, TargetPolicy, UnifiedConfig


@dataclass
class ImportResult:
    config: UnifiedConfig
    imported_ids: list[str] = field(default_factory=list)
    skipped_ids: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _non_empty_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _string_map(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {key: item for key, item in value.items() if isinstance(item, str)}


def import_from_mcp_router_json(document: Any) -> ImportResult:
    """Convert an mcp-router export ({"mcpServers": {...}}) to a UnifiedConfig.

    ABOUTME: A usable url wins over command: transport "http" is kept, anything else is sse
    ABOUTME: Entries with neither url nor command are skipped with a warning
    ABOUTME: Every agent target allow-lists exactly the imported ids

    Args:
        document: Parsed JSON export

    Returns:
        ImportResult with sorted imported/skipped ids

    Raises:
        UacError: If the document has no "mcpServers" object or nothing importable
    """
    if not isinstance(document, dict):
        raise UacError("Invalid JSON document.")
    raw_servers = document.get("mcpServers")
    if not isinstance(raw_servers, dict):
        raise UacError('Invalid mcp-router JSON: missing object field "mcpServers".')

    servers: dict[str, McpServerSpec] = {}
    imported: list[str] = []
    skipped: list[str] = []
    warnings: list[str] = []

    for server_id, entry in raw_servers.items():
        if not isinstance(entry, dict):
            skipped.append(server_id)
            warnings.append(f'Skipped "{server_id}": server entry is not an object.')
            continue

        url = _non_empty_str(entry.get("url"))
        command = _non_empty_str(entry.get("command"))
        transport_raw = _non_empty_str(entry.get("transport")) or _non_empty_str(entry.get("type"))

        if url:
            servers[server_id] = McpServerSpec(
                transport="http" if transport_raw == "http" else "sse",
                url=url,
                headers=_string_map(entry.get("headers")),
            )
        elif command:
            servers[server_id] = McpServerSpec(
                transport="stdio",
                command=command,
                args=_string_list(entry.get("args")),
                env=_string_map(entry.get("env")),
            )
        else:
            skipped.append(server_id)
            warnings.append(f'Skipped "{server_id}": missing usable "command" and "url".')
            continue
        imported.append(server_id)

    if not imported:
        raise UacError("No valid MCP servers were imported.")

    imported.sort()
    skipped.sort()
    targets = {agent: TargetPolicy(enabled=True, allow=list(imported)) for agent in AGENTS}
    config = UnifiedConfig(version="1", servers=servers, targets=targets)
    return ImportResult(config=config, imported_ids=imported, skipped_ids=skipped, warnings=warnings)
