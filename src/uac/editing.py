# Editing operations on the unified config
# ABOUTME: Pure functions: every operation returns a new UnifiedConfig
# ABOUTME: Raw user input is normalized (with field-path errors) before the config is touched
from dataclasses import dataclass, field, replace
from typing import Any

from uac.errors import EditValidationError
from uac.models import AGENTS, McpServerSpec, SkillSpec, TargetPolicy, UnifiedConfig
from uac.skills import MANIFEST_FILENAME, is_safe_file_name


def _require_mapping(raw: Any, field_path: str) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise EditValidationError(field_path, "must be an object")
    return raw


def _require_id(item_id: Any, field_path: str) -> str:
    if not isinstance(item_id, str) or not item_id.strip():
        raise EditValidationError(field_path, "id must be a non-empty string")
    return item_id.strip()


def _non_empty_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _string_list(raw: Any, field_path: str) -> list[str]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise EditValidationError(field_path, "must be a list of strings")
    for index, item in enumerate(raw):
        if not isinstance(item, str):
            raise EditValidationError(f"{field_path}[{index}]", "must be a string")
    return list(raw)


def _string_map(raw: Any, field_path: str) -> dict[str, str]:
    if raw is None:
        return {}
    mapping = _require_mapping(raw, field_path)
    for key, value in mapping.items():
        if not isinstance(value, str):
            raise EditValidationError(f"{field_path}.{key}", "must be a string")
    return dict(mapping)


def _enabled_in(raw: Any, field_path: str) -> dict[str, bool]:
    if raw is None:
        return {}
    mapping = _require_mapping(raw, field_path)
    result: dict[str, bool] = {}
    for agent, value in mapping.items():
        if agent not in AGENTS:
            raise EditValidationError(f"{field_path}.{agent}", f"unknown agent (allowed: {', '.join(AGENTS)})")
        if not isinstance(value, bool):
            raise EditValidationError(f"{field_path}.{agent}", "must be boolean")
        result[agent] = value
    return result


def normalize_server_record(server_id: str, raw: Any, field_name: str = "mcp.servers") -> McpServerSpec:
    """Turn loosely shaped user input into a server spec.

    ABOUTME: transport may come from "transport" or "type"; when absent it is
    ABOUTME: inferred (url -> sse, command -> stdio)
    ABOUTME: command and url are trimmed; empty args/env/headers are dropped

    Args:
        server_id: Id the record will be stored under
        raw: Mapping from the user (CLI, importer, UI)
        field_name: Prefix for error field paths

    Returns:
        A McpServerSpec that passes shape validation

    Raises:
        EditValidationError: With the offending field path

    Examples:
        >>> normalize_server_record("api", {"url": " https://x/mcp "}).transport
        'sse'
    """
    field_path = f"{field_name}.{server_id}"
    record = _require_mapping(raw, field_path)

    transport = record.get("transport", record.get("type"))
    if transport not in ("stdio", "sse", "http"):
        if transport is not None:
            raise EditValidationError(f"{field_path}.transport", "must be one of stdio, sse, http")
        if _non_empty_str(record.get("url")):
            transport = "sse"
        elif _non_empty_str(record.get("command")):
            transport = "stdio"
        else:
            raise EditValidationError(field_path, "missing valid transport (stdio/sse/http)")

    enabled_in = _enabled_in(record.get("enabledIn"), f"{field_path}.enabledIn")

    if transport == "stdio":
        command = _non_empty_str(record.get("command"))
        if command is None:
            raise EditValidationError(f"{field_path}.command", "is required for stdio transport")
        timeout = record.get("startup_timeout_sec")
        if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float))):
            raise EditValidationError(f"{field_path}.startup_timeout_sec", "must be a number")
        return McpServerSpec(
            transport="stdio",
            command=command,
            args=_string_list(record.get("args"), f"{field_path}.args"),
            env=_string_map(record.get("env"), f"{field_path}.env"),
            startup_timeout_sec=timeout,
            enabled_in=enabled_in,
        )

    url = _non_empty_str(record.get("url"))
    if url is None:
        raise EditValidationError(f"{field_path}.url", f"is required for {transport} transport")
    return McpServerSpec(
        transport=transport,
        url=url,
        headers=_string_map(record.get("headers"), f"{field_path}.headers"),
        enabled_in=enabled_in,
    )


def normalize_skill_record(skill_id: str, raw: Any, field_name: str = "skills.items") -> SkillSpec:
    """Turn user input into a skill spec.

    Raises:
        EditValidationError: Missing content/sourcePath, or a fileName that escapes the skills dir
    """
    field_path = f"{field_name}.{skill_id}"
    record = _require_mapping(raw, field_path)

    content = record.get("content")
    source_path = record.get("sourcePath")
    if content is not None and not isinstance(content, str):
        raise EditValidationError(f"{field_path}.content", "must be a string")
    if source_path is not None and not isinstance(source_path, str):
        raise EditValidationError(f"{field_path}.sourcePath", "must be a string")
    if not content and not source_path:
        raise EditValidationError(field_path, "requires content or sourcePath")

    file_name = _non_empty_str(record.get("fileName"))
    if file_name is not None and not is_safe_file_name(file_name):
        raise EditValidationError(f"{field_path}.fileName", "must be a plain file name")
    if file_name is None and not is_safe_file_name(f"{skill_id}.md"):
        raise EditValidationError(f"{field_path}.fileName", "required when the id is not a plain file name")
    if (file_name or "").casefold() == MANIFEST_FILENAME.casefold():
        raise EditValidationError(f"{field_path}.fileName", "is reserved for the skills manifest")

    return SkillSpec(
        content=content if content else None,
        source_path=source_path if source_path else None,
        file_name=file_name,
        enabled_in=_enabled_in(record.get("enabledIn"), f"{field_path}.enabledIn"),
    )


def _coerce_server(server_id: str, server: McpServerSpec | dict[str, Any]) -> McpServerSpec:
    if isinstance(server, McpServerSpec):
        return server
    return normalize_server_record(server_id, server)


def _coerce_skill(skill_id: str, skill: SkillSpec | dict[str, Any]) -> SkillSpec:
    if isinstance(skill, SkillSpec):
        return skill
    return normalize_skill_record(skill_id, skill)


def _without(items: list[str] | None, item_id: str) -> list[str] | None:
    if items is None:
        return None
    return [existing for existing in items if existing != item_id]


def upsert_server(
    config: UnifiedConfig,
    server_id: str,
    server: McpServerSpec | dict[str, Any],
) -> UnifiedConfig:
    """Add or replace one server."""
    server_id = _require_id(server_id, "mcp.servers")
    servers = dict(config.servers)
    servers[server_id] = _coerce_server(server_id, server)
    return replace(config, servers=servers)


def remove_server(config: UnifiedConfig, server_id: str) -> UnifiedConfig:
    """Delete a server and drop its id from every target allow/deny list.

    Raises:
        EditValidationError: If the server doesn't exist
    """
    if server_id not in config.servers:
        raise EditValidationError(f"mcp.servers.{server_id}", "not found")
    servers = {sid: s for sid, s in config.servers.items() if sid != server_id}
    targets = {
        agent: replace(policy, allow=_without(policy.allow, server_id), deny=_without(policy.deny, server_id))
        for agent, policy in config.targets.items()
    }
    return replace(config, servers=servers, targets=targets)


def upsert_skill(
    config: UnifiedConfig,
    skill_id: str,
    skill: SkillSpec | dict[str, Any],
) -> UnifiedConfig:
    """Add or replace one skill.

    Raises:
        EditValidationError: Invalid input, or a file name another skill already uses
    """
    skill_id = _require_id(skill_id, "skills.items")
    spec = _coerce_skill(skill_id, skill)
    file_name = spec.target_file_name(skill_id)
    for other_id, other in config.skills.items():
        if other_id != skill_id and other.target_file_name(other_id).casefold() == file_name.casefold():
            raise EditValidationError(
                f"skills.items.{skill_id}.fileName", f"'{file_name}' is already used by skill '{other_id}'"
            )
    skills = dict(config.skills)
    skills[skill_id] = spec
    return replace(config, skills=skills)


def remove_skill(config: UnifiedConfig, skill_id: str) -> UnifiedConfig:
    """Delete a skill and drop its id from every target allowSkills/denySkills list.

    Raises:
        EditValidationError: If the skill doesn't exist
    """
    if skill_id not in config.skills:
        raise EditValidationError(f"skills.items.{skill_id}", "not found")
    skills = {kid: s for kid, s in config.skills.items() if kid != skill_id}
    targets = {
        agent: replace(
            policy,
            allow_skills=_without(policy.allow_skills, skill_id),
            deny_skills=_without(policy.deny_skills, skill_id),
        )
        for agent, policy in config.targets.items()
    }
    return replace(config, skills=skills, targets=targets)


@dataclass
class ImportApplyResult:
    config: UnifiedConfig
    updated_ids: list[str] = field(default_factory=list)
    overwritten_ids: list[str] = field(default_factory=list)


def apply_import(
    config: UnifiedConfig,
    servers: dict[str, McpServerSpec | dict[str, Any]],
    selected_ids: list[str] | None = None,
) -> ImportApplyResult:
    """Merge imported servers into a config (overwrite policy).

    ABOUTME: Selected ids replace existing servers of the same id
    ABOUTME: Targets with a non-empty allow list get the new ids appended, unless the
    ABOUTME: server has enabledIn[agent] set to False; empty allow lists already mean "all"

    Args:
        config: Current config
        servers: Candidate servers, e.g. ImportPreview.servers
        selected_ids: Subset to merge (all candidates when None or empty)

    Returns:
        ImportApplyResult with the new config and sorted updated/overwritten ids

    Raises:
        EditValidationError: For unknown selected ids or invalid server records
    """
    normalized = {
        _require_id(sid, "servers"): _coerce_server(sid, server)
        for sid, server in servers.items()
    }
    chosen = selected_ids or list(normalized)

    next_servers = dict(config.servers)
    updated: list[str] = []
    overwritten: list[str] = []
    for raw_id in chosen:
        server_id = _require_id(raw_id, "selectedIds")
        if server_id not in normalized:
            raise EditValidationError("selectedIds", f'unknown id "{server_id}"')
        if server_id in next_servers:
            overwritten.append(server_id)
        next_servers[server_id] = normalized[server_id]
        updated.append(server_id)

    targets: dict[str, TargetPolicy] = {}
    for agent, policy in config.targets.items():
        if not policy.allow:
            targets[agent] = policy
            continue
        allow = list(policy.allow)
        for server_id in updated:
            if next_servers[server_id].enabled_in.get(agent) is False:
                continue
            if server_id not in allow:
                allow.append(server_id)
        targets[agent] = replace(policy, allow=allow)

    return ImportApplyResult(
        config=replace(config, servers=next_servers, targets=targets),
        updated_ids=sorted(updated),
        overwritten_ids=sorted(overwritten),
    )
