# Enablement precedence for servers and skills
from dataclasses import replace
from typing import Any

from uac.errors import EditValidationError
from uac.models import AGENTS, McpServerSpec, SkillSpec, TargetPolicy, UnifiedConfig

# ABOUTME: id -> agent -> effective enablement
BoolMatrix = dict[str, dict[str, bool]]


def server_enabled_for_agent(
    server_id: str,
    server: McpServerSpec,
    agent: str,
    target: TargetPolicy,
) -> bool:
    """Decide whether a server is written to an agent's native config.

    ABOUTME: Highest to lowest: agent disabled, deny list, non-empty allow list,
    ABOUTME: per-item enabledIn[agent] is False, otherwise enabled
    ABOUTME: Target policy always outranks the per-item override

    Examples:
        >>> target = TargetPolicy(deny=["x"])
        >>> server_enabled_for_agent("x", McpServerSpec("stdio", "npx", enabled_in={"codex": True}), "codex", target)
        False
    """
    if not target.enabled:
        return False
    if target.deny and server_id in target.deny:
        return False
    if target.allow and server_id not in target.allow:
        return False
    if server.enabled_in.get(agent) is False:
        return False
    return True


def skill_enabled_for_agent(
    skill_id: str,
    skill: SkillSpec,
    agent: str,
    target: TargetPolicy,
) -> bool:
    """Same precedence as servers, with skillsEnabled as part of the agent switch."""
    if not target.enabled or not target.skills_enabled:
        return False
    if target.deny_skills and skill_id in target.deny_skills:
        return False
    if target.allow_skills and skill_id not in target.allow_skills:
        return False
    if skill.enabled_in.get(agent) is False:
        return False
    return True


def build_matrix(config: UnifiedConfig) -> tuple[BoolMatrix, BoolMatrix]:
    """Return (mcp_matrix, skill_matrix) of effective enablement.

    ABOUTME: Rows sorted by id, columns in AGENTS order
    """
    mcp_matrix: BoolMatrix = {}
    for server_id in sorted(config.servers):
        server = config.servers[server_id]
        mcp_matrix[server_id] = {
            agent: server_enabled_for_agent(server_id, server, agent, config.target_for(agent))
            for agent in AGENTS
        }

    skill_matrix: BoolMatrix = {}
    for skill_id in sorted(config.skills):
        skill = config.skills[skill_id]
        skill_matrix[skill_id] = {
            agent: skill_enabled_for_agent(skill_id, skill, agent, config.target_for(agent))
            for agent in AGENTS
        }

    return mcp_matrix, skill_matrix


def normalize_matrix(raw: Any, ids: list[str], field_name: str) -> BoolMatrix:
    """Validate a user-supplied matrix; missing rows and cells mean False.

    Raises:
        EditValidationError: If a row isn't a mapping or a cell isn't boolean
    """
    if not isinstance(raw, dict):
        raise EditValidationError(field_name, "must be an object")

    result: BoolMatrix = {}
    for item_id in ids:
        row_raw = raw.get(item_id)
        row = {agent: False for agent in AGENTS}
        if row_raw is not None:
            if not isinstance(row_raw, dict):
                raise EditValidationError(f"{field_name}.{item_id}", "must be an object")
            for agent in AGENTS:
                value = row_raw.get(agent, False)
                if not isinstance(value, bool):
                    raise EditValidationError(f"{field_name}.{item_id}.{agent}", "must be boolean")
                row[agent] = value
        result[item_id] = row
    return result


def apply_matrix(config: UnifiedConfig, mcp_matrix: Any, skill_matrix: Any) -> UnifiedConfig:
    """Encode an enablement matrix into a new config.

    ABOUTME: Sets every item's enabledIn and every target's allow/allowSkills list
    ABOUTME: Clears deny/denySkills so the matrix is the single source of truth
    ABOUTME: The input config is left untouched

    Returns:
        New UnifiedConfig encoding the matrix (agents with enabled=False stay off)
    """
    server_ids = sorted(config.servers)
    skill_ids = sorted(config.skills)
    mcp = normalize_matrix(mcp_matrix, server_ids, "mcpMatrix")
    skills = normalize_matrix(skill_matrix, skill_ids, "skillMatrix")

    servers = {
        server_id: replace(server, enabled_in=dict(mcp[server_id]))
        for server_id, server in config.servers.items()
    }
    skill_specs = {
        skill_id: replace(skill, enabled_in=dict(skills[skill_id]))
        for skill_id, skill in config.skills.items()
    }

    targets: dict[str, TargetPolicy] = {}
    for agent in AGENTS:
        current = config.target_for(agent)
        targets[agent] = replace(
            current,
            allow=[sid for sid in server_ids if mcp[sid][agent]],
            deny=None,
            skills_enabled=bool(skill_ids),
            allow_skills=[kid for kid in skill_ids if skills[kid][agent]],
            deny_skills=None,
        )

    return UnifiedConfig(version=config.version, servers=servers, skills=skill_specs, targets=targets)
