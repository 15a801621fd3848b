# Per-agent planning: desired native state vs. current on-disk state
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from uac.models import ServerDiff, SkillMaterialized, TargetPolicy, UnifiedConfig
from uac.platforms import BaseAdapter, get_adapters
from uac.policy import server_enabled_for_agent
from uac.skills import build_desired_skills, read_managed_skills, resolve_skills_dir
from uac.utils.diff import diff_maps
from uac.utils.env import resolve_server_secrets

logger = logging.getLogger(__name__)


@dataclass
class AgentPlan:
    """Computed desired-vs-current state for one agent.

    ABOUTME: Ephemeral, built by build_plan() and consumed by apply_plan()
    ABOUTME: current_data is the parsed native document that servers are merged into
    """
    agent: str
    adapter: BaseAdapter
    target: TargetPolicy
    path: Path
    file_exists: bool
    current_data: dict[str, Any]
    current_servers: dict[str, Any]
    desired_servers: dict[str, Any]
    diff: ServerDiff
    skills_dir: Path
    current_skills: dict[str, SkillMaterialized]
    desired_skills: dict[str, SkillMaterialized]
    skills_diff: ServerDiff
    skills_manifest_exists: bool

    @property
    def mcp_changed(self) -> bool:
        return self.diff.has_changes

    @property
    def skills_changed(self) -> bool:
        return self.skills_diff.has_changes

    @property
    def has_changes(self) -> bool:
        return self.mcp_changed or self.skills_changed

    def summary(self) -> dict[str, Any]:
        """JSON-ready view of the plan (no native data, no secrets)."""
        return {
            "agent": self.agent,
            "path": str(self.path),
            "mcp": self.diff.to_dict(),
            "skillsDir": str(self.skills_dir),
            "skills": self.skills_diff.to_dict(),
        }


def desired_servers_for_agent(
    config: UnifiedConfig,
    adapter: BaseAdapter,
    target: TargetPolicy,
    resolve_secrets: bool,
) -> dict[str, Any]:
    """Filter, resolve and normalize the unified servers for one agent.

    ABOUTME: Enablement first, so secrets of disabled servers are never required
    """
    result: dict[str, Any] = {}
    for server_id, server in config.servers.items():
        if not server_enabled_for_agent(server_id, server, adapter.agent, target):
            continue
        resolved = resolve_server_secrets(server_id, server, strict=resolve_secrets)
        result[server_id] = adapter.normalize_server(server_id, resolved)
    return result


def desired_skills_by_dir(config: UnifiedConfig, config_dir: Path) -> dict[Path, dict[str, SkillMaterialized]]:
    """Desired managed skills per resolved skills directory.

    ABOUTME: Agents that resolve to the same directory get the union of their enabled
    ABOUTME: skills, so one sync leaves a single consistent manifest there
    ABOUTME: Every agent takes part, not only the ones being planned
    ABOUTME: Only agents with skills switched on are reported as differing
    """
    owners: dict[Path, list[str]] = {}
    per_agent: dict[str, dict[str, SkillMaterialized]] = {}
    merged: dict[Path, dict[str, SkillMaterialized]] = {}

    for adapter in get_adapters():
        target = config.target_for(adapter.agent)
        skills_dir = resolve_skills_dir(adapter.agent, target).resolve()
        desired = build_desired_skills(config, adapter.agent, target, config_dir)
        if target.enabled and target.skills_enabled:
            per_agent[adapter.agent] = desired
        owners.setdefault(skills_dir, []).append(adapter.agent)
        merged.setdefault(skills_dir, {}).update(desired)

    for skills_dir, agents in owners.items():
        differing = [
            agent for agent in agents
            if agent in per_agent and set(per_agent[agent]) != set(merged[skills_dir])
        ]
        if len(agents) > 1 and differing:
            logger.warning(
                f"{', '.join(agents)} share {skills_dir}; it gets the union of their skills "
                f"(set skillsOutputDir to separate {', '.join(differing)})"
            )

    return merged


def build_plan(
    config: UnifiedConfig,
    agents: list[str] | None = None,
    config_dir: Path | None = None,
    resolve_secrets: bool = False,
) -> list[AgentPlan]:
    """Build plans for the selected agents (all when None).

    ABOUTME: Read-only: touches the filesystem only to load current state
    ABOUTME: All-or-nothing: the first adapter/secret/skill error aborts every plan
    ABOUTME: Plans come back in declared agent order

    Args:
        config: Validated unified config
        agents: Agent names to plan for
        config_dir: Base for relative skill sourcePath values (defaults to cwd)
        resolve_secrets: True for real syncs (missing env vars fail), False for previews

    Returns:
        One AgentPlan per selected agent

    Raises:
        UnknownAgentError: For agent names outside AGENTS
        MissingSecretError: resolve_secrets=True and a referenced variable is unset
        AdapterDialectError: Native file unparsable or server missing a required field
        SourceNotFoundError: A skill's sourcePath is missing
    """
    base_dir = config_dir or Path.cwd()
    shared_skills = desired_skills_by_dir(config, base_dir)
    plans: list[AgentPlan] = []

    for adapter in get_adapters(agents):
        target = config.target_for(adapter.agent)
        path = adapter.resolve_path(target)
        loaded = adapter.load(path)
        current_servers = adapter.extract_servers(loaded.data)
        desired_servers = desired_servers_for_agent(config, adapter, target, resolve_secrets)
        server_diff = diff_maps(current_servers, desired_servers)

        skills_dir = resolve_skills_dir(adapter.agent, target).resolve()
        skills_state = read_managed_skills(skills_dir)
        desired_skills = dict(shared_skills[skills_dir])
        skills_diff = diff_maps(skills_state.skills_by_id, desired_skills)

        logger.debug(
            f"{adapter.agent}: mcp +{len(server_diff.added)} ~{len(server_diff.changed)} "
            f"-{len(server_diff.removed)} ={server_diff.unchanged}, skills "
            f"+{len(skills_diff.added)} ~{len(skills_diff.changed)} -{len(skills_diff.removed)}"
        )

        plans.append(
            AgentPlan(
                agent=adapter.agent,
                adapter=adapter,
                target=target,
                path=path,
                file_exists=loaded.exists,
                current_data=loaded.data,
                current_servers=current_servers,
                desired_servers=desired_servers,
                diff=server_diff,
                skills_dir=skills_dir,
                current_skills=skills_state.skills_by_id,
                desired_skills=desired_skills,
                skills_diff=skills_diff,
                skills_manifest_exists=skills_state.manifest_exists,
            )
        )

    return plans
