# Core data models for uac
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Protocol, runtime_checkable

from uac.errors import UnknownAgentError

# ABOUTME: Closed set of supported agents, in the order plans are built and synced
AGENTS: tuple[str, ...] = ("codex", "gemini", "claude", "vscode", "antigravity")

TransportType = Literal["stdio", "sse", "http"]
TRANSPORTS: tuple[str, ...] = ("stdio", "sse", "http")


def ensure_agent(agent: str) -> str:
    """Return agent unchanged, or raise UnknownAgentError if it isn't supported."""
    if agent not in AGENTS:
        raise UnknownAgentError(agent, AGENTS)
    return agent


def parse_agents(value: str | list[str] | tuple[str, ...] | None) -> list[str] | None:
    """Parse a comma-separated agent list (or sequence) into validated names.

    ABOUTME: None or an empty selection means "all agents" and returns None
    ABOUTME: Duplicates are dropped, declared order of the input is kept
    """
    if value is None:
        return None
    items = value.split(",") if isinstance(value, str) else list(value)
    requested: list[str] = []
    for item in items:
        name = item.strip()
        if not name:
            continue
        ensure_agent(name)
        if name not in requested:
            requested.append(name)
    return requested or None


def _bool_map(raw: Any) -> dict[str, bool]:
    if not isinstance(raw, dict):
        return {}
    return {agent: bool(value) for agent, value in raw.items() if agent in AGENTS}


@dataclass(frozen=True)
class McpServerSpec:
    """Immutable unified MCP server definition.

    ABOUTME: stdio servers carry command/args/env, sse/http servers carry url/headers
    ABOUTME: String values may be env://KEY references, resolved only at plan/sync time
    ABOUTME: enabled_in is a per-agent override and never reaches native files
    """
    transport: TransportType
    command: str | None = None
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    url: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    startup_timeout_sec: int | float | None = None
    enabled_in: dict[str, bool] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "McpServerSpec":
        return cls(
            transport=data["transport"],
            command=data.get("command"),
            args=list(data.get("args") or []),
            env=dict(data.get("env") or {}),
            url=data.get("url"),
            headers=dict(data.get("headers") or {}),
            startup_timeout_sec=data.get("startup_timeout_sec"),
            enabled_in=_bool_map(data.get("enabledIn")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the unified config (YAML) shape, omitting empty optionals."""
        result: dict[str, Any] = {"transport": self.transport}
        if self.command is not None:
            result["command"] = self.command
        if self.args:
            result["args"] = list(self.args)
        if self.env:
            result["env"] = dict(self.env)
        if self.url is not None:
            result["url"] = self.url
        if self.headers:
            result["headers"] = dict(self.headers)
        if self.startup_timeout_sec is not None:
            result["startup_timeout_sec"] = self.startup_timeout_sec
        if self.enabled_in:
            result["enabledIn"] = dict(self.enabled_in)
        return result


@dataclass(frozen=True)
class SkillSpec:
    """Immutable skill definition: inline content or a source file reference."""
    content: str | None = None
    source_path: str | None = None
    file_name: str | None = None
    enabled_in: dict[str, bool] = field(default_factory=dict)

    def target_file_name(self, skill_id: str) -> str:
        return self.file_name or f"{skill_id}.md"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SkillSpec":
        return cls(
            content=data.get("content"),
            source_path=data.get("sourcePath"),
            file_name=data.get("fileName"),
            enabled_in=_bool_map(data.get("enabledIn")),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.content is not None:
            result["content"] = self.content
        if self.source_path is not None:
            result["sourcePath"] = self.source_path
        if self.file_name is not None:
            result["fileName"] = self.file_name
        if self.enabled_in:
            result["enabledIn"] = dict(self.enabled_in)
        return result


@dataclass(frozen=True)
class TargetPolicy:
    """Per-agent sync policy.

    ABOUTME: allow/deny lists are None when unset; an empty allow list means "no filter"
    """
    enabled: bool = True
    allow: list[str] | None = None
    deny: list[str] | None = None
    output_path: str | None = None
    skills_enabled: bool = True
    allow_skills: list[str] | None = None
    deny_skills: list[str] | None = None
    skills_output_dir: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TargetPolicy":
        def _list(key: str) -> list[str] | None:
            value = data.get(key)
            return list(value) if value is not None else None

        return cls(
            enabled=data.get("enabled", True),
            allow=_list("allow"),
            deny=_list("deny"),
            output_path=data.get("outputPath"),
            skills_enabled=data.get("skillsEnabled", True),
            allow_skills=_list("allowSkills"),
            deny_skills=_list("denySkills"),
            skills_output_dir=data.get("skillsOutputDir"),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"enabled": self.enabled}
        if self.allow is not None:
            result["allow"] = list(self.allow)
        if self.deny is not None:
            result["deny"] = list(self.deny)
        if self.output_path is not None:
            result["outputPath"] = self.output_path
        result["skillsEnabled"] = self.skills_enabled
        if self.allow_skills is not None:
            result["allowSkills"] = list(self.allow_skills)
        if self.deny_skills is not None:
            result["denySkills"] = list(self.deny_skills)
        if self.skills_output_dir is not None:
            result["skillsOutputDir"] = self.skills_output_dir
        return result


@dataclass
class UnifiedConfig:
    """uac configuration loaded from unified.config.yaml.

    ABOUTME: Servers and skills are keyed by id; targets by agent name
    ABOUTME: Editing helpers return new instances rather than mutating this one
    """
    version: str
    servers: dict[str, McpServerSpec] = field(default_factory=dict)
    skills: dict[str, SkillSpec] = field(default_factory=dict)
    targets: dict[str, TargetPolicy] = field(default_factory=dict)

    def target_for(self, agent: str) -> TargetPolicy:
        """Return the agent's policy, or the all-defaults policy when unset."""
        return self.targets.get(agent) or TargetPolicy()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UnifiedConfig":
        """Build from an already shape-validated document."""
        servers = (data.get("mcp") or {}).get("servers") or {}
        skills = (data.get("skills") or {}).get("items") or {}
        targets = data.get("targets") or {}
        return cls(
            version=str(data["version"]),
            servers={sid: McpServerSpec.from_dict(raw) for sid, raw in servers.items()},
            skills={kid: SkillSpec.from_dict(raw) for kid, raw in skills.items()},
            targets={
                agent: TargetPolicy.from_dict(raw or {})
                for agent, raw in targets.items()
            },
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "version": self.version,
            "mcp": {
                "servers": {sid: s.to_dict() for sid, s in self.servers.items()}
            },
        }
        if self.skills:
            result["skills"] = {
                "items": {kid: s.to_dict() for kid, s in self.skills.items()}
            }
        if self.targets:
            result["targets"] = {
                agent: policy.to_dict() for agent, policy in self.targets.items()
            }
        return result


@dataclass(frozen=True)
class ServerDiff:
    """Structural diff between two id-keyed maps (ids sorted lexicographically)."""
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)
    unchanged: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.changed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "added": list(self.added),
            "removed": list(self.removed),
            "changed": list(self.changed),
            "unchanged": self.unchanged,
        }


@dataclass(frozen=True)
class SkillMaterialized:
    """A skill as it exists (or should exist) on disk for one agent."""
    file_name: str
    content: str


@dataclass(frozen=True)
class LoadResult:
    """Native document loaded by an adapter; exists is False for missing/blank files."""
    exists: bool
    data: dict[str, Any]


@runtime_checkable
class AgentAdapter(Protocol):
    """Protocol for agent-specific native config adapters.

    ABOUTME: Pure data-shape translation, no enablement policy
    ABOUTME: Uses @runtime_checkable for isinstance() support
    """

    @property
    def agent(self) -> str:
        """Agent name, one of AGENTS."""
        ...

    @property
    def name(self) -> str:
        """Human-readable agent name."""
        ...

    @property
    def servers_key(self) -> str:
        """Top-level key that holds the server map in the native document."""
        ...

    def resolve_path(self, policy: TargetPolicy | None = None) -> Path:
        """Return the native config path (policy override wins)."""
        ...

    def load(self, path: Path) -> LoadResult:
        """Load the native document; missing/blank files load as empty."""
        ...

    def create_empty(self) -> dict[str, Any]:
        """Agent-specific empty native document."""
        ...

    def extract_servers(self, data: dict[str, Any]) -> dict[str, Any]:
        """Read the server map, tolerating a missing or malformed key."""
        ...

    def with_servers(self, data: dict[str, Any], servers: dict[str, Any]) -> dict[str, Any]:
        """Return a copy of data with the server map replaced."""
        ...

    def normalize_server(self, server_id: str, server: McpServerSpec) -> dict[str, Any]:
        """Translate a unified server into the agent's native record."""
        ...

    def format(self, data: dict[str, Any]) -> str:
        """Serialize the native document in the agent's dialect."""
        ...
