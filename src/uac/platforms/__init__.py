# Agent adapter table
from uac.models import AgentAdapter, ensure_agent
from uac.platforms.antigravity import AntigravityAdapter
from uac.platforms.base import BaseAdapter
from uac.platforms.claude import ClaudeAdapter
from uac.platforms.codex import CodexAdapter
from uac.platforms.gemini import GeminiAdapter
from uac.platforms.vscode import VscodeAdapter

# Fixed table in AGENTS order; iteration order drives plan and sync order
ALL_PLATFORMS: tuple[type[BaseAdapter], ...] = (
    CodexAdapter,
    GeminiAdapter,
    ClaudeAdapter,
    VscodeAdapter,
    AntigravityAdapter,
)

__all__ = [
    "AgentAdapter",
    "BaseAdapter",
    "CodexAdapter",
    "GeminiAdapter",
    "ClaudeAdapter",
    "VscodeAdapter",
    "AntigravityAdapter",
    "ALL_PLATFORMS",
    "get_adapter",
    "get_adapters",
]


def get_adapters(agents: list[str] | None = None) -> list[BaseAdapter]:
    """Instantiate adapters for the selected agents (all when None).

    ABOUTME: Always returns adapters in declared order, whatever the selection order
    ABOUTME: Raises UnknownAgentError for names outside AGENTS
    """
    if agents is None:
        return [platform_cls() for platform_cls in ALL_PLATFORMS]
    selected = {ensure_agent(agent) for agent in agents}
    return [platform_cls() for platform_cls in ALL_PLATFORMS if platform_cls.agent in selected]


def get_adapter(agent: str) -> BaseAdapter:
    ensure_agent(agent)
    for platform_cls in ALL_PLATFORMS:
        if platform_cls.agent == agent:
            return platform_cls()
    raise AssertionError(f"no adapter registered for {agent}")
