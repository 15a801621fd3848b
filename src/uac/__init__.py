# uac - Unified Agent Config
# ABOUTME: Version information
__version__ = "0.1.0"

# ABOUTME: Export core data models and the planning/sync engine
from uac.config import LoadedConfig, load_config, save_config
from uac.models import (
    AGENTS,
    AgentAdapter,
    McpServerSpec,
    ServerDiff,
    SkillSpec,
    TargetPolicy,
    UnifiedConfig,
)
from uac.planner import AgentPlan, build_plan
from uac.sync import RollbackReport, SyncResult, apply_plan, rollback_snapshot

__all__ = [
    "__version__",
    "AGENTS",
    "AgentAdapter",
    "McpServerSpec",
    "SkillSpec",
    "TargetPolicy",
    "UnifiedConfig",
    "ServerDiff",
    "LoadedConfig",
    "load_config",
    "save_config",
    "AgentPlan",
    "build_plan",
    "SyncResult",
    "RollbackReport",
    "apply_plan",
    "rollback_snapshot",
]
