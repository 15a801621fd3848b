# ABOUTME: Shared fixtures: every test runs against a throwaway home directory
# ABOUTME: so no real agent config or ~/.uac state is ever touched
from pathlib import Path

import pytest

from uac.models import McpServerSpec, SkillSpec, TargetPolicy, UnifiedConfig


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME (and the uac state dir) at a temp directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.setenv("APPDATA", str(home / "AppData" / "Roaming"))
    monkeypatch.setenv("UAC_HOME", str(home / ".uac"))
    return home


@pytest.fixture
def fs_only_codex_config() -> UnifiedConfig:
    """One stdio server enabled only for codex via enabledIn."""
    return UnifiedConfig(
        version="1",
        servers={
            "fs": McpServerSpec(
                transport="stdio",
                command="npx",
                args=["-y", "@modelcontextprotocol/server-filesystem", "/projects"],
                enabled_in={
                    "codex": True,
                    "gemini": False,
                    "claude": False,
                    "vscode": False,
                    "antigravity": False,
                },
            )
        },
    )


@pytest.fixture
def sample_config() -> UnifiedConfig:
    """Mixed config: stdio + remote servers, one skill, one target policy."""
    return UnifiedConfig(
        version="1",
        servers={
            "fs": McpServerSpec(transport="stdio", command="npx", args=["-y", "server-fs"]),
            "api": McpServerSpec(
                transport="http",
                url="https://api.example.com/mcp",
                headers={"Authorization": "env://API_TOKEN"},
            ),
        },
        skills={
            "style": SkillSpec(content="# style\n\nBe concise.\n"),
        },
        targets={
            "gemini": TargetPolicy(allow=["api"]),
        },
    )
