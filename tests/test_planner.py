# ABOUTME: Tests for build_plan: per-agent desired state and diffs
# ABOUTME: Uses the isolated home from conftest, so default agent paths are temp paths
import json
from pathlib import Path

import pytest
import tomli

from uac.errors import AdapterDialectError, MissingSecretError, UnknownAgentError
from uac.models import AGENTS, McpServerSpec, SkillSpec, TargetPolicy, UnifiedConfig
from uac.planner import build_plan


def test_plans_in_declared_order(sample_config: UnifiedConfig, tmp_path: Path):
    """Test one plan per agent, in AGENTS order."""
    plans = build_plan(sample_config, config_dir=tmp_path)
    assert [plan.agent for plan in plans] == list(AGENTS)


def test_agent_selection_keeps_declared_order(sample_config: UnifiedConfig, tmp_path: Path):
    """Test the selection order does not change plan order."""
    plans = build_plan(sample_config, agents=["claude", "codex"], config_dir=tmp_path)
    assert [plan.agent for plan in plans] == ["codex", "claude"]


def test_unknown_agent_rejected(sample_config: UnifiedConfig):
    """Test unknown agents fail the whole plan."""
    with pytest.raises(UnknownAgentError):
        build_plan(sample_config, agents=["codex", "cursor"])


def test_fs_enabled_only_for_codex(fs_only_codex_config: UnifiedConfig, isolated_home: Path):
    """Test the fs server appears only in the codex plan."""
    plans = {plan.agent: plan for plan in build_plan(fs_only_codex_config)}

    assert plans["codex"].diff.added == ["fs"]
    for agent in ("gemini", "claude", "vscode", "antigravity"):
        assert not plans[agent].diff.has_changes
        assert plans[agent].desired_servers == {}

    record = plans["codex"].desired_servers["fs"]
    assert record == {
        "command": "npx",
        "args": ["-y", "@modelcontextprotocol/server-filesystem", "/projects"],
    }
    assert plans["codex"].path == isolated_home / ".codex" / "config.toml"


def test_plan_does_not_write(sample_config: UnifiedConfig, isolated_home: Path, tmp_path: Path):
    """Test planning leaves the filesystem untouched."""
    before = sorted(p.relative_to(isolated_home) for p in isolated_home.rglob("*"))
    build_plan(sample_config, config_dir=tmp_path)
    after = sorted(p.relative_to(isolated_home) for p in isolated_home.rglob("*"))
    assert before == after


def test_existing_native_servers_are_diffed(tmp_path: Path, isolated_home: Path):
    """Test unmanaged native servers show up as removed."""
    settings = isolated_home / ".gemini" / "settings.json"
    settings.parent.mkdir(parents=True)
    settings.write_text(
        json.dumps(
            {
                "theme": "dark",
                "mcpServers": {
                    "fs": {"type": "stdio", "command": "npx"},
                    "legacy": {"type": "stdio", "command": "old"},
                },
            }
        )
    )
    config = UnifiedConfig(version="1", servers={"fs": McpServerSpec(transport="stdio", command="npx")})

    plan = build_plan(config, agents=["gemini"], config_dir=tmp_path)[0]

    assert plan.file_exists is True
    assert plan.diff.removed == ["legacy"]
    assert plan.diff.unchanged == 1
    assert plan.current_data["theme"] == "dark"


def test_output_path_override(tmp_path: Path):
    """Test outputPath redirects the native file."""
    target = tmp_path / "custom" / "codex.toml"
    config = UnifiedConfig(
        version="1",
        servers={"fs": McpServerSpec(transport="stdio", command="npx")},
        targets={"codex": TargetPolicy(output_path=str(target))},
    )
    plan = build_plan(config, agents=["codex"], config_dir=tmp_path)[0]
    assert plan.path == target
    assert plan.file_exists is False


def test_preview_keeps_unresolved_reference(sample_config: UnifiedConfig, tmp_path: Path, monkeypatch):
    """Test previews never fail on missing secrets."""
    monkeypatch.delenv("API_TOKEN", raising=False)
    plan = build_plan(sample_config, agents=["claude"], config_dir=tmp_path)[0]
    assert plan.desired_servers["api"]["headers"] == {"Authorization": "env://API_TOKEN"}


def test_strict_plan_fails_on_missing_secret(sample_config: UnifiedConfig, tmp_path: Path, monkeypatch):
    """Test strict resolution aborts the whole plan."""
    monkeypatch.delenv("API_TOKEN", raising=False)
    with pytest.raises(MissingSecretError, match="mcp.servers.api.headers.Authorization"):
        build_plan(sample_config, config_dir=tmp_path, resolve_secrets=True)


def test_disabled_server_secret_not_required(tmp_path: Path, monkeypatch):
    """Test secrets are only resolved for servers enabled for the agent."""
    monkeypatch.delenv("API_TOKEN", raising=False)
    config = UnifiedConfig(
        version="1",
        servers={
            "api": McpServerSpec(
                transport="http",
                url="https://x",
                headers={"Authorization": "env://API_TOKEN"},
                enabled_in={"codex": False},
            )
        },
    )
    plans = build_plan(config, agents=["codex"], config_dir=tmp_path, resolve_secrets=True)
    assert plans[0].desired_servers == {}


def test_strict_plan_resolves_secret(sample_config: UnifiedConfig, tmp_path: Path, monkeypatch):
    """Test resolved values land in the desired native record."""
    monkeypatch.setenv("API_TOKEN", "Bearer t")
    plan = build_plan(sample_config, agents=["codex"], config_dir=tmp_path, resolve_secrets=True)[0]
    assert plan.desired_servers["api"] == {
        "url": "https://api.example.com/mcp",
        "headers": {"Authorization": "Bearer t"},
    }


def test_broken_native_file_aborts_plan(sample_config: UnifiedConfig, isolated_home: Path, tmp_path: Path):
    """Test one unparsable native file fails every plan."""
    config_toml = isolated_home / ".codex" / "config.toml"
    config_toml.parent.mkdir(parents=True)
    config_toml.write_text("[mcp_servers\nbroken")

    with pytest.raises(AdapterDialectError, match="codex"):
        build_plan(sample_config, config_dir=tmp_path)


def test_skills_diff(tmp_path: Path):
    """Test skills are planned per agent with their own diff."""
    config = UnifiedConfig(
        version="1",
        skills={"style": SkillSpec(content="# style")},
        targets={"gemini": TargetPolicy(skills_enabled=False)},
    )
    plans = {plan.agent: plan for plan in build_plan(config, config_dir=tmp_path)}

    assert plans["codex"].skills_diff.added == ["style"]
    assert plans["gemini"].skills_diff.added == []
    assert plans["codex"].skills_manifest_exists is False


def test_summary_is_json_ready(sample_config: UnifiedConfig, tmp_path: Path):
    """Test summary() serializes without secrets or native data."""
    plan = build_plan(sample_config, agents=["codex"], config_dir=tmp_path)[0]
    summary = plan.summary()

    json.dumps(summary)
    assert summary["agent"] == "codex"
    assert summary["mcp"]["added"] == ["api", "fs"]
    assert summary["skills"]["added"] == ["style"]


def test_desired_codex_record_round_trips_through_toml(fs_only_codex_config: UnifiedConfig, tmp_path: Path):
    """Test the formatted codex document parses back to the desired servers."""
    plan = build_plan(fs_only_codex_config, agents=["codex"], config_dir=tmp_path)[0]
    text = plan.adapter.format(plan.adapter.with_servers(plan.current_data, plan.desired_servers))

    assert tomli.loads(text)["mcp_servers"] == plan.desired_servers
    assert "enabledIn" not in text
