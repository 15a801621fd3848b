# ABOUTME: CLI tests: in-process main() calls for behavior and exit codes,
# ABOUTME: plus a few subprocess runs of `python -m uac`
import json
import os
import subprocess
import sys
from pathlib import Path

import pytest
import tomli

from uac.cli import EXIT_CONFIG_ERROR, EXIT_FATAL, EXIT_PARTIAL, EXIT_SUCCESS, main
from uac.config import load_config
from uac.utils.backup import list_snapshots

SRC_DIR = Path(__file__).resolve().parent.parent / "src"

CONFIG_YAML = """\
version: "1"
mcp:
  servers:
    fs:
      transport: stdio
      command: npx
      args: ["-y", "@modelcontextprotocol/server-filesystem", "/projects"]
      enabledIn:
        codex: true
        gemini: false
        claude: false
        vscode: false
        antigravity: false
"""


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "unified.config.yaml"
    path.write_text(CONFIG_YAML)
    return path


def test_no_command_prints_help(capsys):
    """Test running without a subcommand shows usage."""
    assert main([]) == EXIT_SUCCESS
    assert "usage" in capsys.readouterr().out.lower()


class TestInit:
    """Tests for `uac init`."""

    def test_creates_default_config(self, isolated_home: Path, capsys):
        """Test init writes the sample to the state dir."""
        assert main(["init"]) == EXIT_SUCCESS
        assert (isolated_home / ".uac" / "unified.config.yaml").is_file()
        assert "Config created at" in capsys.readouterr().out

    def test_existing_config_is_usage_error(self, config_file: Path, capsys):
        """Test init refuses to overwrite without --force."""
        assert main(["init", "-c", str(config_file)]) == EXIT_CONFIG_ERROR
        assert "--force" in capsys.readouterr().out
        assert config_file.read_text() == CONFIG_YAML

    def test_force(self, config_file: Path):
        """Test --force overwrites."""
        assert main(["init", "-c", str(config_file), "--force"]) == EXIT_SUCCESS
        assert "filesystem-mcp" in config_file.read_text()


class TestValidate:
    """Tests for `uac validate`."""

    def test_valid(self, config_file: Path, capsys):
        """Test a valid config reports counts."""
        assert main(["validate", "-c", str(config_file)]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "Config is valid" in out
        assert "MCP servers: 1" in out

    def test_missing_config(self, tmp_path: Path, capsys):
        """Test a missing config exits 2 with a hint."""
        assert main(["validate", "-c", str(tmp_path / "none.yaml")]) == EXIT_CONFIG_ERROR
        out = capsys.readouterr().out
        assert "Config not found" in out
        assert "uac init" in out

    def test_invalid_config_lists_errors(self, tmp_path: Path, capsys):
        """Test shape errors are printed and exit 2."""
        path = tmp_path / "bad.yaml"
        path.write_text("version: '1'\nmcp:\n  servers:\n    x: {transport: sse}\n")
        assert main(["validate", "-c", str(path)]) == EXIT_CONFIG_ERROR
        assert "mcp.servers.x" in capsys.readouterr().out

    def test_unset_env_is_warning(self, tmp_path: Path, capsys, monkeypatch):
        """Test unset env:// variables warn but do not fail."""
        monkeypatch.delenv("ROUTER_TOKEN", raising=False)
        path = tmp_path / "c.yaml"
        path.write_text(
            "version: '1'\nmcp:\n  servers:\n    r:\n      transport: sse\n"
            "      url: http://localhost/sse\n      headers: {Authorization: 'env://ROUTER_TOKEN'}\n"
        )
        assert main(["validate", "-c", str(path)]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "ROUTER_TOKEN" in out
        assert "1 warning(s)" in out


def test_list_shows_enabled_agents(config_file: Path, capsys):
    """Test list prints the effective agents per server."""
    assert main(["list", "-c", str(config_file)]) == EXIT_SUCCESS
    out = capsys.readouterr().out
    assert "fs" in out
    assert "agents: codex" in out


class TestPlanAndSync:
    """Tests for plan, sync, snapshots and rollback."""

    def test_plan_json(self, config_file: Path, capsys):
        """Test --json output parses and lists every agent."""
        assert main(["plan", "-c", str(config_file), "--json"]) == EXIT_SUCCESS
        data = json.loads(capsys.readouterr().out)
        assert [item["agent"] for item in data] == ["codex", "gemini", "claude", "vscode", "antigravity"]
        assert data[0]["mcp"]["added"] == ["fs"]

    def test_plan_unknown_agent(self, config_file: Path, capsys):
        """Test an unknown agent name exits 2."""
        assert main(["plan", "-c", str(config_file), "-a", "codex,cursor"]) == EXIT_CONFIG_ERROR
        assert "cursor" in capsys.readouterr().out

    def test_dry_run_writes_nothing(self, config_file: Path, isolated_home: Path, capsys):
        """Test --dry-run leaves agent files and snapshots alone."""
        assert main(["sync", "-c", str(config_file), "--dry-run"]) == EXIT_SUCCESS
        assert "[codex] CHANGE" in capsys.readouterr().out
        assert not (isolated_home / ".codex" / "config.toml").exists()
        assert list_snapshots() == []

    def test_sync_then_rollback(self, config_file: Path, isolated_home: Path, capsys):
        """Test the full sync/snapshots/rollback cycle."""
        assert main(["sync", "-c", str(config_file)]) == EXIT_SUCCESS
        codex = isolated_home / ".codex" / "config.toml"
        assert tomli.loads(codex.read_text())["mcp_servers"]["fs"]["command"] == "npx"
        out = capsys.readouterr().out
        snapshot_id = list_snapshots()[0]
        assert f"Snapshot: {snapshot_id}" in out
        assert "- gemini: skipped (no change)" in out

        assert main(["snapshots", "--show-meta"]) == EXIT_SUCCESS
        assert "agents=codex,gemini,claude,vscode,antigravity" in capsys.readouterr().out

        assert main(["rollback", "-s", snapshot_id]) == EXIT_SUCCESS
        assert "- codex: rollback applied" in capsys.readouterr().out
        assert not codex.exists()

    def test_sync_missing_secret_exits_2(self, tmp_path: Path, isolated_home: Path, capsys, monkeypatch):
        """Test a missing env var aborts before any write."""
        monkeypatch.delenv("ROUTER_TOKEN", raising=False)
        path = tmp_path / "c.yaml"
        path.write_text(
            "version: '1'\nmcp:\n  servers:\n    r:\n      transport: sse\n"
            "      url: http://localhost/sse\n      headers: {Authorization: 'env://ROUTER_TOKEN'}\n"
        )
        assert main(["sync", "-c", str(path)]) == EXIT_CONFIG_ERROR
        assert "ROUTER_TOKEN" in capsys.readouterr().out
        assert list_snapshots() == []
        assert not (isolated_home / ".codex" / "config.toml").exists()

    def test_rollback_unknown_snapshot(self, capsys):
        """Test an unknown snapshot id exits 2."""
        assert main(["rollback", "-s", "2020-01-01T00-00-00-000000Z"]) == EXIT_CONFIG_ERROR
        assert "Snapshot not found" in capsys.readouterr().out

    def test_rollback_partial_failure(self, config_file: Path, isolated_home: Path, capsys):
        """Test a failing agent makes rollback exit 1."""
        codex = isolated_home / ".codex" / "config.toml"
        codex.parent.mkdir(parents=True)
        codex.write_text('model = "o3"\n')
        assert main(["sync", "-c", str(config_file)]) == EXIT_SUCCESS
        snapshot_id = list_snapshots()[0]
        for backup in (isolated_home / ".uac" / "snapshots" / snapshot_id).glob("codex.*"):
            backup.unlink()
        capsys.readouterr()

        assert main(["rollback", "-s", snapshot_id]) == EXIT_PARTIAL
        assert "codex: rollback FAILED" in capsys.readouterr().out

    def test_snapshots_empty_and_bad_limit(self, capsys):
        """Test snapshots with nothing stored and with an invalid limit."""
        assert main(["snapshots"]) == EXIT_SUCCESS
        assert "No snapshots found." in capsys.readouterr().out
        assert main(["snapshots", "-n", "0"]) == EXIT_CONFIG_ERROR

    def test_broken_native_file_is_fatal(self, config_file: Path, isolated_home: Path, capsys):
        """Test an unparsable agent file exits 3."""
        codex = isolated_home / ".codex" / "config.toml"
        codex.parent.mkdir(parents=True)
        codex.write_text("[mcp_servers\n")
        assert main(["plan", "-c", str(config_file)]) == EXIT_FATAL
        assert "Fatal error" in capsys.readouterr().out

    def test_undecodable_native_file_is_fatal(self, config_file: Path, isolated_home: Path, capsys):
        """Test a native file that isn't UTF-8 exits 3 with a message, not a traceback."""
        settings = isolated_home / ".gemini" / "settings.json"
        settings.parent.mkdir(parents=True)
        settings.write_bytes(b"\xff\xfe")
        assert main(["plan", "-c", str(config_file)]) == EXIT_FATAL
        out = capsys.readouterr().out
        assert "Fatal error" in out
        assert "Invalid UTF-8" in out


class TestImportCommands:
    """Tests for import-mcp-router, import-preview and remove."""

    def test_import_mcp_router(self, tmp_path: Path, capsys):
        """Test an export becomes a new config."""
        export = tmp_path / "export.json"
        export.write_text(json.dumps({"mcpServers": {"fs": {"command": "npx"}}}))
        output = tmp_path / "out.yaml"

        assert main(["import-mcp-router", "-i", str(export), "-o", str(output)]) == EXIT_SUCCESS
        assert "Imported 1 MCP servers" in capsys.readouterr().out
        assert set(load_config(output).config.servers) == {"fs"}

    def test_import_mcp_router_backup(self, tmp_path: Path, config_file: Path, capsys):
        """Test --force backs up the existing output."""
        export = tmp_path / "export.json"
        export.write_text(json.dumps({"mcpServers": {"api": {"url": "https://x"}}}))

        assert main(["import-mcp-router", "-i", str(export), "-o", str(config_file)]) == EXIT_CONFIG_ERROR
        assert main(["import-mcp-router", "-i", str(export), "-o", str(config_file), "-f"]) == EXIT_SUCCESS
        backups = list(tmp_path.glob("unified.config.yaml.bak-*"))
        assert len(backups) == 1
        assert backups[0].read_text() == CONFIG_YAML

    def test_import_preview_and_apply(self, tmp_path: Path, config_file: Path, capsys):
        """Test preview prints the env suggestion and --apply saves it."""
        snippet = tmp_path / "snippet.json"
        snippet.write_text(json.dumps({"mcpServers": {"api": {"url": "https://x", "headers": {"apiKey": "sk-123"}}}}))

        assert main(["import-preview", str(snippet), "-c", str(config_file)]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "api.headers.apiKey -> env://UAC_API_APIKEY" in out
        assert "sk-123" not in out
        assert "api" not in load_config(config_file).config.servers

        assert main(["import-preview", str(snippet), "-c", str(config_file), "--apply"]) == EXIT_SUCCESS
        saved = load_config(config_file).config.servers["api"]
        assert saved.headers == {"apiKey": "env://UAC_API_APIKEY"}
        assert "sk-123" not in config_file.read_text()

    def test_import_preview_bad_snippet(self, tmp_path: Path, config_file: Path):
        """Test an unrecognized snippet exits 2."""
        snippet = tmp_path / "snippet.json"
        snippet.write_text('{"a": 1}')
        assert main(["import-preview", str(snippet), "-c", str(config_file)]) == EXIT_CONFIG_ERROR

    def test_remove(self, config_file: Path, capsys):
        """Test remove deletes the server from the config."""
        assert main(["remove", "fs", "-c", str(config_file)]) == EXIT_SUCCESS
        assert load_config(config_file).config.servers == {}
        assert main(["remove", "fs", "-c", str(config_file)]) == EXIT_CONFIG_ERROR


def test_notes_commands(capsys):
    """Test setting, showing and listing notes."""
    assert main(["notes", "fs", "Local files"]) == EXIT_SUCCESS
    assert main(["notes", "fs"]) == EXIT_SUCCESS
    assert main(["notes"]) == EXIT_SUCCESS
    out = capsys.readouterr().out
    assert "Note saved for 'fs'" in out
    assert "fs: Local files" in out

    assert main(["notes", "fs", ""]) == EXIT_SUCCESS
    assert main(["notes"]) == EXIT_SUCCESS
    assert "No notes." in capsys.readouterr().out


class TestCliSubprocess:
    """Run the CLI as `python -m uac`."""

    def _run(self, *args: str, home: Path) -> subprocess.CompletedProcess:
        env = os.environ.copy()
        env["HOME"] = str(home)
        env["UAC_HOME"] = str(home / ".uac")
        env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(SRC_DIR), env.get("PYTHONPATH")]))
        return subprocess.run(
            [sys.executable, "-m", "uac", *args],
            capture_output=True,
            text=True,
            timeout=30,
            env=env,
        )

    def test_version(self, isolated_home: Path):
        """Test --version prints the package version."""
        result = self._run("--version", home=isolated_home)
        assert result.returncode == 0
        assert result.stdout.startswith("uac v")

    def test_sync_without_config(self, isolated_home: Path):
        """Test sync without a config exits 2."""
        result = self._run("sync", home=isolated_home)
        assert result.returncode == EXIT_CONFIG_ERROR
        assert "Config not found" in result.stdout
