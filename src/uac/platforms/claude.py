# Claude Code platform adapter
from pathlib import Path
from typing import Any

from uac.models import McpServerSpec
from uac.platforms.base import BaseAdapter, remote_record, stdio_record


class ClaudeAdapter(BaseAdapter):
    """Adapter for Claude Code (~/.claude.json or ~/.claude/settings.json).

    ABOUTME: Default path checks ~/.claude.json first, then falls back to settings.json
    ABOUTME: Every record carries a "type" discriminator
    """

    agent = "claude"
    name = "Claude Code"
    servers_key = "mcpServers"

    def default_path(self) -> Path:
        """Pick the first candidate that exists.

        ABOUTME: ~/.claude.json wins when present, otherwise ~/.claude/settings.json
        """
        primary = Path.home() / ".claude.json"
        if primary.exists():
            return primary
        return Path.home() / ".claude" / "settings.json"

    def normalize_server(self, server_id: str, server: McpServerSpec) -> dict[str, Any]:
        if server.transport == "stdio":
            return stdio_record(self.agent, server_id, server, include_type=True, include_timeout=False)
        return remote_record(self.agent, server_id, server, include_type=True)
