# Antigravity platform adapter
from pathlib import Path
from typing import Any

from uac.models import McpServerSpec
from uac.platforms.base import BaseAdapter, remote_record, stdio_record


class AntigravityAdapter(BaseAdapter):
    """Adapter for Antigravity (~/.gemini/antigravity/mcp_config.json).

    ABOUTME: mcpServers key, no "type" field
    ABOUTME: Remote servers are addressed with serverUrl instead of url
    """

    agent = "antigravity"
    name = "Antigravity"
    servers_key = "mcpServers"

    def default_path(self) -> Path:
        return Path.home() / ".gemini" / "antigravity" / "mcp_config.json"

    def normalize_server(self, server_id: str, server: McpServerSpec) -> dict[str, Any]:
        if server.transport == "stdio":
            return stdio_record(self.agent, server_id, server, include_type=False, include_timeout=False)
        return remote_record(self.agent, server_id, server, include_type=False, url_key="serverUrl")
