# Gemini CLI platform adapter
from pathlib import Path
from typing import Any

from uac.models import McpServerSpec
from uac.platforms.base import BaseAdapter, remote_record, stdio_record


class GeminiAdapter(BaseAdapter):
    """Adapter for Gemini CLI (~/.gemini/settings.json).

    ABOUTME: Every record carries a "type" discriminator, stdio included
    ABOUTME: Preserves other settings like selectedAuthType, theme
    """

    agent = "gemini"
    name = "Gemini CLI"
    servers_key = "mcpServers"

    def default_path(self) -> Path:
        return Path.home() / ".gemini" / "settings.json"

    def normalize_server(self, server_id: str, server: McpServerSpec) -> dict[str, Any]:
        if server.transport == "stdio":
            return stdio_record(self.agent, server_id, server, include_type=True, include_timeout=True)
        return remote_record(self.agent, server_id, server, include_type=True)
