# VS Code platform adapter
import os
import sys
from pathlib import Path
from typing import Any

from uac.models import McpServerSpec
from uac.platforms.base import BaseAdapter, remote_record, stdio_record


class VscodeAdapter(BaseAdapter):
    """Adapter for VS Code user-level MCP config (<app data>/Code/User/mcp.json).

    ABOUTME: Editor-style document with a bare "servers" key
    ABOUTME: stdio records have no "type"; sse/http records need one
    """

    agent = "vscode"
    name = "VS Code"
    servers_key = "servers"

    def default_path(self) -> Path:
        return self._get_base_path() / "Code" / "User" / "mcp.json"

    def _get_base_path(self) -> Path:
        """Get the per-OS application data directory.

        ABOUTME: APPDATA on Windows, Application Support on macOS, ~/.config elsewhere
        """
        if sys.platform == "win32":
            return Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        elif sys.platform == "darwin":
            return Path.home() / "Library" / "Application Support"
        else:  # Linux and others
            return Path.home() / ".config"

    def create_empty(self) -> dict[str, Any]:
        return {"servers": {}}

    def normalize_server(self, server_id: str, server: McpServerSpec) -> dict[str, Any]:
        if server.transport == "stdio":
            return stdio_record(self.agent, server_id, server, include_type=False, include_timeout=False)
        return remote_record(self.agent, server_id, server, include_type=True)
