# Codex CLI platform adapter
from pathlib import Path
from typing import Any

import tomli
import tomli_w

from uac.errors import AdapterDialectError
from uac.models import McpServerSpec
from uac.platforms.base import BaseAdapter, remote_record, stdio_record
from uac.utils.fs import read_text_if_exists


class CodexAdapter(BaseAdapter):
    """Adapter for Codex CLI (~/.codex/config.toml).

    ABOUTME: TOML dialect, read with tomli and written with tomli_w
    ABOUTME: Uses snake_case mcp_servers key (not mcpServers) and no "type" field
    """

    agent = "codex"
    name = "Codex CLI"
    servers_key = "mcp_servers"

    def default_path(self) -> Path:
        return Path.home() / ".codex" / "config.toml"

    def parse(self, path: Path) -> dict[str, Any] | None:
        try:
            content = read_text_if_exists(path)
        except UnicodeDecodeError as e:
            raise AdapterDialectError(self.agent, f"Invalid UTF-8: {e}", path) from e
        if content is None or not content.strip():
            return None
        try:
            return tomli.loads(content)
        except tomli.TOMLDecodeError as e:
            raise AdapterDialectError(self.agent, f"Invalid TOML: {e}", path) from e

    def normalize_server(self, server_id: str, server: McpServerSpec) -> dict[str, Any]:
        """Map a unified server to a Codex [mcp_servers.<id>] table.

        ABOUTME: stdio keeps startup_timeout_sec; sse/http become url + headers
        """
        if server.transport == "stdio":
            return stdio_record(self.agent, server_id, server, include_type=False, include_timeout=True)
        return remote_record(self.agent, server_id, server, include_type=False)

    def format(self, data: dict[str, Any]) -> str:
        return tomli_w.dumps(data)
