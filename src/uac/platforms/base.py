# Agent adapter base utilities
import json
from pathlib import Path
from typing import Any

from uac.errors import AdapterDialectError
from uac.models import LoadResult, McpServerSpec, TargetPolicy
from uac.paths import expand_user_path
from uac.utils.fs import read_text_if_exists


def read_json_document(agent: str, path: Path) -> dict[str, Any] | None:
    """Read a JSON config document.

    ABOUTME: Returns None if the file doesn't exist or is blank
    ABOUTME: Raises AdapterDialectError for invalid UTF-8, invalid JSON or a non-object root
    """
    try:
        content = read_text_if_exists(path)
    except UnicodeDecodeError as e:
        raise AdapterDialectError(agent, f"Invalid UTF-8: {e}", path) from e
    if content is None or not content.strip():
        return None

    try:
        result = json.loads(content)
    except json.JSONDecodeError as e:
        raise AdapterDialectError(agent, f"Invalid JSON: {e}", path) from e

    if not isinstance(result, dict):
        raise AdapterDialectError(agent, "Top-level JSON value must be an object", path)
    return result


def format_json_document(data: dict[str, Any]) -> str:
    """Serialize as pretty JSON with a trailing newline.

    ABOUTME: Key order is preserved so unrelated user settings keep their layout
    """
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def require_field(agent: str, server_id: str, server: McpServerSpec, field_name: str) -> str:
    """Return a required transport field or fail loudly.

    ABOUTME: Missing fields are never silently dropped
    """
    value = getattr(server, field_name)
    if not isinstance(value, str) or not value.strip():
        raise AdapterDialectError(
            agent,
            f'Server "{server_id}" requires "{field_name}" for {server.transport} transport.',
        )
    return value


def stdio_record(
    agent: str,
    server_id: str,
    server: McpServerSpec,
    *,
    include_type: bool,
    include_timeout: bool,
) -> dict[str, Any]:
    """Build the common stdio record: [type], command, [args], [env], [startup_timeout_sec]."""
    command = require_field(agent, server_id, server, "command")
    result: dict[str, Any] = {}
    if include_type:
        result["type"] = "stdio"
    result["command"] = command
    if server.args:
        result["args"] = list(server.args)
    if server.env:
        result["env"] = dict(server.env)
    if include_timeout and server.startup_timeout_sec is not None:
        result["startup_timeout_sec"] = server.startup_timeout_sec
    return result


def remote_record(
    agent: str,
    server_id: str,
    server: McpServerSpec,
    *,
    include_type: bool,
    url_key: str = "url",
) -> dict[str, Any]:
    """Build the common sse/http record: [type], url, [headers]."""
    url = require_field(agent, server_id, server, "url")
    result: dict[str, Any] = {}
    if include_type:
        result["type"] = server.transport
    result[url_key] = url
    if server.headers:
        result["headers"] = dict(server.headers)
    return result


class BaseAdapter:
    """Shared behaviour for adapters.

    ABOUTME: Subclasses set agent/name/servers_key and implement default_path,
    ABOUTME: normalize_server and (for non-JSON dialects) parse/format
    """

    agent: str = ""
    name: str = ""
    servers_key: str = "mcpServers"

    def default_path(self) -> Path:
        raise NotImplementedError

    def resolve_path(self, policy: TargetPolicy | None = None) -> Path:
        """Return the policy's outputPath if set, else the agent default."""
        if policy is not None and policy.output_path:
            return expand_user_path(policy.output_path)
        return self.default_path()

    def parse(self, path: Path) -> dict[str, Any] | None:
        return read_json_document(self.agent, path)

    def load(self, path: Path) -> LoadResult:
        """Load the native document.

        ABOUTME: Missing or empty file -> exists=False with create_empty() data
        """
        data = self.parse(path)
        if data is None:
            return LoadResult(exists=False, data=self.create_empty())
        return LoadResult(exists=True, data=data)

    def create_empty(self) -> dict[str, Any]:
        return {}

    def extract_servers(self, data: dict[str, Any]) -> dict[str, Any]:
        servers = data.get(self.servers_key) if isinstance(data, dict) else None
        if not isinstance(servers, dict):
            return {}
        return dict(servers)

    def with_servers(self, data: dict[str, Any], servers: dict[str, Any]) -> dict[str, Any]:
        root = dict(data)
        root[self.servers_key] = dict(servers)
        return root

    def normalize_server(self, server_id: str, server: McpServerSpec) -> dict[str, Any]:
        raise NotImplementedError

    def format(self, data: dict[str, Any]) -> str:
        return format_json_document(data)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
