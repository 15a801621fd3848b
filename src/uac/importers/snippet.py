# Preview import of pasted MCP config snippets (JSON or Codex TOML)
# ABOUTME: Detects the snippet dialect, normalizes servers and replaces literal
# ABOUTME: secrets with env:// references before anything is shown or saved
import json
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Iterable

import tomli

from uac.errors import SnippetImportError
from uac.models import McpServerSpec
from uac.utils.env import is_env_reference, make_env_reference

logger = logging.getLogger(__name__)

FORMATS = ("mcp_router_json", "codex_toml", "gemini_json", "generic_mcp_json")

_HINT_ALIASES = {
    "mcp_router_json": "mcp_router_json",
    "mcp-router": "mcp_router_json",
    "mcp-router-json": "mcp_router_json",
    "codex_toml": "codex_toml",
    "codex-toml": "codex_toml",
    "codex": "codex_toml",
    "gemini_json": "gemini_json",
    "gemini-json": "gemini_json",
    "claude-json": "gemini_json",
    "generic_mcp_json": "generic_mcp_json",
    "generic": "generic_mcp_json",
}

SUPPORTED_FIELDS = frozenset(
    {"transport", "type", "command", "args", "url", "env", "headers", "startup_timeout_sec", "enabledIn"}
)

_CODE_FENCE = re.compile(r"^```[A-Za-z0-9_-]*\s*(.*?)\s*```$", re.DOTALL)
_SENSITIVE_KEY = re.compile(
    r"(token|secret|password|authorization|api[_-]?key|cookie|session|credential|private)",
    re.IGNORECASE,
)
_SENSITIVE_VALUE = re.compile(r"(sk-|ntn_|ghp_|xoxb-|bearer\s+|^eyJ[A-Za-z0-9_-]{10,})", re.IGNORECASE)


@dataclass(frozen=True)
class ImportWarning:
    code: str
    message: str


@dataclass(frozen=True)
class EnvSuggestion:
    """A literal that was replaced by an env:// reference."""
    server_id: str
    field_path: str
    env_key: str
    replacement: str


@dataclass
class ImportPreview:
    detected_format: str
    servers: dict[str, McpServerSpec] = field(default_factory=dict)
    conflicts: list[str] = field(default_factory=list)
    env_suggestions: list[EnvSuggestion] = field(default_factory=list)
    warnings: list[ImportWarning] = field(default_factory=list)


def strip_code_fence(text: str) -> str:
    trimmed = text.strip()
    match = _CODE_FENCE.match(trimmed)
    return match.group(1).strip() if match else trimmed


def looks_sensitive(key: str, value: str) -> bool:
    """Heuristic: secret-sounding key names or well-known token prefixes."""
    return bool(_SENSITIVE_KEY.search(key) or _SENSITIVE_VALUE.search(value))


def _sanitize_env_token(text: str) -> str:
    return re.sub(r"[^A-Z0-9]+", "_", text.upper()).strip("_")


def make_env_key(server_id: str, key: str, used: set[str]) -> str:
    """Return a unique UAC_<SERVER>_<KEY> variable name and mark it used.

    Examples:
        >>> make_env_key("my-api", "apiKey", set())
        'UAC_MY_API_APIKEY'
    """
    base = f"UAC_{_sanitize_env_token(server_id) or 'SERVER'}_{_sanitize_env_token(key) or 'VALUE'}"
    candidate = base
    index = 2
    while candidate in used:
        candidate = f"{base}_{index}"
        index += 1
    used.add(candidate)
    return candidate


def _is_server_like(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    return any(isinstance(value.get(key), str) for key in ("command", "url", "type", "transport"))


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _string_map(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {key: item for key, item in value.items() if isinstance(item, str)}


def _normalize_server(server_id: str, raw: Any, warnings: list[ImportWarning]) -> McpServerSpec | None:
    """Best-effort normalization; invalid entries become warnings, not errors."""
    if not isinstance(raw, dict):
        warnings.append(ImportWarning("partial_invalid", f'Skipped "{server_id}": entry is not an object.'))
        return None

    for key in raw:
        if key not in SUPPORTED_FIELDS:
            warnings.append(
                ImportWarning("unsupported_field", f'Server "{server_id}" has unsupported field "{key}", ignored.')
            )

    url = raw.get("url").strip() if isinstance(raw.get("url"), str) else ""
    command = raw.get("command").strip() if isinstance(raw.get("command"), str) else ""
    transport = raw.get("transport") if isinstance(raw.get("transport"), str) else raw.get("type")
    if transport not in ("stdio", "sse", "http"):
        if url:
            transport = "sse"
        elif command:
            transport = "stdio"
        else:
            warnings.append(
                ImportWarning("partial_invalid", f'Skipped "{server_id}": cannot infer transport (no command/url/type).')
            )
            return None

    if transport == "stdio":
        if not command:
            warnings.append(ImportWarning("partial_invalid", f'Skipped "{server_id}": stdio transport requires command.'))
            return None
        timeout = raw.get("startup_timeout_sec")
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            timeout = None
        return McpServerSpec(
            transport="stdio",
            command=command,
            args=_string_list(raw.get("args")),
            env=_string_map(raw.get("env")),
            startup_timeout_sec=timeout,
        )

    if not url:
        warnings.append(ImportWarning("partial_invalid", f'Skipped "{server_id}": {transport} transport requires url.'))
        return None
    return McpServerSpec(transport=transport, url=url, headers=_string_map(raw.get("headers")))


def _convert_secrets(
    server_id: str,
    server: McpServerSpec,
    used: set[str],
    suggestions: list[EnvSuggestion],
    warnings: list[ImportWarning],
) -> McpServerSpec:
    def convert(record: dict[str, str], field_name: str) -> dict[str, str]:
        result: dict[str, str] = {}
        for key, value in record.items():
            if is_env_reference(value) or not looks_sensitive(key, value):
                result[key] = value
                continue
            env_key = make_env_key(server_id, key, used)
            reference = make_env_reference(env_key)
            result[key] = reference
            suggestions.append(EnvSuggestion(server_id, f"{field_name}.{key}", env_key, reference))
            warnings.append(
                ImportWarning(
                    "secret_converted",
                    f"Converted literal {server_id}.{field_name}.{key} to {reference}",
                )
            )
        return result

    return replace(server, env=convert(server.env, "env"), headers=convert(server.headers, "headers"))


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise SnippetImportError(f"JSON parse failed: {e}") from e


def _parse_toml(text: str) -> dict[str, Any]:
    try:
        return tomli.loads(text)
    except tomli.TOMLDecodeError as e:
        raise SnippetImportError(f"TOML parse failed: {e}") from e


def detect_format(text: str) -> str:
    """Guess the snippet dialect.

    ABOUTME: Leading "[" is Codex TOML; mcpServers with any "type" field is gemini_json,
    ABOUTME: without is mcp_router_json; bare server objects or maps are generic_mcp_json

    Raises:
        SnippetImportError: If no known structure is recognized
    """
    trimmed = text.strip()
    if trimmed.startswith("["):
        return "codex_toml"

    parsed = _parse_json(trimmed)
    if not isinstance(parsed, dict):
        raise SnippetImportError("Only object-shaped JSON/TOML snippets are supported.")

    servers = parsed.get("mcpServers")
    if isinstance(servers, dict):
        has_type = any(isinstance(v, dict) and isinstance(v.get("type"), str) for v in servers.values())
        return "gemini_json" if has_type else "mcp_router_json"

    if _is_server_like(parsed) or any(_is_server_like(v) for v in parsed.values()):
        return "generic_mcp_json"

    raise SnippetImportError("Format detection failed: no mcpServers, Codex TOML or generic MCP structure found.")


def _raw_servers_from_toml(text: str) -> dict[str, Any]:
    parsed = _parse_toml(text)
    servers = parsed.get("mcp_servers")
    if not isinstance(servers, dict):
        raise SnippetImportError('Codex TOML snippet is missing "mcp_servers".')
    return servers


def _raw_servers_from_json(text: str, detected_format: str) -> dict[str, Any]:
    parsed = _parse_json(text)
    if not isinstance(parsed, dict):
        raise SnippetImportError("JSON top level must be an object.")

    if detected_format in ("mcp_router_json", "gemini_json"):
        servers = parsed.get("mcpServers")
        if not isinstance(servers, dict):
            raise SnippetImportError('JSON is missing object field "mcpServers".')
        return servers

    if isinstance(parsed.get("mcpServers"), dict):
        return parsed["mcpServers"]
    if _is_server_like(parsed):
        single_id = "imported-server"
        for key in ("id", "name"):
            if isinstance(parsed.get(key), str) and parsed[key].strip():
                single_id = parsed[key].strip()
                break
        return {single_id: parsed}

    servers = {key: value for key, value in parsed.items() if _is_server_like(value)}
    if not servers:
        raise SnippetImportError("Could not find an MCP server structure in the JSON.")
    return servers


def preview_import_snippet(
    snippet: str,
    source_hint: str = "auto",
    existing_ids: Iterable[str] = (),
) -> ImportPreview:
    """Parse a pasted snippet into candidate servers without touching any config.

    ABOUTME: Sensitive literals in env/headers never appear in the returned servers
    ABOUTME: Secret detection is a convenience heuristic, not a guarantee

    Args:
        snippet: Pasted text, optionally wrapped in a ``` code fence
        source_hint: "auto" or a format name/alias
        existing_ids: Ids already in the config, reported as conflicts

    Returns:
        ImportPreview ready for editing.apply_import()

    Raises:
        SnippetImportError: Empty snippet, parse failure, or no importable server
    """
    text = strip_code_fence(snippet)
    if not text:
        raise SnippetImportError("Import snippet is empty.")

    hint = (source_hint or "auto").strip().lower()
    detected = detect_format(text) if hint == "auto" else _HINT_ALIASES.get(hint, "generic_mcp_json")
    logger.debug(f"Snippet format: {detected}")

    warnings = [ImportWarning("format_detected", f"Detected format: {detected}")]
    if detected == "codex_toml":
        raw_servers = _raw_servers_from_toml(text)
    else:
        raw_servers = _raw_servers_from_json(text, detected)

    used_keys: set[str] = set()
    suggestions: list[EnvSuggestion] = []
    servers: dict[str, McpServerSpec] = {}
    for server_id, raw in raw_servers.items():
        normalized = _normalize_server(server_id, raw, warnings)
        if normalized is None:
            continue
        servers[server_id] = _convert_secrets(server_id, normalized, used_keys, suggestions, warnings)

    if not servers:
        raise SnippetImportError("No importable MCP servers found in snippet.")

    existing = set(existing_ids)
    return ImportPreview(
        detected_format=detected,
        servers=servers,
        conflicts=sorted(sid for sid in servers if sid in existing),
        env_suggestions=suggestions,
        warnings=warnings,
    )
