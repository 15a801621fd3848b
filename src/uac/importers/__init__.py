# ABOUTME: Importers that turn foreign MCP configs into unified servers
from uac.importers.mcp_router import ImportResult, import_from_mcp_router_json
from uac.importers.snippet import (
    FORMATS,
    EnvSuggestion,
    ImportPreview,
    ImportWarning,
    detect_format,
    looks_sensitive,
    make_env_key,
    preview_import_snippet,
    strip_code_fence,
)

__all__ = [
    "ImportResult",
    "import_from_mcp_router_json",
    "FORMATS",
    "ImportPreview",
    "ImportWarning",
    "EnvSuggestion",
    "detect_format",
    "looks_sensitive",
    "make_env_key",
    "preview_import_snippet",
    "strip_code_fence",
]
