# ABOUTME: Strict shape validation for the unified config document
# ABOUTME: JSON Schema (2020-12) checked with jsonschema, plus transport/skill rules
from functools import lru_cache
from typing import Any, Iterator

from jsonschema import Draft202012Validator

from uac.models import AGENTS, TRANSPORTS
from uac.paths import SKILLS_MANIFEST_FILENAME

_ENABLED_IN = {
    "type": "object",
    "additionalProperties": False,
    "properties": {agent: {"type": "boolean"} for agent in AGENTS},
}

_STRING_MAP = {"type": "object", "additionalProperties": {"type": "string"}}
_STRING_LIST = {"type": "array", "items": {"type": "string"}}

CONFIG_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["version", "mcp"],
    "additionalProperties": False,
    "properties": {
        "version": {"type": "string"},
        "mcp": {
            "type": "object",
            "required": ["servers"],
            "additionalProperties": False,
            "properties": {
                "servers": {
                    "type": "object",
                    "propertyNames": {"minLength": 1},
                    "additionalProperties": {"$ref": "#/$defs/server"},
                }
            },
        },
        "skills": {
            "type": "object",
            "required": ["items"],
            "additionalProperties": False,
            "properties": {
                "items": {
                    "type": "object",
                    "propertyNames": {"minLength": 1},
                    "additionalProperties": {"$ref": "#/$defs/skill"},
                }
            },
        },
        "targets": {
            "type": "object",
            "additionalProperties": False,
            "properties": {agent: {"$ref": "#/$defs/target"} for agent in AGENTS},
        },
    },
    "$defs": {
        "server": {
            "type": "object",
            "required": ["transport"],
            "additionalProperties": False,
            "properties": {
                "transport": {"enum": list(TRANSPORTS)},
                "command": {"type": "string"},
                "args": _STRING_LIST,
                "url": {"type": "string"},
                "env": _STRING_MAP,
                "headers": _STRING_MAP,
                "startup_timeout_sec": {"type": "number", "exclusiveMinimum": 0},
                "enabledIn": _ENABLED_IN,
            },
            "allOf": [
                {
                    "if": {"properties": {"transport": {"const": "stdio"}}},
                    "then": {"required": ["command"], "properties": {"command": {"minLength": 1}}},
                },
                {
                    "if": {"properties": {"transport": {"enum": ["sse", "http"]}}},
                    "then": {"required": ["url"], "properties": {"url": {"minLength": 1}}},
                },
            ],
        },
        "skill": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "content": {"type": "string"},
                "sourcePath": {"type": "string", "minLength": 1},
                "fileName": {
                    "type": "string",
                    "minLength": 1,
                    "not": {"enum": [".", ".."]},
                    "pattern": r"^[^/\\]+$",
                },
                "enabledIn": _ENABLED_IN,
            },
            "anyOf": [{"required": ["content"]}, {"required": ["sourcePath"]}],
        },
        "target": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "allow": _STRING_LIST,
                "deny": _STRING_LIST,
                "outputPath": {"type": "string", "minLength": 1},
                "skillsEnabled": {"type": "boolean"},
                "allowSkills": _STRING_LIST,
                "denySkills": _STRING_LIST,
                "skillsOutputDir": {"type": "string", "minLength": 1},
            },
        },
    },
}


@lru_cache(maxsize=1)
def _validator() -> Draft202012Validator:
    return Draft202012Validator(CONFIG_SCHEMA)


def _format_path(parts: Any) -> str:
    path = ".".join(str(item) for item in parts)
    return path or "/"


def iter_shape_errors(data: Any) -> Iterator[tuple[str, str]]:
    """Yield (path, message) pairs for every schema violation.

    ABOUTME: Errors are ordered by document path for stable output
    """
    errors = sorted(_validator().iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path])
    for error in errors:
        yield _format_path(error.absolute_path), error.message


def iter_skill_file_errors(data: Any) -> Iterator[tuple[str, str]]:
    """Yield (path, message) pairs for skills whose effective file names clash.

    ABOUTME: The effective name is fileName, or <id>.md when fileName is absent
    ABOUTME: Names are compared case-insensitively; the manifest name is reserved
    """
    skills = data.get("skills") if isinstance(data, dict) else None
    items = skills.get("items") if isinstance(skills, dict) else None
    if not isinstance(items, dict):
        return

    owners: dict[str, str] = {}
    for skill_id in sorted(items, key=str):
        skill = items[skill_id]
        explicit = skill.get("fileName") if isinstance(skill, dict) else None
        if not isinstance(explicit, str) or not explicit:
            explicit = None
        path = f"skills.items.{skill_id}.fileName" if explicit else f"skills.items.{skill_id}"
        file_name = explicit or f"{skill_id}.md"

        if explicit is None and ("/" in str(skill_id) or "\\" in str(skill_id)):
            yield path, f"'{file_name}' is not a plain file name; set fileName"
            continue
        key = file_name.casefold()
        if key == SKILLS_MANIFEST_FILENAME.casefold():
            yield path, f"'{file_name}' is reserved for the skills manifest"
        elif key in owners:
            yield path, f"'{file_name}' is already used by skill '{owners[key]}'"
        else:
            owners[key] = str(skill_id)


def validate_config_shape(data: Any) -> list[str]:
    """Validate a raw unified config document.

    Args:
        data: Parsed YAML (or the dict form of a UnifiedConfig)

    Returns:
        List of "path: message" strings, empty when the document is valid

    Examples:
        >>> validate_config_shape({"version": "1", "mcp": {"servers": {}}})
        []
        >>> validate_config_shape({"version": "1", "mcp": {"servers": {"x": {"transport": "stdio"}}}})
        ["mcp.servers.x: 'command' is a required property"]
    """
    errors = [f"{path}: {message}" for path, message in iter_shape_errors(data)]
    errors.extend(f"{path}: {message}" for path, message in iter_skill_file_errors(data))
    return errors
