# Unified config loading and saving for uac
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from uac.errors import ConfigExistsError, ConfigInvalidError, ConfigNotFoundError
from uac.models import UnifiedConfig
from uac.paths import get_default_config_path
from uac.utils.fs import read_text_if_exists, write_text_atomic
from uac.utils.validation import validate_config_shape


@dataclass(frozen=True)
class LoadedConfig:
    """A validated config together with the file it came from."""
    path: Path
    config: UnifiedConfig

    @property
    def config_dir(self) -> Path:
        """Base directory for relative skill sourcePath values."""
        return self.path.parent


def parse_config_text(text: str, path: Path | None = None) -> UnifiedConfig:
    """Parse and validate unified config YAML.

    Raises:
        ConfigInvalidError: If the YAML is malformed or the shape is invalid
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigInvalidError([f"Failed to parse YAML config: {e}"], path) from e

    errors = validate_config_shape(data)
    if errors:
        raise ConfigInvalidError(errors, path)
    return UnifiedConfig.from_dict(data)


def load_config(path: Path | None = None) -> LoadedConfig:
    """Load and validate the unified config.

    ABOUTME: Defaults to ~/.uac/unified.config.yaml (UAC_HOME aware)
    ABOUTME: Fail-fast: no partially valid config is ever returned

    Args:
        path: Config file location

    Returns:
        LoadedConfig with the resolved path

    Raises:
        ConfigNotFoundError: If the file doesn't exist
        ConfigInvalidError: If YAML parsing or shape validation fails
    """
    target = path or get_default_config_path()
    try:
        content = read_text_if_exists(target)
    except UnicodeDecodeError as e:
        raise ConfigInvalidError([f"Invalid UTF-8: {e}"], target) from e
    if content is None:
        raise ConfigNotFoundError(target)
    return LoadedConfig(path=target, config=parse_config_text(content, target))


def dump_config(config: UnifiedConfig) -> str:
    return yaml.safe_dump(config.to_dict(), sort_keys=False, allow_unicode=True)


def save_config(path: Path, config: UnifiedConfig) -> None:
    """Validate, then write the config as YAML atomically.

    Raises:
        ConfigInvalidError: If the config would not load back
    """
    data = config.to_dict()
    errors = validate_config_shape(data)
    if errors:
        raise ConfigInvalidError(errors, path)
    write_text_atomic(path, dump_config(config))


def sample_config() -> UnifiedConfig:
    """Starter config written by `uac init`."""
    data: dict[str, Any] = {
        "version": "1",
        "mcp": {
            "servers": {
                "filesystem-mcp": {
                    "transport": "stdio",
                    "command": "npx",
                    "args": ["-y", "@modelcontextprotocol/server-filesystem", "~/projects"],
                    "enabledIn": {"codex": True, "gemini": False, "claude": True},
                },
                "router-sse": {
                    "transport": "sse",
                    "url": "http://localhost:3282/mcp/sse",
                    "headers": {"Authorization": "env://MCP_ROUTER_TOKEN"},
                    "enabledIn": {"codex": True, "gemini": True, "claude": True},
                },
            }
        },
        "skills": {
            "items": {
                "codex-style": {
                    "content": "# codex-style\n\nPrefer concise and direct engineering language.\n",
                    "enabledIn": {"codex": True, "gemini": False, "claude": True},
                },
                "security-checklist": {
                    "content": (
                        "# security-checklist\n\n"
                        "- Validate untrusted input\n"
                        "- Avoid plaintext secrets in logs\n"
                    ),
                },
            }
        },
        "targets": {
            "codex": {
                "enabled": True,
                "allow": ["filesystem-mcp", "router-sse"],
                "allowSkills": ["codex-style", "security-checklist"],
            },
            "gemini": {
                "enabled": True,
                "allow": ["router-sse"],
                "allowSkills": ["security-checklist"],
            },
            "claude": {"enabled": True},
        },
    }
    return UnifiedConfig.from_dict(data)


def init_config(path: Path | None = None, force: bool = False) -> Path:
    """Write the sample config.

    Raises:
        ConfigExistsError: If the file exists and force is False
    """
    target = path or get_default_config_path()
    if target.exists() and not force:
        raise ConfigExistsError(target)
    save_config(target, sample_config())
    return target
