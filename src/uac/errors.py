# Error taxonomy for uac
# ABOUTME: Every failure raised by the planning/sync core derives from UacError
# ABOUTME: Builtin bases (ValueError, FileNotFoundError) kept where callers expect them
from pathlib import Path


class UacError(Exception):
    """Base exception for all uac errors."""


class UnknownAgentError(UacError, ValueError):
    """Raised when an agent name is not one of the supported agents."""

    def __init__(self, agent: str, allowed: tuple[str, ...]) -> None:
        self.agent = agent
        super().__init__(f'Invalid agent "{agent}". Allowed: {", ".join(allowed)}')


class ConfigNotFoundError(UacError, FileNotFoundError):
    """Raised when the unified config file does not exist."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Config not found: {path}")

    def __str__(self) -> str:
        return f"Config not found: {self.path}"


class ConfigInvalidError(UacError, ValueError):
    """Raised when the unified config cannot be parsed or fails shape validation.

    ABOUTME: Carries the full list of shape errors so callers can print all of them
    """

    def __init__(self, errors: list[str], path: Path | None = None) -> None:
        self.errors = list(errors)
        self.path = path
        location = f" ({path})" if path else ""
        details = "\n- ".join(self.errors)
        super().__init__(f"Config validation failed{location}:\n- {details}")


class SecretError(UacError):
    """Base class for env:// reference resolution failures."""


class MissingSecretError(SecretError):
    """Raised by strict resolution when a referenced variable is unset."""

    def __init__(self, key: str, field_path: str) -> None:
        self.key = key
        self.field_path = field_path
        super().__init__(
            f'Missing environment variable "{key}" referenced at {field_path}.'
        )


class InvalidSecretReferenceError(SecretError, ValueError):
    """Raised for an env:// reference with an empty key."""

    def __init__(self, field_path: str) -> None:
        self.field_path = field_path
        super().__init__(f"Invalid empty env reference at {field_path}.")


class AdapterDialectError(UacError, ValueError):
    """Raised when a native agent file cannot be parsed or a server cannot be translated."""

    def __init__(self, agent: str, message: str, path: Path | None = None) -> None:
        self.agent = agent
        self.path = path
        location = f" ({path})" if path else ""
        super().__init__(f"[{agent}]{location} {message}")


class SourceNotFoundError(UacError, FileNotFoundError):
    """Raised when a skill's sourcePath does not exist."""

    def __init__(self, skill_id: str, path: Path) -> None:
        self.skill_id = skill_id
        self.path = path
        super().__init__(f'Skill "{skill_id}" source file not found: {path}')

    def __str__(self) -> str:
        return f'Skill "{self.skill_id}" source file not found: {self.path}'


class SkillsManifestError(UacError, ValueError):
    """Raised when a managed skills manifest is not valid JSON."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(f"Failed to parse skills manifest ({path}): {message}")


class SnapshotNotFoundError(UacError, LookupError):
    """Raised when a snapshot id is unknown or has no committed meta.json."""

    def __init__(self, snapshot_id: str) -> None:
        self.snapshot_id = snapshot_id
        super().__init__(f"Snapshot not found: {snapshot_id}")


class EditValidationError(UacError, ValueError):
    """Raised when user-supplied edit input is malformed.

    ABOUTME: field_path uses dotted notation, e.g. servers.github.url
    """

    def __init__(self, field_path: str, message: str) -> None:
        self.field_path = field_path
        super().__init__(f"{field_path}: {message}")


class SnippetImportError(UacError, ValueError):
    """Raised when an import snippet cannot be recognised or yields no servers."""


class ConfigExistsError(UacError, FileExistsError):
    """Raised by init when the config file is already there."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Config already exists: {path}\nUse --force to overwrite.")

    def __str__(self) -> str:
        return f"Config already exists: {self.path}\nUse --force to overwrite."
