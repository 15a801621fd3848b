# Managed skills: desired materialization and on-disk manifest state
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from uac.errors import ConfigInvalidError, SkillsManifestError, SourceNotFoundError
from uac.models import SkillMaterialized, SkillSpec, TargetPolicy, UnifiedConfig
from uac.paths import SKILLS_MANIFEST_FILENAME, expand_user_path
from uac.policy import skill_enabled_for_agent
from uac.utils.fs import read_text_if_exists

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = SKILLS_MANIFEST_FILENAME
MANIFEST_VERSION = 1
MANAGED_DIRNAME = "uac-managed"


def empty_manifest() -> dict[str, Any]:
    return {"version": MANIFEST_VERSION, "items": []}


@dataclass
class ManagedSkillsState:
    """What uac currently manages inside one skills directory.

    ABOUTME: The manifest decides which files are managed; other files are left alone
    """
    manifest_exists: bool
    manifest: dict[str, Any] = field(default_factory=empty_manifest)
    skills_by_id: dict[str, SkillMaterialized] = field(default_factory=dict)


def default_skills_dir(agent: str) -> Path:
    """Default managed skills directory for an agent.

    ABOUTME: codex and gemini have their own trees; every other agent shares ~/.claude
    """
    if agent == "codex":
        return Path.home() / ".codex" / "skills" / MANAGED_DIRNAME
    if agent == "gemini":
        return Path.home() / ".gemini" / "skills" / MANAGED_DIRNAME
    return Path.home() / ".claude" / "skills" / MANAGED_DIRNAME


def resolve_skills_dir(agent: str, policy: TargetPolicy) -> Path:
    if policy.skills_output_dir:
        return expand_user_path(policy.skills_output_dir)
    return default_skills_dir(agent)


def manifest_path(skills_dir: Path) -> Path:
    return skills_dir / MANIFEST_FILENAME


def parse_manifest(path: Path) -> dict[str, Any] | None:
    """Read a manifest file; None when absent or blank.

    Raises:
        SkillsManifestError: If the file isn't valid JSON or has the wrong shape
    """
    try:
        raw = read_text_if_exists(path)
    except UnicodeDecodeError as e:
        raise SkillsManifestError(path, f"Invalid UTF-8: {e}") from e
    if raw is None or not raw.strip():
        return None
    try:
        manifest = json.loads(raw)
    except json.JSONDecodeError as e:
        raise SkillsManifestError(path, str(e)) from e
    if not isinstance(manifest, dict) or not isinstance(manifest.get("items", []), list):
        raise SkillsManifestError(path, "expected an object with an 'items' list")
    return manifest


def is_safe_file_name(file_name: str) -> bool:
    """True if file_name names a plain file directly inside the skills dir."""
    return bool(file_name) and file_name not in {".", ".."} and "/" not in file_name and "\\" not in file_name


def manifest_entries(manifest: dict[str, Any]) -> list[tuple[str, str]]:
    """Return (id, fileName) pairs, skipping malformed or escaping entries."""
    entries: list[tuple[str, str]] = []
    for item in manifest.get("items") or []:
        if not isinstance(item, dict):
            continue
        skill_id = item.get("id")
        file_name = item.get("fileName")
        if isinstance(skill_id, str) and isinstance(file_name, str) and is_safe_file_name(file_name):
            entries.append((skill_id, file_name))
    return entries


def build_manifest(skills: dict[str, SkillMaterialized]) -> dict[str, Any]:
    """Manifest for a set of materialized skills, items sorted by id."""
    return {
        "version": MANIFEST_VERSION,
        "items": [
            {"id": skill_id, "fileName": skills[skill_id].file_name}
            for skill_id in sorted(skills)
        ],
    }


def format_manifest(manifest: dict[str, Any]) -> str:
    return json.dumps(manifest, indent=2, ensure_ascii=False) + "\n"


def read_managed_skills(skills_dir: Path) -> ManagedSkillsState:
    """Read the managed skills currently on disk.

    ABOUTME: A listed file that is missing reads as empty content, not an error
    ABOUTME: Undecodable bytes are replaced, so a corrupted managed file shows as changed
    """
    manifest = parse_manifest(manifest_path(skills_dir))
    if manifest is None:
        return ManagedSkillsState(manifest_exists=False)

    skills_by_id: dict[str, SkillMaterialized] = {}
    for skill_id, file_name in manifest_entries(manifest):
        skill_path = skills_dir / file_name
        content = skill_path.read_bytes().decode("utf-8", errors="replace") if skill_path.is_file() else None
        if content is None:
            logger.debug(f"Managed skill file missing: {skills_dir / file_name}")
        skills_by_id[skill_id] = SkillMaterialized(file_name=file_name, content=content or "")

    return ManagedSkillsState(manifest_exists=True, manifest=manifest, skills_by_id=skills_by_id)


def load_skill_content(skill_id: str, skill: SkillSpec, config_dir: Path) -> str:
    """Resolve a skill's text.

    ABOUTME: Inline content wins; otherwise sourcePath relative to the config dir

    Raises:
        SourceNotFoundError: If the source file doesn't exist
        ConfigInvalidError: If the source file isn't UTF-8
        ValueError: If the skill has neither content nor sourcePath
    """
    if skill.content is not None:
        return skill.content
    if not skill.source_path:
        raise ValueError(f'Skill "{skill_id}" requires either "content" or "sourcePath".')

    source = expand_user_path(skill.source_path)
    if not source.is_absolute():
        source = config_dir / source
    if not source.is_file():
        raise SourceNotFoundError(skill_id, source)
    try:
        return read_text_if_exists(source) or ""
    except UnicodeDecodeError as e:
        raise ConfigInvalidError([f"skills.items.{skill_id}.sourcePath: {source} is not valid UTF-8 ({e})"]) from e


def build_desired_skills(
    config: UnifiedConfig,
    agent: str,
    policy: TargetPolicy,
    config_dir: Path,
) -> dict[str, SkillMaterialized]:
    """Materialize every skill enabled for the agent."""
    result: dict[str, SkillMaterialized] = {}
    for skill_id, skill in config.skills.items():
        if not skill_enabled_for_agent(skill_id, skill, agent, policy):
            continue
        result[skill_id] = SkillMaterialized(
            file_name=skill.target_file_name(skill_id),
            content=load_skill_content(skill_id, skill, config_dir),
        )
    return result
