# Sync orchestration for uac: snapshot, apply, rollback
import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from uac.errors import SkillsManifestError, SnapshotNotFoundError
from uac.planner import AgentPlan
from uac.skills import (
    build_manifest,
    format_manifest,
    manifest_entries,
    manifest_path,
    parse_manifest,
)
from uac.utils.backup import META_FILENAME, allocate_snapshot_dir, read_snapshot_meta
from uac.utils.fs import (
    copy_if_exists,
    remove_if_exists,
    write_bytes_atomic,
    write_text_atomic,
)

logger = logging.getLogger(__name__)

SKILLS_BACKUP_DIRNAME = "skills"
SKILLS_BACKUP_MANIFEST = "manifest.json"


@dataclass
class AppliedAgent:
    """Outcome of one agent in a sync, persisted in meta.json.

    ABOUTME: Backup paths are None when nothing existed to back up
    """
    agent: str
    mcp_path: str
    mcp_changed: bool
    mcp_backup_path: str | None
    mcp_existed_before: bool
    skills_dir: str
    skills_changed: bool
    skills_backup_dir: str | None
    skills_manifest_existed_before: bool

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppliedAgent":
        return cls(
            agent=data["agent"],
            mcp_path=data["mcp_path"],
            mcp_changed=bool(data.get("mcp_changed")),
            mcp_backup_path=data.get("mcp_backup_path"),
            mcp_existed_before=bool(data.get("mcp_existed_before")),
            skills_dir=data["skills_dir"],
            skills_changed=bool(data.get("skills_changed")),
            skills_backup_dir=data.get("skills_backup_dir"),
            skills_manifest_existed_before=bool(data.get("skills_manifest_existed_before")),
        )

    @property
    def changed(self) -> bool:
        return self.mcp_changed or self.skills_changed


@dataclass
class SyncResult:
    snapshot_id: str
    snapshot_dir: Path
    applied: list[AppliedAgent] = field(default_factory=list)


@dataclass
class RollbackOutcome:
    agent: str
    ok: bool
    error: str | None = None


@dataclass
class RollbackReport:
    """Per-agent rollback results.

    ABOUTME: Rollback continues past a failing agent and reports it here
    """
    snapshot_id: str
    outcomes: list[RollbackOutcome] = field(default_factory=list)

    @property
    def restored(self) -> list[str]:
        return [o.agent for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[RollbackOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def ok(self) -> bool:
        return not self.failed


def _backup_native_file(plan: AgentPlan, snapshot_dir: Path) -> Path | None:
    backup_path = snapshot_dir / f"{plan.agent}{plan.path.suffix or '.bak'}"
    if copy_if_exists(plan.path, backup_path):
        logger.debug(f"Backed up {plan.path} to {backup_path}")
        return backup_path
    return None


def _backup_skills_state(plan: AgentPlan, snapshot_dir: Path) -> Path:
    """Copy the manifest and every currently managed file into the snapshot.

    ABOUTME: Layout: <snapshot>/skills/<agent>/manifest.json + <fileName>...
    """
    backup_dir = snapshot_dir / SKILLS_BACKUP_DIRNAME / plan.agent
    backup_dir.mkdir(parents=True, exist_ok=True)

    copy_if_exists(manifest_path(plan.skills_dir), backup_dir / SKILLS_BACKUP_MANIFEST)

    for skill in plan.current_skills.values():
        copy_if_exists(plan.skills_dir / skill.file_name, backup_dir / skill.file_name)

    logger.debug(f"Backed up managed skills of {plan.agent} to {backup_dir}")
    return backup_dir


def _apply_servers(plan: AgentPlan) -> None:
    next_data = plan.adapter.with_servers(plan.current_data, plan.desired_servers)
    write_text_atomic(plan.path, plan.adapter.format(next_data))
    logger.info(f"Wrote {plan.path}")


def _apply_skills(plan: AgentPlan) -> None:
    """Bring a managed skills directory to the desired state.

    ABOUTME: Order: delete undesired managed files, write content, write manifest last
    """
    plan.skills_dir.mkdir(parents=True, exist_ok=True)
    desired_names = {skill.file_name for skill in plan.desired_skills.values()}

    for skill_id, current in plan.current_skills.items():
        if skill_id in plan.desired_skills or current.file_name in desired_names:
            continue
        if remove_if_exists(plan.skills_dir / current.file_name):
            logger.info(f"Removed managed skill {plan.skills_dir / current.file_name}")

    for skill_id in sorted(plan.desired_skills):
        desired = plan.desired_skills[skill_id]
        write_text_atomic(plan.skills_dir / desired.file_name, desired.content)

    write_text_atomic(
        manifest_path(plan.skills_dir),
        format_manifest(build_manifest(plan.desired_skills)),
    )
    logger.info(f"Wrote {len(plan.desired_skills)} managed skill(s) to {plan.skills_dir}")


def apply_plan(plans: list[AgentPlan], snapshot_root: Path | None = None) -> SyncResult:
    """Snapshot affected files, then apply every plan.

    ABOUTME: Sequential over agents; a failure leaves a snapshot without meta.json,
    ABOUTME: which is never offered for rollback
    ABOUTME: meta.json is written last, atomically: it is the commit marker

    Args:
        plans: Output of build_plan(resolve_secrets=True)
        snapshot_root: Override of ~/.uac/snapshots

    Returns:
        SyncResult with the snapshot id and per-agent outcomes
    """
    snapshot_id, snapshot_dir = allocate_snapshot_dir(snapshot_root)
    applied: list[AppliedAgent] = []

    # Every backup is taken before the first write: agents may share a skills dir
    for plan in plans:
        mcp_backup = _backup_native_file(plan, snapshot_dir) if plan.mcp_changed else None
        skills_backup = _backup_skills_state(plan, snapshot_dir) if plan.skills_changed else None
        if not plan.has_changes:
            logger.debug(f"{plan.agent}: no changes")

        applied.append(
            AppliedAgent(
                agent=plan.agent,
                mcp_path=str(plan.path),
                mcp_changed=plan.mcp_changed,
                mcp_backup_path=str(mcp_backup) if mcp_backup else None,
                mcp_existed_before=plan.file_exists,
                skills_dir=str(plan.skills_dir),
                skills_changed=plan.skills_changed,
                skills_backup_dir=str(skills_backup) if skills_backup else None,
                skills_manifest_existed_before=plan.skills_manifest_exists,
            )
        )

    for plan in plans:
        if plan.mcp_changed:
            _apply_servers(plan)

    # Plans sharing a skills dir carry the same desired set; write it once
    written_dirs: set[Path] = set()
    for plan in plans:
        if plan.skills_changed and plan.skills_dir not in written_dirs:
            _apply_skills(plan)
            written_dirs.add(plan.skills_dir)

    meta = {
        "snapshotId": snapshot_id,
        "createdAt": datetime.now(timezone.utc).isoformat(),
        "applied": [asdict(item) for item in applied],
    }
    write_text_atomic(snapshot_dir / META_FILENAME, json.dumps(meta, indent=2) + "\n")
    logger.info(f"Snapshot {snapshot_id} committed")

    return SyncResult(snapshot_id=snapshot_id, snapshot_dir=snapshot_dir, applied=applied)


def _restore_mcp(item: AppliedAgent) -> None:
    if not item.mcp_changed:
        return

    target = Path(item.mcp_path)
    if item.mcp_backup_path:
        # A recorded but unreadable backup is an error, not a "did not exist"
        write_bytes_atomic(target, Path(item.mcp_backup_path).read_bytes())
        logger.info(f"Restored {target}")
        return

    if not item.mcp_existed_before and remove_if_exists(target):
        logger.info(f"Removed {target} (did not exist before sync)")


def _clear_current_managed_skills(skills_dir: Path) -> None:
    """Delete every file listed in the current manifest.

    ABOUTME: Uses the current manifest, so files added by the sync are removed too
    """
    try:
        manifest = parse_manifest(manifest_path(skills_dir))
    except SkillsManifestError as e:
        logger.warning(f"Ignoring unreadable manifest during rollback: {e}")
        return
    if manifest is None:
        return
    for _skill_id, file_name in manifest_entries(manifest):
        remove_if_exists(skills_dir / file_name)


def _restore_skills(item: AppliedAgent) -> None:
    if not item.skills_changed:
        return

    skills_dir = Path(item.skills_dir)
    _clear_current_managed_skills(skills_dir)

    backup_dir = Path(item.skills_backup_dir) if item.skills_backup_dir else None
    backup_manifest = None
    if backup_dir is not None:
        backup_manifest = parse_manifest(backup_dir / SKILLS_BACKUP_MANIFEST)

    if backup_dir is not None and backup_manifest is not None:
        skills_dir.mkdir(parents=True, exist_ok=True)
        for _skill_id, file_name in manifest_entries(backup_manifest):
            backup_file = backup_dir / file_name
            if backup_file.is_file():
                write_bytes_atomic(skills_dir / file_name, backup_file.read_bytes())
        raw = (backup_dir / SKILLS_BACKUP_MANIFEST).read_bytes()
        write_bytes_atomic(manifest_path(skills_dir), raw)
        logger.info(f"Restored managed skills in {skills_dir}")
        return

    if not item.skills_manifest_existed_before:
        remove_if_exists(manifest_path(skills_dir))
        logger.info(f"Removed skills manifest in {skills_dir} (did not exist before sync)")


def rollback_snapshot(
    snapshot_id: str,
    agents: list[str] | None = None,
    snapshot_root: Path | None = None,
) -> RollbackReport:
    """Restore files captured by a committed snapshot.

    ABOUTME: Agents are restored independently; a failure on one is recorded and
    ABOUTME: the remaining agents are still attempted
    ABOUTME: The snapshot itself is only read, never modified

    Args:
        snapshot_id: Id printed by sync
        agents: Restrict to these agents (all recorded agents when None)
        snapshot_root: Override of ~/.uac/snapshots

    Returns:
        RollbackReport with one outcome per targeted agent

    Raises:
        SnapshotNotFoundError: If the snapshot is unknown or incomplete
    """
    meta = read_snapshot_meta(snapshot_id, snapshot_root)
    try:
        entries = [AppliedAgent.from_dict(raw) for raw in meta["applied"]]
    except (KeyError, TypeError) as e:
        raise SnapshotNotFoundError(snapshot_id) from e

    selected = set(agents) if agents else None
    report = RollbackReport(snapshot_id=snapshot_id)

    for item in entries:
        if selected is not None and item.agent not in selected:
            continue
        try:
            _restore_mcp(item)
            _restore_skills(item)
        except (OSError, ValueError) as e:
            logger.warning(f"Rollback of {item.agent} failed: {e}")
            report.outcomes.append(RollbackOutcome(agent=item.agent, ok=False, error=str(e)))
            continue
        report.outcomes.append(RollbackOutcome(agent=item.agent, ok=True))

    return report
