# CLI interface for uac
import argparse
import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from uac import __version__
from uac.config import init_config, load_config, save_config
from uac.editing import apply_import, remove_server
from uac.errors import (
    ConfigExistsError,
    ConfigInvalidError,
    ConfigNotFoundError,
    EditValidationError,
    SecretError,
    SnapshotNotFoundError,
    SnippetImportError,
    UacError,
    UnknownAgentError,
)
from uac.importers import import_from_mcp_router_json, preview_import_snippet
from uac.models import AGENTS, ServerDiff, parse_agents
from uac.notes import get_note, load_notes, set_note
from uac.paths import get_default_config_path
from uac.planner import AgentPlan, build_plan
from uac.policy import build_matrix
from uac.sync import apply_plan, rollback_snapshot
from uac.utils.backup import list_snapshots, read_snapshot_meta
from uac.utils.env import find_secret_references
from uac.utils.fs import copy_if_exists

# ABOUTME: Exit codes
# 0 = success, 1 = partial success, 2 = config/usage error, 3 = fatal
EXIT_SUCCESS = 0
EXIT_PARTIAL = 1
EXIT_CONFIG_ERROR = 2
EXIT_FATAL = 3

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def _config_path(args: argparse.Namespace) -> Path | None:
    return Path(args.config).expanduser() if args.config else None


def _print_diff_ids(diff: ServerDiff, label: str = "") -> None:
    if diff.added:
        print(f"  {label}Added: {', '.join(diff.added)}")
    if diff.changed:
        print(f"  {label}Changed: {', '.join(diff.changed)}")
    if diff.removed:
        print(f"  {label}Removed: {', '.join(diff.removed)}")


def print_plan_summary(plans: list[AgentPlan]) -> None:
    for plan in plans:
        flag = "CHANGE" if plan.mcp_changed else "NO-CHANGE"
        print()
        print(f"[{plan.agent}] {flag}")
        print(f"Path: {plan.path}")
        d = plan.diff
        print(f"+{len(d.added)} ~{len(d.changed)} -{len(d.removed)} ={d.unchanged}")
        _print_diff_ids(d)

        s = plan.skills_diff
        print(f"Skills: {'CHANGE' if plan.skills_changed else 'NO-CHANGE'}")
        print(f"Skills Dir: {plan.skills_dir}")
        print(f"  +{len(s.added)} ~{len(s.changed)} -{len(s.removed)} ={s.unchanged}")
        _print_diff_ids(s, "Skills ")


def cmd_init(args: argparse.Namespace) -> int:
    try:
        target = init_config(_config_path(args), force=args.force)
    except ConfigExistsError as e:
        print(f"Error: {e}")
        return EXIT_CONFIG_ERROR
    print(f"Config created at: {target}")
    return EXIT_SUCCESS


def cmd_validate(args: argparse.Namespace) -> int:
    """Execute validate command.

    ABOUTME: Strict shape validation, then a report of env:// variables that are unset
    ABOUTME: Unset variables are warnings only: they fail `sync`, not `validate`
    """
    loaded = load_config(_config_path(args))
    config = loaded.config
    print(f"Config is valid: {loaded.path}")
    print(f"MCP servers: {len(config.servers)}")
    print(f"Skills: {len(config.skills)}")

    unset: dict[str, list[str]] = {}
    for server_id in sorted(config.servers):
        for field_path, key in find_secret_references(server_id, config.servers[server_id]):
            if key not in os.environ:
                unset.setdefault(key, []).append(field_path)

    if unset:
        print()
        print("Environment variables not set:")
        for key in sorted(unset):
            print(f"  ⚠ {key} (referenced at {', '.join(unset[key])})")
    print()
    print(f"Validation complete: 0 error(s), {len(unset)} warning(s)")
    return EXIT_SUCCESS


def cmd_list(args: argparse.Namespace) -> int:
    """Execute list command.

    ABOUTME: Shows every server and skill with the agents it is effectively enabled for
    """
    loaded = load_config(_config_path(args))
    config = loaded.config
    mcp_matrix, skill_matrix = build_matrix(config)
    notes = load_notes()

    print(f"MCP Servers in {loaded.path}:")
    print()
    for server_id, row in mcp_matrix.items():
        server = config.servers[server_id]
        print(f"  {server_id}")
        print(f"    transport: {server.transport}")
        if server.transport == "stdio":
            print(f"    command: {server.command}")
            if server.args:
                print(f"    args: {' '.join(server.args)}")
            if server.env:
                print(f"    env: {', '.join(server.env)}")
        else:
            print(f"    url: {server.url}")
            if server.headers:
                print(f"    headers: {', '.join(server.headers)}")
        enabled = [agent for agent in AGENTS if row[agent]]
        print(f"    agents: {', '.join(enabled) or '(none)'}")
        if notes.get(server_id):
            print(f"    note: {notes[server_id]}")
        print()

    if skill_matrix:
        print("Skills:")
        print()
        for skill_id, row in skill_matrix.items():
            skill = config.skills[skill_id]
            enabled = [agent for agent in AGENTS if row[agent]]
            print(f"  {skill_id} -> {skill.target_file_name(skill_id)}")
            print(f"    agents: {', '.join(enabled) or '(none)'}")
        print()

    print(f"Total: {len(config.servers)} server(s), {len(config.skills)} skill(s)")
    return EXIT_SUCCESS


def cmd_plan(args: argparse.Namespace) -> int:
    loaded = load_config(_config_path(args))
    plans = build_plan(
        loaded.config,
        agents=parse_agents(args.agents),
        config_dir=loaded.config_dir,
        resolve_secrets=False,
    )
    if args.json:
        print(json.dumps([plan.summary() for plan in plans], indent=2))
        return EXIT_SUCCESS
    print_plan_summary(plans)
    return EXIT_SUCCESS


def cmd_sync(args: argparse.Namespace) -> int:
    """Execute sync command.

    ABOUTME: --dry-run plans without resolving secrets and writes nothing
    ABOUTME: A real sync resolves secrets strictly before any file is touched
    """
    loaded = load_config(_config_path(args))
    plans = build_plan(
        loaded.config,
        agents=parse_agents(args.agents),
        config_dir=loaded.config_dir,
        resolve_secrets=not args.dry_run,
    )
    print_plan_summary(plans)
    if args.dry_run:
        return EXIT_SUCCESS

    result = apply_plan(plans)
    print()
    print(f"Snapshot: {result.snapshot_id}")
    print(f"Snapshot dir: {result.snapshot_dir}")
    for item in result.applied:
        if not item.changed:
            print(f"- {item.agent}: skipped (no change)")
            continue
        mcp_text = "mcp=updated" if item.mcp_changed else "mcp=skipped"
        skills_text = "skills=updated" if item.skills_changed else "skills=skipped"
        print(f"- {item.agent}: {mcp_text}, {skills_text}")
        print(f"  mcpPath={item.mcp_path}, mcpBackup={item.mcp_backup_path or 'none'}")
        print(f"  skillsDir={item.skills_dir}, skillsBackup={item.skills_backup_dir or 'none'}")
    return EXIT_SUCCESS


def cmd_rollback(args: argparse.Namespace) -> int:
    report = rollback_snapshot(args.snapshot, agents=parse_agents(args.agents))
    if not report.outcomes:
        print("No matching agents to rollback.")
        return EXIT_SUCCESS

    print(f"Rollback snapshot: {args.snapshot}")
    for outcome in report.outcomes:
        if outcome.ok:
            print(f"- {outcome.agent}: rollback applied")
        else:
            print(f"- {outcome.agent}: rollback FAILED: {outcome.error}")
    return EXIT_SUCCESS if report.ok else EXIT_PARTIAL


def cmd_snapshots(args: argparse.Namespace) -> int:
    if args.limit <= 0:
        print(f'Error: invalid --limit value "{args.limit}".')
        return EXIT_CONFIG_ERROR

    ids = list_snapshots(args.limit)
    if not ids:
        print("No snapshots found.")
        return EXIT_SUCCESS

    for snapshot_id in ids:
        if not args.show_meta:
            print(snapshot_id)
            continue
        try:
            meta = read_snapshot_meta(snapshot_id)
        except SnapshotNotFoundError:
            print(f"{snapshot_id} (meta missing)")
            continue
        agents = ",".join(item.get("agent", "?") for item in meta["applied"])
        print(f"{snapshot_id} | createdAt={meta.get('createdAt')} | agents={agents}")
    return EXIT_SUCCESS


def cmd_import_mcp_router(args: argparse.Namespace) -> int:
    """Execute import-mcp-router command.

    ABOUTME: Writes a fresh unified config; an existing output needs --force
    ABOUTME: and is backed up as <output>.bak-<timestamp> unless --no-backup
    """
    input_path = Path(args.input).expanduser()
    output_path = Path(args.output).expanduser() if args.output else get_default_config_path()

    if not input_path.is_file():
        print(f"Error: Input file not found: {input_path}")
        return EXIT_CONFIG_ERROR

    if output_path.exists():
        if not args.force:
            print(f"Error: Output config already exists: {output_path}")
            print("Use --force to overwrite.")
            return EXIT_CONFIG_ERROR
        if args.backup:
            stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
            backup_path = output_path.with_name(f"{output_path.name}.bak-{stamp}")
            copy_if_exists(output_path, backup_path)
            print(f"Backup created: {backup_path}")

    try:
        document = json.loads(input_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        print(f"Error: Failed to parse JSON input: {e}")
        return EXIT_CONFIG_ERROR

    imported = import_from_mcp_router_json(document)
    save_config(output_path, imported.config)
    print(f"Imported {len(imported.imported_ids)} MCP servers into: {output_path}")
    if imported.skipped_ids:
        print(f"Skipped {len(imported.skipped_ids)}: {', '.join(imported.skipped_ids)}")
    if imported.warnings:
        print("Warnings:")
        for warning in imported.warnings:
            print(f"- {warning}")
    return EXIT_SUCCESS


def cmd_import_preview(args: argparse.Namespace) -> int:
    """Execute import-preview command.

    ABOUTME: Shows what a pasted snippet would import; --apply merges it into the config
    """
    try:
        snippet = Path(args.file).expanduser().read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise SnippetImportError(f"Snippet file is not valid UTF-8: {e}") from e
    loaded = load_config(_config_path(args))
    preview = preview_import_snippet(snippet, args.hint, existing_ids=loaded.config.servers)

    print(f"Detected format: {preview.detected_format}")
    print(f"Servers: {', '.join(sorted(preview.servers))}")
    if preview.conflicts:
        print(f"Conflicts (will be overwritten): {', '.join(preview.conflicts)}")
    for suggestion in preview.env_suggestions:
        print(f"  {suggestion.server_id}.{suggestion.field_path} -> {suggestion.replacement}")
    for warning in preview.warnings:
        if warning.code != "format_detected":
            print(f"Warning [{warning.code}]: {warning.message}")

    if not args.apply:
        return EXIT_SUCCESS

    result = apply_import(loaded.config, dict(preview.servers))
    save_config(loaded.path, result.config)
    print()
    print(f"Imported {len(result.updated_ids)} server(s) into {loaded.path}")
    if result.overwritten_ids:
        print(f"Overwritten: {', '.join(result.overwritten_ids)}")
    if preview.env_suggestions:
        print("Set these environment variables before running sync:")
        for suggestion in preview.env_suggestions:
            print(f"  {suggestion.env_key}")
    return EXIT_SUCCESS


def cmd_remove(args: argparse.Namespace) -> int:
    loaded = load_config(_config_path(args))
    updated = remove_server(loaded.config, args.name)
    save_config(loaded.path, updated)
    print(f"Removed server '{args.name}' from {loaded.path}")
    print("Run 'uac sync' to apply the change to agent configs.")
    return EXIT_SUCCESS


def cmd_notes(args: argparse.Namespace) -> int:
    if args.id is None:
        notes = load_notes()
        if not notes:
            print("No notes.")
        for note_id in sorted(notes):
            print(f"{note_id}: {notes[note_id]}")
        return EXIT_SUCCESS

    if args.text is None:
        print(get_note(args.id) or "(no note)")
        return EXIT_SUCCESS

    set_note(args.id, args.text)
    print(f"Note {'saved' if args.text.strip() else 'deleted'} for '{args.id}'")
    return EXIT_SUCCESS


def run_command(handler: Callable[[argparse.Namespace], int], args: argparse.Namespace) -> int:
    """Run a command handler and map uac errors to exit codes.

    ABOUTME: Config and usage problems exit 2, anything else that fails exits 3
    """
    try:
        return handler(args)
    except ConfigNotFoundError as e:
        print(f"Error: {e}")
        print()
        print("Run 'uac init' or 'uac import-mcp-router' to create one.")
        return EXIT_CONFIG_ERROR
    except ConfigInvalidError as e:
        print(f"Error: {e}")
        return EXIT_CONFIG_ERROR
    except (UnknownAgentError, EditValidationError, SecretError, SnapshotNotFoundError, SnippetImportError) as e:
        print(f"Error: {e}")
        return EXIT_CONFIG_ERROR
    except (UacError, OSError) as e:
        print(f"Fatal error: {e}")
        return EXIT_FATAL


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="uac",
        description="Unified Agent Config: sync MCP servers and skills to AI coding agents",
    )
    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"uac v{__version__}"
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-c", "--config",
        help="Path to unified config file (default: ~/.uac/unified.config.yaml)"
    )
    common.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log file operations"
    )

    agents = argparse.ArgumentParser(add_help=False)
    agents.add_argument(
        "-a", "--agents",
        help=f"Comma-separated agent list ({','.join(AGENTS)})"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    init_parser = subparsers.add_parser("init", parents=[common], help="Create sample unified config file")
    init_parser.add_argument("-f", "--force", action="store_true", help="Overwrite if config already exists")
    init_parser.set_defaults(handler=cmd_init)

    subparsers.add_parser(
        "validate", parents=[common], help="Validate unified config"
    ).set_defaults(handler=cmd_validate)

    subparsers.add_parser(
        "list", parents=[common], help="List servers and skills with their enabled agents"
    ).set_defaults(handler=cmd_list)

    plan_parser = subparsers.add_parser(
        "plan", parents=[common, agents], help="Preview planned sync diff for each agent"
    )
    plan_parser.add_argument("--json", action="store_true", help="Output JSON plan")
    plan_parser.set_defaults(handler=cmd_plan)

    sync_parser = subparsers.add_parser(
        "sync", parents=[common, agents], help="Apply sync to agent configs"
    )
    sync_parser.add_argument("--dry-run", action="store_true", help="Only preview, no file writes")
    sync_parser.set_defaults(handler=cmd_sync)

    rollback_parser = subparsers.add_parser(
        "rollback", parents=[common, agents], help="Rollback files from a snapshot"
    )
    rollback_parser.add_argument("-s", "--snapshot", required=True, help="Snapshot ID from sync output")
    rollback_parser.set_defaults(handler=cmd_rollback)

    snapshots_parser = subparsers.add_parser("snapshots", parents=[common], help="List local snapshots")
    snapshots_parser.add_argument("-n", "--limit", type=int, default=20, help="Max snapshots to list")
    snapshots_parser.add_argument("--show-meta", action="store_true", help="Include basic metadata")
    snapshots_parser.set_defaults(handler=cmd_snapshots)

    router_parser = subparsers.add_parser(
        "import-mcp-router", parents=[common], help="Import mcp-router JSON export into a unified config"
    )
    router_parser.add_argument("-i", "--input", required=True, help="Path to mcp-router JSON export")
    router_parser.add_argument("-o", "--output", help="Output unified config path")
    router_parser.add_argument("-f", "--force", action="store_true", help="Overwrite output config")
    router_parser.add_argument(
        "--no-backup",
        dest="backup",
        action="store_false",
        help="Do not back up an existing output config"
    )
    router_parser.set_defaults(handler=cmd_import_mcp_router)

    preview_parser = subparsers.add_parser(
        "import-preview", parents=[common], help="Preview importing a pasted MCP config snippet"
    )
    preview_parser.add_argument("file", help="File containing the snippet")
    preview_parser.add_argument("--hint", default="auto", help="Snippet format (auto, mcp-router, codex-toml, gemini-json, generic)")
    preview_parser.add_argument("--apply", action="store_true", help="Merge the previewed servers into the config")
    preview_parser.set_defaults(handler=cmd_import_preview)

    remove_parser = subparsers.add_parser("remove", parents=[common], help="Remove an MCP server from config")
    remove_parser.add_argument("name", help="Id of the MCP server to remove")
    remove_parser.set_defaults(handler=cmd_remove)

    notes_parser = subparsers.add_parser("notes", parents=[common], help="Show or set notes for server ids")
    notes_parser.add_argument("id", nargs="?", help="Server id")
    notes_parser.add_argument("text", nargs="?", help="Note text (empty string deletes)")
    notes_parser.set_defaults(handler=cmd_notes)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    ABOUTME: Parses args and dispatches to the command handler
    ABOUTME: Returns exit code for sys.exit()
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return EXIT_SUCCESS

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
    )
    return run_command(handler, args)


if __name__ == "__main__":
    sys.exit(main())
