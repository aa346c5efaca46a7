"""Command line entry point for snipsync."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
import sys
from typing import Any, List, Optional, Tuple

from .configuration import ConfigurationBundle, load_runtime_configuration
from .logging_utils import setup_logging
from .rendering import render_comparisons, render_report, render_resolution, render_rich, render_status
from .stores import GitHubSettings, GitHubStore, SnippetDirectory
from .sync import ConflictStrategy, HashVariant, IncrementalSyncEngine, RemoteStoreError, SyncSettings

logger = logging.getLogger("snipsync.cli")

EXIT_OK = 0
EXIT_SYNC_FAILED = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snipsync",
        description="Synchronize CSS snippets with a GitHub repository.",
    )
    parser.add_argument("--workspace", type=Path, help="Workspace directory (default: $SNIPSYNC_HOME).")
    parser.add_argument("--log-level", help="Override logging.level for this run.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Echo log records to stderr.")
    parser.add_argument("--json", action="store_true", help="Print machine-readable JSON instead of tables.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Show local and remote snippet counts.")

    diff = subparsers.add_parser("diff", help="Compare local snippets with the remote copies.")
    diff.add_argument("--secure", action="store_true", help="Use the three-part fingerprint.")

    push = subparsers.add_parser("push", help="Upload new and changed snippets.")
    push.add_argument("names", nargs="*", help="Only sync these snippets.")
    push.add_argument("--force", action="store_true", help="Overwrite remote copies that differ.")
    push.add_argument("--secure", action="store_true", help="Use the three-part fingerprint.")

    pull = subparsers.add_parser("pull", help="Download remote snippets.")
    pull.add_argument("names", nargs="*", help="Only sync these snippets.")
    pull.add_argument("--force", action="store_true", help="Overwrite local snippets that differ.")

    both = subparsers.add_parser("sync", help="Pull, then push.")
    both.add_argument("--force", action="store_true", help="Overwrite differing copies on both sides.")

    resolve = subparsers.add_parser("resolve", help="Settle a conflict for one snippet.")
    resolve.add_argument("name")
    resolve.add_argument("--keep", choices=["local", "remote"], required=True)

    verify = subparsers.add_parser("verify", help="Check that content survives an upload/download round trip.")
    verify.add_argument("--content", default="/* snipsync round-trip probe */\r\nbody { color: red; }\n")

    return parser


def open_remote(bundle: ConfigurationBundle) -> GitHubStore:
    """Build the GitHub store described by the configuration."""
    settings = GitHubSettings.from_config(bundle.merged)
    if not settings.repo:
        raise RemoteStoreError("No repository configured. Set github.repo in the workspace config.")
    extension = bundle.merged.get("snippets", {}).get("extension", ".css")
    return GitHubStore.from_settings(settings, extension=extension)


async def run_command(args: argparse.Namespace, bundle: ConfigurationBundle) -> Tuple[str, bool]:
    """Execute one subcommand; returns rendered output and a success flag."""
    settings = SyncSettings.from_config(bundle.merged)
    local = SnippetDirectory(bundle.snippets_dir(), settings.extension)

    async with open_remote(bundle) as remote:
        engine = IncrementalSyncEngine(local, remote, settings)
        return await _dispatch(args, engine, settings, bundle)


async def _dispatch(
    args: argparse.Namespace,
    engine: IncrementalSyncEngine,
    settings: SyncSettings,
    bundle: ConfigurationBundle,
) -> Tuple[str, bool]:
    styles = sys.stdout.isatty()
    as_json = getattr(args, "json", False)
    variant = HashVariant.SECURE.value if getattr(args, "secure", False) else None

    if args.command == "status":
        status = await engine.get_status()
        if as_json:
            return _dumps(status), True
        repo = bundle.merged.get("github", {}).get("repo", "")
        return render_status(status, repo=repo, styles=styles), True

    if args.command == "diff":
        records = await engine.get_comparison_report(variant)
        if as_json:
            return _dumps([record.to_dict() for record in records]), True
        return render_comparisons(records, styles=styles), True

    if args.command in ("push", "pull", "sync"):
        if args.command == "push":
            options = settings.options(args.names, force_overwrite=args.force or None, hash_variant=variant)
            report = await engine.sync_to_remote(options)
        elif args.command == "pull":
            options = settings.options(args.names, force_overwrite=args.force or None)
            report = await engine.sync_from_remote(options)
        else:
            options = settings.options(force_overwrite=args.force or None)
            report = await engine.sync_bidirectional(options)
        if as_json:
            return _dumps(report.to_dict()), report.success
        return render_report(report, title=args.command.capitalize(), styles=styles), report.success

    if args.command == "resolve":
        strategy = ConflictStrategy.KEEP_LOCAL if args.keep == "local" else ConflictStrategy.KEEP_REMOTE
        resolution = await engine.resolve_conflict(args.name, strategy)
        return render_resolution(resolution, styles=styles), resolution.applied

    if args.command == "verify":
        outcome = await engine.verify_round_trip(args.content)
        if as_json:
            return _dumps(outcome), outcome["consistent"]
        verdict = "consistent" if outcome["consistent"] else "INCONSISTENT"

        def _render(console) -> None:
            console.print(
                f"Round trip {verdict}: {outcome['original']} -> {outcome['downloaded'] or '-'}"
            )

        return render_rich(_render, styles=styles), outcome["consistent"]

    return f"[snipsync] Unknown command '{args.command}'.", False


def _dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, sort_keys=True)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    bundle = load_runtime_configuration(args.workspace)
    if bundle.status != "ready":
        for diag in bundle.errors:
            print(f"[config] {diag.message}", file=sys.stderr)
        return EXIT_CONFIG

    logging_config = bundle.merged.get("logging", {})
    bundle.log_path = setup_logging(
        bundle.workspace_dir,
        level=args.log_level or logging_config.get("level", "INFO"),
        structured=bool(logging_config.get("structured", True)),
        console=args.verbose,
    )

    try:
        output, ok = asyncio.run(run_command(args, bundle))
    except (RemoteStoreError, ValueError) as e:
        logger.error("%s failed: %s", args.command, e)
        print(f"[snipsync] {args.command} failed: {e}", file=sys.stderr)
        return EXIT_SYNC_FAILED

    print(output)
    return EXIT_OK if ok else EXIT_SYNC_FAILED


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
