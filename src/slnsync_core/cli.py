from __future__ import annotations

import argparse
import sys

from .core import SlnSyncError
from .commands import (
    command_check_compat,
    command_generate,
    command_guid,
    command_list_platforms,
    command_sync_if_needed,
)


def add_context_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--target", help="Override the build target platform name (e.g. Editor, Android).")
    parser.add_argument(
        "--building-for-editor",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Override whether the pass builds for the editor (default: target is Editor).",
    )
    parser.add_argument(
        "--include-tests",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Override whether test-only assemblies are included.",
    )
    parser.add_argument("--define", action="append", help="Active define symbol (repeatable, replaces config defines).")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slnsync",
        description="Generate IDE solution and project files from compiled script assemblies.",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    generate = sub.add_parser("generate", help="Regenerate the solution and all project files.")
    generate.add_argument(
        "--repo-root",
        default=".",
        help="Repository root used to resolve relative paths (default: current directory).",
    )
    generate.add_argument("--config", required=True, help="Path to synchronizer config JSON.")
    add_context_arguments(generate)
    generate.add_argument("--dry-run", action="store_true", help="Report what would change without writing files.")
    generate.add_argument("--check", action="store_true", help="Fail when generated files are out of date.")
    generate.add_argument("--print-diff", action="store_true", help="Print a diff for each changed file.")
    generate.add_argument(
        "--diff-format",
        choices=("first", "unified"),
        default="first",
        help="Diff printed by --print-diff: first-difference report or unified diff (default: first).",
    )
    generate.add_argument("--verbose", action="store_true", help="List excluded units with the reason.")
    generate.add_argument("--report-json", help="Write generation report JSON to path.")
    generate.set_defaults(func=command_generate)

    sync_if_needed = sub.add_parser(
        "sync-if-needed",
        help="Regenerate only when a solution exists and a changed or reimported file is relevant.",
    )
    sync_if_needed.add_argument(
        "--repo-root",
        default=".",
        help="Repository root used to resolve relative paths (default: current directory).",
    )
    sync_if_needed.add_argument("--config", required=True, help="Path to synchronizer config JSON.")
    add_context_arguments(sync_if_needed)
    sync_if_needed.add_argument("--changed", action="append", help="Changed asset path (repeatable).")
    sync_if_needed.add_argument("--reimported", action="append", help="Reimported asset path (repeatable).")
    sync_if_needed.add_argument("--print-diff", action="store_true", help="Print a diff for each changed file.")
    sync_if_needed.add_argument(
        "--diff-format",
        choices=("first", "unified"),
        default="first",
        help="Diff printed by --print-diff: first-difference report or unified diff (default: first).",
    )
    sync_if_needed.set_defaults(func=command_sync_if_needed)

    check_compat = sub.add_parser("check-compat", help="Evaluate assembly definitions against a build context.")
    check_compat.add_argument("--repo-root", default=".", help="Repository root for relative path resolution.")
    check_compat.add_argument("--config", help="Optional synchronizer config JSON providing catalog and context.")
    check_compat.add_argument("--asmdef", action="append", required=True, help="Assembly definition path (repeatable).")
    add_context_arguments(check_compat)
    check_compat.add_argument(
        "--fail-on-incompatible",
        action="store_true",
        help="Return exit code 1 when any assembly is incompatible.",
    )
    check_compat.add_argument("--json", action="store_true", help="Print descriptors and results as JSON.")
    check_compat.set_defaults(func=command_check_compat)

    list_platforms = sub.add_parser("list-platforms", help="List platform names accepted by assembly definitions.")
    list_platforms.add_argument("--repo-root", default=".", help="Repository root for relative path resolution.")
    list_platforms.add_argument("--config", help="Optional synchronizer config JSON with a platform catalog override.")
    list_platforms.add_argument("--json", action="store_true", help="Print the catalog as JSON.")
    list_platforms.set_defaults(func=command_list_platforms)

    guid = sub.add_parser("guid", help="Print the stable identifier of a project or solution entry.")
    guid.add_argument("--project-name", required=True, help="Root project name the identifiers are derived from.")
    guid.add_argument("--assembly", help="Assembly name or output file name.")
    guid.add_argument("--source-extension", help="Print the solution type identifier for this source extension.")
    guid.set_defaults(func=command_guid)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        return int(args.func(args))
    except SlnSyncError as exc:
        print(f"slnsync error: {exc}", file=sys.stderr)
        return 2



if __name__ == "__main__":
    raise SystemExit(main())
