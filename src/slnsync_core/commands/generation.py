from __future__ import annotations

import argparse

from ..core import *  # noqa: F401,F403
from .common import build_synchronizer, print_warnings, print_write_results


def command_generate(args: argparse.Namespace) -> int:
    repo_root, config, synchronizer = build_synchronizer(args)
    report = synchronizer.sync(check=bool(args.check), dry_run=bool(args.dry_run))

    name = config.settings.project_name
    print(f"[{name}] generate: projects={len(report.build.projects)} excluded={len(report.build.excluded)}")
    if args.verbose:
        for unit_name, reason in sorted(report.build.excluded.items()):
            print(f"  excluded {unit_name}: {reason}")
    print_write_results(report.writes, repo_root, bool(args.print_diff), getattr(args, "diff_format", "first"))
    print_warnings(report.warnings)

    if args.report_json:
        write_json(Path(args.report_json).resolve(), report.as_dict(repo_root))

    if report.has_failures:
        return 1
    if args.check and report.has_drift:
        return 1
    return 0



def command_sync_if_needed(args: argparse.Namespace) -> int:
    repo_root, config, synchronizer = build_synchronizer(args)
    name = config.settings.project_name

    if not synchronizer.sync_if_needed(args.changed or [], args.reimported or []):
        if not synchronizer.solution_exists():
            print(f"[{name}] sync: skipped (no solution generated yet, run 'generate' first)")
        else:
            print(f"[{name}] sync: skipped (no relevant changes)")
        return 0

    report = synchronizer.last_report
    print(f"[{name}] sync: regenerated")
    if report is not None:
        print_write_results(report.writes, repo_root, bool(args.print_diff), getattr(args, "diff_format", "first"))
        print_warnings(report.warnings)
        if report.has_failures:
            return 1
    return 0
