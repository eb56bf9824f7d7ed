from __future__ import annotations

import argparse

from ..core import *  # noqa: F401,F403


def apply_context_overrides(config: SyncConfig, args: argparse.Namespace) -> BuildContext:
    context = config.context
    target = getattr(args, "target", None)
    defines = getattr(args, "define", None)
    include_tests = getattr(args, "include_tests", None)
    building_for_editor = getattr(args, "building_for_editor", None)
    if target is None and not defines and include_tests is None and building_for_editor is None:
        return context

    target_platform = config.catalog.from_name(target) if target else context.target
    if building_for_editor is None:
        building_for_editor = context.building_for_editor if target is None else target_platform == config.catalog.editor
    return BuildContext(
        target=target_platform,
        building_for_editor=bool(building_for_editor),
        include_test_assemblies=context.include_test_assemblies if include_tests is None else bool(include_tests),
        defines=frozenset(defines) if defines else context.defines,
    )


def build_synchronizer(args: argparse.Namespace) -> tuple[Path, SyncConfig, SolutionSynchronizer]:
    repo_root = Path(args.repo_root).resolve()
    config = load_sync_config(Path(args.config).resolve(), repo_root)
    if config.units_manifest is None:
        raise SlnSyncError("Config is missing required path: 'inputs.units_manifest'.")

    settings = config.settings
    descriptors = load_assembly_definitions(
        settings.project_dir,
        config.assembly_definitions,
        catalog=config.catalog,
        untestable_roots=settings.untestable_roots,
    )
    provider = ManifestAssemblyNameProvider.from_manifest(
        config.units_manifest,
        project_dir=settings.project_dir,
        descriptors=descriptors.values(),
    )
    synchronizer = SolutionSynchronizer(
        settings,
        apply_context_overrides(config, args),
        provider,
        descriptors=descriptors,
    )
    return repo_root, config, synchronizer


def print_warnings(warnings: list[str]) -> None:
    if not warnings:
        return
    print("Warnings:")
    for item in warnings:
        print(f"  - {item}")


def print_write_results(
    results: list[WriteResult],
    repo_root: Path,
    print_diff: bool,
    diff_format: str = "first",
) -> None:
    for item in results:
        label = to_repo_relative(item.path, repo_root)
        print(f"[{label}] {item.status}")
        if not print_diff:
            continue
        if diff_format == "unified":
            if item.diff:
                print(item.diff)
        elif item.difference is not None:
            print(item.difference.format(label))
