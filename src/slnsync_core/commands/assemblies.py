from __future__ import annotations

import argparse

from ..core import *  # noqa: F401,F403
from .common import apply_context_overrides


def resolve_catalog_and_context(args: argparse.Namespace) -> tuple[PlatformCatalog, BuildContext | None]:
    if getattr(args, "config", None):
        repo_root = Path(args.repo_root).resolve()
        config = load_sync_config(Path(args.config).resolve(), repo_root)
        return config.catalog, apply_context_overrides(config, args)
    return DEFAULT_CATALOG, None


def command_check_compat(args: argparse.Namespace) -> int:
    catalog, context = resolve_catalog_and_context(args)
    if context is None:
        target = args.target or catalog.editor.name
        building_for_editor = args.building_for_editor
        if building_for_editor is None:
            building_for_editor = target.lower() == catalog.editor.name.lower()
        context = BuildContext.create(
            target=target,
            building_for_editor=building_for_editor,
            include_test_assemblies=bool(args.include_tests),
            defines=args.define or [],
            catalog=catalog,
        )

    repo_root = Path(args.repo_root).resolve()
    as_json = bool(getattr(args, "json", False))
    incompatible = 0
    results: list[dict[str, Any]] = []
    for raw_path in args.asmdef:
        path = ensure_relative_path(repo_root, raw_path).resolve()
        descriptor = load_assembly_definition(path, project_dir=repo_root, catalog=catalog)
        compatible = is_compatible(descriptor, context)
        if not compatible:
            incompatible += 1
        if as_json:
            results.append({"assembly": descriptor.as_dict(), "compatible": compatible})
            continue
        state = "compatible" if compatible else "incompatible"
        print(f"[{descriptor.name}] {state} (target={context.target.name} editor={context.building_for_editor})")

    if as_json:
        print(json.dumps({
            "context": {
                "target": context.target.name,
                "building_for_editor": context.building_for_editor,
                "include_test_assemblies": context.include_test_assemblies,
                "defines": sorted(context.defines),
            },
            "assemblies": results,
        }, indent=2))

    if args.fail_on_incompatible and incompatible:
        return 1
    return 0



def command_list_platforms(args: argparse.Namespace) -> int:
    catalog, _ = resolve_catalog_and_context(args)
    if args.json:
        print(json.dumps({
            "platforms": [platform.as_dict() for platform in catalog.platforms],
            "deprecated": sorted(catalog.deprecated),
        }, indent=2))
        return 0

    for platform in catalog.platforms:
        print(f"{platform.name} ({platform.build_target})")
    if catalog.deprecated:
        print(f"Deprecated (ignored): {', '.join(sorted(catalog.deprecated))}")
    return 0



def command_guid(args: argparse.Namespace) -> int:
    if args.source_extension:
        print(guid_for_solution(args.project_name, args.source_extension))
        return 0
    if not args.assembly:
        raise SlnSyncError("guid requires --assembly or --source-extension.")
    print(guid_for_project(args.project_name, file_name_without_extension(args.assembly)))
    return 0
