from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ._core_assembly import BuildContext
from ._core_base import (
    ConfigurationError,
    ensure_relative_path,
    load_json,
    normalize_string_list,
    validate_with_schema,
)
from ._core_platforms import PlatformCatalog, build_platform_catalog
from ._core_references import (
    DEFAULT_BUILD_OUTPUT_ROOT,
    DEFAULT_CORE_RUNTIME_LIBRARIES,
    DEFAULT_EDITOR_ADDITIONAL_REFERENCES,
)

SCRIPT_EDITORS = ("visualstudio", "visualstudioexpress", "vscode", "rider", "monodevelop")
# These editors always get legacy-language units as precompiled assemblies.
PRECOMPILED_ONLY_EDITORS = ("visualstudio", "visualstudioexpress", "vscode")
DEFAULT_ASSEMBLY_DEFINITION_ENTRIES = ("Assets/**/*.asmdef",)
VISUAL_STUDIO_VERSIONS = (9, 10)


@dataclass(frozen=True)
class SyncSettings:
    project_dir: Path
    project_name: str = ""
    script_editor: str = "visualstudio"
    supports_unity_proj: bool = False
    user_extensions: tuple[str, ...] = ()
    root_namespace: str = ""
    visual_studio_version: int = 10
    build_output_root: str = DEFAULT_BUILD_OUTPUT_ROOT
    internal_library_roots: tuple[str, ...] = ()
    editor_additional_references: tuple[str, ...] = DEFAULT_EDITOR_ADDITIONAL_REFERENCES
    core_runtime_libraries: tuple[str, ...] = DEFAULT_CORE_RUNTIME_LIBRARIES
    embedded_packages: tuple[str, ...] = ()
    untestable_roots: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.script_editor not in SCRIPT_EDITORS:
            raise ConfigurationError(
                f"Unknown script editor '{self.script_editor}'. Known editors: {', '.join(SCRIPT_EDITORS)}"
            )
        if self.visual_studio_version not in VISUAL_STUDIO_VERSIONS:
            raise ConfigurationError(
                f"Unsupported Visual Studio version {self.visual_studio_version}. Supported versions: 9, 10"
            )
        if not self.project_name:
            object.__setattr__(self, "project_name", self.project_dir.name)
        object.__setattr__(
            self, "user_extensions", tuple(ext.lstrip(".").lower() for ext in self.user_extensions if ext)
        )

    @property
    def include_legacy_projects(self) -> bool:
        if self.script_editor in PRECOMPILED_ONLY_EDITORS:
            return False
        return self.supports_unity_proj


@dataclass(frozen=True)
class SyncConfig:
    settings: SyncSettings
    context: BuildContext
    catalog: PlatformCatalog
    units_manifest: Path | None
    assembly_definitions: tuple[str, ...]


def _require_bool(value: Any, key: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigurationError(f"config.{key} must be boolean when specified")
    return value


def build_sync_config(config: dict[str, Any], repo_root: Path) -> SyncConfig:
    validate_with_schema("config", config, "config")

    project_dir = ensure_relative_path(repo_root, str(config.get("project_directory") or ".")).resolve()
    catalog = build_platform_catalog(config)

    settings = SyncSettings(
        project_dir=project_dir,
        project_name=str(config.get("project_name") or ""),
        script_editor=str(config.get("script_editor") or "visualstudio"),
        supports_unity_proj=_require_bool(config.get("supports_unity_proj"), "supports_unity_proj", False),
        user_extensions=tuple(normalize_string_list(config.get("user_extensions"), "user_extensions")),
        root_namespace=str(config.get("root_namespace") or ""),
        visual_studio_version=int(config.get("visual_studio_version") or 10),
        build_output_root=str(config.get("build_output_root") or DEFAULT_BUILD_OUTPUT_ROOT),
        internal_library_roots=tuple(
            str(ensure_relative_path(project_dir, item))
            for item in normalize_string_list(config.get("internal_library_roots"), "internal_library_roots")
        ),
        editor_additional_references=tuple(
            normalize_string_list(config.get("editor_additional_references"), "editor_additional_references")
            or DEFAULT_EDITOR_ADDITIONAL_REFERENCES
        ),
        core_runtime_libraries=tuple(
            normalize_string_list(config.get("core_runtime_libraries"), "core_runtime_libraries")
            or DEFAULT_CORE_RUNTIME_LIBRARIES
        ),
        embedded_packages=tuple(normalize_string_list(config.get("embedded_packages"), "embedded_packages")),
        untestable_roots=tuple(normalize_string_list(config.get("untestable_roots"), "untestable_roots")),
    )

    context_cfg = config.get("context") or {}
    defines = normalize_string_list(context_cfg.get("defines"), "context.defines")
    if not defines:
        raise ConfigurationError("config.context.defines must list at least one symbol")
    target_name = str(context_cfg.get("target") or catalog.editor.name)
    context = BuildContext.create(
        target=target_name,
        building_for_editor=_require_bool(
            context_cfg.get("building_for_editor"),
            "context.building_for_editor",
            target_name.lower() == catalog.editor.name.lower(),
        ),
        include_test_assemblies=_require_bool(
            context_cfg.get("include_test_assemblies"), "context.include_test_assemblies", False
        ),
        defines=defines,
        catalog=catalog,
    )

    inputs = config.get("inputs") or {}
    manifest_value = inputs.get("units_manifest")
    units_manifest = ensure_relative_path(repo_root, manifest_value).resolve() if manifest_value else None
    definitions = normalize_string_list(inputs.get("assembly_definitions"), "inputs.assembly_definitions")

    return SyncConfig(
        settings=settings,
        context=context,
        catalog=catalog,
        units_manifest=units_manifest,
        assembly_definitions=tuple(definitions or DEFAULT_ASSEMBLY_DEFINITION_ENTRIES),
    )


def load_sync_config(path: Path, repo_root: Path) -> SyncConfig:
    return build_sync_config(load_json(path), repo_root)
