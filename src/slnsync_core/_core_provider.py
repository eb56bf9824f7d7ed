from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ._core_assembly import AssemblyDescriptor
from ._core_base import (
    ConfigurationError,
    extension_of,
    load_json,
    normalize_string_list,
    unity_separators,
    validate_with_schema,
)
from ._core_graph import CompiledUnit

ASSETS_ROOT = "Assets/"
FIRSTPASS_ROOTS = ("Assets/Plugins/", "Assets/Standard Assets/", "Assets/Pro Standard Assets/")
LANGUAGE_ASSEMBLY_NAMES = {
    ".cs": "CSharp",
    ".js": "UnityScript",
    ".boo": "Boo",
}


def compiled_unit_from_data(data: dict[str, Any], index: int) -> CompiledUnit:
    label = f"units[{index}]"
    name = data.get("name")
    output = data.get("output")
    if not isinstance(name, str) or not name:
        raise ConfigurationError(f"{label}: 'name' must be a non-empty string")
    if not isinstance(output, str) or not output:
        raise ConfigurationError(f"{label}: 'output' must be a non-empty string")
    return CompiledUnit(
        name=name,
        output=output,
        files=tuple(normalize_string_list(data.get("files"), f"{label}.files")),
        references=tuple(normalize_string_list(data.get("references"), f"{label}.references")),
        defines=tuple(normalize_string_list(data.get("defines"), f"{label}.defines")),
        allow_unsafe_code=bool(data.get("allow_unsafe_code", False)),
        language=str(data.get("language") or "cs"),
        response_files=tuple(normalize_string_list(data.get("response_files"), f"{label}.response_files")),
        api_compatibility_level=str(data.get("api_compatibility_level") or "NET_4_6"),
    )


def load_units_manifest(path: Path) -> tuple[list[CompiledUnit], list[str] | None]:
    payload = load_json(path)
    validate_with_schema("units", payload, f"units manifest '{path}'")
    units = [compiled_unit_from_data(item, idx) for idx, item in enumerate(payload.get("units") or [])]
    asset_paths = payload.get("asset_paths")
    if asset_paths is None:
        return units, None
    return units, normalize_string_list(asset_paths, "asset_paths")


def default_assembly_name(script_path: str) -> str | None:
    """Name of the predefined assembly a loose script under ``Assets/`` compiles into."""
    path = unity_separators(script_path)
    if not path.startswith(ASSETS_ROOT):
        return None
    language = LANGUAGE_ASSEMBLY_NAMES.get(extension_of(path))
    if language is None:
        return None
    name = f"Assembly-{language}"
    if "/Editor/" in path[len(ASSETS_ROOT) - 1:]:
        name += "-Editor"
    if path.startswith(FIRSTPASS_ROOTS):
        name += "-firstpass"
    return name + ".dll"


class ManifestAssemblyNameProvider:
    """Serves compiled units and asset paths read from a units manifest."""

    def __init__(
        self,
        project_dir: Path,
        units: Iterable[CompiledUnit],
        descriptors: Iterable[AssemblyDescriptor] = (),
        asset_paths: Iterable[str] | None = None,
    ) -> None:
        self.project_dir = project_dir
        self.units = list(units)
        self.descriptors = sorted(descriptors, key=lambda item: len(item.path_prefix), reverse=True)
        self.asset_paths = None if asset_paths is None else [unity_separators(path) for path in asset_paths]

    @classmethod
    def from_manifest(
        cls,
        path: Path,
        *,
        project_dir: Path,
        descriptors: Iterable[AssemblyDescriptor] = (),
    ) -> ManifestAssemblyNameProvider:
        units, asset_paths = load_units_manifest(path)
        return cls(project_dir, units, descriptors, asset_paths)

    def get_all_script_assemblies(self) -> list[CompiledUnit]:
        return list(self.units)

    def get_all_asset_paths(self) -> list[str]:
        if self.asset_paths is not None:
            return list(self.asset_paths)
        assets_dir = self.project_dir / ASSETS_ROOT.rstrip("/")
        if not assets_dir.is_dir():
            return []
        return sorted(
            path.relative_to(self.project_dir).as_posix()
            for path in assets_dir.rglob("*")
            if path.is_file() and path.suffix != ".meta"
        )

    def get_assembly_name_from_script_path(self, path: str) -> str | None:
        normalized = unity_separators(path)
        for descriptor in self.descriptors:
            if descriptor.owns_path(normalized):
                return descriptor.name + ".dll"
        return default_assembly_name(normalized)
