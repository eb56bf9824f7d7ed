from __future__ import annotations

import enum
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from ._core_assembly import AssemblyDescriptor, AssemblyFlags, BuildContext, is_compatible
from ._core_base import (
    ConfigurationError,
    dedupe,
    extension_of,
    file_name,
    file_name_without_extension,
    unity_separators,
)
from ._core_identity import guid_for_project, guid_for_solution
from ._core_references import ReferenceClassifier, ReferenceKind, is_managed_assembly
from ._core_response import ResponseFileData, parse_response_file
from ._core_settings import SyncSettings

DEFAULT_DEFINES = ("DEBUG", "TRACE")
DEFINITION_FILE_EXTENSIONS = (".asmdef", ".asmref")
BINARY_EXTENSION = ".dll"
EDITOR_ASSEMBLY_SUFFIX = "-Editor"
OWNER_PROBE_EXTENSIONS = (".cs", ".js", ".boo")


class ScriptingLanguage(enum.Enum):
    NONE = "None"
    BOO = "Boo"
    CSHARP = "CSharp"
    UNITYSCRIPT = "UnityScript"


BUILTIN_SUPPORTED_EXTENSIONS = {
    "cs": ScriptingLanguage.CSHARP,
    "uxml": ScriptingLanguage.NONE,
    "uss": ScriptingLanguage.NONE,
    "shader": ScriptingLanguage.NONE,
    "compute": ScriptingLanguage.NONE,
    "cginc": ScriptingLanguage.NONE,
    "hlsl": ScriptingLanguage.NONE,
    "glslinc": ScriptingLanguage.NONE,
    "template": ScriptingLanguage.NONE,
    "raytrace": ScriptingLanguage.NONE,
}

SOURCE_LANGUAGES = {
    "cs": ScriptingLanguage.CSHARP,
    "boo": ScriptingLanguage.BOO,
    "js": ScriptingLanguage.UNITYSCRIPT,
}

PROJECT_EXTENSIONS = {
    ScriptingLanguage.BOO: ".booproj",
    ScriptingLanguage.CSHARP: ".csproj",
    ScriptingLanguage.UNITYSCRIPT: ".unityproj",
    ScriptingLanguage.NONE: ".csproj",
}


def language_for_source_extension(extension: str) -> ScriptingLanguage:
    return SOURCE_LANGUAGES.get(extension.lstrip(".").lower(), ScriptingLanguage.NONE)


def get_project_extension(language: Any) -> str:
    if language not in PROJECT_EXTENSIONS:
        raise ConfigurationError(f"Unsupported language: {language!r}")
    return PROJECT_EXTENSIONS[language]


@dataclass(frozen=True)
class CompiledUnit:
    name: str
    output: str
    files: tuple[str, ...] = ()
    references: tuple[str, ...] = ()
    defines: tuple[str, ...] = ()
    allow_unsafe_code: bool = False
    language: str = "cs"
    response_files: tuple[str, ...] = ()
    api_compatibility_level: str = "NET_4_6"

    @property
    def assembly_name(self) -> str:
        return file_name_without_extension(self.output)

    @property
    def output_file_name(self) -> str:
        return file_name(self.output)

    @property
    def scripting_language(self) -> ScriptingLanguage:
        return language_for_source_extension(self.language)

    @property
    def is_editor_unit(self) -> bool:
        return self.assembly_name.endswith(EDITOR_ASSEMBLY_SUFFIX)


@dataclass(frozen=True)
class ProjectLink:
    name: str
    identity: str
    project_file: str


@dataclass(frozen=True)
class ProjectDescriptor:
    identity: str
    name: str
    language: ScriptingLanguage
    project_file: str
    compile_files: tuple[str, ...]
    asset_files: tuple[str, ...]
    references: tuple[str, ...]
    project_references: tuple[ProjectLink, ...]
    defines: tuple[str, ...]
    allow_unsafe_code: bool
    api_compatibility_level: str
    source_extension: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "identity": self.identity,
            "name": self.name,
            "language": self.language.value,
            "project_file": self.project_file,
            "compile_files": list(self.compile_files),
            "asset_files": list(self.asset_files),
            "references": list(self.references),
            "project_references": [link.identity for link in self.project_references],
            "defines": list(self.defines),
            "allow_unsafe_code": self.allow_unsafe_code,
        }


@dataclass(frozen=True)
class SolutionEntry:
    type_guid: str
    name: str
    project_file: str
    identity: str


@dataclass(frozen=True)
class SolutionDescriptor:
    name: str
    entries: tuple[SolutionEntry, ...]


@dataclass
class GraphBuildResult:
    solution: SolutionDescriptor
    projects: list[ProjectDescriptor]
    warnings: list[str] = field(default_factory=list)
    excluded: dict[str, str] = field(default_factory=dict)

    def project(self, name: str) -> ProjectDescriptor | None:
        for project in self.projects:
            if project.name == name:
                return project
        return None


class AssemblyNameProvider(Protocol):
    def get_all_script_assemblies(self) -> list[CompiledUnit]: ...

    def get_all_asset_paths(self) -> list[str]: ...

    def get_assembly_name_from_script_path(self, path: str) -> str | None: ...


class FileFilter:
    def __init__(self, settings: SyncSettings) -> None:
        self.project_root = unity_separators(str(settings.project_dir)).rstrip("/") + "/"
        self.user_extensions = frozenset(settings.user_extensions)
        self.embedded_packages = frozenset(name.lower() for name in settings.embedded_packages)

    def relative_path(self, path: str) -> str:
        normalized = unity_separators(path)
        if normalized.lower().startswith(self.project_root.lower()):
            return normalized[len(self.project_root):]
        return normalized

    def is_non_internalized_package_path(self, path: str) -> bool:
        normalized = self.relative_path(path)
        lowered = normalized.lower()
        if "/library/packagecache/" in lowered or lowered.startswith("library/packagecache/"):
            return True
        if not lowered.startswith("packages/"):
            return False
        parts = normalized.split("/")
        if len(parts) < 3:
            return True
        return parts[1].lower() not in self.embedded_packages

    def is_supported_extension(self, extension: str) -> bool:
        ext = extension.lstrip(".").lower()
        return ext in BUILTIN_SUPPORTED_EXTENSIONS or ext in self.user_extensions

    def is_loose_asset_extension(self, extension: str) -> bool:
        if not self.is_supported_extension(extension):
            return False
        language = BUILTIN_SUPPORTED_EXTENSIONS.get(extension.lstrip(".").lower(), ScriptingLanguage.NONE)
        return language is ScriptingLanguage.NONE

    def should_include(self, path: str) -> bool:
        if self.is_non_internalized_package_path(path):
            return False
        extension = extension_of(path)
        if extension == BINARY_EXTENSION or extension in DEFINITION_FILE_EXTENSIONS:
            return True
        return self.is_supported_extension(extension)


def collect_asset_entries(
    provider: AssemblyNameProvider,
    file_filter: FileFilter,
    warnings: list[str],
) -> dict[str, list[str]]:
    """Group loose non-script assets by the assembly that owns their folder."""
    entries: dict[str, list[str]] = {}
    try:
        asset_paths = sorted(provider.get_all_asset_paths())
    except OSError as exc:
        warnings.append(f"Unable to enumerate asset paths: {exc}")
        return entries

    for asset in asset_paths:
        if file_filter.is_non_internalized_package_path(asset):
            continue
        if not file_filter.is_loose_asset_extension(extension_of(asset)):
            continue
        try:
            owner = None
            for probe_extension in OWNER_PROBE_EXTENSIONS:
                owner = provider.get_assembly_name_from_script_path(asset + probe_extension)
                if owner:
                    break
        except OSError as exc:
            warnings.append(f"Unable to resolve owner of asset '{asset}': {exc}")
            continue
        if not owner:
            continue
        entries.setdefault(file_name_without_extension(owner), []).append(asset)
    return entries


class ProjectGraphBuilder:
    def __init__(
        self,
        settings: SyncSettings,
        *,
        descriptors: Mapping[str, AssemblyDescriptor] | None = None,
        probe: Callable[[Path], bool] = is_managed_assembly,
        system_reference_dirs: Iterable[Path] = (),
    ) -> None:
        self.settings = settings
        self.descriptors = dict(descriptors or {})
        self.probe = probe
        self.system_reference_dirs = tuple(system_reference_dirs)
        self.file_filter = FileFilter(settings)

    def project_identity(self, assembly_name: str) -> str:
        return guid_for_project(self.settings.project_name, assembly_name)

    def relative_path_for(self, path: str) -> str:
        return self.file_filter.relative_path(path)

    def is_relevant_language(self, unit: CompiledUnit) -> bool:
        return self.settings.include_legacy_projects or unit.scripting_language is ScriptingLanguage.CSHARP

    def exclusion_reason(self, unit: CompiledUnit, context: BuildContext) -> str | None:
        if not any(self.file_filter.should_include(path) for path in unit.files):
            return "no files belong to the solution"
        descriptor = self.descriptors.get(unit.name)
        if descriptor is not None:
            if descriptor.is_test_assembly and not context.include_test_assemblies:
                return "test assemblies are not included"
            if not is_compatible(descriptor, context):
                return "not compatible with the build context"
        if not self.is_relevant_language(unit):
            return f"language '{unit.language}' has no project for this editor"
        return None

    def load_response_files(self, unit: CompiledUnit) -> list[ResponseFileData]:
        data: list[ResponseFileData] = []
        for raw in unit.response_files:
            path = Path(raw)
            if not path.is_absolute():
                path = self.settings.project_dir / raw
            data.append(
                parse_response_file(
                    path,
                    project_dir=self.settings.project_dir,
                    system_reference_dirs=self.system_reference_dirs,
                )
            )
        return data

    def build(
        self,
        units: Iterable[CompiledUnit],
        context: BuildContext,
        *,
        asset_entries: Mapping[str, list[str]] | None = None,
        response_data: Mapping[str, list[ResponseFileData]] | None = None,
    ) -> GraphBuildResult:
        warnings: list[str] = []
        excluded: dict[str, str] = {}
        ordered = sorted(units, key=lambda unit: (unit.assembly_name, unit.name, unit.output))

        outputs_seen: dict[str, str] = {}
        for unit in ordered:
            key = unit.output_file_name.lower()
            if key in outputs_seen:
                raise ConfigurationError(
                    f"Compiled units '{outputs_seen[key]}' and '{unit.name}' share output '{unit.output_file_name}'"
                )
            outputs_seen[key] = unit.name

        included: list[CompiledUnit] = []
        for unit in ordered:
            reason = self.exclusion_reason(unit, context)
            if reason is not None:
                excluded[unit.name] = reason
                continue
            included.append(unit)

        included_by_output = {unit.output_file_name: unit for unit in included}
        classifier = ReferenceClassifier(
            project_dir=self.settings.project_dir,
            included_outputs={output: unit.assembly_name for output, unit in included_by_output.items()},
            build_output_root=self.settings.build_output_root,
            core_runtime_libraries=self.settings.core_runtime_libraries,
            internal_library_roots=self.settings.internal_library_roots,
            editor_additional_references=self.settings.editor_additional_references,
            probe=self.probe,
        )
        units_by_assembly = {unit.assembly_name: unit for unit in included}

        projects: list[ProjectDescriptor] = []
        for unit in included:
            if response_data is not None:
                responses = list(response_data.get(unit.name, []))
            else:
                responses = self.load_response_files(unit)
            for response in responses:
                for error in response.errors:
                    warnings.append(f"{response.path} Parse Error : {error}")
            assets = list((asset_entries or {}).get(unit.assembly_name, []))
            projects.append(
                self.build_project(unit, classifier, units_by_assembly, responses, assets, warnings)
            )

        projects.sort(key=lambda project: project.name)
        solution = SolutionDescriptor(
            name=self.settings.project_name,
            entries=tuple(
                SolutionEntry(
                    type_guid=guid_for_solution(self.settings.project_name, project.source_extension),
                    name=project.name,
                    project_file=project.project_file,
                    identity=project.identity,
                )
                for project in projects
            ),
        )
        return GraphBuildResult(solution=solution, projects=projects, warnings=warnings, excluded=excluded)

    def build_project(
        self,
        unit: CompiledUnit,
        classifier: ReferenceClassifier,
        units_by_assembly: Mapping[str, CompiledUnit],
        responses: list[ResponseFileData],
        assets: list[str],
        warnings: list[str],
    ) -> ProjectDescriptor:
        compile_files: list[str] = []
        definition_files: list[str] = []
        binaries: list[str] = []
        for path in dedupe(list(unit.files)):
            if not self.file_filter.should_include(path):
                continue
            relative = self.relative_path_for(path)
            extension = extension_of(path)
            if extension == BINARY_EXTENSION:
                binaries.append(relative)
            elif extension in DEFINITION_FILE_EXTENSIONS:
                definition_files.append(relative)
            else:
                compile_files.append(relative)

        declared: list[str] = []
        descriptor = self.descriptors.get(unit.name)
        if descriptor is not None:
            root = unity_separators(self.settings.build_output_root).rstrip("/")
            declared = [f"{root}/{name}.dll" for name in descriptor.references if not name.startswith("GUID:")]

        tokens = dedupe(
            binaries
            + declared
            + list(unit.references)
            + [reference for response in responses for reference in response.references]
        )
        editor_project = unit.is_editor_unit or (
            descriptor is not None and bool(descriptor.flags & AssemblyFlags.EDITOR_ONLY)
        )

        references: list[str] = []
        links: list[ProjectLink] = []
        for result in classifier.classify_all(tokens, editor_project=editor_project):
            if result.kind is ReferenceKind.PROJECT and result.project_name is not None:
                target = units_by_assembly[result.project_name]
                link = ProjectLink(
                    name=target.assembly_name,
                    identity=self.project_identity(target.assembly_name),
                    project_file=target.assembly_name + get_project_extension(target.scripting_language),
                )
                if link not in links and target.assembly_name != unit.assembly_name:
                    links.append(link)
            elif result.kind in (ReferenceKind.PRECOMPILED, ReferenceKind.INTERNAL_ADDITIONAL) and result.path:
                if result.path not in references:
                    references.append(result.path)
            elif result.kind is ReferenceKind.SKIP and result.path and not Path(result.path).exists():
                warnings.append(f"{unit.name}: reference '{result.token}' not found")

        defines = dedupe(
            list(DEFAULT_DEFINES)
            + list(unit.defines)
            + [define for response in responses for define in response.defines]
        )
        language = unit.scripting_language
        return ProjectDescriptor(
            identity=self.project_identity(unit.assembly_name),
            name=unit.assembly_name,
            language=language,
            project_file=unit.assembly_name + get_project_extension(language),
            compile_files=tuple(compile_files),
            asset_files=tuple(dedupe(definition_files + [self.relative_path_for(path) for path in assets])),
            references=tuple(references),
            project_references=tuple(links),
            defines=tuple(defines),
            allow_unsafe_code=unit.allow_unsafe_code or any(response.unsafe for response in responses),
            api_compatibility_level=unit.api_compatibility_level,
            source_extension=unit.language,
        )
