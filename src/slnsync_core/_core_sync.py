from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ._core_assembly import AssemblyDescriptor, BuildContext, load_assembly_definition
from ._core_base import TOOL_VERSION, ConfigurationError, extension_of, iter_files_from_entries, to_repo_relative
from ._core_graph import (
    AssemblyNameProvider,
    GraphBuildResult,
    ProjectDescriptor,
    ProjectGraphBuilder,
    collect_asset_entries,
)
from ._core_output import (
    STATUS_DRIFT,
    STATUS_FAILED,
    WriteResult,
    write_if_absent,
    write_outputs,
)
from ._core_platforms import DEFAULT_CATALOG, PlatformCatalog
from ._core_references import is_managed_assembly
from ._core_render import SynchronizationSettings, render_project, render_solution
from ._core_response import ResponseFileData
from ._core_settings import SyncSettings

REIMPORT_SYNC_EXTENSIONS = (".dll", ".asmdef", ".asmref")

VSCODE_SETTINGS_JSON = """{
    "files.exclude":
    {
        "**/.DS_Store":true,
        "**/.git":true,
        "**/.gitignore":true,
        "**/.gitmodules":true,
        "**/*.booproj":true,
        "**/*.pidb":true,
        "**/*.suo":true,
        "**/*.user":true,
        "**/*.userprefs":true,
        "**/*.unityproj":true,
        "**/*.dll":true,
        "**/*.exe":true,
        "**/*.pdf":true,
        "**/*.mid":true,
        "**/*.midi":true,
        "**/*.wav":true,
        "**/*.gif":true,
        "**/*.ico":true,
        "**/*.jpg":true,
        "**/*.jpeg":true,
        "**/*.png":true,
        "**/*.psd":true,
        "**/*.tga":true,
        "**/*.tif":true,
        "**/*.tiff":true,
        "**/*.3ds":true,
        "**/*.3DS":true,
        "**/*.fbx":true,
        "**/*.FBX":true,
        "**/*.lxo":true,
        "**/*.LXO":true,
        "**/*.ma":true,
        "**/*.MA":true,
        "**/*.obj":true,
        "**/*.OBJ":true,
        "**/*.asset":true,
        "**/*.cubemap":true,
        "**/*.flare":true,
        "**/*.mat":true,
        "**/*.meta":true,
        "**/*.prefab":true,
        "**/*.unity":true,
        "build/":true,
        "Build/":true,
        "Library/":true,
        "library/":true,
        "obj/":true,
        "Obj/":true,
        "ProjectSettings/":true,
        "temp/":true,
        "Temp/":true
    }
}"""

GeneratedTextHook = Callable[[Path, str], str]


@dataclass
class SyncReport:
    build: GraphBuildResult
    writes: list[WriteResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def has_drift(self) -> bool:
        return any(item.status == STATUS_DRIFT for item in self.writes)

    @property
    def has_failures(self) -> bool:
        return any(item.status == STATUS_FAILED for item in self.writes)

    def as_dict(self, repo_root: Path) -> dict[str, Any]:
        return {
            "tool": {"name": "slnsync", "version": TOOL_VERSION},
            "solution": self.build.solution.name,
            "projects": [project.as_dict() for project in self.build.projects],
            "excluded": dict(sorted(self.build.excluded.items())),
            "writes": [
                {
                    "path": to_repo_relative(item.path, repo_root),
                    "status": item.status,
                    "first_difference": None if item.difference is None else item.difference.line_number,
                    "error": item.error,
                }
                for item in self.writes
            ],
            "warnings": list(self.warnings),
        }


def load_assembly_definitions(
    project_dir: Path,
    entries: Iterable[str],
    *,
    catalog: PlatformCatalog = DEFAULT_CATALOG,
    untestable_roots: Iterable[str] = (),
) -> dict[str, AssemblyDescriptor]:
    descriptors: dict[str, AssemblyDescriptor] = {}
    roots = tuple(untestable_roots)
    for path in iter_files_from_entries(project_dir, list(entries), ".asmdef"):
        descriptor = load_assembly_definition(
            path, project_dir=project_dir, catalog=catalog, untestable_roots=roots
        )
        previous = descriptors.get(descriptor.name)
        if previous is not None:
            raise ConfigurationError(
                f"Assembly with name '{descriptor.name}' is defined in both "
                f"'{previous.file_path}' and '{descriptor.file_path}'"
            )
        descriptors[descriptor.name] = descriptor
    return descriptors


class SolutionSynchronizer:
    def __init__(
        self,
        settings: SyncSettings,
        context: BuildContext,
        provider: AssemblyNameProvider,
        *,
        descriptors: Mapping[str, AssemblyDescriptor] | None = None,
        render_settings: SynchronizationSettings | None = None,
        on_generated_project: GeneratedTextHook | None = None,
        on_generated_solution: GeneratedTextHook | None = None,
        probe: Callable[[Path], bool] = is_managed_assembly,
        system_reference_dirs: Iterable[Path] = (),
        response_data: Mapping[str, list[ResponseFileData]] | None = None,
    ) -> None:
        self.settings = settings
        self.context = context
        self.provider = provider
        self.render_settings = render_settings or SynchronizationSettings(
            visual_studio_version=settings.visual_studio_version,
            root_namespace=settings.root_namespace,
        )
        self.on_generated_project = on_generated_project
        self.on_generated_solution = on_generated_solution
        self.response_data = response_data
        self.last_report: SyncReport | None = None
        self.builder = ProjectGraphBuilder(
            settings,
            descriptors=descriptors,
            probe=probe,
            system_reference_dirs=system_reference_dirs,
        )

    @property
    def project_dir(self) -> Path:
        return self.settings.project_dir

    def solution_file(self) -> Path:
        return self.project_dir / f"{self.settings.project_name}.sln"

    def project_file(self, project: ProjectDescriptor) -> Path:
        return self.project_dir / project.project_file

    def solution_exists(self) -> bool:
        return self.solution_file().is_file()

    def should_file_be_part_of_solution(self, path: str) -> bool:
        return self.builder.file_filter.should_include(path)

    def should_sync_on_reimported_asset(self, path: str) -> bool:
        return extension_of(path) in REIMPORT_SYNC_EXTENSIONS

    def sync_if_needed(self, changed_files: Iterable[str], reimported_files: Iterable[str]) -> bool:
        """Regenerate when a prior solution exists and one of the files matters."""
        if not self.solution_exists():
            return False
        if any(self.should_file_be_part_of_solution(path) for path in changed_files) or any(
            self.should_sync_on_reimported_asset(path) for path in reimported_files
        ):
            self.sync()
            return True
        return False

    def build_graph(self) -> GraphBuildResult:
        warnings: list[str] = []
        asset_entries = collect_asset_entries(self.provider, self.builder.file_filter, warnings)
        result = self.builder.build(
            self.provider.get_all_script_assemblies(),
            self.context,
            asset_entries=asset_entries,
            response_data=self.response_data,
        )
        result.warnings[:0] = warnings
        return result

    def render_outputs(self, result: GraphBuildResult) -> list[tuple[Path, str]]:
        outputs: list[tuple[Path, str]] = []
        solution_path = self.solution_file()
        solution_text = render_solution(result.solution, self.render_settings)
        if self.on_generated_solution is not None:
            solution_text = self.on_generated_solution(solution_path, solution_text)
        outputs.append((solution_path, solution_text))

        for project in result.projects:
            project_path = self.project_file(project)
            project_text = render_project(project, self.render_settings)
            if self.on_generated_project is not None and project_path.suffix == ".csproj":
                project_text = self.on_generated_project(project_path, project_text)
            outputs.append((project_path, project_text))
        return outputs

    def write_editor_settings(self, *, dry_run: bool = False) -> WriteResult | None:
        if self.settings.script_editor != "vscode":
            return None
        return write_if_absent(self.project_dir / ".vscode" / "settings.json", VSCODE_SETTINGS_JSON, dry_run=dry_run)

    def sync(self, *, check: bool = False, dry_run: bool = False) -> SyncReport:
        result = self.build_graph()
        writes = write_outputs(self.render_outputs(result), check=check, dry_run=dry_run)
        if not check:
            settings_write = self.write_editor_settings(dry_run=dry_run)
            if settings_write is not None:
                writes.append(settings_write)

        warnings = list(result.warnings)
        for item in writes:
            if item.status == STATUS_FAILED:
                warnings.append(f"Failed to write '{item.path}': {item.error}")
        self.last_report = SyncReport(build=result, writes=writes, warnings=warnings)
        return self.last_report
