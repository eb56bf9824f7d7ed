from __future__ import annotations

import enum
import struct
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from ._core_base import file_name, file_name_without_extension, unity_separators

DEFAULT_BUILD_OUTPUT_ROOT = "Library/ScriptAssemblies"
DEFAULT_PROJECT_OUTPUT_EXTENSION = ".dll"
DEFAULT_CORE_RUNTIME_LIBRARIES = ("UnityEngine.dll", "UnityEditor.dll")
DEFAULT_EDITOR_ADDITIONAL_REFERENCES = ("UnityEditor.Graphs.dll",)

PE_HEADER_READ_SIZE = 4096
PE32_MAGIC = 0x10B
PE32_PLUS_MAGIC = 0x20B
CLI_HEADER_DIRECTORY_INDEX = 14


class ReferenceKind(enum.Enum):
    SKIP = "skip"
    PROJECT = "project"
    PRECOMPILED = "precompiled"
    INTERNAL_ADDITIONAL = "internal_additional"


@dataclass(frozen=True)
class ReferenceClassification:
    kind: ReferenceKind
    token: str
    path: str | None = None
    project_name: str | None = None
    reason: str = ""


def is_managed_assembly(path: Path) -> bool:
    """Probe a PE image for a non-empty CLI runtime header directory."""
    try:
        with path.open("rb") as fh:
            header = fh.read(PE_HEADER_READ_SIZE)
    except OSError:
        return False

    if len(header) < 0x40 or header[:2] != b"MZ":
        return False
    (pe_offset,) = struct.unpack_from("<I", header, 0x3C)
    optional_offset = pe_offset + 4 + 20
    if optional_offset + 2 > len(header) or header[pe_offset:pe_offset + 4] != b"PE\0\0":
        return False

    (magic,) = struct.unpack_from("<H", header, optional_offset)
    if magic == PE32_MAGIC:
        count_offset, directories_offset = optional_offset + 92, optional_offset + 96
    elif magic == PE32_PLUS_MAGIC:
        count_offset, directories_offset = optional_offset + 108, optional_offset + 112
    else:
        return False

    entry_offset = directories_offset + CLI_HEADER_DIRECTORY_INDEX * 8
    if entry_offset + 8 > len(header):
        return False
    (directory_count,) = struct.unpack_from("<I", header, count_offset)
    if directory_count <= CLI_HEADER_DIRECTORY_INDEX:
        return False
    rva, size = struct.unpack_from("<II", header, entry_offset)
    return rva != 0 and size != 0


@dataclass
class ReferenceClassifier:
    """Sort raw reference tokens of one project into graph links and library references.

    ``included_outputs`` maps the output file name (``Core.dll``) of every
    project generated in this pass to its display name.
    """

    project_dir: Path
    included_outputs: dict[str, str]
    build_output_root: str = DEFAULT_BUILD_OUTPUT_ROOT
    core_runtime_libraries: tuple[str, ...] = DEFAULT_CORE_RUNTIME_LIBRARIES
    internal_library_roots: tuple[str, ...] = ()
    editor_additional_references: tuple[str, ...] = DEFAULT_EDITOR_ADDITIONAL_REFERENCES
    probe: Callable[[Path], bool] = is_managed_assembly
    _prefix: str = field(init=False, repr=False)
    _included_lower: dict[str, str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._prefix = unity_separators(self.build_output_root).strip("/").lower() + "/"
        self._included_lower = {name.lower(): project for name, project in self.included_outputs.items()}

    def is_core_runtime_library(self, token: str) -> bool:
        for library in self.core_runtime_libraries:
            if token.endswith("/" + library) or token.endswith("\\" + library):
                return True
        return False

    def match_project_output(self, token: str) -> str | None:
        """Return the output file name when ``token`` points into the build output root."""
        normalized = unity_separators(token)
        lowered = normalized.lower()
        if not lowered.startswith(self._prefix) or not lowered.endswith(DEFAULT_PROJECT_OUTPUT_EXTENSION):
            return None
        output_name = normalized[len(self._prefix):]
        if len(output_name) <= len(DEFAULT_PROJECT_OUTPUT_EXTENSION):
            return None
        return output_name

    def resolve_path(self, token: str) -> Path:
        path = Path(token)
        if path.is_absolute():
            return path
        return self.project_dir / token

    def is_internal_assembly(self, path: Path) -> bool:
        normalized = unity_separators(str(path)).lower()
        for root in self.internal_library_roots:
            prefix = unity_separators(root).rstrip("/").lower() + "/"
            if normalized.startswith(prefix):
                return True
        return False

    def classify(self, token: str, *, editor_project: bool, seen_internal: set[str]) -> ReferenceClassification:
        if self.is_core_runtime_library(token):
            return ReferenceClassification(ReferenceKind.SKIP, token, reason="core runtime library")

        output_name = self.match_project_output(token)
        if output_name is not None:
            project = self._included_lower.get(output_name.lower())
            if project is None:
                return ReferenceClassification(
                    ReferenceKind.SKIP,
                    token,
                    reason=f"no project generated for '{file_name_without_extension(output_name)}'",
                )
            return ReferenceClassification(ReferenceKind.PROJECT, token, project_name=project)

        full_path = self.resolve_path(token)
        if not self.probe(full_path):
            return ReferenceClassification(ReferenceKind.SKIP, token, path=str(full_path), reason="not a managed assembly")

        if self.is_internal_assembly(full_path):
            reference_name = file_name(str(full_path))
            if not editor_project or reference_name not in self.editor_additional_references:
                return ReferenceClassification(
                    ReferenceKind.SKIP, token, path=str(full_path), reason="internal assembly not allowed"
                )
            if reference_name in seen_internal:
                return ReferenceClassification(
                    ReferenceKind.SKIP, token, path=str(full_path), reason="duplicate internal assembly"
                )
            seen_internal.add(reference_name)
            return ReferenceClassification(ReferenceKind.INTERNAL_ADDITIONAL, token, path=str(full_path))

        return ReferenceClassification(ReferenceKind.PRECOMPILED, token, path=str(full_path))

    def classify_all(self, tokens: Iterable[str], *, editor_project: bool) -> list[ReferenceClassification]:
        seen_internal: set[str] = set()
        return [self.classify(token, editor_project=editor_project, seen_internal=seen_internal) for token in tokens]
