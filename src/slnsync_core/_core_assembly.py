from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ._core_base import ConfigurationError, load_json, normalize_string_list, unity_separators, validate_with_schema
from ._core_constraints import are_define_constraints_satisfied, validate_define_constraints
from ._core_platforms import DEFAULT_CATALOG, NO_TARGET, Platform, PlatformCatalog


class AssemblyFlags(enum.Flag):
    NONE = 0
    EDITOR_ONLY = enum.auto()
    EXPLICIT_REFERENCES = enum.auto()
    EXPLICITLY_REFERENCED = enum.auto()


class OptionalReferences(enum.Flag):
    NONE = 0
    TEST_ASSEMBLIES = enum.auto()


OPTIONAL_REFERENCE_FLAGS = {
    "TestAssemblies": OptionalReferences.TEST_ASSEMBLIES,
}


def parse_optional_references(names: Iterable[str], label: str) -> OptionalReferences:
    flags = OptionalReferences.NONE
    for name in names:
        flag = OPTIONAL_REFERENCE_FLAGS.get(name)
        if flag is None:
            known = ", ".join(sorted(OPTIONAL_REFERENCE_FLAGS))
            raise ConfigurationError(f"{label}: unknown optional reference '{name}'. Known values: {known}")
        flags |= flag
    return flags


@dataclass(frozen=True)
class AssetPathMetadata:
    is_testable: bool = True


@dataclass(frozen=True)
class AssemblyDescriptor:
    name: str
    path_prefix: str
    file_path: str = ""
    guid: str | None = None
    references: tuple[str, ...] = ()
    precompiled_references: tuple[str, ...] = ()
    include_platforms: tuple[Platform, ...] | None = None
    exclude_platforms: tuple[Platform, ...] | None = None
    define_constraints: tuple[str, ...] = ()
    optional_references: OptionalReferences = OptionalReferences.NONE
    auto_referenced: bool = True
    override_references: bool = False
    allow_unsafe_code: bool = False
    path_metadata: AssetPathMetadata | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("Assembly descriptor requires a non-empty name")
        if self.include_platforms and self.exclude_platforms:
            raise ConfigurationError(
                f"Assembly '{self.name}': both 'excludePlatforms' and 'includePlatforms' are set."
            )

    @property
    def is_test_assembly(self) -> bool:
        return bool(self.optional_references & OptionalReferences.TEST_ASSEMBLIES)

    @property
    def flags(self) -> AssemblyFlags:
        flags = AssemblyFlags.NONE
        include = self.include_platforms
        if include is not None and len(include) == 1 and include[0].build_target == NO_TARGET:
            flags |= AssemblyFlags.EDITOR_ONLY
        if self.override_references:
            flags |= AssemblyFlags.EXPLICIT_REFERENCES
        if not self.auto_referenced:
            flags |= AssemblyFlags.EXPLICITLY_REFERENCED
        return flags

    def owns_path(self, path: str) -> bool:
        return unity_separators(path).lower().startswith(self.path_prefix.lower())

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path_prefix": self.path_prefix,
            "references": list(self.references),
            "precompiled_references": list(self.precompiled_references),
            "include_platforms": None if self.include_platforms is None else [p.name for p in self.include_platforms],
            "exclude_platforms": None if self.exclude_platforms is None else [p.name for p in self.exclude_platforms],
            "define_constraints": list(self.define_constraints),
            "test_assembly": self.is_test_assembly,
            "auto_referenced": self.auto_referenced,
            "override_references": self.override_references,
        }


@dataclass(frozen=True)
class BuildContext:
    target: Platform
    building_for_editor: bool
    include_test_assemblies: bool
    defines: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def create(
        cls,
        *,
        target: str,
        building_for_editor: bool,
        include_test_assemblies: bool,
        defines: Iterable[str],
        catalog: PlatformCatalog = DEFAULT_CATALOG,
    ) -> BuildContext:
        return cls(
            target=catalog.from_name(target),
            building_for_editor=building_for_editor,
            include_test_assemblies=include_test_assemblies,
            defines=frozenset(defines),
        )


def _directory_prefix(directory: str) -> str:
    prefix = unity_separators(directory)
    if not prefix.endswith("/"):
        prefix += "/"
    return prefix


def create_assembly_descriptor(name: str, directory: str) -> AssemblyDescriptor:
    prefix = _directory_prefix(directory)
    return AssemblyDescriptor(name=name, path_prefix=prefix, file_path=prefix)


def assembly_descriptor_from_data(
    data: dict[str, Any],
    *,
    path: str,
    guid: str | None = None,
    catalog: PlatformCatalog = DEFAULT_CATALOG,
    path_metadata: AssetPathMetadata | None = None,
) -> AssemblyDescriptor:
    name = data.get("name")
    if not isinstance(name, str) or not name:
        raise ConfigurationError(f"Assembly definition '{path}': required property 'name' not set")
    label = f"Assembly '{name}'"

    include_names = normalize_string_list(data.get("includePlatforms"), "includePlatforms")
    exclude_names = normalize_string_list(data.get("excludePlatforms"), "excludePlatforms")
    if include_names and exclude_names:
        raise ConfigurationError(f"{label}: both 'excludePlatforms' and 'includePlatforms' are set.")

    unity_path = unity_separators(path)
    path_prefix = unity_path[: len(unity_path) - len(unity_path.rsplit("/", 1)[-1])]

    try:
        include_platforms = catalog.from_names(include_names) if include_names else None
        exclude_platforms = catalog.from_names(exclude_names) if exclude_names else None
    except ConfigurationError as exc:
        raise ConfigurationError(f"{label}: {exc}") from exc

    return AssemblyDescriptor(
        name=name,
        path_prefix=path_prefix,
        file_path=unity_path,
        guid=guid,
        references=tuple(normalize_string_list(data.get("references"), "references")),
        precompiled_references=tuple(normalize_string_list(data.get("precompiledReferences"), "precompiledReferences")),
        include_platforms=include_platforms,
        exclude_platforms=exclude_platforms,
        define_constraints=validate_define_constraints(
            normalize_string_list(data.get("defineConstraints"), "defineConstraints"), label
        ),
        optional_references=parse_optional_references(
            normalize_string_list(data.get("optionalUnityReferences"), "optionalUnityReferences"), label
        ),
        auto_referenced=bool(data.get("autoReferenced", True)),
        override_references=bool(data.get("overrideReferences", False)),
        allow_unsafe_code=bool(data.get("allowUnsafeCode", False)),
        path_metadata=path_metadata,
    )


def load_assembly_definition(
    path: Path,
    *,
    project_dir: Path,
    catalog: PlatformCatalog = DEFAULT_CATALOG,
    untestable_roots: Iterable[str] = (),
) -> AssemblyDescriptor:
    data = load_json(path)
    validate_with_schema("asmdef", data, f"assembly definition '{path}'")
    try:
        relative = path.resolve().relative_to(project_dir.resolve()).as_posix()
    except ValueError:
        relative = path.resolve().as_posix()

    metadata = None
    roots = [_directory_prefix(root).lower() for root in untestable_roots]
    if roots:
        testable = not any(relative.lower().startswith(root) for root in roots)
        metadata = AssetPathMetadata(is_testable=testable)
    return assembly_descriptor_from_data(data, path=relative, catalog=catalog, path_metadata=metadata)


def _is_compatible_with_editor(descriptor: AssemblyDescriptor) -> bool:
    if descriptor.exclude_platforms is not None:
        return all(p.build_target != NO_TARGET for p in descriptor.exclude_platforms)
    if descriptor.include_platforms is not None:
        return any(p.build_target == NO_TARGET for p in descriptor.include_platforms)
    return True


def is_compatible(descriptor: AssemblyDescriptor, context: BuildContext) -> bool:
    """Decide whether ``descriptor`` takes part in a build described by ``context``.

    Raises ConfigurationError when the context carries no define symbols;
    an empty define set is a caller error, not "nothing defined".
    """
    if not context.defines:
        raise ConfigurationError(f"Assembly '{descriptor.name}': defines cannot be empty")

    if not context.building_for_editor and descriptor.is_test_assembly and not context.include_test_assemblies:
        return False

    if not are_define_constraints_satisfied(context.defines, descriptor.define_constraints):
        return False

    metadata = descriptor.path_metadata
    if descriptor.is_test_assembly and metadata is not None and not metadata.is_testable:
        return False

    if descriptor.include_platforms is None and descriptor.exclude_platforms is None:
        return True

    if context.building_for_editor:
        return _is_compatible_with_editor(descriptor)

    build_target = context.target.build_target
    if descriptor.exclude_platforms is not None:
        return all(p.build_target != build_target for p in descriptor.exclude_platforms)
    return any(p.build_target == build_target for p in descriptor.include_platforms or ())
