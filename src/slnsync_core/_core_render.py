from __future__ import annotations

from dataclasses import dataclass
from xml.sax.saxutils import escape

from ._core_base import WINDOWS_NEWLINE, file_name_without_extension, unity_separators, windows_separators
from ._core_graph import ProjectDescriptor, ScriptingLanguage, SolutionDescriptor

MSBUILD_NAMESPACE_URI = "http://schemas.microsoft.com/developer/msbuild/2003"
LATEST_API_COMPATIBILITY_LEVELS = ("NET_4_6", "NET_Standard_2_0", "NET_Standard", "NET_Unity_4_8")

SOLUTION_PROJECT_ENTRY_TEMPLATE = 'Project("{{{type_guid}}}") = "{name}", "{project_file}", "{{{identity}}}"\r\nEndProject'

SOLUTION_PROJECT_CONFIGURATION_TEMPLATE = WINDOWS_NEWLINE.join(
    (
        "\t\t{{{identity}}}.Debug|Any CPU.ActiveCfg = Debug|Any CPU",
        "\t\t{{{identity}}}.Debug|Any CPU.Build.0 = Debug|Any CPU",
        "\t\t{{{identity}}}.Release|Any CPU.ActiveCfg = Release|Any CPU",
        "\t\t{{{identity}}}.Release|Any CPU.Build.0 = Release|Any CPU",
    )
)

SOLUTION_TEMPLATE = WINDOWS_NEWLINE.join(
    (
        "",
        "Microsoft Visual Studio Solution File, Format Version {file_version}",
        "# Visual Studio {vs_version}",
        "{project_entries}",
        "Global",
        "\tGlobalSection(SolutionConfigurationPlatforms) = preSolution",
        "\t\tDebug|Any CPU = Debug|Any CPU",
        "\t\tRelease|Any CPU = Release|Any CPU",
        "\tEndGlobalSection",
        "\tGlobalSection(ProjectConfigurationPlatforms) = postSolution",
        "{project_configurations}",
        "\tEndGlobalSection",
        "\tGlobalSection(SolutionProperties) = preSolution",
        "\t\tHideSolutionNode = FALSE",
        "\tEndGlobalSection",
        "EndGlobal",
        "",
    )
)

PROJECT_HEADER_TEMPLATE = WINDOWS_NEWLINE.join(
    (
        '<?xml version="1.0" encoding="utf-8"?>',
        '<Project ToolsVersion="{tools_version}" DefaultTargets="Build" xmlns="{namespace}">',
        "  <PropertyGroup>",
        "    <LangVersion>{language_version}</LangVersion>",
        "  </PropertyGroup>",
        "  <PropertyGroup>",
        "    <Configuration Condition=\" '$(Configuration)' == '' \">Debug</Configuration>",
        "    <Platform Condition=\" '$(Platform)' == '' \">AnyCPU</Platform>",
        "    <ProductVersion>{product_version}</ProductVersion>",
        "    <SchemaVersion>2.0</SchemaVersion>",
        "    <RootNamespace>{root_namespace}</RootNamespace>",
        "    <ProjectGuid>{{{identity}}}</ProjectGuid>",
        "    <OutputType>Library</OutputType>",
        "    <AppDesignerFolder>Properties</AppDesignerFolder>",
        "    <AssemblyName>{assembly_name}</AssemblyName>",
        "    <TargetFrameworkVersion>{target_framework}</TargetFrameworkVersion>",
        "    <FileAlignment>512</FileAlignment>",
        "    <BaseDirectory>.</BaseDirectory>",
        "  </PropertyGroup>",
        "  <PropertyGroup Condition=\" '$(Configuration)|$(Platform)' == 'Debug|AnyCPU' \">",
        "    <DebugSymbols>true</DebugSymbols>",
        "    <DebugType>full</DebugType>",
        "    <Optimize>false</Optimize>",
        "    <OutputPath>Temp\\bin\\Debug\\</OutputPath>",
        "    <DefineConstants>{defines}</DefineConstants>",
        "    <ErrorReport>prompt</ErrorReport>",
        "    <WarningLevel>4</WarningLevel>",
        "    <NoWarn>0169</NoWarn>",
        "    <AllowUnsafeBlocks>{allow_unsafe}</AllowUnsafeBlocks>",
        "  </PropertyGroup>",
        "  <PropertyGroup Condition=\" '$(Configuration)|$(Platform)' == 'Release|AnyCPU' \">",
        "    <DebugType>pdbonly</DebugType>",
        "    <Optimize>true</Optimize>",
        "    <OutputPath>Temp\\bin\\Release\\</OutputPath>",
        "    <ErrorReport>prompt</ErrorReport>",
        "    <WarningLevel>4</WarningLevel>",
        "    <NoWarn>0169</NoWarn>",
        "    <AllowUnsafeBlocks>{allow_unsafe}</AllowUnsafeBlocks>",
        "  </PropertyGroup>",
        "  <PropertyGroup>",
        "    <NoConfig>true</NoConfig>",
        "    <NoStdLib>true</NoStdLib>",
        "    <AddAdditionalExplicitAssemblyReferences>false</AddAdditionalExplicitAssemblyReferences>",
        "    <ImplicitlyExpandNETStandardFacades>false</ImplicitlyExpandNETStandardFacades>",
        "    <ImplicitlyExpandDesignTimeFacades>false</ImplicitlyExpandDesignTimeFacades>",
        "  </PropertyGroup>",
        "",
    )
)

PROJECT_FOOTER_TEMPLATE = WINDOWS_NEWLINE.join(
    (
        '  <Import Project="$(MSBuildToolsPath)\\Microsoft.CSharp.targets" />',
        "</Project>",
        "",
    )
)


@dataclass(frozen=True)
class SynchronizationSettings:
    """Knobs of the rendered solution and project text."""

    visual_studio_version: int = 10
    root_namespace: str = ""
    solution_template: str = SOLUTION_TEMPLATE
    project_header_template: str = PROJECT_HEADER_TEMPLATE
    project_footer_template: str = PROJECT_FOOTER_TEMPLATE

    def get_project_header_template(self, language: ScriptingLanguage) -> str:
        return self.project_header_template

    def get_project_footer_template(self, language: ScriptingLanguage) -> str:
        return self.project_footer_template


def is_latest_api_compatibility(level: str) -> bool:
    return level in LATEST_API_COMPATIBILITY_LEVELS


def escaped_path(path: str) -> str:
    return escape(windows_separators(path), {'"': "&quot;"})


def _reference_lines(path: str) -> list[str]:
    hint = escape(unity_separators(path), {'"': "&quot;"})
    return [
        f'    <Reference Include="{file_name_without_extension(hint)}">',
        f"      <HintPath>{hint}</HintPath>",
        "    </Reference>",
    ]


def render_project(project: ProjectDescriptor, settings: SynchronizationSettings | None = None) -> str:
    settings = settings or SynchronizationSettings()

    target_framework = "v3.5"
    language_version = "4"
    tools_version = "4.0"
    product_version = "10.0.20506"
    if is_latest_api_compatibility(project.api_compatibility_level):
        target_framework = "v4.7.1"
        language_version = "latest"
    elif settings.visual_studio_version == 9:
        tools_version = "3.5"
        product_version = "9.0.21022"

    header = settings.get_project_header_template(project.language).format(
        tools_version=tools_version,
        product_version=product_version,
        namespace=MSBUILD_NAMESPACE_URI,
        language_version=language_version,
        root_namespace=escape(settings.root_namespace),
        identity=project.identity,
        assembly_name=escape(project.name),
        target_framework=target_framework,
        defines=escape(";".join(project.defines)),
        allow_unsafe=str(project.allow_unsafe_code),
    )

    lines: list[str] = ["  <ItemGroup>"]
    for path in project.compile_files:
        lines.append(f'    <Compile Include="{escaped_path(path)}" />')
    for path in project.asset_files:
        lines.append(f'    <None Include="{escaped_path(path)}" />')
    for path in project.references:
        lines.extend(_reference_lines(path))
    lines.append("  </ItemGroup>")

    if project.project_references:
        lines.append("  <ItemGroup>")
        for link in project.project_references:
            lines.extend(
                [
                    f'    <ProjectReference Include="{escape(link.project_file)}">',
                    f"      <Project>{{{link.identity}}}</Project>",
                    f"      <Name>{escape(link.name)}</Name>",
                    "    </ProjectReference>",
                ]
            )
        lines.append("  </ItemGroup>")

    body = WINDOWS_NEWLINE.join(lines) + WINDOWS_NEWLINE
    return header + body + settings.get_project_footer_template(project.language)


def render_solution(
    solution: SolutionDescriptor,
    settings: SynchronizationSettings | None = None,
) -> str:
    settings = settings or SynchronizationSettings()
    file_version, vs_version = ("10.00", "2008") if settings.visual_studio_version == 9 else ("11.00", "2010")

    project_entries = WINDOWS_NEWLINE.join(
        SOLUTION_PROJECT_ENTRY_TEMPLATE.format(
            type_guid=entry.type_guid,
            name=entry.name,
            project_file=entry.project_file,
            identity=entry.identity,
        )
        for entry in solution.entries
    )
    project_configurations = WINDOWS_NEWLINE.join(
        SOLUTION_PROJECT_CONFIGURATION_TEMPLATE.format(identity=entry.identity) for entry in solution.entries
    )
    return settings.solution_template.format(
        file_version=file_version,
        vs_version=vs_version,
        project_entries=project_entries,
        project_configurations=project_configurations,
    )
