from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))
from slnsync_core import core as slnsync  # noqa: E402


def unit(name: str, files: list[str], **kwargs: object) -> slnsync.CompiledUnit:
    return slnsync.CompiledUnit(
        name=name,
        output=f"Library/ScriptAssemblies/{name}.dll",
        files=tuple(files),
        **kwargs,  # type: ignore[arg-type]
    )


class ProjectGraphBuilderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.project_dir = Path(self.temp_dir.name).resolve()
        self.settings = slnsync.SyncSettings(project_dir=self.project_dir, project_name="Demo")
        self.descriptors = {
            "Core": slnsync.create_assembly_descriptor("Core", "Assets/Core"),
            "Core.Tests": slnsync.AssemblyDescriptor(
                name="Core.Tests",
                path_prefix="Assets/Tests/",
                optional_references=slnsync.OptionalReferences.TEST_ASSEMBLIES,
            ),
        }
        self.core = unit("Core", ["Assets/Core/A.cs", "Assets/Core/Core.asmdef"])
        self.tests = unit(
            "Core.Tests",
            ["Assets/Tests/T.cs"],
            references=("Library/ScriptAssemblies/Core.dll", "Library/ScriptAssemblies/UnityEngine.dll"),
        )

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _builder(self, settings: slnsync.SyncSettings | None = None, probe=lambda path: True) -> slnsync.ProjectGraphBuilder:
        return slnsync.ProjectGraphBuilder(settings or self.settings, descriptors=self.descriptors, probe=probe)

    def _editor_context(self, include_tests: bool) -> slnsync.BuildContext:
        return slnsync.BuildContext.create(
            target="Editor",
            building_for_editor=True,
            include_test_assemblies=include_tests,
            defines=["UNITY_EDITOR"],
        )

    def test_test_assembly_dropped_when_tests_disabled(self) -> None:
        result = self._builder().build([self.core, self.tests], self._editor_context(False))
        self.assertEqual([project.name for project in result.projects], ["Core"])
        self.assertIn("Core.Tests", result.excluded)
        self.assertEqual([entry.name for entry in result.solution.entries], ["Core"])

    def test_test_assembly_links_to_core_when_tests_enabled(self) -> None:
        result = self._builder().build([self.tests, self.core], self._editor_context(True))
        self.assertEqual([project.name for project in result.projects], ["Core", "Core.Tests"])

        tests_project = result.project("Core.Tests")
        assert tests_project is not None
        self.assertEqual(len(tests_project.project_references), 1)
        link = tests_project.project_references[0]
        self.assertEqual(link.identity, slnsync.guid_for_project("Demo", "Core"))
        self.assertEqual(link.project_file, "Core.csproj")
        self.assertEqual(tests_project.references, ())

    def test_reference_to_filtered_out_unit_is_dropped(self) -> None:
        empty_core = unit("Core", ["Assets/Core/readme.txt"])
        result = self._builder().build([empty_core, self.tests], self._editor_context(True))
        self.assertEqual([project.name for project in result.projects], ["Core.Tests"])
        tests_project = result.project("Core.Tests")
        assert tests_project is not None
        self.assertEqual(tests_project.project_references, ())
        self.assertEqual(tests_project.references, ())

    def test_member_files_are_split_and_filtered(self) -> None:
        settings = slnsync.SyncSettings(
            project_dir=self.project_dir,
            project_name="Demo",
            user_extensions=(".txt",),
            embedded_packages=("com.demo.embedded",),
        )
        game = unit(
            "Game",
            [
                "Assets/Game/B.cs",
                "Assets/Game/A.cs",
                "Assets/Game/B.cs",
                "Assets/Game/notes.txt",
                "Assets/Game/image.png",
                "Assets/Game/Game.asmdef",
                "Packages/com.demo.embedded/Runtime/E.cs",
                "Packages/com.vendor.remote/Runtime/R.cs",
                "Library/PackageCache/com.vendor.cached@1.0.0/C.cs",
                "Assets/Plugins/Json.dll",
            ],
        )
        result = self._builder(settings).build([game], self._editor_context(False))
        project = result.projects[0]
        self.assertEqual(
            project.compile_files,
            ("Assets/Game/B.cs", "Assets/Game/A.cs", "Assets/Game/notes.txt", "Packages/com.demo.embedded/Runtime/E.cs"),
        )
        self.assertEqual(project.asset_files, ("Assets/Game/Game.asmdef",))
        self.assertEqual(project.references, (str(self.project_dir / "Assets/Plugins/Json.dll"),))

    def test_absolute_package_members_are_filtered(self) -> None:
        member = "Packages/com.foo/Runtime/A.cs"
        relative = unit("PkgRel", [member])
        absolute = unit("PkgAbs", [str(self.project_dir / member)])
        result = self._builder().build([relative, absolute], self._editor_context(False))
        self.assertEqual(result.projects, [])
        self.assertEqual(result.excluded["PkgAbs"], "no files belong to the solution")
        self.assertEqual(result.excluded["PkgRel"], "no files belong to the solution")

    def test_missing_binary_reference_is_reported(self) -> None:
        game = unit("Game", ["Assets/Game/A.cs"], references=("Assets/Plugins/Missing.dll",))
        result = self._builder(probe=lambda path: False).build([game], self._editor_context(False))
        self.assertEqual(result.projects[0].references, ())
        self.assertTrue(any("Missing.dll" in warning for warning in result.warnings))

    def test_internal_references_only_for_editor_projects(self) -> None:
        internal_root = self.project_dir / "Internal"
        settings = slnsync.SyncSettings(
            project_dir=self.project_dir,
            project_name="Demo",
            internal_library_roots=(str(internal_root),),
        )
        references = (
            str(internal_root / "UnityEditor.Graphs.dll"),
            str(internal_root / "Other" / "UnityEditor.Graphs.dll"),
            str(internal_root / "UnityEditor.Secret.dll"),
        )
        editor_unit = slnsync.CompiledUnit(
            name="Tools-Editor",
            output="Library/ScriptAssemblies/Tools-Editor.dll",
            files=("Assets/Editor/Tool.cs",),
            references=references,
        )
        player_unit = unit("Runtime", ["Assets/Runtime/R.cs"], references=references)

        result = self._builder(settings).build([editor_unit, player_unit], self._editor_context(False))
        self.assertEqual(result.project("Tools-Editor").references, (references[0],))  # type: ignore[union-attr]
        self.assertEqual(result.project("Runtime").references, ())  # type: ignore[union-attr]

    def test_defines_and_response_file_data(self) -> None:
        rsp = self.project_dir / "Assets" / "csc.rsp"
        rsp.parent.mkdir(parents=True)
        rsp.write_text("-define:EXTRA;DEBUG\n-unsafe\n-r:Missing.dll\n-bogus\n", encoding="utf-8")
        game = unit(
            "Game",
            ["Assets/Game/A.cs"],
            defines=("UNITY_EDITOR", "TRACE"),
            response_files=("Assets/csc.rsp",),
        )

        result = self._builder().build([game], self._editor_context(False))
        project = result.projects[0]
        self.assertEqual(project.defines, ("DEBUG", "TRACE", "UNITY_EDITOR", "EXTRA"))
        self.assertTrue(project.allow_unsafe_code)
        self.assertIn(f"{rsp} Parse Error : Reference 'Missing.dll' not found", result.warnings)
        self.assertIn(f"{rsp} Parse Error : Unknown option '-bogus'", result.warnings)

    def test_loose_assets_attach_to_owner(self) -> None:
        result = self._builder().build(
            [self.core],
            self._editor_context(False),
            asset_entries={"Core": ["Assets/Core/View.uxml"], "Other": ["Assets/Other/X.uss"]},
        )
        self.assertEqual(result.projects[0].asset_files, ("Assets/Core/Core.asmdef", "Assets/Core/View.uxml"))

    def test_duplicate_outputs_are_rejected(self) -> None:
        twin = slnsync.CompiledUnit(name="CoreTwin", output="Temp/Core.dll", files=("Assets/Twin/A.cs",))
        with self.assertRaises(slnsync.ConfigurationError):
            self._builder().build([self.core, twin], self._editor_context(False))

    def test_legacy_language_depends_on_editor_flavor(self) -> None:
        script = unit("Legacy", ["Assets/Legacy/a.cs"], language="js")
        default_result = self._builder().build([script], self._editor_context(False))
        self.assertEqual(default_result.projects, [])

        rider = slnsync.SyncSettings(
            project_dir=self.project_dir, project_name="Demo", script_editor="rider", supports_unity_proj=True
        )
        rider_result = self._builder(rider).build([script], self._editor_context(False))
        self.assertEqual(rider_result.projects[0].project_file, "Legacy.unityproj")
        self.assertEqual(
            rider_result.solution.entries[0].type_guid, slnsync.guid_for_solution("Demo", "js")
        )

    def test_output_is_independent_of_unit_order(self) -> None:
        context = self._editor_context(True)
        forward = self._builder().build([self.core, self.tests], context)
        backward = self._builder().build([self.tests, self.core], context)
        self.assertEqual(slnsync.render_solution(forward.solution), slnsync.render_solution(backward.solution))
        self.assertEqual(
            [slnsync.render_project(project) for project in forward.projects],
            [slnsync.render_project(project) for project in backward.projects],
        )

    def test_project_extension_lookup(self) -> None:
        self.assertEqual(slnsync.get_project_extension(slnsync.ScriptingLanguage.CSHARP), ".csproj")
        self.assertEqual(slnsync.get_project_extension(slnsync.ScriptingLanguage.NONE), ".csproj")
        self.assertEqual(slnsync.get_project_extension(slnsync.ScriptingLanguage.BOO), ".booproj")
        with self.assertRaises(slnsync.ConfigurationError):
            slnsync.get_project_extension("Fortran")


class FileFilterTests(unittest.TestCase):
    def test_filter_rules(self) -> None:
        settings = slnsync.SyncSettings(project_dir=Path("/project"), embedded_packages=("com.local",))
        file_filter = slnsync.FileFilter(settings)
        self.assertTrue(file_filter.should_include("Assets/A.cs"))
        self.assertTrue(file_filter.should_include("Assets/Shaders/Lit.shader"))
        self.assertTrue(file_filter.should_include("Assets/Core.asmref"))
        self.assertTrue(file_filter.should_include("Packages/com.local/A.cs"))
        self.assertFalse(file_filter.should_include("Packages/com.remote/A.cs"))
        self.assertFalse(file_filter.should_include("Assets/readme.txt"))
        self.assertFalse(file_filter.should_include("Assets/image.png"))

    def test_absolute_paths_are_made_project_relative(self) -> None:
        settings = slnsync.SyncSettings(project_dir=Path("/project"), embedded_packages=("com.local",))
        file_filter = slnsync.FileFilter(settings)
        self.assertEqual(file_filter.relative_path("/project/Assets/A.cs"), "Assets/A.cs")
        self.assertFalse(file_filter.should_include("/project/Packages/com.remote/A.cs"))
        self.assertTrue(file_filter.should_include("/project/Packages/com.local/A.cs"))
        self.assertTrue(file_filter.should_include("/elsewhere/Packages/com.remote/A.cs"))


if __name__ == "__main__":
    unittest.main()
