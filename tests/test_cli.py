from __future__ import annotations

import argparse
import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))
from slnsync_core import cli  # noqa: E402
from slnsync_core import core as slnsync  # noqa: E402
from slnsync_core.commands import command_generate, command_sync_if_needed  # noqa: E402


def write_json_file(path: Path, payload: dict[str, object]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


class CommandLineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.repo_root = Path(self.temp_dir.name).resolve()
        self.config_path = self.repo_root / "slnsync.json"

        write_json_file(
            self.config_path,
            {
                "project_name": "Demo",
                "context": {
                    "target": "Editor",
                    "include_test_assemblies": False,
                    "defines": ["UNITY_EDITOR"],
                },
                "inputs": {
                    "units_manifest": "units.json",
                    "assembly_definitions": ["Assets/**/*.asmdef"],
                },
            },
        )
        write_json_file(
            self.repo_root / "units.json",
            {
                "units": [
                    {
                        "name": "Core",
                        "output": "Library/ScriptAssemblies/Core.dll",
                        "files": ["Assets/Core/A.cs"],
                    },
                    {
                        "name": "Core.Tests",
                        "output": "Library/ScriptAssemblies/Core.Tests.dll",
                        "files": ["Assets/Tests/T.cs"],
                        "references": ["Library/ScriptAssemblies/Core.dll"],
                    },
                ],
                "asset_paths": [],
            },
        )
        write_json_file(self.repo_root / "Assets" / "Core" / "Core.asmdef", {"name": "Core"})
        write_json_file(
            self.repo_root / "Assets" / "Tests" / "Core.Tests.asmdef",
            {"name": "Core.Tests", "optionalUnityReferences": ["TestAssemblies"]},
        )

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _generate_args(self, **overrides: object) -> argparse.Namespace:
        values: dict[str, object] = {
            "repo_root": str(self.repo_root),
            "config": str(self.config_path),
            "target": None,
            "building_for_editor": None,
            "include_tests": None,
            "define": None,
            "dry_run": False,
            "check": False,
            "print_diff": False,
            "diff_format": "first",
            "verbose": False,
            "report_json": None,
        }
        values.update(overrides)
        return argparse.Namespace(**values)

    def _run(self, func, args: argparse.Namespace) -> tuple[int, str]:
        buffer = io.StringIO()
        with contextlib.redirect_stdout(buffer):
            exit_code = func(args)
        return exit_code, buffer.getvalue()

    def test_generate_excludes_test_assemblies_by_default(self) -> None:
        exit_code, output = self._run(command_generate, self._generate_args())

        self.assertEqual(exit_code, 0)
        self.assertIn("[Demo] generate: projects=1 excluded=1", output)
        self.assertTrue((self.repo_root / "Demo.sln").exists())
        self.assertTrue((self.repo_root / "Core.csproj").exists())
        self.assertFalse((self.repo_root / "Core.Tests.csproj").exists())

    def test_generate_with_tests_links_projects(self) -> None:
        exit_code, _ = self._run(command_generate, self._generate_args(include_tests=True))

        self.assertEqual(exit_code, 0)
        tests_text = (self.repo_root / "Core.Tests.csproj").read_text(encoding="utf-8")
        core_guid = slnsync.guid_for_project("Demo", "Core")
        self.assertIn(f"<Project>{{{core_guid}}}</Project>", tests_text)

    def test_check_detects_drift(self) -> None:
        self._run(command_generate, self._generate_args())
        exit_code, _ = self._run(command_generate, self._generate_args(check=True))
        self.assertEqual(exit_code, 0)

        (self.repo_root / "Core.csproj").write_text("stale\r\n", encoding="utf-8")
        exit_code, output = self._run(command_generate, self._generate_args(check=True, print_diff=True))
        self.assertEqual(exit_code, 1)
        self.assertIn("[Core.csproj] drift", output)
        self.assertIn("First difference on line 1", output)

    def test_check_prints_unified_diff(self) -> None:
        self._run(command_generate, self._generate_args())
        (self.repo_root / "Core.csproj").write_text("stale\r\n", encoding="utf-8")

        exit_code, output = self._run(
            command_generate,
            self._generate_args(check=True, print_diff=True, diff_format="unified"),
        )

        self.assertEqual(exit_code, 1)
        self.assertIn("[Core.csproj] drift", output)
        self.assertIn("-stale", output)
        self.assertIn("+++ b/", output)
        self.assertNotIn("First difference on line", output)

    def test_report_json_lists_writes(self) -> None:
        report_path = self.repo_root / "out" / "report.json"
        self._run(command_generate, self._generate_args(report_json=str(report_path), verbose=True))

        report = json.loads(report_path.read_text(encoding="utf-8"))
        self.assertEqual(report["solution"], "Demo")
        self.assertEqual([item["path"] for item in report["writes"]], ["Demo.sln", "Core.csproj"])
        self.assertIn("Core.Tests", report["excluded"])

    def test_sync_if_needed_skips_without_solution(self) -> None:
        args = argparse.Namespace(
            repo_root=str(self.repo_root),
            config=str(self.config_path),
            target=None,
            building_for_editor=None,
            include_tests=None,
            define=None,
            changed=["Assets/Core/A.cs"],
            reimported=None,
            print_diff=False,
        )
        exit_code, output = self._run(command_sync_if_needed, args)
        self.assertEqual(exit_code, 0)
        self.assertIn("skipped", output)
        self.assertFalse((self.repo_root / "Demo.sln").exists())

        self._run(command_generate, self._generate_args())
        exit_code, output = self._run(command_sync_if_needed, args)
        self.assertEqual(exit_code, 0)
        self.assertIn("[Demo] sync: regenerated", output)

    def test_main_reports_configuration_errors(self) -> None:
        write_json_file(self.config_path, {"context": {"defines": []}})
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr), contextlib.redirect_stdout(io.StringIO()):
            exit_code = cli.main(["generate", "--repo-root", str(self.repo_root), "--config", str(self.config_path)])
        self.assertEqual(exit_code, 2)
        self.assertIn("slnsync error:", stderr.getvalue())

    def test_main_guid_command(self) -> None:
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            exit_code = cli.main(["guid", "--project-name", "Demo", "--assembly", "Core.dll"])
        self.assertEqual(exit_code, 0)
        self.assertEqual(stdout.getvalue().strip(), slnsync.guid_for_project("Demo", "Core"))

    def test_main_check_compat(self) -> None:
        asmdef = self.repo_root / "Assets" / "Android" / "AndroidOnly.asmdef"
        write_json_file(asmdef, {"name": "AndroidOnly", "includePlatforms": ["Android"]})

        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            exit_code = cli.main(
                [
                    "check-compat",
                    "--repo-root",
                    str(self.repo_root),
                    "--asmdef",
                    str(asmdef),
                    "--target",
                    "WebGL",
                    "--define",
                    "FOO",
                    "--fail-on-incompatible",
                ]
            )
        self.assertEqual(exit_code, 1)
        self.assertIn("[AndroidOnly] incompatible", stdout.getvalue())

    def test_main_check_compat_json(self) -> None:
        asmdef = self.repo_root / "Assets" / "Android" / "AndroidOnly.asmdef"
        write_json_file(asmdef, {"name": "AndroidOnly", "includePlatforms": ["Android"]})

        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            exit_code = cli.main(
                [
                    "check-compat",
                    "--repo-root",
                    str(self.repo_root),
                    "--asmdef",
                    str(asmdef),
                    "--target",
                    "Android",
                    "--define",
                    "FOO",
                    "--json",
                ]
            )
        self.assertEqual(exit_code, 0)
        payload = json.loads(stdout.getvalue())
        self.assertEqual(payload["context"]["target"], "Android")
        entry = payload["assemblies"][0]
        self.assertTrue(entry["compatible"])
        self.assertEqual(entry["assembly"]["name"], "AndroidOnly")
        self.assertEqual(entry["assembly"]["include_platforms"], ["Android"])

    def test_main_list_platforms(self) -> None:
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            exit_code = cli.main(["list-platforms", "--json"])
        self.assertEqual(exit_code, 0)
        payload = json.loads(stdout.getvalue())
        self.assertEqual(payload["platforms"][0]["name"], "Editor")
        self.assertIn("PSVita", payload["deprecated"])


if __name__ == "__main__":
    unittest.main()
