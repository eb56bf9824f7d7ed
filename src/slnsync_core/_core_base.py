from __future__ import annotations

import glob
import json
from pathlib import Path, PurePosixPath
from typing import Any

import jsonschema

TOOL_VERSION = "1.0.0"
WINDOWS_NEWLINE = "\r\n"


class SlnSyncError(Exception):
    pass


class ConfigurationError(SlnSyncError, ValueError):
    pass


def load_json(path: Path) -> dict[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise SlnSyncError(f"Unable to read JSON file '{path}': {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON in '{path}': {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError(f"JSON root in '{path}' must be an object")
    return payload


def write_json(path: Path, value: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(value, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def get_schema_path(kind: str) -> Path:
    base = Path(__file__).resolve().parent / "schemas"
    mapping = {
        "config": base / "config.schema.json",
        "units": base / "units.schema.json",
        "asmdef": base / "asmdef.schema.json",
    }
    if kind not in mapping:
        raise SlnSyncError(f"Unknown schema kind: {kind}")
    return mapping[kind]


def validate_with_schema(kind: str, payload: dict[str, Any], label: str) -> None:
    schema_payload = load_json(get_schema_path(kind))
    try:
        jsonschema.validate(payload, schema_payload)
    except jsonschema.ValidationError as exc:
        location = "/".join(str(part) for part in exc.absolute_path) or "<root>"
        raise ConfigurationError(f"{label} failed JSON schema validation at '{location}': {exc.message}") from exc


def ensure_relative_path(root: Path, value: str) -> Path:
    path = Path(value)
    if path.is_absolute():
        return path
    return root / path


def to_repo_relative(path: Path, repo_root: Path) -> str:
    try:
        return str(path.resolve().relative_to(repo_root.resolve()))
    except ValueError:
        return str(path.resolve())


def iter_files_from_entries(root: Path, entries: list[str], suffix: str) -> list[Path]:
    paths: list[Path] = []
    seen: set[Path] = set()

    for entry in entries:
        expanded: list[Path] = []
        entry_path = ensure_relative_path(root, entry)

        if any(ch in entry for ch in "*?[]"):
            for match in glob.glob(str(entry_path), recursive=True):
                expanded.append(Path(match))
        elif entry_path.is_dir():
            expanded.extend(entry_path.rglob(f"*{suffix}"))
        elif entry_path.is_file():
            expanded.append(entry_path)

        for candidate in expanded:
            if not candidate.is_file() or candidate.suffix.lower() != suffix:
                continue
            resolved = candidate.resolve()
            if resolved not in seen:
                seen.add(resolved)
                paths.append(resolved)

    return sorted(paths)


def normalize_string_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigurationError(f"Field '{key}' must be an array when specified.")
    out: list[str] = []
    for idx, item in enumerate(value):
        if not isinstance(item, str):
            raise ConfigurationError(f"Field '{key}[{idx}]' must be a string.")
        out.append(item)
    return out


def unity_separators(path: str) -> str:
    return path.replace("\\", "/")


def windows_separators(path: str) -> str:
    return path.replace("/", "\\")


def file_name(path: str) -> str:
    return PurePosixPath(unity_separators(path)).name


def file_name_without_extension(path: str) -> str:
    name = file_name(path)
    dot = name.rfind(".")
    if dot <= 0:
        return name
    return name[:dot]


def extension_of(path: str) -> str:
    """Return the lower-case extension of ``path`` including the leading dot, or ``""``."""
    name = file_name(path)
    dot = name.rfind(".")
    if dot <= 0:
        return ""
    return name[dot:].lower()


def dedupe(values: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        out.append(value)
    return out
