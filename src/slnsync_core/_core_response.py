from __future__ import annotations

import shlex
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from ._core_constraints import is_valid_symbol_name

REFERENCE_OPTIONS = ("r", "reference")
DEFINE_OPTIONS = ("d", "define")
IGNORED_OPTIONS = (
    "nowarn",
    "warnaserror",
    "warnaserror+",
    "warnaserror-",
    "langversion",
    "nullable",
    "debug",
    "debug+",
    "debug-",
    "optimize",
    "optimize+",
    "optimize-",
    "nostdlib",
    "nostdlib+",
)


@dataclass(frozen=True)
class ResponseFileData:
    path: str
    defines: tuple[str, ...] = ()
    references: tuple[str, ...] = ()
    unsafe: bool = False
    errors: tuple[str, ...] = ()


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def _split_values(value: str) -> list[str]:
    parts: list[str] = []
    for chunk in value.replace(",", ";").split(";"):
        item = _strip_quotes(chunk.strip())
        if item:
            parts.append(item)
    return parts


def _resolve_reference(value: str, project_dir: Path, system_reference_dirs: Iterable[Path]) -> Path | None:
    candidate = Path(value)
    if candidate.is_absolute():
        return candidate if candidate.exists() else None
    for base in (project_dir, *system_reference_dirs):
        resolved = base / value
        if resolved.exists():
            return resolved
    return None


def tokenize_response_text(text: str) -> list[str]:
    tokens: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        tokens.extend(_strip_quotes(token) for token in shlex.split(stripped, posix=False))
    return tokens


def parse_response_file(
    path: Path,
    *,
    project_dir: Path,
    system_reference_dirs: Iterable[Path] = (),
) -> ResponseFileData:
    """Parse compiler options out of a ``csc.rsp``-style response file.

    Problems are collected in ``errors``; the entries that parsed are kept.
    """
    label = str(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        return ResponseFileData(path=label, errors=(f"Unable to read response file: {exc}",))

    system_dirs = tuple(system_reference_dirs)
    defines: list[str] = []
    references: list[str] = []
    errors: list[str] = []
    unsafe = False

    for token in tokenize_response_text(text):
        if token[:1] not in ("-", "/"):
            errors.append(f"Unexpected argument '{token}'")
            continue
        option, _, value = token[1:].partition(":")
        option = option.lower()

        if option in REFERENCE_OPTIONS:
            values = _split_values(value)
            if not values:
                errors.append(f"Option '{token}' requires a value")
            for item in values:
                resolved = _resolve_reference(item, project_dir, system_dirs)
                if resolved is None:
                    errors.append(f"Reference '{item}' not found")
                    continue
                references.append(str(resolved))
        elif option in DEFINE_OPTIONS:
            values = _split_values(value)
            if not values:
                errors.append(f"Option '{token}' requires a value")
            for item in values:
                if not is_valid_symbol_name(item):
                    errors.append(f"Invalid define symbol '{item}'")
                    continue
                defines.append(item)
        elif option in ("unsafe", "unsafe+"):
            unsafe = True
        elif option == "unsafe-":
            unsafe = False
        elif option in IGNORED_OPTIONS:
            continue
        else:
            errors.append(f"Unknown option '{token}'")

    return ResponseFileData(
        path=label,
        defines=tuple(defines),
        references=tuple(references),
        unsafe=unsafe,
        errors=tuple(errors),
    )
