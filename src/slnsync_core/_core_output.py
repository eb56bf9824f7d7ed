from __future__ import annotations

import difflib
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

DIFFERENCE_CONTEXT_LINES = 5
OUTPUT_ENCODING = "utf-8"

STATUS_WRITTEN = "written"
STATUS_SKIPPED = "skipped"
STATUS_DRIFT = "drift"
STATUS_WOULD_WRITE = "would_write"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class DifferenceReport:
    line_number: int
    current_lines: tuple[str, ...]
    new_lines: tuple[str, ...]

    def format(self, path: Path | str) -> str:
        lines = [
            f"Writing {path} because it has changed",
            f"First difference on line {self.line_number}",
            "",
            f"Current {path}:",
        ]
        for offset, line in enumerate(self.current_lines):
            lines.append(f"  {self.line_number + offset:03d}: {line}")
        lines.extend(["", f"New {path}:"])
        for offset, line in enumerate(self.new_lines):
            lines.append(f"  {self.line_number + offset:03d}: {line}")
        return "\n".join(lines)


@dataclass(frozen=True)
class WriteResult:
    path: Path
    status: str
    difference: DifferenceReport | None = None
    error: str | None = None
    diff: str = ""

    @property
    def changed(self) -> bool:
        return self.status in (STATUS_WRITTEN, STATUS_DRIFT, STATUS_WOULD_WRITE)


def compute_unified_diff(current: str, new: str, path: Path | str) -> str:
    """Unified diff of two generated texts, ignoring CRLF/LF differences."""
    return "\n".join(
        difflib.unified_diff(
            current.splitlines(),
            new.splitlines(),
            fromfile=f"a/{path}",
            tofile=f"b/{path}",
            lineterm="",
        )
    )


def first_difference(current: str, new: str) -> DifferenceReport | None:
    """Locate the first line where ``current`` and ``new`` diverge.

    Line terminators take part in the comparison, so a CRLF/LF change is
    reported on the line it happens. A text that ends early diverges on the
    line after its last one.
    """
    current_lines = current.splitlines(keepends=True)
    new_lines = new.splitlines(keepends=True)
    for index in range(max(len(current_lines), len(new_lines))):
        old_line = current_lines[index] if index < len(current_lines) else None
        new_line = new_lines[index] if index < len(new_lines) else None
        if old_line == new_line:
            continue
        end = index + DIFFERENCE_CONTEXT_LINES
        return DifferenceReport(
            line_number=index + 1,
            current_lines=tuple(line.rstrip("\r\n") for line in current_lines[index:end]),
            new_lines=tuple(line.rstrip("\r\n") for line in new_lines[index:end]),
        )
    return None


def read_bytes_if_exists(path: Path) -> bytes | None:
    if not path.exists():
        return None
    return path.read_bytes()


def write_if_changed(path: Path, content: str, *, check: bool = False, dry_run: bool = False) -> WriteResult:
    """Write ``content`` to ``path`` unless the file already holds the same bytes.

    In ``check`` mode a difference is reported as drift and nothing is
    written; ``dry_run`` reports what would be written.
    """
    payload = content.encode(OUTPUT_ENCODING)
    current = read_bytes_if_exists(path)
    if current == payload:
        return WriteResult(path=path, status=STATUS_SKIPPED)

    difference = None
    current_text = ""
    if current is not None:
        current_text = current.decode(OUTPUT_ENCODING, errors="replace")
        difference = first_difference(current_text, content)
    diff = compute_unified_diff(current_text, content, path)
    if check:
        return WriteResult(path=path, status=STATUS_DRIFT, difference=difference, diff=diff)
    if dry_run:
        return WriteResult(path=path, status=STATUS_WOULD_WRITE, difference=difference, diff=diff)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)
    return WriteResult(path=path, status=STATUS_WRITTEN, difference=difference, diff=diff)


def write_outputs(
    outputs: Iterable[tuple[Path, str]],
    *,
    check: bool = False,
    dry_run: bool = False,
) -> list[WriteResult]:
    results: list[WriteResult] = []
    for path, content in outputs:
        try:
            results.append(write_if_changed(path, content, check=check, dry_run=dry_run))
        except (OSError, UnicodeError) as exc:
            results.append(WriteResult(path=path, status=STATUS_FAILED, error=str(exc)))
    return results


def write_if_absent(path: Path, content: str, *, dry_run: bool = False) -> WriteResult:
    if path.exists():
        return WriteResult(path=path, status=STATUS_SKIPPED)
    if dry_run:
        return WriteResult(path=path, status=STATUS_WOULD_WRITE)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content.encode(OUTPUT_ENCODING))
    except (OSError, UnicodeError) as exc:
        return WriteResult(path=path, status=STATUS_FAILED, error=str(exc))
    return WriteResult(path=path, status=STATUS_WRITTEN)
