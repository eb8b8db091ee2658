"""Construction checks.

A plan file can list what a build step must produce under a
`## CONSTRUCTION_CHECKS` heading:

    ## CONSTRUCTION_CHECKS
    - FILE: src/index.ts
    - EXPORT_FUNCTION: parseArgs IN src/cli.ts
    - EXPORT_TYPE: Options IN src/types.ts

Each entry is verified against the project directory.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from lens_cli.quality.files import read_text

SECTION_RE = re.compile(r"^##\s*CONSTRUCTION_CHECKS", re.IGNORECASE)
HEADING_RE = re.compile(r"^##\s")
FILE_RE = re.compile(r"^-\s*FILE:\s*(.+)", re.IGNORECASE)
FUNCTION_RE = re.compile(r"^-\s*EXPORT_FUNCTION:\s*(\w+)\s+IN\s+(.+)", re.IGNORECASE)
TYPE_RE = re.compile(r"^-\s*EXPORT_TYPE:\s*(\w+)\s+IN\s+(.+)", re.IGNORECASE)


class CheckKind(Enum):
    FILE = "file"
    EXPORT_FUNCTION = "export_function"
    EXPORT_TYPE = "export_type"


@dataclass
class ConstructionCheck:
    kind: CheckKind
    name: str
    file: str | None = None

    def describe(self) -> str:
        detail = f"{self.name} in {self.file}" if self.file else self.name
        return f"{self.kind.value} {detail}"


@dataclass
class ConstructionResult:
    check: ConstructionCheck
    found: bool


def parse_construction_checks(plan_text: str) -> list[ConstructionCheck]:
    """Entries of the CONSTRUCTION_CHECKS section, in order."""
    checks: list[ConstructionCheck] = []
    in_section = False
    for line in plan_text.split("\n"):
        if SECTION_RE.search(line):
            in_section = True
            continue
        if not in_section:
            continue
        if HEADING_RE.search(line):
            break

        if match := FILE_RE.search(line):
            checks.append(ConstructionCheck(CheckKind.FILE, match.group(1).strip()))
        elif match := FUNCTION_RE.search(line):
            checks.append(
                ConstructionCheck(CheckKind.EXPORT_FUNCTION, match.group(1), match.group(2).strip())
            )
        elif match := TYPE_RE.search(line):
            checks.append(
                ConstructionCheck(CheckKind.EXPORT_TYPE, match.group(1), match.group(2).strip())
            )
    return checks


def _exports(check: ConstructionCheck, content: str) -> bool:
    name = re.escape(check.name)
    if check.kind is CheckKind.EXPORT_FUNCTION:
        return bool(
            re.search(rf"export\s+(?:async\s+)?function\s+{name}\b", content)
            or re.search(rf"export\s+const\s+{name}\s*=", content)
        )
    return bool(re.search(rf"export\s+(?:type|interface)\s+{name}\b", content))


def _is_present(check: ConstructionCheck, project_dir: Path) -> bool:
    if check.kind is CheckKind.FILE:
        return (project_dir / check.name).exists()
    if not check.file:
        return False
    file_path = project_dir / check.file
    return file_path.is_file() and _exports(check, read_text(file_path))


def validate_construction(plan_path: Path, project_dir: Path) -> tuple[bool, list[ConstructionResult]]:
    """Verify every construction check in a plan file.

    Returns:
        (passed, results); passed is True when every item was found

    Raises:
        FileNotFoundError: If the plan file does not exist
    """
    checks = parse_construction_checks(plan_path.read_text(encoding="utf-8"))
    results = [ConstructionResult(check, _is_present(check, project_dir)) for check in checks]
    return all(r.found for r in results), results
