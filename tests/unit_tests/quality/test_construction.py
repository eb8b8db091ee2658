"""Tests for construction checks."""

from pathlib import Path

import pytest

from lens_cli.quality.construction import (
    CheckKind,
    parse_construction_checks,
    validate_construction,
)

PLAN = """# Plan

## Goals
- FILE: not/in/section.ts

## CONSTRUCTION_CHECKS
- FILE: src/index.ts
- export_function: parseArgs IN src/cli.ts
- EXPORT_FUNCTION: runMain IN src/cli.ts
- EXPORT_TYPE: Options IN src/types.ts
- something else

## Notes
- FILE: after/section.ts
"""


class TestParseConstructionChecks:
    def test_section_only(self):
        checks = parse_construction_checks(PLAN)

        assert [(c.kind, c.name, c.file) for c in checks] == [
            (CheckKind.FILE, "src/index.ts", None),
            (CheckKind.EXPORT_FUNCTION, "parseArgs", "src/cli.ts"),
            (CheckKind.EXPORT_FUNCTION, "runMain", "src/cli.ts"),
            (CheckKind.EXPORT_TYPE, "Options", "src/types.ts"),
        ]

    def test_no_section(self):
        assert parse_construction_checks("# Plan\n- FILE: a.ts\n") == []

    def test_describe(self):
        checks = parse_construction_checks(PLAN)
        assert checks[0].describe() == "file src/index.ts"
        assert checks[1].describe() == "export_function parseArgs in src/cli.ts"


class TestValidateConstruction:
    def _project(self, root: Path) -> Path:
        src = root / "proj" / "src"
        src.mkdir(parents=True)
        (src / "index.ts").write_text("export * from './cli';\n")
        (src / "cli.ts").write_text(
            "export async function parseArgs(argv: string[]) {}\n"
            "export const runMainLater = () => {};\n"
        )
        (src / "types.ts").write_text("export interface Options {}\n")
        return root / "proj"

    def test_reports_missing_items(self, tmp_path: Path):
        project = self._project(tmp_path)
        plan = tmp_path / "plan.md"
        plan.write_text(PLAN)

        passed, results = validate_construction(plan, project)

        assert not passed
        assert [r.found for r in results] == [True, True, False, True]

    def test_all_present(self, tmp_path: Path):
        project = self._project(tmp_path)
        (project / "src" / "cli.ts").write_text(
            "export function parseArgs() {}\nexport const runMain = () => {};\n"
        )
        plan = tmp_path / "plan.md"
        plan.write_text(PLAN)

        passed, _ = validate_construction(plan, project)

        assert passed

    def test_missing_plan(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            validate_construction(tmp_path / "missing.md", tmp_path)
