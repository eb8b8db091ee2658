"""Tests for evidence validation and vote reconciliation."""

from pathlib import Path

import pytest

from lens_cli.quality.evidence import (
    evidence_dir,
    parse_checklist_rows,
    reconcile_votes,
    validate_evidence,
)

TABLE_HEADER = "| Location | Item | Verdict | Reasoning |\n|---|---|---|---|\n"


def _evidence(target: Path, name: str, rows: list[tuple[str, str, str, str]]) -> Path:
    directory = evidence_dir(target)
    directory.mkdir(parents=True, exist_ok=True)
    body = "".join(f"| {a} | {b} | {c} | {d} |\n" for a, b, c, d in rows)
    path = directory / name
    path.write_text(f"# {name}\n\n{TABLE_HEADER}{body}")
    return path


def _source(target: Path, rel: str, content: str) -> None:
    path = target / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


class TestParseChecklistRows:
    def test_rows_need_src_and_four_cells(self):
        text = (
            TABLE_HEADER
            + "| src/a.ts:3 | parse | PASS | checked |\n"
            + "| lib/b.ts:1 | other | PASS | not src |\n"
            + "| src/c.ts | short | PASS |\n"
            + "src/d.ts without pipes\n"
        )

        rows = parse_checklist_rows(text)

        assert len(rows) == 1
        assert rows[0].location == "src/a.ts:3"
        assert rows[0].verdict == "PASS"
        assert rows[0].reasoning == "checked"


class TestValidateEvidence:
    def test_complete_checklist(self, tmp_path: Path):
        _source(
            tmp_path,
            "src/api.ts",
            "export function load() {}\nexport async function save() {}\nexport const LIMIT = 3;\n",
        )
        _evidence(
            tmp_path,
            "refactor-4b.md",
            [("src/api.ts:1", "load", "PASS", "ok"), ("src/api.ts:2", "save", "PASS", "ok")],
        )

        report = validate_evidence("refactor", tmp_path)

        assert report.passed
        status = report.checklists[0]
        assert (status.checklist_id, status.reviewed, status.expected) == ("refactor-4b", 2, 2)

    def test_incomplete_checklist(self, tmp_path: Path):
        _source(
            tmp_path,
            "src/api.ts",
            "export function load() {}\nexport async function save() {}\nexport const LIMIT = 3;\n",
        )
        _evidence(tmp_path, "refactor-4a.md", [("src/api.ts:1", "load", "PASS", "ok")])

        report = validate_evidence("refactor", tmp_path)

        assert not report.passed
        status = report.checklists[0]
        assert status.expected == 3
        assert status.label == "exported functions + constants"

    def test_unknown_checklist_has_no_counter(self, tmp_path: Path):
        _evidence(tmp_path, "refactor-9z.md", [("src/a.ts:1", "x", "PASS", "ok")])
        _evidence(tmp_path, "gemini-6a.md", [])

        report = validate_evidence("refactor", tmp_path)

        assert report.passed
        assert [c.checklist_id for c in report.checklists] == ["refactor-9z"]
        assert report.checklists[0].expected is None

    def test_catch_block_counter(self, tmp_path: Path):
        _source(tmp_path, "src/io.ts", "try { a(); } catch (e) {}\ntry { b(); } catch(err) {}\n")
        _evidence(tmp_path, "codex-7a.md", [("src/io.ts:1", "a", "PASS", "ok")])

        report = validate_evidence("codex", tmp_path)

        assert report.checklists[0].expected == 2
        assert not report.passed

    def test_missing_evidence_dir(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError, match="No evidence directory"):
            validate_evidence("refactor", tmp_path)


class TestReconcileVotes:
    def test_disagreement_report(self, tmp_path: Path):
        _evidence(
            tmp_path,
            "gemini-6a.md",
            [("src/a.ts:10", "x", "PASS", "ok"), ("src/b.ts:2", "y", "FAIL", "bad")],
        )
        _evidence(
            tmp_path,
            "codex-7a.md",
            [("src/a.ts:12", "x", "FAIL", "leak"), ("src/b.ts:5", "y", "fail", "bad")],
        )

        result = reconcile_votes(tmp_path)

        assert not result.passed
        assert result.agreements == 1
        assert list(result.disagreements) == ["src/a.ts"]
        report = (evidence_dir(tmp_path) / "vote-disagreements.md").read_text()
        assert report.startswith("# Vote Disagreements")
        assert "| src/a.ts | codex-7a: FAIL, gemini-6a: PASS |" in report

    def test_single_reviews_are_ignored(self, tmp_path: Path):
        _evidence(tmp_path, "gemini-6a.md", [("src/a.ts:1", "x", "PASS", "ok")])
        _evidence(tmp_path, "codex-7a.md", [("src/b.ts:1", "y", "FAIL", "bad")])

        result = reconcile_votes(tmp_path)

        assert result.passed
        assert result.agreements == 0
        assert not (evidence_dir(tmp_path) / "vote-disagreements.md").exists()

    def test_missing_dir_passes(self, tmp_path: Path):
        assert reconcile_votes(tmp_path).passed
