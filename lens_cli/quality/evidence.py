"""Evidence checklist validation and vote reconciliation.

Review phases write Markdown checklists to `.claude/evidence/<id>.md`, one
table row per reviewed location:

    | src/cli.ts:12 | parseArgs | PASS | validated upstream |

Validation compares the number of rows with the number of matching sites
actually present in the target's sources. Reconciliation groups rows from
every checklist by location and reports items where phases disagree.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, NamedTuple

from lens_cli.config import state_dir
from lens_cli.quality.files import SOURCE_EXTENSIONS, Language, collect_source_files, read_text

EVIDENCE_DIR_NAME = "evidence"
DISAGREEMENTS_FILE = "vote-disagreements.md"
LINE_SUFFIX_RE = re.compile(r":\d+")


class EvidenceRow(NamedTuple):
    location: str
    item: str
    verdict: str
    reasoning: str


def evidence_dir(target: Path) -> Path:
    return state_dir(target) / EVIDENCE_DIR_NAME


def parse_checklist_rows(text: str) -> list[EvidenceRow]:
    """Table rows that reference a src/ location and have four cells."""
    rows: list[EvidenceRow] = []
    for line in text.split("\n"):
        if "|" not in line or "src/" not in line:
            continue
        cells = [c.strip() for c in line.split("|") if c.strip()]
        if len(cells) >= 4:
            rows.append(EvidenceRow(*cells[:4]))
    return rows


def _pattern_counter(pattern: str, flags: int = 0) -> Callable[[Path], int]:
    compiled = re.compile(pattern, flags)

    def count(target: Path) -> int:
        files = collect_source_files(target, SOURCE_EXTENSIONS[Language.TYPESCRIPT])
        return sum(len(compiled.findall(read_text(f))) for f in files)

    return count


@dataclass
class ChecklistCounter:
    """Counts the sites a checklist is expected to cover."""

    label: str
    count: Callable[[Path], int]


CHECKLIST_COUNTERS: dict[str, ChecklistCounter] = {
    "refactor-4a": ChecklistCounter(
        "exported functions + constants",
        _pattern_counter(r"^export\s+(?:const|function|async\s+function)", re.MULTILINE),
    ),
    "refactor-4b": ChecklistCounter(
        "exported functions",
        _pattern_counter(r"^export\s+(?:async\s+)?function\s", re.MULTILINE),
    ),
    "gemini-6a": ChecklistCounter(
        "error/log/throw/reject calls",
        _pattern_counter(r"console\.error|console\.log|throw\s+new\s+Error|reject\("),
    ),
    "gemini-6b": ChecklistCounter(
        "CLI arg reads, fs reads, env access",
        _pattern_counter(r"process\.argv|commander|\.option\(|fs\.readFile|process\.env\."),
    ),
    "codex-7a": ChecklistCounter("catch blocks", _pattern_counter(r"catch\s*\(")),
    "adversarial-9a": ChecklistCounter(
        "entry points",
        _pattern_counter(
            r"\.command\(|\.action\(|createReadStream|createWriteStream|readFileSync|writeFileSync"
        ),
    ),
}


@dataclass
class ChecklistStatus:
    """Coverage of one checklist.

    `expected` is None for checklist ids without a counter.
    """

    checklist_id: str
    reviewed: int
    expected: int | None = None
    label: str | None = None

    @property
    def complete(self) -> bool:
        return self.expected is None or self.reviewed >= self.expected


@dataclass
class EvidenceReport:
    phase: str
    checklists: list[ChecklistStatus] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(c.complete for c in self.checklists)


def validate_evidence(phase: str, target: Path) -> EvidenceReport:
    """Check every `<phase>-*.md` checklist against its site counter.

    Raises:
        FileNotFoundError: If the target has no evidence directory
    """
    directory = evidence_dir(target)
    if not directory.is_dir():
        msg = f"No evidence directory at {directory}"
        raise FileNotFoundError(msg)

    report = EvidenceReport(phase=phase)
    for path in sorted(directory.iterdir()):
        if not path.name.startswith(f"{phase}-") or path.suffix != ".md":
            continue
        checklist_id = path.stem
        reviewed = len(parse_checklist_rows(read_text(path)))
        counter = CHECKLIST_COUNTERS.get(checklist_id)
        if counter is None:
            report.checklists.append(ChecklistStatus(checklist_id, reviewed))
        else:
            report.checklists.append(
                ChecklistStatus(checklist_id, reviewed, counter.count(target), counter.label)
            )
    return report


@dataclass
class Review:
    phase: str
    verdict: str


@dataclass
class VoteReconciliation:
    """Agreement between phases that reviewed the same locations."""

    agreements: int = 0
    disagreements: dict[str, list[Review]] = field(default_factory=dict)
    report_path: Path | None = None

    @property
    def passed(self) -> bool:
        return not self.disagreements


def _disagreement_table(disagreements: dict[str, list[Review]]) -> str:
    lines = ["# Vote Disagreements", "", "| Location | Reviews |", "|----------|---------|"]
    for key, reviews in disagreements.items():
        joined = ", ".join(f"{r.phase}: {r.verdict}" for r in reviews)
        lines.append(f"| {key} | {joined} |")
    return "\n".join(lines)


def reconcile_votes(target: Path) -> VoteReconciliation:
    """Compare verdicts across all evidence checklists.

    Locations are keyed without their line suffix. Items reviewed at least
    twice with differing verdicts (case-insensitive) are written to
    `.claude/evidence/vote-disagreements.md`. A missing evidence directory
    means there is nothing to reconcile.
    """
    directory = evidence_dir(target)
    result = VoteReconciliation()
    if not directory.is_dir():
        return result

    items: dict[str, list[Review]] = {}
    for path in sorted(directory.glob("*.md")):
        if path.name == DISAGREEMENTS_FILE:
            continue
        for row in parse_checklist_rows(read_text(path)):
            key = LINE_SUFFIX_RE.sub("", row.location, count=1).strip()
            items.setdefault(key, []).append(Review(path.stem, row.verdict))

    for key, reviews in items.items():
        if len(reviews) < 2:
            continue
        if len({r.verdict.upper() for r in reviews}) > 1:
            result.disagreements[key] = reviews
        else:
            result.agreements += 1

    if result.disagreements:
        result.report_path = directory / DISAGREEMENTS_FILE
        result.report_path.write_text(_disagreement_table(result.disagreements), encoding="utf-8")
    return result
