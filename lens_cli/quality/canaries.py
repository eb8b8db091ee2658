"""Canary insertion and validation.

A review phase is tested by planting a few known defects in the target's
TypeScript sources before it runs, then checking afterwards whether each
one was removed. Planted lines are marked with `// CANARY:<category>` and
tracked in `.claude/canary-manifest.json` so files can be restored.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field

from lens_cli.config import state_dir
from lens_cli.quality.files import (
    SOURCE_EXTENSIONS,
    Language,
    collect_source_files,
    read_lines,
    relative_to,
)

logger = logging.getLogger(__name__)

MANIFEST_NAME = "canary-manifest.json"
MARKER_PREFIX = "// CANARY:"
EXEC_IMPORT = 'import { exec } from "child_process";'

CANARY_TEMPLATES: dict[str, str] = {
    "naming": "export function process(d: any) { return d; }",
    "security": EXEC_IMPORT + "\nexec(`echo ${input}`);",
    "secrets": 'const apiKey = "sk-canary-test-00000";',
    "types": "export function load(config: any): void {}",
    "complexity": "if (a) { if (b) { if (c) { if (d) { /* canary */ } } } }",
}

MIN_CANARIES = 3
MAX_CANARIES = 5


class CanaryEntry(BaseModel):
    """One planted canary."""

    file: str
    line: int
    category: str
    original: str
    inserted: str


class CanaryManifest(BaseModel):
    """Canaries planted for a phase."""

    phase: str
    timestamp: str
    canaries: list[CanaryEntry] = Field(default_factory=list)


@dataclass
class CanaryOutcome:
    """Whether a review phase removed a planted canary."""

    category: str
    location: str
    caught: bool
    file_removed: bool = False


@dataclass
class CanaryValidation:
    """Result of validating a phase against its manifest."""

    phase: str
    outcomes: list[CanaryOutcome] = field(default_factory=list)

    @property
    def missed(self) -> int:
        return sum(1 for o in self.outcomes if not o.caught)

    @property
    def passed(self) -> bool:
        return self.missed == 0


def manifest_path(target: Path) -> Path:
    return state_dir(target) / MANIFEST_NAME


def _insertion_index(lines: list[str]) -> int:
    """Index of the last non-blank, non-comment line inside braces."""
    insert_at = -1
    depth = 0
    for i, line in enumerate(lines):
        depth += line.count("{") - line.count("}")
        stripped = line.strip()
        if depth > 0 and stripped and not stripped.startswith("//"):
            insert_at = i
    if insert_at == -1:
        insert_at = min(5, len(lines))
    return insert_at


def _plant(file_path: Path, category: str) -> CanaryEntry:
    lines = read_lines(file_path)
    insert_at = _insertion_index(lines)
    template = CANARY_TEMPLATES[category]
    original = lines[insert_at] if insert_at < len(lines) else ""

    if category == "security" and not any("child_process" in line for line in lines):
        lines.insert(0, EXEC_IMPORT)
        insert_at += 1

    lines[insert_at + 1 : insert_at + 1] = [f"{MARKER_PREFIX}{category}", template]
    file_path.write_text("\n".join(lines), encoding="utf-8")

    return CanaryEntry(
        file=str(file_path),
        line=insert_at + 1,
        category=category,
        original=original,
        inserted=template,
    )


def insert_canaries(phase: str, target: Path, rng: random.Random | None = None) -> CanaryManifest:
    """Plant 3 to 5 canaries of distinct categories in the target's sources.

    Args:
        phase: Name of the review phase about to run
        target: Project directory
        rng: Random source, injectable for deterministic tests

    Returns:
        The manifest written to .claude/canary-manifest.json

    Raises:
        ValueError: If the target has no eligible TypeScript source files
    """
    rng = rng or random.Random()
    source_files = [
        f
        for f in collect_source_files(target, SOURCE_EXTENSIONS[Language.TYPESCRIPT])
        if f.name != "index.ts"
    ]
    if not source_files:
        msg = f"No source files for canary insertion in {target}"
        raise ValueError(msg)

    categories = list(CANARY_TEMPLATES)
    count = min(rng.randint(MIN_CANARIES, MAX_CANARIES), len(categories))
    canaries = [_plant(rng.choice(source_files), category) for category in rng.sample(categories, count)]

    manifest = CanaryManifest(
        phase=phase,
        timestamp=datetime.now(timezone.utc).isoformat(),
        canaries=canaries,
    )
    path = manifest_path(target)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(manifest.model_dump_json(indent=2), encoding="utf-8")
    logger.debug("Wrote canary manifest to %s", path)
    return manifest


def _is_planted(line: str) -> bool:
    if MARKER_PREFIX in line:
        return True
    for template in CANARY_TEMPLATES.values():
        for template_line in template.split("\n"):
            fragment = template_line.strip()
            if len(fragment) > 5 and fragment in line:
                return True
    return False


def restore_file(file_path: Path) -> None:
    """Strip marker and template lines from a file."""
    lines = [line for line in read_lines(file_path) if not _is_planted(line)]
    file_path.write_text("\n".join(lines), encoding="utf-8")


def validate_canaries(phase: str, target: Path) -> CanaryValidation:
    """Check which canaries the phase removed, then restore every file.

    A canary counts as caught when its file is gone or its marker line no
    longer appears in the file. The manifest is deleted afterwards.

    Raises:
        FileNotFoundError: If no canary manifest exists for the target
    """
    path = manifest_path(target)
    if not path.is_file():
        msg = f"No canary manifest found at {path}"
        raise FileNotFoundError(msg)

    manifest = CanaryManifest.model_validate_json(path.read_text(encoding="utf-8"))
    validation = CanaryValidation(phase=phase)

    for canary in manifest.canaries:
        file_path = Path(canary.file)
        location = f"{relative_to(target, file_path)}:{canary.line}"
        if not file_path.exists():
            validation.outcomes.append(
                CanaryOutcome(canary.category, location, caught=True, file_removed=True)
            )
            continue
        marker = f"{MARKER_PREFIX}{canary.category}"
        caught = marker not in file_path.read_text(encoding="utf-8", errors="replace")
        validation.outcomes.append(CanaryOutcome(canary.category, location, caught=caught))

    for file_name in {c.file for c in manifest.canaries}:
        file_path = Path(file_name)
        if file_path.exists():
            restore_file(file_path)
    path.unlink()

    return validation
