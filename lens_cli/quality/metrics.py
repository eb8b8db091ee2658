"""Pipeline metrics.

A pipeline run opens `.claude/metrics/active-metrics.json`, each phase
appends its counts, and the final report archives the file under a name
derived from the pipeline and its start time. Keys are camelCase on disk so
other tooling in the review loop can read them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from lens_cli.config import state_dir

ACTIVE_METRICS_FILE = "active-metrics.json"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class PhaseMetric(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phase: str
    issues_found: int = Field(alias="issuesFound")
    issues_fixed: int = Field(alias="issuesFixed")
    duration_ms: int = Field(alias="durationMs")


class PipelineMetrics(BaseModel):
    """Counts for one pipeline run."""

    model_config = ConfigDict(populate_by_name=True)

    pipeline: str
    target: str
    started_at: str = Field(alias="startedAt")
    completed_at: str | None = Field(default=None, alias="completedAt")
    phases: list[PhaseMetric] = Field(default_factory=list)

    @property
    def total_found(self) -> int:
        return sum(p.issues_found for p in self.phases)

    @property
    def total_fixed(self) -> int:
        return sum(p.issues_fixed for p in self.phases)

    @property
    def archive_name(self) -> str:
        stamp = self.started_at.replace(":", "-").replace(".", "-")
        return f"{self.pipeline}-{stamp}.json"


def metrics_dir(target: Path) -> Path:
    return state_dir(target) / "metrics"


def _write(path: Path, metrics: PipelineMetrics) -> None:
    path.write_text(
        metrics.model_dump_json(indent=2, by_alias=True, exclude_none=True), encoding="utf-8"
    )


def _read_active(directory: Path) -> PipelineMetrics:
    path = directory / ACTIVE_METRICS_FILE
    if not path.is_file():
        msg = f"No active metrics at {path}; run start-metrics first"
        raise FileNotFoundError(msg)
    return PipelineMetrics.model_validate_json(path.read_text(encoding="utf-8"))


def start_pipeline_metrics(pipeline: str, target: str, directory: Path) -> PipelineMetrics:
    """Open a fresh active metrics file, replacing any previous one."""
    metrics = PipelineMetrics(pipeline=pipeline, target=target, started_at=_now())
    directory.mkdir(parents=True, exist_ok=True)
    _write(directory / ACTIVE_METRICS_FILE, metrics)
    return metrics


def record_phase_metrics(
    directory: Path, phase: str, issues_found: int, issues_fixed: int, duration_ms: int
) -> PipelineMetrics:
    """Append one phase to the active metrics.

    Raises:
        FileNotFoundError: If no pipeline has been started
    """
    metrics = _read_active(directory)
    metrics.phases.append(
        PhaseMetric(
            phase=phase,
            issues_found=issues_found,
            issues_fixed=issues_fixed,
            duration_ms=duration_ms,
        )
    )
    _write(directory / ACTIVE_METRICS_FILE, metrics)
    return metrics


def report_metrics(directory: Path) -> tuple[PipelineMetrics, Path]:
    """Close the active pipeline and archive it.

    Returns:
        The completed metrics and the archive path

    Raises:
        FileNotFoundError: If no pipeline has been started
    """
    metrics = _read_active(directory)
    metrics.completed_at = _now()
    archive = directory / metrics.archive_name
    _write(archive, metrics)
    (directory / ACTIVE_METRICS_FILE).unlink()
    return metrics, archive
