"""Quality gate, canary, evidence, metrics and construction tooling."""

from lens_cli.quality.files import Language, Violation
from lens_cli.quality.gate import GateResult, run_gate

__all__ = ["GateResult", "Language", "Violation", "run_gate"]
