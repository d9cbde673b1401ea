"""Machine-readable outputs and the process exit status.

Outputs go to every sink that is configured: the GitHub Actions output file
(GITHUB_OUTPUT), an optional JSON file, and the job summary
(GITHUB_STEP_SUMMARY) for the rendered report. The exporter runs for every
outcome, including aborted runs, so downstream steps can always read the
same keys.
"""

from __future__ import annotations

import enum
import json
import logging
import os
import uuid
from pathlib import Path

from revgate_core.errors import Cancelled
from revgate_core.models import GateOutcome

logger = logging.getLogger(__name__)


class ExitStatus(enum.IntEnum):
    PASSED = 0
    GATE_FAILED = 1
    PIPELINE_ERROR = 2
    CANCELLED = 130


def gate_result(outcome: GateOutcome) -> str:
    if isinstance(outcome.error, Cancelled):
        return "cancelled"
    if outcome.decision is None:
        return "error"
    return "pass" if outcome.decision.passed else "fail"


def exit_status(outcome: GateOutcome) -> ExitStatus:
    """0 on pass, 1 when the code failed review, 2 when review could not be performed."""
    if isinstance(outcome.error, Cancelled):
        return ExitStatus.CANCELLED
    if outcome.decision is None:
        return ExitStatus.PIPELINE_ERROR
    return ExitStatus.PASSED if outcome.decision.passed else ExitStatus.GATE_FAILED


def build_outputs(outcome: GateOutcome) -> dict[str, str]:
    score = outcome.score
    return {
        "compliance-score": f"{score:.4f}" if score is not None else "",
        "total-violations": str(outcome.total_violations),
        "critical-violations": str(outcome.critical_violations),
        "review-id": outcome.review_id,
        "gate-result": gate_result(outcome),
    }


def _format_output(name: str, value: str) -> str:
    if "\n" not in value:
        return f"{name}={value}\n"
    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    return f"{name}<<{delimiter}\n{value}\n{delimiter}\n"


class ResultExporter:
    def __init__(
        self,
        github_output: str | None = None,
        step_summary: str | None = None,
        output_json: str | None = None,
    ):
        self.github_output = github_output
        self.step_summary = step_summary
        self.output_json = output_json

    @classmethod
    def from_env(cls, output_json: str | None = None) -> ResultExporter:
        return cls(
            github_output=os.environ.get("GITHUB_OUTPUT") or None,
            step_summary=os.environ.get("GITHUB_STEP_SUMMARY") or None,
            output_json=output_json,
        )

    def export(self, outcome: GateOutcome) -> dict[str, str]:
        """Write outputs to every configured sink and return them.

        A sink that cannot be written is logged and skipped; one broken
        sink must not keep the others or the exit status from being set.
        """
        outputs = build_outputs(outcome)

        if self.github_output:
            self._append(self.github_output, "".join(_format_output(k, v) for k, v in outputs.items()))

        if self.step_summary and outcome.report:
            self._append(self.step_summary, outcome.report + "\n")

        if self.output_json:
            payload = {
                **outputs,
                "reasons": list(outcome.decision.reasons) if outcome.decision else [],
                "comment-url": outcome.comment.url if outcome.comment else "",
                "error": str(outcome.error) if outcome.error else "",
            }
            try:
                Path(self.output_json).write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
            except OSError as e:
                logger.warning("Could not write %s: %s", self.output_json, e)

        return outputs

    @staticmethod
    def _append(path: str, text: str) -> None:
        try:
            with open(path, "a", encoding="utf-8") as f:
                f.write(text)
        except OSError as e:
            logger.warning("Could not write %s: %s", path, e)
