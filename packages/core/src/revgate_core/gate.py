"""Quality-gate policy: (response, configuration) → GateDecision.

The decision depends on nothing but the two arguments. A completed
response passes iff its score meets the threshold and, when
fail_on_critical is set, it carries no critical violations. A response
that did not complete fails outright, whatever partial score it holds.
"""

from __future__ import annotations

from revgate_core.config import GateConfiguration
from revgate_core.models import AnalysisResponse, GateDecision

INCOMPLETE_REASON = "analysis did not complete"
NEUTRAL_REASON = "no eligible files changed"


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def evaluate(response: AnalysisResponse, config: GateConfiguration) -> GateDecision:
    if not response.completed:
        return GateDecision(passed=False, reasons=(INCOMPLETE_REASON,))

    reasons: list[str] = []
    if response.score < config.threshold:
        reasons.append(f"score {response.score:.2f} below threshold {config.threshold:.2f}")

    criticals = response.critical_count
    if config.fail_on_critical and criticals:
        reasons.append(f"{_plural(criticals, 'critical violation')} present")

    if reasons:
        return GateDecision(passed=False, reasons=tuple(reasons))
    return GateDecision(passed=True, reasons=(f"score {response.score:.2f} meets threshold {config.threshold:.2f}",))


def neutral_decision() -> GateDecision:
    return GateDecision(passed=True, reasons=(NEUTRAL_REASON,))
