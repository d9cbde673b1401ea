"""Markdown report rendered from an AnalysisResponse and its GateDecision.

Rendering is pure: the same inputs always produce byte-identical text, so a
re-run on the same revision edits the existing comment to the same body.
The report opens with REPORT_MARKER, which is how the publisher finds the
comment it owns.
"""

from __future__ import annotations

import re

from revgate_core.gh.pull_request import REPORT_MARKER
from revgate_core.models import AnalysisResponse, GateDecision, Severity, Violation

MAX_LISTED_VIOLATIONS = 20
MAX_DESCRIPTION_CHARS = 300
# GitHub rejects comment bodies over 65536 characters.
MAX_REPORT_CHARS = 60_000

_SEVERITY_ORDER = sorted(Severity, reverse=True)
_WHITESPACE_RE = re.compile(r"\s+")


def rank_key(v: Violation) -> tuple:
    """Severity descending, then path, then line with unlocated violations last."""
    return (-v.severity, v.path, v.line is None, v.line or 0, v.rule_id, v.title, v.description)


def rank_violations(violations) -> list[Violation]:
    return sorted(violations, key=rank_key)


def _one_line(text: str, limit: int) -> str:
    text = _WHITESPACE_RE.sub(" ", text).strip()
    if len(text) > limit:
        text = text[: limit - 1].rstrip() + "…"
    return text


def _location(v: Violation) -> str:
    if not v.path:
        return "(repository)"
    return f"{v.path}:{v.line}" if v.line is not None else v.path


def _format_violation(index: int, v: Violation) -> str:
    line = f"{index}. **[{v.severity.name}]** `{_location(v)}`: **{_one_line(v.title, 120) or v.rule_id}**"
    if v.rule_id:
        line += f" (`{v.rule_id}`)"
    description = _one_line(v.description, MAX_DESCRIPTION_CHARS)
    if description:
        line += f"\n   {description}"
    return line


def _header(decision: GateDecision) -> list[str]:
    icon = ":white_check_mark:" if decision.passed else ":x:"
    lines = [REPORT_MARKER, f"## {icon} revgate quality gate: {decision.label}\n"]
    lines.extend(f"- {reason}" for reason in decision.reasons)
    lines.append("")
    return lines


def _summary_table(response: AnalysisResponse | None) -> list[str]:
    counts = response.severity_counts if response is not None else {s: 0 for s in _SEVERITY_ORDER}
    status = response.status.value if response is not None else "SKIPPED"
    score = f"{response.score:.2f}" if response is not None and response.completed else "—"
    total = sum(counts.values())
    names = [s.name.capitalize() for s in _SEVERITY_ORDER]
    return [
        "| Status | Score | " + " | ".join(names) + " | Total |",
        "|--------|:-----:|" + "|".join(":" + "-" * max(len(n), 3) + ":" for n in names) + "|:-----:|",
        f"| {status} | {score} | " + " | ".join(str(counts[s]) for s in _SEVERITY_ORDER) + f" | {total} |",
    ]


def render_report(response: AnalysisResponse, decision: GateDecision) -> str:
    lines = _header(decision)
    lines.extend(_summary_table(response))

    ranked = rank_violations(response.violations)
    shown = ranked[:MAX_LISTED_VIOLATIONS]
    if shown:
        heading = "### Violations"
        if len(ranked) > len(shown):
            heading += f" (top {len(shown)} of {len(ranked)})"
        lines.extend(["", heading, ""])
        lines.extend(_format_violation(i, v) for i, v in enumerate(shown, 1))
    elif response.completed:
        lines.extend(["", "_No violations reported._"])

    omitted = len(ranked) - len(shown)
    if omitted:
        lines.append(f"\n_…and {omitted} more violation(s) not shown._")

    if response.review_id:
        lines.append(f"\n<sub>Review ID: `{response.review_id}`</sub>")

    return _bound("\n".join(lines))


def render_neutral_report(decision: GateDecision) -> str:
    """Report for a run where no supported files changed and nothing was analysed."""
    lines = _header(decision)
    lines.extend(_summary_table(None))
    lines.extend(["", "_No supported files changed in this revision; analysis was skipped._"])
    return "\n".join(lines)


def _bound(body: str) -> str:
    if len(body) <= MAX_REPORT_CHARS:
        return body
    cut = body.rfind("\n", 0, MAX_REPORT_CHARS - 100)
    return body[:cut] + "\n\n_Report truncated to fit the comment size limit._"
