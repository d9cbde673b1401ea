"""Core gate orchestration."""

from __future__ import annotations

import logging

from rich.console import Console

from revgate_core.changeset import git_diff_paths, github_diff_paths, resolve_change_set
from revgate_core.config import GateConfiguration
from revgate_core.errors import Cancelled, CommentPublishError, NoEligibleFiles, RevgateError
from revgate_core.gate import evaluate, neutral_decision
from revgate_core.models import AnalysisRequest, GateOutcome
from revgate_core.publisher import CommentPublisher
from revgate_core.report import render_neutral_report, render_report
from revgate_core.service.client import ReviewClient

console = Console()
logger = logging.getLogger(__name__)

DIFF_SOURCES = ("github", "git")


def _diff_paths(diff_source: str, repo_obj, base: str, head: str) -> list[str]:
    if diff_source == "git":
        return git_diff_paths(base, head)
    if diff_source == "github":
        return github_diff_paths(repo_obj, base, head)
    raise RevgateError(f"Unknown diff source: {diff_source!r}. Choose 'github' or 'git'.", stage="config")


def _publish(publisher: CommentPublisher | None, pr_number: int | None, report: str, dry_run: bool):
    """Post the report, downgrading any failure or cancellation to a warning.

    Returns the CommentReference, or None when nothing was posted.
    """
    if dry_run:
        console.print("\n[bold]Dry run: report not posted.[/bold]\n")
        console.print(report, markup=False, highlight=False)
        return None
    if publisher is None or pr_number is None:
        logger.info("No pull request to comment on; skipping publish")
        return None
    try:
        ref = publisher.publish(pr_number, report)
    except CommentPublishError as e:
        console.print(f"[yellow]\\[publish] warning: {e}[/yellow]")
        return None
    except (KeyboardInterrupt, Cancelled):
        # The decision already stands; cancellation only stops the comment.
        console.print("[yellow]\\[publish] warning: cancelled before the report was posted.[/yellow]")
        return None
    if ref is not None:
        verb = "Posted" if ref.created else "Updated"
        console.print(f"[green]{verb} report comment: {ref.url}[/green]")
    return ref


def run_gate(
    repo: str,
    pr_number: int | None,
    base: str,
    head: str,
    gate_config: GateConfiguration,
    client: ReviewClient,
    credential: str,
    repo_obj=None,
    publisher: CommentPublisher | None = None,
    diff_source: str = "github",
    extensions: tuple[str, ...] | None = None,
    exclude: tuple[str, ...] = (),
    dry_run: bool = False,
) -> GateOutcome:
    """Run the whole gate for one revision range and return its outcome.

    Never raises for a RevgateError: a failure before the decision exists
    comes back as a GateOutcome with ``decision=None`` and ``error`` set, so
    the exporter can still write its outputs. Comment posting failures are
    reported as warnings and leave the decision untouched.
    """
    try:
        try:
            paths = _diff_paths(diff_source, repo_obj, base, head)
            files = resolve_change_set(paths, extensions=extensions, exclude=exclude)
        except NoEligibleFiles as e:
            console.print(f"[yellow]{e} Nothing to analyse; gate passes.[/yellow]")
            decision = neutral_decision()
            report = render_neutral_report(decision)
            comment = _publish(publisher, pr_number, report, dry_run)
            return GateOutcome(decision=decision, report=report, comment=comment, neutral=True)

        console.print(f"[cyan]Analysing {len(files)} file(s) in {repo} at {head[:7]}[/cyan]")
        for path in files:
            logger.debug("  in scope: %s", path)

        request = AnalysisRequest.build(
            repository=repo,
            revision=head,
            files=files,
            rulesets=gate_config.rulesets,
            credential=credential,
        )
        response = client.submit(request)
    except KeyboardInterrupt:
        return GateOutcome(decision=None, error=Cancelled("Interrupted; run cancelled."))
    except RevgateError as e:
        return GateOutcome(decision=None, error=e)

    decision = evaluate(response, gate_config)
    colour = "green" if decision.passed else "red"
    console.print(f"[bold {colour}]Quality gate {decision.label}[/bold {colour}]: " + "; ".join(decision.reasons))

    report = render_report(response, decision)
    comment = _publish(publisher, pr_number, report, dry_run)

    return GateOutcome(decision=decision, response=response, report=report, comment=comment)
