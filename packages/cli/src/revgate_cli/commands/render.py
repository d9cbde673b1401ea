"""render command: evaluate and render a saved analysis response offline."""

from __future__ import annotations

import json

import click
from rich.console import Console

from revgate_core.config import load_config, parse_gate_config
from revgate_core.errors import ConfigurationError
from revgate_core.exporter import ExitStatus
from revgate_core.gate import evaluate
from revgate_core.models import AnalysisResponse
from revgate_core.report import render_report

console = Console()


@click.command("render")
@click.argument("response_file", type=click.File("r"))
@click.option("--threshold", default=None, help="Minimum compliance score (0-1). Overrides config file.")
@click.option(
    "--fail-on-critical/--no-fail-on-critical",
    default=None,
    help="Fail the gate on any critical violation. Overrides config file.",
)
@click.pass_context
def render_cmd(ctx, response_file, threshold: str | None, fail_on_critical: bool | None):
    """Render the report for a saved analysis-service response.

    Reads the JSON body the service returned, applies the gate policy from
    .revgate.yml (and any overrides), prints the markdown report, and exits
    with the gate result. Nothing is sent over the network.
    """
    config_path = ctx.obj.get("config_path", ".revgate.yml") if ctx.obj else ".revgate.yml"
    try:
        config = load_config(config_path, cli_overrides={"threshold": threshold, "fail_on_critical": fail_on_critical})
        gate_config = parse_gate_config(config)
    except ConfigurationError as e:
        raise click.UsageError(str(e))

    try:
        response = AnalysisResponse.from_payload(json.load(response_file))
    except (KeyError, TypeError, ValueError) as e:
        raise click.UsageError(f"{response_file.name} is not a valid analysis response: {e}")

    decision = evaluate(response, gate_config)
    console.print(render_report(response, decision), markup=False, highlight=False)
    ctx.exit(int(ExitStatus.PASSED if decision.passed else ExitStatus.GATE_FAILED))
