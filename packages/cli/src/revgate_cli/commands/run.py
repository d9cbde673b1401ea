"""run command: the quality gate for one pull request."""

from __future__ import annotations

import os

import click
import requests
from github import GithubException
from rich.console import Console
from rich.table import Table

from revgate_core.cancel import cancellation_scope
from revgate_core.config import load_config, parse_gate_config, parse_service_settings
from revgate_core.errors import Cancelled, ConfigurationError, RevgateError
from revgate_core.exporter import ResultExporter, exit_status
from revgate_core.gh.pull_request import get_authenticated_login, get_repo
from revgate_core.models import GateOutcome
from revgate_core.pipeline import DIFF_SOURCES, run_gate
from revgate_core.publisher import CommentPublisher
from revgate_core.service.client import ReviewClient
from revgate_cli.actions import read_event_context
from revgate_cli.auth import resolve_github_token

console = Console()

# The built-in Actions token cannot read /user but always posts as this bot.
_ACTIONS_BOT_LOGIN = "github-actions[bot]"


def _comment_author(token: str) -> str | None:
    """Login whose comments the publisher may edit; None matches any author."""
    login = get_authenticated_login(token)
    if login is None and os.environ.get("GITHUB_ACTIONS") == "true" and token == os.environ.get("GITHUB_TOKEN"):
        return _ACTIONS_BOT_LOGIN
    return login


def _print_outputs(outputs: dict[str, str]) -> None:
    table = Table(title="Gate outputs", show_header=True, header_style="bold cyan")
    table.add_column("Output", style="bold")
    table.add_column("Value")
    for name, value in outputs.items():
        table.add_row(name, value or "—")
    console.print(table)


def _diagnose(error: Exception) -> None:
    stage = getattr(error, "stage", "pipeline")
    if isinstance(error, Cancelled):
        console.print(f"[yellow]\\[{stage}] cancelled: {error}[/yellow]")
    else:
        console.print(f"[bold red]\\[{stage}] error:[/bold red] {error}")


def _prepare_and_run(ctx: click.Context, options: dict) -> GateOutcome:
    """Validate inputs, then run the gate. Configuration problems come back as an outcome."""
    config_path = ctx.obj.get("config_path", ".revgate.yml") if ctx.obj else ".revgate.yml"
    try:
        config = load_config(
            config_path,
            cli_overrides={
                "api_key": options["api_key"],
                "api_url": options["api_url"],
                "rulesets": options["rulesets"],
                "threshold": options["threshold"],
                "fail_on_critical": options["fail_on_critical"],
                "post_comment": options["post_comment"],
                "timeout": options["timeout"],
            },
        )
        gate_config = parse_gate_config(config)
        settings = parse_service_settings(config)

        event = read_event_context()
        repo = options["repo"] or event.repo
        pr_number = options["pr_number"] or event.pr_number
        base = options["base"] or event.base_sha
        head = options["head"] or event.head_sha
        if not repo:
            raise ConfigurationError("Repository unknown. Pass --repo or set GITHUB_REPOSITORY.")
        if not base or not head:
            raise ConfigurationError("Revision range unknown. Pass --base and --head or run on a pull_request event.")

        diff_source = options["diff_source"]
        will_post = gate_config.post_comment and not options["dry_run"] and pr_number is not None
        repo_obj = None
        author = None
        if diff_source == "github" or will_post:
            token = resolve_github_token()
            if not token:
                raise ConfigurationError("No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.")
            try:
                repo_obj = get_repo(repo, token=token)
            except (GithubException, requests.RequestException) as e:
                raise RevgateError(f"Could not open repository {repo}: {e}", stage="github")
            if will_post:
                author = _comment_author(token)
    except RevgateError as e:
        return GateOutcome(decision=None, error=e)

    publisher = (
        CommentPublisher(repo_obj, enabled=gate_config.post_comment, author=author) if repo_obj is not None else None
    )
    with ReviewClient(settings) as client:
        return run_gate(
            repo=repo,
            pr_number=pr_number,
            base=base,
            head=head,
            gate_config=gate_config,
            client=client,
            credential=settings.api_key,
            repo_obj=repo_obj,
            publisher=publisher,
            diff_source=diff_source,
            extensions=gate_config.extensions,
            exclude=gate_config.exclude,
            dry_run=options["dry_run"],
        )


@click.command("run")
@click.option("--repo", default=None, help="GitHub repository in owner/name format. Defaults to GITHUB_REPOSITORY.")
@click.option("--pr", "pr_number", type=int, default=None, help="Pull request number. Defaults to the triggering event.")
@click.option("--base", default=None, help="Base revision of the range. Defaults to the PR base SHA.")
@click.option("--head", default=None, help="Head revision of the range. Defaults to the PR head SHA.")
@click.option(
    "--diff-source",
    type=click.Choice(DIFF_SOURCES),
    default="github",
    show_default=True,
    help="Where to read the changed files from: the GitHub compare API or the local git checkout.",
)
@click.option("--api-key", default=None, help="Analysis service API key. Prefer REVGATE_API_KEY.")
@click.option("--api-url", default=None, help="Analysis service base URL. Overrides config file.")
@click.option("--rulesets", default=None, help="Comma-separated rulesets, e.g. security,architecture:2.")
@click.option("--threshold", default=None, help="Minimum compliance score (0-1). Overrides config file.")
@click.option(
    "--fail-on-critical/--no-fail-on-critical",
    default=None,
    help="Fail the gate on any critical violation. Overrides config file.",
)
@click.option(
    "--post-comment/--no-post-comment",
    default=None,
    help="Post the report on the pull request. Overrides config file.",
)
@click.option("--timeout", default=None, help="Overall analysis timeout in seconds.")
@click.option("--dry-run", "-n", is_flag=True, help="Print the report instead of posting it to GitHub.")
@click.option("--output-json", default=None, type=click.Path(dir_okay=False), help="Also write the outputs to this JSON file.")
@click.pass_context
def run_cmd(ctx, **options):
    """Run the quality gate on a pull request.

    Sends the PR's changed source files to the analysis service, evaluates the
    verdict against the configured threshold, posts (or updates) a single report
    comment, and exits with the gate result.

    \b
    Exit status:
      0    gate passed (or no supported files changed)
      1    gate failed: the code did not pass review
      2    review could not be performed (configuration, service, timeout)
      130  run cancelled
    """
    try:
        with cancellation_scope():
            outcome = _prepare_and_run(ctx, options)
    except Cancelled as e:
        outcome = GateOutcome(decision=None, error=e)

    outputs = ResultExporter.from_env(options["output_json"]).export(outcome)
    _print_outputs(outputs)
    if outcome.error is not None:
        _diagnose(outcome.error)

    ctx.exit(int(exit_status(outcome)))
