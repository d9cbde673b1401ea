"""init command: write a starter .revgate.yml and a GitHub Actions workflow."""

from __future__ import annotations

from pathlib import Path

import click
import yaml
from rich.console import Console

from revgate_core.config import DEFAULT_RULESETS, parse_float, parse_rulesets
from revgate_core.errors import ConfigurationError
from revgate_cli.actions import detect_repo_from_git
from revgate_cli.version import package_version

console = Console()

_WORKFLOW_TEMPLATE = """\
name: revgate

on:
  pull_request:
    types: [opened, synchronize, reopened]

jobs:
  quality-gate:
    runs-on: ubuntu-latest
    permissions:
      contents: read
      pull-requests: write

    steps:
      - uses: actions/checkout@v4

      - name: Set up Python
        uses: actions/setup-python@v5
        with:
          python-version: "3.12"

      - name: Install revgate
        run: pip install "{requirement}"

      - name: Run quality gate
        id: revgate
        env:
          GITHUB_TOKEN: ${{{{ secrets.GITHUB_TOKEN }}}}
          REVGATE_API_KEY: ${{{{ secrets.REVGATE_API_KEY }}}}
        run: revgate run
"""


@click.command("init")
@click.option("--repo", default=None, help="GitHub repository (owner/name). Auto-detected from git remote.")
def init_cmd(repo: str | None):
    """Set up revgate for a repository.

    Creates .revgate.yml with the gate policy and optionally generates a
    GitHub Actions workflow that runs the gate on every pull request.
    """
    console.print("\n[bold cyan]revgate init[/bold cyan]: quality gate setup\n")

    if repo is None:
        repo = detect_repo_from_git()
        if repo:
            console.print(f"[dim]Detected repository: {repo}[/dim]")
        else:
            repo = click.prompt("GitHub repository (owner/name)")

    threshold = click.prompt("Minimum compliance score (0-1)", default="0.8")
    rulesets = click.prompt("Rulesets (comma-separated)", default=",".join(DEFAULT_RULESETS))
    try:
        parse_float(threshold, "threshold", 0.0, 1.0)
        parse_rulesets(rulesets)
    except ConfigurationError as e:
        raise click.UsageError(str(e))
    fail_on_critical = click.confirm("Fail the gate on any critical violation?", default=True)
    post_comment = click.confirm("Post the report as a PR comment?", default=True)

    _write_config(
        {
            "threshold": float(threshold),
            "rulesets": [r.strip() for r in rulesets.split(",") if r.strip()],
            "fail_on_critical": fail_on_critical,
            "post_comment": post_comment,
        }
    )
    console.print("[green]Created .revgate.yml[/green]")

    if click.confirm("\nGenerate .github/workflows/revgate.yml for GitHub Actions?", default=True):
        _write_workflow()
        console.print("[green]Created .github/workflows/revgate.yml[/green]")
        console.print(
            "\n[yellow]Remember to add [bold]REVGATE_API_KEY[/bold] to your "
            "GitHub repository secrets (Settings → Secrets → Actions).[/yellow]"
        )

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print(f"Try it locally with: [bold]revgate run --repo {repo} --pr <number> --dry-run[/bold]")


def _write_config(config: dict) -> None:
    """Write or update .revgate.yml, preserving any existing keys."""
    path = Path(".revgate.yml")
    existing: dict = {}
    if path.exists():
        try:
            existing = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise click.ClickException(f"{path} is not valid YAML: {e}")
        if not isinstance(existing, dict):
            raise click.ClickException(f"{path} must contain a mapping at the top level; fix or remove it first.")
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))


def _write_workflow() -> None:
    version = package_version()
    requirement = f"revgate=={version}" if version else "revgate"
    workflow_dir = Path(".github/workflows")
    workflow_dir.mkdir(parents=True, exist_ok=True)
    (workflow_dir / "revgate.yml").write_text(_WORKFLOW_TEMPLATE.format(requirement=requirement))
