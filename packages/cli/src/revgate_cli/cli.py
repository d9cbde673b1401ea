"""CLI entry point for revgate.

Commands:
  run: run the quality gate on a pull request (the CI entry point)
  render: evaluate and render a saved analysis response offline
  init: write .revgate.yml and a GitHub Actions workflow
"""

from __future__ import annotations

import logging

import click

from revgate_cli.commands.init import init_cmd
from revgate_cli.commands.render import render_cmd
from revgate_cli.commands.run import run_cmd
from revgate_cli.version import package_version


@click.group()
@click.version_option(version=package_version() or "unknown", prog_name="revgate")
@click.option(
    "--config",
    "config_path",
    default=".revgate.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="REVGATE_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Pull request quality gate backed by a code-review analysis service."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(run_cmd)
main.add_command(render_cmd)
main.add_command(init_cmd)
