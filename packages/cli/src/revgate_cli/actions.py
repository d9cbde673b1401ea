"""Pull request context from the GitHub Actions environment.

In a `pull_request` workflow, Actions sets GITHUB_REPOSITORY and writes the
triggering event payload to the file named by GITHUB_EVENT_PATH. The payload
carries the PR number and the base/head SHAs, so `revgate run` needs no
flags at all inside Actions.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class EventContext:
    repo: str | None = None
    pr_number: int | None = None
    base_sha: str | None = None
    head_sha: str | None = None


def read_event_context() -> EventContext:
    """Read repo, PR number, and base/head SHAs from the Actions environment.

    Missing or unreadable values come back as None; explicit CLI flags fill
    the gaps and the run command reports whatever is still missing.
    """
    ctx = EventContext(repo=os.environ.get("GITHUB_REPOSITORY") or None)

    event_path = os.environ.get("GITHUB_EVENT_PATH")
    if not event_path:
        return ctx
    try:
        event = json.loads(Path(event_path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Could not read GitHub event payload %s: %s", event_path, e)
        return ctx

    pull = event.get("pull_request") or {}
    if pull:
        ctx.pr_number = pull.get("number")
        ctx.base_sha = (pull.get("base") or {}).get("sha")
        ctx.head_sha = (pull.get("head") or {}).get("sha")
    return ctx


def detect_repo_from_git() -> str | None:
    """Try to detect the GitHub repo slug from the git remote URL."""
    try:
        result = subprocess.run(
            ["git", "remote", "get-url", "origin"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode != 0:
            return None
        url = result.stdout.strip()
        # https://github.com/owner/repo.git  →  owner/repo
        # git@github.com:owner/repo.git      →  owner/repo
        if "github.com" not in url:
            return None
        slug = url.split("github.com")[-1].lstrip("/:").removesuffix(".git")
        return slug if "/" in slug else None
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
