"""GitHub token resolution for the comment and compare APIs.

Resolution order (stops at first success):
  1. REVGATE_GITHUB_TOKEN (a PAT when the built-in token lacks scope)
  2. GITHUB_TOKEN (injected by GitHub Actions)
  3. `gh auth token` (GitHub CLI session, for local runs)

The analysis-service key is not handled here; it is an ordinary
configuration input (REVGATE_API_KEY) validated by revgate_core.config.
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)

_TOKEN_ENV_VARS = ("REVGATE_GITHUB_TOKEN", "GITHUB_TOKEN")


def resolve_github_token() -> str | None:
    """Return a GitHub token or None if no source provides one.

    Never raises; the caller decides whether a missing token is fatal.
    """
    for name in _TOKEN_ENV_VARS:
        token = os.environ.get(name, "").strip()
        if token:
            logger.debug("Resolved GitHub token from %s.", name)
            return token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None

    if result.returncode == 0 and result.stdout.strip():
        logger.debug("Resolved GitHub token via gh CLI session.")
        return result.stdout.strip()
    return None
