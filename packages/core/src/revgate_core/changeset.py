"""Change-set resolution: which files in the revision range get analysed.

Two diff sources are supported. The GitHub compare API is the default in CI
because it needs nothing but the token; the local git source works against
the checkout and is handy for running the gate outside Actions.
"""

from __future__ import annotations

import fnmatch
import logging
import subprocess
from typing import Iterable

import requests
from github import GithubException

from revgate_core.errors import NoEligibleFiles, RevgateError
from revgate_core.gh.pull_request import get_compare_files
from revgate_core.utils.code import is_supported_file, normalize_extensions

logger = logging.getLogger(__name__)

_GIT_TIMEOUT = 30


def _is_excluded(filename: str, patterns: list[str]) -> bool:
    """Return True if filename matches any exclude pattern.

    Supports:
    - fnmatch globs on the full path: "src/generated/*.py"
    - fnmatch globs on the basename: "*.min.js"
    - Directory names/prefixes: "vendor/", "tests" (matches any file within that tree)
    """
    for pattern in patterns:
        if fnmatch.fnmatch(filename, pattern):
            return True
        if fnmatch.fnmatch(filename.rsplit("/", 1)[-1], pattern):
            return True
        prefix = pattern.rstrip("/") + "/"
        if filename.startswith(prefix) or ("/" + prefix) in filename:
            return True
    return False


def resolve_change_set(
    paths: Iterable[str],
    extensions: Iterable[str] | None = None,
    exclude: Iterable[str] | None = None,
) -> tuple[str, ...]:
    """Filter diff paths down to the ordered, de-duplicated set eligible for analysis.

    Raises NoEligibleFiles when nothing survives the filter.
    """
    allowed = normalize_extensions(extensions)
    patterns = list(exclude or ())
    seen: dict[str, None] = {}
    considered = 0
    for path in paths:
        considered += 1
        if not path or path in seen:
            continue
        if not is_supported_file(path, allowed):
            logger.debug("Skipping %s (unsupported extension)", path)
            continue
        if _is_excluded(path, patterns):
            logger.debug("Skipping %s (excluded)", path)
            continue
        seen[path] = None

    if not seen:
        raise NoEligibleFiles(considered)
    return tuple(seen)


def github_diff_paths(repo, base: str, head: str) -> list[str]:
    """Paths changed between base and head according to the compare API, minus deletions."""
    try:
        # The file list is paged lazily, so iterating it can fail too.
        return [f.filename for f in get_compare_files(repo, base, head) if f.status != "removed"]
    except (GithubException, requests.RequestException) as e:
        raise RevgateError(f"Could not compare {base[:7]}...{head[:7]}: {e}", stage="changeset")


def git_diff_paths(base: str, head: str, cwd: str | None = None) -> list[str]:
    """Paths changed between the merge base of base and head in the local checkout, minus deletions."""
    try:
        result = subprocess.run(
            ["git", "diff", "--name-only", "--diff-filter=d", f"{base}...{head}"],
            capture_output=True,
            text=True,
            timeout=_GIT_TIMEOUT,
            cwd=cwd,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        raise RevgateError(f"Could not run git diff: {e}", stage="changeset")
    if result.returncode != 0:
        raise RevgateError(f"git diff {base}...{head} failed: {result.stderr.strip()}", stage="changeset")
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]
