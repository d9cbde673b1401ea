from __future__ import annotations

import logging

import requests
from github import Github, GithubException

logger = logging.getLogger(__name__)

REPORT_MARKER = "<!-- revgate-report -->"


def get_repo(repo_name: str, token: str):
    return Github(token).get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def get_authenticated_login(token: str) -> str | None:
    """Return the login the token acts as, or None when GitHub won't say.

    Actions installation tokens cannot read /user, so None is the normal
    answer for the built-in GITHUB_TOKEN.
    """
    try:
        return Github(token).get_user().login
    except (GithubException, requests.RequestException) as e:
        logger.debug("Could not resolve the authenticated GitHub login: %s", e)
        return None


def get_compare_files(repo, base_sha: str, head_sha: str):
    """Return files changed between two commits using GitHub's compare API."""
    comparison = repo.compare(base_sha, head_sha)
    return comparison.files


def find_report_comments(pr, marker: str = REPORT_MARKER, author: str | None = None) -> list:
    """Return the PR's report comments, oldest first.

    A report comment opens with the marker; a comment that merely quotes a
    report further down does not count. With author set, only that user's
    comments are considered.
    """
    found = []
    for c in pr.get_issue_comments():
        if not (c.body or "").lstrip().startswith(marker):
            continue
        if author is not None and getattr(c.user, "login", None) != author:
            continue
        found.append(c)
    return found
