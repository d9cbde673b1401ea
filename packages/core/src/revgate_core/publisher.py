"""Posts the gate report as a single, self-updating pull request comment.

The comment is found again on later runs by REPORT_MARKER in its body, so
there is no state to keep between runs: a force-push or re-trigger edits
the existing comment instead of stacking a new one.
"""

from __future__ import annotations

import logging

import requests
from github import GithubException

from revgate_core.errors import CommentPublishError
from revgate_core.gh.pull_request import REPORT_MARKER, find_report_comments, get_pull
from revgate_core.models import CommentReference

logger = logging.getLogger(__name__)


class CommentPublisher:
    def __init__(self, repo, enabled: bool = True, marker: str = REPORT_MARKER, author: str | None = None):
        self.repo = repo
        self.enabled = enabled
        self.marker = marker
        self.author = author

    def publish(self, pr_number: int, report: str) -> CommentReference | None:
        """Create or update the report comment on the pull request.

        Returns None when publishing is disabled. Raises CommentPublishError
        on any platform failure; callers downgrade it to a warning.
        """
        if not self.enabled:
            logger.info("Comment posting disabled; skipping publish for PR #%d", pr_number)
            return None

        if not report.startswith(self.marker):
            report = f"{self.marker}\n{report}"

        try:
            pr = get_pull(self.repo, pr_number)
            existing = find_report_comments(pr, self.marker, author=self.author)
            if existing:
                # Newest wins if an earlier race left more than one marked comment.
                comment = existing[-1]
                if len(existing) > 1:
                    logger.warning("Found %d report comments on PR #%d; updating the newest", len(existing), pr_number)
                if comment.body != report:
                    comment.edit(report)
                    logger.info("Updated report comment %s on PR #%d", comment.id, pr_number)
                else:
                    logger.info("Report comment %s on PR #%d is already up to date", comment.id, pr_number)
                return CommentReference(comment_id=comment.id, url=comment.html_url, created=False)

            comment = pr.create_issue_comment(report)
            logger.info("Created report comment %s on PR #%d", comment.id, pr_number)
            return CommentReference(comment_id=comment.id, url=comment.html_url, created=True)
        except (GithubException, requests.RequestException) as e:
            raise CommentPublishError(f"Could not publish report on PR #{pr_number}: {e}")
