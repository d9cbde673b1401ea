"""Tests for idempotent report publishing."""

import itertools
from unittest.mock import MagicMock

import pytest
from github import GithubException

from revgate_core.errors import CommentPublishError
from revgate_core.gh.pull_request import REPORT_MARKER
from revgate_core.publisher import CommentPublisher


class FakePullRequest:
    """In-memory stand-in for a PyGithub PullRequest's issue comments."""

    _ids = itertools.count(100)

    def __init__(self, comments=None):
        self.comments = list(comments or [])

    def get_issue_comments(self):
        return list(self.comments)

    def create_issue_comment(self, body):
        comment = _comment(body, next(self._ids))
        self.comments.append(comment)
        return comment


def _comment(body, comment_id=1, author="revgate-bot"):
    c = MagicMock()
    c.id = comment_id
    c.user.login = author
    c.body = body
    c.html_url = f"https://github.com/owner/repo/pull/1#issuecomment-{comment_id}"

    def _edit(new_body):
        c.body = new_body

    c.edit.side_effect = _edit
    return c


def _repo_with(pr):
    repo = MagicMock()
    repo.get_pull.return_value = pr
    return repo


REPORT = f"{REPORT_MARKER}\n## report v1"
REPORT_2 = f"{REPORT_MARKER}\n## report v2"


class TestPublish:
    def test_creates_comment_when_none_exists(self):
        pr = FakePullRequest([_comment("LGTM from a human", 1)])
        ref = CommentPublisher(_repo_with(pr)).publish(1, REPORT)

        assert ref.created is True
        assert len(pr.comments) == 2
        assert pr.comments[-1].body == REPORT

    def test_updates_existing_marked_comment(self):
        existing = _comment(f"{REPORT_MARKER}\nold", 7)
        pr = FakePullRequest([existing])
        ref = CommentPublisher(_repo_with(pr)).publish(1, REPORT)

        assert ref.created is False
        assert ref.comment_id == 7
        existing.edit.assert_called_once_with(REPORT)
        assert len(pr.comments) == 1

    def test_publishing_twice_leaves_one_live_comment_with_second_body(self):
        pr = FakePullRequest()
        publisher = CommentPublisher(_repo_with(pr))

        first = publisher.publish(1, REPORT)
        second = publisher.publish(1, REPORT_2)

        marked = [c for c in pr.comments if REPORT_MARKER in c.body]
        assert len(marked) == 1
        assert marked[0].body == REPORT_2
        assert first.comment_id == second.comment_id
        assert second.created is False

    def test_unchanged_body_not_re_edited(self):
        existing = _comment(REPORT, 7)
        pr = FakePullRequest([existing])
        CommentPublisher(_repo_with(pr)).publish(1, REPORT)
        existing.edit.assert_not_called()

    def test_newest_marked_comment_is_updated(self):
        older = _comment(f"{REPORT_MARKER}\nold", 1)
        newer = _comment(f"{REPORT_MARKER}\nnewer", 2)
        pr = FakePullRequest([older, newer])
        ref = CommentPublisher(_repo_with(pr)).publish(1, REPORT)

        assert ref.comment_id == 2
        older.edit.assert_not_called()
        newer.edit.assert_called_once_with(REPORT)

    def test_marker_added_when_missing(self):
        pr = FakePullRequest()
        CommentPublisher(_repo_with(pr)).publish(1, "plain body")
        assert pr.comments[0].body.startswith(REPORT_MARKER)

    def test_ignores_comments_with_none_body(self):
        pr = FakePullRequest([_comment(None, 3)])
        ref = CommentPublisher(_repo_with(pr)).publish(1, REPORT)
        assert ref.created is True


class TestPublishDisabled:
    def test_disabled_is_a_noop(self):
        repo = MagicMock()
        assert CommentPublisher(repo, enabled=False).publish(1, REPORT) is None
        repo.get_pull.assert_not_called()


class TestPublishFailures:
    def test_github_error_becomes_comment_publish_error(self):
        repo = MagicMock()
        repo.get_pull.side_effect = GithubException(403, {"message": "Resource not accessible"}, None)
        with pytest.raises(CommentPublishError) as exc:
            CommentPublisher(repo).publish(5, REPORT)
        assert exc.value.stage == "publish"
        assert "#5" in str(exc.value)

    def test_edit_failure_becomes_comment_publish_error(self):
        existing = _comment(f"{REPORT_MARKER}\nold", 7)
        existing.edit.side_effect = GithubException(500, {"message": "boom"}, None)
        with pytest.raises(CommentPublishError):
            CommentPublisher(_repo_with(FakePullRequest([existing]))).publish(1, REPORT)


class TestCommentOwnership:
    def test_quoted_report_in_human_comment_not_edited(self):
        ours = _comment(f"{REPORT_MARKER}\nold", 1)
        quote = _comment(f"Why did this fail?\n\n{REPORT_MARKER}\nold", 2, author="alice")
        pr = FakePullRequest([ours, quote])

        ref = CommentPublisher(_repo_with(pr)).publish(1, REPORT)

        assert ref.comment_id == 1
        quote.edit.assert_not_called()

    def test_author_filter_skips_other_users_marked_comments(self):
        ours = _comment(f"{REPORT_MARKER}\nold", 1)
        copied = _comment(f"{REPORT_MARKER}\ncopied by hand", 2, author="alice")
        pr = FakePullRequest([ours, copied])

        ref = CommentPublisher(_repo_with(pr), author="revgate-bot").publish(1, REPORT)

        assert ref.comment_id == 1
        ours.edit.assert_called_once_with(REPORT)
        copied.edit.assert_not_called()

    def test_only_foreign_marked_comments_creates_new_one(self):
        copied = _comment(f"{REPORT_MARKER}\ncopied by hand", 2, author="alice")
        pr = FakePullRequest([copied])

        ref = CommentPublisher(_repo_with(pr), author="revgate-bot").publish(1, REPORT)

        assert ref.created is True
        copied.edit.assert_not_called()
        assert len(pr.comments) == 2
