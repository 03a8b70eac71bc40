"""Tests for publishing the report to a pull request comment thread."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from pixibench.error_handling import ReportSinkError
from pixibench.report import REPORT_MARKER
from pixibench.sink import (
    GitHubCommentSink,
    GitHubContext,
    find_marked_comment,
    publish_report,
)


def response(payload, next_url=None):
    resp = MagicMock()
    resp.json.return_value = payload
    resp.links = {"next": {"url": next_url}} if next_url else {}
    return resp


class TestPublishReport:
    """Tests for marker-based update-or-create."""

    def test_creates_when_no_marked_comment(self, sink):
        status = publish_report(sink, f"{REPORT_MARKER}\nfirst")

        assert status == "created"
        assert len(sink.comments) == 1

    def test_updates_marked_comment(self, make_sink):
        sink = make_sink(
            comments=[
                {"id": 1, "body": "LGTM"},
                {"id": 2, "body": f"{REPORT_MARKER}\nold"},
            ]
        )

        status = publish_report(sink, f"{REPORT_MARKER}\nnew")

        assert status == "updated"
        assert sink.comments[1]["body"] == f"{REPORT_MARKER}\nnew"
        assert sink.comments[0]["body"] == "LGTM"
        assert sink.creates == 0

    def test_publishing_twice_leaves_one_comment(self, sink):
        """Test the sink holds exactly one report after repeated posts."""
        publish_report(sink, f"{REPORT_MARKER}\nrun 1")
        publish_report(sink, f"{REPORT_MARKER}\nrun 2")

        marked = [c for c in sink.comments if REPORT_MARKER in c["body"]]
        assert len(marked) == 1
        assert marked[0]["body"].endswith("run 2")

    def test_sink_failure_propagates(self, make_sink):
        with pytest.raises(ReportSinkError):
            publish_report(make_sink(fail=True), "body")

    def test_find_marked_comment_ignores_empty_bodies(self):
        assert find_marked_comment([{"id": 1, "body": None}]) is None


class TestGitHubCommentSink:
    """Tests for the REST client with a mocked session."""

    def github_sink(self, session):
        context = GitHubContext(repository="pixijs/pixijs", issue_number=42)
        return GitHubCommentSink(
            "secret", context, api_url="https://api.test/", session=session
        )

    def test_sets_auth_headers(self):
        session = MagicMock()
        session.headers = {}

        self.github_sink(session)

        assert session.headers["Authorization"] == "Bearer secret"
        assert session.headers["Accept"] == "application/vnd.github+json"

    def test_list_comments_follows_pagination(self):
        session = MagicMock()
        session.headers = {}
        page_two = "https://api.test/repos/pixijs/pixijs/issues/42/comments?page=2"
        session.request.side_effect = [
            response([{"id": 1, "body": "a"}], next_url=page_two),
            response([{"id": 2, "body": "b"}]),
        ]

        comments = self.github_sink(session).list_comments()

        assert [c["id"] for c in comments] == [1, 2]
        first, second = session.request.call_args_list
        assert first.args == ("GET", "https://api.test/repos/pixijs/pixijs/issues/42/comments")
        assert first.kwargs["params"] == {"per_page": 100}
        assert second.args == ("GET", page_two)
        assert second.kwargs["params"] is None

    def test_create_and_update(self):
        session = MagicMock()
        session.headers = {}
        session.request.side_effect = [response({"id": 7}), response({"id": 7})]
        sink = self.github_sink(session)

        sink.create_comment("hello")
        sink.update_comment(7, "again")

        create, update = session.request.call_args_list
        assert create.args[0] == "POST"
        assert create.kwargs["json"] == {"body": "hello"}
        assert update.args == ("PATCH", "https://api.test/repos/pixijs/pixijs/issues/comments/7")

    def test_request_failure_becomes_sink_error(self):
        session = MagicMock()
        session.headers = {}
        session.request.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(ReportSinkError) as excinfo:
            self.github_sink(session).list_comments()

        assert isinstance(excinfo.value.cause, requests.ConnectionError)

    def test_http_error_becomes_sink_error(self):
        session = MagicMock()
        session.headers = {}
        resp = response({})
        resp.raise_for_status.side_effect = requests.HTTPError("403 Forbidden")
        session.request.return_value = resp

        with pytest.raises(ReportSinkError):
            self.github_sink(session).create_comment("body")

    def test_non_json_body_becomes_sink_error(self):
        """Test an HTML page served with status 200 fails as a sink error."""
        session = MagicMock()
        session.headers = {}
        resp = response(None)
        resp.json.side_effect = requests.exceptions.JSONDecodeError(
            "Expecting value", "<html>proxy error</html>", 0
        )
        session.request.return_value = resp

        with pytest.raises(ReportSinkError) as excinfo:
            publish_report(self.github_sink(session), "body")

        assert isinstance(excinfo.value.cause, ValueError)

    def test_listing_must_be_an_array(self):
        session = MagicMock()
        session.headers = {}
        session.request.return_value = response({"message": "Not Found"})

        with pytest.raises(ReportSinkError, match="JSON array"):
            publish_report(self.github_sink(session), "body")

        # Nothing is written after a bad listing
        assert session.request.call_count == 1


class TestGitHubContext:
    """Tests for reading the pull request from the Actions environment."""

    def test_pull_request_event(self, tmp_path):
        event = tmp_path / "event.json"
        event.write_text(json.dumps({"pull_request": {"number": 12}}))

        context = GitHubContext.from_env(
            {"GITHUB_REPOSITORY": "pixijs/pixijs", "GITHUB_EVENT_PATH": str(event)}
        )

        assert context == GitHubContext(repository="pixijs/pixijs", issue_number=12)

    def test_push_event_has_no_context(self, tmp_path):
        event = tmp_path / "event.json"
        event.write_text(json.dumps({"ref": "refs/heads/main"}))

        assert (
            GitHubContext.from_env(
                {"GITHUB_REPOSITORY": "pixijs/pixijs", "GITHUB_EVENT_PATH": str(event)}
            )
            is None
        )

    def test_outside_actions(self):
        assert GitHubContext.from_env({}) is None

    def test_event_payload_not_an_object(self, tmp_path):
        event = tmp_path / "event.json"
        event.write_text(json.dumps(["pull_request"]))

        assert (
            GitHubContext.from_env(
                {"GITHUB_REPOSITORY": "pixijs/pixijs", "GITHUB_EVENT_PATH": str(event)}
            )
            is None
        )
