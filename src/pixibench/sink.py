"""Comment sink: post the report to a pull request, replacing any previous one."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import requests

from .config import GITHUB
from .error_handling import ErrorLevel, ReportSinkError, handle_error
from .report import REPORT_MARKER

logger = logging.getLogger(__name__)


class CommentSink(Protocol):
    """Minimal interface of a review thread that holds text comments."""

    def list_comments(self) -> list[dict[str, Any]]: ...

    def create_comment(self, body: str) -> dict[str, Any]: ...

    def update_comment(self, comment_id: int, body: str) -> dict[str, Any]: ...


@dataclass(frozen=True)
class GitHubContext:
    """Repository and pull request the workflow runs for."""

    repository: str
    issue_number: int

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> GitHubContext | None:
        """Read the pull request from the GitHub Actions environment.

        Returns None outside a pull_request event.
        """
        environ = os.environ if environ is None else environ
        repository = environ.get("GITHUB_REPOSITORY")
        event_path = environ.get("GITHUB_EVENT_PATH")
        if not repository or not event_path:
            return None

        try:
            event = json.loads(Path(event_path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"⚠️  Could not read GitHub event payload {event_path}: {e}")
            return None

        pull_request = event.get("pull_request") if isinstance(event, dict) else None
        number = pull_request.get("number") if isinstance(pull_request, dict) else None
        if not isinstance(number, int):
            return None
        return cls(repository=repository, issue_number=number)


class GitHubCommentSink:
    """Issue comments of one pull request, through the GitHub REST API."""

    def __init__(
        self,
        token: str,
        context: GitHubContext,
        api_url: str | None = None,
        session: requests.Session | None = None,
    ):
        self.context = context
        self.api_url = (api_url or GITHUB["api_url"]).rstrip("/")
        self.timeout = GITHUB["request_timeout"]
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            }
        )

    @property
    def _comments_url(self) -> str:
        return (
            f"{self.api_url}/repos/{self.context.repository}"
            f"/issues/{self.context.issue_number}/comments"
        )

    def _request(self, method: str, url: str, **kwargs: Any) -> tuple[Any, dict[str, Any]]:
        """Send one API call; return the decoded JSON body and the pagination links.

        Raises:
            ReportSinkError: On transport errors, HTTP errors or a non-JSON body
        """
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as e:
            handle_error(
                e,
                f"{method} {url}",
                error_type=ReportSinkError,
                level=ErrorLevel.WARNING,
                logger=logger,
            )
        return payload, resp.links

    def list_comments(self) -> list[dict[str, Any]]:
        """Fetch every comment on the pull request, following pagination."""
        comments: list[dict[str, Any]] = []
        url: str | None = self._comments_url
        params: dict[str, Any] | None = {"per_page": GITHUB["per_page"]}
        while url:
            page, links = self._request("GET", url, params=params)
            if not isinstance(page, list) or not all(isinstance(c, dict) for c in page):
                raise ReportSinkError(
                    f"Unexpected comment listing from {url}: expected a JSON array of objects",
                    context={"url": url},
                )
            comments.extend(page)
            url = links.get("next", {}).get("url")
            # The next link already carries the query string
            params = None
        return comments

    def create_comment(self, body: str) -> dict[str, Any]:
        comment, _ = self._request("POST", self._comments_url, json={"body": body})
        return comment

    def update_comment(self, comment_id: int, body: str) -> dict[str, Any]:
        url = f"{self.api_url}/repos/{self.context.repository}/issues/comments/{comment_id}"
        comment, _ = self._request("PATCH", url, json={"body": body})
        return comment


def find_marked_comment(
    comments: list[dict[str, Any]], marker: str = REPORT_MARKER
) -> dict[str, Any] | None:
    for comment in comments:
        if marker in (comment.get("body") or ""):
            return comment
    return None


def publish_report(sink: CommentSink, body: str, marker: str = REPORT_MARKER) -> str:
    """Update the comment carrying *marker*, or create one.

    Returns:
        "updated" or "created"

    Raises:
        ReportSinkError: If the sink cannot be listed or written
    """
    existing = find_marked_comment(sink.list_comments(), marker)
    if existing is not None:
        sink.update_comment(existing["id"], body)
        logger.info("💬 Updated existing benchmark comment.")
        return "updated"

    sink.create_comment(body)
    logger.info("💬 Posted new benchmark comment.")
    return "created"
