"""Detects the Jira issue or project a browser tab is showing."""

import re

from ..models.jira import PageContext

_BROWSE_PATTERN = re.compile(r"/browse/([A-Z][A-Z0-9]+-\d+)")
_PROJECT_PATTERN = re.compile(r"/jira/software/projects/([A-Z][A-Z0-9]+)")


def detect_page_context(url: str) -> PageContext:
    """Extract an issue key and/or project key from a Jira URL."""
    url = url or ""

    browse_match = _BROWSE_PATTERN.search(url)
    if browse_match:
        issue_key = browse_match.group(1)
        return PageContext(
            issue_key=issue_key,
            project_key=issue_key.split("-")[0],
            is_jira_issue=True,
            label=issue_key
        )

    project_match = _PROJECT_PATTERN.search(url)
    if project_match:
        return PageContext(project_key=project_match.group(1), label=project_match.group(1))

    if "atlassian.net" in url:
        return PageContext(label="Jira detected")

    return PageContext(label="Open a Jira page")
