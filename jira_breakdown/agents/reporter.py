"""Formats a creation outcome for display."""

from typing import Optional

from ..models.jira import CreationMode, CreationOutcome, CreationReport, IssueLink


def build_report(outcome: CreationOutcome, browse_url: str, error: Optional[str] = None) -> CreationReport:
    """
    Summarise what a run created.

    Create mode links every created issue, parent first. Breakdown mode
    links only the new subtasks. A failed run still links whatever was
    created before the failure.
    """
    subtask_keys = [k for k in outcome.created_keys if k != outcome.parent_key]
    shown = outcome.created_keys if outcome.mode == CreationMode.CREATE else subtask_keys
    links = [IssueLink(key=key, url=f"{browse_url}/{key}") for key in shown]

    if error:
        message = f"Failed: {error}"
        if links:
            message += f" ({len(links)} created before the failure)"
    elif outcome.mode == CreationMode.CREATE:
        message = f"Created {len(subtask_keys) + 1} issues in Jira!"
    else:
        message = f"Created {len(subtask_keys)} subtasks under {outcome.parent_key}!"

    jira_link = None
    if outcome.parent_key:
        jira_link = f"**Jira**: [{outcome.parent_key}]({browse_url}/{outcome.parent_key})"

    return CreationReport(
        success=error is None,
        message=message,
        links=links,
        jira_link_markdown=jira_link,
        error=error
    )
