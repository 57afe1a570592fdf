"""Creates the parent issue and subtasks in Jira for a confirmed breakdown."""

from enum import Enum
from typing import Any, Awaitable, Dict, Optional

from ..logger import get_logger
from ..models.jira import (
    CreationMetadata, CreationMode, CreationOutcome, PendingCreation
)
from ..models.generation import GeneratedSubtask, GenerationResult
from .adf import build_adf
from .jira_client import JiraClient
from .schema_resolver import SchemaResolver

logger = get_logger(__name__)


class RunState(str, Enum):
    """State of a creation run."""
    IDLE = "idle"
    RESOLVING_PARENT = "resolving_parent"
    CREATING_SUBTASKS = "creating_subtasks"
    DONE = "done"
    FAILED = "failed"


async def _best_effort(action: str, call: Awaitable[Any], **context: Any) -> bool:
    """
    Await an enrichment call whose failure must not stop the run.

    Any error, including a malformed Jira reply, is logged and dropped
    here; this is the only place errors are discarded. Returns whether the
    call succeeded.
    """
    try:
        await call
        return True
    except Exception as e:
        logger.warning("Enrichment call failed", action=action, error=str(e), **context)
        return False


async def transition_issue(client: JiraClient, issue_key: str, status_name: str) -> bool:
    """
    Move an issue to the named status if a transition leads there.

    Matching is case-insensitive. No matching transition is not an error:
    the status may simply be unreachable from the current one.
    """
    transitions = await client.get_transitions(issue_key)
    match = next(
        (t for t in transitions if (t.get("name") or "").lower() == status_name.lower()),
        None
    )
    if not match or not match.get("id"):
        logger.info("No transition to status", issue_key=issue_key, status=status_name)
        return False
    await client.do_transition(issue_key, match["id"])
    return True


async def add_watcher(client: JiraClient, issue_key: str, identifier: str) -> None:
    """
    Add a watcher by account id or email.

    Emails are looked up with a user search. If the search fails or finds
    nobody, the raw identifier is sent as-is.
    """
    account_id = identifier
    if "@" in identifier:
        try:
            users = await client.search_users(identifier)
            if users and isinstance(users[0], dict) and users[0].get("accountId"):
                account_id = users[0]["accountId"]
        except Exception as e:
            logger.warning("User search failed, using identifier as-is", identifier=identifier, error=str(e))
    await client.add_watcher(issue_key, account_id)


class CreationRun:
    """
    One confirmed creation: optional parent, then each subtask in order.

    Only creating the parent or a subtask can fail the run. Field updates,
    status transitions and watchers are best-effort. `outcome` is appended
    to as soon as each issue exists, so it is accurate after a failure too.

    Subtasks are created one at a time, in the order the generator returned
    them. This keeps the call sequence predictable and makes a partial
    failure easy to account for.
    """

    def __init__(self, client: JiraClient, resolver: SchemaResolver):
        self.client = client
        self.resolver = resolver
        self.state = RunState.IDLE
        self.outcome: Optional[CreationOutcome] = None
        self.error: Optional[Exception] = None

    async def execute(self, pending: PendingCreation) -> CreationOutcome:
        """
        Materialise a pending creation in Jira.

        Raises:
            TrackerError: the parent or a subtask could not be created. The
                run is then FAILED and `outcome` holds what was created.
                Any other error also fails the run and is re-raised as is.
        """
        result, meta = pending.result, pending.metadata
        self.outcome = CreationOutcome(mode=meta.mode, parent_key=meta.parent_key)

        try:
            self.state = RunState.RESOLVING_PARENT
            parent_key = await self._resolve_parent(result, meta)

            self.state = RunState.CREATING_SUBTASKS
            extra_fields = meta.extra_fields()
            total = len(result.subtasks)
            for index, subtask in enumerate(result.subtasks, start=1):
                logger.info(
                    "Creating subtask",
                    position=f"{index}/{total}",
                    title=subtask.title[:30]
                )
                await self._create_subtask(parent_key, subtask, meta, extra_fields)
        except Exception as e:
            self._fail(e)
            raise

        self.state = RunState.DONE
        logger.info(
            "Creation run complete",
            parent_key=self.outcome.parent_key,
            created=len(self.outcome.created_keys)
        )
        return self.outcome

    def _fail(self, error: Exception) -> None:
        self.state = RunState.FAILED
        self.error = error
        logger.error(
            "Creation run failed",
            error=str(error),
            error_class=type(error).__name__,
            created_keys=self.outcome.created_keys
        )

    async def _resolve_parent(self, result: GenerationResult, meta: CreationMetadata) -> str:
        if meta.mode == CreationMode.CREATE:
            parent_key = await self.client.create_issue({
                "project": {"key": meta.project_key},
                "issuetype": {"name": meta.issue_type or "Story"},
                "summary": result.title,
                "description": build_adf(result.description, result.acceptance_criteria),
            })
            self.outcome.parent_key = parent_key
            self.outcome.created_keys.append(parent_key)
            logger.info("Created parent issue", issue_key=parent_key)
        else:
            parent_key = meta.parent_key

        if meta.status and parent_key:
            await _best_effort(
                "Parent transition",
                transition_issue(self.client, parent_key, meta.status),
                issue_key=parent_key
            )
        return parent_key

    async def _create_subtask(
        self,
        parent_key: str,
        subtask: GeneratedSubtask,
        meta: CreationMetadata,
        extra_fields: Dict[str, Any]
    ) -> str:
        issue_type = meta.subtask_type or await self.resolver.resolve_subtask_type_name(meta.project_key)

        # Optional fields go in a separate update: a field missing from the
        # create screen would otherwise reject the whole issue.
        subtask_key = await self.client.create_issue({
            "project": {"key": meta.project_key},
            "parent": {"key": parent_key},
            "summary": subtask.title,
            "description": build_adf(subtask.description, subtask.acceptance_criteria),
            "issuetype": {"name": issue_type},
        })
        self.outcome.created_keys.append(subtask_key)

        if extra_fields:
            await _best_effort(
                "Setting extra fields",
                self.client.update_issue(subtask_key, extra_fields),
                issue_key=subtask_key,
                fields=sorted(extra_fields)
            )

        if meta.status:
            await _best_effort(
                "Subtask transition",
                transition_issue(self.client, subtask_key, meta.status),
                issue_key=subtask_key
            )

        for watcher in meta.watchers:
            await _best_effort(
                "Adding watcher",
                add_watcher(self.client, subtask_key, watcher),
                issue_key=subtask_key,
                watcher=watcher
            )

        return subtask_key

