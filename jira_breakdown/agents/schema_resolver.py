"""Per-project Jira schema discovery and subtask issue-type detection."""

import asyncio
import json
from typing import Dict, List

from ..errors import SchemaError, TrackerError
from ..logger import get_logger
from ..models.jira import (
    IssueType, IssueTypeCatalog, Priority, ProjectSchema, Status, User
)
from .jira_client import JiraClient

logger = get_logger(__name__)

DEFAULT_SUBTASK_TYPE = "Subtask"

# Names Jira sites commonly use for the subtask issue type, in probe order
SUBTASK_TYPE_CANDIDATES = ["Subtask", "Sub-task", "subtask", "sub-task"]

PROBE_SUMMARY = "__probe__"

# Offered when issue types cannot be discovered at all
FALLBACK_PARENT_TYPES = ["Story", "Task", "Bug"]


class SchemaResolver:
    """
    Discovers issue types, statuses, priorities and users for a project.

    Holds two caches keyed by project key for the lifetime of the
    instance: the issue-type catalog and the resolved subtask type name.
    The second is independent of the first so a detected name survives a
    failed catalog lookup. Neither cache is synchronised; at most one
    creation run is expected at a time.
    """

    def __init__(self, client: JiraClient):
        self.client = client
        self._issue_type_cache: Dict[str, IssueTypeCatalog] = {}
        self._subtask_type_cache: Dict[str, str] = {}

    def invalidate(self, project_key: str) -> None:
        """Forget everything cached for a project."""
        self._issue_type_cache.pop(project_key, None)
        self._subtask_type_cache.pop(project_key, None)

    async def issue_types(self, project_key: str) -> IssueTypeCatalog:
        """
        Issue types available for creation in a project.

        Raises:
            SchemaError: createmeta returned no issue types for the project,
                which points at a permission or transport problem.
            TrackerError: the createmeta request itself failed.
        """
        cached = self._issue_type_cache.get(project_key)
        if cached:
            return cached

        data = await self.client.request(
            "GET",
            "issue/createmeta",
            params={"projectKeys": project_key, "expand": "projects.issuetypes"}
        )
        project = next(
            (p for p in data.get("projects") or [] if p.get("key") == project_key),
            None
        )
        all_types = [IssueType(**t) for t in (project or {}).get("issuetypes") or []]
        if not all_types:
            raise SchemaError(f"No issue types found for project {project_key}")

        subtask_types = [t for t in all_types if t.subtask]
        catalog = IssueTypeCatalog(
            parent_types=[t for t in all_types if not t.subtask],
            subtask_types=subtask_types,
            default_subtask_type=subtask_types[0].name if subtask_types else DEFAULT_SUBTASK_TYPE,
            all_types=all_types
        )
        self._issue_type_cache[project_key] = catalog
        if subtask_types:
            self._subtask_type_cache[project_key] = subtask_types[0].name
        return catalog

    async def statuses(self, project_key: str) -> List[Status]:
        """All statuses used by the project's issue types, unique by name."""
        data = await self.client.request("GET", f"project/{project_key}/statuses")
        seen: Dict[str, Status] = {}
        for issue_type in data or []:
            for status in issue_type.get("statuses") or []:
                name = status.get("name")
                if name and name not in seen:
                    seen[name] = Status(id=status.get("id"), name=name)
        return list(seen.values())

    async def assignable_users(self, project_key: str) -> List[User]:
        data = await self.client.request(
            "GET", "user/assignable/search", params={"project": project_key}
        )
        return [User(**u) for u in data or []]

    async def priorities(self) -> List[Priority]:
        data = await self.client.request("GET", "priority")
        return [Priority(id=p.get("id"), name=p["name"]) for p in data or []]

    async def resolve_subtask_type_name(self, project_key: str) -> str:
        """
        Find the subtask issue type name Jira accepts for this project.

        Tries, in order: the cache, createmeta, a creation probe for each
        name in SUBTASK_TYPE_CANDIDATES, and finally DEFAULT_SUBTASK_TYPE.
        Always returns a name.

        A probe is a real POST to /issue with only a summary. When Jira
        rejects it for some reason other than the issue type (usually a
        missing required field), the candidate name is taken as valid. If
        the probe is accepted outright a stray "__probe__" issue is left in
        the project.
        """
        cached = self._subtask_type_cache.get(project_key)
        if cached:
            return cached

        try:
            catalog = await self.issue_types(project_key)
            if catalog.subtask_types:
                name = catalog.subtask_types[0].name
                logger.info("Detected subtask type", project_key=project_key, name=name)
                self._subtask_type_cache[project_key] = name
                return name
        except Exception as e:
            logger.warning(
                "createmeta failed, probing subtask type names",
                project_key=project_key,
                error=str(e)
            )

        for name in SUBTASK_TYPE_CANDIDATES:
            if await self._probe_subtask_type(project_key, name):
                logger.info("Subtask type found via probe", project_key=project_key, name=name)
                self._subtask_type_cache[project_key] = name
                return name

        self._subtask_type_cache[project_key] = DEFAULT_SUBTASK_TYPE
        return DEFAULT_SUBTASK_TYPE

    async def _probe_subtask_type(self, project_key: str, name: str) -> bool:
        """True when Jira's answer to a probe creation does not blame the issue type."""
        fields = {
            "project": {"key": project_key},
            "issuetype": {"name": name},
            "summary": PROBE_SUMMARY,
        }
        try:
            body = await self.client.request("POST", "issue", {"fields": fields})
            logger.warning(
                "Subtask type probe created an issue",
                project_key=project_key,
                name=name,
                issue_key=body.get("key") if isinstance(body, dict) else None
            )
        except TrackerError as e:
            if e.status_code is None:
                # Transport failure says nothing about the name
                return False
            body = e.body

        error_text = json.dumps(body if body is not None else {}).lower()
        return "issuetype" not in error_text and "issue type" not in error_text

    async def load_project(self, project_key: str) -> ProjectSchema:
        """
        Fetch issue types, statuses, assignable users and priorities concurrently.

        Each query succeeds or fails on its own. A failed query is logged,
        recorded in `ProjectSchema.errors`, and replaced with a fallback.
        """
        types_result, statuses_result, users_result, priorities_result = await asyncio.gather(
            self.issue_types(project_key),
            self.statuses(project_key),
            self.assignable_users(project_key),
            self.priorities(),
            return_exceptions=True
        )

        schema = ProjectSchema(project_key=project_key)

        if isinstance(types_result, BaseException):
            _check_recoverable(types_result)
            logger.warning("Issue types failed", project_key=project_key, error=str(types_result))
            schema.errors["issue_types"] = str(types_result)
            schema.parent_issue_types = [IssueType(name=n) for n in FALLBACK_PARENT_TYPES]
            schema.subtask_type_detected = True
            try:
                schema.default_subtask_type_name = await self.resolve_subtask_type_name(project_key)
            except Exception as e:
                logger.warning("Fallback detection also failed", project_key=project_key, error=str(e))
                schema.default_subtask_type_name = DEFAULT_SUBTASK_TYPE
        else:
            schema.parent_issue_types = types_result.parent_types
            schema.subtask_issue_types = types_result.subtask_types
            schema.default_subtask_type_name = types_result.default_subtask_type

        if isinstance(statuses_result, BaseException):
            _check_recoverable(statuses_result)
            logger.warning("Statuses failed", project_key=project_key, error=str(statuses_result))
            schema.errors["statuses"] = str(statuses_result)
        else:
            schema.statuses = statuses_result

        if isinstance(users_result, BaseException):
            _check_recoverable(users_result)
            logger.warning("Users failed", project_key=project_key, error=str(users_result))
            schema.errors["assignable_users"] = str(users_result)
        else:
            schema.assignable_users = users_result

        if isinstance(priorities_result, BaseException):
            _check_recoverable(priorities_result)
            logger.warning("Priorities failed", project_key=project_key, error=str(priorities_result))
            schema.errors["priorities"] = str(priorities_result)
        else:
            schema.priorities = priorities_result

        return schema


def _check_recoverable(error: BaseException) -> None:
    """Re-raise anything that is not an ordinary failed query."""
    if not isinstance(error, Exception):
        raise error
