"""Jira API endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends

from ..agents.groq_agent import GroqAgent
from ..agents.jira_agent import CreationRun
from ..agents.jira_client import JiraClient
from ..agents.page_context import detect_page_context
from ..agents.reporter import build_report
from ..agents.schema_resolver import SchemaResolver
from ..config import Settings, get_settings
from ..deps import get_groq_agent, get_jira_client, get_schema_resolver
from ..errors import JiraBreakdownError, TrackerError
from ..logger import get_logger
from ..models.generation import BreakdownRequest, CreateNewRequest
from ..models.jira import (
    BreakdownGenerateRequest, CreateGenerateRequest, CreateJiraResponse,
    CreationMetadata, CreationMode, GenerateResponse, PageContext,
    PendingCreation, ProjectSchema
)

logger = get_logger(__name__)

router = APIRouter()


def _clean(value: Optional[str]) -> Optional[str]:
    """Blank form values mean "not set"."""
    if value is None:
        return None
    return value.strip() or None


def _clean_list(values: List[str]) -> List[str]:
    return [v.strip() for v in values if v and v.strip()]


@router.get("/context", response_model=PageContext)
async def page_context(url: str = "") -> PageContext:
    """Detect the issue or project shown at a Jira URL."""
    return detect_page_context(url)


@router.get("/projects/{project_key}/metadata", response_model=ProjectSchema)
async def project_metadata(
    project_key: str,
    refresh: bool = False,
    settings: Settings = Depends(get_settings),
    resolver: SchemaResolver = Depends(get_schema_resolver)
) -> ProjectSchema:
    """
    Issue types, statuses, assignable users and priorities for a project.

    The four lookups run concurrently. A lookup that fails is reported in
    `errors` and replaced with a fallback instead of failing the request.
    """
    settings.require_complete()
    project_key = project_key.strip().upper()
    if refresh:
        resolver.invalidate(project_key)
    return await resolver.load_project(project_key)


@router.post("/generate/breakdown", response_model=GenerateResponse)
async def generate_breakdown(
    request: BreakdownGenerateRequest,
    settings: Settings = Depends(get_settings),
    client: JiraClient = Depends(get_jira_client),
    agent: GroqAgent = Depends(get_groq_agent)
) -> GenerateResponse:
    """
    Fetch a story from Jira and generate subtasks for it.

    Returns a pending creation to preview and send back to /create.
    """
    try:
        settings.require_complete()
        story_key = request.story_key.strip().upper()
        project_key = (_clean(request.project_key) or story_key.split("-")[0]).upper()

        story = await client.get_issue(story_key)
        result = await agent.generate(BreakdownRequest(
            story_title=story.title,
            story_description=story.description,
            subtask_count=request.subtask_count
        ))

        metadata = CreationMetadata(
            mode=CreationMode.BREAKDOWN,
            project_key=project_key,
            parent_key=story_key,
            subtask_type=_clean(request.subtask_type),
            status=_clean(request.status),
            priority=_clean(request.priority),
            assignee_id=_clean(request.assignee_id),
            due_date=request.due_date,
            labels=_clean_list(request.labels),
            team=_clean(request.team),
            story_points=request.story_points,
            watchers=_clean_list(request.watchers)
        )
        return GenerateResponse(success=True, pending=PendingCreation(result=result, metadata=metadata))
    except JiraBreakdownError as e:
        logger.warning("Breakdown generation failed", story_key=request.story_key, error=e.message)
        return GenerateResponse(success=False, error=e.message, error_type=e.error_type)
    except Exception as e:
        logger.exception("Unexpected error generating breakdown")
        return GenerateResponse(success=False, error=str(e), error_type="server_error")


@router.post("/generate/create", response_model=GenerateResponse)
async def generate_create(
    request: CreateGenerateRequest,
    settings: Settings = Depends(get_settings),
    agent: GroqAgent = Depends(get_groq_agent)
) -> GenerateResponse:
    """Generate a new issue with subtasks from a free-text description."""
    try:
        settings.require_complete()
        issue_type = _clean(request.issue_type) or "Story"
        result = await agent.generate(CreateNewRequest(
            description=request.description.strip(),
            issue_type=issue_type,
            subtask_count=request.subtask_count
        ))

        metadata = CreationMetadata(
            mode=CreationMode.CREATE,
            project_key=request.project_key.strip().upper(),
            issue_type=issue_type,
            status=_clean(request.status)
        )
        return GenerateResponse(success=True, pending=PendingCreation(result=result, metadata=metadata))
    except JiraBreakdownError as e:
        logger.warning("Create generation failed", error=e.message)
        return GenerateResponse(success=False, error=e.message, error_type=e.error_type)
    except Exception as e:
        logger.exception("Unexpected error generating issue")
        return GenerateResponse(success=False, error=str(e), error_type="server_error")


@router.post("/create", response_model=CreateJiraResponse)
async def create_issues(
    pending: PendingCreation,
    settings: Settings = Depends(get_settings),
    client: JiraClient = Depends(get_jira_client),
    resolver: SchemaResolver = Depends(get_schema_resolver)
) -> CreateJiraResponse:
    """
    Create the confirmed parent issue (create mode) and subtasks in Jira.

    On failure the response still lists every issue created before it.
    """
    try:
        settings.require_complete()
    except JiraBreakdownError as e:
        return CreateJiraResponse(success=False, error=e.message, error_type=e.error_type)

    run = CreationRun(client, resolver)
    try:
        outcome = await run.execute(pending)
    except TrackerError as e:
        outcome = run.outcome
        return CreateJiraResponse(
            success=False,
            parent_key=outcome.parent_key,
            created_keys=outcome.created_keys,
            report=build_report(outcome, settings.browse_url, error=e.message),
            error=e.message,
            error_type=e.error_type
        )
    except Exception as e:
        logger.exception("Unexpected error creating issues")
        outcome = run.outcome
        return CreateJiraResponse(
            success=False,
            parent_key=outcome.parent_key if outcome else None,
            created_keys=outcome.created_keys if outcome else [],
            error=str(e),
            error_type="server_error"
        )

    return CreateJiraResponse(
        success=True,
        parent_key=outcome.parent_key,
        created_keys=outcome.created_keys,
        report=build_report(outcome, settings.browse_url)
    )
