"""Pydantic models for Jira schema discovery, issue creation and the API."""

import re
from datetime import date
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .generation import GenerationResult


# --- Project schema -------------------------------------------------------

class IssueType(BaseModel):
    """An issue type as reported by createmeta."""
    id: Optional[str] = None
    name: str
    subtask: bool = False


class Status(BaseModel):
    """A workflow status."""
    id: Optional[str] = None
    name: str


class Priority(BaseModel):
    """A priority from the global priority catalog."""
    id: Optional[str] = None
    name: str


class User(BaseModel):
    """An assignable Jira user."""
    model_config = ConfigDict(populate_by_name=True)

    account_id: str = Field(alias="accountId")
    display_name: str = Field(default="", alias="displayName")


class IssueTypeCatalog(BaseModel):
    """Issue types of a project, partitioned by the subtask flag."""
    parent_types: List[IssueType]
    subtask_types: List[IssueType]
    default_subtask_type: str
    all_types: List[IssueType]


class ProjectSchema(BaseModel):
    """
    Everything the UI needs to fill its dropdowns for one project.

    `errors` maps a field name ("issue_types", "statuses",
    "assignable_users", "priorities") to the failure message for that
    query. A failed field carries its fallback value.
    """
    project_key: str
    parent_issue_types: List[IssueType] = []
    subtask_issue_types: List[IssueType] = []
    default_subtask_type_name: str = "Subtask"
    subtask_type_detected: bool = False
    statuses: List[Status] = []
    priorities: List[Priority] = []
    assignable_users: List[User] = []
    errors: Dict[str, str] = {}


class JiraIssue(BaseModel):
    """The parts of an existing issue we feed to the generator."""
    key: str
    title: str
    description: str = ""
    project_key: str = ""


# --- Creation -------------------------------------------------------------

class CreationMode(str, Enum):
    """What a creation run materialises."""
    BREAKDOWN = "breakdown"
    CREATE = "create"


class CreationMetadata(BaseModel):
    """Everything besides the generated text needed to create the issues."""
    mode: CreationMode
    project_key: str
    parent_key: Optional[str] = None
    issue_type: str = "Story"
    subtask_type: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    assignee_id: Optional[str] = None
    due_date: Optional[date] = None
    labels: List[str] = []
    team: Optional[str] = None
    story_points: Optional[float] = None
    watchers: List[str] = []

    @model_validator(mode="after")
    def check_parent_key(self):
        if self.mode == CreationMode.BREAKDOWN and not self.parent_key:
            raise ValueError("parent_key is required in breakdown mode")
        return self

    def all_labels(self) -> List[str]:
        """User labels plus the synthesised team and story-point labels."""
        labels = [label for label in self.labels if label]
        if self.team and self.team.strip():
            labels.append("team-" + re.sub(r"\s+", "-", self.team.strip().lower()))
        if self.story_points is not None:
            labels.append(f"sp:{self.story_points:g}")
        return labels

    def extra_fields(self) -> Dict[str, object]:
        """Optional fields applied after creation. Empty values are left out."""
        fields: Dict[str, object] = {}
        if self.priority:
            fields["priority"] = {"name": self.priority}
        if self.assignee_id:
            fields["assignee"] = {"accountId": self.assignee_id}
        if self.due_date:
            fields["duedate"] = self.due_date.isoformat()
        labels = self.all_labels()
        if labels:
            fields["labels"] = labels
        return fields


class PendingCreation(BaseModel):
    """Generated output awaiting user confirmation, plus how to create it."""
    result: GenerationResult
    metadata: CreationMetadata


class CreationOutcome(BaseModel):
    """Keys created so far by a run. Only ever appended to."""
    mode: CreationMode
    parent_key: Optional[str] = None
    created_keys: List[str] = []


# --- API ------------------------------------------------------------------

class PageContext(BaseModel):
    """Issue/project detected from the active page URL."""
    issue_key: str = ""
    project_key: str = ""
    is_jira_issue: bool = False
    label: str = ""


class BreakdownGenerateRequest(BaseModel):
    """Request body for breaking down an existing story."""
    story_key: str = Field(min_length=1)
    project_key: Optional[str] = None
    subtask_count: int = Field(default=5, ge=1)
    subtask_type: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    assignee_id: Optional[str] = None
    due_date: Optional[date] = None
    labels: List[str] = []
    team: Optional[str] = None
    story_points: Optional[float] = None
    watchers: List[str] = []


class CreateGenerateRequest(BaseModel):
    """Request body for creating a new issue with subtasks."""
    description: str = Field(min_length=1)
    project_key: str = Field(min_length=1)
    issue_type: str = "Story"
    subtask_count: int = Field(default=5, ge=1)
    status: Optional[str] = None


class GenerateResponse(BaseModel):
    """Preview returned by the generate endpoint."""
    success: bool
    pending: Optional[PendingCreation] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


class IssueLink(BaseModel):
    """A created issue and its browse URL."""
    key: str
    url: str


class CreationReport(BaseModel):
    """Human-readable summary of a creation run."""
    success: bool
    message: str
    links: List[IssueLink] = []
    jira_link_markdown: Optional[str] = None
    error: Optional[str] = None


class CreateJiraResponse(BaseModel):
    """Response from confirming a pending creation."""
    success: bool
    parent_key: Optional[str] = None
    created_keys: List[str] = []
    report: Optional[CreationReport] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
