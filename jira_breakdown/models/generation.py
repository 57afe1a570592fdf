"""Pydantic models for the AI generation step."""

from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, Field, field_validator


class GeneratedSubtask(BaseModel):
    """A single subtask proposed by the model."""
    title: str
    description: str = ""
    acceptance_criteria: List[str] = []

    @field_validator("description", mode="before")
    @classmethod
    def null_description(cls, v):
        return "" if v is None else v

    @field_validator("acceptance_criteria", mode="before")
    @classmethod
    def null_criteria(cls, v):
        return [] if v is None else v


class GenerationResult(BaseModel):
    """Structured breakdown returned by the model."""
    title: str = ""
    description: str = ""
    acceptance_criteria: List[str] = []
    subtasks: List[GeneratedSubtask]

    @field_validator("title", "description", mode="before")
    @classmethod
    def null_text(cls, v):
        return "" if v is None else v

    @field_validator("acceptance_criteria", mode="before")
    @classmethod
    def null_criteria(cls, v):
        return [] if v is None else v


class BreakdownRequest(BaseModel):
    """Break an existing story into subtasks."""
    mode: Literal["breakdown"] = "breakdown"
    story_title: str
    story_description: str = ""
    subtask_count: int = Field(default=5, ge=1)


class CreateNewRequest(BaseModel):
    """Create a new issue with subtasks from a free-text description."""
    mode: Literal["create"] = "create"
    description: str
    issue_type: str = "Story"
    subtask_count: int = Field(default=5, ge=1)


GenerationRequest = Annotated[
    Union[BreakdownRequest, CreateNewRequest],
    Field(discriminator="mode")
]
