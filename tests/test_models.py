"""Tests for creation metadata."""

from datetime import date

import pytest
from pydantic import ValidationError

from jira_breakdown.models.jira import CreationMetadata, CreationMode


def test_breakdown_requires_parent_key():
    with pytest.raises(ValidationError, match="parent_key"):
        CreationMetadata(mode=CreationMode.BREAKDOWN, project_key="KAN")


def test_create_mode_needs_no_parent():
    meta = CreationMetadata(mode="create", project_key="KAN")

    assert meta.parent_key is None
    assert meta.issue_type == "Story"
    assert meta.extra_fields() == {}


def test_extra_fields():
    meta = CreationMetadata(
        mode="breakdown",
        project_key="KAN",
        parent_key="KAN-1",
        priority="Medium",
        assignee_id="acc-9",
        due_date=date(2026, 12, 24),
        labels=["api", ""],
        team="  Mobile   Apps ",
        story_points=2.5
    )

    assert meta.extra_fields() == {
        "priority": {"name": "Medium"},
        "assignee": {"accountId": "acc-9"},
        "duedate": "2026-12-24",
        "labels": ["api", "team-mobile-apps", "sp:2.5"],
    }


def test_story_points_label_drops_trailing_zero():
    meta = CreationMetadata(mode="create", project_key="KAN", story_points=5)

    assert meta.all_labels() == ["sp:5"]


def test_blank_team_adds_no_label():
    meta = CreationMetadata(mode="create", project_key="KAN", team="   ")

    assert meta.all_labels() == []
