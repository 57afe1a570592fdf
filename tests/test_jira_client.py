"""Tests for the Jira REST client."""

import base64

import httpx
import pytest

from jira_breakdown.agents.jira_client import JiraClient
from jira_breakdown.errors import TrackerError


@pytest.mark.asyncio
async def test_request_sends_basic_auth_and_json_headers(jira_client, fake_jira):
    fake_jira.on("GET", "priority", json_body=[{"id": "1", "name": "High"}])

    data = await jira_client.request("GET", "priority")

    assert data == [{"id": "1", "name": "High"}]
    call = fake_jira.calls[0]
    expected = base64.b64encode(b"dev@acme.test:jira-token").decode()
    assert call.headers["authorization"] == f"Basic {expected}"
    assert call.headers["accept"] == "application/json"
    assert call.headers["content-type"] == "application/json"


@pytest.mark.asyncio
async def test_error_messages_are_joined(jira_client, fake_jira):
    fake_jira.on("GET", "issue/KAN-1", status=404,
                 json_body={"errorMessages": ["Issue does not exist", "Or no permission"]})

    with pytest.raises(TrackerError) as exc_info:
        await jira_client.request("GET", "issue/KAN-1")

    assert str(exc_info.value) == "Jira error: Issue does not exist, Or no permission"
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_field_errors_are_used_when_no_error_messages(jira_client, fake_jira):
    fake_jira.on("POST", "issue", status=400,
                 json_body={"errorMessages": [], "errors": {"summary": "You must specify a summary."}})

    with pytest.raises(TrackerError) as exc_info:
        await jira_client.request("POST", "issue", {"fields": {}})

    assert exc_info.value.message == "Jira error: You must specify a summary."
    assert exc_info.value.body["errors"] == {"summary": "You must specify a summary."}


@pytest.mark.asyncio
async def test_unparseable_error_falls_back_to_status(jira_client, fake_jira):
    fake_jira.on_call("GET", "priority", lambda call: httpx.Response(503, text="<html>down</html>"))

    with pytest.raises(TrackerError, match="HTTP 503"):
        await jira_client.request("GET", "priority")


@pytest.mark.asyncio
async def test_no_content_returns_empty_dict(jira_client, fake_jira):
    result = await jira_client.request("PUT", "issue/KAN-1", {"fields": {"labels": ["x"]}})
    assert result == {}


@pytest.mark.asyncio
async def test_transport_failure_becomes_tracker_error(settings):
    def broken(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = JiraClient(settings, transport=httpx.MockTransport(broken))
    with pytest.raises(TrackerError) as exc_info:
        await client.request("GET", "priority")
    assert exc_info.value.status_code is None
    await client.close()


@pytest.mark.asyncio
async def test_watcher_body_is_a_bare_json_string(jira_client, fake_jira):
    await jira_client.add_watcher("KAN-3", "acc-42")

    call = fake_jira.calls_to("POST", "issue/KAN-3/watchers")[0]
    assert call.body == "acc-42"


@pytest.mark.asyncio
async def test_get_issue_flattens_description(jira_client, fake_jira):
    fake_jira.on("GET", "issue/KAN-2", json_body={
        "key": "KAN-2",
        "fields": {
            "summary": "Login story",
            "project": {"key": "KAN"},
            "description": {"type": "doc", "version": 1, "content": [
                {"type": "paragraph", "content": [{"type": "text", "text": "Let users log in"}]}
            ]}
        }
    })

    issue = await jira_client.get_issue("KAN-2")

    assert issue.title == "Login story"
    assert issue.description == "Let users log in"
    assert issue.project_key == "KAN"
    assert fake_jira.calls[0].params == {"fields": "summary,description,project,issuetype"}


@pytest.mark.asyncio
async def test_create_issue_returns_key(jira_client, fake_jira):
    key = await jira_client.create_issue({"summary": "x"})
    assert key == "KAN-10"
    assert fake_jira.calls[0].body == {"fields": {"summary": "x"}}


def test_issue_url(settings):
    assert JiraClient(settings).issue_url("KAN-7") == "https://acme.atlassian.net/browse/KAN-7"
