"""
Pytest configuration and fixtures.

FakeJira and FakeGroq stand in for the remote services behind an
httpx.MockTransport, recording every request they receive.
"""

import json
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from jira_breakdown.agents.groq_agent import GroqAgent
from jira_breakdown.agents.jira_client import JiraClient
from jira_breakdown.agents.schema_resolver import SchemaResolver
from jira_breakdown.config import Settings

API_PREFIX = "/rest/api/3/"


@dataclass
class Call:
    """A request received by a fake service."""
    method: str
    path: str
    params: Dict[str, str]
    body: Any
    headers: Dict[str, str] = field(default_factory=dict)


Handler = Callable[[Call], httpx.Response]


class FakeJira:
    """
    In-memory Jira REST API.

    Unrouted calls get sensible defaults: POST /issue creates the next
    key in the project, updates/transitions/watchers answer 204, and
    anything else is a 404.
    """

    def __init__(self, project_key: str = "KAN", first_key: int = 10):
        self.project_key = project_key
        self.next_key = first_key
        self.calls: List[Call] = []
        self.routes: Dict[Tuple[str, str], Handler] = {}

    def on(self, method: str, path: str, status: int = 200, json_body: Any = None) -> None:
        """Answer every `method path` request with a fixed response."""
        self.routes[(method, path)] = lambda call: httpx.Response(status, json=json_body)

    def on_call(self, method: str, path: str, handler: Handler) -> None:
        """Answer `method path` requests with a handler."""
        self.routes[(method, path)] = handler

    def create_next(self) -> httpx.Response:
        key = f"{self.project_key}-{self.next_key}"
        self.next_key += 1
        return httpx.Response(201, json={"id": str(10000 + self.next_key), "key": key})

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith(API_PREFIX):
            path = path[len(API_PREFIX):]
        body = json.loads(request.content) if request.content else None
        call = Call(
            method=request.method,
            path=path,
            params=dict(request.url.params),
            body=body,
            headers=dict(request.headers)
        )
        self.calls.append(call)

        route = self.routes.get((request.method, path))
        if route is not None:
            return route(call)

        if request.method == "POST" and path == "issue":
            return self.create_next()
        if request.method in ("PUT", "POST") and path.startswith("issue/"):
            return httpx.Response(204)
        if request.method == "GET" and path.endswith("/transitions"):
            return httpx.Response(200, json={"transitions": []})
        if request.method == "GET" and path == "user/search":
            return httpx.Response(200, json=[])
        return httpx.Response(404, json={"errorMessages": [f"No route for {request.method} {path}"]})

    def calls_to(self, method: str, path: Optional[str] = None) -> List[Call]:
        return [
            c for c in self.calls
            if c.method == method and (path is None or c.path == path)
        ]

    def created_issues(self) -> List[Dict[str, Any]]:
        """Field sets of every POST /issue, in order."""
        return [c.body["fields"] for c in self.calls_to("POST", "issue")]


class FakeGroq:
    """Chat completions endpoint that replies with a fixed message content."""

    def __init__(self, content: Any = None, status: int = 200, error: Optional[Dict[str, Any]] = None):
        self.content = content
        self.status = status
        self.error = error
        self.calls: List[Call] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(Call(
            method=request.method,
            path=request.url.path,
            params=dict(request.url.params),
            body=json.loads(request.content),
            headers=dict(request.headers)
        ))
        if self.status != 200:
            return httpx.Response(self.status, json={"error": self.error} if self.error else {})
        content = self.content if isinstance(self.content, str) else json.dumps(self.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


def make_result(title: str = "Add login", subtasks: int = 3) -> Dict[str, Any]:
    """A well-formed generator reply."""
    return {
        "title": title,
        "description": "Users can sign in.",
        "acceptance_criteria": ["Login form exists", "Bad passwords are rejected"],
        "subtasks": [
            {
                "title": f"Subtask {i}",
                "description": f"Do part {i}",
                "acceptance_criteria": [f"Part {i} done"]
            }
            for i in range(1, subtasks + 1)
        ]
    }


@pytest.fixture
def settings() -> Settings:
    """Complete settings that never read the environment."""
    return Settings(
        _env_file=None,
        groq_key="gsk_test",
        jira_url="https://acme.atlassian.net/",
        jira_email="dev@acme.test",
        jira_token="jira-token",
    )


@pytest.fixture
def fake_jira() -> FakeJira:
    return FakeJira()


@pytest.fixture
async def jira_client(settings: Settings, fake_jira: FakeJira) -> AsyncGenerator[JiraClient, None]:
    client = JiraClient(settings, transport=httpx.MockTransport(fake_jira.handler))
    yield client
    await client.close()


@pytest.fixture
def resolver(jira_client: JiraClient) -> SchemaResolver:
    return SchemaResolver(jira_client)


@pytest.fixture
def groq_factory(settings: Settings) -> Callable[[FakeGroq], GroqAgent]:
    def factory(fake: FakeGroq) -> GroqAgent:
        return GroqAgent(settings, transport=httpx.MockTransport(fake.handler))
    return factory
