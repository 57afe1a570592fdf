"""Authenticated client for the Jira Cloud REST API (v3)."""

from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..config import Settings
from ..errors import TrackerError
from ..logger import get_logger
from ..models.jira import JiraIssue
from .adf import extract_text

logger = get_logger(__name__)


def _error_message(response: httpx.Response) -> Tuple[str, Any]:
    """Pull a readable message out of a Jira error body."""
    try:
        body = response.json()
    except ValueError:
        body = {}

    message = ""
    if isinstance(body, dict):
        error_messages = body.get("errorMessages") or []
        errors = body.get("errors") or {}
        if error_messages:
            message = ", ".join(str(m) for m in error_messages)
        elif isinstance(errors, dict) and errors:
            message = ", ".join(str(v) for v in errors.values())

    return message or f"HTTP {response.status_code}", body


class JiraClient:
    """
    Thin wrapper over the Jira REST API.

    Every transport failure and non-2xx response leaves this class as a
    TrackerError; nothing above it looks at HTTP status codes.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            kwargs: Dict[str, Any] = {}
            if self.settings.http_timeout is not None:
                kwargs["timeout"] = httpx.Timeout(self.settings.http_timeout)
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(
                base_url=f"{self.settings.jira_url}/rest/api/3/",
                auth=httpx.BasicAuth(self.settings.jira_email, self.settings.jira_token),
                headers={
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                },
                **kwargs
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        `body` may be any JSON value, including a bare string (the watcher
        endpoint expects one). A 204 response yields an empty dict.

        Raises:
            TrackerError: on transport failure or any non-2xx response.
        """
        client = await self._get_client()
        kwargs: Dict[str, Any] = {}
        if body is not None:
            kwargs["json"] = body
        if params:
            kwargs["params"] = params

        logger.debug("Jira request", method=method, path=path)
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise TrackerError(f"Jira request failed: {e}") from e

        if not response.is_success:
            message, error_body = _error_message(response)
            raise TrackerError(
                f"Jira error: {message}",
                status_code=response.status_code,
                body=error_body
            )

        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise TrackerError(f"Jira returned a non-JSON response ({response.status_code})") from e

    async def get_issue(self, issue_key: str) -> JiraIssue:
        """Fetch the fields the generator needs from an existing issue."""
        data = await self.request(
            "GET",
            f"issue/{issue_key}",
            params={"fields": "summary,description,project,issuetype"}
        )
        fields = data.get("fields") or {}
        return JiraIssue(
            key=issue_key,
            title=fields.get("summary") or "",
            description=extract_text(fields.get("description")),
            project_key=(fields.get("project") or {}).get("key", "")
        )

    async def create_issue(self, fields: Dict[str, Any]) -> str:
        """Create an issue and return its key."""
        data = await self.request("POST", "issue", {"fields": fields})
        key = data.get("key") if isinstance(data, dict) else None
        if not key:
            raise TrackerError(f"Could not parse issue key from response: {data}")
        return key

    async def update_issue(self, issue_key: str, fields: Dict[str, Any]) -> None:
        await self.request("PUT", f"issue/{issue_key}", {"fields": fields})

    async def get_transitions(self, issue_key: str) -> List[Dict[str, Any]]:
        data = await self.request("GET", f"issue/{issue_key}/transitions")
        return data.get("transitions") or []

    async def do_transition(self, issue_key: str, transition_id: str) -> None:
        await self.request(
            "POST",
            f"issue/{issue_key}/transitions",
            {"transition": {"id": transition_id}}
        )

    async def add_watcher(self, issue_key: str, account_id: str) -> None:
        await self.request("POST", f"issue/{issue_key}/watchers", account_id)

    async def search_users(self, query: str) -> List[Dict[str, Any]]:
        data = await self.request("GET", "user/search", params={"query": query})
        return data if isinstance(data, list) else []

    def issue_url(self, issue_key: str) -> str:
        return f"{self.settings.browse_url}/{issue_key}"
