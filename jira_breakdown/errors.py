"""Error vocabulary shared by the Jira, Groq and configuration layers."""

from typing import Any, Optional


class JiraBreakdownError(Exception):
    """Base error. `error_type` is what the API reports to the client."""

    error_type = "server_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TrackerError(JiraBreakdownError):
    """Non-2xx Jira response or a transport failure talking to Jira."""

    error_type = "jira_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Any = None
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class SchemaError(JiraBreakdownError):
    """Project discovery returned no usable issue types."""

    error_type = "jira_error"


class GenerationError(JiraBreakdownError):
    """Groq call failed or returned output we cannot use."""

    error_type = "generation_error"


class ConfigurationError(JiraBreakdownError):
    """Required credentials are missing or malformed."""

    error_type = "configuration_error"
