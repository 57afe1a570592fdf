"""AI agent that turns a story or free-text description into subtasks via Groq."""

import json
import re
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..errors import GenerationError
from ..logger import get_logger
from ..models.generation import (
    BreakdownRequest, GenerationRequest, GenerationResult
)

logger = get_logger(__name__)

SYSTEM_PROMPT = """You are a senior software engineer and agile project manager.
Your task is to break down software requirements into well-structured, actionable Jira tickets.
OUTPUT RULES:
- Respond with STRICTLY valid JSON only. No markdown, no code fences, no extra text.
- Use the exact schema provided."""

_SUBTASK_SCHEMA = """  "subtasks": [
    {
      "title": "subtask title",
      "description": "what needs to be done",
      "acceptance_criteria": ["AC 1"]
    }
  ]"""

_FENCE_START = re.compile(r"^\s*```[a-zA-Z]*\s*")
_FENCE_END = re.compile(r"\s*```\s*$")


def build_user_prompt(request: GenerationRequest) -> str:
    """Mode-specific instruction embedding the caller's text and the JSON schema."""
    if isinstance(request, BreakdownRequest):
        return f"""Break the Jira story below into exactly {request.subtask_count} subtasks.

Story: {request.story_title}
Description: {request.story_description or '(none)'}

Return ONLY this JSON:
{{
  "title": "parent story title",
  "description": "brief description",
  "acceptance_criteria": ["AC 1", "AC 2"],
{_SUBTASK_SCHEMA}
}}"""

    return f"""Create a Jira {request.issue_type} with exactly {request.subtask_count} subtasks from this description:

"{request.description}"

Return ONLY this JSON:
{{
  "title": "clear, concise issue title",
  "description": "2-3 sentence description",
  "acceptance_criteria": ["AC 1", "AC 2", "AC 3"],
{_SUBTASK_SCHEMA}
}}"""


def strip_code_fences(raw: str) -> str:
    """Remove a Markdown code fence wrapped around the model output, if any."""
    return _FENCE_END.sub("", _FENCE_START.sub("", raw)).strip()


def parse_generation(raw: str, subtask_count: int) -> GenerationResult:
    """
    Parse and validate model output.

    Subtasks beyond `subtask_count` are dropped; fewer are accepted as-is.

    Raises:
        GenerationError: output is not JSON, lacks a subtasks array, or the
            subtasks are malformed.
    """
    try:
        parsed = json.loads(strip_code_fences(raw or ""))
    except ValueError:
        raise GenerationError("AI returned invalid JSON. Please try again.")

    if not isinstance(parsed, dict) or not isinstance(parsed.get("subtasks"), list):
        raise GenerationError("AI response missing subtasks array. Please try again.")

    if len(parsed["subtasks"]) > subtask_count:
        logger.info(
            "Truncating subtasks",
            requested=subtask_count,
            returned=len(parsed["subtasks"])
        )
        parsed["subtasks"] = parsed["subtasks"][:subtask_count]

    try:
        return GenerationResult.model_validate(parsed)
    except ValidationError as e:
        raise GenerationError(f"AI response has malformed fields: {e.error_count()} error(s). Please try again.")


class GroqAgent:
    """Calls the Groq chat completions endpoint with a JSON-only response format."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    def _payload(self, request: GenerationRequest) -> Dict[str, Any]:
        return {
            "model": self.settings.groq_model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_user_prompt(request)},
            ],
            "response_format": {"type": "json_object"},
            "temperature": self.settings.groq_temperature,
        }

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Generate a breakdown for a story or a new issue.

        Raises:
            GenerationError: the call failed or the output is unusable.
        """
        kwargs: Dict[str, Any] = {}
        if self.settings.http_timeout is not None:
            kwargs["timeout"] = httpx.Timeout(self.settings.http_timeout)
        if self._transport is not None:
            kwargs["transport"] = self._transport

        logger.info("Calling Groq", mode=request.mode, subtask_count=request.subtask_count)
        try:
            async with httpx.AsyncClient(**kwargs) as client:
                response = await client.post(
                    self.settings.groq_api_url,
                    headers={
                        "Authorization": f"Bearer {self.settings.groq_key}",
                        "Content-Type": "application/json",
                    },
                    json=self._payload(request)
                )
        except httpx.HTTPError as e:
            raise GenerationError(f"Groq request failed: {e}") from e

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = {}
            error = body.get("error") if isinstance(body, dict) else None
            message = error.get("message") if isinstance(error, dict) else None
            raise GenerationError(message or f"Groq API error {response.status_code}")

        try:
            data = response.json()
            raw = data["choices"][0]["message"]["content"] or "{}"
        except (ValueError, KeyError, IndexError, TypeError):
            raw = "{}"

        return parse_generation(raw, request.subtask_count)

