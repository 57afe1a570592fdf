"""
Dependencies for FastAPI injection.

The Jira client and schema resolver are shared for the life of the
process so the resolver's per-project caches persist between requests.
"""

from functools import lru_cache

from .agents.groq_agent import GroqAgent
from .agents.jira_client import JiraClient
from .agents.schema_resolver import SchemaResolver
from .config import get_settings


@lru_cache
def get_jira_client() -> JiraClient:
    return JiraClient(get_settings())


@lru_cache
def get_schema_resolver() -> SchemaResolver:
    return SchemaResolver(get_jira_client())


def get_groq_agent() -> GroqAgent:
    return GroqAgent(get_settings())
