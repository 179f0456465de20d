"""Query-answering workflow built on the task graph engine."""

from taskgraph.workflow import context_vars
from taskgraph.workflow.clients import (
    LLMClient,
    LLMError,
    OrganicResult,
    PageTextClient,
    ScrapeError,
    SearchClient,
    SearchError,
    SearchParameters,
    SearchResponse,
    extract_page_text,
)
from taskgraph.workflow.tasks import (
    DataRetrieverTask,
    GenerateAnswerTask,
    QueryEnhanceTask,
    is_scrapeable_url,
)
from taskgraph.workflow.builder import create_agent_workflow

__all__ = [
    "context_vars",
    "LLMClient",
    "LLMError",
    "SearchClient",
    "SearchError",
    "SearchResponse",
    "SearchParameters",
    "OrganicResult",
    "PageTextClient",
    "ScrapeError",
    "extract_page_text",
    "QueryEnhanceTask",
    "DataRetrieverTask",
    "GenerateAnswerTask",
    "is_scrapeable_url",
    "create_agent_workflow",
]
