"""Tasks of the query-answering workflow.

The workflow runs three tasks in sequence, communicating through the keys in
``context_vars``:

    QueryEnhanceTask  -> writes query, enhanced_query
    DataRetrieverTask -> reads enhanced_query, writes search_results
    GenerateAnswerTask -> reads enhanced_query (+ search_results), writes answer
"""

from typing import List, Optional
import logging

from taskgraph.core.context import Context
from taskgraph.core.task import BaseTask
from taskgraph.utils.errors import TaskExecutionFailed
from taskgraph.workflow import context_vars
from taskgraph.workflow.clients import (
    MIN_PAGE_TEXT_LENGTH,
    LLMClient,
    LLMError,
    PageTextClient,
    ScrapeError,
    SearchClient,
    SearchError,
)

logger = logging.getLogger(__name__)


ENHANCE_QUERY_PROMPT = """
You are a search assistant, helping users refine their web site search queries.
You are given a user query and you need to rewrite it in a way that will maximize the number of relevant documents found in a google search.
Output only the list of words and terms, no other text, no commas or other punctuation.
"""

GENERATE_ANSWER_PROMPT = """
You are a helpful research assistant.
Answer the user's question using the numbered sources below when they are relevant.
Be concise and do not invent facts that the sources do not support.
"""

NON_SCRAPEABLE_EXTENSIONS = (
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".zip", ".rar", ".tar", ".gz",
    ".7z", ".mp3", ".mp4", ".avi", ".mov", ".wav", ".jpg", ".jpeg", ".png", ".gif", ".bmp",
    ".svg", ".exe", ".dmg", ".app", ".deb", ".rpm",
)


def is_scrapeable_url(url: str) -> bool:
    """Check if a URL is likely to serve HTML rather than a document or binary."""
    url_lower = url.lower()

    if url_lower.endswith(NON_SCRAPEABLE_EXTENSIONS):
        return False

    if "/download/" in url_lower and any(
        ext in url_lower for ext in (".doc", ".pdf", ".xls", ".ppt")
    ):
        return False

    return True


class QueryEnhanceTask(BaseTask):
    """Rewrites the user query into search-friendly keywords."""

    def __init__(self, query: str, llm: LLMClient, id: str = "enhance_query", config=None):
        super().__init__(id=id, config=config)
        self.query = query
        self.llm = llm

    async def _run_impl(self, context: Context) -> None:
        await context.set(context_vars.QUERY, self.query)

        try:
            enhanced_query = await self.llm.complete(
                ENHANCE_QUERY_PROMPT, f"\nUser query:\n{self.query}"
            )
        except LLMError as e:
            raise TaskExecutionFailed(f"Failed to enhance query: {e}", e) from e

        logger.info("Enhanced query: %s", enhanced_query)
        await context.set(context_vars.ENHANCED_QUERY, enhanced_query)


class DataRetrieverTask(BaseTask):
    """Searches the web for the enhanced query and collects source texts.

    With a PageTextClient every scrapeable result page is fetched concurrently
    and pages with substantial text are kept. Without one, the search
    snippets themselves are used.
    """

    def __init__(
        self,
        search: SearchClient,
        pages: Optional[PageTextClient] = None,
        id: str = "retrieve_data",
        config=None,
    ):
        super().__init__(id=id, config=config)
        self.search = search
        self.pages = pages

    async def _run_impl(self, context: Context) -> None:
        logger.info("Retrieving data")
        query = await context.get(context_vars.ENHANCED_QUERY)
        logger.info("Data retriever using enhanced query: %r", query)

        try:
            response = await self.search.search(query)
        except SearchError as e:
            raise TaskExecutionFailed(f"Failed to retrieve data: {e}", e) from e

        logger.info("Retrieved %d search results", len(response.organic))

        hits = []
        for hit in response.organic:
            if not is_scrapeable_url(hit.link):
                logger.warning("Skipping non-scrapeable URL: %s (%s)", hit.link, hit.title)
                continue
            hits.append(hit)
        logger.info("Filtered to %d scrapeable URLs", len(hits))

        if self.pages is None:
            results = [
                f"{hit.title}\n{hit.link}\n{hit.snippet.strip()}"
                for hit in hits
                if hit.snippet.strip()
            ]
        elif hits:
            try:
                texts = await self.pages.fetch_all([hit.link for hit in hits])
            except ScrapeError as e:
                raise TaskExecutionFailed(f"Failed to scrape: {e}", e) from e
            results = [text for text in texts if len(text.strip()) > MIN_PAGE_TEXT_LENGTH]
            logger.info("Scraped %d URLs with substantial content", len(results))
        else:
            results = []

        if not results:
            logger.warning("No usable search results for %r", query)

        await context.set(context_vars.SEARCH_RESULTS, results)


class GenerateAnswerTask(BaseTask):
    """Produces the final answer.

    With an LLM the answer is composed from the retrieved sources; without one
    the enhanced query is echoed back in a fixed envelope.
    """

    def __init__(self, llm: Optional[LLMClient] = None, id: str = "generate_answer", config=None):
        super().__init__(id=id, config=config)
        self.llm = llm

    async def _run_impl(self, context: Context) -> None:
        logger.info("Generating answer")
        enhanced_query = await context.get(context_vars.ENHANCED_QUERY)

        if self.llm is None:
            answer = f"[answer] {enhanced_query} [answer]"
        else:
            question = await context.get_or_default(context_vars.QUERY, enhanced_query)
            sources = await context.get_or_default(context_vars.SEARCH_RESULTS, [])
            try:
                answer = await self.llm.complete(
                    GENERATE_ANSWER_PROMPT, build_answer_prompt(question, sources)
                )
            except LLMError as e:
                raise TaskExecutionFailed(f"Failed to generate answer: {e}", e) from e

        logger.debug("Answer: %s", answer)
        await context.set(context_vars.ANSWER, answer)


def build_answer_prompt(question: str, sources: List[str]) -> str:
    """Format the user message for answer generation."""
    if not sources:
        return f"Question:\n{question}\n\nNo sources were found."

    numbered = "\n\n".join(f"[{i}] {source}" for i, source in enumerate(sources, start=1))
    return f"Question:\n{question}\n\nSources:\n{numbered}"
