"""HTTP clients used by the agent workflow tasks.

The clients are constructed explicitly at service startup and passed into the
tasks that need them. They wrap a shared ``httpx.AsyncClient`` which callers
may inject (tests pass one backed by ``httpx.MockTransport``).
"""

from typing import Any, Dict, List, Optional
import asyncio
import logging

from bs4 import BeautifulSoup
import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from taskgraph.utils.config import (
    DEFAULT_MODEL,
    DEFAULT_OPENROUTER_BASE_URL,
    DEFAULT_SEARCH_SITE,
    DEFAULT_SERPER_BASE_URL,
)
from taskgraph.utils.errors import TaskGraphError

logger = logging.getLogger(__name__)


class LLMError(TaskGraphError):
    """Raised when a completion request fails."""

    pass


class SearchError(TaskGraphError):
    """Raised when a web search request fails."""

    pass


class ScrapeError(TaskGraphError):
    """Raised when a web page cannot be fetched."""

    pass


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class LLMClient:
    """Minimal chat-completions client for the OpenRouter API.

    Example:
        >>> llm = LLMClient(api_key="sk-...")
        >>> answer = await llm.complete("You are terse.", "What is a DAG?")
        >>> await llm.aclose()
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_OPENROUTER_BASE_URL,
        timeout_seconds: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        if not api_key:
            raise ValueError("LLMClient requires an API key")
        self.model = model
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    async def complete(self, system_prompt: str, user_message: str) -> str:
        """Send one system + user exchange and return the reply text.

        Raises:
            LLMError: On transport errors, non-2xx responses or malformed bodies
        """
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}

        try:
            response = await self._client.post(
                f"{self.base_url}/chat/completions", json=payload, headers=headers
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise LLMError(
                f"Completion request failed with status {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise LLMError(f"Completion request failed: {e}") from e
        except ValueError as e:
            raise LLMError("Completion response was not valid JSON") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMError("Completion response has no message content") from e

        if not isinstance(content, str) or not content.strip():
            raise LLMError("Completion response was empty")
        return content.strip()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def __repr__(self) -> str:
        return f"LLMClient(model='{self.model}')"


class SearchParameters(BaseModel):
    """Echo of the query parameters in a search response."""

    model_config = ConfigDict(populate_by_name=True)

    q: str
    search_type: str = Field(default="search", alias="type")
    engine: str = "google"


class OrganicResult(BaseModel):
    """One organic search hit."""

    title: str
    link: str
    snippet: str = ""
    position: int = 0
    date: Optional[str] = None


class SearchResponse(BaseModel):
    """Search API response."""

    model_config = ConfigDict(populate_by_name=True)

    search_parameters: SearchParameters = Field(alias="searchParameters")
    organic: List[OrganicResult] = Field(default_factory=list)


class SearchClient:
    """Web search client for the Serper API.

    Results are restricted to ``site`` (disabled when None or empty), capped at
    ``num_results`` and limited to the ``time_range`` window (Serper ``tbs``).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_SERPER_BASE_URL,
        timeout_seconds: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
        site: Optional[str] = DEFAULT_SEARCH_SITE,
        num_results: int = 5,
        time_range: Optional[str] = "qdr:3y",
    ):
        if not api_key:
            raise ValueError("SearchClient requires an API key")
        if num_results < 1:
            raise ValueError("num_results must be at least 1")
        self.base_url = base_url.rstrip("/")
        self.site = site
        self.num_results = num_results
        self.time_range = time_range
        self._api_key = api_key
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    def build_payload(self, query: str) -> Dict[str, Any]:
        """Build the request body for a query."""
        q = " ".join(query.split())
        if self.site:
            q = f"{q} site:{self.site}"
        payload: Dict[str, Any] = {"q": q, "num": self.num_results}
        if self.time_range:
            payload["tbs"] = self.time_range
        return payload

    async def search(self, query: str) -> SearchResponse:
        """Run a web search.

        Raises:
            SearchError: On transport errors, non-2xx responses or malformed bodies
        """
        headers = {"X-API-KEY": self._api_key}
        payload = self.build_payload(query)
        logger.info("Executing search for %r", payload["q"])
        try:
            response = await self._client.post(
                f"{self.base_url}/search", json=payload, headers=headers
            )
            response.raise_for_status()
            return SearchResponse.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            raise SearchError(
                f"Search request failed with status {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise SearchError(f"Search request failed: {e}") from e
        except (ValueError, ValidationError) as e:
            raise SearchError(f"Malformed search response: {e}") from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


CONTENT_SELECTORS = ("main", "article", ".content", "#content", ".main")

# Pages with this much text or less are not worth keeping
MIN_PAGE_TEXT_LENGTH = 100


def clean_text(text: str) -> str:
    """Strip lines and drop blank or very short ones."""
    lines = (line.strip() for line in text.splitlines())
    return "\n".join(line for line in lines if len(line) > 2)


def extract_page_text(html: str) -> str:
    """Extract readable text from an HTML page.

    Scripts and styles are dropped. The first main-content element with
    substantial text wins; otherwise the whole document is used.
    """
    soup = BeautifulSoup(html, "html.parser")
    for element in soup(["script", "style", "noscript"]):
        element.decompose()

    for selector in CONTENT_SELECTORS:
        for element in soup.select(selector):
            text = element.get_text(" ")
            if len(text.strip()) > MIN_PAGE_TEXT_LENGTH:
                return clean_text(text)

    return clean_text(soup.get_text(" "))


class PageTextClient:
    """Fetches web pages and extracts their text.

    Example:
        >>> pages = PageTextClient()
        >>> texts = await pages.fetch_all(["https://example.com/a", "https://example.com/b"])
        >>> await pages.aclose()
    """

    def __init__(
        self,
        timeout_seconds: float = 20.0,
        delay_seconds: float = 0.2,
        user_agent: str = DEFAULT_USER_AGENT,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.delay_seconds = delay_seconds
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout_seconds,
            follow_redirects=True,
            headers={"User-Agent": user_agent},
        )

    async def fetch_text(self, url: str) -> str:
        """Fetch one page and return its extracted text.

        Raises:
            ScrapeError: On transport errors or non-2xx responses
        """
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        logger.info("Scraping URL: %s", url)
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ScrapeError(
                f"Fetching {url} failed with status {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise ScrapeError(f"Fetching {url} failed: {e}") from e

        return extract_page_text(response.text)

    async def fetch_all(self, urls: List[str]) -> List[str]:
        """Fetch pages concurrently; results follow the order of ``urls``.

        Raises:
            ScrapeError: If any page cannot be fetched
        """
        return list(await asyncio.gather(*(self.fetch_text(url) for url in urls)))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
