"""Pytest configuration and fixtures for taskgraph tests."""

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from taskgraph import Context, TaskGraph
from taskgraph.workflow.clients import LLMClient, PageTextClient, SearchClient


@pytest.fixture
def context():
    """Create a fresh, empty context."""
    return Context()


@pytest.fixture
def graph():
    """Create an empty task graph."""
    return TaskGraph()


def chat_reply(content: str) -> Dict[str, Any]:
    """Build an OpenRouter-style chat completion body."""
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def llm_factory():
    """Build LLMClients backed by an httpx.MockTransport.

    The handler receives the decoded request body and returns either a reply
    string or an httpx.Response. Every request body is recorded on
    ``client.requests``.
    """

    def make(handler: Callable[[Dict[str, Any]], Any]) -> LLMClient:
        requests: List[Dict[str, Any]] = []

        def transport_handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            requests.append(body)
            reply = handler(body)
            if isinstance(reply, httpx.Response):
                return reply
            return httpx.Response(200, json=chat_reply(reply))

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(transport_handler))
        client = LLMClient(api_key="test-key", http_client=http_client)
        client.requests = requests
        return client

    return make


@pytest.fixture
def search_factory():
    """Build SearchClients backed by an httpx.MockTransport.

    The handler receives the ``q`` sent to the API. Every request body is
    recorded on ``client.requests``.
    """

    def make(handler: Callable[[str], Any], **kwargs) -> SearchClient:
        requests: List[Dict[str, Any]] = []

        def transport_handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            requests.append(body)
            query = body["q"]
            reply = handler(query)
            if isinstance(reply, httpx.Response):
                return reply
            return httpx.Response(200, json=reply)

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(transport_handler))
        client = SearchClient(api_key="test-key", http_client=http_client, **kwargs)
        client.requests = requests
        return client

    return make


@pytest.fixture
def search_body():
    """Build Serper-style search response bodies."""

    def make(query: str, hits: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "searchParameters": {"q": query, "type": "search", "engine": "google"},
            "organic": hits,
        }

    return make


@pytest.fixture
def pages_factory():
    """Build PageTextClients serving pages from a url -> html mapping.

    A mapping value may also be an httpx.Response. Unknown URLs return 404.
    Fetched URLs are recorded on ``client.fetched``.
    """

    def make(pages: Dict[str, Any]) -> PageTextClient:
        fetched: List[str] = []

        def transport_handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            fetched.append(url)
            page = pages.get(url)
            if page is None:
                return httpx.Response(404)
            if isinstance(page, httpx.Response):
                return page
            return httpx.Response(200, html=page)

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(transport_handler))
        client = PageTextClient(delay_seconds=0, http_client=http_client)
        client.fetched = fetched
        return client

    return make
