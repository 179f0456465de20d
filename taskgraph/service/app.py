"""FastAPI service that answers queries by running the agent workflow graph.

Endpoints:
    GET  /health      - liveness check
    POST /api/agent1  - {"query": "..."} -> {"answer": "..."}
"""

from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from taskgraph import __version__
from taskgraph.core.context import Context
from taskgraph.core.executor import Executor
from taskgraph.service.errors import (
    AppError,
    InternalServerError,
    ValidationError,
    app_error_handler,
    request_validation_handler,
)
from taskgraph.service.models import AgentRequest, AgentResponse, HealthResponse
from taskgraph.utils.config import ServiceConfig
from taskgraph.workflow import context_vars
from taskgraph.workflow.builder import create_agent_workflow
from taskgraph.workflow.clients import LLMClient, PageTextClient, SearchClient

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[ServiceConfig] = None,
    llm: Optional[LLMClient] = None,
    search: Optional[SearchClient] = None,
    pages: Optional[PageTextClient] = None,
) -> FastAPI:
    """Create the FastAPI application.

    Clients passed in are used as-is and left open; clients missing here are
    built from ``config`` at startup and closed (and cleared) at shutdown.

    Args:
        config: Service configuration (read from the environment if omitted)
        llm: Optional pre-built LLM client
        search: Optional pre-built search client
        pages: Optional pre-built page fetcher used by retrieval

    Returns:
        Configured FastAPI app
    """
    config = config or ServiceConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = []
        if app.state.llm is None and config.openrouter_api_key:
            app.state.llm = LLMClient(
                config.openrouter_api_key,
                model=config.openrouter_model,
                base_url=config.openrouter_base_url,
            )
            owned.append("llm")
        if app.state.search is None and config.serper_api_key:
            app.state.search = SearchClient(
                config.serper_api_key,
                base_url=config.serper_base_url,
                site=config.search_site,
            )
            owned.append("search")
        if app.state.pages is None and app.state.search is not None and config.scrape_pages:
            app.state.pages = PageTextClient()
            owned.append("pages")

        if app.state.llm is None:
            logger.warning("OPENROUTER_API_KEY not set; the agent endpoint will fail")
        if app.state.search is None:
            logger.info("SERPER_API_KEY not set; web retrieval is disabled")

        try:
            yield
        finally:
            for name in owned:
                await getattr(app.state, name).aclose()
                setattr(app.state, name, None)

    app = FastAPI(
        title="taskgraph query service",
        description="Answers queries by executing a task graph",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.llm = llm
    app.state.search = search
    app.state.pages = pages

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """Return the service status."""
        logger.debug("Health check endpoint called")
        return HealthResponse()

    @app.post("/api/agent1", response_model=AgentResponse)
    async def agent_handler(payload: AgentRequest, request: Request):
        """Run the agent workflow for one query and return its answer."""
        logger.info("Agent endpoint called with query: %s", payload.query)

        if not payload.is_valid():
            raise ValidationError("Query cannot be empty or only whitespace")

        llm_client = request.app.state.llm
        if llm_client is None:
            raise InternalServerError("LLM client is not configured")

        graph = create_agent_workflow(
            payload.query,
            llm_client,
            search=request.app.state.search,
            pages=request.app.state.pages,
        )
        context = Context()
        result = await Executor(graph).run(context)

        if not result.success:
            raise InternalServerError(
                f"Workflow failed at '{result.failed_node}': {result.error}"
            )

        answer = await context.get_or_default(context_vars.ANSWER)
        if answer is None:
            raise InternalServerError("Failed to retrieve answer from context")

        logger.info("Successfully processed query, returning response")
        return AgentResponse(answer=answer)

    return app


def main() -> None:
    """Entry point: load settings, configure logging and serve with uvicorn."""
    import uvicorn

    from taskgraph.utils.config import load_env
    from taskgraph.utils.log import configure_logging

    load_env()
    config = ServiceConfig.from_env()
    configure_logging(config.log_level)

    logger.info("Starting query service on %s", config.server_url)
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_config=None)


if __name__ == "__main__":
    main()
