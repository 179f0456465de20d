"""HTTP service exposing the agent workflow."""

from taskgraph.service.app import create_app, main
from taskgraph.service.errors import (
    AppError,
    BadRequestError,
    InternalServerError,
    ValidationError,
)
from taskgraph.service.models import AgentRequest, AgentResponse, ErrorResponse, HealthResponse

__all__ = [
    "create_app",
    "main",
    "AppError",
    "BadRequestError",
    "InternalServerError",
    "ValidationError",
    "AgentRequest",
    "AgentResponse",
    "ErrorResponse",
    "HealthResponse",
]
