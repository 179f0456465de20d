"""Request/response models for the HTTP service."""

from pydantic import BaseModel


class AgentRequest(BaseModel):
    """Request payload for the agent endpoint."""

    query: str

    def is_valid(self) -> bool:
        """A query is valid when it is not empty or only whitespace."""
        return bool(self.query.strip())


class AgentResponse(BaseModel):
    """Response payload for the agent endpoint."""

    answer: str


class HealthResponse(BaseModel):
    """Response payload for the health check endpoint."""

    status: str = "ok"
    message: str = "Service is healthy"


class ErrorResponse(BaseModel):
    """Body returned for every handled error."""

    error: str
    message: str
