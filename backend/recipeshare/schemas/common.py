"""
RecipeShare Backend — Shared Pydantic Schemas
===============================================

What:  Base model and response shapes used across every route module.
How:   Field names are snake_case in Python and camelCase on the wire
       (prepTime, createdAt, totalPages), matching what the dashboard reads.
       Both spellings are accepted on input.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every API schema: camelCase aliases, ORM attribute loading."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    message: str = Field(description="Human-readable outcome")


class ErrorResponse(CamelModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Username and password are required",
            "details": {"field": "username"},
            "request_id": "1a2b3c4d"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(
        default=None,
        alias="request_id",
        description="Request correlation ID",
    )


class HealthResponse(CamelModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    upstream: str = Field(description="TheMealDB client state: available, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")


class CacheStatsResponse(CamelModel):
    entries: int = Field(description="Live entries currently cached")
    max_entries: int = Field(description="Capacity before least-recently-used eviction")
    hits: int = Field(description="Cache hits since start or last clear")
    misses: int = Field(description="Cache misses since start or last clear")


class CacheClearResponse(CamelModel):
    message: str
    cleared: int = Field(description="Number of entries dropped")
