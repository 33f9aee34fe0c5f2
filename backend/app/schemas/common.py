"""
X Tracking API — Shared Schemas
=================================

What:  Base model with camelCase JSON keys, the error envelope, and the
       health-check payload.

All API payloads use camelCase keys (accountCount, createdAt, ...) because
the dashboard client was written against those names. Python code keeps
snake_case attribute names; `CamelModel` maps between the two.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_json(self) -> Dict[str, Any]:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class FieldViolation(BaseModel):
    field: str = Field(description="Body field the rule applies to")
    message: str = Field(description="Human-readable rule message")
    location: str = Field(default="body")


class ErrorResponse(BaseModel):
    """
    Standardized error body for every non-2xx response.

    Example (validation failure):
        {
            "error": "validation_error",
            "message": "Invalid request data",
            "details": {"errors": [
                {"field": "email", "message": "Please include a valid email", "location": "body"}
            ]},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[Dict[str, Any]] = Field(default=None)
    request_id: Optional[str] = Field(default=None)


class ValidationErrorDetails(BaseModel):
    errors: List[FieldViolation]


class ValidationErrorResponse(ErrorResponse):
    details: ValidationErrorDetails


class HealthResponse(BaseModel):
    status: str = Field(description="healthy or unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    uptime_seconds: float
