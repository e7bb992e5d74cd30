"""
Execute Request DTO

Data transfer objects for the HTTP layer.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from polyexec.domain.value_objects import ExecutionResult


class ExecuteRequestDTO(BaseModel):
    """Request body for ``POST /v1/execute``."""

    language: str = Field(..., min_length=1, description="Language alias, e.g. python or bash")
    code: str = Field(..., description="Source code to run; may be empty")
    timeout: Optional[float] = Field(
        default=None, gt=0, le=3600, description="Timeout in seconds"
    )


class ExecuteResponseDTO(BaseModel):
    """Response body for ``POST /v1/execute``."""

    transcript: str
    succeeded: bool
    error_detail: Optional[str] = None
    error_kind: str

    @classmethod
    def from_domain(cls, result: ExecutionResult) -> "ExecuteResponseDTO":
        return cls(
            transcript=result.transcript,
            succeeded=result.succeeded,
            error_detail=result.error_detail,
            error_kind=result.error_kind.value,
        )


class HealthResponseDTO(BaseModel):
    """Response body for ``GET /v1/health``."""

    status: str = "healthy"
    version: str
    mode: str
    languages: List[str] = Field(default_factory=list)
    uptime_seconds: float
