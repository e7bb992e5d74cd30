"""
Application DTOs

Data transfer objects for the HTTP layer.
"""

from .execute_request import (
    ExecuteRequestDTO,
    ExecuteResponseDTO,
    HealthResponseDTO,
)

__all__ = [
    "ExecuteRequestDTO",
    "ExecuteResponseDTO",
    "HealthResponseDTO",
]
