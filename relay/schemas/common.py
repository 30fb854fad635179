"""Common schemas used across multiple endpoints."""

from typing import Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Response model for errors."""
    detail: str
    code: str
    retryable: bool = False
    expected_offset: Optional[int] = None
