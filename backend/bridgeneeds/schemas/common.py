"""
Common Pydantic schemas used across the API.
"""
from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""
    code: int = 200
    message: str = "API is healthy."
    data: dict = {}
