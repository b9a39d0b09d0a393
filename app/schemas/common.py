"""
Response envelope shared by every endpoint.
"""

from __future__ import annotations

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    message: str
