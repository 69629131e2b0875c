"""Shared response envelopes."""
from typing import Literal

from pydantic import BaseModel


class ActionResult(BaseModel):
    """Successful outcome of an operation."""

    success: Literal[True] = True
    message: str


class ErrorResponse(BaseModel):
    """Failed outcome of an operation."""

    success: Literal[False] = False
    error: str
    code: str


# OpenAPI documentation for the failure envelope every router can return
ERROR_RESPONSES = {
    status_code: {"model": ErrorResponse}
    for status_code in (400, 401, 402, 403, 404, 409, 422)
}
