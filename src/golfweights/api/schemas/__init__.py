"""Pydantic models for API I/O."""

from .runs import RunRequest, RunResponse, RunSummary
from .templates import TemplatePayload, TemplateResponse

__all__ = [
    "RunRequest",
    "RunResponse",
    "RunSummary",
    "TemplatePayload",
    "TemplateResponse",
]
