"""Pydantic models for the refresh (re-index) operation."""

from typing import Literal

from pydantic import BaseModel


class RefreshRequest(BaseModel):
    """Selects the documents to re-vectorize. No field set means every document."""

    application: str | None = None
    source: str | None = None
    owner: str | None = None
    force: bool = False


class RefreshResponse(BaseModel):
    """Outcome of a refresh.

    processed counts only successful updates. status is "success" iff errors == 0.
    """

    status: Literal["success", "error"]
    message: str | None = None
    processed: int = 0
    errors: int = 0
