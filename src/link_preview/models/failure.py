"""Failure taxonomy shared by the extraction and screenshot stages."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class FailureType(str, Enum):
    """Classified failure kinds produced by outbound calls and precondition checks."""

    INVALID_CARD = "invalid_card"
    CONFIGURATION_ERROR = "configuration_error"
    RATE_LIMIT = "rate_limit"
    HTTP_ERROR = "http_error"
    SESSION_ERROR = "session_error"
    SCRAPE_ERROR = "scrape_error"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    ERROR = "error"


class RetryableFailure(BaseModel):
    """A classified failure handed to the retry controller. Never persisted."""

    type: FailureType
    normalized_url: str | None = None
    message: str
    details: dict[str, Any] | None = None
    retry_after: float | None = Field(None, description="Upstream Retry-After hint in seconds")
    status_code: int | None = Field(None, description="Upstream HTTP status, when one was received")

    model_config = {"extra": "ignore"}
