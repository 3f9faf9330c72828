"""Error responses for marketcache.

Every API error is rendered as a Result with one or more Messages, so
clients can handle failures uniformly. Cache faults never reach this layer;
source-of-truth faults do, as 500s.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from marketcache.store.base import StoreError

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    """Type of message in error response."""

    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"
    EXCEPTION = "Exception"


class Message(BaseModel):
    """Single error message."""

    model_config = {"extra": "forbid", "populate_by_name": True}

    code: str
    message_type: MessageType = Field(alias="messageType")
    text: str
    timestamp: str | None = None


class Result(BaseModel):
    """Error response body."""

    model_config = {"extra": "forbid"}

    messages: list[Message]

    @classmethod
    def single(cls, code: str, text: str, message_type: MessageType) -> Result:
        return cls(
            messages=[
                Message(
                    code=code,
                    messageType=message_type,
                    text=text,
                    timestamp=datetime.now(UTC).isoformat(),
                )
            ]
        )


class ApiError(HTTPException):
    """Base exception for API errors."""

    def __init__(
        self,
        status_code: int,
        code: str,
        text: str,
        message_type: MessageType = MessageType.ERROR,
    ):
        self.code = code
        self.text = text
        self.message_type = message_type
        super().__init__(status_code=status_code, detail=text)

    def to_result(self) -> Result:
        return Result.single(self.code, self.text, self.message_type)


class NotFoundError(ApiError):
    """Resource not found (404)."""

    def __init__(self, resource_type: str, identifier: str):
        super().__init__(
            status_code=404,
            code="NotFound",
            text=f"{resource_type} with identifier '{identifier}' not found",
        )


class BadRequestError(ApiError):
    """Invalid request (400)."""

    def __init__(self, text: str):
        super().__init__(status_code=400, code="BadRequest", text=text)


class UnauthorizedError(ApiError):
    """No actor on a route that needs one (401)."""

    def __init__(self) -> None:
        super().__init__(status_code=401, code="Unauthorized", text="Authentication required")


async def api_exception_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Exception handler for API errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_result().model_dump(by_alias=True),
    )


async def store_exception_handler(request: Request, exc: StoreError) -> JSONResponse:
    """Source-of-truth failures surface as 500s; they are never masked."""
    logger.error(f"Store failure on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content=Result.single(
            "StoreUnavailable",
            f"Data store {exc.operation} on '{exc.collection}' failed",
            MessageType.EXCEPTION,
        ).model_dump(by_alias=True),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for unexpected errors."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=Result.single(
            "InternalServerError", "An unexpected error occurred", MessageType.EXCEPTION
        ).model_dump(by_alias=True),
    )
