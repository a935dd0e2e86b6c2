"""HTTP translation of domain errors.

Not found (including records owned by another tenant) maps to 404; business
rule and validation failures map to 400 with the field-keyed messages. A write
that lost an optimistic-concurrency race maps to 409.
"""

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError

from storefront.discount.discount import DiscountCodeRejected

logger = structlog.get_logger(__name__)


def _messages(exc: Exception):
    return getattr(exc, "messages", None) or {"_entity": [str(exc)]}


async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": "not_found", "messages": _messages(exc)},
    )


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    content = {"error": "validation_error", "messages": _messages(exc)}
    if isinstance(exc, DiscountCodeRejected):
        content["reason"] = exc.reason

    logger.info("Request rejected", path=request.url.path, messages=content["messages"])
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)


async def conflict_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.warning("Concurrent update rejected", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"error": "conflict", "messages": {"_entity": [str(exc)]}},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ExpectedVersionError, conflict_handler)
