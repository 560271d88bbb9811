"""Map domain exceptions to HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from casework.domain.exceptions import (
    AssignmentConflict,
    AssignmentError,
    InvalidHandlerDefinition,
    InvalidRuleDefinition,
    NotFoundError,
)

logger = logging.getLogger(__name__)


async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _conflict(request: Request, exc: AssignmentConflict) -> JSONResponse:
    logger.info("Conflict on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=409, content={"detail": str(exc), "retryable": True})


async def _invalid(request: Request, exc: AssignmentError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def _assignment_error(request: Request, exc: AssignmentError) -> JSONResponse:
    logger.error("Unhandled assignment error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    # Starlette resolves handlers along the exception's MRO, most specific first
    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(AssignmentConflict, _conflict)
    app.add_exception_handler(InvalidRuleDefinition, _invalid)
    app.add_exception_handler(InvalidHandlerDefinition, _invalid)
    app.add_exception_handler(AssignmentError, _assignment_error)
