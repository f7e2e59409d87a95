"""Translate service-layer errors into the JSON error envelope.

    {"detail": <message>, "error_code": <CODE>}

  UnauthenticatedError  401  (+ WWW-Authenticate: Bearer)
  ForbiddenError        403
  NotFoundError         404
  ConflictError         409
  InvalidInputError     422
  RequestValidationError 422  (FastAPI's own parameter/body validation)
  ListContractError     500  (a validation bug upstream; logged with traceback)
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    ListContractError,
    NotFoundError,
    ServiceError,
    UnauthenticatedError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[ServiceError], int], ...] = (
    (UnauthenticatedError, 401),
    (ForbiddenError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (InvalidInputError, 422),
)


def status_for(exc: ServiceError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return 400


async def service_error_handler(_request: Request, exc: ServiceError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
    return JSONResponse(
        status_code=status_for(exc),
        content={"detail": exc.message, "error_code": exc.error_code},
        headers=headers,
    )


async def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors()), "error_code": "VALIDATION_ERROR"},
    )


async def list_contract_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "List contract violated on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "error_code": "INTERNAL_ERROR"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(ListContractError, list_contract_error_handler)
