# FILE: app/utils/resp.py
from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import IntegrityError

from app.schemas.common import ApiResponse, ApiError
from app.services.errors import ServiceError

logger = logging.getLogger(__name__)


def ok(data: Any = None, status_code: int = 200) -> JSONResponse:
    payload = ApiResponse(status=True, data=data)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


def err(msg: str, status_code: int = 400) -> JSONResponse:
    payload = ApiResponse(status=False, error=ApiError(msg=msg))
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


def safe_err(e: Exception) -> JSONResponse:
    """Maps a failure raised inside a route to the envelope."""
    if isinstance(e, ServiceError):
        logger.warning("rejected: %s", e)
        return err(str(e), e.status_code)
    if isinstance(e, HTTPException):
        return err(str(e.detail), e.status_code)
    # Make SQL errors readable instead of full trace
    if isinstance(e, IntegrityError):
        logger.warning("integrity error: %s", getattr(e, "orig", e))
        return err("Database constraint error (duplicate/invalid reference).", 400)
    logger.exception("unexpected error")
    return err("Internal server error", 500)
