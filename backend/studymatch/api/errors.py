"""Global error handlers mapping domain errors to JSON responses with request_id."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from studymatch.domain.errors import Conflict, InvalidArgument, NotFound, StudyMatchError, Unauthenticated, Unavailable
from studymatch.infra.rate_limit import RateLimitExceeded
from studymatch.obs import logging as obs_logging

_STATUS_BY_ERROR = (
	(Unauthenticated, status.HTTP_401_UNAUTHORIZED),
	(NotFound, status.HTTP_404_NOT_FOUND),
	(InvalidArgument, status.HTTP_400_BAD_REQUEST),
	(Conflict, status.HTTP_409_CONFLICT),
	(Unavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def get_request_id(request: Request, default: str = "unknown") -> str:
	rid = getattr(request.state, "request_id", None) or obs_logging.current_request_id()
	return rid or request.headers.get("X-Request-Id") or default


def status_for(exc: StudyMatchError) -> int:
	for kind, code in _STATUS_BY_ERROR:
		if isinstance(exc, kind):
			return code
	return status.HTTP_400_BAD_REQUEST


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(StudyMatchError)
	async def domain_exc_handler(request: Request, exc: StudyMatchError):  # type: ignore[override]
		payload = {"detail": exc.reason, "request_id": get_request_id(request)}
		return JSONResponse(status_code=status_for(exc), content=payload)

	@app.exception_handler(RateLimitExceeded)
	async def rate_limit_handler(request: Request, exc: RateLimitExceeded):  # type: ignore[override]
		payload = {"detail": exc.reason, "request_id": get_request_id(request)}
		return JSONResponse(status_code=status.HTTP_429_TOO_MANY_REQUESTS, content=payload)

	@app.exception_handler(StarletteHTTPException)
	async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
		payload = {"detail": exc.detail, "request_id": get_request_id(request)}
		return JSONResponse(status_code=exc.status_code, content=payload)

	@app.exception_handler(RequestValidationError)
	async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
		payload = {"detail": "validation_error", "errors": jsonable_encoder(exc.errors()), "request_id": get_request_id(request)}
		return JSONResponse(status_code=422, content=payload)
