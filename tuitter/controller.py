"""Request metadata middleware, request logging and the JSON error handlers."""

import json
import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tuitter.constants import (
    BODY_FIELDS_TO_REDACT,
    HEADERS_TO_OMIT,
    HEADERS_TO_REDACT,
    LOGGED_BODY_MAX_LENGTH,
)
from tuitter.errors import (
    BaseError,
    InternalServerError,
    MethodNotAllowedError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from tuitter.services.session_service import clear_session_cookie
from tuitter.utils import normalize_client_ip

logger = logging.getLogger(__name__)


def extract_client_ip(request: Request) -> str:
    """Last hop of x-forwarded-for, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return normalize_client_ip(forwarded.split(",")[-1].strip())
    return normalize_client_ip(request.client.host if request.client else None)


def clean_headers(headers) -> dict[str, str]:
    cleaned = {k.lower(): v for k, v in headers.items()}
    for header in HEADERS_TO_REDACT:
        if cleaned.get(header):
            cleaned[header] = "**"
    for header in HEADERS_TO_OMIT:
        cleaned.pop(header, None)
    return cleaned


def clean_body(raw: bytes) -> dict | None:
    if not raw:
        return None
    try:
        body = json.loads(raw)
    except ValueError:
        return {"raw": raw[:LOGGED_BODY_MAX_LENGTH].decode("utf-8", "replace")}
    if not isinstance(body, dict):
        return None
    if isinstance(body.get("body"), str):
        body["body"] = body["body"][:LOGGED_BODY_MAX_LENGTH]
    for key in BODY_FIELDS_TO_REDACT:
        if body.get(key):
            body[key] = "**"
    return body


def clean_context(request: Request) -> dict:
    context = {
        "request_id": getattr(request.state, "request_id", None),
        "client_ip": getattr(request.state, "client_ip", None),
    }
    request_context = getattr(request.state, "context", None)
    if request_context is not None:
        user = request_context.user
        context["user"] = {"id": str(user.id) if user.id else None, "username": getattr(user, "username", None)}
    return context


def error_response(error: BaseError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_public_dict())


def _log_handled(request: Request, error: BaseError) -> None:
    logger.info("Handled %s: %s", error.name, {**error.to_private_dict(), "request": clean_context(request)})


async def base_error_handler(request: Request, exc: BaseError) -> JSONResponse:
    exc.request_id = getattr(request.state, "request_id", None)
    _log_handled(request, exc)
    response = error_response(exc)
    if isinstance(exc, UnauthorizedError):
        clear_session_cookie(response)
    return response


def _validation_key(loc: tuple) -> str:
    names = [part for part in loc[1:] if isinstance(part, str)]
    return names[-1] if names else "object"


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0]
    if first.get("type") == "json_invalid":
        error = ValidationError(
            "The submitted value could not be parsed.",
            "Check that the submitted value is valid JSON.",
            key="object",
            error_location_code="MODEL:VALIDATOR:ERROR_PARSING_JSON",
        )
    else:
        key = _validation_key(tuple(first.get("loc", ())))
        message = str(first.get("msg", "")).removeprefix("Value error, ")
        error = ValidationError(
            f'"{key}": {message}' if key != "object" else message,
            key=key,
            error_location_code="MODEL:VALIDATOR:FINAL_SCHEMA",
            context={"type": first.get("type")},
        )
    return await base_error_handler(request, error)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 405:
        error = MethodNotAllowedError(
            f'Method "{request.method}" is not allowed for "{request.url.path}".',
            "Use a valid HTTP method for this resource.",
        )
    elif exc.status_code == 404:
        error = NotFoundError(
            f'No resource at "{request.url.path}".',
            "Check that the requested address is correct.",
        )
    else:
        error = BaseError(str(exc.detail), status_code=exc.status_code)
    return await base_error_handler(request, error)


def register(app: FastAPI) -> None:
    """Install the metadata middleware and error handlers on ``app``."""
    app.add_exception_handler(BaseError, base_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    @app.middleware("http")
    async def request_metadata(request: Request, call_next):
        request.state.request_id = str(uuid.uuid4())
        request.state.client_ip = extract_client_ip(request)
        raw_body = await request.body()

        try:
            response = await call_next(request)
        except Exception as e:
            # Handlers above cover known errors; anything here is unexpected
            error = InternalServerError(request_id=request.state.request_id)
            logger.error(
                "Unhandled error %s: %s",
                error.error_id,
                {"request": clean_context(request), "exception": repr(e)},
                exc_info=True,
            )
            return error_response(error)

        logger.info(
            "%s %s -> %d %s",
            request.method,
            request.url.path,
            response.status_code,
            {
                "headers": clean_headers(request.headers),
                "body": clean_body(raw_body),
                "context": clean_context(request),
            },
        )
        return response
