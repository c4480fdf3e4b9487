"""RFC 7807 problem-details rendering for domain and framework errors."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final, cast

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from agentgraph.domain.errors import (
    AgentGraphError,
    ConflictError,
    FieldError,
    InternalError,
    NotFoundError,
    ReferenceValidationError,
    SchemaValidationError,
    json_pointer,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from fastapi import FastAPI, Request

log = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE: Final = "application/problem+json"
REQUEST_ID_HEADER: Final = "X-Request-ID"
GENERIC_DETAIL: Final = "An unexpected error occurred"

# Tags pydantic inserts into error locations right after a tagged-union member.
_UNION_TAGS: Final = frozenset({"internal", "external", "static", "fetch"})
_UNION_CONTAINERS: Final = frozenset({"agents", "contextSources", "context_sources"})
_LOCATION_PREFIXES: Final = frozenset({"body", "query", "path", "header"})


class UnauthorizedError(AgentGraphError):
    pass


@dataclass(frozen=True, slots=True)
class ProblemKind:
    status: int
    code: str
    title: str


_PROBLEM_KINDS: Final[dict[type[AgentGraphError], ProblemKind]] = {
    SchemaValidationError: ProblemKind(400, "bad_request", "Validation Failed"),
    ReferenceValidationError: ProblemKind(400, "bad_request", "Reference Validation Failed"),
    UnauthorizedError: ProblemKind(401, "unauthorized", "Unauthorized"),
    NotFoundError: ProblemKind(404, "not_found", "Not Found"),
    ConflictError: ProblemKind(409, "conflict", "Conflict"),
    InternalError: ProblemKind(500, "internal_server_error", "Internal Server Error"),
}
_INTERNAL: Final = _PROBLEM_KINDS[InternalError]

_HTTP_CODES: Final[dict[int, tuple[str, str]]] = {
    400: ("bad_request", "Bad Request"),
    401: ("unauthorized", "Unauthorized"),
    403: ("forbidden", "Forbidden"),
    404: ("not_found", "Not Found"),
    405: ("method_not_allowed", "Method Not Allowed"),
    409: ("conflict", "Conflict"),
    415: ("unsupported_media_type", "Unsupported Media Type"),
    422: ("unprocessable_entity", "Unprocessable Entity"),
}


def problem_kind(exc: AgentGraphError) -> ProblemKind:
    """Resolve the most specific registered class in ``exc``'s MRO."""

    for cls in type(exc).__mro__:
        kind = _PROBLEM_KINDS.get(cls)
        if kind is not None:
            return kind
    return _INTERNAL


def request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get(REQUEST_ID_HEADER, "unknown")


def problem_response(
    request: Request,
    *,
    status: int,
    code: str,
    title: str,
    detail: str,
    extra: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    body: dict[str, Any] = {
        "type": f"urn:agentgraph:error:{code}",
        "title": title,
        "status": status,
        "detail": detail,
        "instance": request.url.path,
        "code": code,
        "error": {"code": code, "message": detail},
    }
    if extra:
        body.update(extra)
    response_headers = {REQUEST_ID_HEADER: request_id(request)}
    if headers:
        response_headers.update(headers)
    return JSONResponse(body, status_code=status, media_type=PROBLEM_MEDIA_TYPE, headers=response_headers)


def _field_errors(fields: Sequence[FieldError]) -> list[dict[str, str]]:
    return [
        {"detail": field.reason, "pointer": field.pointer, "name": field.name, "reason": field.reason}
        for field in fields
    ]


def _clean_location(loc: Sequence[str | int]) -> list[str | int]:
    tokens = list(loc)
    if tokens and tokens[0] in _LOCATION_PREFIXES:
        tokens = tokens[1:]
    cleaned: list[str | int] = []
    for token in tokens:
        if isinstance(token, str) and token.startswith("function-"):
            continue
        if token in _UNION_TAGS and len(cleaned) >= 2 and cleaned[-2] in _UNION_CONTAINERS:
            continue
        cleaned.append(token)
    return cleaned


def schema_error_from_errors(errors: Sequence[Mapping[str, Any]]) -> SchemaValidationError:
    """Convert pydantic error dicts into a ``SchemaValidationError`` with JSON pointers."""

    fields = [
        FieldError(
            json_pointer(*_clean_location(error.get("loc", ()))) or "/",
            str(error.get("msg", "Invalid value")),
        )
        for error in errors
    ]
    return SchemaValidationError(fields)


def render_domain_error(request: Request, exc: AgentGraphError) -> JSONResponse:
    kind = problem_kind(exc)
    if kind.status >= 500:
        log.exception(
            "Internal error on %s %s (request %s)",
            request.method,
            request.url.path,
            request_id(request),
            exc_info=exc,
        )
        return problem_response(
            request, status=kind.status, code=kind.code, title=kind.title, detail=GENERIC_DETAIL
        )

    extra: dict[str, Any] = {}
    headers: dict[str, str] = {}
    if isinstance(exc, SchemaValidationError):
        extra["errors"] = _field_errors(exc.fields)
    elif isinstance(exc, ReferenceValidationError):
        extra["errors"] = [
            {
                "kind": violation.kind.value,
                "id": violation.reference_id,
                "pointer": violation.pointer,
                "reason": violation.reason,
            }
            for violation in exc.violations
        ]
    elif isinstance(exc, ConflictError):
        extra["retryable"] = exc.retryable
    elif isinstance(exc, UnauthorizedError):
        headers["WWW-Authenticate"] = "Bearer"
    return problem_response(
        request,
        status=kind.status,
        code=kind.code,
        title=kind.title,
        detail=exc.detail,
        extra=extra,
        headers=headers,
    )


def install_problem_handlers(app: FastAPI) -> None:
    """Register handlers so every error leaves as ``application/problem+json``."""

    async def _domain_error(request: Request, exc: Exception) -> JSONResponse:
        return render_domain_error(request, cast("AgentGraphError", exc))

    async def _request_validation(request: Request, exc: Exception) -> JSONResponse:
        errors = cast("RequestValidationError", exc).errors()
        return render_domain_error(request, schema_error_from_errors(errors))

    async def _http_error(request: Request, exc: Exception) -> JSONResponse:
        http_exc = cast("StarletteHTTPException", exc)
        code, title = _HTTP_CODES.get(http_exc.status_code, ("error", "Error"))
        return problem_response(
            request,
            status=http_exc.status_code,
            code=code,
            title=title,
            detail=str(http_exc.detail),
            headers=http_exc.headers,
        )

    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        log.exception(
            "Unhandled error on %s %s (request %s)",
            request.method,
            request.url.path,
            request_id(request),
            exc_info=exc,
        )
        return problem_response(
            request,
            status=_INTERNAL.status,
            code=_INTERNAL.code,
            title=_INTERNAL.title,
            detail=GENERIC_DETAIL,
        )

    app.add_exception_handler(AgentGraphError, _domain_error)
    app.add_exception_handler(RequestValidationError, _request_validation)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _unexpected)
