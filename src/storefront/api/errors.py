"""HTTP mapping for storefront errors.

Protean's own handlers cover ValidationError (400) and ObjectNotFoundError
(404). Handlers registered here take precedence for the more specific
subclasses, since Starlette resolves handlers along the exception's MRO.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from storefront.errors import AmbiguousIdentifier, InvalidTransition, OutOfStock, PermissionDenied

_STATUS_CODES = {
    OutOfStock: 409,
    InvalidTransition: 409,
    AmbiguousIdentifier: 409,
    PermissionDenied: 403,
    ObjectNotFoundError: 404,
    ValidationError: 400,
}


def _messages(exc):
    messages = getattr(exc, "messages", None)
    if isinstance(messages, dict):
        return messages
    return {"_entity": [str(exc)]}


def _handler_for(status_code):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"error": _messages(exc)})

    return handler


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    for exc_class, status_code in _STATUS_CODES.items():
        app.add_exception_handler(exc_class, _handler_for(status_code))
