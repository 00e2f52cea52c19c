"""HTTP mapping for the fulfillment error taxonomy.

Protean's handlers cover the base domain errors; the more specific handlers
registered here take precedence for the pipeline's own error types.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from fulfillment.errors import (
    ActorNotPermitted,
    ExternalDependencyError,
    InvalidTransition,
    NotAuthenticated,
    UnserviceableError,
    UserNotReady,
)

_STATUS_CODES = {
    ValidationError: 400,
    NotAuthenticated: 401,
    ActorNotPermitted: 403,
    InvalidTransition: 409,
    UnserviceableError: 422,
    UserNotReady: 503,
}


def _validation_handler(status_code):
    async def handler(request: Request, exc: ValidationError) -> JSONResponse:
        content = {"error": exc.messages}
        if getattr(exc, "retryable", False):
            content["retryable"] = True
        if getattr(exc, "shortfall", None) is not None:
            content["shortfall"] = exc.shortfall
        return JSONResponse(status_code=status_code, content=content)

    return handler


async def _not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": str(exc)})


async def _external_dependency_handler(request: Request, exc: ExternalDependencyError) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={
            "error": exc.message,
            "retryable": exc.retryable,
            "order_id": exc.order_id,
            "order_created": exc.order_created,
            "payment_started": exc.payment_started,
        },
    )


def register_fulfillment_exception_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    for exc_class, status_code in _STATUS_CODES.items():
        app.add_exception_handler(exc_class, _validation_handler(status_code))
    app.add_exception_handler(ObjectNotFoundError, _not_found_handler)
    app.add_exception_handler(ExternalDependencyError, _external_dependency_handler)
