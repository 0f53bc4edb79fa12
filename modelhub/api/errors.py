import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from modelhub.core.config import settings
from modelhub.core.errors import ModelHubError, ValidationError

logger = logging.getLogger(__name__)


def error_body(error: ModelHubError) -> dict:
    return {
        "success": False,
        **error.to_dict(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def modelhub_error_handler(request: Request, exc: ModelHubError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    error = ValidationError("Validation failed", errors=errors)
    return JSONResponse(status_code=error.status_code, content=error_body(error))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    body = error_body(ModelHubError())
    if settings.is_development:
        body["error"] = str(exc)
    return JSONResponse(status_code=500, content=body)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ModelHubError, modelhub_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
