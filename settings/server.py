from fastapi import FastAPI, HTTPException, status
from settings.config import get_settings
from settings.datadog_logger import DatadogLogger
from fastapi.responses import JSONResponse
from fastapi.middleware.gzip import GZipMiddleware
from datetime import datetime, UTC
import logging
from common.common_utils import failure_response
from common.exceptions import FormValidationError, InvalidEnumValueError, NotAuthorizedError
from api.maap.config import Constants
from api.maap.router import maap_router
from api.maap.schemas.maap_records import ValidationErrorResponse
from middleware.request_logging_middleware import RequestLoggingMiddleware

description = """
#### MAAP APIs:  🚀
   Milestones, Assignments, Abilities and Positions: versioned records,
   check-ins, MAAP snapshots and observations.
"""

maap_app = FastAPI(
    title="MAAP",
    description=description,
    version="1.0.0",
    openapi_version="3.1.0",
    docs_url="/docs/maap",
)


@maap_app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": "failure",
            "data": None,
            "errors": [exc.detail]
        },
        headers=getattr(exc, "headers", None),
    )


@maap_app.exception_handler(NotAuthorizedError)
async def not_authorized_handler(request, exc: NotAuthorizedError):
    redirect_to = exc.redirect_to or "/"
    return failure_response(
        status.HTTP_303_SEE_OTHER,
        [exc.message],
        data={"redirect_to": redirect_to, "reason": exc.reason},
        headers={"Location": redirect_to, Constants.FLASH_ALERT_HEADER: exc.message},
    )


@maap_app.exception_handler(FormValidationError)
async def form_validation_handler(request, exc: FormValidationError):
    return failure_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        exc.full_messages(),
        data=ValidationErrorResponse(errors=exc.errors, full_messages=exc.full_messages()).model_dump(),
    )


@maap_app.exception_handler(InvalidEnumValueError)
async def invalid_enum_handler(request, exc: InvalidEnumValueError):
    return failure_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        [str(exc)],
        data={"field": exc.field, "value": exc.value, "allowed": exc.allowed},
    )


maap_app.add_middleware(GZipMiddleware, minimum_size=1000)
# Structured HTTP request logging
maap_app.add_middleware(RequestLoggingMiddleware)

maap_app.include_router(maap_router)


@maap_app.get('/')
def read_root():
    """
    Root endpoint to check if the MAAP API is running.
    """
    return {"message": "MAAP API is running successfully!"}


@maap_app.get('/health')
def health_check():
    """
    Lightweight health check endpoint for Kubernetes probes.
    """
    return {"status": "healthy", "timestamp": datetime.now(UTC).isoformat()}


settings = get_settings()

# Setup Datadog logger (attach to ROOT logger and uvicorn.access)
dd_handler = DatadogLogger(service=settings.service_name)
dd_handler.setLevel(logging.INFO)

root_logger = logging.getLogger()
root_logger.setLevel(settings.log_level)
root_logger.addHandler(dd_handler)

# Ensure uvicorn.access logs propagate to root logger (no direct handler)
uvicorn_access_logger = logging.getLogger("uvicorn.access")
uvicorn_access_logger.setLevel(logging.INFO)
uvicorn_access_logger.propagate = True

root_logger.info("Datadog root logger initialized")
