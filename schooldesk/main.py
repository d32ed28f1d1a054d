"""
SchoolDesk — school dashboard backend with role-based access control.
FastAPI entry point.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from schooldesk.core.config import settings
from schooldesk.core.errors import SchoolDeskError, UpstreamFailure, ValidationFailed
from schooldesk.core.log import setup_logging
from schooldesk.routers import announcements, attendance, auth, fees, registrations, results, students, teachers
from schooldesk.utils.response import error_payload, error_response

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="School dashboard: attendance, results, announcements, subject registrations and fees",
    version="1.0.0",
)

# CORS
origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SchoolDeskError)
async def school_desk_error_handler(request: Request, exc: SchoolDeskError):
    if isinstance(exc, UpstreamFailure):
        logger.warning("%s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_payload(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    failure = ValidationFailed("Invalid request body")
    return JSONResponse(
        status_code=failure.status_code,
        content=error_payload(failure, {"errors": _validation_errors(exc)}),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message=str(exc.detail), data={"code": _http_code(exc.status_code), "retryable": False}),
        headers=getattr(exc, "headers", None),
    )


def _validation_errors(exc: RequestValidationError) -> list[dict]:
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]


def _http_code(status_code: int) -> str:
    if status_code == status.HTTP_401_UNAUTHORIZED:
        return "unauthenticated"
    if status_code == status.HTTP_403_FORBIDDEN:
        return "access_denied"
    if status_code == status.HTTP_404_NOT_FOUND:
        return "not_found"
    return "error"


# Include routers
app.include_router(auth.router)
app.include_router(attendance.router)
app.include_router(results.router)
app.include_router(announcements.router)
app.include_router(registrations.router)
app.include_router(teachers.router)
app.include_router(students.router)
app.include_router(fees.router)


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "1.0.0",
        "status": "running",
        "auth_mode": settings.AUTH_MODE,
    }


@app.get("/api/health")
async def health():
    return {"status": "healthy", "auth_mode": settings.AUTH_MODE, "store": settings.STORE_BACKEND}
