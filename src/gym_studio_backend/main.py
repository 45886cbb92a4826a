'''
Application entry point: lifespan, middleware, error envelope and routers.
'''
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from pydantic import ValidationError
from contextlib import asynccontextmanager

from .database.engine import create_db_engine_and_session_factory, create_tables, dispose_db_engine
from .common.logger import log
from .common.config import settings
from .models.common import ErrorResponse
from .api import auth, admins, classes, groups, clients, payments, webhooks, reservations

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles application startup and shutdown events.
    """
    # --- On App Startup ---
    log.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}...")
    create_db_engine_and_session_factory()
    if settings.TEST_MODE or settings.database_url.startswith("sqlite"):
        await create_tables()

    yield # --- Application is now running ---

    # --- On App Shutdown ---
    log.info("Application lifespan shutdown...")
    await dispose_db_engine()


# ---- CREATING THE APP ----
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# --- Add CORS Middleware ---
origins = [
    # URL of testing frontend
    "http://localhost",
    "http://localhost:3000",
]

# Extend with environment-specific origins
origins.extend(settings.BACKEND_CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],)
# --- End of CORS Middleware ---


# --- Error envelope: {"success": false, "error": ..., "details"?: [...]} ---
def _error_response(status_code: int, error: str, details: list | None = None, headers: dict | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details or None)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True), headers=headers)

def _validation_messages(errors: list[dict]) -> list[str]:
    messages = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return messages

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if isinstance(detail, dict):
        return _error_response(
            exc.status_code,
            str(detail.get("error", "Request failed")),
            detail.get("details"),
            getattr(exc, "headers", None)
        )
    return _error_response(exc.status_code, str(detail), headers=getattr(exc, "headers", None))

@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    log.warning(f"Request validation failed on {request.url.path}: {exc.errors()}")
    return _error_response(status.HTTP_400_BAD_REQUEST, "Validation failed", _validation_messages(exc.errors()))

@app.exception_handler(ValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: ValidationError):
    log.warning(f"Payload validation failed on {request.url.path}: {exc.errors()}")
    return _error_response(status.HTTP_400_BAD_REQUEST, "Validation failed", _validation_messages(exc.errors()))

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred")


@app.get("/")
async def health_check():
    return {"status": "ok", "message": f"{settings.APP_NAME} is running"}

app.include_router(auth.router)
app.include_router(reservations.router)
app.include_router(admins.router)
app.include_router(classes.router)
# '/client/group/...' must be matched before '/client/{client_id}'
app.include_router(groups.router)
app.include_router(clients.router)
app.include_router(payments.router)
app.include_router(webhooks.router)
