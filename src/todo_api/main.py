from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .audit import AuditedHTTPException, AuditTrail
from .db import Database
from .logger import configure_logging, get_logger
from .models import NIL_TODO_ID
from .routers import todos as todos_router
from .settings import Settings, get_settings
from .utils import parse_uuid

logger = get_logger(__name__)


def _audit_rejected_request(request: Request, detail: str) -> None:
    """Write a failure entry when a request to an audited endpoint is rejected before the handler runs."""
    action = todos_router.AUDITED_ENDPOINTS.get(request.scope.get("endpoint"))
    if action is None:
        return
    todo_id = parse_uuid(request.query_params.get("id")) or NIL_TODO_ID
    request.app.state.audit.failure(action, todo_id, "Invalid request payload", detail)


openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "todos",
        "description": "Create, fetch, update and soft-delete todos, with filtering, sorting and pagination.",
    },
]


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    The database handle is constructed here and stored on `app.state`; it is
    opened when the application starts and closed when it shuts down.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    database = Database(settings.database_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Open the connection once per process.
        database.open()
        try:
            yield
        finally:
            database.close()

    app = FastAPI(
        title="Todo API",
        description="Task-tracking API with soft deletes and an audit log.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.database = database
    app.state.audit = AuditTrail(database, enabled=settings.audit_enabled)

    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Reject malformed request bodies with 400.

        Response format:
            {
                "error": "ValidationError",
                "message": "Invalid request payload",
                "detail": [... pydantic/fastapi error details ...]
            }

        Failures on audited endpoints are also written to the audit trail.
        """
        errors = [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]
        _audit_rejected_request(request, "; ".join(str(err.get("msg", "")) for err in errors))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": "ValidationError",
                "message": "Invalid request payload",
                "detail": jsonable_encoder(errors),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def audited_http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
        """
        Default HTTPException rendering, plus an audit entry for errors FastAPI
        raises itself on audited endpoints with status 400 (e.g. a body that
        cannot be decoded).
        Errors raised through `AuditScope.fail` are already audited.
        """
        if exc.status_code == status.HTTP_400_BAD_REQUEST and not isinstance(exc, AuditedHTTPException):
            _audit_rejected_request(request, str(exc.detail))
        return await http_exception_handler(request, exc)

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check(request: Request):
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service and database health.
        """
        db_ok = request.app.state.database.ping()
        return {"message": "Healthy", "database": "ok" if db_ok else "unavailable"}

    app.include_router(todos_router.router)
    return app


app = create_app()
