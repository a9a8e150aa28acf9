"""
Main application entry point for the Customers API.

This module builds the FastAPI application: it configures logging and
CORS, owns the database lifecycle, maps the error taxonomy to HTTP
responses, and includes routers for authentication, users, customers
and contacts.

Modules:
- FastAPI: Web framework
- CORSMiddleware: Middleware for handling CORS
- loguru: Logging
- crm_api.database: Store handle
- crm_api.errors: Error taxonomy and handlers
- crm_api.auth: Login route and token dependency
- crm_api.users / customers / contacts: Resource routers
- crm_api.core: Application settings
"""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from crm_api import contacts, customers, users
from crm_api.auth import router as auth_router
from crm_api.core import configure_logging, get_settings
from crm_api.database import Database
from crm_api.errors import register_error_handlers


def create_app(database: Database | None = None) -> FastAPI:
    """
    Build the application around an explicitly constructed store handle.

    Args:
        database (Database | None): Store handle to use; a new one is
            created from ``DATABASE_URL`` when omitted.

    Returns:
        FastAPI: Configured application. ``app.state.db`` holds the handle.
    """
    settings = get_settings()
    db = database or Database(settings.DATABASE_URL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.CREATE_TABLES_ON_STARTUP:
            db.create_all()
        logger.info("Customers API started")
        try:
            yield
        finally:
            db.dispose()

    app = FastAPI(title="Customers API", lifespan=lifespan)
    app.state.db = db

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start = time.perf_counter()
        with logger.contextualize(request_id=request_id):
            logger.info("request.start {} {}", request.method, request.url.path)
            try:
                response = await call_next(request)
            except Exception:
                # details stay in the log, the client gets an opaque message
                logger.exception("request.error {} {}", request.method, request.url.path)
                return JSONResponse(
                    status_code=500,
                    content={"error": "Internal server error"},
                    headers={"X-Request-ID": request_id},
                )
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=response.status_code, duration_ms=round(duration_ms, 1)
            ).info("request.end {} {}", response.status_code, request.url.path)
            response.headers.setdefault("X-Request-ID", request_id)
            return response

    register_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(users.router)
    app.include_router(customers.router)
    app.include_router(contacts.router)

    @app.get("/")
    def root():
        """
        Root endpoint for the API.

        Returns a simple JSON message directing users to the Swagger UI.
        """
        return {"msg": "Customers API. Visit /docs for Swagger UI"}

    return app


configure_logging()
app = create_app()
