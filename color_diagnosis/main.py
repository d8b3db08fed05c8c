"""
Color Diagnosis Service - FastAPI Backend
Gemini-powered personal color, face shape and body type diagnosis

Architecture:
  - Rate limiter gates each client per fixed window
  - Gemini receives either client-side measurements or photos with a fixed prompt
  - Usage records go to MongoDB after the response, when configured
"""
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import MODE_IMAGE, Settings
from .diagnosis import DiagnosisOrchestrator
from .errors import DiagnosisError, ServiceUnavailable
from .gemini_client import GeminiDiagnosisModel
from .models import DiagnoseResponse, StatsResponse, StatusResponse
from .rate_limiter import RateLimiter, client_identifier
from .storage import UsageStore, persist_usage
from .structured_logging import StructuredLogger, log_request, set_request_id, setup_logging

logger = StructuredLogger(__name__)

SERVICE_NAME = "apl-landing-demo"
# Local development and Cloudflare Pages previews
ALLOWED_ORIGIN_REGEX = r"https?://([^/]*\.)?localhost(:\d+)?|https://[^/]+\.pages\.dev"


def _error_response(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        {"success": False, "message": message},
        status_code=status_code,
        headers=headers,
    )


def create_app(
    settings: Optional[Settings] = None,
    model=None,
    store: Optional[UsageStore] = None,
    limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    """Build the application; collaborators may be injected for tests."""
    settings = settings or Settings.from_env()
    limiter = limiter or RateLimiter(
        max_requests=settings.rate_limit_max,
        window_seconds=settings.rate_limit_window_seconds,
    )
    model = model or GeminiDiagnosisModel(settings.model_name)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start the rate-limit sweep, connect Gemini and MongoDB."""
        setup_logging(level=settings.log_level, use_json=settings.log_json)
        logger.info(
            "Starting color diagnosis service",
            mode=settings.mode,
            model=settings.model_name,
            rate_limit=f"{settings.rate_limit_max}/{settings.rate_limit_window_minutes}min",
        )

        if isinstance(model, GeminiDiagnosisModel) and not model.available:
            try:
                model.initialize(settings.api_key)
            except RuntimeError as e:
                logger.warning(f"Gemini not available: {e}")
                logger.warning("Diagnosis disabled until restart with a valid key.")

        if app.state.store is None and settings.mongo_url:
            app.state.store = UsageStore(
                settings.mongo_url, settings.mongo_db, settings.mongo_collection
            )
            logger.info("Usage persistence enabled", collection=settings.mongo_collection)

        limiter.start_sweeper(settings.sweep_seconds)
        logger.info("Ready to serve requests.")
        yield
        logger.info("Shutting down...")
        await limiter.stop_sweeper()
        if app.state.store is not None:
            app.state.store.close()

    app = FastAPI(
        title="Color Diagnosis Service",
        description="Gemini-powered personal color demo diagnosis API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.limiter = limiter
    app.state.store = store
    app.state.orchestrator = DiagnosisOrchestrator(
        limiter, model, mode=settings.mode, enabled=settings.enabled
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_origin_regex=ALLOWED_ORIGIN_REGEX,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        """Middleware for request ID tracking and logging."""
        start_time = time.time()
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        set_request_id(request_id)

        response = await call_next(request)

        if request.url.path not in ["/health", "/docs", "/openapi.json"]:
            log_request(
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=(time.time() - start_time) * 1000,
                client_ip=client_identifier(request, settings.trusted_proxies),
            )

        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(DiagnosisError)
    async def diagnosis_error_handler(request: Request, exc: DiagnosisError):
        return _error_response(exc.status_code, exc.message, exc.headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = "Resource not found." if exc.status_code == 404 else str(exc.detail)
        return _error_response(exc.status_code, message)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Server error", error=str(exc))
        return _error_response(500, "Internal server error.")

    @app.get("/health")
    async def health_check():
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.post("/diagnose", response_model=DiagnoseResponse)
    async def diagnose(request: Request, background_tasks: BackgroundTasks):
        """Diagnose from measurements or photos; persistence runs after the response."""
        try:
            payload = await request.json()
        except ValueError:
            payload = None

        response, record = await app.state.orchestrator.diagnose(
            payload, client_identifier(request, settings.trusted_proxies)
        )
        if app.state.store is not None:
            background_tasks.add_task(persist_usage, app.state.store, record)
        return response

    @app.get("/status", response_model=StatusResponse)
    async def status():
        return StatusResponse(
            available=app.state.orchestrator.available,
            model=settings.model_name,
            mode="image" if settings.mode == MODE_IMAGE else "data-only",
        )

    @app.get("/stats", response_model=StatsResponse)
    async def stats():
        """Aggregated usage counts; needs the MongoDB backend."""
        if app.state.store is None:
            raise ServiceUnavailable("Statistics are not available.")
        try:
            data = await app.state.store.stats()
        except Exception as e:
            logger.error("Stats error", error=str(e))
            raise DiagnosisError("Failed to read stats.")
        return StatsResponse(**data)

    return app


app = create_app()


def run():
    import os
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3060")))


if __name__ == "__main__":
    run()
