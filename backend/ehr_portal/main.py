import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from ehr_portal.config import Settings, get_settings
from ehr_portal.database import Base, build_engine, build_sessionmaker
from ehr_portal.exceptions import EHRError, Internal
from ehr_portal.routers import appointments, dashboard, files, records, users
from ehr_portal.routers import auth as auth_router
from ehr_portal.services.ledger_service import LedgerMirror
import ehr_portal.models  # noqa: F401  (registers tables on Base.metadata)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables
    async with app.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    if not app.state.settings.admin_configured:
        logger.warning("ADMIN_EMAIL/ADMIN_PASSWORD not set; the built-in admin cannot log in")
    if not app.state.ledger.enabled:
        logger.info("Ledger mirror disabled (RPC_URL, PRIVATE_KEY or CONTRACT_ADDRESS missing)")
    yield
    # Shutdown
    await app.state.engine.dispose()


class NoCacheMiddleware(BaseHTTPMiddleware):
    """Middleware to add no-cache headers so browsers never keep patient data."""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, proxy-revalidate, max-age=0"
        response.headers["Expires"] = "0"
        response.headers["Pragma"] = "no-cache"
        return response


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    if first.get("type") == "json_invalid":
        return "Invalid JSON body"
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    if first.get("type") == "missing":
        return f"Missing required field: {field}" if field else "Missing required fields"
    return f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(EHRError)
    async def ehr_error_handler(request: Request, exc: EHRError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        error = Internal("Internal server error")
        return JSONResponse(status_code=error.status_code, content={"error": error.message})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="EHR Portal",
        description="Patient, doctor and admin portal for medical records and appointments",
        version="1.0.0",
        lifespan=lifespan,
    )

    engine = build_engine(settings.database_url)
    app.state.settings = settings
    app.state.engine = engine
    app.state.sessionmaker = build_sessionmaker(engine)
    app.state.ledger = LedgerMirror(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(NoCacheMiddleware)
    register_exception_handlers(app)

    app.include_router(auth_router.router, tags=["Auth"])
    app.include_router(users.router, tags=["Users"])
    app.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
    app.include_router(records.router, tags=["Records"])
    app.include_router(files.router, tags=["Files"])
    app.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "ehr-portal"}

    return app


app = create_app()
