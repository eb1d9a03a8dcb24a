# agenciaos/main.py

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from agenciaos.core.config import settings
from agenciaos.api.v1 import api_v1_router
from agenciaos.core.database import mongo_manager, redis_manager
from agenciaos.core.logging_config import setup_logging, add_trace_id_middleware
from agenciaos.core.rate_limit import limiter, rate_limit_exceeded_handler
from agenciaos.modules.agencies.repository import AgencyRepository, UserRepository
from agenciaos.modules.clients.repository import ClientRepository
from agenciaos.modules.copywriter.repository import AIUsageRepository
from agenciaos.modules.ebooks.repository import EbookRepository
from agenciaos.modules.finance.repository import ExpenseRepository, RevenueRepository
from agenciaos.modules.projects.repository import BoardRepository, ProjectRepository, TaskRepository

INDEXED_REPOSITORIES = (
    AgencyRepository, UserRepository, ClientRepository, ProjectRepository, BoardRepository,
    TaskRepository, RevenueRepository, ExpenseRepository, EbookRepository, AIUsageRepository,
)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.PROJECT_NAME} API...")
    await mongo_manager.connect()
    await redis_manager.connect()
    db = mongo_manager.get_db()
    for repo_class in INDEXED_REPOSITORIES:
        await repo_class(db).create_indexes()
    yield
    logger.info("Shutting down...")
    await redis_manager.disconnect()
    await mongo_manager.disconnect()

# --- Exception handlers: todo erro sai como {"error": ...} ---

async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.bind(trace_id=getattr(request.state, "trace_id", "N/A")).warning(
        f"Validation error on {request.method} {request.url.path}: {len(exc.errors())} error(s)"
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid data", "details": jsonable_encoder(exc.errors())},
    )

async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.bind(trace_id=getattr(request.state, "trace_id", "N/A")).exception(
        f"Unhandled error on {request.method} {request.url.path}: {exc}"
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )

def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Ordem: o último adicionado é o mais externo (trace → CORS → slowapi)
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.cors_origins_list != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Trace-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
    )
    app.middleware("http")(add_trace_id_middleware)

    app.include_router(api_v1_router, prefix=settings.API_PREFIX)

    # PDFs gerados pelo worker
    uploads_dir = Path(settings.UPLOADS_DIR)
    uploads_dir.mkdir(parents=True, exist_ok=True)
    app.mount(settings.UPLOADS_URL_PATH, StaticFiles(directory=uploads_dir), name="uploads")
    return app

app = create_app()
