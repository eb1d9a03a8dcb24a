# agenciaos/api/endpoints/status.py
from fastapi import APIRouter, Depends, status as http_status, Response
from loguru import logger
from redis.asyncio import Redis
from datetime import datetime, timezone
import time as process_time
from typing import Dict, Optional, Literal
from pydantic import BaseModel, Field
from celery.exceptions import OperationalError as CeleryOperationalError
from motor.motor_asyncio import AsyncIOMotorDatabase

from agenciaos.core.database import mongo_manager, get_redis_client

class ComponentStatus(BaseModel):
    status: Literal["ok", "error", "unavailable"] = "ok"
    message: Optional[str] = None

class HealthCheckResponse(BaseModel):
    overall_status: Literal["ok", "error"] = "ok"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    uptime_seconds: float = Field(..., description="Process uptime in seconds")
    components: Dict[str, ComponentStatus]

PROCESS_START_TIME = process_time.monotonic()

router = APIRouter()

async def get_optional_database() -> Optional[AsyncIOMotorDatabase]:
    # Ao contrário de get_database, não levanta 503: o healthcheck reporta a falha
    return mongo_manager.db

def ping_celery_workers() -> ComponentStatus:
    from agenciaos.worker.celery_app import celery_app
    inspector = celery_app.control.inspect(timeout=1.5)
    ping_results = inspector.ping()
    if ping_results:
        return ComponentStatus(status="ok", message=f"{len(ping_results)} worker(s) responded.")
    return ComponentStatus(status="unavailable", message="No workers responded to ping.")

async def get_celery_pinger():
    return ping_celery_workers

@router.get(
    "/healthcheck",
    response_model=HealthCheckResponse,
    tags=["Status & Health"],
    summary="Application Health and Component Status Check"
)
async def get_application_health(
    db: Optional[AsyncIOMotorDatabase] = Depends(get_optional_database),
    redis: Optional[Redis] = Depends(get_redis_client),
    celery_pinger=Depends(get_celery_pinger),
):
    log = logger.bind(api_endpoint="/healthcheck GET")
    log.info("Performing application health check...")

    component_statuses: Dict[str, ComponentStatus] = {}
    critical_ok = True

    if db is not None:
        try:
            await db.command('ping')
            component_statuses["database_mongodb"] = ComponentStatus(status="ok")
            log.debug("MongoDB ping successful.")
        except Exception as e:
            err_msg = f"MongoDB connection check failed: {e}"
            log.error(err_msg)
            component_statuses["database_mongodb"] = ComponentStatus(status="error", message=err_msg)
            critical_ok = False
    else:
        log.error("MongoDB connection not available.")
        component_statuses["database_mongodb"] = ComponentStatus(status="error", message="DB Client not available")
        critical_ok = False

    if redis is not None:
        try:
            await redis.ping()
            component_statuses["cache_broker_redis"] = ComponentStatus(status="ok")
            log.debug("Redis ping successful.")
        except Exception as e:
            err_msg = f"Redis connection check failed: {e}"
            log.error(err_msg)
            component_statuses["cache_broker_redis"] = ComponentStatus(status="error", message=err_msg)
            critical_ok = False
    else:
        log.error("Redis connection not available.")
        component_statuses["cache_broker_redis"] = ComponentStatus(status="error", message="Redis Client not available")
        critical_ok = False

    # Workers não são críticos: a API aceita jobs mesmo sem worker no ar
    try:
        celery_status = celery_pinger()
    except CeleryOperationalError as e:
        log.error(f"Celery broker connection error during ping: {e}")
        celery_status = ComponentStatus(status="error", message="Broker connection error")
    except Exception as e:
        log.error(f"Celery worker check failed unexpectedly: {e}")
        celery_status = ComponentStatus(status="error", message="Ping check error")
    component_statuses["celery_workers"] = celery_status

    uptime_seconds = process_time.monotonic() - PROCESS_START_TIME
    response_payload = HealthCheckResponse(
        overall_status="ok" if critical_ok else "error",
        uptime_seconds=uptime_seconds,
        components=component_statuses
    )

    status_code = http_status.HTTP_200_OK if critical_ok else http_status.HTTP_503_SERVICE_UNAVAILABLE
    return Response(
        content=response_payload.model_dump_json(exclude_none=True),
        status_code=status_code,
        media_type="application/json"
    )
