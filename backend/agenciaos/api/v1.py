# agenciaos/api/v1.py
from fastapi import APIRouter, Depends

from agenciaos.api.endpoints import status
from agenciaos.core.rate_limit import rate_limit
from agenciaos.modules.agencies.routers import auth_router, rate_limit_router
from agenciaos.modules.clients.routers import clients_router
from agenciaos.modules.copywriter.routers import copywriter_router
from agenciaos.modules.dashboard.routers import dashboard_router
from agenciaos.modules.ebooks.routers import ebook_router
from agenciaos.modules.finance.routers import expenses_router, financial_router, revenues_router
from agenciaos.modules.projects.routers import boards_router, projects_router, tasks_router

api_v1_router = APIRouter()

# Rotas de tenant consomem 1 unidade "api" do plano por request
api_limited = [Depends(rate_limit("api"))]

api_v1_router.include_router(status.router)
api_v1_router.include_router(auth_router, prefix="/auth")
api_v1_router.include_router(rate_limit_router, prefix="/rate-limit")
api_v1_router.include_router(ebook_router, prefix="/ebook", dependencies=api_limited)
api_v1_router.include_router(clients_router, prefix="/clients", dependencies=api_limited)
api_v1_router.include_router(projects_router, prefix="/projects", dependencies=api_limited)
api_v1_router.include_router(boards_router, prefix="/boards", dependencies=api_limited)
api_v1_router.include_router(tasks_router, prefix="/tasks", dependencies=api_limited)
api_v1_router.include_router(revenues_router, prefix="/revenues", dependencies=api_limited)
api_v1_router.include_router(expenses_router, prefix="/expenses", dependencies=api_limited)
api_v1_router.include_router(financial_router, prefix="/financial", dependencies=api_limited)
api_v1_router.include_router(dashboard_router, prefix="/dashboard", dependencies=api_limited)
api_v1_router.include_router(copywriter_router, prefix="/ai")
