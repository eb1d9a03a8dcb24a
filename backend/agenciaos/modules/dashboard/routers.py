# agenciaos/modules/dashboard/routers.py
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger

from agenciaos.core.tenant import CurrentTenant
from agenciaos.modules.clients.repository import ClientRepository, get_client_repository
from agenciaos.modules.finance.repository import (
    ExpenseRepository, RevenueRepository, get_expense_repository, get_revenue_repository,
)
from agenciaos.modules.projects.repository import (
    ProjectRepository, TaskRepository, get_project_repository, get_task_repository,
)
from .models import DashboardStatsAPI
from .services import DashboardService, get_dashboard_service

dashboard_router = APIRouter()

@dashboard_router.get("/stats", response_model=DashboardStatsAPI, summary="Agency dashboard figures for a period", tags=["Dashboard"])
async def dashboard_stats(
    tenant: CurrentTenant,
    client_repo: Annotated[ClientRepository, Depends(get_client_repository)],
    project_repo: Annotated[ProjectRepository, Depends(get_project_repository)],
    task_repo: Annotated[TaskRepository, Depends(get_task_repository)],
    revenue_repo: Annotated[RevenueRepository, Depends(get_revenue_repository)],
    expense_repo: Annotated[ExpenseRepository, Depends(get_expense_repository)],
    dashboard_service: Annotated[DashboardService, Depends(get_dashboard_service)],
    period: Optional[str] = Query("30d", description="7d, 30d, 90d ou 1y"),
):
    try:
        return await dashboard_service.get_stats(
            tenant, client_repo, project_repo, task_repo, revenue_repo, expense_repo, period=period
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error computing dashboard stats: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error computing dashboard stats.")
