# agenciaos/modules/finance/routers.py
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from typing import Annotated, Optional
from loguru import logger

from agenciaos.core.tenant import CurrentTenant
from agenciaos.models.api_common import PaginatedResponse, StatusResponse
from agenciaos.modules.clients.repository import ClientRepository, get_client_repository
from agenciaos.modules.projects.repository import ProjectRepository, get_project_repository
from .models import (
    ExpenseAPI, ExpenseCreateAPI, ExpenseUpdateAPI, FinancialStatsAPI,
    RevenueAPI, RevenueCreateAPI, RevenueUpdateAPI,
)
from .repository import ExpenseRepository, RevenueRepository, get_expense_repository, get_revenue_repository
from .services import FinanceService, get_finance_service

revenues_router = APIRouter()
expenses_router = APIRouter()
financial_router = APIRouter()

RevenueRepo = Annotated[RevenueRepository, Depends(get_revenue_repository)]
ExpenseRepo = Annotated[ExpenseRepository, Depends(get_expense_repository)]
ClientRepo = Annotated[ClientRepository, Depends(get_client_repository)]
ProjectRepo = Annotated[ProjectRepository, Depends(get_project_repository)]
Finance = Annotated[FinanceService, Depends(get_finance_service)]

# --- Revenues ---

@revenues_router.get("", response_model=PaginatedResponse[RevenueAPI], summary="List revenues", tags=["Finance"])
async def list_revenues(
    tenant: CurrentTenant,
    revenue_repo: RevenueRepo,
    finance_service: Finance,
    client_id: Optional[str] = Query(None, alias="clientId"),
    project_id: Optional[str] = Query(None, alias="projectId"),
    category: Optional[str] = Query(None),
    is_recurring: Optional[bool] = Query(None, alias="isRecurring"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    return await finance_service.list_revenues(
        tenant, revenue_repo,
        client_id=client_id, project_id=project_id, category=category, is_recurring=is_recurring,
        start_date=start_date, end_date=end_date, page=page, limit=limit,
    )

@revenues_router.post("", response_model=RevenueAPI, status_code=status.HTTP_201_CREATED, summary="Create a revenue", tags=["Finance"])
async def create_revenue(
    data: RevenueCreateAPI,
    tenant: CurrentTenant,
    revenue_repo: RevenueRepo,
    client_repo: ClientRepo,
    project_repo: ProjectRepo,
    finance_service: Finance,
):
    try:
        revenue = await finance_service.create_revenue(tenant, data, revenue_repo, client_repo, project_repo)
        return RevenueAPI.model_validate(revenue.model_dump())
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error creating revenue: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error creating revenue.")

@revenues_router.get("/{revenue_id}", response_model=RevenueAPI, summary="Get a revenue", tags=["Finance"])
async def get_revenue(
    tenant: CurrentTenant,
    revenue_repo: RevenueRepo,
    finance_service: Finance,
    revenue_id: str = Path(..., description="ID da receita (ObjectId)"),
):
    revenue = await finance_service.get_revenue(tenant, revenue_id, revenue_repo)
    return RevenueAPI.model_validate(revenue.model_dump())

@revenues_router.put("/{revenue_id}", response_model=RevenueAPI, summary="Update a revenue", tags=["Finance"])
async def update_revenue(
    data: RevenueUpdateAPI,
    tenant: CurrentTenant,
    revenue_repo: RevenueRepo,
    client_repo: ClientRepo,
    project_repo: ProjectRepo,
    finance_service: Finance,
    revenue_id: str = Path(..., description="ID da receita (ObjectId)"),
):
    try:
        revenue = await finance_service.update_revenue(tenant, revenue_id, data, revenue_repo, client_repo, project_repo)
        return RevenueAPI.model_validate(revenue.model_dump())
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error updating revenue {revenue_id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error updating revenue.")

@revenues_router.delete("/{revenue_id}", response_model=StatusResponse, summary="Delete a revenue", tags=["Finance"])
async def delete_revenue(
    tenant: CurrentTenant,
    revenue_repo: RevenueRepo,
    finance_service: Finance,
    revenue_id: str = Path(..., description="ID da receita (ObjectId)"),
):
    await finance_service.delete_revenue(tenant, revenue_id, revenue_repo)
    return StatusResponse(status="success", message="Revenue deleted")

# --- Expenses ---

@expenses_router.get("", response_model=PaginatedResponse[ExpenseAPI], summary="List expenses", tags=["Finance"])
async def list_expenses(
    tenant: CurrentTenant,
    expense_repo: ExpenseRepo,
    finance_service: Finance,
    category: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    return await finance_service.list_expenses(
        tenant, expense_repo, category=category, start_date=start_date, end_date=end_date, page=page, limit=limit
    )

@expenses_router.post("", response_model=ExpenseAPI, status_code=status.HTTP_201_CREATED, summary="Create an expense", tags=["Finance"])
async def create_expense(
    data: ExpenseCreateAPI,
    tenant: CurrentTenant,
    expense_repo: ExpenseRepo,
    finance_service: Finance,
):
    try:
        expense = await finance_service.create_expense(tenant, data, expense_repo)
        return ExpenseAPI.model_validate(expense.model_dump())
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error creating expense: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error creating expense.")

@expenses_router.get("/{expense_id}", response_model=ExpenseAPI, summary="Get an expense", tags=["Finance"])
async def get_expense(
    tenant: CurrentTenant,
    expense_repo: ExpenseRepo,
    finance_service: Finance,
    expense_id: str = Path(..., description="ID da despesa (ObjectId)"),
):
    expense = await finance_service.get_expense(tenant, expense_id, expense_repo)
    return ExpenseAPI.model_validate(expense.model_dump())

@expenses_router.put("/{expense_id}", response_model=ExpenseAPI, summary="Update an expense", tags=["Finance"])
async def update_expense(
    data: ExpenseUpdateAPI,
    tenant: CurrentTenant,
    expense_repo: ExpenseRepo,
    finance_service: Finance,
    expense_id: str = Path(..., description="ID da despesa (ObjectId)"),
):
    expense = await finance_service.update_expense(tenant, expense_id, data, expense_repo)
    return ExpenseAPI.model_validate(expense.model_dump())

@expenses_router.delete("/{expense_id}", response_model=StatusResponse, summary="Delete an expense", tags=["Finance"])
async def delete_expense(
    tenant: CurrentTenant,
    expense_repo: ExpenseRepo,
    finance_service: Finance,
    expense_id: str = Path(..., description="ID da despesa (ObjectId)"),
):
    await finance_service.delete_expense(tenant, expense_id, expense_repo)
    return StatusResponse(status="success", message="Expense deleted")

# --- Stats ---

@financial_router.get("/stats", response_model=FinancialStatsAPI, summary="Financial dashboard figures", tags=["Finance"])
async def financial_stats(
    tenant: CurrentTenant,
    revenue_repo: RevenueRepo,
    expense_repo: ExpenseRepo,
    finance_service: Finance,
):
    try:
        return await finance_service.get_stats(tenant, revenue_repo, expense_repo)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error computing financial stats: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error computing stats.")
