# agenciaos/modules/finance/services.py
import re
from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import HTTPException, status
from loguru import logger

from agenciaos.core.repository import to_naive_utc, utcnow
from agenciaos.core.tenant import TenantContext
from agenciaos.models.api_common import PaginatedResponse, Pagination
from agenciaos.modules.clients.repository import ClientRepository
from agenciaos.modules.projects.repository import ProjectRepository
from .models import (
    CategoryTotal, ExpenseAPI, ExpenseCreateAPI, ExpenseInDB, ExpenseUpdateAPI, FinancialStatsAPI,
    RevenueAPI, RevenueCreateAPI, RevenueInDB, RevenueUpdateAPI,
)
from .repository import ExpenseRepository, FinanceEntryRepository, RevenueRepository

RevenueNotFound = HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Revenue not found")
ExpenseNotFound = HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")

def month_bounds(now: datetime):
    """(início do mês anterior, início do mês atual, início do próximo mês), UTC."""
    current = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    previous = current.replace(year=current.year - 1, month=12) if current.month == 1 else current.replace(month=current.month - 1)
    following = current.replace(year=current.year + 1, month=1) if current.month == 12 else current.replace(month=current.month + 1)
    return previous, current, following

def growth(current: float, previous: float) -> float:
    return round((current - previous) / previous * 100, 2) if previous > 0 else 0.0

def entry_filters(
    category: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    if start_date and end_date and to_naive_utc(start_date) > to_naive_utc(end_date):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="startDate must be before or equal to endDate")
    if category and category.strip():
        query["category"] = {"$regex": re.escape(category.strip()), "$options": "i"}
    date_range: Dict[str, datetime] = {}
    if start_date:
        date_range["$gte"] = to_naive_utc(start_date)
    if end_date:
        date_range["$lte"] = to_naive_utc(end_date)
    if date_range:
        query["date"] = date_range
    return query

class FinanceService:

    # --- Revenues ---

    async def _check_links(
        self,
        tenant: TenantContext,
        fields: Dict[str, Any],
        client_repo: ClientRepository,
        project_repo: ProjectRepository,
    ):
        """client_id / project_id opcionais, mas se vierem precisam ser da agência (404)."""
        for field, repo, label in (("client_id", client_repo, "Client"), ("project_id", project_repo, "Project")):
            if field not in fields:
                continue
            if not fields[field]:
                fields[field] = None
                continue
            linked = await repo.get_for_agency(fields[field], tenant.agency_id)
            if linked is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
            fields[field] = linked.id

    async def get_revenue(self, tenant: TenantContext, revenue_id: str, revenue_repo: RevenueRepository) -> RevenueInDB:
        revenue = await revenue_repo.get_for_agency(revenue_id, tenant.agency_id)
        if revenue is None:
            raise RevenueNotFound
        return revenue

    async def list_revenues(
        self,
        tenant: TenantContext,
        revenue_repo: RevenueRepository,
        client_id: Optional[str] = None,
        project_id: Optional[str] = None,
        category: Optional[str] = None,
        is_recurring: Optional[bool] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 10,
    ) -> PaginatedResponse[RevenueAPI]:
        query = entry_filters(category, start_date, end_date)
        for field, value in (("client_id", client_id), ("project_id", project_id)):
            if value:
                obj_id = revenue_repo._to_objectid(value)
                if obj_id is None:
                    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {field}")
                query[field] = obj_id
        if is_recurring is not None:
            query["is_recurring"] = is_recurring

        total = await revenue_repo.count_for_agency(tenant.agency_id, query)
        revenues = await revenue_repo.list_for_agency(
            tenant.agency_id, query, skip=(page - 1) * limit, limit=limit, sort=[("date", -1)]
        )
        return PaginatedResponse[RevenueAPI](
            items=[RevenueAPI.model_validate(r.model_dump()) for r in revenues],
            pagination=Pagination.build(page, limit, total),
        )

    async def create_revenue(
        self,
        tenant: TenantContext,
        data: RevenueCreateAPI,
        revenue_repo: RevenueRepository,
        client_repo: ClientRepository,
        project_repo: ProjectRepository,
    ) -> RevenueInDB:
        fields = data.model_dump()
        await self._check_links(tenant, fields, client_repo, project_repo)
        revenue = await revenue_repo.create({**fields, "agency_id": tenant.agency_id})
        logger.bind(service="FinanceService", revenue_id=str(revenue.id)).info(f"Revenue created: {revenue.amount:.2f}")
        return revenue

    async def update_revenue(
        self,
        tenant: TenantContext,
        revenue_id: str,
        data: RevenueUpdateAPI,
        revenue_repo: RevenueRepository,
        client_repo: ClientRepository,
        project_repo: ProjectRepository,
    ) -> RevenueInDB:
        revenue = await self.get_revenue(tenant, revenue_id, revenue_repo)
        fields = data.model_dump(exclude_unset=True)
        for required in ("description", "amount", "category", "is_recurring", "date"):
            if fields.get(required) is None:
                fields.pop(required, None)
        await self._check_links(tenant, fields, client_repo, project_repo)
        updated = await revenue_repo.update_for_agency(revenue.id, tenant.agency_id, fields)
        if updated is None:
            raise RevenueNotFound
        return updated

    async def delete_revenue(self, tenant: TenantContext, revenue_id: str, revenue_repo: RevenueRepository):
        if not await revenue_repo.delete_for_agency(revenue_id, tenant.agency_id):
            raise RevenueNotFound

    # --- Expenses ---

    async def get_expense(self, tenant: TenantContext, expense_id: str, expense_repo: ExpenseRepository) -> ExpenseInDB:
        expense = await expense_repo.get_for_agency(expense_id, tenant.agency_id)
        if expense is None:
            raise ExpenseNotFound
        return expense

    async def list_expenses(
        self,
        tenant: TenantContext,
        expense_repo: ExpenseRepository,
        category: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 10,
    ) -> PaginatedResponse[ExpenseAPI]:
        query = entry_filters(category, start_date, end_date)
        total = await expense_repo.count_for_agency(tenant.agency_id, query)
        expenses = await expense_repo.list_for_agency(
            tenant.agency_id, query, skip=(page - 1) * limit, limit=limit, sort=[("date", -1)]
        )
        return PaginatedResponse[ExpenseAPI](
            items=[ExpenseAPI.model_validate(e.model_dump()) for e in expenses],
            pagination=Pagination.build(page, limit, total),
        )

    async def create_expense(self, tenant: TenantContext, data: ExpenseCreateAPI, expense_repo: ExpenseRepository) -> ExpenseInDB:
        expense = await expense_repo.create({**data.model_dump(), "agency_id": tenant.agency_id})
        logger.bind(service="FinanceService", expense_id=str(expense.id)).info(f"Expense created: {expense.amount:.2f}")
        return expense

    async def update_expense(
        self, tenant: TenantContext, expense_id: str, data: ExpenseUpdateAPI, expense_repo: ExpenseRepository
    ) -> ExpenseInDB:
        fields = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        updated = await expense_repo.update_for_agency(expense_id, tenant.agency_id, fields)
        if updated is None:
            raise ExpenseNotFound
        return updated

    async def delete_expense(self, tenant: TenantContext, expense_id: str, expense_repo: ExpenseRepository):
        if not await expense_repo.delete_for_agency(expense_id, tenant.agency_id):
            raise ExpenseNotFound

    # --- Stats ---

    async def _period_totals(self, repo: FinanceEntryRepository, agency_id: ObjectId, now: datetime):
        previous, current, following = month_bounds(now)
        total = await repo.sum_amount(agency_id)
        monthly = await repo.sum_amount(agency_id, {"date": {"$gte": current, "$lt": following}})
        last_month = await repo.sum_amount(agency_id, {"date": {"$gte": previous, "$lt": current}})
        return total, monthly, last_month

    async def get_stats(
        self,
        tenant: TenantContext,
        revenue_repo: RevenueRepository,
        expense_repo: ExpenseRepository,
        now: Optional[datetime] = None,
    ) -> FinancialStatsAPI:
        now = to_naive_utc(now) if now else utcnow()
        total_revenue, monthly_revenue, last_month_revenue = await self._period_totals(revenue_repo, tenant.agency_id, now)
        total_expenses, monthly_expenses, last_month_expenses = await self._period_totals(expense_repo, tenant.agency_id, now)
        recurring_revenue = await revenue_repo.sum_amount(tenant.agency_id, {"is_recurring": True})

        net_profit = total_revenue - total_expenses
        profit_margin = round(net_profit / total_revenue * 100, 2) if total_revenue > 0 else 0.0

        return FinancialStatsAPI(
            total_revenue=total_revenue,
            total_expenses=total_expenses,
            net_profit=net_profit,
            monthly_revenue=monthly_revenue,
            monthly_expenses=monthly_expenses,
            monthly_profit=monthly_revenue - monthly_expenses,
            revenue_growth=growth(monthly_revenue, last_month_revenue),
            expense_growth=growth(monthly_expenses, last_month_expenses),
            profit_margin=profit_margin,
            recurring_revenue=recurring_revenue,
            top_categories={
                "revenue": [CategoryTotal(**c) for c in await revenue_repo.top_categories(tenant.agency_id)],
                "expenses": [CategoryTotal(**c) for c in await expense_repo.top_categories(tenant.agency_id)],
            },
        )

async def get_finance_service() -> FinanceService:
    return FinanceService()
