# agenciaos/modules/dashboard/services.py
import asyncio
import math
from datetime import datetime, timedelta
from typing import Optional, Tuple, get_args

from loguru import logger

from agenciaos.core.repository import to_naive_utc, utcnow
from agenciaos.core.tenant import TenantContext
from agenciaos.modules.clients.repository import ClientRepository
from agenciaos.modules.finance.repository import ExpenseRepository, FinanceEntryRepository, RevenueRepository
from agenciaos.modules.projects.repository import ProjectRepository, TaskRepository
from .models import (
    DASHBOARD_PERIODS, ClientsStats, DashboardStatsAPI, DashboardSummary, MoneyStats,
    ProfitStats, ProjectsStats, TasksStats,
)

DEFAULT_PERIOD = "30d"
PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90}

def period_start(period: str, now: datetime) -> datetime:
    if period == "1y":
        try:
            return now.replace(year=now.year - 1)
        except ValueError:  # 29/02
            return now.replace(year=now.year - 1, day=28)
    return now - timedelta(days=PERIOD_DAYS[period])

def previous_window(start: datetime, now: datetime) -> Tuple[datetime, datetime]:
    """Janela anterior com o mesmo número de dias (arredondado para cima)."""
    days = math.ceil((now - start) / timedelta(days=1))
    return start - timedelta(days=days), start

def percent_change(current: float, previous: float) -> int:
    if previous == 0:
        return 100 if current > 0 else 0
    return math.floor((current - previous) / previous * 100 + 0.5)

class DashboardService:

    async def _money(
        self, repo: FinanceEntryRepository, agency_id, start: datetime, previous_start: datetime
    ) -> Tuple[float, float, int, float]:
        current_range = {"date": {"$gte": start}}
        total, current, count, previous = await asyncio.gather(
            repo.sum_amount(agency_id),
            repo.sum_amount(agency_id, current_range),
            repo.count_for_agency(agency_id, current_range),
            repo.sum_amount(agency_id, {"date": {"$gte": previous_start, "$lt": start}}),
        )
        return total, current, count, previous

    async def get_stats(
        self,
        tenant: TenantContext,
        client_repo: ClientRepository,
        project_repo: ProjectRepository,
        task_repo: TaskRepository,
        revenue_repo: RevenueRepository,
        expense_repo: ExpenseRepository,
        period: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DashboardStatsAPI:
        if period not in get_args(DASHBOARD_PERIODS):
            if period:
                logger.bind(service="DashboardService").debug(f"Unknown period '{period}', using {DEFAULT_PERIOD}.")
            period = DEFAULT_PERIOD
        now = to_naive_utc(now) if now else utcnow()
        start = period_start(period, now)
        previous_start, _ = previous_window(start, now)
        agency_id = tenant.agency_id
        created_now = {"created_at": {"$gte": start}}
        created_before = {"created_at": {"$gte": previous_start, "$lt": start}}

        (
            clients_total, clients_new, clients_previous,
            projects_total, projects_active, projects_completed, projects_new, projects_previous,
            tasks_total,
        ) = await asyncio.gather(
            client_repo.count_for_agency(agency_id),
            client_repo.count_for_agency(agency_id, created_now),
            client_repo.count_for_agency(agency_id, created_before),
            project_repo.count_for_agency(agency_id),
            project_repo.count_for_agency(agency_id, {"status": "IN_PROGRESS"}),
            project_repo.count_for_agency(agency_id, {"status": "COMPLETED"}),
            project_repo.count_for_agency(agency_id, created_now),
            project_repo.count_for_agency(agency_id, created_before),
            task_repo.count_for_agency(agency_id),
        )
        revenue_total, revenue_current, revenue_count, revenue_previous = await self._money(
            revenue_repo, agency_id, start, previous_start
        )
        expense_total, expense_current, expense_count, expense_previous = await self._money(
            expense_repo, agency_id, start, previous_start
        )
        profit_current = revenue_current - expense_current

        return DashboardStatsAPI(
            period=period,
            clients=ClientsStats(
                total=clients_total, new=clients_new, change=percent_change(clients_new, clients_previous)
            ),
            projects=ProjectsStats(
                total=projects_total,
                active=projects_active,
                completed=projects_completed,
                new=projects_new,
                change=percent_change(projects_new, projects_previous),
            ),
            revenue=MoneyStats(
                total=revenue_total, current=revenue_current, count=revenue_count,
                change=percent_change(revenue_current, revenue_previous),
            ),
            expenses=MoneyStats(
                total=expense_total, current=expense_current, count=expense_count,
                change=percent_change(expense_current, expense_previous),
            ),
            profit=ProfitStats(
                current=profit_current,
                change=percent_change(profit_current, revenue_previous - expense_previous),
            ),
            tasks=TasksStats(total=tasks_total),
            summary=DashboardSummary(
                total_clients=clients_total,
                active_projects=projects_active,
                monthly_revenue=revenue_current,
                monthly_profit=profit_current,
            ),
        )

async def get_dashboard_service() -> DashboardService:
    return DashboardService()
