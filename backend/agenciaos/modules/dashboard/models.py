# agenciaos/modules/dashboard/models.py
from typing import Literal

from agenciaos.models.api_common import CamelModel

DASHBOARD_PERIODS = Literal["7d", "30d", "90d", "1y"]

class ClientsStats(CamelModel):
    total: int
    new: int
    change: int

class ProjectsStats(CamelModel):
    total: int
    active: int
    completed: int
    new: int
    change: int

class MoneyStats(CamelModel):
    total: float
    current: float
    count: int
    change: int

class ProfitStats(CamelModel):
    current: float
    change: int

class TasksStats(CamelModel):
    total: int

class DashboardSummary(CamelModel):
    total_clients: int
    active_projects: int
    monthly_revenue: float
    monthly_profit: float

class DashboardStatsAPI(CamelModel):
    period: DASHBOARD_PERIODS
    clients: ClientsStats
    projects: ProjectsStats
    revenue: MoneyStats
    expenses: MoneyStats
    profit: ProfitStats
    tasks: TasksStats
    summary: DashboardSummary
