# backend/tests/modules/dashboard/test_dashboard_api.py
from datetime import datetime, timedelta

import pytest
from bson import ObjectId
from fastapi import status
from httpx import AsyncClient

from agenciaos.core.repository import utcnow
from agenciaos.modules.dashboard.services import percent_change, period_start, previous_window

pytestmark = pytest.mark.asyncio

async def post(client: AsyncClient, headers, path: str, **payload) -> dict:
    response = await client.post(f"/api/{path}", json=payload, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()

async def test_period_windows():
    now = datetime(2026, 3, 31, 12, 0)
    assert period_start("7d", now) == datetime(2026, 3, 24, 12, 0)
    assert period_start("1y", now) == datetime(2025, 3, 31, 12, 0)
    assert period_start("1y", datetime(2028, 2, 29)) == datetime(2027, 2, 28)
    assert previous_window(datetime(2026, 3, 1, 12, 0), now) == (datetime(2026, 1, 30, 12, 0), datetime(2026, 3, 1, 12, 0))

async def test_percent_change_rounds_half_up():
    assert percent_change(5, 0) == 100
    assert percent_change(0, 0) == 0
    assert percent_change(3000, 1000) == 200
    assert percent_change(1, 8) == -87
    assert percent_change(3, 2) == 50

async def test_dashboard_stats_for_default_period(client: AsyncClient, auth_headers, other_auth_headers, db):
    veteran = await post(client, auth_headers, "clients", name="Cliente Antigo")
    newcomer = await post(client, auth_headers, "clients", name="Cliente Novo")
    await db["clients"].update_one({"_id": ObjectId(veteran["id"])}, {"$set": {"created_at": utcnow() - timedelta(days=45)}})

    await post(client, auth_headers, "projects", name="Site", clientId=newcomer["id"], status="IN_PROGRESS")
    await post(client, auth_headers, "projects", name="Branding", clientId=veteran["id"], status="COMPLETED")

    await post(client, auth_headers, "revenues", description="Mensalidade", amount=3000, category="Serviços")
    await post(client, auth_headers, "revenues", description="Setup", amount=1000, category="Serviços",
               date=(utcnow() - timedelta(days=40)).isoformat())
    await post(client, auth_headers, "expenses", description="Ferramentas", amount=500, category="Software")
    await post(client, other_auth_headers, "revenues", description="Receita Beta", amount=99999, category="Serviços")

    response = await client.get("/api/dashboard/stats", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK, response.text
    stats = response.json()

    assert stats["period"] == "30d"
    assert stats["clients"] == {"total": 2, "new": 1, "change": 0}
    assert stats["projects"] == {"total": 2, "active": 1, "completed": 1, "new": 2, "change": 100}
    assert stats["revenue"] == {"total": 4000, "current": 3000, "count": 1, "change": 200}
    assert stats["expenses"] == {"total": 500, "current": 500, "count": 1, "change": 100}
    assert stats["profit"] == {"current": 2500, "change": 150}
    assert stats["tasks"] == {"total": 0}
    assert stats["summary"] == {"totalClients": 2, "activeProjects": 1, "monthlyRevenue": 3000, "monthlyProfit": 2500}

    wider = (await client.get("/api/dashboard/stats", params={"period": "90d"}, headers=auth_headers)).json()
    assert wider["period"] == "90d"
    assert wider["revenue"]["current"] == 4000
    assert wider["revenue"]["count"] == 2
    assert wider["clients"]["new"] == 2

async def test_unknown_period_falls_back_to_30_days(client: AsyncClient, auth_headers):
    response = await client.get("/api/dashboard/stats", params={"period": "2w"}, headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    stats = response.json()
    assert stats["period"] == "30d"
    assert stats["revenue"] == {"total": 0, "current": 0, "count": 0, "change": 0}
    assert stats["profit"] == {"current": 0, "change": 0}

async def test_dashboard_requires_token(client: AsyncClient):
    response = await client.get("/api/dashboard/stats")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
