# backend/tests/modules/finance/test_finance_api.py
from datetime import datetime

import pytest
from fastapi import status
from httpx import AsyncClient

from agenciaos.modules.finance.services import growth, month_bounds

pytestmark = pytest.mark.asyncio

async def post_entry(client: AsyncClient, headers, kind: str, **payload) -> dict:
    response = await client.post(f"/api/{kind}", json=payload, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()

async def test_month_bounds_wraps_year():
    previous, current, following = month_bounds(datetime(2026, 1, 15, 10, 30))
    assert previous == datetime(2025, 12, 1)
    assert current == datetime(2026, 1, 1)
    assert following == datetime(2026, 2, 1)

    _, _, december_next = month_bounds(datetime(2026, 12, 31, 23, 59))
    assert december_next == datetime(2027, 1, 1)

async def test_growth_is_zero_without_previous_month():
    assert growth(150.0, 0.0) == 0.0
    assert growth(150.0, 100.0) == 50.0
    assert growth(50.0, 200.0) == -75.0

async def test_create_revenue_links_client(client: AsyncClient, auth_headers):
    customer = (await client.post("/api/clients", json={"name": "Cliente Fiel"}, headers=auth_headers)).json()
    revenue = await post_entry(
        client, auth_headers, "revenues",
        description="Mensalidade social media", amount=2500, category="Serviços", clientId=customer["id"], isRecurring=True,
    )
    assert revenue["clientId"] == customer["id"]
    assert revenue["isRecurring"] is True
    assert revenue["projectId"] is None

async def test_revenue_with_foreign_client_is_rejected(client: AsyncClient, auth_headers, other_auth_headers):
    foreign = (await client.post("/api/clients", json={"name": "Cliente Beta"}, headers=other_auth_headers)).json()
    response = await client.post("/api/revenues", json={
        "description": "Serviço", "amount": 100, "category": "Serviços", "clientId": foreign["id"],
    }, headers=auth_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "Client not found"}

async def test_amount_must_be_positive(client: AsyncClient, auth_headers):
    response = await client.post("/api/expenses", json={
        "description": "Aluguel", "amount": 0, "category": "Estrutura",
    }, headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "Invalid data"

async def test_list_filters_by_category_and_date(client: AsyncClient, auth_headers):
    await post_entry(client, auth_headers, "expenses", description="Aluguel março", amount=3000,
                     category="Estrutura", date="2026-03-05T12:00:00Z")
    await post_entry(client, auth_headers, "expenses", description="Anúncios março", amount=800,
                     category="Marketing", date="2026-03-20T12:00:00Z")
    await post_entry(client, auth_headers, "expenses", description="Aluguel abril", amount=3000,
                     category="Estrutura", date="2026-04-05T12:00:00Z")

    by_category = await client.get("/api/expenses", params={"category": "estrutura"}, headers=auth_headers)
    assert by_category.json()["pagination"]["total"] == 2

    march = await client.get("/api/expenses", params={
        "startDate": "2026-03-01T00:00:00Z", "endDate": "2026-03-31T23:59:59Z",
    }, headers=auth_headers)
    assert sorted(e["description"] for e in march.json()["items"]) == ["Aluguel março", "Anúncios março"]

    inverted = await client.get("/api/expenses", params={
        "startDate": "2026-04-01T00:00:00Z", "endDate": "2026-03-01T00:00:00Z",
    }, headers=auth_headers)
    assert inverted.status_code == status.HTTP_400_BAD_REQUEST

async def test_update_and_delete_expense(client: AsyncClient, auth_headers, other_auth_headers):
    expense = await post_entry(client, auth_headers, "expenses", description="Software", amount=199.9, category="Ferramentas")

    updated = await client.put(f"/api/expenses/{expense['id']}", json={"amount": 249.9}, headers=auth_headers)
    assert updated.status_code == status.HTTP_200_OK
    assert updated.json()["amount"] == 249.9
    assert updated.json()["category"] == "Ferramentas"

    foreign_delete = await client.delete(f"/api/expenses/{expense['id']}", headers=other_auth_headers)
    assert foreign_delete.status_code == status.HTTP_404_NOT_FOUND

    deleted = await client.delete(f"/api/expenses/{expense['id']}", headers=auth_headers)
    assert deleted.status_code == status.HTTP_200_OK
    assert (await client.get(f"/api/expenses/{expense['id']}", headers=auth_headers)).status_code == status.HTTP_404_NOT_FOUND

async def test_financial_stats(client: AsyncClient, auth_headers, other_auth_headers):
    await post_entry(client, auth_headers, "revenues", description="Contrato mensal", amount=4000,
                     category="Serviços", isRecurring=True)
    await post_entry(client, auth_headers, "revenues", description="Projeto pontual", amount=1000, category="Projetos")
    await post_entry(client, auth_headers, "expenses", description="Aluguel", amount=1500, category="Estrutura")
    await post_entry(client, auth_headers, "expenses", description="Anúncios", amount=500, category="Marketing")
    # Outra agência não entra nas contas
    await post_entry(client, other_auth_headers, "revenues", description="Receita Beta", amount=99999, category="Serviços")

    response = await client.get("/api/financial/stats", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK, response.text
    stats = response.json()
    assert stats["totalRevenue"] == 5000
    assert stats["totalExpenses"] == 2000
    assert stats["netProfit"] == 3000
    assert stats["monthlyRevenue"] == 5000
    assert stats["monthlyProfit"] == 3000
    assert stats["profitMargin"] == 60.0
    assert stats["recurringRevenue"] == 4000
    assert stats["revenueGrowth"] == 0.0
    assert [c["category"] for c in stats["topCategories"]["revenue"]] == ["Serviços", "Projetos"]
    assert stats["topCategories"]["expenses"][0] == {"category": "Estrutura", "amount": 1500, "count": 1}

async def test_financial_stats_empty_agency(client: AsyncClient, auth_headers):
    stats = (await client.get("/api/financial/stats", headers=auth_headers)).json()
    assert stats["totalRevenue"] == 0
    assert stats["profitMargin"] == 0.0
    assert stats["topCategories"] == {"revenue": [], "expenses": []}
