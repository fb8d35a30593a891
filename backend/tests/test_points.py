"""
Tests for the points ledger: balance, package purchases, credit/debit rules.
"""

import pytest
from httpx import AsyncClient

from barter.core.exceptions import InvalidOperationError, NotFoundError
from barter.services import points_service
from conftest import create_account


@pytest.mark.asyncio
async def test_new_user_balance(client: AsyncClient, owner):
    response = await client.get("/api/v1/points/balance", headers=owner.headers)
    assert response.status_code == 200
    assert response.json() == {"points": 2}


@pytest.mark.asyncio
@pytest.mark.parametrize("package_id,credited", [("package_5000", 3), ("package_10000", 8)])
async def test_buy_package(client: AsyncClient, owner, package_id, credited):
    response = await client.post(
        "/api/v1/points/buy", json={"package_id": package_id}, headers=owner.headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["credited"] == credited
    assert data["new_balance"] == 2 + credited

    balance = await client.get("/api/v1/points/balance", headers=owner.headers)
    assert balance.json()["points"] == 2 + credited


@pytest.mark.asyncio
async def test_buy_unknown_package(client: AsyncClient, owner):
    response = await client.post(
        "/api/v1/points/buy", json={"package_id": "package_free"}, headers=owner.headers
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid package ID"

    balance = await client.get("/api/v1/points/balance", headers=owner.headers)
    assert balance.json()["points"] == 2


@pytest.mark.asyncio
async def test_debit_refused_when_balance_too_low(db_session, owner):
    assert await points_service.debit_points(db_session, owner.id, 3) is False
    assert await points_service.debit_points(db_session, owner.id, 2) is True
    await db_session.commit()
    assert await points_service.get_balance(db_session, owner.id) == 0


@pytest.mark.asyncio
async def test_credit_must_be_positive(db_session, owner):
    with pytest.raises(InvalidOperationError):
        await points_service.credit_points(db_session, owner.id, 0)
    with pytest.raises(InvalidOperationError):
        await points_service.credit_points(db_session, owner.id, -5)


@pytest.mark.asyncio
async def test_credit_unknown_user(db_session):
    with pytest.raises(NotFoundError):
        await points_service.credit_points(db_session, 9999, 3)


@pytest.mark.asyncio
async def test_listing_after_purchase(client: AsyncClient, db_session, category_id):
    """A user who ran out can list again once they buy points."""
    broke = await create_account(db_session, "broke", points=0)
    item = {"name": "Drill", "description": "Cordless", "category_id": category_id, "request": "Paint"}

    assert (await client.post("/api/v1/items/", json=item, headers=broke.headers)).status_code == 400
    await client.post("/api/v1/points/buy", json={"package_id": "package_5000"}, headers=broke.headers)
    assert (await client.post("/api/v1/items/", json=item, headers=broke.headers)).status_code == 201

    balance = await client.get("/api/v1/points/balance", headers=broke.headers)
    assert balance.json()["points"] == 2
