"""
Tests for item endpoints: listing costs points, moderation, edits and deletes.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select, func

from barter.models.booking import Booking
from barter.models.item import Item
from barter.services import item_service
from conftest import create_account


def new_item(category_id: int, **overrides) -> dict:
    payload = {
        "name": "Camping stove",
        "description": "Two burners, barely used",
        "category_id": category_id,
        "request": "Hiking boots, size 42",
    }
    payload.update(overrides)
    return payload


async def balance(client: AsyncClient, account) -> int:
    response = await client.get("/api/v1/points/balance", headers=account.headers)
    return response.json()["points"]


@pytest.mark.asyncio
async def test_create_item_debits_one_point(client: AsyncClient, owner, category_id):
    response = await client.post("/api/v1/items/", json=new_item(category_id), headers=owner.headers)
    assert response.status_code == 201
    data = response.json()
    assert data["owner_id"] == owner.id
    assert data["is_approved"] is False
    assert data["category"]["name"] == "Sports & Outdoors"
    assert data["media"] == []

    assert await balance(client, owner) == 1


@pytest.mark.asyncio
async def test_create_item_without_points(client: AsyncClient, db_session, category_id):
    broke = await create_account(db_session, "broke", points=0)

    response = await client.post("/api/v1/items/", json=new_item(category_id), headers=broke.headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Insufficient points to list an item"

    assert await balance(client, broke) == 0
    count = await db_session.execute(select(func.count(Item.id)).where(Item.owner_id == broke.id))
    assert count.scalar() == 0


@pytest.mark.asyncio
async def test_points_run_out_after_two_listings(client: AsyncClient, owner, category_id):
    for n in range(2):
        response = await client.post(
            "/api/v1/items/", json=new_item(category_id, name=f"Item {n}"), headers=owner.headers
        )
        assert response.status_code == 201

    third = await client.post("/api/v1/items/", json=new_item(category_id), headers=owner.headers)
    assert third.status_code == 400
    assert await balance(client, owner) == 0


@pytest.mark.asyncio
async def test_create_item_unknown_category(client: AsyncClient, owner):
    response = await client.post("/api/v1/items/", json=new_item(9999), headers=owner.headers)
    assert response.status_code == 404
    assert await balance(client, owner) == 2


@pytest.mark.asyncio
async def test_create_item_validation(client: AsyncClient, owner, category_id):
    response = await client.post(
        "/api/v1/items/", json=new_item(category_id, name="x" * 51), headers=owner.headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_approve_is_idempotent(client: AsyncClient, admin, pending_item):
    first = await client.post(f"/api/v1/items/{pending_item}/approve", headers=admin.headers)
    assert first.status_code == 200
    assert first.json()["is_approved"] is True

    second = await client.post(f"/api/v1/items/{pending_item}/approve", headers=admin.headers)
    assert second.status_code == 200
    assert second.json()["is_approved"] is True


@pytest.mark.asyncio
async def test_approve_requires_admin(client: AsyncClient, owner, pending_item):
    response = await client.post(f"/api/v1/items/{pending_item}/approve", headers=owner.headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_approve_missing_item(client: AsyncClient, admin):
    response = await client.post("/api/v1/items/9999/approve", headers=admin.headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_owner_edit_resets_approval(client: AsyncClient, owner, approved_item):
    response = await client.put(
        f"/api/v1/items/{approved_item}",
        json={"description": "Now with new tyres"},
        headers=owner.headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["description"] == "Now with new tyres"
    assert data["name"] == "Road bike"
    assert data["is_approved"] is False

    listing = await client.get("/api/v1/items/")
    assert listing.json()["items"] == []


@pytest.mark.asyncio
async def test_admin_edit_keeps_approval(client: AsyncClient, admin, approved_item):
    response = await client.put(
        f"/api/v1/items/{approved_item}",
        json={"name": "Road bike (fixed typo)"},
        headers=admin.headers,
    )
    assert response.status_code == 200
    assert response.json()["is_approved"] is True


@pytest.mark.asyncio
async def test_stranger_cannot_edit_or_delete(client: AsyncClient, stranger, approved_item):
    edit = await client.put(
        f"/api/v1/items/{approved_item}", json={"name": "Mine now"}, headers=stranger.headers
    )
    assert edit.status_code == 403

    delete = await client.delete(f"/api/v1/items/{approved_item}", headers=stranger.headers)
    assert delete.status_code == 403

    item = await client.get(f"/api/v1/items/{approved_item}")
    assert item.json()["name"] == "Road bike"


@pytest.mark.asyncio
async def test_delete_item_removes_bookings(client: AsyncClient, db_session, owner, booker, approved_item):
    booked = await client.post("/api/v1/bookings/", json={"item_id": approved_item}, headers=booker.headers)
    assert booked.status_code == 201

    response = await client.delete(f"/api/v1/items/{approved_item}", headers=owner.headers)
    assert response.status_code == 204

    assert (await client.get(f"/api/v1/items/{approved_item}")).status_code == 404
    remaining = await db_session.execute(
        select(func.count(Booking.id)).where(Booking.item_id == approved_item)
    )
    assert remaining.scalar() == 0


@pytest.mark.asyncio
async def test_admin_can_delete_any_item(client: AsyncClient, admin, approved_item):
    response = await client.delete(f"/api/v1/items/{approved_item}", headers=admin.headers)
    assert response.status_code == 204


@pytest.mark.asyncio
async def test_delete_missing_item(client: AsyncClient, owner):
    response = await client.delete("/api/v1/items/9999", headers=owner.headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_pending_item_visibility(client: AsyncClient, owner, admin, stranger, pending_item):
    """Pending items are visible to their owner and admins only."""
    assert (await client.get(f"/api/v1/items/{pending_item}", headers=owner.headers)).status_code == 200
    assert (await client.get(f"/api/v1/items/{pending_item}", headers=admin.headers)).status_code == 200
    assert (await client.get(f"/api/v1/items/{pending_item}", headers=stranger.headers)).status_code == 403
    assert (await client.get(f"/api/v1/items/{pending_item}")).status_code == 403


@pytest.mark.asyncio
async def test_moderation_queue(client: AsyncClient, admin, owner, pending_item, approved_item):
    response = await client.get("/api/v1/items/pending", headers=admin.headers)
    assert response.status_code == 200
    assert [i["id"] for i in response.json()] == [pending_item]

    forbidden = await client.get("/api/v1/items/pending", headers=owner.headers)
    assert forbidden.status_code == 403


@pytest.mark.asyncio
async def test_my_items_include_pending(client: AsyncClient, owner, stranger, pending_item, approved_item):
    response = await client.get("/api/v1/items/mine", headers=owner.headers)
    assert response.status_code == 200
    assert {i["id"] for i in response.json()} == {pending_item, approved_item}

    assert (await client.get("/api/v1/items/mine", headers=stranger.headers)).json() == []


@pytest.mark.asyncio
async def test_item_shows_who_posted_it(client: AsyncClient, owner, approved_item):
    response = await client.get(f"/api/v1/items/{approved_item}")
    assert response.status_code == 200
    assert response.json()["owner"] == {"id": owner.id, "username": "owner", "name": "Owner"}


@pytest.mark.asyncio
async def test_my_items_show_booking_state(client: AsyncClient, owner, booker, approved_item, pending_item):
    before = {i["id"]: i["is_booked"] for i in (await client.get("/api/v1/items/mine", headers=owner.headers)).json()}
    assert before == {approved_item: False, pending_item: False}

    booking = await client.post("/api/v1/bookings/", json={"item_id": approved_item}, headers=booker.headers)
    booked = {i["id"]: i["is_booked"] for i in (await client.get("/api/v1/items/mine", headers=owner.headers)).json()}
    assert booked == {approved_item: True, pending_item: False}

    detail = await client.get(f"/api/v1/items/{approved_item}", headers=owner.headers)
    assert detail.json()["is_booked"] is True

    await client.post(f"/api/v1/bookings/{booking.json()['id']}/cancel", headers=owner.headers)
    cancelled = {i["id"]: i["is_booked"] for i in (await client.get("/api/v1/items/mine", headers=owner.headers)).json()}
    assert cancelled == {approved_item: False, pending_item: False}


@pytest.mark.asyncio
async def test_failed_insert_keeps_the_point(client: AsyncClient, db_session, monkeypatch, owner, category_id):
    """The debit and the insert share a transaction: no item, no charge."""

    def item_without_name(**fields):
        fields["name"] = None
        return Item(**fields)

    monkeypatch.setattr(item_service, "Item", item_without_name)

    response = await client.post("/api/v1/items/", json=new_item(category_id), headers=owner.headers)
    assert response.status_code == 500
    assert response.json()["detail"] == "A storage error occurred"

    monkeypatch.undo()
    assert await balance(client, owner) == 2
    count = await db_session.execute(select(func.count(Item.id)).where(Item.owner_id == owner.id))
    assert count.scalar() == 0
