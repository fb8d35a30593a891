"""
Tests for authentication endpoints: registration and login.
"""

import pytest
from httpx import AsyncClient

from barter.core.security import decode_access_token
from barter.models.user import Role


def registration(**overrides) -> dict:
    payload = {
        "username": "newuser",
        "password": "securepassword123",
        "email": "new@example.com",
        "name": "New User",
        "address": "12 High Street",
        "phone_number": "555-0100",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_register_user(client: AsyncClient):
    """Successful registration returns the user with the starting balance."""
    response = await client.post("/api/v1/auth/register", json=registration())
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "new@example.com"
    assert data["username"] == "newuser"
    assert data["role"] == "User"
    assert data["points"] == 2
    assert "hashed_password" not in data  # Never expose password hash


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, owner):
    response = await client.post(
        "/api/v1/auth/register",
        json=registration(email="owner@example.com"),
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Email already registered"


@pytest.mark.asyncio
async def test_register_duplicate_username(client: AsyncClient, owner):
    response = await client.post("/api/v1/auth/register", json=registration(username="owner"))
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_register_duplicate_phone(client: AsyncClient, owner):
    response = await client.post(
        "/api/v1/auth/register",
        json=registration(phone_number="555-owner"),
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Phone number already registered"


@pytest.mark.asyncio
async def test_register_weak_password(client: AsyncClient):
    """Password under 8 chars returns 422."""
    response = await client.post("/api/v1/auth/register", json=registration(password="short"))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, owner):
    """Valid credentials return a JWT carrying the user id and role."""
    response = await client.post("/api/v1/auth/login", json={
        "username": "owner",
        "password": "testpassword123",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"

    actor = decode_access_token(data["access_token"])
    assert actor.user_id == owner.id
    assert actor.role is Role.USER


@pytest.mark.asyncio
async def test_login_admin_token_carries_role(client: AsyncClient, admin):
    response = await client.post("/api/v1/auth/login", json={
        "username": "admin",
        "password": "testpassword123",
    })
    assert response.status_code == 200
    assert decode_access_token(response.json()["access_token"]).is_admin


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, owner):
    response = await client.post("/api/v1/auth/login", json={
        "username": "owner",
        "password": "wrongpassword",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_unknown_username(client: AsyncClient):
    response = await client.post("/api/v1/auth/login", json={
        "username": "nobody",
        "password": "anypassword123",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_protected_route_requires_token(client: AsyncClient):
    response = await client.get("/api/v1/points/balance")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_garbage_token_rejected(client: AsyncClient):
    response = await client.get(
        "/api/v1/points/balance",
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401
