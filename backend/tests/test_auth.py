"""
Tests for authentication endpoints: registration and login.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_register_guest(client: AsyncClient):
    """Successful registration returns user data."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "new@example.com",
        "name": "New Guest",
        "password": "securepassword123",
    })
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "new@example.com"
    assert data["name"] == "New Guest"
    assert data["is_host"] is False
    assert "hashed_password" not in data  # Never expose password hash


@pytest.mark.asyncio
async def test_register_host(client: AsyncClient):
    response = await client.post("/api/v1/auth/register", json={
        "email": "Owner@Example.com",
        "name": "Olga Owner",
        "password": "securepassword123",
        "is_host": True,
    })
    assert response.status_code == 201
    data = response.json()
    assert data["is_host"] is True
    assert data["email"] == "owner@example.com"


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, guest_user):
    """Duplicate email returns 409, whatever its case."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "GUEST@example.com",
        "name": "Someone Else",
        "password": "securepassword123",
    })
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_register_weak_password(client: AsyncClient):
    """Password under 8 chars returns 422."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "weak@example.com",
        "name": "Weak User",
        "password": "short",
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, guest_user):
    """Valid credentials return JWT token."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "guest@example.com",
        "password": "testpassword123",
    })
    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"


@pytest.mark.asyncio
async def test_login_token_grants_access(client: AsyncClient, guest_user):
    login = await client.post("/api/v1/auth/login", json={
        "email": "guest@example.com",
        "password": "testpassword123",
    })
    token = login.json()["access_token"]

    response = await client.get("/api/v1/bookings/mine", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, guest_user):
    """Wrong password returns 401."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "guest@example.com",
        "password": "wrongpassword",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_nonexistent_email(client: AsyncClient):
    """Non-existent email returns 401."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "nobody@example.com",
        "password": "anypassword123",
    })
    assert response.status_code == 401
