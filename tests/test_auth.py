"""
测试认证API与token解析
"""
from datetime import timedelta

import pytest

from mango_articles.services.auth_service import AuthService, RegistrationError
from mango_articles.utils.auth import (
    create_access_token,
    hash_password,
    verify_password,
    verify_token,
)


def test_password_hashing():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("secret123", "not-a-hash")


def test_expired_token_is_rejected():
    token = create_access_token({"sub": "1"}, expires_delta=timedelta(seconds=-1))
    assert verify_token(token, raise_on_error=False) is None


async def test_register_login_me(client):
    response = await client.post("/api/auth/register", json={
        "username": "kiwi",
        "email": "Kiwi@Example.com",
        "fullName": "Kiwi Reader",
        "password": "secret123"
    })
    assert response.status_code == 201
    assert response.json()["data"]["email"] == "kiwi@example.com"

    response = await client.post("/api/auth/login", json={"email": "kiwi@example.com", "password": "secret123"})
    assert response.status_code == 200
    token = response.json()["data"]["token"]

    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["data"]["username"] == "kiwi"
    assert response.json()["data"]["isGuest"] is False


async def test_register_duplicates(client, author):
    response = await client.post("/api/auth/register", json={
        "username": "someone",
        "email": "mango@example.com",
        "fullName": "Someone",
        "password": "secret123"
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "邮箱已被使用"

    response = await client.post("/api/auth/register", json={
        "username": "mango",
        "email": "new@example.com",
        "fullName": "Someone",
        "password": "secret123"
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "用户名已被占用"


async def test_login_wrong_password(client, author):
    response = await client.post("/api/auth/login", json={"email": "mango@example.com", "password": "nope"})
    assert response.status_code == 401


async def test_guest_token(client):
    response = await client.post("/api/auth/guest")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["isGuest"] is True

    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert response.json()["data"]["isGuest"] is True


async def test_bad_authorization_headers(client):
    assert (await client.get("/api/auth/me")).status_code == 401
    assert (await client.get("/api/auth/me", headers={"Authorization": "Token abc"})).status_code == 401
    assert (await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})).status_code == 401


async def test_root_and_health(client):
    assert (await client.get("/")).json()["app"] == "Mango Articles"

    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": "ok"}


async def test_register_rejects_password_over_72_bytes(client):
    response = await client.post("/api/auth/register", json={
        "username": "longpass",
        "email": "long@example.com",
        "fullName": "Long Password",
        "password": "p" * 100
    })
    assert response.status_code == 400


async def test_register_race_reports_duplicate(session, author, monkeypatch):
    """并发注册触发唯一约束时按重复注册处理"""
    async def not_found(db, value):
        return None

    monkeypatch.setattr(AuthService, "get_by_email", not_found)
    monkeypatch.setattr(AuthService, "get_by_username", not_found)

    with pytest.raises(RegistrationError):
        await AuthService.register(
            session, username="mango", email="mango@example.com", full_name="Again", password="secret123"
        )
