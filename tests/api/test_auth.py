"""Tests for the login endpoint."""
from httpx import AsyncClient

from keepsake.services.token_service import TokenManager


async def test__login__returns_token_and_sets_cookie(
    client: AsyncClient, token_manager: TokenManager, account_id: int,
) -> None:
    response = await client.post(
        "/api/login", json={"username": "owner", "password": "correct horse"},
    )

    assert response.status_code == 200
    token = response.json()
    assert token_manager.validate(token).sub == account_id
    assert response.cookies["token"] == token


async def test__login__remember_extends_cookie_lifetime(
    client: AsyncClient, account_id: int,
) -> None:
    response = await client.post(
        "/api/login",
        json={"username": "owner", "password": "correct horse", "remember": True},
    )

    assert response.status_code == 200
    assert "Max-Age=604800" in response.headers["set-cookie"]


async def test__login__token_works_as_bearer(client: AsyncClient, account_id: int) -> None:
    login = await client.post(
        "/api/login", json={"username": "owner", "password": "correct horse"},
    )

    response = await client.get(
        "/api/bookmarks", headers={"Authorization": f"Bearer {login.json()}"},
    )

    assert response.status_code == 200
    assert response.json() == []


async def test__login__wrong_password_and_unknown_user_look_the_same(
    client: AsyncClient, account_id: int,
) -> None:
    wrong_password = await client.post(
        "/api/login", json={"username": "owner", "password": "nope"},
    )
    unknown_user = await client.post(
        "/api/login", json={"username": "stranger", "password": "correct horse"},
    )

    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json() == {
        "detail": "Username and password don't match",
    }


async def test__login__empty_username_is_400(client: AsyncClient) -> None:
    response = await client.post("/api/login", json={"username": "", "password": "x"})
    assert response.status_code == 400
