"""
Account and session endpoints over HTTP.

Checks the envelope, cookie handling and refresh rotation end to end.
"""

import pytest
from httpx import AsyncClient

API = "/api/v1/users"


async def _register(client: AsyncClient, upload_files, username: str = "carol", **overrides):
    data = {
        "fullName": "Carol Clark",
        "email": f"{username}@example.com",
        "username": username,
        "password": "s3cret-pass",
        **overrides,
    }
    return await client.post(f"{API}/register", data=data, files=upload_files(avatar="avatar.png"))


@pytest.mark.asyncio
class TestRegisterEndpoint:
    async def test_register(self, client: AsyncClient, upload_files):
        response = await _register(client, upload_files)

        assert response.status_code == 201
        body = response.json()
        assert body["statusCode"] == 201
        assert body["success"] is True
        assert body["data"]["user"]["username"] == "carol"
        assert body["data"]["user"]["displayName"] == "Carol Clark"
        assert body["data"]["accessToken"]
        assert body["data"]["refreshToken"]
        assert "passwordHash" not in body["data"]["user"]

        cookies = response.headers.get_list("set-cookie")
        assert any(c.startswith("accessToken=") and "HttpOnly" in c for c in cookies)
        assert any(c.startswith("refreshToken=") and "HttpOnly" in c for c in cookies)

    async def test_duplicate_username(self, client: AsyncClient, upload_files):
        await _register(client, upload_files)
        client.cookies.clear()

        response = await _register(client, upload_files, email="other@example.com")

        assert response.status_code == 409
        assert response.json()["success"] is False

    async def test_username_too_long(self, client: AsyncClient, upload_files):
        response = await _register(client, upload_files, username="u" * 80)

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "username"

    async def test_missing_avatar(self, client: AsyncClient):
        response = await client.post(
            f"{API}/register",
            data={"fullName": "X", "email": "x@example.com", "username": "x", "password": "pw"},
        )

        assert response.status_code == 400
        assert response.json()["errors"] == [{"field": "avatar", "message": "Avatar file is required"}]


@pytest.mark.asyncio
class TestSessionEndpoints:
    async def test_login_sets_cookies(self, client: AsyncClient, alice):
        response = await client.post(f"{API}/login", json={"email": "alice@example.com", "password": "password123"})

        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == str(alice.id)
        assert client.cookies.get("accessToken")

        me = await client.get(f"{API}/me")
        assert me.json()["data"]["username"] == "alice"

    async def test_bad_login(self, client: AsyncClient, alice):
        response = await client.post(f"{API}/login", json={"username": "alice", "password": "nope"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid user credentials"

    async def test_refresh_rotation(self, client: AsyncClient, upload_files):
        registered = await _register(client, upload_files)
        first_refresh = registered.json()["data"]["refreshToken"]

        rotated = await client.post(f"{API}/refresh-token")
        assert rotated.status_code == 200
        latest_refresh = rotated.json()["data"]["refreshToken"]
        assert latest_refresh != first_refresh

        client.cookies.clear()
        stale = await client.post(f"{API}/refresh-token", json={"refreshToken": first_refresh})
        assert stale.status_code == 401
        assert stale.json()["message"] == "Refresh token is expired or used"

        fresh = await client.post(f"{API}/refresh-token", json={"refreshToken": latest_refresh})
        assert fresh.status_code == 200

    async def test_refresh_without_token(self, client: AsyncClient):
        response = await client.post(f"{API}/refresh-token")
        assert response.status_code == 401

    async def test_logout(self, client: AsyncClient, upload_files):
        registered = await _register(client, upload_files)
        refresh = registered.json()["data"]["refreshToken"]

        response = await client.post(f"{API}/logout")

        assert response.status_code == 200
        assert not client.cookies.get("accessToken")
        again = await client.post(f"{API}/refresh-token", json={"refreshToken": refresh})
        assert again.status_code == 401


@pytest.mark.asyncio
class TestProfileEndpoints:
    async def test_me_requires_auth(self, client: AsyncClient):
        response = await client.get(f"{API}/me")

        assert response.status_code == 401
        assert response.json() == {
            "statusCode": 401,
            "success": False,
            "message": "Unauthorized request",
            "errors": [],
        }

    async def test_update_details(self, client: AsyncClient, alice, auth_headers):
        response = await client.patch(f"{API}/me", json={"fullName": "Alice A."}, headers=auth_headers(alice))

        assert response.status_code == 200
        assert response.json()["data"]["displayName"] == "Alice A."

    async def test_change_password(self, client: AsyncClient, alice, auth_headers):
        response = await client.post(
            f"{API}/change-password",
            json={"oldPassword": "password123", "newPassword": "brand-new"},
            headers=auth_headers(alice),
        )
        assert response.status_code == 200

        login = await client.post(f"{API}/login", json={"username": "alice", "password": "brand-new"})
        assert login.status_code == 200

    async def test_replace_cover(self, client: AsyncClient, alice, auth_headers, upload_files):
        response = await client.patch(
            f"{API}/me/cover",
            files=upload_files(coverImage="cover.png"),
            headers=auth_headers(alice),
        )

        assert response.status_code == 200
        assert response.json()["data"]["coverUrl"].startswith("https://media.test/covers/")

    async def test_channel_page(self, client: AsyncClient, alice, bob, make_video, auth_headers):
        await make_video(alice, "Hello")

        response = await client.get(f"{API}/channel/ALICE", headers=auth_headers(bob))

        data = response.json()["data"]
        assert data["username"] == "alice"
        assert data["totalVideos"] == 1
        assert data["subscribedByViewer"] is False

    async def test_empty_history(self, client: AsyncClient, alice, auth_headers):
        response = await client.get(f"{API}/history", headers=auth_headers(alice))

        assert response.status_code == 200
        assert response.json()["statusCode"] == 204
        assert response.json()["data"] == []

    async def test_history_after_play(self, client: AsyncClient, alice, bob, make_video, auth_headers):
        video = await make_video(alice, "Watch me")
        await client.get(f"/api/v1/videos/{video.id}/play", headers=auth_headers(bob))

        response = await client.get(f"{API}/history", headers=auth_headers(bob))

        assert response.json()["statusCode"] == 200
        assert [entry["id"] for entry in response.json()["data"]] == [str(video.id)]

    async def test_delete_account(self, client: AsyncClient, alice, make_video, auth_headers, released):
        await make_video(alice)
        headers = auth_headers(alice)

        response = await client.delete(f"{API}/me", headers=headers)

        assert response.status_code == 200
        assert len(released.released) == 3
        gone = await client.get(f"{API}/me", headers=headers)
        assert gone.status_code == 401
