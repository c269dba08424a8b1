"""
Integration Tests for Authentication Endpoints

Tests:
- Registration and field-keyed validation errors
- Login by email or username
- Refresh token rotation and logout
- Profile and password change
"""

PASSWORD = "Password123"


async def register(client, username, password=PASSWORD, email=None):
    return await client.post(
        "/auth/register",
        json={"username": username, "email": email or f"{username}@example.com", "password": password},
    )


async def login(client, identifier, password=PASSWORD):
    return await client.post("/auth/login", json={"email": identifier, "password": password})


# ============================================================================
# Registration
# ============================================================================

class TestRegister:

    async def test_register(self, client):
        response = await register(client, "erin")

        assert response.status_code == 201
        data = response.json()
        assert data["username"] == "erin"
        assert data["email"] == "erin@example.com"
        assert data["is_active"] is True
        assert "password_hash" not in data

    async def test_email_is_lowercased(self, client):
        response = await register(client, "frank", email="Frank@Example.com")

        assert response.json()["email"] == "frank@example.com"

    async def test_duplicate_email_and_username(self, client):
        await register(client, "erin")

        response = await register(client, "ERIN", email="ERIN@example.com")

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert set(body["details"]) == {"email", "username"}

    async def test_weak_password(self, client):
        response = await register(client, "erin", password="short")

        assert response.status_code == 400
        assert "password" in response.json()["details"]

    async def test_invalid_username(self, client):
        response = await register(client, "not valid!")

        assert response.status_code == 400
        assert "username" in response.json()["details"]


# ============================================================================
# Login and Tokens
# ============================================================================

class TestLogin:

    async def test_login_by_email_or_username(self, client):
        await register(client, "erin")

        by_email = await login(client, "ERIN@example.com")
        by_username = await login(client, "erin")

        assert by_email.status_code == 200
        assert by_username.status_code == 200
        tokens = by_email.json()
        assert tokens["token_type"] == "bearer"
        assert tokens["expires_in"] > 0

    async def test_wrong_password(self, client):
        await register(client, "erin")

        response = await login(client, "erin", "Wrong-password1")

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    async def test_unknown_user(self, client):
        response = await login(client, "nobody@example.com")

        assert response.status_code == 401


class TestRefreshAndLogout:

    async def test_refresh_rotates_token(self, client):
        await register(client, "erin")
        tokens = (await login(client, "erin")).json()

        response = await client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 200
        rotated = response.json()
        assert rotated["refresh_token"] != tokens["refresh_token"]

        # The old refresh token is revoked
        response = await client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 401

    async def test_access_token_is_not_a_refresh_token(self, client):
        await register(client, "erin")
        tokens = (await login(client, "erin")).json()

        response = await client.post("/auth/refresh", json={"refresh_token": tokens["access_token"]})

        assert response.status_code == 401

    async def test_garbage_refresh_token(self, client):
        response = await client.post("/auth/refresh", json={"refresh_token": "not-a-token"})

        assert response.status_code == 401

    async def test_logout_revokes_refresh_token(self, client):
        await register(client, "erin")
        tokens = (await login(client, "erin")).json()
        headers = {"Authorization": f"Bearer {tokens['access_token']}"}

        response = await client.post("/auth/logout", json={"refresh_token": tokens["refresh_token"]}, headers=headers)
        assert response.status_code == 200
        assert response.json()["success"] is True

        response = await client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 401


# ============================================================================
# Profile
# ============================================================================

class TestProfile:

    async def test_me(self, client, auth_headers):
        response = await client.get("/auth/me", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["username"] == "carol"
        assert response.json()["last_login_at"] is not None

    async def test_me_requires_token(self, client):
        response = await client.get("/auth/me")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_me_rejects_bad_token(self, client):
        response = await client.get("/auth/me", headers={"Authorization": "Bearer nonsense"})

        assert response.status_code == 401

    async def test_change_password(self, client):
        await register(client, "erin")
        tokens = (await login(client, "erin")).json()
        headers = {"Authorization": f"Bearer {tokens['access_token']}"}

        response = await client.post(
            "/auth/change-password",
            json={"current_password": PASSWORD, "new_password": "Another-pass9"},
            headers=headers,
        )
        assert response.status_code == 200

        assert (await login(client, "erin")).status_code == 401
        assert (await login(client, "erin", "Another-pass9")).status_code == 200
        # Existing sessions are revoked
        response = await client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 401

    async def test_change_password_checks_current(self, client, auth_headers):
        response = await client.post(
            "/auth/change-password",
            json={"current_password": "Wrong-pass1", "new_password": "Another-pass9"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert "current_password" in response.json()["details"]


# ============================================================================
# Deactivation and Preferences
# ============================================================================

class TestDeactivate:

    async def test_deactivate(self, client):
        await register(client, "erin")
        tokens = (await login(client, "erin")).json()
        headers = {"Authorization": f"Bearer {tokens['access_token']}"}

        response = await client.post("/auth/deactivate", json={"password": PASSWORD}, headers=headers)
        assert response.status_code == 200
        assert response.json()["success"] is True

        assert (await client.get("/auth/me", headers=headers)).status_code == 401
        assert (await login(client, "erin")).status_code == 403
        response = await client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 401

    async def test_deactivate_checks_password(self, client, auth_headers):
        response = await client.post("/auth/deactivate", json={"password": "Wrong-pass1"}, headers=auth_headers)

        assert response.status_code == 400
        assert "password" in response.json()["details"]
        assert (await client.get("/auth/me", headers=auth_headers)).status_code == 200

    async def test_deactivate_requires_password(self, client, auth_headers):
        response = await client.post("/auth/deactivate", json={}, headers=auth_headers)

        assert response.status_code == 400


class TestPreferences:

    async def test_defaults_after_registration(self, client, auth_headers):
        response = await client.get("/auth/preferences", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["enable_expiry_alerts"] is True
        assert data["expiry_alert_days"] == 3
        assert data["enable_push_notifications"] is False
        assert data["theme"] == "light"
        assert data["language"] == "ja"

    async def test_partial_update(self, client, auth_headers):
        response = await client.put(
            "/auth/preferences",
            json={"expiry_alert_days": 7, "theme": "dark"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["expiry_alert_days"] == 7
        assert data["theme"] == "dark"
        assert data["language"] == "ja"

    async def test_alert_days_out_of_range(self, client, auth_headers):
        response = await client.put(
            "/auth/preferences", json={"expiry_alert_days": 31}, headers=auth_headers
        )

        assert response.status_code == 400
        assert "expiry_alert_days" in response.json()["details"]

    async def test_requires_authentication(self, client):
        response = await client.get("/auth/preferences")

        assert response.status_code == 401
