"""
Integration Tests for authentication
Bearer token verification and the Google sign-in flows
"""
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock
from urllib.parse import urlparse, parse_qs
from httpx import AsyncClient

from irp.core.security import create_access_token
from irp.models import ActivityAction, User, UserRole
from irp.modules.oauth.google_provider import google_oauth

GOOGLE_PROFILE = {
    "google_id": "google-sub-42",
    "email": "New.Coordinator@College.edu",
    "email_verified": True,
    "full_name": "New Coordinator",
    "avatar_url": "https://lh3.googleusercontent.com/a/photo",
}


class TestBearerVerification:
    """Every protected route shares the same token checks"""

    @pytest.mark.asyncio
    async def test_missing_header(self, client: AsyncClient):
        response = await client.get('/api/v1/auth/check')

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "MISSING_CREDENTIAL"

    @pytest.mark.asyncio
    async def test_valid_token(self, client: AsyncClient, test_user, auth_headers):
        response = await client.get('/api/v1/auth/check', headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["authenticated"] is True
        assert data["user"]["id"] == test_user.id
        assert data["user"]["role"] == "coordinator"

    @pytest.mark.asyncio
    async def test_expired_token(self, client: AsyncClient, test_user):
        token = create_access_token(test_user.id, expires_delta=timedelta(seconds=-5))

        response = await client.get('/api/v1/auth/check', headers={'Authorization': f'Bearer {token}'})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "TOKEN_EXPIRED"

    @pytest.mark.asyncio
    async def test_tampered_token(self, client: AsyncClient, auth_headers):
        headers = {'Authorization': auth_headers['Authorization'][:-3] + 'abc'}

        response = await client.get('/api/v1/auth/check', headers=headers)

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_TOKEN"

    @pytest.mark.asyncio
    async def test_deactivated_account(self, client: AsyncClient, make_user):
        user = await make_user(is_active=False)
        headers = {'Authorization': f'Bearer {create_access_token(user.id)}'}

        response = await client.get('/api/v1/auth/profile', headers=headers)

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED_ACCOUNT"

    @pytest.mark.asyncio
    async def test_security_headers_present(self, client: AsyncClient, auth_headers):
        response = await client.get('/api/v1/auth/check', headers=auth_headers)

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert "X-Request-ID" in response.headers


class TestSessionEndpoints:

    @pytest.mark.asyncio
    async def test_profile_returns_fresh_token(self, client: AsyncClient, test_user, auth_headers):
        response = await client.get('/api/v1/auth/profile', headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["email"] == test_user.email
        assert data["access_token"]

    @pytest.mark.asyncio
    async def test_update_profile(self, client: AsyncClient, test_user, auth_headers, fetch, activity_rows):
        response = await client.put(
            '/api/v1/auth/profile',
            json={"department": "Computer Science", "phone": "9988776655"},
            headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["department"] == "Computer Science"

        user = await fetch(User, test_user.id)
        assert user.phone == "9988776655"

        rows = await activity_rows()
        assert [r.action for r in rows] == [ActivityAction.UPDATE]

    @pytest.mark.asyncio
    async def test_logout_is_recorded(self, client: AsyncClient, test_user, auth_headers, activity_rows):
        response = await client.post('/api/v1/auth/logout', headers=auth_headers)

        assert response.status_code == 200
        rows = await activity_rows()
        assert rows[0].action == ActivityAction.LOGOUT
        assert rows[0].user_id == test_user.id

    @pytest.mark.asyncio
    async def test_refresh(self, client: AsyncClient, auth_headers):
        response = await client.post('/api/v1/auth/refresh', headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"


class TestGoogleSignIn:

    @pytest.mark.asyncio
    async def test_authorization_url(self, client: AsyncClient):
        response = await client.get('/api/v1/auth/google/url')

        assert response.status_code == 200
        data = response.json()
        query = parse_qs(urlparse(data["authorization_url"]).query)
        assert query["client_id"] == ["test-google-client-id"]
        assert query["state"] == [data["state"]]

    @pytest.mark.asyncio
    async def test_not_configured(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(google_oauth, "client_id", "")

        response = await client.get('/api/v1/auth/google/url')

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "PROVIDER_NOT_CONFIGURED"

    @pytest.mark.asyncio
    async def test_code_flow_creates_account(self, client: AsyncClient, monkeypatch, activity_rows):
        monkeypatch.setattr(google_oauth, "authenticate", AsyncMock(return_value=dict(GOOGLE_PROFILE)))

        response = await client.post('/api/v1/auth/google/callback', json={"code": "auth-code"})

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["email"] == "new.coordinator@college.edu"
        assert data["user"]["role"] == UserRole.COORDINATOR.value

        check = await client.get(
            '/api/v1/auth/check',
            headers={'Authorization': f'Bearer {data["access_token"]}'}
        )
        assert check.status_code == 200

        rows = await activity_rows()
        assert rows[0].action == ActivityAction.LOGIN
        assert rows[0].details == {"method": "google_oauth"}

    @pytest.mark.asyncio
    async def test_code_flow_google_failure(self, client: AsyncClient, monkeypatch, activity_rows):
        monkeypatch.setattr(google_oauth, "authenticate", AsyncMock(return_value=None))

        response = await client.post('/api/v1/auth/google/callback', json={"code": "bad-code"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "EXTERNAL_AUTH_FAILED"
        assert await activity_rows() == []

    @pytest.mark.asyncio
    async def test_id_token_flow_signs_in_existing_account(self, client: AsyncClient, monkeypatch, admin_user):
        profile = dict(GOOGLE_PROFILE, email=admin_user.email)
        monkeypatch.setattr(google_oauth, "verify_id_token", lambda credential: profile)

        response = await client.post('/api/v1/auth/google/token', json={"credential": "id-token"})

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == admin_user.id
        assert data["user"]["role"] == "admin"

    @pytest.mark.asyncio
    async def test_id_token_flow_rejects_deactivated(self, client: AsyncClient, monkeypatch, make_user, fetch):
        user = await make_user(is_active=False, google_id=GOOGLE_PROFILE["google_id"])
        monkeypatch.setattr(google_oauth, "verify_id_token", lambda credential: dict(GOOGLE_PROFILE))

        response = await client.post('/api/v1/auth/google/token', json={"credential": "id-token"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED_ACCOUNT"
        assert (await fetch(User, user.id)).last_login is None

    @pytest.mark.asyncio
    async def test_deactivated_account_not_linked_by_email(self, client: AsyncClient, monkeypatch, make_user, fetch):
        user = await make_user(is_active=False, email=GOOGLE_PROFILE["email"].lower())
        monkeypatch.setattr(google_oauth, "verify_id_token", lambda credential: dict(GOOGLE_PROFILE))

        response = await client.post('/api/v1/auth/google/token', json={"credential": "id-token"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED_ACCOUNT"
        stored = await fetch(User, user.id)
        assert stored.google_id is None
        assert stored.last_login is None

    @pytest.mark.asyncio
    async def test_invalid_id_token(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(google_oauth, "verify_id_token", lambda credential: None)

        response = await client.post('/api/v1/auth/google/token', json={"credential": "forged"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_browser_callback_redirects_with_token(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(google_oauth, "authenticate", AsyncMock(return_value=dict(GOOGLE_PROFILE)))

        response = await client.get('/api/v1/auth/google/callback', params={"code": "auth-code"})

        assert response.status_code == 307
        location = urlparse(response.headers["location"])
        assert location.path == "/auth/callback"
        assert "token" in parse_qs(location.query)

    @pytest.mark.asyncio
    async def test_browser_callback_redirects_with_error(self, client: AsyncClient):
        response = await client.get('/api/v1/auth/google/callback', params={"error": "access_denied"})

        assert response.status_code == 307
        query = parse_qs(urlparse(response.headers["location"]).query)
        assert query == {"error": ["authentication_failed"]}
