"""
Integration tests for the profile flow.

Verifies Setup -> Me with token-only and profile-gated access.
"""

from datetime import timedelta

from dispatch_backend.app.core.jwt import create_access_token
from dispatch_backend.app.models.driver import Driver
from dispatch_backend.app.models.user import User
from sqlalchemy import select


async def test_health_check(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True, "service": "Fleet Dispatch API"}
    assert "X-Correlation-ID" in response.headers


async def test_health_check_needs_no_token(client):
    response = await client.get("/health")
    assert response.status_code == 200


async def test_setup_creates_profile(client, db_session, auth_headers):
    headers = auth_headers("dispatch-uid", "dana@test.com")
    response = await client.post(
        "/auth/setup",
        json={"name": "Dana", "role": "dispatcher"},
        headers=headers
    )

    assert response.status_code == 201
    data = response.json()
    assert data["uid"] == "dispatch-uid"
    assert data["email"] == "dana@test.com"
    assert data["name"] == "Dana"
    assert data["role"] == "dispatcher"
    assert "createdAt" in data

    result = await db_session.execute(select(User).where(User.uid == "dispatch-uid"))
    assert result.scalar_one().role.value == "dispatcher"


async def test_setup_defaults_role_to_driver_and_creates_driver_record(client, db_session, auth_headers):
    headers = auth_headers("new-driver")
    response = await client.post("/auth/setup", json={"name": "Dee"}, headers=headers)

    assert response.status_code == 201
    assert response.json()["role"] == "driver"

    result = await db_session.execute(select(Driver).where(Driver.uid == "new-driver"))
    driver = result.scalar_one()
    assert driver.is_online is False
    assert driver.last_location is None
    assert driver.last_speed_mps == 0
    assert driver.last_heading == 0


async def test_dispatcher_setup_creates_no_driver_record(client, dispatcher_headers, db_session):
    result = await db_session.execute(select(Driver).where(Driver.uid == "dispatcher-1"))
    assert result.scalar_one_or_none() is None


async def test_setup_is_idempotent(client, auth_headers):
    headers = auth_headers("repeat-uid")
    first = await client.post(
        "/auth/setup", json={"name": "First", "role": "admin"}, headers=headers
    )
    assert first.status_code == 201

    second = await client.post(
        "/auth/setup", json={"name": "Second", "role": "driver"}, headers=headers
    )
    assert second.status_code == 200
    data = second.json()
    assert data["message"] == "Profile already exists"
    assert data["profile"]["name"] == "First"
    assert data["profile"]["role"] == "admin"


async def test_setup_rejects_invalid_role(client, auth_headers):
    response = await client.post(
        "/auth/setup",
        json={"name": "Eve", "role": "superadmin"},
        headers=auth_headers("eve")
    )
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation Error"
    assert body["details"][0]["path"] == "role"


async def test_setup_rejects_empty_name(client, auth_headers):
    response = await client.post(
        "/auth/setup", json={"name": ""}, headers=auth_headers("nameless")
    )
    assert response.status_code == 400
    assert response.json()["details"][0]["path"] == "name"


async def test_me_returns_profile(client, driver_headers):
    response = await client.get("/me", headers=driver_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["uid"] == "driver-1"
    assert data["role"] == "driver"


async def test_me_without_profile_is_not_found(client, auth_headers):
    response = await client.get("/me", headers=auth_headers("ghost"))
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found", "message": "User profile not found"}


async def test_missing_token_is_unauthorized(client):
    response = await client.get("/me")
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized"


async def test_malformed_token_is_unauthorized(client):
    response = await client.get("/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token"


async def test_expired_token_is_unauthorized(client, driver_headers):
    token = create_access_token(
        data={"sub": "driver-1", "email": "driver-1@test.com"},
        expires_delta=timedelta(minutes=-5)
    )
    response = await client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


async def test_token_without_subject_is_unauthorized(client):
    token = create_access_token(data={"email": "nobody@test.com"})
    response = await client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token payload"


async def test_protected_endpoint_without_profile_is_forbidden(client, auth_headers):
    response = await client.get("/trips", headers=auth_headers("no-profile"))
    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden", "message": "User profile not found"}


async def test_unknown_route_uses_error_envelope(client):
    response = await client.get("/does-not-exist")
    assert response.status_code == 404
    assert response.json()["error"] == "Not Found"
