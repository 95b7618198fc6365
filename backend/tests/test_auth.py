import pytest
from datetime import timedelta
from httpx import AsyncClient
from jose import jwt

from app.core.config import settings
from app.core.exceptions import RefreshInvalidError
from app.core.security import create_access_token, create_refresh_token
from app.services.session_service import session_service
from conftest import TEST_PASSWORD, reload_user


async def _signup_and_login(client: AsyncClient, payload: dict):
    await client.post("/api/auth/signup", json=payload)
    return await client.post(
        "/api/auth/login",
        json={"identifier": payload["email"], "password": TEST_PASSWORD}
    )


@pytest.mark.asyncio
async def test_signup_user(client: AsyncClient, signup_payload):
    """Test user registration"""
    response = await client.post("/api/auth/signup", json=signup_payload)

    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Signup successful"
    assert data["user"]["email"] == signup_payload["email"].lower()
    assert data["user"]["rollNumber"] == signup_payload["rollNumber"]
    assert "id" in data["user"]
    assert "passwordHash" not in data["user"]


@pytest.mark.asyncio
async def test_signup_duplicate_email_any_case(client: AsyncClient, signup_payload):
    """Email uniqueness ignores case"""
    await client.post("/api/auth/signup", json=signup_payload)

    duplicate = dict(signup_payload, email=signup_payload["email"].upper(), rollNumber="OTHER-ROLL-1")
    response = await client.post("/api/auth/signup", json=duplicate)

    assert response.status_code == 409
    assert response.json()["code"] == "USER_EXISTS"


@pytest.mark.asyncio
async def test_signup_duplicate_roll_number(client: AsyncClient, signup_payload):
    await client.post("/api/auth/signup", json=signup_payload)

    duplicate = dict(signup_payload, email="someone.else@example.com")
    response = await client.post("/api/auth/signup", json=duplicate)

    assert response.status_code == 409
    assert response.json()["code"] == "USER_EXISTS"


@pytest.mark.asyncio
@pytest.mark.parametrize("password,message", [
    ("campus#2024pass", "Password must contain an uppercase letter"),
    ("CAMPUS#2024PASS", "Password must contain a lowercase letter"),
    ("Campus#passWORD", "Password must contain a number"),
    ("Campus2024pass", "Password must contain a special character"),
])
async def test_signup_password_policy(client: AsyncClient, signup_payload, password, message):
    payload = dict(signup_payload, password=password, confirmPassword=password)
    response = await client.post("/api/auth/signup", json=payload)

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert {"path": "password", "message": message} in body["details"]["issues"]


@pytest.mark.asyncio
async def test_signup_password_mismatch(client: AsyncClient, signup_payload):
    payload = dict(signup_payload, confirmPassword="Different#2024")
    response = await client.post("/api/auth/signup", json=payload)

    assert response.status_code == 400
    issues = response.json()["details"]["issues"]
    assert {"path": "confirmPassword", "message": "Passwords do not match"} in issues


@pytest.mark.asyncio
async def test_signup_rejects_bad_year_and_mobile(client: AsyncClient, signup_payload):
    payload = dict(signup_payload, year=5, mobileNumber="12345")
    response = await client.post("/api/auth/signup", json=payload)

    assert response.status_code == 400
    paths = {issue["path"] for issue in response.json()["details"]["issues"]}
    assert {"year", "mobileNumber"} <= paths


@pytest.mark.asyncio
async def test_login_with_email_sets_refresh_cookie(client: AsyncClient, signup_payload):
    """Test successful login"""
    await client.post("/api/auth/signup", json=signup_payload)

    response = await client.post(
        "/api/auth/login",
        json={"identifier": f"  {signup_payload['email'].upper()} ", "password": TEST_PASSWORD}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["accessToken"]
    assert data["user"]["joinedCommunity"] is False
    assert "refreshToken" not in data

    set_cookie = response.headers["set-cookie"].lower()
    assert "refresh_token=" in set_cookie
    assert "httponly" in set_cookie
    assert "path=/api/auth" in set_cookie
    assert "samesite=lax" in set_cookie
    assert "; secure" not in set_cookie  # only in production
    assert f"max-age={settings.REFRESH_TOKEN_TTL_SECONDS}" in set_cookie


@pytest.mark.asyncio
async def test_login_with_roll_number(client: AsyncClient, signup_payload):
    await client.post("/api/auth/signup", json=signup_payload)

    response = await client.post(
        "/api/auth/login",
        json={"identifier": signup_payload["rollNumber"], "password": TEST_PASSWORD}
    )

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_login_failures_are_indistinguishable(client: AsyncClient, signup_payload):
    """Wrong password and unknown identifier give the same response"""
    await client.post("/api/auth/signup", json=signup_payload)

    wrong_password = await client.post(
        "/api/auth/login",
        json={"identifier": signup_payload["email"], "password": "Wrong#Pass123"}
    )
    unknown_user = await client.post(
        "/api/auth/login",
        json={"identifier": "nobody@example.com", "password": "Wrong#Pass123"}
    )

    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json()
    assert wrong_password.json()["code"] == "INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_signup_login_me_round_trip(client: AsyncClient, signup_payload):
    login = await _signup_and_login(client, signup_payload)
    token = login.json()["accessToken"]

    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    user = response.json()["user"]
    assert user["reputationScore"] == 0
    assert user["contributionCount"] == 0
    assert user["acceptedAnswersCount"] == 0
    assert user["joinedCommunity"] is False


@pytest.mark.asyncio
async def test_access_token_claims(client: AsyncClient, signup_payload):
    login = await _signup_and_login(client, signup_payload)
    claims = jwt.get_unverified_claims(login.json()["accessToken"])

    assert claims["sub"] == login.json()["user"]["id"]
    assert claims["type"] == "access"
    assert claims["exp"] - claims["iat"] == settings.ACCESS_TOKEN_TTL_SECONDS


@pytest.mark.asyncio
async def test_me_requires_token(client: AsyncClient):
    response = await client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json()["code"] == "AUTH_REQUIRED"


@pytest.mark.asyncio
async def test_me_with_garbage_token(client: AsyncClient):
    response = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["code"] == "TOKEN_INVALID_OR_EXPIRED"


@pytest.mark.asyncio
async def test_me_with_expired_token(client: AsyncClient, member):
    token = create_access_token(member.id, expires_delta=timedelta(seconds=-5))
    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["code"] == "TOKEN_INVALID_OR_EXPIRED"


@pytest.mark.asyncio
async def test_refresh_token_is_not_an_access_token(client: AsyncClient, member):
    refresh_token, _ = create_refresh_token(member.id)
    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {refresh_token}"})

    assert response.status_code == 401
    assert response.json()["code"] == "TOKEN_INVALID_OR_EXPIRED"


@pytest.mark.asyncio
async def test_refresh_issues_new_access_token(client: AsyncClient, signup_payload):
    login = await _signup_and_login(client, signup_payload)
    assert login.status_code == 200

    # cookie jar replays the refresh cookie
    response = await client.post("/api/auth/refresh")

    assert response.status_code == 200
    new_token = response.json()["accessToken"]
    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {new_token}"})
    assert me.status_code == 200


@pytest.mark.asyncio
async def test_refresh_without_cookie(client: AsyncClient):
    response = await client.post("/api/auth/refresh")

    assert response.status_code == 401
    assert response.json()["code"] == "REFRESH_MISSING"


@pytest.mark.asyncio
async def test_login_stores_only_hashed_token_id(client: AsyncClient, db_session, signup_payload):
    login = await _signup_and_login(client, signup_payload)
    refresh_token = login.cookies.get(settings.REFRESH_COOKIE_NAME)
    claims = jwt.get_unverified_claims(refresh_token)

    user = await reload_user(db_session, login.json()["user"]["id"])
    assert claims["type"] == "refresh"
    assert user.refresh_token_hash
    assert user.refresh_token_hash != claims["rti"]
    assert claims["rti"] not in user.refresh_token_hash
    assert user.refresh_token_issued_at is not None


@pytest.mark.asyncio
async def test_logout_revokes_refresh_session(client: AsyncClient, db_session, signup_payload):
    login = await _signup_and_login(client, signup_payload)
    refresh_token = login.cookies.get(settings.REFRESH_COOKIE_NAME)
    user_id = login.json()["user"]["id"]

    response = await client.post("/api/auth/logout")

    assert response.status_code == 200
    assert response.json()["message"] == "Logged out"
    assert 'refresh_token=""' in response.headers["set-cookie"] or "max-age=0" in response.headers["set-cookie"].lower()

    user = await reload_user(db_session, user_id)
    assert user.refresh_token_hash is None
    assert user.last_active_at is None

    with pytest.raises(RefreshInvalidError):
        await session_service.refresh(db_session, refresh_token)


@pytest.mark.asyncio
async def test_logout_with_unreadable_cookie_still_succeeds(client: AsyncClient):
    client.cookies.set(settings.REFRESH_COOKIE_NAME, "garbage")
    response = await client.post("/api/auth/logout")

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_relogin_replaces_refresh_session(client: AsyncClient, db_session, signup_payload):
    first = await _signup_and_login(client, signup_payload)
    old_refresh = first.cookies.get(settings.REFRESH_COOKIE_NAME)

    await client.post(
        "/api/auth/login",
        json={"identifier": signup_payload["email"], "password": TEST_PASSWORD}
    )

    with pytest.raises(RefreshInvalidError):
        await session_service.refresh(db_session, old_refresh)


@pytest.mark.asyncio
async def test_refresh_signed_with_wrong_secret(db_session, member):
    forged = jwt.encode(
        {"sub": member.id, "rti": "abc", "type": "refresh"},
        settings.JWT_ACCESS_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )

    with pytest.raises(RefreshInvalidError):
        await session_service.refresh(db_session, forged)


@pytest.mark.asyncio
async def test_join_community_is_idempotent(client: AsyncClient, outsider, db_session):
    first = await client.post("/api/membership/join", headers=outsider.headers)
    second = await client.post("/api/membership/join", headers=outsider.headers)

    assert first.status_code == second.status_code == 200
    assert first.json() == second.json() == {"joinedCommunity": True}
    user = await reload_user(db_session, outsider.id)
    assert user.joined_community is True


@pytest.mark.asyncio
async def test_join_requires_authentication(client: AsyncClient):
    response = await client.post("/api/membership/join")

    assert response.status_code == 401
    assert response.json()["code"] == "AUTH_REQUIRED"
