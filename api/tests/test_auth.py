"""
Authentication Tests - Signup, Password Login, Lockout, Token Refresh

Tests:
1. Signup creates a pending profile that cannot log in until approved
2. Password login with valid / invalid credentials
3. Lockout after repeated failures
4. Token refresh rotation
5. JWT claims and bearer validation
6. Password hashing (bcrypt)
"""
import jwt


def test_password_login_success(client, seed_admin):
    """Test password login with valid credentials."""
    profile_id, email, password = seed_admin

    response = client.post("/api/auth/login", json={
        "email": email,
        "password": password
    })

    assert response.status_code == 200, f"Expected 200, got {response.status_code}"
    data = response.json()

    assert "access_token" in data, "Missing access_token"
    assert "refresh_token" in data, "Missing refresh_token"
    assert data["token_type"] == "bearer"
    assert data["role"] == "admin"
    assert data["user_id"] == profile_id

    # Verify JWT structure (3 parts: header.payload.signature)
    token = data["access_token"]
    assert len(token.split(".")) == 3, "Invalid JWT format (should have 3 parts)"


def test_login_email_is_case_insensitive(client, seed_admin):
    profile_id, email, password = seed_admin

    response = client.post("/api/auth/login", json={"email": email.upper(), "password": password})

    assert response.status_code == 200, response.text


def test_password_login_failure_wrong_password(client, seed_admin):
    """Wrong password is a 401 that reports the remaining attempts."""
    profile_id, email, password = seed_admin

    response = client.post("/api/auth/login", json={
        "email": email,
        "password": "wrongpassword"
    })

    assert response.status_code == 401, f"Expected 401, got {response.status_code}"
    assert "4 attempts remaining" in response.json()["detail"]


def test_password_login_failure_nonexistent_user(client):
    """Test password login with non-existent user."""
    response = client.post("/api/auth/login", json={
        "email": "nobody@example.com",
        "password": "anypassword"
    })

    assert response.status_code == 401, f"Expected 401, got {response.status_code}"


def test_account_locks_after_five_failures(client, seed_admin):
    """Fifth failure locks the account; even the right password is refused."""
    profile_id, email, password = seed_admin

    for _ in range(4):
        r = client.post("/api/auth/login", json={"email": email, "password": "bad-password"})
        assert r.status_code == 401

    locked = client.post("/api/auth/login", json={"email": email, "password": "bad-password"})
    assert locked.status_code == 403, f"Expected lockout 403, got {locked.status_code}"

    still_locked = client.post("/api/auth/login", json={"email": email, "password": password})
    assert still_locked.status_code == 403
    assert "locked" in still_locked.json()["detail"].lower()


def test_signup_creates_pending_profile(client):
    """Self-registered accounts are 'user' role and wait for approval."""
    response = client.post("/api/auth/signup", json={
        "email": "New.Worker@Example.com",
        "password": "longenough1",
        "full_name": "  New Worker  "
    })

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["email"] == "new.worker@example.com"
    assert data["full_name"] == "New Worker"
    assert data["role"] == "user"
    assert data["status"] == "pending"

    login = client.post("/api/auth/login", json={
        "email": "new.worker@example.com",
        "password": "longenough1"
    })
    assert login.status_code == 403, "Pending accounts must not log in"
    assert "approval" in login.json()["detail"]


def test_signup_duplicate_email(client, seed_admin):
    profile_id, email, password = seed_admin

    response = client.post("/api/auth/signup", json={
        "email": email,
        "password": "longenough1",
        "full_name": "Copycat"
    })

    assert response.status_code == 409


def test_signup_rejects_short_password(client):
    response = client.post("/api/auth/signup", json={
        "email": "short@example.com",
        "password": "short",
        "full_name": "Short"
    })

    assert response.status_code == 422


def test_token_refresh(client, seed_admin):
    """Refresh issues new tokens and revokes the one used."""
    profile_id, email, password = seed_admin

    login_response = client.post("/api/auth/login", json={
        "email": email,
        "password": password
    })
    assert login_response.status_code == 200
    refresh_token = login_response.json()["refresh_token"]

    refresh_response = client.post("/api/auth/refresh", json={
        "refresh_token": refresh_token
    })

    assert refresh_response.status_code == 200, f"Refresh failed: {refresh_response.status_code}"
    new_data = refresh_response.json()
    assert new_data["refresh_token"] != refresh_token, "Refresh token must rotate"

    # The old refresh token is no longer usable
    replay = client.post("/api/auth/refresh", json={"refresh_token": refresh_token})
    assert replay.status_code == 401


def test_refresh_rejects_access_token(client, admin_token):
    response = client.post("/api/auth/refresh", json={"refresh_token": admin_token})

    assert response.status_code == 401


def test_jwt_token_validation(admin_token):
    """Test JWT token structure and claims."""
    payload = jwt.decode(admin_token, options={"verify_signature": False})

    assert payload["sub"] == "admin@example.com", f"Unexpected sub: {payload['sub']}"
    assert "user_id" in payload, "Missing 'user_id' claim"
    assert payload["role"] == "admin"
    assert payload["type"] == "access"
    assert "exp" in payload, "Missing 'exp' claim (expiration)"


def test_me_returns_current_profile(client, admin_headers, seed_admin):
    profile_id, email, password = seed_admin

    response = client.get("/api/auth/me", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["id"] == profile_id
    assert response.json()["email"] == email


def test_protected_endpoint_without_token(client):
    """Protected endpoints reject requests without token."""
    response = client.get("/api/auth/me")
    assert response.status_code == 401, f"Expected 401, got {response.status_code}"


def test_protected_endpoint_with_garbage_token(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_pending_profile_token_is_forbidden(client, make_user):
    """A token minted for a not-yet-approved profile gets 403."""
    pending = make_user(role="user", status="pending")

    response = client.get("/api/auth/me", headers=pending["headers"])

    assert response.status_code == 403


def test_password_hashing(db_session, seed_admin):
    """Test bcrypt password hashing."""
    from models import AuthCredential
    from auth import hash_password, verify_password

    profile_id, email, password = seed_admin

    cred = db_session.query(AuthCredential).filter_by(profile_id=profile_id).first()
    assert cred is not None, "Admin credentials not found"
    assert cred.password_hash.startswith("$2"), f"Not bcrypt hash: {cred.password_hash[:10]}"

    assert verify_password(password, cred.password_hash), "Password verification failed"
    assert not verify_password("wrongpassword", cred.password_hash), "Wrong password should not verify"

    fresh = hash_password("another-secret")
    assert fresh != hash_password("another-secret"), "Salts must differ"
    assert verify_password("another-secret", fresh)


def test_ensure_admin_creates_then_resets(client, db_session):
    """Bootstrap script creates an active admin and resets the password on rerun."""
    from create_admin import ensure_admin

    admin = ensure_admin(db_session, " Boss@Example.com ", "first-pass-123", "Boss")
    assert admin.email == "boss@example.com"
    assert admin.role == "admin"
    assert admin.status == "active"

    again = ensure_admin(db_session, "boss@example.com", "second-pass-456", "Boss")
    assert again.id == admin.id

    old = client.post("/api/auth/login", json={"email": "boss@example.com", "password": "first-pass-123"})
    new = client.post("/api/auth/login", json={"email": "boss@example.com", "password": "second-pass-456"})
    assert old.status_code == 401
    assert new.status_code == 200
