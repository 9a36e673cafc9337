from datetime import datetime, timezone

from fastapi import Depends, Request
from fastapi.testclient import TestClient

from launchpad.core.deps import get_current_address
from launchpad.core.security import SessionIssuer
from launchpad.main import create_app
from launchpad.services.signature import login_message


def _login(client, account, sign_message):
    nonce = client.get("/api/v1/auth/nonce", params={"address": account.address}).json()["nonce"]
    signature = sign_message(account, login_message(nonce))
    return client.post(
        "/api/v1/auth/login",
        json={"address": account.address, "nonce": nonce, "signature": signature},
    )


def test_health(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "launchpad-auth"}


def test_nonce_endpoint(client, alice):
    response = client.get("/api/v1/auth/nonce", params={"address": alice.address})

    assert response.status_code == 200
    assert len(response.json()["nonce"]) == 32


def test_nonce_invalid_address(client):
    response = client.get("/api/v1/auth/nonce", params={"address": "0xnope"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid ethereum address"


def test_nonce_missing_address(client):
    response = client.get("/api/v1/auth/nonce")

    assert response.status_code == 400


def test_login_flow(client, alice, sign_message):
    response = _login(client, alice, sign_message)

    assert response.status_code == 200
    body = response.json()
    assert body["address"] == alice.address.lower()
    assert body["token"]


def test_login_replay_rejected(client, alice, sign_message):
    nonce = client.get("/api/v1/auth/nonce", params={"address": alice.address}).json()["nonce"]
    payload = {
        "address": alice.address,
        "nonce": nonce,
        "signature": sign_message(alice, login_message(nonce)),
    }

    assert client.post("/api/v1/auth/login", json=payload).status_code == 200
    replay = client.post("/api/v1/auth/login", json=payload)

    assert replay.status_code == 401
    assert replay.json()["detail"] == "Nonce not found"


def test_login_wrong_signer(client, alice, bob, sign_message):
    nonce = client.get("/api/v1/auth/nonce", params={"address": alice.address}).json()["nonce"]

    response = client.post(
        "/api/v1/auth/login",
        json={"address": alice.address, "nonce": nonce, "signature": sign_message(bob, login_message(nonce))},
    )

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid signature"


def test_login_invalid_address(client):
    response = client.post("/api/v1/auth/login", json={"address": "0x1", "nonce": "a", "signature": "0x"})

    assert response.status_code == 400


def test_verify_with_bearer_token(client, alice, sign_message):
    token = _login(client, alice, sign_message).json()["token"]

    response = client.post("/api/v1/auth/verify", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["address"] == alice.address.lower()


def test_verify_accepts_lowercase_scheme_and_bare_token(client, alice, sign_message):
    token = _login(client, alice, sign_message).json()["token"]

    assert client.post("/api/v1/auth/verify", headers={"Authorization": f"bearer {token}"}).status_code == 200
    assert client.post("/api/v1/auth/verify", headers={"Authorization": token}).status_code == 200


def test_verify_without_header(client):
    response = client.post("/api/v1/auth/verify")

    assert response.status_code == 401
    assert response.json()["detail"] == "Authorization header is required"


def test_verify_garbage_token(client):
    response = client.post("/api/v1/auth/verify", headers={"Authorization": "Bearer junk"})

    assert response.status_code == 401


def test_me_returns_user_record(client, alice, sign_message):
    token = _login(client, alice, sign_message).json()["token"]

    response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["wallet_address"] == alice.address.lower()


def test_me_requires_token(client):
    assert client.get("/api/v1/auth/me").status_code == 401


def test_verify_expired_token(client, alice, secret):
    token = SessionIssuer(secret, now=lambda: datetime(2020, 1, 1, tzinfo=timezone.utc)).mint(alice.address.lower())

    response = client.post("/api/v1/auth/verify", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Token expired"


def test_verify_token_signed_with_other_secret(client, alice):
    token = SessionIssuer("another-secret-key-that-is-long-enough").mint(alice.address.lower())

    response = client.post("/api/v1/auth/verify", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token signature"


def test_protected_route_sees_address_on_request_state(settings, alice, sign_message):
    app = create_app(settings)

    @app.get("/whoami", dependencies=[Depends(get_current_address)])
    def whoami(request: Request):
        return {"address": request.state.address}

    with TestClient(app) as client:
        token = _login(client, alice, sign_message).json()["token"]
        response = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json() == {"address": alice.address.lower()}
