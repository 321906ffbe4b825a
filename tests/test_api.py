import pytest

from zelote.core.config import settings
from zelote.core.security import issue_token_pair


@pytest.fixture()
def secured(monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "test-key")
    monkeypatch.setattr(settings, "UI_USERNAME", "admin")
    monkeypatch.setattr(settings, "UI_PASSWORD", "secret")
    monkeypatch.setattr(settings, "UI_PASSWORD_HASH", "")


LOAN = {
    "borrower_name": "Joao Silva",
    "borrower_ra": "1234",
    "borrower_email": "joao@sj.g12.br",
    "purpose": "Math class",
}


def test_health(client):
    import zelote.main  # noqa: F401  registers /health

    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_chromebook_crud(client):
    created = client.post("/api/v1/chromebooks", json={"model": "Acer C733", "location": "Library"})
    assert created.status_code == 201
    assert created.json()["device_id"] == "CHR001"
    assert created.json()["status"] == "available"

    assert client.get("/api/v1/chromebooks/next-id").json() == {"device_id": "CHR002"}
    assert client.get("/api/v1/chromebooks/chr001").json()["model"] == "Acer C733"

    patched = client.patch("/api/v1/chromebooks/1", json={"status": "maintenance"})
    assert patched.status_code == 200
    assert patched.json()["status"] == "maintenance"

    listed = client.get("/api/v1/chromebooks", params={"status": "maintenance"})
    assert [item["device_id"] for item in listed.json()] == ["CHR001"]

    duplicate = client.post("/api/v1/chromebooks", json={"model": "Acer", "device_id": "CHR001"})
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "conflict"

    assert client.delete("/api/v1/chromebooks/CHR001").status_code == 200
    missing = client.get("/api/v1/chromebooks/CHR001")
    assert missing.status_code == 404
    assert missing.json()["code"] == "not_found"


def test_request_validation_envelope(client):
    response = client.post("/api/v1/chromebooks", json={})
    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "validation_error"
    assert body["details"]["errors"]


def test_loan_and_return_flow(client):
    for _ in range(3):
        client.post("/api/v1/chromebooks", json={"model": "Acer"})

    loan = client.post("/api/v1/loans", json=dict(LOAN, device_id="1"))
    assert loan.status_code == 201
    assert loan.json()["device_id"] == "CHR001"
    assert client.get("/api/v1/chromebooks/CHR001").json()["status"] == "on_loan"

    again = client.post("/api/v1/loans", json=dict(LOAN, device_id="CHR001"))
    assert again.status_code == 409

    wrong_domain = client.post("/api/v1/loans", json=dict(LOAN, device_id="CHR002", borrower_email="joao@gmail.com"))
    assert wrong_domain.status_code == 422

    bulk = client.post("/api/v1/loans/bulk", json=dict(LOAN, device_ids=["CHR002", "CHR003", "CHR001", "CHR009"]))
    assert bulk.status_code == 200
    result = bulk.json()
    assert result["success_count"] == 2
    assert result["error_count"] == 2
    assert {error["device_id"] for error in result["errors"]} == {"CHR001", "CHR009"}

    active = client.get("/api/v1/loans/active").json()
    assert len(active) == 3

    returned = client.post(
        "/api/v1/returns",
        json={"device_id": "CHR001", "returned_by_name": "Joao Silva", "returned_by_email": "joao@sj.g12.br"},
    )
    assert returned.status_code == 201
    assert client.get("/api/v1/chromebooks/CHR001").json()["status"] == "available"

    history = client.get("/api/v1/loans/history", params={"status": "returned"}).json()
    assert history["total"] == 1
    assert history["items"][0]["device_id"] == "CHR001"

    csv_response = client.get("/api/v1/loans/history.csv")
    assert csv_response.status_code == 200
    assert csv_response.headers["content-type"].startswith("text/csv")
    assert csv_response.text.splitlines()[0].startswith("id,device_id,")
    assert len(csv_response.text.splitlines()) == 4


def test_dashboard_endpoints(client):
    client.post("/api/v1/chromebooks", json={"model": "Acer"})
    client.post("/api/v1/loans", json=dict(LOAN, device_id="CHR001"))

    stats = client.get("/api/v1/dashboard/stats").json()
    assert stats["total_active"] == 1
    assert stats["usage_rate"] == 100.0

    assert len(client.get("/api/v1/dashboard/daily").json()) == 7

    pdf = client.get("/api/v1/dashboard/report.pdf")
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.content.startswith(b"%PDF")


def test_student_csv_upload(client):
    content = "nome;ra;e-mail;turma\nJoao Silva;1234;joao@sj.g12.br;7A\n".encode("utf-8")
    response = client.post(
        "/api/v1/people/student/import",
        files={"file": ("students.csv", content, "text/csv")},
    )
    assert response.status_code == 200
    assert response.json() == {"imported": 1, "skipped": 0}

    found = client.get("/api/v1/people/search", params={"q": "joao"}).json()
    assert found[0]["email"] == "joao@sj.g12.br"


def test_missing_credentials_are_rejected(client, secured):
    response = client.get("/api/v1/chromebooks")
    assert response.status_code == 401
    assert response.json()["code"] == "http_error"

    assert client.get("/api/v1/chromebooks", headers={"X-API-Key": "wrong"}).status_code == 401
    assert client.get("/api/v1/chromebooks", headers={"X-API-Key": "test-key"}).status_code == 200


def test_token_exchange_and_bearer(client, secured):
    assert client.post("/api/v1/auth/token", json={"apiKey": "nope"}).status_code == 401

    tokens = client.post("/api/v1/auth/token", json={"apiKey": "test-key"}).json()
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}
    me = client.get("/api/v1/auth/me", headers=headers).json()
    assert me == {"principal": "jwt:api-client", "scheme": "jwt"}

    refreshed = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 200

    # Refresh tokens are not accepted as access tokens.
    as_access = {"Authorization": f"Bearer {tokens['refresh_token']}"}
    assert client.get("/api/v1/auth/me", headers=as_access).status_code == 401


def test_session_login(client, secured):
    assert client.post("/api/v1/auth/login", json={"username": "admin", "password": "bad"}).status_code == 401

    login = client.post("/api/v1/auth/login", json={"username": "admin", "password": "secret"})
    assert login.status_code == 200
    assert client.get("/api/v1/auth/me").json() == {"principal": "ui:admin", "scheme": "session"}

    client.post("/api/v1/auth/logout")
    assert client.get("/api/v1/auth/me").status_code == 401


def test_issued_token_pair_is_usable(client, secured):
    pair = issue_token_pair(subject="kiosk")
    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {pair.access_token}"})
    assert me.json()["principal"] == "jwt:kiosk"
