from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError

from portfolio_api.core.security import utcnow
from portfolio_api.models.access_request import AccessRequest, AccessStatus


def request_access(client, email="a@x.com", otp="123456", project="demo", name="Ann", **extra):
    payload = {
        "visitor_name": name,
        "visitor_email": email,
        "project_name": project,
        "project_type": "live",
        "redirect_url": "https://example.com/demo",
        "otp_code": otp,
    }
    payload.update(extra)
    return client.post("/api/access-requests", json=payload)


def check(client, email="a@x.com", project="demo"):
    return client.post("/api/check-session", json={"visitor_email": email, "project_name": project}).json()


def verify(client, email="a@x.com", otp="123456"):
    return client.patch("/api/access-requests/verify", json={"visitor_email": email, "otp_code": otp})


def test_full_visitor_flow(client, admin_headers):
    result = check(client)
    assert result["success"] is True
    assert result["hasActiveSession"] is False

    response = request_access(client)
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert isinstance(response.json()["id"], int)

    # Pending requests do not open a session
    assert check(client)["hasActiveSession"] is False

    response = verify(client)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert "7 days" in body["message"]
    assert body["expires_at"]

    result = check(client)
    assert result["hasActiveSession"] is True
    assert result["visitor_name"] == "Ann"
    assert result["redirect_url"] == "https://example.com/demo"

    response = client.patch(
        "/api/access-requests/revoke", json={"visitor_email": "a@x.com"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["count"] == 1

    assert check(client)["hasActiveSession"] is False


def test_session_expiry_is_seven_days_from_verification(client, db):
    request_access(client)
    before = utcnow()
    verify(client)

    row = db.query(AccessRequest).filter(AccessRequest.visitor_email == "a@x.com").one()
    assert row.status_id == AccessStatus.ACTIVE
    assert row.is_verified is True
    assert row.verified_at >= before - timedelta(seconds=1)
    assert row.expires_at - row.verified_at == timedelta(days=7)
    assert row.last_access_at == row.verified_at


def test_check_session_matches_project_by_substring(client):
    request_access(client, project="Demo Dashboard")
    verify(client)

    assert check(client, project="Dashboard")["hasActiveSession"] is True
    assert check(client, project="Other App")["hasActiveSession"] is False


def test_check_session_treats_wildcards_literally(client):
    request_access(client, project="demo-app")
    verify(client)

    assert check(client, project="demo-app")["hasActiveSession"] is True
    assert check(client, project="d_mo")["hasActiveSession"] is False
    assert check(client, project="d%p")["hasActiveSession"] is False


def test_check_session_store_error_means_otp_required(client, monkeypatch):
    async def broken(*args, **kwargs):
        raise SQLAlchemyError("database is locked")

    monkeypatch.setattr("portfolio_api.api.access.find_active_session", broken)

    response = client.post("/api/check-session", json={"visitor_email": "a@x.com", "project_name": "demo"})
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "hasActiveSession": False,
        "message": "Session check failed",
        "redirect_url": None,
        "visitor_name": None,
    }


def test_check_session_without_email(client):
    result = client.post("/api/check-session", json={"project_name": "demo"}).json()
    assert result["hasActiveSession"] is False
    assert result["message"] == "No email provided"


def test_check_session_ignores_expired_active_row(client, db):
    request_access(client)
    verify(client)

    row = db.query(AccessRequest).one()
    row.expires_at = utcnow() - timedelta(minutes=1)
    db.commit()

    assert check(client)["hasActiveSession"] is False


def test_check_session_touches_last_access(client, db):
    request_access(client)
    verify(client)
    row = db.query(AccessRequest).one()
    row.last_access_at = datetime(2020, 1, 1)
    db.commit()

    assert check(client)["hasActiveSession"] is True

    db.expire_all()
    assert db.query(AccessRequest).one().last_access_at > datetime(2020, 1, 1)


def test_create_requires_fields(client):
    response = client.post("/api/access-requests", json={"visitor_email": "a@x.com", "project_name": "demo"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Missing required fields"}


def test_create_defaults_local_time_and_timezone(client, db):
    request_access(client)
    row = db.query(AccessRequest).one()
    assert row.client_timezone == "Asia/Kolkata"
    assert row.local_time
    assert row.status_id == AccessStatus.INACTIVE
    assert row.is_verified is False


def test_create_keeps_client_supplied_time(client, db):
    request_access(client, local_time="2026-01-17 00:36:42 IST", client_timezone="Asia/Kolkata")
    row = db.query(AccessRequest).one()
    assert row.local_time == "2026-01-17 00:36:42 IST"


def test_verify_with_wrong_otp(client, db):
    request_access(client)
    response = verify(client, otp="000000")
    assert response.status_code == 404
    assert response.json()["success"] is False
    assert db.query(AccessRequest).one().status_id == AccessStatus.INACTIVE


def test_verify_requires_email_and_otp(client):
    response = client.patch("/api/access-requests/verify", json={"visitor_email": "a@x.com"})
    assert response.status_code == 400
    assert response.json()["message"] == "Missing email or OTP"


def test_verify_activates_only_latest_matching_request(client, db):
    request_access(client, project="first")
    request_access(client, project="second")

    assert verify(client).status_code == 200

    rows = {row.project_name: row for row in db.query(AccessRequest).all()}
    assert rows["second"].status_id == AccessStatus.ACTIVE
    assert rows["first"].status_id == AccessStatus.INACTIVE

    # The older request can still be verified on its own
    assert verify(client).status_code == 200
    db.expire_all()
    assert db.query(AccessRequest).filter(AccessRequest.project_name == "first").one().is_verified is True


def test_verify_same_otp_twice_fails(client):
    request_access(client)
    assert verify(client).status_code == 200
    assert verify(client).status_code == 404


def test_reset_all(client, admin_headers):
    for email in ("a@x.com", "b@x.com"):
        request_access(client, email=email)
        verify(client, email=email)

    response = client.post("/api/access-requests/reset-all", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["count"] == 2

    assert check(client, email="a@x.com")["hasActiveSession"] is False
    assert check(client, email="b@x.com")["hasActiveSession"] is False


def test_revoke_touches_only_that_email(client, admin_headers):
    for email in ("a@x.com", "b@x.com"):
        request_access(client, email=email)
        verify(client, email=email)

    response = client.patch(
        "/api/access-requests/revoke", json={"visitor_email": "a@x.com"}, headers=admin_headers
    )
    assert response.json()["count"] == 1
    assert check(client, email="a@x.com")["hasActiveSession"] is False
    assert check(client, email="b@x.com")["hasActiveSession"] is True


def test_revoke_requires_email(client, admin_headers):
    response = client.patch("/api/access-requests/revoke", json={}, headers=admin_headers)
    assert response.status_code == 400


def test_revoke_unknown_email_counts_zero(client, admin_headers):
    response = client.patch(
        "/api/access-requests/revoke", json={"visitor_email": "nobody@x.com"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["count"] == 0


def test_list_and_stats(client, admin_headers):
    request_access(client, email="a@x.com")
    request_access(client, email="b@x.com", otp="654321")
    verify(client, email="a@x.com")

    response = client.get("/api/access-requests", headers=admin_headers)
    assert response.status_code == 200
    rows = response.json()["data"]
    assert len(rows) == 2
    assert all("otp_code" not in row for row in rows)
    by_email = {row["visitor_email"]: row for row in rows}
    assert by_email["a@x.com"]["status"] == "ACTIVE"
    assert by_email["b@x.com"]["status"] == "INACTIVE"

    stats = client.get("/api/stats", headers=admin_headers).json()["data"]
    assert stats == {
        "total_requests": 2,
        "verified_requests": 1,
        "active_sessions": 1,
        "inactive_sessions": 1,
    }


def test_admin_routes_need_token(client):
    assert client.get("/api/access-requests").status_code == 401
    assert client.get("/api/stats").status_code == 401
    assert client.post("/api/access-requests/reset-all").status_code == 401
    response = client.patch("/api/access-requests/revoke", json={"visitor_email": "a@x.com"})
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Not authenticated"}
