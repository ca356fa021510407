import asyncio
import threading
from unittest import mock

from portfolio_api.models.contact_message import ContactMessage
from portfolio_api.utils.email import send_reply_email


def send_message(client, name="Bob", email="bob@x.com", message="Hello there", **extra):
    payload = {"sender_name": name, "sender_email": email, "message": message}
    payload.update(extra)
    return client.post("/api/contact-messages", json=payload)


def test_create_message(client, db):
    response = send_message(client, subject="Hiring")
    assert response.status_code == 200
    assert response.json()["success"] is True

    row = db.query(ContactMessage).one()
    assert row.subject == "Hiring"
    assert row.is_read is False
    assert row.is_replied is False
    assert row.client_timezone == "Asia/Kolkata"


def test_create_message_default_subject(client, db):
    send_message(client)
    assert db.query(ContactMessage).one().subject == "No Subject"


def test_create_message_missing_fields(client):
    response = client.post("/api/contact-messages", json={"sender_name": "Bob", "message": "hi"})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_list_newest_first(client, admin_headers):
    send_message(client, message="first")
    send_message(client, message="second")

    response = client.get("/api/contact-messages", headers=admin_headers)
    assert response.status_code == 200
    messages = [m["message"] for m in response.json()["data"]]
    assert messages == ["second", "first"]


def test_read_replied_and_stats(client, admin_headers):
    first = send_message(client).json()["id"]
    send_message(client, message="another")

    assert client.get("/api/contact-messages/unread", headers=admin_headers).json()["unread_count"] == 2

    response = client.patch(f"/api/contact-messages/{first}/read", headers=admin_headers)
    assert response.status_code == 200
    response = client.patch(f"/api/contact-messages/{first}/replied", headers=admin_headers)
    assert response.status_code == 200

    assert client.get("/api/contact-messages/unread", headers=admin_headers).json()["unread_count"] == 1
    stats = client.get("/api/contact-messages/stats", headers=admin_headers).json()["data"]
    assert stats == {
        "total_messages": 2,
        "unread_messages": 1,
        "read_messages": 1,
        "replied_messages": 1,
    }

    data = client.get("/api/contact-messages", headers=admin_headers).json()["data"]
    marked = next(m for m in data if m["id"] == first)
    assert marked["read_at"] is not None
    assert marked["replied_at"] is not None


def test_unknown_message_is_404(client, admin_headers):
    assert client.patch("/api/contact-messages/999/read", headers=admin_headers).status_code == 404
    assert client.patch("/api/contact-messages/999/replied", headers=admin_headers).status_code == 404
    assert client.delete("/api/contact-messages/999", headers=admin_headers).status_code == 404


def test_delete_message(client, admin_headers, db):
    message_id = send_message(client).json()["id"]
    response = client.delete(f"/api/contact-messages/{message_id}", headers=admin_headers)
    assert response.status_code == 200
    assert db.query(ContactMessage).count() == 0


def test_admin_routes_need_token(client):
    assert client.get("/api/contact-messages").status_code == 401
    assert client.get("/api/contact-messages/unread").status_code == 401
    assert client.delete("/api/contact-messages/1").status_code == 401


def test_send_reply_demo_mode(client, admin_headers):
    response = client.post(
        "/api/send-reply",
        json={
            "to_email": "bob@x.com",
            "to_name": "Bob",
            "subject": "Hiring",
            "original_message": "Hello there",
            "reply_message": "Thanks!",
        },
        headers=admin_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["demo_mode"] is True
    assert body["replyDetails"] == {"to": "Bob <bob@x.com>", "subject": "Re: Hiring", "body": "Thanks!"}


def test_send_reply_missing_fields(client, admin_headers):
    response = client.post("/api/send-reply", json={"to_email": "bob@x.com"}, headers=admin_headers)
    assert response.status_code == 400


def test_send_reply_over_smtp(client, admin_headers):
    settings = client.app.state.settings
    configured = settings.model_copy(update={
        "SMTP_HOST": "smtp.example.com",
        "SMTP_USERNAME": "user",
        "SMTP_PASSWORD": "pass",
        "EMAIL_FROM": "owner@example.com",
    })
    client.app.state.settings = configured

    with mock.patch("portfolio_api.utils.email.smtplib.SMTP") as smtp:
        response = client.post(
            "/api/send-reply",
            json={"to_email": "bob@x.com", "original_message": "Hello", "reply_message": "Hi Bob"},
            headers=admin_headers,
        )

    assert response.status_code == 200
    assert response.json()["demo_mode"] is False
    assert response.json()["replyDetails"]["subject"] == "Re: Your Message"
    server = smtp.return_value.__enter__.return_value
    server.login.assert_called_once_with("user", "pass")
    assert server.sendmail.call_args[0][:2] == ("owner@example.com", "bob@x.com")


def test_send_reply_smtp_failure(client, admin_headers):
    client.app.state.settings = client.app.state.settings.model_copy(update={
        "SMTP_HOST": "smtp.example.com",
        "SMTP_USERNAME": "user",
        "SMTP_PASSWORD": "pass",
        "EMAIL_FROM": "owner@example.com",
    })

    with mock.patch("portfolio_api.utils.email.smtplib.SMTP", side_effect=OSError("refused")):
        response = client.post(
            "/api/send-reply",
            json={"to_email": "bob@x.com", "original_message": "Hello", "reply_message": "Hi Bob"},
            headers=admin_headers,
        )

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Failed to send reply"}


def test_smtp_send_runs_off_the_event_loop(settings):
    configured = settings.model_copy(update={
        "SMTP_HOST": "smtp.example.com",
        "SMTP_USERNAME": "user",
        "SMTP_PASSWORD": "pass",
        "EMAIL_FROM": "owner@example.com",
    })
    smtp_threads = []

    def connect(*args, **kwargs):
        smtp_threads.append(threading.get_ident())
        return mock.MagicMock()

    with mock.patch("portfolio_api.utils.email.smtplib.SMTP", side_effect=connect):
        result = asyncio.run(send_reply_email(
            configured,
            to_email="bob@x.com",
            to_name="Bob",
            subject="Hiring",
            original_message="Hello",
            reply_message="Hi Bob",
        ))

    assert result["sent"] is True
    assert smtp_threads and smtp_threads[0] != threading.get_ident()
