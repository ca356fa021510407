from datetime import datetime

import pytest

from portfolio_api.client.admin import AdminConsole, AdminClientError
from portfolio_api.models.contact_message import ContactMessage


def signed_in_console(client):
    console = AdminConsole(client)
    console.signup("owner", "owner@example.com", "s3cret-pass", "s3cret-pass")
    console.verify_signup(console.pending_signup["otp"])
    console.login("owner", "s3cret-pass")
    return console


def test_signup_validation_is_local(client):
    console = AdminConsole(client)
    with pytest.raises(AdminClientError, match="Passwords do not match"):
        console.signup("owner", "owner@example.com", "s3cret-pass", "other-pass")
    with pytest.raises(AdminClientError, match="at least 6"):
        console.signup("owner", "owner@example.com", "123", "123")
    with pytest.raises(AdminClientError, match="fill in all fields"):
        console.signup("", "owner@example.com", "s3cret-pass", "s3cret-pass")


def test_login_flow(client):
    console = signed_in_console(client)
    assert console.logged_in
    assert console.user["username"] == "owner"
    assert console.pending_signup is None

    console.logout()
    assert not console.logged_in
    with pytest.raises(AdminClientError) as excinfo:
        console.load_tables()
    assert excinfo.value.status_code == 401


def test_login_failure_message(client):
    signed_in_console(client)
    console = AdminConsole(client)
    with pytest.raises(AdminClientError, match="Invalid username or password"):
        console.login("owner", "wrong-pass")


def test_dashboard_loads_first_table(client):
    client.post("/api/access-requests", json={
        "visitor_name": "Ann", "visitor_email": "a@x.com", "project_name": "demo", "otp_code": "123456",
    })
    console = signed_in_console(client)
    console.load_dashboard()

    assert console.selected_table == "visitor_access_requests"
    assert console.selected_table_display_name == "Access Requests"
    assert len(console.rows) == 1
    assert console.stats["total_access_requests"] == 1


def test_toggle_and_delete_access_request(client):
    client.post("/api/access-requests", json={
        "visitor_name": "Ann", "visitor_email": "a@x.com", "project_name": "demo", "otp_code": "123456",
    })
    console = signed_in_console(client)
    console.load_tables()
    row_id = console.rows[0]["id"]

    assert console.set_record_active(row_id, True)["status_id"] == 1
    assert console.stats["active_sessions"] == 1
    assert console.set_record_active(row_id, False)["status_id"] == 2

    console.delete_record(row_id)
    assert console.rows == []


def test_view_and_reply_to_message(client, db):
    client.post("/api/contact-messages", json={
        "sender_name": "Bob", "sender_email": "bob@x.com", "subject": "Hiring", "message": "Hello",
    })
    console = signed_in_console(client)
    console.load_tables()
    console.select_table("contact_messages")
    row = console.rows[0]

    console.view_message(row)
    details = console.send_reply(row, "Thanks Bob")
    assert details == {"to": "Bob <bob@x.com>", "subject": "Re: Hiring", "body": "Thanks Bob"}

    message = db.query(ContactMessage).one()
    assert message.is_read is True
    assert message.is_replied is True

    with pytest.raises(AdminClientError, match="enter a reply"):
        console.send_reply(row, "   ")


def test_format_cell_value():
    assert AdminConsole.format_cell_value(None, "subject") == "-"
    assert AdminConsole.format_cell_value(True, "is_read") == "Yes"
    assert AdminConsole.format_cell_value("2026-01-17T00:36:42", "created_at") == "17 Jan 2026, 00:36"
    assert AdminConsole.format_cell_value(datetime(2026, 1, 17, 9, 5), "expires_at") == "17 Jan 2026, 09:05"
    assert AdminConsole.format_cell_value("x" * 60, "message") == "x" * 50 + "..."
    assert AdminConsole.format_cell_value(7, "id") == "7"
