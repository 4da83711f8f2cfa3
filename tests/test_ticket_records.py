from datetime import datetime, timezone

import pytest

from factories import NOW, make_ticket
from helpdesk.errors import ValidationError
from helpdesk.tickets import lifecycle
from helpdesk.tickets.records import (
    build_export_bundle,
    parse_import_bundle,
    ticket_from_record,
    ticket_to_record,
    tickets_to_csv,
    user_to_record,
)
from helpdesk.tickets.state import TicketStatus
from helpdesk.users.models import Role, User


def test_ticket_record_uses_camel_case_and_iso_timestamps(admin):
    ticket = lifecycle.assign(make_ticket(), admin, "admin2", now=NOW)

    record = ticket_to_record(ticket)

    assert record["submittedBy"] == "jdoe"
    assert record["assignedTo"] == "admin2"
    assert record["status"] == "Assigned"
    assert record["createdAt"].startswith("2024-03-04T09:30:00")
    assert record["resolvedAt"] is None
    assert record["history"][1]["action"] == "Status changed to Assigned"
    assert ticket_from_record(record) == ticket


def test_legacy_record_without_history_or_comments_defaults_to_empty():
    record = {
        "id": "TKT-20240101-042",
        "status": "In Progress",
        "priority": "Critical",
        "category": "Software",
        "subcategory": "Browser",
        "location": "Library",
        "description": "Pop-ups everywhere",
        "submittedBy": "jdoe",
        "createdAt": "2024-01-01T10:00:00.000Z",
        "comments": None,
    }
    ticket = ticket_from_record(record)
    assert ticket.status == TicketStatus.IN_PROGRESS
    assert ticket.history == ()
    assert ticket.comments == ()
    assert ticket.created_at == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)
    assert ticket.version == 0


def test_naive_timestamps_are_read_as_utc():
    record = ticket_to_record(make_ticket())
    record["createdAt"] = "2024-03-04T09:30:00"
    assert ticket_from_record(record).created_at.tzinfo is not None


def test_malformed_record_raises_validation_error():
    with pytest.raises(ValidationError):
        ticket_from_record({"id": "X", "status": "Lost"})


def test_csv_export_columns_and_quoting():
    ticket = make_ticket(description='Screen says "no signal", again', resolved_at=NOW)
    csv_text = tickets_to_csv([ticket, make_ticket("TKT-2", location="Lab, east wing")])
    lines = csv_text.split("\n")

    assert lines[0] == (
        "ID,Status,Priority,Category,Subcategory,Location,Description,Submitted By,Assigned To,Created,Resolved"
    )
    assert lines[1] == (
        'TKT-20240304-001,New,Medium,Hardware,Monitor,Room 101,"Screen says ""no signal"", again",'
        "jdoe,,2024-03-04T09:30:00Z,2024-03-04T09:30:00Z"
    )
    assert lines[2].startswith('TKT-2,New,Medium,Hardware,Monitor,"Lab, east wing","No display",jdoe,,')
    assert lines[2].endswith(",")


def test_export_bundle_contains_users_tickets_and_timestamp():
    user = User("jdoe", "password", "John Doe", Role.TEACHER)
    bundle = build_export_bundle([user], [make_ticket()], now=NOW)
    assert bundle["users"] == [user_to_record(user)]
    assert bundle["users"][0]["role"] == "teacher"
    assert bundle["tickets"][0]["id"] == "TKT-20240304-001"
    assert bundle["exportedAt"].startswith("2024-03-04T09:30:00")


def test_import_bundle_allows_partial_payloads():
    ticket_only = {"tickets": [ticket_to_record(make_ticket())]}
    users, tickets = parse_import_bundle(ticket_only)
    assert users is None
    assert [ticket.id for ticket in tickets] == ["TKT-20240304-001"]

    users, tickets = parse_import_bundle({"users": [{"username": "a", "password": "p", "name": "A", "role": "admin"}]})
    assert tickets is None
    assert users[0].role is Role.ADMIN

    assert parse_import_bundle({}) == (None, None)


def test_import_bundle_rejects_non_objects():
    with pytest.raises(ValidationError):
        parse_import_bundle(["not", "a", "bundle"])
    with pytest.raises(ValidationError):
        parse_import_bundle({"users": [{"username": "a", "role": "janitor"}]})


def test_null_text_fields_in_legacy_records_default_to_empty():
    record = ticket_to_record(make_ticket())
    record.update(subcategory=None, location=None, description=None)

    ticket = ticket_from_record(record)

    assert (ticket.subcategory, ticket.location, ticket.description) == ("", "", "")
