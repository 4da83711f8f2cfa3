from datetime import date, datetime, timedelta, timezone

import pytest

from factories import NOW, make_ticket
from helpdesk.errors import ValidationError
from helpdesk.tickets.queries import TicketFilter, filter_tickets, sort_tickets, visible_tickets
from helpdesk.tickets.state import Category, Priority, TicketStatus
from helpdesk.users import permissions
from helpdesk.users.models import Role
from helpdesk.users.permissions import Permission


@pytest.fixture
def tickets():
    return [
        make_ticket("TKT-20240301-001", status=TicketStatus.NEW, priority=Priority.HIGH,
                    created_at=datetime(2024, 3, 1, 8, tzinfo=timezone.utc)),
        make_ticket("TKT-20240302-002", status=TicketStatus.RESOLVED, priority=Priority.LOW,
                    category=Category.SOFTWARE, subcategory="Email/Outlook", location="Library",
                    description="Outlook keeps crashing", submitted_by="asmith",
                    created_at=datetime(2024, 3, 2, 23, 59, 59, tzinfo=timezone.utc)),
        make_ticket("TKT-20240303-003", status=TicketStatus.NEW, priority=Priority.LOW,
                    created_at=datetime(2024, 3, 3, 12, tzinfo=timezone.utc)),
        make_ticket("TKT-20240304-004", status=TicketStatus.IN_PROGRESS, priority=Priority.HIGH,
                    location="Computer Lab A", created_at=datetime(2024, 3, 4, 0, 0, tzinfo=timezone.utc)),
    ]


def _ids(tickets):
    return [ticket.id for ticket in tickets]


def test_empty_filter_returns_everything(tickets):
    assert _ids(filter_tickets(tickets, TicketFilter())) == _ids(tickets)
    assert TicketFilter().is_empty()


def test_filters_combine_with_and(tickets):
    result = filter_tickets(tickets, TicketFilter(status=TicketStatus.NEW, priority=Priority.LOW))
    assert _ids(result) == ["TKT-20240303-003"]


def test_filter_order_does_not_matter(tickets):
    by_status = filter_tickets(tickets, TicketFilter(status=TicketStatus.NEW))
    status_then_priority = filter_tickets(by_status, TicketFilter(priority=Priority.HIGH))
    by_priority = filter_tickets(tickets, TicketFilter(priority=Priority.HIGH))
    priority_then_status = filter_tickets(by_priority, TicketFilter(status=TicketStatus.NEW))
    assert _ids(status_then_priority) == _ids(priority_then_status) == ["TKT-20240301-001"]


def test_category_location_and_submitter_filters(tickets):
    assert _ids(filter_tickets(tickets, TicketFilter(category=Category.SOFTWARE))) == ["TKT-20240302-002"]
    assert _ids(filter_tickets(tickets, TicketFilter(location="Computer Lab A"))) == ["TKT-20240304-004"]
    assert _ids(filter_tickets(tickets, TicketFilter(submitted_by="asmith"))) == ["TKT-20240302-002"]


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("outlook", ["TKT-20240302-002"]),  # description and subcategory
        ("ASMITH", ["TKT-20240302-002"]),  # submitter
        ("-003", ["TKT-20240303-003"]),  # id
        ("email/", ["TKT-20240302-002"]),  # subcategory only
        ("nothing-matches", []),
    ],
)
def test_search_text_matches_any_of_four_fields(tickets, text, expected):
    assert _ids(filter_tickets(tickets, TicketFilter(search_text=text))) == expected


def test_date_bounds_are_inclusive_and_date_to_covers_whole_day(tickets):
    result = filter_tickets(tickets, TicketFilter(date_from=date(2024, 3, 2), date_to=date(2024, 3, 3)))
    assert _ids(result) == ["TKT-20240302-002", "TKT-20240303-003"]


def test_date_to_excludes_next_day(tickets):
    result = filter_tickets(tickets, TicketFilter(date_to=date(2024, 3, 3)))
    assert "TKT-20240304-004" not in _ids(result)


def test_sort_by_created_at_descending_by_default(tickets):
    assert _ids(sort_tickets(tickets)) == list(reversed(_ids(tickets)))


def test_sort_descending_then_ascending_is_reversed(tickets):
    descending = sort_tickets(tickets, "created_at", descending=True)
    ascending = sort_tickets(tickets, "createdAt", descending=False)
    assert _ids(ascending) == list(reversed(_ids(descending)))


def test_sort_is_stable_for_ties(tickets):
    by_priority = sort_tickets(tickets, "priority", descending=False)
    assert _ids(by_priority) == [
        "TKT-20240301-001",
        "TKT-20240304-004",
        "TKT-20240302-002",
        "TKT-20240303-003",
    ]
    same_day = [make_ticket(f"T-{index}", created_at=NOW) for index in range(5)]
    assert _ids(sort_tickets(same_day, descending=True)) == _ids(same_day)


def test_sort_places_missing_values_first_ascending():
    resolved = make_ticket("A", resolved_at=NOW)
    unresolved = make_ticket("B")
    assert _ids(sort_tickets([resolved, unresolved], "resolved_at", descending=False)) == ["B", "A"]


def test_sort_rejects_unknown_field(tickets):
    with pytest.raises(ValidationError):
        sort_tickets(tickets, "colour")


def test_visible_tickets_scopes_teachers_to_their_own(tickets, teacher, admin, principal_user):
    assert "TKT-20240302-002" not in _ids(visible_tickets(tickets, teacher))
    assert len(visible_tickets(tickets, teacher)) == 3
    assert len(visible_tickets(tickets, admin)) == 4
    assert len(visible_tickets(tickets, principal_user)) == 4


def test_filter_accepts_timestamps_just_before_midnight():
    late = make_ticket("LATE", created_at=datetime(2024, 3, 4, 23, 59, 59, 999000, tzinfo=timezone.utc))
    too_late = make_ticket("NEXT", created_at=datetime(2024, 3, 4, tzinfo=timezone.utc) + timedelta(days=1))
    result = filter_tickets([late, too_late], TicketFilter(date_to=date(2024, 3, 4)))
    assert _ids(result) == ["LATE"]


def test_visible_tickets_follows_view_all_permission(tickets, admin, monkeypatch):
    monkeypatch.setitem(
        permissions._GRANTS,
        Permission.VIEW_ALL_TICKETS,
        {Role.TEACHER: False, Role.ADMIN: False, Role.PRINCIPAL: True},
    )
    assert visible_tickets(tickets, admin) == []
