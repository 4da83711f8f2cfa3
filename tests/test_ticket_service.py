from __future__ import annotations

import re
from dataclasses import replace

import pytest

from factories import NOW
from helpdesk.errors import (
    ConflictError,
    InvalidTransitionError,
    TicketNotFoundError,
    UnauthorizedError,
    UserNotFoundError,
    ValidationError,
)
from helpdesk.storage.memory import InMemoryRecordStore
from helpdesk.tickets.queries import TicketFilter
from helpdesk.tickets.repository import TicketRepository
from helpdesk.tickets.service import TicketService
from helpdesk.tickets.state import Priority, TicketStatus
from helpdesk.users.repository import UserRepository
from helpdesk.users.service import UserDirectory


async def _submit(service, teacher, **overrides):
    values = {
        "category": "Hardware",
        "subcategory": "Projector/Display",
        "location": "Room 204",
        "priority": "High",
        "description": "Projector will not power on",
    }
    values.update(overrides)
    return await service.submit_ticket(teacher, **values)


@pytest.mark.asyncio
async def test_submit_ticket_creates_new_ticket(service, teacher):
    ticket = await _submit(service, teacher)

    assert re.fullmatch(r"TKT-20240304-\d{3}", ticket.id)
    assert ticket.status == TicketStatus.NEW
    assert ticket.priority == Priority.HIGH
    assert ticket.submitted_by == "jdoe"
    assert ticket.created_at == NOW
    assert [entry.action for entry in ticket.history] == ["Created"]
    assert await service.repository.get(ticket.id) == ticket


@pytest.mark.asyncio
async def test_submit_ticket_reports_all_missing_fields(service, teacher):
    with pytest.raises(ValidationError) as exc:
        await _submit(service, teacher, location="", description=None)

    assert exc.value.missing_fields == ("location", "description")
    assert await service.repository.list() == []


@pytest.mark.asyncio
async def test_only_teachers_submit_tickets(service, admin):
    with pytest.raises(UnauthorizedError):
        await _submit(service, admin)


@pytest.mark.asyncio
async def test_assign_records_assignee_display_name(service, teacher, admin):
    ticket = await _submit(service, teacher)

    assigned = await service.assign(ticket.id, admin, "admin2")

    assert assigned.status == TicketStatus.ASSIGNED
    assert assigned.assigned_to == "admin2"
    assert len(assigned.history) == 2
    assert assigned.history[-1].note == "Assigned to Second IT Admin"
    assert assigned.version == ticket.version + 1


@pytest.mark.asyncio
async def test_assign_rejects_unknown_or_non_admin_assignee(service, teacher, admin):
    ticket = await _submit(service, teacher)

    with pytest.raises(UserNotFoundError):
        await service.assign(ticket.id, admin, "ghost")
    with pytest.raises(ValidationError):
        await service.assign(ticket.id, admin, "jdoe")
    assert (await service.repository.get(ticket.id)).status == TicketStatus.NEW


@pytest.mark.asyncio
async def test_teacher_cannot_assign_or_change_status(service, teacher):
    ticket = await _submit(service, teacher)

    with pytest.raises(UnauthorizedError):
        await service.assign(ticket.id, teacher, "admin2")
    with pytest.raises(UnauthorizedError):
        await service.change_status(ticket.id, teacher, TicketStatus.IN_PROGRESS)


@pytest.mark.asyncio
async def test_invalid_transition_leaves_ticket_unchanged(service, teacher, admin):
    ticket = await _submit(service, teacher)
    assigned = await service.assign(ticket.id, admin, "admin2")

    with pytest.raises(InvalidTransitionError):
        await service.change_status(ticket.id, admin, TicketStatus.CLOSED)

    assert await service.repository.get(ticket.id) == assigned


@pytest.mark.asyncio
async def test_full_lifecycle_through_submitter_close(service, teacher, admin):
    ticket = await _submit(service, teacher)
    await service.assign(ticket.id, admin, "admin")
    await service.change_status(ticket.id, admin, TicketStatus.IN_PROGRESS)
    resolved = await service.change_status(ticket.id, admin, TicketStatus.RESOLVED, "Replaced the lamp")

    assert resolved.resolved_at == NOW
    assert resolved.history[-1].note == "Replaced the lamp"

    closed = await service.close(ticket.id, teacher)
    assert closed.status == TicketStatus.CLOSED
    assert closed.closed_at == NOW

    with pytest.raises(InvalidTransitionError):
        await service.reopen(ticket.id, teacher)


@pytest.mark.asyncio
async def test_submitter_reopen_allows_reassignment(service, teacher, admin):
    ticket = await _submit(service, teacher)
    await service.assign(ticket.id, admin, "admin")
    await service.change_status(ticket.id, admin, TicketStatus.IN_PROGRESS)
    await service.change_status(ticket.id, admin, TicketStatus.RESOLVED)

    reopened = await service.reopen(ticket.id, teacher, "Still broken")

    assert reopened.status == TicketStatus.REOPENED
    assert reopened.resolved_at is None
    reassigned = await service.assign(ticket.id, admin, "admin2")
    assert reassigned.assigned_to == "admin2"


@pytest.mark.asyncio
async def test_other_teacher_cannot_see_or_close_ticket(service, teacher, other_teacher, admin):
    ticket = await _submit(service, teacher)
    await service.assign(ticket.id, admin, "admin")
    await service.change_status(ticket.id, admin, TicketStatus.IN_PROGRESS)
    await service.change_status(ticket.id, admin, TicketStatus.RESOLVED)

    with pytest.raises(TicketNotFoundError):
        await service.get_ticket(other_teacher, ticket.id)
    assert await service.list_tickets(other_teacher) == []
    with pytest.raises(UnauthorizedError):
        await service.close(ticket.id, other_teacher)


@pytest.mark.asyncio
async def test_unknown_ticket_raises_not_found(service, admin):
    with pytest.raises(TicketNotFoundError):
        await service.get_ticket(admin, "TKT-19990101-001")
    with pytest.raises(TicketNotFoundError):
        await service.change_status("TKT-19990101-001", admin, TicketStatus.ASSIGNED)


@pytest.mark.asyncio
async def test_list_tickets_filters_and_sorts(service, teacher, admin):
    first = await _submit(service, teacher, priority="Low")
    second = await _submit(service, teacher, priority="Critical", category="Software", subcategory="Email/Outlook")

    software = await service.list_tickets(admin, TicketFilter(category="Software"))
    assert [ticket.id for ticket in software] == [second.id]

    by_priority = await service.list_tickets(admin, sort_by="priority", descending=False)
    assert {ticket.id for ticket in by_priority} == {first.id, second.id}


@pytest.mark.asyncio
async def test_comments_by_submitter_and_admin(service, teacher, other_teacher, admin):
    ticket = await _submit(service, teacher)

    await service.add_comment(ticket.id, teacher, "  It started this morning  ")
    updated = await service.add_comment(ticket.id, admin, "On my way")

    assert [(comment.by, comment.text) for comment in updated.comments] == [
        ("jdoe", "It started this morning"),
        ("admin", "On my way"),
    ]
    with pytest.raises(UnauthorizedError):
        await service.add_comment(ticket.id, other_teacher, "Me too")
    with pytest.raises(ValidationError):
        await service.add_comment(ticket.id, teacher, "   ")


@pytest.mark.asyncio
async def test_stale_write_raises_conflict(service, teacher):
    ticket = await _submit(service, teacher)
    await service.repository.save(replace(ticket, version=ticket.version + 1), expected_version=ticket.version)

    with pytest.raises(ConflictError):
        await service.repository.save(replace(ticket, version=ticket.version + 1), expected_version=ticket.version)


@pytest.mark.asyncio
async def test_analytics_permissions(service, teacher, admin, principal_user):
    await _submit(service, teacher)

    report = await service.analytics(principal_user)
    assert report.total == 1
    assert report.open == 1
    with pytest.raises(UnauthorizedError):
        await service.analytics(teacher)
    assert (await service.export_csv(admin)).count("\n") == 1


@pytest.mark.asyncio
async def test_dashboard_is_scoped_to_the_caller(service, teacher, other_teacher):
    await _submit(service, teacher, priority="Critical")

    assert (await service.dashboard(teacher)).critical_open == 1
    assert (await service.dashboard(other_teacher)).total == 0


@pytest.mark.asyncio
async def test_export_then_import_into_fresh_store(service, teacher, admin):
    ticket = await _submit(service, teacher)
    bundle = await service.export_bundle(admin)

    store = InMemoryRecordStore()
    directory = UserDirectory(UserRepository(store))
    fresh = TicketService(repository=TicketRepository(store), users=directory, clock=lambda: NOW)
    summary = await fresh.import_bundle(admin, bundle)

    assert summary.tickets == 1
    assert summary.users == 4
    assert await fresh.repository.get(ticket.id) == ticket
    assert (await directory.get_user("admin2")).name == "Second IT Admin"


@pytest.mark.asyncio
async def test_partial_import_leaves_users_untouched(service, admin):
    summary = await service.import_bundle(admin, {"tickets": []})

    assert summary.users is None
    assert summary.tickets == 0
    assert len(await service.users.repository.list()) == 4


@pytest.mark.asyncio
async def test_data_management_is_admin_only(service, principal_user):
    with pytest.raises(UnauthorizedError):
        await service.export_bundle(principal_user)
    with pytest.raises(UnauthorizedError):
        await service.import_bundle(principal_user, {})


@pytest.mark.asyncio
async def test_assign_reports_ticket_errors_before_assignee_lookup(service, teacher, admin):
    with pytest.raises(TicketNotFoundError):
        await service.assign("TKT-19990101-001", admin, "ghost")

    ticket = await _submit(service, teacher)
    await service.assign(ticket.id, admin, "admin")
    with pytest.raises(InvalidTransitionError):
        await service.assign(ticket.id, admin, "ghost")


@pytest.mark.asyncio
async def test_change_status_with_unknown_status_name_is_validation_error(service, teacher, admin):
    ticket = await _submit(service, teacher)
    with pytest.raises(ValidationError):
        await service.change_status(ticket.id, admin, "Bogus")
