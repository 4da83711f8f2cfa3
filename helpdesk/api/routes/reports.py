from __future__ import annotations

import datetime as dt
from typing import Any

from fastapi import APIRouter, Body
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from helpdesk.dependencies.auth import CurrentUser
from helpdesk.dependencies.tickets import TicketFilterDep, TicketServiceDep
from helpdesk.tickets.analytics import AnalyticsReport, DashboardSummary
from helpdesk.tickets.records import TicketRecord
from helpdesk.tickets.state import LOCATIONS, SUBCATEGORIES, Category, Priority, TicketStatus

router = APIRouter(tags=["reports"])


class _Response(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class LocationCountResponse(_Response):
    name: str
    label: str
    count: int


class DailyCountResponse(_Response):
    date: dt.date
    count: int


class ResolutionPointResponse(_Response):
    date: dt.date
    days: int
    ticket_id: str = Field(alias="ticketId")


class AnalyticsResponse(_Response):
    total: int
    open: int
    resolved: int
    average_resolution_days: float | None = Field(alias="averageResolutionDays")
    by_status: dict[str, int] = Field(alias="byStatus")
    by_category: dict[str, int] = Field(alias="byCategory")
    by_priority: dict[str, int] = Field(alias="byPriority")
    top_locations: list[LocationCountResponse] = Field(alias="topLocations")
    per_day: list[DailyCountResponse] = Field(alias="perDay")
    resolution_trend: list[ResolutionPointResponse] = Field(alias="resolutionTrend")

    @classmethod
    def from_report(cls, report: AnalyticsReport) -> "AnalyticsResponse":
        return cls(
            total=report.total,
            open=report.open,
            resolved=report.resolved,
            average_resolution_days=report.average_resolution_days,
            by_status={status.value: count for status, count in report.by_status.items()},
            by_category={category.value: count for category, count in report.by_category.items()},
            by_priority={priority.value: count for priority, count in report.by_priority.items()},
            top_locations=[
                LocationCountResponse(name=item.name, label=item.label, count=item.count)
                for item in report.top_locations
            ],
            per_day=[DailyCountResponse(date=item.day, count=item.count) for item in report.per_day],
            resolution_trend=[
                ResolutionPointResponse(date=item.day, days=item.days, ticket_id=item.ticket_id)
                for item in report.resolution_trend
            ],
        )


class DashboardResponse(_Response):
    total: int
    open: int
    resolved: int
    critical_open: int = Field(alias="criticalOpen")
    new_unassigned: int = Field(alias="newUnassigned")
    average_resolution_days: float | None = Field(alias="averageResolutionDays")
    recent: list[TicketRecord]
    urgent: list[TicketRecord]

    @classmethod
    def from_summary(cls, summary: DashboardSummary) -> "DashboardResponse":
        return cls(
            total=summary.total,
            open=summary.open,
            resolved=summary.resolved,
            critical_open=summary.critical_open,
            new_unassigned=summary.new_unassigned,
            average_resolution_days=summary.average_resolution_days,
            recent=[TicketRecord.from_ticket(ticket) for ticket in summary.recent],
            urgent=[TicketRecord.from_ticket(ticket) for ticket in summary.urgent],
        )


class ImportResponse(BaseModel):
    users: int | None
    tickets: int | None


@router.get("/analytics", response_model=AnalyticsResponse)
async def analytics(service: TicketServiceDep, user: CurrentUser, criteria: TicketFilterDep) -> AnalyticsResponse:
    return AnalyticsResponse.from_report(await service.analytics(user, criteria))


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(service: TicketServiceDep, user: CurrentUser) -> DashboardResponse:
    return DashboardResponse.from_summary(await service.dashboard(user))


@router.get("/catalog")
async def catalog(_: CurrentUser) -> dict[str, Any]:
    return {
        "statuses": [status.value for status in TicketStatus],
        "priorities": [priority.value for priority in Priority],
        "categories": [category.value for category in Category],
        "subcategories": {category.value: list(items) for category, items in SUBCATEGORIES.items()},
        "locations": list(LOCATIONS),
    }


@router.get("/data/export")
async def export_data(service: TicketServiceDep, user: CurrentUser) -> dict[str, Any]:
    return await service.export_bundle(user)


@router.post("/data/import", response_model=ImportResponse)
async def import_data(
    service: TicketServiceDep,
    user: CurrentUser,
    payload: Any = Body(...),
) -> ImportResponse:
    summary = await service.import_bundle(user, payload)
    return ImportResponse(users=summary.users, tickets=summary.tickets)


@router.get("/data/export.csv", response_class=PlainTextResponse)
async def export_csv(service: TicketServiceDep, user: CurrentUser, criteria: TicketFilterDep) -> PlainTextResponse:
    body = await service.export_csv(user, criteria)
    filename = f"tickets-{service.clock().date().isoformat()}.csv"
    return PlainTextResponse(
        body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
