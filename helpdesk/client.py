from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import httpx


class APIError(RuntimeError):
    """Error raised for failed help-desk API calls."""

    def __init__(self, message: str, *, status_code: int | None = None, response: httpx.Response | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response

    def __str__(self) -> str:
        prefix = f"[{self.status_code}] " if self.status_code is not None else ""
        return f"{prefix}{super().__str__()}"


def _extract_error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or "Unknown server error"

    if isinstance(data, Mapping):
        detail = data.get("detail")
        if isinstance(detail, str):
            return detail
        if isinstance(detail, list) and detail and isinstance(detail[0], Mapping) and "msg" in detail[0]:
            return str(detail[0]["msg"])
    return "The request could not be completed"


@dataclass(slots=True)
class HelpdeskAPIClient:
    """Small synchronous client for the help-desk HTTP API."""

    base_url: str
    username: str | None = None
    password: str | None = None
    timeout: float = 10.0
    transport: httpx.BaseTransport | None = None

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        auth = (self.username, self.password or "") if self.username else None
        headers: dict[str, str] = {"Accept": "application/json"}
        headers.update(kwargs.pop("headers", {}))

        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
                response = client.request(method, self._build_path(path), headers=headers, auth=auth, **kwargs)
        except httpx.HTTPError as exc:  # pragma: no cover - network failures are exercised manually
            raise APIError(f"API request failed: {exc}") from exc

        if response.status_code >= 400:
            raise APIError(_extract_error_message(response), status_code=response.status_code, response=response)

        if response.status_code == 204 or not response.content:
            return None

        content_type = response.headers.get("Content-Type", "")
        if "application/json" in content_type:
            return response.json()
        return response.text

    @staticmethod
    def _build_path(path: str) -> str:
        return path if path.startswith("/") else f"/{path}"

    def ping(self) -> Mapping[str, Any]:
        return self._request("GET", "/ping")

    def login(self) -> Mapping[str, Any]:
        return self._request("POST", "/auth/login", json={"username": self.username, "password": self.password})

    def list_tickets(self, **filters: str) -> list[Mapping[str, Any]]:
        params = {key: value for key, value in filters.items() if value}
        return list(self._request("GET", "/tickets", params=params) or [])

    def get_ticket(self, ticket_id: str) -> Mapping[str, Any]:
        return self._request("GET", f"/tickets/{ticket_id}")

    def submit_ticket(
        self,
        *,
        category: str,
        subcategory: str,
        location: str,
        priority: str,
        description: str,
    ) -> Mapping[str, Any]:
        payload = {
            "category": category,
            "subcategory": subcategory,
            "location": location,
            "priority": priority,
            "description": description,
        }
        return self._request("POST", "/tickets", json=payload)

    def assign_ticket(self, ticket_id: str, *, assigned_to: str) -> Mapping[str, Any]:
        return self._request("POST", f"/tickets/{ticket_id}/assign", json={"assignedTo": assigned_to})

    def change_ticket_status(self, ticket_id: str, *, status: str, note: str | None = None) -> Mapping[str, Any]:
        return self._request("POST", f"/tickets/{ticket_id}/status", json={"status": status, "note": note})

    def reopen_ticket(self, ticket_id: str, *, note: str | None = None) -> Mapping[str, Any]:
        return self._request("POST", f"/tickets/{ticket_id}/reopen", json={"note": note})

    def close_ticket(self, ticket_id: str, *, note: str | None = None) -> Mapping[str, Any]:
        return self._request("POST", f"/tickets/{ticket_id}/close", json={"note": note})

    def add_comment(self, ticket_id: str, *, text: str) -> Mapping[str, Any]:
        return self._request("POST", f"/tickets/{ticket_id}/comments", json={"text": text})

    def analytics(self, **filters: str) -> Mapping[str, Any]:
        params = {key: value for key, value in filters.items() if value}
        return self._request("GET", "/analytics", params=params)

    def export_data(self) -> Mapping[str, Any]:
        return self._request("GET", "/data/export")

    def import_data(self, bundle: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._request("POST", "/data/import", json=dict(bundle))

    def export_csv(self) -> str:
        return self._request("GET", "/data/export.csv", headers={"Accept": "text/csv"})
