"""Google Calendar v3 provider over plain HTTPS."""
from __future__ import annotations

import logging
from datetime import datetime, time
from typing import Any, Dict, List, Optional
from urllib.parse import quote
from zoneinfo import ZoneInfo

import httpx

from pulse.planner.models import CalendarEvent
from pulse.services.calendar.base import CalendarGateway


logger = logging.getLogger(__name__)

GOOGLE_CALENDAR_API_BASE_URL = "https://www.googleapis.com/calendar/v3"
DEFAULT_COLOR_ID = "1"


class CalendarRequestError(RuntimeError):
    """Google Calendar answered with an error status or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GoogleCalendarGateway(CalendarGateway):
    def __init__(
        self,
        *,
        access_token: str,
        calendar_id: str = "primary",
        timeout: float = 15.0,
        time_zone: str = "UTC",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._access_token = access_token
        self._calendar_id = calendar_id
        self._time_zone = time_zone
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def _events_url(self) -> str:
        return f"{GOOGLE_CALENDAR_API_BASE_URL}/calendars/{quote(self._calendar_id, safe='')}/events"

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._access_token}"}
        try:
            response = await self._http_client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise CalendarRequestError(f"Google Calendar {method} failed: {exc}") from exc
        if response.status_code >= 400:
            raise CalendarRequestError(
                f"Google Calendar {method} returned {response.status_code}: {_safe_error_message(response)}",
                status_code=response.status_code,
            )
        return response

    async def create_event(
        self,
        *,
        summary: str,
        description: Optional[str],
        start: datetime,
        end: datetime,
        color_id: Optional[str] = None,
    ) -> CalendarEvent:
        body = {
            "summary": summary,
            "description": description,
            "start": {"dateTime": start.isoformat(), "timeZone": self._time_zone},
            "end": {"dateTime": end.isoformat(), "timeZone": self._time_zone},
            "colorId": color_id or DEFAULT_COLOR_ID,
        }
        response = await self._request("POST", self._events_url, json=body)
        return _parse_event(response.json(), self._time_zone)

    async def list_events(self, time_min_iso: str, time_max_iso: str) -> List[CalendarEvent]:
        params = {
            "timeMin": time_min_iso,
            "timeMax": time_max_iso,
            "showDeleted": "false",
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        response = await self._request("GET", self._events_url, params=params)
        items = response.json().get("items") or []
        events: List[CalendarEvent] = []
        for item in items:
            try:
                events.append(_parse_event(item, self._time_zone))
            except (KeyError, ValueError):
                logger.warning("Skipping malformed calendar event %s", item.get("id"))
        return events

    async def delete_event(self, event_id: str) -> None:
        await self._request("DELETE", f"{self._events_url}/{quote(event_id, safe='')}")

    async def aclose(self) -> None:
        await self._http_client.aclose()


def _parse_event(payload: Dict[str, Any], time_zone: str) -> CalendarEvent:
    return CalendarEvent(
        id=payload["id"],
        summary=payload.get("summary") or "(untitled)",
        description=payload.get("description"),
        start=_parse_when(payload["start"], time_zone),
        end=_parse_when(payload["end"], time_zone),
        color_id=payload.get("colorId"),
    )


def _parse_when(value: Dict[str, Any], time_zone: str) -> datetime:
    if value.get("dateTime"):
        return datetime.fromisoformat(value["dateTime"].replace("Z", "+00:00"))
    # All-day events carry only a date; they start at midnight in the calendar's zone.
    zone = ZoneInfo(value.get("timeZone") or time_zone)
    return datetime.combine(datetime.fromisoformat(value["date"]).date(), time.min, tzinfo=zone)


def _safe_error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("error", {}).get("message") or response.reason_phrase
    except ValueError:
        return response.reason_phrase
