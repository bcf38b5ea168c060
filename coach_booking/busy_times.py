"""Calendar provider client for fetching a coach's busy times."""

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx

from coach_booking.schema import BusyInterval

logger = logging.getLogger(__name__)

# Busy times are fetched for a horizon wider than the booking window.
BUSY_TIMES_HORIZON_DAYS = 31


def _iso_utc(value: datetime) -> str:
    """UTC timestamp with a Z suffix, e.g. 2025-02-03T00:00:00.000Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.000Z")


class BusyTimesClient:
    """Cal.com v2 busy-times client."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or os.environ.get("CAL_API_KEY", "")
        self.base_url = (
            base_url or os.environ.get("CAL_BASE_URL", "https://api.cal.com/v2")
        ).rstrip("/")
        self.transport = transport

    def _get(self, path: str, params: dict[str, str]) -> Any:
        """GET a provider endpoint and return decoded JSON."""
        if not self.api_key:
            raise ValueError("CAL_API_KEY is required")
        with httpx.Client(timeout=30.0, transport=self.transport) as client:
            resp = client.get(
                f"{self.base_url}{path}",
                params=params,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
            if resp.is_error:
                logger.error(
                    "Calendar provider returned %s for %s", resp.status_code, path
                )
            resp.raise_for_status()
            return resp.json()

    @staticmethod
    def _to_busy_interval(entry: dict[str, Any]) -> BusyInterval:
        """
        Build a BusyInterval from a provider entry.
        Missing or non-string bounds are kept as empty strings so the
        slot engine treats the interval as malformed and blocks on it.
        """
        start = entry.get("start")
        end = entry.get("end")
        source = entry.get("source")
        return BusyInterval(
            start=start if isinstance(start, str) else "",
            end=end if isinstance(end, str) else "",
            source=str(source) if source is not None else None,
        )

    def get_busy_times(
        self,
        credential_id: str,
        external_id: str,
        time_zone: str,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[BusyInterval]:
        """
        Fetch busy intervals for one connected calendar.
        Defaults to now through BUSY_TIMES_HORIZON_DAYS from now.
        """
        date_from = date_from or datetime.now(timezone.utc)
        date_to = date_to or date_from + timedelta(days=BUSY_TIMES_HORIZON_DAYS)

        logger.info(
            "Fetching busy times %s to %s (tz=%s)",
            date_from.isoformat(),
            date_to.isoformat(),
            time_zone,
        )

        data = self._get(
            "/calendars/busy-times",
            {
                "dateFrom": _iso_utc(date_from),
                "dateTo": _iso_utc(date_to),
                "loggedInUsersTz": time_zone,
                "calendarsToLoad[0][credentialId]": credential_id,
                "calendarsToLoad[0][externalId]": external_id,
            },
        )

        entries = data.get("data") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            logger.warning("Busy-times response has no data list; treating as empty")
            return []
        return [self._to_busy_interval(e) for e in entries if isinstance(e, dict)]
