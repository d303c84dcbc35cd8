"""Dashboard controller: owns the current event snapshot.

The engine functions take the snapshot as an argument and never see this
object, so a filter pass can run while a refresh is replacing the data.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from core.data import empty_events, normalize_payload
from core.exceptions import FetchError, MalformedPayload
from core.filtering import prepare_context
from core.filters import DashboardFilters
from core.metrics_overview import compute_overview
from core.settings import DashboardSettings
from core.source import fetch_payload


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardState:
    events: pd.DataFrame
    last_updated: Optional[datetime] = None
    last_attempt: Optional[datetime] = None
    last_error: Optional[str] = None
    generation: int = 0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DashboardController:
    """Fetches, normalizes and holds events; builds view payloads on demand.

    Each refresh takes a ticket. A payload is only applied if no later
    ticket has been applied already, so a slow stale fetch cannot overwrite
    fresher data.
    """

    def __init__(
        self,
        settings: DashboardSettings,
        fetcher: Callable[[DashboardSettings], Any] = fetch_payload,
    ) -> None:
        self.settings = settings
        self._fetcher = fetcher
        self._lock = threading.Lock()
        self._issued = 0
        self.state = DashboardState(events=empty_events(settings.timezone))

    def begin_refresh(self, now: Optional[datetime] = None) -> int:
        with self._lock:
            self._issued += 1
            self.state = replace(self.state, last_attempt=now or _utcnow())
            return self._issued

    def apply_payload(self, ticket: int, raw: Any, now: Optional[datetime] = None) -> bool:
        events = normalize_payload(raw, self.settings.excluded_devices, tz=self.settings.timezone)
        with self._lock:
            if ticket < self.state.generation:
                logger.info("Dropping stale refresh #%d (already at #%d)", ticket, self.state.generation)
                return False
            self.state = replace(
                self.state,
                events=events,
                last_updated=now or _utcnow(),
                last_error=None,
                generation=ticket,
            )
        logger.info("Loaded %d events (refresh #%d)", len(events), ticket)
        return True

    def record_error(self, exc: Exception) -> None:
        with self._lock:
            self.state = replace(self.state, last_error=str(exc))

    def refresh(self, now: Optional[datetime] = None) -> bool:
        """Fetch and apply a new payload.

        On failure the previous events stay in place, the error is recorded
        and re-raised for the caller to report.
        """
        now = now or _utcnow()
        ticket = self.begin_refresh(now)
        try:
            raw = self._fetcher(self.settings)
            return self.apply_payload(ticket, raw, now)
        except (FetchError, MalformedPayload) as exc:
            logger.warning("Refresh #%d failed, keeping %d loaded events: %s", ticket, len(self.state.events), exc)
            self.record_error(exc)
            raise

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        last = self.state.last_attempt
        if last is None:
            return True
        now = now or _utcnow()
        return (now - last).total_seconds() >= self.settings.refresh_interval

    def refresh_if_stale(self, now: Optional[datetime] = None) -> Optional[Exception]:
        """Poll hook: refresh when due; returns the failure instead of raising."""
        if not self.is_stale(now):
            return None
        try:
            self.refresh(now)
        except (FetchError, MalformedPayload) as exc:
            return exc
        return None

    def available_devices(self) -> List[str]:
        devices = self.state.events["device_id"].dropna().unique().tolist()
        return sorted(str(d) for d in devices)

    def view(self, filters: DashboardFilters, now: Optional[datetime] = None) -> Dict[str, Any]:
        state = self.state
        now = now or _utcnow()
        ctx = prepare_context(filters, state.events, self.settings, now)
        payload = compute_overview(filters, ctx, self.settings)
        payload["last_updated"] = state.last_updated.isoformat() if state.last_updated is not None else None
        payload["last_error"] = state.last_error
        return payload
