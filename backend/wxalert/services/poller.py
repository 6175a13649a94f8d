"""Polling controller for the weather alert monitor.

Owns the single PollState, starts fetches on manual and timed triggers, runs
the alert rules on each new Reading, and publishes every state change through
a configurable callback.

Overlapping fetches are allowed.  Each completion is applied to whatever state
is current at that moment, so the last fetch to finish wins, even if it was
issued first.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Coroutine, Optional

from .alerts import Alert, Severity, derive_alerts, has_strong_alert
from .open_meteo import FetchError, Reading

logger = logging.getLogger(__name__)

DEFAULT_AUTO_REFRESH_SEC = 10 * 60

# Vibration pattern (ms on/off/on) for the host's strong-alert cue
HAPTIC_PATTERN_MS = (200, 100, 200)

GENERIC_ERROR = "Failed to load weather data"


class PollStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class PollState:
    """Externally observable status of the monitor."""
    status: PollStatus = PollStatus.IDLE
    reading: Optional[Reading] = None
    alerts: tuple[Alert, ...] = ()
    error: Optional[str] = None
    last_updated: Optional[datetime] = None
    auto_refresh_enabled: bool = False


@dataclass(frozen=True)
class StrongAlertEvent:
    """Side-channel cue raised when a poll produces a high severity alert."""
    alerts: tuple[Alert, ...]
    pattern_ms: tuple[int, ...] = HAPTIC_PATTERN_MS


# --- Transitions ---

def begin_loading(state: PollState) -> PollState:
    """Any status -> loading.  Clears the error; reading and alerts stay visible."""
    return replace(state, status=PollStatus.LOADING, error=None)


def apply_success(
    state: PollState,
    reading: Reading,
    alerts: tuple[Alert, ...],
    now: datetime,
) -> PollState:
    return replace(
        state,
        status=PollStatus.SUCCESS,
        reading=reading,
        alerts=alerts,
        error=None,
        last_updated=now,
    )


def apply_failure(state: PollState, message: str) -> PollState:
    """loading -> error.  Reading, alerts and last_updated are kept."""
    return replace(state, status=PollStatus.ERROR, error=message)


def apply_auto_refresh(state: PollState, enabled: bool) -> PollState:
    return replace(state, auto_refresh_enabled=enabled)


Fetcher = Callable[[float, float], Awaitable[Reading]]
StateCallback = Callable[[PollState], Coroutine[Any, Any, Any]]
StrongAlertCallback = Callable[[StrongAlertEvent], Coroutine[Any, Any, Any]]


class PollController:
    """Manages the fetch/alert lifecycle and the auto-refresh timer."""

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        latitude: float,
        longitude: float,
        auto_refresh_interval: float = DEFAULT_AUTO_REFRESH_SEC,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.fetcher = fetcher
        self.latitude = latitude
        self.longitude = longitude
        self.auto_refresh_interval = auto_refresh_interval
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._state = PollState()
        self._timer_task: Optional[asyncio.Task] = None
        self._poll_tasks: set[asyncio.Task] = set()
        self._polls = 0
        self._failures = 0
        self._broadcast_callback: Optional[StateCallback] = None
        self._strong_alert_callback: Optional[StrongAlertCallback] = None

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def stats(self) -> dict:
        last = self._state.last_updated
        return {
            "last_poll": last.isoformat() if last else None,
            "polls": self._polls,
            "failures": self._failures,
            "in_flight": len(self._poll_tasks),
            "auto_refresh_enabled": self._state.auto_refresh_enabled,
        }

    def set_broadcast_callback(self, callback: StateCallback) -> None:
        """Set the async callback invoked with every new PollState.

        In the web app this is the WebSocket ConnectionManager.
        """
        self._broadcast_callback = callback

    def set_strong_alert_callback(self, callback: StrongAlertCallback) -> None:
        """Set the async callback for the strong-alert cue."""
        self._strong_alert_callback = callback

    # ---- triggers ----

    def start(self) -> asyncio.Task:
        """Issue the initial fetch.  Must be called from a running event loop."""
        logger.info(
            "Poll controller starting for (%s, %s), auto-refresh every %ss",
            self.latitude, self.longitude, self.auto_refresh_interval,
        )
        return self._spawn_poll("initial")

    def trigger_manual_refresh(self) -> asyncio.Task:
        """Start a fetch now, regardless of any fetch already in flight."""
        return self._spawn_poll("manual")

    async def set_auto_refresh(self, enabled: bool) -> None:
        """Turn the recurring timer on or off.

        Disabling cancels the timer task itself, so a tick that was already
        scheduled never fires.
        """
        if enabled and self._timer_task is None:
            self._timer_task = asyncio.create_task(self._auto_refresh_loop())
            logger.info("Auto-refresh enabled (%ss interval)", self.auto_refresh_interval)
        elif not enabled and self._timer_task is not None:
            self._cancel_timer()
            logger.info("Auto-refresh disabled")

        await self._publish(apply_auto_refresh(self._state, enabled))

    def stop(self) -> None:
        """Cancel the timer and any in-flight fetches (host shutdown)."""
        self._cancel_timer()
        for task in list(self._poll_tasks):
            task.cancel()
        self._poll_tasks.clear()

    # ---- polling ----

    async def refresh(self) -> PollState:
        """Run one fetch and apply its outcome.  Never raises on fetch failure."""
        await self._publish(begin_loading(self._state))
        self._polls += 1

        try:
            reading = await self.fetcher(self.latitude, self.longitude)
        except FetchError as exc:
            self._failures += 1
            logger.warning("Weather poll failed: %s", exc)
            await self._publish(apply_failure(self._state, str(exc)))
            return self._state
        except Exception as exc:
            self._failures += 1
            logger.error("Polling error: %s", exc, exc_info=True)
            await self._publish(apply_failure(self._state, GENERIC_ERROR))
            return self._state

        alerts = derive_alerts(reading)
        logger.info(
            "Poll OK: temp=%s rain=%s wind=%s alerts=%d",
            reading.current.temperature_c,
            reading.current.rain_mm,
            reading.current.wind_speed_kph,
            len(alerts),
        )
        await self._publish(apply_success(self._state, reading, alerts, self._clock()))

        if has_strong_alert(alerts):
            await self._signal_strong_alert(alerts)
        return self._state

    def _spawn_poll(self, source: str, poll: Optional[Coroutine] = None) -> asyncio.Task:
        logger.debug("Refresh triggered (%s)", source)
        task = asyncio.create_task(poll if poll is not None else self.refresh())
        # In-flight polls; stop() cancels them
        self._poll_tasks.add(task)
        task.add_done_callback(self._poll_tasks.discard)
        return task

    async def _auto_refresh_loop(self) -> None:
        timer = asyncio.current_task()
        while True:
            await asyncio.sleep(self.auto_refresh_interval)
            self._spawn_poll("timer", self._timed_refresh(timer))

    async def _timed_refresh(self, timer: Optional[asyncio.Task]) -> PollState:
        """Poll for a timer tick, unless that timer was cancelled meanwhile."""
        if self._timer_task is not timer:
            logger.debug("Dropping tick from a cancelled auto-refresh timer")
            return self._state
        return await self.refresh()

    def _cancel_timer(self) -> None:
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None

    # ---- publishing ----

    async def _publish(self, state: PollState) -> None:
        self._state = state
        if self._broadcast_callback is None:
            return
        try:
            await self._broadcast_callback(state)
        except Exception as exc:
            logger.error("State broadcast failed: %s", exc, exc_info=True)

    async def _signal_strong_alert(self, alerts: tuple[Alert, ...]) -> None:
        high = tuple(a for a in alerts if a.severity is Severity.HIGH)
        logger.warning("Strong alert: %s", "; ".join(a.message for a in high))
        if self._strong_alert_callback is None:
            return
        try:
            await self._strong_alert_callback(StrongAlertEvent(alerts=high))
        except Exception as exc:
            logger.error("Strong alert callback failed: %s", exc, exc_info=True)
