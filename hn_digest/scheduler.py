# hn_digest/scheduler.py
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from enum import Enum
from functools import partial
from typing import Callable, Optional, Protocol, Tuple
import re
import threading
import uuid

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MISSED
from apscheduler.jobstores.base import JobLookupError
import pytz

from .errors import (
    InvalidTimeFormatError,
    InvalidTimezoneError,
    SchedulerStoppedError,
    TimeOutOfRangeError,
)
from .logging_setup import get_logger

logger = get_logger("hn_digest.scheduler")

_TIME_RE = re.compile(r"([0-9]{2}):([0-9]{2})")

# A fire that is late by up to an hour (busy host, suspended laptop) still runs once
MISFIRE_GRACE_SECONDS = 3600


def parse_time_of_day(value: str) -> Tuple[int, int]:
    """Parse strict 24h ``HH:MM`` into (hour, minute)."""
    m = _TIME_RE.fullmatch(value) if isinstance(value, str) else None
    if not m:
        raise InvalidTimeFormatError(f"invalid time format {value!r}: must be HH:MM")
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23:
        raise TimeOutOfRangeError(f"invalid time {value!r}: hour must be 00-23")
    if minute > 59:
        raise TimeOutOfRangeError(f"invalid time {value!r}: minute must be 00-59")
    return hour, minute


def resolve_timezone(name: str) -> tzinfo:
    if not isinstance(name, str) or not name:
        raise InvalidTimezoneError(f"invalid timezone {name!r}")
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError as e:
        raise InvalidTimezoneError(f"unknown timezone {name!r}") from e


class TriggerBackend(Protocol):
    """Schedules one daily fire and hands back a handle that cancels it."""

    def add_daily(self, hour: int, minute: int, tz: tzinfo, fn: Callable[[], None]) -> str:
        ...

    def remove(self, handle: str) -> None:
        ...

    def start(self) -> None:
        ...

    def shutdown(self, wait: bool = True) -> None:
        ...

    def active_count(self) -> int:
        ...

    def next_fire_time(self, handle: str) -> Optional[datetime]:
        ...


def _job_listener(event):
    if getattr(event, "exception", None):
        # APScheduler already captured the traceback; log it via our namespace too
        logger.error(
            "JOB_ERROR",
            exc_info=event.exception,
            extra={"handled": False, "job_id": event.job_id, "run_time": str(event.scheduled_run_time)},
        )
    elif event.code == EVENT_JOB_MISSED:
        logger.warning("JOB_MISSED", extra={"job_id": event.job_id, "run_time": str(event.scheduled_run_time)})
    else:
        logger.info("JOB_OK", extra={"job_id": event.job_id, "run_time": str(event.scheduled_run_time)})


class APSchedulerBackend:
    """TriggerBackend on top of APScheduler's BackgroundScheduler + CronTrigger."""

    def __init__(self, tz: Optional[tzinfo] = None, scheduler: Optional[BackgroundScheduler] = None):
        self._scheduler = scheduler or BackgroundScheduler(timezone=tz or pytz.utc)
        self._scheduler.add_listener(_job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED)

    def add_daily(self, hour, minute, tz, fn) -> str:
        job_id = f"daily_digest-{uuid.uuid4().hex[:8]}"
        trigger = CronTrigger(hour=hour, minute=minute, timezone=tz)
        self._scheduler.add_job(
            fn,
            trigger,
            id=job_id,
            coalesce=True,
            max_instances=1,
            misfire_grace_time=MISFIRE_GRACE_SECONDS,
        )
        return job_id

    def remove(self, handle: str) -> None:
        try:
            self._scheduler.remove_job(handle)
        except JobLookupError:
            pass

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()

    def shutdown(self, wait: bool = True) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)

    def active_count(self) -> int:
        return len(self._scheduler.get_jobs())

    def next_fire_time(self, handle: str) -> Optional[datetime]:
        job = self._scheduler.get_job(handle)
        if job is None:
            return None
        now = datetime.now(job.trigger.timezone)
        return job.trigger.get_next_fire_time(None, now)


class SchedulerStatus(str, Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class ScheduleState:
    timezone_name: str
    timezone: tzinfo
    hour: int
    minute: int
    handle: Optional[str] = None
    # bumped on every install so a fire from a replaced entry is ignored
    generation: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class DigestScheduler:
    """
    Fires ``callback`` once a day at HH:MM in a fixed timezone.

    Lifecycle: IDLE -> SCHEDULED (constructed, trigger registered) -> RUNNING
    (after start) -> STOPPED (after stop). STOPPED is final: build a new
    instance to resume.

    Exactly one trigger entry exists while the scheduler is not stopped.
    ``update`` swaps it inside the state lock, and fire bookkeeping takes
    the same lock, so a retime never produces a second fire for one day.
    """

    def __init__(
        self,
        timezone: str,
        time_of_day: str,
        callback: Callable[[], None],
        backend: Optional[TriggerBackend] = None,
    ):
        tz = resolve_timezone(timezone)
        hour, minute = parse_time_of_day(time_of_day)
        if not callable(callback):
            raise TypeError("callback must be callable")

        self._callback = callback
        self._backend = backend if backend is not None else APSchedulerBackend(tz)
        self._state = ScheduleState(timezone_name=timezone, timezone=tz, hour=hour, minute=minute)
        self._idle = threading.Condition(self._state.lock)
        self._in_flight = 0
        self._fire_threads = set()
        self._status = SchedulerStatus.IDLE

        with self._state.lock:
            self._install_locked(hour, minute)
            self._status = SchedulerStatus.SCHEDULED
        logger.info(f"Digest scheduled daily at {self.time_of_day} {timezone}")

    # ---- introspection ----

    @property
    def status(self) -> SchedulerStatus:
        return self._status

    @property
    def time_of_day(self) -> str:
        return f"{self._state.hour:02d}:{self._state.minute:02d}"

    @property
    def timezone_name(self) -> str:
        return self._state.timezone_name

    def active_trigger_count(self) -> int:
        return self._backend.active_count()

    def next_fire_time(self) -> Optional[datetime]:
        with self._state.lock:
            if self._state.handle is None:
                return None
            return self._backend.next_fire_time(self._state.handle)

    # ---- lifecycle ----

    def start(self) -> None:
        with self._state.lock:
            if self._status is SchedulerStatus.STOPPED:
                raise SchedulerStoppedError("scheduler was stopped; create a new instance")
            if self._status is SchedulerStatus.RUNNING:
                return
            self._status = SchedulerStatus.RUNNING
            try:
                self._backend.start()
            except Exception:
                self._status = SchedulerStatus.SCHEDULED
                raise
        logger.info("Digest scheduler started")

    def stop(self) -> None:
        """Remove the trigger, end the timer loop and wait for a running digest to finish."""
        with self._state.lock:
            already_stopped = self._status is SchedulerStatus.STOPPED
            if not already_stopped:
                self._status = SchedulerStatus.STOPPED
                if self._state.handle is not None:
                    self._backend.remove(self._state.handle)
                    self._state.handle = None
            # stop() called from inside the callback must not wait for itself
            from_callback = threading.get_ident() in self._fire_threads

        if not already_stopped:
            # outside the lock: finishing fires need it for their bookkeeping
            self._backend.shutdown(wait=not from_callback)

        if not from_callback:
            with self._idle:
                while self._in_flight:
                    self._idle.wait()

        if not already_stopped:
            logger.info("Digest scheduler stopped")

    def update(self, time_of_day: str) -> None:
        """Retime the daily fire. Invalid input leaves the current schedule untouched."""
        hour, minute = parse_time_of_day(time_of_day)
        with self._state.lock:
            if self._status is SchedulerStatus.STOPPED:
                raise SchedulerStoppedError("scheduler was stopped; create a new instance")
            old = (self._state.hour, self._state.minute)
            if self._state.handle is not None:
                self._backend.remove(self._state.handle)
                self._state.handle = None
            try:
                self._install_locked(hour, minute)
            except Exception:
                logger.exception("SCHEDULE_UPDATE_FAILED", extra={"time_of_day": time_of_day})
                self._install_locked(*old)
                raise
        logger.info(
            "SCHEDULE_UPDATED",
            extra={"from": f"{old[0]:02d}:{old[1]:02d}", "to": self.time_of_day,
                   "timezone": self._state.timezone_name},
        )

    # ---- internals ----

    def _install_locked(self, hour: int, minute: int) -> None:
        generation = self._state.generation + 1
        handle = self._backend.add_daily(hour, minute, self._state.timezone, partial(self._fire, generation))
        self._state.handle = handle
        self._state.generation = generation
        self._state.hour, self._state.minute = hour, minute

    def _fire(self, generation: int) -> None:
        with self._state.lock:
            if self._status is not SchedulerStatus.RUNNING or generation != self._state.generation:
                logger.info("FIRE_SKIPPED", extra={"status": self._status.value, "generation": generation})
                return
            self._in_flight += 1
            self._fire_threads.add(threading.get_ident())
        try:
            logger.info("DIGEST_FIRE", extra={"time_of_day": self.time_of_day, "timezone": self.timezone_name})
            self._callback()
        finally:
            with self._state.lock:
                self._in_flight -= 1
                self._fire_threads.discard(threading.get_ident())
                if not self._in_flight:
                    self._idle.notify_all()
