"""
Notification scheduler
Drives the sweeps inside the API process: an hourly tick aligned to the top of
the hour, a 6-hourly tick for the PENDING → IN_PROGRESS transition and one full
run shortly after startup. Nothing is persisted, a window missed while the
process is down is simply skipped.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional

from sqlalchemy.orm import Session

from .. import config
from ..database import SessionLocal
from ..utils.dates import Clock, seconds_until_next_hour, system_clock
from .notification_service import NotificationDispatcher, default_dispatcher
from .reminders import (
    check_day_before_reminders,
    check_due_today_reminders,
    check_overdue_tasks,
    check_task_creation_follow_ups,
    check_tasks_due_soon,
    check_upcoming_appointments,
)
from .status_automation import (
    update_appointments_to_completed,
    update_appointments_to_confirmed,
    update_overdue_tasks_to_completed,
    update_tasks_to_in_progress,
)

logger = logging.getLogger(__name__)

Sweeper = Callable[..., Awaitable[dict]]
SessionFactory = Callable[[], Session]


class NotificationError(Exception):
    """Base error for the notification scheduling layer"""

    pass


class UnknownSweeperError(NotificationError):
    """Raised when a sweep is requested by a name that is not registered"""

    def __init__(self, name: str):
        super().__init__(f"Unknown sweeper: {name}")
        self.name = name


SWEEPERS: dict[str, Sweeper] = {
    "overdue_tasks": check_overdue_tasks,
    "tasks_due_soon": check_tasks_due_soon,
    "upcoming_appointments": check_upcoming_appointments,
    "day_before_reminders": check_day_before_reminders,
    "due_today_reminders": check_due_today_reminders,
    "overdue_tasks_to_completed": update_overdue_tasks_to_completed,
    "appointments_to_confirmed": update_appointments_to_confirmed,
    "appointments_to_completed": update_appointments_to_completed,
    "tasks_to_in_progress": update_tasks_to_in_progress,
    "task_creation_follow_ups": check_task_creation_follow_ups,
}

HOURLY_SEQUENCE = (
    "overdue_tasks",
    "tasks_due_soon",
    "upcoming_appointments",
    "day_before_reminders",
    "due_today_reminders",
    "overdue_tasks_to_completed",
    "appointments_to_confirmed",
    "appointments_to_completed",
)
SIX_HOURLY_SEQUENCE = ("tasks_to_in_progress",)
FULL_SEQUENCE = HOURLY_SEQUENCE + SIX_HOURLY_SEQUENCE

SIX_HOURS = 6 * 60 * 60


class NotificationScheduler:
    """
    Runs the registered sweepers on timers bound to the running event loop.

    Every sweeper call gets a fresh session from ``session_factory`` and the
    time from ``clock``. A sweeper that is still running when its next turn
    comes up is skipped rather than queued.
    """

    def __init__(
        self,
        session_factory: SessionFactory = SessionLocal,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Optional[Clock] = None,
        startup_delay: Optional[float] = None,
        six_hourly_interval: float = SIX_HOURS,
        sweepers: Optional[dict[str, Sweeper]] = None,
    ):
        self.session_factory = session_factory
        self.dispatcher = dispatcher or default_dispatcher
        self.clock = clock or system_clock
        self.startup_delay = (
            config.NOTIFICATION_STARTUP_DELAY if startup_delay is None else startup_delay
        )
        self.six_hourly_interval = six_hourly_interval
        self.sweepers = dict(SWEEPERS if sweepers is None else sweepers)
        self._locks: dict[str, asyncio.Lock] = {}
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def run_sweeper(self, name: str) -> dict:
        """Run one sweeper by name in its own session"""
        sweeper = self.sweepers.get(name)
        if sweeper is None:
            raise UnknownSweeperError(name)

        lock = self._locks.setdefault(name, asyncio.Lock())
        if lock.locked():
            logger.warning(f"⏭️ Sweeper {name} is still running - skipping this run")
            return {"skipped": True, "reason": "already running"}

        async with lock:
            db = self.session_factory()
            try:
                return await sweeper(db, dispatcher=self.dispatcher, now=self.clock())
            finally:
                db.close()

    async def run_sequence(self, names: Iterable[str]) -> dict:
        """Run sweepers one after another; a failing sweeper never stops the rest"""
        results = {}
        for name in names:
            try:
                results[name] = await self.run_sweeper(name)
            except UnknownSweeperError:
                raise
            except Exception as e:
                logger.error(f"❌ Sweeper {name} failed: {e}")
                results[name] = {"error": str(e)}
        return results

    async def trigger_now(self) -> dict:
        """Run the full sweep set once, right now"""
        logger.info("🔔 Running all notification checks...")
        results = await self.run_sequence(FULL_SEQUENCE)
        logger.info("✅ All notification checks completed")
        return results

    async def _hourly_loop(self):
        while True:
            await asyncio.sleep(seconds_until_next_hour(self.clock()))
            logger.info("⏰ Hourly notification tick")
            await self.run_sequence(HOURLY_SEQUENCE)

    async def _six_hourly_loop(self):
        while True:
            await asyncio.sleep(self.six_hourly_interval)
            logger.info("⏰ 6-hourly status tick")
            await self.run_sequence(SIX_HOURLY_SEQUENCE)

    async def _startup_run(self):
        await asyncio.sleep(self.startup_delay)
        await self.trigger_now()

    def start(self):
        """Register the timers on the running loop; calling start twice is a no-op"""
        if self.running:
            logger.info("ℹ️ Notification scheduler already running")
            return

        self._tasks = [
            asyncio.create_task(self._hourly_loop(), name="notifications-hourly"),
            asyncio.create_task(self._six_hourly_loop(), name="notifications-6h"),
            asyncio.create_task(self._startup_run(), name="notifications-startup"),
        ]
        logger.info(f"🚀 Notification scheduler started (startup run in {self.startup_delay}s)")

    async def stop(self):
        """Cancel this scheduler's timers and wait for them; an in-flight sweep is dropped"""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        # Sessions opened by an in-flight sweep are closed once this returns
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("🛑 Notification scheduler stopped")


async def trigger_notification_check(
    session_factory: SessionFactory = SessionLocal,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> dict:
    """Run every sweep once outside any scheduler, e.g. from a script"""
    return await NotificationScheduler(session_factory, dispatcher).trigger_now()
