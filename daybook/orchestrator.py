"""
Application Context for Daybook

This module ties the components together and defines the app-level
flows:
1. Startup (refresh every collection -> arm reminders)
2. Foreground (re-arm reminders, the clock may have moved a lot)
3. Dashboard (snapshot -> aggregation)
4. Shutdown (commit pending deletes -> cancel triggers)

DESIGN DECISION: The context is built once, explicitly, by
create_app_components() and handed to whatever drives the app. There is
no module-level instance; tests build their own with in-memory doubles.
"""

from datetime import date, datetime
from typing import Callable, Optional, Union

import structlog
from pydantic import ValidationError

from daybook.analytics import build_dashboard, completed_today
from daybook.audit import AuditLogger
from daybook.config import get_settings
from daybook.models.analytics import DashboardSummary, Period
from daybook.preferences import ThemePreference
from daybook.reminders import ReminderScheduler
from daybook.services.notifications import (
    AsyncioNotificationScheduler,
    NotificationScheduler,
)
from daybook.services.remote import (
    GoogleSheetsClient,
    GoogleSheetsCollectionClient,
    InMemoryCollectionClient,
    RemoteCollectionClient,
    RemoteError,
)
from daybook.store import DeferredDeleteController, EntityStore


logger = structlog.get_logger(__name__)


class DaybookContext:
    """
    Everything the presentation layer talks to.

    Usage:
        context = create_app_components()
        await context.start()
        summary = context.dashboard(Period.WEEK)
        await context.close()
    """

    def __init__(
        self,
        store: EntityStore,
        reminders: ReminderScheduler,
        deletes: DeferredDeleteController,
        notifier: NotificationScheduler,
        audit_logger: AuditLogger,
        preferences: ThemePreference,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.reminders = reminders
        self.deletes = deletes
        self.notifier = notifier
        self.audit_logger = audit_logger
        self.preferences = preferences
        self._clock = clock
        self._daily_streak = 0
        self._streak_day: Optional[date] = None

    @property
    def daily_streak(self) -> int:
        return self._daily_streak

    async def start(self) -> dict[str, bool]:
        """
        Load every collection and arm the active profile's reminders.

        Returns:
            {collection_name: refreshed_ok}
        """
        results = await self.store.refresh_all()
        if not all(results.values()):
            logger.warning(
                "startup_refresh_incomplete",
                failed=[name for name, ok in results.items() if not ok],
            )

        self.reminders.attach()
        await self.reminders.rearm()
        return results

    async def on_foreground(self) -> int:
        """Re-arm reminders when the app comes back to the foreground."""
        return await self.reminders.rearm()

    def dashboard(
        self,
        period: Union[Period, str] = Period.MONTH,
        today: Optional[date] = None,
    ) -> DashboardSummary:
        snapshot = self.store.snapshot()
        active = snapshot.active_profile
        return build_dashboard(
            period,
            snapshot.ledger,
            snapshot.tasks,
            active.id if active else None,
            today or self._clock().date(),
        )

    def update_daily_streak(self) -> int:
        """
        Count today toward the streak if a task created today is done.

        A day is counted at most once.
        """
        today = self._clock().date()
        if self._streak_day == today:
            return self._daily_streak
        if completed_today(self.store.tasks.list(), today):
            self._daily_streak += 1
            self._streak_day = today
        return self._daily_streak

    async def close(self) -> None:
        """Commit pending deletes and stop every trigger."""
        await self.deletes.close()
        await self.reminders.close()
        await self.notifier.cancel_all()


def _create_remote(use_remote: bool) -> tuple[RemoteCollectionClient, bool]:
    """
    Build the configured remote client.

    Returns:
        (client, is_persistent)
    """
    settings = get_settings()
    if not use_remote or settings.app.storage_backend == "memory":
        return InMemoryCollectionClient(), False

    try:
        sheets_client = GoogleSheetsClient(settings.google_sheets)
        sheets_client.connect()
        return GoogleSheetsCollectionClient(sheets_client), True
    except (RemoteError, ValidationError) as e:
        # Not configured - continue with local-only storage
        logger.warning("remote_store_unavailable", error=str(e))
        return InMemoryCollectionClient(), False


def create_app_components(
    use_remote: bool = True,
    notifier: Optional[NotificationScheduler] = None,
    remote: Optional[RemoteCollectionClient] = None,
) -> DaybookContext:
    """
    Factory function to create all application components.

    Args:
        use_remote: Whether to connect to Google Sheets.
                    Set to False for testing without network access.
        notifier: Notification backend (default: in-process asyncio)
        remote: Use this remote client instead of building one

    Returns:
        A DaybookContext, not yet started
    """
    settings = get_settings()

    if remote is None:
        remote, persistent = _create_remote(use_remote)
    else:
        persistent = True

    audit_remote = remote if persistent and settings.app.persist_audit_events else None
    audit_logger = AuditLogger(audit_remote, collection=settings.collections.audit)

    store = EntityStore(
        remote,
        collections=settings.collections,
        audit_logger=audit_logger,
    )

    notifier = notifier or AsyncioNotificationScheduler()
    reminders = ReminderScheduler(
        store,
        notifier,
        settings=settings.scheduler,
        audit_logger=audit_logger,
    )
    if isinstance(notifier, AsyncioNotificationScheduler):
        notifier.set_delivery_callback(reminders.handle_fired)

    deletes = DeferredDeleteController(
        store.tasks,
        grace_period=settings.scheduler.undo_grace_period_seconds,
        audit_logger=audit_logger,
    )

    return DaybookContext(
        store=store,
        reminders=reminders,
        deletes=deletes,
        notifier=notifier,
        audit_logger=audit_logger,
        preferences=ThemePreference(settings.app.preferences_file),
    )

