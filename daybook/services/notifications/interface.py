"""
Abstract Notification Scheduler Interface

The OS-level notification mechanism is opaque to Daybook: it accepts a
fire time, a payload and a recurrence hint, and hands back a trigger id
that can be cancelled later.

Recurrence hints are best-effort. Callers must check `supports()` and
re-arm one-shot triggers themselves for rules the backend can't repeat.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from daybook.models.entities import Recurrence


class ScheduledNotification(BaseModel):
    """A notification handed to the scheduler."""
    model_config = ConfigDict(frozen=True)

    trigger_id: str
    fire_time: datetime
    title: str
    body: str
    recurrence_hint: Optional[Recurrence] = None


class NotificationScheduler(ABC):
    """
    Abstract interface for time-based notification delivery.
    """

    @abstractmethod
    async def schedule(
        self,
        fire_time: datetime,
        title: str,
        body: str,
        recurrence_hint: Optional[Recurrence] = None,
    ) -> str:
        """
        Schedule a notification.

        Args:
            fire_time: First delivery time (local, naive)
            title: Notification title
            body: Notification body
            recurrence_hint: Repeat rule, or None for one-shot

        Returns:
            Trigger id usable with cancel()
        """
        pass

    @abstractmethod
    async def cancel(self, trigger_id: str) -> None:
        """Cancel a trigger. Unknown ids are ignored."""
        pass

    @abstractmethod
    async def cancel_all(self) -> None:
        """Cancel every trigger this scheduler knows about."""
        pass

    def supports(self, hint: Optional[Recurrence]) -> bool:
        """Whether the scheduler repeats `hint` natively."""
        return hint is None or hint == Recurrence.NONE

