"""
Audit Models for Daybook

Every mutation of the synchronized collections, every profile switch and
every reminder (re)scheduling is logged for audit purposes.
This provides:
1. Traceability of what was written to the remote store and when
2. Debugging information when local and remote state diverge
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Records
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"
    WRITE_FAILED = "write_failed"

    # Profiles
    PROFILE_SWITCHED = "profile_switched"
    PROFILE_SWITCH_PARTIAL = "profile_switch_partial"

    # Deferred task deletion
    DELETE_REQUESTED = "delete_requested"
    DELETE_UNDONE = "delete_undone"

    # Synchronization
    DATA_REFRESHED = "data_refreshed"

    # Reminders
    REMINDERS_REARMED = "reminders_rearmed"
    REMINDER_SKIPPED = "reminder_skipped"
    REMINDER_FIRED = "reminder_fired"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what is this about?
    collection: Optional[str] = Field(
        default=None,
        description="Collection the record lives in (e.g., 'tasks')"
    )
    record_id: Optional[str] = Field(
        default=None,
        description="ID of the record this event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "collection": self.collection,
            "record_id": self.record_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_document(self) -> dict:
        """Convert to a remote document for the audit collection."""
        document = self.to_log_dict()
        document.pop("event_id")
        return document


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created("tasks", task_id)
        event = AuditEventBuilder.profile_switched(profile_id, previous_id)
    """

    @staticmethod
    def record_created(collection: str, record_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            collection=collection,
            record_id=record_id,
            description=f"Created {collection} record {record_id}",
        )

    @staticmethod
    def record_updated(
        collection: str,
        record_id: str,
        fields: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            collection=collection,
            record_id=record_id,
            description=f"Updated {collection} record {record_id}",
            details={"fields": fields},
        )

    @staticmethod
    def record_deleted(collection: str, record_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            collection=collection,
            record_id=record_id,
            description=f"Deleted {collection} record {record_id}",
        )

    @staticmethod
    def write_failed(
        collection: str,
        operation: str,
        error_message: str,
        record_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WRITE_FAILED,
            severity=AuditSeverity.ERROR,
            collection=collection,
            record_id=record_id,
            description=f"Remote {operation} on {collection} failed",
            details={"operation": operation},
            error_message=error_message,
        )

    @staticmethod
    def profile_switched(
        profile_id: str,
        previous_id: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_SWITCHED,
            collection="profiles",
            record_id=profile_id,
            description=f"Active profile switched to {profile_id}",
            details={"previous_profile_id": previous_id},
        )

    @staticmethod
    def profile_switch_partial(
        profile_id: str,
        failed_ids: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_SWITCH_PARTIAL,
            severity=AuditSeverity.ERROR,
            collection="profiles",
            record_id=profile_id,
            description=f"Profile switch to {profile_id} only partially applied",
            details={"failed_ids": failed_ids},
        )

    @staticmethod
    def delete_requested(record_id: str, grace_seconds: float) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DELETE_REQUESTED,
            collection="tasks",
            record_id=record_id,
            description=f"Task {record_id} will be deleted in {grace_seconds:g}s",
            details={"grace_period_seconds": grace_seconds},
        )

    @staticmethod
    def delete_undone(record_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DELETE_UNDONE,
            collection="tasks",
            record_id=record_id,
            description=f"Deletion of task {record_id} undone",
        )

    @staticmethod
    def data_refreshed(results: dict[str, bool]) -> AuditEvent:
        failed = [name for name, ok in results.items() if not ok]
        return AuditEvent(
            event_type=AuditEventType.DATA_REFRESHED,
            severity=AuditSeverity.WARNING if failed else AuditSeverity.INFO,
            description=(
                f"Refresh failed for {', '.join(failed)}"
                if failed
                else "All collections refreshed"
            ),
            details={"results": results},
        )

    @staticmethod
    def reminders_rearmed(
        profile_id: Optional[str],
        armed_count: int,
        skipped_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDERS_REARMED,
            collection="reminders",
            description=f"Armed {armed_count} reminder(s)",
            details={
                "profile_id": profile_id,
                "armed": armed_count,
                "skipped": skipped_count,
            },
        )

    @staticmethod
    def reminder_skipped(record_id: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDER_SKIPPED,
            severity=AuditSeverity.WARNING,
            collection="reminders",
            record_id=record_id,
            description=f"Reminder {record_id} not scheduled",
            details={"reason": reason},
        )

    @staticmethod
    def reminder_fired(record_id: str, title: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDER_FIRED,
            collection="reminders",
            record_id=record_id,
            description=f"Reminder fired: {title}",
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
