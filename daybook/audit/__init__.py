"""Audit logging package."""

from daybook.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
