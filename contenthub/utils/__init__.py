"""Shared utilities."""

from contenthub.utils.audit import AuditEvent, log_audit_event

__all__ = ["AuditEvent", "log_audit_event"]
