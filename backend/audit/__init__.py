"""Audit trail for claim decisions."""

from .sqlite_sink import SqliteAuditSink, init_audit_table

__all__ = ["SqliteAuditSink", "init_audit_table"]
