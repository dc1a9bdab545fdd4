"""Audit utilities for Coinflip."""
from .audit import AuditEventType, AuditSeverity, AuditLogger, NullAuditLogger

__all__ = ["AuditEventType", "AuditSeverity", "AuditLogger", "NullAuditLogger"]
