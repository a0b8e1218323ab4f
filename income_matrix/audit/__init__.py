"""Audit logging package."""

from income_matrix.audit.logger import AuditLogger, configure_logging

__all__ = ["AuditLogger", "configure_logging"]
