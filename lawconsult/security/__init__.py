"""Security: audit trail persistence."""

from lawconsult.security.audit import audit_on_event

__all__ = ["audit_on_event"]
