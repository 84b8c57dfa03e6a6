"""
Audit module for data-minimized safety events.

This module provides the text-free AuditEvent record and the
append-only AuditSink with its aggregate query surface.
"""

from safety_triage.audit.events import (
    AuditEvent, EventType, TriggerSource, ModerationOutcome, ResourceType
)
from safety_triage.audit.sink import AuditSink, AuditStats

__all__ = [
    "AuditEvent",
    "EventType",
    "TriggerSource",
    "ModerationOutcome",
    "ResourceType",
    "AuditSink",
    "AuditStats"
]
