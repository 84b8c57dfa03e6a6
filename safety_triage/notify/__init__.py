"""
Notification module for operator crisis alerts.
"""

from safety_triage.notify.relay import (
    CrisisNotice, NotificationRelay, LogChannel, WebhookChannel
)

__all__ = [
    "CrisisNotice",
    "NotificationRelay",
    "LogChannel",
    "WebhookChannel"
]
