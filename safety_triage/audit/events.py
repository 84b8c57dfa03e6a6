"""
Audit event model.

An AuditEvent records that a routing decision happened, never what was
said. Every field is an enum member, a boolean, a timestamp, a
two-letter region code or a hex identifier; construction rejects
anything else, so free text has nowhere to go.
"""

import json
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any

from safety_triage.triage.models import RiskLevel

_EVENT_ID = re.compile(r"^[0-9a-f]{32}$")
_REGION_CODE = re.compile(r"^[A-Z]{2}$")


class EventType(str, Enum):
    """Types of audit events."""
    TRIAGE_COMPLETED = "triage_completed"
    CRISIS_MODE_TRIGGERED = "crisis_mode_triggered"
    CRISIS_MODE_TRIGGERED_BY_MODERATION = "crisis_mode_triggered_by_moderation"
    AI_ASSISTANT_USED = "ai_assistant_used"
    RESOURCE_CLICKED = "resource_clicked"


class TriggerSource(str, Enum):
    """Which path produced the decision."""
    TRIAGE = "triage"
    MODERATION = "moderation"


class ModerationOutcome(str, Enum):
    """Categorical moderation result for chat events."""
    SAFE = "safe"
    FLAGGED = "flagged"
    UNAVAILABLE = "unavailable"


class ResourceType(str, Enum):
    """Resource categories a user can open."""
    CRISIS = "crisis"


def _check_enum(name: str, value, enum_cls, required: bool = False) -> None:
    if value is None and not required:
        return
    if not isinstance(value, enum_cls):
        raise TypeError(f"{name} must be a {enum_cls.__name__}, got {type(value).__name__}")


@dataclass(frozen=True)
class AuditEvent:
    """An immutable, text-free audit record."""
    event_type: EventType
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    risk_level: Optional[RiskLevel] = None
    region_code: Optional[str] = None
    trigger_source: Optional[TriggerSource] = None
    moderation_outcome: Optional[ModerationOutcome] = None
    resource_type: Optional[ResourceType] = None
    notified_owner: bool = False

    def __post_init__(self):
        _check_enum("event_type", self.event_type, EventType, required=True)
        _check_enum("risk_level", self.risk_level, RiskLevel)
        _check_enum("trigger_source", self.trigger_source, TriggerSource)
        _check_enum("moderation_outcome", self.moderation_outcome, ModerationOutcome)
        _check_enum("resource_type", self.resource_type, ResourceType)

        if not isinstance(self.id, str) or not _EVENT_ID.match(self.id):
            raise TypeError("id must be a 32-character hex string")
        if not isinstance(self.created_at, datetime):
            raise TypeError("created_at must be a datetime")
        if self.region_code is not None and (
            not isinstance(self.region_code, str) or not _REGION_CODE.match(self.region_code)
        ):
            raise TypeError("region_code must be a two-letter upper-case code")
        if not isinstance(self.notified_owner, bool):
            raise TypeError("notified_owner must be a bool")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "event_type": self.event_type.value,
            "risk_level": self.risk_level.value if self.risk_level else None,
            "region_code": self.region_code,
            "trigger_source": self.trigger_source.value if self.trigger_source else None,
            "moderation_outcome": self.moderation_outcome.value if self.moderation_outcome else None,
            "resource_type": self.resource_type.value if self.resource_type else None,
            "notified_owner": self.notified_owner,
            "created_at": self.created_at.isoformat(),
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditEvent":
        """
        Rebuild an event from its ``to_dict`` form.

        Raises:
            ValueError: If a value is not a known member of its enum
            KeyError: If a required key is missing
        """
        def member(enum_cls, key):
            value = data.get(key)
            return enum_cls(value) if value is not None else None

        return cls(
            event_type=EventType(data["event_type"]),
            id=data["id"],
            created_at=datetime.fromisoformat(data["created_at"]),
            risk_level=member(RiskLevel, "risk_level"),
            region_code=data.get("region_code"),
            trigger_source=member(TriggerSource, "trigger_source"),
            moderation_outcome=member(ModerationOutcome, "moderation_outcome"),
            resource_type=member(ResourceType, "resource_type"),
            notified_owner=data.get("notified_owner", False)
        )
