"""
Data models for the triage questionnaire.

TriageAnswers lives only for the duration of one classification call;
TriageResult is the only shape that leaves the router.
"""

import re
from dataclasses import dataclass, fields
from enum import Enum
from typing import Optional, Dict, Any, Mapping

from safety_triage.exceptions import TriageValidationError

_REGION_CODE = re.compile(r"^[A-Za-z]{2}$")


class RiskLevel(str, Enum):
    """Categorical triage outcome. No numeric ordering is implied."""
    EMERGENCY = "EMERGENCY"
    URGENT = "URGENT"
    ROUTINE = "ROUTINE"


class NextAction(str, Enum):
    """Where the front end sends the person next."""
    CRISIS_RESOURCES = "crisis_resources"
    URGENT_RESOURCES = "urgent_resources"
    PROVIDER_SEARCH = "provider_search"


def normalize_region_code(region_code: Optional[str]) -> Optional[str]:
    """Validate and upper-case an optional two-letter region code."""
    if region_code is None:
        return None
    if not isinstance(region_code, str) or not _REGION_CODE.match(region_code):
        raise TriageValidationError(
            "must be a two-letter region code", field_name="region_code"
        )
    return region_code.upper()


@dataclass(frozen=True)
class TriageAnswers:
    """Answers to the five triage questions."""
    immediate_danger: bool
    harm_self: bool
    harm_others: bool
    need_help_soon: bool
    need_help_today: bool
    region_code: Optional[str] = None

    def __post_init__(self):
        # A missing or non-boolean danger answer must never default to "no"
        for f in fields(self):
            if f.name == "region_code":
                continue
            value = getattr(self, f.name)
            if not isinstance(value, bool):
                raise TriageValidationError(
                    f"expected a boolean, got {type(value).__name__}",
                    field_name=f.name
                )
        object.__setattr__(self, "region_code", normalize_region_code(self.region_code))

    @property
    def danger_signals(self) -> bool:
        return self.immediate_danger or self.harm_self or self.harm_others

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TriageAnswers":
        """
        Build answers from a submission payload.

        Accepts snake_case or camelCase keys. Every answer is required.

        Raises:
            TriageValidationError: If an answer is missing or malformed
        """
        if not isinstance(data, Mapping):
            raise TriageValidationError(
                f"submission must be an object, got {type(data).__name__}"
            )

        values = {}
        for question in TRIAGE_QUESTIONS:
            for key in (question.id, question.wire_id):
                if key in data:
                    values[question.id] = data[key]
                    break
            else:
                raise TriageValidationError("answer is required", field_name=question.id)

        region = data.get("region_code", data.get("regionCode"))
        return cls(region_code=region, **values)


@dataclass(frozen=True)
class TriageQuestion:
    """A single questionnaire item."""
    id: str
    wire_id: str
    order: int
    text: str
    is_emergency_trigger: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.wire_id,
            "order": self.order,
            "text": self.text,
            "answers": ["Yes", "No"],
            "isEmergencyTrigger": self.is_emergency_trigger,
        }


TRIAGE_QUESTIONS = (
    TriageQuestion("immediate_danger", "immediateDanger", 1,
                   "Are you in immediate danger right now?", True),
    TriageQuestion("harm_self", "harmSelf", 2,
                   "Are you thinking about harming yourself right now?", True),
    TriageQuestion("harm_others", "harmOthers", 3,
                   "Are you thinking about harming someone else right now?", True),
    TriageQuestion("need_help_soon", "needHelpSoon", 4,
                   "Do you need to talk to someone within the next hour?", False),
    TriageQuestion("need_help_today", "needHelpToday", 5,
                   "Do you need help today?", False),
)


_OUTCOMES = {
    RiskLevel.EMERGENCY: (
        NextAction.CRISIS_RESOURCES,
        "Immediate support resources are available right now.",
    ),
    RiskLevel.URGENT: (
        NextAction.URGENT_RESOURCES,
        "You're not alone. Here are the fastest options.",
    ),
    RiskLevel.ROUTINE: (
        NextAction.PROVIDER_SEARCH,
        "Let's find the right support for you.",
    ),
}


@dataclass(frozen=True)
class TriageResult:
    """Routing decision for a questionnaire submission."""
    risk_level: RiskLevel
    crisis_mode: bool
    region_code: Optional[str] = None
    next_action: Optional[NextAction] = None
    message: str = ""

    def __post_init__(self):
        if self.crisis_mode != (self.risk_level == RiskLevel.EMERGENCY):
            raise ValueError("crisis_mode must be set exactly for EMERGENCY results")

    @classmethod
    def for_level(cls, risk_level: RiskLevel, region_code: Optional[str] = None) -> "TriageResult":
        """Create the result for a classified risk level."""
        next_action, message = _OUTCOMES[risk_level]
        return cls(
            risk_level=risk_level,
            crisis_mode=risk_level == RiskLevel.EMERGENCY,
            region_code=region_code,
            next_action=next_action,
            message=message
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the external response shape."""
        return {
            "riskLevel": self.risk_level.value,
            "crisisMode": self.crisis_mode,
            "nextAction": self.next_action.value if self.next_action else None,
            "message": self.message,
        }
