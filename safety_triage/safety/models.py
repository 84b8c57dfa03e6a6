"""
Data models for chat screening.

ChatMessage content is read by the gateway and, on a pass, by the
assistant capability; it is never copied into any persisted structure.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, FrozenSet, Dict, Any

from safety_triage.exceptions import TriageValidationError
from safety_triage.triage.models import normalize_region_code

MAX_MESSAGE_CHARS = 1000


@dataclass(frozen=True)
class ChatMessage:
    """A single user chat message."""
    role: str
    content: str = field(repr=False)
    region_code: Optional[str] = None

    def __post_init__(self):
        if self.role != "user":
            raise TriageValidationError("only user messages are screened", field_name="role")
        if not isinstance(self.content, str) or not self.content.strip():
            raise TriageValidationError("message must not be empty", field_name="content")
        if len(self.content) > MAX_MESSAGE_CHARS:
            raise TriageValidationError(
                f"message exceeds {MAX_MESSAGE_CHARS} characters", field_name="content"
            )
        object.__setattr__(self, "region_code", normalize_region_code(self.region_code))


@dataclass(frozen=True)
class ModerationVerdict:
    """Verdict from the external content-safety capability."""
    allowed: bool
    crisis_signal: bool
    categories: FrozenSet[str] = frozenset()
    available: bool = True

    @classmethod
    def unavailable(cls) -> "ModerationVerdict":
        """Fail-closed verdict used when the capability errors or times out."""
        return cls(allowed=False, crisis_signal=False, available=False)


class ChatOutcome(str, Enum):
    """Terminal outcome of screening one message."""
    PASS = "pass"
    SOFT_BLOCK = "soft_block"
    CRISIS = "crisis"


@dataclass(frozen=True)
class ChatReply:
    """Reply returned to the chat caller."""
    outcome: ChatOutcome
    content: str
    blocked: bool
    crisis_mode: bool

    def __post_init__(self):
        if self.crisis_mode != (self.outcome == ChatOutcome.CRISIS):
            raise ValueError("crisis_mode must be set exactly for CRISIS replies")
        if self.outcome == ChatOutcome.SOFT_BLOCK and not self.blocked:
            raise ValueError("SOFT_BLOCK replies must be blocked")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the external response shape."""
        return {
            "content": self.content,
            "blocked": self.blocked,
            "crisisMode": self.crisis_mode,
        }
