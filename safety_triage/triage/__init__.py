"""
Triage module for the deterministic questionnaire classifier.
"""

from safety_triage.triage.models import (
    RiskLevel, NextAction, TriageAnswers, TriageResult,
    TriageQuestion, TRIAGE_QUESTIONS, normalize_region_code
)
from safety_triage.triage.classifier import classify

__all__ = [
    "RiskLevel",
    "NextAction",
    "TriageAnswers",
    "TriageResult",
    "TriageQuestion",
    "TRIAGE_QUESTIONS",
    "normalize_region_code",
    "classify"
]
