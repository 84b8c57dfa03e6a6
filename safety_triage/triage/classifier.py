"""
Deterministic triage classifier.

Maps the five questionnaire answers to a risk level with a fixed
precedence. Pure and synchronous: no I/O, no shared state, no model.
"""

from safety_triage.triage.models import TriageAnswers, RiskLevel


def classify(answers: TriageAnswers) -> RiskLevel:
    """
    Classify a questionnaire submission.

    Danger answers are checked first and short-circuit; the urgency
    answers are never consulted once any of them is true, matching the
    questionnaire ending early on a "yes".

    Args:
        answers: Validated triage answers

    Returns:
        RiskLevel: EMERGENCY, URGENT or ROUTINE
    """
    if answers.immediate_danger or answers.harm_self or answers.harm_others:
        return RiskLevel.EMERGENCY

    # Both urgency questions map to URGENT; kept as separate rules so
    # either can be retargeted independently.
    if answers.need_help_soon:
        return RiskLevel.URGENT

    if answers.need_help_today:
        return RiskLevel.URGENT

    return RiskLevel.ROUTINE
