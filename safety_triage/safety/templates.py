"""
Fixed response templates and the assistant output guard.

Every string here is static; none is ever built from user input.
"""

CRISIS_FALLBACK = """I'm not able to respond to that right now, but please know help is available immediately.

**Call or text 988** - Suicide & Crisis Lifeline (free, 24/7)
**Call 911** if you are in immediate danger
**Text HOME to 741741** - Crisis Text Line

You are not alone."""

SAFETY_TEMPLATE = """I can't help with that request here. I can help you find mental health resources and explain your options.

If you are struggling right now, you can call or text 988 at any time."""

DISALLOWED_CONTENT_FALLBACK = """I can only help with finding mental health resources and explaining your options. For clinical advice or treatment, please connect with a licensed professional.

Would you like help finding a therapist or understanding your options?"""

ASSISTANT_UNAVAILABLE = (
    "I'm having trouble right now. Please use the search tools to find resources. "
    "If you need to talk to someone now, call or text 988."
)

EMERGENCY_DIRECTIVE = (
    "We could not complete your request. If you are in immediate danger, call 911. "
    "To talk to someone now, call or text 988 (Suicide & Crisis Lifeline) "
    "or text HOME to 741741."
)

DISALLOWED_OUTPUT_PATTERNS = (
    "you have",
    "you are diagnosed",
    "i diagnose",
    "your condition is",
    "you should take",
    "medication for",
    "clinical recommendation",
)


def contains_disallowed_content(text: str) -> bool:
    """Return True if an assistant reply reads as clinical advice."""
    lowered = text.lower()
    return any(pattern in lowered for pattern in DISALLOWED_OUTPUT_PATTERNS)
