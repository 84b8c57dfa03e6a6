"""
Safety triage and crisis routing.
"""

__version__ = "1.0.0"
