"""
Privacy tier routing, request classification and PII redaction.
"""

from .classifier import PrivacyClassifier
from .router import INTENT_FLOORS, Denied, PrivacyPreferences, PrivacyRouter, Resolution

__all__ = [
    "Denied",
    "INTENT_FLOORS",
    "PrivacyClassifier",
    "PrivacyPreferences",
    "PrivacyRouter",
    "Resolution",
]
