"""
Request privacy classifier.

Keyword and pattern based classification of a user request into the
privacy tier it may be processed at, plus PII redaction for requests that
leave the device anonymised. Ambiguous input classifies as LOCAL.
"""

import logging
import re

from ..models.privacy import PrivacyTier

logger = logging.getLogger(__name__)

# Keywords that indicate personal or on-device data.
LOCAL_KEYWORDS = (
    # Contacts and people
    "contact", "contacts", "phone number", "call", "dial",
    # Messaging
    "message", "messages", "sms", "text", "reply", "send message",
    "whatsapp", "telegram", "signal", "teams",
    # Calendar and reminders
    "calendar", "schedule", "meeting", "appointment", "reminder", "alarm",
    "event", "agenda",
    # Personal references
    "my", "mine", "private", "personal", "secret",
    # Files and media on device
    "photo", "gallery", "camera", "screenshot", "download", "file",
    "document", "pdf",
    # Device state
    "battery", "wifi", "bluetooth", "location", "gps",
    "notification", "notifications",
    # Sensitive data
    "password", "credential", "bank", "account", "ssn",
    "credit card", "health", "medical",
)

# Keywords that explicitly ask for external or real-time data.
CLOUD_KEYWORDS = (
    "search the web", "google", "look up online", "latest news",
    "real-time", "realtime", "live", "current price",
    "stock price", "weather forecast", "trending",
    "use cloud", "use the cloud", "external",
    "complex reasoning", "deep analysis",
    "translate to", "summarize this article",
    "browse", "web search", "internet",
)

# General-knowledge keywords, safe for anonymised processing.
ANONYMIZED_KEYWORDS = (
    "what is", "who is", "how to", "how do", "explain",
    "define", "definition", "meaning of",
    "code", "program", "function", "algorithm", "syntax",
    "python", "kotlin", "java", "javascript", "typescript",
    "bug", "error", "compile", "debug",
    "history of", "science", "math", "physics", "chemistry",
    "recipe", "instructions for", "tutorial",
    "compare", "difference between", "versus", "vs",
    "best practices", "recommendation",
    "capital of", "population of", "distance between",
)

_EMAIL = r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}"
_SSN = r"\b\d{3}-\d{2}-\d{4}\b"
_CARD = r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b"
_US_PHONE = r"(?:\+?1[\s.-]?)?\(?\b\d{3}\)?[\s.-]?\d{3}[\s.-]?\d{4}\b"
_INTL_PHONE = r"\+\d{1,4}[\s.-]?\d{4,14}"
_ADDRESS = r"\b\d{1,5}\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\s+(?:St|Ave|Blvd|Dr|Ln|Rd|Way|Ct|Pl)\b"

PII_PATTERNS = tuple(
    re.compile(p)
    for p in (
        _US_PHONE,
        _INTL_PHONE,
        _EMAIL,
        r"\b(?:from|to|for|about)\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*",
        _SSN,
        _CARD,
        _ADDRESS,
    )
)

# Applied in order; cards and SSNs before phone numbers so their digits
# are not half-consumed as phones.
REDACTIONS = (
    (re.compile(_EMAIL), "[EMAIL]"),
    (re.compile(_SSN), "[SSN]"),
    (re.compile(_CARD), "[CARD]"),
    (re.compile(_US_PHONE), "[PHONE]"),
    (re.compile(_INTL_PHONE), "[PHONE]"),
    (re.compile(r"\b((?i:from|to|for|about))\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+"), r"\1 [NAME]"),
    (re.compile(_ADDRESS), "[ADDRESS]"),
)

REDACTION_TOKENS = frozenset({"[EMAIL]", "[SSN]", "[CARD]", "[PHONE]", "[NAME]", "[ADDRESS]"})


def _keyword_pattern(keywords: tuple[str, ...]) -> re.Pattern:
    alternatives = sorted((re.escape(k) for k in keywords), key=len, reverse=True)
    return re.compile(r"\b(?:" + "|".join(alternatives) + r")\b", re.IGNORECASE)


class PrivacyClassifier:
    """
    Classifies requests into privacy tiers.

    Priority order:
        1. PII patterns or personal keywords -> LOCAL
        2. Explicit cloud keywords -> CLOUD
        3. General-knowledge keywords -> ANONYMIZED
        4. Anything else -> LOCAL
    """

    def __init__(self):
        self._local = _keyword_pattern(LOCAL_KEYWORDS)
        self._cloud = _keyword_pattern(CLOUD_KEYWORDS)
        self._anonymized = _keyword_pattern(ANONYMIZED_KEYWORDS)

    def classify(self, text: str) -> PrivacyTier:
        if self.contains_personal_data(text):
            tier = PrivacyTier.LOCAL
        elif self._local.search(text):
            tier = PrivacyTier.LOCAL
        elif self._cloud.search(text):
            tier = PrivacyTier.CLOUD
        elif self._anonymized.search(text):
            tier = PrivacyTier.ANONYMIZED
        else:
            tier = PrivacyTier.LOCAL
        logger.debug("Classified request as %s", tier.name)
        return tier

    @staticmethod
    def contains_personal_data(text: str) -> bool:
        return any(pattern.search(text) for pattern in PII_PATTERNS)

    @staticmethod
    def redact(text: str) -> str:
        """Replace PII with placeholder tokens, keeping the sentence shape."""
        redacted = text
        for pattern, replacement in REDACTIONS:
            redacted = pattern.sub(replacement, redacted)
        return redacted

    def audit_response(self, text: str) -> bool:
        """True if ``text`` appears free of PII."""
        return not self.contains_personal_data(text)
