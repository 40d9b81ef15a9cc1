"""
Privacy tiers.

Tiers are ordered from most to least restrictive, so plain integer
comparison answers "is this tier allowed to go further than that one":
``LOCAL < ANONYMIZED < CLOUD``.
"""

from enum import IntEnum


class PrivacyTier(IntEnum):
    """Where processing for a request is allowed to happen."""

    LOCAL = 0
    ANONYMIZED = 1
    CLOUD = 2

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    @classmethod
    def parse(cls, value: "str | PrivacyTier") -> "PrivacyTier":
        """Parse a tier from its (case-insensitive) name."""
        if isinstance(value, PrivacyTier):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown privacy tier: {value}") from None


_DESCRIPTIONS = {
    PrivacyTier.LOCAL: "Never leaves device",
    PrivacyTier.ANONYMIZED: "Anonymized cloud processing",
    PrivacyTier.CLOUD: "Cloud processing allowed",
}
