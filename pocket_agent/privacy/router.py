"""
Privacy Router.

Decides the tier a tool call runs at. Every intent (and every tool
descriptor it may trigger) declares a floor, the tier it needs; the user
configures a ceiling, the loosest tier they allow. Resolution returns the
most restrictive tier satisfying both, or ``Denied`` when the floor lies
above the ceiling. Resolution fails closed and never escalates.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Union

from ..models.config import PrivacyConfig
from ..models.intent import (
    AgentIntent,
    GeneralQuery,
    PlayMedia,
    QueueMedia,
    SendMessage,
    SetReminder,
    Summarize,
)
from ..models.privacy import PrivacyTier
from .classifier import PrivacyClassifier

if TYPE_CHECKING:
    from ..tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

# Minimum tier each intent needs. Every built-in intent can be served
# on-device, so all floors are LOCAL; a tool descriptor may raise it.
INTENT_FLOORS: dict[type[AgentIntent], PrivacyTier] = {
    SendMessage: PrivacyTier.LOCAL,
    PlayMedia: PrivacyTier.LOCAL,
    QueueMedia: PrivacyTier.LOCAL,
    SetReminder: PrivacyTier.LOCAL,
    Summarize: PrivacyTier.LOCAL,
    GeneralQuery: PrivacyTier.LOCAL,
}


@dataclass(frozen=True)
class Denied:
    """A refused resolution."""

    reason: str
    floor: PrivacyTier
    ceiling: PrivacyTier


Resolution = Union[PrivacyTier, Denied]


@dataclass(frozen=True)
class PrivacyPreferences:
    """Per-category privacy ceilings."""

    default: PrivacyTier = PrivacyTier.LOCAL
    messaging: PrivacyTier = PrivacyTier.LOCAL
    media: PrivacyTier = PrivacyTier.ANONYMIZED
    general: PrivacyTier = PrivacyTier.ANONYMIZED

    @classmethod
    def from_config(cls, privacy: PrivacyConfig) -> "PrivacyPreferences":
        return cls(
            default=privacy.default_ceiling,
            messaging=privacy.messaging_ceiling,
            media=privacy.media_ceiling,
            general=privacy.general_ceiling,
        )

    def ceiling_for(self, intent: AgentIntent) -> PrivacyTier:
        if isinstance(intent, (SendMessage, Summarize)):
            return self.messaging
        if isinstance(intent, (PlayMedia, QueueMedia)):
            return self.media
        if isinstance(intent, GeneralQuery):
            return self.general
        return self.default


class PrivacyRouter:
    """Resolves the processing tier for each intent."""

    def __init__(
        self,
        registry: "ToolRegistry",
        preferences: Optional[PrivacyPreferences] = None,
        classifier: Optional[PrivacyClassifier] = None,
        classify_requests: bool = True,
    ):
        self.registry = registry
        self.preferences = preferences or PrivacyPreferences()
        self.classifier = classifier or PrivacyClassifier()
        self.classify_requests = classify_requests

    def floor_for(self, intent: AgentIntent, tool_name: Optional[str] = None) -> PrivacyTier:
        """The strictest tier the intent and its tool can run at."""
        floor = INTENT_FLOORS.get(type(intent), PrivacyTier.LOCAL)
        if tool_name is not None:
            descriptor = self.registry.get(tool_name)
            if descriptor is not None:
                floor = max(floor, descriptor.min_privacy_tier)
        return floor

    def request_ceiling(self, intent: AgentIntent, user_text: str = "") -> PrivacyTier:
        """
        Ceiling for one request: the category preference, tightened to the
        classified tier of the user's message when classification is on.
        """
        ceiling = self.preferences.ceiling_for(intent)
        if self.classify_requests and user_text:
            ceiling = min(ceiling, self.classifier.classify(user_text))
        return ceiling

    def resolve_tier(
        self,
        intent: AgentIntent,
        user_ceiling: PrivacyTier,
        tool_name: Optional[str] = None,
    ) -> Resolution:
        """
        Pick the most restrictive tier satisfying floor and ceiling.

        Returns:
            The resolved tier, or ``Denied`` if the floor exceeds the ceiling.
        """
        floor = self.floor_for(intent, tool_name)
        if floor > user_ceiling:
            subject = tool_name or type(intent).__name__
            reason = (
                f"'{subject}' requires {floor.name} processing but the privacy "
                f"ceiling is {user_ceiling.name}"
            )
            logger.warning("Privacy denied: %s", reason)
            return Denied(reason=reason, floor=floor, ceiling=user_ceiling)
        return floor
