"""
Identity signal scoring over an external Steam profile

Independent of the six validation layers: a second confidence source used
when a profile could be fetched for the entity.
"""

import re
import time
from dataclasses import dataclass
from typing import Iterable, Optional

from fivem_bot_detection.core.name_patterns import has_vowel, is_suspicious_name
from fivem_bot_detection.core.scoring import ScoringRule, score_all
from fivem_bot_detection.core.types import IdentityAssessment, IdentityProfile

STEAM_IDENTIFIER_PREFIX = 'steam:'
DEFAULT_AVATAR_PATH = 'steamcommunity/public/images/avatars/fe/'
TARGET_APPLICATION = 'fivem'

DAY_SECONDS = 24 * 60 * 60
RECENT_LOGOFF_SECONDS = 6 * 60
LIKELY_BOT_CONFIDENCE = 50
MAX_CONFIDENCE = 100
TARGET_APPLICATION_BONUS = 10

VISIBILITY_PRIVATE = 1
VISIBILITY_FRIENDS_ONLY = 2
PERSONA_ONLINE = 1

_RANDOM_NAME = re.compile(r'[A-Za-z0-9]{8,}')


def hex_to_steam64(hex_id: str) -> Optional[int]:
    """Convert a hex steam identifier payload to its Steam64 decimal id"""
    try:
        return int(hex_id, 16)
    except (TypeError, ValueError):
        return None


def extract_steam_id(identifiers: Iterable[str]) -> Optional[int]:
    """Steam64 id of the first `steam:<hex>` identifier, None if absent or malformed"""
    for identifier in identifiers:
        if identifier.startswith(STEAM_IDENTIFIER_PREFIX):
            return hex_to_steam64(identifier[len(STEAM_IDENTIFIER_PREFIX):])
    return None


@dataclass(frozen=True)
class _ProfileAtTime:
    profile: IdentityProfile
    now: float

    @property
    def account_age_days(self) -> Optional[float]:
        if not self.profile.time_created:
            return None
        return (self.now - self.profile.time_created) / DAY_SECONDS

    @property
    def seconds_since_logoff(self) -> Optional[float]:
        if not self.profile.last_logoff:
            return None
        return self.now - self.profile.last_logoff


def _age_between(low: float, high: float):
    def predicate(s: _ProfileAtTime) -> bool:
        age = s.account_age_days
        return age is not None and low <= age < high
    return predicate


IDENTITY_RULES = [
    # Account age buckets are mutually exclusive
    ScoringRule('Account less than 1 day old', 30, _age_between(float('-inf'), 1)),
    ScoringRule('Account less than 1 week old', 15, _age_between(1, 7)),
    ScoringRule('Account less than 1 month old', 5, _age_between(7, 30)),
    ScoringRule('Private profile', 20,
                lambda s: s.profile.visibility_state == VISIBILITY_PRIVATE),
    ScoringRule('Friends-only profile', 10,
                lambda s: s.profile.visibility_state == VISIBILITY_FRIENDS_ONLY),
    ScoringRule('Online but not playing any game', 15,
                lambda s: s.profile.persona_state == PERSONA_ONLINE and not s.profile.game_extra_info),
    ScoringRule('Default Steam avatar', 10,
                lambda s: DEFAULT_AVATAR_PATH in s.profile.avatar),
    ScoringRule('Suspicious Steam name', 20,
                lambda s: bool(s.profile.persona_name) and is_suspicious_name(s.profile.persona_name)),
    ScoringRule('Random character Steam name', 15,
                lambda s: bool(_RANDOM_NAME.fullmatch(s.profile.persona_name)) and
                not has_vowel(s.profile.persona_name)),
    ScoringRule('Missing profile information', 10,
                lambda s: not s.profile.real_name and not s.profile.country_code),
    ScoringRule('Very recent logoff (possible bot restart)', 15,
                lambda s: s.seconds_since_logoff is not None and
                s.seconds_since_logoff < RECENT_LOGOFF_SECONDS),
]


def plays_target_application(profile: IdentityProfile) -> bool:
    return TARGET_APPLICATION in profile.game_extra_info.lower()


def score_identity(profile: Optional[IdentityProfile],
                   now: Optional[float] = None) -> IdentityAssessment:
    """
    Score a profile for bot indicators

    Args:
        profile: Steam profile, or None when the lookup found nothing
        now: Evaluation time in unix seconds (defaults to current time)

    Returns:
        IdentityAssessment; an absent profile contributes nothing
    """
    if profile is None:
        return IdentityAssessment()

    if now is None:
        now = time.time()

    result = score_all(IDENTITY_RULES, _ProfileAtTime(profile=profile, now=now))
    confidence = min(result.score, MAX_CONFIDENCE)

    # Playing the target application lowers suspicion after the cap
    if plays_target_application(profile):
        confidence = max(0, confidence - TARGET_APPLICATION_BONUS)

    return IdentityAssessment(
        indicators=result.reasons,
        confidence=confidence,
        is_likely_bot=confidence >= LIKELY_BOT_CONFIDENCE,
    )
