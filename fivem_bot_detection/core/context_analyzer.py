"""
Server context analysis

Derives population-wide flags, penalty adjustments and an advisory bot
threshold from server metadata and population size. Rules run as an
explicit ordered pipeline; later rules act on whatever threshold the
earlier ones left, so the order below is significant.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from fivem_bot_detection.core.types import (
    Entity, PenaltyAdjustments, ServerContext, ServerMetadata
)

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.3

DEV_HOSTNAME_TOKENS = ('test', 'dev', 'development', 'debug', 'staging')
ROLEPLAY_TOKENS = ('roleplay', 'rp')
FREEROAM_TOKENS = ('freeroam', 'free roam')


def _contains_any(text: str, tokens: Sequence[str]) -> bool:
    return any(token in text for token in tokens)


@dataclass(frozen=True)
class ContextInputs:
    """Everything the rules may look at"""
    metadata: ServerMetadata
    total_players: int
    hour: int

    @property
    def hostname(self) -> str:
        return self.metadata.hostname.lower()

    @property
    def game_type(self) -> str:
        return self.metadata.game_type.lower()

    @property
    def tags(self) -> str:
        return (self.metadata.config_vars.get('tags') or "").lower()

    @property
    def owner(self) -> str:
        return self.metadata.owner_name.lower()

    @property
    def resource_names(self) -> str:
        return ' '.join(r.lower() for r in self.metadata.resources)

    @property
    def player_ratio(self) -> float:
        return self.total_players / self.metadata.max_clients


# Threshold operations

@dataclass(frozen=True)
class SetThreshold:
    value: float

    def apply(self, current: float) -> float:
        return self.value


@dataclass(frozen=True)
class TightenThreshold:
    value: float

    def apply(self, current: float) -> float:
        return min(current, self.value)


@dataclass(frozen=True)
class LoosenThreshold:
    value: float

    def apply(self, current: float) -> float:
        return max(current, self.value)


ThresholdOp = Union[SetThreshold, TightenThreshold, LoosenThreshold]


@dataclass
class ContextDraft:
    """Mutable working copy used while the pipeline runs"""
    is_development_server: bool = False
    is_low_population: bool = False
    is_test_server: bool = False
    is_roleplay_server: bool = False
    is_freeroam_server: bool = False
    has_whitelist: bool = False
    is_private_server: bool = False
    server_reputation: str = "unknown"
    expected_bot_threshold: float = DEFAULT_THRESHOLD
    context_factors: List[str] = field(default_factory=list)
    adjustments: Dict[str, int] = field(default_factory=dict)

    def freeze(self, total_players: int) -> ServerContext:
        return ServerContext(
            is_development_server=self.is_development_server,
            is_low_population=self.is_low_population,
            is_test_server=self.is_test_server,
            is_roleplay_server=self.is_roleplay_server,
            is_freeroam_server=self.is_freeroam_server,
            has_whitelist=self.has_whitelist,
            is_private_server=self.is_private_server,
            server_reputation=self.server_reputation,
            expected_bot_threshold=self.expected_bot_threshold,
            context_factors=tuple(self.context_factors),
            total_players=total_players,
            adjustments=PenaltyAdjustments(**self.adjustments),
        )


@dataclass(frozen=True)
class ContextRule:
    """(predicate, threshold operation) pair plus the flags it sets"""
    name: str
    applies: Callable[[ContextInputs, ContextDraft], bool]
    threshold: Optional[ThresholdOp] = None
    factor: Optional[str] = None
    effect: Optional[Callable[[ContextDraft], None]] = None


# Effects

def _mark_development(draft: ContextDraft):
    draft.is_development_server = True
    draft.is_test_server = True
    draft.adjustments['no_identifiers'] = -20
    draft.adjustments['localhost'] = -30


def _mark_roleplay(draft: ContextDraft):
    draft.is_roleplay_server = True
    draft.adjustments['suspicious_names'] = 10


def _mark_whitelist_var(draft: ContextDraft):
    draft.has_whitelist = True
    draft.adjustments['no_identifiers'] = 15


def _mark_low_population(draft: ContextDraft):
    draft.is_low_population = True
    draft.adjustments['no_identifiers'] = -15


def _set(attr: str, value=True) -> Callable[[ContextDraft], None]:
    def effect(draft: ContextDraft):
        setattr(draft, attr, value)
    return effect


CONTEXT_RULES: Tuple[ContextRule, ...] = (
    # 1. Hostname
    ContextRule('development_hostname',
                lambda i, d: _contains_any(i.hostname, DEV_HOSTNAME_TOKENS),
                SetThreshold(0.8), 'Development/Test server detected', _mark_development),
    # 2. Game mode
    ContextRule('roleplay_game_type',
                lambda i, d: _contains_any(i.game_type, ROLEPLAY_TOKENS),
                SetThreshold(0.2), 'Roleplay server detected', _mark_roleplay),
    ContextRule('freeroam_game_type',
                lambda i, d: (not _contains_any(i.game_type, ROLEPLAY_TOKENS) and
                              _contains_any(i.game_type, FREEROAM_TOKENS)),
                SetThreshold(0.4), 'Freeroam server detected', _set('is_freeroam_server')),
    # 3. Config variables
    ContextRule('whitelist_variable',
                lambda i, d: i.metadata.whitelist_enabled,
                SetThreshold(0.15), 'Whitelisted server detected', _mark_whitelist_var),
    ContextRule('password_variable',
                lambda i, d: i.metadata.password_set,
                SetThreshold(0.25), 'Private server detected', _set('is_private_server')),
    # 4. Privacy flag
    ContextRule('private_flag',
                lambda i, d: i.metadata.is_private,
                SetThreshold(0.25), 'Private server confirmed', _set('is_private_server')),
    # 5. Population
    ContextRule('low_population',
                lambda i, d: i.total_players <= 5,
                SetThreshold(0.6), 'Low population server', _mark_low_population),
    ContextRule('low_activity',
                lambda i, d: i.total_players > 5 and i.player_ratio < 0.1,
                SetThreshold(0.5), 'Very low activity server'),
    # 6. Declared tags
    ContextRule('whitelist_tag',
                lambda i, d: 'whitelist' in i.tags,
                TightenThreshold(0.15), effect=_set('has_whitelist')),
    ContextRule('test_tag',
                lambda i, d: _contains_any(i.tags, ('test', 'dev')),
                LoosenThreshold(0.7), effect=_set('is_test_server')),
    ContextRule('roleplay_tag',
                lambda i, d: _contains_any(i.tags, ROLEPLAY_TOKENS),
                TightenThreshold(0.2), effect=_set('is_roleplay_server')),
    # 7. Owner
    ContextRule('staff_owner',
                lambda i, d: _contains_any(i.owner, ('admin', 'mod', 'staff')),
                TightenThreshold(0.2), 'Staff-owned server', _set('server_reputation', 'staff')),
    ContextRule('development_owner',
                lambda i, d: (not _contains_any(i.owner, ('admin', 'mod', 'staff')) and
                              _contains_any(i.owner, ('test', 'dev'))),
                LoosenThreshold(0.6), 'Development owner', _set('server_reputation', 'development')),
    # 8. Resources
    ContextRule('high_resource_count',
                lambda i, d: len(i.metadata.resources) > 100,
                TightenThreshold(0.25), 'High resource count - likely established server'),
    ContextRule('low_resource_count',
                lambda i, d: 0 < len(i.metadata.resources) < 20,
                LoosenThreshold(0.5), 'Low resource count - possible test server'),
    ContextRule('whitelist_resources',
                lambda i, d: _contains_any(i.resource_names, ('whitelist', 'permissions')),
                TightenThreshold(0.2), effect=_set('has_whitelist')),
    ContextRule('debug_resources',
                lambda i, d: _contains_any(i.resource_names, ('test', 'debug')),
                LoosenThreshold(0.6), effect=_set('is_test_server')),
    # 9. Time of day
    ContextRule('off_peak_hours',
                lambda i, d: 2 <= i.hour < 6,
                LoosenThreshold(0.4), 'Off-peak hours (2-6 AM)'),
    ContextRule('peak_hours',
                lambda i, d: 18 <= i.hour <= 23,
                TightenThreshold(0.25), 'Peak hours (6-11 PM)'),
    # 10. Many distinct triggers
    ContextRule('many_context_factors',
                lambda i, d: len(set(d.context_factors)) > 3,
                TightenThreshold(0.3)),
)


class ContextAnalyzer:
    """Builds the frozen ServerContext for one scan

    Args:
        clock: Returns the local time used by the time-of-day rules
        rules: Ordered rule pipeline (defaults to CONTEXT_RULES)
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now,
                 rules: Sequence[ContextRule] = CONTEXT_RULES):
        self.clock = clock
        self.rules = tuple(rules)

    def analyze(self, metadata: ServerMetadata, entities: Sequence[Entity]) -> ServerContext:
        draft, _ = self._run(metadata, len(entities))
        return draft.freeze(len(entities))

    def explain(self, metadata: ServerMetadata,
                entities: Sequence[Entity]) -> List[Tuple[str, float]]:
        """Fired rule names with the threshold value after each one, in order"""
        _, trace = self._run(metadata, len(entities))
        return trace

    def _run(self, metadata: ServerMetadata,
             total_players: int) -> Tuple[ContextDraft, List[Tuple[str, float]]]:
        inputs = ContextInputs(metadata=metadata, total_players=total_players,
                               hour=self.clock().hour)
        draft = ContextDraft()
        trace: List[Tuple[str, float]] = []

        for rule in self.rules:
            if not rule.applies(inputs, draft):
                continue
            if rule.effect:
                rule.effect(draft)
            if rule.threshold is not None:
                draft.expected_bot_threshold = rule.threshold.apply(draft.expected_bot_threshold)
            if rule.factor:
                draft.context_factors.append(rule.factor)
            trace.append((rule.name, draft.expected_bot_threshold))
            logger.debug(f"Context rule {rule.name} -> threshold {draft.expected_bot_threshold}")

        return draft, trace


def analyze_server_context(metadata: ServerMetadata, entities: Sequence[Entity],
                           clock: Callable[[], datetime] = datetime.now) -> ServerContext:
    """Convenience wrapper around ContextAnalyzer"""
    return ContextAnalyzer(clock=clock).analyze(metadata, entities)
