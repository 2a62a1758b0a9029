"""
The six per-entity validation layers

Each layer is independent: it reads the entity, the frozen server context
and (for behavior) the population index, and returns a LayerResult. No
layer raises or mutates shared state.
"""

import ipaddress
from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from fivem_bot_detection.core.name_patterns import (
    has_excessive_special_chars,
    is_advanced_suspicious_name,
    is_generated_pattern,
    is_whitelisted_name,
)
from fivem_bot_detection.core.scoring import ScoringRule, score_all, score_first
from fivem_bot_detection.core.types import (
    Entity, IndicatorKind, LayerResult, LayerResults, ServerContext
)


class LayerThresholds:
    # Name layer
    NUMERIC_NAME_MIN_DIGITS = 6
    SPECIAL_CHARS_MIN_LENGTH = 15  # rule fires above this
    LONG_PATTERN_MIN_LENGTH = 12  # rule fires above this

    # Connection layer
    LOCALHOST_MIN_POPULATION = 20  # rule fires above this
    HIGH_PING_MS = 5000

    # Behavior layer (counts include the entity itself)
    MAX_DUPLICATE_NAMES = 5
    MAX_SAME_IP = 10


def _name_key(name: str) -> str:
    return name.strip().lower()


def is_loopback_host(host: str) -> bool:
    if host.lower() == 'localhost':
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


@dataclass(frozen=True)
class PopulationIndex:
    """Name and host frequencies over a fixed population snapshot"""
    name_counts: Counter
    host_counts: Counter

    @classmethod
    def build(cls, entities: Iterable[Entity]) -> 'PopulationIndex':
        name_counts: Counter = Counter()
        host_counts: Counter = Counter()
        for entity in entities:
            if entity.name:
                name_counts[_name_key(entity.name)] += 1
            if entity.endpoint:
                host_counts[entity.host] += 1
        return cls(name_counts=name_counts, host_counts=host_counts)

    def same_name_count(self, entity: Entity) -> int:
        return self.name_counts[_name_key(entity.name)]

    def same_host_count(self, entity: Entity) -> int:
        return self.host_counts[entity.host]


# Layer 1: identifiers

IDENTIFIER_RULES = [
    ScoringRule('No authentication identifiers', 30,
                lambda entity: len(entity.identifiers) == 0,
                IndicatorKind.NO_AUTHENTICATION),
]


def validate_identifiers(entity: Entity) -> LayerResult:
    return score_all(IDENTIFIER_RULES, entity)


# Layer 2: name (first match wins, whitelist short-circuits)

NAME_RULES = [
    ScoringRule('Empty name', 40,
                lambda name: not name or not name.strip(),
                IndicatorKind.EMPTY_NAME),
    ScoringRule('Extremely short name', 35,
                lambda name: len(name) <= 1,
                IndicatorKind.SHORT_NAME),
    ScoringRule('Long numeric-only name', 30,
                lambda name: name.isascii() and name.isdigit() and
                len(name) >= LayerThresholds.NUMERIC_NAME_MIN_DIGITS,
                IndicatorKind.NUMERIC_NAME),
    ScoringRule('Excessive special characters in long name', 25,
                lambda name: has_excessive_special_chars(name) and
                len(name) > LayerThresholds.SPECIAL_CHARS_MIN_LENGTH,
                IndicatorKind.SPECIAL_CHARACTERS),
    ScoringRule('Extremely suspicious long name pattern', 35,
                lambda name: is_advanced_suspicious_name(name) and
                len(name) > LayerThresholds.LONG_PATTERN_MIN_LENGTH,
                IndicatorKind.LONG_NAME_PATTERN),
]


def validate_name(name: str) -> LayerResult:
    if is_whitelisted_name(name):
        return LayerResult()
    return score_first(NAME_RULES, name)


# Layer 3: connection

CONNECTION_RULES = [
    ScoringRule('Localhost connection on high-population production server', 20,
                lambda s: is_loopback_host(s[0].host) and
                not s[1].is_development_server and
                s[1].total_players > LayerThresholds.LOCALHOST_MIN_POPULATION,
                IndicatorKind.LOCALHOST),
    ScoringRule('Extremely high ping (>5000ms)', 20,
                lambda s: s[0].ping > LayerThresholds.HIGH_PING_MS,
                IndicatorKind.HIGH_PING),
]


def validate_connection(entity: Entity, context: ServerContext) -> LayerResult:
    return score_all(CONNECTION_RULES, (entity, context))


# Layer 4: behavior (cross-entity)

BEHAVIOR_RULES = [
    ScoringRule('Many duplicate names detected', 30,
                lambda s: s[1].same_name_count(s[0]) > LayerThresholds.MAX_DUPLICATE_NAMES,
                IndicatorKind.DUPLICATE_NAMES),
    ScoringRule('Many connections from same IP', 40,
                lambda s: s[1].same_host_count(s[0]) > LayerThresholds.MAX_SAME_IP,
                IndicatorKind.SHARED_IP),
]


def validate_behavior(entity: Entity, population: PopulationIndex) -> LayerResult:
    return score_all(BEHAVIOR_RULES, (entity, population))


# Layer 5: advanced generated patterns

PATTERN_RULES = [
    ScoringRule('Extremely suspicious generated pattern', 25,
                lambda entity: is_generated_pattern(entity.name),
                IndicatorKind.GENERATED_PATTERN),
]


def validate_advanced_patterns(entity: Entity) -> LayerResult:
    return score_all(PATTERN_RULES, entity)


# Layer 6: server context

CONTEXT_RULES = [
    ScoringRule('No identifiers on whitelisted server', 40,
                lambda s: s[1].has_whitelist and len(s[0].identifiers) == 0,
                IndicatorKind.WHITELIST_NO_IDENTIFIERS),
]


def validate_context(entity: Entity, context: ServerContext) -> LayerResult:
    return score_all(CONTEXT_RULES, (entity, context))


def run_layers(entity: Entity, context: ServerContext,
               population: PopulationIndex) -> LayerResults:
    """Evaluate all six layers for one entity"""
    return LayerResults(
        identifier=validate_identifiers(entity),
        name=validate_name(entity.name),
        connection=validate_connection(entity, context),
        behavior=validate_behavior(entity, population),
        pattern=validate_advanced_patterns(entity),
        context=validate_context(entity, context),
    )
