"""
Decision aggregation: six layer outputs -> final verdict

Ultra-conservative by construction: a bot verdict needs converging strong
indicators or near-perfect confidence, and high-population servers demand
progressively more evidence.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from functools import reduce
from typing import Callable, Dict, FrozenSet, Iterable, Optional, Sequence, Tuple

from fivem_bot_detection.core.context_analyzer import ContextAnalyzer
from fivem_bot_detection.core.types import (
    Entity, IndicatorKind, LayerResults, PopulationEvaluation, ReasonCategory,
    ServerContext, ServerMetadata, ValidationLayer, Verdict
)
from fivem_bot_detection.core.validators import PopulationIndex, run_layers

logger = logging.getLogger(__name__)


class DecisionThresholds:
    # Base decision
    STRONG_WITH_CONFIDENCE = (3, 85)  # (min strong indicators, min confidence)
    HIGH_CONFIDENCE = 95
    HIGH_CONFIDENCE_MAX_PASSED_LAYERS = 1
    PERFECT_CONFIDENCE = 100
    PERFECT_CONFIDENCE_MIN_STRONG = 1

    # Population bands: (population above, min strong indicators, or min confidence)
    POPULATION_BANDS: Tuple[Tuple[int, int, int], ...] = (
        (50, 4, 98),
        (100, 5, 99),
        (200, 6, 100),
    )

    # Borderline warning window [low, high)
    BORDERLINE = (50, 70)


STRONG_INDICATOR_KINDS: FrozenSet[IndicatorKind] = frozenset({
    IndicatorKind.NO_AUTHENTICATION,
    IndicatorKind.LONG_NAME_PATTERN,
    IndicatorKind.GENERATED_PATTERN,
})

BORDERLINE_WARNING = 'Borderline suspicious - requires manual review'

HUMAN_INDICATORS: Dict[ValidationLayer, str] = {
    ValidationLayer.IDENTIFIER: 'Has authentication identifiers',
    ValidationLayer.NAME: 'Normal name pattern',
    ValidationLayer.CONNECTION: 'Normal connection pattern',
    ValidationLayer.BEHAVIOR: 'Normal behavioral pattern',
    ValidationLayer.PATTERN: 'Normal pattern characteristics',
    ValidationLayer.CONTEXT: 'Contextually normal',
}

# Statistic buckets each indicator kind counts towards
INDICATOR_CATEGORIES: Dict[IndicatorKind, Tuple[ReasonCategory, ...]] = {
    IndicatorKind.NO_AUTHENTICATION: (ReasonCategory.NO_IDENTIFIERS,),
    IndicatorKind.EMPTY_NAME: (ReasonCategory.SUSPICIOUS_NAMES,),
    IndicatorKind.SHORT_NAME: (ReasonCategory.SUSPICIOUS_NAMES,),
    IndicatorKind.NUMERIC_NAME: (ReasonCategory.SUSPICIOUS_NAMES,),
    IndicatorKind.SPECIAL_CHARACTERS: (ReasonCategory.SUSPICIOUS_NAMES,
                                       ReasonCategory.SPECIAL_CHARACTERS),
    IndicatorKind.LONG_NAME_PATTERN: (ReasonCategory.SUSPICIOUS_NAMES,),
    IndicatorKind.LOCALHOST: (ReasonCategory.LOCALHOST,),
    IndicatorKind.HIGH_PING: (ReasonCategory.HIGH_PING,),
    IndicatorKind.DUPLICATE_NAMES: (ReasonCategory.SUSPICIOUS_NAMES,
                                    ReasonCategory.DUPLICATE_NAMES),
    IndicatorKind.SHARED_IP: (ReasonCategory.SUSPICIOUS_ENDPOINTS,),
    IndicatorKind.GENERATED_PATTERN: (),
    IndicatorKind.WHITELIST_NO_IDENTIFIERS: (),
}


def is_bot_decision(confidence: int, strong_indicators: int, layers_passed: int,
                    context: ServerContext) -> bool:
    """Base rule, development gate, then every population band as an extra AND-gate"""
    min_strong, min_confidence = DecisionThresholds.STRONG_WITH_CONFIDENCE
    is_bot = (
        (strong_indicators >= min_strong and confidence >= min_confidence) or
        (confidence >= DecisionThresholds.HIGH_CONFIDENCE and
         layers_passed <= DecisionThresholds.HIGH_CONFIDENCE_MAX_PASSED_LAYERS) or
        (confidence >= DecisionThresholds.PERFECT_CONFIDENCE and
         strong_indicators >= DecisionThresholds.PERFECT_CONFIDENCE_MIN_STRONG)
    )

    for population_above, band_strong, band_confidence in DecisionThresholds.POPULATION_BANDS:
        if context.total_players > population_above:
            is_bot = is_bot and (strong_indicators >= band_strong or confidence >= band_confidence)

    # Never flag on development servers
    return is_bot and not context.is_development_server


def aggregate(entity: Entity, layers: LayerResults, context: ServerContext) -> Verdict:
    """Combine the six layer results for one entity into a Verdict"""
    confidence = 0
    bot_indicators = []
    human_indicators = []
    kinds = []

    for layer, result in layers.items():
        if result.is_suspicious:
            bot_indicators.extend(result.reasons)
            kinds.extend(result.indicators)
            confidence += result.score
        else:
            human_indicators.append(HUMAN_INDICATORS[layer])

    strong_indicators = sum(1 for kind in kinds if kind in STRONG_INDICATOR_KINDS)
    layers_passed = sum(1 for ok in layers.passed().values() if ok)

    warnings = []
    low, high = DecisionThresholds.BORDERLINE
    if low <= confidence < high:
        warnings.append(BORDERLINE_WARNING)

    return Verdict(
        entity_id=entity.id,
        entity_name=entity.name,
        is_bot=is_bot_decision(confidence, strong_indicators, layers_passed, context),
        final_score=confidence,
        strong_indicators=strong_indicators,
        layers_passed=layers_passed,
        layers=layers,
        bot_indicators=tuple(bot_indicators),
        human_indicators=tuple(human_indicators),
        warnings=tuple(warnings),
        indicators=tuple(kinds),
    )


def verdict_categories(verdict: Verdict) -> FrozenSet[ReasonCategory]:
    """Statistic buckets one verdict counts towards (each at most once)"""
    categories = {category
                  for kind in verdict.indicators
                  for category in INDICATOR_CATEGORIES[kind]}
    if verdict.warnings:
        categories.add(ReasonCategory.BORDERLINE_CASES)
    return frozenset(categories)


def empty_reason_counts() -> Dict[ReasonCategory, int]:
    return {category: 0 for category in ReasonCategory}


def tally_reasons(verdicts: Iterable[Verdict]) -> Dict[ReasonCategory, int]:
    """Fold verdicts into per-category counts"""
    def add(counts: Dict[ReasonCategory, int], verdict: Verdict) -> Dict[ReasonCategory, int]:
        categories = verdict_categories(verdict)
        return {category: count + (category in categories) for category, count in counts.items()}

    return reduce(add, verdicts, empty_reason_counts())


def count_bots(verdicts: Iterable[Verdict]) -> int:
    return reduce(lambda total, verdict: total + verdict.is_potential_bot, verdicts, 0)


class BotDetectionEngine:
    """Runs a complete six-layer evaluation over one population snapshot

    Args:
        clock: Local time source for the context analyzer
        max_workers: Evaluate entities on a thread pool when > 1
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now,
                 max_workers: Optional[int] = None):
        self.context_analyzer = ContextAnalyzer(clock=clock)
        self.max_workers = max_workers

    def evaluate(self, metadata: ServerMetadata,
                 entities: Sequence[Entity]) -> PopulationEvaluation:
        snapshot = tuple(entities)
        context = self.context_analyzer.analyze(metadata, snapshot)
        population = PopulationIndex.build(snapshot)

        def evaluate_entity(entity: Entity) -> Verdict:
            verdict = aggregate(entity, run_layers(entity, context, population), context)
            logger.debug(f"Entity {entity.id} ({entity.name!r}): score={verdict.final_score} "
                         f"strong={verdict.strong_indicators} bot={verdict.is_bot}")
            return verdict

        if self.max_workers and self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                verdicts = tuple(pool.map(evaluate_entity, snapshot))
        else:
            verdicts = tuple(evaluate_entity(entity) for entity in snapshot)

        return PopulationEvaluation(
            context=context,
            verdicts=verdicts,
            reason_counts=tally_reasons(verdicts),
        )


def evaluate_population(metadata: ServerMetadata, entities: Sequence[Entity],
                        clock: Callable[[], datetime] = datetime.now) -> PopulationEvaluation:
    """Convenience wrapper around BotDetectionEngine"""
    return BotDetectionEngine(clock=clock).evaluate(metadata, entities)
