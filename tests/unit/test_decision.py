"""
Tests for decision aggregation and the population engine
"""

from datetime import datetime

import pytest

from fivem_bot_detection.core.decision import (
    BORDERLINE_WARNING,
    BotDetectionEngine,
    aggregate,
    count_bots,
    evaluate_population,
    is_bot_decision,
    tally_reasons,
)
from fivem_bot_detection.core.types import (
    Entity, IdentityAssessment, IndicatorKind, ReasonCategory, ServerContext, ServerMetadata
)
from fivem_bot_detection.core.validators import PopulationIndex, run_layers

from tests.conftest import GENERATED_NAME


def population_context(players, **flags):
    return ServerContext(total_players=players, **flags)


class TestIsBotDecision:
    """Base rule, population bands and development gate"""

    @pytest.mark.parametrize("confidence,strong,passed,expected", [
        (85, 3, 3, True),    # converging strong indicators
        (84, 3, 3, False),
        (90, 2, 2, False),
        (95, 0, 1, True),    # near-certain with almost every layer failing
        (95, 0, 2, False),
        (100, 1, 5, True),   # perfect confidence
        (100, 0, 5, False),
    ])
    def test_base_rule(self, confidence, strong, passed, expected):
        assert is_bot_decision(confidence, strong, passed, population_context(10)) is expected

    def test_band_above_fifty(self):
        context = population_context(60)

        assert is_bot_decision(90, 3, 3, context) is False
        assert is_bot_decision(90, 4, 3, context) is True
        assert is_bot_decision(98, 3, 3, context) is True

    def test_band_above_hundred(self):
        context = population_context(150)

        assert is_bot_decision(90, 4, 3, context) is False
        assert is_bot_decision(90, 5, 3, context) is True
        assert is_bot_decision(99, 3, 3, context) is True

    def test_band_above_two_hundred(self):
        context = population_context(250)

        assert is_bot_decision(99, 5, 3, context) is False
        assert is_bot_decision(99, 6, 3, context) is True
        assert is_bot_decision(100, 5, 3, context) is True

    def test_band_boundaries_are_exclusive(self):
        assert is_bot_decision(90, 3, 3, population_context(50)) is True
        assert is_bot_decision(90, 4, 3, population_context(100)) is True

    @pytest.mark.parametrize("confidence,strong,passed", [(200, 6, 0), (100, 1, 5), (85, 3, 3)])
    def test_development_servers_never_flag(self, confidence, strong, passed):
        context = population_context(10, is_development_server=True)
        assert is_bot_decision(confidence, strong, passed, context) is False

    def test_larger_population_never_flags_more(self):
        small, large = population_context(60), population_context(150)

        for confidence in range(0, 205, 5):
            for strong in range(0, 9):
                for passed in range(0, 7):
                    if is_bot_decision(confidence, strong, passed, large):
                        assert is_bot_decision(confidence, strong, passed, small)


class TestAggregate:

    def verdict_for(self, entity, context, population=None):
        index = PopulationIndex.build(population or [entity])
        return aggregate(entity, run_layers(entity, context, index), context)

    def test_clean_player(self, make_entity, production_context):
        verdict = self.verdict_for(make_entity(name="Jonathan"), production_context)

        assert verdict.is_bot is False
        assert verdict.final_score == 0
        assert verdict.layers_passed == 6
        assert verdict.strong_indicators == 0
        assert len(verdict.human_indicators) == 6
        assert verdict.warnings == ()

    def test_converging_evidence_on_whitelisted_server(self, make_entity):
        entity = make_entity(name=GENERATED_NAME, identifiers=())
        context = population_context(10, has_whitelist=True)

        verdict = self.verdict_for(entity, context)

        assert verdict.final_score == 30 + 35 + 25 + 40
        assert verdict.strong_indicators == 3
        assert verdict.layers_passed == 2
        assert verdict.is_bot is True
        assert verdict.indicators == (
            IndicatorKind.NO_AUTHENTICATION,
            IndicatorKind.LONG_NAME_PATTERN,
            IndicatorKind.GENERATED_PATTERN,
            IndicatorKind.WHITELIST_NO_IDENTIFIERS,
        )
        assert "Normal connection pattern" in verdict.human_indicators
        assert "Normal behavioral pattern" in verdict.human_indicators

    def test_same_entity_on_development_server(self, make_entity):
        entity = make_entity(name=GENERATED_NAME, identifiers=())
        context = population_context(10, has_whitelist=True, is_development_server=True)

        verdict = self.verdict_for(entity, context)

        assert verdict.final_score == 130
        assert verdict.is_bot is False

    def test_borderline_warning(self, make_entity, production_context):
        entity = make_entity(identifiers=(), ping=6000)

        verdict = self.verdict_for(entity, production_context)

        assert verdict.final_score == 50
        assert verdict.warnings == (BORDERLINE_WARNING,)
        assert verdict.is_bot is False

    def test_borderline_window_is_half_open(self, make_entity, production_context):
        entity = make_entity(name="xk7q2mzb9pabc", identifiers=(), ping=6000)

        verdict = self.verdict_for(entity, production_context)

        assert verdict.final_score == 85
        assert verdict.warnings == ()

    def test_shared_ip_is_not_a_strong_indicator(self, make_entity, production_context):
        population = [make_entity(id=i, name=f"Player{i}", endpoint=f"10.0.0.1:{i}") for i in range(11)]

        verdict = self.verdict_for(population[0], production_context, population)

        assert verdict.final_score == 40
        assert verdict.indicators == (IndicatorKind.SHARED_IP,)
        assert verdict.strong_indicators == 0

    def test_verdict_fields_follow_entity(self, make_entity, production_context):
        verdict = self.verdict_for(make_entity(id=42, name="Marcus22"), production_context)

        assert verdict.entity_id == 42
        assert verdict.entity_name == "Marcus22"


class TestReasonTally:

    def test_each_category_counted_once_per_verdict(self, make_entity):
        """Seven identical special-character names hit both name and duplicate buckets"""
        name = "!" * 9 + "a" * 7
        population = [make_entity(id=i, name=name, identifiers=(), endpoint=f"10.0.{i}.1:1") for i in range(7)]

        evaluation = evaluate_population(ServerMetadata(max_clients=64), population,
                                         clock=lambda: datetime(2024, 1, 1, 12))

        counts = evaluation.reason_counts
        assert counts[ReasonCategory.SUSPICIOUS_NAMES] == 7
        assert counts[ReasonCategory.SPECIAL_CHARACTERS] == 7
        assert counts[ReasonCategory.DUPLICATE_NAMES] == 7
        assert counts[ReasonCategory.NO_IDENTIFIERS] == 7
        assert counts[ReasonCategory.BORDERLINE_CASES] == 0

    def test_reserved_categories_stay_zero(self, make_entity, production_context):
        verdicts = [
            aggregate(e, run_layers(e, production_context, PopulationIndex.build([e])), production_context)
            for e in (make_entity(name=""), make_entity(name="a"), make_entity(name="1234567"))
        ]
        counts = tally_reasons(verdicts)

        assert counts[ReasonCategory.SUSPICIOUS_NAMES] == 3
        for reserved in (ReasonCategory.EMPTY_NAMES, ReasonCategory.VERY_SHORT_NAMES,
                         ReasonCategory.NUMERIC_NAMES, ReasonCategory.SUSPICIOUS_PING):
            assert counts[reserved] == 0

    def test_empty_population(self):
        counts = tally_reasons([])
        assert set(counts) == set(ReasonCategory)
        assert all(count == 0 for count in counts.values())


class TestBotDetectionEngine:

    def setup_method(self):
        self.engine = BotDetectionEngine(clock=lambda: datetime(2024, 1, 1, 12))

    def build_population(self, make_entity, make_population):
        bot = make_entity(id=100, name=GENERATED_NAME, identifiers=(), endpoint="203.0.113.50:30120")
        return make_population(11) + [bot]

    def test_verdicts_in_entity_order(self, production_metadata, make_entity, make_population):
        population = self.build_population(make_entity, make_population)

        evaluation = self.engine.evaluate(production_metadata, population)

        assert [v.entity_id for v in evaluation.verdicts] == [e.id for e in population]
        assert evaluation.context.total_players == 12
        assert [v.entity_id for v in evaluation.bots] == [100]
        assert evaluation.by_entity_id()[100].final_score == 90

    def test_deterministic(self, production_metadata, make_entity, make_population):
        population = self.build_population(make_entity, make_population)

        assert self.engine.evaluate(production_metadata, population) == \
            self.engine.evaluate(production_metadata, population)

    def test_thread_pool_matches_sequential(self, production_metadata, make_entity, make_population):
        population = self.build_population(make_entity, make_population)
        pooled = BotDetectionEngine(clock=self.engine.context_analyzer.clock, max_workers=4)

        assert pooled.evaluate(production_metadata, population) == \
            self.engine.evaluate(production_metadata, population)

    def test_empty_population(self, production_metadata):
        evaluation = self.engine.evaluate(production_metadata, [])

        assert evaluation.verdicts == ()
        assert evaluation.context.is_low_population is True

    def test_entity_without_name(self, make_population):
        nameless = Entity(name=None, id=99)

        evaluation = evaluate_population(ServerMetadata(), make_population(6) + [nameless],
                                         clock=lambda: datetime(2024, 1, 1, 12))

        verdict = evaluation.by_entity_id()[99]
        assert nameless.name == ""
        assert verdict.entity_name == ""
        assert IndicatorKind.EMPTY_NAME in verdict.indicators
        assert IndicatorKind.NO_AUTHENTICATION in verdict.indicators

    def test_count_bots_includes_identity_flags(self, production_metadata, make_entity, make_population):
        population = self.build_population(make_entity, make_population)
        verdicts = list(self.engine.evaluate(production_metadata, population).verdicts)
        verdicts[0] = verdicts[0].with_identity(IdentityAssessment(confidence=70, is_likely_bot=True))

        assert count_bots(verdicts) == 2
