"""
Pure classification engine: no I/O, no mutation of inputs
"""

from fivem_bot_detection.core.context_analyzer import ContextAnalyzer, analyze_server_context
from fivem_bot_detection.core.decision import BotDetectionEngine, aggregate, evaluate_population
from fivem_bot_detection.core.identity_scorer import extract_steam_id, score_identity
from fivem_bot_detection.core.types import (
    Entity,
    IdentityAssessment,
    IdentityProfile,
    PopulationEvaluation,
    ServerContext,
    ServerMetadata,
    Verdict,
)

__all__ = [
    'BotDetectionEngine',
    'ContextAnalyzer',
    'Entity',
    'IdentityAssessment',
    'IdentityProfile',
    'PopulationEvaluation',
    'ServerContext',
    'ServerMetadata',
    'Verdict',
    'aggregate',
    'analyze_server_context',
    'evaluate_population',
    'extract_steam_id',
    'score_identity',
]
