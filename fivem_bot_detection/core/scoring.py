"""
Additive rule scoring shared by the validation layers and the identity scorer

A rule set is an ordered list of (predicate, weight, label) entries. Layers
either sum every matching rule or stop at the first match.
"""

from dataclasses import dataclass
from typing import Callable, Generic, Optional, Sequence, TypeVar

from fivem_bot_detection.core.types import IndicatorKind, LayerResult

T = TypeVar('T')


@dataclass(frozen=True)
class ScoringRule(Generic[T]):
    """One weighted indicator"""
    label: str
    weight: int
    predicate: Callable[[T], bool]
    kind: Optional[IndicatorKind] = None


def _build_result(matched: Sequence[ScoringRule]) -> LayerResult:
    return LayerResult(
        is_suspicious=bool(matched),
        reasons=tuple(rule.label for rule in matched),
        score=sum(rule.weight for rule in matched),
        indicators=tuple(rule.kind for rule in matched if rule.kind is not None),
    )


def score_all(rules: Sequence[ScoringRule[T]], subject: T) -> LayerResult:
    """Sum every rule whose predicate holds"""
    return _build_result([rule for rule in rules if rule.predicate(subject)])


def score_first(rules: Sequence[ScoringRule[T]], subject: T) -> LayerResult:
    """Score only the first rule whose predicate holds"""
    for rule in rules:
        if rule.predicate(subject):
            return _build_result([rule])
    return LayerResult()
