from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from .errors import NO_MATCHING_RULE, PreconditionUnmet, ScoringError
from .norms import NormalizationRule, lookup_normalized_score
from .scoring import aggregate_raw_score
from .subscale import SubscaleConfig
from .survey import Question, UserAnswer, UserProfile, find_answer, validate_profile, validate_questions

logger = logging.getLogger(__name__)


class ScoringState(str, Enum):
    INCOMPLETE = "incomplete"
    READY = "ready"
    COMPUTED = "computed"
    COMPUTED_WITH_ERROR = "computed_with_error"


class Precondition(str, Enum):
    PROFILE = "profile"
    SUBSCALE = "subscale"
    RULES = "rules"
    ANSWERS = "answers"


@dataclass(frozen=True)
class CalculationResult:
    raw_score: float
    normalized_score: Optional[float]
    error: Optional[str] = None
    error_code: Optional[str] = None
    state: ScoringState = ScoringState.COMPUTED

    @property
    def ok(self) -> bool:
        return self.error is None


def unmet_preconditions(
    subscale: Optional[SubscaleConfig],
    profile: Optional[UserProfile],
    answers: Sequence[UserAnswer],
    rules: Sequence[NormalizationRule],
) -> List[Precondition]:
    out: List[Precondition] = []
    if validate_profile(profile):
        out.append(Precondition.PROFILE)
    if subscale is None or not subscale.question_ids:
        out.append(Precondition.SUBSCALE)
    if not rules:
        out.append(Precondition.RULES)
    if subscale is None or any(find_answer(answers, qid) is None for qid in subscale.question_ids):
        out.append(Precondition.ANSWERS)
    return out


def scoring_state(
    subscale: Optional[SubscaleConfig],
    profile: Optional[UserProfile],
    answers: Sequence[UserAnswer],
    rules: Sequence[NormalizationRule],
) -> ScoringState:
    if unmet_preconditions(subscale, profile, answers, rules):
        return ScoringState.INCOMPLETE
    return ScoringState.READY


def _describe(unmet: Sequence[Precondition], profile: Optional[UserProfile]) -> List[str]:
    out: List[str] = []
    for p in unmet:
        if p == Precondition.PROFILE:
            out.append("user profile (" + ", ".join(validate_profile(profile)) + ")")
        elif p == Precondition.SUBSCALE:
            out.append("subscale configuration")
        elif p == Precondition.RULES:
            out.append("normalization table")
    return out


def _error_result(err: ScoringError) -> CalculationResult:
    logger.warning("Calculation failed (%s): %s", err.code, err)
    return CalculationResult(
        raw_score=0,
        normalized_score=None,
        error=str(err),
        error_code=err.code,
        state=ScoringState.COMPUTED_WITH_ERROR,
    )


def calculate(
    questions: Sequence[Question],
    subscale: Optional[SubscaleConfig],
    profile: Optional[UserProfile],
    answers: Sequence[UserAnswer],
    rules: Sequence[NormalizationRule],
    tolerance: float = 0.0,
) -> CalculationResult:
    """Aggregate the subscale raw score and look it up in ``rules``.

    Every failure comes back as a result value. Unanswered subscale questions
    are reported by the aggregator as ``missing_answer`` rather than as an
    unmet precondition, so the caller sees exactly which ids are missing.
    """
    unmet = [p for p in unmet_preconditions(subscale, profile, answers, rules) if p != Precondition.ANSWERS]
    if unmet:
        return _error_result(PreconditionUnmet(_describe(unmet, profile)))

    try:
        validate_questions(questions)
        raw = aggregate_raw_score(questions, subscale, answers)
    except ScoringError as err:
        return _error_result(err)

    outcome = lookup_normalized_score(rules, profile.age, profile.sex, raw, tolerance=tolerance)
    if not outcome.matched:
        logger.info("No rule for subscale %r: %s", subscale.name, outcome.message)
        return CalculationResult(
            raw_score=raw,
            normalized_score=None,
            error=outcome.message,
            error_code=NO_MATCHING_RULE,
            state=ScoringState.COMPUTED_WITH_ERROR,
        )

    logger.info("Subscale %r scored raw=%s normalized=%s", subscale.name, raw, outcome.normalized_score)
    return CalculationResult(raw_score=raw, normalized_score=outcome.normalized_score)


def calculate_subscales(
    questions: Sequence[Question],
    profile: Optional[UserProfile],
    answers: Sequence[UserAnswer],
    subscales: Sequence[Tuple[SubscaleConfig, Sequence[NormalizationRule]]],
    tolerance: float = 0.0,
) -> Dict[str, CalculationResult]:
    """Score each ``(subscale, rules)`` pair on its own; keyed by subscale name."""
    out: Dict[str, CalculationResult] = {}
    for subscale, rules in subscales:
        out[subscale.name] = calculate(questions, subscale, profile, answers, rules, tolerance=tolerance)
    return out
