from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Sequence
import math

from .errors import InvalidReference, MissingAnswer
from .subscale import AggregationMethod, SubscaleConfig
from .survey import Question, UserAnswer, find_answer, find_question


@dataclass(frozen=True)
class AnswerDetail:
    question_id: str
    question: str
    selected_option: str
    score: float


def round2(value: float) -> float:
    # half up at the second decimal, matching how exact-form rule tables are authored
    return math.floor(value * 100 + 0.5) / 100


def format_score(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(round2(value))


def answer_details(
    questions: Sequence[Question],
    subscale: SubscaleConfig,
    answers: Sequence[UserAnswer],
) -> List[AnswerDetail]:
    """Resolve every subscale question to its selected option and score.

    Raises ``MissingAnswer`` listing all unanswered ids, or ``InvalidReference``
    when a question or option cannot be resolved.
    """
    missing = [qid for qid in subscale.question_ids if find_answer(answers, qid) is None]
    if missing:
        raise MissingAnswer(missing)

    out: List[AnswerDetail] = []
    for qid in subscale.question_ids:
        question = find_question(questions, qid)
        if question is None:
            raise InvalidReference(f"Subscale {subscale.name!r} references unknown question {qid!r}")
        answer = find_answer(answers, qid)
        out.append(AnswerDetail(
            question_id=qid,
            question=question.text,
            selected_option=answer.selected_option,
            score=question.score_for(answer.selected_option),
        ))
    return out


def aggregate_raw_score(
    questions: Sequence[Question],
    subscale: SubscaleConfig,
    answers: Sequence[UserAnswer],
) -> float:
    scores = [d.score for d in answer_details(questions, subscale, answers)]
    total = sum(scores)
    if not math.isfinite(total):
        raise InvalidReference(f"Subscale {subscale.name!r} scores do not add up to a finite raw score")
    if subscale.method == AggregationMethod.SUM:
        return total
    return round2(total / len(scores))


# (lower bound, level, description), highest band first
SCORE_BANDS = [
    (80, "High", "Significantly above average"),
    (60, "Above Average", "Moderately above average"),
    (40, "Average", "Within normal range"),
    (20, "Below Average", "Moderately below average"),
    (float("-inf"), "Low", "Significantly below average"),
]


def _band(normalized_score: float):
    for lower, level, description in SCORE_BANDS:
        if normalized_score >= lower:
            return level, description
    return SCORE_BANDS[-1][1:]


def score_interpretation(normalized_score: Optional[float]) -> Optional[str]:
    if normalized_score is None:
        return None
    return _band(normalized_score)[0]


def score_description(normalized_score: Optional[float]) -> Optional[str]:
    if normalized_score is None:
        return None
    return _band(normalized_score)[1]
