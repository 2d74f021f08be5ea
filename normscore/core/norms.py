from __future__ import annotations
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union
import logging

from .scoring import format_score
from .survey import Sex, is_number, parse_sex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RangeRule:
    age_min: int
    age_max: int
    sex: Sex
    raw_score_min: float
    raw_score_max: float
    normalized_score: float

    def __post_init__(self):
        for field in ("age_min", "age_max", "raw_score_min", "raw_score_max", "normalized_score"):
            if not is_number(getattr(self, field)):
                raise ValueError(f"Rule field {field} must be numeric; got {getattr(self, field)!r}")
        if self.age_min > self.age_max:
            raise ValueError(f"ageMin ({self.age_min}) must not exceed ageMax ({self.age_max})")
        if self.raw_score_min > self.raw_score_max:
            raise ValueError(
                f"rawScoreMin ({self.raw_score_min}) must not exceed rawScoreMax ({self.raw_score_max})"
            )
        object.__setattr__(self, "sex", parse_sex(self.sex))

    def matches(self, age: int, sex: Sex, raw_score: float, tolerance: float = 0.0) -> bool:
        # inclusive on both ends
        return (
            self.age_min <= age <= self.age_max
            and self.sex == sex
            and self.raw_score_min <= raw_score <= self.raw_score_max
        )


@dataclass(frozen=True)
class ExactRule:
    age: int
    sex: Sex
    raw_score: float
    normalized_score: float

    def __post_init__(self):
        for field in ("age", "raw_score", "normalized_score"):
            if not is_number(getattr(self, field)):
                raise ValueError(f"Rule field {field} must be numeric; got {getattr(self, field)!r}")
        object.__setattr__(self, "sex", parse_sex(self.sex))

    def matches(self, age: int, sex: Sex, raw_score: float, tolerance: float = 0.0) -> bool:
        if self.age != age or self.sex != sex:
            return False
        if tolerance <= 0:
            return raw_score == self.raw_score
        return abs(raw_score - self.raw_score) <= tolerance


NormalizationRule = Union[RangeRule, ExactRule]


@dataclass(frozen=True)
class LookupOutcome:
    normalized_score: Optional[float]
    rule_index: Optional[int]
    message: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.normalized_score is not None


def rule_from_dict(raw: Mapping[str, Any]) -> NormalizationRule:
    """Map a range-form or exact-form rule dict onto a canonical rule."""
    if "ageMin" in raw or "age_min" in raw:
        return RangeRule(
            age_min=raw.get("ageMin", raw.get("age_min")),
            age_max=raw.get("ageMax", raw.get("age_max")),
            sex=parse_sex(raw.get("sex")),
            raw_score_min=raw.get("rawScoreMin", raw.get("raw_score_min")),
            raw_score_max=raw.get("rawScoreMax", raw.get("raw_score_max")),
            normalized_score=raw.get("normalizedScore", raw.get("normalized_score")),
        )
    if "age" in raw:
        return ExactRule(
            age=raw["age"],
            sex=parse_sex(raw.get("sex")),
            raw_score=raw.get("rawScore", raw.get("raw_score")),
            normalized_score=raw.get("normalizedScore", raw.get("normalized_score")),
        )
    raise ValueError(f"Unrecognized normalization rule shape: {sorted(raw)}")


def no_match_message(age: int, sex: Sex, raw_score: float) -> str:
    return (
        f"No matching normalized score found for age {age}, "
        f"sex {parse_sex(sex).value}, raw score {format_score(raw_score)}"
    )


def lookup_normalized_score(
    rules: Sequence[NormalizationRule],
    age: int,
    sex: Sex,
    raw_score: float,
    tolerance: float = 0.0,
) -> LookupOutcome:
    """Return the normalized score of the first rule matching the query.

    Table order is the only tie-break: when ranges overlap, the earliest rule
    wins even if a later one is narrower. ``tolerance`` only affects exact-form
    rules; ``0.0`` means strict equality on the raw score.
    """
    sex = parse_sex(sex)
    for i, rule in enumerate(rules):
        if rule.matches(age, sex, raw_score, tolerance):
            logger.debug("Rule %d matched age=%s sex=%s raw=%s", i, age, sex.value, raw_score)
            return LookupOutcome(normalized_score=rule.normalized_score, rule_index=i)
    return LookupOutcome(
        normalized_score=None,
        rule_index=None,
        message=no_match_message(age, sex, raw_score),
    )


def overlapping_rules(rules: Sequence[NormalizationRule]) -> List[Tuple[int, int]]:
    """Index pairs of range rules that could both match the same query."""
    out: List[Tuple[int, int]] = []
    ranged = [(i, r) for i, r in enumerate(rules) if isinstance(r, RangeRule)]
    for n, (i, a) in enumerate(ranged):
        for j, b in ranged[n + 1:]:
            if a.sex != b.sex:
                continue
            if a.age_max < b.age_min or b.age_max < a.age_min:
                continue
            if a.raw_score_max < b.raw_score_min or b.raw_score_max < a.raw_score_min:
                continue
            out.append((i, j))
    return out
