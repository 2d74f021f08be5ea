from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
import json
import logging
import math

from .errors import InvalidReference

logger = logging.getLogger(__name__)

AGE_MIN = 1
AGE_MAX = 99

LETTER_LABELS = ("A", "B", "C", "D")


class Sex(str, Enum):
    M = "M"
    F = "F"


_SEX_ALIASES = {"m": Sex.M, "male": Sex.M, "f": Sex.F, "female": Sex.F}


def parse_sex(value: Any) -> Sex:
    if isinstance(value, Sex):
        return value
    if isinstance(value, str) and value.strip().lower() in _SEX_ALIASES:
        return _SEX_ALIASES[value.strip().lower()]
    raise ValueError(f"Unsupported sex value: {value!r}")


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


@dataclass(frozen=True)
class Option:
    label: str
    score: float
    text: str = ""

    def __post_init__(self):
        if not is_number(self.score):
            raise ValueError(f"Option {self.label!r} must carry a numeric score; got {self.score!r}")


@dataclass(frozen=True)
class Question:
    id: str
    text: str
    options: Tuple[Option, ...]

    @property
    def labels(self) -> List[str]:
        return [o.label for o in self.options]

    def score_for(self, label: str) -> float:
        for o in self.options:
            if o.label == label:
                return o.score
        raise InvalidReference(f"Option {label!r} is not valid for question {self.id!r}")


@dataclass(frozen=True)
class UserAnswer:
    question_id: str
    selected_option: str


@dataclass(frozen=True)
class UserProfile:
    age: int
    sex: Sex

    def __post_init__(self):
        # unknown values stay as given so validate_profile can report them
        try:
            object.__setattr__(self, "sex", parse_sex(self.sex))
        except ValueError:
            pass


def validate_profile(profile: Optional[UserProfile]) -> List[str]:
    """Return a list of problems with ``profile``; empty when it can be scored."""
    if profile is None:
        return ["user profile is missing"]
    problems: List[str] = []
    age = profile.age
    if isinstance(age, bool) or not isinstance(age, int):
        problems.append(f"age must be a whole number; got {age!r}")
    elif not AGE_MIN <= age <= AGE_MAX:
        problems.append(f"age must be between {AGE_MIN} and {AGE_MAX}; got {age}")
    if not isinstance(profile.sex, Sex):
        problems.append(f"sex must be one of {', '.join(s.value for s in Sex)}")
    return problems


def profile_from_dict(raw: Mapping[str, Any]) -> UserProfile:
    age = raw.get("age")
    if isinstance(age, bool) or not isinstance(age, int):
        raise ValueError(f"Age must be a whole number; got {age!r}")
    return UserProfile(age=age, sex=parse_sex(raw.get("sex")))


def question_from_dict(raw: Mapping[str, Any]) -> Question:
    """Map either external question shape onto :class:`Question`.

    Letter form carries ``scores: {"A": 1, ...}``; option-list form carries
    ``options: [{"text": ..., "rawScore": ...}]`` (or ``label``/``score``).
    """
    qid = raw.get("id")
    qid = "" if qid is None else str(qid).strip()
    if not qid:
        raise ValueError("Question id must be a non-empty string")

    opts: List[Option] = []
    if "scores" in raw:
        scores = raw["scores"]
        for label in LETTER_LABELS:
            if label not in scores:
                raise ValueError(f"Question {qid!r} is missing a score for option {label}")
            opts.append(Option(label=label, score=scores[label], text=label))
    else:
        for o in raw.get("options", []):
            label = str(o.get("label", o.get("text", "")))
            score = o.get("score", o.get("rawScore"))
            opts.append(Option(label=label, score=score, text=str(o.get("text", label))))

    if not opts:
        raise ValueError(f"Question {qid!r} has no options")
    labels = [o.label for o in opts]
    if len(set(labels)) != len(labels):
        raise ValueError(f"Question {qid!r} has duplicate option labels")

    return Question(id=qid, text=str(raw.get("text", "")), options=tuple(opts))


def validate_questions(questions: Sequence[Question]) -> None:
    seen = set()
    for q in questions:
        if q.id in seen:
            raise InvalidReference(f"Duplicate question id {q.id!r}")
        seen.add(q.id)


def find_question(questions: Sequence[Question], question_id: str) -> Optional[Question]:
    for q in questions:
        if q.id == question_id:
            return q
    return None


def find_answer(answers: Sequence[UserAnswer], question_id: str) -> Optional[UserAnswer]:
    # first recorded answer wins
    for a in answers:
        if a.question_id == question_id:
            return a
    return None


def answers_from_mapping(selected: Mapping[str, str]) -> List[UserAnswer]:
    return [UserAnswer(question_id=qid, selected_option=label) for qid, label in selected.items()]


def answer_from_dict(raw: Mapping[str, Any]) -> UserAnswer:
    return UserAnswer(
        question_id=str(raw.get("questionId", raw.get("question_id", ""))),
        selected_option=str(raw.get("selectedOption", raw.get("selected_option", ""))),
    )


def survey_from_dict(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Build the in-memory survey bundle used to seed a session.

    Returns a dict with ``questions``, ``subscale`` and ``rules`` keys; the
    last two are ``None``/empty when the document does not define them.
    """
    from .norms import rule_from_dict
    from .subscale import subscale_from_dict

    questions = [question_from_dict(q) for q in raw.get("questions", [])]
    validate_questions(questions)
    subscale = subscale_from_dict(raw["subscale"]) if raw.get("subscale") else None
    rules = [rule_from_dict(r) for r in raw.get("normalizationRules", raw.get("rules", []))]
    logger.debug("Loaded survey with %d questions and %d rules", len(questions), len(rules))
    return {
        "title": str(raw.get("title", "")),
        "questions": questions,
        "subscale": subscale,
        "rules": rules,
    }


def load_survey(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    return survey_from_dict(raw)
