from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Tuple


class AggregationMethod(str, Enum):
    SUM = "sum"
    AVERAGE = "average"


def parse_method(value: Any) -> AggregationMethod:
    if isinstance(value, AggregationMethod):
        return value
    try:
        return AggregationMethod(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"Unsupported aggregation method: {value!r}") from None


@dataclass(frozen=True)
class SubscaleConfig:
    name: str
    question_ids: Tuple[str, ...]
    method: AggregationMethod = AggregationMethod.SUM

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Subscale name must be non-empty")
        if isinstance(self.question_ids, str):
            raise ValueError(f"Subscale {self.name!r} question_ids must be a sequence of ids, not a string")
        if not self.question_ids:
            raise ValueError(f"Subscale {self.name!r} must select at least one question")
        if len(set(self.question_ids)) != len(self.question_ids):
            raise ValueError(f"Subscale {self.name!r} selects a question more than once")
        # accept lists from callers, keep the stored value hashable
        object.__setattr__(self, "question_ids", tuple(self.question_ids))
        object.__setattr__(self, "method", parse_method(self.method))

    def without_question(self, question_id: str) -> Optional["SubscaleConfig"]:
        """Drop ``question_id``; ``None`` when nothing would remain selected."""
        ids = tuple(i for i in self.question_ids if i != question_id)
        if not ids:
            return None
        return SubscaleConfig(name=self.name, question_ids=ids, method=self.method)


def subscale_from_dict(raw: Mapping[str, Any]) -> SubscaleConfig:
    ids = raw.get("questionIds", raw.get("question_ids", []))
    if isinstance(ids, str):
        raise ValueError("questionIds must be a list of question ids")
    method = raw.get("calculationMethod", raw.get("method", AggregationMethod.SUM))
    return SubscaleConfig(
        name=str(raw.get("name", "")),
        question_ids=tuple(str(i) for i in ids),
        method=parse_method(method),
    )
