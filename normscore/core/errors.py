from __future__ import annotations
from typing import List, Sequence


NO_MATCHING_RULE = "no_matching_rule"


class ScoringError(Exception):
    code = "scoring_error"


class MissingAnswer(ScoringError):
    code = "missing_answer"

    def __init__(self, question_ids: Sequence[str]):
        self.question_ids: List[str] = list(question_ids)
        super().__init__(
            "Could not calculate raw score - missing answers for subscale questions: "
            + ", ".join(self.question_ids)
        )


class InvalidReference(ScoringError):
    code = "invalid_reference"


class PreconditionUnmet(ScoringError):
    code = "precondition_unmet"

    def __init__(self, missing: Sequence[str]):
        self.missing: List[str] = list(missing)
        super().__init__("Missing required data for calculation: " + "; ".join(self.missing))
