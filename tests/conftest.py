import matplotlib

matplotlib.use("Agg")

import pytest

from normscore.core.subscale import AggregationMethod, SubscaleConfig
from normscore.core.survey import Option, Question, Sex, UserAnswer, UserProfile


def make_question(qid, scores=(1, 2, 3, 4)):
    opts = tuple(Option(label=l, score=s, text=l) for l, s in zip("ABCD", scores))
    return Question(id=qid, text=f"Question {qid}", options=opts)


@pytest.fixture
def questions():
    return [make_question("q1"), make_question("q2"), make_question("q3")]


@pytest.fixture
def profile():
    return UserProfile(age=30, sex=Sex.M)


@pytest.fixture
def sum_subscale():
    return SubscaleConfig(name="Anxiety", question_ids=("q1", "q2"), method=AggregationMethod.SUM)


@pytest.fixture
def answers():
    return [UserAnswer("q1", "A"), UserAnswer("q2", "B"), UserAnswer("q3", "B")]
