import pytest

from normscore.core.subscale import AggregationMethod, SubscaleConfig, parse_method, subscale_from_dict


def test_subscale_from_dict():
    s = subscale_from_dict({"name": "Anxiety", "questionIds": ["q1", "q2"], "calculationMethod": "average"})
    assert s.question_ids == ("q1", "q2")
    assert s.method == AggregationMethod.AVERAGE


def test_subscale_accepts_list_and_string_method():
    s = SubscaleConfig(name="A", question_ids=["q1"], method="sum")
    assert s.question_ids == ("q1",)
    assert s.method is AggregationMethod.SUM


@pytest.mark.parametrize("kwargs", [
    {"name": "", "question_ids": ("q1",)},
    {"name": "  ", "question_ids": ("q1",)},
    {"name": "A", "question_ids": ()},
    {"name": "A", "question_ids": ("q1", "q1")},
])
def test_subscale_rejects_invalid(kwargs):
    with pytest.raises(ValueError):
        SubscaleConfig(**kwargs)


def test_parse_method_rejects_unknown():
    with pytest.raises(ValueError):
        parse_method("median")


def test_subscale_rejects_bare_string_ids():
    with pytest.raises(ValueError):
        SubscaleConfig(name="A", question_ids="q1")
    with pytest.raises(ValueError):
        subscale_from_dict({"name": "A", "questionIds": "q1"})


def test_without_question():
    s = SubscaleConfig(name="A", question_ids=("q1", "q2"), method="average")
    assert s.without_question("q1") == SubscaleConfig(name="A", question_ids=("q2",), method="average")
    assert s.without_question("q9") == s
    assert s.without_question("q1").without_question("q2") is None
