from normscore.core.subscale import SubscaleConfig
from normscore.main import drop_question, rule_row
from normscore.core.norms import ExactRule, RangeRule
from normscore.core.survey import Sex


def test_drop_question_clears_subscale_and_answer(questions):
    sub = SubscaleConfig("s", ("q1", "q2"))
    kept, sub, selected = drop_question(questions, sub, {"q1": "A", "q2": "B"}, "q1")
    assert [q.id for q in kept] == ["q2", "q3"]
    assert sub.question_ids == ("q2",)
    assert selected == {"q2": "B"}


def test_drop_last_subscale_question(questions):
    kept, sub, selected = drop_question(questions, SubscaleConfig("s", ("q3",)), {}, "q3")
    assert sub is None
    assert len(kept) == 2


def test_rule_row():
    assert rule_row(ExactRule(25, Sex.M, 4, 50)) == {
        "form": "exact", "age": 25, "sex": "M", "raw_score": 4, "normalized_score": 50
    }
    assert rule_row(RangeRule(18, 99, Sex.F, 2, 4, 45))["form"] == "range"
