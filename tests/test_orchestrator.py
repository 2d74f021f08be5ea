from normscore.core.errors import NO_MATCHING_RULE
from normscore.core.norms import ExactRule, RangeRule
from normscore.core.orchestrator import (
    CalculationResult,
    Precondition,
    ScoringState,
    calculate,
    calculate_subscales,
    scoring_state,
    unmet_preconditions,
)
from normscore.core.subscale import AggregationMethod, SubscaleConfig
from normscore.core.survey import Option, Question, Sex, UserAnswer, UserProfile

MALE_RULES = [RangeRule(18, 99, Sex.M, 2, 4, 40), RangeRule(18, 99, Sex.M, 5, 6, 55)]
FEMALE_RULES = [RangeRule(18, 99, Sex.F, 2, 4, 45)]


def test_computed(questions, sum_subscale, profile, answers):
    result = calculate(questions, sum_subscale, profile, answers, MALE_RULES)
    assert result == CalculationResult(raw_score=3, normalized_score=40)
    assert result.state == ScoringState.COMPUTED
    assert result.ok


def test_idempotent(questions, sum_subscale, profile, answers):
    first = calculate(questions, sum_subscale, profile, answers, MALE_RULES)
    second = calculate(questions, sum_subscale, profile, answers, MALE_RULES)
    assert first == second


def test_no_matching_rule(questions, sum_subscale, profile, answers):
    result = calculate(questions, sum_subscale, profile, answers, FEMALE_RULES)
    assert result.raw_score == 3
    assert result.normalized_score is None
    assert result.error == "No matching normalized score found for age 30, sex M, raw score 3"
    assert result.error_code == NO_MATCHING_RULE
    assert result.state == ScoringState.COMPUTED_WITH_ERROR


def test_missing_answer_is_not_partial(questions, sum_subscale, profile):
    result = calculate(questions, sum_subscale, profile, [UserAnswer("q1", "A")], MALE_RULES)
    assert result.error_code == "missing_answer"
    assert result.raw_score == 0
    assert result.normalized_score is None
    assert "q2" in result.error


def test_invalid_reference(questions, profile, answers):
    sub = SubscaleConfig("s", ("q1", "q2"))
    bad = [UserAnswer("q1", "A"), UserAnswer("q2", "nope")]
    result = calculate(questions, sub, profile, bad, MALE_RULES)
    assert result.error_code == "invalid_reference"
    assert result.state == ScoringState.COMPUTED_WITH_ERROR


def test_duplicate_question_definitions(questions, sum_subscale, profile, answers):
    result = calculate(questions + [questions[0]], sum_subscale, profile, answers, MALE_RULES)
    assert result.error_code == "invalid_reference"


def test_preconditions_block_computation(questions, sum_subscale, answers):
    result = calculate(questions, sum_subscale, None, answers, [])
    assert result.error_code == "precondition_unmet"
    assert result.raw_score == 0
    assert "user profile" in result.error
    assert "normalization table" in result.error


def test_out_of_range_age_is_rejected(questions, sum_subscale, answers):
    result = calculate(questions, sum_subscale, UserProfile(age=120, sex=Sex.M), answers, MALE_RULES)
    assert result.error_code == "precondition_unmet"
    assert "between 1 and 99" in result.error


def test_missing_subscale(questions, profile, answers):
    result = calculate(questions, None, profile, answers, MALE_RULES)
    assert result.error_code == "precondition_unmet"
    assert "subscale configuration" in result.error


def test_states(sum_subscale, profile, answers):
    assert scoring_state(sum_subscale, profile, answers, MALE_RULES) == ScoringState.READY
    assert scoring_state(sum_subscale, None, answers, MALE_RULES) == ScoringState.INCOMPLETE
    assert unmet_preconditions(sum_subscale, profile, [UserAnswer("q1", "A")], MALE_RULES) == [
        Precondition.ANSWERS
    ]
    assert unmet_preconditions(None, None, [], []) == [
        Precondition.PROFILE, Precondition.SUBSCALE, Precondition.RULES, Precondition.ANSWERS
    ]


def test_average_matches_exact_rule(questions, profile, answers):
    sub = SubscaleConfig("avg", ("q1", "q2", "q3"), AggregationMethod.AVERAGE)
    rules = [ExactRule(age=30, sex=Sex.M, raw_score=1.67, normalized_score=62)]
    assert calculate(questions, sub, profile, answers, rules).normalized_score == 62


def test_calculate_subscales(questions, profile, answers):
    a = SubscaleConfig("A", ("q1", "q2"))
    b = SubscaleConfig("B", ("q3",))
    results = calculate_subscales(questions, profile, answers, [(a, MALE_RULES), (b, FEMALE_RULES)])
    assert results["A"].normalized_score == 40
    assert results["B"].normalized_score is None
    assert results["B"].raw_score == 2


def test_profile_with_plain_sex_string(questions, sum_subscale, answers):
    result = calculate(questions, sum_subscale, UserProfile(age=30, sex="M"), answers, MALE_RULES)
    assert result.normalized_score == 40


def test_overflowing_sum_is_a_result_value(profile):
    q = Question("q1", "x", (Option("A", 1e308),))
    q2 = Question("q2", "y", (Option("A", 1e308),))
    sub = SubscaleConfig("s", ("q1", "q2"))
    result = calculate([q, q2], sub, profile, [UserAnswer("q1", "A"), UserAnswer("q2", "A")], MALE_RULES)
    assert result.error_code == "invalid_reference"
    assert result.normalized_score is None
