# main.py
from __future__ import annotations

import json
import logging
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import matplotlib.pyplot as plt
import streamlit as st

from normscore.components.charts import answer_bar_chart, gauge_chart
from normscore.core.errors import NO_MATCHING_RULE
from normscore.core.norms import NormalizationRule, RangeRule, overlapping_rules, rule_from_dict
from normscore.core.orchestrator import Precondition, ScoringState, calculate, unmet_preconditions
from normscore.core.scoring import answer_details, format_score, round2, score_description, score_interpretation
from normscore.core.subscale import AggregationMethod, SubscaleConfig
from normscore.core.survey import (
    AGE_MAX,
    AGE_MIN,
    Question,
    Sex,
    UserAnswer,
    UserProfile,
    load_survey,
    question_from_dict,
)
from normscore.reports.pdf_export import build_report, export_pdf


# ----------------------------
# Paths / Config
# ----------------------------
ROOT = Path(__file__).resolve().parent
DATA_DIR = ROOT.parent / "data"

SAMPLE_PATH = DATA_DIR / "sample_survey.json"

STEPS = [
    ("Survey Definition", "Define questions and assign scores"),
    ("User Profile", "Enter age and sex"),
    ("Survey Answers", "Record user responses"),
    ("Subscale Config", "Configure calculation method"),
    ("Normalization Table", "Set up lookup table"),
    ("Results", "View calculated scores"),
]


# ----------------------------
# UI Helpers
# ----------------------------
def init_state():
    if "questions" in st.session_state:
        return
    seed: Dict[str, Any] = {"questions": [], "subscale": None, "rules": []}
    if SAMPLE_PATH.exists():
        seed = load_survey(str(SAMPLE_PATH))
    st.session_state.questions = list(seed["questions"])
    st.session_state.subscale = seed["subscale"]
    st.session_state.rules = list(seed["rules"])
    st.session_state.profile = None
    st.session_state.selected = {}
    st.session_state.step = 0


def step_valid(i: int) -> bool:
    s = st.session_state
    if i == 0:
        return len(s.questions) > 0
    if i == 1:
        return s.profile is not None
    if i == 2:
        return len(s.selected) > 0
    if i == 3:
        return s.subscale is not None
    if i == 4:
        return len(s.rules) > 0
    return True


def can_open(i: int) -> bool:
    return all(step_valid(j) for j in range(i))


def current_answers() -> List[UserAnswer]:
    return [UserAnswer(qid, label) for qid, label in st.session_state.selected.items()]


def drop_question(
    questions: List[Question],
    subscale: Optional[SubscaleConfig],
    selected: Dict[str, str],
    question_id: str,
) -> Tuple[List[Question], Optional[SubscaleConfig], Dict[str, str]]:
    """Remove a question along with its subscale selection and recorded answer."""
    kept = [q for q in questions if q.id != question_id]
    if subscale is not None:
        subscale = subscale.without_question(question_id)
    answers = {qid: label for qid, label in selected.items() if qid != question_id}
    return kept, subscale, answers


def render_definition():
    s = st.session_state
    qs = s.questions
    for q in qs:
        left, right = st.columns([5, 1])
        left.markdown(f"**{q.id}** {q.text}")
        left.caption(", ".join(f"{o.label}={format_score(o.score)}" for o in q.options))
        if right.button("Delete", key=f"del_q_{q.id}"):
            s.questions, s.subscale, s.selected = drop_question(qs, s.subscale, s.selected, q.id)
            st.rerun()

    with st.form("add_question", clear_on_submit=True):
        st.write("Add a question (options A-D)")
        text = st.text_input("Question text")
        cols = st.columns(4)
        scores = {label: cols[i].number_input(label, value=i + 1) for i, label in enumerate("ABCD")}
        if st.form_submit_button("Add question") and text.strip():
            qid = f"q{len(qs) + 1}"
            while any(q.id == qid for q in qs):
                qid += "_"
            qs.append(question_from_dict({"id": qid, "text": text.strip(), "scores": scores}))
            st.rerun()


def render_profile():
    prof: Optional[UserProfile] = st.session_state.profile
    age = st.number_input(
        f"Age ({AGE_MIN}-{AGE_MAX})",
        min_value=AGE_MIN,
        max_value=AGE_MAX,
        value=prof.age if prof else 25,
        step=1,
    )
    sexes = [s.value for s in Sex]
    sex = st.radio("Sex", sexes, index=sexes.index(prof.sex.value) if prof else 0, horizontal=True)
    if st.button("Save profile"):
        st.session_state.profile = UserProfile(age=int(age), sex=Sex(sex))
        st.rerun()
    if prof:
        st.success(f"{prof.age} year old {'male' if prof.sex == Sex.M else 'female'}")


def render_answers():
    selected: Dict[str, str] = st.session_state.selected
    for q in st.session_state.questions:
        labels = q.labels
        index = labels.index(selected[q.id]) if selected.get(q.id) in labels else None
        choice = st.radio(q.text, labels, index=index, key=f"q_{q.id}")
        if choice is not None:
            selected[q.id] = choice
    st.caption(f"{len(selected)} of {len(st.session_state.questions)} answered")


def render_subscale():
    current: Optional[SubscaleConfig] = st.session_state.subscale
    ids = [q.id for q in st.session_state.questions]
    name = st.text_input("Subscale name", value=current.name if current else "")
    picked = st.multiselect(
        "Questions", ids, default=[i for i in (current.question_ids if current else ()) if i in ids]
    )
    methods = [m.value for m in AggregationMethod]
    method = st.radio(
        "Calculation method", methods, index=methods.index(current.method.value) if current else 0, horizontal=True
    )
    if st.button("Save subscale"):
        try:
            st.session_state.subscale = SubscaleConfig(name=name, question_ids=tuple(picked), method=method)
        except ValueError as e:
            st.error(str(e))
        else:
            st.rerun()


def rule_row(rule: NormalizationRule) -> Dict[str, Any]:
    row: Dict[str, Any] = {"form": "range" if isinstance(rule, RangeRule) else "exact"}
    for k, v in vars(rule).items():
        row[k] = v.value if isinstance(v, Sex) else v
    return row


def render_rules():
    rules = st.session_state.rules
    for i, rule in enumerate(rules):
        left, right = st.columns([5, 1])
        left.write(rule_row(rule))
        if right.button("Delete", key=f"del_rule_{i}"):
            rules.pop(i)
            st.rerun()
    for i, j in overlapping_rules(rules):
        st.warning(f"Rules {i + 1} and {j + 1} overlap; rule {i + 1} wins because it comes first.")

    form = st.radio("Rule form", ["range", "exact"], horizontal=True)
    with st.form("add_rule", clear_on_submit=True):
        c1, c2, c3 = st.columns(3)
        sex = c2.selectbox("Sex", [s.value for s in Sex])
        normalized = c2.number_input("Normalized score", value=50)
        if form == "range":
            st.write("Add a range rule")
            age_min = c1.number_input("Age min", min_value=AGE_MIN, max_value=AGE_MAX, value=18)
            age_max = c1.number_input("Age max", min_value=AGE_MIN, max_value=AGE_MAX, value=AGE_MAX)
            raw_min = c3.number_input("Raw score min", value=1.0)
            raw_max = c3.number_input("Raw score max", value=10.0)
            raw = {
                "ageMin": int(age_min), "ageMax": int(age_max), "sex": sex,
                "rawScoreMin": raw_min, "rawScoreMax": raw_max, "normalizedScore": normalized,
            }
        else:
            st.write("Add an exact entry")
            age = c1.number_input("Age", min_value=AGE_MIN, max_value=AGE_MAX, value=25)
            raw_score = c3.number_input("Raw score", value=4.0, step=0.01, format="%.2f")
            raw = {"age": int(age), "sex": sex, "rawScore": round2(raw_score), "normalizedScore": normalized}
        if st.form_submit_button("Add rule"):
            try:
                rules.append(rule_from_dict(raw))
            except ValueError as e:
                st.error(str(e))
            else:
                st.rerun()


def render_results():
    s = st.session_state
    answers = current_answers()
    unmet = unmet_preconditions(s.subscale, s.profile, answers, s.rules)
    if unmet:
        st.info("Not ready: " + ", ".join(p.value for p in unmet))
        if unmet != [Precondition.ANSWERS]:
            return

    result = calculate(s.questions, s.subscale, s.profile, answers, s.rules)
    c1, c2 = st.columns(2)
    c1.metric("Raw score", format_score(result.raw_score))
    if result.state == ScoringState.COMPUTED:
        c2.metric("Normalized score", format_score(result.normalized_score))
        st.write(
            f"Interpretation: **{score_interpretation(result.normalized_score)}** "
            f"({score_description(result.normalized_score)})"
        )
        fig = gauge_chart(result.normalized_score)
        st.pyplot(fig)
        plt.close(fig)
    else:
        c2.metric("Normalized score", "n/a")
        st.error(result.error)

    details = []
    if result.error_code in (None, NO_MATCHING_RULE):
        details = answer_details(s.questions, s.subscale, answers)
    if details:
        fig = answer_bar_chart(details)
        st.pyplot(fig)
        plt.close(fig)

    report = build_report(s.profile, s.subscale, result, details, generated_at=datetime.now().isoformat(timespec="seconds"))
    st.download_button("Download JSON", json.dumps(report, indent=2), file_name="normscore_report.json")
    with tempfile.NamedTemporaryFile(suffix=".pdf") as tmp:
        export_pdf(tmp.name, report)
        pdf_bytes = Path(tmp.name).read_bytes()
    st.download_button("Download PDF", pdf_bytes, file_name="normscore_report.pdf", mime="application/pdf")


RENDERERS = [render_definition, render_profile, render_answers, render_subscale, render_rules, render_results]


# ----------------------------
# Main app
# ----------------------------
def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    st.set_page_config(page_title="Survey Normalization", layout="wide")
    init_state()

    st.title("Survey Normalization Scoring")
    st.caption("Raw subscale scores are looked up in a demographic table; the first matching rule wins.")

    step = st.session_state.step
    st.progress((step + 1) / len(STEPS))
    title, desc = STEPS[step]
    st.subheader(f"Step {step + 1}: {title}")
    st.caption(desc)

    RENDERERS[step]()

    left, right = st.columns(2)
    if left.button("Previous", disabled=step == 0):
        st.session_state.step = step - 1
        st.rerun()
    nxt = step + 1
    if right.button("Next", disabled=nxt >= len(STEPS) or not can_open(nxt)):
        st.session_state.step = nxt
        st.rerun()


if __name__ == "__main__":
    main()
