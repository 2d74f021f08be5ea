from __future__ import annotations
from typing import Any, Dict, Optional, Sequence
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas
from reportlab.lib.units import inch

from ..core.orchestrator import CalculationResult
from ..core.scoring import AnswerDetail, format_score, score_description, score_interpretation
from ..core.subscale import SubscaleConfig
from ..core.survey import UserProfile


def build_report(
    profile: UserProfile,
    subscale: SubscaleConfig,
    result: CalculationResult,
    details: Sequence[AnswerDetail] = (),
    generated_at: str = "",
) -> Dict[str, Any]:
    normalized: Optional[float] = result.normalized_score
    return {
        "generated_at": generated_at,
        "profile": {"age": profile.age, "sex": profile.sex.value},
        "subscale": {
            "name": subscale.name,
            "question_ids": list(subscale.question_ids),
            "method": subscale.method.value,
        },
        "raw_score": result.raw_score,
        "normalized_score": normalized,
        "interpretation": score_interpretation(normalized),
        "description": score_description(normalized),
        "error": result.error,
        "answers": [
            {
                "question_id": d.question_id,
                "question": d.question,
                "selected_option": d.selected_option,
                "score": d.score,
            }
            for d in details
        ],
    }


def export_pdf(path: str, report: Dict[str, Any]) -> None:
    c = canvas.Canvas(str(path), pagesize=letter)
    width, height = letter
    x = 0.75 * inch
    y = height - 0.75 * inch

    def line(txt: str, dy: float = 14):
        nonlocal y
        c.drawString(x, y, txt[:120])
        y -= dy
        if y < 0.75 * inch:
            c.showPage()
            y = height - 0.75 * inch

    profile = report.get("profile", {})
    subscale = report.get("subscale", {})

    line("Normalized Score Report")
    line(f"Generated: {report.get('generated_at', '')}")
    line("")
    line(f"Respondent: age {profile.get('age', '')}, sex {profile.get('sex', '')}")
    line(f"Subscale: {subscale.get('name', '')} ({subscale.get('method', '')})")
    line("")
    line(f"Raw Score: {format_score(report.get('raw_score', 0))}")
    if report.get("error"):
        line("Normalized Score: not available")
        line(f"Error: {report['error']}")
    else:
        line(
            f"Normalized Score: {format_score(report['normalized_score'])}  |  "
            f"Interpretation: {report.get('interpretation', '')} ({report.get('description', '')})"
        )

    line("")
    line("Answers:")
    answers = report.get("answers", [])
    if not answers:
        line(" - None recorded")
    for a in answers:
        line(f" - {a['question_id']}: {a['question']} -> {a['selected_option']} ({format_score(a['score'])})")

    line("")
    line("Normalized scores come from the configured lookup table; first matching rule wins.")
    c.save()
