from __future__ import annotations
from typing import List, Sequence
import math
import matplotlib.pyplot as plt

from ..core.scoring import AnswerDetail, format_score

# band edges and colours shared with score_interpretation
GAUGE_BANDS = [
    (0, 20, "#cbd5e1"),
    (20, 40, "#93c5fd"),
    (40, 60, "#86efac"),
    (60, 80, "#fdba74"),
    (80, 100, "#fca5a5"),
]


def gauge_chart(normalized_score: float, max_score: float = 100):
    """Return a matplotlib Figure with a half-donut gauge and a needle."""
    if max_score <= 0:
        raise ValueError("max_score must be positive")
    value = min(max(float(normalized_score), 0.0), float(max_score))

    fig, ax = plt.subplots(figsize=(6, 3.5))
    ax.set_aspect("equal")
    ax.axis("off")

    scale = max_score / 100.0
    sizes = [(hi - lo) * scale for lo, hi, _ in GAUGE_BANDS]
    colors = [c for _, _, c in GAUGE_BANDS]
    # top half only: a transparent wedge of equal size fills the bottom
    ax.pie(
        sizes + [sum(sizes)],
        colors=colors + ["none"],
        startangle=180,
        counterclock=False,
        wedgeprops={"width": 0.35, "edgecolor": "white"},
    )

    angle = math.pi - (value / max_score) * math.pi
    ax.plot([0, 0.8 * math.cos(angle)], [0, 0.8 * math.sin(angle)], color="black", linewidth=3)
    ax.add_patch(plt.Circle((0, 0), 0.05, color="black"))
    ax.text(0, -0.25, format_score(normalized_score), ha="center", va="center", fontsize=20)
    ax.set_ylim(-0.5, 1.1)
    return fig


def answer_bar_chart(details: Sequence[AnswerDetail]):
    """Return a matplotlib Figure with one bar per answered question."""
    if not details:
        raise ValueError("details must not be empty")
    labels: List[str] = [d.question_id for d in details]
    scores: List[float] = [d.score for d in details]

    fig, ax = plt.subplots(figsize=(6, 3))
    ax.bar(labels, scores)
    for i, d in enumerate(details):
        ax.annotate(d.selected_option, (i, d.score), ha="center", va="bottom")
    ax.set_ylabel("Score")
    ax.set_ylim(0, max(scores + [0]) * 1.2 or 1)
    ax.grid(True, axis="y", alpha=0.3)
    return fig
