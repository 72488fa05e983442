"""Subject recommendations for the dashboard."""
from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional

from .progress import subject_snapshot

# weightage that maps to 100 on the normalised scale
WEIGHTAGE_SCALE = 20


def combined_score(weightage: float, learning: float, revision: float, practice: float = 0, test: float = 0) -> float:
    normalised = (weightage or 0) / WEIGHTAGE_SCALE * 100
    return normalised * 0.4 + learning * 0.3 + revision * 0.2 + practice * 0.05 + test * 0.05


def _ref(subject: Any) -> Dict[str, Any]:
    return {"id": subject.id, "name": subject.name, "weightage": subject.weightage}


def smart_recommendations(
    subjects: List[Any],
    math_subjects: Optional[Iterable[str]] = None,
    mode: Optional[str] = None,
) -> Dict[str, List[Dict[str, Any]]]:
    if math_subjects is None:
        from .settings import settings

        math_subjects = settings.math_subjects
    math_names = set(math_subjects)
    rows = [(s, subject_snapshot(s, mode)) for s in subjects]
    maths = [(s, p) for s, p in rows if s.name in math_names]
    others = [(s, p) for s, p in rows if s.name not in math_names]

    def in_progress(pairs):
        return sorted(
            [(s, p) for s, p in pairs if 0 < p["learning"] < 100],
            key=lambda sp: sp[1]["learning"],
            reverse=True,
        )

    priority_focus = [
        {"subject": _ref(s), "learning_progress": p["learning"]}
        for s, p in in_progress(others)[:2] + in_progress(maths)[:1]
    ]

    start_next = [
        {"subject": _ref(s), "weightage": s.weightage}
        for s, p in sorted((sp for sp in others if sp[1]["learning"] == 0), key=lambda sp: sp[0].weightage or 0, reverse=True)[:3]
    ]

    revise = [
        {"subject": _ref(s), "learning_progress": p["learning"], "revision_progress": p["revision"]}
        for s, p in sorted(
            (sp for sp in rows if sp[1]["learning"] > 40 and 0 < sp[1]["revision"] < 100),
            key=lambda sp: sp[1]["learning"] + sp[1]["revision"],
            reverse=True,
        )[:3]
    ]

    practice = sorted(
        (
            {
                "subject": _ref(s),
                "weightage": s.weightage,
                "learning_progress": p["learning"],
                "revision_progress": p["revision"],
                "practice_progress": p["practice"],
                "combined_score": combined_score(s.weightage, p["learning"], p["revision"], p["practice"]),
            }
            for s, p in rows
            if p["practice"] < 100
        ),
        key=lambda r: r["combined_score"],
        reverse=True,
    )

    test = sorted(
        (
            {
                "subject": _ref(s),
                "weightage": s.weightage,
                "learning_progress": p["learning"],
                "revision_progress": p["revision"],
                "practice_progress": p["practice"],
                "test_progress": p["test"],
                "combined_score": combined_score(s.weightage, p["learning"], p["revision"], p["practice"], p["test"]),
            }
            for s, p in rows
        ),
        key=lambda r: r["combined_score"],
        reverse=True,
    )

    return {
        "priority_focus": priority_focus,
        "start_next": start_next,
        "revise": revise,
        "practice": practice,
        "test": test,
    }
