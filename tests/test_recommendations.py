import pytest

from examtrack.recommendations import combined_score, smart_recommendations
from factories import chapter, subject, topic


def build_subjects():
    return [
        subject(chapter(topic(True), topic()), id=1, name="A", weightage=15),
        subject(chapter(topic(True, revision=1), topic(True)), id=2, name="B", weightage=10),
        subject(chapter(topic()), id=3, name="C", weightage=20),
        subject(chapter(topic()), id=4, name="D", weightage=5),
        subject(chapter(topic(True), topic()), id=5, name="Maths", weightage=13),
    ]


def names(rows):
    return [r["subject"]["name"] for r in rows]


def test_combined_score():
    assert combined_score(20, 0, 0) == pytest.approx(40)
    assert combined_score(10, 100, 50) == pytest.approx(60)


def test_smart_recommendations_buckets():
    recs = smart_recommendations(build_subjects(), math_subjects=["Maths"], mode="binary")
    assert names(recs["priority_focus"]) == ["A", "Maths"]
    assert names(recs["start_next"]) == ["C", "D"]
    assert names(recs["revise"]) == ["B"]
    assert names(recs["practice"])[0] == "B"
    assert len(recs["practice"]) == 5
    assert len(recs["test"]) == 5
    assert recs["start_next"][0]["subject"] == {"id": 3, "name": "C", "weightage": 20}


def test_no_subjects():
    recs = smart_recommendations([], math_subjects=[], mode="binary")
    assert all(v == [] for v in recs.values())
