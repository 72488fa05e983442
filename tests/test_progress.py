import pytest

from examtrack.progress import (
    chapter_overall_progress,
    chapter_progress,
    chapter_snapshot,
    classify_foundation,
    completion_stats,
    is_topic_completed,
    round_half_up,
    subject_foundation_level,
    subject_overall_progress,
    subject_progress,
    subject_snapshot,
    topic_progress,
    weighted_overall,
)
from factories import chapter, scored, subject, topic


def test_round_half_up_matches_js_rounding():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.4) == 2
    assert round_half_up(0.25, 1) == 0.3


def test_learning_is_binary():
    assert topic_progress(topic(learned=True), "learning") == 100
    assert topic_progress(topic(), "learning") == 0


def test_binary_mode_counts_any_revision_as_done():
    assert topic_progress(topic(revision=1), "revision", mode="binary") == 100
    assert topic_progress(topic(revision=0), "revision", mode="binary") == 0


def test_stepped_mode_scores_count_out_of_three():
    assert topic_progress(topic(practice=1), "practice", mode="stepped") == pytest.approx(100 / 3)
    assert topic_progress(topic(practice=3), "practice", mode="stepped") == 100
    # counters above the cap still read as complete
    assert topic_progress(topic(test=7), "test", mode="stepped") == 100


def test_unknown_mode_or_category_rejected():
    with pytest.raises(ValueError):
        topic_progress(topic(), "revision", mode="fuzzy")
    with pytest.raises(ValueError):
        topic_progress(topic(), "reading")


def test_topic_completed_needs_every_category():
    assert is_topic_completed(topic(True, 1, 1, 1), mode="binary")
    assert not is_topic_completed(topic(True, 1, 1, 0), mode="binary")
    assert not is_topic_completed(topic(True, 1, 1, 1), mode="stepped")


def test_chapter_progress_is_rounded_mean():
    ch = chapter(topic(learned=True), topic(), topic())
    assert chapter_progress(ch, "learning") == 33
    assert chapter_progress(chapter(), "learning") == 0


def test_chapter_stepped_revision_average():
    ch = chapter(topic(True, revision=1), topic(True, revision=2))
    assert chapter_progress(ch, "revision", mode="stepped") == 50


def test_weighted_overall_uses_category_weights():
    assert weighted_overall({"learning": 100, "revision": 50, "practice": 0, "test": 0}) == 55
    assert weighted_overall({"learning": 100, "revision": 100, "practice": 100, "test": 100}) == 100


def test_chapter_snapshot_and_overall_agree():
    ch = chapter(topic(True, revision=1), topic())
    snap = chapter_snapshot(ch, mode="binary")
    assert snap["learning"] == 50
    assert snap["revision"] == 50
    assert snap["overall"] == chapter_overall_progress(ch, mode="binary") == 35


def test_subject_progress_averages_chapters():
    s = subject(chapter(topic(True), topic(True)), chapter(topic()))
    assert subject_progress(s, "learning") == 50


def test_subject_overall_adds_test_score_share():
    s = subject(chapter(topic(True, revision=1)), tests=[scored(80), scored(100)])
    # base 40 + 30, plus round(90 * 0.2)
    assert subject_overall_progress(s, mode="binary") == 88
    assert subject_snapshot(s, mode="binary")["overall"] == 88


def test_subject_overall_is_capped():
    s = subject(chapter(topic(True, 1, 1, 1)), tests=[scored(100)])
    assert subject_overall_progress(s, mode="binary") == 100


def test_empty_subject_is_zero_and_beginner():
    s = subject()
    assert subject_overall_progress(s) == 0
    assert subject_foundation_level(s) == "Beginner"


@pytest.mark.parametrize(
    "learning,revision,expected",
    [
        (80, 70, "Advanced"),
        (100, 100, "Advanced"),
        (79, 70, "Moderate"),
        (80, 69, "Moderate"),
        (50, 40, "Moderate"),
        (50, 39, "Beginner"),
        (49, 100, "Beginner"),
    ],
)
def test_classify_foundation_thresholds(learning, revision, expected):
    assert classify_foundation(learning, revision) == expected


def test_subject_foundation_level_uses_learning_and_revision():
    s = subject(chapter(topic(True, revision=1)))
    assert subject_foundation_level(s, mode="binary") == "Advanced"
    assert subject_foundation_level(s, mode="stepped") == "Beginner"


def test_completion_stats():
    s = subject(chapter(topic(True), topic(True)), chapter(topic()))
    stats = completion_stats(s)
    assert stats["chapters"] == {"total": 2, "completed": 1, "percentage": 50}
    assert stats["topics"] == {"total": 3, "completed": 2, "percentage": 67}
