from datetime import datetime, timedelta
from types import SimpleNamespace

from examtrack.marks import expected_marks, mock_test_summary, projected_total, score_statistics
from factories import scored, subject


def test_expected_marks_rounds_average_first():
    # average 76.2 -> 76, 15 * 76 / 100 = 11.4 -> 11
    assert expected_marks(15, [scored(72.4), scored(80)]) == 11


def test_expected_marks_without_tests():
    assert expected_marks(15, []) == 0


def test_expected_marks_half_rounds_up():
    # 5 * 50 / 100 = 2.5
    assert expected_marks(5, [scored(50)]) == 3


def test_score_statistics_trend_uses_latest_two():
    t0 = datetime(2024, 1, 1)
    tests = [scored(60, t0), scored(90, t0 + timedelta(days=2)), scored(70, t0 + timedelta(days=1))]
    stats = score_statistics(tests)
    assert stats["total_tests"] == 3
    assert stats["recent_score"] == 90
    assert stats["highest_score"] == 90
    assert stats["lowest_score"] == 60
    assert stats["average_score"] == 73
    assert stats["trend"] == "up"


def test_score_statistics_down_and_stable():
    t0 = datetime(2024, 1, 1)
    assert score_statistics([scored(80, t0), scored(50, t0 + timedelta(days=1))])["trend"] == "down"
    assert score_statistics([scored(80, t0)])["trend"] == "stable"
    assert score_statistics([])["total_tests"] == 0


def test_mock_test_summary_counts_only_attempted():
    mocks = [
        SimpleNamespace(expected_marks=10, actual_marks=12),
        SimpleNamespace(expected_marks=8, actual_marks=None),
    ]
    summary = mock_test_summary(mocks)
    assert summary["total"] == 2
    assert summary["attempted"] == 1
    assert summary["difference"] == 2


def test_projected_total_gap():
    subjects = [
        subject(id=1, name="A", weightage=20, tests=[scored(50)]),
        subject(id=2, name="B", weightage=10, tests=[]),
    ]
    result = projected_total(subjects, target_marks=60)
    assert result["expected_marks"] == 10
    assert result["gap"] == 50
    assert [s["expected_marks"] for s in result["subjects"]] == [10, 0]
    assert projected_total(subjects)["gap"] is None
