from datetime import date, timedelta
from types import SimpleNamespace

from examtrack.scheduler import ScheduleEntry, TestScheduler, enforce_min_gaps, min_gap_days
from factories import chapter

TODAY = date(2024, 1, 1)


def make_subject(id, name=None, chapters=0):
    return SimpleNamespace(
        id=id,
        name=name or f"S{id}",
        chapters=[chapter(name=f"C{i + 1}") for i in range(chapters)],
    )


def assert_gaps_respected(schedule):
    for prev, cur in zip(schedule, schedule[1:]):
        assert (cur.scheduled_for - prev.scheduled_for).days >= min_gap_days(cur.type)


def test_nothing_scheduled_below_triggers():
    subjects = [make_subject(1, chapters=2)]
    assert TestScheduler(subjects, {1: 49}, 100, today=TODAY).generate() == []


def test_missing_progress_counts_as_zero():
    scheduler = TestScheduler([make_subject(1, chapters=2)], {}, 100, today=TODAY)
    assert scheduler.subject_progress(1) == 0
    assert scheduler.overall_progress() == 0
    assert scheduler.generate() == []


def test_topic_wise_one_per_chapter():
    subjects = [make_subject(1, "Algorithms", chapters=2), make_subject(2, chapters=3)]
    schedule = TestScheduler(subjects, {1: 60, 2: 0}, 100, today=TODAY).generate()
    assert [e.key for e in schedule] == ["twt-1-0", "twt-1-1"]
    assert [e.scheduled_for for e in schedule] == [TODAY, TODAY + timedelta(days=3)]
    assert schedule[0].name == "TWT 1: Algorithms - C1"
    assert schedule[0].questions == 13
    assert schedule[0].marks == 20
    assert schedule[0].duration == 40


def test_min_gaps_are_enforced_in_one_pass():
    subjects = [make_subject(1, chapters=1)]
    schedule = TestScheduler(subjects, {1: 80}, 100, today=TODAY).generate()
    types = [e.type for e in schedule]
    assert types.count("TWT") == 1
    assert types.count("SWT") == 1
    assert types.count("MST") == 1
    assert types.count("FLT") == 11
    assert "PYQ" not in types
    assert_gaps_respected(schedule)
    flts = [e for e in schedule if e.type == "FLT"]
    # FLTs start at day 7 but the SWT on day 5 pushes the first one to day 10
    assert flts[0].scheduled_for == date(2024, 1, 11)
    assert flts[-1].scheduled_for == date(2024, 3, 1)
    assert schedule[-1].type == "MST"
    assert schedule[-1].scheduled_for == date(2024, 3, 8)


def test_previous_year_papers_only_close_to_exam():
    subjects = [make_subject(1)]
    near = TestScheduler(subjects, {1: 95}, 20, today=TODAY).generate()
    far = TestScheduler(subjects, {1: 95}, 40, today=TODAY).generate()
    pyqs = [e for e in near if e.type == "PYQ"]
    assert len(pyqs) == 13
    assert {e.name for e in pyqs} >= {"Previous Year Paper 2024", "Previous Year Paper 2012"}
    assert not [e for e in far if e.type == "PYQ"]
    assert_gaps_respected(near)


def test_multi_subject_default_groups_of_three():
    subjects = [make_subject(i, name) for i, name in enumerate("ABCD", start=1)]
    schedule = TestScheduler(subjects, {s.id: 70 for s in subjects}, 100, today=TODAY).generate()
    msts = [e for e in schedule if e.type == "MST"]
    assert [e.name for e in msts] == ["MST 1: A + B + C", "MST 2: D"]
    assert msts[1].subject_ids == [4]
    assert msts[0].scheduled_for == TODAY + timedelta(days=14)
    assert msts[1].scheduled_for == TODAY + timedelta(days=21)


def test_custom_groups():
    subjects = [make_subject(i) for i in range(1, 4)]
    scheduler = TestScheduler(
        subjects, {1: 70, 2: 70, 3: 70}, 100, today=TODAY, groups=[[subjects[0], subjects[2]], []]
    )
    msts = [e for e in scheduler.generate() if e.type == "MST"]
    assert len(msts) == 1
    assert msts[0].subject_ids == [1, 3]


def test_enforce_min_gaps_uses_adjusted_previous_date():
    def entry(key, type_, day):
        return ScheduleEntry(key, type_, key, 1, 1, 1, TODAY + timedelta(days=day))

    result = enforce_min_gaps([entry("c", "SWT", 0), entry("a", "TWT", 0), entry("b", "TWT", 1)])
    assert [e.key for e in result] == ["c", "a", "b"]
    assert [e.scheduled_for for e in result] == [TODAY, TODAY + timedelta(days=2), TODAY + timedelta(days=4)]


def test_entry_to_dict():
    e = ScheduleEntry("flt-0", "FLT", "Full Length Test 1", 65, 100, 180, TODAY, [1, 2])
    data = e.to_dict()
    assert data["scheduled_for"] == "2024-01-01"
    assert data["subject_ids"] == [1, 2]
    assert data["completed"] is False
