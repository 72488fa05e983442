"""Test-plan generator.

Emits synthetic test events once a subject (or the exam as a whole) crosses a
learning-progress trigger, then spreads them so consecutive tests respect a
minimum gap per test type. One pass, no backtracking, no capacity model.
"""
from __future__ import annotations
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .activity import utc_today


@dataclass(frozen=True)
class TrackConfig:
    type: str
    trigger_progress: float
    frequency: int  # days
    duration: int  # minutes
    questions: int
    marks: int
    min_gap: int  # days


TOPIC_WISE = TrackConfig("TWT", trigger_progress=50, frequency=3, duration=40, questions=13, marks=20, min_gap=2)
SUBJECT_WISE = TrackConfig("SWT", trigger_progress=75, frequency=5, duration=75, questions=26, marks=40, min_gap=3)
MULTI_SUBJECT = TrackConfig("MST", trigger_progress=60, frequency=14, duration=110, questions=39, marks=60, min_gap=7)
FULL_LENGTH = TrackConfig("FLT", trigger_progress=80, frequency=7, duration=180, questions=65, marks=100, min_gap=5)
PREVIOUS_YEAR = TrackConfig("PYQ", trigger_progress=90, frequency=3, duration=180, questions=65, marks=100, min_gap=2)

TRACKS: Dict[str, TrackConfig] = {c.type: c for c in (TOPIC_WISE, SUBJECT_WISE, MULTI_SUBJECT, FULL_LENGTH, PREVIOUS_YEAR)}

FULL_LENGTH_COUNT = 11
PREVIOUS_YEAR_COUNT = 13
# previous-year papers are only scheduled this close to the exam
PREVIOUS_YEAR_WINDOW_DAYS = 30
DEFAULT_GROUP_SIZE = 3


@dataclass
class ScheduleEntry:
    key: str
    type: str
    name: str
    questions: int
    marks: int
    duration: int
    scheduled_for: date
    subject_ids: List[int] = field(default_factory=list)
    completed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["scheduled_for"] = self.scheduled_for.isoformat()
        return data


def min_gap_days(test_type: str) -> int:
    track = TRACKS.get(test_type)
    return track.min_gap if track else 1


class TestScheduler:
    """Builds a test plan from subjects and their recorded learning progress.

    ``progress`` maps subject id to learning progress (0-100); subjects with
    no entry count as 0.
    """

    __test__ = False

    def __init__(
        self,
        subjects: Sequence[Any],
        progress: Mapping[int, float],
        days_to_exam: int,
        *,
        today: Optional[date] = None,
        groups: Optional[List[List[Any]]] = None,
    ) -> None:
        self.subjects = list(subjects)
        self.progress = dict(progress)
        self.days_to_exam = days_to_exam
        self.today = today or utc_today()
        self.groups = groups

    def subject_progress(self, subject_id: int) -> float:
        return self.progress.get(subject_id, 0) or 0

    def overall_progress(self) -> float:
        values = list(self.progress.values())
        if not values:
            return 0
        return sum(values) / len(values)

    def generate(self) -> List[ScheduleEntry]:
        schedule: List[ScheduleEntry] = []
        for subject in self.subjects:
            if self.subject_progress(subject.id) >= TOPIC_WISE.trigger_progress:
                schedule.extend(self._topic_wise(subject))
        for subject in self.subjects:
            if self.subject_progress(subject.id) >= SUBJECT_WISE.trigger_progress:
                schedule.append(self._subject_wise(subject))
        overall = self.overall_progress()
        if overall >= MULTI_SUBJECT.trigger_progress:
            schedule.extend(self._multi_subject())
        if overall >= FULL_LENGTH.trigger_progress:
            schedule.extend(self._full_length())
        if overall >= PREVIOUS_YEAR.trigger_progress and self.days_to_exam <= PREVIOUS_YEAR_WINDOW_DAYS:
            schedule.extend(self._previous_year())
        return enforce_min_gaps(schedule)

    def _entry(self, track: TrackConfig, key: str, name: str, when: date, subject_ids: List[int]) -> ScheduleEntry:
        return ScheduleEntry(
            key=key,
            type=track.type,
            name=name,
            questions=track.questions,
            marks=track.marks,
            duration=track.duration,
            scheduled_for=when,
            subject_ids=subject_ids,
        )

    def _after(self, days: int) -> date:
        return self.today + timedelta(days=days)

    def _topic_wise(self, subject: Any) -> List[ScheduleEntry]:
        entries = []
        when = self.today
        for index, chapter in enumerate(getattr(subject, "chapters", None) or []):
            entries.append(self._entry(
                TOPIC_WISE,
                f"twt-{subject.id}-{index}",
                f"TWT {index + 1}: {subject.name} - {chapter.name}",
                when,
                [subject.id],
            ))
            when = when + timedelta(days=TOPIC_WISE.frequency)
        return entries

    def _subject_wise(self, subject: Any) -> ScheduleEntry:
        return self._entry(
            SUBJECT_WISE,
            f"swt-{subject.id}",
            f"SWT: {subject.name} Comprehensive",
            self._after(SUBJECT_WISE.frequency),
            [subject.id],
        )

    def subject_groups(self) -> List[List[Any]]:
        if self.groups is not None:
            return [g for g in self.groups if g]
        return [self.subjects[i:i + DEFAULT_GROUP_SIZE] for i in range(0, len(self.subjects), DEFAULT_GROUP_SIZE)]

    def _multi_subject(self) -> List[ScheduleEntry]:
        return [
            self._entry(
                MULTI_SUBJECT,
                f"mst-{index}",
                f"MST {index + 1}: " + " + ".join(s.name for s in group),
                self._after(MULTI_SUBJECT.frequency),
                [s.id for s in group],
            )
            for index, group in enumerate(self.subject_groups())
        ]

    def _full_length(self) -> List[ScheduleEntry]:
        everyone = [s.id for s in self.subjects]
        return [
            self._entry(FULL_LENGTH, f"flt-{i}", f"Full Length Test {i + 1}", self._after(FULL_LENGTH.frequency), list(everyone))
            for i in range(FULL_LENGTH_COUNT)
        ]

    def _previous_year(self) -> List[ScheduleEntry]:
        everyone = [s.id for s in self.subjects]
        year = self.today.year
        return [
            self._entry(
                PREVIOUS_YEAR, f"pyq-{i}", f"Previous Year Paper {year - i}", self._after(PREVIOUS_YEAR.frequency), list(everyone)
            )
            for i in range(PREVIOUS_YEAR_COUNT)
        ]


def enforce_min_gaps(entries: List[ScheduleEntry]) -> List[ScheduleEntry]:
    """Sort by date, then push each entry to at least previous + min gap(type).

    The comparison uses the previous entry's already-adjusted date.
    """
    ordered = sorted(entries, key=lambda e: e.scheduled_for)
    for index in range(1, len(ordered)):
        previous = ordered[index - 1]
        current = ordered[index]
        gap = min_gap_days(current.type)
        if (current.scheduled_for - previous.scheduled_for).days < gap:
            current.scheduled_for = previous.scheduled_for + timedelta(days=gap)
    return ordered
