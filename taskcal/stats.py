"""Derived views over a task snapshot.

Every function here is pure: it takes the ``{date_key: [Task, ...]}``
mapping plus a reference ``now`` and never touches the store or clock.
"""

from __future__ import annotations

import enum
from typing import List, Mapping, NamedTuple, Sequence

from .calendar_grid import as_date, date_key, month_days, parse_date_key, week_days
from .tasks import Task

TaskMap = Mapping[str, Sequence[Task]]


class DayState(str, enum.Enum):
    NO_TASKS = 'no-tasks'
    FUTURE = 'future'
    INCOMPLETE = 'incomplete'
    COMPLETE = 'complete'


class WeekStats(NamedTuple):
    completed: int
    total: int


class Totals(NamedTuple):
    total_tasks: int
    completed_tasks: int


class Summary(NamedTuple):
    today_progress: int
    weekly: WeekStats
    weekly_completion_rate: int
    missed_days: List[str]
    totals: Totals

    def to_dict(self) -> dict:
        return {
            'today_progress': self.today_progress,
            'weekly': self.weekly._asdict(),
            'weekly_completion_rate': self.weekly_completion_rate,
            'missed_days': list(self.missed_days),
            'totals': self.totals._asdict(),
        }


def percent(completed: int, total: int) -> int:
    """Rounded percentage, half up, 0 when there is nothing to count."""
    if total <= 0:
        return 0
    return (200 * completed + total) // (2 * total)


def _count(day_tasks):
    return sum(1 for t in day_tasks if t.completed), len(day_tasks)


def day_state(tasks: TaskMap, key: str, now) -> DayState:
    if parse_date_key(key) > as_date(now):
        return DayState.FUTURE
    day_tasks = tasks.get(key) or []
    if not day_tasks:
        return DayState.NO_TASKS
    completed, total = _count(day_tasks)
    if completed == total:
        return DayState.COMPLETE
    return DayState.INCOMPLETE


def day_progress(tasks: TaskMap, key: str) -> int:
    return percent(*_count(tasks.get(key) or []))


def weekly_stats(tasks: TaskMap, now) -> WeekStats:
    completed = total = 0
    for d in week_days(now):
        done, count = _count(tasks.get(date_key(d)) or [])
        completed += done
        total += count
    return WeekStats(completed=completed, total=total)


def weekly_completion_rate(tasks: TaskMap, now) -> int:
    return percent(*weekly_stats(tasks, now))


def missed_days(tasks: TaskMap, now) -> List[str]:
    today = as_date(now)
    return [
        date_key(d)
        for d in month_days(today)
        if d <= today and not tasks.get(date_key(d))
    ]


def today_progress(tasks: TaskMap, now) -> int:
    return day_progress(tasks, date_key(now))


def lifetime_totals(tasks: TaskMap) -> Totals:
    total = completed = 0
    for day_tasks in tasks.values():
        done, count = _count(day_tasks)
        completed += done
        total += count
    return Totals(total_tasks=total, completed_tasks=completed)


def summarize(tasks: TaskMap, now) -> Summary:
    weekly = weekly_stats(tasks, now)
    return Summary(
        today_progress=today_progress(tasks, now),
        weekly=weekly,
        weekly_completion_rate=percent(*weekly),
        missed_days=missed_days(tasks, now),
        totals=lifetime_totals(tasks),
    )


def progress_message(progress: int) -> str:
    if progress == 100:
        return 'Great job! All tasks completed!'
    if progress == 0:
        return 'No tasks added yet today'
    return "Keep going! You're making progress!"
