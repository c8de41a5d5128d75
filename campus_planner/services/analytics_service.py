"""Analytics service for dashboard statistics and weekly progress.

This module provides functions for:
- Summarizing a task snapshot (counts, hours, top tag, overdue work)
- Measuring completed hours against the weekly hour target

Key Concepts:
- Week: seven local calendar days starting on the user's first day of week.
- Completed in week: a Complete task whose updatedAt (or createdAt when
  missing) falls inside the week, taken as the completion time.
- Planned in week: any task whose due date falls inside the week.
"""

import logging
from collections import Counter
from collections.abc import Iterable
from datetime import date, datetime, time

from campus_planner.core.config import Constants
from campus_planner.core.logging import span
from campus_planner.domain.task import Task, TaskStatus, parse_timestamp
from campus_planner.models.service_models import TaskStats, WeeklyProgress
from campus_planner.services.query_service import day_of_week, week_bounds


logger = logging.getLogger(__name__)

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

_END_OF_DAY = time(23, 59, 59, 999000)


def _hours(tasks: Iterable[Task]) -> float:
    return sum(task.duration or 0 for task in tasks) / Constants.MINUTES_PER_HOUR


def calculate_task_stats(tasks: Iterable[Task], *, today: date, first_day_of_week: int = 0) -> TaskStats:
    """Summarize a task snapshot for the dashboard."""
    with span("analytics_service.calculate_task_stats"):
        tasks = list(tasks)
        completed = [task for task in tasks if task.status == TaskStatus.COMPLETE]
        pending = [task for task in tasks if task.status == TaskStatus.PENDING]

        # Counter keeps first-seen order, so ties go to the tag seen first
        top_tag: str | None = None
        top_tag_count = 0
        for tag, count in Counter(task.tag for task in tasks).items():
            if count > top_tag_count:
                top_tag, top_tag_count = tag, count

        start, end = week_bounds(today, first_day_of_week)
        total_hours = _hours(tasks)
        total = len(tasks)

        return TaskStats(
            total_tasks=total,
            completed_tasks=len(completed),
            pending_tasks=len(pending),
            total_hours_planned=total_hours,
            completed_hours=_hours(completed),
            top_tag=top_tag,
            top_tag_count=top_tag_count,
            upcoming_this_week=sum(1 for task in pending if start <= task.due <= end),
            overdue_tasks=sum(1 for task in pending if task.due < today),
            completion_rate=len(completed) / total * 100 if total else 0.0,
            average_task_duration=total_hours / total if total else 0.0,
        )


def calculate_weekly_progress(
    tasks: Iterable[Task],
    weekly_target: float,
    *,
    now: datetime,
    first_day_of_week: int = 0,
) -> WeeklyProgress:
    """Measure completed hours this week against the weekly target.

    Args:
        tasks: Task snapshot
        weekly_target: Target hours per week; a target of 0 yields 0% progress
        now: Current local time (naive values are taken as local time)
        first_day_of_week: 0 = Sunday ... 6 = Saturday

    Returns:
        WeeklyProgress with percentages, remaining and expected hours
    """
    with span("analytics_service.calculate_weekly_progress"):
        tasks = list(tasks)
        now = now if now.tzinfo is not None else now.astimezone()
        today = now.date()

        first_day, last_day = week_bounds(today, first_day_of_week)
        week_start = datetime.combine(first_day, time.min, tzinfo=now.tzinfo)
        week_end = datetime.combine(last_day, _END_OF_DAY, tzinfo=now.tzinfo)

        completed_in_week = [
            task
            for task in tasks
            if task.status == TaskStatus.COMPLETE
            and week_start <= parse_timestamp(task.updated_at or task.created_at) <= week_end
        ]
        due_in_week = [task for task in tasks if first_day <= task.due <= last_day]

        completed_hours = _hours(completed_in_week)
        planned_hours = _hours(due_in_week)

        if weekly_target > 0:
            actual_percentage = completed_hours * 100 / weekly_target
        else:
            actual_percentage = 0.0

        days_into_week = (day_of_week(today) - first_day_of_week) % Constants.DAYS_PER_WEEK + 1

        return WeeklyProgress(
            week_start=week_start,
            week_end=week_end,
            completed_hours=completed_hours,
            planned_hours=planned_hours,
            progress_percentage=min(actual_percentage, 100.0),
            actual_percentage=actual_percentage,
            is_over_target=completed_hours > weekly_target,
            is_under_target=0 < completed_hours < weekly_target,
            remaining_hours=max(weekly_target - completed_hours, 0.0),
            current_day=DAY_NAMES[day_of_week(today)],
            days_into_week=days_into_week,
            expected_hours_by_now=weekly_target / Constants.DAYS_PER_WEEK * days_into_week,
            weekly_target=weekly_target,
            weekly_tasks=len(due_in_week),
        )
