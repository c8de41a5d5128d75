"""Query service: filter, search and sort over task snapshots.

Every function here is pure. Inputs are never mutated and repeated calls on
the same snapshot return equal results. Dates are compared on the local
calendar with day granularity.
"""

import logging
import re
from collections.abc import Iterable, Sequence
from datetime import date, timedelta

from campus_planner.core.config import Constants, settings
from campus_planner.core.logging import log_with_context, span
from campus_planner.domain.settings import FilterOption, SearchMode, SortOption
from campus_planner.domain.task import Task, TaskStatus
from campus_planner.models.service_models import SearchMatch, TaskView, ValidationResult


logger = logging.getLogger(__name__)

COMMON_TAGS = ("Assignment", "Study", "Project", "Exam", "Reading", "Research", "Lab", "Homework")


def day_of_week(day: date) -> int:
    """Day of week with 0 = Sunday."""
    return (day.weekday() + 1) % Constants.DAYS_PER_WEEK


def week_bounds(today: date, first_day_of_week: int = 0) -> tuple[date, date]:
    """First and last calendar day of the week containing today."""
    offset = (day_of_week(today) - first_day_of_week) % Constants.DAYS_PER_WEEK
    start = today - timedelta(days=offset)
    return start, start + timedelta(days=Constants.DAYS_PER_WEEK - 1)


def filter_tasks(
    tasks: Iterable[Task],
    filter_by: str,
    *,
    today: date,
    first_day_of_week: int = 0,
) -> list[Task]:
    """Keep the tasks matching a filter option. Unknown filters keep everything."""
    tasks = list(tasks)
    match filter_by:
        case FilterOption.ALL:
            return tasks
        case FilterOption.PENDING:
            return [task for task in tasks if task.status == TaskStatus.PENDING]
        case FilterOption.COMPLETED:
            return [task for task in tasks if task.status == TaskStatus.COMPLETE]
        case FilterOption.TODAY:
            return [task for task in tasks if task.due == today]
        case FilterOption.WEEK:
            start, end = week_bounds(today, first_day_of_week)
            return [task for task in tasks if start <= task.due <= end]
        case FilterOption.OVERDUE:
            return [task for task in tasks if task.due < today and task.status == TaskStatus.PENDING]
        case _:
            logger.warning("Unknown filter option: %s", filter_by)
            return tasks


def _compile(query: str, mode: str, case_sensitive: bool, max_regex_length: int) -> re.Pattern[str] | None:
    """Compile the search pattern, or return None when it must fall back to substring search."""
    flags = 0 if case_sensitive else re.IGNORECASE
    if mode != SearchMode.REGEX:
        return re.compile(re.escape(query), flags)

    if len(query) > max_regex_length:
        log_with_context(logger, "warning", "Regex too long, using substring search", length=len(query))
        return None
    try:
        return re.compile(query, flags)
    except re.error as e:
        log_with_context(
            logger, "warning", "Invalid search regex, using substring search", pattern=query, error=str(e)
        )
        return None


def _search(
    tasks: list[Task],
    query: str | None,
    mode: str,
    case_sensitive: bool,
    max_regex_length: int | None,
) -> tuple[list[Task], bool]:
    if not query or not query.strip():
        return tasks, False

    limit = max_regex_length if max_regex_length is not None else settings.max_regex_length
    pattern = _compile(query, mode, case_sensitive, limit)
    if pattern is None:
        needle = query.lower()
        matches = [
            task
            for task in tasks
            if any(needle in field.lower() for field in (task.title, task.tag, task.status.value))
        ]
        return matches, True

    matches = [
        task for task in tasks if any(pattern.search(field) for field in (task.title, task.tag, task.status.value))
    ]
    return matches, False


def search_tasks(
    tasks: Iterable[Task],
    query: str | None,
    mode: str = SearchMode.TEXT,
    *,
    case_sensitive: bool = False,
    max_regex_length: int | None = None,
) -> list[Task]:
    """Match tasks whose title, tag or status contains the query.

    Text mode matches the query literally. Regex mode compiles it as a
    pattern; patterns that are too long or fail to compile fall back to a
    case-insensitive substring match.
    """
    matches, _ = _search(list(tasks), query, mode, case_sensitive, max_regex_length)
    return matches


def _match_pattern(
    query: str, mode: str, case_sensitive: bool, max_regex_length: int | None
) -> re.Pattern[str]:
    limit = max_regex_length if max_regex_length is not None else settings.max_regex_length
    pattern = _compile(query, mode, case_sensitive, limit)
    return pattern if pattern is not None else re.compile(re.escape(query), re.IGNORECASE)


def find_matches(
    text: str | None,
    query: str | None,
    mode: str = SearchMode.TEXT,
    *,
    case_sensitive: bool = False,
    max_regex_length: int | None = None,
) -> list[SearchMatch]:
    """Locate every occurrence of the query in text, for highlighting.

    Uses the same pattern rules as search_tasks, including the substring
    fallback for bad regexes. Zero-length matches are reported and the scan
    moves past them. At most MAX_SEARCH_MATCHES matches are returned.
    """
    if not text or not query:
        return []

    matches: list[SearchMatch] = []
    for match in _match_pattern(query, mode, case_sensitive, max_regex_length).finditer(text):
        if len(matches) >= Constants.MAX_SEARCH_MATCHES:
            log_with_context(logger, "warning", "Too many search matches, stopping", limit=len(matches))
            break
        matches.append(SearchMatch(text=match.group(), index=match.start(), length=len(match.group())))
    return matches


def has_match(
    text: str | None,
    query: str | None,
    mode: str = SearchMode.TEXT,
    *,
    case_sensitive: bool = False,
    max_regex_length: int | None = None,
) -> bool:
    if not text or not query:
        return False
    return _match_pattern(query, mode, case_sensitive, max_regex_length).search(text) is not None


def validate_regex_pattern(pattern: str) -> ValidationResult:
    """Check whether a pattern compiles, so a caller can flag it before searching."""
    try:
        re.compile(pattern)
    except re.error as e:
        return ValidationResult(ok=False, value=pattern, error=str(e))
    return ValidationResult(ok=True, value=pattern)


def sort_tasks(tasks: Iterable[Task], sort_by: str) -> list[Task]:
    """Stable sort by due date, title or duration. Unknown options keep the input order."""
    tasks = list(tasks)
    match sort_by:
        case SortOption.DATE_NEWEST:
            return sorted(tasks, key=lambda task: task.due, reverse=True)
        case SortOption.DATE_OLDEST:
            return sorted(tasks, key=lambda task: task.due)
        case SortOption.TITLE_ASC:
            return sorted(tasks, key=lambda task: (task.title.casefold(), task.title))
        case SortOption.TITLE_DESC:
            return sorted(tasks, key=lambda task: (task.title.casefold(), task.title), reverse=True)
        case SortOption.DURATION_ASC:
            return sorted(tasks, key=lambda task: task.duration or 0)
        case SortOption.DURATION_DESC:
            return sorted(tasks, key=lambda task: task.duration or 0, reverse=True)
        case _:
            logger.warning("Unknown sort option: %s", sort_by)
            return tasks


def process_tasks(
    tasks: Iterable[Task],
    *,
    filter_by: str = FilterOption.ALL,
    query: str | None = None,
    search_mode: str = SearchMode.TEXT,
    sort_by: str = SortOption.DATE_NEWEST,
    today: date,
    first_day_of_week: int = 0,
    case_sensitive: bool = False,
) -> list[Task]:
    """Filter, then search, then sort."""
    return get_task_view(
        tasks,
        filter_by=filter_by,
        query=query,
        search_mode=search_mode,
        sort_by=sort_by,
        today=today,
        first_day_of_week=first_day_of_week,
        case_sensitive=case_sensitive,
    ).tasks


def get_task_view(
    tasks: Iterable[Task],
    *,
    filter_by: str = FilterOption.ALL,
    query: str | None = None,
    search_mode: str = SearchMode.TEXT,
    sort_by: str = SortOption.DATE_NEWEST,
    today: date,
    first_day_of_week: int = 0,
    case_sensitive: bool = False,
    max_regex_length: int | None = None,
) -> TaskView:
    """Run the filter/search/sort pipeline and report counts alongside the result."""
    with span("query_service.get_task_view"):
        snapshot = list(tasks)
        filtered = filter_tasks(snapshot, filter_by, today=today, first_day_of_week=first_day_of_week)
        searched, fallback = _search(filtered, query, search_mode, case_sensitive, max_regex_length)
        ordered = sort_tasks(searched, sort_by)

        has_search = bool(query and query.strip())
        return TaskView(
            tasks=[task.model_copy(deep=True) for task in ordered],
            total_count=len(snapshot),
            filtered_count=len(ordered),
            has_search=has_search,
            search_query=query if has_search else None,
            regex_fallback=fallback,
        )


def get_filter_counts(tasks: Sequence[Task], *, today: date, first_day_of_week: int = 0) -> dict[str, int]:
    """Number of tasks each filter option would show."""
    return {
        option.value: len(filter_tasks(tasks, option, today=today, first_day_of_week=first_day_of_week))
        for option in FilterOption
    }


def get_search_suggestions(tasks: Iterable[Task], query: str | None) -> list[str]:
    """Title words and tags containing a partial query (at least 2 characters)."""
    if not query or len(query) < Constants.MIN_SUGGESTION_QUERY_LENGTH:
        return []

    needle = query.lower()
    suggestions: dict[str, None] = {}
    for task in tasks:
        for word in task.title.lower().split():
            if needle in word and word != needle:
                suggestions[word] = None
        if needle in task.tag.lower():
            suggestions[task.tag] = None

    return list(suggestions)[: Constants.MAX_SEARCH_SUGGESTIONS]


def get_tag_suggestions(tasks: Iterable[Task]) -> list[str]:
    """Sorted union of the tags in use and common academic tags."""
    tags = {task.tag for task in tasks if task.tag}
    tags.update(COMMON_TAGS)
    return sorted(tags)
