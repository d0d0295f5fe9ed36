"""Tests for view classification and sorting."""

from datetime import date, datetime, timezone

import pytest

from tt_cli.exceptions import ParseError
from tt_cli.todo import Task, TaskState, TaskStatus
from tt_cli.views import (
    SortOption,
    View,
    classify,
    filter_view,
    in_view,
    is_anytime,
    is_inbox,
    is_someday,
    is_today,
    is_upcoming,
    parse_sort,
    sort_tasks,
)

TODAY = date(2025, 1, 23)
YESTERDAY = date(2025, 1, 22)
TOMORROW = date(2025, 1, 24)

TODO, DONE = TaskStatus.TODO, TaskStatus.DONE
ACTIVE, SOMEDAY = TaskState.ACTIVE, TaskState.SOMEDAY


class TestPredicates:
    """Test the view predicates directly."""

    def test_today(self):
        assert is_today(TODO, ACTIVE, TODAY, None, TODAY)
        assert is_today(TODO, ACTIVE, YESTERDAY, None, TODAY)
        assert is_today(TODO, ACTIVE, TOMORROW, YESTERDAY, TODAY)
        assert not is_today(TODO, ACTIVE, TOMORROW, None, TODAY)
        assert not is_today(DONE, ACTIVE, TODAY, None, TODAY)
        assert not is_today(TODO, SOMEDAY, None, TODAY, TODAY)

    def test_upcoming(self):
        assert is_upcoming(TODO, ACTIVE, TOMORROW, None, TODAY)
        assert is_upcoming(TODO, ACTIVE, None, TOMORROW, TODAY)
        assert not is_upcoming(TODO, ACTIVE, TODAY, TODAY, TODAY)
        assert not is_upcoming(DONE, ACTIVE, TOMORROW, None, TODAY)

    def test_overdue_due_and_future_plan_is_in_both(self):
        assert is_today(TODO, ACTIVE, TOMORROW, YESTERDAY, TODAY)
        assert is_upcoming(TODO, ACTIVE, TOMORROW, YESTERDAY, TODAY)

    def test_anytime_and_inbox(self):
        assert is_anytime(TODO, ACTIVE, None, None, True)
        assert not is_anytime(TODO, ACTIVE, TODAY, None, True)
        assert is_inbox(TODO, ACTIVE, None, None, False)
        assert not is_inbox(TODO, ACTIVE, None, None, True)
        assert not is_inbox(TODO, SOMEDAY, None, None, False)

    def test_someday(self):
        assert is_someday(TODO, SOMEDAY)
        assert not is_someday(DONE, SOMEDAY)
        assert not is_someday(TODO, ACTIVE)


class TestClassify:
    """Test view membership of whole tasks."""

    def test_unfiled_task_is_inbox(self):
        assert classify(Task(title="x"), TODAY) == [View.INBOX]

    def test_filed_task_is_anytime(self):
        assert classify(Task(title="x", area_id=1), TODAY) == [View.ANYTIME]

    def test_done_task_is_only_logbook(self):
        task = Task(title="x", status=TaskStatus.DONE, planned_date=TODAY)
        assert classify(task, TODAY) == [View.LOGBOOK]

    def test_someday_task(self):
        task = Task(title="x", state=TaskState.SOMEDAY, due_date=TOMORROW)
        assert classify(task, TODAY) == [View.SOMEDAY]

    def test_scheduled_today(self):
        assert in_view(Task(title="x", planned_date=TODAY), View.TODAY, TODAY)

    def test_filter_view(self):
        tasks = [
            Task(id=1, title="a", planned_date=TODAY),
            Task(id=2, title="b", planned_date=TOMORROW),
            Task(id=3, title="c"),
        ]
        assert [t.id for t in filter_view(tasks, View.UPCOMING, TODAY)] == [2]
        assert [t.id for t in filter_view(tasks, View.INBOX, TODAY)] == [3]


class TestSorting:
    """Test sort spec parsing and multi-key sorting."""

    def test_empty_spec_sorts_by_id(self):
        assert parse_sort(None) == [SortOption("id")]
        assert parse_sort("  ") == [SortOption("id")]

    def test_parse_directions(self):
        assert parse_sort("due:desc, title") == [SortOption("due", True), SortOption("title")]
        assert parse_sort("Planned:ASC") == [SortOption("planned")]

    def test_created_defaults_to_newest_first(self):
        assert parse_sort("created") == [SortOption("created", True)]
        assert parse_sort("created:asc") == [SortOption("created", False)]

    @pytest.mark.parametrize("spec", ["priority", "due:up", "title,"])
    def test_invalid_spec(self, spec):
        with pytest.raises(ParseError):
            parse_sort(spec)

    def test_missing_values_sort_last(self):
        tasks = [
            Task(id=1, title="a"),
            Task(id=2, title="b", due_date=date(2025, 3, 1)),
            Task(id=3, title="c", due_date=date(2025, 2, 1)),
        ]
        assert [t.id for t in sort_tasks(tasks, parse_sort("due"))] == [3, 2, 1]
        assert [t.id for t in sort_tasks(tasks, parse_sort("due:desc"))] == [2, 3, 1]

    def test_secondary_key_breaks_ties(self):
        tasks = [
            Task(id=1, title="Zebra", due_date=TODAY),
            Task(id=2, title="apple", due_date=TOMORROW),
            Task(id=3, title="Mango", due_date=TODAY),
        ]
        assert [t.id for t in sort_tasks(tasks, parse_sort("due,title"))] == [3, 1, 2]

    def test_sort_by_created(self):
        tasks = [
            Task(id=1, title="a", created_at=datetime(2025, 1, 1, tzinfo=timezone.utc)),
            Task(id=2, title="b", created_at=datetime(2025, 1, 3, tzinfo=timezone.utc)),
            Task(id=3, title="c", created_at=datetime(2025, 1, 2, tzinfo=timezone.utc)),
        ]
        assert [t.id for t in sort_tasks(tasks, parse_sort("created"))] == [2, 3, 1]
