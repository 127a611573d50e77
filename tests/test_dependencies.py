"""
Unit tests for the dependencies module.

Tests cover:
- Predecessor constraint dates and schedule validation
- auto_schedule_task and validate_dependencies
- Connector geometry between visible rows
- Critical path and project statistics
"""

from datetime import date
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core_logic import build_hierarchy, flatten_visible
from dependencies import (
    dependency_date, earliest_start_date, validate_task_schedule, auto_schedule_task,
    validate_dependencies, dependency_lines, find_critical_path, project_stats,
)


def make_task(task_id, start, end, predecessors=(), parent_id=None, status="not-started", progress=0):
    return {
        "id": task_id,
        "name": task_id,
        "parent_id": parent_id,
        "start_date": start,
        "end_date": end,
        "status": status,
        "progress": progress,
        "predecessors": [
            {"predecessor_id": p[0], "type": p[1], "lag": p[2]} for p in predecessors
        ],
        "level": 0,
    }


VIEW = {
    "row_height": 40,
    "day_width": 32,
    "task_list_width": 400,
    "vertical_padding": 8,
    "view_start": date(2024, 1, 1),
    "view_end": date(2024, 1, 31),
}

# Mon 1 Jan 2024 - Fri 5 Jan 2024
TASK_A = make_task("A", date(2024, 1, 1), date(2024, 1, 5))


class TestDependencyDates:
    """Tests for dependency_date and earliest_start_date."""

    def test_finish_to_start(self):
        """FS hangs off the predecessor's finish."""
        assert dependency_date(TASK_A, "FS") == date(2024, 1, 5)

    def test_start_to_start_with_lag(self):
        """SS hangs off the predecessor's start, shifted by the lag."""
        assert dependency_date(TASK_A, "SS", 2) == date(2024, 1, 3)

    def test_negative_lag(self):
        """Leads move the constraint earlier."""
        assert dependency_date(TASK_A, "FF", -1) == date(2024, 1, 4)

    def test_earliest_start_takes_latest_constraint(self):
        """With several predecessors the latest constraint wins."""
        other = make_task("O", date(2024, 1, 2), date(2024, 1, 9))
        task = make_task("T", date(2024, 1, 1), date(2024, 1, 1), [("A", "FS", 0), ("O", "FS", 0)])

        assert earliest_start_date(task, {"A": TASK_A, "O": other}) == date(2024, 1, 9)

    def test_no_predecessors(self):
        """Unconstrained tasks have no earliest start."""
        task = make_task("T", date(2024, 1, 1), date(2024, 1, 1))

        assert earliest_start_date(task, {"A": TASK_A}) is None


class TestScheduleValidation:
    """Tests for validate_task_schedule and auto_schedule_task."""

    def test_start_before_predecessor_finishes(self):
        """An FS successor starting too early is reported."""
        task = make_task("B", date(2024, 1, 3), date(2024, 1, 4), [("A", "FS", 0)])
        is_valid, violations = validate_task_schedule(task, {"A": TASK_A})

        assert not is_valid
        assert violations == ["Task cannot start before A finishes"]

    def test_finish_to_finish_violation(self):
        """An FF successor finishing too early is reported."""
        task = make_task("B", date(2024, 1, 3), date(2024, 1, 4), [("A", "FF", 0)])
        is_valid, violations = validate_task_schedule(task, {"A": TASK_A})

        assert not is_valid
        assert violations == ["Task cannot finish before A finishes"]

    def test_valid_schedule(self):
        """A successor starting after its predecessor is fine."""
        task = make_task("B", date(2024, 1, 8), date(2024, 1, 9), [("A", "FS", 0)])

        assert validate_task_schedule(task, {"A": TASK_A}) == (True, [])

    def test_missing_predecessor_ignored(self):
        """Links to unknown tasks do not constrain anything."""
        task = make_task("B", date(2024, 1, 3), date(2024, 1, 4), [("Z", "FS", 0)])

        assert validate_task_schedule(task, {"A": TASK_A}) == (True, [])
        assert auto_schedule_task(task, {"A": TASK_A}) == {}

    def test_auto_schedule_keeps_span(self):
        """Rescheduling moves the task while preserving its length."""
        task = make_task("B", date(2024, 1, 3), date(2024, 1, 4), [("A", "FS", 0)])

        assert auto_schedule_task(task, {"A": TASK_A}) == {
            "start_date": date(2024, 1, 5),
            "end_date": date(2024, 1, 6),
        }


class TestValidateDependencies:
    """Tests for validate_dependencies."""

    def test_circular_dependency(self):
        """Proposing a link that closes a loop is rejected."""
        tasks = [
            make_task("A", date(2024, 1, 1), date(2024, 1, 2), [("B", "FS", 0)]),
            make_task("B", date(2024, 1, 1), date(2024, 1, 2)),
        ]
        is_valid, conflicts = validate_dependencies(tasks, "B", ["A"])

        assert not is_valid
        assert conflicts == ["Circular dependency detected: B -> A -> B"]

    def test_missing_task(self):
        """Unknown predecessor ids are reported."""
        is_valid, conflicts = validate_dependencies([TASK_A], "A", ["Z"])

        assert not is_valid
        assert conflicts == ['Dependency task "Z" not found']

    def test_valid_chain(self):
        """A plain chain passes."""
        tasks = [TASK_A, make_task("B", date(2024, 1, 8), date(2024, 1, 9), [("A", "FS", 0)]),
                 make_task("C", date(2024, 1, 10), date(2024, 1, 11))]

        assert validate_dependencies(tasks, "C", ["B"]) == (True, [])


class TestDependencyLines:
    """Tests for dependency_lines."""

    def test_finish_to_start_geometry(self):
        """FS connectors run from the predecessor's end to the successor's start."""
        rows = [TASK_A, make_task("B", date(2024, 1, 3), date(2024, 1, 4), [("A", "FS", 0)])]
        lines = dependency_lines(rows, VIEW)

        assert len(lines) == 1
        line = lines[0]
        assert line["id"] == "A-B-FS"
        assert line["points"] == [(156, 20.0), (156, 60.0), (68, 60.0)]
        assert line["path"].startswith("M 156 20.0")

    def test_start_to_start_geometry(self):
        """SS connectors start at the predecessor's start."""
        rows = [TASK_A, make_task("B", date(2024, 1, 3), date(2024, 1, 4), [("A", "SS", 0)])]
        line = dependency_lines(rows, VIEW)[0]

        assert line["points"][0] == (4, 20.0)
        assert line["type"] == "SS"

    def test_hidden_predecessor_skipped(self):
        """No connector is drawn to a collapsed-away predecessor."""
        tasks = [
            make_task("P", date(2024, 1, 1), date(2024, 1, 10)),
            make_task("A", date(2024, 1, 1), date(2024, 1, 5), parent_id="P"),
            make_task("B", date(2024, 1, 8), date(2024, 1, 9), [("A", "FS", 0)]),
        ]
        rows = flatten_visible(build_hierarchy(tasks), set())

        assert [r["id"] for r in rows] == ["P", "B"]
        assert dependency_lines(rows, VIEW) == []


class TestProjectStats:
    """Tests for find_critical_path and project_stats."""

    def test_critical_path_follows_longest_chain(self):
        """The longest work-day chain is traced from its first task."""
        tasks = [
            TASK_A,
            make_task("B", date(2024, 1, 8), date(2024, 1, 9), [("A", "FS", 0)]),
            make_task("C", date(2024, 1, 1), date(2024, 1, 3)),
        ]

        assert find_critical_path(tasks) == ["A", "B"]

    def test_critical_path_survives_cycles(self):
        """Cyclic predecessor links do not hang the search."""
        tasks = [
            make_task("X", date(2024, 1, 1), date(2024, 1, 2), [("Y", "FS", 0)]),
            make_task("Y", date(2024, 1, 3), date(2024, 1, 4), [("X", "FS", 0)]),
        ]

        assert sorted(find_critical_path(tasks)) == ["X", "Y"]

    def test_empty_project(self):
        """No tasks means empty stats."""
        stats = project_stats([])

        assert stats["total_tasks"] == 0
        assert stats["average_progress"] == 0
        assert stats["critical_path"] == []

    def test_counts(self):
        """Totals, completion and average progress."""
        tasks = [
            make_task("A", date(2024, 1, 1), date(2024, 1, 2), status="completed", progress=100),
            make_task("B", date(2024, 1, 3), date(2024, 1, 4), status="in-progress", progress=50),
            make_task("C", date(2024, 1, 5), date(2024, 1, 5), status="delayed", progress=0),
        ]
        stats = project_stats(tasks)

        assert stats["total_tasks"] == 3
        assert stats["completed_tasks"] == 1
        assert stats["remaining_tasks"] == 2
        assert stats["average_progress"] == 50
        assert stats["by_status"] == {"completed": 1, "in-progress": 1, "delayed": 1, "not-started": 0}
