"""
Unit tests for the renderer module, drawn onto a headless Matplotlib Figure.
"""

from datetime import date
import sys
import os

from matplotlib.figure import Figure

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core_logic import build_hierarchy, flatten_visible, layout_rows
from renderer import draw_gantt_chart, row_label

VIEW = {
    "row_height": 40,
    "day_width": 32,
    "task_list_width": 400,
    "vertical_padding": 8,
    "view_start": date(2024, 1, 1),
    "view_end": date(2024, 2, 29),
}

# Outside the view window, so no today marker is drawn.
TODAY = date(2023, 6, 1)


def make_rows(progress_b=0, link=True):
    tasks = [
        {"id": "A", "name": "Site Work", "parent_id": None, "start_date": date(2024, 1, 1),
         "end_date": date(2024, 1, 3), "status": "in-progress", "progress": 0, "predecessors": []},
        {"id": "B", "name": "Footings", "parent_id": "A", "start_date": date(2024, 1, 4),
         "end_date": date(2024, 1, 4), "status": "delayed", "progress": progress_b,
         "predecessors": [{"predecessor_id": "A", "type": "FS", "lag": 0}] if link else []},
    ]
    return layout_rows(flatten_visible(build_hierarchy(tasks), {"A"}), VIEW)


def new_axes():
    figure = Figure(figsize=(8, 3))
    return figure.add_subplot(111)


class TestDrawGanttChart:
    """Tests for draw_gantt_chart."""

    def test_bars_follow_pixel_positions(self):
        """Each row becomes a bar at its computed position."""
        ax = new_axes()
        items = draw_gantt_chart(ax, make_rows(), VIEW, today=TODAY)

        assert [item["id"] for item in items] == ["A", "B"]
        patch = items[0]["patch"]
        assert patch.get_x() == 0
        assert patch.get_width() == 96
        assert patch.get_y() == 8
        assert patch.get_height() == 24

    def test_progress_overlay(self):
        """Partially complete tasks get an extra overlay bar."""
        ax = new_axes()
        draw_gantt_chart(ax, make_rows(progress_b=50), VIEW, show_dependencies=False, today=TODAY)

        assert len(ax.patches) == 3

    def test_dependency_connectors(self):
        """Predecessor links are drawn and attached to both bars."""
        ax = new_axes()
        items = draw_gantt_chart(ax, make_rows(), VIEW, today=TODAY)

        assert len(items[0]["connections"]) == 1
        assert len(items[1]["connections"]) == 1

    def test_dependencies_can_be_hidden(self):
        """No connectors are drawn when dependencies are switched off."""
        ax = new_axes()
        items = draw_gantt_chart(ax, make_rows(), VIEW, show_dependencies=False, today=TODAY)

        assert all(item["connections"] == [] for item in items)
        assert len(ax.lines) == 0

    def test_today_marker(self):
        """A marker line is drawn when today falls inside the window."""
        ax = new_axes()
        draw_gantt_chart(ax, make_rows(link=False), VIEW, today=date(2024, 1, 15))

        assert len(ax.lines) == 1

    def test_axes_span_view_window(self):
        """The x axis covers the whole day grid, rows run top to bottom."""
        ax = new_axes()
        draw_gantt_chart(ax, make_rows(), VIEW, title="Warehouse", today=TODAY)

        assert ax.get_xlim() == (0, 60 * 32)
        assert ax.get_ylim() == (80, 0)
        assert ax.get_title() == "Warehouse"
        assert [t.get_text() for t in ax.get_xticklabels()] == ["Jan 2024", "Feb 2024"]

    def test_empty_rows(self):
        """An empty chart shows a hint instead of bars."""
        ax = new_axes()
        items = draw_gantt_chart(ax, [], VIEW)

        assert items == []
        assert len(ax.patches) == 0
        assert "No tasks to display" in ax.texts[0].get_text()


class TestRowLabel:
    """Tests for row_label."""

    def test_parent_label(self):
        """Parents show their expand state and WBS code."""
        row = {"id": "A", "name": "Site Work", "level": 0, "has_children": True}

        assert row_label(row, {"A"}, {"A": "1.0"}) == "[-] 1.0 Site Work"
        assert row_label(row, set(), {"A": "1.0"}) == "[+] 1.0 Site Work"

    def test_child_label_indented(self):
        """Children are indented by level."""
        row = {"id": "B", "name": "Footings", "level": 1, "has_children": False}

        assert row_label(row, set()) == "        Footings"
