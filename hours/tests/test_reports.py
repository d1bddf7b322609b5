"""
Tests for report, log and stats rendering (hours.reports.renderers).
"""

import pytest

from conftest import at, render_to_string
from hours.core.time_tracker import TimeTracker
from hours.db.models import TaskStatus
from hours.reports.records import PAGER_HELP, RecordsApp, describe_range
from hours.reports.renderers import (
    SUMMARY_PALETTE,
    ReportStyle,
    render_log,
    render_report,
    render_stats,
    report_summary_budget,
)
from hours.utils.dates import DateRange, get_date_range_from_period


@pytest.fixture
def populated_tracker(tracker: TimeTracker) -> TimeTracker:
    """Two tasks with entries on the 6th, 7th and 8th of June."""
    report = tracker.create_task("Write report")
    review = tracker.create_task("Review PR")
    tracker.insert_manual_entry(report.id, at(6, 9), at(6, 11), "outline")
    tracker.insert_manual_entry(review.id, at(7, 23), at(8, 0, 30), "late review")
    tracker.insert_manual_entry(report.id, at(8, 9), at(8, 9, 45), "draft")
    tracker.insert_manual_entry(report.id, at(8, 10), at(8, 10, 15), None)
    tracker.set_task_active(review.id, False)
    return tracker


def three_days() -> DateRange:
    return get_date_range_from_period("3d", at(8, 14))


class TestReport:
    """Test cases for the per-day report grid."""

    def test_headers_and_totals(self, populated_tracker: TimeTracker) -> None:
        # Act
        output = render_to_string(render_report(populated_tracker, three_days()))

        # Assert
        assert "2024/06/06" in output
        assert "2024/06/07" in output
        assert "2024/06/08" in output
        assert "2h" in output
        assert "1h 30m" in output

    def test_entry_counts_on_the_day_it_ends(self, populated_tracker: TimeTracker) -> None:
        # Arrange
        only_7th = DateRange(start=at(7, 0), end=at(8, 0), num_days=1)

        # Act
        output = render_to_string(render_report(populated_tracker, only_7th))

        # Assert
        assert "Review PR" not in output

    def test_aggregated(self, populated_tracker: TimeTracker) -> None:
        # Act
        table = render_report(populated_tracker, three_days(), agg=True)

        # Assert
        assert table.row_count == 2
        output = render_to_string(table)
        assert "1h" in output

    def test_unaggregated_row_count(self, populated_tracker: TimeTracker) -> None:
        table = render_report(populated_tracker, three_days())

        assert table.row_count == 3
        assert len(table.columns) == 3

    def test_task_status_filter(self, populated_tracker: TimeTracker) -> None:
        output = render_to_string(
            render_report(populated_tracker, three_days(), TaskStatus.ACTIVE)
        )

        assert "Review PR" not in output
        assert "Write rep" in output

    def test_empty_range_has_one_row(self, tracker: TimeTracker) -> None:
        table = render_report(tracker, three_days())

        assert table.row_count == 1

    @pytest.mark.parametrize("num_days, budget", [(7, 8), (6, 10), (5, 14), (3, 16), (1, 16)])
    def test_summary_budget(self, num_days: int, budget: int) -> None:
        assert report_summary_budget(num_days) == budget

    def test_plain_output_is_ascii(self, populated_tracker: TimeTracker) -> None:
        output = render_to_string(render_report(populated_tracker, three_days()))

        assert all(ord(ch) < 128 for ch in output)
        assert "\x1b[" not in output


class TestLog:
    """Test cases for the task log table."""

    def test_columns_and_rows(self, populated_tracker: TimeTracker) -> None:
        # Arrange
        today = get_date_range_from_period("today", at(8, 14))

        # Act
        output = render_to_string(render_log(populated_tracker, today))

        # Assert
        for column in ("Task", "Comment", "Duration", "TimeSpent", "Total"):
            assert column in output
        assert "late review" in output
        assert "draft" in output
        assert "(no comment)" in output
        assert "2024/06/08 09:00 ... 2024/06/08 09:45" in output
        assert "1h 30m" in output

    def test_empty(self, tracker: TimeTracker) -> None:
        table = render_log(tracker, get_date_range_from_period("today", at(8, 14)))

        assert table.row_count == 1


class TestStats:
    """Test cases for the per-task statistics table."""

    def test_window(self, populated_tracker: TimeTracker) -> None:
        # Act
        output = render_to_string(render_stats(populated_tracker, three_days()))

        # Assert
        for column in ("Task", "#LogEntries", "TimeSpent", "Total"):
            assert column in output
        assert "3h" in output
        assert "4h 30m" in output

    def test_all_time(self, populated_tracker: TimeTracker) -> None:
        table = render_stats(populated_tracker, None)

        assert table.row_count == 2

    def test_inactive_only(self, populated_tracker: TimeTracker) -> None:
        output = render_to_string(render_stats(populated_tracker, None, TaskStatus.INACTIVE))

        assert "Review PR" in output
        assert "Write report" not in output


class TestReportStyle:
    """Test cases for report styles."""

    def test_summary_color_is_stable(self) -> None:
        style = ReportStyle()

        assert style.summary_style("Write report") == ReportStyle().summary_style("Write report")
        assert style.summary_style("Write report") in SUMMARY_PALETTE

    def test_plain_has_no_colors(self) -> None:
        assert ReportStyle(plain=True).summary_style("Write report") == ""

    def test_from_colors(self) -> None:
        style = ReportStyle.from_colors({"header": "bold magenta"})

        assert style.header == "bold magenta"
        assert style.footer == "bold"


class TestRecordsPager:
    """Test cases for the interactive records pager."""

    def test_describe_range(self) -> None:
        assert describe_range(three_days()).strip() == "range:             2024/06/06...2024/06/08"
        today = get_date_range_from_period("today", at(8, 14))
        assert describe_range(today).strip() == "date:              2024/06/08"

    def test_render_page(self, populated_tracker: TimeTracker) -> None:
        # Arrange
        date_range = three_days()
        app = RecordsApp(
            lambda dr: render_stats(populated_tracker, dr),
            date_range,
            "3d",
            populated_tracker.time_provider,
            plain=True,
        )

        # Act
        output = render_to_string(app.render_page(render_stats(populated_tracker, date_range)))

        # Assert
        assert "#LogEntries" in output
        assert "2024/06/06...2024/06/08" in output
        assert PAGER_HELP.strip().splitlines()[0].strip() in output

