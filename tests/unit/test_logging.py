"""Unit tests for the structured logging helper."""

import logging

import pytest

from campus_planner.core.logging import log_with_context


@pytest.mark.unit
class TestLogWithContext:
    """Tests for log_with_context."""

    def test_context_becomes_record_fields(self, caplog):
        logger = logging.getLogger("campus_planner.tests")

        with caplog.at_level(logging.WARNING, logger="campus_planner.tests"):
            log_with_context(logger, "WARNING", "Primary store write failed", key="campusLifePlannerState")

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.getMessage() == "Primary store write failed"
        assert record.key == "campusLifePlannerState"

    def test_level_below_threshold_is_dropped(self, caplog):
        logger = logging.getLogger("campus_planner.tests")

        with caplog.at_level(logging.INFO, logger="campus_planner.tests"):
            log_with_context(logger, "debug", "Skipped", task_id="task_1_abc")

        assert caplog.records == []
