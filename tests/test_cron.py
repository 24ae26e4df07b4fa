"""Tests for cron helpers."""

from datetime import UTC, datetime

import pytest

from artfeed.scheduling import (
    ScheduleValidationError,
    describe_cron,
    next_fire_time,
    resolve_frequency,
    validate_cron,
)


class TestResolveFrequency:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("hourly", "0 * * * *"),
            ("daily", "0 12 * * *"),
            ("weekly", "0 12 * * 1"),
            ("every hour", "0 * * * *"),
            ("Every  Day", "0 12 * * *"),
            ("every week", "0 12 * * 1"),
            ("every 15 minutes", "*/15 * * * *"),
            ("every 1 minute", "*/1 * * * *"),
            ("every 6 hours", "0 */6 * * *"),
        ],
    )
    def test_presets(self, text, expected):
        assert resolve_frequency(text) == expected

    def test_default_is_daily(self):
        assert resolve_frequency(None) == "0 12 * * *"
        assert resolve_frequency("  ") == "0 12 * * *"

    def test_raw_cron_passes_through(self):
        assert resolve_frequency(" 0 8 * * 1-5 ") == "0 8 * * 1-5"

    def test_out_of_range_interval_passes_through(self):
        assert resolve_frequency("every 90 minutes") == "every 90 minutes"
        assert resolve_frequency("every 24 hours") == "every 24 hours"


class TestValidateCron:
    def test_valid(self):
        assert validate_cron("0 12 * * *") == "0 12 * * *"
        assert validate_cron("  */5 * * * * ") == "*/5 * * * *"

    def test_wrong_field_count(self):
        with pytest.raises(ScheduleValidationError):
            validate_cron("0 12 * *")
        with pytest.raises(ScheduleValidationError):
            validate_cron("0 0 12 * * *")

    def test_invalid_values(self):
        with pytest.raises(ScheduleValidationError):
            validate_cron("61 * * * *")

    def test_nonsense(self):
        with pytest.raises(ScheduleValidationError):
            validate_cron("sometimes")

    def test_date_that_never_occurs(self):
        with pytest.raises(ScheduleValidationError, match="never fires"):
            validate_cron("0 0 30 2 *")

    def test_leap_day_is_accepted(self):
        assert validate_cron("0 0 29 2 *") == "0 0 29 2 *"

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            validate_cron("")


class TestDescribeCron:
    def test_known_expressions(self):
        assert describe_cron("0 * * * *") == "Every hour"
        assert describe_cron("0 */6 * * *") == "Every 6 hours"
        assert describe_cron("0 12 * * *") == "Daily at noon"
        assert describe_cron("0 12 * * 1") == "Weekly on Monday at noon"

    def test_custom_expression(self):
        assert describe_cron("*/15 * * * *") == "Custom schedule (*/15 * * * *)"


class TestNextFireTime:
    def test_next_hour(self):
        after = datetime(2024, 1, 1, 10, 30, tzinfo=UTC)
        assert next_fire_time("0 * * * *", after) == datetime(2024, 1, 1, 11, 0, tzinfo=UTC)

    def test_strictly_after(self):
        after = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        assert next_fire_time("0 12 * * *", after) == datetime(2024, 1, 2, 12, 0, tzinfo=UTC)

    def test_evaluated_in_timezone(self):
        after = datetime(2024, 1, 1, 0, 0, tzinfo=UTC)
        # Noon in Berlin is 11:00 UTC in winter
        result = next_fire_time("0 12 * * *", after, timezone="Europe/Berlin")
        assert result == datetime(2024, 1, 1, 11, 0, tzinfo=UTC)
        assert result.tzinfo == UTC

    def test_defaults_to_now(self):
        assert next_fire_time("* * * * *") > datetime.now(UTC)
