# tests/unit/contracts/test_enums.py
"""Tests for Level ordering/parsing and LevelFilter thresholds."""

import pytest

from discord_forwarder.contracts.enums import Level, LevelFilter


class TestLevel:
    def test_severity_ordering(self) -> None:
        ordered = [Level.TRACE, Level.DEBUG, Level.INFO, Level.WARN, Level.ERROR]
        assert [level.severity for level in ordered] == sorted(level.severity for level in ordered)
        assert len({level.severity for level in ordered}) == 5

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("warn", Level.WARN),
            ("WARN", Level.WARN),
            ("Warning", Level.WARN),
            (" info ", Level.INFO),
            ("critical", Level.ERROR),
            ("trace", Level.TRACE),
        ],
    )
    def test_parse(self, text: str, expected: Level) -> None:
        assert Level.parse(text) is expected

    def test_parse_rejects_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown level 'loud'"):
            Level.parse("loud")


class TestLevelFilter:
    def test_warn_threshold_passes_warn_and_error_only(self) -> None:
        threshold = LevelFilter.WARN
        assert threshold.allows(Level.ERROR)
        assert threshold.allows(Level.WARN)
        assert not threshold.allows(Level.INFO)
        assert not threshold.allows(Level.DEBUG)
        assert not threshold.allows(Level.TRACE)

    def test_trace_threshold_passes_everything(self) -> None:
        assert all(LevelFilter.TRACE.allows(level) for level in Level)

    def test_off_passes_nothing(self) -> None:
        assert not any(LevelFilter.OFF.allows(level) for level in Level)

    @pytest.mark.parametrize(
        ("text", "expected"),
        [("off", LevelFilter.OFF), ("OFF", LevelFilter.OFF), ("warning", LevelFilter.WARN), ("error", LevelFilter.ERROR)],
    )
    def test_parse(self, text: str, expected: LevelFilter) -> None:
        assert LevelFilter.parse(text) is expected

    def test_parse_rejects_unknown(self) -> None:
        with pytest.raises(ValueError):
            LevelFilter.parse("verbose")
