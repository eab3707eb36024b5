"""Tests for the clock abstraction and stored-timestamp normalization."""

from datetime import date, datetime, timedelta, timezone

from inventory_kernel.domain.clock import DeterministicClock, SystemClock, as_utc

MEXICO_CITY = "America/Mexico_City"


class TestDeterministicClock:
    def test_now_is_stable_until_advanced(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()
        before = clock.now()
        clock.advance(30)
        assert clock.now() - before == timedelta(seconds=30)

    def test_now_is_utc(self):
        clock = DeterministicClock(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))
        assert clock.now().tzinfo == timezone.utc

    def test_tick_returns_new_time(self):
        clock = DeterministicClock()
        start = clock.now()
        assert clock.tick() == start + timedelta(seconds=1)

    def test_set_time_resets_advance(self):
        clock = DeterministicClock()
        clock.advance_days(3)
        target = datetime(2025, 2, 1, 9, 0, tzinfo=timezone.utc)
        clock.set_time(target)
        assert clock.now() == target

    def test_today_in_uses_local_calendar_day(self):
        # 03:00 UTC on June 4 is still June 3 in Mexico City (UTC-6)
        clock = DeterministicClock(datetime(2024, 6, 4, 3, 0, tzinfo=timezone.utc))
        assert clock.today_in(MEXICO_CITY) == date(2024, 6, 3)
        assert clock.today_in("UTC") == date(2024, 6, 4)


class TestSystemClock:
    def test_returns_aware_utc(self):
        now = SystemClock().now()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)


class TestAsUtc:
    def test_naive_is_read_as_utc(self):
        naive = datetime(2024, 6, 3, 18, 0)
        assert as_utc(naive) == datetime(2024, 6, 3, 18, 0, tzinfo=timezone.utc)

    def test_aware_is_converted(self):
        plus_two = timezone(timedelta(hours=2))
        aware = datetime(2024, 6, 3, 20, 0, tzinfo=plus_two)
        assert as_utc(aware) == datetime(2024, 6, 3, 18, 0, tzinfo=timezone.utc)
        assert as_utc(aware).tzinfo == timezone.utc
