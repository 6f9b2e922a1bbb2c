"""Unit tests for the bounded timestamped series."""

import random
import threading

import pytest

from phonestats.errors import OutOfOrderSample, SeriesError
from phonestats.models.series import BoundedTimestampedSeries, Sample


class TestAppend:
    """Test appending and eviction."""

    def test_append_and_latest(self):
        series = BoundedTimestampedSeries(100)
        assert series.latest() is None

        series.append(1, 'a')
        series.append(2, 'b')

        assert len(series) == 2
        assert series.latest() == Sample(2, 'b')
        assert series.earliest() == Sample(1, 'a')

    def test_evicts_samples_older_than_retention(self):
        series = BoundedTimestampedSeries(100)
        for t in range(0, 100, 10):
            series.append(t, None)

        evicted = series.append(150, None)

        # cutoff is 50: 0..40 go, 50 stays
        assert evicted == 5
        assert [s.timestamp for s in series.snapshot()] == [50, 60, 70, 80, 90, 150]

    def test_sample_exactly_at_cutoff_is_kept(self):
        series = BoundedTimestampedSeries(10)
        series.append(0, None)
        series.append(10, None)
        assert len(series) == 2

        series.append(11, None)
        assert [s.timestamp for s in series.snapshot()] == [10, 11]

    def test_large_gap_evicts_everything_but_newest(self):
        series = BoundedTimestampedSeries(5)
        for t in range(5):
            series.append(t, t)
        series.append(1000, 'new')

        assert series.snapshot() == [Sample(1000, 'new')]

    def test_out_of_order_is_rejected(self):
        series = BoundedTimestampedSeries(100)
        series.append(10, 'a')

        with pytest.raises(OutOfOrderSample) as exc_info:
            series.append(5, 'b')

        assert exc_info.value.timestamp == 5
        assert exc_info.value.latest == 10
        assert series.snapshot() == [Sample(10, 'a')]

    def test_equal_timestamps_are_allowed(self):
        series = BoundedTimestampedSeries(100)
        series.append(10, 'a')
        series.append(10, 'b')
        assert len(series) == 2

    def test_invalid_retention(self):
        with pytest.raises(SeriesError):
            BoundedTimestampedSeries(0)

    def test_non_finite_retention(self):
        with pytest.raises(SeriesError, match='finite'):
            BoundedTimestampedSeries(float('nan'))
        with pytest.raises(SeriesError, match='finite'):
            BoundedTimestampedSeries(float('inf'))

    def test_eviction_invariant_holds_for_random_sequences(self):
        rng = random.Random(1234)
        for _ in range(20):
            retention = rng.randint(1, 500)
            series = BoundedTimestampedSeries(retention)
            t = 0
            for _ in range(300):
                t += rng.choice([0, 1, 3, 10, 50, 200])
                series.append(t, None)
                snapshot = series.snapshot()
                latest = snapshot[-1].timestamp
                assert all(s.timestamp >= latest - retention for s in snapshot)
                assert [s.timestamp for s in snapshot] == sorted(s.timestamp for s in snapshot)


class TestReads:
    """Test snapshot and window reads."""

    def test_snapshot_is_a_copy(self):
        series = BoundedTimestampedSeries(100)
        series.append(1, None)

        snapshot = series.snapshot()
        snapshot.clear()

        assert len(series) == 1

    def test_window(self):
        series = BoundedTimestampedSeries(100)
        for t in (10, 20, 30, 40):
            series.append(t, t)

        assert [s.value for s in series.window(25)] == [30, 40]
        assert [s.value for s in series.window(40)] == [40]
        assert series.window(41) == []

    def test_clear(self):
        series = BoundedTimestampedSeries(100)
        series.append(1, None)
        series.clear()

        assert len(series) == 0
        assert series.latest() is None

        # Accepts any timestamp again after clear
        series.append(0, None)
        assert len(series) == 1


class TestConcurrency:
    """Test single-producer, multi-reader access."""

    def test_readers_never_see_torn_state(self):
        series = BoundedTimestampedSeries(1000)
        errors = []
        done = threading.Event()

        def producer():
            for t in range(20_000):
                series.append(t, t)
            done.set()

        def reader():
            while not done.is_set():
                snapshot = series.snapshot()
                if not snapshot:
                    continue
                timestamps = [s.timestamp for s in snapshot]
                if timestamps != sorted(timestamps):
                    errors.append('unsorted snapshot')
                if timestamps[-1] - timestamps[0] > 1000:
                    errors.append('retention exceeded')
                if any(s.value != s.timestamp for s in snapshot):
                    errors.append('mismatched sample')

        readers = [threading.Thread(target=reader) for _ in range(3)]
        for thread in readers:
            thread.start()
        producer()
        for thread in readers:
            thread.join(timeout=10)

        assert errors == []
        assert len(series) == 1001
