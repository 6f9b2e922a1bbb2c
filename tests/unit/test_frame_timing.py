"""Unit tests for frame timing analysis."""

import math
import random

import numpy as np
import pytest

from phonestats.analytics.frame_timing import (
    FrameTimingAnalyzer,
    WindowStats,
    compute_window_stats,
)

NS = 1_000_000_000
FRAME_30FPS_NS = 33_333_333


def record_all(analyzer, timestamps):
    for t in timestamps:
        assert analyzer.record(t)


class TestComputeWindowStats:
    """Test the per-window reduction."""

    def test_fewer_than_two_timestamps(self):
        assert compute_window_stats(np.array([], dtype=np.int64)) is None
        assert compute_window_stats(np.array([NS], dtype=np.int64)) is None

    def test_zero_deltas_are_excluded(self):
        timestamps = np.array([NS, NS, NS + 100_000_000], dtype=np.int64)
        stats = compute_window_stats(timestamps)

        assert stats.sample_count == 1
        assert stats.min_fps == pytest.approx(10.0)

    def test_all_duplicates_give_no_stats(self):
        assert compute_window_stats(np.array([NS, NS, NS], dtype=np.int64)) is None

    def test_min_max_mean(self):
        # Intervals of 100ms, 50ms and 25ms -> 10, 20, 40 fps
        timestamps = np.array(
            [NS, NS + 100_000_000, NS + 150_000_000, NS + 175_000_000],
            dtype=np.int64,
        )
        stats = compute_window_stats(timestamps)

        assert stats.min_fps == pytest.approx(10.0)
        assert stats.max_fps == pytest.approx(40.0)
        assert stats.mean_fps == pytest.approx(70.0 / 3)
        assert stats.sample_count == 3


class TestWindowStats:
    """Test derived interval helpers."""

    def test_interval_helpers(self):
        stats = WindowStats(min_fps=10.0, max_fps=40.0, mean_fps=20.0, sample_count=3)

        assert stats.min_interval_ns == pytest.approx(25_000_000)
        assert stats.mean_interval_ns == pytest.approx(50_000_000)
        assert stats.max_interval_ns == pytest.approx(100_000_000)

    def test_to_dict(self):
        stats = WindowStats(min_fps=10.0, max_fps=40.0, mean_fps=20.0, sample_count=3)
        data = stats.to_dict()

        assert data['min_fps'] == 10.0
        assert data['sample_count'] == 3
        assert set(data['interval_ns']) == {'min', 'mean', 'max'}


class TestRecord:
    """Test frame ingestion."""

    def test_frame_count_matches_valid_records(self, frame_analyzer):
        record_all(frame_analyzer, [NS + i * FRAME_30FPS_NS for i in range(50)])
        assert frame_analyzer.frame_count == 50

    def test_not_running_drops_frames(self):
        analyzer = FrameTimingAnalyzer()
        assert analyzer.record(NS) is False
        assert analyzer.frame_count == 0
        assert analyzer.sample_count == 0

    def test_zero_or_missing_timestamp_is_dropped(self, frame_analyzer):
        assert frame_analyzer.record(0) is False
        assert frame_analyzer.record(None) is False
        assert frame_analyzer.frame_count == 0
        assert frame_analyzer.sample_count == 0

    def test_out_of_order_frame_is_rejected(self, frame_analyzer):
        record_all(frame_analyzer, [2 * NS, 3 * NS])

        assert frame_analyzer.record(int(2.5 * NS)) is False
        assert frame_analyzer.frame_count == 2
        assert frame_analyzer.rejected_count == 1
        assert frame_analyzer.sample_count == 2

    def test_retention_evicts_earliest_frame(self, frame_analyzer):
        # 1300 seconds of frames, one every 100s, against 1200s retention
        record_all(frame_analyzer, [NS + i * 100 * NS for i in range(13)])
        assert frame_analyzer.sample_count == 13

        frame_analyzer.record(NS + 1300 * NS)

        # Span is now 1300s: the frame at t=0 is gone, t=100 is at the cutoff
        assert frame_analyzer.sample_count == 13
        assert frame_analyzer.frame_count == 14


class TestStats:
    """Test rolling statistics."""

    def test_single_frame_gives_no_stats(self, frame_analyzer):
        frame_analyzer.record(NS)
        assert frame_analyzer.stats() is None

    def test_no_frames_gives_no_stats(self, frame_analyzer):
        assert frame_analyzer.stats() is None

    def test_steady_30fps_reports_30_in_every_window(self, frame_analyzer):
        record_all(frame_analyzer, [NS + i * FRAME_30FPS_NS for i in range(5)])

        stats = frame_analyzer.stats()

        assert stats.frame_count == 5
        for window in (stats.ten_sec, stats.one_min, stats.five_min, stats.twenty_min):
            assert window is not None
            assert window.min_fps == pytest.approx(30.0, abs=1e-6)
            assert window.max_fps == pytest.approx(30.0, abs=1e-6)
            assert window.mean_fps == pytest.approx(30.0, abs=1e-6)
            assert window.sample_count == 4

    def test_duplicate_timestamps_give_empty_windows(self, frame_analyzer):
        record_all(frame_analyzer, [NS, NS])

        stats = frame_analyzer.stats()

        assert stats is not None
        assert stats.frame_count == 2
        assert stats.ten_sec is None
        assert stats.twenty_min is None

    def test_short_window_sees_only_recent_frames(self, frame_analyzer):
        # 1 fps for 100 seconds, then 10 fps for 2 seconds
        slow = [NS + i * NS for i in range(101)]
        fast = [slow[-1] + i * 100_000_000 for i in range(1, 21)]
        record_all(frame_analyzer, slow + fast)

        stats = frame_analyzer.stats()

        assert stats.ten_sec.min_fps == pytest.approx(1.0)
        assert stats.ten_sec.max_fps == pytest.approx(10.0)
        assert stats.ten_sec.sample_count < stats.one_min.sample_count
        assert stats.one_min.sample_count < stats.five_min.sample_count
        # Every frame fits in both 5 and 20 minute windows
        assert stats.five_min.sample_count == stats.twenty_min.sample_count == 120

    def test_window_with_single_frame_is_absent(self, frame_analyzer):
        # Last two frames 30s apart: the 10s window holds one frame only
        record_all(frame_analyzer, [NS, 31 * NS])

        stats = frame_analyzer.stats()

        assert stats.ten_sec is None
        assert stats.one_min.mean_fps == pytest.approx(1 / 30)

    def test_window_counts_are_nested(self, frame_analyzer):
        rng = random.Random(42)
        t = NS
        for _ in range(2000):
            t += rng.choice([0, 1_000_000, 33_000_000, 500_000_000, 5 * NS, 60 * NS])
            frame_analyzer.record(t)

        stats = frame_analyzer.stats()
        windows = [stats.ten_sec, stats.one_min, stats.five_min, stats.twenty_min]
        counts = [w.sample_count if w else 0 for w in windows]

        assert counts == sorted(counts)

    def test_window_stats_arbitrary_window(self, frame_analyzer):
        record_all(frame_analyzer, [NS + i * FRAME_30FPS_NS for i in range(10)])

        stats = frame_analyzer.window_stats(0.1)

        # 0.1s back from the last frame covers 4 frames -> 3 intervals
        assert stats.sample_count == 3
        assert stats.mean_fps == pytest.approx(30.0, abs=1e-6)

    def test_window_past_retention_covers_every_frame(self, frame_analyzer):
        record_all(frame_analyzer, [NS + i * FRAME_30FPS_NS for i in range(10)])

        assert frame_analyzer.window_stats(math.inf).sample_count == 9
        assert frame_analyzer.window_stats(1e12).sample_count == 9

    def test_nan_or_negative_window_gives_no_stats(self, frame_analyzer):
        record_all(frame_analyzer, [NS + i * FRAME_30FPS_NS for i in range(10)])

        assert frame_analyzer.window_stats(math.nan) is None
        assert frame_analyzer.window_stats(-1e12) is None

    def test_stats_to_dict(self, frame_analyzer):
        record_all(frame_analyzer, [NS, 2 * NS])
        data = frame_analyzer.stats().to_dict()

        assert data['frame_count'] == 2
        assert set(data['windows']) == {'10s', '1m', '5m', '20m'}
        assert data['windows']['10s']['mean_fps'] == pytest.approx(1.0)

    def test_fewer_windows_leave_the_rest_empty(self):
        analyzer = FrameTimingAnalyzer(windows_seconds=(10.0, 60.0))
        analyzer.start()
        record_all(analyzer, [NS, 2 * NS])

        stats = analyzer.stats()

        assert stats.one_min.mean_fps == pytest.approx(1.0)
        assert stats.five_min is None
        assert stats.twenty_min is None

    def test_more_windows_than_reported_is_an_error(self):
        with pytest.raises(ValueError, match='At most 4'):
            FrameTimingAnalyzer(windows_seconds=(1.0, 10.0, 60.0, 300.0, 1200.0))


class TestLifecycle:
    """Test start/stop/release."""

    def test_start_is_idempotent(self):
        analyzer = FrameTimingAnalyzer()
        analyzer.start()
        analyzer.start()
        assert analyzer.is_running is True

    def test_stop_keeps_data(self, frame_analyzer):
        record_all(frame_analyzer, [NS, 2 * NS])
        frame_analyzer.stop()
        frame_analyzer.stop()

        assert frame_analyzer.is_running is False
        assert frame_analyzer.record(3 * NS) is False
        assert frame_analyzer.frame_count == 2
        assert frame_analyzer.stats() is not None

    def test_restart_continues_counting(self, frame_analyzer):
        record_all(frame_analyzer, [NS, 2 * NS])
        frame_analyzer.stop()
        frame_analyzer.start()
        frame_analyzer.record(3 * NS)

        assert frame_analyzer.frame_count == 3

    def test_release_clears_everything(self, frame_analyzer):
        record_all(frame_analyzer, [NS, 2 * NS, 3 * NS])
        frame_analyzer.release()

        assert frame_analyzer.is_running is False
        assert frame_analyzer.frame_count == 0
        assert frame_analyzer.sample_count == 0
        assert frame_analyzer.stats() is None
