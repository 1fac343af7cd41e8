"""
Unit tests for progress accounting and throttling.
"""

import unittest

from s3_resume_upload import ProgressEvent, ProgressTracker

_MB = 1024 * 1024


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class ProgressTrackerTester(unittest.TestCase):
    """Test ProgressTracker."""

    def setUp(self) -> None:
        self.clock = FakeClock()
        self.events: list[ProgressEvent] = []
        self.tracker = ProgressTracker(
            10 * _MB, emit=self.events.append, clock=self.clock
        )
        self.tracker.start()

    def test_interim_updates_are_throttled(self) -> None:
        self.tracker.record_part_progress(1, 100)
        self.clock.now += 0.05
        self.tracker.record_part_progress(1, 200)
        self.assertEqual(len(self.events), 1)
        self.clock.now += 0.07
        self.tracker.record_part_progress(1, 300)
        self.assertEqual(len(self.events), 2)

    def test_confirmed_parts_are_never_throttled(self) -> None:
        self.tracker.record_part_progress(1, 100)
        self.tracker.record_part_complete(1, _MB)
        self.tracker.record_part_complete(2, _MB)
        self.assertEqual(len(self.events), 3)
        self.assertAlmostEqual(self.events[-1].percent, 20.0)

    def test_interim_percent_includes_in_flight_bytes(self) -> None:
        self.tracker.record_part_complete(1, _MB)
        self.clock.now += 1
        self.tracker.record_part_progress(2, _MB)
        self.assertAlmostEqual(self.events[-1].percent, 20.0)
        self.assertEqual(self.tracker.bytes_confirmed, _MB)

    def test_throughput_and_eta(self) -> None:
        self.assertEqual(self.tracker.throughput(), 0.0)
        self.assertIsNone(self.tracker.eta_seconds())
        self.clock.now += 2
        self.tracker.record_part_complete(1, 2 * _MB)
        event = self.events[-1]
        self.assertAlmostEqual(event.throughput_mbs, 1.0)
        self.assertAlmostEqual(event.eta_seconds, 8.0)
        self.assertEqual(event.eta_str, "8s")

    def test_eta_unknown_before_any_bytes(self) -> None:
        self.clock.now += 5
        self.tracker.status("Starting multipart upload...")
        self.assertIsNone(self.events[-1].eta_seconds)
        self.assertEqual(self.events[-1].eta_str, "unknown")
        self.assertEqual(self.events[-1].status_message, "Starting multipart upload...")

    def test_resumed_bytes_do_not_count_as_throughput(self) -> None:
        self.tracker.start(bytes_already_confirmed=5 * _MB)
        self.assertAlmostEqual(self.tracker.percent(), 50.0)
        self.clock.now += 1
        self.tracker.record_part_complete(6, _MB)
        self.assertAlmostEqual(self.events[-1].throughput_mbs, 1.0)
        self.assertAlmostEqual(self.events[-1].percent, 60.0)

    def test_percent_is_clamped(self) -> None:
        self.tracker.record_part_complete(1, 20 * _MB)
        self.assertEqual(self.events[-1].percent, 100.0)


if __name__ == "__main__":
    unittest.main()
