"""
Unit tests for splitting a file into parts.
"""

import unittest

from s3_resume_upload import InvalidConfiguration, plan_parts
from s3_resume_upload.s3.multipart.part_planner import confirmed_bytes, count_parts

_MB = 1024 * 1024


class PartPlannerTester(unittest.TestCase):
    """Test part planning."""

    def test_ranges_cover_file(self) -> None:
        for file_size, part_size in [(1, 1), (10, 3), (99, 100), (100, 100), (101, 100), (1000, 7)]:
            parts = plan_parts(file_size, part_size)
            self.assertEqual(len(parts), -(-file_size // part_size))
            self.assertEqual(parts[0].range.start, 0)
            self.assertEqual(parts[-1].range.end, file_size)
            for prev, curr in zip(parts, parts[1:]):
                self.assertEqual(prev.range.end, curr.range.start)
                self.assertEqual(curr.part_number, prev.part_number + 1)
            self.assertEqual(sum(p.size for p in parts), file_size)
            self.assertTrue(all(p.size > 0 for p in parts))

    def test_250mb_in_100mb_parts(self) -> None:
        parts = plan_parts(250 * _MB, 100 * _MB)
        self.assertEqual([p.size for p in parts], [100 * _MB, 100 * _MB, 50 * _MB])
        self.assertEqual([p.part_number for p in parts], [1, 2, 3])

    def test_deterministic(self) -> None:
        self.assertEqual(plan_parts(12345, 1000), plan_parts(12345, 1000))

    def test_invalid_inputs(self) -> None:
        with self.assertRaises(InvalidConfiguration):
            plan_parts(100, 0)
        with self.assertRaises(InvalidConfiguration):
            plan_parts(100, -5)
        with self.assertRaises(InvalidConfiguration):
            plan_parts(-1, 10)

    def test_empty_file_has_no_parts(self) -> None:
        self.assertEqual(plan_parts(0, 10), [])

    def test_confirmed_bytes(self) -> None:
        self.assertEqual(count_parts(250, 100), 3)
        self.assertEqual(confirmed_bytes([1, 3], 250, 100), 150)
        # duplicates never count twice
        self.assertEqual(confirmed_bytes([2, 2], 250, 100), 100)


if __name__ == "__main__":
    unittest.main()
