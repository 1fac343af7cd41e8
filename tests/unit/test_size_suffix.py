"""
Unit test file.
"""

import unittest

from s3_resume_upload import SizeSuffix
from s3_resume_upload.util import format_time, normalize_bucket_name


class SizeSuffixTester(unittest.TestCase):
    """Test size parsing and formatting helpers."""

    def test_simple_suffix(self) -> None:
        size_suffix = SizeSuffix("100MB")
        self.assertEqual(size_suffix.as_int(), 100 * 1024 * 1024)
        self.assertEqual(SizeSuffix("4096").as_int(), 4096)

    def test_float_suffix(self) -> None:
        size_suffix = SizeSuffix("16.5M")
        self.assertEqual(size_suffix.as_int(), int(16.5 * 1024 * 1024))
        self.assertEqual(str(size_suffix), "16.5M")

    def test_invalid_suffix(self) -> None:
        with self.assertRaises(ValueError):
            SizeSuffix("lots")

    def test_format_time(self) -> None:
        self.assertEqual(format_time(42.4), "42s")
        self.assertEqual(format_time(187), "3m07s")
        self.assertEqual(format_time(3900), "1h05m")

    def test_normalize_bucket_name(self) -> None:
        self.assertEqual(normalize_bucket_name(" my bucket "), "mybucket")
        self.assertEqual(normalize_bucket_name("bucket"), "bucket")


if __name__ == "__main__":
    unittest.main()
