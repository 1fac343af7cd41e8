"""
Unit tests for the command line front end.
"""

import os
import unittest
from pathlib import Path
from unittest import mock

from s3_resume_upload import S3Provider
from s3_resume_upload.cmd.upload_s3 import _confirm, _credentials, _parse_args


class UploadCommandTester(unittest.TestCase):
    """Test argument parsing and credential lookup."""

    def test_parse_args(self) -> None:
        args = _parse_args(
            ["big.tar", "my-bucket", "--part-size", "64MB", "--concurrency", "3", "--provider", "b2"]
        )
        self.assertEqual(args.src, Path("big.tar"))
        self.assertEqual(args.bucket, "my-bucket")
        self.assertIsNone(args.key)
        self.assertEqual(args.part_size.as_int(), 64 * 1024 * 1024)
        self.assertEqual(args.concurrency, 3)
        self.assertEqual(args.provider, S3Provider.BACKBLAZE)
        self.assertFalse(args.keep_on_failure)

    def test_credentials_from_env(self) -> None:
        args = _parse_args(["big.tar", "bucket"])
        env = {"S3_ACCESS_KEY_ID": "AKIATEST", "S3_SECRET_ACCESS_KEY": "secret"}
        with mock.patch.dict(os.environ, env, clear=True):
            creds = _credentials(args)
        self.assertEqual(creds.access_key_id, "AKIATEST")
        self.assertEqual(creds.secret_access_key, "secret")
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ValueError):
                _credentials(args)

    def test_confirm(self) -> None:
        self.assertTrue(_confirm("Overwrite?", assume_yes=True))
        with mock.patch("builtins.input", return_value="y"):
            self.assertTrue(_confirm("Overwrite?", assume_yes=False))
        with mock.patch("builtins.input", return_value=""):
            self.assertFalse(_confirm("Overwrite?", assume_yes=False))


if __name__ == "__main__":
    unittest.main()
