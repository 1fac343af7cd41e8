import argparse
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from s3_resume_upload import (
    JsonFileResumeStore,
    MultiUploadResult,
    ProgressEvent,
    ResumeOffer,
    S3Credentials,
    S3Provider,
    SizeSuffix,
    UploadConfig,
    UploadError,
    UploadFailed,
    UploadListener,
    UploadSession,
    UploadSucceeded,
)
from s3_resume_upload.log import configure_logging, level_from_env
from s3_resume_upload.util import format_time, locked_print


@dataclass
class Args:
    src: Path
    bucket: str
    key: str | None
    part_size: SizeSuffix
    concurrency: int
    resume_json: Path | None
    region: str | None
    endpoint_url: str | None
    provider: S3Provider
    yes: bool
    keep_on_failure: bool
    persist_credentials: bool
    verbose: bool


class ConsoleListener(UploadListener):
    def on_progress(self, event: ProgressEvent) -> None:
        locked_print(
            f"{event.percent:5.1f}% {event.status_message}"
            f" | {event.throughput_mbs:.1f} MB/s | ETA: {event.eta_str}"
        )

    def on_overwrite_prompt(self, message: str) -> None:
        locked_print(message)

    def on_resume_offer(self, offer: ResumeOffer) -> None:
        locked_print(
            f"Found an interrupted upload of {offer.file_name}"
            f" ({SizeSuffix(offer.file_size)}) to {offer.destination},"
            f" {offer.percent_already_done:.1f}% done"
        )

    def on_success(self, event: UploadSucceeded) -> None:
        locked_print(
            f"Upload completed: {event.destination}"
            f" in {format_time(event.elapsed_seconds)},"
            f" average {event.avg_throughput_mbs:.1f} MB/s"
        )

    def on_failure(self, event: UploadFailed) -> None:
        locked_print(f"Error: {event.reason}")


def _parse_args(argv: list[str] | None = None) -> Args:
    parser = argparse.ArgumentParser(
        description="Resumable multipart upload of a large file to an S3 bucket."
    )
    parser.add_argument("src", help="File to upload", type=Path)
    parser.add_argument("bucket", help="Destination bucket")
    parser.add_argument(
        "--key", help="Destination object key, defaults to the file name", default=None
    )
    parser.add_argument(
        "--part-size",
        help="Size of each uploaded part in SizeSuffix form",
        type=str,
        default="100MB",
    )
    parser.add_argument(
        "--concurrency",
        help="Number of parts uploaded in parallel",
        type=int,
        default=1,
    )
    parser.add_argument(
        "--resume-json",
        help="Path to the resume state JSON file (defaults to the user cache dir)",
        type=Path,
        default=None,
    )
    parser.add_argument(
        "--region", help="Bucket region", default=os.getenv("S3_REGION")
    )
    parser.add_argument(
        "--endpoint-url",
        help="S3 endpoint for non AWS providers",
        default=os.getenv("S3_ENDPOINT_URL"),
    )
    parser.add_argument(
        "--provider",
        help="S3 provider: s3, b2 or DigitalOcean",
        default=os.getenv("S3_PROVIDER", "s3"),
    )
    parser.add_argument(
        "-y", "--yes", help="Answer yes to every prompt", action="store_true"
    )
    parser.add_argument(
        "--keep-on-failure",
        help="Do not abort the server side upload on failure, so it can be resumed",
        action="store_true",
    )
    parser.add_argument(
        "--persist-credentials",
        help="Store the secret key in the resume state file (plain text)",
        action="store_true",
    )
    parser.add_argument("-v", "--verbose", help="Verbose output", action="store_true")
    args = parser.parse_args(argv)
    return Args(
        src=args.src,
        bucket=args.bucket,
        key=args.key,
        part_size=SizeSuffix(args.part_size),
        concurrency=args.concurrency,
        resume_json=args.resume_json,
        region=args.region,
        endpoint_url=args.endpoint_url,
        provider=S3Provider.from_str(args.provider),
        yes=args.yes,
        keep_on_failure=args.keep_on_failure,
        persist_credentials=args.persist_credentials,
        verbose=args.verbose,
    )


def _credentials(args: Args) -> S3Credentials:
    access_key_id = os.getenv("S3_ACCESS_KEY_ID")
    secret_access_key = os.getenv("S3_SECRET_ACCESS_KEY")
    if not access_key_id or not secret_access_key:
        raise ValueError(
            "S3_ACCESS_KEY_ID and S3_SECRET_ACCESS_KEY must be set (environment or .env)"
        )
    return S3Credentials(
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        session_token=os.getenv("S3_SESSION_TOKEN"),
        provider=args.provider,
        endpoint_url=args.endpoint_url,
    )


def _confirm(question: str, assume_yes: bool) -> bool:
    if assume_yes:
        return True
    answer = input(f"{question} [y/N] ")
    return answer.strip().lower() in ("y", "yes")


def run(args: Args) -> int:
    credentials = _credentials(args)
    session = UploadSession(
        resume_store=JsonFileResumeStore(args.resume_json),
        listener=ConsoleListener(),
        part_size=args.part_size.as_int(),
        concurrency=args.concurrency,
        abort_on_failure=not args.keep_on_failure,
        persist_credentials=args.persist_credentials,
    )
    config = UploadConfig(
        credentials=credentials,
        region=args.region,
        bucket_name=args.bucket,
        object_name=args.key,
    )
    try:
        offer = session.check_for_resume()
        if offer is not None:
            src_size = args.src.stat().st_size if args.src.is_file() else -1
            same_file = offer.file_name == args.src.name and offer.file_size == src_size
            if same_file and _confirm("Resume it?", args.yes):
                session.accept_resume(args.src, credentials=credentials)
                return 0
            if same_file or _confirm("Discard it and start a new upload?", args.yes):
                session.decline_resume()
        result = session.start(config, args.src)
        if result == MultiUploadResult.AWAITING_OVERWRITE:
            if not _confirm("Overwrite?", args.yes):
                session.cancel_overwrite()
                locked_print("Upload cancelled")
                return 1
            session.confirm_overwrite()
    except UploadError:
        # Already reported through the listener.
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    load_dotenv()
    args = _parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else level_from_env(logging.WARNING))
    try:
        return run(args)
    except ValueError as e:
        locked_print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
