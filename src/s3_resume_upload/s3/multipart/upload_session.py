"""
Resumable multipart upload of one local file.

Idle -> Checking -> (AwaitingOverwriteDecision) -> Uploading -> Completing -> Done
ResumePending -> ResumeVerifying -> Uploading -> Completing -> Done
Any failure once an upload id exists goes through Aborting -> Failed.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from pathlib import Path
from threading import Lock
from typing import Callable

from s3_resume_upload.exceptions import (
    InvalidConfiguration,
    MissingFile,
    PermissionDenied,
    ResumeExpired,
    ResumeMismatch,
    UploadError,
    UploadSessionNotFound,
)
from s3_resume_upload.s3.api import S3Client, StorageClient
from s3_resume_upload.s3.multipart.events import (
    ResumeOffer,
    UploadFailed,
    UploadListener,
    UploadSucceeded,
)
from s3_resume_upload.s3.multipart.finished_piece import FinishedPiece
from s3_resume_upload.s3.multipart.part_planner import (
    confirmed_bytes,
    count_parts,
    plan_parts,
)
from s3_resume_upload.s3.multipart.progress import ProgressTracker
from s3_resume_upload.s3.multipart.resume_descriptor import ResumeDescriptor
from s3_resume_upload.s3.multipart.resume_store import ResumeStore
from s3_resume_upload.s3.types import (
    MultiUploadResult,
    S3Credentials,
    SessionState,
    UploadConfig,
)
from s3_resume_upload.types import MAX_PART_NUMBER, PartInfo, SizeSuffix
from s3_resume_upload.util import format_time

logger = logging.getLogger(__name__)

_DEFAULT_PART_SIZE = 100 * 1024 * 1024  # 100MB
_DEFAULT_PERMISSION_WARNING_DELAY = 1.0  # seconds
_MB = 1024 * 1024

_ACTIVE_STATES = {
    SessionState.CHECKING,
    SessionState.RESUME_VERIFYING,
    SessionState.UPLOADING,
    SessionState.COMPLETING,
    SessionState.ABORTING,
}

StorageFactory = Callable[[UploadConfig], StorageClient]


def _validate_file(file_path: Path | str | None) -> tuple[Path, int]:
    if file_path is None or str(file_path) == "":
        raise MissingFile("Please select a file")
    path = Path(file_path)
    if not path.is_file():
        raise MissingFile(f"File not found: {path}")
    file_size = path.stat().st_size
    if file_size == 0:
        raise InvalidConfiguration(f"{path} is empty, nothing to upload")
    return path, file_size


class UploadSession:
    """Drives one upload at a time against a StorageClient.

    A descriptor found by ``check_for_resume()`` must be accepted or declined
    before a fresh upload can start. ``start()`` itself never reads the resume
    slot, so a fresh upload overwrites whatever another run left there.
    """

    def __init__(
        self,
        resume_store: ResumeStore,
        storage_factory: StorageFactory = S3Client.from_config,
        listener: UploadListener | None = None,
        part_size: int = _DEFAULT_PART_SIZE,
        concurrency: int = 1,
        abort_on_failure: bool = True,
        persist_credentials: bool = False,
        permission_warning_delay: float = _DEFAULT_PERMISSION_WARNING_DELAY,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.resume_store = resume_store
        self.storage_factory = storage_factory
        self.listener = listener or UploadListener()
        self.default_part_size = part_size
        self.concurrency = concurrency
        self.abort_on_failure = abort_on_failure
        self.persist_credentials = persist_credentials
        self.permission_warning_delay = permission_warning_delay
        self.clock = clock
        self.sleep = sleep

        self.state = SessionState.IDLE
        self.config: UploadConfig | None = None
        self.client: StorageClient | None = None
        self.file_path: Path | None = None
        self.file_size = 0
        self.part_size = part_size
        self.upload_id: str | None = None
        self.parts: dict[int, FinishedPiece] = {}
        self.tracker: ProgressTracker | None = None
        self._pending: ResumeDescriptor | None = None
        self._resumed = False
        self._receipt_lock = Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def pending_resume(self) -> ResumeDescriptor | None:
        return self._pending

    @property
    def bytes_confirmed(self) -> int:
        return confirmed_bytes(list(self.parts), self.file_size, self.part_size)

    def receipts(self) -> list[FinishedPiece]:
        return sorted(self.parts.values(), key=lambda x: x.part_number)

    def check_for_resume(self) -> ResumeOffer | None:
        """Look in the resume slot and offer any interrupted upload found there."""
        self._ensure_not_active()
        descriptor = self.resume_store.load()
        if descriptor is None:
            return None
        self._pending = descriptor
        self._set_state(SessionState.RESUME_PENDING)
        return self._offer(descriptor)

    def start(
        self, config: UploadConfig, file_path: Path | str | None
    ) -> MultiUploadResult:
        self._ensure_not_active()
        try:
            path, file_size = _validate_file(file_path)
            self._validate_settings(self.default_part_size, file_size)
        except UploadError as e:
            self._report_failure(e)
            raise

        if self._pending is not None:
            return self._start_with_pending(path, file_size)

        self._reset()
        self.config = config.normalized(path.name)
        self.file_path = path
        self.file_size = file_size
        self.part_size = self.default_part_size
        self.client = self.storage_factory(self.config)
        self.tracker = self._new_tracker()
        self._set_state(SessionState.CHECKING)
        return self._check_existing()

    def confirm_overwrite(self) -> MultiUploadResult:
        self._require_state(SessionState.AWAITING_OVERWRITE_DECISION)
        return self._upload_fresh()

    def cancel_overwrite(self) -> MultiUploadResult:
        # No server state exists yet, nothing to clean up.
        self._require_state(SessionState.AWAITING_OVERWRITE_DECISION)
        self._reset()
        self._set_state(SessionState.IDLE)
        return MultiUploadResult.CANCELLED

    def accept_resume(
        self, file_path: Path | str | None, credentials: S3Credentials | None = None
    ) -> MultiUploadResult:
        descriptor = self._pending
        if descriptor is None:
            raise RuntimeError("No resume offer is pending")
        self._ensure_not_active()
        try:
            path, file_size = _validate_file(file_path)
            self._check_matches(descriptor, path, file_size)
            config = descriptor.config
            if credentials is not None:
                config = replace(config, credentials=credentials)
            elif not config.credentials.has_secret():
                raise InvalidConfiguration(
                    "The saved upload state holds no secret key, supply credentials to resume"
                )
        except UploadError as e:
            self._report_failure(e)
            raise

        self._pending = None
        self._reset()
        self._resumed = True
        self.config = config
        self.file_path = path
        self.file_size = file_size
        self.part_size = descriptor.part_size
        self.upload_id = descriptor.upload_id
        self.client = self.storage_factory(config)
        self.tracker = self._new_tracker()
        self._set_state(SessionState.RESUME_VERIFYING)
        return self._verify_and_resume(descriptor)

    def decline_resume(self) -> None:
        """Forget the pending upload and release its server side session."""
        descriptor = self._pending
        if descriptor is None:
            raise RuntimeError("No resume offer is pending")
        self._pending = None
        self.resume_store.clear()
        if descriptor.config.credentials.has_secret():
            try:
                client = self.storage_factory(descriptor.config)
                client.abort_upload(
                    descriptor.config.bucket_name,
                    descriptor.config.key,
                    descriptor.upload_id,
                )
            except Exception as e:
                logger.warning(
                    f"Could not abort declined upload {descriptor.upload_id}: {e}"
                )
        self._set_state(SessionState.IDLE)

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _check_existing(self) -> MultiUploadResult:
        config, client, tracker = self._active()
        tracker.status("Checking if object exists...")
        try:
            exists = client.exists_exact(config.bucket_name, config.key)
        except PermissionDenied as e:
            logger.warning(f"Cannot check for an existing object, proceeding: {e}")
            tracker.status("No ListBucket permission - will overwrite if exists")
            self.sleep(self.permission_warning_delay)
            return self._upload_fresh()
        except Exception as e:
            self._fail(e)
            raise
        if not exists:
            return self._upload_fresh()
        self._set_state(SessionState.AWAITING_OVERWRITE_DECISION)
        self.listener.on_overwrite_prompt(
            f'Object "{config.key}" already exists in bucket "{config.bucket_name}". '
            "Do you want to overwrite it?"
        )
        return MultiUploadResult.AWAITING_OVERWRITE

    def _upload_fresh(self) -> MultiUploadResult:
        config, client, tracker = self._active()
        self._set_state(SessionState.UPLOADING)
        tracker.start(0)
        tracker.status("Starting multipart upload...")
        try:
            self.upload_id = client.create_upload(config.bucket_name, config.key)
            self._checkpoint()
        except Exception as e:
            self._fail(e)
            raise
        logger.info(
            f"Uploading {self.file_path} ({SizeSuffix(self.file_size)}) to {config.destination}"
            f" in {count_parts(self.file_size, self.part_size)} parts, upload id {self.upload_id}"
        )
        return self._upload_and_complete(plan_parts(self.file_size, self.part_size))

    def _verify_and_resume(self, descriptor: ResumeDescriptor) -> MultiUploadResult:
        config, client, tracker = self._active()
        assert self.upload_id is not None
        tracker.start(descriptor.bytes_confirmed())
        tracker.status(
            f"Verifying {len(descriptor.uploaded_parts)} previously uploaded parts..."
        )
        plan = plan_parts(self.file_size, self.part_size)
        try:
            server_parts = client.list_parts(
                config.bucket_name, config.key, self.upload_id
            )
            planned = {p.part_number for p in plan}
            # The server list is authoritative, the local receipts were only an estimate.
            self.parts = {
                p.part_number: p for p in server_parts if p.part_number in planned
            }
            if len(self.parts) != len(descriptor.uploaded_parts):
                logger.info(
                    f"Server reports {len(self.parts)} parts for upload {self.upload_id},"
                    f" local state had {len(descriptor.uploaded_parts)}"
                )
            self._checkpoint()
        except UploadSessionNotFound as e:
            raise self._expire(e) from e
        except Exception as e:
            self._fail(e)
            raise

        tracker.start(self.bytes_confirmed)
        self._set_state(SessionState.UPLOADING)
        remaining = [p for p in plan if p.part_number not in self.parts]
        tracker.status(
            f"Resuming upload, {len(self.parts)}/{len(plan)} parts already uploaded"
        )
        return self._upload_and_complete(remaining)

    def _upload_and_complete(self, todo: list[PartInfo]) -> MultiUploadResult:
        try:
            self._upload_parts(todo)
            self._complete()
        except UploadSessionNotFound as e:
            if self._resumed:
                raise self._expire(e) from e
            self._fail(e)
            raise
        except Exception as e:
            self._fail(e)
            raise
        if self._resumed:
            return MultiUploadResult.UPLOADED_RESUME
        return MultiUploadResult.UPLOADED_FRESH

    def _upload_parts(self, todo: list[PartInfo]) -> None:
        if self.concurrency <= 1 or len(todo) <= 1:
            for part in todo:
                piece = self._upload_one(part)
                self._record(part, piece)
            return
        with ThreadPoolExecutor(max_workers=self.concurrency) as executor:
            futures = {executor.submit(self._upload_one, part): part for part in todo}
            try:
                # Receipts are recorded here, on the coordinating thread only.
                for fut in as_completed(futures):
                    self._record(futures[fut], fut.result())
            except BaseException:
                for fut in futures:
                    fut.cancel()
                raise

    def _upload_one(self, part: PartInfo) -> FinishedPiece:
        config, client, tracker = self._active()
        assert self.upload_id is not None
        total = count_parts(self.file_size, self.part_size)
        message = f"Uploading part {part.part_number}/{total}..."
        data = self._read_part(part)

        def on_progress(num_bytes: int) -> None:
            tracker.record_part_progress(part.part_number, num_bytes, message)

        etag = client.upload_part(
            config.bucket_name,
            config.key,
            self.upload_id,
            part.part_number,
            data,
            progress=on_progress,
        )
        return FinishedPiece(part_number=part.part_number, etag=etag)

    def _read_part(self, part: PartInfo) -> bytes:
        assert self.file_path is not None
        with open(self.file_path, "rb") as f:
            f.seek(part.range.start)
            data = f.read(part.size)
        if len(data) != part.size:
            raise InvalidConfiguration(
                f"{self.file_path} changed during upload, part {part.part_number} is short"
            )
        return data

    def _record(self, part: PartInfo, piece: FinishedPiece) -> None:
        _, _, tracker = self._active()
        total = count_parts(self.file_size, self.part_size)
        with self._receipt_lock:
            is_new = part.part_number not in self.parts
            # A retried part replaces its receipt, never duplicates it.
            self.parts[part.part_number] = piece
            self._checkpoint()
        if is_new:
            tracker.record_part_complete(
                part.part_number, part.size, f"Uploaded part {part.part_number}/{total}"
            )

    def _complete(self) -> None:
        config, client, tracker = self._active()
        assert self.upload_id is not None
        self._set_state(SessionState.COMPLETING)
        total = count_parts(self.file_size, self.part_size)
        receipts = self.receipts()
        missing = sorted(set(range(1, total + 1)) - set(self.parts))
        if missing:
            raise UploadError(f"Cannot complete upload, parts {missing} have no receipt")
        tracker.status(f"Completing upload of {total} parts...")
        client.complete_upload(config.bucket_name, config.key, self.upload_id, receipts)
        self.resume_store.clear()

        elapsed = tracker.elapsed_seconds()
        avg_mbs = tracker.session_bytes / elapsed / _MB if elapsed > 0 else 0.0
        tracker.status("Upload completed successfully!")
        logger.info(
            f"Uploaded {self.file_path} ({SizeSuffix(self.file_size)}) to {config.destination}"
            f" in {format_time(elapsed)}, {avg_mbs:.1f} MB/s"
        )
        self._set_state(SessionState.DONE)
        self.listener.on_success(
            UploadSucceeded(
                destination=config.destination,
                elapsed_seconds=elapsed,
                avg_throughput_mbs=avg_mbs,
            )
        )

    # ------------------------------------------------------------------
    # Failure handling
    # ------------------------------------------------------------------

    def _fail(self, error: Exception) -> None:
        # The resume slot is left alone so the user can retry via resume.
        session_gone = isinstance(error, UploadSessionNotFound)
        if self.upload_id and self.abort_on_failure and not session_gone:
            self._set_state(SessionState.ABORTING)
            self._abort()
        self._set_state(SessionState.FAILED)
        self._report_failure(error)

    def _abort(self) -> None:
        config, client, _ = self._active()
        assert self.upload_id is not None
        try:
            client.abort_upload(config.bucket_name, config.key, self.upload_id)
        except Exception as e:
            logger.error(f"Failed to abort multipart upload {self.upload_id}: {e}")

    def _expire(self, cause: UploadSessionNotFound) -> ResumeExpired:
        self.resume_store.clear()
        error = ResumeExpired(
            f"Upload {self.upload_id} is no longer known to the server, restart the upload"
            f" ({cause})",
            upload_id=self.upload_id,
        )
        self._set_state(SessionState.FAILED)
        self._report_failure(error)
        return error

    def _report_failure(self, error: Exception) -> None:
        logger.error(f"Upload failed: {error}")
        self.listener.on_failure(UploadFailed(reason=str(error), error=error))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _start_with_pending(self, path: Path, file_size: int) -> MultiUploadResult:
        descriptor = self._pending
        assert descriptor is not None
        try:
            self._check_matches(descriptor, path, file_size)
        except ResumeMismatch as e:
            self._report_failure(e)
            raise
        self._set_state(SessionState.RESUME_PENDING)
        self._offer(descriptor)
        return MultiUploadResult.AWAITING_RESUME

    @staticmethod
    def _check_matches(descriptor: ResumeDescriptor, path: Path, file_size: int) -> None:
        if not descriptor.matches(path.name, file_size):
            raise ResumeMismatch(
                f"Selected file {path.name} ({file_size} bytes) does not match the"
                f" interrupted upload of {descriptor.file_name}"
                f" ({descriptor.file_size} bytes). Select that file or discard the"
                " pending upload first.",
                expected_name=descriptor.file_name,
                expected_size=descriptor.file_size,
            )

    def _validate_settings(self, part_size: int, file_size: int) -> None:
        if part_size <= 0:
            raise InvalidConfiguration(f"Part size must be positive, got {part_size}")
        if self.concurrency < 1:
            raise InvalidConfiguration(
                f"Concurrency must be at least 1, got {self.concurrency}"
            )
        num_parts = count_parts(file_size, part_size)
        if num_parts > MAX_PART_NUMBER:
            raise InvalidConfiguration(
                f"Part size {SizeSuffix(part_size)} splits the file into {num_parts}"
                f" parts, the limit is {MAX_PART_NUMBER}"
            )

    def _offer(self, descriptor: ResumeDescriptor) -> ResumeOffer:
        offer = ResumeOffer(
            file_name=descriptor.file_name,
            file_size=descriptor.file_size,
            percent_already_done=descriptor.percent_done(),
            destination=descriptor.config.destination,
        )
        self.listener.on_resume_offer(offer)
        return offer

    def _checkpoint(self) -> None:
        config, _, _ = self._active()
        assert self.upload_id is not None and self.file_path is not None
        if not self.persist_credentials:
            config = replace(config, credentials=config.credentials.redacted())
        descriptor = ResumeDescriptor(
            upload_id=self.upload_id,
            file_name=self.file_path.name,
            file_size=self.file_size,
            part_size=self.part_size,
            config=config,
            uploaded_parts=self.receipts(),
        )
        self.resume_store.save(descriptor)

    def _new_tracker(self) -> ProgressTracker:
        return ProgressTracker(
            self.file_size, emit=self.listener.on_progress, clock=self.clock
        )

    def _active(self) -> tuple[UploadConfig, StorageClient, ProgressTracker]:
        assert self.config is not None
        assert self.client is not None
        assert self.tracker is not None
        return self.config, self.client, self.tracker

    def _reset(self) -> None:
        self.config = None
        self.client = None
        self.file_path = None
        self.file_size = 0
        self.part_size = self.default_part_size
        self.upload_id = None
        self.parts = {}
        self.tracker = None
        self._resumed = False

    def _ensure_not_active(self) -> None:
        if self.state in _ACTIVE_STATES:
            raise RuntimeError(f"An upload is already in progress ({self.state.value})")

    def _require_state(self, state: SessionState) -> None:
        if self.state != state:
            raise RuntimeError(
                f"Expected state {state.value}, session is {self.state.value}"
            )

    def _set_state(self, new: SessionState) -> None:
        old = self.state
        if old == new:
            return
        self.state = new
        logger.debug(f"Upload session {old.value} -> {new.value}")
        self.listener.on_state_change(old, new)
