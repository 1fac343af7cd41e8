from dataclasses import dataclass

from s3_resume_upload.s3.types import SessionState


@dataclass(frozen=True)
class ProgressEvent:
    percent: float  # 0-100
    status_message: str
    throughput_mbs: float
    eta_seconds: float | None  # None when it cannot be estimated yet

    @property
    def eta_str(self) -> str:
        if self.eta_seconds is None:
            return "unknown"
        from s3_resume_upload.util import format_time

        return format_time(self.eta_seconds)


@dataclass(frozen=True)
class ResumeOffer:
    file_name: str
    file_size: int
    percent_already_done: float
    destination: str


@dataclass(frozen=True)
class UploadSucceeded:
    destination: str
    elapsed_seconds: float
    avg_throughput_mbs: float


@dataclass(frozen=True)
class UploadFailed:
    reason: str
    error: Exception


class UploadListener:
    """Observer for an upload session. Override what you need, the rest is a no-op.

    Progress callbacks may arrive from worker threads when parts upload
    concurrently.
    """

    def on_state_change(self, old: SessionState, new: SessionState) -> None:
        pass

    def on_progress(self, event: ProgressEvent) -> None:
        pass

    def on_overwrite_prompt(self, message: str) -> None:
        pass

    def on_resume_offer(self, offer: ResumeOffer) -> None:
        pass

    def on_success(self, event: UploadSucceeded) -> None:
        pass

    def on_failure(self, event: UploadFailed) -> None:
        pass
