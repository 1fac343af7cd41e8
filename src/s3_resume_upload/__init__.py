from .exceptions import (
    InvalidConfiguration,
    MissingFile,
    PermissionDenied,
    RemoteServiceError,
    ResumeExpired,
    ResumeMismatch,
    UploadError,
    UploadSessionNotFound,
)
from .log import configure_logging, setup_default_logging
from .s3.api import S3Client, StorageClient
from .s3.multipart.events import (
    ProgressEvent,
    ResumeOffer,
    UploadFailed,
    UploadListener,
    UploadSucceeded,
)
from .s3.multipart.finished_piece import FinishedPiece
from .s3.multipart.part_planner import plan_parts
from .s3.multipart.progress import ProgressTracker
from .s3.multipart.resume_descriptor import ResumeDescriptor
from .s3.multipart.resume_store import (
    JsonFileResumeStore,
    MemoryResumeStore,
    ResumeStore,
)
from .s3.multipart.upload_session import UploadSession
from .s3.types import (
    MultiUploadResult,
    S3Credentials,
    S3Provider,
    SessionState,
    UploadConfig,
)
from .types import PartInfo, Range, SizeSuffix

__all__ = [
    "UploadSession",
    "UploadConfig",
    "S3Credentials",
    "S3Provider",
    "S3Client",
    "StorageClient",
    "SessionState",
    "MultiUploadResult",
    "plan_parts",
    "PartInfo",
    "Range",
    "SizeSuffix",
    "FinishedPiece",
    "ProgressTracker",
    "ProgressEvent",
    "ResumeOffer",
    "UploadSucceeded",
    "UploadFailed",
    "UploadListener",
    "ResumeDescriptor",
    "ResumeStore",
    "JsonFileResumeStore",
    "MemoryResumeStore",
    "UploadError",
    "InvalidConfiguration",
    "MissingFile",
    "PermissionDenied",
    "RemoteServiceError",
    "UploadSessionNotFound",
    "ResumeExpired",
    "ResumeMismatch",
    "configure_logging",
    "setup_default_logging",
]
