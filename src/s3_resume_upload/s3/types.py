from dataclasses import dataclass, replace
from enum import Enum

from s3_resume_upload.util import normalize_bucket_name


class S3Provider(Enum):
    S3 = "s3"  # generic S3
    BACKBLAZE = "b2"
    DIGITAL_OCEAN = "DigitalOcean"

    @staticmethod
    def from_str(value: str) -> "S3Provider":
        """Convert string to S3Provider."""
        if value == "s3":
            return S3Provider.S3
        if value == "b2":
            return S3Provider.BACKBLAZE
        if value == "DigitalOcean":
            return S3Provider.DIGITAL_OCEAN
        raise ValueError(f"Unknown S3Provider: {value}")


@dataclass(frozen=True)
class S3Credentials:
    """Credentials for accessing S3."""

    access_key_id: str
    secret_access_key: str
    session_token: str | None = None
    provider: S3Provider = S3Provider.S3
    endpoint_url: str | None = None

    def redacted(self) -> "S3Credentials":
        return replace(self, secret_access_key="", session_token=None)

    def has_secret(self) -> bool:
        return bool(self.secret_access_key)

    def to_json(self, include_secret: bool) -> dict:
        out = {
            "access_key_id": self.access_key_id,
            "provider": self.provider.value,
            "endpoint_url": self.endpoint_url,
        }
        if include_secret:
            out["secret_access_key"] = self.secret_access_key
            out["session_token"] = self.session_token
        return out

    @staticmethod
    def from_json(json_dict: dict) -> "S3Credentials":
        return S3Credentials(
            access_key_id=json_dict["access_key_id"],
            secret_access_key=json_dict.get("secret_access_key") or "",
            session_token=json_dict.get("session_token"),
            provider=S3Provider.from_str(json_dict.get("provider") or "s3"),
            endpoint_url=json_dict.get("endpoint_url"),
        )


@dataclass(frozen=True)
class UploadConfig:
    """Where an upload goes and how to reach it. Immutable once a session starts."""

    credentials: S3Credentials
    region: str | None
    bucket_name: str
    object_name: str | None = None

    def normalized(self, file_name: str) -> "UploadConfig":
        return replace(
            self,
            bucket_name=normalize_bucket_name(self.bucket_name),
            object_name=self.object_name or file_name,
        )

    @property
    def key(self) -> str:
        assert self.object_name, "object_name is resolved by normalized()"
        return self.object_name

    @property
    def destination(self) -> str:
        return f"s3://{self.bucket_name}/{self.object_name}"

    def to_json(self, include_secret: bool = False) -> dict:
        return {
            "credentials": self.credentials.to_json(include_secret=include_secret),
            "region": self.region,
            "bucket_name": self.bucket_name,
            "object_name": self.object_name,
        }

    @staticmethod
    def from_json(json_dict: dict) -> "UploadConfig":
        return UploadConfig(
            credentials=S3Credentials.from_json(json_dict["credentials"]),
            region=json_dict.get("region"),
            bucket_name=json_dict["bucket_name"],
            object_name=json_dict.get("object_name"),
        )


class SessionState(Enum):
    IDLE = "idle"
    CHECKING = "checking"
    AWAITING_OVERWRITE_DECISION = "awaiting-overwrite-decision"
    RESUME_PENDING = "resume-pending"
    RESUME_VERIFYING = "resume-verifying"
    UPLOADING = "uploading"
    COMPLETING = "completing"
    ABORTING = "aborting"
    DONE = "done"
    FAILED = "failed"


class MultiUploadResult(Enum):
    UPLOADED_FRESH = 1
    UPLOADED_RESUME = 2
    AWAITING_OVERWRITE = 3
    AWAITING_RESUME = 4
    CANCELLED = 5
