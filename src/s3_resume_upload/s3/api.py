import abc
import io
import logging
from contextlib import contextmanager
from typing import Callable, Iterator

from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from s3_resume_upload.exceptions import (
    PermissionDenied,
    RemoteServiceError,
    UploadError,
    UploadSessionNotFound,
)
from s3_resume_upload.s3.create import S3Config, create_s3_client
from s3_resume_upload.s3.multipart.finished_piece import FinishedPiece
from s3_resume_upload.s3.types import S3Credentials, UploadConfig

logger = logging.getLogger(__name__)

# Receives the number of bytes of the current part handed to the transport so far.
ProgressCallback = Callable[[int], None]

_PERMISSION_DENIED_CODES = {"AccessDenied", "Forbidden", "403", "AllAccessDisabled"}
_NO_SUCH_UPLOAD_CODES = {"NoSuchUpload"}


class StorageClient(abc.ABC):
    """The object-storage operations an upload session relies on."""

    @abc.abstractmethod
    def exists_exact(self, bucket: str, key: str) -> bool:
        """True only if an object with exactly this key exists.

        Raises PermissionDenied when the listing itself is not allowed.
        """

    @abc.abstractmethod
    def create_upload(self, bucket: str, key: str) -> str:
        """Open a multipart upload and return its upload id."""

    @abc.abstractmethod
    def upload_part(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        part_number: int,
        body: bytes,
        progress: ProgressCallback | None = None,
    ) -> str:
        """Upload one part and return its ETag."""

    @abc.abstractmethod
    def list_parts(self, bucket: str, key: str, upload_id: str) -> list[FinishedPiece]:
        """Parts committed server side, ascending by part number.

        Raises UploadSessionNotFound when the upload id is unknown.
        """

    @abc.abstractmethod
    def complete_upload(
        self, bucket: str, key: str, upload_id: str, parts: list[FinishedPiece]
    ) -> None:
        pass

    @abc.abstractmethod
    def abort_upload(self, bucket: str, key: str, upload_id: str) -> None:
        pass


def _error_code(e: ClientError) -> str:
    return str(e.response.get("Error", {}).get("Code", ""))


def _translate_error(operation: str, e: Exception) -> UploadError:
    if isinstance(e, ClientError):
        code = _error_code(e)
        if code in _PERMISSION_DENIED_CODES:
            return PermissionDenied(f"{operation}: permission denied ({e})", operation)
        if code in _NO_SUCH_UPLOAD_CODES:
            return UploadSessionNotFound(
                f"{operation}: upload session not found ({e})", operation
            )
    return RemoteServiceError(f"{operation} failed: {e}", operation)


@contextmanager
def _s3_call(operation: str) -> Iterator[None]:
    try:
        yield
    except (ClientError, BotoCoreError) as e:
        raise _translate_error(operation, e) from e


class _ProgressBody(io.BytesIO):
    """In-memory part body that reports how far the transport has read.

    botocore may read the whole body once to compute a checksum, then seek
    back to the start and stream it. Every rewind is reported, so progress
    reflects the pass currently being sent rather than the checksum pass.
    """

    def __init__(self, data: bytes, callback: ProgressCallback):
        super().__init__(data)
        self._callback = callback

    def read(self, size: int | None = -1) -> bytes:
        chunk = super().read(size)
        if chunk:
            self._callback(self.tell())
        return chunk

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        before = self.tell()
        position = super().seek(offset, whence)
        if position < before:
            self._callback(position)
        return position


class S3Client(StorageClient):
    def __init__(
        self,
        credentials: S3Credentials,
        region_name: str | None = None,
        s3_config: S3Config | None = None,
        client: BaseClient | None = None,
    ) -> None:
        self.credentials: S3Credentials = credentials
        self.region_name = region_name
        self.client: BaseClient = client or create_s3_client(
            credentials, region_name, s3_config
        )

    @staticmethod
    def from_config(config: UploadConfig) -> "S3Client":
        return S3Client(credentials=config.credentials, region_name=config.region)

    def exists_exact(self, bucket: str, key: str) -> bool:
        with _s3_call("list_objects_v2"):
            response = self.client.list_objects_v2(Bucket=bucket, Prefix=key, MaxKeys=1)
        # A prefix match is not enough: "data.bin.bak" must not count as "data.bin".
        for obj in response.get("Contents", []):
            if obj.get("Key") == key:
                return True
        return False

    def create_upload(self, bucket: str, key: str) -> str:
        logger.info(f"Creating multipart upload for s3://{bucket}/{key}")
        with _s3_call("create_multipart_upload"):
            mpu = self.client.create_multipart_upload(Bucket=bucket, Key=key)
        return mpu["UploadId"]

    def upload_part(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        part_number: int,
        body: bytes,
        progress: ProgressCallback | None = None,
    ) -> str:
        payload: bytes | _ProgressBody = body
        if progress is not None:
            payload = _ProgressBody(body, progress)
        with _s3_call("upload_part"):
            part = self.client.upload_part(
                Bucket=bucket,
                Key=key,
                PartNumber=part_number,
                UploadId=upload_id,
                Body=payload,
            )
        return part["ETag"]

    def list_parts(self, bucket: str, key: str, upload_id: str) -> list[FinishedPiece]:
        out: list[FinishedPiece] = []
        kwargs: dict = {"Bucket": bucket, "Key": key, "UploadId": upload_id}
        while True:
            with _s3_call("list_parts"):
                response = self.client.list_parts(**kwargs)
            for p in response.get("Parts", []):
                out.append(FinishedPiece(part_number=p["PartNumber"], etag=p["ETag"]))
            if not response.get("IsTruncated"):
                break
            kwargs["PartNumberMarker"] = response["NextPartNumberMarker"]
        out.sort(key=lambda x: x.part_number)
        return out

    def complete_upload(
        self, bucket: str, key: str, upload_id: str, parts: list[FinishedPiece]
    ) -> None:
        parts_s3 = FinishedPiece.to_json_array(parts)
        logger.info(f"Completing s3://{bucket}/{key} with {len(parts_s3)} parts")
        with _s3_call("complete_multipart_upload"):
            self.client.complete_multipart_upload(
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={"Parts": parts_s3},
            )

    def abort_upload(self, bucket: str, key: str, upload_id: str) -> None:
        logger.info(f"Aborting multipart upload {upload_id} for s3://{bucket}/{key}")
        with _s3_call("abort_multipart_upload"):
            self.client.abort_multipart_upload(
                Bucket=bucket, Key=key, UploadId=upload_id
            )
