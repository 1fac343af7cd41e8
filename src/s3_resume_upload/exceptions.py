class UploadError(Exception):
    """Base class for every failure surfaced by an upload session."""


class InvalidConfiguration(UploadError):
    """Rejected locally before any server call: bad part size, empty file..."""


class MissingFile(InvalidConfiguration):
    pass


class PermissionDenied(UploadError):
    """The credentials are not allowed to perform the operation."""

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


class RemoteServiceError(UploadError):
    """Any other failure reported by the object-storage service."""

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


class UploadSessionNotFound(RemoteServiceError):
    """The server does not know the upload id (aborted, completed or expired)."""


class ResumeExpired(UploadError):
    """The recorded upload id is no longer valid server side, restart required."""

    def __init__(self, message: str, upload_id: str | None = None):
        super().__init__(message)
        self.upload_id = upload_id


class ResumeMismatch(UploadError):
    """The selected file does not match the pending resume descriptor."""

    def __init__(
        self,
        message: str,
        expected_name: str | None = None,
        expected_size: int | None = None,
    ):
        super().__init__(message)
        self.expected_name = expected_name
        self.expected_size = expected_size
