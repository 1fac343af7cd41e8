import abc
import logging
import os
from pathlib import Path
from threading import Lock

from appdirs import user_cache_dir

from s3_resume_upload.s3.multipart.resume_descriptor import ResumeDescriptor

logger = logging.getLogger(__name__)

_CACHE_DIR = Path(user_cache_dir("s3_resume_upload"))


def default_resume_path() -> Path:
    return _CACHE_DIR / "resume.json"


class ResumeStore(abc.ABC):
    """Single slot holding at most one resume descriptor. Every save overwrites."""

    @abc.abstractmethod
    def save(self, descriptor: ResumeDescriptor) -> None:
        pass

    @abc.abstractmethod
    def load(self) -> ResumeDescriptor | None:
        """Return the stored descriptor, or None if absent or unreadable.

        An unreadable slot is cleared so it is not offered again.
        """

    @abc.abstractmethod
    def clear(self) -> None:
        pass


class JsonFileResumeStore(ResumeStore):
    def __init__(self, path: Path | None = None) -> None:
        self.path: Path = path or default_resume_path()
        self._lock = Lock()

    def save(self, descriptor: ResumeDescriptor) -> None:
        # Whatever credentials the descriptor still carries get written, the
        # session strips secrets before saving unless told otherwise.
        payload = descriptor.to_json_str(include_secret=True)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_name(self.path.name + ".tmp")
            tmp.write_text(payload, encoding="utf-8")
            os.replace(tmp, self.path)

    def load(self) -> ResumeDescriptor | None:
        with self._lock:
            if not self.path.exists():
                return None
            try:
                json_str = self.path.read_text(encoding="utf-8")
                return ResumeDescriptor.from_json_str(json_str)
            except (
                ValueError,
                KeyError,
                TypeError,
                AttributeError,
                UnicodeDecodeError,
            ) as e:
                logger.warning(f"Discarding unreadable resume state {self.path}: {e}")
                self.path.unlink(missing_ok=True)
                return None

    def clear(self) -> None:
        with self._lock:
            self.path.unlink(missing_ok=True)


class MemoryResumeStore(ResumeStore):
    """Process local slot, keeps the serialized form so loads behave like disk."""

    def __init__(self) -> None:
        self._slot: str | None = None
        self._lock = Lock()

    def save(self, descriptor: ResumeDescriptor) -> None:
        with self._lock:
            self._slot = descriptor.to_json_str(include_secret=True)

    def load(self) -> ResumeDescriptor | None:
        with self._lock:
            if self._slot is None:
                return None
            try:
                return ResumeDescriptor.from_json_str(self._slot)
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning(f"Discarding unreadable resume state: {e}")
                self._slot = None
                return None

    def clear(self) -> None:
        with self._lock:
            self._slot = None
