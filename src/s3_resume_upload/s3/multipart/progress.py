import time
from threading import Lock
from typing import Callable

from s3_resume_upload.s3.multipart.events import ProgressEvent

_MB = 1024 * 1024
_INTERIM_MIN_INTERVAL = 0.1  # seconds


class ProgressTracker:
    """Byte accounting for one upload: percent, throughput and ETA.

    Interim (in-flight) updates are throttled to one event per
    ``min_interval`` seconds; confirmed parts and status messages always emit.
    Throughput only counts bytes confirmed since ``start()`` so a resumed
    upload does not claim the previous run's bytes as its own speed.
    """

    def __init__(
        self,
        file_size: int,
        emit: Callable[[ProgressEvent], None],
        clock: Callable[[], float] = time.monotonic,
        min_interval: float = _INTERIM_MIN_INTERVAL,
    ) -> None:
        assert file_size > 0, "zero byte files are rejected before tracking"
        self.file_size = file_size
        self.emit = emit
        self.clock = clock
        self.min_interval = min_interval
        self.bytes_confirmed = 0
        self.start_timestamp: float | None = None
        self._baseline = 0
        self._in_flight: dict[int, int] = {}
        self._last_interim: float | None = None
        self._lock = Lock()

    def start(self, bytes_already_confirmed: int = 0) -> None:
        with self._lock:
            self.start_timestamp = self.clock()
            self.bytes_confirmed = bytes_already_confirmed
            self._baseline = bytes_already_confirmed
            self._in_flight.clear()
            self._last_interim = None

    def elapsed_seconds(self) -> float:
        if self.start_timestamp is None:
            return 0.0
        return max(0.0, self.clock() - self.start_timestamp)

    @property
    def session_bytes(self) -> int:
        return self.bytes_confirmed - self._baseline

    def throughput(self) -> float:
        """Bytes per second, 0.0 while no time has elapsed."""
        elapsed = self.elapsed_seconds()
        if elapsed <= 0:
            return 0.0
        return self.session_bytes / elapsed

    def eta_seconds(self) -> float | None:
        rate = self.throughput()
        if rate <= 0:
            return None
        return (self.file_size - self.bytes_confirmed) / rate

    def percent(self) -> float:
        return self._percent_of(self.bytes_confirmed)

    def _percent_of(self, num_bytes: int) -> float:
        pct = num_bytes / self.file_size * 100
        return min(100.0, max(0.0, pct))

    def _event(self, num_bytes: int, message: str) -> ProgressEvent:
        return ProgressEvent(
            percent=self._percent_of(num_bytes),
            status_message=message,
            throughput_mbs=self.throughput() / _MB,
            eta_seconds=self.eta_seconds(),
        )

    def record_part_progress(
        self, part_number: int, bytes_within_part: int, message: str = ""
    ) -> None:
        with self._lock:
            self._in_flight[part_number] = bytes_within_part
            now = self.clock()
            if (
                self._last_interim is not None
                and now - self._last_interim < self.min_interval
            ):
                return
            self._last_interim = now
            in_flight = sum(self._in_flight.values())
            event = self._event(self.bytes_confirmed + in_flight, message)
        self.emit(event)

    def record_part_complete(
        self, part_number: int, part_size_bytes: int, message: str = ""
    ) -> None:
        with self._lock:
            self._in_flight.pop(part_number, None)
            self.bytes_confirmed += part_size_bytes
            event = self._event(self.bytes_confirmed, message)
        self.emit(event)

    def status(self, message: str) -> None:
        with self._lock:
            event = self._event(self.bytes_confirmed, message)
        self.emit(event)
