import json
from dataclasses import dataclass, field, replace

from s3_resume_upload.s3.multipart.finished_piece import FinishedPiece
from s3_resume_upload.s3.multipart.part_planner import confirmed_bytes, count_parts
from s3_resume_upload.s3.types import UploadConfig
from s3_resume_upload.types import SizeSuffix


@dataclass(frozen=True)
class ResumeDescriptor:
    """Everything needed to continue an interrupted upload in a later process."""

    upload_id: str
    file_name: str
    file_size: int
    part_size: int
    config: UploadConfig
    uploaded_parts: list[FinishedPiece] = field(default_factory=list)

    def matches(self, file_name: str, file_size: int) -> bool:
        return self.file_name == file_name and self.file_size == file_size

    def with_parts(self, parts: list[FinishedPiece]) -> "ResumeDescriptor":
        ordered = sorted(parts, key=lambda x: x.part_number)
        return replace(self, uploaded_parts=ordered)

    def total_parts(self) -> int:
        return count_parts(self.file_size, self.part_size)

    def bytes_confirmed(self) -> int:
        numbers = [p.part_number for p in self.uploaded_parts]
        return confirmed_bytes(numbers, self.file_size, self.part_size)

    def percent_done(self) -> float:
        if self.file_size <= 0:
            return 0.0
        return min(100.0, self.bytes_confirmed() / self.file_size * 100)

    def to_json(self, include_secret: bool = False) -> dict:
        done = self.bytes_confirmed()
        return {
            "upload_id": self.upload_id,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "part_size": self.part_size,
            "uploaded_parts": FinishedPiece.to_json_array(self.uploaded_parts),
            "config": self.config.to_json(include_secret=include_secret),
            # informational only, never read back
            "finished_count": len(self.uploaded_parts),
            "total_parts": self.total_parts(),
            "total_size": SizeSuffix(self.file_size).as_str(),
            "total_finished": SizeSuffix(done).as_str(),
            "completed": f"{self.percent_done():.2f}%",
        }

    def to_json_str(self, include_secret: bool = False) -> str:
        return json.dumps(self.to_json(include_secret=include_secret), indent=4)

    @staticmethod
    def from_json(data: dict) -> "ResumeDescriptor":
        upload_id = data["upload_id"]
        file_name = data["file_name"]
        file_size = data["file_size"]
        part_size = data["part_size"]
        if not isinstance(upload_id, str) or not upload_id:
            raise ValueError(f"Invalid upload_id: {upload_id!r}")
        if not isinstance(file_name, str):
            raise ValueError(f"Invalid file_name: {file_name!r}")
        if not isinstance(file_size, int) or file_size <= 0:
            raise ValueError(f"Invalid file_size: {file_size!r}")
        if not isinstance(part_size, int) or part_size <= 0:
            raise ValueError(f"Invalid part_size: {part_size!r}")
        if not isinstance(data["config"], dict):
            raise ValueError(f"Invalid config: {data['config']!r}")
        if not isinstance(data["config"].get("credentials"), dict):
            raise ValueError("Invalid config: credentials missing")
        parts = FinishedPiece.from_json_array(data.get("uploaded_parts") or [])
        return ResumeDescriptor(
            upload_id=upload_id,
            file_name=file_name,
            file_size=file_size,
            part_size=part_size,
            config=UploadConfig.from_json(data["config"]),
            uploaded_parts=sorted(parts, key=lambda x: x.part_number),
        )

    @staticmethod
    def from_json_str(json_str: str) -> "ResumeDescriptor":
        data = json.loads(json_str)
        if not isinstance(data, dict):
            raise ValueError("Resume descriptor must be a JSON object")
        return ResumeDescriptor.from_json(data)
