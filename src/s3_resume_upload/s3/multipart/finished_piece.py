from dataclasses import dataclass


@dataclass(frozen=True)
class FinishedPiece:
    """Receipt for one acknowledged part: its number and the server's ETag."""

    part_number: int
    etag: str

    def __post_init__(self):
        assert isinstance(self.part_number, int)
        assert isinstance(self.etag, str)

    def to_json(self) -> dict:
        # amazon s3 style dict, usable as-is in the completion manifest
        return {"PartNumber": self.part_number, "ETag": self.etag}

    @staticmethod
    def to_json_array(parts: list["FinishedPiece"]) -> list[dict]:
        ordered = sorted(parts, key=lambda x: x.part_number)
        return [p.to_json() for p in ordered]

    @staticmethod
    def from_json(json: dict) -> "FinishedPiece":
        if not isinstance(json, dict):
            raise ValueError(f"Invalid part receipt: {json!r}")
        part_number = json.get("PartNumber") or json.get("part_number")
        etag = json.get("ETag") or json.get("etag")
        if not isinstance(part_number, int) or part_number < 1 or not isinstance(etag, str):
            raise ValueError(f"Invalid part receipt: {json}")
        return FinishedPiece(part_number=part_number, etag=etag)

    @staticmethod
    def from_json_array(json: list[dict]) -> list["FinishedPiece"]:
        if not isinstance(json, list):
            raise ValueError(f"Part receipts must be a list, got {type(json).__name__}")
        return [FinishedPiece.from_json(j) for j in json]
