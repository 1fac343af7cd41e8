from s3_resume_upload.exceptions import InvalidConfiguration
from s3_resume_upload.types import PartInfo, Range


def count_parts(file_size: int, part_size: int) -> int:
    out = file_size // part_size
    if file_size % part_size:
        return out + 1
    return out


def plan_parts(file_size: int, part_size: int) -> list[PartInfo]:
    """Split [0, file_size) into consecutive parts of part_size bytes.

    Part n covers [(n-1)*part_size, min(n*part_size, file_size)); only the last
    part may be shorter. A zero byte file yields no parts.
    """
    if part_size <= 0:
        raise InvalidConfiguration(f"Part size must be positive, got {part_size}")
    if file_size < 0:
        raise InvalidConfiguration(f"File size must not be negative, got {file_size}")
    part_infos: list[PartInfo] = []
    for index in range(count_parts(file_size, part_size)):
        start = index * part_size
        end = min(start + part_size, file_size)
        part_infos.append(PartInfo(part_number=index + 1, range=Range(start, end)))
    return part_infos


def part_size_of(file_size: int, part_size: int, part_number: int) -> int:
    start = (part_number - 1) * part_size
    end = min(start + part_size, file_size)
    return max(0, end - start)


def confirmed_bytes(part_numbers: list[int], file_size: int, part_size: int) -> int:
    """Sum of the byte ranges covered by the given (unique) part numbers."""
    return sum(part_size_of(file_size, part_size, n) for n in set(part_numbers))
