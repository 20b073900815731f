"""Part-size planning for chunked uploads."""

import math

from common.constants import MAX_PARTS, MIB, PART_SIZE_LADDER_MIB
from coordinator.exceptions import InvalidSizeError


PART_SIZE_LADDER = tuple(mib * MIB for mib in PART_SIZE_LADDER_MIB)


def plan_part_size(total_bytes) -> int:
    """
    Choose the chunk size for an upload of `total_bytes`.

    Picks the smallest ladder entry that keeps the upload within MAX_PARTS
    chunks. Uploads too large for even the top entry get the top entry and
    may exceed MAX_PARTS; that boundary is left to the backend to reject.

    Args:
        total_bytes: Declared upload size in bytes

    Returns:
        Chunk size in bytes

    Raises:
        InvalidSizeError: If total_bytes is not a finite number greater than zero
    """
    if isinstance(total_bytes, bool) or not isinstance(total_bytes, (int, float)):
        raise InvalidSizeError(f"Upload size must be a number, got {type(total_bytes).__name__}")
    if not math.isfinite(total_bytes) or total_bytes <= 0:
        raise InvalidSizeError(f"Upload size must be a finite number greater than zero, got {total_bytes}")

    min_part = math.ceil(total_bytes / MAX_PARTS)
    for part_size in PART_SIZE_LADDER:
        if part_size >= min_part:
            return part_size
    return PART_SIZE_LADDER[-1]


def count_parts(total_bytes: int, part_size: int) -> int:
    return math.ceil(total_bytes / part_size)
