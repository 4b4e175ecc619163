"""Deterministic partitioning of a payload into multipart parts."""
from __future__ import annotations

from domain.upload.entity import PartPlan, PartSpan


class InvalidPartPlanError(ValueError):
    pass


def plan_parts(size: int, max_part_size: int) -> PartPlan:
    """Split ``[0, size)`` into contiguous spans of at most ``max_part_size`` bytes.

    Part numbers start at 1. An empty payload yields a single zero-length
    part so that every upload goes through at least one part cycle.
    """
    if max_part_size <= 0:
        raise InvalidPartPlanError(f"max_part_size must be positive, got {max_part_size}")
    if size < 0:
        raise InvalidPartPlanError(f"size must not be negative, got {size}")

    if size == 0:
        return (PartSpan(part_number=1, offset=0, length=0),)

    spans: list[PartSpan] = []
    offset = 0
    part_number = 1
    while offset < size:
        length = min(max_part_size, size - offset)
        spans.append(PartSpan(part_number=part_number, offset=offset, length=length))
        offset += length
        part_number += 1
    return tuple(spans)
