from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReservationPolicy:
    """How much trailing disk space stays free for future reflashes."""

    percent: int = 20
    floor_mb: int = 4096
    min_available_mb: int = 1024

    def reserved_mb(self, total_mb: int) -> int:
        return max(total_mb * self.percent // 100, self.floor_mb)


DEFAULT_POLICY = ReservationPolicy()


@dataclass(frozen=True)
class DataPartitionPlan:
    start_mb: int
    end_mb: int
    reserved_mb: int
    available_mb: int

    @property
    def size_mb(self) -> int:
        return self.end_mb - self.start_mb


def compute_data_partition(
    total_mb: int,
    last_end_mb: int,
    policy: ReservationPolicy = DEFAULT_POLICY,
) -> Optional[DataPartitionPlan]:
    """Plan the spare data partition between the last partition and the reserve.

    Returns None when the usable space is not larger than
    policy.min_available_mb; a negative figure falls under the same rule.
    """

    reserved = policy.reserved_mb(total_mb)
    available = total_mb - last_end_mb - reserved

    if available <= policy.min_available_mb:
        logger.info(
            "Skipping data partition: available=%sMB (total=%sMB last_end=%sMB reserved=%sMB)",
            available,
            total_mb,
            last_end_mb,
            reserved,
        )
        return None

    plan = DataPartitionPlan(
        start_mb=last_end_mb,
        end_mb=total_mb - reserved,
        reserved_mb=reserved,
        available_mb=available,
    )
    logger.info(
        "Data partition plan: %sMB-%sMB (available=%sMB reserved=%sMB)",
        plan.start_mb,
        plan.end_mb,
        plan.available_mb,
        plan.reserved_mb,
    )
    return plan
