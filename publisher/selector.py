"""Postage batch selection."""

from typing import Iterable

from common.logging_config import get_logger
from common.types import StorageAllocation
from publisher.exceptions import ResourceUnavailableError

logger = get_logger(__name__)


def select_allocation(allocations: Iterable[StorageAllocation]) -> StorageAllocation:
    """
    Pick the first allocation that is still alive and usable.

    List order is the caller's priority; nothing is re-sorted.

    Args:
        allocations: Allocations as reported by the node

    Returns:
        The first eligible allocation

    Raises:
        ResourceUnavailableError: If no allocation has ttl > 0 and usable set
    """
    considered = 0
    for allocation in allocations:
        considered += 1
        if allocation.eligible:
            logger.info(f"Selected postage batch {allocation.allocation_id} (ttl={allocation.ttl}s)")
            return allocation
        logger.debug(
            f"Skipping postage batch {allocation.allocation_id}: ttl={allocation.ttl}, usable={allocation.usable}"
        )

    raise ResourceUnavailableError(f"No usable postage batch found ({considered} considered)")
