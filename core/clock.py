"""
Time helpers shared by the pipeline.

All timestamps handled by the pipeline are naive UTC datetimes, matching the
`DateTime` columns of the source and warehouse tables.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

from core.exceptions import PipelineTimeoutError


def utc_now() -> datetime:
    """Current time as a naive UTC datetime"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def deadline_after(timeout: Optional[float]) -> Optional[float]:
    """Convert a timeout in seconds into an event-loop deadline"""
    if timeout is None:
        return None
    return asyncio.get_running_loop().time() + timeout


def remaining_time(deadline: Optional[float], operation: str = "operation") -> Optional[float]:
    """
    Seconds left before the deadline, or None when there is no deadline.

    Raises:
        PipelineTimeoutError: If the deadline has already passed
    """
    if deadline is None:
        return None
    remaining = deadline - asyncio.get_running_loop().time()
    if remaining <= 0:
        raise PipelineTimeoutError(
            f"Deadline exceeded before {operation}",
            context={"operation": operation}
        )
    return remaining
