"""Replication monitor: waits for an upload's chunks to sync across the network.

The wait is bounded by stalls, not by wall-clock time. Every poll that shows
more seen + synced chunks than the previous best resets the stall budget.

Transition table (evaluated once per poll, in this order):

    state     condition                                   next state
    -------   -----------------------------------------   ----------
    POLLING   seen + synced >= split                      SYNCED
    POLLING   stalled polls >= max_stall_trials           TIMED_OUT
    POLLING   max_duration set and elapsed >= it          TIMED_OUT
    POLLING   otherwise (sleep poll_interval)             POLLING
"""

import time
from enum import Enum
from typing import Callable, Optional, Protocol

from common.constants import SYNC_MAX_STALL_TRIALS, SYNC_POLL_INTERVAL_SECONDS
from common.logging_config import get_logger
from common.types import UploadTag
from publisher.exceptions import ReplicationTimeoutError
from publisher.gateway import StorageGateway

logger = get_logger(__name__)


class SyncState(Enum):
    POLLING = "polling"
    SYNCED = "synced"
    TIMED_OUT = "timed_out"


class ProgressReporter(Protocol):
    """Observer notified with (current, total) on every poll."""

    def update(self, current: int, total: int) -> None: ...

    def close(self) -> None: ...


class ReplicationMonitor:
    """
    Polls an upload tag until its chunks are synced or progress stalls.
    """

    def __init__(
        self,
        gateway: StorageGateway,
        reporter: Optional[ProgressReporter] = None,
        poll_interval: float = SYNC_POLL_INTERVAL_SECONDS,
        max_stall_trials: int = SYNC_MAX_STALL_TRIALS,
        max_duration: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            gateway: Source of fresh tag snapshots
            reporter: Optional progress observer
            poll_interval: Seconds between polls
            max_stall_trials: Consecutive polls without progress before giving up
            max_duration: Optional ceiling on the whole wait, in seconds
            sleep: Sleep function (injected by tests)
            clock: Monotonic clock (injected by tests)
        """
        if max_stall_trials < 1:
            raise ValueError("max_stall_trials must be at least 1")
        self.gateway = gateway
        self.reporter = reporter
        self.poll_interval = poll_interval
        self.max_stall_trials = max_stall_trials
        self.max_duration = max_duration
        self.sleep = sleep
        self.clock = clock
        self._reset()

    def _reset(self) -> None:
        self.state = SyncState.POLLING
        self.trials_without_progress = 0
        self.last_progress = 0
        self.polls = 0

    def _tick(self, tag: UploadTag, started_at: float) -> SyncState:
        """Apply one snapshot to the counters and return the next state."""
        self.polls += 1
        progress = tag.progress

        if progress > self.last_progress:
            self.trials_without_progress = 0
            self.last_progress = progress
        else:
            self.trials_without_progress += 1

        if self.reporter is not None:
            self.reporter.update(progress, tag.split)

        if progress >= tag.split:
            if tag.split == 0:
                logger.warning(f"Tag {tag.uid} reports zero chunks; treating upload as synced")
            return SyncState.SYNCED
        if self.trials_without_progress >= self.max_stall_trials:
            return SyncState.TIMED_OUT
        if self.max_duration is not None and self.clock() - started_at >= self.max_duration:
            return SyncState.TIMED_OUT
        return SyncState.POLLING

    def wait_until_synced(self, tag_uid: int) -> UploadTag:
        """
        Block until the tag is fully synced.

        Errors from the gateway are not retried and propagate unchanged.

        Args:
            tag_uid: Tag of the upload to watch

        Returns:
            The final tag snapshot

        Raises:
            ReplicationTimeoutError: If progress stalls for max_stall_trials polls
                or max_duration elapses
        """
        self._reset()
        started_at = self.clock()
        logger.info(f"Waiting for chunks of tag {tag_uid} to sync")

        try:
            while True:
                tag = self.gateway.retrieve_tag(tag_uid)
                self.state = self._tick(tag, started_at)
                logger.debug(
                    f"Tag {tag_uid}: {tag.progress}/{tag.split} "
                    f"(stalled {self.trials_without_progress}/{self.max_stall_trials})"
                )
                if self.state is not SyncState.POLLING:
                    break
                self.sleep(self.poll_interval)
        finally:
            if self.reporter is not None:
                self.reporter.close()

        if self.state is SyncState.TIMED_OUT:
            raise ReplicationTimeoutError(
                f"Data syncing timeout: {tag.progress}/{tag.split} chunks after {self.polls} polls",
                progress=tag.progress,
                total=tag.split,
            )

        logger.info(f"Data has been synced on the network ({tag.progress}/{tag.split} chunks)")
        return tag
