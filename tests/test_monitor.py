"""Unit tests for the stall-based replication monitor."""

import pytest

from common.types import UploadTag
from conftest import FakeGateway
from publisher.exceptions import ReplicationTimeoutError, StorageGatewayError
from publisher.monitor import ReplicationMonitor, SyncState


class RecordingReporter:
    def __init__(self):
        self.updates = []
        self.closed = 0

    def update(self, current, total):
        self.updates.append((current, total))

    def close(self):
        self.closed += 1


def make_monitor(gateway, clock, **kwargs):
    return ReplicationMonitor(gateway, sleep=clock.sleep, clock=clock, **kwargs)


def test_synced_as_soon_as_progress_reaches_split(fake_clock):
    gateway = FakeGateway(split=500, progress=[100, 250, 500])
    monitor = make_monitor(gateway, fake_clock)

    tag = monitor.wait_until_synced(7)

    assert tag.progress == 500
    assert monitor.state is SyncState.SYNCED
    assert monitor.polls == 3
    assert len(gateway.called("retrieve_tag")) == 3
    assert fake_clock.sleeps == [0.5, 0.5]


def test_times_out_after_fifteen_polls_without_progress(fake_clock):
    gateway = FakeGateway(split=1000, progress=[0])
    monitor = make_monitor(gateway, fake_clock)

    with pytest.raises(ReplicationTimeoutError) as exc_info:
        monitor.wait_until_synced(7)

    assert monitor.state is SyncState.TIMED_OUT
    assert len(gateway.called("retrieve_tag")) == 15
    assert len(fake_clock.sleeps) == 14
    assert exc_info.value.progress == 0
    assert exc_info.value.total == 1000


def test_progress_resets_stall_budget_fully(fake_clock):
    progress = [0] * 14 + [1] + [1] * 15
    gateway = FakeGateway(split=1000, progress=progress)
    monitor = make_monitor(gateway, fake_clock)

    with pytest.raises(ReplicationTimeoutError):
        monitor.wait_until_synced(7)

    # 14 stalls, one increase, then 15 consecutive stalls
    assert monitor.polls == 30
    assert monitor.last_progress == 1


def test_does_not_time_out_one_poll_before_budget(fake_clock):
    progress = [0] * 14 + [1] + [1] * 14 + [1000]
    gateway = FakeGateway(split=1000, progress=progress)
    monitor = make_monitor(gateway, fake_clock)

    tag = monitor.wait_until_synced(7)

    assert tag.progress == 1000
    assert monitor.state is SyncState.SYNCED
    assert monitor.polls == 30


def test_trickling_progress_never_times_out_without_ceiling(fake_clock):
    progress = list(range(1, 200)) + [200]
    gateway = FakeGateway(split=200, progress=progress)
    monitor = make_monitor(gateway, fake_clock)

    monitor.wait_until_synced(7)

    assert monitor.polls == 200
    assert monitor.trials_without_progress == 0


def test_max_duration_caps_total_wait(fake_clock):
    gateway = FakeGateway(split=100, progress=[1, 2, 3, 4, 5])
    monitor = make_monitor(gateway, fake_clock, max_duration=1.0)

    with pytest.raises(ReplicationTimeoutError):
        monitor.wait_until_synced(7)

    assert monitor.polls == 3


def test_zero_split_is_synced_immediately(fake_clock):
    gateway = FakeGateway(split=0, progress=[0])
    monitor = make_monitor(gateway, fake_clock)

    monitor.wait_until_synced(7)

    assert monitor.state is SyncState.SYNCED
    assert monitor.polls == 1
    assert fake_clock.sleeps == []


def test_seen_and_synced_are_summed(fake_clock):
    class SplitCounters(FakeGateway):
        def retrieve_tag(self, tag_uid):
            self._record("retrieve_tag", tag_uid)
            return UploadTag(uid=tag_uid, split=10, seen=6, synced=4)

    monitor = make_monitor(SplitCounters(), fake_clock)

    tag = monitor.wait_until_synced(7)

    assert tag.complete
    assert monitor.polls == 1


def test_reporter_notified_every_tick_and_closed(fake_clock):
    reporter = RecordingReporter()
    gateway = FakeGateway(split=500, progress=[100, 250, 500])
    monitor = make_monitor(gateway, fake_clock, reporter=reporter)

    monitor.wait_until_synced(7)

    assert reporter.updates == [(100, 500), (250, 500), (500, 500)]
    assert reporter.closed == 1


def test_tag_errors_propagate_without_retry(fake_clock):
    reporter = RecordingReporter()
    gateway = FakeGateway()
    gateway.fail_on.add("retrieve_tag")
    monitor = make_monitor(gateway, fake_clock, reporter=reporter)

    with pytest.raises(StorageGatewayError):
        monitor.wait_until_synced(7)

    assert len(gateway.called("retrieve_tag")) == 1
    assert reporter.closed == 1


def test_rejects_empty_stall_budget(fake_gateway):
    with pytest.raises(ValueError):
        ReplicationMonitor(fake_gateway, max_stall_trials=0)
