"""Tests for daemon supervision and interval scheduling."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from nub import daemon
from nub.daemon import IntervalTimer, ProcessSupervisor, daemon_child_argv, run_forever
from nub.errors import AlreadyRunningError, NotRunningError


class FakeClock:
    """Monotonic clock advanced only by sleeps and explicit work."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def supervisor(paths) -> ProcessSupervisor:
    paths.data_dir.mkdir(parents=True)
    return ProcessSupervisor(paths.pid_path, paths.log_path)


def test_status_without_pid_file(supervisor: ProcessSupervisor):
    assert supervisor.status() == (False, 0)


def test_status_with_garbage_pid_file(supervisor: ProcessSupervisor):
    supervisor.pid_path.write_text("not-a-pid", encoding="utf-8")

    assert supervisor.status() == (False, 0)


def test_status_removes_stale_pid_file(supervisor: ProcessSupervisor, monkeypatch):
    supervisor.pid_path.write_text("4242", encoding="utf-8")
    monkeypatch.setattr(daemon, "_pid_alive", lambda pid: False)

    assert supervisor.status() == (False, 0)
    assert not supervisor.pid_path.exists()


def test_status_reports_live_daemon(supervisor: ProcessSupervisor, monkeypatch):
    supervisor.pid_path.write_text("4242\n", encoding="utf-8")
    monkeypatch.setattr(daemon, "_pid_alive", lambda pid: pid == 4242)

    assert supervisor.status() == (True, 4242)


def test_start_spawns_child_and_records_pid(supervisor: ProcessSupervisor, monkeypatch):
    spawned = []

    def fake_spawn(argv, log_file):
        spawned.append((argv, str(log_file.name)))
        return 5151

    monkeypatch.setattr(daemon, "_spawn", fake_spawn)

    pid = supervisor.start(["nub", "daemon-child"])

    assert pid == 5151
    assert supervisor.pid_path.read_text(encoding="utf-8") == "5151"
    assert spawned == [(["nub", "daemon-child"], str(supervisor.log_path))]
    assert supervisor.log_path.exists()


def test_second_start_while_running_is_refused(supervisor: ProcessSupervisor, monkeypatch):
    monkeypatch.setattr(daemon, "_spawn", lambda argv, log_file: 5151)
    monkeypatch.setattr(daemon, "_pid_alive", lambda pid: True)
    supervisor.start(["nub", "daemon-child"])

    with pytest.raises(AlreadyRunningError) as excinfo:
        supervisor.start(["nub", "daemon-child"])

    assert excinfo.value.pid == 5151
    assert supervisor.pid_path.read_text(encoding="utf-8") == "5151"


def test_start_replaces_stale_pid_file(supervisor: ProcessSupervisor, monkeypatch):
    supervisor.pid_path.write_text("4242", encoding="utf-8")
    monkeypatch.setattr(daemon, "_pid_alive", lambda pid: False)
    monkeypatch.setattr(daemon, "_spawn", lambda argv, log_file: 5151)

    assert supervisor.start(["nub"]) == 5151
    assert supervisor.read_pid() == 5151


def test_stop_without_pid_file(supervisor: ProcessSupervisor):
    with pytest.raises(NotRunningError):
        supervisor.stop()


def test_stop_with_stale_pid_file(supervisor: ProcessSupervisor, monkeypatch):
    supervisor.pid_path.write_text("4242", encoding="utf-8")
    monkeypatch.setattr(daemon, "_pid_alive", lambda pid: False)
    monkeypatch.setattr(daemon, "_terminate", lambda pid: pytest.fail("signalled a dead process"))

    with pytest.raises(NotRunningError):
        supervisor.stop()
    assert not supervisor.pid_path.exists()


def test_stop_signals_daemon_and_removes_pid_file(supervisor: ProcessSupervisor, monkeypatch):
    supervisor.pid_path.write_text("4242", encoding="utf-8")
    terminated = []
    monkeypatch.setattr(daemon, "_pid_alive", lambda pid: True)
    monkeypatch.setattr(daemon, "_terminate", terminated.append)

    assert supervisor.stop() == 4242
    assert terminated == [4242]
    assert not supervisor.pid_path.exists()


def test_daemon_child_argv_forwards_paths(paths):
    argv = daemon_child_argv(paths)

    assert argv[1:3] == ["-m", "nub"]
    assert argv[-1] == "daemon-child"
    assert argv[argv.index("--config") + 1] == str(paths.config_path)
    assert argv[argv.index("--data-dir") + 1] == str(paths.data_dir)


def test_interval_timer_sleeps_to_grid():
    clock = FakeClock()
    timer = IntervalTimer(60, clock=clock, sleep=clock.sleep)

    clock.now += 10  # work done by the caller
    timer.wait()
    clock.now += 5
    timer.wait()

    assert clock.sleeps == [50, 55]
    assert clock.now == 1120


def test_interval_timer_fires_once_after_overrun_and_drops_missed_ticks():
    clock = FakeClock()
    timer = IntervalTimer(60, clock=clock, sleep=clock.sleep)

    clock.now += 200  # three grid points missed
    timer.wait()
    assert clock.sleeps == []

    timer.wait()
    assert clock.sleeps == [40]
    assert clock.now == 1240


def test_interval_timer_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        IntervalTimer(0)


def test_run_forever_runs_immediately_then_per_tick():
    clock = FakeClock()
    runs = []

    run_forever(lambda: runs.append(clock()), 60, clock=clock, sleep=clock.sleep, max_ticks=3)

    assert runs == [1000, 1060, 1120, 1180]


def test_run_forever_survives_failing_runs(caplog):
    clock = FakeClock()
    attempts = []

    def flaky():
        attempts.append(clock())
        if len(attempts) % 2 == 1:
            raise RuntimeError("boom")

    logger = logging.getLogger("tests.daemon")
    with caplog.at_level(logging.ERROR, logger="tests.daemon"):
        run_forever(flaky, 60, logger=logger, clock=clock, sleep=clock.sleep, max_ticks=2)

    assert len(attempts) == 3
    assert "Error in initial run: boom" in caplog.text


def test_pid_alive_for_current_process():
    import os

    assert daemon._pid_alive(os.getpid()) is True


def test_read_pid_ignores_unreadable_file(tmp_path: Path):
    sup = ProcessSupervisor(tmp_path / "missing" / "nub.pid", tmp_path / "nub.log")

    assert sup.read_pid() is None


def test_spawn_detaches_child_and_marks_it_reaped(monkeypatch, tmp_path: Path):
    created = []

    class FakePopen:
        def __init__(self, argv, **kwargs):
            self.argv = argv
            self.kwargs = kwargs
            self.pid = 6262
            self.returncode = None
            created.append(self)

    monkeypatch.setattr(daemon.subprocess, "Popen", FakePopen)

    with open(tmp_path / "nub.log", "a", encoding="utf-8") as log_file:
        pid = daemon._spawn(["nub", "daemon-child"], log_file)

    [proc] = created
    assert pid == 6262
    assert proc.returncode == 0
    assert proc.kwargs["stdin"] is daemon.subprocess.DEVNULL
    assert proc.kwargs["stdout"] is log_file
    if daemon.os.name != "nt":
        assert proc.kwargs["start_new_session"] is True
