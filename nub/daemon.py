"""
Background daemon lifecycle and scheduling.

The daemon is a detached child process that runs the pipeline once right
away and then once per interval tick, forever. A PID file is the only
record of a running daemon: the daemon is considered running when the
file holds the id of a live process. There is no lock around the
check-then-write of that file, so two concurrent starts can race.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
import signal
import subprocess
import sys
import time
from typing import Callable

from .config import AppPaths, effective_schedule_minutes, load_config
from .errors import AlreadyRunningError, NotRunningError, NubError, StorageError
from .logging_utils import setup_logging
from .runner import run_once


class ProcessSupervisor:
    """Starts, stops and probes the background daemon.

    Attributes:
        pid_path: File holding the daemon's process id
        log_path: Append-only file receiving the daemon's output
    """

    def __init__(self, pid_path: Path, log_path: Path):
        self.pid_path = pid_path
        self.log_path = log_path

    def read_pid(self) -> int | None:
        try:
            raw = self.pid_path.read_text(encoding="utf-8").strip()
        except OSError:
            return None
        try:
            pid = int(raw)
        except ValueError:
            return None
        return pid if pid > 0 else None

    def status(self) -> tuple[bool, int]:
        """Report whether a daemon is alive.

        A PID file that points at a dead process is deleted.

        Returns:
            (True, pid) when running, (False, 0) otherwise
        """
        pid = self.read_pid()
        if pid is None:
            return False, 0
        if not _pid_alive(pid):
            self._remove_pid_file()
            return False, 0
        return True, pid

    def start(self, argv: list[str]) -> int:
        """Spawn the daemon detached from this process and record its pid.

        Returns immediately without waiting on the child.

        Raises:
            AlreadyRunningError: If a live daemon is already recorded
            StorageError: If the log or PID file cannot be written
        """
        running, pid = self.status()
        if running:
            raise AlreadyRunningError(pid)

        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as log_file:
                child_pid = _spawn(argv, log_file)
        except OSError as exc:
            raise StorageError(f"failed to start daemon: {exc}") from exc

        try:
            self.pid_path.write_text(str(child_pid), encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"failed to write PID file: {exc}") from exc
        return child_pid

    def stop(self) -> int:
        """Send a termination signal to the daemon and forget its pid.

        Does not wait for the process to exit.

        Raises:
            NotRunningError: If no live daemon is recorded
        """
        running, pid = self.status()
        if not running:
            raise NotRunningError()
        _terminate(pid)
        self._remove_pid_file()
        return pid

    def _remove_pid_file(self) -> None:
        try:
            self.pid_path.unlink()
        except FileNotFoundError:
            pass


def _pid_alive(pid: int) -> bool:
    """Probe for a process without delivering a signal."""
    if os.name == "nt":
        return _windows_pid_alive(pid)
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists, but owned by another user.
        return True
    except OSError:
        return False
    return True


def _windows_pid_alive(pid: int) -> bool:
    import ctypes

    process_query_limited_information = 0x1000
    still_active = 259
    kernel32 = ctypes.windll.kernel32
    handle = kernel32.OpenProcess(process_query_limited_information, False, pid)
    if not handle:
        return False
    try:
        exit_code = ctypes.c_ulong()
        if not kernel32.GetExitCodeProcess(handle, ctypes.byref(exit_code)):
            return False
        return exit_code.value == still_active
    finally:
        kernel32.CloseHandle(handle)


def _terminate(pid: int) -> None:
    os.kill(pid, signal.SIGTERM)


def _spawn(argv: list[str], log_file) -> int:
    kwargs: dict = {
        "stdin": subprocess.DEVNULL,
        "stdout": log_file,
        "stderr": log_file,
        "close_fds": True,
    }
    if os.name == "nt":
        kwargs["creationflags"] = subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
    else:
        kwargs["start_new_session"] = True
    proc = subprocess.Popen(argv, **kwargs)
    # The child outlives this process; mark it reaped so Popen.__del__
    # does not warn that it is still running.
    proc.returncode = 0
    return proc.pid


def daemon_child_argv(paths: AppPaths) -> list[str]:
    """Command line that re-executes nub as the daemon child."""
    return [
        sys.executable,
        "-m",
        "nub",
        "--config",
        str(paths.config_path),
        "--data-dir",
        str(paths.data_dir),
        "daemon-child",
    ]


class IntervalTimer:
    """Fixed-interval ticker.

    Ticks fall on a grid anchored at construction time. When the caller
    falls behind, one pending tick fires immediately and any further missed
    grid points are dropped.
    """

    def __init__(
        self,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.clock = clock
        self.sleep = sleep
        self._next = clock() + interval

    def wait(self) -> None:
        now = self.clock()
        if now < self._next:
            self.sleep(self._next - now)
            self._next += self.interval
            return
        missed = int((now - self._next) // self.interval) + 1
        self._next += missed * self.interval


def run_forever(
    run: Callable[[], object],
    interval_seconds: float,
    logger: logging.Logger | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    max_ticks: int | None = None,
) -> None:
    """Run once immediately, then once per timer tick.

    Exceptions raised by a run are logged and never stop the loop.
    max_ticks bounds the number of scheduled runs (None means forever).
    """
    logger = logger or logging.getLogger("nub")
    timer = IntervalTimer(interval_seconds, clock=clock, sleep=sleep)
    _run_logged(run, logger, "Error in initial run")

    ticks = 0
    while max_ticks is None or ticks < max_ticks:
        timer.wait()
        ticks += 1
        logger.info("Starting scheduled crawl...")
        _run_logged(run, logger, "Error")


def _run_logged(run: Callable[[], object], logger: logging.Logger, prefix: str) -> None:
    try:
        run()
    except Exception as exc:  # noqa: BLE001
        logger.error("%s: %s", prefix, exc, exc_info=not isinstance(exc, NubError))


def _install_signal_handlers(logger: logging.Logger) -> None:
    def _handle(signum, _frame):
        logger.info("Received signal %d, daemon exiting", signum)
        raise SystemExit(0)

    signal.signal(signal.SIGTERM, _handle)
    signal.signal(signal.SIGINT, _handle)


def daemon_main(paths: AppPaths) -> None:
    """Entry point of the detached daemon child process.

    The config file is re-read before every run so source changes apply
    without a restart; the interval is fixed at startup.
    """
    cfg = load_config(paths.config_path)
    logger = setup_logging(cfg.logging, paths.log_path, console=False)
    _install_signal_handlers(logger)

    interval = effective_schedule_minutes(cfg)
    logger.info("Daemon started (PID: %d), crawling every %d minutes", os.getpid(), interval)

    def _run() -> None:
        run_once(load_config(paths.config_path), paths, logger)

    run_forever(_run, interval * 60, logger=logger)
