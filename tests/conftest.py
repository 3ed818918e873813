"""Pytest configuration and fixtures."""

import asyncio
import itertools
import sys
from pathlib import Path

import pytest

# Add src directory to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))


class RecordingNotifier:
    """Notifier that keeps every message for assertions."""

    def __init__(self):
        self.infos: list[str] = []
        self.warnings: list[str] = []
        self.errors: list[str] = []

    def info(self, msg: str) -> None:
        self.infos.append(msg)

    def warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def error(self, msg: str) -> None:
        self.errors.append(msg)


class FakeTimerHandle:
    """Stand-in for asyncio.TimerHandle."""

    def __init__(self, when, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    """Manual-clock loop supporting call_later, for deterministic timer tests."""

    def __init__(self):
        self.now = 0.0
        self.timers: list[FakeTimerHandle] = []

    def time(self) -> float:
        return self.now

    def call_later(self, delay, callback, *args):
        handle = FakeTimerHandle(self.now + delay, callback, args)
        self.timers.append(handle)
        return handle

    def advance(self, seconds: float) -> None:
        """Move the clock forward, running due timers in order."""
        target = self.now + seconds
        while True:
            due = [t for t in self.timers if not t.cancelled and t.when <= target + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self.timers.remove(timer)
            self.now = max(self.now, timer.when)
            timer.callback(*timer.args)
        self.now = target


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process.

    exit_on_terminate_after: seconds until the process exits after SIGTERM,
    or None to ignore SIGTERM entirely.
    """

    _pids = itertools.count(1000)

    def __init__(self, exit_on_terminate_after: float | None = 0.0):
        self.pid = next(self._pids)
        self.returncode = None
        self.exit_on_terminate_after = exit_on_terminate_after
        self.signals: list[str] = []
        self.stdin = None
        self.stdout = None
        self.stderr = None
        self._exited = asyncio.Event()

    def terminate(self):
        self.signals.append("SIGTERM")
        if self.exit_on_terminate_after is not None:
            asyncio.get_running_loop().call_later(self.exit_on_terminate_after, self.exit, -15)

    def kill(self):
        self.signals.append("SIGKILL")
        self.exit(-9)

    def exit(self, code: int):
        if self.returncode is None:
            self.returncode = code
            self._exited.set()

    async def wait(self):
        await self._exited.wait()
        return self.returncode


class FakeSpawner:
    """Replacement for asyncio.create_subprocess_shell."""

    def __init__(self):
        self.processes: list[FakeProcess] = []
        self.commands: list[str] = []
        self.envs: list[dict] = []
        self.exit_on_terminate_after: float | None = 0.0
        self.error: Exception | None = None
        self.max_live = 0
        self.delay = 0.0
        self.in_flight = 0

    def live(self) -> list[FakeProcess]:
        return [p for p in self.processes if p.returncode is None]

    async def __call__(self, cmd, **kwargs):
        if self.error is not None:
            raise self.error
        if self.delay:
            self.in_flight += 1
            try:
                await asyncio.sleep(self.delay)
            finally:
                self.in_flight -= 1
        self.commands.append(cmd)
        self.envs.append(kwargs.get("env"))
        process = FakeProcess(self.exit_on_terminate_after)
        self.processes.append(process)
        self.max_live = max(self.max_live, len(self.live()))
        return process


class FakeWatch:
    def __init__(self, path, recursive):
        self.path = path
        self.recursive = recursive


class FakeObserver:
    """Stand-in for watchdog's Observer."""

    def __init__(self, fail_paths=()):
        self.fail_paths = set(fail_paths)
        self.scheduled: dict[FakeWatch, object] = {}
        self.started = False
        self.stopped = False
        self.daemon = False

    def start(self):
        self.started = True

    def is_alive(self):
        return self.started and not self.stopped

    def stop(self):
        self.stopped = True

    def join(self, timeout=None):
        pass

    def schedule(self, handler, path, recursive=False):
        if path in self.fail_paths:
            raise FileNotFoundError(f"No such directory: {path}")
        watch = FakeWatch(path, recursive)
        self.scheduled[watch] = handler
        return watch

    def unschedule(self, watch):
        del self.scheduled[watch]

    @property
    def paths(self) -> list[str]:
        return [w.path for w in self.scheduled]


class FakeWatchSet:
    """ChangeSource that records rebuilds and exposes the event callback."""

    def __init__(self, fail: Exception | None = None):
        self.fail = fail
        self.rebuilds: list[list[Path]] = []
        self.on_event = None
        self.teardowns = 0
        self._directories: list[Path] = []

    def rebuild(self, directories, on_event):
        if self.fail is not None:
            raise self.fail
        self._directories = list(directories)
        self.rebuilds.append(self._directories)
        self.on_event = on_event

    def teardown(self):
        self.teardowns += 1
        self._directories = []

    def __len__(self):
        return len(self._directories)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def fake_loop():
    return FakeLoop()


@pytest.fixture
def spawner(monkeypatch):
    """Patch subprocess creation with FakeSpawner."""
    fake = FakeSpawner()
    monkeypatch.setattr(asyncio, "create_subprocess_shell", fake)
    return fake


@pytest.fixture
def wait_until():
    """Poll a predicate on the running loop until it holds."""

    async def _wait_until(predicate, timeout: float = 5.0, interval: float = 0.01):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("Condition not met before timeout")
            await asyncio.sleep(interval)

    return _wait_until
