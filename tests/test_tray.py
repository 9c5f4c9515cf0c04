from types import SimpleNamespace

import pytest

pytest.importorskip("PySide6.QtWidgets")

from ui.tray import TrayController  # noqa: E402


class _FakeWorker:
    def __init__(self, running: bool, finishes: bool) -> None:
        self.running = running
        self.finishes = finishes
        self.stopped = False
        self.waited = None

    def stop(self) -> None:
        self.stopped = True

    def isRunning(self) -> bool:
        return self.running

    def wait(self, msecs: int) -> bool:
        self.waited = msecs
        return self.finishes


def test_stop_worker_releases_finished_worker():
    worker = _FakeWorker(running=True, finishes=True)
    tray = SimpleNamespace(worker=worker)

    TrayController.stop_worker(tray)

    assert worker.stopped
    assert worker.waited == 15000
    assert tray.worker is None


def test_stop_worker_keeps_worker_that_did_not_stop():
    worker = _FakeWorker(running=True, finishes=False)
    tray = SimpleNamespace(worker=worker)

    TrayController.stop_worker(tray)

    assert worker.stopped
    assert tray.worker is worker


def test_stop_worker_skips_wait_when_idle():
    worker = _FakeWorker(running=False, finishes=False)
    tray = SimpleNamespace(worker=worker)

    TrayController.stop_worker(tray)

    assert worker.waited is None
    assert tray.worker is None
