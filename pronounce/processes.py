"""Lifecycle of the external record/playback processes.

Each operation kind has exactly one ProcessHandle. A handle owns at most one
child process at a time; ownership is handed back either by the background
waiter when the process exits on its own, or by ``stop``. Which of the two
happens is decided under a lock, so the exit callback fires at most once per
process and never after an explicit stop.
"""

import logging
import subprocess
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable

from pronounce.errors import SpawnFailedError

logger = logging.getLogger(__name__)


class OperationKind(str, Enum):
    RECORD = "record"
    PLAY_REFERENCE = "play_reference"
    PLAY_RECORDING = "play_recording"


class ProcessState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


ExitCallback = Callable[[OperationKind, int], None]


@dataclass
class ProcessHandle:
    kind: OperationKind
    process: subprocess.Popen | None = None
    on_exit: ExitCallback | None = None
    # temporary files that belong to this run and go away with it
    cleanup: list[Path] = field(default_factory=list)

    @property
    def state(self) -> ProcessState:
        return ProcessState.IDLE if self.process is None else ProcessState.RUNNING


def remove_files(paths: Iterable[Path]) -> None:
    for path in paths:
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove temporary file %s: %s", path, e)


def _run_inline(fn: Callable, *args) -> None:
    fn(*args)


class ProcessController:
    """Starts, stops and watches one child process per OperationKind.

    Args:
        post: how exit callbacks reach the UI context, e.g. ``UiLoop.post``.
            Defaults to calling them inline on the waiter thread.
        stop_timeout: seconds to wait after terminate before killing.
    """

    def __init__(
        self,
        post: Callable[..., None] | None = None,
        stop_timeout: float = 2.0,
    ) -> None:
        self._post = post or _run_inline
        self.stop_timeout = stop_timeout
        self._lock = threading.Lock()
        self._handles = {kind: ProcessHandle(kind=kind) for kind in OperationKind}

    def handle(self, kind: OperationKind) -> ProcessHandle:
        return self._handles[kind]

    def state(self, kind: OperationKind) -> ProcessState:
        return self._handles[kind].state

    def is_running(self, kind: OperationKind) -> bool:
        return self.state(kind) is ProcessState.RUNNING

    def running(self) -> list[OperationKind]:
        with self._lock:
            return [k for k, h in self._handles.items() if h.process is not None]

    def start(
        self,
        kind: OperationKind,
        command: list[str],
        on_exit: ExitCallback | None = None,
        cleanup: Iterable[Path] = (),
    ) -> ProcessHandle:
        """Spawn ``command`` for ``kind`` and start waiting for it in the background.

        Files in ``cleanup`` are deleted when this run ends, however it ends,
        including when the spawn itself fails.

        Raises:
            SpawnFailedError: the binary is missing or not executable.
            RuntimeError: ``kind`` already has a running process.
        """
        handle = self._handles[kind]
        cleanup = [Path(p) for p in cleanup]
        with self._lock:
            if handle.process is not None:
                remove_files(cleanup)
                raise RuntimeError(f"{kind.value} is already running")
            logger.info("Executing command: %s", command)
            try:
                proc = subprocess.Popen(
                    command,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                )
            except OSError as e:
                remove_files(cleanup)
                raise SpawnFailedError(f"Could not start {command[0]}: {e.strerror or e}") from e
            handle.process = proc
            handle.on_exit = on_exit
            handle.cleanup = cleanup

        threading.Thread(
            target=self._await_completion,
            args=(handle, proc),
            name=f"wait-{kind.value}",
            daemon=True,
        ).start()
        return handle

    def _await_completion(self, handle: ProcessHandle, proc: subprocess.Popen) -> None:
        returncode = proc.wait()
        with self._lock:
            if handle.process is not proc:
                # stop() already took this process over
                return
            handle.process = None
            on_exit, handle.on_exit = handle.on_exit, None
            cleanup, handle.cleanup = handle.cleanup, []

        remove_files(cleanup)
        logger.info("%s process exited with code %s", handle.kind.value, returncode)
        if on_exit is not None:
            self._post(on_exit, handle.kind, returncode)

    def stop(self, kind: OperationKind) -> bool:
        """Terminate the process for ``kind`` and reap it.

        Waits up to ``stop_timeout`` seconds after terminating, then kills.
        Returns False (and does nothing) when nothing was running.
        """
        handle = self._handles[kind]
        with self._lock:
            proc = handle.process
            if proc is None:
                return False
            handle.process = None
            handle.on_exit = None
            cleanup, handle.cleanup = handle.cleanup, []

        self._terminate(kind, proc)
        remove_files(cleanup)
        return True

    def _terminate(self, kind: OperationKind, proc: subprocess.Popen) -> None:
        proc.terminate()
        try:
            proc.wait(timeout=self.stop_timeout)
        except subprocess.TimeoutExpired:
            logger.warning(
                "%s process did not exit %.1fs after terminate; killing",
                kind.value,
                self.stop_timeout,
            )
            proc.kill()
            proc.wait()

    def stop_all(self) -> list[OperationKind]:
        """Stop every running process. Returns the kinds that were stopped."""
        return [kind for kind in self.running() if self.stop(kind)]
