"""The single serialized execution context that owns session state.

Background work (probes, device listing, process waiters) never touches the
session directly. It posts a callable here, and the loop thread runs posted
callables one at a time in arrival order. Request handlers use ``call`` to run
a session method on the loop and wait for its result.
"""

import logging
import queue
import threading
from concurrent.futures import Future
from typing import Any, Callable

logger = logging.getLogger(__name__)

_STOP = object()


class UiLoop:
    def __init__(self, name: str = "pronounce-ui") -> None:
        self._name = name
        self._queue: queue.Queue = queue.Queue()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._stopping = False

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "UiLoop":
        with self._lock:
            if not self.running:
                self._stopping = False
                self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
                self._thread.start()
        return self

    def stop(self, timeout: float | None = 5.0) -> None:
        """Finish the callables already queued, then end the loop thread."""
        with self._lock:
            if not self.running or self._stopping:
                return
            self._stopping = True
            self._queue.put(_STOP)
        if not self.in_loop_thread():
            self._thread.join(timeout)

    def in_loop_thread(self) -> bool:
        return self._thread is not None and threading.current_thread() is self._thread

    def post(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """Queue ``fn`` to run on the loop thread; returns immediately.

        Callables posted once the loop is stopping are dropped.
        """
        with self._lock:
            if self._stopping:
                logger.debug("UI loop stopping; dropping %r", fn)
                return
            self._queue.put((fn, args, kwargs, None))

    def call(
        self,
        fn: Callable[..., Any],
        *args: Any,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> Any:
        """Run ``fn`` on the loop thread and return its result (or raise its error)."""
        if self.in_loop_thread():
            return fn(*args, **kwargs)
        future: Future = Future()
        with self._lock:
            if not self.running or self._stopping:
                raise RuntimeError("UI loop is not running")
            self._queue.put((fn, args, kwargs, future))
        return future.result(timeout)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                break
            fn, args, kwargs, future = item
            if future is not None and not future.set_running_or_notify_cancel():
                continue
            try:
                result = fn(*args, **kwargs)
            except Exception as e:
                if future is None:
                    logger.exception("Posted callback %r failed", fn)
                else:
                    future.set_exception(e)
            else:
                if future is not None:
                    future.set_result(result)
        self._fail_pending()

    def _fail_pending(self) -> None:
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return
            if item is _STOP:
                continue
            fn, _args, _kwargs, future = item
            if future is not None and future.set_running_or_notify_cancel():
                future.set_exception(RuntimeError("UI loop is not running"))
            else:
                logger.debug("UI loop stopped; dropping %r", fn)
