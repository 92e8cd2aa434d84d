"""Practice session — reference clip, selected range, recorder and players.

A PracticeSession is the controller behind the UI. Its public methods must run
on the UiLoop thread; long-running work (probing, waiting for players) happens
on background threads that post their results back through the loop. After
every change the session pushes a fresh ``snapshot()`` to its subscribers.
"""

import logging
import os
import queue
import subprocess
import tempfile
import threading
from pathlib import Path
from typing import Any

from pronounce import devices, ffutil
from pronounce.dispatch import UiLoop
from pronounce.errors import (
    InvalidRangeError,
    ParseFailedError,
    ProbeFailedError,
    ReferenceNotFoundError,
    SpawnFailedError,
)
from pronounce.models import InputDevice, PlaybackWindow, TimeRange
from pronounce.platforms import AudioPlatform
from pronounce.processes import OperationKind, ProcessController, remove_files
from pronounce.settings import RecorderSettings
from pronounce.timecode import format_time

logger = logging.getLogger(__name__)

# (idle label, running label)
BUTTON_LABELS = {
    OperationKind.PLAY_REFERENCE: ("Play Reference", "Stop Reference"),
    OperationKind.RECORD: ("Record", "Stop"),
    OperationKind.PLAY_RECORDING: ("Play Recording", "Stop Playing"),
}

_FINISHED_STATUS = {
    OperationKind.PLAY_REFERENCE: "Reference playback finished",
    OperationKind.PLAY_RECORDING: "Recording playback finished",
}


def _existing_file(path: str | Path) -> Path:
    path = Path(path).expanduser()
    if not path.is_file():
        raise ReferenceNotFoundError(f"File not found: {path}")
    return path


class PracticeSession:
    def __init__(
        self,
        loop: UiLoop,
        platform: AudioPlatform,
        settings: RecorderSettings | None = None,
        processes: ProcessController | None = None,
    ) -> None:
        self.loop = loop
        self.platform = platform
        self.settings = settings or RecorderSettings()
        self.processes = processes or ProcessController(
            post=loop.post, stop_timeout=self.settings.stop_timeout
        )
        self.time_range = TimeRange()
        self.reference_file: Path | None = None
        self.range_enabled = False
        self.devices: list[InputDevice] = []
        self.status = "Ready to record"
        self.error: str | None = None
        self._probe_generation = 0
        self._probe_thread: threading.Thread | None = None
        self._listeners: list[queue.Queue] = []

    @property
    def recording_path(self) -> Path:
        return self.settings.recording_path

    # --- status & subscribers ---

    def _set_status(self, message: str) -> None:
        self.status = message
        self.error = None

    def _fail(self, message: str, exc: Exception | None = None) -> None:
        if exc is not None:
            logger.warning("%s: %s", message, exc)
        else:
            logger.warning("%s", message)
        self.status = message
        self.error = message

    def report_error(self, message: str) -> None:
        """Surface an error raised outside the session (e.g. by a request thread)."""
        self._fail(message)
        self._publish()

    def subscribe(self) -> queue.Queue:
        """Return a queue that receives a snapshot after every change.

        ``None`` is put on the queue when the session shuts down.
        """
        q: queue.Queue = queue.Queue()
        q.put(self.snapshot())
        self._listeners.append(q)
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        if q in self._listeners:
            self._listeners.remove(q)

    def _publish(self) -> None:
        snap = self.snapshot()
        for q in list(self._listeners):
            q.put(snap)

    def snapshot(self) -> dict[str, Any]:
        tr = self.time_range
        running = set(self.processes.running())

        def button(kind: OperationKind, enabled: bool) -> dict[str, Any]:
            idle, active = BUTTON_LABELS[kind]
            return {
                "label": active if kind in running else idle,
                "running": kind in running,
                "enabled": enabled,
            }

        recording = OperationKind.RECORD in running
        can_play_recording = not recording and (
            OperationKind.PLAY_RECORDING in running or self.recording_path.is_file()
        )
        if self.reference_file is not None:
            duration_text = f"Duration: {format_time(tr.clip_duration)}"
        else:
            duration_text = "No reference file loaded"

        return {
            "status": self.status,
            "error": self.error,
            "reference": str(self.reference_file) if self.reference_file else None,
            "duration": tr.clip_duration,
            "duration_text": duration_text,
            "range": {
                "start": tr.start,
                "end": tr.end,
                "start_text": tr.start_text,
                "end_text": tr.end_text,
                "start_percent": tr.start_percent,
                "end_percent": tr.end_percent,
                "enabled": self.range_enabled,
            },
            "device": self.settings.device,
            "recording_path": str(self.recording_path),
            "buttons": {
                "play_reference": button(OperationKind.PLAY_REFERENCE, self.range_enabled),
                "record": button(OperationKind.RECORD, True),
                "play_recording": button(OperationKind.PLAY_RECORDING, can_play_recording),
            },
            "running": sorted(k.value for k in running),
        }

    # --- reference clip ---

    def load_reference(self, path: str | Path) -> None:
        """Select a reference clip and probe its duration in the background.

        Each call starts a new probe; only the latest one may update the range.
        """
        try:
            path = _existing_file(path)
        except ReferenceNotFoundError as e:
            self._fail(str(e))
            self._publish()
            return

        self._probe_generation += 1
        self.range_enabled = False
        self._set_status("Loading reference file...")
        self._probe_thread = threading.Thread(
            target=self._probe,
            args=(path, self._probe_generation),
            name="probe-duration",
            daemon=True,
        )
        self._probe_thread.start()
        self._publish()

    def _probe(self, path: Path, generation: int) -> None:
        # runs on the probe thread: no session state is touched here
        try:
            duration = ffutil.probe_duration(path, cmd=self.platform.build_probe_command(path))
        except ProbeFailedError as e:
            self.loop.post(
                self._probe_failed,
                generation,
                "Error reading audio file. Make sure ffmpeg is installed.",
                e,
            )
        except ParseFailedError as e:
            self.loop.post(self._probe_failed, generation, "Error parsing audio duration", e)
        else:
            self.loop.post(self._probe_done, generation, path, duration)

    def _probe_done(self, generation: int, path: Path, duration: float) -> None:
        if generation != self._probe_generation:
            logger.debug("Discarding superseded probe result for %s", path)
            return
        if self.processes.is_running(OperationKind.PLAY_REFERENCE):
            self.processes.stop(OperationKind.PLAY_REFERENCE)
        self.reference_file = path
        self.time_range.reset_to_clip(duration)
        self.range_enabled = True
        self._set_status(f"Reference loaded: {path.name}")
        self._publish()

    def _probe_failed(self, generation: int, message: str, exc: Exception) -> None:
        if generation != self._probe_generation:
            return
        # the previous clip, if any, is still loaded and usable
        self.range_enabled = self.reference_file is not None
        self._fail(message, exc)
        self._publish()

    # --- range inputs ---

    def set_start_text(self, text: str) -> None:
        self.time_range.set_start_text(text)
        self._publish()

    def set_end_text(self, text: str) -> None:
        self.time_range.set_end_text(text)
        self._publish()

    def set_start_percent(self, percent: float) -> None:
        self.time_range.set_start_percent(percent)
        self._publish()

    def set_end_percent(self, percent: float) -> None:
        self.time_range.set_end_percent(percent)
        self._publish()

    # --- reference playback ---

    def toggle_reference_playback(self) -> None:
        if self.processes.stop(OperationKind.PLAY_REFERENCE):
            self._set_status("Reference playback stopped")
        else:
            self._play_reference()
        self._publish()

    def _play_reference(self) -> None:
        if self.reference_file is None:
            self._fail("No reference file loaded")
            return
        if not self.range_enabled:
            self._fail("Reference file is still loading")
            return
        try:
            window = self.time_range.validate_for_playback()
        except InvalidRangeError as e:
            self._fail(str(e))
            return

        try:
            self._start_reference(window)
        except SpawnFailedError as e:
            self._fail("Error starting reference playback", e)
        except (OSError, subprocess.CalledProcessError) as e:
            self._fail("Error extracting audio segment", e)
        else:
            self._set_status(f"Playing reference ({window.duration:.1f}s)")

    def _start_reference(self, window: PlaybackWindow) -> None:
        if not self.platform.needs_segment_extraction:
            cmd = self.platform.build_playback_command(
                self.reference_file, start=window.start, duration=window.duration
            )
            self.processes.start(OperationKind.PLAY_REFERENCE, cmd, on_exit=self._process_exited)
            return

        # The player cannot seek: cut the range into a temp file first. The
        # file is owned by the playback run and removed when it ends.
        fd, name = tempfile.mkstemp(prefix="pronounce_segment_", suffix=".wav")
        os.close(fd)
        segment = Path(name)
        try:
            ffutil.extract_segment(
                self.reference_file,
                window.start,
                window.duration,
                segment,
                cmd=self.platform.build_extract_command(
                    self.reference_file, window.start, window.duration, segment
                ),
            )
        except (OSError, subprocess.CalledProcessError):
            remove_files([segment])
            raise
        self.processes.start(
            OperationKind.PLAY_REFERENCE,
            self.platform.build_playback_command(segment),
            on_exit=self._process_exited,
            cleanup=[segment],
        )

    # --- recording ---

    def toggle_recording(self) -> None:
        if self.processes.stop(OperationKind.RECORD):
            self._set_status(f"Recording saved to {self.recording_path}")
        else:
            self._start_recording()
        self._publish()

    def _start_recording(self) -> None:
        # the file a running player reads is about to be overwritten
        self.processes.stop(OperationKind.PLAY_RECORDING)
        cmd = self.platform.build_record_command(self.recording_path, self.settings.device)
        try:
            self.processes.start(OperationKind.RECORD, cmd, on_exit=self._process_exited)
        except SpawnFailedError as e:
            self._fail(f"Error starting recording: {e}", e)
        else:
            self._set_status("Recording...")

    def toggle_recording_playback(self) -> None:
        if self.processes.stop(OperationKind.PLAY_RECORDING):
            self._set_status("Recording playback stopped")
        else:
            self._play_recording()
        self._publish()

    def _play_recording(self) -> None:
        if self.processes.is_running(OperationKind.RECORD):
            self._fail("Stop recording before playing it back")
            return
        if not self.recording_path.is_file():
            self._fail("No recording found")
            return
        cmd = self.platform.build_playback_command(self.recording_path)
        try:
            self.processes.start(OperationKind.PLAY_RECORDING, cmd, on_exit=self._process_exited)
        except SpawnFailedError as e:
            self._fail("Error starting recording playback", e)
        else:
            self._set_status("Playing recording...")

    def _process_exited(self, kind: OperationKind, returncode: int) -> None:
        if self.processes.is_running(kind):
            # a newer run of the same kind started before this callback ran
            self._publish()
            return
        if kind is OperationKind.RECORD:
            if returncode == 0:
                self._set_status(f"Recording saved to {self.recording_path}")
            else:
                self._fail(f"Recording stopped unexpectedly (exit code {returncode})")
        else:
            self._set_status(_FINISHED_STATUS[kind])
        self._publish()

    # --- input devices ---

    def list_devices(self) -> list[InputDevice]:
        """Enumerate capture devices.

        Blocks on the listing command, so call it from a background thread;
        it does not touch session state.
        """
        return devices.list_input_devices(self.platform)

    def devices_listed(self, found: list[InputDevice]) -> None:
        self.devices = list(found)
        if found:
            self._set_status(f"Found {len(found)} capture device(s)")
        else:
            self._set_status("No capture devices found")
        self._publish()

    def select_device(self, name: str) -> None:
        """Use ``name`` for the next recording; an empty name means the system default."""
        self.settings.device = name
        label = name or devices.DEFAULT_DEVICE_LABEL
        logger.info("Recording device: %s", label)
        self._set_status(f"Input device: {label}")
        self._publish()

    # --- lifecycle ---

    def shutdown(self) -> None:
        """Stop every external process and end all subscriber streams."""
        stopped = self.processes.stop_all()
        if stopped:
            logger.info("Stopped on shutdown: %s", ", ".join(k.value for k in stopped))
        for q in list(self._listeners):
            q.put(None)
        self._listeners.clear()
