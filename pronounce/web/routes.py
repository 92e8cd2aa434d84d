"""Web UI routes for Pronounce.

Handlers run on Flask's request threads. Session methods are always executed
on the session's UiLoop via ``loop.call``; only device enumeration, which
blocks on an external command, runs on the request thread itself.
"""

import json
import queue
from typing import Any, Callable

from flask import Blueprint, Response, current_app, jsonify, render_template, request

from pronounce.devices import DEFAULT_DEVICE_LABEL
from pronounce.errors import EnumerationFailedError
from pronounce.session import PracticeSession

bp = Blueprint("web", __name__, template_folder="templates")

KEEPALIVE_SECONDS = 15


def _session() -> PracticeSession:
    return current_app.config["SESSION"]


def _apply(fn: Callable[..., None], *args: Any):
    """Run a session method on the UI loop and answer with the new state."""
    session = _session()

    def run():
        fn(*args)
        return session.snapshot()

    return jsonify(session.loop.call(run))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@bp.route("/")
def index():
    return render_template("index.html")


@bp.route("/api/state")
def state():
    session = _session()
    return jsonify(session.loop.call(session.snapshot))


@bp.route("/api/events")
def events():
    session = _session()
    q = session.loop.call(session.subscribe)

    def generate():
        try:
            while True:
                try:
                    snap = q.get(timeout=KEEPALIVE_SECONDS)
                except queue.Empty:
                    yield ": keep-alive\n\n"
                    continue
                if snap is None:  # session shut down
                    break
                yield f"data: {json.dumps(snap)}\n\n"
        finally:
            session.loop.post(session.unsubscribe, q)

    return Response(generate(), mimetype="text/event-stream")


@bp.route("/api/reference", methods=["POST"])
def load_reference():
    data = request.get_json(silent=True) or {}
    path = data.get("path")
    if not isinstance(path, str) or not path.strip():
        return jsonify({"error": "No path provided"}), 400
    return _apply(_session().load_reference, path.strip())


@bp.route("/api/range", methods=["POST"])
def update_range():
    data = request.get_json(silent=True) or {}
    session = _session()
    updates: list[tuple[Callable[..., None], Any]] = []

    for key, setter in (("start", session.set_start_text), ("end", session.set_end_text)):
        if key in data:
            if not isinstance(data[key], str):
                return jsonify({"error": f"'{key}' must be an MM:SS string"}), 400
            updates.append((setter, data[key]))

    for key, setter in (
        ("start_percent", session.set_start_percent),
        ("end_percent", session.set_end_percent),
    ):
        if key in data:
            if not _is_number(data[key]):
                return jsonify({"error": f"'{key}' must be a number"}), 400
            updates.append((setter, data[key]))

    if not updates:
        return jsonify({"error": "Nothing to update"}), 400

    def run():
        for setter, value in updates:
            setter(value)
        return session.snapshot()

    return jsonify(session.loop.call(run))


@bp.route("/api/reference/toggle", methods=["POST"])
def toggle_reference():
    return _apply(_session().toggle_reference_playback)


@bp.route("/api/record/toggle", methods=["POST"])
def toggle_record():
    return _apply(_session().toggle_recording)


@bp.route("/api/recording/toggle", methods=["POST"])
def toggle_recording_playback():
    return _apply(_session().toggle_recording_playback)


@bp.route("/api/devices")
def list_devices():
    session = _session()
    try:
        found = session.list_devices()
    except EnumerationFailedError as e:
        session.loop.call(session.report_error, "Could not list capture devices")
        return jsonify({"error": str(e)}), 502

    session.loop.call(session.devices_listed, found)
    options = [{"id": "", "label": DEFAULT_DEVICE_LABEL}]
    options += [{"id": d.name, "label": d.name} for d in found]
    selected = session.loop.call(lambda: session.settings.device)
    if selected and selected not in {d.name for d in found}:
        # configured device that the listing did not report
        options.append({"id": selected, "label": selected})
    return jsonify({"devices": options, "selected": selected})


@bp.route("/api/devices", methods=["POST"])
def select_device():
    data = request.get_json(silent=True) or {}
    device = data.get("device")
    if not isinstance(device, str):
        return jsonify({"error": "No device provided"}), 400
    if device == DEFAULT_DEVICE_LABEL:
        device = ""
    return _apply(_session().select_device, device)
