"""Flask application factory for the Pronounce web UI."""

from flask import Flask, jsonify

from pronounce.dispatch import UiLoop
from pronounce.platforms import detect_platform
from pronounce.session import PracticeSession
from pronounce.settings import Settings


def create_app(
    session: PracticeSession | None = None,
    settings: Settings | None = None,
) -> Flask:
    settings = settings or Settings()
    if session is None:
        loop = UiLoop().start()
        session = PracticeSession(loop, detect_platform(), settings.recorder)

    app = Flask(__name__)
    app.config["SESSION"] = session
    app.config["SETTINGS"] = settings

    from pronounce.web.routes import bp
    app.register_blueprint(bp)

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not found"}), 404

    return app
