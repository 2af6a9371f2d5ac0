from __future__ import annotations

import sys
from pathlib import Path

from flask import Flask, send_from_directory
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game.lobby import GameContext
from .game.ratelimit import RateLimiter
from .game.sessions import SessionRegistry
from .game.store import RoomStore
from .routes.health import bp as health_bp
from .routes.rooms import bp as rooms_bp
from .routes.words import bp as words_bp
from .realtime.handlers import register_socketio_handlers


def build_context(config) -> GameContext:
    timers_enabled = not config.get("TESTING", False) or config.get("ENABLE_TIMERS_IN_TESTS", False)
    store = RoomStore(
        max_players=config["MAX_PLAYERS"],
        max_name_length=config["MAX_NAME_LENGTH"],
        idle_timeout_sec=config["ROOM_IDLE_TIMEOUT_SEC"],
        spy_min_players=config["MIN_SPY_PLAYERS"],
        spy_guess_timeout_sec=config["SPY_GUESS_TIMEOUT_SEC"],
    )
    return GameContext(
        store=store,
        sessions=SessionRegistry(grace_sec=config["RECONNECT_GRACE_SEC"]),
        limiter=RateLimiter(
            max_events=config["RATE_LIMIT_MAX_EVENTS"],
            window_sec=config["RATE_LIMIT_WINDOW_SEC"],
        ),
        timers_enabled=timers_enabled,
        sweep_interval_sec=config["ROOM_SWEEP_INTERVAL_SEC"],
    )


def create_app(config_class=Config) -> tuple[Flask, SocketIO]:
    dist_dir = Path(__file__).resolve().parents[2] / "frontend" / "dist"

    static_folder = str(dist_dir) if dist_dir.exists() else None
    static_url_path = "/" if dist_dir.exists() else None

    app = Flask(
        __name__,
        static_folder=static_folder,
        static_url_path=static_url_path,
    )
    app.config.from_object(config_class)

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    async_mode = app.config.get("SOCKETIO_ASYNC_MODE", "")
    if not async_mode:
        # Default choice:
        # - Windows: threading (eventlet has known compatibility issues on newer Python)
        # - Python >= 3.13: threading (safer default)
        # - Otherwise: eventlet
        if sys.platform.startswith("win") or sys.version_info >= (3, 13):
            async_mode = "threading"
        else:
            async_mode = "eventlet"

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=async_mode,
    )

    ctx = build_context(app.config)
    app.extensions["wordparty"] = ctx

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(rooms_bp, url_prefix="/api")
    app.register_blueprint(words_bp, url_prefix="/api")

    register_socketio_handlers(socketio, ctx)

    if dist_dir.exists():
        @app.get("/")
        def index():
            return send_from_directory(dist_dir, "index.html")

        @app.get("/<path:path>")
        def static_proxy(path: str):
            file_path = dist_dir / path
            if file_path.exists() and file_path.is_file():
                return send_from_directory(dist_dir, path)
            return send_from_directory(dist_dir, "index.html")

    return app, socketio
