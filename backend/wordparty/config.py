import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Socket.IO worker model ("" picks a default in create_app)
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Rooms
    MAX_PLAYERS = int(os.environ.get("MAX_PLAYERS", "20"))
    MAX_NAME_LENGTH = int(os.environ.get("MAX_NAME_LENGTH", "20"))
    ROOM_IDLE_TIMEOUT_SEC = int(os.environ.get("ROOM_IDLE_TIMEOUT_SEC", "1800"))
    ROOM_SWEEP_INTERVAL_SEC = int(os.environ.get("ROOM_SWEEP_INTERVAL_SEC", "60"))
    RECONNECT_GRACE_SEC = int(os.environ.get("RECONNECT_GRACE_SEC", "120"))

    # Spy game
    MIN_SPY_PLAYERS = int(os.environ.get("MIN_SPY_PLAYERS", "3"))
    SPY_GUESS_TIMEOUT_SEC = int(os.environ.get("SPY_GUESS_TIMEOUT_SEC", "30"))

    # Per-connection, per-event throttle
    RATE_LIMIT_MAX_EVENTS = int(os.environ.get("RATE_LIMIT_MAX_EVENTS", "20"))
    RATE_LIMIT_WINDOW_SEC = float(os.environ.get("RATE_LIMIT_WINDOW_SEC", "5"))

    # Timers and the sweeper are not armed under TESTING unless this is set.
    ENABLE_TIMERS_IN_TESTS = os.environ.get("ENABLE_TIMERS_IN_TESTS", "0") == "1"
