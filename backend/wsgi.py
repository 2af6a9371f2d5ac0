try:
    from backend.wordparty.server import create_app
except ImportError:  # pragma: no cover
    from wordparty.server import create_app

app, socketio = create_app()
