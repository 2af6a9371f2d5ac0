from __future__ import annotations

from flask import Blueprint, current_app, jsonify

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    ctx = current_app.extensions["wordparty"]
    return jsonify(
        {
            "ok": True,
            "rooms": len(ctx.store.list_rooms()),
            "connections": ctx.sessions.live_count,
        }
    )
