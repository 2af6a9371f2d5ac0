from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..errors import ValidationError
from ..game.identity import sanitize_room_code
from ..game.service import room_summary

bp = Blueprint("rooms", __name__)


@bp.get("/stats")
def stats():
    ctx = current_app.extensions["wordparty"]
    return jsonify(ctx.store.stats())


@bp.get("/rooms/<code>")
def get_room(code: str):
    try:
        code = sanitize_room_code(code)
    except ValidationError as exc:
        return jsonify(exc.to_payload()), 400

    ctx = current_app.extensions["wordparty"]
    with ctx.store.lock:
        room = ctx.store.get_room(code)
        if not room:
            return jsonify({"error": "room_not_found"}), 404
        return jsonify(room_summary(room))
