"""Room membership: create, join and connection loss for both games."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import PreconditionError
from . import categories, spy
from .identity import sanitize_room_code
from .models import CategoryRoom, GameType, Room
from .ratelimit import RateLimiter
from .service import Effects, event_name, players_payload
from .sessions import SessionRegistry
from .store import RoomStore


logger = logging.getLogger(__name__)


@dataclass
class GameContext:
    store: RoomStore
    sessions: SessionRegistry
    limiter: RateLimiter
    timers_enabled: bool = True
    sweep_interval_sec: int = 60


def room_payload(room: Room, conn_id: str) -> dict:
    payload = {
        "roomCode": room.code,
        "playerId": conn_id,
        "hostId": room.host_id,
        "isHost": room.host_id == conn_id,
        "players": players_payload(room),
        "gameActive": room.game_active,
        "roundState": room.round_state,
        "categories": list(room.categories),
    }
    if isinstance(room, CategoryRoom):
        payload["usedLetters"] = list(room.used_letters)
        payload["currentLetter"] = room.current_letter
        payload["round"] = room.current_round
        payload["totalRounds"] = room.total_rounds
    return payload


def _ensure_unbound(ctx: GameContext, conn_id: str) -> None:
    if ctx.sessions.get(conn_id) is not None:
        raise PreconditionError("already_in_room", "This connection is already in a room")


def create_room(ctx: GameContext, game_type: GameType, conn_id: str, name: str) -> Effects:
    fx = Effects()
    with ctx.store.lock:
        _ensure_unbound(ctx, conn_id)
        room = ctx.store.create_room(game_type, conn_id, name)
        host = room.players[0]
        ctx.sessions.bind(conn_id, host.name, room.code, game_type)

        fx.enter(conn_id, room.code)
        fx.emit(event_name(room, "room-created"), room_payload(room, conn_id), to=conn_id)
        return fx


def join_room(ctx: GameContext, game_type: GameType, code: str, conn_id: str, name: str) -> Effects:
    fx = Effects()
    code = sanitize_room_code(code)
    with ctx.store.lock:
        _ensure_unbound(ctx, conn_id)
        room, player = ctx.store.join_room(game_type, code, conn_id, name)
        if isinstance(room, CategoryRoom):
            categories.on_player_joined(room, player)
        ctx.sessions.bind(conn_id, player.name, room.code, game_type)
        logger.info("player joined code=%s game=%s name=%s", room.code, game_type, player.name)

        fx.enter(conn_id, room.code)
        fx.emit(event_name(room, "room-joined"), room_payload(room, conn_id), to=conn_id)
        fx.emit(
            event_name(room, "player-joined"),
            {"players": players_payload(room), "playerName": player.name, "playerId": player.id},
            to=room.code,
        )
        return fx


def handle_disconnect(ctx: GameContext, conn_id: str) -> Effects:
    """Mark the connection's player disconnected and unblock whatever phase waits on them."""
    fx = Effects()
    ctx.limiter.forget(conn_id)
    with ctx.store.lock:
        ctx.sessions.drop(conn_id)
        result = ctx.store.remove_connection(conn_id)
        if result is None:
            return fx

        room = result.room
        logger.info(
            "player disconnected code=%s name=%s remaining=%s",
            room.code,
            result.player.name,
            result.active_players,
        )
        if result.deleted:
            ctx.sessions.forget_room(room.code)
            return fx

        if result.new_host is not None:
            fx.emit(
                "host-changed",
                {"hostId": result.new_host.id, "hostName": result.new_host.name},
                to=room.code,
            )
        fx.emit(
            event_name(room, "player-left"),
            {"players": players_payload(room), "playerName": result.player.name},
            to=room.code,
        )

        if isinstance(room, CategoryRoom):
            fx.extend(categories.recheck_completion(ctx.store, room))
        else:
            fx.extend(spy.recheck_after_disconnect(ctx.store, room))
        return fx


def release_expired(ctx: GameContext, now: float | None = None) -> Effects:
    """Free the slots of players whose reconnection grace window has run out."""
    fx = Effects()
    with ctx.store.lock:
        for record in ctx.sessions.sweep(now):
            room = ctx.store.drop_player(record.room_code, record.game_type, record.name)
            if room is None:
                continue
            fx.emit(
                event_name(room, "player-left"),
                {"players": players_payload(room), "playerName": record.name, "expired": True},
                to=room.code,
            )
    return fx
