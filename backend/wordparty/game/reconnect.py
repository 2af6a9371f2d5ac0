"""Reconnection: rebind a disconnected slot by name and replay a phase snapshot.

Names are the durable identity inside a room; connection ids change on every
reconnect. The snapshot carries enough of the current phase to redraw the
client without replaying the transitions it missed.
"""

from __future__ import annotations

import logging
from typing import Any

from ..errors import ValidationError
from . import categories, spy
from .identity import sanitize_name, sanitize_room_code
from .lobby import GameContext
from .models import GAME_TYPES, CategoryPlayer, CategoryRoom, SpyPlayer, SpyRoom
from .service import Effects, event_name, find_player_by_name, now_ms, players_payload
from .words import category_label


logger = logging.getLogger(__name__)


def _remaining_ms(room: SpyRoom, now: int) -> int:
    timer = room.pending_timer
    if timer is None:
        return 0
    return max(0, timer.deadline_ms - now)


def _clock_offset(server_time: int, client_time: Any) -> int:
    if isinstance(client_time, bool) or not isinstance(client_time, (int, float)):
        return 0
    return int(server_time - client_time)


def category_snapshot(room: CategoryRoom, player: CategoryPlayer) -> dict:
    snap = {
        "categories": list(room.categories),
        "usedLetters": list(room.used_letters),
        "currentLetter": room.current_letter,
        "roundStartTime": room.round_start_time,
        "myAnswers": dict(player.answers),
        "hasSubmitted": player.has_submitted,
        "finisher": room.finisher,
        "scoresReady": room.scores_ready,
    }
    if room.scores_ready:
        snap["scoring"] = categories.scoring_payload(room)
    return snap


def spy_snapshot(room: SpyRoom, player: SpyPlayer, now: int) -> dict:
    snap: dict[str, Any] = {
        "categories": list(room.categories),
        "timerDuration": room.timer_duration,
        "spyCount": room.spy_count,
    }
    if not room.game_active or room.round_state is None:
        return snap

    is_spy = player.id in room.spy_ids
    snap.update(
        {
            "category": room.current_category,
            "categoryLabel": category_label(room.current_category or ""),
            "isSpy": is_spy,
            "word": None if is_spy else room.current_word,
        }
    )

    state = room.round_state
    if state == "role-reveal":
        active = [p for p in room.players if not p.disconnected]
        snap["confirmed"] = player.confirmed
        snap["confirmedCount"] = sum(1 for p in active if p.confirmed)
        snap["total"] = len(active)
    elif state == "discussion":
        snap["discussionStartTime"] = room.discussion_start_time
        snap["remainingMs"] = _remaining_ms(room, now)
    elif state == "voting":
        active = [p for p in room.players if not p.disconnected]
        snap["votingPlayers"] = spy.voting_roster(room)
        snap["hasVoted"] = player.voted
        snap["votedCount"] = sum(1 for p in active if p.voted)
        snap["total"] = len(active)
    elif state == "guessing":
        snap.update(spy.guess_payload(room, player))
        snap["remainingMs"] = _remaining_ms(room, now)
    elif state == "result":
        snap["result"] = room.last_result
    return snap


def build_snapshot(room, player, client_time: Any = None) -> dict:
    server_time = now_ms()
    snap = {
        "gameType": room.game_type,
        "roomCode": room.code,
        "playerId": player.id,
        "playerName": player.name,
        "isHost": room.host_id == player.id,
        "hostId": room.host_id,
        "players": players_payload(room),
        "gameActive": room.game_active,
        "roundState": room.round_state,
        "round": room.current_round,
        "totalRounds": room.total_rounds,
        "serverTime": server_time,
        "clockOffsetMs": _clock_offset(server_time, client_time),
    }
    if isinstance(room, CategoryRoom):
        snap.update(category_snapshot(room, player))
    else:
        snap.update(spy_snapshot(room, player, server_time))
    return snap


def _failed(fx: Effects, conn_id: str, reason: str) -> Effects:
    fx.emit("reconnect-failed", {"reason": reason}, to=conn_id)
    return fx


def attempt_reconnect(
    ctx: GameContext,
    conn_id: str,
    name: Any,
    room_code: Any,
    game_type: Any,
    client_time: Any = None,
) -> Effects:
    fx = Effects()
    if game_type not in GAME_TYPES:
        return _failed(fx, conn_id, "invalid_game_type")
    try:
        name = sanitize_name(name, ctx.store.max_name_length)
        code = sanitize_room_code(room_code)
    except ValidationError as exc:
        return _failed(fx, conn_id, exc.code)

    with ctx.store.lock:
        if ctx.sessions.get(conn_id) is not None:
            logger.info("reconnect failed code=%s name=%s reason=already_in_room", code, name)
            return _failed(fx, conn_id, "already_in_room")

        room = ctx.store.get_room(code, game_type)
        if room is None:
            logger.info("reconnect failed code=%s name=%s reason=room_not_found", code, name)
            return _failed(fx, conn_id, "room_not_found")

        existing = find_player_by_name(room, name)
        if existing is None:
            logger.info("reconnect failed code=%s name=%s reason=player_not_found", code, name)
            return _failed(fx, conn_id, "player_not_found")
        if not existing.disconnected:
            logger.info("reconnect failed code=%s name=%s reason=already_connected", code, name)
            return _failed(fx, conn_id, "already_connected")

        if ctx.sessions.recent_disconnect(name, code, game_type) is None:
            logger.info("reconnect failed code=%s name=%s reason=grace_expired", code, name)
            ctx.store.drop_player(code, game_type, name)
            fx.emit(
                event_name(room, "player-left"),
                {"players": players_payload(room), "playerName": name, "expired": True},
                to=code,
            )
            return _failed(fx, conn_id, "grace_expired")

        player = ctx.store.rebind_player(room, name, conn_id)
        ctx.sessions.bind(conn_id, name, code, game_type)
        logger.info("reconnect ok code=%s name=%s", code, name)

        fx.enter(conn_id, code)
        fx.emit(
            event_name(room, "player-reconnected"),
            {"players": players_payload(room), "playerName": name, "playerId": conn_id},
            to=code,
        )
        fx.emit("reconnect-success", build_snapshot(room, player, client_time), to=conn_id)

        if isinstance(room, SpyRoom) and room.round_state == "role-reveal":
            confirmed = sum(1 for p in room.players if not p.disconnected and p.confirmed)
            total = sum(1 for p in room.players if not p.disconnected)
            fx.emit("spy-confirm-update", {"confirmed": confirmed, "total": total}, to=code)
        elif isinstance(room, SpyRoom) and room.round_state == "voting":
            voted = sum(1 for p in room.players if not p.disconnected and p.voted)
            total = sum(1 for p in room.players if not p.disconnected)
            fx.emit("spy-vote-update", {"voted": voted, "total": total}, to=code)
        return fx
