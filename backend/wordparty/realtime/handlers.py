from __future__ import annotations

import logging
from typing import Any, Callable

from flask import request
from flask_socketio import SocketIO, emit

from ..errors import GameError
from ..game import categories, lobby, reconnect, spy
from ..game.lobby import GameContext
from ..game.service import Effects, TimerRequest
from . import events


logger = logging.getLogger(__name__)

SHUTDOWN_MESSAGE = "The server is restarting. Please rejoin in a moment."


def flush(socketio: SocketIO, fx: Effects, arm: Callable[[TimerRequest], None] | None = None) -> None:
    """Deliver engine effects: room subscriptions first, then messages, then timers."""
    for conn_id, room_code in fx.joins:
        socketio.server.enter_room(conn_id, room_code, namespace="/")
    for msg in fx.messages:
        socketio.emit(msg.event, msg.payload, to=msg.to)
    if arm is not None:
        for req in fx.timers:
            arm(req)


def broadcast_shutdown(socketio: SocketIO, ctx: GameContext, message: str = SHUTDOWN_MESSAGE) -> int:
    rooms = ctx.store.list_rooms()
    for room in rooms:
        socketio.emit("server-shutdown", {"message": message}, to=room.code)
    logger.info("shutdown broadcast rooms=%s", len(rooms))
    return len(rooms)


def register_socketio_handlers(socketio: SocketIO, ctx: GameContext) -> None:
    sweeper = {"started": False}

    def _flush(fx: Effects) -> None:
        flush(socketio, fx, _arm_timer)

    def _arm_timer(req: TimerRequest) -> None:
        if not ctx.timers_enabled:
            logger.debug("timer not armed code=%s kind=%s token=%s", req.room_code, req.kind, req.token)
            return

        def _runner() -> None:
            socketio.sleep(req.delay_sec)
            try:
                fx = spy.fire_timer(ctx.store, req.room_code, req.kind, req.token)
                _flush(fx)
            except Exception:
                logger.exception("timer failed code=%s kind=%s token=%s", req.room_code, req.kind, req.token)

        socketio.start_background_task(_runner)

    def _ensure_sweeper() -> None:
        if sweeper["started"] or not ctx.timers_enabled or ctx.sweep_interval_sec <= 0:
            return
        sweeper["started"] = True

        def _runner() -> None:
            while True:
                socketio.sleep(ctx.sweep_interval_sec)
                try:
                    removed = ctx.store.sweep()
                    for code in removed:
                        ctx.sessions.forget_room(code)
                    released = lobby.release_expired(ctx)
                    _flush(released)
                    ctx.limiter.sweep()
                    if removed or released.messages:
                        logger.info(
                            "sweep rooms=%s released_slots=%s",
                            ",".join(removed) or "-",
                            len(released.messages),
                        )
                except Exception:
                    logger.exception("sweep failed")

        socketio.start_background_task(_runner)

    def _game_event(event: str):
        """Register ``fn(sid, msg) -> Effects`` behind the throttle, the parser and error reporting."""

        def decorator(fn: Callable[[str, Any], Effects]):
            def _on_event(data=None):
                sid = request.sid
                if not ctx.limiter.allow(sid, event):
                    logger.debug("rate limited sid=%s event=%s", sid, event)
                    return None

                try:
                    msg = events.parse(event, data)
                    fx = fn(sid, msg)
                except GameError as exc:
                    logger.info("rejected event=%s sid=%s error=%s", event, sid, exc.code)
                    emit("error", exc.to_payload())
                    return {"ok": False, "error": exc.code}

                _flush(fx)
                return {"ok": True}

            socketio.on_event(event, _on_event)
            return fn

        return decorator

    # Word-categories game

    @_game_event("create-room")
    def create_room(sid: str, msg: events.CreateRoom) -> Effects:
        return lobby.create_room(ctx, "categories", sid, msg.name)

    @_game_event("join-room")
    def join_room(sid: str, msg: events.JoinRoom) -> Effects:
        return lobby.join_room(ctx, "categories", msg.room_code, sid, msg.name)

    @_game_event("start-game")
    def start_game(sid: str, msg: events.StartCategoriesGame) -> Effects:
        return categories.start_game(ctx.store, msg.room_code, sid, msg.total_rounds, msg.categories)

    @_game_event("select-letter")
    def select_letter(sid: str, msg: events.SelectLetter) -> Effects:
        return categories.select_letter(ctx.store, msg.room_code, sid, msg.letter)

    @_game_event("finish-round")
    def finish_round(sid: str, msg: events.Answers) -> Effects:
        return categories.finish_round(ctx.store, msg.room_code, sid, msg.answers)

    @_game_event("submit-answers")
    def submit_answers(sid: str, msg: events.Answers) -> Effects:
        return categories.submit_answers(ctx.store, msg.room_code, sid, msg.answers)

    @_game_event("update-single-score")
    def update_single_score(sid: str, msg: events.UpdateSingleScore) -> Effects:
        return categories.update_single_score(
            ctx.store, msg.room_code, sid, msg.player_id, msg.category, msg.score
        )

    @_game_event("update-scores-and-next")
    def update_scores_and_next(sid: str, msg: events.RoomAction) -> Effects:
        return categories.update_scores_and_next(ctx.store, msg.room_code, sid)

    @_game_event("play-again")
    def play_again(sid: str, msg: events.RoomAction) -> Effects:
        return categories.play_again(ctx.store, msg.room_code, sid)

    # Spy game

    @_game_event("spy-create-room")
    def spy_create_room(sid: str, msg: events.CreateRoom) -> Effects:
        return lobby.create_room(ctx, "spy", sid, msg.name)

    @_game_event("spy-join-room")
    def spy_join_room(sid: str, msg: events.JoinRoom) -> Effects:
        return lobby.join_room(ctx, "spy", msg.room_code, sid, msg.name)

    @_game_event("spy-start-game")
    def spy_start_game(sid: str, msg: events.StartSpyGame) -> Effects:
        return spy.start_game(
            ctx.store,
            msg.room_code,
            sid,
            total_rounds=msg.total_rounds,
            timer_duration=msg.timer_duration,
            spy_count=msg.spy_count,
            categories=msg.categories,
        )

    @_game_event("spy-confirm-role")
    def spy_confirm_role(sid: str, msg: events.RoomAction) -> Effects:
        return spy.confirm_role(ctx.store, msg.room_code, sid)

    @_game_event("spy-submit-vote")
    def spy_submit_vote(sid: str, msg: events.SubmitVote) -> Effects:
        return spy.submit_vote(ctx.store, msg.room_code, sid, msg.voted_for)

    @_game_event("spy-submit-guess")
    def spy_submit_guess(sid: str, msg: events.SubmitGuess) -> Effects:
        return spy.submit_guess(ctx.store, msg.room_code, sid, msg.guess)

    @_game_event("spy-next-round")
    def spy_next_round(sid: str, msg: events.RoomAction) -> Effects:
        return spy.next_round(ctx.store, msg.room_code, sid)

    # Shared

    @_game_event("attempt-reconnect")
    def attempt_reconnect(sid: str, msg: events.AttemptReconnect) -> Effects:
        return reconnect.attempt_reconnect(ctx, sid, msg.name, msg.room_code, msg.game_type, msg.client_time)

    @socketio.on("connect")
    def on_connect(*args):
        logger.info("connect sid=%s", request.sid)
        _ensure_sweeper()

    @socketio.on("disconnect")
    def on_disconnect(*args):
        logger.info("disconnect sid=%s", request.sid)
        _flush(lobby.handle_disconnect(ctx, request.sid))

    @socketio.on_error_default
    def on_error(exc):
        event = getattr(request, "event", None) or {}
        logger.error(
            "unhandled error event=%s sid=%s",
            event.get("message"),
            getattr(request, "sid", None),
            exc_info=exc,
        )
        return {"ok": False, "error": "server_error"}
